from __future__ import annotations

from typing import Any

import pytest

from pybeacon.exceptions import BeaconProviderError
from pybeacon.ingestion.adapter import ProviderAdapter
from pybeacon.models.region import BeaconRegion
from pybeacon.providers.base import ProviderDelegate

KONTAKT_UUID = "F7826DA6-4FA2-4E98-8024-BC5B71E0893E"


class FakeProvider:
    """In-memory provider recording every intent it receives."""

    def __init__(self) -> None:
        self.delegate: ProviderDelegate | None = None
        self.calls: list[tuple[str, Any]] = []
        self.failing: set[str] = set()
        self.advertising_available = True
        self.advertising = False

    def set_delegate(self, delegate: ProviderDelegate) -> None:
        self.delegate = delegate

    def names(self) -> list[str]:
        return [name for name, _ in self.calls]

    def _record(self, name: str, arg: Any = None) -> None:
        self.calls.append((name, arg))
        if name in self.failing:
            raise BeaconProviderError(f"{name} failed", action=name)

    async def start_monitoring(self, region: BeaconRegion) -> None:
        self._record("start_monitoring", region)

    async def stop_monitoring(self, region: BeaconRegion) -> None:
        self._record("stop_monitoring", region)

    async def start_ranging(self, region: BeaconRegion) -> None:
        self._record("start_ranging", region)

    async def stop_ranging(self, region: BeaconRegion) -> None:
        self._record("stop_ranging", region)

    async def is_advertising_available(self) -> bool:
        self._record("is_advertising_available")
        return self.advertising_available

    async def is_advertising(self) -> bool:
        self._record("is_advertising")
        return self.advertising

    async def start_advertising(self, region: BeaconRegion, measured_power: int | None = None) -> None:
        self._record("start_advertising", (region, measured_power))
        self.advertising = True

    async def stop_advertising(self) -> None:
        self._record("stop_advertising")
        self.advertising = False

    async def request_always_authorization(self) -> None:
        self._record("request_always_authorization")

    async def request_when_in_use_authorization(self) -> None:
        self._record("request_when_in_use_authorization")

    async def disable_debug_logs(self) -> None:
        self._record("disable_debug_logs")


def beacon(minor: Any, /, proximity: str = "ProximityNear", **overrides: Any) -> dict[str, Any]:
    """Raw ranged beacon record as a provider delivers it."""
    raw: dict[str, Any] = {
        "uuid": KONTAKT_UUID,
        "major": 22728,
        "minor": minor,
        "proximity": proximity,
        "accuracy": 0.11,
        "rssi": -66,
    }
    raw.update(overrides)
    return raw


@pytest.fixture
def provider() -> FakeProvider:
    return FakeProvider()


@pytest.fixture
def adapter(provider: FakeProvider) -> ProviderAdapter:
    return ProviderAdapter(provider)
