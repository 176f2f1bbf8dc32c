"""Beacon provider interface.

A provider is whatever actually talks to beacon hardware: a platform
location SDK, a BLE gateway, a simulator.  The store never calls it
directly; every call goes through :class:`pybeacon.ingestion.adapter.ProviderAdapter`.

Delegate payloads are plain dicts shaped the way iOS CoreLocation
plugins report them, e.g.::

    {"region": {"identifier": "lobby", "uuid": "..."}, "state": "CLRegionStateInside"}
    {"region": {...}, "beacons": [{"uuid": "...", "major": "22728", ...}]}
"""

from __future__ import annotations

from typing import Any, Protocol

from pybeacon.models.region import BeaconRegion


class ProviderDelegate(Protocol):
    """Callbacks a provider invokes as observations arrive."""

    def did_determine_state_for_region(self, payload: dict[str, Any]) -> None: ...

    def did_start_monitoring_for_region(self, payload: dict[str, Any]) -> None: ...

    def monitoring_did_fail_for_region(self, payload: dict[str, Any]) -> None: ...

    def did_range_beacons_in_region(self, payload: dict[str, Any]) -> None: ...

    def peripheral_manager_did_start_advertising(self, payload: dict[str, Any]) -> None: ...

    def peripheral_manager_did_update_state(self, payload: dict[str, Any]) -> None: ...


class BeaconProvider(Protocol):
    """Outbound intents accepted by a provider.

    Every intent is a coroutine and may raise; callers are expected to
    absorb failures.
    """

    def set_delegate(self, delegate: ProviderDelegate) -> None: ...

    async def start_monitoring(self, region: BeaconRegion) -> None: ...

    async def stop_monitoring(self, region: BeaconRegion) -> None: ...

    async def start_ranging(self, region: BeaconRegion) -> None: ...

    async def stop_ranging(self, region: BeaconRegion) -> None: ...

    async def is_advertising_available(self) -> bool: ...

    async def is_advertising(self) -> bool: ...

    async def start_advertising(self, region: BeaconRegion, measured_power: int | None = None) -> None: ...

    async def stop_advertising(self) -> None: ...

    async def request_always_authorization(self) -> None: ...

    async def request_when_in_use_authorization(self) -> None: ...

    async def disable_debug_logs(self) -> None: ...
