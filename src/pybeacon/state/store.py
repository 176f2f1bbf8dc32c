"""Reactive region store.

This is the only component allowed to replace a region's snapshot.
"""

from __future__ import annotations

import asyncio
import logging
import threading
from collections.abc import Callable, Iterable, Mapping
from typing import Any

from pydantic import ValidationError

from pybeacon.config import BeaconConfig
from pybeacon.exceptions import BeaconValidationError
from pybeacon.ingestion.adapter import ProviderAdapter
from pybeacon.ingestion.normalize import map_region_state, normalize_readings
from pybeacon.models.region import BeaconRegion
from pybeacon.models.snapshot import BeaconSnapshot
from pybeacon.state.detect import membership_changed, readings_changed
from pybeacon.state.events import ProviderEvent, ProviderEventKind
from pybeacon.state.observers import Observer, ObserverRegistry, Reaction, Subscription

_logger = logging.getLogger(__name__)

AdvertisingCallback = Callable[[dict[str, Any]], None]


def _validate_region(region: BeaconRegion | Mapping[str, Any]) -> BeaconRegion:
    if isinstance(region, BeaconRegion):
        return region
    if not isinstance(region, Mapping):
        raise BeaconValidationError(f"Beacon region must be a mapping or BeaconRegion, got {type(region).__name__}")
    try:
        return BeaconRegion.model_validate(region)
    except ValidationError as exc:
        raise BeaconValidationError(f"Invalid beacon region: {exc}") from exc


def _validate_flag(name: str, value: Any) -> bool:
    if not isinstance(value, bool):
        raise BeaconValidationError(f"{name} must be a bool, got {type(value).__name__}")
    return value


class _ChangeWaiter:
    """Observer that wakes an asyncio waiter from any thread."""

    def __init__(self, loop: asyncio.AbstractEventLoop) -> None:
        self._loop = loop
        self.event = asyncio.Event()

    def notify(self) -> None:
        self._loop.call_soon_threadsafe(self.event.set)


class RegionStore:
    """Single source of truth for one beacon region.

    Holds the current :class:`BeaconSnapshot`, applies provider events
    through change detection, and notifies observers that read the store
    once per accepted change.

    Usage::

        store = RegionStore({"identifier": "lobby", "uuid": UUID}, adapter)
        sub = store.subscribe(lambda: print("changed"))
        snapshot = store.read(sub)   # arms sub for the next change
    """

    def __init__(
        self,
        region: BeaconRegion | Mapping[str, Any],
        adapter: ProviderAdapter,
        *,
        monitoring_enabled: bool = True,
        ranging_enabled: bool = True,
        disable_provider_debug_logs: bool = True,
        logger: logging.Logger | None = None,
    ) -> None:
        self._region = _validate_region(region)
        self._monitoring_enabled = _validate_flag("monitoring_enabled", monitoring_enabled)
        self._ranging_enabled = _validate_flag("ranging_enabled", ranging_enabled)
        self._adapter = adapter
        self._logger = logger or _logger

        self._snapshot = BeaconSnapshot()
        self._write_lock = threading.RLock()
        self._observers = ObserverRegistry(logger=self._logger)
        self._on_advertising_started: AdvertisingCallback | None = None
        self._on_advertising_state_changed: AdvertisingCallback | None = None
        self._closed = False

        if disable_provider_debug_logs:
            adapter.disable_debug_logs()
        # Background monitoring needs "always" location access.
        adapter.request_authorization(always=self._monitoring_enabled)
        if self._ranging_enabled:
            adapter.start_ranging(self._region)
        if self._monitoring_enabled:
            adapter.start_monitoring(self._region)

        self._unsubscribe = adapter.subscribe(self._region.identifier, self._on_provider_event)

    @classmethod
    def from_config(
        cls,
        region: BeaconRegion | Mapping[str, Any],
        adapter: ProviderAdapter,
        config: BeaconConfig,
        *,
        logger: logging.Logger | None = None,
    ) -> RegionStore:
        return cls(
            region,
            adapter,
            monitoring_enabled=config.monitoring_enabled,
            ranging_enabled=config.ranging_enabled,
            disable_provider_debug_logs=config.disable_provider_debug_logs,
            logger=logger,
        )

    @property
    def region(self) -> BeaconRegion:
        return self._region

    @property
    def monitoring_enabled(self) -> bool:
        return self._monitoring_enabled

    @property
    def ranging_enabled(self) -> bool:
        return self._ranging_enabled

    @property
    def observers(self) -> ObserverRegistry:
        return self._observers

    # ------------------------------------------------------------------
    # Reads and subscriptions
    # ------------------------------------------------------------------

    def read(self, observer: Observer | None = None) -> BeaconSnapshot:
        """Return the current snapshot, arming *observer* for the next change."""
        if observer is not None:
            # Arm before loading: a change landing in between yields a
            # spurious notification instead of a missed one.
            self._observers.arm(observer)
        return self._snapshot

    def subscribe(self, callback: Callable[[], None]) -> Subscription:
        """Create a subscription handle.  It is armed by passing it to :meth:`read`."""
        return Subscription(self._observers, callback)

    def watch(self, fn: Callable[[BeaconSnapshot], None]) -> Reaction[BeaconSnapshot]:
        """Call ``fn(snapshot)`` now and after every change until the reaction is stopped."""
        return Reaction(self._observers, self.read, fn).start()

    async def wait_for_change(self, timeout: float | None = None) -> BeaconSnapshot | None:
        """Wait for the next accepted change; ``None`` on timeout."""
        waiter = _ChangeWaiter(asyncio.get_running_loop())
        self.read(waiter)
        try:
            await asyncio.wait_for(waiter.event.wait(), timeout)
        except TimeoutError:
            return None
        finally:
            self._observers.disarm(waiter)
        return self._snapshot

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def apply_membership_event(self, raw_state: Any) -> None:
        """Apply a raw provider membership value.  Unrecognised values mean unknown."""
        state = map_region_state(raw_state)
        with self._write_lock:
            current = self._snapshot
            if not membership_changed(current.membership, state):
                return
            self._install(current.model_copy(update={"membership": state, "version": current.version + 1}))
            self._logger.debug("Region %s membership %s -> %s", self._region.identifier, current.membership, state)
            self._observers.fire()

    def apply_ranging_event(self, raw_readings: Iterable[Any] | None) -> None:
        """Apply a raw ranging payload.  Malformed readings are dropped."""
        readings = normalize_readings(raw_readings, logger=self._logger)
        with self._write_lock:
            current = self._snapshot
            if not readings_changed(current.readings, readings):
                return
            self._install(current.model_copy(update={"readings": readings, "version": current.version + 1}))
            self._logger.debug("Region %s ranged %d beacon(s)", self._region.identifier, len(readings))
            self._observers.fire()

    def _install(self, snapshot: BeaconSnapshot) -> None:
        # Reference swap; readers never observe a partially built snapshot.
        self._snapshot = snapshot

    def _on_provider_event(self, event: ProviderEvent) -> None:
        if event.kind == ProviderEventKind.MEMBERSHIP:
            self.apply_membership_event(event.state)
            return
        if event.kind == ProviderEventKind.RANGING:
            self.apply_ranging_event(event.readings)
            return
        if event.kind == ProviderEventKind.ADVERTISING_STARTED:
            if self._on_advertising_started is not None:
                self._on_advertising_started(event.raw)
            return
        if event.kind == ProviderEventKind.ADVERTISING_STATE_CHANGED:
            if self._on_advertising_state_changed is not None:
                self._on_advertising_state_changed(event.raw)
            return

    # ------------------------------------------------------------------
    # Advertising
    # ------------------------------------------------------------------

    def request_advertising_capability(
        self,
        callback: Callable[[bool], None] | None = None,
    ) -> asyncio.Task[bool | None] | None:
        """Ask whether this device can transmit as a beacon."""
        return self._adapter.is_advertising_available(callback)

    def request_is_advertising(
        self,
        callback: Callable[[bool], None] | None = None,
    ) -> asyncio.Task[bool | None] | None:
        """Ask whether this device is currently transmitting."""
        return self._adapter.is_advertising(callback)

    def start_advertising(
        self,
        uuid: str,
        identifier: str,
        major: int | str | None = None,
        minor: int | str | None = None,
        on_started: AdvertisingCallback | None = None,
        on_state_changed: AdvertisingCallback | None = None,
        *,
        measured_power: int | None = None,
    ) -> asyncio.Task[bool | None] | None:
        """Transmit as a beacon, best effort.

        The task resolves ``True`` once the provider accepted the request,
        ``False`` when the device cannot advertise (logged, not raised), and
        ``None`` when the provider failed.
        """
        region = _validate_region({"identifier": identifier, "uuid": uuid, "major": major, "minor": minor})
        self._on_advertising_started = on_started
        self._on_advertising_state_changed = on_state_changed
        return self._adapter.start_advertising(region, measured_power)

    def stop_advertising(self) -> asyncio.Task[None] | None:
        return self._adapter.stop_advertising()

    # ------------------------------------------------------------------
    # Teardown
    # ------------------------------------------------------------------

    def close(self) -> None:
        """Stop the provider services this store started and drop observers."""
        if self._closed:
            return
        self._closed = True
        self._unsubscribe()
        self._observers.clear()
        if self._ranging_enabled:
            self._adapter.stop_ranging(self._region)
        if self._monitoring_enabled:
            self._adapter.stop_monitoring(self._region)
