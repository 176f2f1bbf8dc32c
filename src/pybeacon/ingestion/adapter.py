"""Provider adapter.

Owns:
- translating raw provider delegate callbacks into :class:`ProviderEvent`
- routing events to listeners by region identifier
- running outbound provider intents as fire-and-forget asyncio tasks whose
  failures are logged and never propagated
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Awaitable, Callable, Mapping, Sequence
from typing import Any, TypeVar

from pybeacon.ingestion.normalize import extract_region_identifier, map_region_state, normalize_readings, safe_str
from pybeacon.models.region import BeaconRegion
from pybeacon.providers.base import BeaconProvider
from pybeacon.state.events import ADVERTISING_KINDS, ProviderEvent, ProviderEventKind

_logger = logging.getLogger(__name__)

T = TypeVar("T")

EventListener = Callable[[ProviderEvent], None]


class ProviderAdapter:
    """Boundary between a :class:`BeaconProvider` and region stores.

    The adapter registers itself as the provider's delegate.  Intents must
    be issued from the thread running the asyncio loop, or *loop* must be
    given so they can be scheduled before it runs; delegate callbacks are
    expected on that same thread.
    """

    def __init__(
        self,
        provider: BeaconProvider,
        *,
        loop: asyncio.AbstractEventLoop | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self._provider = provider
        self._loop = loop
        self._logger = logger or _logger
        self._listeners: list[tuple[str | None, EventListener]] = []
        self._tasks: set[asyncio.Task[Any]] = set()
        provider.set_delegate(self)

    @property
    def provider(self) -> BeaconProvider:
        return self._provider

    @property
    def pending_tasks(self) -> int:
        return len(self._tasks)

    # ------------------------------------------------------------------
    # Listener registration
    # ------------------------------------------------------------------

    def subscribe(self, region_identifier: str | None, listener: EventListener) -> Callable[[], None]:
        """Deliver events for *region_identifier* (``None`` = all regions).

        Events that carry no region identifier, and advertising events,
        reach every listener.  Returns a callable that unsubscribes.
        """
        entry = (region_identifier, listener)
        self._listeners.append(entry)

        def unsubscribe() -> None:
            with contextlib.suppress(ValueError):
                self._listeners.remove(entry)

        return unsubscribe

    def _emit(self, event: ProviderEvent) -> None:
        for identifier, listener in list(self._listeners):
            if (
                event.kind not in ADVERTISING_KINDS
                and identifier is not None
                and event.region_identifier is not None
                and identifier != event.region_identifier
            ):
                continue
            try:
                listener(event)
            except Exception:
                self._logger.exception("Provider event listener failed kind=%s", event.kind)

    # ------------------------------------------------------------------
    # Delegate callbacks (raw provider payloads)
    # ------------------------------------------------------------------

    def _payload(self, callback: str, payload: Any) -> dict[str, Any] | None:
        if not isinstance(payload, Mapping):
            self._logger.warning("Ignoring %s with non-object payload: %r", callback, payload)
            return None
        return dict(payload)

    def did_determine_state_for_region(self, payload: dict[str, Any]) -> None:
        data = self._payload("didDetermineStateForRegion", payload)
        if data is None:
            return
        state = map_region_state(data.get("state"))
        self._logger.debug("Region state determined region=%s state=%s", extract_region_identifier(data), state)
        self._emit(
            ProviderEvent(
                kind=ProviderEventKind.MEMBERSHIP,
                region_identifier=extract_region_identifier(data),
                state=state,
                raw=data,
            )
        )

    def did_start_monitoring_for_region(self, payload: dict[str, Any]) -> None:
        data = self._payload("didStartMonitoringForRegion", payload)
        if data is None:
            return
        self._logger.debug("didStartMonitoringForRegion: %s", data)
        self._emit(
            ProviderEvent(
                kind=ProviderEventKind.MONITORING_STARTED,
                region_identifier=extract_region_identifier(data),
                raw=data,
            )
        )

    def monitoring_did_fail_for_region(self, payload: dict[str, Any]) -> None:
        data = self._payload("monitoringDidFailForRegionWithError", payload)
        if data is None:
            return
        self._logger.warning(
            "Monitoring failed region=%s error=%s",
            extract_region_identifier(data),
            safe_str(data.get("error")),
        )
        self._emit(
            ProviderEvent(
                kind=ProviderEventKind.MONITORING_FAILED,
                region_identifier=extract_region_identifier(data),
                raw=data,
            )
        )

    def did_range_beacons_in_region(self, payload: dict[str, Any]) -> None:
        data = self._payload("didRangeBeaconsInRegion", payload)
        if data is None:
            return
        raw_beacons = data.get("beacons")
        if raw_beacons is not None and (isinstance(raw_beacons, (str, bytes)) or not isinstance(raw_beacons, Sequence)):
            self._logger.warning("Ranging payload beacons is not a list: %r", raw_beacons)
            raw_beacons = None
        self._emit(
            ProviderEvent(
                kind=ProviderEventKind.RANGING,
                region_identifier=extract_region_identifier(data),
                readings=normalize_readings(raw_beacons, logger=self._logger),
                raw=data,
            )
        )

    def peripheral_manager_did_start_advertising(self, payload: dict[str, Any]) -> None:
        data = self._payload("peripheralManagerDidStartAdvertising", payload)
        if data is None:
            return
        self._logger.debug("Advertising started: %s", data)
        self._emit(ProviderEvent(kind=ProviderEventKind.ADVERTISING_STARTED, raw=data))

    def peripheral_manager_did_update_state(self, payload: dict[str, Any]) -> None:
        data = self._payload("peripheralManagerDidUpdateState", payload)
        if data is None:
            return
        self._logger.debug("Peripheral manager state: %s", safe_str(data.get("state")))
        self._emit(ProviderEvent(kind=ProviderEventKind.ADVERTISING_STATE_CHANGED, raw=data))

    # ------------------------------------------------------------------
    # Outbound intents
    # ------------------------------------------------------------------

    def spawn(
        self,
        action: str,
        factory: Callable[[], Awaitable[T]],
        callback: Callable[[T], None] | None = None,
    ) -> asyncio.Task[T | None] | None:
        """Run a provider call in the background.

        The task resolves to the call's result, or to ``None`` when the
        provider failed (the failure is logged).  *callback* only sees
        successful results.

        With no ``loop`` given and none running, the intent is logged and
        dropped and ``None`` is returned instead of a task.
        """
        loop = self._loop
        if loop is None:
            try:
                loop = asyncio.get_running_loop()
            except RuntimeError:
                self._logger.warning("No running event loop; dropping beacon provider %s", action)
                return None
        task = loop.create_task(self._guard(action, factory, callback))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _guard(
        self,
        action: str,
        factory: Callable[[], Awaitable[T]],
        callback: Callable[[T], None] | None,
    ) -> T | None:
        try:
            result = await factory()
        except Exception:
            self._logger.error("Beacon provider %s failed", action, exc_info=True)
            return None
        if callback is not None:
            try:
                callback(result)
            except Exception:
                self._logger.exception("Callback for %s raised", action)
        return result

    async def wait_idle(self) -> None:
        """Wait until every intent issued so far has finished."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    def start_monitoring(self, region: BeaconRegion) -> asyncio.Task[None] | None:
        return self.spawn("start_monitoring", lambda: self._provider.start_monitoring(region))

    def stop_monitoring(self, region: BeaconRegion) -> asyncio.Task[None] | None:
        return self.spawn("stop_monitoring", lambda: self._provider.stop_monitoring(region))

    def start_ranging(self, region: BeaconRegion) -> asyncio.Task[None] | None:
        return self.spawn("start_ranging", lambda: self._provider.start_ranging(region))

    def stop_ranging(self, region: BeaconRegion) -> asyncio.Task[None] | None:
        return self.spawn("stop_ranging", lambda: self._provider.stop_ranging(region))

    def is_advertising_available(
        self,
        callback: Callable[[bool], None] | None = None,
    ) -> asyncio.Task[bool | None] | None:
        return self.spawn("is_advertising_available", self._provider.is_advertising_available, callback)

    def is_advertising(self, callback: Callable[[bool], None] | None = None) -> asyncio.Task[bool | None] | None:
        return self.spawn("is_advertising", self._provider.is_advertising, callback)

    def start_advertising(
        self,
        region: BeaconRegion,
        measured_power: int | None = None,
    ) -> asyncio.Task[bool | None] | None:
        """Check capability, then start transmitting as *region*.

        Resolves ``False`` without calling the provider's start when the
        device cannot advertise.
        """

        async def _advertise() -> bool:
            if not await self._provider.is_advertising_available():
                self._logger.info(
                    "Advertising is not supported on this device; not advertising %s", region.identifier
                )
                return False
            await self._provider.start_advertising(region, measured_power)
            return True

        return self.spawn("start_advertising", _advertise)

    def stop_advertising(self) -> asyncio.Task[None] | None:
        return self.spawn("stop_advertising", self._provider.stop_advertising)

    def request_authorization(self, *, always: bool) -> asyncio.Task[None] | None:
        """Ask for location access: ``always`` for background monitoring, else when-in-use."""
        if always:
            return self.spawn("request_always_authorization", self._provider.request_always_authorization)
        return self.spawn("request_when_in_use_authorization", self._provider.request_when_in_use_authorization)

    def disable_debug_logs(self) -> asyncio.Task[None] | None:
        return self.spawn("disable_debug_logs", self._provider.disable_debug_logs)
