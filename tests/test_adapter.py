from __future__ import annotations

import pytest
from conftest import KONTAKT_UUID, FakeProvider, beacon

from pybeacon.ingestion.adapter import ProviderAdapter
from pybeacon.models.region import BeaconRegion
from pybeacon.models.snapshot import RegionState
from pybeacon.state.events import ProviderEvent, ProviderEventKind


def test_adapter_registers_as_delegate(adapter: ProviderAdapter, provider: FakeProvider) -> None:
    assert provider.delegate is adapter
    assert adapter.provider is provider


def test_membership_payload_is_normalized(adapter: ProviderAdapter) -> None:
    events: list[ProviderEvent] = []
    adapter.subscribe(None, events.append)

    adapter.did_determine_state_for_region(
        {"region": {"identifier": " lobby ", "uuid": KONTAKT_UUID}, "state": "CLRegionStateOutside"}
    )

    assert len(events) == 1
    assert events[0].kind == ProviderEventKind.MEMBERSHIP
    assert events[0].state == RegionState.OUTSIDE
    assert events[0].region_identifier == "lobby"
    assert events[0].observed_at.tzinfo is not None


def test_ranging_payload_is_normalized(adapter: ProviderAdapter) -> None:
    events: list[ProviderEvent] = []
    adapter.subscribe(None, events.append)

    adapter.did_range_beacons_in_region({"beacons": [beacon(1, major="22728"), {"junk": True}]})

    assert events[0].kind == ProviderEventKind.RANGING
    assert [(r.major, r.minor) for r in events[0].readings] == [(22728, 1)]


def test_ranging_payload_with_bad_beacons_field(adapter: ProviderAdapter, caplog: pytest.LogCaptureFixture) -> None:
    events: list[ProviderEvent] = []
    adapter.subscribe(None, events.append)

    adapter.did_range_beacons_in_region({"beacons": "not-a-list"})

    assert events[0].readings == ()
    assert "not a list" in caplog.text


def test_non_object_payload_is_ignored(adapter: ProviderAdapter, caplog: pytest.LogCaptureFixture) -> None:
    events: list[ProviderEvent] = []
    adapter.subscribe(None, events.append)

    adapter.did_determine_state_for_region("CLRegionStateInside")  # type: ignore[arg-type]

    assert events == []
    assert "non-object payload" in caplog.text


def test_routing_by_region_identifier(adapter: ProviderAdapter) -> None:
    lobby: list[ProviderEvent] = []
    everything: list[ProviderEvent] = []
    adapter.subscribe("lobby", lobby.append)
    adapter.subscribe(None, everything.append)

    adapter.did_determine_state_for_region({"region": {"identifier": "kitchen"}, "state": "CLRegionStateInside"})
    adapter.did_determine_state_for_region({"region": {"identifier": "lobby"}, "state": "CLRegionStateInside"})
    adapter.did_determine_state_for_region({"state": "CLRegionStateOutside"})
    adapter.peripheral_manager_did_update_state({"state": "poweredOn"})

    assert [e.region_identifier for e in lobby] == ["lobby", None, None]
    assert lobby[-1].kind == ProviderEventKind.ADVERTISING_STATE_CHANGED
    assert len(everything) == 4


def test_unsubscribe(adapter: ProviderAdapter) -> None:
    events: list[ProviderEvent] = []
    unsubscribe = adapter.subscribe(None, events.append)
    unsubscribe()
    unsubscribe()

    adapter.did_start_monitoring_for_region({"region": {"identifier": "lobby"}})

    assert events == []


def test_failing_listener_does_not_block_others(adapter: ProviderAdapter, caplog: pytest.LogCaptureFixture) -> None:
    events: list[ProviderEvent] = []

    def explode(_event: ProviderEvent) -> None:
        raise RuntimeError("boom")

    adapter.subscribe(None, explode)
    adapter.subscribe(None, events.append)

    adapter.monitoring_did_fail_for_region({"region": {"identifier": "lobby"}, "error": "denied"})

    assert [e.kind for e in events] == [ProviderEventKind.MONITORING_FAILED]
    assert "listener failed" in caplog.text
    assert "Monitoring failed region=lobby error=denied" in caplog.text


@pytest.mark.asyncio
async def test_intent_failure_is_logged_and_resolves_none(
    adapter: ProviderAdapter,
    provider: FakeProvider,
    caplog: pytest.LogCaptureFixture,
) -> None:
    provider.failing = {"is_advertising"}
    answers: list[bool] = []

    result = await adapter.is_advertising(answers.append)

    assert result is None
    assert answers == []
    assert "Beacon provider is_advertising failed" in caplog.text


@pytest.mark.asyncio
async def test_failing_callback_is_logged(adapter: ProviderAdapter, caplog: pytest.LogCaptureFixture) -> None:
    def explode(_available: bool) -> None:
        raise RuntimeError("boom")

    assert await adapter.is_advertising_available(explode) is True
    assert "Callback for is_advertising_available raised" in caplog.text


@pytest.mark.asyncio
async def test_wait_idle_drains_intents(adapter: ProviderAdapter, provider: FakeProvider) -> None:
    adapter.request_authorization(always=False)
    adapter.disable_debug_logs()
    adapter.stop_advertising()
    assert adapter.pending_tasks == 3

    await adapter.wait_idle()

    assert adapter.pending_tasks == 0
    assert provider.names() == ["request_when_in_use_authorization", "disable_debug_logs", "stop_advertising"]


@pytest.mark.asyncio
async def test_start_advertising_checks_capability_first(adapter: ProviderAdapter, provider: FakeProvider) -> None:
    region = BeaconRegion(identifier="me", uuid=KONTAKT_UUID, major=1)

    assert await adapter.start_advertising(region, -59) is True
    assert provider.names() == ["is_advertising_available", "start_advertising"]
    assert provider.calls[-1][1] == (region, -59)

    provider.calls.clear()
    provider.advertising_available = False
    assert await adapter.start_advertising(region) is False
    assert provider.names() == ["is_advertising_available"]


def test_intents_without_running_loop_are_dropped(
    adapter: ProviderAdapter,
    provider: FakeProvider,
    caplog: pytest.LogCaptureFixture,
) -> None:
    assert adapter.stop_advertising() is None
    assert adapter.pending_tasks == 0
    assert provider.calls == []
    assert "dropping beacon provider stop_advertising" in caplog.text
