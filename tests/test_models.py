"""Tests for beacon value models and raw-value normalization."""

from __future__ import annotations

import pytest
from conftest import KONTAKT_UUID, beacon
from pydantic import ValidationError

from pybeacon.ingestion.normalize import map_region_state, normalize_reading, normalize_readings
from pybeacon.models.reading import BeaconReading, Proximity
from pybeacon.models.region import BeaconRegion
from pybeacon.models.snapshot import BeaconSnapshot, RegionState

# ------------------------------------------------------------------
# Enums
# ------------------------------------------------------------------


class TestBeaconEnum:
    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            ("CLRegionStateInside", RegionState.INSIDE),
            ("CLRegionStateOutside", RegionState.OUTSIDE),
            ("CLRegionStateUnknown", RegionState.UNKNOWN),
            ("inside", RegionState.INSIDE),
            ("invalid", RegionState.UNKNOWN),
            ("", RegionState.UNKNOWN),
        ],
    )
    def test_region_state_mapping(self, raw: str, expected: RegionState) -> None:
        assert map_region_state(raw) == expected

    def test_non_string_region_state_is_unknown(self) -> None:
        assert map_region_state(None) == RegionState.UNKNOWN
        assert map_region_state(1) == RegionState.UNKNOWN

    def test_proximity_aliases(self) -> None:
        assert Proximity("ProximityImmediate") == Proximity.IMMEDIATE
        assert Proximity("ProximityNear") == Proximity.NEAR
        assert Proximity("ProximityFar") == Proximity.FAR
        assert Proximity("bogus") == Proximity.UNKNOWN


# ------------------------------------------------------------------
# BeaconRegion
# ------------------------------------------------------------------


class TestBeaconRegion:
    def test_numeric_strings_are_coerced(self) -> None:
        region = BeaconRegion.model_validate({"identifier": "123", "uuid": "123", "major": "123", "minor": "123"})
        assert region.major == 123
        assert region.minor == 123

    def test_major_without_minor_is_allowed(self) -> None:
        region = BeaconRegion(identifier="lobby", uuid=KONTAKT_UUID, major=1)
        assert region.minor is None
        assert region.to_payload() == {"identifier": "lobby", "uuid": KONTAKT_UUID, "major": 1}

    @pytest.mark.parametrize(
        "payload",
        [
            {},
            {"identifier": 1, "uuid": "123"},
            {"identifier": "123", "uuid": 1},
            {"identifier": "", "uuid": "123"},
            {"identifier": "123", "uuid": "   "},
            {"identifier": "123", "uuid": "123", "minor": 1},
            {"identifier": "123", "uuid": "123", "major": 70000},
            {"identifier": "123", "uuid": "123", "major": -1},
            {"identifier": "123", "uuid": "123", "major": "abc"},
        ],
    )
    def test_invalid_regions_rejected(self, payload: dict) -> None:
        with pytest.raises(ValidationError):
            BeaconRegion.model_validate(payload)

    def test_region_is_immutable(self) -> None:
        region = BeaconRegion(identifier="lobby", uuid=KONTAKT_UUID)
        with pytest.raises(ValidationError):
            region.identifier = "other"  # type: ignore[misc]


# ------------------------------------------------------------------
# BeaconReading
# ------------------------------------------------------------------


class TestBeaconReading:
    def test_negative_accuracy_means_unknown(self) -> None:
        reading = normalize_reading(beacon(1, accuracy=-1))
        assert reading is not None
        assert reading.accuracy is None

    def test_string_fields_are_coerced(self) -> None:
        reading = normalize_reading(beacon(1, major="22728", minor="13911", rssi="-65", accuracy="0.5"))
        assert reading == BeaconReading(
            uuid=KONTAKT_UUID,
            major=22728,
            minor=13911,
            proximity=Proximity.NEAR,
            accuracy=0.5,
            rssi=-65,
        )

    def test_structural_equality_and_hash(self) -> None:
        a = normalize_reading(beacon(1))
        b = normalize_reading(beacon(1))
        assert a == b
        assert hash(a) == hash(b)
        assert a is not None
        assert a.key == (KONTAKT_UUID, 22728, 1)

    def test_malformed_records_are_dropped(self, caplog: pytest.LogCaptureFixture) -> None:
        readings = normalize_readings([beacon(1), {"uuid": KONTAKT_UUID}, "nonsense", beacon(2)])
        assert [r.minor for r in readings] == [1, 2]
        assert "Dropping malformed beacon reading" in caplog.text

    @pytest.mark.parametrize(
        "overrides",
        [
            {"major": "inf"},
            {"minor": float("-inf")},
            {"rssi": "-Infinity"},
            {"major": "nan"},
        ],
    )
    def test_non_finite_integer_fields_drop_the_record(self, overrides: dict[str, object]) -> None:
        assert normalize_reading(beacon(1, **overrides)) is None
        assert normalize_readings([beacon(1, **overrides), beacon(2)])[0].minor == 2

    @pytest.mark.parametrize("overrides", [{"major": "22728.9"}, {"minor": 1.5}, {"rssi": "-65.7"}])
    def test_fractional_integer_fields_are_not_truncated(self, overrides: dict[str, object]) -> None:
        assert normalize_reading(beacon(1, **overrides)) is None

    def test_integral_floats_are_accepted(self) -> None:
        reading = normalize_reading(beacon(1, major="22728.0", rssi=-65.0))
        assert reading is not None
        assert (reading.major, reading.rssi) == (22728, -65)

    def test_delivery_order_preserved(self) -> None:
        readings = normalize_readings([beacon(3), beacon(1), beacon(2)])
        assert [r.minor for r in readings] == [3, 1, 2]


def test_snapshot_defaults_and_in_region() -> None:
    snapshot = BeaconSnapshot()
    assert snapshot.membership == RegionState.UNKNOWN
    assert snapshot.readings == ()
    assert snapshot.version == 0
    assert snapshot.in_region is None
    assert BeaconSnapshot(membership=RegionState.INSIDE).in_region is True
    assert BeaconSnapshot(membership=RegionState.OUTSIDE).in_region is False
