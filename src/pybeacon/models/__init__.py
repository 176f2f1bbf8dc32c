"""Beacon data models."""

from pybeacon.models.reading import BeaconReading, Proximity
from pybeacon.models.region import BeaconRegion
from pybeacon.models.snapshot import BeaconSnapshot, RegionState

__all__ = [
    "BeaconReading",
    "BeaconRegion",
    "BeaconSnapshot",
    "Proximity",
    "RegionState",
]
