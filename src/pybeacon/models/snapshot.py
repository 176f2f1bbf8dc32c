"""Region membership and snapshot models."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict

from pybeacon.models._base import BeaconEnum, resolve_member
from pybeacon.models.reading import BeaconReading

_REGION_STATE_ALIASES = {
    "clregionstateinside": "inside",
    "clregionstateoutside": "outside",
    "clregionstateunknown": "unknown",
}


class RegionState(BeaconEnum):
    """Tri-state region membership.

    ``UNKNOWN`` is a value of its own, not a synonym for either
    ``INSIDE`` or ``OUTSIDE``.
    """

    INSIDE = "inside"
    OUTSIDE = "outside"
    UNKNOWN = "unknown"

    @classmethod
    def _missing_(cls, value: object) -> RegionState:
        return resolve_member(cls, value, _REGION_STATE_ALIASES)


class BeaconSnapshot(BaseModel):
    """Latest known membership and ranged readings for one region.

    Snapshots are immutable.  The store installs a new snapshot on every
    accepted change, so a reference held by an observer stays valid.

    Parameters
    ----------
    membership : RegionState
        Current membership; ``UNKNOWN`` until the provider reports a state.
    readings : tuple of BeaconReading
        Ranged beacons in provider delivery order.
    version : int
        Number of accepted changes since the store was created.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    membership: RegionState = RegionState.UNKNOWN
    readings: tuple[BeaconReading, ...] = ()
    version: int = 0

    @property
    def in_region(self) -> bool | None:
        """``True`` inside, ``False`` outside, ``None`` when unknown."""
        if self.membership == RegionState.INSIDE:
            return True
        if self.membership == RegionState.OUTSIDE:
            return False
        return None
