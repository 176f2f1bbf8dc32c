"""Ranged beacon reading model."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any, ClassVar

from pydantic import field_validator

from pybeacon.models._base import BeaconBaseModel, BeaconEnum, is_negative, resolve_member

_PROXIMITY_ALIASES = {
    "proximityimmediate": "immediate",
    "proximitynear": "near",
    "proximityfar": "far",
    "proximityunknown": "unknown",
}


class Proximity(BeaconEnum):
    """Coarse distance bucket reported by the provider."""

    IMMEDIATE = "immediate"
    NEAR = "near"
    FAR = "far"
    UNKNOWN = "unknown"

    @classmethod
    def _missing_(cls, value: object) -> Proximity:
        return resolve_member(cls, value, _PROXIMITY_ALIASES)


class BeaconReading(BeaconBaseModel):
    """One detected beacon at a point in time.

    Readings have no identity of their own: two readings are equal
    when all six fields are equal, and equal readings hash alike.

    Parameters
    ----------
    uuid : str
        Proximity UUID of the detected beacon.
    major : int
        Major value.  Numeric strings (``"22728"``) are coerced.
    minor : int
        Minor value.  Numeric strings are coerced.
    proximity : Proximity
        Distance bucket.  Unrecognised values become ``UNKNOWN``.
    accuracy : float or None
        Estimated distance in meters; ``None`` when the provider sent
        a negative sentinel.
    rssi : int
        Received signal strength in dBm.
    """

    _SENTINEL_RULES: ClassVar[dict[str, Callable[..., bool]]] = {
        "accuracy": is_negative,
    }

    uuid: str
    major: int
    minor: int
    proximity: Proximity = Proximity.UNKNOWN
    accuracy: float | None = None
    rssi: int

    @field_validator("proximity", mode="before")
    @classmethod
    def _coerce_proximity(cls, value: Any) -> Proximity:
        return Proximity(value)

    @property
    def key(self) -> tuple[str, int, int]:
        """``(uuid, major, minor)`` address of the physical beacon."""
        return (self.uuid, self.major, self.minor)
