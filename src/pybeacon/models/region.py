"""Beacon region descriptor."""

from __future__ import annotations

from typing import Any

from pydantic import Field, StrictStr, field_validator, model_validator

from pybeacon.models._base import BeaconBaseModel

#: Largest value a 16-bit iBeacon major/minor can hold.
MAX_MAJOR_MINOR = 65535


class BeaconRegion(BeaconBaseModel):
    """Identity of a beacon region to monitor, range, or advertise as.

    Major and minor form a hierarchy below the UUID, so ``minor`` may
    only be given together with ``major``.

    Parameters
    ----------
    identifier : str
        Caller-chosen region name.  Used to route provider events.
    uuid : str
        Proximity UUID shared by the region's beacons.
    major : int or None
        Optional major value (0-65535).  Numeric strings are coerced.
    minor : int or None
        Optional minor value (0-65535).  Numeric strings are coerced.
    """

    identifier: StrictStr
    uuid: StrictStr
    major: int | None = Field(default=None, ge=0, le=MAX_MAJOR_MINOR)
    minor: int | None = Field(default=None, ge=0, le=MAX_MAJOR_MINOR)

    @field_validator("identifier", "uuid")
    @classmethod
    def _require_text(cls, value: str) -> str:
        text = value.strip()
        if not text:
            raise ValueError("must be non-empty")
        return text

    @field_validator("major", "minor", mode="before")
    @classmethod
    def _reject_bool(cls, value: Any) -> Any:
        if isinstance(value, bool):
            raise ValueError("must be an integer, not a bool")
        return value

    @model_validator(mode="after")
    def _check_hierarchy(self) -> BeaconRegion:
        if self.minor is not None and self.major is None:
            raise ValueError("minor requires major")
        return self

    def to_payload(self) -> dict[str, Any]:
        """Wire representation, omitting absent major/minor."""
        return self.model_dump(exclude_none=True)
