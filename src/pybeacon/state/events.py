"""Normalized provider events.

The provider adapter converts every raw delegate callback into one of
these events.  Only the state store and advertising callbacks consume them.
"""

from __future__ import annotations

from datetime import UTC, datetime
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from pybeacon.models.reading import BeaconReading
from pybeacon.models.snapshot import RegionState


class ProviderEventKind(StrEnum):
    MEMBERSHIP = "membership"
    RANGING = "ranging"
    MONITORING_STARTED = "monitoring_started"
    MONITORING_FAILED = "monitoring_failed"
    ADVERTISING_STARTED = "advertising_started"
    ADVERTISING_STATE_CHANGED = "advertising_state_changed"


#: Event kinds that concern the device as a transmitter, not one region.
ADVERTISING_KINDS = frozenset(
    {
        ProviderEventKind.ADVERTISING_STARTED,
        ProviderEventKind.ADVERTISING_STATE_CHANGED,
    }
)


class ProviderEvent(BaseModel):
    """A normalized provider callback."""

    model_config = ConfigDict(frozen=True)

    kind: ProviderEventKind
    region_identifier: str | None = Field(
        default=None,
        description="Identifier of the region the callback refers to, if the provider said.",
    )
    observed_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    state: RegionState | None = Field(default=None, description="Membership for MEMBERSHIP events")
    readings: tuple[BeaconReading, ...] = Field(default=(), description="Readings for RANGING events")
    raw: dict[str, Any] = Field(default_factory=dict, description="Original payload (as received)")

    @field_validator("region_identifier")
    @classmethod
    def _normalize_identifier(cls, value: str | None) -> str | None:
        if value is None:
            return None
        identifier = value.strip()
        return identifier or None

    @field_validator("observed_at")
    @classmethod
    def _ensure_tz_aware(cls, value: datetime) -> datetime:
        if value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value
