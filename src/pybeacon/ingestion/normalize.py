"""Normalization helpers.

Centralizes defensive parsing of raw provider values so the state store
only ever compares typed models.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Iterable, Mapping
from typing import Any

from pydantic import ValidationError

from pybeacon.models.reading import BeaconReading
from pybeacon.models.snapshot import RegionState

_logger = logging.getLogger(__name__)


def safe_float(value: Any) -> float | None:
    if value is None or value == "" or value == "--":
        return None
    try:
        result = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(result):
        return None
    return result


def safe_int(value: Any) -> int | None:
    """Integral numbers and numeric strings only; ``"22728.9"`` is ``None``."""
    if isinstance(value, bool):
        return None
    parsed = safe_float(value)
    if parsed is None or not parsed.is_integer():
        return None
    return int(parsed)


def safe_str(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value)
    return text if text else None


def map_region_state(raw_state: Any) -> RegionState:
    """Map a raw provider membership value to :class:`RegionState`.

    Recognises ``CLRegionStateInside``/``CLRegionStateOutside``/
    ``CLRegionStateUnknown`` and the short names.  Anything else,
    including non-strings, is ``UNKNOWN``; this never raises.
    """
    if isinstance(raw_state, RegionState):
        return raw_state
    return RegionState(raw_state) if isinstance(raw_state, str) else RegionState.UNKNOWN


def normalize_reading(raw: Any) -> BeaconReading | None:
    """Parse one raw ranged beacon record.

    Major and minor arrive as numbers or numeric strings (``"22728"``);
    both normalize to ``int``.  Returns ``None`` for records that cannot
    be parsed, including fractional or non-finite integer fields.
    """
    if isinstance(raw, BeaconReading):
        return raw
    if not isinstance(raw, Mapping):
        return None

    data = dict(raw)
    for key in ("major", "minor", "rssi"):
        if key in data:
            parsed = safe_int(data[key])
            if parsed is None:
                return None
            data[key] = parsed
    if "accuracy" in data:
        data["accuracy"] = safe_float(data["accuracy"])
    try:
        return BeaconReading.model_validate(data)
    except ValidationError:
        return None


def normalize_readings(
    raw_readings: Iterable[Any] | None,
    *,
    logger: logging.Logger | None = None,
) -> tuple[BeaconReading, ...]:
    """Normalize a ranging payload, preserving delivery order.

    Malformed records are logged and dropped rather than failing the
    whole payload.
    """
    log = logger or _logger
    if raw_readings is None:
        return ()
    readings: list[BeaconReading] = []
    for index, raw in enumerate(raw_readings):
        reading = normalize_reading(raw)
        if reading is None:
            log.warning("Dropping malformed beacon reading at index %d: %r", index, raw)
            continue
        readings.append(reading)
    return tuple(readings)


def extract_region_identifier(payload: Mapping[str, Any]) -> str | None:
    """Best-effort extraction of the region identifier a callback refers to."""
    region = payload.get("region")
    if isinstance(region, Mapping):
        return safe_str(region.get("identifier"))
    return safe_str(payload.get("identifier"))
