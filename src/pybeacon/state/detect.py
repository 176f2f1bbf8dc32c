"""Change detection between successive beacon observations.

Pure functions only; the store decides what to do with the answer.
"""

from __future__ import annotations

from collections.abc import Sequence

from pybeacon.models.reading import BeaconReading
from pybeacon.models.snapshot import RegionState


def membership_changed(old: RegionState, new: RegionState) -> bool:
    """Return True iff the two membership values differ.

    ``UNKNOWN`` differs from both ``INSIDE`` and ``OUTSIDE``.
    """
    return old != new


def readings_changed(old: Sequence[BeaconReading], new: Sequence[BeaconReading]) -> bool:
    """Return True iff *new* is a different reading set than *old*.

    Readings compare by value over all six fields, so a beacon whose
    proximity alone moved from near to far is a change.  The sets are
    equal only when the lengths match and merging both sides adds no
    distinct value beyond those already counted in *old*.  Order is
    ignored.
    """
    if len(old) != len(new):
        return True
    distinct = dict.fromkeys([*old, *new])
    return len(distinct) != len(old)
