"""Base model and enum for beacon provider data.

Every beacon model inherits from :class:`BeaconBaseModel` which
provides:

* Frozen, hashable instances with structural equality.
* A ``model_validator(mode="before")`` that strips provider sentinel
  values (``""``, ``"--"``, NaN) so the field default is used.
* Post-construction sentinel normalisation via ``_SENTINEL_RULES``.

State enums inherit from :class:`BeaconEnum`, a string enum whose
subclasses define an ``UNKNOWN`` member.  Values the provider sends
that have no mapped member resolve to ``UNKNOWN`` instead of raising
``ValueError``.
"""

from __future__ import annotations

import enum
import math
from collections.abc import Callable, Mapping
from typing import Any, ClassVar, TypeVar

from pydantic import BaseModel, ConfigDict, model_validator

# Sentinel strings providers use for "not available".
_SENTINELS = frozenset({"", "--", "NaN", "nan"})

TEnum = TypeVar("TEnum", bound="BeaconEnum")


def is_negative(value: int | float) -> bool:
    """Return ``True`` when *value* is negative (e.g. ``-1`` sentinel)."""
    return value < 0


def resolve_member(cls: type[TEnum], value: object, aliases: Mapping[str, str]) -> TEnum:
    """Look *value* up case-insensitively, honouring provider *aliases*."""
    if isinstance(value, str):
        key = value.strip().lower()
        key = aliases.get(key, key)
        for member in cls:
            if member.value == key:
                return member
    unknown: TEnum = cls.UNKNOWN  # type: ignore[attr-defined]
    return unknown


class BeaconEnum(enum.StrEnum):
    """Base for provider state enums.

    Every subclass **must** define ``UNKNOWN = "unknown"`` and may
    override ``_missing_`` to pass its own alias table to
    :func:`resolve_member`.
    """

    @classmethod
    def _missing_(cls, value: object) -> BeaconEnum:
        return resolve_member(cls, value, {})


class BeaconBaseModel(BaseModel):
    """Base for beacon value models.

    Handles:
    * provider sentinel values (``""``, ``"--"``, NaN) -> dropped so
      the field default is used instead
    * post-construction sentinel normalisation via ``_SENTINEL_RULES``
    """

    _SENTINEL_RULES: ClassVar[dict[str, Callable[..., bool]]] = {}
    """Per-field sentinel predicates.

    Subclasses override this to declare ``{"field_name": predicate}``
    pairs.  After model construction the base ``_normalise_sentinels``
    validator sets the field to ``None`` when *predicate(value)* is
    ``True``.
    """

    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
        populate_by_name=True,
    )

    @staticmethod
    def _clean_dict(values: Mapping[str, Any]) -> dict[str, Any]:
        cleaned: dict[str, Any] = {}
        for key, value in values.items():
            if value is None:
                continue
            if isinstance(value, str) and value.strip() in _SENTINELS:
                continue
            if isinstance(value, float) and math.isnan(value):
                continue
            cleaned[key] = value
        return cleaned

    @model_validator(mode="before")
    @classmethod
    def _clean_provider_values(cls, values: Any) -> Any:
        """Strip provider sentinel values before field validation."""
        if not isinstance(values, Mapping):
            return values
        return BeaconBaseModel._clean_dict(values)

    @model_validator(mode="after")
    def _normalise_sentinels(self) -> BeaconBaseModel:
        """Replace per-field sentinel values with ``None``."""
        sentinel_rules: dict[str, Callable[..., bool]] = getattr(type(self), "_SENTINEL_RULES", {})
        for field_name, predicate in sentinel_rules.items():
            val = getattr(self, field_name, None)
            if val is not None and predicate(val):
                object.__setattr__(self, field_name, None)
        return self
