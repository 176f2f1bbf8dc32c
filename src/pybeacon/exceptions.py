"""Custom exception hierarchy for pybeacon."""

from __future__ import annotations


class BeaconError(Exception):
    """Base exception for all pybeacon errors."""


class BeaconConfigError(BeaconError):
    """Invalid or missing configuration."""


class BeaconValidationError(BeaconError, ValueError):
    """Malformed region descriptor or store option.

    Raised at construction time only; no store is created when this
    is raised.
    """


class BeaconProviderError(BeaconError):
    """Failure reported by (or while talking to) a beacon provider.

    Providers raise this from their intent coroutines.  The
    :class:`pybeacon.ingestion.adapter.ProviderAdapter` catches and logs it,
    so it never reaches callers of :class:`pybeacon.state.store.RegionStore`.
    """

    def __init__(
        self,
        message: str,
        *,
        action: str = "",
        code: str = "",
    ) -> None:
        self.action = action
        self.code = code
        super().__init__(message)


class BeaconProviderTimeoutError(BeaconProviderError):
    """A provider query did not receive a response in time."""
