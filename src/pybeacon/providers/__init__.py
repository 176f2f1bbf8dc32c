"""Beacon providers.

:mod:`pybeacon.providers.base` defines the interface; concrete providers
live beside it.
"""

from pybeacon.providers.base import BeaconProvider, ProviderDelegate

__all__ = ["BeaconProvider", "ProviderDelegate"]
