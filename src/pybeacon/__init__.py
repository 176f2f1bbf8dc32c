"""pybeacon - Reactive state store for proximity beacon regions."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("pybeacon")
except PackageNotFoundError:
    __version__ = "0+local"
from pybeacon.config import BeaconConfig, MqttGatewayConfig
from pybeacon.exceptions import (
    BeaconConfigError,
    BeaconError,
    BeaconProviderError,
    BeaconProviderTimeoutError,
    BeaconValidationError,
)
from pybeacon.ingestion.adapter import ProviderAdapter
from pybeacon.models import (
    BeaconReading,
    BeaconRegion,
    BeaconSnapshot,
    Proximity,
    RegionState,
)
from pybeacon.state.observers import Observer, ObserverRegistry, Reaction, Subscription
from pybeacon.state.store import RegionStore

__all__ = [
    "__version__",
    "BeaconConfig",
    "BeaconConfigError",
    "BeaconError",
    "BeaconProviderError",
    "BeaconProviderTimeoutError",
    "BeaconReading",
    "BeaconRegion",
    "BeaconSnapshot",
    "BeaconValidationError",
    "MqttGatewayConfig",
    "Observer",
    "ObserverRegistry",
    "ProviderAdapter",
    "Proximity",
    "Reaction",
    "RegionState",
    "RegionStore",
    "Subscription",
]
