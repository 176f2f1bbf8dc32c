"""Configuration for pybeacon."""

from __future__ import annotations

import dataclasses
import os
from collections.abc import Mapping
from typing import Any

from pybeacon.exceptions import BeaconConfigError


def _env_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "y", "on"}:
        return True
    if normalized in {"0", "false", "no", "n", "off"}:
        return False
    return default


def _env_number(env: Mapping[str, str], key: str, cast: type[int] | type[float]) -> Any:
    raw = env.get(key)
    if raw is None:
        return None
    try:
        return cast(raw)
    except ValueError as exc:
        raise BeaconConfigError(f"{key} must be a number, got {raw!r}") from exc


@dataclasses.dataclass(frozen=True)
class MqttGatewayConfig:
    """Connection settings for a BLE gateway reachable over MQTT.

    Parameters
    ----------
    host : str
        Broker host name.
    port : int
        Broker port.
    topic_prefix : str
        Prefix shared by the gateway's ``<prefix>/event`` and
        ``<prefix>/command`` topics.
    client_id : str
        MQTT client id.  Empty lets paho generate one.
    username : str or None
        Broker user name.
    password : str or None
        Broker password.
    tls : bool
        Enable TLS with the system CA bundle.
    keepalive : int
        MQTT keepalive in seconds.
    request_timeout : float
        Seconds to wait for the gateway to answer a query command
        (``isAdvertisingAvailable``, ``isAdvertising``).
    """

    host: str = "localhost"
    port: int = 1883
    topic_prefix: str = "beacons/gateway"
    client_id: str = ""
    username: str | None = None
    password: str | None = None
    tls: bool = False
    keepalive: int = 60
    request_timeout: float = 10.0

    @property
    def event_topic(self) -> str:
        return f"{self.topic_prefix.rstrip('/')}/event"

    @property
    def command_topic(self) -> str:
        return f"{self.topic_prefix.rstrip('/')}/command"


@dataclasses.dataclass(frozen=True)
class BeaconConfig:
    """Store and provider configuration.

    Parameters
    ----------
    monitoring_enabled : bool
        Start region monitoring when a store is created.
    ranging_enabled : bool
        Start beacon ranging when a store is created.
    disable_provider_debug_logs : bool
        Ask the provider to silence its own debug logging on store creation.
    mqtt : MqttGatewayConfig
        Gateway settings used by :class:`pybeacon.providers.mqtt.MqttBeaconProvider`.
    """

    monitoring_enabled: bool = True
    ranging_enabled: bool = True
    disable_provider_debug_logs: bool = True
    mqtt: MqttGatewayConfig = dataclasses.field(default_factory=MqttGatewayConfig)

    @classmethod
    def from_env(cls, **overrides: Any) -> BeaconConfig:
        """Create configuration from environment variables.

        Reads ``BEACON_MONITORING_ENABLED``, ``BEACON_RANGING_ENABLED``,
        ``BEACON_DISABLE_PROVIDER_DEBUG_LOGS`` and the ``BEACON_MQTT_*``
        gateway variables. Explicit keyword arguments override environment
        values.

        Parameters
        ----------
        **overrides
            Explicit field values that take precedence over env vars.

        Returns
        -------
        BeaconConfig
            Populated configuration.

        Raises
        ------
        BeaconConfigError
            If a numeric variable cannot be parsed.
        """
        env = os.environ

        mqtt_kwargs: dict[str, Any] = {}
        _ENV_MQTT_MAP = {
            "BEACON_MQTT_HOST": "host",
            "BEACON_MQTT_TOPIC_PREFIX": "topic_prefix",
            "BEACON_MQTT_CLIENT_ID": "client_id",
            "BEACON_MQTT_USERNAME": "username",
            "BEACON_MQTT_PASSWORD": "password",
        }
        for env_key, field_name in _ENV_MQTT_MAP.items():
            val = env.get(env_key)
            if val is not None:
                mqtt_kwargs[field_name] = val

        port = _env_number(env, "BEACON_MQTT_PORT", int)
        if port is not None:
            mqtt_kwargs["port"] = port
        keepalive = _env_number(env, "BEACON_MQTT_KEEPALIVE", int)
        if keepalive is not None:
            mqtt_kwargs["keepalive"] = keepalive
        timeout = _env_number(env, "BEACON_MQTT_REQUEST_TIMEOUT", float)
        if timeout is not None:
            mqtt_kwargs["request_timeout"] = timeout
        if "BEACON_MQTT_TLS" in env:
            mqtt_kwargs["tls"] = _env_bool(env.get("BEACON_MQTT_TLS"), False)

        # Allow overriding gateway fields via a nested dict
        mqtt_overrides = overrides.pop("mqtt", None)
        if isinstance(mqtt_overrides, dict):
            mqtt_kwargs.update(mqtt_overrides)
        elif isinstance(mqtt_overrides, MqttGatewayConfig):
            mqtt_kwargs = dataclasses.asdict(mqtt_overrides)

        config_kwargs: dict[str, Any] = {"mqtt": MqttGatewayConfig(**mqtt_kwargs)}

        if "monitoring_enabled" not in overrides:
            config_kwargs["monitoring_enabled"] = _env_bool(env.get("BEACON_MONITORING_ENABLED"), True)
        if "ranging_enabled" not in overrides:
            config_kwargs["ranging_enabled"] = _env_bool(env.get("BEACON_RANGING_ENABLED"), True)
        if "disable_provider_debug_logs" not in overrides:
            config_kwargs["disable_provider_debug_logs"] = _env_bool(
                env.get("BEACON_DISABLE_PROVIDER_DEBUG_LOGS"),
                True,
            )

        config_kwargs.update(overrides)

        return cls(**config_kwargs)
