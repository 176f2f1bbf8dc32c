from __future__ import annotations

import pytest

from pybeacon.config import BeaconConfig, MqttGatewayConfig
from pybeacon.exceptions import BeaconConfigError


def test_defaults() -> None:
    config = BeaconConfig()
    assert config.monitoring_enabled
    assert config.ranging_enabled
    assert config.mqtt == MqttGatewayConfig()


def test_from_env_reads_flags_and_gateway(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("BEACON_MONITORING_ENABLED", "off")
    monkeypatch.setenv("BEACON_RANGING_ENABLED", "yes")
    monkeypatch.setenv("BEACON_MQTT_HOST", "broker.local")
    monkeypatch.setenv("BEACON_MQTT_PORT", "8883")
    monkeypatch.setenv("BEACON_MQTT_TLS", "1")
    monkeypatch.setenv("BEACON_MQTT_REQUEST_TIMEOUT", "2.5")

    config = BeaconConfig.from_env()

    assert config.monitoring_enabled is False
    assert config.ranging_enabled is True
    assert config.mqtt.host == "broker.local"
    assert config.mqtt.port == 8883
    assert config.mqtt.tls is True
    assert config.mqtt.request_timeout == 2.5


def test_overrides_take_precedence(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("BEACON_RANGING_ENABLED", "false")
    monkeypatch.setenv("BEACON_MQTT_HOST", "broker.local")

    config = BeaconConfig.from_env(ranging_enabled=True, mqtt={"port": 1884})

    assert config.ranging_enabled is True
    assert config.mqtt.host == "broker.local"
    assert config.mqtt.port == 1884


def test_bad_number_raises_config_error(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("BEACON_MQTT_PORT", "eighty")

    with pytest.raises(BeaconConfigError, match="BEACON_MQTT_PORT"):
        BeaconConfig.from_env()
