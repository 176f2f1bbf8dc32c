"""MQTT gateway provider.

Drives region stores from a BLE gateway (an ESP32 or Raspberry Pi scanner,
for instance) that publishes CoreLocation-style callbacks over MQTT and
accepts commands.

Wire format (JSON objects, UTF-8):

``<prefix>/event`` (gateway -> us)::

    {"event": "didDetermineStateForRegion", "region": {...}, "state": "CLRegionStateInside"}
    {"event": "didRangeBeaconsInRegion", "region": {...}, "beacons": [...]}
    {"event": "response", "requestId": "...", "result": true}
    {"event": "response", "requestId": "...", "error": "bluetooth off"}

``<prefix>/command`` (us -> gateway)::

    {"command": "startMonitoringForRegion", "requestId": "...", "region": {...}}
"""

from __future__ import annotations

import asyncio
import json
import logging
import secrets
from collections.abc import Callable
from typing import Any, cast

import paho.mqtt.client as mqtt

from pybeacon.config import MqttGatewayConfig
from pybeacon.exceptions import BeaconProviderError, BeaconProviderTimeoutError
from pybeacon.models.region import BeaconRegion
from pybeacon.providers.base import ProviderDelegate

_logger = logging.getLogger(__name__)

#: Gateway event name -> delegate method name.
_DELEGATE_METHODS: dict[str, str] = {
    "didDetermineStateForRegion": "did_determine_state_for_region",
    "didStartMonitoringForRegion": "did_start_monitoring_for_region",
    "monitoringDidFailForRegionWithError": "monitoring_did_fail_for_region",
    "didRangeBeaconsInRegion": "did_range_beacons_in_region",
    "peripheralManagerDidStartAdvertising": "peripheral_manager_did_start_advertising",
    "peripheralManagerDidUpdateState": "peripheral_manager_did_update_state",
}


def decode_gateway_payload(payload: bytes) -> dict[str, Any]:
    """Parse an inbound gateway message into a JSON object."""
    try:
        parsed = json.loads(payload.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise BeaconProviderError(f"Gateway payload is not valid JSON: {exc}") from exc
    if not isinstance(parsed, dict):
        raise BeaconProviderError("Gateway payload is not a JSON object")
    return parsed


def build_command(command: str, request_id: str, region: BeaconRegion | None = None, **extra: Any) -> dict[str, Any]:
    """Build an outbound gateway command message."""
    message: dict[str, Any] = {"command": command, "requestId": request_id}
    if region is not None:
        message["region"] = region.to_payload()
    for key, value in extra.items():
        if value is not None:
            message[key] = value
    return message


class MqttBeaconProvider:
    """Threaded paho-mqtt provider that hands gateway events to an asyncio loop.

    Usage::

        provider = MqttBeaconProvider(config.mqtt)
        adapter = ProviderAdapter(provider)
        await provider.connect()
    """

    def __init__(
        self,
        config: MqttGatewayConfig,
        *,
        logger: logging.Logger | None = None,
    ) -> None:
        self._config = config
        self._logger = logger or _logger
        self._delegate: ProviderDelegate | None = None
        self._loop: asyncio.AbstractEventLoop | None = None
        self._client: mqtt.Client | None = None
        self._running = False
        self._pending: dict[str, asyncio.Future[Any]] = {}

    @property
    def is_running(self) -> bool:
        """Whether the MQTT network loop is running."""
        return self._running

    def set_delegate(self, delegate: ProviderDelegate) -> None:
        self._delegate = delegate

    # ------------------------------------------------------------------
    # Connection lifecycle
    # ------------------------------------------------------------------

    async def connect(self) -> None:
        """Connect to the broker and subscribe to the gateway event topic."""
        self._loop = asyncio.get_running_loop()
        await self._loop.run_in_executor(None, self._start_client)

    async def disconnect(self) -> None:
        loop = self._loop or asyncio.get_running_loop()
        await loop.run_in_executor(None, self._stop_client)
        for future in self._pending.values():
            if not future.done():
                future.set_exception(BeaconProviderError("Gateway connection closed"))
        self._pending.clear()

    def _start_client(self) -> None:
        self._stop_client()
        config = self._config
        self._logger.debug(
            "MQTT gateway connect requested host=%s port=%s topic=%s",
            config.host,
            config.port,
            config.event_topic,
        )

        client = mqtt.Client(
            callback_api_version=cast(Any, mqtt).CallbackAPIVersion.VERSION2,
            client_id=config.client_id,
        )
        client.enable_logger(self._logger)
        if config.username is not None:
            client.username_pw_set(config.username, config.password)
        if config.tls:
            client.tls_set()

        def on_connect(
            c: mqtt.Client,
            _userdata: Any,
            _flags: Any,
            reason_code: Any,
            _properties: Any,
        ) -> None:
            if reason_code.value != 0:
                self._logger.warning("MQTT gateway connect failed: %s", reason_code)
                return
            self._logger.debug("MQTT gateway connected reason=%s", reason_code)
            c.subscribe(config.event_topic, qos=1)

        def on_message(_c: mqtt.Client, _userdata: Any, msg: mqtt.MQTTMessage) -> None:
            try:
                message = decode_gateway_payload(msg.payload)
            except BeaconProviderError:
                self._logger.warning("Dropping undecodable gateway message topic=%s", msg.topic, exc_info=True)
                return
            loop = self._loop
            if loop is None:
                return
            loop.call_soon_threadsafe(self._dispatch, message)

        def on_disconnect(
            _client: mqtt.Client,
            _userdata: Any,
            _disconnect_flags: Any,
            reason_code: Any,
            _properties: Any,
        ) -> None:
            if self._running:
                self._logger.debug("MQTT gateway disconnected: %s", reason_code)

        client.on_connect = on_connect
        client.on_message = on_message
        client.on_disconnect = on_disconnect

        client.connect(config.host, config.port, keepalive=config.keepalive)
        client.loop_start()

        self._client = client
        self._running = True
        self._logger.debug("MQTT gateway network loop started")

    def _stop_client(self) -> None:
        client = self._client
        self._client = None
        was_running = self._running
        self._running = False

        if client is None:
            return
        try:
            if was_running:
                client.disconnect()
        finally:
            client.loop_stop()
            self._logger.debug("MQTT gateway network loop stopped")

    # ------------------------------------------------------------------
    # Inbound
    # ------------------------------------------------------------------

    def _dispatch(self, message: dict[str, Any]) -> None:
        """Route one decoded gateway message.  Runs on the asyncio loop."""
        event = str(message.get("event") or "")
        if event == "response":
            self._resolve(message)
            return

        method_name = _DELEGATE_METHODS.get(event)
        if method_name is None:
            self._logger.debug("Ignoring unknown gateway event=%s", event)
            return
        delegate = self._delegate
        if delegate is None:
            self._logger.debug("No delegate set; dropping gateway event=%s", event)
            return
        callback: Callable[[dict[str, Any]], None] = getattr(delegate, method_name)
        callback(message)

    def _resolve(self, message: dict[str, Any]) -> None:
        request_id = str(message.get("requestId") or "")
        future = self._pending.pop(request_id, None)
        if future is None or future.done():
            return
        error = message.get("error")
        if error:
            future.set_exception(BeaconProviderError(f"Gateway rejected request: {error}", code=str(error)))
            return
        future.set_result(message.get("result"))

    # ------------------------------------------------------------------
    # Outbound
    # ------------------------------------------------------------------

    def _publish(self, message: dict[str, Any]) -> None:
        client = self._client
        if client is None or not self._running:
            raise BeaconProviderError("Gateway is not connected", action=str(message.get("command", "")))
        info = client.publish(self._config.command_topic, json.dumps(message, separators=(",", ":")), qos=1)
        if info.rc != mqtt.MQTT_ERR_SUCCESS:
            raise BeaconProviderError(
                f"Publishing {message.get('command')} failed rc={info.rc}",
                action=str(message.get("command", "")),
                code=str(info.rc),
            )

    async def _send(self, command: str, region: BeaconRegion | None = None, **extra: Any) -> None:
        self._publish(build_command(command, secrets.token_hex(8), region, **extra))

    async def _query(self, command: str) -> Any:
        loop = asyncio.get_running_loop()
        request_id = secrets.token_hex(8)
        future: asyncio.Future[Any] = loop.create_future()
        self._pending[request_id] = future
        try:
            self._publish(build_command(command, request_id))
            return await asyncio.wait_for(future, self._config.request_timeout)
        except TimeoutError as exc:
            raise BeaconProviderTimeoutError(
                f"Gateway did not answer {command} within {self._config.request_timeout}s",
                action=command,
            ) from exc
        finally:
            self._pending.pop(request_id, None)

    async def start_monitoring(self, region: BeaconRegion) -> None:
        await self._send("startMonitoringForRegion", region)

    async def stop_monitoring(self, region: BeaconRegion) -> None:
        await self._send("stopMonitoringForRegion", region)

    async def start_ranging(self, region: BeaconRegion) -> None:
        await self._send("startRangingBeaconsInRegion", region)

    async def stop_ranging(self, region: BeaconRegion) -> None:
        await self._send("stopRangingBeaconsInRegion", region)

    async def is_advertising_available(self) -> bool:
        return bool(await self._query("isAdvertisingAvailable"))

    async def is_advertising(self) -> bool:
        return bool(await self._query("isAdvertising"))

    async def start_advertising(self, region: BeaconRegion, measured_power: int | None = None) -> None:
        await self._send("startAdvertising", region, measuredPower=measured_power)

    async def stop_advertising(self) -> None:
        await self._send("stopAdvertising")

    async def request_always_authorization(self) -> None:
        # Gateways have no permission model.
        self._logger.debug("requestAlwaysAuthorization is a no-op for MQTT gateways")

    async def request_when_in_use_authorization(self) -> None:
        self._logger.debug("requestWhenInUseAuthorization is a no-op for MQTT gateways")

    async def disable_debug_logs(self) -> None:
        await self._send("disableDebugLogs")
