#!/usr/bin/env python3
"""Watch one beacon region through an MQTT gateway.

Connects to the gateway described by ``BEACON_MQTT_*`` environment
variables (or the flags below), creates a region store and prints every
snapshot change until interrupted.
"""

from __future__ import annotations

import argparse
import asyncio
import contextlib
import dataclasses
import logging
import signal
import sys
from pathlib import Path
from typing import Any

# Allow running from repo root without installing the package.
_repo = Path(__file__).resolve().parent.parent
_src = _repo / "src"
if _src.is_dir():
    sys.path.insert(0, str(_src))

from pybeacon import BeaconConfig, BeaconSnapshot, BeaconValidationError, ProviderAdapter, RegionStore  # noqa: E402
from pybeacon.providers.mqtt import MqttBeaconProvider  # noqa: E402

_LOG = logging.getLogger("monitor_region")


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Print membership and ranging changes for one beacon region.",
    )
    parser.add_argument("identifier", help="Region identifier.")
    parser.add_argument("uuid", help="Region proximity UUID.")
    parser.add_argument("--major", type=int, default=None, help="Optional major value.")
    parser.add_argument("--minor", type=int, default=None, help="Optional minor value (requires --major).")
    parser.add_argument("--host", default=None, help="Broker host (overrides BEACON_MQTT_HOST).")
    parser.add_argument("--port", type=int, default=None, help="Broker port (overrides BEACON_MQTT_PORT).")
    parser.add_argument("--no-monitoring", action="store_true", help="Do not start region monitoring.")
    parser.add_argument("--no-ranging", action="store_true", help="Do not start beacon ranging.")
    parser.add_argument(
        "--duration",
        type=int,
        default=0,
        help="Maximum runtime in seconds (0 = run until Ctrl+C).",
    )
    parser.add_argument("--verbose", action="store_true", help="Enable DEBUG logging.")
    return parser.parse_args()


def _print_snapshot(snapshot: BeaconSnapshot) -> None:
    print(f"[v{snapshot.version}] membership={snapshot.membership} beacons={len(snapshot.readings)}")
    for reading in snapshot.readings:
        accuracy = "?" if reading.accuracy is None else f"{reading.accuracy:.2f}m"
        print(
            f"    {reading.uuid} {reading.major}/{reading.minor} "
            f"proximity={reading.proximity} accuracy={accuracy} rssi={reading.rssi}"
        )


async def _run(args: argparse.Namespace) -> int:
    mqtt_overrides: dict[str, Any] = {}
    if args.host is not None:
        mqtt_overrides["host"] = args.host
    if args.port is not None:
        mqtt_overrides["port"] = args.port

    config = BeaconConfig.from_env(
        monitoring_enabled=not args.no_monitoring,
        ranging_enabled=not args.no_ranging,
    )
    if mqtt_overrides:
        config = dataclasses.replace(config, mqtt=dataclasses.replace(config.mqtt, **mqtt_overrides))

    provider = MqttBeaconProvider(config.mqtt)
    adapter = ProviderAdapter(provider)
    await provider.connect()

    region = {"identifier": args.identifier, "uuid": args.uuid, "major": args.major, "minor": args.minor}
    try:
        store = RegionStore.from_config(region, adapter, config)
    except BeaconValidationError as exc:
        _LOG.error("%s", exc)
        await provider.disconnect()
        return 2

    reaction = store.watch(_print_snapshot)

    stop = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        with contextlib.suppress(NotImplementedError):
            loop.add_signal_handler(sig, stop.set)

    try:
        if args.duration > 0:
            with contextlib.suppress(TimeoutError):
                await asyncio.wait_for(stop.wait(), args.duration)
        else:
            await stop.wait()
    finally:
        reaction.stop()
        store.close()
        await adapter.wait_idle()
        await provider.disconnect()
    return 0


def main() -> int:
    args = _parse_args()
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    return asyncio.run(_run(args))


if __name__ == "__main__":
    raise SystemExit(main())
