"""Command entry: read ECU values over SSM2 and stream them to the web frontend."""

from __future__ import annotations

import argparse
import json
import logging
import queue
import sys
import threading
import time
from typing import Iterable, Protocol

from serial.tools import list_ports

from ssm2dash.frontend import http_listen, websocket_listen
from ssm2dash.ssm2 import EcuParam, Ssm2

MANUFACTURER = "FTDI"
POLL_INTERVAL = 0.1
_VALUE_INDEX = 5
_TEMP_OFFSET = 40

log = logging.getLogger(__name__)


class _EcuReader(Protocol):
    def ecu_read(self, param: EcuParam) -> bytes: ...


def find_port(ports: Iterable[object]) -> str | None:
    """Return the device name of the first USB port made by the FTDI manufacturer."""
    for port in ports:
        device = getattr(port, "device", None)
        log.debug("Found port %s, %s", device, port)
        if getattr(port, "vid", None) is None:
            continue
        if (getattr(port, "manufacturer", None) or "") == MANUFACTURER:
            print(f"Found port at {device}")
            return device
    return None


def _value(packet: bytes) -> int:
    if len(packet) <= _VALUE_INDEX:
        raise ValueError(f"ECU response too short: {bytes(packet).hex(' ').upper()!r}")
    return packet[_VALUE_INDEX]


def read_values(ssm2: _EcuReader) -> dict[str, int]:
    """Read the dashboard values from the ECU."""
    intake = _value(ssm2.ecu_read(EcuParam.INTAKE_TEMP)) - _TEMP_OFFSET
    throttle = _value(ssm2.ecu_read(EcuParam.THROTTLE_ANGLE))
    air_fuel = _value(ssm2.ecu_read(EcuParam.AIR_FUEL_SENSOR_1))
    return {"ecu1": intake, "ecu2": throttle, "ecu3": air_fuel}


def _hex_list(data: bytes) -> str:
    return "[" + ", ".join(f"{byte:02X}" for byte in data) + "]"


def init_serial_port(sender: queue.Queue) -> None:
    """Find the ECU cable, then poll the ECU forever, sending JSON to ``sender``."""
    try:
        ports = list_ports.comports()
    except OSError as exc:
        print(f"Error listing ports: {exc}", file=sys.stderr)
        return

    port_name = find_port(ports)
    if port_name is None:
        print("FTDI serial port not found!")
        return

    ssm2 = Ssm2(port_name)
    ssm2.open()
    try:
        response = ssm2.ecu_init()
        print(f"Init response: {_hex_list(response)}")
        print("Reading ECU data...")
        while True:
            values = read_values(ssm2)
            sender.put(json.dumps(values, separators=(",", ":")))
            time.sleep(POLL_INTERVAL)
    finally:
        ssm2.close()


def init_frontend(receiver: queue.Queue) -> list[threading.Thread]:
    """Start the HTTP server and the WebSocket broadcaster in background threads."""
    threads = [
        threading.Thread(target=http_listen, name="http", daemon=True),
        threading.Thread(target=websocket_listen, args=(receiver,), name="websocket", daemon=True),
    ]
    for thread in threads:
        thread.start()
    return threads


def main(argv: list[str] | None = None) -> int:
    """Run the dashboard."""
    parser = argparse.ArgumentParser(prog="ssm2dash", description="Live SSM2 ECU dashboard.")
    parser.add_argument("-v", "--verbose", action="store_true", help="log protocol traffic")
    args = parser.parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING)

    channel: queue.Queue = queue.Queue()
    init_frontend(channel)
    init_serial_port(channel)
    return 0


if __name__ == "__main__":
    sys.exit(main())