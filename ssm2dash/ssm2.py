"""SSM2 protocol client for reading values from a Subaru ECU over a serial line."""

from __future__ import annotations

import enum
import logging
from typing import Iterable, Protocol

log = logging.getLogger(__name__)

BAUD_RATE = 4800
READ_TIMEOUT = 0.1

HEADER_BYTE = 0x80
ECU_BYTE = 0x10
TOOL_BYTE = 0xF0

_DST_INDEX = 1
_SRC_INDEX = 2
_NUM_INDEX = 3
_MIN_PACKET_LEN = 5  # header, destination, source, length, checksum

_WRITE_COMMANDS = frozenset({0xB0, 0xB8})
_INIT_COMMAND = 0xBF
_SINGLE_READ_COMMAND = 0xA8
_BLOCK_READ_COMMAND = 0xA0

_READ_CHUNK = 64
_MAX_READS = 20


class SerialLike(Protocol):
    """The part of a serial port that the client uses."""

    def write(self, data: bytes) -> object: ...

    def read(self, size: int) -> bytes: ...

    def close(self) -> None: ...


class WriteInstructionError(ValueError):
    """Raised when a packet would carry an ECU write instruction."""


class EcuParam(enum.Enum):
    """Values that can be read from the ECU."""

    ENGINE_SPEED = "engine_speed"
    ENGINE_LOAD = "engine_load"
    INTAKE_TEMP = "intake_temp"
    THROTTLE_ANGLE = "throttle_angle"
    AIR_FUEL_SENSOR_1 = "air_fuel_sensor_1"

    def addr(self) -> tuple[int, int | None]:
        """ECU memory address of the value, and the end address for block reads."""
        return _ADDRESSES[self]

    def mask(self) -> tuple[int, int | None]:
        """Positions of the value's bytes in the response packet."""
        return _MASKS[self]


_ADDRESSES: dict[EcuParam, tuple[int, int | None]] = {
    EcuParam.ENGINE_SPEED: (0x00000E, 0x00000F),
    EcuParam.ENGINE_LOAD: (0x000007, None),
    EcuParam.INTAKE_TEMP: (0x000012, None),
    EcuParam.THROTTLE_ANGLE: (0x000015, None),
    EcuParam.AIR_FUEL_SENSOR_1: (0x000042, None),
}

_MASKS: dict[EcuParam, tuple[int, int | None]] = {
    EcuParam.ENGINE_SPEED: (4, 5),
    EcuParam.ENGINE_LOAD: (5, None),
    EcuParam.INTAKE_TEMP: (5, None),
    EcuParam.THROTTLE_ANGLE: (5, None),
    EcuParam.AIR_FUEL_SENSOR_1: (5, None),
}


def calculate_checksum(data: Iterable[int]) -> int:
    """Return the low byte of the sum of all bytes."""
    return sum(data) & 0xFF


def check_packet(packet: bytes) -> int:
    """Return the length of the ECU packet at the start of ``packet``, or 0 if invalid."""
    if len(packet) < _MIN_PACKET_LEN:
        log.debug("Invalid packet! Length %d is less than %d", len(packet), _MIN_PACKET_LEN)
        return 0

    dst, src = packet[_DST_INDEX], packet[_SRC_INDEX]
    if dst != TOOL_BYTE or src != ECU_BYTE:
        log.debug("Invalid packet! DST/SRC not matched: actual DST %02X SRC %02X", dst, src)
        return 0

    packet_len = packet[_NUM_INDEX] + _MIN_PACKET_LEN
    if packet_len > len(packet):
        log.debug(
            "Invalid packet! Expected packet length %d is greater than actual %d",
            packet_len,
            len(packet),
        )
        return 0

    actual = calculate_checksum(packet[: packet_len - 1])
    expected = packet[packet_len - 1]
    if actual != expected:
        log.debug("Invalid packet! Checksum failed: %02X, %02X", actual, expected)
        return 0

    return packet_len


def build_packet(data: bytes) -> bytes:
    """Wrap command bytes in an SSM2 header, length byte and checksum."""
    data = bytes(data)
    if not data:
        raise ValueError("packet data must not be empty")
    if len(data) > 0xFF:
        raise ValueError(f"packet data too long: {len(data)} bytes")
    if data[0] in _WRITE_COMMANDS:
        raise WriteInstructionError(
            "Attempting to send packet with write instructions, aborting instruction"
        )
    body = bytes([HEADER_BYTE, ECU_BYTE, TOOL_BYTE, len(data)]) + data
    return body + bytes([calculate_checksum(body)])


def find_packet(buffer: bytes) -> bytes:
    """Return the first valid ECU packet in ``buffer``, or empty bytes if none."""
    buffer = bytes(buffer)
    for index, byte in enumerate(buffer):
        if byte != HEADER_BYTE:
            continue
        length = check_packet(buffer[index:])
        if length:
            packet = buffer[index : index + length]
            log.debug("Valid packet found: %s", packet.hex(" ").upper())
            return packet
    return b""


class Ssm2:
    """A connection to an ECU speaking SSM2 over a serial port."""

    def __init__(self, port_name: str, port: SerialLike | None = None) -> None:
        self.port_name = port_name
        self._port = port

    @property
    def is_open(self) -> bool:
        return self._port is not None

    def open(self) -> None:
        """Open the serial port unless it is already open."""
        if self._port is not None:
            print("Serial port is already open.")
            return
        import serial

        self._port = serial.Serial(self.port_name, BAUD_RATE, timeout=READ_TIMEOUT)

    def close(self) -> None:
        """Close the serial port."""
        port = self._require_port()
        port.close()
        self._port = None

    def __enter__(self) -> "Ssm2":
        self.open()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        if self._port is not None:
            self.close()

    def ecu_init(self) -> bytes:
        """Send the ECU init request and return the response packet."""
        return self.send_read_packet(bytes([_INIT_COMMAND]))

    def ecu_read(self, param: EcuParam) -> bytes:
        """Read ``param`` from ECU memory and return the response packet."""
        start, end = param.addr()
        address = start.to_bytes(3, "big")
        if end is None:
            data = bytes([_SINGLE_READ_COMMAND, 0x00]) + address
        else:
            data = bytes([_BLOCK_READ_COMMAND, 0x00]) + address + bytes([(end - start) & 0xFF])
        return self.send_read_packet(data)

    def send_read_packet(self, data: bytes) -> bytes:
        """Send a packet with ``data`` and return the ECU's response packet."""
        self._send_packet(data)
        return self._read_packet()

    def _require_port(self) -> SerialLike:
        if self._port is None:
            raise RuntimeError("serial port is not open")
        return self._port

    def _send_packet(self, data: bytes) -> None:
        packet = build_packet(data)
        port = self._require_port()
        log.debug("Sending packet: %s", packet.hex(" ").upper())
        port.write(packet)

    def _read_packet(self) -> bytes:
        port = self._require_port()
        received = bytearray()
        for _ in range(_MAX_READS):
            try:
                chunk = port.read(_READ_CHUNK)
            except OSError:
                chunk = b""
            if not chunk:
                break
            log.debug("Received %d bytes: %s", len(chunk), bytes(chunk).hex(" ").upper())
            received.extend(chunk)
        return find_packet(bytes(received))