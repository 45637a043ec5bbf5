"""Serial transport for motion controllers bridged over USB CDC.

Each matching serial port is one controller. Ports are opened with a zero
read timeout so reads only drain what the OS has already buffered; lines
are then parsed with the controller line protocol.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterator, List, Optional, Tuple

import serial

from ..errors import TransportError
from ..models import ControllerSample, ReadResult
from .base import DeviceDescriptor, Transport
from .finder import DescriptorMatcher, PortCriteria, list_controller_ports
from .protocol import LineParser, apply_update

logger = logging.getLogger(__name__)

CONNECTION_BAUD = 115_200
READ_CHUNK_SIZE = 4096  # bytes
MAX_LINE_LENGTH = 256  # bytes, longest valid STRPOSE line is well below


@dataclass
class SerialLink:
    """Open serial port plus its per-device decode state."""
    port: serial.Serial
    path: str
    sample: ControllerSample = field(default_factory=ControllerSample)
    pending: bytearray = field(default_factory=bytearray)
    dropped_lines: int = 0

    def feed(self, chunk: bytes) -> List[str]:
        """Append chunk and return the lines it completed, without newlines.

        An unterminated tail longer than MAX_LINE_LENGTH is noise from a
        wrong baud rate or a firmware without newlines; it is discarded.
        """
        self.pending.extend(chunk)
        *lines, tail = self.pending.split(b"\n")
        if len(tail) > MAX_LINE_LENGTH:
            self.dropped_lines += 1
            if self.dropped_lines % 100 == 1:
                logger.warning(f"Discarding {len(tail)} bytes without a newline from {self.path}")
            tail = bytearray()
        self.pending = tail
        return [line.decode('utf-8', errors='ignore') for line in lines]


class SerialTransport(Transport):
    """Transport over pyserial.

    Responsibilities:
    - Discover controller ports by VID/PID/product/serial prefix
    - Open ports non-blocking
    - Accumulate line-protocol updates into ControllerSample
    """

    def __init__(self,
                 expected_vid: Optional[int] = None,
                 expected_pid: Optional[int] = None,
                 product_substring: Optional[str] = None,
                 serial_prefix: Optional[str] = None,
                 matcher: Optional[DescriptorMatcher] = None,
                 baudrate: int = CONNECTION_BAUD,
                 chunk_size: int = READ_CHUNK_SIZE):
        """Initialize SerialTransport.

        Args:
            expected_vid: Only manage ports with this USB VID
            expected_pid: Only manage ports with this USB PID
            product_substring: Only manage ports whose product string contains this
            serial_prefix: Only manage ports whose serial number starts with this
            matcher: Custom descriptor predicate, overrides the criteria above
            baudrate: Serial baud rate
            chunk_size: Maximum bytes drained per read

        Raises:
            ValueError: If no criterion and no matcher is given
        """
        self._criteria = PortCriteria(
            vendor_id=expected_vid,
            product_id=expected_pid,
            product_substring=product_substring,
            serial_prefix=serial_prefix,
        )
        if matcher is None and self._criteria.is_empty():
            raise ValueError("SerialTransport needs a port criterion or a matcher")
        self._matcher = matcher
        self._baudrate = baudrate
        self._chunk_size = chunk_size

    def initialize(self) -> bool:
        try:
            self._list_ports()
        except Exception as e:
            logger.error(f"Failed to list serial ports: {e}")
            return False
        return True

    def shutdown(self) -> None:
        pass

    def enumerate(self) -> Iterator[DeviceDescriptor]:
        return iter(self._list_ports())

    def open(self, descriptor: DeviceDescriptor) -> SerialLink:
        try:
            port = serial.Serial(
                port=descriptor.path,
                baudrate=self._baudrate,
                timeout=0,
            )
            port.reset_input_buffer()
            port.reset_output_buffer()
        except (serial.SerialException, OSError) as e:
            raise TransportError(f"Failed to open {descriptor.path}: {e}") from e

        logger.debug(f"Opened {descriptor.path} @ {self._baudrate} baud")
        return SerialLink(port=port, path=descriptor.path)

    def close(self, link: SerialLink) -> None:
        try:
            link.port.close()
        except Exception as e:
            logger.debug(f"Error closing serial port {link.path}: {e}")
        link.pending.clear()

    def read(self, link: SerialLink) -> Tuple[ReadResult, Optional[ControllerSample]]:
        try:
            chunk = link.port.read(self._chunk_size)
        except (serial.SerialException, OSError) as e:
            logger.debug(f"Serial read failed on {link.path}: {e}")
            return ReadResult.FAILURE, None

        updated = False
        for line in link.feed(chunk):
            update = LineParser.parse_line(line)
            if update:
                link.sample = apply_update(link.sample, update)
                updated = True

        if not updated:
            return ReadResult.NO_DATA, None
        return ReadResult.NEW_DATA, link.sample

    def _list_ports(self) -> List[DeviceDescriptor]:
        return list_controller_ports(self._criteria, self._matcher)
