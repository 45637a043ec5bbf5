"""HID transport for PS Move style motion controllers.

Uses hidapi (the `hid` module) for enumeration and non-blocking report
reads. Only buttons and trigger are decoded from the input report;
orientation and position stay at identity since no sensor fusion is done
here.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterator, List, Optional, Sequence, Tuple

import hid

from ..errors import TransportError
from ..models import Button, ControllerSample, ReadResult
from .base import DeviceDescriptor, Transport

logger = logging.getLogger(__name__)

PSMOVE_VID = 0x054C
PSMOVE_PID = 0x03D5

INPUT_REPORT_ID = 0x01
INPUT_REPORT_SIZE = 49  # bytes
MIN_INPUT_REPORT_SIZE = 6  # report id, 4 button bytes, trigger

# Native button bits after folding the four button bytes together
NATIVE_BUTTON_BITS = {
    Button.TRIANGLE: 1 << 4,
    Button.CIRCLE: 1 << 5,
    Button.CROSS: 1 << 6,
    Button.SQUARE: 1 << 7,
    Button.SELECT: 1 << 8,
    Button.START: 1 << 11,
    Button.PS: 1 << 16,
    Button.MOVE: 1 << 19,
}


@dataclass
class HidLink:
    """Open hidapi device plus the path it was opened from."""
    device: hid.device
    path: bytes


def native_buttons(report: Sequence[int]) -> int:
    """Fold the four button bytes of an input report into one word."""
    return (
        report[2]
        | (report[1] << 8)
        | ((report[3] & 0x01) << 16)
        | ((report[4] & 0xF0) << 13)
    )


def decode_input_report(report: Sequence[int]) -> Optional[ControllerSample]:
    """Decode a raw input report.

    Args:
        report: Report bytes as returned by hid.device.read()

    Returns:
        ControllerSample, or None if this is not an input report
    """
    if len(report) < MIN_INPUT_REPORT_SIZE or report[0] != INPUT_REPORT_ID:
        return None

    word = native_buttons(report)
    buttons = {button: bool(word & bit) for button, bit in NATIVE_BUTTON_BITS.items()}

    return ControllerSample(
        buttons=buttons,
        trigger=report[5] / 255.0,
    )


class HidTransport(Transport):
    """Transport over hidapi.

    Responsibilities:
    - Enumerate HID devices matching a VID/PID
    - Open devices by path in non-blocking mode
    - Decode input reports into ControllerSample
    """

    def __init__(self,
                 vendor_id: int = PSMOVE_VID,
                 product_id: int = PSMOVE_PID,
                 report_size: int = INPUT_REPORT_SIZE):
        self._vendor_id = vendor_id
        self._product_id = product_id
        self._report_size = report_size
        self._initialized = False

    def initialize(self) -> bool:
        """Probe the hidapi backend with one enumeration."""
        try:
            hid.enumerate(self._vendor_id, self._product_id)
        except Exception as e:
            logger.error(f"Failed to initialize HIDAPI: {e}")
            return False

        self._initialized = True
        logger.debug("HIDAPI initialized")
        return True

    def shutdown(self) -> None:
        if not self._initialized:
            return
        self._initialized = False
        logger.debug("HIDAPI shut down")

    def enumerate(self) -> Iterator[DeviceDescriptor]:
        devices: List[dict] = hid.enumerate(self._vendor_id, self._product_id)
        for info in devices:
            yield DeviceDescriptor(
                path=info["path"],
                vendor_id=info.get("vendor_id"),
                product_id=info.get("product_id"),
                serial_number=info.get("serial_number") or None,
                product=info.get("product_string") or None,
                info=info,
            )

    def open(self, descriptor: DeviceDescriptor) -> HidLink:
        device = hid.device()
        try:
            device.open_path(descriptor.path)
            device.set_nonblocking(1)
        except (OSError, ValueError) as e:
            raise TransportError(f"Failed to open HID device {descriptor.path!r}: {e}") from e

        return HidLink(device=device, path=descriptor.path)

    def close(self, link: HidLink) -> None:
        try:
            link.device.close()
        except Exception as e:
            logger.debug(f"Error closing HID device {link.path!r}: {e}")

    def read(self, link: HidLink) -> Tuple[ReadResult, Optional[ControllerSample]]:
        try:
            report = link.device.read(self._report_size)
        except (OSError, ValueError) as e:
            logger.debug(f"HID read failed on {link.path!r}: {e}")
            return ReadResult.FAILURE, None

        if not report:
            return ReadResult.NO_DATA, None

        sample = decode_input_report(report)
        if sample is None:
            return ReadResult.NO_DATA, None
        return ReadResult.NEW_DATA, sample
