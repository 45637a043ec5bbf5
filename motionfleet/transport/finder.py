"""Serial port discovery for controllers bridged over USB CDC.

Turns pyserial's port listing into DeviceDescriptors for the ports that
look like controllers. Hosts usually carry other serial devices (GPS
receivers, modems, dev boards), so discovery refuses to run without at
least one criterion or a custom matcher.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, fields
from typing import Callable, List, Optional

from serial.tools import list_ports

from .base import DeviceDescriptor

logger = logging.getLogger(__name__)

DescriptorMatcher = Callable[[DeviceDescriptor], bool]


@dataclass(frozen=True)
class PortCriteria:
    """AND-combined filter for controller ports. None fields are ignored.

    Attributes:
        vendor_id: USB Vendor ID of the controller bridge.
        product_id: USB Product ID of the controller bridge.
        product_substring: Case-insensitive substring of the USB product string.
        serial_prefix: Prefix of the USB serial number.
    """
    vendor_id: Optional[int] = None
    product_id: Optional[int] = None
    product_substring: Optional[str] = None
    serial_prefix: Optional[str] = None

    def is_empty(self) -> bool:
        return all(getattr(self, f.name) is None for f in fields(self))

    def matches(self, descriptor: DeviceDescriptor) -> bool:
        if self.vendor_id is not None and descriptor.vendor_id != self.vendor_id:
            return False
        if self.product_id is not None and descriptor.product_id != self.product_id:
            return False
        if self.product_substring is not None:
            product = descriptor.product or ""
            if self.product_substring.lower() not in product.lower():
                return False
        if self.serial_prefix is not None:
            if not (descriptor.serial_number or "").startswith(self.serial_prefix):
                return False
        return True


def port_descriptor(port) -> DeviceDescriptor:
    """Describe one pyserial ListPortInfo; the raw record rides along in info."""
    return DeviceDescriptor(
        path=port.device,
        vendor_id=port.vid,
        product_id=port.pid,
        serial_number=port.serial_number,
        product=port.product,
        info=port,
    )


def list_controller_ports(criteria: Optional[PortCriteria] = None,
                          matcher: Optional[DescriptorMatcher] = None) -> List[DeviceDescriptor]:
    """List controller ports in the order the OS reports them.

    Args:
        criteria: Built-in filter, used when no matcher is given
        matcher: Custom predicate over descriptors, overrides criteria

    Raises:
        ValueError: If neither a matcher nor a non-empty criteria is given
    """
    if matcher is None:
        if criteria is None or criteria.is_empty():
            raise ValueError("Refusing to treat every serial port as a controller; give a criterion")
        matcher = criteria.matches

    descriptors = [d for d in map(port_descriptor, list_ports.comports()) if matcher(d)]
    logger.debug(f"Found {len(descriptors)} controller port(s)")
    return descriptors
