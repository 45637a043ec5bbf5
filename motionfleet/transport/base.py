"""Abstract base class for the hardware transport layer.

The Transport interface is the only way the fleet manager talks to
controller hardware. Implementations can be HID, serial, or anything else
that can enumerate devices, open them, and hand back sensor samples.

Key principles:
- Enumeration is lazy and restartable (one pass per enumerate() call)
- Device identity across passes is the descriptor path, nothing else
- read() never blocks longer than a small bounded timeout
- Per-device failures are reported, not raised, except from open()
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Hashable, Iterator, Optional, Tuple

from ..models import ControllerSample, ReadResult


@dataclass(frozen=True)
class DeviceDescriptor:
    """One attached device as reported by a single enumeration pass.

    Attributes:
        path: Transport path/identifier, stable across enumeration passes.
        vendor_id: USB Vendor ID, or None if unknown.
        product_id: USB Product ID, or None if unknown.
        serial_number: USB serial string, if available.
        product: USB product string, if available.
        info: Raw transport record needed to open the device.
    """
    path: Hashable
    vendor_id: Optional[int] = None
    product_id: Optional[int] = None
    serial_number: Optional[str] = None
    product: Optional[str] = None
    info: Any = field(default=None, compare=False, hash=False, repr=False)


class Transport(ABC):
    """Abstract transport for motion controller hardware.

    Transports are responsible for:
    1. Bringing the hardware backend up and down
    2. Enumerating currently attached devices
    3. Opening/closing individual devices
    4. Non-blocking reads that decode raw reports into samples

    Transports should NOT contain fleet logic like slot assignment.
    They are pure device access.
    """

    @abstractmethod
    def initialize(self) -> bool:
        """Initialize the hardware backend.

        Returns:
            True if the backend is usable, False otherwise
        """
        pass

    @abstractmethod
    def shutdown(self) -> None:
        """Tear down the hardware backend.

        Should be safe to call multiple times.
        """
        pass

    @abstractmethod
    def enumerate(self) -> Iterator[DeviceDescriptor]:
        """Walk the currently attached devices once.

        Order may change between calls.

        Yields:
            DeviceDescriptor for each attached device
        """
        pass

    @abstractmethod
    def open(self, descriptor: DeviceDescriptor) -> Any:
        """Open the device described by descriptor.

        Args:
            descriptor: Descriptor from the current enumeration pass

        Returns:
            Opaque link object passed back to read() and close()

        Raises:
            TransportError: If the device cannot be opened
        """
        pass

    @abstractmethod
    def close(self, link: Any) -> None:
        """Close a link returned by open().

        Must tolerate links whose device is already gone.
        """
        pass

    @abstractmethod
    def read(self, link: Any) -> Tuple[ReadResult, Optional[ControllerSample]]:
        """Read pending data from an open link without blocking.

        Returns:
            (NEW_DATA, sample) when a fresh sample was decoded,
            (NO_DATA, None) when nothing new arrived,
            (FAILURE, None) when the link to the device is gone
        """
        pass
