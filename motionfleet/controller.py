"""Controller handle: open/closed state and device access for one slot."""
from __future__ import annotations

import logging
from typing import Any, Hashable, Optional

from .errors import TransportError
from .models import ControllerSample, ReadResult
from .transport.base import DeviceDescriptor, Transport

logger = logging.getLogger(__name__)


class ControllerHandle:
    """Owns the open/closed state of one physical or potential controller.

    Handles are allocated once per slot at manager construction and are
    never destroyed individually. Only their open state, device path
    binding and logical ID change over the process lifetime.

    A handle only matches a descriptor while it is open, so a closed
    handle can never be mistaken for a known device.
    """

    def __init__(self, transport: Transport, logical_id: int):
        self._transport = transport
        self._logical_id = logical_id
        self._link: Optional[Any] = None
        self._device_path: Optional[Hashable] = None
        self._sample = ControllerSample()

    def __repr__(self) -> str:
        state = "open" if self.is_open() else "closed"
        return f"ControllerHandle(id={self._logical_id}, {state}, path={self._device_path!r})"

    @property
    def logical_id(self) -> int:
        return self._logical_id

    @property
    def device_path(self) -> Optional[Hashable]:
        """Path this handle is bound to, or None."""
        return self._device_path

    @property
    def sample(self) -> ControllerSample:
        """Latest sensor sample, updated in place by read()."""
        return self._sample

    def set_logical_id(self, logical_id: int) -> None:
        self._logical_id = logical_id

    def is_open(self) -> bool:
        return self._link is not None

    def matches(self, descriptor: DeviceDescriptor) -> bool:
        """Check if this open handle is bound to the descriptor's device."""
        return self.is_open() and self._device_path == descriptor.path

    def open(self, descriptor: DeviceDescriptor) -> bool:
        """Bind to descriptor and open the device.

        The path binding is kept even if the open fails, the handle just
        stays closed.

        Returns:
            True if the device was opened, False otherwise
        """
        if self.is_open():
            self.close()

        self._device_path = descriptor.path
        self._sample = ControllerSample()

        try:
            self._link = self._transport.open(descriptor)
        except TransportError as e:
            logger.error(f"Controller {self._logical_id} failed to open {descriptor.path!r}: {e}")
            self._link = None
            return False
        except Exception as e:
            logger.error(f"Controller {self._logical_id} hit an unexpected error opening {descriptor.path!r}: {e}")
            self._link = None
            return False

        return True

    def close(self) -> None:
        """Close the device and drop the path binding. Safe to call repeatedly."""
        link = self._link
        self._link = None
        self._device_path = None

        if link is None:
            return
        try:
            self._transport.close(link)
        except Exception as e:
            logger.warning(f"Controller {self._logical_id} error while closing: {e}")

    def read(self) -> ReadResult:
        """Read from the device without blocking.

        FAILURE is returned for a closed handle and for any error the
        transport raises instead of reporting.
        """
        if self._link is None:
            return ReadResult.FAILURE

        try:
            result, sample = self._transport.read(self._link)
        except Exception as e:
            logger.error(f"Controller {self._logical_id} read raised: {e}")
            return ReadResult.FAILURE

        if result == ReadResult.NEW_DATA and sample is not None:
            self._sample = sample
        return result
