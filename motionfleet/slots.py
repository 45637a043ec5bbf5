"""Fixed-capacity pool of controller slots.

The slot index is the logical controller ID seen by clients. Moving a
handle between slots is just relabeling; no device is opened or closed.
"""
from __future__ import annotations

from typing import Iterator, List, Optional, Sequence

from .controller import ControllerHandle
from .transport.base import DeviceDescriptor, Transport


class SlotPool:
    """N slots, each holding at most one ControllerHandle."""

    def __init__(self, transport: Transport, capacity: int):
        if capacity <= 0:
            raise ValueError(f"capacity must be positive, got {capacity}")
        self._slots: List[Optional[ControllerHandle]] = [
            ControllerHandle(transport, logical_id=index) for index in range(capacity)
        ]

    def __len__(self) -> int:
        return len(self._slots)

    def __getitem__(self, index: int) -> Optional[ControllerHandle]:
        return self._slots[index]

    def __iter__(self) -> Iterator[Optional[ControllerHandle]]:
        return iter(self._slots)

    @property
    def capacity(self) -> int:
        return len(self._slots)

    def handles(self) -> List[ControllerHandle]:
        """Occupied slots in index order."""
        return [handle for handle in self._slots if handle is not None]

    def open_handles(self) -> List[ControllerHandle]:
        return [handle for handle in self._slots if handle is not None and handle.is_open()]

    def find_open_index(self, descriptor: DeviceDescriptor) -> Optional[int]:
        """Index of the open handle bound to descriptor's device, or None."""
        for index, handle in enumerate(self._slots):
            if handle is not None and handle.matches(descriptor):
                return index
        return None

    def find_first_closed_index(self) -> Optional[int]:
        for index, handle in enumerate(self._slots):
            if handle is not None and not handle.is_open():
                return index
        return None

    def take(self, index: int) -> ControllerHandle:
        """Vacate slot index and return the handle it held."""
        handle = self._slots[index]
        if handle is None:
            raise LookupError(f"slot {index} is empty")
        self._slots[index] = None
        return handle

    def replace(self, handles: Sequence[Optional[ControllerHandle]]) -> None:
        """Swap in a new slot layout of the same capacity."""
        if len(handles) != len(self._slots):
            raise ValueError(f"expected {len(self._slots)} slots, got {len(handles)}")
        self._slots = list(handles)
