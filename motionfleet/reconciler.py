"""Reconciliation of the slot pool against the attached devices.

One pass walks the transport's enumeration and rewrites the slot pool so
that connected devices occupy slots in enumeration order. No handle is
created or destroyed; handles are shuffled between slots and opened or
closed as devices appear and vanish.
"""
from __future__ import annotations

import logging
from typing import Callable, Hashable, Iterable, List, Optional, Set

from .controller import ControllerHandle
from .models import FleetEvent, FleetEventType
from .slots import SlotPool
from .transport.base import DeviceDescriptor

logger = logging.getLogger(__name__)

EventSink = Callable[[FleetEvent], None]


class Reconciler:
    """Rewrites a SlotPool to match one enumeration pass.

    Layout after a pass:
    - slots 0..k-1 hold the devices seen in this pass, in enumeration order
    - the remaining occupied slots hold closed handles, in their previous
      relative order

    Devices that do not fit (no closed handle left) are skipped without
    consuming a logical ID. Devices already open are still matched after
    capacity runs out.
    """

    def __init__(self, pool: SlotPool, emit: EventSink):
        self._pool = pool
        self._emit = emit

    def run(self, descriptors: Iterable[DeviceDescriptor]) -> None:
        """Run one reconciliation pass over descriptors."""
        pool = self._pool
        destination: List[Optional[ControllerHandle]] = [None] * pool.capacity
        seen_paths: Set[Hashable] = set()
        unmanaged = 0
        new_index = 0

        # Step 1: place enumerated devices in enumeration order
        for descriptor in descriptors:
            if descriptor.path in seen_paths:
                logger.debug(f"Ignoring duplicate device path {descriptor.path!r}")
                continue
            seen_paths.add(descriptor.path)

            existing_index = pool.find_open_index(descriptor)
            if existing_index is not None:
                handle = pool.take(existing_index)
                if existing_index != new_index:
                    handle.set_logical_id(new_index)
                    logger.info(f"Controller {existing_index} moved to controller {new_index}")
                    self._emit(FleetEvent(
                        event_type=FleetEventType.ID_CHANGED,
                        controller_id=new_index,
                        previous_id=existing_index,
                        device_path=descriptor.path,
                    ))
                destination[new_index] = handle
                new_index += 1
                continue

            closed_index = pool.find_first_closed_index()
            if closed_index is None:
                unmanaged += 1
                continue

            handle = pool.take(closed_index)
            handle.set_logical_id(new_index)
            destination[new_index] = handle

            if handle.open(descriptor):
                logger.info(f"Controller {new_index} connected ({descriptor.path!r})")
                self._emit(FleetEvent(
                    event_type=FleetEventType.CONNECTED,
                    controller_id=new_index,
                    device_path=descriptor.path,
                ))
            else:
                self._emit(FleetEvent(
                    event_type=FleetEventType.OPEN_FAILED,
                    controller_id=new_index,
                    device_path=descriptor.path,
                ))
            new_index += 1

        if unmanaged:
            logger.warning(
                f"Can't connect any more new controllers, too many open controllers "
                f"({unmanaged} device(s) left unmanaged)"
            )
            self._emit(FleetEvent(
                event_type=FleetEventType.CAPACITY_EXCEEDED,
                detail=f"{unmanaged} unmanaged",
            ))

        # Step 2: whatever is left was not enumerated; close it and append
        for old_index in range(pool.capacity):
            if pool[old_index] is None:
                continue
            handle = pool.take(old_index)

            if handle.is_open():
                path = handle.device_path
                logger.warning(f"Closing controller {old_index} since it's no longer in the device list")
                handle.close()
                self._emit(FleetEvent(
                    event_type=FleetEventType.VANISHED,
                    controller_id=new_index,
                    previous_id=old_index,
                    device_path=path,
                ))

            handle.set_logical_id(new_index)
            destination[new_index] = handle
            new_index += 1

        # Step 3
        pool.replace(destination)
