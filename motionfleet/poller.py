"""Poll scheduler: reads open controllers and publishes data frames."""
from __future__ import annotations

import logging
from typing import Callable

from .controller import ControllerHandle
from .models import DataFrame, FleetEvent, FleetEventType, ReadResult
from .publisher import FramePublisher
from .slots import SlotPool

logger = logging.getLogger(__name__)


def build_data_frame(handle: ControllerHandle, sequence_num: int) -> DataFrame:
    """Assemble a data frame from a handle's latest sample."""
    sample = handle.sample
    return DataFrame(
        controller_id=handle.logical_id,
        sequence_num=sequence_num,
        connected=True,
        tracking_enabled=True,
        tracking_active=False,
        orientation=sample.orientation,
        position=sample.position,
        button_bitmask=sample.button_bitmask(),
        trigger=sample.trigger,
    )


class Poller:
    """Reads every open slot once per poll and publishes new samples.

    Owns the global frame sequence counter; it starts at 0 and advances by
    one per published frame, whichever controller produced it.
    """

    def __init__(self,
                 pool: SlotPool,
                 publisher: FramePublisher,
                 emit: Callable[[FleetEvent], None]):
        self._pool = pool
        self._publisher = publisher
        self._emit = emit
        self._sequence_num = 0

    @property
    def sequence_num(self) -> int:
        """Sequence number the next published frame will carry."""
        return self._sequence_num

    def poll(self) -> None:
        for handle in self._pool.open_handles():
            result = handle.read()

            if result == ReadResult.NEW_DATA:
                self._publish(handle)
            elif result == ReadResult.FAILURE:
                path = handle.device_path
                logger.info(f"Controller {handle.logical_id} closing due to failed read")
                handle.close()
                self._emit(FleetEvent(
                    event_type=FleetEventType.READ_FAILURE,
                    controller_id=handle.logical_id,
                    device_path=path,
                ))

    def _publish(self, handle: ControllerHandle) -> None:
        frame = build_data_frame(handle, self._sequence_num)
        self._sequence_num += 1
        try:
            self._publisher.publish(frame)
        except Exception as e:
            logger.error(f"Publisher error for frame {frame.sequence_num}: {e}")
