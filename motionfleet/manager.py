"""Controller manager facade.

Owns the configuration, the slot pool and the two update timers, and
exposes the startup/update/shutdown lifecycle to the host loop.
"""
from __future__ import annotations

import logging
import time
from enum import Enum
from pathlib import Path
from typing import Callable, List, Optional, Union

from .config import FleetConfig
from .controller import ControllerHandle
from .errors import ConfigError, ManagerStateError
from .models import FleetEvent
from .poller import Poller
from .publisher import FramePublisher
from .reconciler import Reconciler
from .slots import SlotPool
from .transport.base import Transport

logger = logging.getLogger(__name__)

MAX_CONTROLLERS = 5


def monotonic_ms() -> int:
    return time.monotonic_ns() // 1_000_000


class ManagerState(Enum):
    UNINITIALIZED = "uninitialized"
    RUNNING = "running"
    SHUT_DOWN = "shut_down"


class ControllerManager:
    """Keeps a fixed pool of controller slots in sync with attached devices.

    This class acts as a facade, managing:
    1. The slot pool (one ControllerHandle per slot, allocated up front)
    2. Reconciliation of slots against the transport's enumeration
    3. Polling open controllers and publishing data frames

    It is single-threaded: every call must come from the same host loop.
    Each update() runs at most one poll and at most one reconciliation;
    missed intervals are dropped, not caught up.
    """

    def __init__(self,
                 transport: Transport,
                 publisher: FramePublisher,
                 config_path: Optional[Union[str, Path]] = None,
                 max_controllers: int = MAX_CONTROLLERS,
                 clock: Callable[[], int] = monotonic_ms):
        """Initialize ControllerManager.

        Args:
            transport: Hardware transport for enumeration and device access
            publisher: Sink for data frames
            config_path: JSON config file, or None to keep config in memory
            max_controllers: Number of slots (maximum fleet size)
            clock: Returns the current time in milliseconds
        """
        self._transport = transport
        self._publisher = publisher
        self._config_path = Path(config_path) if config_path is not None else None
        self._clock = clock

        self._config = FleetConfig()
        self._state = ManagerState.UNINITIALIZED
        self._transport_ready = False

        self._event_subscribers: List[Callable[[FleetEvent], None]] = []

        self._pool = SlotPool(transport, max_controllers)
        self._reconciler = Reconciler(self._pool, self._emit)
        self._poller = Poller(self._pool, publisher, self._emit)

        self._last_poll_time: Optional[int] = None
        self._last_reconnect_time: Optional[int] = None

    @property
    def state(self) -> ManagerState:
        return self._state

    @property
    def config(self) -> FleetConfig:
        return self._config

    @property
    def sequence_num(self) -> int:
        """Sequence number the next published frame will carry."""
        return self._poller.sequence_num

    @property
    def max_controllers(self) -> int:
        return self._pool.capacity

    def controllers(self) -> List[ControllerHandle]:
        """Occupied slots in logical ID order."""
        return self._pool.handles()

    def get_controller(self, controller_id: int) -> Optional[ControllerHandle]:
        if 0 <= controller_id < self._pool.capacity:
            return self._pool[controller_id]
        return None

    # --- Lifecycle ---

    def startup(self) -> bool:
        """Load configuration and bring up the transport.

        Returns:
            True if the manager is now running, False if the transport failed
        """
        if self._state == ManagerState.RUNNING:
            logger.warning("Already running")
            return True
        if self._state == ManagerState.SHUT_DOWN:
            raise ManagerStateError("Cannot restart a manager after shutdown", self._state)

        if self._config_path is not None:
            self._config = FleetConfig.load(self._config_path)

        if not self._transport.initialize():
            logger.error("Failed to initialize the controller transport")
            return False

        self._transport_ready = True
        self._state = ManagerState.RUNNING
        logger.info(
            f"Controller manager started ({self._pool.capacity} slots, "
            f"poll {self._config.controller_poll_interval}ms, "
            f"reconnect {self._config.controller_reconnect_interval}ms)"
        )
        return True

    def update(self) -> None:
        """Run whichever of the poll and reconciliation passes are due."""
        if self._state != ManagerState.RUNNING:
            raise ManagerStateError(f"update() called while {self._state.value}", self._state)

        now = self._clock()

        if self._is_due(self._last_poll_time, now, self._config.controller_poll_interval):
            self._poller.poll()
            self._last_poll_time = now

        if self._is_due(self._last_reconnect_time, now, self._config.controller_reconnect_interval):
            self._reconcile()
            self._last_reconnect_time = now

    def shutdown(self) -> None:
        """Save config, close every open controller and tear down the transport.

        Safe to call more than once and from any state.

        Raises:
            ConfigError: If the config could not be saved; controllers and
                transport are still shut down first
        """
        if self._state == ManagerState.SHUT_DOWN:
            return

        save_error: Optional[ConfigError] = None
        if self._config_path is not None:
            try:
                self._config.save(self._config_path)
            except ConfigError as e:
                logger.error(str(e))
                save_error = e

        for handle in self._pool.open_handles():
            handle.close()

        if self._transport_ready:
            self._transport.shutdown()
            self._transport_ready = False

        self._state = ManagerState.SHUT_DOWN
        logger.info("Controller manager shut down")

        if save_error is not None:
            raise save_error

    def _reconcile(self) -> None:
        # Enumerate fully before touching the pool so a failing enumeration
        # leaves the slots as they were.
        try:
            descriptors = list(self._transport.enumerate())
        except Exception as e:
            logger.error(f"Device enumeration failed: {e}")
            return

        self._reconciler.run(descriptors)

    # --- Device actions ---

    def set_controller_rumble(self, controller_id: int, rumble_amount: int) -> bool:
        """Not supported by any transport yet; always returns False."""
        logger.debug(f"Rumble not supported (controller {controller_id}, amount {rumble_amount})")
        return False

    def reset_pose(self, controller_id: int) -> bool:
        """Not supported by any transport yet; always returns False."""
        logger.debug(f"Pose reset not supported (controller {controller_id})")
        return False

    # --- Events ---

    def subscribe_events(self, callback: Callable[[FleetEvent], None]) -> Callable[[], None]:
        """Subscribe to fleet events (connects, ID changes, failures...).

        Callbacks run synchronously inside update() and should be quick.

        Args:
            callback: Function that receives each FleetEvent

        Returns:
            Unsubscribe function to remove this callback
        """
        self._event_subscribers.append(callback)

        def unsubscribe():
            if callback in self._event_subscribers:
                self._event_subscribers.remove(callback)

        return unsubscribe

    def _emit(self, event: FleetEvent) -> None:
        for callback in list(self._event_subscribers):
            try:
                callback(event)
            except Exception as e:
                logger.error(f"Error in event callback: {e}")

    @staticmethod
    def _is_due(last: Optional[int], now: int, interval: int) -> bool:
        return last is None or now - last >= interval
