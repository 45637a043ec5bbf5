"""Frame publishers: sinks that hand data frames on to consumers.

Publishing is fire-and-forget. A publisher must not block the fleet
manager meaningfully, and a failed delivery to any one consumer is never
reported back to the caller.
"""
from __future__ import annotations

import json
import logging
import socket
from abc import ABC, abstractmethod
from typing import Callable, Iterable, List, Optional, Tuple

from .models import DataFrame

logger = logging.getLogger(__name__)

DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 9512

Address = Tuple[str, int]


class FramePublisher(ABC):
    """Abstract sink for data frames."""

    @abstractmethod
    def publish(self, frame: DataFrame) -> None:
        """Hand one frame to downstream consumers.

        Args:
            frame: Completed data frame; the publisher takes ownership
        """
        pass

    def close(self) -> None:
        """Release publisher resources. Safe to call multiple times."""
        pass


class CallbackPublisher(FramePublisher):
    """In-process fan-out of frames to subscribed callbacks."""

    def __init__(self):
        self._subscribers: List[Callable[[DataFrame], None]] = []

    def subscribe(self, callback: Callable[[DataFrame], None]) -> Callable[[], None]:
        """Subscribe to published frames.

        Args:
            callback: Function that receives each DataFrame

        Returns:
            Unsubscribe function to remove this callback

        Example:
            >>> publisher = CallbackPublisher()
            >>> unsubscribe = publisher.subscribe(lambda f: print(f.sequence_num))
            >>> # Later...
            >>> unsubscribe()
        """
        self._subscribers.append(callback)

        def unsubscribe():
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    def publish(self, frame: DataFrame) -> None:
        for callback in list(self._subscribers):
            try:
                callback(frame)
            except Exception as e:
                logger.error(f"Subscriber error: {e}")


class UdpFramePublisher(FramePublisher):
    """Sends each frame as one JSON datagram to every target address."""

    def __init__(self, targets: Optional[Iterable[Address]] = None):
        """Initialize UdpFramePublisher.

        Args:
            targets: (host, port) pairs to send to, default 127.0.0.1:9512
        """
        self._targets: List[Address] = list(targets) if targets else [(DEFAULT_HOST, DEFAULT_PORT)]
        self._sock: Optional[socket.socket] = None

    @property
    def targets(self) -> List[Address]:
        return list(self._targets)

    def publish(self, frame: DataFrame) -> None:
        if self._sock is None:
            self._sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
            self._sock.setblocking(False)

        payload = json.dumps(frame.to_dict(), separators=(",", ":")).encode("utf-8")
        for target in self._targets:
            try:
                self._sock.sendto(payload, target)
            except OSError as e:
                logger.debug(f"UDP send to {target[0]}:{target[1]} failed: {e}")

    def close(self) -> None:
        if self._sock is not None:
            try:
                self._sock.close()
            except OSError:
                pass
            self._sock = None
