"""Motion controller fleet manager - stable slot IDs for hot-pluggable controllers."""

from .config import FleetConfig
from .controller import ControllerHandle
from .errors import ConfigError, FleetError, ManagerStateError, TransportError
from .manager import ControllerManager, ManagerState
from .models import (
    Button,
    ControllerSample,
    DataFrame,
    FleetEvent,
    FleetEventType,
    ReadResult,
)
from .publisher import CallbackPublisher, FramePublisher, UdpFramePublisher
from .transport import DeviceDescriptor, Transport

__all__ = [
    "FleetConfig",
    "ControllerHandle",
    "ConfigError",
    "FleetError",
    "ManagerStateError",
    "TransportError",
    "ControllerManager",
    "ManagerState",
    "Button",
    "ControllerSample",
    "DataFrame",
    "FleetEvent",
    "FleetEventType",
    "ReadResult",
    "CallbackPublisher",
    "FramePublisher",
    "UdpFramePublisher",
    "DeviceDescriptor",
    "Transport",
]
