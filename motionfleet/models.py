"""Immutable data models for controller samples, data frames and fleet events.

All models are frozen dataclasses so they can be handed to publishers and
event subscribers without copying. These models are the contract between
the transport layer, the fleet manager and downstream consumers.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, IntEnum
from typing import Any, Dict, Hashable, Mapping, Optional, Tuple

Quaternion = Tuple[float, float, float, float]  # w, x, y, z
Vector3 = Tuple[float, float, float]

IDENTITY_ORIENTATION: Quaternion = (1.0, 0.0, 0.0, 0.0)
ORIGIN: Vector3 = (0.0, 0.0, 0.0)


class Button(IntEnum):
    """Bit index of each named button in a data frame's button bitmask."""
    TRIANGLE = 0
    CIRCLE = 1
    CROSS = 2
    SQUARE = 3
    SELECT = 4
    START = 5
    PS = 6
    MOVE = 7


class ReadResult(Enum):
    """Outcome of one non-blocking read on an open controller."""
    NO_DATA = "no_data"
    NEW_DATA = "new_data"
    FAILURE = "failure"


@dataclass(frozen=True)
class ControllerSample:
    """Latest sensor sample of one controller.

    Attributes:
        orientation: Quaternion (w, x, y, z)
        position: Position vector (x, y, z)
        buttons: Mapping of button to pressed state
        trigger: Trigger value, normalized 0.0 to 1.0
    """
    orientation: Quaternion = IDENTITY_ORIENTATION
    position: Vector3 = ORIGIN
    buttons: Mapping[Button, bool] = field(default_factory=dict)
    trigger: float = 0.0

    def button_bitmask(self) -> int:
        """Fold the pressed buttons into a bitmask (one bit per Button)."""
        bitmask = 0
        for button, pressed in self.buttons.items():
            if pressed:
                bitmask |= 1 << int(button)
        return bitmask

    @classmethod
    def buttons_from_bitmask(cls, bitmask: int) -> Dict[Button, bool]:
        return {button: bool(bitmask & (1 << int(button))) for button in Button}


@dataclass(frozen=True)
class DataFrame:
    """One published sensor/button snapshot for one logical controller.

    Attributes:
        controller_id: Logical ID (slot index) of the controller
        sequence_num: Global sequence number, shared across all controllers
        connected: Whether the controller is connected
        tracking_enabled: Whether tracking is enabled for the controller
        tracking_active: Whether the controller is currently being tracked
        orientation: Quaternion (w, x, y, z)
        position: Position vector (x, y, z)
        button_bitmask: One bit per Button, set while the button is down
        trigger: Trigger value
    """
    controller_id: int
    sequence_num: int
    connected: bool
    tracking_enabled: bool
    tracking_active: bool
    orientation: Quaternion
    position: Vector3
    button_bitmask: int
    trigger: float

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a JSON-serializable dict."""
        w, x, y, z = self.orientation
        px, py, pz = self.position
        return {
            "controller_id": self.controller_id,
            "sequence_num": self.sequence_num,
            "connected": self.connected,
            "tracking_enabled": self.tracking_enabled,
            "tracking_active": self.tracking_active,
            "orientation": {"w": w, "x": x, "y": y, "z": z},
            "position": {"x": px, "y": py, "z": pz},
            "button_bitmask": self.button_bitmask,
            "trigger": self.trigger,
        }


class FleetEventType(Enum):
    """Kinds of events emitted while managing the controller fleet."""
    CONNECTED = "connected"
    OPEN_FAILED = "open_failed"
    ID_CHANGED = "id_changed"
    VANISHED = "vanished"
    READ_FAILURE = "read_failure"
    CAPACITY_EXCEEDED = "capacity_exceeded"


@dataclass(frozen=True)
class FleetEvent:
    """Something that happened to the fleet during update().

    Attributes:
        event_type: Kind of event
        controller_id: Logical ID the event refers to (after the change)
        previous_id: Logical ID before the change (ID_CHANGED only)
        device_path: Transport path of the device, if known
        detail: Free-form extra information (e.g. unmanaged device count)
    """
    event_type: FleetEventType
    controller_id: Optional[int] = None
    previous_id: Optional[int] = None
    device_path: Optional[Hashable] = None
    detail: Optional[str] = None
