"""Line protocol spoken by serial-bridged motion controllers.

Parses incoming lines into structured sample updates.
Pure functions with no side effects.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import List, Optional

from ..models import ControllerSample


class UpdateType(Enum):
    """Type of sample update from the controller firmware."""
    POSE = "pose"
    BUTTONS = "buttons"


@dataclass
class SampleUpdate:
    """A parsed update from the firmware.

    Attributes:
        update_type: Type of update
        values: List of float values from the frame
    """
    update_type: UpdateType
    values: List[float]


class LineParser:
    """Parser for the serial controller protocol.

    Handles two frame types:
    - STRPOSE <w>,<x>,<y>,<z>,<px>,<py>,<pz> - Orientation quaternion and position
    - STRBTN <bitmask>,<trigger> - Button bitmask (frame bit order) and trigger
    """

    @staticmethod
    def parse_line(line: str) -> Optional[SampleUpdate]:
        """Parse a single line from the serial stream.

        Args:
            line: Raw line from serial (with or without newline)

        Returns:
            SampleUpdate if line was parsed successfully, None otherwise

        Examples:
            >>> update = LineParser.parse_line("STRBTN 5,0.25")
            >>> update.update_type
            <UpdateType.BUTTONS: 'buttons'>
            >>> update.values
            [5.0, 0.25]
        """
        line = line.strip()

        if line.startswith("STRPOSE"):
            values = LineParser._parse_csv(line[len("STRPOSE"):])
            if len(values) == 7:
                return SampleUpdate(update_type=UpdateType.POSE, values=values)
            return None

        if line.startswith("STRBTN"):
            values = LineParser._parse_csv(line[len("STRBTN"):])
            if len(values) == 2 and values[0] >= 0 and values[0].is_integer():
                return SampleUpdate(update_type=UpdateType.BUTTONS, values=values)
            return None

        return None

    @staticmethod
    def _parse_csv(payload: str) -> List[float]:
        """Parse comma separated floats, empty list on any bad token."""
        payload = payload.strip()
        if not payload:
            return []

        result = []
        for token in payload.split(","):
            token = token.strip()
            if not token:
                continue
            try:
                result.append(float(token))
            except ValueError:
                return []

        return result


def apply_update(sample: ControllerSample, update: SampleUpdate) -> ControllerSample:
    """Return a new sample with the update applied on top of sample."""
    values = update.values
    if update.update_type == UpdateType.POSE:
        return ControllerSample(
            orientation=(values[0], values[1], values[2], values[3]),
            position=(values[4], values[5], values[6]),
            buttons=sample.buttons,
            trigger=sample.trigger,
        )

    return ControllerSample(
        orientation=sample.orientation,
        position=sample.position,
        buttons=ControllerSample.buttons_from_bitmask(int(values[0])),
        trigger=values[1],
    )
