"""Unit tests for immutable data models."""

import json
import unittest
from dataclasses import FrozenInstanceError

from motionfleet.models import (
    Button,
    ControllerSample,
    DataFrame,
    FleetEvent,
    FleetEventType,
    IDENTITY_ORIENTATION,
    ORIGIN,
)


class TestControllerSample(unittest.TestCase):
    """Tests for ControllerSample."""

    def test_defaults(self):
        sample = ControllerSample()
        self.assertEqual(sample.orientation, IDENTITY_ORIENTATION)
        self.assertEqual(sample.position, ORIGIN)
        self.assertEqual(sample.trigger, 0.0)
        self.assertEqual(sample.button_bitmask(), 0)

    def test_immutability(self):
        sample = ControllerSample()
        with self.assertRaises(FrozenInstanceError):
            sample.trigger = 1.0

    def test_button_bitmask(self):
        sample = ControllerSample(buttons={
            Button.TRIANGLE: True,
            Button.CIRCLE: False,
            Button.START: True,
            Button.MOVE: True,
        })
        self.assertEqual(sample.button_bitmask(), 0b10100001)

    def test_buttons_from_bitmask(self):
        buttons = ControllerSample.buttons_from_bitmask(0b01000100)
        self.assertTrue(buttons[Button.CROSS])
        self.assertTrue(buttons[Button.PS])
        self.assertEqual(sum(buttons.values()), 2)
        self.assertEqual(len(buttons), len(Button))


class TestDataFrame(unittest.TestCase):
    """Tests for DataFrame."""

    def setUp(self):
        self.frame = DataFrame(
            controller_id=2,
            sequence_num=17,
            connected=True,
            tracking_enabled=True,
            tracking_active=False,
            orientation=(1.0, 0.0, 0.0, 0.0),
            position=(0.1, 0.2, 0.3),
            button_bitmask=5,
            trigger=0.5,
        )

    def test_to_dict(self):
        data = self.frame.to_dict()
        self.assertEqual(data["controller_id"], 2)
        self.assertEqual(data["sequence_num"], 17)
        self.assertEqual(data["orientation"], {"w": 1.0, "x": 0.0, "y": 0.0, "z": 0.0})
        self.assertEqual(data["position"], {"x": 0.1, "y": 0.2, "z": 0.3})
        self.assertEqual(data["button_bitmask"], 5)
        self.assertFalse(data["tracking_active"])

    def test_to_dict_is_json_serializable(self):
        self.assertEqual(json.loads(json.dumps(self.frame.to_dict())), self.frame.to_dict())

    def test_immutability(self):
        with self.assertRaises(FrozenInstanceError):
            self.frame.sequence_num = 0


class TestFleetEvent(unittest.TestCase):

    def test_defaults(self):
        event = FleetEvent(event_type=FleetEventType.CAPACITY_EXCEEDED)
        self.assertIsNone(event.controller_id)
        self.assertIsNone(event.previous_id)
        self.assertIsNone(event.device_path)


if __name__ == '__main__':
    unittest.main()
