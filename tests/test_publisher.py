"""Unit tests for frame publishers."""

import json
import unittest
from unittest.mock import MagicMock, patch

from motionfleet.models import DataFrame
from motionfleet.publisher import CallbackPublisher, FramePublisher, UdpFramePublisher


def make_frame(sequence_num=0, controller_id=0):
    return DataFrame(
        controller_id=controller_id,
        sequence_num=sequence_num,
        connected=True,
        tracking_enabled=True,
        tracking_active=False,
        orientation=(1.0, 0.0, 0.0, 0.0),
        position=(0.0, 0.0, 0.0),
        button_bitmask=0,
        trigger=0.0,
    )


class TestFramePublisherABC(unittest.TestCase):

    def test_is_abstract(self):
        with self.assertRaises(TypeError):
            FramePublisher()


class TestCallbackPublisher(unittest.TestCase):
    """Tests for in-process fan-out."""

    def test_fan_out_to_all_subscribers(self):
        publisher = CallbackPublisher()
        first, second = [], []
        publisher.subscribe(first.append)
        publisher.subscribe(second.append)

        frame = make_frame()
        publisher.publish(frame)

        self.assertEqual(first, [frame])
        self.assertEqual(second, [frame])

    def test_unsubscribe(self):
        publisher = CallbackPublisher()
        received = []
        unsubscribe = publisher.subscribe(received.append)

        unsubscribe()
        unsubscribe()
        publisher.publish(make_frame())

        self.assertEqual(received, [])

    def test_subscriber_error_is_isolated(self):
        publisher = CallbackPublisher()
        received = []
        publisher.subscribe(MagicMock(side_effect=ValueError("bad consumer")))
        publisher.subscribe(received.append)

        publisher.publish(make_frame())

        self.assertEqual(len(received), 1)


class TestUdpFramePublisher(unittest.TestCase):
    """Tests for UDP JSON datagrams."""

    @patch('motionfleet.publisher.socket.socket')
    def test_sends_json_to_every_target(self, mock_socket_class):
        mock_sock = mock_socket_class.return_value
        publisher = UdpFramePublisher([("10.0.0.1", 9000), ("10.0.0.2", 9001)])

        publisher.publish(make_frame(sequence_num=7, controller_id=1))

        self.assertEqual(mock_sock.sendto.call_count, 2)
        payload, target = mock_sock.sendto.call_args_list[0][0]
        self.assertEqual(target, ("10.0.0.1", 9000))
        data = json.loads(payload.decode("utf-8"))
        self.assertEqual(data["sequence_num"], 7)
        self.assertEqual(data["controller_id"], 1)
        mock_sock.setblocking.assert_called_once_with(False)

    @patch('motionfleet.publisher.socket.socket')
    def test_default_target(self, mock_socket_class):
        publisher = UdpFramePublisher()
        self.assertEqual(publisher.targets, [("127.0.0.1", 9512)])

    @patch('motionfleet.publisher.socket.socket')
    def test_send_errors_swallowed(self, mock_socket_class):
        mock_sock = mock_socket_class.return_value
        mock_sock.sendto.side_effect = [OSError("unreachable"), 10]
        publisher = UdpFramePublisher([("10.0.0.1", 9000), ("10.0.0.2", 9001)])

        publisher.publish(make_frame())

        self.assertEqual(mock_sock.sendto.call_count, 2)

    @patch('motionfleet.publisher.socket.socket')
    def test_close(self, mock_socket_class):
        mock_sock = mock_socket_class.return_value
        publisher = UdpFramePublisher()
        publisher.publish(make_frame())

        publisher.close()
        publisher.close()

        mock_sock.close.assert_called_once()


if __name__ == '__main__':
    unittest.main()
