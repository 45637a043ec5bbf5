"""Unit tests for the ControllerManager facade."""

import json
import tempfile
import unittest
from pathlib import Path
from unittest.mock import MagicMock, patch

from fakes import FakeClock, FakeTransport

from motionfleet.config import FleetConfig
from motionfleet.errors import ConfigError, ManagerStateError
from motionfleet.manager import ControllerManager, ManagerState
from motionfleet.models import ControllerSample, FleetEventType, ReadResult
from motionfleet.publisher import CallbackPublisher


class ManagerTestCase(unittest.TestCase):

    def setUp(self):
        self.transport = FakeTransport()
        self.clock = FakeClock()
        self.frames = []
        self.publisher = CallbackPublisher()
        self.publisher.subscribe(self.frames.append)
        self.manager = ControllerManager(
            transport=self.transport,
            publisher=self.publisher,
            max_controllers=4,
            clock=self.clock,
        )


class TestManagerLifecycle(ManagerTestCase):
    """Uninitialized -> Running -> ShutDown."""

    def test_startup_success(self):
        self.assertEqual(self.manager.state, ManagerState.UNINITIALIZED)

        self.assertTrue(self.manager.startup())

        self.assertEqual(self.manager.state, ManagerState.RUNNING)
        self.assertTrue(self.transport.initialized)

    def test_startup_transport_failure(self):
        self.transport.init_ok = False

        self.assertFalse(self.manager.startup())

        self.assertEqual(self.manager.state, ManagerState.UNINITIALIZED)
        with self.assertRaises(ManagerStateError):
            self.manager.update()

    def test_shutdown_after_failed_startup_skips_transport(self):
        self.transport.init_ok = False
        self.manager.startup()

        self.manager.shutdown()

        self.assertEqual(self.manager.state, ManagerState.SHUT_DOWN)
        self.assertEqual(self.transport.shutdown_calls, 0)

    def test_update_before_startup_raises(self):
        with self.assertRaises(ManagerStateError) as ctx:
            self.manager.update()
        self.assertEqual(ctx.exception.state, ManagerState.UNINITIALIZED)

    def test_shutdown_closes_open_controllers(self):
        self.transport.attach("A", "B")
        self.manager.startup()
        self.manager.update()
        self.assertEqual(len(self.transport.open_links()), 2)

        self.manager.shutdown()

        self.assertEqual(self.transport.open_links(), [])
        self.assertEqual(self.transport.shutdown_calls, 1)
        self.assertEqual(self.manager.state, ManagerState.SHUT_DOWN)

    def test_shutdown_idempotent(self):
        self.manager.startup()
        self.manager.shutdown()
        self.manager.shutdown()

        self.assertEqual(self.transport.shutdown_calls, 1)

    def test_no_restart_after_shutdown(self):
        self.manager.startup()
        self.manager.shutdown()

        with self.assertRaises(ManagerStateError):
            self.manager.startup()
        with self.assertRaises(ManagerStateError):
            self.manager.update()

    def test_device_actions_not_supported(self):
        self.manager.startup()
        self.assertFalse(self.manager.set_controller_rumble(0, 255))
        self.assertFalse(self.manager.reset_pose(0))


class TestManagerUpdate(ManagerTestCase):
    """Time-gated poll and reconciliation passes."""

    def setUp(self):
        super().setUp()
        self.manager.startup()

    def test_first_update_runs_both_passes(self):
        self.transport.attach("A")
        self.manager.update()

        self.assertEqual(len(self.manager.controllers()), 4)
        self.assertTrue(self.manager.get_controller(0).is_open())
        self.assertIsNone(self.manager.get_controller(9))

    def test_reconcile_waits_for_interval(self):
        self.manager.update()
        self.transport.attach("A")

        self.clock.advance(999)
        self.manager.update()
        self.assertEqual(self.transport.open_calls, [])

        self.clock.advance(1)
        self.manager.update()
        self.assertEqual(self.transport.open_calls, ["A"])

    def test_infrequent_calls_run_single_pass(self):
        self.transport.attach("A")
        self.manager.update()

        self.clock.advance(10_000)
        self.transport.queue_read("A", ReadResult.NEW_DATA)
        self.transport.queue_read("A", ReadResult.NEW_DATA)
        self.manager.update()

        self.assertEqual(len(self.frames), 1)

    def test_dual_rate_scheduling(self):
        self.transport.attach("A")
        polls = []
        reconciles = []
        with patch.object(self.manager._poller, "poll", side_effect=lambda: polls.append(self.clock.now)), \
             patch.object(self.manager._reconciler, "run", side_effect=lambda d: reconciles.append(self.clock.now)):
            for _ in range(2000):
                self.manager.update()
                self.clock.advance(1)

        self.assertEqual(len(polls), 1000)
        self.assertTrue(all(b - a == 2 for a, b in zip(polls, polls[1:])))
        self.assertEqual(len(reconciles), 2)
        self.assertEqual(reconciles[1] - reconciles[0], 1000)

    def test_enumeration_error_leaves_slots(self):
        self.transport.attach("A")
        self.manager.update()
        self.clock.advance(1000)

        with patch.object(self.transport, "enumerate", side_effect=OSError("backend gone")):
            self.manager.update()

        self.assertTrue(self.manager.get_controller(0).is_open())
        self.assertEqual(len(self.manager.controllers()), 4)

    def test_events_published_to_subscribers(self):
        events = []
        unsubscribe = self.manager.subscribe_events(events.append)
        self.transport.attach("A", "B")
        self.manager.update()

        self.transport.queue_read("B", ReadResult.FAILURE)
        self.clock.advance(2)
        self.manager.update()

        self.assertEqual(
            [e.event_type for e in events],
            [FleetEventType.CONNECTED, FleetEventType.CONNECTED, FleetEventType.READ_FAILURE],
        )

        unsubscribe()
        self.transport.attach()
        self.clock.advance(1000)
        self.manager.update()
        self.assertEqual(len(events), 3)

    def test_raising_transport_read_stays_inside_update(self):
        events = []
        self.manager.subscribe_events(events.append)
        self.transport.attach("A", "B")
        self.manager.update()

        def read(link):
            if link.path == "A":
                raise RuntimeError("driver glitch")
            return ReadResult.NEW_DATA, ControllerSample()

        self.clock.advance(2)
        with patch.object(self.transport, "read", side_effect=read):
            self.manager.update()

        self.assertEqual([f.controller_id for f in self.frames], [1])
        self.assertFalse(self.manager.get_controller(0).is_open())
        self.assertEqual(events[-1].event_type, FleetEventType.READ_FAILURE)
        self.assertEqual(events[-1].device_path, "A")

    def test_failing_event_subscriber_is_isolated(self):
        bad = MagicMock(side_effect=RuntimeError("boom"))
        good = []
        self.manager.subscribe_events(bad)
        self.manager.subscribe_events(good.append)
        self.transport.attach("A")

        self.manager.update()

        bad.assert_called_once()
        self.assertEqual(len(good), 1)

    def test_frames_sequence_through_manager(self):
        self.transport.attach("A", "B")
        self.manager.update()
        for path in ("A", "B", "A"):
            self.transport.queue_read(path, ReadResult.NEW_DATA)
            self.clock.advance(2)
            self.manager.update()

        self.assertEqual([f.sequence_num for f in self.frames], [0, 1, 2])
        self.assertEqual([f.controller_id for f in self.frames], [0, 1, 0])
        self.assertEqual(self.manager.sequence_num, 3)


class TestManagerConfig(unittest.TestCase):
    """Config load on startup and save on shutdown."""

    def setUp(self):
        self.tmpdir = tempfile.TemporaryDirectory()
        self.config_path = Path(self.tmpdir.name) / "controller_manager.json"
        self.transport = FakeTransport()
        self.clock = FakeClock()

    def tearDown(self):
        self.tmpdir.cleanup()

    def make_manager(self):
        return ControllerManager(
            transport=self.transport,
            publisher=CallbackPublisher(),
            config_path=self.config_path,
            clock=self.clock,
        )

    def test_loads_config_on_startup(self):
        self.config_path.write_text(json.dumps({
            "controller_poll_interval": 5,
            "controller_reconnect_interval": 250,
        }))
        manager = self.make_manager()

        manager.startup()

        self.assertEqual(manager.config, FleetConfig(5, 250))

    def test_saves_config_on_shutdown(self):
        manager = self.make_manager()
        manager.startup()
        manager.shutdown()

        saved = json.loads(self.config_path.read_text())
        self.assertEqual(saved, {
            "controller_poll_interval": 2,
            "controller_reconnect_interval": 1000,
        })

    def test_save_failure_raised_after_cleanup(self):
        self.transport.attach("A")
        manager = self.make_manager()
        manager.startup()
        manager.update()

        with patch.object(FleetConfig, "save", side_effect=ConfigError("disk full")):
            with self.assertRaises(ConfigError):
                manager.shutdown()

        self.assertEqual(self.transport.open_links(), [])
        self.assertEqual(self.transport.shutdown_calls, 1)
        self.assertEqual(manager.state, ManagerState.SHUT_DOWN)


if __name__ == '__main__':
    unittest.main()
