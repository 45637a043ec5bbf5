"""Host process for the controller fleet.

Drives ControllerManager.update() from a ~1ms loop until a termination
signal arrives, then shuts the manager down.
"""
from __future__ import annotations

import argparse
import logging
import signal
import threading
from pathlib import Path
from typing import List, Optional, Sequence, Tuple

from .config import CONFIG_FILENAME
from .errors import FleetError
from .manager import MAX_CONTROLLERS, ControllerManager
from .publisher import DEFAULT_HOST, DEFAULT_PORT, UdpFramePublisher
from .transport import HidTransport, SerialTransport, Transport

logger = logging.getLogger(__name__)

UPDATE_PERIOD = 0.001  # seconds
DEFAULT_CONFIG_DIR = Path.home() / ".motionfleet"


class FleetService:
    """Runs a ControllerManager on the calling thread."""

    def __init__(self, manager: ControllerManager, update_period: float = UPDATE_PERIOD):
        self._manager = manager
        self._update_period = update_period
        self._stop = threading.Event()

    def stop(self) -> None:
        """Ask the update loop to exit after the current tick."""
        self._stop.set()

    def install_signal_handlers(self) -> None:
        """Stop the service on SIGINT/SIGTERM (and SIGQUIT where it exists)."""
        def handle_termination_signal(signum, frame):
            logger.info("Received termination signal. Stopping service.")
            self.stop()

        signals = [signal.SIGINT, signal.SIGTERM]
        if hasattr(signal, "SIGQUIT"):
            signals.append(signal.SIGQUIT)
        for signum in signals:
            signal.signal(signum, handle_termination_signal)

    def run(self) -> int:
        """Start the manager, loop until stopped, then shut down.

        Returns:
            Process exit code: 0 on a clean run, 1 if startup failed
        """
        exit_code = 0
        try:
            if self._manager.startup():
                while not self._stop.is_set():
                    self._manager.update()
                    self._stop.wait(self._update_period)
            else:
                logger.error("Failed to start the controller manager")
                exit_code = 1
        finally:
            try:
                self._manager.shutdown()
            except FleetError as e:
                logger.error(f"Error during shutdown: {e}")
                exit_code = 1

        return exit_code


def parse_address(value: str) -> Tuple[str, int]:
    """Parse HOST:PORT (or just PORT) for argparse."""
    host, sep, port = value.rpartition(":")
    if not sep:
        host = DEFAULT_HOST
    try:
        port_num = int(port)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid port in {value!r}")
    if not 0 < port_num < 65536:
        raise argparse.ArgumentTypeError(f"port out of range in {value!r}")
    return host or DEFAULT_HOST, port_num


def parse_usb_id(value: str) -> int:
    """Parse a USB VID/PID given as hex (0x2341) or decimal."""
    try:
        usb_id = int(value, 0)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid USB id {value!r}")
    if not 0 <= usb_id <= 0xFFFF:
        raise argparse.ArgumentTypeError(f"USB id out of range: {value!r}")
    return usb_id


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="motionfleet",
        description="Manage a fleet of motion controllers and publish their data frames.",
    )
    parser.add_argument(
        "-l", "--log-level",
        default="info",
        choices=["debug", "info", "warning", "error", "critical"],
        help="Logging level (default: info)",
    )
    parser.add_argument(
        "--config-dir",
        type=Path,
        default=DEFAULT_CONFIG_DIR,
        help=f"Directory holding {CONFIG_FILENAME} (default: {DEFAULT_CONFIG_DIR})",
    )
    parser.add_argument(
        "--transport",
        default="hid",
        choices=["hid", "serial"],
        help="Controller transport (default: hid)",
    )
    parser.add_argument(
        "--publish",
        action="append",
        type=parse_address,
        metavar="HOST:PORT",
        help=f"UDP destination for data frames, repeatable (default: {DEFAULT_HOST}:{DEFAULT_PORT})",
    )
    parser.add_argument(
        "--max-controllers",
        type=int,
        default=MAX_CONTROLLERS,
        help=f"Number of controller slots (default: {MAX_CONTROLLERS})",
    )

    serial_group = parser.add_argument_group(
        "serial transport",
        "Which serial ports are controllers. At least one is required with --transport serial.",
    )
    serial_group.add_argument("--serial-vid", type=parse_usb_id, help="USB vendor id of the controller bridge")
    serial_group.add_argument("--serial-pid", type=parse_usb_id, help="USB product id of the controller bridge")
    serial_group.add_argument("--serial-product", help="Substring of the USB product string")
    serial_group.add_argument("--serial-prefix", help="Prefix of the USB serial number")
    return parser


def build_transport(args: argparse.Namespace) -> Transport:
    if args.transport == "hid":
        return HidTransport()
    return SerialTransport(
        expected_vid=args.serial_vid,
        expected_pid=args.serial_pid,
        product_substring=args.serial_product,
        serial_prefix=args.serial_prefix,
    )


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=getattr(logging, args.log_level.upper()),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    if args.max_controllers <= 0:
        logger.error("--max-controllers must be positive")
        return 2

    try:
        transport = build_transport(args)
    except ValueError as e:
        logger.error(f"{e} (--serial-vid, --serial-pid, --serial-product or --serial-prefix)")
        return 2

    targets: List[Tuple[str, int]] = args.publish or [(DEFAULT_HOST, DEFAULT_PORT)]
    publisher = UdpFramePublisher(targets)

    manager = ControllerManager(
        transport=transport,
        publisher=publisher,
        config_path=args.config_dir / CONFIG_FILENAME,
        max_controllers=args.max_controllers,
    )

    logger.info("Starting motion controller service")
    service = FleetService(manager)
    service.install_signal_handlers()
    try:
        return service.run()
    finally:
        publisher.close()
        logger.info("Exiting motion controller service")
