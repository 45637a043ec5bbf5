#!/usr/bin/env python3
"""
Interactive Fleet Watch Script.

This script demonstrates the ControllerManager API.
Run it with controllers plugged in to watch connection events and
data frames for each logical controller ID.
"""

import sys
import time
import logging
from pathlib import Path

# Add package to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from motionfleet import CallbackPublisher, ControllerManager
from motionfleet.transport import HidTransport

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(levelname)s - %(message)s'
)


def main():
    publisher = CallbackPublisher()
    latest = {}
    publisher.subscribe(lambda frame: latest.__setitem__(frame.controller_id, frame))

    print("Initializing Controller Manager...")
    manager = ControllerManager(transport=HidTransport(), publisher=publisher)
    manager.subscribe_events(lambda event: print(f"\nEvent: {event}"))

    if not manager.startup():
        print("Failed to start! Is hidapi installed?")
        return

    try:
        print("\nWatching controllers for 30 seconds (Ctrl+C to stop)...")
        deadline = time.time() + 30.0
        last_print = 0.0
        while time.time() < deadline:
            manager.update()

            if time.time() - last_print >= 0.5:
                last_print = time.time()
                line = " | ".join(
                    f"#{cid}: btn={frame.button_bitmask:08b} trig={frame.trigger:.2f}"
                    for cid, frame in sorted(latest.items())
                )
                print(f"\r[seq {manager.sequence_num}] {line or 'Waiting for data...'}", end="")
                sys.stdout.flush()

            time.sleep(0.001)

    except KeyboardInterrupt:
        print("\nInterrupted by user.")
    finally:
        print("\nShutting down...")
        manager.shutdown()
        print("Done.")


if __name__ == "__main__":
    main()
