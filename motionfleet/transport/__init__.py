"""Transport layer for motion controller hardware."""

from .base import DeviceDescriptor, Transport
from .hid import HidTransport
from .serial import SerialTransport

__all__ = ["DeviceDescriptor", "Transport", "HidTransport", "SerialTransport"]
