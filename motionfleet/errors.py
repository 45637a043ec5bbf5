"""Exception hierarchy for the controller fleet.

Per-device failures never surface as exceptions from the manager. These
cover misuse of the manager lifecycle and failures to save config or
open a device.
"""


class FleetError(RuntimeError):
    """Base class for controller fleet errors."""
    pass


class TransportError(FleetError):
    """Raised by a transport when a device cannot be opened or used."""
    pass


class ConfigError(FleetError):
    """Raised when the fleet configuration cannot be persisted."""
    pass


class ManagerStateError(FleetError):
    """Raised when a manager lifecycle method is called in the wrong state."""
    def __init__(self, message, state):
        super().__init__(message)
        self.state = state
