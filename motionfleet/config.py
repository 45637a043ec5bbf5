"""Persistent fleet manager configuration.

Stored as a small JSON document. Missing or invalid values fall back to
their defaults one key at a time, so a hand-edited file never stops the
service from starting.
"""
from __future__ import annotations

import json
import logging
from dataclasses import asdict, dataclass, fields
from pathlib import Path
from typing import Any, Dict, Union

from .errors import ConfigError

logger = logging.getLogger(__name__)

CONFIG_FILENAME = "controller_manager.json"

DEFAULT_CONTROLLER_POLL_INTERVAL = 2  # ms
DEFAULT_CONTROLLER_RECONNECT_INTERVAL = 1000  # ms


def _valid_interval(value: Any) -> bool:
    # bool is an int subclass but never a valid interval
    return isinstance(value, int) and not isinstance(value, bool) and value >= 0


@dataclass
class FleetConfig:
    """Fleet manager options.

    Attributes:
        controller_poll_interval: Milliseconds between polls of open controllers
        controller_reconnect_interval: Milliseconds between reconciliation passes
    """
    controller_poll_interval: int = DEFAULT_CONTROLLER_POLL_INTERVAL
    controller_reconnect_interval: int = DEFAULT_CONTROLLER_RECONNECT_INTERVAL

    def to_dict(self) -> Dict[str, int]:
        """Convert to serializable dict for JSON persistence."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> FleetConfig:
        """Load from deserialized dict, defaulting any missing or invalid key."""
        defaults = cls()
        values = {}
        for f in fields(cls):
            value = data.get(f.name, getattr(defaults, f.name))
            if not _valid_interval(value):
                logger.warning(f"Invalid value for {f.name}: {value!r}, using default")
                value = getattr(defaults, f.name)
            values[f.name] = value
        return cls(**values)

    @classmethod
    def load(cls, path: Union[str, Path]) -> FleetConfig:
        """Load config from path, or defaults if it does not exist or is unreadable."""
        path = Path(path)
        if not path.exists():
            logger.debug(f"No config at {path}, using defaults")
            return cls()

        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            logger.warning(f"Failed to load config {path}: {e}")
            return cls()

        if not isinstance(data, dict):
            logger.warning(f"Config {path} is not a JSON object, using defaults")
            return cls()

        return cls.from_dict(data)

    def save(self, path: Union[str, Path]) -> None:
        """Write config to path.

        Raises:
            ConfigError: If the file cannot be written
        """
        path = Path(path)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with open(path, "w", encoding="utf-8") as f:
                json.dump(self.to_dict(), f, indent=2)
        except OSError as e:
            raise ConfigError(f"Failed to save config {path}: {e}") from e
