"""Session configuration for panesync.

This module provides:
- SessionConfig: Tunables for the walker, watcher, transfer executor and log
- get_config_dir / get_config_file / load_config / save_config: JSON config file helpers
"""

from __future__ import annotations

import json
from dataclasses import asdict, dataclass, fields
from pathlib import Path
from typing import Any

from panesync.core.types import ConfigError


@dataclass
class SessionConfig:
    """Configuration of a sync session.

    Attributes:
        watcher_delay_s: Seconds a path must stay quiet before its change is
            forwarded by the path watcher.
        log_capacity: Maximum number of records kept in the session log.
        show_hidden: Whether dot-files are listed by the local backend.
        transfer_chunk_size: Bytes copied per read/write during transfers.
    """

    watcher_delay_s: float = 1.0
    log_capacity: int = 256
    show_hidden: bool = True
    transfer_chunk_size: int = 65536

    def __post_init__(self) -> None:
        """Validate values."""
        if self.watcher_delay_s < 0:
            raise ConfigError(f"watcher_delay_s must be >= 0, got {self.watcher_delay_s}")
        if self.log_capacity < 1:
            raise ConfigError(f"log_capacity must be >= 1, got {self.log_capacity}")
        if self.transfer_chunk_size < 1:
            raise ConfigError(
                f"transfer_chunk_size must be >= 1, got {self.transfer_chunk_size}"
            )

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SessionConfig:
        """Build a config from a mapping, ignoring unknown keys.

        Raises:
            ConfigError: If a value cannot be converted to the field type.
        """
        kwargs: dict[str, Any] = {}
        for f in fields(cls):
            if f.name not in data:
                continue
            kwargs[f.name] = _coerce(f.name, data[f.name], type(getattr(cls(), f.name)))
        return cls(**kwargs)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def _coerce(name: str, value: Any, target: type) -> Any:
    if target is bool:
        if isinstance(value, bool):
            return value
        if isinstance(value, str) and value.lower() in ("true", "yes", "1", "on"):
            return True
        if isinstance(value, str) and value.lower() in ("false", "no", "0", "off"):
            return False
        raise ConfigError(f"{name}: expected a boolean, got {value!r}")
    try:
        return target(value)
    except (TypeError, ValueError) as e:
        raise ConfigError(f"{name}: expected {target.__name__}, got {value!r}") from e


def get_config_dir() -> Path:
    """Get the configuration directory for panesync.

    Returns:
        Path to ~/.panesync.
    """
    return Path.home() / ".panesync"


def get_config_file() -> Path:
    """Get the path to the config file."""
    return get_config_dir() / "config.json"


def load_config() -> SessionConfig:
    """Load configuration from the config file, falling back to defaults."""
    config_file = get_config_file()
    if config_file.exists():
        try:
            data = json.loads(config_file.read_text())
        except json.JSONDecodeError as e:
            raise ConfigError(f"could not parse {config_file}: {e}") from e
        return SessionConfig.from_dict(dict(data))
    return SessionConfig()


def save_config(config: SessionConfig) -> None:
    """Save configuration to the config file."""
    config_file = get_config_file()
    config_file.parent.mkdir(parents=True, exist_ok=True)
    config_file.write_text(json.dumps(config.to_dict(), indent=2))
