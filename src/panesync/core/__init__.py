"""Core module - Shared entry model, errors, paths and configuration."""

from panesync.core.config import (
    SessionConfig,
    get_config_dir,
    get_config_file,
    load_config,
    save_config,
)
from panesync.core.paths import diff_paths, is_child_of, remote_relative_path
from panesync.core.types import (
    ConfigError,
    FileEntry,
    HostError,
    HostErrorKind,
    LogLevel,
    Metadata,
    PaneSyncError,
    PathNotWatched,
    TransferAborted,
    TransferError,
    WalkAborted,
    WalkError,
    WalkFailed,
    WatcherError,
)

__all__ = [
    # Config
    "SessionConfig",
    "get_config_dir",
    "get_config_file",
    "load_config",
    "save_config",
    # Paths
    "diff_paths",
    "is_child_of",
    "remote_relative_path",
    # Types
    "FileEntry",
    "LogLevel",
    "Metadata",
    # Errors
    "ConfigError",
    "HostError",
    "HostErrorKind",
    "PaneSyncError",
    "PathNotWatched",
    "TransferAborted",
    "TransferError",
    "WalkAborted",
    "WalkError",
    "WalkFailed",
    "WatcherError",
]
