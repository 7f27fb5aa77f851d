"""Shared types for panesync.

This module provides:
- Metadata, FileEntry: Description of a filesystem object on either backend
- LogLevel: Severity of user-visible session log records
- PaneSyncError and subclasses: Exception taxonomy for walker, watcher and transfers
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum, IntEnum, auto
from pathlib import PurePath


@dataclass(frozen=True)
class Metadata:
    """Metadata of a filesystem entry.

    Attributes:
        size: Size in bytes (0 for directories on most backends).
        modified_time: Last modification time as a Unix timestamp.
        permissions: UNIX permission bits, if the backend reports them.
        symlink_target: Target of the entry if it is a symlink.
    """

    size: int = 0
    modified_time: float | None = None
    permissions: int | None = None
    symlink_target: PurePath | None = None


@dataclass(frozen=True)
class FileEntry:
    """A filesystem object as reported by a backend.

    Entries are values: they are created fresh by every ``list_dir`` or
    ``stat`` call and never mutated afterwards. When ``metadata.symlink_target``
    is set, ``is_dir`` describes the link itself, not what it points to.
    """

    path: PurePath
    is_dir: bool
    metadata: Metadata = field(default_factory=Metadata)

    @property
    def name(self) -> str:
        """Last path component."""
        return self.path.name or str(self.path)

    @property
    def is_symlink(self) -> bool:
        """Whether the entry is a symbolic link."""
        return self.metadata.symlink_target is not None

    @property
    def is_file(self) -> bool:
        """Whether the entry is a regular file (neither directory nor link)."""
        return not self.is_dir and not self.is_symlink

    @property
    def size(self) -> int:
        return self.metadata.size

    def with_path(self, path: PurePath) -> FileEntry:
        """Return a copy of the entry located at ``path``."""
        return replace(self, path=path)


class LogLevel(IntEnum):
    """Severity of a session log record (values match :mod:`logging`)."""

    DEBUG = 10
    INFO = 20
    WARN = 30
    ERROR = 40


class PaneSyncError(Exception):
    """Base exception for panesync errors."""


class ConfigError(PaneSyncError):
    """Invalid configuration value."""


class HostErrorKind(Enum):
    """Category of a backend failure."""

    NO_SUCH_FILE = auto()
    FILE_ALREADY_EXISTS = auto()
    PERMISSION_DENIED = auto()
    NOT_A_DIRECTORY = auto()
    IO_ERROR = auto()


class HostError(PaneSyncError):
    """A backend operation failed.

    Attributes:
        kind: Category of the failure.
        path: Path the operation was working on, if any.
    """

    def __init__(
        self,
        kind: HostErrorKind,
        message: str,
        path: PurePath | None = None,
    ) -> None:
        self.kind = kind
        self.path = path
        super().__init__(message)


class WalkError(PaneSyncError):
    """Base exception for directory walks."""


class WalkAborted(WalkError):
    """The walk was cancelled by the user.

    Not a failure: callers report it as an informational status and discard
    the result.
    """

    def __init__(self) -> None:
        super().__init__("walk aborted")


class WalkFailed(WalkError):
    """A backend call failed during traversal."""


class WatcherError(PaneSyncError):
    """A watch or unwatch operation failed."""


class PathNotWatched(WatcherError):
    """The path (and none of its ancestors) is being watched."""

    def __init__(self, path: PurePath) -> None:
        self.path = path
        super().__init__(f"{path} is not watched")


class TransferError(PaneSyncError):
    """A transfer between two backends failed."""


class TransferAborted(TransferError):
    """The transfer was cancelled by the user."""

    def __init__(self) -> None:
        super().__init__("transfer aborted")
