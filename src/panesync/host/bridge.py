"""Filesystem backend interface.

Both sides of a session (host and remote) are driven through the same
``HostBridge`` protocol, so the walker, the transfer executor and the path
watcher have a single code path parameterized by the backend.
"""

from __future__ import annotations

from pathlib import PurePath
from typing import BinaryIO, Protocol

from panesync.core.types import FileEntry, Metadata


class HostBridge(Protocol):
    """Protocol for filesystem backends.

    Every method raises :class:`~panesync.core.types.HostError` on failure.
    """

    def pwd(self) -> PurePath:
        """Return the current working directory."""
        ...

    def change_wrkdir(self, path: PurePath) -> PurePath:
        """Change working directory and return the new absolute path."""
        ...

    def list_dir(self, path: PurePath) -> list[FileEntry]:
        """List the content of a directory."""
        ...

    def stat(self, path: PurePath) -> FileEntry:
        """Describe a single entry without following symlinks."""
        ...

    def exists(self, path: PurePath) -> bool:
        """Whether an entry exists at ``path``."""
        ...

    def mkdir(
        self,
        path: PurePath,
        permissions: int = 0o755,
        ignore_existing: bool = False,
    ) -> None:
        """Create a directory."""
        ...

    def remove(self, entry: FileEntry) -> None:
        """Remove an entry; directories are removed recursively."""
        ...

    def rename(self, entry: FileEntry, dst: PurePath) -> None:
        """Move an entry to ``dst``."""
        ...

    def symlink(self, link_path: PurePath, target_path: PurePath) -> None:
        """Create a symlink at ``link_path`` pointing to ``target_path``."""
        ...

    def open_file(self, path: PurePath) -> BinaryIO:
        """Open a file for reading."""
        ...

    def create_file(self, path: PurePath, metadata: Metadata) -> BinaryIO:
        """Open a file for writing, truncating it if it exists."""
        ...
