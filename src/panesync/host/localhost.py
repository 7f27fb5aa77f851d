"""Local OS filesystem backend.

This module provides:
- Localhost: HostBridge implementation over the local filesystem
- entry_from_path: Build a FileEntry from ``lstat`` information
"""

from __future__ import annotations

import errno
import logging
import os
import shutil
import stat as stat_mod
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path, PurePath
from typing import BinaryIO

from panesync.core.types import FileEntry, HostError, HostErrorKind, Metadata

logger = logging.getLogger(__name__)

_ERRNO_KINDS = {
    errno.ENOENT: HostErrorKind.NO_SUCH_FILE,
    errno.EEXIST: HostErrorKind.FILE_ALREADY_EXISTS,
    errno.EACCES: HostErrorKind.PERMISSION_DENIED,
    errno.EPERM: HostErrorKind.PERMISSION_DENIED,
    errno.ENOTDIR: HostErrorKind.NOT_A_DIRECTORY,
}


@contextmanager
def _host_errors(action: str, path: PurePath) -> Iterator[None]:
    """Translate OSError into HostError."""
    try:
        yield
    except OSError as e:
        kind = _ERRNO_KINDS.get(e.errno or 0, HostErrorKind.IO_ERROR)
        raise HostError(kind, f"could not {action} {path}: {e.strerror or e}", path) from e


def entry_from_path(path: Path) -> FileEntry:
    """Describe ``path`` without following symlinks.

    Raises:
        OSError: If the path cannot be stat'ed.
    """
    st = path.lstat()
    symlink_target: PurePath | None = None
    if stat_mod.S_ISLNK(st.st_mode):
        symlink_target = Path(os.readlink(path))
    return FileEntry(
        path=path,
        is_dir=stat_mod.S_ISDIR(st.st_mode),
        metadata=Metadata(
            size=st.st_size,
            modified_time=st.st_mtime,
            permissions=stat_mod.S_IMODE(st.st_mode),
            symlink_target=symlink_target,
        ),
    )


class Localhost:
    """Backend over the local filesystem, with its own working directory.

    Relative paths passed to any operation are resolved against the working
    directory. Symlinks are reported as links (``is_dir`` is false for a link
    to a directory), so a walk never descends into them.
    """

    def __init__(self, wrkdir: Path | str, show_hidden: bool = True) -> None:
        """Initialize the backend.

        Args:
            wrkdir: Initial working directory.
            show_hidden: Whether dot-files are returned by list_dir.

        Raises:
            HostError: If ``wrkdir`` is not an existing directory.
        """
        self._show_hidden = show_hidden
        self._wrkdir = Path(wrkdir).expanduser().absolute()
        if not self._wrkdir.is_dir():
            raise HostError(
                HostErrorKind.NOT_A_DIRECTORY,
                f"{self._wrkdir} is not a directory",
                self._wrkdir,
            )

    def _abs(self, path: PurePath) -> Path:
        return self._wrkdir / Path(path)

    def pwd(self) -> Path:
        return self._wrkdir

    def change_wrkdir(self, path: PurePath) -> Path:
        new_dir = self._abs(path)
        if not new_dir.is_dir():
            raise HostError(
                HostErrorKind.NOT_A_DIRECTORY,
                f"{new_dir} is not a directory",
                new_dir,
            )
        self._wrkdir = Path(os.path.normpath(new_dir))
        logger.debug("Changed working directory to %s", self._wrkdir)
        return self._wrkdir

    def list_dir(self, path: PurePath) -> list[FileEntry]:
        """List a directory, sorted by name."""
        target = self._abs(path)
        entries: list[FileEntry] = []
        with _host_errors("list directory", target):
            names = sorted(os.listdir(target))
            for name in names:
                if not self._show_hidden and name.startswith("."):
                    continue
                try:
                    entries.append(entry_from_path(target / name))
                except FileNotFoundError:
                    # Removed between listdir and lstat
                    continue
        return entries

    def stat(self, path: PurePath) -> FileEntry:
        target = self._abs(path)
        with _host_errors("stat", target):
            return entry_from_path(target)

    def exists(self, path: PurePath) -> bool:
        return os.path.lexists(self._abs(path))

    def mkdir(
        self,
        path: PurePath,
        permissions: int = 0o755,
        ignore_existing: bool = False,
    ) -> None:
        target = self._abs(path)
        if ignore_existing and target.is_dir():
            return
        with _host_errors("create directory", target):
            target.mkdir(mode=permissions)
        logger.debug("Created directory %s", target)

    def remove(self, entry: FileEntry) -> None:
        target = self._abs(entry.path)
        with _host_errors("remove", target):
            if entry.is_dir and not entry.is_symlink:
                shutil.rmtree(target)
            else:
                target.unlink()
        logger.debug("Removed %s", target)

    def rename(self, entry: FileEntry, dst: PurePath) -> None:
        source = self._abs(entry.path)
        target = self._abs(dst)
        with _host_errors("rename", source):
            os.replace(source, target)
        logger.debug("Renamed %s to %s", source, target)

    def symlink(self, link_path: PurePath, target_path: PurePath) -> None:
        link = self._abs(link_path)
        with _host_errors("create symlink", link):
            os.symlink(target_path, link)
        logger.debug("Created symlink %s -> %s", link, target_path)

    def open_file(self, path: PurePath) -> BinaryIO:
        target = self._abs(path)
        with _host_errors("open", target):
            return open(target, "rb")

    def create_file(self, path: PurePath, metadata: Metadata) -> BinaryIO:
        target = self._abs(path)
        with _host_errors("create", target):
            writer = open(target, "wb")
            if metadata.permissions is not None:
                try:
                    os.chmod(target, metadata.permissions)
                except OSError:
                    writer.close()
                    raise
            return writer
