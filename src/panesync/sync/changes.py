"""Changes to replay on the remote side of a watched path.

Each change already carries remote paths, resolved by substituting the
watched local prefix with the remote target:

    local watched  /tmp           remote  /home/foo
    changed        /tmp/abc/a.txt    ->   /home/foo/abc/a.txt
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import PurePath

from panesync.core.paths import remote_relative_path


@dataclass(frozen=True)
class FileToRename:
    """A rename to apply on the remote; ``source`` and ``destination`` are remote paths.

    ``host`` is the local path the file was moved to. It is uploaded to
    ``destination`` when ``source`` does not exist on the remote, as for a
    temporary file renamed before it was ever synced.
    """

    source: PurePath
    destination: PurePath
    host: PurePath | None = None


@dataclass(frozen=True)
class FileToRemove:
    """A remote path to remove."""

    path: PurePath


@dataclass(frozen=True)
class FileUpdate:
    """A local file whose content must be sent to ``remote``."""

    host: PurePath
    remote: PurePath


FsChange = FileToRename | FileToRemove | FileUpdate


def fs_move(
    source: PurePath,
    destination: PurePath,
    local_watched: PurePath,
    remote_synced: PurePath,
) -> FileToRename:
    return fs_move_between(
        source, destination, local_watched, remote_synced, local_watched, remote_synced
    )


def fs_move_between(
    source: PurePath,
    destination: PurePath,
    source_watched: PurePath,
    source_remote: PurePath,
    dest_watched: PurePath,
    dest_remote: PurePath,
) -> FileToRename:
    """Map a move between two watched paths onto a rename between their remotes."""
    return FileToRename(
        source=remote_relative_path(source, source_watched, source_remote),
        destination=remote_relative_path(destination, dest_watched, dest_remote),
        host=destination,
    )


def fs_remove(
    removed: PurePath,
    local_watched: PurePath,
    remote_synced: PurePath,
) -> FileToRemove:
    return FileToRemove(path=remote_relative_path(removed, local_watched, remote_synced))


def fs_update(
    changed: PurePath,
    local_watched: PurePath,
    remote_synced: PurePath,
) -> FileUpdate:
    return FileUpdate(
        host=changed,
        remote=remote_relative_path(changed, local_watched, remote_synced),
    )
