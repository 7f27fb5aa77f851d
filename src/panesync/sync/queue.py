"""Transfer queue of marked entries.

This module provides:
- TransferQueueEntry: A marked source entry paired with its destination
- TransferQueue: Ordered, source-keyed collection of marked entries

Each side of a session owns one queue. The queue is pure bookkeeping: it
performs no I/O. Entries are keyed by source path, so re-marking an entry
replaces its destination in place instead of adding a duplicate.

Destinations:
    - ``mark`` / ``mark_all`` / ``toggle``: opposite working directory + entry name
    - ``mark_walked``: opposite working directory + path relative to the walked
      root, so nested structure is reproduced on the other side

Drain contract:
    The transfer executor removes each entry with ``complete()`` once it has
    been fully transferred. An aborted batch therefore leaves exactly the
    entries that were not completed.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from pathlib import PurePath

from panesync.core.paths import remote_relative_path
from panesync.core.types import FileEntry

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TransferQueueEntry:
    """A marked entry and where it will be written on the other side."""

    entry: FileEntry
    destination: PurePath

    @property
    def source(self) -> PurePath:
        return self.entry.path


class TransferQueue:
    """Ordered collection of marked entries awaiting transfer.

    All operations are total: unmarking something that is not marked is a
    no-op, and ``clear`` always empties the queue.
    """

    def __init__(self) -> None:
        self._entries: dict[PurePath, TransferQueueEntry] = {}

    def _put(self, entry: FileEntry, destination: PurePath) -> None:
        if entry.path in self._entries:
            logger.debug("Re-marking %s -> %s", entry.path, destination)
        else:
            logger.debug("Marking %s -> %s", entry.path, destination)
        self._entries[entry.path] = TransferQueueEntry(entry, destination)

    def mark(self, entry: FileEntry, dest_dir: PurePath) -> None:
        """Mark ``entry`` for transfer into ``dest_dir``."""
        self._put(entry, dest_dir / entry.name)

    def mark_all(self, entries: Iterable[FileEntry], dest_dir: PurePath) -> int:
        """Mark every entry of a (possibly filtered) listing.

        Returns:
            Number of entries marked.
        """
        count = 0
        for entry in entries:
            self.mark(entry, dest_dir)
            count += 1
        return count

    def mark_walked(
        self,
        entries: Iterable[FileEntry],
        root: PurePath,
        dest_dir: PurePath,
    ) -> int:
        """Mark walker results, preserving their path below ``root``.

        Returns:
            Number of entries marked.
        """
        count = 0
        for entry in entries:
            self._put(entry, remote_relative_path(entry.path, root, dest_dir))
            count += 1
        return count

    def toggle(self, entry: FileEntry, dest_dir: PurePath) -> bool:
        """Unmark ``entry`` if marked, mark it otherwise.

        Returns:
            True if the entry is marked after the call.
        """
        if entry.path in self._entries:
            self.unmark(entry)
            return False
        self.mark(entry, dest_dir)
        return True

    def unmark(self, entry: FileEntry | PurePath) -> None:
        """Remove an entry (given as entry or source path) from the queue."""
        path = entry.path if isinstance(entry, FileEntry) else entry
        if self._entries.pop(path, None) is not None:
            logger.debug("Unmarked %s", path)

    def complete(self, source: PurePath) -> None:
        """Remove an entry after it has been transferred."""
        if self._entries.pop(source, None) is not None:
            logger.debug("Transferred %s", source)

    def clear(self) -> int:
        """Remove all entries.

        Returns:
            Number of entries removed.
        """
        count = len(self._entries)
        self._entries.clear()
        logger.debug("Cleared %d marked entries", count)
        return count

    def enqueued(self) -> list[tuple[PurePath, PurePath]]:
        """Return ``(source, destination)`` pairs in marking order."""
        return [(item.source, item.destination) for item in self._entries.values()]

    def entries(self) -> list[TransferQueueEntry]:
        """Snapshot of the queued entries in marking order."""
        return list(self._entries.values())

    def pending(self) -> list[TransferQueueEntry]:
        """Entries not yet completed by a transfer."""
        return self.entries()

    def is_marked(self, path: PurePath) -> bool:
        return path in self._entries

    def destination(self, path: PurePath) -> PurePath | None:
        """Destination of the entry marked at ``path``, if any."""
        item = self._entries.get(path)
        return item.destination if item is not None else None

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[TransferQueueEntry]:
        return iter(list(self._entries.values()))

    def __bool__(self) -> bool:
        return bool(self._entries)

    def __contains__(self, path: object) -> bool:
        return path in self._entries
