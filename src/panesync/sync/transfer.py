"""Transfer executor for copying entries between two backends.

This module provides:
- ProgressStates: Byte progress of one transfer part (whole batch or one file)
- TransferStates: Abort flag plus full/partial progress
- TransferExecutor: Drains a TransferQueue from a source into a destination backend

Transfers run synchronously on the caller's thread. Cancellation is
cooperative: ``TransferStates.abort()`` is checked between chunks and
between entries, never in the middle of a backend call.

Queue consumption:
    Each queue entry is removed with ``TransferQueue.complete()`` only after
    it was fully transferred. If the batch is aborted or fails, entries not
    yet completed remain in the queue untouched.
"""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import PurePath
from typing import TYPE_CHECKING

from panesync.core.types import FileEntry, HostError, TransferAborted, TransferError

if TYPE_CHECKING:
    from panesync.host.bridge import HostBridge
    from panesync.sync.queue import TransferQueue

logger = logging.getLogger(__name__)

CHUNK_SIZE = 65536


@dataclass
class ProgressStates:
    """Progress of a single transfer part."""

    total: int = 0
    written: int = 0
    started: float = field(default_factory=time.monotonic)

    def init(self, total: int) -> None:
        """Restart progress tracking for ``total`` bytes."""
        self.started = time.monotonic()
        self.total = total
        self.written = 0

    def update(self, delta: int) -> float:
        """Record ``delta`` written bytes and return the progress percentage."""
        self.written += delta
        return self.percent

    @property
    def progress(self) -> float:
        """Progress between 0.0 and 1.0."""
        if self.total == 0:
            return 0.0
        return min(self.written / self.total, 1.0)

    @property
    def percent(self) -> float:
        return self.progress * 100

    @property
    def bytes_per_second(self) -> float:
        elapsed = time.monotonic() - self.started
        if elapsed <= 0:
            return float(self.written)
        return self.written / elapsed

    @property
    def eta(self) -> float | None:
        """Estimated seconds remaining, or None when unknown."""
        speed = self.bytes_per_second
        if speed <= 0:
            return None
        return max(self.total - self.written, 0) / speed

    def __str__(self) -> str:
        eta = self.eta
        eta_str = "--:--" if eta is None else f"{int(eta) // 60:02}:{int(eta) % 60:02}"
        return f"{self.percent:.2f}% - ETA {eta_str} ({self.bytes_per_second:.0f} B/s)"


class TransferStates:
    """State of a transfer batch."""

    def __init__(self) -> None:
        self._aborted = threading.Event()
        self.full = ProgressStates()
        self.partial = ProgressStates()

    @property
    def aborted(self) -> bool:
        return self._aborted.is_set()

    def abort(self) -> None:
        """Request cancellation of the transfer."""
        self._aborted.set()

    def reset(self) -> None:
        self._aborted.clear()


@contextmanager
def _transfer_errors() -> Iterator[None]:
    """Translate backend failures into TransferError."""
    try:
        yield
    except HostError as e:
        raise TransferError(str(e)) from e


class TransferExecutor:
    """Copies entries from ``source`` to ``destination``.

    Directories are created (existing ones are reused) and copied
    recursively, symlinks are recreated, regular files are streamed in
    chunks. Missing parent directories of a queued destination are created
    first, so walker results keep their nesting on the other side.
    """

    def __init__(
        self,
        source: HostBridge,
        destination: HostBridge,
        state: TransferStates | None = None,
        chunk_size: int = CHUNK_SIZE,
        on_progress: Callable[[TransferStates], None] | None = None,
        tick: Callable[[], None] | None = None,
    ) -> None:
        """Initialize the executor.

        Args:
            source: Backend entries are read from.
            destination: Backend entries are written to.
            state: Abort flag and progress; a private one is used when omitted.
            chunk_size: Bytes per read/write.
            on_progress: Called after every written chunk.
            tick: Called between chunks so the event loop can deliver an abort.
        """
        self._source = source
        self._destination = destination
        self.state = state or TransferStates()
        self._chunk_size = chunk_size
        self._on_progress = on_progress
        self._tick = tick

    def send_queue(self, queue: TransferQueue) -> int:
        """Transfer every queued entry in order.

        Returns:
            Number of entries transferred.

        Raises:
            TransferAborted: The state was aborted; completed entries are
                already removed from the queue.
            TransferError: A backend call failed.
        """
        items = queue.pending()
        self.state.reset()
        self.state.full.init(sum(self._total_size(item.entry) for item in items))
        logger.debug("Transferring %d entries (%d bytes)", len(items), self.state.full.total)

        count = 0
        for item in items:
            self._check_aborted()
            self._ensure_parents(item.destination)
            self._send_recurse(item.entry, item.destination)
            queue.complete(item.source)
            count += 1
        return count

    def send_entry(self, entry: FileEntry, dest: PurePath) -> None:
        """Transfer a single entry to ``dest``.

        Raises:
            TransferAborted, TransferError: As :meth:`send_queue`.
        """
        self.state.reset()
        self.state.full.init(self._total_size(entry))
        self._send_recurse(entry, dest)

    def _check_aborted(self) -> None:
        if self._tick is not None:
            self._tick()
        if self.state.aborted:
            raise TransferAborted()

    def _ensure_parents(self, dest: PurePath) -> None:
        """Create missing parent directories of ``dest`` on the destination."""
        missing: list[PurePath] = []
        with _transfer_errors():
            for parent in dest.parents:
                if self._destination.exists(parent):
                    break
                missing.append(parent)
            for parent in reversed(missing):
                self._destination.mkdir(parent, ignore_existing=True)

    def _total_size(self, entry: FileEntry) -> int:
        if entry.is_symlink:
            return 0
        if not entry.is_dir:
            return entry.size
        with _transfer_errors():
            children = self._source.list_dir(entry.path)
        return sum(self._total_size(child) for child in children)

    def _send_recurse(self, entry: FileEntry, dest: PurePath) -> None:
        target = entry.metadata.symlink_target
        if target is not None:
            logger.debug("Creating symlink %s -> %s", dest, target)
            with _transfer_errors():
                if self._destination.exists(dest):
                    self._destination.remove(self._destination.stat(dest))
                self._destination.symlink(dest, target)
        elif entry.is_dir:
            logger.debug("Copying directory %s to %s", entry.path, dest)
            with _transfer_errors():
                self._destination.mkdir(
                    dest,
                    entry.metadata.permissions or 0o755,
                    ignore_existing=True,
                )
                children = self._source.list_dir(entry.path)
            for child in children:
                self._check_aborted()
                self._send_recurse(child, dest / child.name)
        else:
            self._send_file(entry, dest)

    def _send_file(self, entry: FileEntry, dest: PurePath) -> None:
        logger.debug("Copying %s to %s", entry.path, dest)
        self.state.partial.init(entry.size)
        try:
            with _transfer_errors():
                reader = self._source.open_file(entry.path)
            with reader, _transfer_errors():
                writer = self._destination.create_file(dest, entry.metadata)
                with writer:
                    while True:
                        self._check_aborted()
                        chunk = reader.read(self._chunk_size)
                        if not chunk:
                            break
                        writer.write(chunk)
                        self.state.partial.update(len(chunk))
                        self.state.full.update(len(chunk))
                        if self._on_progress is not None:
                            self._on_progress(self.state)
        except OSError as e:
            raise TransferError(f"could not copy {entry.path} to {dest}: {e}") from e
        except TransferAborted:
            self._discard_partial(dest)
            raise

    def _discard_partial(self, dest: PurePath) -> None:
        try:
            self._destination.remove(self._destination.stat(dest))
        except HostError as e:
            logger.warning("Could not remove partial file %s: %s", dest, e)
