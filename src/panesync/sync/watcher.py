"""Path watcher bridging local filesystem changes to a remote target.

This module provides:
- ChangeType, FileChange: Raw change notifications from watchdog
- DebouncedEventHandler: Coalesces rapid events per path into a channel
- WatchedPath: A local path mapped to a remote destination
- WatcherBridge: watch / unwatch / watched / poll over a watchdog Observer

Notifications are produced on the observer thread and only ever pushed into
a ``queue.Queue``. The session's main loop calls ``poll()``, which dequeues
at most one change and resolves it against the watched paths, so remote
operations triggered by the watcher are applied one at a time on the main
thread.

Availability is decided once, when the bridge is created. If the observer
cannot be started, the bridge is unavailable and every operation is a
silent no-op; callers check ``available`` before offering watch actions.
"""

from __future__ import annotations

import logging
import os
import queue
import threading
import time
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path, PurePath
from typing import TYPE_CHECKING

from watchdog.events import (
    DirCreatedEvent,
    DirDeletedEvent,
    DirModifiedEvent,
    DirMovedEvent,
    FileCreatedEvent,
    FileDeletedEvent,
    FileModifiedEvent,
    FileMovedEvent,
    FileSystemEvent,
    FileSystemEventHandler,
)
from watchdog.observers import Observer

from panesync.core.paths import is_child_of
from panesync.core.types import PathNotWatched, WatcherError
from panesync.sync.changes import (
    FsChange,
    fs_move,
    fs_move_between,
    fs_remove,
    fs_update,
)

if TYPE_CHECKING:
    from watchdog.observers.api import BaseObserver, ObservedWatch

logger = logging.getLogger(__name__)


class ChangeType(Enum):
    """Type of file system change."""

    CREATED = "created"
    MODIFIED = "modified"
    DELETED = "deleted"
    MOVED = "moved"


@dataclass
class FileChange:
    """Represents a file system change event."""

    path: Path
    change_type: ChangeType
    is_directory: bool
    timestamp: float = field(default_factory=time.time)
    dest_path: Path | None = None  # For MOVED events


def _decode(path: str | bytes) -> str:
    if isinstance(path, bytes):
        return path.decode("utf-8", errors="replace")
    return path


class DebouncedEventHandler(FileSystemEventHandler):
    """Event handler that debounces rapid file system events.

    Changes are kept per path; a new event for the same path replaces the
    pending one, except that a pending creation stays a creation and is
    carried over to the new name when the file is renamed. Once no event has arrived for ``delay_s`` seconds, all
    pending changes are pushed to the channel. With ``delay_s == 0`` changes
    are pushed immediately.
    """

    def __init__(self, channel: queue.Queue[FileChange], delay_s: float = 1.0) -> None:
        """Initialize the debounced handler.

        Args:
            channel: Queue receiving the coalesced changes.
            delay_s: Quiet period before pending changes are flushed.
        """
        super().__init__()
        self._channel = channel
        self._delay_s = delay_s

        # Pending changes keyed by path
        self._pending: dict[str, FileChange] = {}
        self._lock = threading.Lock()
        self._timer: threading.Timer | None = None

    def _schedule_flush(self) -> None:
        """Schedule a flush of pending changes after the delay."""
        if self._timer:
            self._timer.cancel()

        self._timer = threading.Timer(self._delay_s, self._flush_changes)
        self._timer.daemon = True
        self._timer.start()

    def _flush_changes(self) -> None:
        """Push pending changes to the channel."""
        with self._lock:
            changes = list(self._pending.values())
            self._pending.clear()
            self._timer = None

        for change in changes:
            self._channel.put(change)

    def _handle_event(self, event: FileSystemEvent) -> None:
        """Translate a watchdog event and queue it for flushing."""
        # A modified directory only means one of its children changed,
        # which is reported by its own event.
        if isinstance(event, DirModifiedEvent):
            return

        if isinstance(event, FileCreatedEvent | DirCreatedEvent):
            change_type = ChangeType.CREATED
        elif isinstance(event, FileModifiedEvent):
            change_type = ChangeType.MODIFIED
        elif isinstance(event, FileDeletedEvent | DirDeletedEvent):
            change_type = ChangeType.DELETED
        elif isinstance(event, FileMovedEvent | DirMovedEvent):
            change_type = ChangeType.MOVED
        else:
            return

        dest_path = None
        if change_type is ChangeType.MOVED:
            dest_path = Path(_decode(event.dest_path))

        change = FileChange(
            path=Path(_decode(event.src_path)),
            change_type=change_type,
            is_directory=event.is_directory,
            dest_path=dest_path,
        )
        logger.debug("Watcher saw %s on %s", change_type.value, change.path)

        if self._delay_s <= 0:
            self._channel.put(change)
            return

        with self._lock:
            pending = self._pending.get(str(change.path))
            if pending is not None and pending.change_type is ChangeType.CREATED:
                if change.change_type is ChangeType.MODIFIED:
                    # Still a new file
                    change = pending
                elif change.dest_path is not None:
                    # Created and renamed within the delay (atomic save):
                    # only the final name exists.
                    del self._pending[str(change.path)]
                    change = FileChange(
                        path=change.dest_path,
                        change_type=ChangeType.CREATED,
                        is_directory=change.is_directory,
                    )
            self._pending[str(change.path)] = change
            self._schedule_flush()

    def on_created(self, event: FileSystemEvent) -> None:
        """Handle created event."""
        self._handle_event(event)

    def on_modified(self, event: FileSystemEvent) -> None:
        """Handle modified event."""
        self._handle_event(event)

    def on_deleted(self, event: FileSystemEvent) -> None:
        """Handle deleted event."""
        self._handle_event(event)

    def on_moved(self, event: FileSystemEvent) -> None:
        """Handle moved event."""
        self._handle_event(event)

    def stop(self) -> None:
        """Stop any pending timers."""
        with self._lock:
            if self._timer:
                self._timer.cancel()
                self._timer = None


@dataclass
class WatchedPath:
    """A local path whose changes are replayed under ``remote``."""

    local: Path
    remote: PurePath
    active: bool = True


def _normalize(path: PurePath) -> Path:
    return Path(os.path.abspath(Path(path).expanduser())).resolve()


class WatcherBridge:
    """Maps watched local paths to remote targets and resolves their changes.

    Use :meth:`init` to create a bridge: it returns an unavailable bridge
    instead of raising when the change-notification subsystem cannot start.
    """

    def __init__(
        self,
        observer: BaseObserver | None,
        delay_s: float = 1.0,
    ) -> None:
        """Initialize the bridge.

        Args:
            observer: A started watchdog observer, or None for an
                unavailable bridge.
            delay_s: Debounce delay for change notifications.
        """
        self._observer = observer
        self._channel: queue.Queue[FileChange] = queue.Queue()
        self._handler = DebouncedEventHandler(self._channel, delay_s=delay_s)
        self._paths: dict[Path, WatchedPath] = {}
        self._handles: dict[Path, ObservedWatch] = {}

    @classmethod
    def init(cls, delay_s: float = 1.0) -> WatcherBridge:
        """Start an observer and return a bridge around it.

        Returns:
            An available bridge, or an unavailable one if the observer
            could not be started.
        """
        observer = Observer()
        observer.daemon = True
        try:
            observer.start()
        except (OSError, RuntimeError) as e:
            logger.warning("File watcher unavailable: %s", e)
            return cls(None, delay_s=delay_s)
        return cls(observer, delay_s=delay_s)

    @property
    def available(self) -> bool:
        """Whether the change-notification subsystem is running."""
        return self._observer is not None

    def watch(self, local: PurePath, remote: PurePath) -> None:
        """Replay changes under ``local`` into ``remote``.

        Watching a path that is already watched only updates its remote
        target. Does nothing when the bridge is unavailable.

        Raises:
            WatcherError: If the path does not exist or cannot be watched.
        """
        if self._observer is None:
            return

        local_path = _normalize(local)
        existing = self._paths.get(local_path)
        if existing is not None:
            logger.debug("Updating watch %s: %s -> %s", local_path, existing.remote, remote)
            existing.remote = remote
            return

        if not local_path.exists():
            raise WatcherError(f"cannot watch {local_path}: no such file or directory")

        # Single files are observed through their parent directory; changes
        # to siblings are dropped because they resolve to no watched path.
        if local_path.is_dir():
            target, recursive = local_path, True
        else:
            target, recursive = local_path.parent, False

        try:
            handle = self._observer.schedule(self._handler, str(target), recursive=recursive)
        except OSError as e:
            raise WatcherError(f"cannot watch {local_path}: {e}") from e

        self._paths[local_path] = WatchedPath(local=local_path, remote=remote)
        self._handles[local_path] = handle
        logger.debug("Watching %s -> %s", local_path, remote)

    def unwatch(self, local: PurePath) -> Path | None:
        """Stop watching ``local`` or the watched path containing it.

        Returns:
            The watched local path that was removed, or None when the bridge
            is unavailable.

        Raises:
            PathNotWatched: If neither the path nor an ancestor is watched.
            WatcherError: If the observer fails to unschedule the path.
        """
        if self._observer is None:
            return None

        watched = self._find_watched_path(_normalize(local))
        if watched is None:
            raise PathNotWatched(local)

        handle = self._handles.pop(watched.local)
        del self._paths[watched.local]
        watched.active = False
        # Files in the same directory share one observed watch
        if handle not in self._handles.values():
            try:
                self._observer.unschedule(handle)
            except (KeyError, OSError) as e:
                raise WatcherError(f"could not unwatch {watched.local}: {e}") from e
        logger.debug("Stopped watching %s", watched.local)
        return watched.local

    def watched(self, local: PurePath) -> bool:
        """Whether ``local`` is watched, directly or through an ancestor."""
        if self._observer is None:
            return False
        return self._find_watched_path(_normalize(local)) is not None

    def watched_paths(self) -> list[Path]:
        """Watched local paths in the order they were added."""
        return list(self._paths)

    def remote_for(self, local: PurePath) -> PurePath | None:
        """Remote target of the watched path containing ``local``."""
        if self._observer is None:
            return None
        watched = self._find_watched_path(_normalize(local))
        return watched.remote if watched is not None else None

    def poll(self) -> FsChange | None:
        """Dequeue one change and resolve it to remote paths.

        Returns:
            The change to apply, or None if nothing is pending or the change
            does not belong to any watched path.
        """
        if self._observer is None:
            return None

        if not self._observer.is_alive():
            logger.error("File watcher stopped; dropping %d watched paths", len(self._paths))
            self._mark_unavailable()
            return None

        try:
            change = self._channel.get_nowait()
        except queue.Empty:
            return None
        return self._resolve(change)

    def _resolve(self, change: FileChange) -> FsChange | None:
        watched = self._find_watched_path(change.path)

        if change.change_type is ChangeType.MOVED and change.dest_path is not None:
            dest_watched = self._find_watched_path(change.dest_path)
            if watched is not None and dest_watched is watched:
                return fs_move(change.path, change.dest_path, watched.local, watched.remote)
            if watched is not None and dest_watched is not None:
                # Moved between two watched paths
                return fs_move_between(
                    change.path,
                    change.dest_path,
                    watched.local,
                    watched.remote,
                    dest_watched.local,
                    dest_watched.remote,
                )
            if watched is not None:
                # Moved out of the watched tree
                return fs_remove(change.path, watched.local, watched.remote)
            if dest_watched is not None:
                # Moved into the watched tree
                return fs_update(change.dest_path, dest_watched.local, dest_watched.remote)
            return None

        if watched is None:
            return None
        if change.change_type is ChangeType.DELETED:
            return fs_remove(change.path, watched.local, watched.remote)
        return fs_update(change.path, watched.local, watched.remote)

    def _find_watched_path(self, path: Path) -> WatchedPath | None:
        """Return the deepest watched path that is ``path`` or an ancestor of it."""
        best: WatchedPath | None = None
        for watched in self._paths.values():
            if is_child_of(path, watched.local) and (
                best is None or len(watched.local.parts) > len(best.local.parts)
            ):
                best = watched
        return best

    def _mark_unavailable(self) -> None:
        for watched in self._paths.values():
            watched.active = False
        self._paths.clear()
        self._handles.clear()
        self._handler.stop()
        self._observer = None

    def close(self) -> None:
        """Stop the observer and forget every watched path."""
        if self._observer is None:
            return
        observer = self._observer
        self._mark_unavailable()
        observer.stop()
        observer.join(timeout=5.0)

    def __enter__(self) -> WatcherBridge:
        """Context manager entry."""
        return self

    def __exit__(self, *args: object) -> None:
        """Context manager exit."""
        self.close()
