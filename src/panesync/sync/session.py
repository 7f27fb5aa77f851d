"""Two-pane sync session.

This module provides:
- Side: Which pane an action applies to
- Pane: A backend, its current listing, its filter and its transfer queue
- SyncSession: The actions the UI layer triggers (listing, filtering,
  marking, walking, transferring, watching) and the watcher poll step

The session is the error boundary of the sync core: walk, transfer and
watcher failures are turned into session log records here and never
propagate to the hosting loop, except for the walk trigger, whose
``WalkError`` is part of its contract.

Usage:
    session = SyncSession(Localhost("~"), remote_backend)
    session.reload(Side.HOST)
    session.mark_all(Side.HOST)
    session.transfer_queue(Side.HOST)

    # In the event loop
    session.poll_watcher()
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum
from pathlib import PurePath

from panesync.core.config import SessionConfig
from panesync.core.types import (
    FileEntry,
    HostError,
    HostErrorKind,
    LogLevel,
    PathNotWatched,
    TransferAborted,
    TransferError,
    WalkAborted,
    WalkFailed,
    WatcherError,
)
from panesync.host.bridge import HostBridge
from panesync.sync.changes import FileToRemove, FileToRename, FileUpdate, FsChange
from panesync.sync.filter import Filter
from panesync.sync.log import LogRecord, SessionLog
from panesync.sync.queue import TransferQueue
from panesync.sync.transfer import TransferExecutor, TransferStates
from panesync.sync.walker import WalkdirState, walk_backend
from panesync.sync.watcher import WatcherBridge

logger = logging.getLogger(__name__)


class Side(Enum):
    """One of the two panes of a session."""

    HOST = "host"
    REMOTE = "remote"

    @property
    def opposite(self) -> Side:
        return Side.REMOTE if self is Side.HOST else Side.HOST


@dataclass
class Pane:
    """State of one side of the session.

    ``wrkdir`` is the last working directory the backend reported. It is
    refreshed by the session on reload and directory changes only, so marking
    never calls the backend. Until the backend answers, it is ``.``, which
    backends resolve against their own working directory.
    """

    fs: HostBridge
    wrkdir: PurePath = PurePath(".")
    queue: TransferQueue = field(default_factory=TransferQueue)
    entries: list[FileEntry] = field(default_factory=list)
    filter: Filter | None = None

    def visible(self) -> list[FileEntry]:
        """Current listing narrowed by the active filter."""
        if self.filter is None:
            return list(self.entries)
        return self.filter.apply(self.entries)


class SyncSession:
    """Sync core shared by the host and the remote pane."""

    def __init__(
        self,
        host: HostBridge,
        remote: HostBridge,
        config: SessionConfig | None = None,
        watcher: WatcherBridge | None = None,
        tick: Callable[[], None] | None = None,
        on_log: Callable[[LogRecord], None] | None = None,
    ) -> None:
        """Initialize the session.

        Args:
            host: Local backend.
            remote: Remote backend.
            config: Session configuration.
            watcher: Path watcher; an unavailable one is used when omitted.
            tick: Called at every walk/transfer suspension point so the
                event loop can process input.
            on_log: Called with every session log record as it is added.
        """
        self.config = config or SessionConfig()
        self.log = SessionLog(self.config.log_capacity, on_record=on_log)
        self._panes = {Side.HOST: Pane(host), Side.REMOTE: Pane(remote)}
        self.watcher = watcher if watcher is not None else WatcherBridge(None)
        self.transfer_states = TransferStates()
        self._tick = tick
        for side in Side:
            self._refresh_wrkdir(side)

    def pane(self, side: Side) -> Pane:
        return self._panes[side]

    @property
    def host(self) -> Pane:
        return self._panes[Side.HOST]

    @property
    def remote(self) -> Pane:
        return self._panes[Side.REMOTE]

    # -- listing & filtering

    def _refresh_wrkdir(self, side: Side) -> None:
        pane = self.pane(side)
        try:
            pane.wrkdir = pane.fs.pwd()
        except HostError as e:
            self.log.log_and_alert(
                LogLevel.ERROR, f"could not get working directory on {side.value}: {e}"
            )

    def reload(self, side: Side) -> list[FileEntry]:
        """Re-list the working directory of ``side``.

        On failure the previous listing is kept and the error is logged.
        """
        pane = self.pane(side)
        try:
            pane.wrkdir = pane.fs.pwd()
            pane.entries = pane.fs.list_dir(pane.wrkdir)
        except HostError as e:
            self.log.log_and_alert(LogLevel.ERROR, f"could not scan working directory: {e}")
        return pane.entries

    def change_dir(self, side: Side, path: PurePath) -> bool:
        """Enter ``path`` on ``side`` and reload its listing."""
        pane = self.pane(side)
        try:
            new_dir = pane.fs.change_wrkdir(path)
        except HostError as e:
            self.log.log_and_alert(LogLevel.ERROR, f"could not change working directory: {e}")
            return False
        pane.wrkdir = new_dir
        self.log.log(LogLevel.INFO, f"changed directory on {side.value}: {new_dir}")
        self.reload(side)
        return True

    def set_filter(self, side: Side, pattern: str | None) -> list[FileEntry]:
        """Set (or clear with None) the filter of ``side``; return the visible entries."""
        pane = self.pane(side)
        pane.filter = Filter.compile(pattern) if pattern else None
        return pane.visible()

    def filter(self, side: Side, pattern: str) -> list[FileEntry]:
        """Entries of the current listing of ``side`` matching ``pattern``."""
        return Filter.compile(pattern).apply(self.pane(side).entries)

    # -- marking

    def mark(self, side: Side, entry: FileEntry) -> None:
        self.pane(side).queue.mark(entry, self.pane(side.opposite).wrkdir)

    def toggle_mark(self, side: Side, entry: FileEntry) -> bool:
        """Mark ``entry`` or unmark it if already marked."""
        return self.pane(side).queue.toggle(entry, self.pane(side.opposite).wrkdir)

    def mark_all(self, side: Side) -> int:
        """Mark every visible entry of ``side``."""
        pane = self.pane(side)
        return pane.queue.mark_all(pane.visible(), self.pane(side.opposite).wrkdir)

    def unmark(self, side: Side, entry: FileEntry) -> None:
        self.pane(side).queue.unmark(entry)

    def clear_marks(self, side: Side) -> None:
        self.pane(side).queue.clear()

    # -- walking

    def walk(
        self,
        side: Side,
        state: WalkdirState | None = None,
        filter_: Filter | None = None,
        on_progress: Callable[[int], None] | None = None,
    ) -> list[FileEntry]:
        """Walk the working directory of ``side``.

        Raises:
            WalkAborted: The walk was cancelled through ``state``.
            WalkFailed: A backend call failed.
        """
        pane = self.pane(side)
        return walk_backend(
            pane.fs,
            pane.wrkdir,
            state=state,
            tick=self._tick,
            on_progress=on_progress,
            filter_=filter_,
        )

    def find(
        self,
        side: Side,
        pattern: str,
        state: WalkdirState | None = None,
    ) -> list[FileEntry] | None:
        """Walk ``side`` keeping entries matching ``pattern``.

        Returns:
            Matching entries, or None if the walk was aborted or failed
            (reported in the session log).
        """
        try:
            return self.walk(side, state=state, filter_=Filter.compile(pattern))
        except WalkAborted:
            self.log.log(LogLevel.INFO, "search aborted")
        except WalkFailed as e:
            self.log.log_and_alert(LogLevel.ERROR, f"search failed: {e}")
        return None

    def mark_walked(self, side: Side, entries: list[FileEntry], root: PurePath) -> int:
        """Mark walk results, reproducing their layout below the opposite working directory."""
        return self.pane(side).queue.mark_walked(
            entries, root, self.pane(side.opposite).wrkdir
        )

    # -- transfers

    def transfer_queue(self, side: Side) -> bool:
        """Transfer the queue of ``side`` to the opposite pane.

        The queue is cleared afterwards, whether the batch completed, was
        aborted or failed.

        Returns:
            True if every entry was transferred.
        """
        pane = self.pane(side)
        if not pane.queue:
            return True
        executor = TransferExecutor(
            pane.fs,
            self.pane(side.opposite).fs,
            state=self.transfer_states,
            chunk_size=self.config.transfer_chunk_size,
            tick=self._tick,
        )
        total = len(pane.queue)
        try:
            count = executor.send_queue(pane.queue)
        except TransferAborted:
            self.log.log(
                LogLevel.WARN,
                f"transfer aborted after {total - len(pane.queue)} of {total} entries",
            )
            return False
        except TransferError as e:
            self.log.log_and_alert(LogLevel.ERROR, f"transfer failed: {e}")
            return False
        finally:
            pane.queue.clear()
            self.reload(side.opposite)
        self.log.log(LogLevel.INFO, f"transferred {count} entries")
        return True

    def abort_transfer(self) -> None:
        self.transfer_states.abort()

    # -- watcher

    def watch(self, local: PurePath, remote: PurePath) -> None:
        """Start syncing changes of ``local`` into ``remote``."""
        if not self.watcher.available:
            return
        logger.debug("tracking changes at %s to %s", local, remote)
        try:
            self.watcher.watch(local, remote)
        except WatcherError as e:
            self.log.log_and_alert(LogLevel.ERROR, f"could not track changes to {local}: {e}")
            return
        self.log.log(LogLevel.INFO, f"changes to {local} will now be synched with {remote}")

    def unwatch(self, local: PurePath) -> None:
        """Stop syncing ``local`` (or the watched path containing it)."""
        if not self.watcher.available:
            return
        logger.debug("unwatching path at %s", local)
        try:
            path = self.watcher.unwatch(local)
        except PathNotWatched as e:
            self.log.log(LogLevel.WARN, str(e))
            return
        except WatcherError as e:
            self.log.log_and_alert(LogLevel.ERROR, f"could not unwatch path: {e}")
            return
        self.log.log(LogLevel.INFO, f"{path} is no longer watched")

    def toggle_watch(self, entry: FileEntry) -> None:
        """Watch a host entry into the remote working directory, or unwatch it."""
        if self.watcher.watched(entry.path):
            self.unwatch(entry.path)
        else:
            self.watch(entry.path, self.remote.wrkdir / entry.name)

    def poll_watcher(self) -> FsChange | None:
        """Apply at most one pending watcher change to the remote backend.

        Returns:
            The change that was handled, or None if nothing was pending.
        """
        change = self.watcher.poll()
        if isinstance(change, FileToRename):
            logger.debug("fs watcher reported a move from %s to %s", change.source, change.destination)
            self._move_watched_file(change)
        elif isinstance(change, FileToRemove):
            logger.debug("fs watcher reported a removal of %s", change.path)
            self._remove_watched_file(change.path)
        elif isinstance(change, FileUpdate):
            logger.debug("fs watcher reported an update from %s to %s", change.host, change.remote)
            self._upload_watched_file(change.host, change.remote)
        return change

    def _move_watched_file(self, change: FileToRename) -> None:
        source, destination = change.source, change.destination
        fs = self.remote.fs
        try:
            origin = fs.stat(source)
        except HostError as e:
            if e.kind is HostErrorKind.NO_SUCH_FILE and change.host is not None:
                logger.debug("%s is not on the remote, uploading %s instead", source, change.host)
                self._upload_watched_file(change.host, destination)
                return
            self.log.log(LogLevel.ERROR, f"failed to stat file to rename {source}: {e}")
            return
        try:
            fs.rename(origin, destination)
        except HostError as e:
            self.log.log(LogLevel.ERROR, f"failed to rename {source} to {destination}: {e}")
            return
        self.log.log(LogLevel.INFO, f"renamed watched file {source} to {destination}")

    def _remove_watched_file(self, path: PurePath) -> None:
        fs = self.remote.fs
        try:
            entry = fs.stat(path)
        except HostError as e:
            self.log.log(LogLevel.ERROR, f"failed to stat watched file {path}: {e}")
            return
        try:
            fs.remove(entry)
        except HostError as e:
            self.log.log(LogLevel.ERROR, f"failed to remove watched file {path}: {e}")
            return
        self.log.log(LogLevel.INFO, f"removed watched file at {path}")

    def _upload_watched_file(self, host: PurePath, remote: PurePath) -> None:
        try:
            entry = self.host.fs.stat(host)
        except HostError as e:
            self.log.log(
                LogLevel.ERROR,
                f"failed to sync file {remote} with remote (stat failed): {e}",
            )
            return
        try:
            if entry.is_dir:
                self.remote.fs.mkdir(
                    remote, entry.metadata.permissions or 0o755, ignore_existing=True
                )
            else:
                TransferExecutor(
                    self.host.fs,
                    self.remote.fs,
                    chunk_size=self.config.transfer_chunk_size,
                ).send_entry(entry, remote)
        except (HostError, TransferError) as e:
            self.log.log(LogLevel.ERROR, f"failed to sync watched file {remote}: {e}")
            return
        self.log.log(LogLevel.INFO, f"synched watched file {host} with {remote}")
