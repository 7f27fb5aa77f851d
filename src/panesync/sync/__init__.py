"""Sync core: walking, marking, transferring and watching.

Components:
- **walk / WalkdirState**: Depth-first directory enumeration with cooperative cancellation
- **TransferQueue**: Marked entries paired with their destination on the other side
- **TransferExecutor**: Drains a queue from one backend into the other
- **WatcherBridge**: Maps watched local paths to remote targets, resolves their changes
- **Filter**: Regex-or-wildcard name matching
- **SyncSession**: Two panes wired together, the boundary turning errors into log records

Flow: HostBridge → walk / Filter → TransferQueue → TransferExecutor → HostBridge
      watchdog → WatcherBridge.poll → SyncSession.poll_watcher → remote HostBridge
"""

from panesync.sync.changes import (
    FileToRemove,
    FileToRename,
    FileUpdate,
    FsChange,
    fs_move,
    fs_move_between,
    fs_remove,
    fs_update,
)
from panesync.sync.filter import Filter, RegexFilter, WildcardFilter
from panesync.sync.log import LogRecord, SessionLog
from panesync.sync.queue import TransferQueue, TransferQueueEntry
from panesync.sync.session import Pane, Side, SyncSession
from panesync.sync.transfer import (
    CHUNK_SIZE,
    ProgressStates,
    TransferExecutor,
    TransferStates,
)
from panesync.sync.walker import WalkdirState, walk, walk_backend
from panesync.sync.watcher import (
    ChangeType,
    DebouncedEventHandler,
    FileChange,
    WatchedPath,
    WatcherBridge,
)

__all__ = [
    # Changes
    "FileToRemove",
    "FileToRename",
    "FileUpdate",
    "FsChange",
    "fs_move",
    "fs_move_between",
    "fs_remove",
    "fs_update",
    # Filter
    "Filter",
    "RegexFilter",
    "WildcardFilter",
    # Log
    "LogRecord",
    "SessionLog",
    # Queue
    "TransferQueue",
    "TransferQueueEntry",
    # Session
    "Pane",
    "Side",
    "SyncSession",
    # Transfer
    "CHUNK_SIZE",
    "ProgressStates",
    "TransferExecutor",
    "TransferStates",
    # Walker
    "WalkdirState",
    "walk",
    "walk_backend",
    # Watcher
    "ChangeType",
    "DebouncedEventHandler",
    "FileChange",
    "WatchedPath",
    "WatcherBridge",
]
