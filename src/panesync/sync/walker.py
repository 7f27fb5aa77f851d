"""Recursive directory walker with cooperative cancellation.

This module provides:
- WalkdirState: Cancellation token and progress counter owned by the caller
- walk: Enumerate a subtree through any ``list_dir`` callable
- walk_backend: Walk a HostBridge from its working directory

The walk is driven by an explicit stack of pending directories instead of
recursion, so very deep trees do not hit the interpreter's recursion limit.
Expansion order is depth-first: the entries of a directory are emitted
contiguously in backend order, then each of its subdirectories is fully
expanded before the next sibling.

Between two directories the walker calls ``tick`` once, which lets the host
event loop read input (e.g. a cancel keypress), and then checks the state's
``aborted`` flag. That is the only suspension point; a backend call already
in flight always completes before an abort is observed.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from pathlib import PurePath
from typing import TYPE_CHECKING

from panesync.core.types import FileEntry, HostError, WalkAborted, WalkFailed

if TYPE_CHECKING:
    from panesync.host.bridge import HostBridge
    from panesync.sync.filter import Filter

logger = logging.getLogger(__name__)

ListDirFn = Callable[[PurePath], list[FileEntry]]


class WalkdirState:
    """State of a single walk.

    ``abort()`` may be called from any thread or from the ``tick`` callback.
    The flag is never cleared during a walk; ``reset()`` prepares the state
    for a fresh one.
    """

    def __init__(self) -> None:
        self._aborted = threading.Event()
        self.visited_count = 0

    @property
    def aborted(self) -> bool:
        """Whether cancellation was requested."""
        return self._aborted.is_set()

    def abort(self) -> None:
        """Request cancellation of the walk."""
        self._aborted.set()

    def reset(self) -> None:
        """Clear the abort flag and the progress counter."""
        self._aborted.clear()
        self.visited_count = 0


def walk(
    root: PurePath,
    list_dir: ListDirFn,
    state: WalkdirState | None = None,
    tick: Callable[[], None] | None = None,
    on_progress: Callable[[int], None] | None = None,
    acc: list[FileEntry] | None = None,
    filter_: Filter | None = None,
) -> list[FileEntry]:
    """Enumerate every entry below ``root``.

    Only entries whose own ``is_dir`` is true are descended into. Symlinks
    are left out of the result and never followed, so link cycles cannot
    recurse.

    Args:
        root: Directory to walk.
        list_dir: Callable listing one directory; may raise any exception.
        state: Cancellation token; a private one is used when omitted.
        tick: Called once per directory boundary to service the event loop.
        on_progress: Called with the number of accumulated entries after
            each directory.
        acc: Accumulator to extend. Pass one to inspect what was collected
            after an aborted walk; it only ever holds fully listed directories.
        filter_: When given, only matching entries are accumulated. Every
            directory is still descended.

    Returns:
        The accumulated entries.

    Raises:
        WalkAborted: The state was aborted; the result must be discarded.
        WalkFailed: A ``list_dir`` call failed; the walk stops immediately.
    """
    if state is None:
        state = WalkdirState()
    if acc is None:
        acc = []

    pending: list[PurePath] = [root]
    while pending:
        path = pending.pop()
        try:
            dir_entries = list_dir(path)
        except HostError as e:
            logger.debug("Walk failed at %s: %s", path, e)
            raise WalkFailed(str(e)) from e
        except Exception as e:
            logger.debug("Walk failed at %s: %s", path, e)
            raise WalkFailed(f"could not list {path}: {e}") from e

        # Links are neither reported nor followed
        reported = [entry for entry in dir_entries if not entry.is_symlink]
        if filter_ is None:
            acc.extend(reported)
        else:
            acc.extend(filter_.apply(reported))
        state.visited_count += len(reported)
        if on_progress is not None:
            on_progress(len(acc))

        # Reverse so that the first subdirectory is expanded first
        pending.extend(
            entry.path for entry in reversed(reported) if entry.is_dir
        )

        if tick is not None:
            tick()
        if state.aborted:
            logger.debug(
                "Walk of %s aborted after %d entries", root, state.visited_count
            )
            raise WalkAborted()

    logger.debug("Walked %s: %d entries", root, len(acc))
    return acc


def walk_backend(
    backend: HostBridge,
    root: PurePath | None = None,
    state: WalkdirState | None = None,
    tick: Callable[[], None] | None = None,
    on_progress: Callable[[int], None] | None = None,
    acc: list[FileEntry] | None = None,
    filter_: Filter | None = None,
) -> list[FileEntry]:
    """Walk ``backend`` from ``root``, or from its working directory.

    Raises:
        WalkAborted, WalkFailed: As :func:`walk`; a failing ``pwd`` is a
            ``WalkFailed`` too.
    """
    if root is None:
        try:
            root = backend.pwd()
        except HostError as e:
            raise WalkFailed(str(e)) from e
    return walk(
        root,
        backend.list_dir,
        state=state,
        tick=tick,
        on_progress=on_progress,
        acc=acc,
        filter_=filter_,
    )
