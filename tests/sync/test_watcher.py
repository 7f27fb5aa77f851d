"""Tests for the path watcher bridge."""

from __future__ import annotations

import queue
import time
from collections.abc import Iterator
from pathlib import Path, PurePosixPath

import pytest
from watchdog.events import (
    DirModifiedEvent,
    FileCreatedEvent,
    FileModifiedEvent,
    FileMovedEvent,
)

from panesync.core.types import PathNotWatched, WatcherError
from panesync.sync.changes import FileToRemove, FileToRename, FileUpdate, FsChange
from panesync.sync.watcher import (
    ChangeType,
    DebouncedEventHandler,
    FileChange,
    WatcherBridge,
)

REMOTE = PurePosixPath("/remote")


@pytest.fixture
def watch_dir(tmp_path: Path) -> Path:
    """Create a directory to watch."""
    watch = tmp_path / "local"
    watch.mkdir()
    return watch.resolve()


@pytest.fixture
def bridge() -> Iterator[WatcherBridge]:
    """Start a bridge without debouncing."""
    with WatcherBridge.init(delay_s=0) as watcher:
        if not watcher.available:
            pytest.skip("file watcher not available")
        yield watcher


def inject(bridge: WatcherBridge, change: FileChange) -> FsChange | None:
    """Push a raw change as the observer thread would and poll it."""
    bridge._channel.put(change)
    return bridge.poll()


class TestFileChange:
    """Tests for FileChange dataclass."""

    def test_create_change(self) -> None:
        change = FileChange(path=Path("/test/file.txt"), change_type=ChangeType.MODIFIED, is_directory=False)
        assert change.dest_path is None
        assert change.timestamp > 0


class TestDebouncedEventHandler:
    """Tests for DebouncedEventHandler."""

    def test_coalesces_events_per_path(self, tmp_path: Path) -> None:
        """Should push one change per path; a new file stays a creation."""
        channel: queue.Queue[FileChange] = queue.Queue()
        handler = DebouncedEventHandler(channel, delay_s=0.1)
        path = str(tmp_path / "a.txt")

        handler.on_created(FileCreatedEvent(path))
        handler.on_modified(FileModifiedEvent(path))
        assert channel.empty()

        change = channel.get(timeout=3.0)
        assert change.change_type is ChangeType.CREATED
        assert channel.empty()
        handler.stop()

    def test_created_then_renamed(self, tmp_path: Path) -> None:
        """Should report a file created then renamed as created at its final name."""
        channel: queue.Queue[FileChange] = queue.Queue()
        handler = DebouncedEventHandler(channel, delay_s=0.1)
        temporary = str(tmp_path / ".doc.tmp")
        final = str(tmp_path / "doc.txt")

        handler.on_created(FileCreatedEvent(temporary))
        handler.on_modified(FileModifiedEvent(temporary))
        handler.on_moved(FileMovedEvent(temporary, final))

        change = channel.get(timeout=3.0)
        assert change.path == Path(final)
        assert change.change_type is ChangeType.CREATED
        assert change.dest_path is None
        assert channel.empty()
        handler.stop()

    def test_rename_of_existing_file_kept(self, tmp_path: Path) -> None:
        channel: queue.Queue[FileChange] = queue.Queue()
        handler = DebouncedEventHandler(channel, delay_s=0.1)
        source = str(tmp_path / "a.txt")
        destination = str(tmp_path / "b.txt")

        handler.on_moved(FileMovedEvent(source, destination))

        change = channel.get(timeout=3.0)
        assert change.change_type is ChangeType.MOVED
        assert change.dest_path == Path(destination)
        handler.stop()

    def test_directory_modified_ignored(self, tmp_path: Path) -> None:
        channel: queue.Queue[FileChange] = queue.Queue()
        handler = DebouncedEventHandler(channel, delay_s=0)
        handler.on_modified(DirModifiedEvent(str(tmp_path)))
        assert channel.empty()


class TestUnavailableBridge:
    """Tests for a bridge without an observer."""

    def test_operations_are_noops(self, watch_dir: Path) -> None:
        bridge = WatcherBridge(None)

        bridge.watch(watch_dir, REMOTE)

        assert bridge.available is False
        assert bridge.watched(watch_dir) is False
        assert bridge.watched_paths() == []
        assert bridge.unwatch(watch_dir) is None
        assert bridge.poll() is None


class TestWatch:
    """Tests for watch / unwatch / watched."""

    def test_watch_twice_updates_remote(self, bridge: WatcherBridge, watch_dir: Path) -> None:
        """Should keep one watched path, mapped to the latest remote."""
        bridge.watch(watch_dir, PurePosixPath("/b"))
        bridge.watch(watch_dir, PurePosixPath("/c"))

        assert bridge.watched_paths() == [watch_dir]
        assert bridge.remote_for(watch_dir) == PurePosixPath("/c")

    def test_watched_includes_descendants(self, bridge: WatcherBridge, watch_dir: Path) -> None:
        bridge.watch(watch_dir, REMOTE)
        assert bridge.watched(watch_dir / "deep" / "file.txt")
        assert not bridge.watched(watch_dir.parent)

    def test_watch_missing_path(self, bridge: WatcherBridge, watch_dir: Path) -> None:
        with pytest.raises(WatcherError):
            bridge.watch(watch_dir / "missing", REMOTE)

    def test_unwatch_unknown_path(self, bridge: WatcherBridge, watch_dir: Path) -> None:
        with pytest.raises(PathNotWatched):
            bridge.unwatch(watch_dir)

    def test_unwatch_child_removes_ancestor(self, bridge: WatcherBridge, watch_dir: Path) -> None:
        """Should resolve a descendant to the watched path containing it."""
        bridge.watch(watch_dir, REMOTE)

        assert bridge.unwatch(watch_dir / "a.txt") == watch_dir
        assert bridge.watched_paths() == []

    def test_files_in_same_directory(self, bridge: WatcherBridge, watch_dir: Path) -> None:
        """Should keep one file watched after unwatching its sibling."""
        (watch_dir / "a.txt").write_text("a")
        (watch_dir / "b.txt").write_text("b")
        bridge.watch(watch_dir / "a.txt", REMOTE / "a.txt")
        bridge.watch(watch_dir / "b.txt", REMOTE / "b.txt")

        bridge.unwatch(watch_dir / "a.txt")

        assert bridge.watched(watch_dir / "b.txt")
        assert not bridge.watched(watch_dir / "a.txt")


class TestPoll:
    """Tests for resolving changes to remote operations."""

    def test_update(self, bridge: WatcherBridge, watch_dir: Path) -> None:
        bridge.watch(watch_dir, REMOTE)
        change = inject(
            bridge,
            FileChange(watch_dir / "abc" / "a.txt", ChangeType.MODIFIED, is_directory=False),
        )
        assert change == FileUpdate(host=watch_dir / "abc" / "a.txt", remote=REMOTE / "abc" / "a.txt")

    def test_delete(self, bridge: WatcherBridge, watch_dir: Path) -> None:
        bridge.watch(watch_dir, REMOTE)
        change = inject(bridge, FileChange(watch_dir / "a.txt", ChangeType.DELETED, is_directory=False))
        assert change == FileToRemove(path=REMOTE / "a.txt")

    def test_move_within_watch(self, bridge: WatcherBridge, watch_dir: Path) -> None:
        bridge.watch(watch_dir, REMOTE)
        change = inject(
            bridge,
            FileChange(
                watch_dir / "a.txt",
                ChangeType.MOVED,
                is_directory=False,
                dest_path=watch_dir / "b.txt",
            ),
        )
        assert change == FileToRename(
            source=REMOTE / "a.txt",
            destination=REMOTE / "b.txt",
            host=watch_dir / "b.txt",
        )

    def test_move_out_of_watch(self, bridge: WatcherBridge, watch_dir: Path) -> None:
        """Should remove the remote copy of a file moved out of the tree."""
        bridge.watch(watch_dir, REMOTE)
        change = inject(
            bridge,
            FileChange(
                watch_dir / "a.txt",
                ChangeType.MOVED,
                is_directory=False,
                dest_path=watch_dir.parent / "a.txt",
            ),
        )
        assert change == FileToRemove(path=REMOTE / "a.txt")

    def test_move_into_watch(self, bridge: WatcherBridge, watch_dir: Path) -> None:
        """Should upload a file moved into the tree."""
        bridge.watch(watch_dir, REMOTE)
        change = inject(
            bridge,
            FileChange(
                watch_dir.parent / "a.txt",
                ChangeType.MOVED,
                is_directory=False,
                dest_path=watch_dir / "a.txt",
            ),
        )
        assert change == FileUpdate(host=watch_dir / "a.txt", remote=REMOTE / "a.txt")

    def test_unwatched_change_dropped(self, bridge: WatcherBridge, watch_dir: Path) -> None:
        bridge.watch(watch_dir, REMOTE)
        change = inject(
            bridge,
            FileChange(watch_dir.parent / "other.txt", ChangeType.MODIFIED, is_directory=False),
        )
        assert change is None

    def test_deepest_watch_wins(self, bridge: WatcherBridge, watch_dir: Path) -> None:
        """Should resolve against the innermost of nested watched paths."""
        (watch_dir / "inner").mkdir()
        bridge.watch(watch_dir, REMOTE)
        bridge.watch(watch_dir / "inner", PurePosixPath("/elsewhere"))

        change = inject(
            bridge,
            FileChange(watch_dir / "inner" / "a.txt", ChangeType.CREATED, is_directory=False),
        )
        assert change == FileUpdate(
            host=watch_dir / "inner" / "a.txt",
            remote=PurePosixPath("/elsewhere/a.txt"),
        )

    def test_move_between_watched_paths(self, bridge: WatcherBridge, watch_dir: Path) -> None:
        """Should rename from one watched remote into the other."""
        (watch_dir / "inner").mkdir()
        bridge.watch(watch_dir, REMOTE)
        bridge.watch(watch_dir / "inner", PurePosixPath("/elsewhere"))

        change = inject(
            bridge,
            FileChange(
                watch_dir / "x.txt",
                ChangeType.MOVED,
                is_directory=False,
                dest_path=watch_dir / "inner" / "x.txt",
            ),
        )
        assert change == FileToRename(
            source=REMOTE / "x.txt",
            destination=PurePosixPath("/elsewhere/x.txt"),
            host=watch_dir / "inner" / "x.txt",
        )

    def test_empty_channel(self, bridge: WatcherBridge) -> None:
        assert bridge.poll() is None

    def test_observer_death_makes_bridge_unavailable(
        self, bridge: WatcherBridge, watch_dir: Path
    ) -> None:
        bridge.watch(watch_dir, REMOTE)
        observer = bridge._observer
        assert observer is not None
        observer.stop()
        observer.join(timeout=5.0)

        assert bridge.poll() is None
        assert bridge.available is False
        assert bridge.watched_paths() == []

    def test_detects_file_creation(self, bridge: WatcherBridge, watch_dir: Path) -> None:
        """Should report a real file creation as an update."""
        bridge.watch(watch_dir, REMOTE)
        target = watch_dir / "new.txt"
        target.write_text("hello")

        deadline = time.monotonic() + 5.0
        change: FsChange | None = None
        while time.monotonic() < deadline:
            change = bridge.poll()
            if isinstance(change, FileUpdate) and change.host == target:
                break
            time.sleep(0.05)

        assert change == FileUpdate(host=target, remote=REMOTE / "new.txt")
