"""Shared fixtures for panesync tests."""

from __future__ import annotations

import io
import logging
from collections.abc import Callable, Iterator
from dataclasses import dataclass
from pathlib import PurePath, PurePosixPath
from typing import BinaryIO

import pytest

from panesync.core.paths import is_child_of
from panesync.core.types import FileEntry, HostError, HostErrorKind, Metadata


@dataclass
class _Node:
    kind: str  # "dir", "file" or "link"
    data: bytes = b""
    target: PurePosixPath | None = None
    permissions: int = 0o644


class _WriteBuffer(io.BytesIO):
    """In-memory file whose content is stored when closed."""

    def __init__(self, on_close: Callable[[bytes], None]) -> None:
        super().__init__()
        self._on_close = on_close

    def close(self) -> None:
        if not self.closed:
            self._on_close(self.getvalue())
        super().close()


class MemoryHost:
    """In-memory HostBridge.

    Directory listings are returned in insertion order. Paths listed in
    ``fail_list`` raise a HostError from ``list_dir``; every listed path is
    recorded in ``listed``.
    """

    def __init__(self, wrkdir: str = "/") -> None:
        self.nodes: dict[PurePosixPath, _Node] = {PurePosixPath("/"): _Node("dir", permissions=0o755)}
        self.fail_list: set[PurePosixPath] = set()
        self.listed: list[PurePosixPath] = []
        self._wrkdir = PurePosixPath(wrkdir)
        self.add_dir(self._wrkdir)

    # -- test helpers

    def _abs(self, path: PurePath | str) -> PurePosixPath:
        return self._wrkdir / PurePosixPath(path)

    def _ensure_parents(self, path: PurePosixPath) -> None:
        for parent in reversed(path.parents):
            self.nodes.setdefault(parent, _Node("dir", permissions=0o755))

    def add_dir(self, path: PurePath | str) -> PurePosixPath:
        target = self._abs(path)
        self._ensure_parents(target)
        self.nodes.setdefault(target, _Node("dir", permissions=0o755))
        return target

    def add_file(self, path: PurePath | str, data: bytes = b"") -> PurePosixPath:
        target = self._abs(path)
        self._ensure_parents(target)
        self.nodes[target] = _Node("file", data=data)
        return target

    def add_symlink(self, path: PurePath | str, link_target: PurePath | str) -> PurePosixPath:
        target = self._abs(path)
        self._ensure_parents(target)
        self.nodes[target] = _Node("link", target=PurePosixPath(link_target))
        return target

    def read(self, path: PurePath | str) -> bytes:
        return self.nodes[self._abs(path)].data

    def _entry(self, path: PurePosixPath) -> FileEntry:
        node = self.nodes[path]
        return FileEntry(
            path=path,
            is_dir=node.kind == "dir",
            metadata=Metadata(
                size=len(node.data),
                permissions=node.permissions,
                symlink_target=node.target,
            ),
        )

    def _require(self, path: PurePosixPath) -> _Node:
        node = self.nodes.get(path)
        if node is None:
            raise HostError(HostErrorKind.NO_SUCH_FILE, f"no such file: {path}", path)
        return node

    def _require_parent(self, path: PurePosixPath) -> None:
        parent = self.nodes.get(path.parent)
        if parent is None or parent.kind != "dir":
            raise HostError(HostErrorKind.NO_SUCH_FILE, f"no such directory: {path.parent}", path)

    # -- HostBridge

    def pwd(self) -> PurePosixPath:
        return self._wrkdir

    def change_wrkdir(self, path: PurePath) -> PurePosixPath:
        target = self._abs(path)
        if self._require(target).kind != "dir":
            raise HostError(HostErrorKind.NOT_A_DIRECTORY, f"not a directory: {target}", target)
        self._wrkdir = target
        return target

    def list_dir(self, path: PurePath) -> list[FileEntry]:
        target = self._abs(path)
        self.listed.append(target)
        if target in self.fail_list:
            raise HostError(HostErrorKind.IO_ERROR, f"could not list {target}", target)
        if self._require(target).kind != "dir":
            raise HostError(HostErrorKind.NOT_A_DIRECTORY, f"not a directory: {target}", target)
        return [
            self._entry(child)
            for child in self.nodes
            if child != target and child.parent == target
        ]

    def stat(self, path: PurePath) -> FileEntry:
        target = self._abs(path)
        self._require(target)
        return self._entry(target)

    def exists(self, path: PurePath) -> bool:
        return self._abs(path) in self.nodes

    def mkdir(self, path: PurePath, permissions: int = 0o755, ignore_existing: bool = False) -> None:
        target = self._abs(path)
        existing = self.nodes.get(target)
        if existing is not None:
            if ignore_existing and existing.kind == "dir":
                return
            raise HostError(HostErrorKind.FILE_ALREADY_EXISTS, f"file exists: {target}", target)
        self._require_parent(target)
        self.nodes[target] = _Node("dir", permissions=permissions)

    def remove(self, entry: FileEntry) -> None:
        target = self._abs(entry.path)
        self._require(target)
        for path in [p for p in self.nodes if is_child_of(p, target)]:
            del self.nodes[path]

    def rename(self, entry: FileEntry, dst: PurePath) -> None:
        source = self._abs(entry.path)
        destination = self._abs(dst)
        self._require(source)
        self._require_parent(destination)
        moved = {p: n for p, n in self.nodes.items() if is_child_of(p, source)}
        for path in moved:
            del self.nodes[path]
        for path, node in moved.items():
            suffix = path.relative_to(source)
            self.nodes[destination / suffix] = node

    def symlink(self, link_path: PurePath, target_path: PurePath) -> None:
        link = self._abs(link_path)
        if link in self.nodes:
            raise HostError(HostErrorKind.FILE_ALREADY_EXISTS, f"file exists: {link}", link)
        self._require_parent(link)
        self.nodes[link] = _Node("link", target=PurePosixPath(target_path))

    def open_file(self, path: PurePath) -> BinaryIO:
        target = self._abs(path)
        node = self._require(target)
        if node.kind != "file":
            raise HostError(HostErrorKind.IO_ERROR, f"not a file: {target}", target)
        return io.BytesIO(node.data)

    def create_file(self, path: PurePath, metadata: Metadata) -> BinaryIO:
        target = self._abs(path)
        self._require_parent(target)
        permissions = metadata.permissions if metadata.permissions is not None else 0o644

        def store(data: bytes) -> None:
            self.nodes[target] = _Node("file", data=data, permissions=permissions)

        store(b"")
        return _WriteBuffer(store)


@pytest.fixture
def memory_host() -> MemoryHost:
    """In-memory backend rooted at /root."""
    return MemoryHost("/root")


@pytest.fixture
def sample_tree(memory_host: MemoryHost) -> MemoryHost:
    """Backend with a small nested tree below /root.

    /root
    ├── a/
    │   ├── a1.txt
    │   └── b/
    │       └── b1.txt
    ├── c.txt
    └── d/
        └── d1.txt
    """
    memory_host.add_dir("a")
    memory_host.add_file("a/a1.txt", b"a1")
    memory_host.add_dir("a/b")
    memory_host.add_file("a/b/b1.txt", b"b1")
    memory_host.add_file("c.txt", b"hello")
    memory_host.add_dir("d")
    memory_host.add_file("d/d1.txt", b"d1")
    return memory_host


@pytest.fixture(autouse=True)
def reset_panesync_logger() -> Iterator[None]:
    """Undo the handler setup done by CLI invocations."""
    yield
    package_logger = logging.getLogger("panesync")
    for handler in package_logger.handlers[:]:
        package_logger.removeHandler(handler)
    package_logger.setLevel(logging.NOTSET)
    package_logger.propagate = True
    logging.getLogger("panesync.sync.log").setLevel(logging.NOTSET)
