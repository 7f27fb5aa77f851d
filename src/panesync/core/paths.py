"""Path helpers shared by the transfer queue and the path watcher."""

from __future__ import annotations

from pathlib import PurePath


def diff_paths(path: PurePath, base: PurePath) -> PurePath | None:
    """Return ``path`` relative to ``base``.

    Mirrors the behaviour of a relative path computation: parts of ``base``
    which are not shared with ``path`` are turned into ``..`` components.

    Returns:
        The relative path, ``path`` itself when only ``path`` is absolute,
        or ``None`` when only ``base`` is absolute or the paths are equal.
    """
    if path.is_absolute() != base.is_absolute():
        return path if path.is_absolute() else None

    path_parts = path.parts
    base_parts = base.parts
    common = 0
    for a, b in zip(path_parts, base_parts):
        if a != b:
            break
        common += 1

    parts = [".."] * (len(base_parts) - common) + list(path_parts[common:])
    if not parts:
        return None
    return type(path)(*parts)


def is_child_of(path: PurePath, parent: PurePath) -> bool:
    """Whether ``path`` is ``parent`` or lives somewhere below it."""
    return path == parent or parent in path.parents


def remote_relative_path(
    target: PurePath,
    local_base: PurePath,
    remote_base: PurePath,
) -> PurePath:
    """Map ``target`` under ``local_base`` to the same place under ``remote_base``.

    The remote path is ``remote_base`` with the suffix of ``target`` relative
    to ``local_base`` appended. A ``target`` equal to ``local_base`` maps to
    ``remote_base`` itself.

    Example:
        >>> remote_relative_path(PurePosixPath("/tmp/abc/a.txt"),
        ...                      PurePosixPath("/tmp"), PurePosixPath("/home/foo"))
        PurePosixPath('/home/foo/abc/a.txt')
    """
    suffix = diff_paths(target, local_base)
    if suffix is None:
        return remote_base
    return remote_base.joinpath(*suffix.parts)
