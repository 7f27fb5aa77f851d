"""Name filters for narrowing listings and walks.

A pattern is compiled as a regular expression first. When that fails it is
treated as a wildcard pattern (``*``, ``?``, ``[...]``), which always
compiles, so compiling a filter never raises. ``"*.txt"`` is not a valid
regex and therefore becomes a wildcard; ``"[a-"`` falls back to a wildcard
matching the literal name ``"[a-"``.
"""

from __future__ import annotations

import fnmatch
import logging
import re
from abc import ABC, abstractmethod
from collections.abc import Iterable

from panesync.core.types import FileEntry

logger = logging.getLogger(__name__)


class Filter(ABC):
    """Predicate on entry names."""

    def __init__(self, pattern: str) -> None:
        self.pattern = pattern

    @staticmethod
    def compile(pattern: str) -> Filter:
        """Compile ``pattern``: regex first, wildcard as unconditional fallback."""
        try:
            return RegexFilter(pattern, re.compile(pattern))
        except re.error as e:
            logger.debug("%r is not a regex (%s), using wildcard match", pattern, e)
            return WildcardFilter(pattern)

    @abstractmethod
    def matches(self, name: str) -> bool:
        """Whether ``name`` is accepted by the filter."""
        ...

    def apply(self, entries: Iterable[FileEntry]) -> list[FileEntry]:
        """Return the entries whose name matches, in order."""
        return [entry for entry in entries if self.matches(entry.name)]

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.pattern!r})"


class RegexFilter(Filter):
    """Unanchored regular expression search over the name."""

    def __init__(self, pattern: str, regex: re.Pattern[str]) -> None:
        super().__init__(pattern)
        self._regex = regex

    def matches(self, name: str) -> bool:
        matched = self._regex.search(name) is not None
        logger.debug("matching %r with %r: %s", name, self, matched)
        return matched


class WildcardFilter(Filter):
    """Case-sensitive shell-style match over the whole name."""

    def matches(self, name: str) -> bool:
        matched = fnmatch.fnmatchcase(name, self.pattern)
        logger.debug("matching %r with %r: %s", name, self, matched)
        return matched
