"""User-visible session log.

Records are kept in a bounded ring buffer for the log pane, newest first,
and forwarded to the module logger at the matching level.
"""

from __future__ import annotations

import logging
import time
from collections import deque
from collections.abc import Callable, Iterator
from dataclasses import dataclass, field

from panesync.core.types import LogLevel

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LogRecord:
    """A single line of the session log."""

    level: LogLevel
    message: str
    timestamp: float = field(default_factory=time.time)


class SessionLog:
    """Bounded log of messages shown to the user."""

    def __init__(
        self,
        capacity: int = 256,
        on_record: Callable[[LogRecord], None] | None = None,
    ) -> None:
        self._records: deque[LogRecord] = deque(maxlen=capacity)
        self._on_record = on_record
        self.alert: LogRecord | None = None

    def log(self, level: LogLevel, message: str) -> None:
        logger.log(int(level), message)
        record = LogRecord(level, message)
        self._records.appendleft(record)
        if self._on_record is not None:
            self._on_record(record)

    def log_and_alert(self, level: LogLevel, message: str) -> None:
        """Log ``message`` and keep it as the pending alert for the UI."""
        self.log(level, message)
        self.alert = self._records[0]

    def take_alert(self) -> LogRecord | None:
        """Return and clear the pending alert."""
        alert, self.alert = self.alert, None
        return alert

    def records(self) -> list[LogRecord]:
        """Records, newest first."""
        return list(self._records)

    def __iter__(self) -> Iterator[LogRecord]:
        return iter(list(self._records))

    def __len__(self) -> int:
        return len(self._records)
