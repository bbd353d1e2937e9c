"""
Activity Log

Human-readable record of what the catalog client did, for display in a UI.
Entries are kept newest first and mirrored to the standard logger so the
same messages show up in stderr output when logging is configured.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Callable, List, Optional

logger = logging.getLogger(__name__)


class LogLevel(str, Enum):
    INFO = "INFO"
    SUCCESS = "SUCCESS"
    WARNING = "WARNING"
    ERROR = "ERROR"


# SUCCESS has no stdlib counterpart; it is reported as INFO
_STDLIB_LEVELS = {
    LogLevel.INFO: logging.INFO,
    LogLevel.SUCCESS: logging.INFO,
    LogLevel.WARNING: logging.WARNING,
    LogLevel.ERROR: logging.ERROR,
}


@dataclass
class LogEntry:
    """A single activity log line."""
    level: LogLevel
    message: str
    timestamp: datetime = field(default_factory=datetime.now)


class ActivityLog:
    """
    Leveled, bounded activity log.

    Usage:
        activity = ActivityLog(listener=lambda entry: show_toast(entry))
        client = CatalogClient(token, catalog_id, activity_log=activity)
        ...
        for entry in activity.entries:
            print(entry.level, entry.message)
    """

    def __init__(
        self,
        listener: Optional[Callable[[LogEntry], None]] = None,
        max_entries: int = 500,
    ):
        """
        Args:
            listener: Called with every new entry (e.g. to raise a toast)
            max_entries: Oldest entries are dropped beyond this count
        """
        self.listener = listener
        self.max_entries = max_entries
        self.entries: List[LogEntry] = []

    def _log(self, level: LogLevel, message: str) -> LogEntry:
        entry = LogEntry(level=level, message=message)
        self.entries.insert(0, entry)
        del self.entries[self.max_entries:]

        logger.log(_STDLIB_LEVELS[level], "[%s] %s", level.value, message)

        if self.listener is not None:
            self.listener(entry)
        return entry

    def info(self, message: str) -> LogEntry:
        return self._log(LogLevel.INFO, message)

    def success(self, message: str) -> LogEntry:
        return self._log(LogLevel.SUCCESS, message)

    def warn(self, message: str) -> LogEntry:
        return self._log(LogLevel.WARNING, message)

    def error(self, message: str, error: Optional[BaseException] = None) -> LogEntry:
        """Record an error, appending the exception text when given."""
        if error is not None:
            message = f"{message}: {error}"
        return self._log(LogLevel.ERROR, message)

    def clear(self) -> None:
        self.entries.clear()
