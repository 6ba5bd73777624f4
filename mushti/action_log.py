"""
Action log that records emitted gesture events.
"""
import logging
from collections import deque
from dataclasses import dataclass
from datetime import datetime
from typing import Deque, List, Optional

from .types import GestureEvent, GestureLabel

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ActionEntry:
    """One logged gesture event."""
    timestamp: datetime
    label: GestureLabel
    confidence: float

    def format(self) -> str:
        return f"[{self.timestamp.strftime('%H:%M:%S')}] {self.label} ({self.confidence:.2f})"


class ActionLog:
    """Keeps the most recent events, newest first, and logs each one."""

    def __init__(self, max_entries: Optional[int] = 50):
        """Initialize an empty log; max_entries=None keeps everything."""
        self._entries: Deque[ActionEntry] = deque(maxlen=max_entries)
        self.action_count = 0

    def log_action(self, event: GestureEvent, timestamp: Optional[datetime] = None) -> ActionEntry:
        """Record an event and return the stored entry."""
        entry = ActionEntry(
            timestamp=timestamp or datetime.now(),
            label=event.label,
            confidence=event.confidence
        )
        self._entries.appendleft(entry)
        self.action_count += 1
        logger.info("%s (event #%d)", entry.format(), self.action_count)
        return entry

    @property
    def entries(self) -> List[ActionEntry]:
        return list(self._entries)

    def lines(self, limit: Optional[int] = None) -> List[str]:
        """Formatted entries, newest first."""
        entries = self.entries if limit is None else self.entries[:limit]
        return [e.format() for e in entries]

    def clear(self) -> None:
        """Remove all entries; the running count is kept."""
        self._entries.clear()
