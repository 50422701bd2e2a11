"""
Notification sink for user-facing messages.

Messages are logged and kept in a bounded history so the API can hand them
to the UI (the toast feed).
"""

import logging
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import List, Optional

logger = logging.getLogger(__name__)


@dataclass
class Notification:
    """A single user-facing message."""

    level: str  # 'info', 'success', 'error'
    message: str
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> dict:
        return {
            "level": self.level,
            "message": self.message,
            "created_at": self.created_at.isoformat(),
        }


class NotificationCenter:
    """Logging notifier with a bounded in-memory history."""

    def __init__(self, max_history: int = 200):
        self._history: deque[Notification] = deque(maxlen=max_history)

    def info(self, message: str) -> None:
        logger.info(message)
        self._history.append(Notification("info", message))

    def success(self, message: str) -> None:
        logger.info(message)
        self._history.append(Notification("success", message))

    def error(self, message: str) -> None:
        logger.error(message)
        self._history.append(Notification("error", message))

    def recent(self, limit: Optional[int] = None) -> List[Notification]:
        """Most recent notifications, oldest first."""
        items = list(self._history)
        if limit is not None:
            items = items[-limit:] if limit > 0 else []
        return items

    def clear(self) -> None:
        self._history.clear()
