from __future__ import annotations

import logging
from collections import deque
from datetime import datetime, timezone
from threading import RLock
from typing import Optional

from request_hub.core.config import settings
from request_hub.models.request import Notification, NotificationKind, NotificationRecord

logger = logging.getLogger(__name__)

_LOG_LEVELS = {
    NotificationKind.SUCCESS: logging.INFO,
    NotificationKind.INFO: logging.INFO,
    NotificationKind.WARNING: logging.WARNING,
    NotificationKind.ERROR: logging.ERROR,
}


class Notifier:
    """Fire-and-forget notification sink.

    Notifications are logged and kept in a bounded feed so clients can poll
    them; ``recipient=None`` marks a broadcast visible to everyone.
    """

    def __init__(self, feed_size: int | None = None) -> None:
        self.lock = RLock()
        self.feed: deque[NotificationRecord] = deque(maxlen=feed_size or settings.notification_feed_size)

    def notify(self, notification: Notification, recipient: Optional[str] = None) -> None:
        record = NotificationRecord(
            **notification.model_dump(),
            recipient=recipient,
            created_at=datetime.now(timezone.utc),
        )
        with self.lock:
            self.feed.append(record)
        logger.log(
            _LOG_LEVELS[notification.kind],
            "%s: %s (recipient=%s)",
            notification.title,
            notification.message,
            recipient or "*",
        )

    def recent_for(self, user_id: str, limit: int = 20) -> list[NotificationRecord]:
        with self.lock:
            visible = [n for n in self.feed if n.recipient in (None, user_id)]
        return list(reversed(visible))[:limit]

    def clear(self) -> None:
        with self.lock:
            self.feed.clear()
