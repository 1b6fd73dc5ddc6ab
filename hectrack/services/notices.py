from __future__ import annotations

import itertools
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from hectrack.services.models import utc_now

logger = logging.getLogger(__name__)

LOG_LEVELS = {
    "success": logging.INFO,
    "info": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}


@dataclass
class Notice:
    id: int
    level: str
    message: str
    created_at: datetime = field(default_factory=utc_now)

    def as_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "level": self.level,
            "message": self.message,
            "created_at": self.created_at.isoformat(),
        }


class NoticeBoard:
    """Short user-facing messages posted after store operations, newest last."""

    def __init__(self, history: int = 50) -> None:
        self.history = history
        self._notices: list[Notice] = []
        self._ids = itertools.count(1)

    def post(self, level: str, message: str) -> Notice:
        if level not in LOG_LEVELS:
            raise ValueError(f"Unknown notice level: {level}")
        notice = Notice(id=next(self._ids), level=level, message=message)
        self._notices.append(notice)
        if len(self._notices) > self.history:
            self._notices = self._notices[-self.history:]
        logger.log(LOG_LEVELS[level], "[%s] %s", level, message)
        return notice

    def success(self, message: str) -> Notice:
        return self.post("success", message)

    def warning(self, message: str) -> Notice:
        return self.post("warning", message)

    def error(self, message: str) -> Notice:
        return self.post("error", message)

    def recent(self, limit: int = 20) -> list[Notice]:
        if limit <= 0:
            return []
        return self._notices[-limit:]

    def clear(self) -> None:
        self._notices.clear()
