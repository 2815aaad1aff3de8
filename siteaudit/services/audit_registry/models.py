from __future__ import annotations

from collections import deque
from dataclasses import dataclass, field
from datetime import datetime
from typing import Deque, List, Optional


@dataclass
class ActiveAuditRecord:
    run_id: int
    base_url: str
    status: str
    started_at: datetime
    last_seen: datetime
    finished_at: Optional[datetime] = None
    pages_crawled: int = 0
    current_url: Optional[str] = None
    error: Optional[str] = None
    recent_urls: Deque[str] = field(default_factory=lambda: deque(maxlen=20))

    def get_recent_urls(self) -> List[str]:
        """Return recent URLs as a list (most recent first)."""
        return list(reversed(self.recent_urls))

    def to_dict(self) -> dict:
        return {
            "run_id": self.run_id,
            "base_url": self.base_url,
            "status": self.status,
            "started_at": self.started_at,
            "last_seen": self.last_seen,
            "finished_at": self.finished_at,
            "pages_crawled": self.pages_crawled,
            "current_url": self.current_url,
            "error": self.error,
            "recent_urls": self.get_recent_urls(),
        }
