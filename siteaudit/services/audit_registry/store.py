from __future__ import annotations

from collections import deque
from datetime import datetime
from typing import Dict, List, Optional

from .models import ActiveAuditRecord


class AuditRecordStore:
    """Progress records for crawl loops, with bounded retention of finished ones."""

    def __init__(self, *, max_finished_records: int):
        if max_finished_records < 0:
            raise ValueError("max_finished_records must be >= 0")
        self._records: Dict[int, ActiveAuditRecord] = {}
        self._max_finished_records = max_finished_records
        self._finished_order: deque = deque()

    def create_running(self, *, run_id: int, base_url: str, now: datetime) -> ActiveAuditRecord:
        # a resumed run replaces its previous record
        if run_id in self._records:
            try:
                self._finished_order.remove(run_id)
            except ValueError:
                pass
        rec = ActiveAuditRecord(
            run_id=run_id,
            base_url=base_url,
            status="crawling",
            started_at=now,
            last_seen=now,
        )
        self._records[run_id] = rec
        return rec

    def get(self, run_id: int) -> Optional[ActiveAuditRecord]:
        return self._records.get(run_id)

    def update(
        self,
        run_id: int,
        *,
        pages_crawled: Optional[int] = None,
        current_url: Optional[str] = None,
        now: datetime,
    ) -> bool:
        rec = self._records.get(run_id)
        if not rec:
            return False

        if pages_crawled is not None:
            rec.pages_crawled = pages_crawled
        if current_url is not None:
            rec.current_url = current_url
            if current_url not in rec.recent_urls:
                rec.recent_urls.append(current_url)

        rec.last_seen = now
        return True

    def finish(self, run_id: int, *, status: str, error: Optional[str], now: datetime) -> bool:
        rec = self._records.get(run_id)
        if not rec:
            return False
        rec.status = status
        rec.finished_at = now
        rec.last_seen = now
        rec.current_url = None
        if error:
            rec.error = error
        self._finished_order.append(run_id)
        return True

    def evict_finished_overflow(self) -> List[int]:
        evicted: List[int] = []
        while len(self._finished_order) > self._max_finished_records:
            oldest = self._finished_order.popleft()
            if oldest in self._records:
                del self._records[oldest]
                evicted.append(oldest)
        return evicted

    def list_active(self) -> List[ActiveAuditRecord]:
        return [r for r in self._records.values() if r.finished_at is None]
