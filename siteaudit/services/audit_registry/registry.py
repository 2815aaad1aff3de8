from __future__ import annotations

import threading
from datetime import datetime
from typing import Dict, List, Optional

from siteaudit.domain.audit_session import AuditSession
from siteaudit.exceptions import AuditAlreadyRunningError

from .store import AuditRecordStore


class InMemoryAuditRegistry:
    """Thread-safe in-memory registry of audit runs that have a live crawl loop.

    `claim` is the single-writer gate: only one crawl loop may own a run id at
    a time, so start and resume are serialized per run. Control requests look
    up the live session here to reach the loop that owns the run.

    It is ephemeral and single-process. Finished records are kept for
    observability up to `max_finished_records`.

    `control_lock` serializes status changes made outside a crawl loop with a
    loop taking ownership of a run.
    """

    def __init__(self, *, max_finished_records: int = 1000):
        self._lock = threading.Lock()
        self.control_lock = threading.RLock()
        self._records = AuditRecordStore(max_finished_records=max_finished_records)
        self._sessions: Dict[int, AuditSession] = {}

    def claim(self, session: AuditSession) -> None:
        run_id = session.run_id
        with self._lock:
            if run_id in self._sessions:
                raise AuditAlreadyRunningError(run_id)
            self._sessions[run_id] = session
            self._records.create_running(run_id=run_id, base_url=session.run.base_url, now=datetime.utcnow())

    def release(self, run_id: int, *, status: str, error: Optional[str] = None) -> bool:
        with self._lock:
            self._sessions.pop(run_id, None)
            ok = self._records.finish(run_id, status=status, error=error, now=datetime.utcnow())
            if ok:
                self._records.evict_finished_overflow()
            return ok

    def is_active(self, run_id: int) -> bool:
        with self._lock:
            return run_id in self._sessions

    def get_session(self, run_id: int) -> Optional[AuditSession]:
        with self._lock:
            return self._sessions.get(run_id)

    def update(self, run_id: int, *, pages_crawled: Optional[int] = None, current_url: Optional[str] = None) -> bool:
        with self._lock:
            return self._records.update(
                run_id,
                pages_crawled=pages_crawled,
                current_url=current_url,
                now=datetime.utcnow(),
            )

    def get(self, run_id: int) -> Optional[Dict]:
        with self._lock:
            rec = self._records.get(run_id)
            return rec.to_dict() if rec else None

    def list_active(self) -> List[Dict]:
        with self._lock:
            return [r.to_dict() for r in self._records.list_active()]
