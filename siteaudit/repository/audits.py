import logging
from datetime import datetime
from typing import Dict, Iterable, List, NamedTuple, Optional

from sqlalchemy import func, or_, select
from sqlalchemy.orm import Session

from siteaudit.db.models import AuditRun as DBAuditRun
from siteaudit.domain.audit_run import AuditIssues, AuditRun, AuditStatus, AuditSummary
from siteaudit.domain.crawl_settings import CrawlSettings
from siteaudit.domain.crawled_page import CrawledPage
from siteaudit.repository.pages import CrawledPagesRepository
from siteaudit.utils.datetime_utils import elapsed_ms, to_utc_naive

logger = logging.getLogger(__name__)

SORT_COLUMNS = {
    "created_at": DBAuditRun.created_at,
    "name": DBAuditRun.name,
    "status": DBAuditRun.status,
    "base_url": DBAuditRun.base_url,
}


class RunPage(NamedTuple):
    runs: List[AuditRun]
    total: int


class AuditsRepository:
    """Repository for audit runs.

    Requires an explicit `session_factory` (callable returning a `Session`).
    Pages are written through `CrawledPagesRepository` inside the same
    transaction as the run row they belong to.
    """

    def __init__(self, session_factory, pages_repository: Optional[CrawledPagesRepository] = None):
        self.session_factory = session_factory
        self.pages_repository = pages_repository or CrawledPagesRepository(session_factory)

    def get_session(self) -> Session:
        return self.session_factory()

    def _to_domain(self, row: DBAuditRun, pages: Optional[List[CrawledPage]] = None) -> AuditRun:
        return AuditRun(
            run_id=row.run_id,
            name=row.name,
            base_url=row.base_url,
            client_id=row.client_id,
            crawl_settings=CrawlSettings.from_dict(row.crawl_settings),
            status=AuditStatus(row.status),
            summary=AuditSummary.from_dict(row.summary),
            issues=AuditIssues.from_dict(row.issues),
            crawled_pages=pages,
            start_time=to_utc_naive(row.start_time),
            end_time=to_utc_naive(row.end_time),
            duration_ms=row.duration_ms,
            error=row.error,
            frontier_state=row.frontier_state,
            created_at=to_utc_naive(row.created_at),
            updated_at=to_utc_naive(row.updated_at),
        )

    def _get_row(self, session: Session, run_id: int) -> Optional[DBAuditRun]:
        q = select(DBAuditRun).where(DBAuditRun.run_id == run_id)
        return session.execute(q).scalars().first()

    def create_run(self, run: AuditRun) -> AuditRun:
        """Store a new run and set its `run_id` and `created_at`."""
        now = datetime.utcnow()
        with self.get_session() as session:
            row = DBAuditRun(
                name=run.name,
                base_url=run.base_url,
                client_id=run.client_id,
                status=run.status.value,
                crawl_settings=run.crawl_settings.to_dict(),
                summary=run.summary.to_dict(),
                issues=run.issues.to_dict(),
                frontier_state=run.frontier_state,
                created_at=now,
                updated_at=now,
            )
            session.add(row)
            session.commit()
            session.refresh(row)
            run.run_id = row.run_id
            run.created_at = row.created_at
            run.updated_at = row.updated_at
        logger.info("Created audit run %s for %s", run.run_id, run.base_url)
        return run

    def get_run(self, run_id: int, include_pages: bool = True) -> Optional[AuditRun]:
        with self.get_session() as session:
            row = self._get_row(session, run_id)
            if not row:
                return None
            pages = self.pages_repository.list_pages(run_id, session=session) if include_pages else None
            return self._to_domain(row, pages)

    def list_runs(
        self,
        *,
        client_id: Optional[str] = None,
        status: Optional[str] = None,
        search: Optional[str] = None,
        sort_by: str = "created_at",
        sort_order: str = "desc",
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> RunPage:
        """Return one page of runs (without their crawled pages) and the filtered total."""
        if sort_by not in SORT_COLUMNS:
            raise ValueError(f"Unsupported sort field: {sort_by}")
        conditions = []
        if client_id is not None:
            conditions.append(DBAuditRun.client_id == client_id)
        if status:
            conditions.append(DBAuditRun.status == AuditStatus(status).value)
        if search:
            pattern = f"%{search}%"
            conditions.append(or_(DBAuditRun.name.ilike(pattern), DBAuditRun.base_url.ilike(pattern)))

        column = SORT_COLUMNS[sort_by]
        order = column.asc() if sort_order == "asc" else column.desc()
        tiebreak = DBAuditRun.run_id.asc() if sort_order == "asc" else DBAuditRun.run_id.desc()

        with self.get_session() as session:
            total = session.execute(select(func.count(DBAuditRun.run_id)).where(*conditions)).scalar_one()
            q = select(DBAuditRun).where(*conditions).order_by(order, tiebreak).offset(offset)
            if limit is not None:
                q = q.limit(limit)
            rows = session.execute(q).scalars().all()
            return RunPage([self._to_domain(r) for r in rows], total)

    def update_status(self, run: AuditRun) -> None:
        """Persist status, timing and error of `run`. Pages and frontier are untouched."""
        with self.get_session() as session:
            row = self._get_row(session, run.run_id)
            if not row:
                raise ValueError(f"AuditRun with run_id={run.run_id} not found")
            self._copy_status(row, run)
            session.commit()

    def save_checkpoint(self, run: AuditRun, new_pages: Iterable[CrawledPage], start_position: int) -> int:
        """Append newly crawled pages and store the frontier.

        The status column is left alone: control requests own it while a crawl
        loop is running. Returns how many pages were added.
        """
        with self.get_session() as session:
            row = self._get_row(session, run.run_id)
            if not row:
                raise ValueError(f"AuditRun with run_id={run.run_id} not found")
            added = self.pages_repository.add_pages(run.run_id, new_pages, start_position, session=session)
            row.frontier_state = run.frontier_state
            row.updated_at = datetime.utcnow()
            session.commit()
            return added

    def save_final(self, run: AuditRun, new_pages: Iterable[CrawledPage] = (), start_position: int = 0) -> int:
        """Persist the full end-of-loop state: remaining pages, counters, frontier and status."""
        with self.get_session() as session:
            row = self._get_row(session, run.run_id)
            if not row:
                raise ValueError(f"AuditRun with run_id={run.run_id} not found")
            added = self.pages_repository.add_pages(run.run_id, new_pages, start_position, session=session)
            self._copy_status(row, run)
            row.summary = run.summary.to_dict()
            row.issues = run.issues.to_dict()
            row.frontier_state = run.frontier_state
            session.commit()
            return added

    def mark_failed(self, run_id: int, error: str) -> bool:
        """Force a run into the failed state, whatever it was. Returns False if it does not exist."""
        now = datetime.utcnow()
        with self.get_session() as session:
            row = self._get_row(session, run_id)
            if not row:
                return False
            row.status = AuditStatus.FAILED.value
            row.error = error
            row.end_time = now
            row.duration_ms = elapsed_ms(row.start_time, now)
            row.updated_at = now
            session.commit()
            return True

    def delete_run(self, run_id: int) -> bool:
        with self.get_session() as session:
            row = self._get_row(session, run_id)
            if not row:
                return False
            session.delete(row)
            session.commit()
        logger.info("Deleted audit run %s", run_id)
        return True

    def count_by_status(self, client_id: Optional[str] = None) -> Dict[str, int]:
        counts = {s.value: 0 for s in AuditStatus}
        with self.get_session() as session:
            q = select(DBAuditRun.status, func.count(DBAuditRun.run_id)).group_by(DBAuditRun.status)
            if client_id is not None:
                q = q.where(DBAuditRun.client_id == client_id)
            for status, n in session.execute(q).all():
                counts[status] = n
        return counts

    def total_issues(self, client_id: Optional[str] = None) -> int:
        with self.get_session() as session:
            q = select(DBAuditRun.issues)
            if client_id is not None:
                q = q.where(DBAuditRun.client_id == client_id)
            return sum(AuditIssues.from_dict(issues).total() for issues in session.execute(q).scalars().all())

    def _copy_status(self, row: DBAuditRun, run: AuditRun) -> None:
        row.status = run.status.value
        row.start_time = run.start_time
        row.end_time = run.end_time
        row.duration_ms = run.duration_ms
        row.error = run.error
        row.updated_at = datetime.utcnow()
