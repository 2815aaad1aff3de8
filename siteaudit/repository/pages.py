import logging
from typing import Iterable, List, Optional

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from siteaudit.db.models import AuditRun as DBAuditRun
from siteaudit.db.models import CrawledPage as DBCrawledPage
from siteaudit.domain.crawled_page import CrawledPage
from siteaudit.domain.frontier import normalize_url

logger = logging.getLogger(__name__)


def _sanitize_text(val: Optional[str]) -> Optional[str]:
    """Remove NUL (\x00) characters, which TEXT columns in some databases reject."""
    if isinstance(val, str):
        return val.replace("\x00", "")
    return val


def page_to_row(run_id: int, position: int, page: CrawledPage) -> DBCrawledPage:
    data = page.to_dict()
    return DBCrawledPage(
        run_id=run_id,
        position=position,
        url=normalize_url(page.url),
        status_code=page.status_code,
        response_time_ms=page.response_time_ms,
        word_count=page.word_count,
        title=_sanitize_text(page.title),
        data={k: _sanitize_text(v) for k, v in data.items()},
    )


def row_to_page(row: DBCrawledPage) -> CrawledPage:
    data = dict(row.data or {})
    data.setdefault("url", row.url)
    return CrawledPage.from_dict(data)


class CrawledPagesRepository:
    """Repository for the pages crawled by audit runs.

    Requires an explicit `session_factory` (callable returning a `Session`).
    """

    def __init__(self, session_factory):
        self.session_factory = session_factory

    def get_session(self) -> Session:
        return self.session_factory()

    def add_pages(self, run_id: int, pages: Iterable[CrawledPage], start_position: int = 0, session: Optional[Session] = None) -> int:
        """Insert pages in crawl order. Returns how many rows were added.

        Pages whose URL is already stored for the run are skipped. When a
        `session` is given the rows join its transaction and are not committed.
        """
        pages = list(pages)
        if not pages:
            return 0
        if session is not None:
            return self._add(session, run_id, pages, start_position)
        with self.get_session() as s:
            added = self._add(s, run_id, pages, start_position)
            try:
                s.commit()
            except IntegrityError:
                # another writer stored some of these URLs first; insert one by one
                s.rollback()
                added = 0
                for offset, page in enumerate(pages):
                    s.add(page_to_row(run_id, start_position + offset, page))
                    try:
                        s.commit()
                        added += 1
                    except IntegrityError:
                        s.rollback()
                        logger.debug("Page %s already stored for run %s", page.url, run_id)
            return added

    def _add(self, session: Session, run_id: int, pages: List[CrawledPage], start_position: int) -> int:
        q = select(DBCrawledPage.url).where(DBCrawledPage.run_id == run_id)
        existing = set(session.execute(q).scalars().all())
        added = 0
        for offset, page in enumerate(pages):
            key = normalize_url(page.url)
            if key in existing:
                logger.debug("Page %s already stored for run %s", page.url, run_id)
                continue
            session.add(page_to_row(run_id, start_position + offset, page))
            existing.add(key)
            added += 1
        return added

    def list_pages(self, run_id: int, session: Optional[Session] = None) -> List[CrawledPage]:
        """Pages of one run in crawl order."""
        q = select(DBCrawledPage).where(DBCrawledPage.run_id == run_id).order_by(DBCrawledPage.position)
        if session is not None:
            return [row_to_page(r) for r in session.execute(q).scalars().all()]
        with self.get_session() as s:
            return [row_to_page(r) for r in s.execute(q).scalars().all()]

    def count_pages_for_client(self, client_id: Optional[str] = None) -> int:
        """Total pages across runs, optionally limited to one client."""
        with self.get_session() as session:
            q = select(func.count(DBCrawledPage.page_id))
            if client_id is not None:
                q = q.join(DBAuditRun, DBAuditRun.run_id == DBCrawledPage.run_id).where(DBAuditRun.client_id == client_id)
            return session.execute(q).scalar_one()
