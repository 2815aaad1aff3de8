import logging
from datetime import datetime
from typing import Callable, Optional

from siteaudit.domain.audit_run import AuditStatus
from siteaudit.domain.audit_session import AuditSession
from siteaudit.domain.crawl_result import CrawlOutcome
from siteaudit.domain.crawled_page import CrawledPage
from siteaudit.exceptions import AuditAlreadyRunningError, AuditNotFoundError
from siteaudit.repository.audits import AuditsRepository
from siteaudit.services.audit_registry import InMemoryAuditRegistry
from siteaudit.services.crawl_engine import CrawlEngine

logger = logging.getLogger(__name__)


class _Checkpointer:
    """Page callback that persists pages and frontier every `every` pages."""

    def __init__(self, repo: AuditsRepository, session: AuditSession, every: int):
        self.repo = repo
        self.session = session
        self.every = max(1, int(every))
        self.persisted = len(session.run.crawled_pages)

    def __call__(self, page: CrawledPage) -> None:
        if len(self.session.run.crawled_pages) - self.persisted >= self.every:
            self.flush()

    def pending(self) -> list:
        return self.session.run.crawled_pages[self.persisted:]

    def flush(self) -> None:
        run = self.session.run
        pages = self.pending()
        run.frontier_state = self.session.snapshot_frontier()
        self.repo.save_checkpoint(run, pages, self.persisted)
        self.persisted += len(pages)
        logger.debug("Checkpointed audit %s at %d pages", run.run_id, self.persisted)


class AuditRunner:
    """Drives one audit run from the store through the crawl engine and back.

    `run(run_id)` is what gets launched in the background for start and
    resume. It never raises: failures are logged and recorded on the run.
    """

    def __init__(
        self,
        audits_repository: AuditsRepository,
        crawl_engine: CrawlEngine,
        registry: InMemoryAuditRegistry,
        *,
        checkpoint_every: int = 10,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.audits_repository = audits_repository
        self.crawl_engine = crawl_engine
        self.registry = registry
        self.checkpoint_every = checkpoint_every
        self.clock = clock or datetime.utcnow

    def run(self, run_id: int) -> Optional[CrawlOutcome]:
        try:
            session = self._take_ownership(run_id)
        except AuditAlreadyRunningError:
            logger.warning("Audit %s already has an active crawl loop; not starting another", run_id)
            return None
        except Exception as e:
            logger.exception("Could not start audit %s", run_id)
            self._mark_failed(run_id, f"{type(e).__name__}: {e}")
            return None
        if session is None:
            return None

        run = session.run
        checkpointer = _Checkpointer(self.audits_repository, session, self.checkpoint_every)
        outcome = None
        error = None
        try:
            outcome = self.crawl_engine.crawl(session, on_page=checkpointer)
            self.audits_repository.save_final(run, checkpointer.pending(), checkpointer.persisted)
            logger.info(
                "Audit %s finished loop: %s (%d pages this pass, %d total)",
                run_id,
                outcome.reason,
                outcome.pages_crawled,
                len(run.crawled_pages),
            )
        except Exception as e:
            logger.exception("Audit %s could not be persisted", run_id)
            error = f"{type(e).__name__}: {e}"
            self._mark_failed(run_id, error)
        finally:
            self.registry.release(run_id, status=session.status().value, error=error or run.error)
        return outcome

    def _take_ownership(self, run_id: int) -> Optional[AuditSession]:
        with self.registry.control_lock:
            run = self.audits_repository.get_run(run_id, include_pages=True)
            if run is None:
                raise AuditNotFoundError(run_id)
            if run.status not in (AuditStatus.PENDING, AuditStatus.CRAWLING):
                logger.info("Audit %s is %s; nothing to crawl", run_id, run.status.value)
                return None
            session = AuditSession(run, registry=self.registry)
            self.registry.claim(session)
            try:
                session.begin(self.clock())
                self.audits_repository.update_status(run)
            except Exception:
                self.registry.release(run_id, status=AuditStatus.FAILED.value)
                raise
        logger.info(
            "Audit %s crawling %s (%d pages so far, %d queued)",
            run_id,
            run.base_url,
            len(run.crawled_pages),
            len(session.frontier),
        )
        return session

    def _mark_failed(self, run_id: int, error: str) -> None:
        try:
            self.audits_repository.mark_failed(run_id, error)
        except Exception:
            logger.exception("Could not mark audit %s failed", run_id)
