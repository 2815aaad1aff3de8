import logging
from datetime import datetime
from typing import Any, Callable, Dict, Mapping, Optional
from urllib.parse import urlsplit

from siteaudit.domain.audit_run import AuditRun, AuditStatus
from siteaudit.domain.audit_session import AuditSession
from siteaudit.domain.crawl_settings import CrawlSettings
from siteaudit.exceptions import AuditAlreadyRunningError, AuditNotFoundError, InvalidTransitionError, ValidationError
from siteaudit.repository.audits import AuditsRepository
from siteaudit.repository.pages import CrawledPagesRepository
from siteaudit.services import csv_exporter
from siteaudit.services.audit_registry import InMemoryAuditRegistry
from siteaudit.services.audit_runner import AuditRunner
from siteaudit.services.issue_aggregator import IssueAggregator
from siteaudit.services.page_query import PageFilter, PageQuery

logger = logging.getLogger(__name__)

# launch(fn, *args) schedules fn(*args) off the caller's thread
Launcher = Callable[..., Any]

RECENT_RUNS = 5


def _validate_base_url(base_url: str) -> str:
    base_url = base_url.strip()
    try:
        parts = urlsplit(base_url)
    except ValueError as e:
        raise ValidationError(f"Invalid baseUrl: {e}", field="baseUrl") from e
    if parts.scheme.lower() not in ("http", "https") or not parts.hostname:
        raise ValidationError("baseUrl must be an absolute http(s) URL", field="baseUrl")
    return base_url


class AuditService:
    """Control and read operations over audit runs.

    Control requests for a run with a live crawl loop go through that loop's
    `AuditSession`, so the loop sees the new status at its next iteration.
    Runs without a loop are changed directly in the store.
    """

    def __init__(
        self,
        audits_repository: AuditsRepository,
        pages_repository: CrawledPagesRepository,
        registry: InMemoryAuditRegistry,
        runner: AuditRunner,
        issue_aggregator: Optional[IssueAggregator] = None,
        page_query: Optional[PageQuery] = None,
        default_user_agent: Optional[str] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.audits_repository = audits_repository
        self.pages_repository = pages_repository
        self.registry = registry
        self.runner = runner
        self.issue_aggregator = issue_aggregator or IssueAggregator()
        self.page_query = page_query or PageQuery(self.issue_aggregator)
        self.default_user_agent = default_user_agent
        self.clock = clock or datetime.utcnow

    def _require(self, run_id: int, include_pages: bool = False) -> AuditRun:
        run = self.audits_repository.get_run(run_id, include_pages=include_pages)
        if run is None:
            raise AuditNotFoundError(run_id)
        return run

    def start_audit(self, payload: Mapping[str, Any], launch: Launcher) -> AuditRun:
        """Validate and store a new pending run, then launch its crawl loop."""
        name = (payload.get("name") or "").strip()
        base_url = payload.get("baseUrl") or payload.get("base_url") or ""
        if not name:
            raise ValidationError("name is required", field="name")
        if not base_url.strip():
            raise ValidationError("baseUrl is required", field="baseUrl")
        base_url = _validate_base_url(base_url)
        settings = CrawlSettings.from_dict(
            payload.get("crawlSettings") or payload.get("crawl_settings"),
            default_user_agent=self.default_user_agent,
        )
        run = AuditRun(
            run_id=None,
            name=name,
            base_url=base_url,
            client_id=payload.get("clientId") or payload.get("client_id"),
            crawl_settings=settings,
        )
        self.audits_repository.create_run(run)
        logger.info("Starting audit %s (%s) for %s", run.run_id, name, base_url)
        launch(self.runner.run, run.run_id)
        return run

    def pause(self, run_id: int) -> AuditRun:
        with self.registry.control_lock:
            session = self.registry.get_session(run_id)
            if session is not None:
                session.request_pause(self.clock())
                run = session.run
            else:
                run = self._require(run_id)
                AuditSession(run).request_pause(self.clock())
            self.audits_repository.update_status(run)
        logger.info("Paused audit %s", run_id)
        return run

    def resume(self, run_id: int, launch: Launcher) -> AuditRun:
        with self.registry.control_lock:
            run = self._require(run_id)
            if run.status is not AuditStatus.PAUSED:
                raise InvalidTransitionError(run.status.value, AuditStatus.CRAWLING.value, "Audit is not paused")
            if self.registry.is_active(run_id):
                # the paused loop has not finished writing its state yet
                raise AuditAlreadyRunningError(run_id)
            run.transition_to(AuditStatus.CRAWLING, self.clock())
            self.audits_repository.update_status(run)
        logger.info("Resuming audit %s", run_id)
        launch(self.runner.run, run_id)
        return run

    def stop(self, run_id: int) -> AuditRun:
        with self.registry.control_lock:
            session = self.registry.get_session(run_id)
            if session is not None:
                # the loop clears its frontier and writes summary and issues on exit
                session.request_stop(self.clock())
                run = session.run
                self.audits_repository.update_status(run)
            else:
                run = self._require(run_id, include_pages=True)
                AuditSession(run).request_stop(self.clock())
                pages = run.crawled_pages
                run.summary = self.issue_aggregator.summarize(pages)
                run.issues = self.issue_aggregator.find_issues(pages)
                run.frontier_state = None
                self.audits_repository.save_final(run)
        logger.info("Stopped audit %s", run_id)
        return run

    def delete(self, run_id: int) -> None:
        with self.registry.control_lock:
            if self.registry.is_active(run_id):
                raise AuditAlreadyRunningError(run_id)
            if not self.audits_repository.delete_run(run_id):
                raise AuditNotFoundError(run_id)

    def get(self, run_id: int, include_pages: bool = True) -> AuditRun:
        return self._require(run_id, include_pages=include_pages)

    def list_audits(
        self,
        *,
        client_id: Optional[str] = None,
        status: Optional[str] = None,
        search: Optional[str] = None,
        sort_by: str = "created_at",
        sort_order: str = "desc",
        page: int = 1,
        limit: int = 20,
    ) -> Dict[str, Any]:
        if status:
            try:
                status = AuditStatus(status).value
            except ValueError:
                raise ValidationError(f"Unknown status: {status}", field="status") from None
        if sort_order not in ("asc", "desc"):
            raise ValidationError("sortOrder must be asc or desc", field="sortOrder")
        if page < 1 or limit < 1:
            raise ValidationError("page and limit must be positive", field="page")
        try:
            result = self.audits_repository.list_runs(
                client_id=client_id,
                status=status,
                search=search,
                sort_by=sort_by,
                sort_order=sort_order,
                limit=limit,
                offset=(page - 1) * limit,
            )
        except ValueError as e:
            raise ValidationError(str(e), field="sortBy") from e
        return {
            "audits": [r.to_dict(include_pages=False) for r in result.runs],
            "pagination": {
                "page": page,
                "limit": limit,
                "total": result.total,
                "totalPages": (result.total + limit - 1) // limit,
            },
        }

    def get_pages(self, run_id: int, flt: Optional[PageFilter] = None) -> Dict[str, Any]:
        run = self._require(run_id, include_pages=True)
        return self.page_query.query(run.crawled_pages, flt or PageFilter()).to_dict()

    def get_summary(self, run_id: int) -> Dict[str, Any]:
        run = self._require(run_id, include_pages=True)
        return self.page_query.summary(run.crawled_pages)

    def dashboard(self, client_id: Optional[str] = None) -> Dict[str, Any]:
        counts = self.audits_repository.count_by_status(client_id)
        recent = self.audits_repository.list_runs(client_id=client_id, limit=RECENT_RUNS)
        return {
            "totalAudits": sum(counts.values()),
            "statusCounts": counts,
            "pagesCrawled": self.pages_repository.count_pages_for_client(client_id),
            "issuesFound": self.audits_repository.total_issues(client_id),
            "recentAudits": [r.to_dict(include_pages=False) for r in recent.runs],
        }

    def list_active(self) -> list:
        return self.registry.list_active()

    def export_csv(self, run_id: int):
        """Return the run and a line iterator over its CSV export."""
        run = self._require(run_id, include_pages=True)
        return run, csv_exporter.iter_csv(run.crawled_pages)
