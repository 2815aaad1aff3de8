import threading
from datetime import datetime
from typing import Optional

from siteaudit.domain.audit_run import AuditRun, AuditStatus
from siteaudit.domain.crawled_page import CrawledPage
from siteaudit.domain.frontier import Frontier, normalize_url
from siteaudit.exceptions import InvalidTransitionError


class AuditSession:
    """
    In-progress state of one audit run while a crawl loop owns it.

    Holds the run, its frontier and the lock that guards status changes.
    Control requests (pause/stop) arrive from other threads and only touch
    the status under the lock; the crawled page list and the frontier are
    written by the crawl loop alone.

    The session can optionally report progress to an audit registry.
    """

    def __init__(
        self,
        run: AuditRun,
        frontier: Optional[Frontier] = None,
        registry=None,
    ):
        self.run = run
        self.frontier = frontier if frontier is not None else Frontier.restore(run.frontier_state)
        self._registry = registry
        self._lock = threading.RLock()
        # URLs already present on the run (resumed runs) count as visited
        for page in run.crawled_pages:
            self.frontier.mark_visited(page.url)
        self._page_urls = {normalize_url(p.url) for p in run.crawled_pages}
        self.pages_crawled: int = 0

    @property
    def run_id(self) -> Optional[int]:
        return self.run.run_id

    @property
    def settings(self):
        return self.run.crawl_settings

    @property
    def pages(self) -> tuple[CrawledPage, ...]:
        return tuple(self.run.crawled_pages)

    def status(self) -> AuditStatus:
        with self._lock:
            return self.run.status

    def is_crawling(self) -> bool:
        return self.status() is AuditStatus.CRAWLING

    def budget_left(self) -> int:
        return self.settings.max_pages - len(self.run.crawled_pages)

    def transition(self, target: AuditStatus, now: Optional[datetime] = None) -> None:
        with self._lock:
            self.run.transition_to(target, now)

    def begin(self, now: Optional[datetime] = None) -> None:
        """Enter the crawling state; a resumed run is already crawling."""
        with self._lock:
            if self.run.status is AuditStatus.PENDING:
                self.run.transition_to(AuditStatus.CRAWLING, now)
            elif self.run.status is not AuditStatus.CRAWLING:
                raise InvalidTransitionError(self.run.status.value, AuditStatus.CRAWLING.value)

    def start_if_pending(self, now: Optional[datetime] = None) -> bool:
        """Move a pending run to crawling. Any other status is left for the loop to act on."""
        with self._lock:
            if self.run.status is not AuditStatus.PENDING:
                return False
            self.run.transition_to(AuditStatus.CRAWLING, now)
            return True

    def request_pause(self, now: Optional[datetime] = None) -> None:
        with self._lock:
            if self.run.status is not AuditStatus.CRAWLING:
                raise InvalidTransitionError(
                    self.run.status.value, AuditStatus.PAUSED.value, "Audit is not currently running"
                )
            self.run.transition_to(AuditStatus.PAUSED, now)

    def request_stop(self, now: Optional[datetime] = None) -> None:
        with self._lock:
            if self.run.status not in (AuditStatus.CRAWLING, AuditStatus.PAUSED):
                raise InvalidTransitionError(
                    self.run.status.value, AuditStatus.COMPLETED.value, "Audit is not currently running or paused"
                )
            self.run.transition_to(AuditStatus.COMPLETED, now)

    def append_page(self, page: CrawledPage) -> None:
        key = normalize_url(page.url)
        if key in self._page_urls:
            raise ValueError(f"page already recorded for {page.url}")
        if self.budget_left() <= 0:
            raise ValueError("page budget exhausted")
        self.run.crawled_pages.append(page)
        self._page_urls.add(key)
        self.pages_crawled += 1

    def update_progress(self, current_url: Optional[str] = None) -> None:
        """Report current progress to registry if tracking is active."""
        if self._registry is not None and self.run_id is not None:
            self._registry.update(
                self.run_id,
                pages_crawled=len(self.run.crawled_pages),
                current_url=current_url,
            )

    def snapshot_frontier(self) -> dict:
        return self.frontier.snapshot()
