import logging
from datetime import datetime
from typing import Callable, Optional
from urllib.parse import urljoin

from siteaudit.domain.audit_run import AuditStatus
from siteaudit.domain.audit_session import AuditSession
from siteaudit.domain.crawl_result import CrawlOutcome
from siteaudit.domain.crawled_page import CrawledPage, PageLink
from siteaudit.domain.frontier import FrontierEntry, normalize_url
from siteaudit.exceptions import ExtractionError, FetchError, OrchestrationError
from siteaudit.services.crawl_policy import CrawlPolicy
from siteaudit.services.fetch_executor import FetchExecutor
from siteaudit.services.issue_aggregator import IssueAggregator
from siteaudit.services.link_classifier import LinkClassifier
from siteaudit.services.page_extractor import PageDataExtractor

logger = logging.getLogger(__name__)

PageCallback = Callable[[CrawledPage], None]


class CrawlEngine:
    """Runs the breadth-first crawl loop for one audit session.

    This class owns the crawl control-flow (frontier traversal, cooperative
    cancellation checks, fetch/extract/classify per page and finalization).
    It does NOT construct dependencies or talk to storage; callers observe
    progress through the `on_page` callback and the returned outcome.
    """

    def __init__(
        self,
        *,
        fetch_executor: FetchExecutor,
        extractor: PageDataExtractor,
        crawl_policy: CrawlPolicy,
        issue_aggregator: IssueAggregator,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.fetch_executor = fetch_executor
        self.extractor = extractor
        self.crawl_policy = crawl_policy
        self.issue_aggregator = issue_aggregator
        self.clock = clock or datetime.utcnow

    def crawl(self, session: AuditSession, on_page: Optional[PageCallback] = None) -> CrawlOutcome:
        run = session.run
        settings = session.settings
        # a run paused or stopped before the loop got here exits at the first check
        session.start_if_pending(self.clock())

        frontier = session.frontier
        if not frontier and not run.crawled_pages and not frontier.is_visited(run.base_url):
            frontier.enqueue(run.base_url, 0)

        classifier = LinkClassifier(
            frontier,
            run.base_url,
            include_subdomains=settings.include_subdomains,
            max_depth=settings.max_depth,
        )
        if run.crawled_pages:
            self._restore_base_hosts(run.crawled_pages[0], classifier)

        pages_before = len(run.crawled_pages)
        reason = "exhausted"
        failure = None
        try:
            while True:
                # cooperative cancellation: pause/stop take effect here
                if not session.is_crawling():
                    reason = "paused" if session.status() is AuditStatus.PAUSED else "stopped"
                    logger.info("Audit %s left crawling state (%s)", run.run_id, reason)
                    break
                if session.budget_left() <= 0:
                    reason = "budget"
                    logger.info("Audit %s reached max pages (%s)", run.run_id, settings.max_pages)
                    break
                entry = frontier.dequeue()
                if entry is None:
                    break
                if frontier.is_visited(entry.url):
                    logger.debug("Skipping (visited) %s", entry.url)
                    continue
                frontier.mark_visited(entry.url)

                if self.crawl_policy.should_skip_due_to_depth(entry.depth, settings):
                    continue
                if self.crawl_policy.should_skip_due_to_robots(entry.url, settings):
                    continue

                session.update_progress(current_url=entry.url)
                page = self.crawl_page(entry, classifier, settings)
                session.append_page(page)
                if page.final_url:
                    frontier.mark_visited(page.final_url)
                if on_page is not None:
                    on_page(page)
        except Exception as e:
            failure = OrchestrationError(run.run_id, e)
            logger.exception("Audit %s crawl loop failed", run.run_id)
            reason = "failed"
            try:
                session.transition(AuditStatus.FAILED, self.clock())
            except Exception:
                logger.exception("Could not mark audit %s failed", run.run_id)
            run.error = str(failure)

        if reason == "stopped":
            frontier.clear()
        self.finalize(session, completed=reason in ("exhausted", "budget"))
        session.update_progress()
        return CrawlOutcome(
            pages_crawled=len(run.crawled_pages) - pages_before,
            frontier_remaining=len(frontier),
            status=session.status(),
            reason=reason,
            error=failure,
        )

    def finalize(self, session: AuditSession, completed: bool = False) -> None:
        """Recompute summary and issues; complete the run if the loop ended on its own."""
        run = session.run
        if completed and session.is_crawling():
            session.transition(AuditStatus.COMPLETED, self.clock())
        pages = session.pages
        run.summary = self.issue_aggregator.summarize(pages)
        run.issues = self.issue_aggregator.find_issues(pages)
        # terminal runs never resume
        run.frontier_state = None if run.status.is_terminal else session.snapshot_frontier()

    @staticmethod
    def _restore_base_hosts(seed: CrawledPage, classifier: LinkClassifier) -> None:
        """On resume, re-admit the host the seed redirected to."""
        if seed.final_url:
            classifier.add_base_url(seed.final_url)
        if 300 <= seed.status_code < 400:
            for link in seed.internal_links:
                classifier.add_base_url(link.url)

    def crawl_page(self, entry: FrontierEntry, classifier: LinkClassifier, settings) -> CrawledPage:
        """Fetch, extract and classify one URL. Per-page failures become error pages."""
        try:
            response = self.fetch_executor.fetch(entry.url, settings)
        except FetchError as e:
            logger.warning("Fetch failed for %s: %s", entry.url, e)
            return CrawledPage.error_page(
                entry.url,
                str(e),
                status_code=e.status_code,
                crawl_depth=entry.depth,
            )

        final_url = response.final_url or entry.url
        redirected = normalize_url(final_url) != normalize_url(entry.url)
        if redirected and entry.depth == 0 and classifier.add_base_url(final_url):
            logger.info("Base URL %s redirected to %s; crawling that host too", entry.url, final_url)

        base = dict(
            url=entry.url,
            status_code=response.status_code,
            content_type=response.content_type,
            response_time_ms=response.response_time_ms,
            content_length=response.content_length,
            crawl_depth=entry.depth,
            final_url=final_url if redirected else None,
        )
        if 300 <= response.status_code < 400 and response.location:
            # redirect not followed: the target is treated as a link on this page
            target = urljoin(final_url, response.location)
            if entry.depth == 0:
                classifier.add_base_url(target)
            links = classifier.classify([PageLink(url=target)], entry.depth)
            logger.info("Redirect %s -> %s (status %s)", entry.url, target, response.status_code)
            return CrawledPage(**base, internal_links=links.internal, external_links=links.external)
        if not response.is_html:
            logger.info("Content type not extracted %s for %s", response.content_type, entry.url)
            return CrawledPage(**base)

        try:
            fields = self.extractor.extract(response.final_url or entry.url, response.text)
        except ExtractionError as e:
            logger.warning("Extraction failed for %s: %s", entry.url, e)
            return CrawledPage(**base, error=str(e))

        links = classifier.classify(fields.links, entry.depth)
        logger.info(
            "Fetched %s -> status %s, %d internal (%d queued), %d external",
            entry.url,
            response.status_code,
            len(links.internal),
            links.enqueued,
            len(links.external),
        )
        return CrawledPage(
            **base,
            title=fields.title,
            meta_description=fields.meta_description,
            meta_keywords=fields.meta_keywords,
            headings=fields.headings,
            word_count=fields.word_count,
            internal_links=links.internal,
            external_links=links.external,
            images=fields.images if settings.crawl_images else [],
            canonical_url=fields.canonical_url,
            robots_meta=fields.robots_meta,
            language=fields.language,
            schema_markup=fields.schema_markup,
            social_meta=fields.social_meta,
            skipped_elements=fields.skipped_elements,
        )
