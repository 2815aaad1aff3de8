import logging
from collections import Counter
from typing import Callable, Iterable, Sequence

from siteaudit.domain.audit_run import AuditIssues, AuditSummary
from siteaudit.domain.crawled_page import CrawledPage

logger = logging.getLogger(__name__)

SLOW_PAGE_MS = 3000
LARGE_PAGE_BYTES = 5_000_000
TITLE_MAX, TITLE_MIN = 60, 30
DESCRIPTION_MAX, DESCRIPTION_MIN = 160, 120


def _blank(value) -> bool:
    return not value or not str(value).strip()


def count_duplicates(values: Iterable[str]) -> int:
    """Number of distinct non-empty values that occur more than once verbatim."""
    counts = Counter(v for v in values if not _blank(v))
    return sum(1 for n in counts.values() if n > 1)


ISSUE_FILTERS: dict[str, Callable[[CrawledPage], bool]] = {
    "missing-title": lambda p: _blank(p.title),
    "missing-description": lambda p: _blank(p.meta_description),
    "missing-h1": lambda p: len(p.h1) == 0,
    "multiple-h1": lambda p: len(p.h1) > 1,
    "broken-links": lambda p: p.status_code >= 400,
    "slow-pages": lambda p: p.response_time_ms > SLOW_PAGE_MS,
    "large-pages": lambda p: p.content_length > LARGE_PAGE_BYTES,
    "images-without-alt": lambda p: any(not img.alt for img in p.images),
    "title-too-long": lambda p: bool(p.title) and len(p.title) > TITLE_MAX,
    "title-too-short": lambda p: bool(p.title) and len(p.title) < TITLE_MIN,
    "description-too-long": lambda p: bool(p.meta_description) and len(p.meta_description) > DESCRIPTION_MAX,
    "description-too-short": lambda p: bool(p.meta_description) and len(p.meta_description) < DESCRIPTION_MIN,
}


class IssueAggregator:
    """Computes run-level summary counters and SEO issue counts from crawled pages."""

    def summarize(self, pages: Sequence[CrawledPage]) -> AuditSummary:
        total = len(pages)
        total_response = sum(p.response_time_ms for p in pages)
        total_words = sum(p.word_count for p in pages)
        return AuditSummary(
            total_pages=total,
            crawled_pages=sum(1 for p in pages if p.status_code == 200),
            error_pages=sum(1 for p in pages if p.status_code >= 400),
            redirect_pages=sum(1 for p in pages if 300 <= p.status_code < 400),
            average_response_time=round(total_response / total) if total else 0,
            total_response_time=total_response,
            total_word_count=total_words,
            average_word_count=round(total_words / total) if total else 0,
            total_images=sum(len(p.images) for p in pages),
            total_internal_links=sum(len(p.internal_links) for p in pages),
            total_external_links=sum(len(p.external_links) for p in pages),
        )

    def find_issues(self, pages: Sequence[CrawledPage]) -> AuditIssues:
        return AuditIssues(
            missing_titles=self._count(pages, "missing-title"),
            missing_descriptions=self._count(pages, "missing-description"),
            duplicate_titles=count_duplicates(p.title for p in pages),
            duplicate_descriptions=count_duplicates(p.meta_description for p in pages),
            missing_h1=self._count(pages, "missing-h1"),
            multiple_h1=self._count(pages, "multiple-h1"),
            broken_links=self._count(pages, "broken-links"),
            redirect_chains=0,
            slow_pages=self._count(pages, "slow-pages"),
            large_pages=self._count(pages, "large-pages"),
        )

    def status_code_counts(self, pages: Iterable[CrawledPage]) -> dict[str, int]:
        counts = Counter(str(p.status_code) for p in pages)
        return dict(sorted(counts.items()))

    def matches_issue(self, page: CrawledPage, issue_type: str) -> bool:
        try:
            predicate = ISSUE_FILTERS[issue_type]
        except KeyError:
            raise ValueError(f"Unknown issue type: {issue_type}") from None
        return predicate(page)

    def _count(self, pages: Iterable[CrawledPage], issue_type: str) -> int:
        predicate = ISSUE_FILTERS[issue_type]
        return sum(1 for p in pages if predicate(p))
