from dataclasses import dataclass, field
from typing import Callable, Dict, List, NamedTuple, Optional, Sequence

from siteaudit.domain.crawled_page import CrawledPage
from siteaudit.exceptions import ValidationError
from siteaudit.services.issue_aggregator import ISSUE_FILTERS, IssueAggregator

# API sort names -> key over a page
PAGE_SORT_KEYS: Dict[str, Callable[[CrawledPage], object]] = {
    "url": lambda p: p.url,
    "statusCode": lambda p: p.status_code,
    "responseTime": lambda p: p.response_time_ms,
    "wordCount": lambda p: p.word_count,
}


@dataclass
class PageFilter:
    status_codes: List[int] = field(default_factory=list)
    search: Optional[str] = None
    issue_type: Optional[str] = None
    sort_by: str = "url"
    sort_order: str = "asc"
    page: int = 1
    limit: int = 50

    def __post_init__(self):
        if self.sort_by not in PAGE_SORT_KEYS:
            raise ValidationError(f"Unsupported sort field: {self.sort_by}", field="sortBy")
        if self.sort_order not in ("asc", "desc"):
            raise ValidationError("sortOrder must be asc or desc", field="sortOrder")
        if self.issue_type and self.issue_type not in ISSUE_FILTERS:
            raise ValidationError(f"Unknown issue type: {self.issue_type}", field="issueType")
        if self.page < 1 or self.limit < 1:
            raise ValidationError("page and limit must be positive", field="page")


class PageResult(NamedTuple):
    pages: List[CrawledPage]
    total: int
    page: int
    limit: int

    @property
    def total_pages(self) -> int:
        return (self.total + self.limit - 1) // self.limit

    def to_dict(self) -> dict:
        return {
            "pages": [p.to_dict() for p in self.pages],
            "pagination": {
                "page": self.page,
                "limit": self.limit,
                "total": self.total,
                "totalPages": self.total_pages,
            },
        }


class PageQuery:
    """Filtering, sorting and paging over the pages of one run."""

    def __init__(self, issue_aggregator: Optional[IssueAggregator] = None):
        self.issue_aggregator = issue_aggregator or IssueAggregator()

    def _matches(self, page: CrawledPage, flt: PageFilter) -> bool:
        if flt.status_codes and page.status_code not in flt.status_codes:
            return False
        if flt.search:
            needle = flt.search.lower()
            haystack = (page.url, page.title or "", page.meta_description or "")
            if not any(needle in value.lower() for value in haystack):
                return False
        if flt.issue_type and not self.issue_aggregator.matches_issue(page, flt.issue_type):
            return False
        return True

    def query(self, pages: Sequence[CrawledPage], flt: PageFilter) -> PageResult:
        matched = [p for p in pages if self._matches(p, flt)]
        matched.sort(key=PAGE_SORT_KEYS[flt.sort_by], reverse=flt.sort_order == "desc")
        start = (flt.page - 1) * flt.limit
        return PageResult(matched[start:start + flt.limit], len(matched), flt.page, flt.limit)

    def summary(self, pages: Sequence[CrawledPage]) -> dict:
        """Page statistics for one run, recomputed from its pages."""
        agg = self.issue_aggregator
        s = agg.summarize(pages)
        issues = agg.find_issues(pages)
        return {
            "totalPages": s.total_pages,
            "statusCodes": agg.status_code_counts(pages),
            "missingTitles": issues.missing_titles,
            "missingDescriptions": issues.missing_descriptions,
            "missingH1": issues.missing_h1,
            "multipleH1": issues.multiple_h1,
            "imagesWithoutAlt": sum(1 for p in pages if agg.matches_issue(p, "images-without-alt")),
            "averageResponseTime": s.average_response_time,
            "averageWordCount": s.average_word_count,
            "totalResponseTime": s.total_response_time,
            "totalWordCount": s.total_word_count,
            "totalImages": s.total_images,
            "totalInternalLinks": s.total_internal_links,
            "totalExternalLinks": s.total_external_links,
        }
