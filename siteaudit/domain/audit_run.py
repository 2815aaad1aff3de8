from __future__ import annotations

from dataclasses import asdict, dataclass, field, fields
from datetime import datetime
from enum import Enum
from typing import Any, Mapping, Optional

from siteaudit.domain.crawl_settings import CrawlSettings
from siteaudit.domain.crawled_page import CrawledPage
from siteaudit.exceptions import InvalidTransitionError


class AuditStatus(str, Enum):
    PENDING = "pending"
    CRAWLING = "crawling"
    PAUSED = "paused"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (AuditStatus.COMPLETED, AuditStatus.FAILED)


# pending -> crawling -> {paused, completed, failed}; paused -> crawling (resume)
# and paused -> completed (stop). A pending run that cannot even start fails.
ALLOWED_TRANSITIONS: dict[AuditStatus, frozenset[AuditStatus]] = {
    AuditStatus.PENDING: frozenset({AuditStatus.CRAWLING, AuditStatus.FAILED}),
    AuditStatus.CRAWLING: frozenset({AuditStatus.PAUSED, AuditStatus.COMPLETED, AuditStatus.FAILED}),
    AuditStatus.PAUSED: frozenset({AuditStatus.CRAWLING, AuditStatus.COMPLETED, AuditStatus.FAILED}),
    AuditStatus.COMPLETED: frozenset(),
    AuditStatus.FAILED: frozenset(),
}


def can_transition(current: AuditStatus, target: AuditStatus) -> bool:
    return target in ALLOWED_TRANSITIONS[current]


@dataclass
class AuditSummary:
    total_pages: int = 0
    crawled_pages: int = 0
    error_pages: int = 0
    redirect_pages: int = 0
    average_response_time: int = 0
    total_response_time: int = 0
    total_word_count: int = 0
    average_word_count: int = 0
    total_images: int = 0
    total_internal_links: int = 0
    total_external_links: int = 0

    def to_dict(self) -> dict[str, int]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Optional[Mapping[str, Any]]) -> "AuditSummary":
        known = {f.name for f in fields(cls)}
        return cls(**{k: int(v or 0) for k, v in (data or {}).items() if k in known})


@dataclass
class AuditIssues:
    missing_titles: int = 0
    missing_descriptions: int = 0
    duplicate_titles: int = 0
    duplicate_descriptions: int = 0
    missing_h1: int = 0
    multiple_h1: int = 0
    broken_links: int = 0
    redirect_chains: int = 0
    slow_pages: int = 0
    large_pages: int = 0

    def to_dict(self) -> dict[str, int]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Optional[Mapping[str, Any]]) -> "AuditIssues":
        known = {f.name for f in fields(cls)}
        return cls(**{k: int(v or 0) for k, v in (data or {}).items() if k in known})

    def total(self) -> int:
        return sum(asdict(self).values())


class AuditRun:
    """One execution of a site crawl against a base URL.

    Status changes go through `transition_to`, which enforces the lifecycle
    and keeps start/end timestamps consistent with it.
    """

    def __init__(
        self,
        run_id: Optional[int],
        name: str,
        base_url: str,
        crawl_settings: Optional[CrawlSettings] = None,
        status: AuditStatus = AuditStatus.PENDING,
        client_id: Optional[str] = None,
        summary: Optional[AuditSummary] = None,
        issues: Optional[AuditIssues] = None,
        crawled_pages: Optional[list[CrawledPage]] = None,
        start_time: Optional[datetime] = None,
        end_time: Optional[datetime] = None,
        duration_ms: Optional[int] = None,
        error: Optional[str] = None,
        frontier_state: Optional[dict] = None,
        created_at: Optional[datetime] = None,
        updated_at: Optional[datetime] = None,
    ):
        self.run_id = run_id
        self.name = name
        self.base_url = base_url
        self.client_id = client_id
        self.crawl_settings = crawl_settings or CrawlSettings()
        self.status = AuditStatus(status)
        self.summary = summary or AuditSummary()
        self.issues = issues or AuditIssues()
        self.crawled_pages: list[CrawledPage] = list(crawled_pages or [])
        self.start_time = start_time
        self.end_time = end_time
        self.duration_ms = duration_ms
        self.error = error
        self.frontier_state = frontier_state
        self.created_at = created_at
        self.updated_at = updated_at

    def transition_to(self, target: AuditStatus, now: Optional[datetime] = None) -> None:
        """Move to `target`, raising `InvalidTransitionError` if the lifecycle forbids it."""
        target = AuditStatus(target)
        if not can_transition(self.status, target):
            raise InvalidTransitionError(self.status.value, target.value)
        now = now or datetime.utcnow()
        if target is AuditStatus.CRAWLING and self.start_time is None:
            self.start_time = now
        if target.is_terminal:
            self.end_time = now
            if self.start_time is not None:
                self.duration_ms = int((now - self.start_time).total_seconds() * 1000)
        self.status = target

    def to_dict(self, include_pages: bool = True) -> dict[str, Any]:
        d = {
            "run_id": self.run_id,
            "name": self.name,
            "base_url": self.base_url,
            "client_id": self.client_id,
            "status": self.status.value,
            "crawl_settings": self.crawl_settings.to_dict(),
            "summary": self.summary.to_dict(),
            "issues": self.issues.to_dict(),
            "start_time": self.start_time,
            "end_time": self.end_time,
            "duration_ms": self.duration_ms,
            "error": self.error,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }
        if include_pages:
            d["crawled_pages"] = [p.to_dict() for p in self.crawled_pages]
        return d

    def __repr__(self):
        return f"<AuditRun id={self.run_id} url={self.base_url} status={self.status.value}>"
