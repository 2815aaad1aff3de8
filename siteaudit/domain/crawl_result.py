"""Crawl outcome data model."""
from typing import NamedTuple, Optional

from siteaudit.domain.audit_run import AuditStatus
from siteaudit.exceptions import OrchestrationError


class CrawlOutcome(NamedTuple):
    """Result of one pass of the crawl loop over a run.

    Lets callers log metrics and tell a natural finish from a budget stop,
    a pause, a stop request or a fatal failure.
    """
    pages_crawled: int
    """Number of pages appended to the run during this pass"""

    frontier_remaining: int
    """URLs still queued when the loop exited"""

    status: AuditStatus
    """Run status after finalization"""

    reason: str
    """exhausted, budget, paused, stopped or failed"""

    error: Optional[OrchestrationError] = None
    """Set when reason is failed"""
