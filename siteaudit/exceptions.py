"""Custom exceptions for SiteAudit services."""
from typing import Optional


class SiteAuditError(Exception):
    """Base class for all SiteAudit errors."""


class ValidationError(SiteAuditError):
    """Raised when an audit cannot be created from the supplied fields."""

    def __init__(self, message: str, field: Optional[str] = None):
        self.field = field
        super().__init__(message)


class AuditNotFoundError(SiteAuditError):
    """Raised when a requested audit run does not exist."""

    def __init__(self, run_id: int):
        self.run_id = run_id
        super().__init__(f"Audit {run_id} not found")


class InvalidTransitionError(SiteAuditError):
    """Raised when a lifecycle transition is not allowed from the current status."""

    def __init__(self, current: str, target: str, message: Optional[str] = None):
        self.current = current
        self.target = target
        super().__init__(message or f"Cannot move audit from '{current}' to '{target}'")


class AuditAlreadyRunningError(SiteAuditError):
    """Raised when a second crawl loop is requested for a run that already has one."""

    def __init__(self, run_id: int):
        self.run_id = run_id
        super().__init__(f"Audit {run_id} already has an active crawl")


class FetchError(SiteAuditError):
    """Raised when a page cannot be fetched (network error, timeout or error status)."""

    def __init__(self, url: str, original: Optional[Exception] = None, status_code: Optional[int] = None, attempts: int = 1):
        self.url = url
        self.original = original
        self.status_code = status_code
        self.attempts = attempts
        reason = original if original is not None else f"HTTP {status_code}"
        super().__init__(f"HTTP fetch failed for {url}: {reason}")


class ExtractionError(SiteAuditError):
    """Raised when a fetched document cannot be parsed at all."""

    def __init__(self, url: str, original: Exception):
        self.url = url
        self.original = original
        super().__init__(f"Could not extract page data from {url}: {original}")


class OrchestrationError(SiteAuditError):
    """The crawl loop itself failed; fatal to the run."""

    def __init__(self, run_id: Optional[int], original: Exception):
        self.run_id = run_id
        self.original = original
        super().__init__(f"Audit {run_id} crawl loop failed: {type(original).__name__}: {original}")
