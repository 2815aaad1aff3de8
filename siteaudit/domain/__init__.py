"""Domain objects for SiteAudit - explicit re-exports to satisfy linters."""
from .audit_run import AuditRun as AuditRun
from .audit_run import AuditStatus as AuditStatus
from .audit_run import AuditSummary as AuditSummary
from .audit_run import AuditIssues as AuditIssues
from .audit_session import AuditSession as AuditSession
from .crawl_settings import CrawlSettings as CrawlSettings
from .crawled_page import CrawledPage as CrawledPage
from .crawled_page import PageImage as PageImage
from .crawled_page import PageLink as PageLink
from .crawled_page import SocialMeta as SocialMeta
from .frontier import Frontier as Frontier
from .frontier import normalize_url as normalize_url

__all__ = [
    "AuditRun",
    "AuditStatus",
    "AuditSummary",
    "AuditIssues",
    "AuditSession",
    "CrawlSettings",
    "CrawledPage",
    "PageImage",
    "PageLink",
    "SocialMeta",
    "Frontier",
    "normalize_url",
]
