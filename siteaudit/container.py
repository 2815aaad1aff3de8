"""Dependency injection container for the application."""
from dependency_injector import containers, providers
import requests

from siteaudit.db.engine import make_engine
from siteaudit.repository.audits import AuditsRepository
from siteaudit.repository.pages import CrawledPagesRepository
from siteaudit.services.audit_registry import InMemoryAuditRegistry
from siteaudit.services.audit_runner import AuditRunner
from siteaudit.services.audit_service import AuditService
from siteaudit.services.crawl_engine import CrawlEngine
from siteaudit.services.crawl_policy import CrawlPolicy
from siteaudit.services.fetch_executor import FetchExecutor
from siteaudit.services.http_service import HttpService
from siteaudit.services.issue_aggregator import IssueAggregator
from siteaudit.services.page_extractor import PageDataExtractor
from siteaudit.services.page_query import PageQuery
from siteaudit.services.robots_cache import RobotsCache
from siteaudit.services.robots_service import RobotsService
from siteaudit import config as env
from sqlalchemy.orm import sessionmaker


# Environment variables used by the container (read via `siteaudit.config` helpers).
#
# Notes:
# - Types are enforced by the helper used (`get_int_env`, `get_str_env`, etc.).
# - Defaults shown here are the effective defaults used when the env var is unset.
# - These are injected into services via `config = providers.Configuration(default=ENV)`.
#
# DATABASE_URL (str, default: "sqlite:///siteaudit.db")
#   SQLAlchemy connection string for audit runs and crawled pages.
#
# USER_AGENT (str, default: "RankScopeBot/1.0")
#   User-Agent for runs whose crawl settings do not name one.
#
# SITEAUDIT_MAX_ATTEMPTS (int, default: 3)
#   Fetch attempts per URL. 429, 5xx and network errors are retried.
#
# SITEAUDIT_BACKOFF_BASE_MS (int ms, default: 700)
#   Backoff after attempt i is base * 2**i (700, 1400, ...).
#
# SITEAUDIT_MAX_REDIRECTS (int, default: 5)
#   Redirects followed per fetch when a run follows redirects.
#
# SITEAUDIT_CHECKPOINT_EVERY (int pages, default: 10)
#   Pages crawled between persisted checkpoints of pages and frontier.
#
# SITEAUDIT_ROBOTS_CACHE_MAX_SIZE (int, default: 2048)
#   Max number of origins to keep in the in-memory robots.txt cache (LRU eviction).
#
# SITEAUDIT_ROBOTS_CACHE_TTL_SECONDS (int seconds, default: 3600)
#   TTL for robots.txt cache entries. Entries older than TTL are treated as missing.
#
# SITEAUDIT_MAX_ACTIVE_RECORDS (int, default: 1000)
#   Finished crawl-loop records kept by the audit registry for /audits/active.
#
# API_HOST (str, default: "0.0.0.0"), API_PORT (int, default: 8000)
#   Bind address of the API server started by run.py.
#
# LOG_LEVEL (str, default: "INFO")
ENV = {
    "DATABASE_URL": env.get_str_env("DATABASE_URL", "sqlite:///siteaudit.db"),
    "USER_AGENT": env.get_str_env("USER_AGENT", "RankScopeBot/1.0"),
    "SITEAUDIT_MAX_ATTEMPTS": env.get_int_env("SITEAUDIT_MAX_ATTEMPTS", 3),
    "SITEAUDIT_BACKOFF_BASE_MS": env.get_int_env("SITEAUDIT_BACKOFF_BASE_MS", 700),
    "SITEAUDIT_MAX_REDIRECTS": env.get_int_env("SITEAUDIT_MAX_REDIRECTS", 5),
    "SITEAUDIT_CHECKPOINT_EVERY": env.get_int_env("SITEAUDIT_CHECKPOINT_EVERY", 10),
    "SITEAUDIT_ROBOTS_CACHE_MAX_SIZE": env.get_int_env("SITEAUDIT_ROBOTS_CACHE_MAX_SIZE", 2048),
    "SITEAUDIT_ROBOTS_CACHE_TTL_SECONDS": env.get_int_env("SITEAUDIT_ROBOTS_CACHE_TTL_SECONDS", 3600),
    "SITEAUDIT_MAX_ACTIVE_RECORDS": env.get_int_env("SITEAUDIT_MAX_ACTIVE_RECORDS", 1000),
    "API_HOST": env.get_str_env("API_HOST", "0.0.0.0"),
    "API_PORT": env.get_int_env("API_PORT", 8000),
    "LOG_LEVEL": env.get_str_env("LOG_LEVEL", "INFO").upper(),
}


class Container(containers.DeclarativeContainer):
    """Dependency injection container for the SiteAudit application."""

    # Configuration
    config = providers.Configuration(default=ENV)

    # Database engine - Singleton to reuse connection pool
    db_engine = providers.Singleton(
        make_engine,
        database_url=config.DATABASE_URL
    )
    # Session factory bound to the engine
    session_factory = providers.Singleton(
        sessionmaker,
        bind=db_engine,
        future=True
    )

    # Repositories - Singleton instances
    pages_repository = providers.Singleton(
        CrawledPagesRepository,
        session_factory=session_factory
    )

    audits_repository = providers.Singleton(
        AuditsRepository,
        session_factory=session_factory,
        pages_repository=pages_repository,
    )

    audit_registry = providers.Singleton(
        InMemoryAuditRegistry,
        max_finished_records=config.SITEAUDIT_MAX_ACTIVE_RECORDS.as_(int),
    )

    # Services - Singleton instances
    http_session = providers.Singleton(requests.Session)

    http_service = providers.Singleton(
        HttpService,
        session=http_session,
        max_redirects=config.SITEAUDIT_MAX_REDIRECTS.as_(int),
    )

    fetch_executor = providers.Singleton(
        FetchExecutor,
        http_service=http_service,
        max_attempts=config.SITEAUDIT_MAX_ATTEMPTS.as_(int),
        backoff_base_ms=config.SITEAUDIT_BACKOFF_BASE_MS.as_(int),
    )

    robots_cache = providers.Singleton(
        RobotsCache,
        max_size=config.SITEAUDIT_ROBOTS_CACHE_MAX_SIZE.as_(int),
        ttl_seconds=config.SITEAUDIT_ROBOTS_CACHE_TTL_SECONDS.as_(int),
    )

    robots_service = providers.Singleton(
        RobotsService,
        http_service=fetch_executor,
        cache=robots_cache,
    )

    crawl_policy = providers.Singleton(
        CrawlPolicy,
        robots_service=robots_service
    )

    page_extractor = providers.Singleton(PageDataExtractor)

    issue_aggregator = providers.Singleton(IssueAggregator)

    page_query = providers.Singleton(
        PageQuery,
        issue_aggregator=issue_aggregator,
    )

    crawl_engine = providers.Singleton(
        CrawlEngine,
        fetch_executor=fetch_executor,
        extractor=page_extractor,
        crawl_policy=crawl_policy,
        issue_aggregator=issue_aggregator,
    )

    audit_runner = providers.Singleton(
        AuditRunner,
        audits_repository=audits_repository,
        crawl_engine=crawl_engine,
        registry=audit_registry,
        checkpoint_every=config.SITEAUDIT_CHECKPOINT_EVERY.as_(int),
    )

    audit_service = providers.Singleton(
        AuditService,
        audits_repository=audits_repository,
        pages_repository=pages_repository,
        registry=audit_registry,
        runner=audit_runner,
        issue_aggregator=issue_aggregator,
        page_query=page_query,
        default_user_agent=config.USER_AGENT.as_(str),
    )
