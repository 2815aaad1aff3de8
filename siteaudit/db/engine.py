from typing import Optional

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.pool import StaticPool

from siteaudit import config

# Simple cache to avoid creating multiple Engine objects in the same process.
_ENGINE: Optional[Engine] = None


def make_engine(database_url: Optional[str] = None) -> Engine:
    """Create or return a cached SQLAlchemy Engine for `database_url`.

    Caches a single Engine instance per process to avoid the cost of
    creating many engines when repository instances are created. An explicit
    `database_url` always gets a fresh engine so tests can use throwaway
    in-memory databases.
    """
    global _ENGINE
    if database_url:
        return _create(database_url)
    if _ENGINE is None:
        url = config.DATABASE_URL
        if not url:
            raise RuntimeError("DATABASE_URL not set")
        _ENGINE = _create(url)
    return _ENGINE


def _create(database_url: str) -> Engine:
    if database_url.startswith("sqlite"):
        # crawl loops write from background threads
        kwargs = {"connect_args": {"check_same_thread": False}}
        if ":memory:" in database_url or database_url in ("sqlite://", "sqlite:///"):
            kwargs["poolclass"] = StaticPool
        return create_engine(database_url, **kwargs)
    return create_engine(database_url)


def init_db(engine: Engine) -> None:
    """Create tables that do not exist yet."""
    from .models import Base

    Base.metadata.create_all(engine)
