import logging

from fastapi import FastAPI

from siteaudit.api.routers import create_audits_router, create_systems_router
from siteaudit.db.engine import init_db

logger = logging.getLogger(__name__)


def create_app(container) -> FastAPI:
    """Build the FastAPI application from a wired `Container`."""
    engine = container.db_engine()
    init_db(engine)

    app = FastAPI(title="SiteAudit API", version="0.1.0")
    app.include_router(create_audits_router(container.audit_service()))
    app.include_router(create_systems_router(container.config(), container.audit_registry()))
    logger.info("API ready with %d routes", len(app.routes))
    return app
