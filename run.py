import logging

import uvicorn

from siteaudit.api.server import create_app
from siteaudit.container import Container

logger = logging.getLogger(__name__)


def main(container: Container = None):
    """Start the API server.

    A pre-wired `container` can be injected; tests pass one with overridden
    providers so nothing real is started.
    """
    if container is None:
        container = Container()

    cfg = container.config()
    logging.basicConfig(
        level=getattr(logging, str(cfg.get("LOG_LEVEL") or "INFO").upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    app = create_app(container)
    host = cfg.get("API_HOST") or "0.0.0.0"
    port = int(cfg.get("API_PORT") or 8000)
    logger.info("SiteAudit API listening on %s:%s", host, port)
    uvicorn.run(app, host=host, port=port)


if __name__ == '__main__':
    main()
