"""
run.main() builds the app from an injected container; uvicorn is patched out.
"""
from unittest.mock import patch

from run import main
from siteaudit.container import Container
from siteaudit.services.audit_service import AuditService
from siteaudit.services.crawl_engine import CrawlEngine


def _container():
    container = Container()
    container.config.DATABASE_URL.from_value("sqlite://")
    container.config.USER_AGENT.from_value("TestBot/1.0")
    container.config.API_PORT.from_value(9100)
    return container


def test_container_creates_services():
    container = _container()

    service = container.audit_service()
    assert isinstance(service, AuditService)
    assert isinstance(container.crawl_engine(), CrawlEngine)
    assert service.default_user_agent == "TestBot/1.0"
    # one registry shared by the service and the runner
    assert service.registry is container.audit_registry()
    assert service.runner.registry is service.registry


def test_main_accepts_injected_container():
    container = _container()

    with patch("run.uvicorn.run") as mock_uvicorn:
        main(container=container)

    assert mock_uvicorn.called
    _, kwargs = mock_uvicorn.call_args
    assert kwargs["port"] == 9100
