from unittest.mock import Mock

from siteaudit.api.routers.systems import create_systems_router


def _get_endpoint(router, path: str, method: str):
    for route in router.routes:
        if getattr(route, "path", None) == path and method.upper() in getattr(route, "methods", set()):
            return route.endpoint
    raise AssertionError(f"No route found for {method} {path}")


def test_health_without_registry():
    endpoint = _get_endpoint(create_systems_router({}), "/systems/health", "GET")
    assert endpoint() == {"status": "ok"}


def test_health_counts_active_audits():
    registry = Mock(list_active=Mock(return_value=[{"run_id": 1}, {"run_id": 2}]))
    endpoint = _get_endpoint(create_systems_router({}, registry), "/systems/health", "GET")
    assert endpoint() == {"status": "ok", "active_audits": 2}


def test_config_masks_database_url():
    env = {"DATABASE_URL": "postgresql://user:secret@db/audits", "API_PORT": 8000, "USER_AGENT": None}
    endpoint = _get_endpoint(create_systems_router(env), "/systems/config", "GET")
    body = endpoint()["environment"]
    assert body["DATABASE_URL"] == "***"
    assert body["API_PORT"] == "8000"
    assert body["USER_AGENT"] is None
