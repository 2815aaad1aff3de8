from fastapi import APIRouter

# values never echoed back by /systems/config
SECRET_KEYS = ("DATABASE_URL",)


def create_systems_router(container_env: dict, audit_registry=None):
    """Create systems router with access to container environment config."""
    router = APIRouter(prefix="/systems", tags=["System"])

    @router.get("/health")
    def health():
        body = {"status": "ok"}
        if audit_registry is not None:
            body["active_audits"] = len(audit_registry.list_active())
        return body

    @router.get("/config")
    def get_config():
        """Return current environment configuration values."""
        env = {}
        for key, value in container_env.items():
            if key in SECRET_KEYS and value:
                env[key] = "***"
            else:
                env[key] = str(value) if value is not None else None
        return {"environment": env}

    return router
