"""API router factory functions."""
from .audits import create_audits_router
from .systems import create_systems_router

__all__ = [
    "create_audits_router",
    "create_systems_router",
]
