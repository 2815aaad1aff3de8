from .models import ActiveAuditRecord
from .registry import InMemoryAuditRegistry

__all__ = ["ActiveAuditRecord", "InMemoryAuditRegistry"]
