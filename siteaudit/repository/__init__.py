from .audits import AuditsRepository
from .pages import CrawledPagesRepository

__all__ = ["AuditsRepository", "CrawledPagesRepository"]
