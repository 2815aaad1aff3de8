import logging

from siteaudit.domain.crawl_settings import CrawlSettings

logger = logging.getLogger(__name__)


class CrawlPolicy:
    """Encapsulates per-URL crawl decisions: depth limits and robots.txt compliance.

    Separates policy decisions from the crawl loop itself.
    """

    def __init__(self, robots_service=None):
        self.robots_service = robots_service

    def should_skip_due_to_depth(self, depth: int, settings: CrawlSettings) -> bool:
        """Check if a URL sits deeper than the run's max depth."""
        if depth > settings.max_depth:
            logger.debug("Skipping (max depth %s reached) at depth %s", settings.max_depth, depth)
            return True
        return False

    def should_skip_due_to_robots(self, url: str, settings: CrawlSettings) -> bool:
        """Check if URL should be skipped due to robots.txt restrictions."""
        if self.robots_service is None:
            return False

        if not self.robots_service.allowed_by_robots(url, settings):
            logger.info("Skipping (robots) %s", url)
            return True
        return False
