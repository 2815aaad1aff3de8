import logging
from typing import Optional
from urllib.parse import urlsplit

from siteaudit.domain.crawl_settings import CrawlSettings
from siteaudit.services.robots_cache import RobotsCache
from siteaudit.services.robots_fetcher import RobotsFetcher

logger = logging.getLogger(__name__)


class RobotsService:
    """
    Answers whether a URL may be crawled under the site's robots.txt.

    Orchestrates fetching, caching and permission checks. Rules are matched
    against the run's User-Agent.
    """

    def __init__(self, http_service,
                 robots_fetcher: Optional[RobotsFetcher] = None,
                 cache: Optional[RobotsCache] = None):
        self.http_service = http_service
        self.robots_fetcher = robots_fetcher if robots_fetcher is not None else RobotsFetcher(http_service)
        self.cache = cache if cache is not None else RobotsCache()

    def allowed_by_robots(self, url: str, settings: CrawlSettings) -> bool:
        if not settings.respect_robots_txt:
            return True

        parsed = urlsplit(url)
        if not parsed.scheme or not parsed.netloc:
            # Fail open: invalid/relative URLs should not block crawling.
            return True

        origin = f"{parsed.scheme}://{parsed.netloc}"
        robots_parser = self.cache.lookup(origin)
        if robots_parser is RobotsCache.MISSING:
            robots_parser = self.robots_fetcher.fetch(f"{origin}/robots.txt", settings)
            self.cache.set(origin, robots_parser)

        if robots_parser is None:
            return True

        try:
            return robots_parser.can_fetch(settings.user_agent, url)
        except Exception:
            logger.exception("Error checking robots permission for %s", url)
            return True
