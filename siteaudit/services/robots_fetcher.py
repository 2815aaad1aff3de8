import logging
from typing import Optional
from urllib.robotparser import RobotFileParser

from siteaudit.domain.crawl_settings import CrawlSettings
from siteaudit.exceptions import FetchError

logger = logging.getLogger(__name__)


class RobotsFetcher:
    """Fetch robots.txt for a site and return a parsed RobotFileParser or None.

    Uses an `http_service` with a `fetch_robots(url, settings)` method that
    returns an HttpResponse. None means "no usable rules" and the caller
    fails open.
    """
    def __init__(self, http_service):
        self.http_service = http_service

    def fetch(self, robots_url: str, settings: CrawlSettings) -> Optional[RobotFileParser]:
        try:
            response = self.http_service.fetch_robots(robots_url, settings)
        except FetchError:
            logger.warning("Network error fetching robots.txt from %s", robots_url, exc_info=True)
            return None

        if response.status_code != 200 or not response.text:
            logger.debug("No robots.txt rules at %s (status %s)", robots_url, response.status_code)
            return None

        try:
            robots_parser = RobotFileParser(robots_url)
            robots_parser.parse(response.text.splitlines())
            return robots_parser
        except Exception:
            logger.exception("Error parsing robots.txt from %s", robots_url)
            return None
