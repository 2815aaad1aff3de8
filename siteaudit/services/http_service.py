import time
from typing import Callable, Optional

import requests

from siteaudit.domain.crawl_settings import CrawlSettings
from siteaudit.domain.http_response import HttpResponse
from siteaudit.exceptions import FetchError


class HttpService:
    """
    HTTP client wrapper for fetching web pages.

    Requires a `requests.Session`-like object for dependency injection so tests
    can pass a mock instead of patching, and so the connection pool is shared
    across fetches. One call is one request: retries live in `FetchExecutor`.
    """

    def __init__(self, session: requests.Session, max_redirects: int = 5, clock: Optional[Callable[[], float]] = None):
        self.session = session
        self.max_redirects = int(max_redirects)
        self.session.max_redirects = self.max_redirects
        self.clock = clock or time.monotonic

    def fetch(self, url: str, settings: CrawlSettings) -> HttpResponse:
        """Fetch URL and return status, body text, Content-Type, size, timing and final URL."""
        headers = {"User-Agent": settings.user_agent}
        started = self.clock()
        try:
            resp = self.session.get(
                url,
                headers=headers,
                timeout=settings.timeout_seconds,
                allow_redirects=settings.follow_redirects,
            )
        except requests.exceptions.RequestException as e:
            raise FetchError(url, e) from e
        elapsed_ms = int((self.clock() - started) * 1000)

        # Let real exceptions from headers/content bubble up.
        ct = None
        length_header = None
        location = None
        if hasattr(resp, 'headers'):
            ct = resp.headers.get('Content-Type')
            length_header = resp.headers.get('Content-Length')
            if 300 <= resp.status_code < 400:
                location = resp.headers.get('Location')

        return HttpResponse(
            status_code=resp.status_code,
            text=resp.text,
            content_type=ct,
            content_length=self._content_length(length_header, resp),
            response_time_ms=elapsed_ms,
            final_url=getattr(resp, 'url', None) or url,
            location=location,
        )

    def fetch_robots(self, robots_url: str, settings: CrawlSettings) -> HttpResponse:
        """Fetch robots.txt - delegates to fetch()."""
        return self.fetch(robots_url, settings)

    @staticmethod
    def _content_length(header: Optional[str], resp) -> int:
        if header:
            try:
                return int(header)
            except ValueError:
                pass
        content = getattr(resp, 'content', None)
        if isinstance(content, (bytes, bytearray)):
            return len(content)
        return 0
