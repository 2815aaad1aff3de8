import logging
import time
from typing import Callable, Optional

from siteaudit.domain.crawl_settings import CrawlSettings
from siteaudit.domain.http_response import HttpResponse
from siteaudit.exceptions import FetchError

logger = logging.getLogger(__name__)

RETRYABLE_STATUS = 429


class FetchExecutor:
    """Fetches one URL with politeness delay, retries and exponential backoff.

    Before every attempt the run's politeness delay (`settings.delay_ms`) is
    slept. After a failed attempt with zero-based index `i` the executor also
    sleeps `backoff_base_ms * 2 ** i` before trying again. Transport errors,
    429 and 5xx are retried; other 4xx fail at once. When all attempts are
    used up a `FetchError` carrying the last known status code is raised.
    """

    def __init__(
        self,
        http_service,
        *,
        max_attempts: int = 3,
        backoff_base_ms: int = 700,
        sleep: Optional[Callable[[float], None]] = None,
    ):
        if max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        self.http_service = http_service
        self.max_attempts = int(max_attempts)
        self.backoff_base_ms = int(backoff_base_ms)
        self.sleep = sleep or time.sleep

    def backoff_ms(self, attempt_index: int) -> int:
        return self.backoff_base_ms * (2 ** attempt_index)

    def _is_retryable(self, status_code: int) -> bool:
        return status_code == RETRYABLE_STATUS or status_code >= 500

    def fetch_robots(self, url: str, settings: CrawlSettings) -> HttpResponse:
        """Fetch robots.txt after the politeness delay. Not retried; the caller fails open."""
        if settings.delay_ms:
            self.sleep(settings.delay_seconds)
        return self.http_service.fetch_robots(url, settings)

    def fetch(self, url: str, settings: CrawlSettings) -> HttpResponse:
        last_error: Optional[FetchError] = None
        last_status: Optional[int] = None
        for attempt in range(self.max_attempts):
            if settings.delay_ms:
                self.sleep(settings.delay_seconds)
            try:
                response = self.http_service.fetch(url, settings)
            except FetchError as e:
                last_error = e
                logger.warning("Fetch attempt %d for %s failed: %s", attempt + 1, url, e.original or e)
            else:
                if response.status_code < 400:
                    return response
                last_status = response.status_code
                last_error = FetchError(url, status_code=response.status_code, attempts=attempt + 1)
                if not self._is_retryable(response.status_code):
                    logger.warning("Fetch for %s returned %s; not retrying", url, response.status_code)
                    raise last_error
                logger.warning("Fetch attempt %d for %s returned %s", attempt + 1, url, response.status_code)

            if attempt + 1 < self.max_attempts:
                self.sleep(self.backoff_ms(attempt) / 1000.0)

        last_error.attempts = self.max_attempts
        if last_error.status_code is None:
            last_error.status_code = last_status
        raise last_error
