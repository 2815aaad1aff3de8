import logging
from collections import deque
from typing import Any, Mapping, NamedTuple, Optional
from urllib.parse import urlsplit, urlunsplit

from siteaudit.domain.visited_tracker import VisitedTracker

logger = logging.getLogger(__name__)


def normalize_url(url: str) -> str:
    """Return the dedup key for `url`: fragment removed, scheme and host lower-cased.

    Path and query are kept verbatim and an empty path becomes "/". Input that
    cannot be parsed as an absolute URL is returned unchanged, so malformed
    URLs only dedup on their exact text.
    """
    try:
        parts = urlsplit(url.strip())
        if not parts.scheme or not parts.netloc:
            return url
        # accessing .port validates it and raises ValueError on garbage
        parts.port
        path = parts.path or "/"
        return urlunsplit((parts.scheme.lower(), parts.netloc.lower(), path, parts.query, ""))
    except (ValueError, AttributeError):
        logger.debug("Could not normalize URL %r", url)
        return url


class FrontierEntry(NamedTuple):
    url: str
    depth: int = 0


class Frontier:
    """FIFO queue of URLs still to crawl plus the visited set.

    A URL enters the queue at most once per run: `enqueue` rejects URLs that
    are visited or already waiting, so dequeue order is breadth-first.
    """

    def __init__(self, visited_tracker: Optional[VisitedTracker] = None):
        self._queue: "deque[FrontierEntry]" = deque()
        self._queued: set[str] = set()
        self.visited_tracker = visited_tracker if visited_tracker is not None else VisitedTracker()

    def enqueue(self, url: str, depth: int = 0) -> bool:
        key = normalize_url(url)
        if self.visited_tracker.is_visited(key) or key in self._queued:
            return False
        self._queue.append(FrontierEntry(key, depth))
        self._queued.add(key)
        return True

    def dequeue(self) -> Optional[FrontierEntry]:
        if not self._queue:
            return None
        entry = self._queue.popleft()
        self._queued.discard(entry.url)
        return entry

    def mark_visited(self, url: str) -> None:
        self.visited_tracker.mark(normalize_url(url))

    def is_visited(self, url: str) -> bool:
        return self.visited_tracker.is_visited(normalize_url(url))

    def is_queued(self, url: str) -> bool:
        return normalize_url(url) in self._queued

    def pending_urls(self) -> list[str]:
        return [entry.url for entry in self._queue]

    def clear(self) -> None:
        self._queue.clear()
        self._queued.clear()

    def __len__(self) -> int:
        return len(self._queue)

    def __bool__(self) -> bool:
        return bool(self._queue)

    def snapshot(self) -> dict[str, Any]:
        """JSON-safe copy of the queue and visited set for persistence."""
        return {
            "queue": [[entry.url, entry.depth] for entry in self._queue],
            "visited": self.visited_tracker.urls(),
        }

    @classmethod
    def restore(cls, state: Optional[Mapping[str, Any]]) -> "Frontier":
        state = state or {}
        frontier = cls(VisitedTracker(state.get("visited") or []))
        for url, depth in state.get("queue") or []:
            frontier.enqueue(url, int(depth))
        return frontier
