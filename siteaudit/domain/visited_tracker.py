from typing import Iterable, Optional


class VisitedTracker:
    """
    Tracks which normalized URLs have been processed during an audit run.

    Kept separate from the frontier queue so the visited set can be
    snapshotted and restored on its own when a paused run resumes. The set is
    unbounded: forgetting a URL would allow it to be fetched twice.
    """

    def __init__(self, urls: Optional[Iterable[str]] = None):
        self._visited: dict[str, None] = dict.fromkeys(urls or ())

    def mark(self, url: str) -> None:
        """Mark a URL as visited."""
        self._visited[url] = None

    def is_visited(self, url: str) -> bool:
        """Check if a URL has been visited."""
        return url in self._visited

    def urls(self) -> list[str]:
        """Visited URLs in the order they were first marked."""
        return list(self._visited)

    def __len__(self) -> int:
        return len(self._visited)
