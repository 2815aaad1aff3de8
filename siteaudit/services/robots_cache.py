import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Callable, Optional
from urllib.robotparser import RobotFileParser


@dataclass(frozen=True)
class _RobotsCacheEntry:
    parser: Optional[RobotFileParser]
    stored_at: float


_MISSING = object()


class RobotsCache:
    """
    LRU + TTL cache of parsed robots.txt rules keyed by site origin.

    A cached None is a real entry: it records that the site had no usable
    robots.txt, so the audit does not refetch it for every page.
    """

    MISSING = _MISSING

    def __init__(self, *, max_size: int = 2048, ttl_seconds: int = 3600, clock: Optional[Callable[[], float]] = None):
        self._max_size = max(1, int(max_size)) if max_size is not None else 2048
        # non-positive TTL disables caching
        self._ttl_seconds = max(0, int(ttl_seconds)) if ttl_seconds is not None else 3600
        self._clock = clock or time.time
        self._cache: "OrderedDict[str, _RobotsCacheEntry]" = OrderedDict()

    def _is_expired(self, entry: _RobotsCacheEntry) -> bool:
        if self._ttl_seconds == 0:
            return True
        return (self._clock() - entry.stored_at) > self._ttl_seconds

    def lookup(self, origin: str):
        """Return the cached parser (possibly None) or `MISSING` when absent or expired."""
        entry = self._cache.get(origin)
        if entry is None:
            return _MISSING
        if self._is_expired(entry):
            self._cache.pop(origin, None)
            return _MISSING
        self._cache.move_to_end(origin)
        return entry.parser

    def set(self, origin: str, parser: Optional[RobotFileParser]) -> None:
        self._cache[origin] = _RobotsCacheEntry(parser=parser, stored_at=self._clock())
        self._cache.move_to_end(origin)
        while len(self._cache) > self._max_size:
            self._cache.popitem(last=False)

    def clear(self) -> None:
        self._cache.clear()

    def __len__(self) -> int:
        return len(self._cache)
