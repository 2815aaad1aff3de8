import logging
from typing import Iterable, NamedTuple, Optional
from urllib.parse import urlsplit

from siteaudit.domain.crawled_page import PageLink
from siteaudit.domain.frontier import Frontier

logger = logging.getLogger(__name__)


def _hostname(url: str) -> Optional[str]:
    try:
        return urlsplit(url).hostname
    except ValueError:
        return None


class ClassifiedLinks(NamedTuple):
    internal: list[PageLink]
    external: list[PageLink]
    enqueued: int


class LinkClassifier:
    """Splits a page's links into internal and external and feeds the frontier.

    A link is internal when its hostname equals one of the run's base
    hostnames, or is a subdomain of one when `include_subdomains` is set. The
    base URL's host is the first; `add_base_url` adds the host a redirected
    seed ended up on. Internal links are queued one level deeper than the
    page they were found on, unless that would exceed `max_depth`; the
    frontier itself refuses visited or already-queued URLs. External links
    are only recorded.
    """

    def __init__(self, frontier: Frontier, base_url: str, *, include_subdomains: bool = False, max_depth: Optional[int] = None):
        self.frontier = frontier
        self.base_hosts: set[str] = set()
        self.add_base_url(base_url)
        self.include_subdomains = include_subdomains
        self.max_depth = max_depth

    def add_base_url(self, url: str) -> bool:
        """Treat `url`'s host as internal too. Returns whether it was new."""
        host = (_hostname(url) or "").lower()
        if not host or host in self.base_hosts:
            return False
        self.base_hosts.add(host)
        return True

    def is_internal(self, url: str) -> bool:
        host = (_hostname(url) or "").lower()
        if not host:
            return False
        if host in self.base_hosts:
            return True
        return self.include_subdomains and any(host.endswith("." + base) for base in self.base_hosts)

    def classify(self, links: Iterable[PageLink], depth: int) -> ClassifiedLinks:
        internal: list[PageLink] = []
        external: list[PageLink] = []
        enqueued = 0
        next_depth = depth + 1
        can_descend = self.max_depth is None or next_depth <= self.max_depth
        for link in links:
            if not self.is_internal(link.url):
                logger.debug("External link %s -> not on %s", link.url, sorted(self.base_hosts))
                external.append(link)
                continue
            internal.append(link)
            if can_descend and self.frontier.enqueue(link.url, next_depth):
                enqueued += 1
        return ClassifiedLinks(internal, external, enqueued)
