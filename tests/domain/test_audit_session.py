import threading

import pytest

from siteaudit.domain.audit_run import AuditRun, AuditStatus
from siteaudit.domain.audit_session import AuditSession
from siteaudit.domain.crawl_settings import CrawlSettings
from siteaudit.domain.crawled_page import CrawledPage
from siteaudit.exceptions import InvalidTransitionError


def _session(status=AuditStatus.PENDING, max_pages=5, pages=None, frontier_state=None, registry=None):
    run = AuditRun(
        run_id=7,
        name="Site",
        base_url="https://example.com",
        crawl_settings=CrawlSettings(max_pages=max_pages),
        status=status,
        crawled_pages=pages,
        frontier_state=frontier_state,
    )
    return AuditSession(run, registry=registry)


def test_begin_moves_pending_to_crawling_and_keeps_crawling():
    s = _session()
    s.begin()
    assert s.is_crawling()
    s.begin()
    assert s.is_crawling()


def test_begin_rejects_paused_run():
    s = _session(status=AuditStatus.PAUSED)
    with pytest.raises(InvalidTransitionError):
        s.begin()


def test_pause_requires_crawling():
    s = _session()
    with pytest.raises(InvalidTransitionError) as exc:
        s.request_pause()
    assert str(exc.value) == "Audit is not currently running"

    s.begin()
    s.request_pause()
    assert s.status() is AuditStatus.PAUSED


def test_stop_allowed_from_crawling_or_paused_only():
    s = _session(status=AuditStatus.PAUSED)
    s.request_stop()
    assert s.status() is AuditStatus.COMPLETED

    with pytest.raises(InvalidTransitionError) as exc:
        s.request_stop()
    assert str(exc.value) == "Audit is not currently running or paused"


def test_append_page_rejects_duplicates_and_enforces_budget():
    s = _session(max_pages=2)
    s.append_page(CrawledPage(url="https://example.com/"))
    with pytest.raises(ValueError):
        s.append_page(CrawledPage(url="https://EXAMPLE.com/#x"))
    s.append_page(CrawledPage(url="https://example.com/b"))
    assert s.budget_left() == 0
    with pytest.raises(ValueError):
        s.append_page(CrawledPage(url="https://example.com/c"))
    assert len(s.pages) == 2


def test_existing_pages_are_visited_and_frontier_restored():
    s = _session(
        pages=[CrawledPage(url="https://example.com/")],
        frontier_state={"queue": [["https://example.com/next", 1]], "visited": []},
    )
    assert s.frontier.is_visited("https://example.com/")
    assert s.frontier.pending_urls() == ["https://example.com/next"]
    assert not s.frontier.enqueue("https://example.com/")


def test_update_progress_reports_to_registry():
    class FakeRegistry:
        def __init__(self):
            self.calls = []

        def update(self, run_id, **kwargs):
            self.calls.append((run_id, kwargs))

    registry = FakeRegistry()
    s = _session(registry=registry, pages=[CrawledPage(url="https://example.com/")])
    s.update_progress(current_url="https://example.com/a")
    assert registry.calls == [(7, {"pages_crawled": 1, "current_url": "https://example.com/a"})]


def test_concurrent_pause_and_stop_end_completed():
    s = _session()
    s.begin()
    errors = []

    def attempt(fn):
        try:
            fn()
        except InvalidTransitionError as e:
            errors.append(e)

    threads = [threading.Thread(target=attempt, args=(fn,)) for fn in (s.request_pause, s.request_stop) * 5]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    # every stop succeeds until one has completed the run
    assert s.status() is AuditStatus.COMPLETED
    assert len(errors) in (8, 9)


def test_start_if_pending_only_starts_pending_runs():
    s = _session()
    assert s.start_if_pending() is True
    assert s.is_crawling()
    assert s.start_if_pending() is False

    s.request_pause()
    assert s.start_if_pending() is False
    assert s.status() is AuditStatus.PAUSED
