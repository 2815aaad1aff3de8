import pytest

from siteaudit.domain.audit_run import AuditRun
from siteaudit.domain.audit_session import AuditSession
from siteaudit.exceptions import AuditAlreadyRunningError
from siteaudit.services.audit_registry import InMemoryAuditRegistry


def _session(run_id):
    return AuditSession(AuditRun(run_id=run_id, name="x", base_url=f"https://site{run_id}.com/"))


def test_claim_registers_session_and_record():
    registry = InMemoryAuditRegistry()
    session = _session(1)
    registry.claim(session)

    assert registry.is_active(1)
    assert registry.get_session(1) is session
    rec = registry.get(1)
    assert rec["status"] == "crawling"
    assert rec["base_url"] == "https://site1.com/"
    assert [r["run_id"] for r in registry.list_active()] == [1]


def test_second_claim_for_same_run_is_refused():
    registry = InMemoryAuditRegistry()
    registry.claim(_session(1))
    with pytest.raises(AuditAlreadyRunningError):
        registry.claim(_session(1))
    # other runs are unaffected
    registry.claim(_session(2))
    assert registry.is_active(2)


def test_release_allows_a_new_claim():
    registry = InMemoryAuditRegistry()
    registry.claim(_session(1))
    assert registry.release(1, status="paused")
    assert not registry.is_active(1)
    assert registry.get(1)["status"] == "paused"
    assert registry.list_active() == []

    registry.claim(_session(1))
    assert registry.get(1)["status"] == "crawling"
    assert registry.get(1)["finished_at"] is None


def test_update_tracks_progress_and_recent_urls():
    registry = InMemoryAuditRegistry()
    registry.claim(_session(1))
    for i in range(25):
        registry.update(1, pages_crawled=i, current_url=f"https://site1.com/{i}")
    rec = registry.get(1)
    assert rec["pages_crawled"] == 24
    assert rec["current_url"] == "https://site1.com/24"
    assert len(rec["recent_urls"]) == 20
    assert rec["recent_urls"][0] == "https://site1.com/24"


def test_update_unknown_run_is_ignored():
    assert not InMemoryAuditRegistry().update(99, pages_crawled=1)


def test_finished_records_are_bounded():
    registry = InMemoryAuditRegistry(max_finished_records=2)
    for run_id in (1, 2, 3):
        registry.claim(_session(run_id))
        registry.release(run_id, status="completed")
    assert registry.get(1) is None
    assert registry.get(2) is not None
    assert registry.get(3) is not None


def test_release_records_error():
    registry = InMemoryAuditRegistry()
    registry.claim(_session(1))
    registry.release(1, status="failed", error="boom")
    assert registry.get(1)["error"] == "boom"
