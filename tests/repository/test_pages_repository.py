from sqlalchemy.orm import sessionmaker

from siteaudit.db.engine import init_db, make_engine
from siteaudit.domain.audit_run import AuditRun
from siteaudit.domain.crawled_page import CrawledPage, PageLink
from siteaudit.repository.audits import AuditsRepository
from siteaudit.repository.pages import CrawledPagesRepository


def _repos():
    engine = make_engine("sqlite://")
    init_db(engine)
    factory = sessionmaker(bind=engine, future=True)
    audits = AuditsRepository(factory)
    run = audits.create_run(AuditRun(run_id=None, name="x", base_url="https://example.com/"))
    return CrawledPagesRepository(factory), run.run_id


def test_add_and_list_pages_in_crawl_order():
    repo, run_id = _repos()
    pages = [
        CrawledPage(url="https://example.com/b", internal_links=[PageLink(url="https://example.com/c")]),
        CrawledPage(url="https://example.com/a"),
    ]
    assert repo.add_pages(run_id, pages) == 2
    listed = repo.list_pages(run_id)
    assert [p.url for p in listed] == ["https://example.com/b", "https://example.com/a"]
    assert listed[0].internal_links == [PageLink(url="https://example.com/c")]
    assert len(repo.list_pages(run_id)) == 2


def test_add_pages_skips_stored_urls():
    repo, run_id = _repos()
    repo.add_pages(run_id, [CrawledPage(url="https://example.com/")])
    assert repo.add_pages(run_id, [CrawledPage(url="https://EXAMPLE.com/"), CrawledPage(url="https://example.com/z")], 1) == 1
    assert len(repo.list_pages(run_id)) == 2


def test_add_no_pages():
    repo, run_id = _repos()
    assert repo.add_pages(run_id, []) == 0


def test_nul_characters_are_stripped():
    repo, run_id = _repos()
    repo.add_pages(run_id, [CrawledPage(url="https://example.com/", title="bad\x00title")])
    assert repo.list_pages(run_id)[0].title == "badtitle"

