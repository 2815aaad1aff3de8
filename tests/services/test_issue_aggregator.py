import pytest

from siteaudit.domain.crawled_page import CrawledPage, PageImage
from siteaudit.services.issue_aggregator import IssueAggregator, count_duplicates


def _page(url, **kwargs):
    return CrawledPage(url=f"https://example.com/{url}", **kwargs)


def test_duplicates_count_distinct_values():
    assert count_duplicates(["Home", "Home", "About"]) == 1
    assert count_duplicates(["A", "A", "A", "B", "B"]) == 2
    assert count_duplicates(["", "", None, "  "]) == 0


def test_empty_page_set_has_zero_averages():
    s = IssueAggregator().summarize([])
    assert s.total_pages == 0
    assert s.average_response_time == 0
    assert s.average_word_count == 0


def test_summary_counts():
    pages = [
        _page("a", status_code=200, response_time_ms=100, word_count=10, images=[PageImage(src="x")]),
        _page("b", status_code=301, response_time_ms=200, word_count=0),
        _page("c", status_code=404, response_time_ms=301, word_count=5),
    ]
    s = IssueAggregator().summarize(pages)
    assert s.total_pages == 3
    assert s.crawled_pages == 1
    assert s.redirect_pages == 1
    assert s.error_pages == 1
    assert s.total_response_time == 601
    assert s.average_response_time == 200
    assert s.average_word_count == 5
    assert s.total_images == 1


def test_missing_title_counts_pages_with_empty_title():
    pages = [_page("a", title=""), _page("b", title="Hello"), _page("c", title="   ")]
    assert IssueAggregator().find_issues(pages).missing_titles == 2


def test_issue_counts():
    pages = [
        _page("a", title="Home", meta_description="d", headings={"h1": ["x", "y"]}, response_time_ms=3500),
        _page("b", title="Home", meta_description="d", headings={"h1": ["x"]}, content_length=6_000_000),
        _page("c", title="", status_code=500),
    ]
    issues = IssueAggregator().find_issues(pages)
    assert issues.missing_titles == 1
    assert issues.missing_descriptions == 1
    assert issues.duplicate_titles == 1
    assert issues.duplicate_descriptions == 1
    assert issues.missing_h1 == 1
    assert issues.multiple_h1 == 1
    assert issues.broken_links == 1
    assert issues.slow_pages == 1
    assert issues.large_pages == 1
    assert issues.redirect_chains == 0


def test_status_code_counts():
    pages = [_page("a", status_code=200), _page("b", status_code=200), _page("c", status_code=404)]
    assert IssueAggregator().status_code_counts(pages) == {"200": 2, "404": 1}


@pytest.mark.parametrize(
    "issue,page,expected",
    [
        ("title-too-long", _page("a", title="x" * 61), True),
        ("title-too-short", _page("a", title="short"), True),
        ("title-too-short", _page("a", title=""), False),
        ("description-too-long", _page("a", meta_description="x" * 161), True),
        ("description-too-short", _page("a", meta_description="x" * 130), False),
        ("images-without-alt", _page("a", images=[PageImage(src="i", alt="")]), True),
        ("broken-links", _page("a", status_code=399), False),
    ],
)
def test_matches_issue(issue, page, expected):
    assert IssueAggregator().matches_issue(page, issue) is expected


def test_unknown_issue_type():
    with pytest.raises(ValueError):
        IssueAggregator().matches_issue(_page("a"), "bad-vibes")
