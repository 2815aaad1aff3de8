import csv
import io

from siteaudit.domain.crawled_page import CrawledPage, PageImage, PageLink
from siteaudit.services.csv_exporter import CSV_COLUMNS, export_csv, iter_csv


def _rows(text):
    return list(csv.reader(io.StringIO(text)))


def test_header_only_for_empty_run():
    assert _rows(export_csv([])) == [CSV_COLUMNS]


def test_one_row_per_page():
    page = CrawledPage(
        url="https://example.com/",
        status_code=200,
        title="Home",
        meta_description='Says "hi", then leaves',
        headings={"h1": ["Home"]},
        word_count=42,
        internal_links=[PageLink("https://example.com/a"), PageLink("https://example.com/b")],
        external_links=[PageLink("https://other.org/")],
        images=[PageImage(src="/x.png", alt="x")],
        response_time_ms=120,
        content_length=2048,
        canonical_url="https://example.com/",
        robots_meta="index,follow",
        crawl_depth=0,
    )
    header, row = _rows(export_csv([page]))
    record = dict(zip(header, row))
    assert record["url"] == "https://example.com/"
    assert record["statusCode"] == "200"
    assert record["titleLength"] == "4"
    # quotes and commas survive the round trip through the csv module
    assert record["metaDescription"] == 'Says "hi", then leaves'
    assert record["metaDescriptionLength"] == str(len('Says "hi", then leaves'))
    assert record["h1Count"] == "1"
    assert record["internalLinks"] == "2"
    assert record["externalLinks"] == "1"
    assert record["images"] == "1"
    assert record["robotsMeta"] == "index,follow"


def test_error_page_has_empty_text_columns():
    page = CrawledPage.error_page("https://example.com/gone", "HTTP 404", status_code=404, crawl_depth=2)
    header, row = _rows(export_csv([page]))
    record = dict(zip(header, row))
    assert record["title"] == ""
    assert record["canonicalUrl"] == ""
    assert record["crawlDepth"] == "2"


def test_iter_csv_yields_line_per_row():
    pages = [CrawledPage(url=f"https://example.com/{i}") for i in range(3)]
    lines = list(iter_csv(pages))
    assert len(lines) == 4
    assert all(line.endswith("\r\n") for line in lines)


def test_formula_like_text_is_quoted_for_spreadsheets():
    page = CrawledPage(
        url="https://example.com/",
        title='=HYPERLINK("http://evil.test","click")',
        meta_description="-2+3",
        robots_meta="@SUM(A1)",
        canonical_url="+1",
    )
    header, row = _rows(export_csv([page]))
    record = dict(zip(header, row))
    assert record["title"] == '\'=HYPERLINK("http://evil.test","click")'
    assert record["titleLength"] == str(len('=HYPERLINK("http://evil.test","click")'))
    assert record["metaDescription"] == "'-2+3"
    assert record["robotsMeta"] == "'@SUM(A1)"
    assert record["canonicalUrl"] == "'+1"
    assert record["url"] == "https://example.com/"
