import csv
import io
from typing import Iterable, Iterator

from siteaudit.domain.crawled_page import CrawledPage

CSV_COLUMNS = [
    "url",
    "statusCode",
    "title",
    "titleLength",
    "metaDescription",
    "metaDescriptionLength",
    "h1Count",
    "wordCount",
    "internalLinks",
    "externalLinks",
    "images",
    "responseTime",
    "contentLength",
    "canonicalUrl",
    "robotsMeta",
    "crawlDepth",
]

# spreadsheet apps evaluate cells starting with these as formulas
FORMULA_PREFIXES = ("=", "+", "-", "@", "\t", "\r")


def safe_cell(value: str) -> str:
    if value and value.startswith(FORMULA_PREFIXES):
        return "'" + value
    return value


def page_row(page: CrawledPage) -> list:
    title = page.title or ""
    description = page.meta_description or ""
    return [
        safe_cell(page.url),
        page.status_code,
        safe_cell(title),
        len(title),
        safe_cell(description),
        len(description),
        len(page.h1),
        page.word_count,
        len(page.internal_links),
        len(page.external_links),
        len(page.images),
        page.response_time_ms,
        page.content_length,
        safe_cell(page.canonical_url or ""),
        safe_cell(page.robots_meta or ""),
        page.crawl_depth,
    ]


def iter_csv(pages: Iterable[CrawledPage]) -> Iterator[str]:
    """Yield the CSV export line by line, header first."""
    buf = io.StringIO()
    writer = csv.writer(buf)
    writer.writerow(CSV_COLUMNS)
    yield buf.getvalue()
    for page in pages:
        buf.seek(0)
        buf.truncate(0)
        writer.writerow(page_row(page))
        yield buf.getvalue()


def export_csv(pages: Iterable[CrawledPage]) -> str:
    return "".join(iter_csv(pages))
