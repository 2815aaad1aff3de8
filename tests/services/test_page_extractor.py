from unittest.mock import Mock

import pytest

from siteaudit.domain.crawled_page import PageImage, PageLink
from siteaudit.exceptions import ExtractionError
from siteaudit.services.page_extractor import PageDataExtractor, resolve_url

URL = "https://example.com/blog/post"

HTML = """
<html lang="en">
<head>
  <title> My Post </title>
  <meta name="description" content="A post about things.">
  <meta name="keywords" content="seo, crawling , ,audit">
  <meta name="robots" content="noindex, follow">
  <meta property="og:title" content="OG Post">
  <meta property="twitter:title" content="Tw Post">
  <link rel="canonical" href="https://example.com/blog/post">
  <script type="application/ld+json">{"@type": "Article"}</script>
  <style>.x { color: red }</style>
</head>
<body>
  <h1>Main heading</h1>
  <h2>First</h2><h2>Second</h2>
  <p>Three visible words.</p>
  <script>var hidden = "not counted at all";</script>
  <a href="/about">About us</a>
  <a href="other#frag" rel="nofollow">Other</a>
  <a href="https://external.org/">Ext</a>
  <a href="mailto:hi@example.com">Mail</a>
  <a href="javascript:void(0)">JS</a>
  <a href="http://[bad">Bad</a>
  <img src="/img/a.png" alt="Logo" width="120px" height="40">
  <img src="data:image/png;base64,AAAA" alt="inline">
  <img src="b.jpg">
</body>
</html>
"""


@pytest.fixture
def fields():
    return PageDataExtractor().extract(URL, HTML)


def test_head_fields(fields):
    assert fields.title == "My Post"
    assert fields.meta_description == "A post about things."
    assert fields.meta_keywords == ["seo", "crawling", "audit"]
    assert fields.robots_meta == "noindex, follow"
    assert fields.canonical_url == "https://example.com/blog/post"
    assert fields.language == "en"
    assert fields.schema_markup == ['{"@type": "Article"}']


def test_social_meta(fields):
    assert fields.social_meta.og_title == "OG Post"
    # twitter cards written with property= are still picked up
    assert fields.social_meta.twitter_title == "Tw Post"
    assert fields.social_meta.og_image == ""


def test_headings(fields):
    assert fields.headings["h1"] == ["Main heading"]
    assert fields.headings["h2"] == ["First", "Second"]
    assert fields.headings["h6"] == []


def test_links_are_resolved_and_bad_ones_skipped(fields):
    assert fields.links == [
        PageLink(url="https://example.com/about", anchor_text="About us", nofollow=False),
        PageLink(url="https://example.com/blog/other", anchor_text="Other", nofollow=True),
        PageLink(url="https://external.org/", anchor_text="Ext", nofollow=False),
    ]
    assert fields.skipped_links == 3


def test_images(fields):
    assert fields.images == [
        PageImage(src="https://example.com/img/a.png", alt="Logo", width=120, height=40),
        PageImage(src="https://example.com/blog/b.jpg", alt="", width=None, height=None),
    ]
    assert fields.skipped_images == 1
    assert fields.skipped_elements == 4


def test_word_count_ignores_scripts_and_styles(fields):
    # headings (4) + paragraph (3) + anchor texts (7); the script body is dropped
    assert fields.word_count == 14


def test_empty_document():
    fields = PageDataExtractor().extract(URL, "")
    assert fields.title == ""
    assert fields.links == []
    assert fields.word_count == 0


def test_parser_failure_becomes_extraction_error():
    extractor = PageDataExtractor(soup_factory=Mock(side_effect=RuntimeError("parser exploded")))
    with pytest.raises(ExtractionError) as exc:
        extractor.extract(URL, "<html>")
    assert exc.value.url == URL


@pytest.mark.parametrize(
    "href,expected",
    [
        ("/a", "https://example.com/a"),
        ("b#x", "https://example.com/blog/b"),
        ("//cdn.example.com/c", "https://cdn.example.com/c"),
        ("https://other.org/d?q=1", "https://other.org/d?q=1"),
    ],
)
def test_resolve_url(href, expected):
    res = resolve_url(URL, href)
    assert res.ok
    assert res.value == expected


@pytest.mark.parametrize("href", [None, "", "   ", "mailto:a@b.c", "tel:123", "javascript:void(0)", "ftp://x.org/f", "http://[bad"])
def test_resolve_url_rejects(href):
    res = resolve_url(URL, href)
    assert not res.ok
    assert res.value is None
