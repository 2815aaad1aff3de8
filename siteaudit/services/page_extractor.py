import logging
from dataclasses import dataclass, field
from typing import Callable, NamedTuple, Optional
from urllib.parse import urljoin, urlsplit, urlunsplit

from bs4 import BeautifulSoup

from siteaudit.domain.crawled_page import HEADING_TAGS, PageImage, PageLink, SocialMeta
from siteaudit.exceptions import ExtractionError

logger = logging.getLogger(__name__)

CRAWLABLE_SCHEMES = ("http", "https")

# Elements whose text is never shown to a reader
INVISIBLE_TAGS = ("script", "style", "noscript", "template")


class Resolution(NamedTuple):
    """Outcome of resolving one href/src against the page URL."""
    value: Optional[str]
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class PageFields:
    """Structured data pulled out of one HTML document."""
    title: str = ""
    meta_description: str = ""
    meta_keywords: list[str] = field(default_factory=list)
    headings: dict[str, list[str]] = field(default_factory=dict)
    word_count: int = 0
    canonical_url: str = ""
    robots_meta: str = ""
    language: str = ""
    schema_markup: list[str] = field(default_factory=list)
    social_meta: SocialMeta = field(default_factory=SocialMeta)
    links: list[PageLink] = field(default_factory=list)
    images: list[PageImage] = field(default_factory=list)
    skipped_links: int = 0
    skipped_images: int = 0

    @property
    def skipped_elements(self) -> int:
        return self.skipped_links + self.skipped_images


def resolve_url(base_url: str, href: Optional[str], *, strip_fragment: bool = True) -> Resolution:
    """Resolve `href` to an absolute http(s) URL relative to `base_url`."""
    if href is None or not href.strip():
        return Resolution(None, "empty reference")
    try:
        absolute = urljoin(base_url, href.strip())
        parts = urlsplit(absolute)
        parts.port
    except ValueError as e:
        return Resolution(None, f"malformed reference {href!r}: {e}")
    if parts.scheme.lower() not in CRAWLABLE_SCHEMES:
        return Resolution(None, f"unsupported scheme in {href!r}")
    if not parts.netloc:
        return Resolution(None, f"no host in {href!r}")
    if strip_fragment:
        absolute = urlunsplit((parts.scheme, parts.netloc, parts.path, parts.query, ""))
    return Resolution(absolute)


def _parse_dimension(value) -> Optional[int]:
    if value is None:
        return None
    digits = str(value).strip().lower().removesuffix("px")
    try:
        return int(float(digits))
    except ValueError:
        return None


class PageDataExtractor:
    """Parses an HTML document into `PageFields`.

    Every link and image is resolved on its own; a reference that cannot be
    resolved is logged, counted and skipped while the rest of the page is
    still extracted.
    """

    def __init__(
        self,
        soup_factory: Optional[Callable[[str], BeautifulSoup]] = None,
    ):
        self._soup_factory = soup_factory or (lambda html: BeautifulSoup(html, "html.parser"))

    def extract(self, url: str, html: Optional[str]) -> PageFields:
        try:
            soup = self._soup_factory(html or "")
        except Exception as e:
            raise ExtractionError(url, e) from e

        fields = PageFields(
            title=self._title(soup),
            meta_description=self._meta_content(soup, name="description"),
            meta_keywords=self._keywords(soup),
            headings={tag: [h.get_text(strip=True) for h in soup.find_all(tag)] for tag in HEADING_TAGS},
            canonical_url=self._canonical(soup),
            robots_meta=self._meta_content(soup, name="robots"),
            language=self._language(soup),
            schema_markup=[s.get_text() for s in soup.find_all("script", attrs={"type": "application/ld+json"})],
            social_meta=SocialMeta(
                og_title=self._meta_content(soup, prop="og:title"),
                og_description=self._meta_content(soup, prop="og:description"),
                og_image=self._meta_content(soup, prop="og:image"),
                twitter_title=self._meta_content(soup, name="twitter:title"),
                twitter_description=self._meta_content(soup, name="twitter:description"),
                twitter_image=self._meta_content(soup, name="twitter:image"),
            ),
        )
        self._extract_links(url, soup, fields)
        self._extract_images(url, soup, fields)
        # counted last: removing invisible tags mutates the tree
        fields.word_count = self._word_count(soup)
        return fields

    def _title(self, soup: BeautifulSoup) -> str:
        tag = soup.find("title")
        return tag.get_text(strip=True) if tag else ""

    def _meta_content(self, soup: BeautifulSoup, *, name: Optional[str] = None, prop: Optional[str] = None) -> str:
        attrs = {"name": name} if name else {"property": prop}
        tag = soup.find("meta", attrs=attrs)
        if tag is None and name:
            # some sites write twitter cards with property= instead of name=
            tag = soup.find("meta", attrs={"property": name})
        content = tag.get("content") if tag else None
        return content.strip() if isinstance(content, str) else ""

    def _keywords(self, soup: BeautifulSoup) -> list[str]:
        raw = self._meta_content(soup, name="keywords")
        return [k.strip() for k in raw.split(",") if k.strip()]

    def _canonical(self, soup: BeautifulSoup) -> str:
        for tag in soup.find_all("link", href=True):
            rel = tag.get("rel") or []
            if "canonical" in [r.lower() for r in rel]:
                return tag.get("href").strip()
        return ""

    def _language(self, soup: BeautifulSoup) -> str:
        html = soup.find("html")
        lang = html.get("lang") if html else None
        return lang.strip() if isinstance(lang, str) else ""

    def _extract_links(self, url: str, soup: BeautifulSoup, fields: PageFields) -> None:
        for a in soup.find_all("a", href=True):
            resolved = resolve_url(url, a.get("href"))
            if not resolved.ok:
                logger.debug("Skipping link on %s: %s", url, resolved.error)
                fields.skipped_links += 1
                continue
            rel = [r.lower() for r in (a.get("rel") or [])]
            fields.links.append(PageLink(url=resolved.value, anchor_text=a.get_text(strip=True), nofollow="nofollow" in rel))

    def _extract_images(self, url: str, soup: BeautifulSoup, fields: PageFields) -> None:
        for img in soup.find_all("img", src=True):
            resolved = resolve_url(url, img.get("src"), strip_fragment=False)
            if not resolved.ok:
                logger.debug("Skipping image on %s: %s", url, resolved.error)
                fields.skipped_images += 1
                continue
            fields.images.append(
                PageImage(
                    src=resolved.value,
                    alt=(img.get("alt") or "").strip(),
                    width=_parse_dimension(img.get("width")),
                    height=_parse_dimension(img.get("height")),
                )
            )

    def _word_count(self, soup: BeautifulSoup) -> int:
        root = soup.body or soup
        for tag in INVISIBLE_TAGS:
            for element in root.find_all(tag):
                element.decompose()
        text = root.get_text(separator=" ")
        return len([token for token in text.split() if token])
