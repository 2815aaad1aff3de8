from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Mapping, Optional

HEADING_TAGS = ("h1", "h2", "h3", "h4", "h5", "h6")


@dataclass(frozen=True)
class PageLink:
    url: str
    anchor_text: str = ""
    nofollow: bool = False


@dataclass(frozen=True)
class PageImage:
    src: str
    alt: str = ""
    width: Optional[int] = None
    height: Optional[int] = None


@dataclass(frozen=True)
class SocialMeta:
    og_title: str = ""
    og_description: str = ""
    og_image: str = ""
    twitter_title: str = ""
    twitter_description: str = ""
    twitter_image: str = ""


@dataclass(frozen=True)
class CrawledPage:
    """Record of one dequeued URL.

    Built once by the crawl engine and never changed after it is appended to
    the run. A page whose fetch failed carries `error` and only the fetch
    metadata that was known.
    """

    url: str
    status_code: int = 0
    content_type: Optional[str] = None
    title: str = ""
    meta_description: str = ""
    meta_keywords: list[str] = field(default_factory=list)
    headings: dict[str, list[str]] = field(default_factory=dict)
    word_count: int = 0
    internal_links: list[PageLink] = field(default_factory=list)
    external_links: list[PageLink] = field(default_factory=list)
    images: list[PageImage] = field(default_factory=list)
    canonical_url: str = ""
    robots_meta: str = ""
    response_time_ms: int = 0
    content_length: int = 0
    language: str = ""
    schema_markup: list[str] = field(default_factory=list)
    social_meta: SocialMeta = field(default_factory=SocialMeta)
    crawl_depth: int = 0
    skipped_elements: int = 0
    error: Optional[str] = None
    # where the fetch ended up when that differs from `url`
    final_url: Optional[str] = None

    @classmethod
    def error_page(
        cls,
        url: str,
        error: str,
        *,
        status_code: Optional[int] = None,
        crawl_depth: int = 0,
        response_time_ms: int = 0,
    ) -> "CrawledPage":
        return cls(
            url=url,
            status_code=int(status_code or 0),
            error=error,
            crawl_depth=crawl_depth,
            response_time_ms=response_time_ms,
        )

    @property
    def h1(self) -> list[str]:
        return self.headings.get("h1", [])

    def to_dict(self) -> dict[str, Any]:
        d = asdict(self)
        for tag in HEADING_TAGS:
            d[tag] = list(self.headings.get(tag, []))
        d.pop("headings")
        return d

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "CrawledPage":
        social = data.get("social_meta") or {}
        return cls(
            url=data["url"],
            status_code=int(data.get("status_code") or 0),
            content_type=data.get("content_type"),
            title=data.get("title") or "",
            meta_description=data.get("meta_description") or "",
            meta_keywords=list(data.get("meta_keywords") or []),
            headings={tag: list(data.get(tag) or []) for tag in HEADING_TAGS},
            word_count=int(data.get("word_count") or 0),
            internal_links=[PageLink(**link) for link in data.get("internal_links") or []],
            external_links=[PageLink(**link) for link in data.get("external_links") or []],
            images=[PageImage(**img) for img in data.get("images") or []],
            canonical_url=data.get("canonical_url") or "",
            robots_meta=data.get("robots_meta") or "",
            response_time_ms=int(data.get("response_time_ms") or 0),
            content_length=int(data.get("content_length") or 0),
            language=data.get("language") or "",
            schema_markup=list(data.get("schema_markup") or []),
            social_meta=SocialMeta(**social),
            crawl_depth=int(data.get("crawl_depth") or 0),
            skipped_elements=int(data.get("skipped_elements") or 0),
            error=data.get("error"),
            final_url=data.get("final_url"),
        )

    def __repr__(self):
        return f"<CrawledPage url={self.url} status={self.status_code}>"
