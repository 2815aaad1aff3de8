from __future__ import annotations

from dataclasses import dataclass, fields
from typing import Any, Mapping, Optional

from siteaudit.exceptions import ValidationError


# camelCase wire names -> dataclass attribute names
_WIRE_NAMES = {
    "maxPages": "max_pages",
    "maxDepth": "max_depth",
    "respectRobotsTxt": "respect_robots_txt",
    "includeSubdomains": "include_subdomains",
    "followRedirects": "follow_redirects",
    "crawlImages": "crawl_images",
    "userAgent": "user_agent",
    "delay": "delay_ms",
    "timeout": "timeout_ms",
}

DEFAULT_USER_AGENT = "RankScopeBot/1.0"

_TRUE_VALUES = ("1", "true", "yes", "on")
_FALSE_VALUES = ("0", "false", "no", "off")


def _to_bool(name: str, value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, int) and value in (0, 1):
        return bool(value)
    if isinstance(value, str):
        text = value.strip().lower()
        if text in _TRUE_VALUES:
            return True
        if text in _FALSE_VALUES:
            return False
    raise ValidationError(f"{name} must be a boolean, got {value!r}", field=name)


@dataclass(frozen=True)
class CrawlSettings:
    """Crawl-behavior settings for one audit run.

    Settings are fixed when a run is created; the engine never mutates them.
    `max_depth` is advisory: links discovered deeper than it are recorded on
    the page but not queued.
    """

    max_pages: int = 500
    max_depth: int = 10
    respect_robots_txt: bool = True
    include_subdomains: bool = False
    follow_redirects: bool = True
    crawl_images: bool = True
    user_agent: str = DEFAULT_USER_AGENT
    delay_ms: int = 200
    timeout_ms: int = 30000

    def __post_init__(self):
        if int(self.max_pages) <= 0:
            raise ValidationError("maxPages must be a positive integer", field="maxPages")
        for name in ("max_depth", "delay_ms", "timeout_ms"):
            if int(getattr(self, name)) < 0:
                raise ValidationError(f"{name} must not be negative", field=name)
        if not self.user_agent or not str(self.user_agent).strip():
            raise ValidationError("userAgent must not be empty", field="userAgent")

    @property
    def delay_seconds(self) -> float:
        return self.delay_ms / 1000.0

    @property
    def timeout_seconds(self) -> float:
        return self.timeout_ms / 1000.0

    @classmethod
    def from_dict(cls, data: Optional[Mapping[str, Any]], *, default_user_agent: Optional[str] = None) -> "CrawlSettings":
        """Build settings from a camelCase or snake_case mapping.

        Unknown keys are ignored and missing or None values fall back to the
        defaults.
        """
        known = {f.name for f in fields(cls)}
        kwargs: dict[str, Any] = {}
        for key, value in (data or {}).items():
            attr = _WIRE_NAMES.get(key, key)
            if attr not in known or value is None:
                continue
            kwargs[attr] = value
        if "user_agent" not in kwargs and default_user_agent:
            kwargs["user_agent"] = default_user_agent
        try:
            for name in ("max_pages", "max_depth", "delay_ms", "timeout_ms"):
                if name in kwargs:
                    kwargs[name] = int(kwargs[name])
        except (TypeError, ValueError) as e:
            raise ValidationError(f"Invalid crawl settings: {e}") from e
        for name in ("respect_robots_txt", "include_subdomains", "follow_redirects", "crawl_images"):
            if name in kwargs:
                kwargs[name] = _to_bool(name, kwargs[name])
        return cls(**kwargs)

    def to_dict(self) -> dict[str, Any]:
        return {wire: getattr(self, attr) for wire, attr in _WIRE_NAMES.items()}
