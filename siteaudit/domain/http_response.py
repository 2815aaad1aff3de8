from typing import NamedTuple, Optional


class HttpResponse(NamedTuple):
    """Response from a single HTTP fetch."""
    status_code: int
    text: str
    content_type: Optional[str] = None
    content_length: int = 0
    response_time_ms: int = 0
    final_url: Optional[str] = None
    # Location header of a 3xx response that was not followed
    location: Optional[str] = None

    @property
    def is_html(self) -> bool:
        ct = (self.content_type or "").lower()
        # a missing Content-Type is treated as HTML, like most crawlers do
        return ct == "" or "text/html" in ct or "application/xhtml+xml" in ct
