import logging
from datetime import datetime, timezone
from typing import Optional, Union

logger = logging.getLogger(__name__)


def to_utc_naive(value: Union[str, datetime, None]) -> Optional[datetime]:
    """Return `value` as a UTC-naive datetime.

    Accepts a datetime or an ISO string. Aware values are converted to UTC;
    naive values are taken to already be UTC. Returns None if `value` is None
    or cannot be parsed.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        dt = value
    else:
        try:
            dt = datetime.fromisoformat(value)
        except ValueError:
            logger.debug("Could not parse datetime string: %s", value)
            return None
    if dt.tzinfo is not None:
        return dt.astimezone(timezone.utc).replace(tzinfo=None)
    return dt


def elapsed_ms(start: Union[str, datetime, None], end: datetime) -> Optional[int]:
    start = to_utc_naive(start)
    if start is None:
        return None
    return int((to_utc_naive(end) - start).total_seconds() * 1000)
