"""
=============================================================================
CONDITIONAL REQUESTS (If-Modified-Since)
=============================================================================

    First visit:
        GET /app.js                       → 200, Last-Modified: <T>
    Revisit:
        GET /app.js
        If-Modified-Since: <T>            → 304 Not Modified, no body

HTTP dates have whole-second precision, file systems do not. A file with
mtime 12:00:00.750 is advertised as 12:00:00; if the comparison used the
raw mtime, the client echoing 12:00:00 back would look stale forever.
So the SAME truncated value is used for the header and the comparison.

=============================================================================
"""

import math
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import Optional


def truncate_to_second(mtime: float) -> datetime:
    """Convert an epoch mtime to an aware UTC datetime, fraction dropped."""
    return datetime.fromtimestamp(math.floor(mtime), tz=timezone.utc)


def parse_http_date(value: Optional[str]) -> Optional[datetime]:
    """
    Parse an HTTP date header value.

    Accepts IMF-fixdate ("Sun, 06 Nov 1994 08:49:37 GMT") and the other
    RFC 2822 style forms email.utils understands.

    Returns:
        An aware UTC datetime, or None when the value is missing or
        cannot be parsed.
    """
    if not value:
        return None
    try:
        parsed = parsedate_to_datetime(value.strip())
    except (TypeError, ValueError, IndexError, OverflowError):
        return None
    if parsed is None:
        return None
    if parsed.tzinfo is None:
        # "-0000" means UTC with unknown origin; HTTP dates are always GMT
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def is_not_modified(modified_at: datetime, if_modified_since: Optional[str]) -> bool:
    """
    Decide whether the client's cached copy is still fresh.

    Args:
        modified_at:       Second-truncated modification time.
        if_modified_since: Raw If-Modified-Since header value, if any.

    Returns:
        True when the header parses and modified_at is not after it.
    """
    since = parse_http_date(if_modified_since)
    if since is None:
        return False
    return modified_at <= since
