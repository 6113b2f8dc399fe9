"""
=============================================================================
HTTP STATUS CODES
=============================================================================

The status codes a static file server actually produces, with their
reason phrases.

    ┌───────────┬──────────────────────────────────────────────────────────┐
    │   Code    │  When staticserve sends it                               │
    ├───────────┼──────────────────────────────────────────────────────────┤
    │  200      │  File or listing body follows                            │
    │  301      │  Directory requested without a trailing slash           │
    │  304      │  Client copy is still fresh (If-Modified-Since)          │
    │  400      │  Malformed request line or headers                       │
    │  404      │  Missing, hidden or unlisted resource                    │
    │  405      │  Anything other than GET or HEAD                         │
    │  408      │  Client never finished sending its request              │
    │  413      │  Request head larger than the configured limit           │
    │  500      │  Listing could not be rendered, unexpected failure       │
    │  503      │  Worker queue is full                                    │
    │  505      │  Neither HTTP/1.0 nor HTTP/1.1                           │
    └───────────┴──────────────────────────────────────────────────────────┘

=============================================================================
"""

from enum import IntEnum


class HTTPStatus(IntEnum):
    """
    HTTP status codes and reason phrases.

    This enum extends IntEnum, so status codes can be used as integers:

        >>> HTTPStatus.OK == 200
        True
        >>> HTTPStatus.NOT_MODIFIED.phrase
        'Not Modified'
    """

    # 2xx SUCCESS
    OK = 200
    NO_CONTENT = 204

    # 3xx REDIRECTION
    MOVED_PERMANENTLY = 301     # Directory URL needs its trailing slash
    NOT_MODIFIED = 304          # Cached version is still valid

    # 4xx CLIENT ERRORS
    BAD_REQUEST = 400
    NOT_FOUND = 404
    METHOD_NOT_ALLOWED = 405
    REQUEST_TIMEOUT = 408
    PAYLOAD_TOO_LARGE = 413

    # 5xx SERVER ERRORS
    INTERNAL_SERVER_ERROR = 500
    SERVICE_UNAVAILABLE = 503
    HTTP_VERSION_NOT_SUPPORTED = 505

    @property
    def phrase(self) -> str:
        """
        Get the reason phrase for this status code.

            HTTP/1.1 304 Not Modified
                     ─── ────────────
        """
        return _STATUS_PHRASES.get(self, "Unknown")

    @property
    def allows_body(self) -> bool:
        """
        Check whether a response with this status may carry a body.

        RFC 7230 section 3.3.3: 1xx, 204 and 304 responses never have a
        message body, whatever their headers say.
        """
        return not (100 <= self < 200 or self in (204, 304))

    @property
    def is_error(self) -> bool:
        """Check if this is an error status code (4xx or 5xx)."""
        return self >= 400


_STATUS_PHRASES = {
    HTTPStatus.OK: "OK",
    HTTPStatus.NO_CONTENT: "No Content",
    HTTPStatus.MOVED_PERMANENTLY: "Moved Permanently",
    HTTPStatus.NOT_MODIFIED: "Not Modified",
    HTTPStatus.BAD_REQUEST: "Bad Request",
    HTTPStatus.NOT_FOUND: "Not Found",
    HTTPStatus.METHOD_NOT_ALLOWED: "Method Not Allowed",
    HTTPStatus.REQUEST_TIMEOUT: "Request Timeout",
    HTTPStatus.PAYLOAD_TOO_LARGE: "Payload Too Large",
    HTTPStatus.INTERNAL_SERVER_ERROR: "Internal Server Error",
    HTTPStatus.SERVICE_UNAVAILABLE: "Service Unavailable",
    HTTPStatus.HTTP_VERSION_NOT_SUPPORTED: "HTTP Version Not Supported",
}
