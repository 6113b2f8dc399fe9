"""
=============================================================================
HTTP PROTOCOL LAYER
=============================================================================

    request.py       raw bytes → HTTPRequest
    response.py      ResponseWriter family, send_error, HTTP dates
    status_codes.py  HTTPStatus enum
    mime_types.py    extension → Content-Type
    errors.py        exceptions that map to a status code

=============================================================================
"""

from .errors import (
    ClientPathRejected,
    HTTPError,
    ListingRenderError,
    MethodRejected,
    ResourceNotFound,
    ServerFault,
)
from .mime_types import DEFAULT_MIME_TYPE, MIME_TYPES, MimeRegistry, file_extension
from .request import HTTPParseError, HTTPRequest, RequestParser, parse_request
from .response import (
    BufferedResponseWriter,
    HTTPResponse,
    ResponseWriter,
    StatusRecorder,
    StreamResponseWriter,
    format_http_date,
    send_error,
)
from .status_codes import HTTPStatus

__all__ = [
    "HTTPRequest",
    "RequestParser",
    "HTTPParseError",
    "parse_request",
    "HTTPResponse",
    "ResponseWriter",
    "StreamResponseWriter",
    "BufferedResponseWriter",
    "StatusRecorder",
    "send_error",
    "format_http_date",
    "HTTPStatus",
    "MimeRegistry",
    "MIME_TYPES",
    "DEFAULT_MIME_TYPE",
    "file_extension",
    "HTTPError",
    "ResourceNotFound",
    "ClientPathRejected",
    "MethodRejected",
    "ServerFault",
    "ListingRenderError",
]
