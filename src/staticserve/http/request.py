"""
=============================================================================
HTTP REQUEST PARSING
=============================================================================

Parses raw HTTP/1.x request bytes into an HTTPRequest dataclass.

=============================================================================
WHAT A STATIC FILE SERVER NEEDS FROM A REQUEST
=============================================================================

    GET /docs/style.css?v=3 HTTP/1.1\r\n         ← method, target, version
    Host: localhost:8080\r\n
    Accept-Encoding: gzip, deflate, br\r\n        ← compression negotiation
    If-Modified-Since: Wed, 15 Jun 2024 ...\r\n   ← conditional request
    Connection: keep-alive\r\n                    ← connection reuse
    \r\n

    - The PATH is percent-decoded ("/my%20file.txt" → "/my file.txt").
      The query string is kept apart and ignored when resolving files.
    - The raw TARGET is kept as sent, for the access log.
    - Header names are lowercased: HTTP headers are case-insensitive.

=============================================================================
PARSING IS NOT VALIDATION
=============================================================================

The parser accepts any method token. Deciding that only GET and HEAD are
allowed is the dispatcher's job, and it answers 405, not 400.

The parser also does NOT reject ".." in the path. Path normalization and
confinement to the document root happen in one place, the PathResolver.

=============================================================================
"""

import re
from dataclasses import dataclass, field
from typing import Dict, Optional
from urllib.parse import unquote, urlsplit

from .status_codes import HTTPStatus


class HTTPParseError(Exception):
    """
    Raised when HTTP request parsing fails.

    Carries the status code that should be returned to the client:

        400 Bad Request                - Malformed request syntax
        413 Payload Too Large          - Request exceeds size limit
        505 HTTP Version Not Supported - Unknown HTTP version
    """

    def __init__(self, message: str, status_code: int = HTTPStatus.BAD_REQUEST):
        super().__init__(message)
        self.status_code = HTTPStatus(status_code)


@dataclass
class HTTPRequest:
    """
    Represents a parsed HTTP request.

    Attributes:
        method:         Request method, as sent ("GET", "HEAD", ...)
        path:           Percent-decoded path without query string
        target:         Raw request target ("/a%20b?x=1"), for logging
        version:        "HTTP/1.1" or "HTTP/1.0"
        headers:        Header dict with LOWERCASE keys
        client_address: (ip, port) of the client
    """

    method: str
    path: str
    target: str = ""
    version: str = "HTTP/1.1"
    headers: Dict[str, str] = field(default_factory=dict)
    client_address: tuple[str, int] = ("", 0)

    @property
    def is_head(self) -> bool:
        """HEAD requests get headers only, never a body."""
        return self.method == "HEAD"

    @property
    def user_agent(self) -> str:
        return self.headers.get("user-agent", "")

    @property
    def referer(self) -> str:
        return self.headers.get("referer", "")

    @property
    def is_keep_alive(self) -> bool:
        """
        Check if this connection should be kept alive.

            HTTP/1.1: keep alive unless "Connection: close"
            HTTP/1.0: close unless "Connection: keep-alive"
        """
        connection = self.headers.get("connection", "").lower()

        if self.version == "HTTP/1.1":
            return "close" not in connection
        return "keep-alive" in connection

    def get_header(self, name: str, default: str = "") -> str:
        """Get a header value (case-insensitive lookup)."""
        return self.headers.get(name.lower(), default)


class RequestParser:
    """
    Parses raw HTTP request bytes into HTTPRequest objects.

    REQUEST_LINE_PATTERN: ^([!#$%&'*+.^_`|~0-9A-Za-z-]+) ([^ ]+) (HTTP/\\d\\.\\d)$

        ([...]+)      - METHOD: any RFC 7230 token, validated later
        ([^ ]+)       - request target (anything except space)
        (HTTP/\\d\\.\\d) - version

    HEADER_PATTERN: ^([^:]+):\\s*(.*)$
    """

    REQUEST_LINE_PATTERN = re.compile(
        r"^([!#$%&'*+.^_`|~0-9A-Za-z-]+) ([^ ]+) (HTTP/\d\.\d)$"
    )
    HEADER_PATTERN = re.compile(r"^([^:]+):\s*(.*)$")
    SUPPORTED_VERSIONS = ("HTTP/1.0", "HTTP/1.1")

    def __init__(self, max_request_size: int = 64 * 1024):
        """
        Args:
            max_request_size: Maximum size of a request in bytes.
                              Larger requests are rejected with 413.
        """
        self.max_request_size = max_request_size

    def parse(
        self,
        data: bytes,
        client_address: tuple[str, int] = ("", 0)
    ) -> HTTPRequest:
        """
        Parse raw HTTP request data into an HTTPRequest object.

        Raises:
            HTTPParseError: If the request is malformed.
        """
        if len(data) > self.max_request_size:
            raise HTTPParseError(
                f"Request too large: {len(data)} bytes",
                status_code=HTTPStatus.PAYLOAD_TOO_LARGE,
            )

        header_end = data.find(b"\r\n\r\n")
        if header_end == -1:
            raise HTTPParseError("Incomplete request: no header terminator")

        # Header bytes outside ASCII are not valid HTTP; latin-1 never fails
        # and keeps every byte addressable.
        header_section = data[:header_end].decode("latin-1")
        lines = header_section.split("\r\n")

        method, target, path, version = self._parse_request_line(lines[0])
        headers = self._parse_headers(lines[1:])

        return HTTPRequest(
            method=method,
            path=path,
            target=target,
            version=version,
            headers=headers,
            client_address=client_address,
        )

    def _parse_request_line(self, line: str) -> tuple[str, str, str, str]:
        """
        Parse the request line into (method, target, path, version).

            "GET /docs/a%20b.txt?x=1 HTTP/1.1"
                → ("GET", "/docs/a%20b.txt?x=1", "/docs/a b.txt", "HTTP/1.1")
        """
        match = self.REQUEST_LINE_PATTERN.match(line)
        if not match:
            raise HTTPParseError(f"Invalid request line: {line!r}")

        method, target, version = match.groups()

        if version not in self.SUPPORTED_VERSIONS:
            raise HTTPParseError(
                f"Unsupported HTTP version: {version}",
                status_code=HTTPStatus.HTTP_VERSION_NOT_SUPPORTED,
            )

        # Absolute-form targets ("http://host/path") carry the path too
        parsed = urlsplit(target)
        try:
            path = unquote(parsed.path, errors="strict") if parsed.path else "/"
        except UnicodeDecodeError:
            raise HTTPParseError(f"Invalid percent-encoding in: {target!r}")
        if not path.startswith("/"):
            raise HTTPParseError(f"Invalid request target: {target!r}")

        return method, target, path, version

    def _parse_headers(self, lines: list[str]) -> Dict[str, str]:
        """
        Parse header lines into a dict with lowercase names.

        Repeated headers are joined with ", " (RFC 7230 section 3.2.2), so
        two Accept-Encoding lines behave like one comma-separated list.
        Obsolete line folding (continuation lines starting with whitespace)
        is appended to the previous header.
        """
        headers: Dict[str, str] = {}
        current_name: Optional[str] = None

        for line in lines:
            if not line:
                continue

            if line[0] in (" ", "\t"):
                if current_name is not None:
                    headers[current_name] += " " + line.strip()
                continue

            match = self.HEADER_PATTERN.match(line)
            if not match:
                continue  # Lenient: skip malformed header lines

            name, value = match.groups()
            name = name.strip().lower()
            value = value.strip()
            current_name = name

            if name in headers:
                headers[name] += ", " + value
            else:
                headers[name] = value

        return headers


def parse_request(
    data: bytes,
    client_address: tuple[str, int] = ("", 0),
    max_size: int = 64 * 1024
) -> HTTPRequest:
    """Parse an HTTP request in one call."""
    return RequestParser(max_request_size=max_size).parse(data, client_address)
