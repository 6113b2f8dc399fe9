"""
=============================================================================
HTTP RESPONSE WRITERS
=============================================================================

Static files are STREAMED, not built in memory. A handler never returns a
response object; it is handed a ResponseWriter and writes into it:

    writer.headers["Content-Type"] = "text/css"    1. set headers
    writer.write_head(HTTPStatus.OK)                2. commit status line
    writer.write(chunk)                             3. stream body bytes
    writer.write(chunk)
    ...

Once write_head() has run (or the first write() has implicitly sent a 200),
the status and headers are on the wire and can no longer change.

=============================================================================
WRITER FAMILY
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                        ResponseWriter (ABC)                         │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                     │
    │   StreamResponseWriter   Serializes to a socket. Picks the framing: │
    │                          Content-Length, chunked, or close.         │
    │                                                                     │
    │   BufferedResponseWriter Collects everything in memory and produces │
    │                          an HTTPResponse. Used in tests.            │
    │                                                                     │
    │   StatusRecorder         Wraps another writer and remembers the     │
    │                          status and byte count for the access log.  │
    │                                                                     │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
MESSAGE FRAMING
=============================================================================

The client must know where the body ends. Three ways:

    1. Content-Length: 2000        exact size known up front (raw files)
    2. Transfer-Encoding: chunked  size unknown (gzip output), HTTP/1.1
                                   each chunk: <hex size>\\r\\n<data>\\r\\n
                                   final chunk: 0\\r\\n\\r\\n
    3. Connection: close           size unknown, HTTP/1.0 client:
                                   body ends when the socket closes

=============================================================================
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, Dict, Optional, Union

from .status_codes import HTTPStatus


DEFAULT_SERVER_NAME = "staticserve"


@dataclass
class HTTPResponse:
    """
    A complete, in-memory HTTP response.

    Produced by BufferedResponseWriter and used by the server for the few
    responses it sends before a request could even be parsed (400, 503).
    """

    status: HTTPStatus = HTTPStatus.OK
    headers: Dict[str, str] = field(default_factory=dict)
    body: bytes = b""
    version: str = "HTTP/1.1"

    @property
    def status_line(self) -> str:
        """Example: "HTTP/1.1 304 Not Modified" """
        return f"{self.version} {int(self.status)} {self.status.phrase}"

    def to_bytes(self, server_name: str = DEFAULT_SERVER_NAME) -> bytes:
        """
        Serialize the response for socket.sendall().

        Content-Length, Date and Server are added when missing.
        """
        response_headers = dict(self.headers)
        response_headers.setdefault("Content-Length", str(len(self.body)))
        response_headers.setdefault("Date", format_http_date(datetime.now(timezone.utc)))
        response_headers.setdefault("Server", server_name)

        return _serialize_head(self.status_line, response_headers) + self.body


class ResponseWriter(ABC):
    """
    Destination for one response.

    Attributes:
        headers:      Response headers, editable until write_head() runs.
        headers_sent: True once the status line and headers are committed.
    """

    def __init__(self):
        self.headers: Dict[str, str] = {}
        self.headers_sent = False

    @abstractmethod
    def write_head(self, status: Union[HTTPStatus, int]) -> None:
        """Commit the status line and the current headers."""

    @abstractmethod
    def write(self, data: bytes) -> int:
        """
        Write body bytes, sending a 200 head first if none was sent.

        Returns the number of bytes accepted (len(data)).
        """


class StreamResponseWriter(ResponseWriter):
    """
    Writes a response straight to a connection.

    Args:
        send:        Callable that transmits bytes (Connection.sendall).
        version:     Request HTTP version; decides chunked vs close.
        head_only:   True for HEAD requests: body writes are discarded.
        keep_alive:  Whether the connection may be reused afterwards.
                     The writer turns this off when it has to frame the
                     body by closing the connection.
        server_name: Value of the Server header.
    """

    def __init__(
        self,
        send: Callable[[bytes], None],
        version: str = "HTTP/1.1",
        head_only: bool = False,
        keep_alive: bool = True,
        server_name: str = DEFAULT_SERVER_NAME,
    ):
        super().__init__()
        self._send = send
        self.version = version
        self.head_only = head_only
        self.keep_alive = keep_alive
        self.server_name = server_name

        self.status: Optional[HTTPStatus] = None
        self.bytes_written = 0
        self._chunked = False
        self._body_allowed = True
        self._declared_length: Optional[int] = None
        self._finished = False

    def write_head(self, status: Union[HTTPStatus, int]) -> None:
        if self.headers_sent:
            raise RuntimeError("Response headers already sent")

        self.status = HTTPStatus(status)
        headers = dict(self.headers)
        self._body_allowed = self.status.allows_body and not self.head_only

        # ─────────────────────────────────────────────────────────────────
        # CHOOSE BODY FRAMING
        # ─────────────────────────────────────────────────────────────────
        if "Content-Length" in headers:
            self._declared_length = int(headers["Content-Length"])
        elif self._body_allowed:
            if self.version == "HTTP/1.1":
                headers["Transfer-Encoding"] = "chunked"
                self._chunked = True
            else:
                self.keep_alive = False

        headers.setdefault("Date", format_http_date(datetime.now(timezone.utc)))
        headers.setdefault("Server", self.server_name)
        headers["Connection"] = "keep-alive" if self.keep_alive else "close"

        status_line = f"{self.version} {int(self.status)} {self.status.phrase}"
        self._send(_serialize_head(status_line, headers))
        self.headers_sent = True

    def write(self, data: bytes) -> int:
        if not data:
            # An empty chunk would terminate a chunked body early
            return 0

        if not self.headers_sent:
            self.write_head(HTTPStatus.OK)

        if not self._body_allowed:
            return len(data)

        if self._chunked:
            self._send(b"%x\r\n" % len(data) + bytes(data) + b"\r\n")
        else:
            self._send(bytes(data))

        self.bytes_written += len(data)
        return len(data)

    def finish(self) -> None:
        """
        Complete the response.

        Sends an empty 200 if nothing was written, the terminating chunk
        for chunked bodies, and drops keep-alive when the body did not
        match its declared Content-Length (the stream is out of sync).
        """
        if self._finished:
            return

        if not self.headers_sent:
            self.headers.setdefault("Content-Length", "0")
            self.write_head(HTTPStatus.OK)

        if self._chunked:
            self._send(b"0\r\n\r\n")

        if (
            self._body_allowed
            and self._declared_length is not None
            and self.bytes_written != self._declared_length
        ):
            self.keep_alive = False

        self._finished = True


class BufferedResponseWriter(ResponseWriter):
    """
    Collects a response in memory.

    Usage:
        writer = BufferedResponseWriter()
        dispatcher.handle(request, writer)
        response = writer.to_response()
        assert response.status == HTTPStatus.OK
    """

    def __init__(self, head_only: bool = False):
        super().__init__()
        self.head_only = head_only
        self.status: Optional[HTTPStatus] = None
        self._sent_headers: Dict[str, str] = {}
        self._body = bytearray()

    def write_head(self, status: Union[HTTPStatus, int]) -> None:
        if self.headers_sent:
            raise RuntimeError("Response headers already sent")
        self.status = HTTPStatus(status)
        self._sent_headers = dict(self.headers)
        self.headers_sent = True

    def write(self, data: bytes) -> int:
        if not self.headers_sent:
            self.write_head(HTTPStatus.OK)
        if self.status.allows_body and not self.head_only:
            self._body += data
        return len(data)

    def to_response(self) -> HTTPResponse:
        """Snapshot what was written as an HTTPResponse."""
        if not self.headers_sent:
            return HTTPResponse(status=HTTPStatus.OK, headers=dict(self.headers))
        return HTTPResponse(
            status=self.status,
            headers=dict(self._sent_headers),
            body=bytes(self._body),
        )


class StatusRecorder(ResponseWriter):
    """
    Decorator that records the status code as it is written.

    Access logging needs the final status of every response. Rather than
    digging into the wrapped writer, the recorder sees every write_head()
    and write() call on the way through and keeps what it needs:

        recorder = StatusRecorder(writer)
        handler(request, recorder)
        recorder.status          # HTTPStatus.NOT_MODIFIED
        recorder.bytes_written   # 0
    """

    def __init__(self, inner: ResponseWriter):
        # Headers live on the wrapped writer; no state of our own to init
        self._inner = inner
        self._status: Optional[HTTPStatus] = None
        self.bytes_written = 0

    @property
    def headers(self) -> Dict[str, str]:
        return self._inner.headers

    @property
    def headers_sent(self) -> bool:
        return self._inner.headers_sent

    @property
    def status(self) -> Optional[HTTPStatus]:
        """The status that was sent, or None if nothing was sent yet."""
        return self._status

    def write_head(self, status: Union[HTTPStatus, int]) -> None:
        self._inner.write_head(status)
        self._status = HTTPStatus(status)

    def write(self, data: bytes) -> int:
        if self._status is None and data:
            # The wrapped writer sends an implicit 200 on first write
            self._status = HTTPStatus.OK
        written = self._inner.write(data)
        self.bytes_written += written
        return written


# =============================================================================
# UTILITY FUNCTIONS
# =============================================================================

def send_error(
    writer: ResponseWriter,
    status: Union[HTTPStatus, int],
    message: str,
) -> None:
    """
    Send a short plain-text error response.

    Headers describing a file body that will never be sent (encoding,
    modification time) are dropped first.
    """
    body = (message + "\n").encode("utf-8")

    for name in ("Content-Encoding", "Last-Modified", "Vary", "Transfer-Encoding"):
        writer.headers.pop(name, None)

    writer.headers["Content-Type"] = "text/plain; charset=utf-8"
    writer.headers["X-Content-Type-Options"] = "nosniff"
    writer.headers["Content-Length"] = str(len(body))
    writer.write_head(status)
    writer.write(body)


def format_http_date(dt: datetime) -> str:
    """
    Format a datetime as an HTTP-date (RFC 7231 IMF-fixdate).

    Format: Day, DD Mon YYYY HH:MM:SS GMT
    Example: Wed, 01 Jan 2026 12:00:00 GMT

    HTTP dates are ALWAYS in GMT (UTC). Aware datetimes are converted;
    naive ones are taken to already be UTC. Names are spelled out here
    instead of using strftime, which follows the process locale.
    """
    if dt.tzinfo is not None:
        dt = dt.astimezone(timezone.utc)

    days = ["Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"]
    months = ["Jan", "Feb", "Mar", "Apr", "May", "Jun",
              "Jul", "Aug", "Sep", "Oct", "Nov", "Dec"]

    return (
        f"{days[dt.weekday()]}, "
        f"{dt.day:02d} {months[dt.month - 1]} {dt.year:04d} "
        f"{dt.hour:02d}:{dt.minute:02d}:{dt.second:02d} GMT"
    )


def _serialize_head(status_line: str, headers: Dict[str, str]) -> bytes:
    lines = [status_line]
    lines.extend(f"{name}: {value}" for name, value in headers.items())
    lines.append("")
    return ("\r\n".join(lines) + "\r\n").encode("latin-1")
