"""
=============================================================================
ACCESS LOGGING MIDDLEWARE
=============================================================================

One log line per request, emitted AFTER the handler has written the
response, on the "staticserve.access" logger.

The handler never reports its status code. Instead the writer it gets is
wrapped in a StatusRecorder, which sees the status go by:

    LoggingMiddleware
        recorder = StatusRecorder(writer)
        next(request, recorder)      ← dispatcher writes through it
        recorder.status              ← 200 / 301 / 304 / 404 ...
        logger.info(...)

=============================================================================
FORMATS
=============================================================================

    text:
    127.0.0.1 "15 Jun 24 10:00 +0000" GET "/docs/" 200 5120 "-" "curl/8.4.0" 1.93ms

    json:
    {"client_ip": "127.0.0.1", "time": "...", "method": "GET", ...}

=============================================================================
"""

import json
import logging
import time
from dataclasses import asdict, dataclass

from .base import Middleware, NextHandler
from ..http.request import HTTPRequest
from ..http.response import ResponseWriter, StatusRecorder
from ..http.status_codes import HTTPStatus


# Configure separately from the server logs, e.g.
#   logging.getLogger("staticserve.access").addHandler(file_handler)
logger = logging.getLogger("staticserve.access")


@dataclass
class RequestLog:
    """Structured access log entry."""

    client_ip: str
    time: str
    method: str
    target: str
    status_code: int
    bytes_sent: int
    referer: str
    user_agent: str
    duration_ms: float

    def to_dict(self) -> dict:
        entry = asdict(self)
        entry["duration_ms"] = round(self.duration_ms, 2)
        return entry

    def to_text(self) -> str:
        return (
            f"{self.client_ip} {json.dumps(self.time)} {self.method} "
            f"{json.dumps(self.target)} {self.status_code} {self.bytes_sent} "
            f"{json.dumps(self.referer or '-')} {json.dumps(self.user_agent or '-')} "
            f"{self.duration_ms:.2f}ms"
        )


class LoggingMiddleware(Middleware):
    """
    Request logging middleware. Add it FIRST so it sees every request.

    Args:
        log_format: "text" or "json".
        log_level:  Level for access lines (INFO by default).
    """

    def __init__(self, log_format: str = "text", log_level: int = logging.INFO):
        self.log_format = log_format
        self.log_level = log_level

    def __call__(
        self,
        request: HTTPRequest,
        writer: ResponseWriter,
        next: NextHandler,
    ) -> None:
        recorder = StatusRecorder(writer)
        request_time = time.time()
        start = time.perf_counter()

        failed = True
        try:
            next(request, recorder)
            failed = False
        finally:
            duration_ms = (time.perf_counter() - start) * 1000

            if recorder.status is not None:
                status = recorder.status
            elif failed:
                # The server answers an escaped exception with a 500
                status = HTTPStatus.INTERNAL_SERVER_ERROR
            else:
                # Nothing written yet: the transport completes it as an empty 200
                status = HTTPStatus.OK

            log_entry = RequestLog(
                client_ip=request.client_address[0],
                # RFC 822 with numeric zone: "15 Jun 24 10:00 +0000"
                time=time.strftime("%d %b %y %H:%M %z", time.localtime(request_time)),
                method=request.method,
                target=request.target or request.path,
                status_code=int(status),
                bytes_sent=recorder.bytes_written,
                referer=request.referer,
                user_agent=request.user_agent,
                duration_ms=duration_ms,
            )

            if self.log_format == "json":
                logger.log(self.log_level, json.dumps(log_entry.to_dict()))
            else:
                logger.log(self.log_level, log_entry.to_text())
