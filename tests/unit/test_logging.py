"""
Unit tests for the middleware pipeline and access logging.
"""

import json
import logging

import pytest

from staticserve.http import BufferedResponseWriter, HTTPStatus
from staticserve.middleware import (
    LoggingMiddleware,
    Middleware,
    MiddlewarePipeline,
    RequestLog,
)


ACCESS_LOGGER = "staticserve.access"


class Recording(Middleware):
    def __init__(self, label, calls):
        self.label = label
        self.calls = calls

    def __call__(self, request, writer, next):
        self.calls.append(f"{self.label}:before")
        next(request, writer)
        self.calls.append(f"{self.label}:after")


class TestMiddlewarePipeline:

    def test_first_added_is_outermost(self, request_factory):
        calls = []
        pipeline = MiddlewarePipeline()
        pipeline.add(Recording("outer", calls)).add(Recording("inner", calls))

        def handler(request, writer):
            calls.append("handler")

        pipeline.wrap(handler)(request_factory("/"), BufferedResponseWriter())

        assert calls == [
            "outer:before", "inner:before", "handler", "inner:after", "outer:after",
        ]

    def test_empty_pipeline_returns_handler(self):
        def handler(request, writer):
            pass

        assert MiddlewarePipeline().wrap(handler) is handler

    def test_len_and_iter(self):
        mw = LoggingMiddleware()
        pipeline = MiddlewarePipeline().add(mw)

        assert len(pipeline) == 1
        assert list(pipeline) == [mw]


class TestRequestLog:

    def entry(self, **overrides) -> RequestLog:
        fields = dict(
            client_ip="127.0.0.1",
            time="15 Jun 24 10:00 +0000",
            method="GET",
            target="/docs/",
            status_code=200,
            bytes_sent=5120,
            referer="",
            user_agent="curl/8.4.0",
            duration_ms=1.934,
        )
        fields.update(overrides)
        return RequestLog(**fields)

    def test_to_text(self):
        assert self.entry().to_text() == (
            '127.0.0.1 "15 Jun 24 10:00 +0000" GET "/docs/" 200 5120 '
            '"-" "curl/8.4.0" 1.93ms'
        )

    def test_to_text_quotes_target(self):
        line = self.entry(target='/a"b').to_text()
        assert '"/a\\"b"' in line

    def test_to_dict_rounds_duration(self):
        entry = self.entry().to_dict()

        assert entry["duration_ms"] == 1.93
        assert entry["status_code"] == 200
        assert entry["client_ip"] == "127.0.0.1"


class TestLoggingMiddleware:

    def run(self, middleware, request, handler):
        writer = BufferedResponseWriter()
        MiddlewarePipeline().add(middleware).wrap(handler)(request, writer)
        return writer

    def test_logs_status_and_bytes(self, caplog, request_factory):
        def handler(request, writer):
            writer.headers["Content-Length"] = "5"
            writer.write_head(HTTPStatus.NOT_FOUND)
            writer.write(b"nope\n")

        request = request_factory("/missing", headers={"User-Agent": "pytest"})

        with caplog.at_level(logging.INFO, logger=ACCESS_LOGGER):
            self.run(LoggingMiddleware(), request, handler)

        assert len(caplog.records) == 1
        line = caplog.records[0].getMessage()
        assert line.startswith('127.0.0.1 "')
        assert ' GET "/missing" 404 5 "-" "pytest" ' in line
        assert line.endswith("ms")

    def test_json_format(self, caplog, request_factory):
        def handler(request, writer):
            writer.write_head(HTTPStatus.NOT_MODIFIED)

        request = request_factory("/style.css", headers={"Referer": "http://x/"})

        with caplog.at_level(logging.INFO, logger=ACCESS_LOGGER):
            self.run(LoggingMiddleware(log_format="json"), request, handler)

        entry = json.loads(caplog.records[0].getMessage())
        assert entry["status_code"] == 304
        assert entry["bytes_sent"] == 0
        assert entry["method"] == "GET"
        assert entry["target"] == "/style.css"
        assert entry["referer"] == "http://x/"

    def test_nothing_written_logs_200(self, caplog, request_factory):
        with caplog.at_level(logging.INFO, logger=ACCESS_LOGGER):
            self.run(LoggingMiddleware(log_format="json"), request_factory("/"), lambda r, w: None)

        assert json.loads(caplog.records[0].getMessage())["status_code"] == 200

    def test_handler_exception_is_logged_as_500(self, caplog, request_factory):
        def handler(request, writer):
            raise RuntimeError("boom")

        with caplog.at_level(logging.INFO, logger=ACCESS_LOGGER):
            with pytest.raises(RuntimeError):
                self.run(LoggingMiddleware(), request_factory("/"), handler)

        assert len(caplog.records) == 1
        assert ' "/" 500 0 ' in caplog.records[0].getMessage()

    def test_exception_after_head_keeps_sent_status(self, caplog, request_factory):
        def handler(request, writer):
            writer.write_head(HTTPStatus.OK)
            writer.write(b"part")
            raise ConnectionResetError("client went away")

        with caplog.at_level(logging.INFO, logger=ACCESS_LOGGER):
            with pytest.raises(ConnectionResetError):
                self.run(LoggingMiddleware(), request_factory("/"), handler)

        assert ' "/" 200 4 ' in caplog.records[0].getMessage()

    def test_custom_level(self, caplog, request_factory):
        with caplog.at_level(logging.DEBUG, logger=ACCESS_LOGGER):
            self.run(LoggingMiddleware(log_level=logging.DEBUG), request_factory("/"), lambda r, w: None)

        assert caplog.records[0].levelno == logging.DEBUG

    def test_through_dispatcher(self, caplog, dispatcher, request_factory):
        with caplog.at_level(logging.INFO, logger=ACCESS_LOGGER):
            writer = self.run(LoggingMiddleware(), request_factory("/small.txt"), dispatcher.handle)

        assert writer.to_response().body == b"x" * 100
        assert ' GET "/small.txt" 200 100 ' in caplog.records[0].getMessage()
