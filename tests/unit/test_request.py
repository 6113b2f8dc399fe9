"""
Unit tests for HTTP request parsing.
"""

import pytest

from staticserve.http.request import (
    HTTPRequest,
    RequestParser,
    HTTPParseError,
    parse_request,
)


class TestRequestParser:
    """Tests for RequestParser class."""

    def test_parse_simple_get(self, sample_get_request: bytes):
        """Test parsing a simple GET request."""
        parser = RequestParser()
        request = parser.parse(sample_get_request, ("127.0.0.1", 12345))

        assert request.method == "GET"
        assert request.path == "/docs/a b.txt"
        assert request.target == "/docs/a%20b.txt?v=3"
        assert request.version == "HTTP/1.1"
        assert request.client_address == ("127.0.0.1", 12345)

    def test_parse_headers(self, sample_get_request: bytes):
        """Test that headers are parsed with lowercase names."""
        request = parse_request(sample_get_request)

        assert request.headers["host"] == "localhost:8080"
        assert request.user_agent == "pytest"
        assert request.get_header("Accept-Encoding") == "gzip, deflate"
        assert request.get_header("if-modified-since") == "Sat, 15 Jun 2024 10:00:00 GMT"
        assert request.is_keep_alive is True

    def test_query_string_is_not_part_of_path(self):
        raw = b"GET /style.css?v=42&x=1 HTTP/1.1\r\nHost: test\r\n\r\n"
        request = parse_request(raw)

        assert request.path == "/style.css"
        assert request.target == "/style.css?v=42&x=1"

    def test_any_method_token_is_accepted(self, sample_post_request: bytes):
        """Method policy belongs to the dispatcher, not the parser."""
        request = parse_request(sample_post_request)
        assert request.method == "POST"
        assert request.get_header("content-length") == "18"
        assert parse_request(b"BREW /pot HTTP/1.1\r\n\r\n").method == "BREW"

    def test_dot_segments_are_kept(self):
        request = parse_request(b"GET /docs/../style.css HTTP/1.1\r\n\r\n")
        assert request.path == "/docs/../style.css"

    def test_encoded_slash_is_decoded(self):
        request = parse_request(b"GET /docs%2Fguide.txt HTTP/1.1\r\n\r\n")
        assert request.path == "/docs/guide.txt"

    def test_absolute_form_target(self):
        request = parse_request(b"GET http://example.com/a.txt HTTP/1.1\r\n\r\n")
        assert request.path == "/a.txt"

    def test_repeated_headers_are_joined(self):
        raw = (
            b"GET / HTTP/1.1\r\n"
            b"Accept-Encoding: deflate\r\n"
            b"Accept-Encoding: gzip\r\n"
            b"\r\n"
        )
        assert parse_request(raw).get_header("accept-encoding") == "deflate, gzip"

    def test_folded_header(self):
        raw = b"GET / HTTP/1.1\r\nX-Long: one\r\n  two\r\n\r\n"
        assert parse_request(raw).get_header("x-long") == "one two"

    def test_malformed_header_lines_skipped(self):
        raw = b"GET / HTTP/1.1\r\nnot a header\r\nHost: test\r\n\r\n"
        request = parse_request(raw)
        assert request.headers == {"host": "test"}

    @pytest.mark.parametrize("line", [
        b"GET",
        b"GET /path",
        b"GET /path HTTP/1.1 extra",
        b"G@T /path HTTP/1.1",
        b"",
    ])
    def test_invalid_request_line(self, line: bytes):
        with pytest.raises(HTTPParseError) as exc_info:
            parse_request(line + b"\r\nHost: test\r\n\r\n")

        assert exc_info.value.status_code == 400

    def test_relative_target_rejected(self):
        with pytest.raises(HTTPParseError) as exc_info:
            parse_request(b"GET style.css HTTP/1.1\r\n\r\n")
        assert exc_info.value.status_code == 400

    def test_bad_percent_encoding(self):
        with pytest.raises(HTTPParseError) as exc_info:
            parse_request(b"GET /%ff%fe HTTP/1.1\r\n\r\n")
        assert exc_info.value.status_code == 400

    def test_incomplete_request(self):
        with pytest.raises(HTTPParseError):
            parse_request(b"GET / HTTP/1.1\r\nHost: test\r\n")

    def test_unsupported_version(self):
        with pytest.raises(HTTPParseError) as exc_info:
            parse_request(b"GET / HTTP/2.0\r\n\r\n")
        assert exc_info.value.status_code == 505

    def test_request_too_large(self):
        raw = b"GET / HTTP/1.1\r\nX-Pad: " + b"a" * 200 + b"\r\n\r\n"

        with pytest.raises(HTTPParseError) as exc_info:
            parse_request(raw, max_size=100)
        assert exc_info.value.status_code == 413


class TestHTTPRequest:
    """Tests for HTTPRequest properties."""

    def test_is_head(self):
        assert HTTPRequest(method="HEAD", path="/").is_head is True
        assert HTTPRequest(method="GET", path="/").is_head is False

    @pytest.mark.parametrize("version,connection,expected", [
        ("HTTP/1.1", "", True),
        ("HTTP/1.1", "close", False),
        ("HTTP/1.1", "Close", False),
        ("HTTP/1.0", "", False),
        ("HTTP/1.0", "keep-alive", True),
        ("HTTP/1.0", "Keep-Alive", True),
    ])
    def test_keep_alive(self, version, connection, expected):
        headers = {"connection": connection} if connection else {}
        request = HTTPRequest(method="GET", path="/", version=version, headers=headers)
        assert request.is_keep_alive is expected

    def test_missing_header_defaults(self):
        request = HTTPRequest(method="GET", path="/")

        assert request.get_header("accept-encoding") == ""
        assert request.get_header("x-nope", "fallback") == "fallback"
        assert request.referer == ""
        assert request.user_agent == ""
