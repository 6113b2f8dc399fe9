"""
End-to-end tests against a live server on a background thread.
"""

import gzip
import http.client
import logging
import socket

import pytest

from conftest import SITE_LAST_MODIFIED, STYLE_CSS


def raw_exchange(port: int, data: bytes, timeout: float = 5.0) -> bytes:
    """Send raw bytes and read until the server closes the connection."""
    with socket.create_connection(("127.0.0.1", port), timeout=timeout) as sock:
        sock.sendall(data)
        received = b""
        while True:
            chunk = sock.recv(65536)
            if not chunk:
                return received
            received += chunk


@pytest.fixture
def client(test_server):
    conn = http.client.HTTPConnection("127.0.0.1", test_server.port, timeout=5)
    yield conn
    conn.close()


class TestFiles:

    def test_get_file(self, client):
        client.request("GET", "/small.txt")
        response = client.getresponse()

        assert response.status == 200
        assert response.getheader("Content-Type") == "text/plain"
        assert response.getheader("Content-Length") == "100"
        assert response.getheader("Last-Modified") == SITE_LAST_MODIFIED
        assert response.getheader("Server").startswith("staticserve/")
        assert response.read() == b"x" * 100

    def test_percent_encoded_name(self, client):
        client.request("GET", "/a%20b.txt")
        response = client.getresponse()

        assert response.status == 200
        assert response.read() == b"spaced\n"

    def test_query_string_ignored(self, client):
        client.request("GET", "/small.txt?v=2")
        response = client.getresponse()

        assert response.status == 200
        response.read()

    def test_head(self, client):
        client.request("HEAD", "/style.css")
        response = client.getresponse()

        assert response.status == 200
        assert response.getheader("Content-Length") == "2000"
        assert response.read() == b""

    def test_missing(self, client):
        client.request("GET", "/nope.html")
        response = client.getresponse()

        assert response.status == 404
        assert response.getheader("Content-Type") == "text/plain; charset=utf-8"
        assert response.read() == b"File not found\n"

    def test_hidden(self, client):
        client.request("GET", "/.git/config")
        response = client.getresponse()

        assert response.status == 404
        assert response.read() == b"File not found\n"

    def test_traversal_stays_in_root(self, test_server):
        data = raw_exchange(
            test_server.port,
            b"GET /../../../etc/passwd HTTP/1.1\r\nConnection: close\r\n\r\n",
        )
        assert data.startswith(b"HTTP/1.1 404 Not Found\r\n")

    def test_method_not_allowed(self, client):
        client.request("POST", "/style.css", body=b"payload")
        response = client.getresponse()

        assert response.status == 405
        assert response.getheader("Allow") == "GET, HEAD"
        assert response.read() == b"Method not allowed\n"


class TestCaching:

    def test_not_modified(self, client):
        client.request("GET", "/style.css", headers={"If-Modified-Since": SITE_LAST_MODIFIED})
        response = client.getresponse()

        assert response.status == 304
        assert response.getheader("Last-Modified") == SITE_LAST_MODIFIED
        assert response.read() == b""

    def test_stale_copy(self, client):
        client.request(
            "GET", "/style.css",
            headers={"If-Modified-Since": "Fri, 14 Jun 2024 10:00:00 GMT"},
        )
        response = client.getresponse()

        assert response.status == 200
        assert response.read() == STYLE_CSS


class TestCompression:

    def test_gzip_is_chunked(self, client):
        client.request("GET", "/style.css", headers={"Accept-Encoding": "gzip"})
        response = client.getresponse()

        assert response.status == 200
        assert response.getheader("Content-Encoding") == "gzip"
        assert response.getheader("Transfer-Encoding") == "chunked"
        assert response.getheader("Vary") == "Accept-Encoding"
        assert response.getheader("Content-Length") is None
        assert gzip.decompress(response.read()) == STYLE_CSS

    def test_gzip_http10_closes(self, test_server):
        data = raw_exchange(
            test_server.port,
            b"GET /style.css HTTP/1.0\r\nAccept-Encoding: gzip\r\n\r\n",
        )
        head, body = data.split(b"\r\n\r\n", 1)

        assert head.startswith(b"HTTP/1.0 200 OK")
        assert b"Connection: close" in head
        assert b"Transfer-Encoding" not in head
        assert gzip.decompress(body) == STYLE_CSS


class TestDirectories:

    def test_redirect(self, client):
        client.request("GET", "/docs")
        response = client.getresponse()

        assert response.status == 301
        assert response.getheader("Location") == "/docs/"
        response.read()

    def test_index(self, client):
        client.request("GET", "/docs/")
        response = client.getresponse()

        assert response.status == 200
        assert response.getheader("Content-Type") == "text/html"
        assert response.read() == b"<h1>Docs</h1>\n"

    def test_listing(self, client):
        client.request("GET", "/assets/")
        response = client.getresponse()
        page = response.read().decode("utf-8")

        assert response.status == 200
        assert response.getheader("Content-Type") == "text/html; charset=utf-8"
        assert "Index of /assets/" in page
        assert '<a href="app.js">app.js</a>' in page
        assert '<a href="img/">img/</a>' in page
        assert ".hidden" not in page


class TestConnection:

    def test_keep_alive_reuses_connection(self, client):
        client.request("GET", "/small.txt")
        first = client.getresponse()
        first.read()
        sock = client.sock

        client.request("GET", "/docs/guide.txt")
        second = client.getresponse()

        assert first.getheader("Connection") == "keep-alive"
        assert second.read() == b"guide\n"
        assert client.sock is sock

    def test_connection_close_honoured(self, test_server):
        data = raw_exchange(
            test_server.port,
            b"GET /small.txt HTTP/1.1\r\nConnection: close\r\n\r\n",
        )

        assert b"Connection: close" in data
        assert data.endswith(b"x" * 100)

    def test_pipelined_requests(self, test_server):
        data = raw_exchange(
            test_server.port,
            b"GET /docs/guide.txt HTTP/1.1\r\n\r\n"
            b"GET /small.txt HTTP/1.1\r\nConnection: close\r\n\r\n",
        )

        assert data.count(b"HTTP/1.1 200 OK") == 2
        assert data.index(b"guide\n") < data.index(b"x" * 100)

    def test_malformed_request(self, test_server):
        data = raw_exchange(test_server.port, b"NONSENSE\r\n\r\n")

        assert data.startswith(b"HTTP/1.1 400 Bad Request\r\n")
        assert b"Connection: close" in data

    def test_unsupported_version(self, test_server):
        data = raw_exchange(test_server.port, b"GET / HTTP/2.0\r\n\r\n")
        assert data.startswith(b"HTTP/1.1 505 HTTP Version Not Supported\r\n")

    def test_idle_connection_closed(self, test_server):
        # keep_alive_timeout is 1s in the fixture
        data = raw_exchange(test_server.port, b"GET /small.txt HTTP/1.1\r\n\r\n")
        assert data.endswith(b"x" * 100)


class TestAccessLog:

    def test_one_line_per_request(self, client, caplog):
        with caplog.at_level(logging.INFO, logger="staticserve.access"):
            client.request("GET", "/small.txt", headers={"User-Agent": "integration"})
            client.getresponse().read()
            client.request("GET", "/nope")
            client.getresponse().read()
            # The worker logs a request before it reads the next one
            client.request("HEAD", "/small.txt")
            client.getresponse().read()

        lines = [r.getMessage() for r in caplog.records if r.name == "staticserve.access"]
        assert len(lines) >= 2
        assert ' GET "/small.txt" 200 100 "-" "integration" ' in lines[0]
        assert ' GET "/nope" 404 ' in lines[1]
