"""
pytest configuration and fixtures.
"""

import os
import socket
import threading
from pathlib import Path
from typing import Dict, Generator, Optional

import pytest

# Add src to path for imports
import sys
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from staticserve import HTTPServer, ServerConfig
from staticserve.handlers import RequestDispatcher
from staticserve.http import BufferedResponseWriter, HTTPRequest, HTTPResponse


# 2024-06-15 10:00:00.750 UTC, a Saturday
SITE_MTIME = 1718445600.75
SITE_LAST_MODIFIED = "Sat, 15 Jun 2024 10:00:00 GMT"

STYLE_CSS = (b"body { color: #333; margin: 0 auto; }\n" * 60)[:2000]


def _write(path: Path, content: bytes) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(content)
    os.utime(path, (SITE_MTIME, SITE_MTIME))


@pytest.fixture
def site(tmp_path: Path) -> Path:
    """
    A small document root:

        style.css         2000 bytes, compressible
        small.txt         100 bytes
        photo.png         2000 bytes, not compressible
        blob.xyz          unknown extension
        a b.txt           name with a space
        docs/index.html
        docs/guide.txt
        assets/app.js     directory without an index
        assets/.hidden
        assets/img/
        secret/.env
        .git/config
    """
    root = tmp_path / "site"
    root.mkdir()

    _write(root / "style.css", STYLE_CSS)
    _write(root / "small.txt", b"x" * 100)
    _write(root / "photo.png", bytes(range(256)) * 7 + bytes(208))
    _write(root / "blob.xyz", b"\x00\x01\x02")
    _write(root / "a b.txt", b"spaced\n")
    _write(root / "docs" / "index.html", b"<h1>Docs</h1>\n")
    _write(root / "docs" / "guide.txt", b"guide\n")
    _write(root / "assets" / "app.js", b"console.log('hi');\n")
    _write(root / "assets" / ".hidden", b"nope\n")
    (root / "assets" / "img").mkdir()
    _write(root / "secret" / ".env", b"TOKEN=abc\n")
    _write(root / ".git" / "config", b"[core]\n")

    return root


@pytest.fixture
def config(site: Path) -> ServerConfig:
    """Test configuration serving the site fixture."""
    return ServerConfig(
        host="127.0.0.1",
        port=8080,
        root_dir=str(site),
        min_workers=2,
        max_workers=4,
        timeout=5.0,
        log_level="WARNING",
    )


@pytest.fixture
def dispatcher(config: ServerConfig) -> RequestDispatcher:
    return RequestDispatcher(config)


@pytest.fixture
def listing_dispatcher(config: ServerConfig) -> RequestDispatcher:
    config.list_directories = True
    return RequestDispatcher(config)


def make_request(
    path: str,
    method: str = "GET",
    headers: Optional[Dict[str, str]] = None,
    version: str = "HTTP/1.1",
) -> HTTPRequest:
    """Build an HTTPRequest the way the parser would."""
    return HTTPRequest(
        method=method,
        path=path,
        target=path,
        version=version,
        headers={k.lower(): v for k, v in (headers or {}).items()},
        client_address=("127.0.0.1", 50000),
    )


def serve(
    dispatcher: RequestDispatcher,
    path: str,
    method: str = "GET",
    headers: Optional[Dict[str, str]] = None,
) -> HTTPResponse:
    """Run one request through a dispatcher and return what it wrote."""
    request = make_request(path, method, headers)
    writer = BufferedResponseWriter(head_only=request.is_head)
    dispatcher.handle(request, writer)
    return writer.to_response()


@pytest.fixture
def sample_get_request() -> bytes:
    """Sample HTTP GET request."""
    return (
        b"GET /docs/a%20b.txt?v=3 HTTP/1.1\r\n"
        b"Host: localhost:8080\r\n"
        b"User-Agent: pytest\r\n"
        b"Accept-Encoding: gzip, deflate\r\n"
        b"If-Modified-Since: Sat, 15 Jun 2024 10:00:00 GMT\r\n"
        b"Connection: keep-alive\r\n"
        b"\r\n"
    )


@pytest.fixture
def sample_post_request() -> bytes:
    """Sample HTTP POST request with a body."""
    body = b'{"name": "upload"}'
    return (
        b"POST /upload HTTP/1.1\r\n"
        b"Host: localhost:8080\r\n"
        b"Content-Type: application/json\r\n"
        b"Content-Length: %d\r\n" % len(body) +
        b"Connection: close\r\n"
        b"\r\n"
    ) + body


@pytest.fixture
def free_port() -> int:
    """Get a free port for testing."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(("127.0.0.1", 0))
        return s.getsockname()[1]


class TestServer:
    """Test server helper that runs in a background thread."""

    __test__ = False

    def __init__(self, server: HTTPServer, port: int):
        self.server = server
        self.port = port
        self._thread: Optional[threading.Thread] = None

    def start(self):
        self._thread = threading.Thread(
            target=self.server.run,
            kwargs={"port": self.port},
            daemon=True
        )
        self._thread.start()

        if not self.server.wait_until_ready(timeout=5.0):
            raise RuntimeError("Server failed to start")

    def stop(self):
        self.server.stop()
        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=10.0)


@pytest.fixture
def test_server(site: Path, free_port: int) -> Generator[TestServer, None, None]:
    """A live server on a free port serving the site fixture, listings on."""
    server = HTTPServer(ServerConfig(
        host="127.0.0.1",
        port=free_port,
        root_dir=str(site),
        list_directories=True,
        min_workers=2,
        max_workers=4,
        timeout=5.0,
        keep_alive_timeout=1.0,
        log_level="WARNING",
    ))

    test_srv = TestServer(server, free_port)
    test_srv.start()

    yield test_srv

    test_srv.stop()


@pytest.fixture
def request_factory():
    """The make_request helper, as a fixture."""
    return make_request


@pytest.fixture
def serve_request():
    """The serve helper, as a fixture: serve_request(dispatcher, path, ...)."""
    return serve
