"""
=============================================================================
STATIC FILE SERVER
=============================================================================

Glues the components together:

    ┌─────────────────────────────────────────────────────────────────────┐
    │  SocketServer ── accept ──► ThreadPool ── worker ──► _process_conn  │
    │                                                          │          │
    │       ┌──────────────────── keep-alive loop ─────────────┘          │
    │       ▼                                                             │
    │  Connection.read_request() ──► RequestParser.parse()                │
    │       │                                                             │
    │       ▼                                                             │
    │  StreamResponseWriter(conn.sendall)                                 │
    │       │                                                             │
    │       ▼                                                             │
    │  LoggingMiddleware ──► RequestDispatcher.handle(request, writer)    │
    │       │                                                             │
    │       ▼                                                             │
    │  writer.finish() ── keep-alive? ── next request, or close           │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
ERRORS AT EACH STAGE
=============================================================================

    read timeout            → 408, close
    request head too big    → 413, close
    unparseable request     → 400 / 413 / 505, close
    worker queue full       → 503, close
    handler exception       → logged; 500 if nothing was sent yet,
                              otherwise the connection is dropped
    client disconnects      → connection dropped, nothing logged above DEBUG

=============================================================================
"""

import logging
from typing import Optional

from .config import ServerConfig
from .core import Connection, RequestTooLarge, SocketServer, ThreadPool
from .handlers import RequestDispatcher
from .http import (
    HTTPParseError,
    HTTPResponse,
    HTTPStatus,
    RequestParser,
    StreamResponseWriter,
    send_error,
)
from .middleware import LoggingMiddleware, Middleware, MiddlewarePipeline, NextHandler


logger = logging.getLogger(__name__)


class HTTPServer:
    """
    Multi-threaded HTTP/1.1 static file server.

    Usage:
        server = HTTPServer(ServerConfig(root_dir="./public", list_directories=True))
        server.run()            # blocks until Ctrl+C / SIGTERM / stop()
    """

    def __init__(
        self,
        config: Optional[ServerConfig] = None,
        dispatcher: Optional[RequestDispatcher] = None,
    ):
        self.config = config or ServerConfig()
        self.config.validate()

        # ─────────────────────────────────────────────────────────────────
        # CORE COMPONENTS
        # ─────────────────────────────────────────────────────────────────
        self._socket_server = SocketServer(self.config)
        self._thread_pool = ThreadPool(
            min_workers=self.config.min_workers,
            max_workers=self.config.max_workers,
        )
        self._parser = RequestParser(max_request_size=self.config.max_request_size)

        # ─────────────────────────────────────────────────────────────────
        # APPLICATION COMPONENTS
        # ─────────────────────────────────────────────────────────────────
        self.dispatcher = dispatcher or RequestDispatcher(self.config)
        self._middleware = MiddlewarePipeline()
        self._middleware.add(LoggingMiddleware(log_format=self.config.log_format))

        self._handler: Optional[NextHandler] = None
        self._running = False

    def use(self, middleware: Middleware) -> "HTTPServer":
        """Add middleware inside the access logger. Call before run()."""
        self._middleware.add(middleware)
        return self

    # =========================================================================
    # SERVER LIFECYCLE
    # =========================================================================

    def run(self, host: Optional[str] = None, port: Optional[int] = None):
        """
        Start the server (blocking).

        Raises:
            OSError: If the address cannot be bound.
        """
        if host:
            self.config.host = host
        if port:
            self.config.port = port

        self._running = True
        self._setup_logging()
        self._handler = self._middleware.wrap(self.dispatcher.handle)
        self._thread_pool.start()

        logger.info(
            f"Serving {self.config.root_dir} on {self.config.host}:{self.config.port} "
            f"(listing {'on' if self.config.list_directories else 'off'})"
        )

        try:
            self._socket_server.start(self._handle_connection)
        except KeyboardInterrupt:
            logger.info("Received keyboard interrupt")
        finally:
            self._shutdown()

    def stop(self):
        """Ask a running server to stop. Safe to call from any thread."""
        self._socket_server.shutdown()

    def wait_until_ready(self, timeout: Optional[float] = None) -> bool:
        """Block until the server accepts connections."""
        return self._socket_server.wait_until_ready(timeout)

    @property
    def is_running(self) -> bool:
        return self._running

    def _setup_logging(self):
        level = getattr(logging, self.config.log_level.upper(), logging.INFO)

        logging.basicConfig(
            level=level,
            format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
        logging.getLogger("staticserve").setLevel(level)

    def _shutdown(self):
        logger.info("Shutting down server...")
        self._running = False
        self._thread_pool.shutdown(wait=True, timeout=self.config.keep_alive_timeout + 1.0)
        logger.debug(f"Thread pool stats: {self._thread_pool.stats}")
        logger.info("Server stopped")

    # =========================================================================
    # CONNECTION HANDLING
    # =========================================================================

    def _handle_connection(self, conn: Connection):
        """Queue a freshly accepted connection on the thread pool."""
        try:
            submitted = self._thread_pool.submit(
                self._process_connection,
                args=(conn,),
                block=False,
            )
        except RuntimeError:
            conn.close()
            return

        if not submitted:
            logger.warning(f"[{conn.id}] Thread pool full, rejecting connection")
            self._send_error(conn, HTTPStatus.SERVICE_UNAVAILABLE, "Server overloaded")
            conn.close()

    def _process_connection(self, conn: Connection):
        """Serve requests on one connection until it closes (worker thread)."""
        with conn:
            while self._running:
                # ─────────────────────────────────────────────────────────
                # READ AND PARSE
                # ─────────────────────────────────────────────────────────
                try:
                    raw_request = conn.read_request()
                except TimeoutError:
                    self._send_error(conn, HTTPStatus.REQUEST_TIMEOUT, "Request timeout")
                    break
                except RequestTooLarge as e:
                    self._send_error(conn, HTTPStatus.PAYLOAD_TOO_LARGE, str(e))
                    break

                if raw_request is None:
                    break

                try:
                    request = self._parser.parse(raw_request, conn.address)
                except HTTPParseError as e:
                    logger.debug(f"[{conn.id}] Bad request: {e}")
                    self._send_error(conn, e.status_code, str(e))
                    break

                # ─────────────────────────────────────────────────────────
                # HANDLE
                # ─────────────────────────────────────────────────────────
                writer = StreamResponseWriter(
                    conn.sendall,
                    version=request.version,
                    head_only=request.is_head,
                    keep_alive=self.config.keep_alive and request.is_keep_alive,
                    server_name=self.config.server_name,
                )

                try:
                    self._handler(request, writer)
                    writer.finish()
                except ConnectionError as e:
                    logger.debug(f"[{conn.id}] Client went away: {e}")
                    break
                except Exception as e:
                    logger.exception(f"[{conn.id}] Handler error: {e}")
                    if not writer.headers_sent:
                        self._send_internal_error(conn, writer)
                    break

                if not writer.keep_alive:
                    break

                conn.set_keep_alive()

    def _send_internal_error(self, conn: Connection, writer: StreamResponseWriter):
        writer.keep_alive = False
        try:
            send_error(writer, HTTPStatus.INTERNAL_SERVER_ERROR, "Internal Server Error")
            writer.finish()
        except ConnectionError as e:
            logger.debug(f"[{conn.id}] Could not send 500: {e}")

    def _send_error(self, conn: Connection, status: HTTPStatus, message: str):
        """
        Send an error before any request could be handled.

        Used for read timeouts, parse failures and overload, where there is
        no parsed request (and no response writer) to go through.
        """
        response = HTTPResponse(
            status=status,
            headers={
                "Content-Type": "text/plain; charset=utf-8",
                "X-Content-Type-Options": "nosniff",
                "Connection": "close",
            },
            body=(message + "\n").encode("utf-8"),
        )
        conn.send_response(response.to_bytes(self.config.server_name))


def create_app(config: Optional[ServerConfig] = None) -> HTTPServer:
    """Create a server instance (without starting it)."""
    return HTTPServer(config)
