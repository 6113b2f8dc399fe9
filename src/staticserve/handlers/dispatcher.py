"""
=============================================================================
REQUEST DISPATCHER
=============================================================================

The static file handler. Given a request and a ResponseWriter, it writes
exactly one response:

    request
       │
       ├── method not GET/HEAD ─────────────────────────► 405 + Allow
       │
       ▼
    PathResolver.resolve(path)
       │
       ├── HTTPError (404) ─────────────────────────────► 404 text
       ├── Redirect ────────────────────────────────────► 301 + Location
       ├── RenderListing ── DirectoryLister ────────────► 200 html / 500
       │
       ▼ ServeFile
    open file ─── fails ────────────────────────────────► 404 text
       │
    Last-Modified + Content-Type
       │
       ├── If-Modified-Since still fresh ───────────────► 304
       │
    CompressionPolicy
       ├── compress ── Content-Encoding: gzip ──┐
       └── raw ─────── Content-Length ──────────┤
                                                ├── HEAD ► headers only
                                                ▼
                                          stream body

=============================================================================
NO LOGGING HERE
=============================================================================

The dispatcher reports every outcome through the response itself. Access
logging happens in LoggingMiddleware, after the response is written, and
unexpected exceptions propagate to the server loop, which logs them.

=============================================================================
"""

from typing import Optional

from ..config import ServerConfig
from ..core.pool import ObjectPool
from ..http.errors import HTTPError, MethodRejected, ResourceNotFound
from ..http.mime_types import MimeRegistry, file_extension
from ..http.request import HTTPRequest
from ..http.response import ResponseWriter, format_http_date, send_error
from ..http.status_codes import HTTPStatus
from .compression import CompressionEncoder, CompressionPolicy, GzipWriter
from .conditional import is_not_modified, truncate_to_second
from .listing import DirectoryLister
from .resolver import PathResolver, Redirect, RenderListing, ResourceMetadata, ServeFile


ALLOWED_METHODS = ("GET", "HEAD")


class RequestDispatcher:
    """
    Serves files from config.root_dir.

    The MIME registry, compression policy and encoder are built once and
    can be injected; defaults come from the configuration.

    Usage:
        dispatcher = RequestDispatcher(ServerConfig(root_dir="/var/www"))
        writer = BufferedResponseWriter()
        dispatcher.handle(request, writer)
    """

    def __init__(
        self,
        config: ServerConfig,
        mime_registry: Optional[MimeRegistry] = None,
        policy: Optional[CompressionPolicy] = None,
        encoder: Optional[CompressionEncoder] = None,
        lister: Optional[DirectoryLister] = None,
    ):
        self.config = config
        self.resolver = PathResolver(
            config.root_dir,
            index_files=config.index_files,
            list_directories=config.list_directories,
        )
        self.mime_registry = mime_registry or MimeRegistry()
        self.policy = policy or CompressionPolicy(min_size=config.compression_min_size)
        if encoder is None:
            level = config.compression_level
            encoder = CompressionEncoder(
                level=level,
                pool=ObjectPool(lambda: GzipWriter(level), max_idle=config.max_workers),
                chunk_size=config.buffer_size,
            )
        self.encoder = encoder
        self.lister = lister or DirectoryLister()
        self.chunk_size = config.buffer_size

    def handle(self, request: HTTPRequest, writer: ResponseWriter) -> None:
        """Write the response for one request."""
        try:
            if request.method not in ALLOWED_METHODS:
                writer.headers["Allow"] = ", ".join(ALLOWED_METHODS)
                raise MethodRejected(request.method)

            outcome = self.resolver.resolve(request.path)

            if isinstance(outcome, Redirect):
                writer.headers["Location"] = outcome.location
                writer.headers["Content-Length"] = "0"
                writer.write_head(HTTPStatus.MOVED_PERMANENTLY)
                return

            if isinstance(outcome, RenderListing):
                self._serve_listing(request, writer, outcome)
                return

            self._serve_file(request, writer, outcome)

        except HTTPError as e:
            if writer.headers_sent:
                raise
            send_error(writer, e.status_code, e.public_message)

    # =========================================================================
    # LISTINGS
    # =========================================================================

    def _serve_listing(
        self,
        request: HTTPRequest,
        writer: ResponseWriter,
        outcome: RenderListing,
    ) -> None:
        body = self.lister.render(outcome.directory, outcome.url_path).encode("utf-8")

        writer.headers["Content-Type"] = "text/html; charset=utf-8"
        writer.headers["Content-Length"] = str(len(body))
        writer.write_head(HTTPStatus.OK)
        if not request.is_head:
            writer.write(body)

    # =========================================================================
    # FILES
    # =========================================================================

    def _serve_file(
        self,
        request: HTTPRequest,
        writer: ResponseWriter,
        outcome: ServeFile,
    ) -> None:
        metadata: ResourceMetadata = outcome.metadata

        try:
            file = open(metadata.path, "rb")
        except OSError as e:
            raise ResourceNotFound(str(e)) from e

        with file:
            # ─────────────────────────────────────────────────────────────
            # HEADERS SENT ON EVERY FILE RESPONSE (200, 304, HEAD)
            # ─────────────────────────────────────────────────────────────
            extension = file_extension(metadata.path)
            last_modified = truncate_to_second(metadata.modified_at)

            writer.headers["Last-Modified"] = format_http_date(last_modified)
            writer.headers["Content-Type"] = self.mime_registry.lookup(extension)

            if is_not_modified(last_modified, request.get_header("if-modified-since")):
                writer.write_head(HTTPStatus.NOT_MODIFIED)
                return

            # ─────────────────────────────────────────────────────────────
            # ENCODING
            # ─────────────────────────────────────────────────────────────
            compress = self.policy.should_compress(
                metadata.size, extension, request.get_header("accept-encoding")
            )
            if compress:
                writer.headers["Content-Encoding"] = "gzip"
                writer.headers["Vary"] = "Accept-Encoding"
            else:
                writer.headers["Content-Length"] = str(metadata.size)

            writer.write_head(HTTPStatus.OK)

            if request.is_head:
                return

            if compress:
                self.encoder.copy(file, writer)
            else:
                self._copy_raw(file, writer)

    def _copy_raw(self, file, writer: ResponseWriter) -> None:
        while True:
            chunk = file.read(self.chunk_size)
            if not chunk:
                break
            writer.write(chunk)
