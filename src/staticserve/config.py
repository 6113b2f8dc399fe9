"""
=============================================================================
SERVER CONFIGURATION
=============================================================================

Every tunable of the server in one dataclass, read once at startup and
never mutated while serving.

=============================================================================
CONFIGURATION SOURCES
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │  1. Defaults            ServerConfig()                              │
    │  2. Environment         ServerConfig.from_env()   (HTTP_* vars)     │
    │  3. Command line        python -m staticserve --port 9000 ...       │
    │                                                                     │
    │  Later sources override earlier ones. validate() runs last.         │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
"""

import os
from dataclasses import dataclass
from typing import Optional, Tuple

from . import __version__


_TRUE_VALUES = ("1", "true", "yes", "on")


@dataclass
class ServerConfig:
    """
    Configuration for the static file server.

    =========================================================================
    CONFIGURATION GROUPS
    =========================================================================

    NETWORK        host, port, backlog, buffer_size, timeout
    HTTP           keep_alive, keep_alive_timeout, max_request_size
    THREADING      min_workers, max_workers
    STATIC FILES   root_dir, list_directories, index_files,
                   compression_level, compression_min_size
    LOGGING        log_level, log_format

    =========================================================================
    """

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    host: str = "127.0.0.1"
    """Address to bind. "0.0.0.0" exposes the server on every interface."""

    port: int = 8080

    backlog: int = 128
    """Queued connections the OS keeps before refusing new ones."""

    buffer_size: int = 8192
    """recv() size, and the chunk size used when streaming files."""

    timeout: Optional[float] = 30.0
    """Socket timeout in seconds for reading the first request."""

    # ─────────────────────────────────────────────────────────────────────
    # HTTP SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    keep_alive: bool = True

    keep_alive_timeout: float = 5.0
    """Idle seconds to wait for the next request on a reused connection."""

    max_request_size: int = 64 * 1024
    """Largest accepted request head in bytes. GET and HEAD carry no body."""

    # ─────────────────────────────────────────────────────────────────────
    # THREAD POOL SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    min_workers: int = 4
    max_workers: int = 16

    # ─────────────────────────────────────────────────────────────────────
    # STATIC FILES
    # ─────────────────────────────────────────────────────────────────────

    root_dir: str = "."
    """Document root. Nothing outside it is ever served."""

    list_directories: bool = False
    """Render an HTML index for directories without an index file."""

    index_files: Tuple[str, ...] = ("index.html", "index.xhtml")
    """Probed in order inside a directory; the first regular file wins."""

    compression_level: int = 6
    """gzip level, 1 (fastest) to 9 (smallest)."""

    compression_min_size: int = 1024
    """Files of this many bytes or fewer are always sent uncompressed."""

    # ─────────────────────────────────────────────────────────────────────
    # LOGGING
    # ─────────────────────────────────────────────────────────────────────

    log_level: str = "INFO"

    log_format: str = "text"
    """Access log format: 'text' (one readable line) or 'json'."""

    # ─────────────────────────────────────────────────────────────────────
    # SERVER IDENTITY
    # ─────────────────────────────────────────────────────────────────────

    server_name: str = f"staticserve/{__version__}"

    @classmethod
    def from_env(cls) -> "ServerConfig":
        """
        Create configuration from environment variables.

        =====================================================================
        ENVIRONMENT VARIABLES
        =====================================================================

        HTTP_HOST        Bind address (default: 127.0.0.1)
        HTTP_PORT        Port (default: 8080)
        HTTP_HOME        Document root (default: .)
        HTTP_LISTDIR     Enable directory listings: 1/true/yes/on
        HTTP_WORKERS     Max worker threads (default: 16)
        HTTP_TIMEOUT     Socket timeout in seconds (default: 30)
        HTTP_LOG_LEVEL   Logging level (default: INFO)
        HTTP_LOG_FORMAT  text or json (default: text)

        =====================================================================

        Raises:
            ValueError: If a numeric variable does not parse.
        """
        max_workers = int(os.getenv("HTTP_WORKERS", "16"))
        return cls(
            host=os.getenv("HTTP_HOST", "127.0.0.1"),
            port=int(os.getenv("HTTP_PORT", "8080")),
            root_dir=os.getenv("HTTP_HOME", "."),
            list_directories=os.getenv("HTTP_LISTDIR", "").strip().lower() in _TRUE_VALUES,
            min_workers=min(4, max_workers),
            max_workers=max_workers,
            timeout=float(os.getenv("HTTP_TIMEOUT", "30")),
            log_level=os.getenv("HTTP_LOG_LEVEL", "INFO"),
            log_format=os.getenv("HTTP_LOG_FORMAT", "text"),
        )

    def validate(self) -> None:
        """
        Validate configuration values at startup.

        Raises:
            ValueError: Describing the first invalid setting.
        """
        if not 0 < self.port < 65536:
            raise ValueError(f"Invalid port: {self.port}. Must be 1-65535.")

        if not os.path.isdir(self.root_dir):
            raise ValueError(f"Document root is not a directory: {self.root_dir}")

        if self.min_workers < 1:
            raise ValueError("min_workers must be >= 1")

        if self.max_workers < self.min_workers:
            raise ValueError("max_workers must be >= min_workers")

        if self.buffer_size < 1024:
            raise ValueError("buffer_size must be >= 1024")

        if self.timeout is not None and self.timeout <= 0:
            raise ValueError("timeout must be > 0")

        if not 1 <= self.compression_level <= 9:
            raise ValueError(f"compression_level must be 1-9, got {self.compression_level}")

        if self.compression_min_size < 0:
            raise ValueError("compression_min_size must be >= 0")

        if self.log_format not in ("text", "json"):
            raise ValueError(f"log_format must be 'text' or 'json', got {self.log_format!r}")

        for name in self.index_files:
            if not name or "/" in name or name.startswith("."):
                raise ValueError(f"Invalid index file name: {name!r}")
