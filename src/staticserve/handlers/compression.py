"""
=============================================================================
GZIP COMPRESSION
=============================================================================

Text assets shrink a lot under gzip; images, video and archives are
already compressed and would only burn CPU. So compression is decided
per file, from three facts:

    ┌─────────────────────────────────────────────────────────────────────┐
    │   size > 1024 bytes          (smaller files: header overhead wins)  │
    │   extension compressible     (css, js, html, json, svg, ...)        │
    │   client accepts gzip        ("gzip" in Accept-Encoding)            │
    │                                                                     │
    │   all three  →  Content-Encoding: gzip, streamed through GzipWriter │
    │   otherwise  →  raw bytes with Content-Length                       │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
STREAMING, NOT BUFFERING
=============================================================================

The compressed size is unknown until the last byte is compressed, so a
compressed body has no Content-Length. Bytes go out as they are
produced, and the transport frames them (chunked on HTTP/1.1):

    file ──read 8K──► GzipWriter ──deflate──► response writer ──► socket
                        (pooled)

A GzipWriter keeps its deflate settings between responses. Writers are
borrowed from an ObjectPool for one body and returned right after.

=============================================================================
"""

import shutil
import zlib
from dataclasses import dataclass
from typing import BinaryIO, FrozenSet, Optional, Protocol

from ..core.pool import ObjectPool


COMPRESSIBLE_EXTENSIONS: FrozenSet[str] = frozenset({
    "css", "csv", "eot", "html", "js", "json", "otf", "svg", "ttf", "txt", "xhtml", "xml",
})

# wbits=31: 15-bit window with a gzip header and CRC32 trailer (RFC 1952)
GZIP_WBITS = 31


class Writable(Protocol):
    def write(self, data: bytes) -> int: ...


@dataclass(frozen=True)
class CompressionPolicy:
    """
    Decides whether a file is sent gzip-encoded.

        >>> policy = CompressionPolicy()
        >>> policy.should_compress(2000, "css", "gzip, deflate, br")
        True
        >>> policy.should_compress(2000, "png", "gzip")
        False
    """

    extensions: FrozenSet[str] = COMPRESSIBLE_EXTENSIONS
    min_size: int = 1024

    def should_compress(self, size: int, extension: str, accept_encoding: str) -> bool:
        if size <= self.min_size:
            return False
        if not extension or extension not in self.extensions:
            return False
        return "gzip" in accept_encoding.lower()


class GzipWriter:
    """
    Streaming gzip encoder writing into any object with write().

    One writer produces one gzip member per reset()/close() cycle:

        writer.reset(target)
        writer.write(b"...")     # compressed output goes to target
        writer.write(b"...")
        writer.close()           # flush + CRC32/size trailer
    """

    def __init__(self, level: int = 6):
        self.level = level
        # Pristine deflate state, copied on every reset()
        self._template = zlib.compressobj(level, zlib.DEFLATED, GZIP_WBITS)
        self._compressor = None
        self._target: Optional[Writable] = None
        self.bytes_in = 0

    def reset(self, target: Writable) -> None:
        """Start a new gzip stream writing into target."""
        self._compressor = self._template.copy()
        self._target = target
        self.bytes_in = 0

    def write(self, data: bytes) -> int:
        if self._target is None:
            raise ValueError("GzipWriter.write() before reset()")
        self.bytes_in += len(data)
        output = self._compressor.compress(data)
        if output:
            self._target.write(output)
        return len(data)

    def close(self) -> None:
        """Flush pending output and the gzip trailer, then detach."""
        if self._target is None:
            return
        try:
            tail = self._compressor.flush(zlib.Z_FINISH)
            if tail:
                self._target.write(tail)
        finally:
            self._target = None
            self._compressor = None


class CompressionEncoder:
    """
    Copies a file into a response, gzip-encoded, using pooled writers.

    Args:
        level:      gzip level for writers this encoder creates.
        pool:       Shared writer pool; a private one is made if omitted.
        chunk_size: Read size when copying from the file.
    """

    def __init__(
        self,
        level: int = 6,
        pool: Optional[ObjectPool[GzipWriter]] = None,
        chunk_size: int = 64 * 1024,
    ):
        self.level = level
        self.pool = pool if pool is not None else ObjectPool(lambda: GzipWriter(level), max_idle=64)
        self.chunk_size = chunk_size

    def copy(self, source: BinaryIO, target: Writable) -> int:
        """
        Compress everything readable from source into target.

        Returns:
            The number of uncompressed bytes read from source.
        """
        with self.pool.borrow() as gz:
            gz.reset(target)
            try:
                shutil.copyfileobj(source, gz, self.chunk_size)
            finally:
                gz.close()
            return gz.bytes_in
