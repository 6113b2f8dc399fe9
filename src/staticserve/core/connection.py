"""
=============================================================================
CONNECTION MANAGEMENT
=============================================================================

Wraps one accepted client socket with the reads and writes the server
loop needs: one complete request head at a time, and whole byte strings
out.

=============================================================================
TCP IS A BYTE STREAM, NOT A MESSAGE PROTOCOL
=============================================================================

TCP does NOT preserve message boundaries. Two requests written back to
back on a keep-alive connection can arrive as:

    recv() → "GET /a.css HTTP/1.1\\r\\nHost: x\\r\\n\\r\\nGET /b.j"
    recv() → "s HTTP/1.1\\r\\nHost: x\\r\\n\\r\\n"

So bytes are buffered until the \\r\\n\\r\\n header terminator shows up.
Whatever follows the current request stays in the buffer for the next
read_request() call.

A static file server never looks at request bodies, but a client may
still send one (a POST that will get a 405). Those bytes are consumed by
Content-Length so they are not mistaken for the next request line.

=============================================================================
KEEP-ALIVE TIMEOUTS
=============================================================================

    ┌─────────────────────────────────────────────────────────────────┐
    │   TCP Connect                                                   │
    │       │                                                         │
    │       ├── Request 1   (timeout: 30s, the client may be slow)   │
    │       ├── Request 2   (timeout: 5s, idle keep-alive wait)      │
    │       ├── Request 3                                             │
    │       │                                                         │
    │   TCP Close (client closed, timeout, or Connection: close)      │
    └─────────────────────────────────────────────────────────────────┘

=============================================================================
"""

import logging
import socket
import time
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional


logger = logging.getLogger(__name__)


class ConnectionState(Enum):
    """Connection lifecycle states, used for debug logging."""

    NEW = "new"
    READING = "reading"
    WRITING = "writing"
    KEEP_ALIVE = "keep_alive"
    CLOSING = "closing"
    CLOSED = "closed"


class RequestTooLarge(ValueError):
    """The request head grew past max_request_size before it was complete."""


@dataclass
class Connection:
    """
    Represents a client connection.

    Attributes:
        socket:           The client socket.
        address:          Client's (ip, port) tuple.
        id:               Short connection identifier for logging.
        state:            Current connection state.
        requests_handled: Number of requests read on this connection.
    """

    socket: socket.socket
    address: tuple[str, int]

    id: str = field(default_factory=lambda: str(uuid.uuid4())[:8])
    state: ConnectionState = ConnectionState.NEW
    last_activity: float = field(default_factory=time.time)
    requests_handled: int = 0

    buffer_size: int = 8192
    timeout: float = 30.0
    keep_alive_timeout: float = 5.0
    max_request_size: int = 64 * 1024

    _buffer: bytes = field(default=b"", repr=False)

    def __post_init__(self):
        self.socket.setblocking(True)
        if self.timeout:
            self.socket.settimeout(self.timeout)

    # =========================================================================
    # READING
    # =========================================================================

    def read_request(self) -> Optional[bytes]:
        """
        Read one complete HTTP request from the socket.

        Returns:
            The request head (terminator included) followed by any body
            bytes announced by Content-Length, or None when the client
            closed the connection or an idle keep-alive wait timed out.

        Raises:
            TimeoutError:    The first request did not arrive in time.
            RequestTooLarge: The head exceeded max_request_size.
        """
        self.state = ConnectionState.READING
        self.last_activity = time.time()

        if self.requests_handled > 0:
            self.socket.settimeout(self.keep_alive_timeout)

        try:
            # ─────────────────────────────────────────────────────────────
            # STEP 1: Buffer until the header terminator arrives
            # ─────────────────────────────────────────────────────────────
            while b"\r\n\r\n" not in self._buffer:
                if len(self._buffer) > self.max_request_size:
                    raise RequestTooLarge(
                        f"Request head too large: {len(self._buffer)} bytes"
                    )
                chunk = self._recv()
                if not chunk:
                    return None
                self._buffer += chunk

            header_end = self._buffer.find(b"\r\n\r\n")
            if header_end > self.max_request_size:
                raise RequestTooLarge(f"Request head too large: {header_end} bytes")
            body_start = header_end + 4

            # ─────────────────────────────────────────────────────────────
            # STEP 2: Consume a body, if one was announced
            # ─────────────────────────────────────────────────────────────
            content_length = self._parse_content_length(self._buffer[:header_end])
            if body_start + content_length > self.max_request_size:
                raise RequestTooLarge(
                    f"Request too large: {body_start + content_length} bytes"
                )
            while len(self._buffer) - body_start < content_length:
                chunk = self._recv()
                if not chunk:
                    break
                self._buffer += chunk

            request_end = body_start + content_length
            request_data = self._buffer[:request_end]
            self._buffer = self._buffer[request_end:]

            self.requests_handled += 1
            self.last_activity = time.time()
            return request_data

        except socket.timeout:
            if self.requests_handled > 0 and not self._buffer:
                logger.debug(f"[{self.id}] Keep-alive timeout")
                return None
            raise TimeoutError("Request read timeout")

        finally:
            self.socket.settimeout(self.timeout)

    def _recv(self) -> bytes:
        """Receive from the socket; a reset peer reads as end of stream."""
        try:
            data = self.socket.recv(self.buffer_size)
            self.last_activity = time.time()
            return data
        except (ConnectionResetError, BrokenPipeError):
            return b""

    def _parse_content_length(self, headers: bytes) -> int:
        """
        Find Content-Length in raw header bytes, 0 if absent or invalid.

        Done on raw bytes because framing has to be known before the
        request is parsed.
        """
        try:
            header_str = headers.decode("latin-1").lower()
            for line in header_str.split("\r\n"):
                if line.startswith("content-length:"):
                    return max(int(line.split(":", 1)[1].strip()), 0)
        except (ValueError, IndexError):
            pass
        return 0

    # =========================================================================
    # WRITING
    # =========================================================================

    def sendall(self, data: bytes) -> None:
        """
        Send every byte of data, or raise.

        This is the send callable handed to StreamResponseWriter. A client
        that disconnects mid-body must abort the handler that is streaming
        the file, so failures propagate as ConnectionError.
        """
        self.state = ConnectionState.WRITING
        try:
            self.socket.sendall(data)
        except OSError as e:
            raise ConnectionError(f"[{self.id}] Send failed: {e}") from e
        self.last_activity = time.time()

    def send_response(self, data: bytes) -> bool:
        """
        Send a complete serialized response.

        Returns:
            True if the send succeeded, False if the connection is gone.
        """
        try:
            self.sendall(data)
            return True
        except ConnectionError as e:
            logger.warning(str(e))
            return False

    # =========================================================================
    # CLOSING
    # =========================================================================

    def close(self):
        """
        Close the connection gracefully.

        1. shutdown(SHUT_WR) sends FIN so the client sees the end of a
           close-delimited body.
        2. Drain whatever the client still sends, briefly.
        3. Release the file descriptor.
        """
        if self.state == ConnectionState.CLOSED:
            return

        self.state = ConnectionState.CLOSING

        try:
            self.socket.shutdown(socket.SHUT_WR)
        except OSError:
            pass  # Peer already gone

        try:
            self.socket.settimeout(0.5)
            while self.socket.recv(1024):
                pass
        except OSError:
            pass

        try:
            self.socket.close()
        except OSError:
            pass

        self.state = ConnectionState.CLOSED
        logger.debug(f"[{self.id}] Connection closed after {self.requests_handled} requests")

    def set_keep_alive(self):
        """Mark the connection as waiting for its next request."""
        self.state = ConnectionState.KEEP_ALIVE

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
