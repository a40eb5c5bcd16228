"""
=============================================================================
CONNECTION MANAGEMENT
=============================================================================

Wraps one accepted client socket with the two sides the protocol layer
needs: a buffered reader for the request parser and sendall() for the
response.

=============================================================================
TCP IS A BYTE STREAM, NOT A MESSAGE PROTOCOL!
=============================================================================

    Client sends:                     Server might receive:
        "GET /users HTTP/1.1\r\n"         recv() → "GET /us"
        "Host: x\r\n\r\n"                 recv() → "ers HTTP/1.1\r\nHo"
                                          recv() → "st: x\r\n\r\n"

The reader returned by Connection.reader is socket.makefile("rb"): a
BufferedReader that stitches those chunks back together, so the parser can
call readline() and read(n) without caring where packet boundaries fell.

=============================================================================
CONNECTION STATE MACHINE
=============================================================================

    NEW ──► READING ──► PROCESSING ──► WRITING ──► CLOSING ──► CLOSED
     │         │                          │           ▲
     └─────────┴──────────────────────────┴───────────┘
                   (any failure goes straight to CLOSING)

One request per connection: there is no keep-alive loop back to READING.

=============================================================================
"""

import socket
import time
import logging
import uuid
from enum import Enum
from dataclasses import dataclass, field
from typing import BinaryIO, Optional, TYPE_CHECKING

from ..errors import WriteError

if TYPE_CHECKING:
    from ..http.request import HTTPRequest, RequestParser


logger = logging.getLogger(__name__)


class ConnectionState(Enum):
    """Connection lifecycle states, for logging and debugging."""

    NEW = "new"                # Just accepted, nothing read yet
    READING = "reading"        # Parsing the request
    PROCESSING = "processing"  # Handler is running
    WRITING = "writing"        # Sending the response
    CLOSING = "closing"        # Shutdown sequence in progress
    CLOSED = "closed"          # Socket released


@dataclass
class Connection:
    """
    Represents a client connection.

    Attributes:
        socket: The accepted client socket.
        address: Client's (ip, port) tuple.
        id: Short unique identifier used as a log prefix.
        state: Current ConnectionState.
        timeout: Socket timeout for every read and write, in seconds.
                 A timeout surfaces as an OSError from the reader or from
                 sendall(), like any other I/O failure.
        created_at: When the connection was accepted.
    """

    socket: socket.socket
    address: tuple

    id: str = field(default_factory=lambda: str(uuid.uuid4())[:8])
    state: ConnectionState = ConnectionState.NEW
    timeout: Optional[float] = 30.0
    created_at: float = field(default_factory=time.time)

    _reader: Optional[BinaryIO] = field(default=None, repr=False)

    # Upper bounds for the drain in close(), in seconds and bytes
    DRAIN_TIMEOUT = 0.5
    DRAIN_LIMIT = 64 * 1024

    def __post_init__(self):
        self.socket.settimeout(self.timeout)

    @property
    def client_ip(self) -> str:
        return self.address[0]

    @property
    def client_port(self) -> int:
        return self.address[1]

    @property
    def age(self) -> float:
        """Connection age in seconds."""
        return time.time() - self.created_at

    # =========================================================================
    # READING
    # =========================================================================

    @property
    def reader(self) -> BinaryIO:
        """
        Buffered binary reader over the socket's input side.

        Created on first use and reused afterwards, so bytes buffered by
        one read are not lost to the next.
        """
        if self._reader is None:
            self._reader = self.socket.makefile("rb")
        return self._reader

    def read_request(self, parser: "RequestParser") -> "HTTPRequest":
        """
        Parse the request waiting on this connection.

        Raises whatever the parser raises: HTTPParseError subclasses for a
        malformed request, OSError when the socket fails or times out.
        """
        self.state = ConnectionState.READING
        return parser.parse(self.reader, (self.client_ip, self.client_port))

    # =========================================================================
    # WRITING
    # =========================================================================

    def sendall(self, data: bytes) -> None:
        """
        Send all of `data` to the client.

        sendall() blocks until every byte is handed to the kernel; plain
        send() may stop partway when the socket buffer is full.

        Raises:
            WriteError: The client went away or the write timed out.
        """
        self.state = ConnectionState.WRITING
        try:
            self.socket.sendall(data)
        except OSError as e:
            raise WriteError(f"[{self.id}] Send failed: {e}") from e

    # =========================================================================
    # CLOSING
    # =========================================================================

    def close(self):
        """
        Close the connection gracefully.

        1. shutdown(SHUT_WR): send FIN so the client sees end-of-response
        2. Drain briefly (bounded, see _drain): unread client bytes would
           otherwise turn the close into a RST that can discard the
           response we just sent
        3. close(): release the reader and the file descriptor

        Safe to call more than once.
        """
        if self.state == ConnectionState.CLOSED:
            return

        self.state = ConnectionState.CLOSING

        try:
            self.socket.shutdown(socket.SHUT_WR)
        except OSError:
            pass  # Peer already gone

        try:
            self._drain()
        except OSError:
            pass  # Timeout or reset while draining

        if self._reader is not None:
            try:
                self._reader.close()
            except OSError:
                pass
            self._reader = None

        try:
            self.socket.close()
        except OSError:
            pass

        self.state = ConnectionState.CLOSED
        logger.debug(f"[{self.id}] Connection closed after {self.age:.3f}s")

    def _drain(self):
        """
        Discard unread client bytes until EOF, DRAIN_TIMEOUT or DRAIN_LIMIT.

        Both bounds are totals for the whole drain, so a client trickling
        bytes cannot keep close() from returning.
        """
        deadline = time.monotonic() + self.DRAIN_TIMEOUT
        drained = 0
        while drained < self.DRAIN_LIMIT:
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                break
            self.socket.settimeout(remaining)
            chunk = self.socket.recv(4096)
            if not chunk:
                break
            drained += len(chunk)

    def __enter__(self) -> "Connection":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
