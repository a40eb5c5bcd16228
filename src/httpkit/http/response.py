"""
=============================================================================
HTTP RESPONSE BUILDER
=============================================================================

Builds an HTTP/1.1 response in memory and writes it to the client.

=============================================================================
HTTP RESPONSE ANATOMY
=============================================================================

    ┌─ STATUS LINE ──────────────────────────────────────────────────────┐
    │    HTTP/1.1 200 OK\r\n                                             │
    │    ────┬─── ─┬─ ─┬─                                                │
    │    Version  Code Phrase                                            │
    └─────────────────────────────────────────────────────────────────────┘
    ┌─ HEADERS ──────────────────────────────────────────────────────────┐
    │    Content-Type: application/json\r\n                              │
    │    Content-Length: 15\r\n                                          │
    └─────────────────────────────────────────────────────────────────────┘
    ┌─ EMPTY LINE ───────────────────────────────────────────────────────┐
    │    \r\n                                                             │
    └─────────────────────────────────────────────────────────────────────┘
    ┌─ BODY ─────────────────────────────────────────────────────────────┐
    │    ["Alice","Bob"]                                                  │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
METHOD CHAINING
=============================================================================

Every setter mutates the response and returns it, so a response reads as
one expression and ends in send():

    HTTPResponse(200).set_header("X-Trace", "abc").json(users).send(conn)

The status is any integer. It is printed verbatim; the reason phrase comes
from the HTTPStatus table ("Unknown" for codes it does not list).

=============================================================================
"""

import json
from dataclasses import dataclass, field
from typing import Any, Union

from ..errors import SerializationError, WriteError
from .headers import Headers
from .status_codes import reason_phrase


@dataclass
class HTTPResponse:
    """
    Represents an HTTP response to be sent to the client.

    =========================================================================
    RESPONSE LIFECYCLE
    =========================================================================

        handler builds           to_bytes()              send(sink)
        HTTPResponse    ─────►   serializes    ─────►    sink.sendall()
            │                       │                        │
        HTTPResponse(200)        b"HTTP/1.1 200 OK\r\n    one write of the
          .json([...])             Content-Type: ...\r\n   whole message
                                   \r\n
                                   [...]"

    =========================================================================
    """

    status: int = 200
    headers: Headers = field(default_factory=Headers)
    body: bytes = b""
    version: str = "HTTP/1.1"

    def __post_init__(self):
        if not isinstance(self.headers, Headers):
            self.headers = Headers(self.headers)

    @property
    def status_line(self) -> str:
        """
        The first line of the response, without CRLF.

        Format: HTTP-VERSION SP STATUS-CODE SP REASON-PHRASE
        Example: "HTTP/1.1 200 OK"
        """
        return f"{self.version} {self.status} {reason_phrase(self.status)}"

    # =========================================================================
    # BUILDER METHODS
    # =========================================================================

    def set_header(self, name: str, value: str) -> "HTTPResponse":
        """
        Set a response header, replacing any value under the same name
        (in any case).

        Returns:
            Self for method chaining
        """
        self.headers[name] = value
        return self

    def set_body(self, body: Union[str, bytes]) -> "HTTPResponse":
        """
        Set the raw response body.

        Strings are encoded as UTF-8. Content-Type is left to the caller.
        """
        if isinstance(body, str):
            self.body = body.encode("utf-8")
        else:
            self.body = bytes(body)
        return self

    def text(self, text: str, content_type: str = "text/plain; charset=utf-8") -> "HTTPResponse":
        """Set a plain text body with its Content-Type and Content-Length."""
        self.body = text.encode("utf-8")
        self.headers["Content-Type"] = content_type
        self.headers["Content-Length"] = str(len(self.body))
        return self

    def json(self, value: Any) -> "HTTPResponse":
        """
        Set a JSON body.

        The value is serialized compactly (no spaces after ',' or ':') and
        encoded as UTF-8. Content-Type and Content-Length are set from the
        encoded bytes.

        Args:
            value: Anything the json module can serialize.

        Returns:
            Self for method chaining

        Raises:
            SerializationError: The value is not representable as JSON
                (unsupported type, circular reference, NaN/Infinity).
                The response is left unchanged.
        """
        try:
            encoded = json.dumps(
                value,
                separators=(",", ":"),
                ensure_ascii=False,
                allow_nan=False,
            ).encode("utf-8")
        except (TypeError, ValueError, RecursionError) as e:
            raise SerializationError(f"Cannot serialize response body: {e}") from e

        self.body = encoded
        self.headers["Content-Type"] = "application/json"
        self.headers["Content-Length"] = str(len(encoded))
        return self

    # =========================================================================
    # SERIALIZATION
    # =========================================================================

    def to_bytes(self) -> bytes:
        """
        Serialize the response for the wire.

        =====================================================================
        SERIALIZATION FORMAT
        =====================================================================

            HTTP/1.1 200 OK\r\n          ← Status line
            Name: Value\r\n              ← One line per header, in order
            \r\n                         ← Empty line (separator)
            <body bytes>                 ← Raw body

        =====================================================================

        Content-Length is added when the body is non-empty and the header
        was not set, so the client knows where the body ends.
        """
        headers = self.headers
        if self.body and "Content-Length" not in headers:
            headers = headers.copy()
            headers["Content-Length"] = str(len(self.body))

        lines = [self.status_line]
        for name, value in headers.items():
            lines.append(f"{name}: {value}")

        # Two CRLFs: one closes the last header line, one is the blank line
        head = "\r\n".join(lines) + "\r\n\r\n"
        return head.encode("utf-8") + self.body

    def send(self, sink: Any) -> None:
        """
        Write the whole response to a socket-like or file-like sink.

        Sockets (anything with sendall) get one sendall() call. File-like
        objects get write() followed by flush() when they have one.

        Raises:
            WriteError: The write failed partway. Nothing is retried; the
                caller decides what to do with the connection.
        """
        data = self.to_bytes()
        try:
            if hasattr(sink, "sendall"):
                sink.sendall(data)
            else:
                sink.write(data)
                flush = getattr(sink, "flush", None)
                if flush is not None:
                    flush()
        except OSError as e:
            raise WriteError(f"Failed to send response: {e}") from e
