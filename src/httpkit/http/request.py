"""
=============================================================================
HTTP REQUEST PARSER
=============================================================================

Reads one HTTP/1.1 request from a buffered byte stream and turns it into a
structured HTTPRequest.

=============================================================================
HTTP REQUEST ANATOMY
=============================================================================

    ┌─ REQUEST LINE ─────────────────────────────────────────────────────┐
    │    GET /users?active=true HTTP/1.1\r\n                             │
    │    ─┬─ ─────────┬──────── ────┬───                                 │
    │   Method      Target       Version                                 │
    │                 │                                                   │
    │        ┌────────┴────────┐                                         │
    │      Route            Query                                        │
    │     /users         active=true                                     │
    └─────────────────────────────────────────────────────────────────────┘
    ┌─ HEADERS ──────────────────────────────────────────────────────────┐
    │    Host: example.com\r\n                                           │
    │    Content-Length: 2\r\n                                           │
    └─────────────────────────────────────────────────────────────────────┘
    ┌─ EMPTY LINE ───────────────────────────────────────────────────────┐
    │    \r\n                                                             │
    └─────────────────────────────────────────────────────────────────────┘
    ┌─ BODY (exactly Content-Length bytes) ──────────────────────────────┐
    │    {}                                                               │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
PARSER STATE MACHINE
=============================================================================

The parser reads straight from the connection's buffered reader instead of
collecting the whole request first, so it only ever consumes the bytes that
belong to this request:

    REQUEST_LINE ──► HEADERS ──► BODY ──► DONE
         │              │          │
         ▼              ▼          ▼
    MalformedRequestLine  MalformedHeader  TruncatedBody

Every read is bounded by the stream itself. A client that never sends the
terminating CRLF eventually hits end-of-stream (reported as a parse error)
or the socket timeout (raised as the socket's own OSError). The parser adds
no timeout of its own.

=============================================================================
RAW TARGETS
=============================================================================

The route and the query values are kept EXACTLY as sent. No percent
decoding happens, so "/a%20b" stays "/a%20b" and a broken escape like
"%zz" passes through untouched. Decoding is left to the caller.

=============================================================================
"""

import dataclasses
import io
import json
import re
from dataclasses import dataclass, field
from typing import Any, BinaryIO, Dict, Optional, Tuple, Type

from ..errors import (
    MalformedHeader,
    MalformedRequestLine,
    PayloadTooLarge,
    TruncatedBody,
)
from .headers import Headers
from .methods import HTTPMethod


@dataclass
class HTTPRequest:
    """
    Represents a parsed HTTP request.

    =========================================================================
    ATTRIBUTES
    =========================================================================

        method:         HTTPMethod member (compares equal to "GET", ...)
        route:          Path part of the target, verbatim: "/users"
        query:          Query string as a flat dict, last value wins:
                        "?a=1&a=2&b" → {"a": "2", "b": ""}
        headers:        Case-insensitive Headers mapping
        body:           Exactly Content-Length raw bytes (b"" if absent)
        version:        Version token from the request line: "HTTP/1.1"
        target:         Raw request target: "/users?a=1"
        client_address: (ip, port) of the peer, ("", 0) when unknown

    =========================================================================
    """

    method: HTTPMethod
    route: str
    query: Dict[str, str] = field(default_factory=dict)
    headers: Headers = field(default_factory=Headers)
    body: bytes = b""
    version: str = "HTTP/1.1"
    target: str = ""
    client_address: Tuple[str, int] = ("", 0)

    def __post_init__(self):
        self.method = HTTPMethod(self.method)
        if not isinstance(self.headers, Headers):
            self.headers = Headers(self.headers)
        if not self.target:
            self.target = self.route

    @property
    def content_length(self) -> int:
        """Declared Content-Length, or 0 if missing or not a number."""
        value = self.headers.get("content-length", "").strip()
        return int(value) if _DIGITS.fullmatch(value) else 0

    @property
    def content_type(self) -> Optional[str]:
        """
        Media type from the Content-Type header, without parameters.

        "Application/JSON; charset=utf-8" → "application/json"
        """
        ct = self.headers.get("content-type", "")
        return ct.split(";")[0].strip().lower() or None

    def get_header(self, name: str, default: Optional[str] = None) -> Optional[str]:
        """Get a header value, any case for the name."""
        return self.headers.get(name, default)

    def get_query(self, name: str, default: Optional[str] = None) -> Optional[str]:
        """Get a query parameter value."""
        return self.query.get(name, default)

    def get_json(self, into: Optional[Type] = None) -> Optional[Any]:
        """
        Decode the body as JSON, softly.

        A malformed body is ordinary client input, not a programming error,
        so every failure comes back as None instead of an exception:

            empty body              → None
            invalid JSON / encoding → None
            wrong shape for `into`  → None

        Args:
            into: What to decode into.
                  None      - return the decoded value as-is
                  dataclass - build it from a JSON object: into(**obj)
                  int/float - numbers only, never true/false; an integer
                              asked for as float comes back as a float
                  any type  - return the value only if isinstance(value, into)

        Example:
            user = request.get_json(User)
            if user is None:
                return HTTPResponse(400).json("Invalid JSON")
        """
        if not self.body:
            return None

        try:
            value = json.loads(self.body)
        except (ValueError, RecursionError):
            # JSONDecodeError and UnicodeDecodeError are both ValueErrors
            return None

        if into is None:
            return value

        if dataclasses.is_dataclass(into) and isinstance(into, type):
            if not isinstance(value, dict):
                return None
            try:
                return into(**value)
            except TypeError:
                return None

        # JSON true/false is not a number, even though bool subclasses int
        if isinstance(value, bool) and into in (int, float):
            return None
        if into is float and isinstance(value, int):
            return float(value)

        return value if isinstance(value, into) else None


# Content-Length must be plain ASCII digits; int() alone would also accept
# "+5", " 5", "1_000" and non-ASCII digits.
_DIGITS = re.compile(r"[0-9]+")


def split_target(target: str) -> Tuple[str, Dict[str, str]]:
    """
    Split a request target into route and query parameters.

    The split happens at the FIRST '?'. Pairs are separated by '&' and
    split at their first '='. Nothing is percent-decoded.

        "/users?active=true"     → ("/users", {"active": "true"})
        "/s?a=1&a=2"             → ("/s", {"a": "2"})
        "/s?flag&x=a=b"          → ("/s", {"flag": "", "x": "a=b"})
        "/s?q=%zz"               → ("/s", {"q": "%zz"})
    """
    route, _, query_string = target.partition("?")

    query: Dict[str, str] = {}
    for pair in query_string.split("&"):
        if not pair:
            continue
        key, _, value = pair.partition("=")
        query[key] = value  # last-wins

    return route, query


class RequestParser:
    """
    Parses an HTTP request from a buffered binary stream.

    ==========================================================================
    PARSER ARCHITECTURE
    ==========================================================================

        stream (socket.makefile("rb") / io.BytesIO)
              │
              ▼
        ┌───────────────────────────────────────────────────────────────────┐
        │  1. Request line ───────────────────────────────────────────────►│
        │     │  METHOD SP TARGET SP VERSION                               │
        │     │  EOF / < 3 tokens / unknown method → MalformedRequestLine  │
        │     ▼                                                             │
        │  2. Target → route + query ─────────────────────────────────────►│
        │     ▼                                                             │
        │  3. Headers until blank line ───────────────────────────────────►│
        │     │  no ':' / EOF → MalformedHeader                            │
        │     ▼                                                             │
        │  4. Body: exactly Content-Length bytes ─────────────────────────►│
        │     │  short read → TruncatedBody                                │
        │     ▼                                                             │
        │  5. Build HTTPRequest ──────────────────────────────────────────►│
        └───────────────────────────────────────────────────────────────────┘

    ==========================================================================
    LIMITS
    ==========================================================================

    max_line_size:  Longest request/header line (414 / 431 when exceeded)
    max_headers:    Most header lines per request (431 when exceeded)
    max_body_size:  Largest Content-Length accepted (413 when exceeded)

    The parser holds no per-request state, so one instance can be shared
    by every worker thread.
    ==========================================================================
    """

    def __init__(
        self,
        max_line_size: int = 8192,
        max_headers: int = 100,
        max_body_size: int = 10 * 1024 * 1024,
    ):
        self.max_line_size = max_line_size
        self.max_headers = max_headers
        self.max_body_size = max_body_size

    def parse(
        self,
        stream: BinaryIO,
        client_address: Tuple[str, int] = ("", 0),
    ) -> HTTPRequest:
        """
        Read one request from the stream.

        Args:
            stream: Buffered binary reader positioned at the request line.
            client_address: Peer (ip, port), stored on the request.

        Returns:
            The parsed HTTPRequest. Bytes after the body stay unread.

        Raises:
            MalformedRequestLine, MalformedHeader, TruncatedBody,
            PayloadTooLarge: The request is malformed.
            OSError: The stream itself failed (reset, timeout).
        """
        method, target, version = self._read_request_line(stream)
        route, query = split_target(target)
        headers = self._read_headers(stream)
        body = self._read_body(stream, headers)

        return HTTPRequest(
            method=method,
            route=route,
            query=query,
            headers=headers,
            body=body,
            version=version,
            target=target,
            client_address=client_address,
        )

    # =========================================================================
    # STEP 1: REQUEST LINE
    # =========================================================================

    def _read_request_line(self, stream: BinaryIO) -> Tuple[HTTPMethod, str, str]:
        raw = stream.readline(self.max_line_size + 1)

        if not raw:
            raise MalformedRequestLine("Connection closed before request line")

        if not raw.endswith(b"\n"):
            if len(raw) > self.max_line_size:
                raise MalformedRequestLine(
                    f"Request line exceeds {self.max_line_size} bytes",
                    status_code=414,
                )
            raise MalformedRequestLine("Connection closed inside request line")

        line = raw.decode("utf-8", errors="replace").rstrip("\r\n")
        parts = line.split()
        if len(parts) < 3:
            raise MalformedRequestLine(f"Invalid request line: {line!r}")

        token, target, version = parts[0], parts[1], parts[2]

        if not HTTPMethod.is_valid(token):
            raise MalformedRequestLine(f"Invalid method: {token}", status_code=405)

        return HTTPMethod(token), target, version

    # =========================================================================
    # STEP 3: HEADERS
    # =========================================================================

    def _read_headers(self, stream: BinaryIO) -> Headers:
        """
        Read "Name: Value" lines until the blank line.

        Names and values are trimmed; a repeated name replaces the earlier
        value.
        """
        headers = Headers()
        count = 0

        while True:
            raw = stream.readline(self.max_line_size + 1)

            if not raw:
                raise MalformedHeader("Connection closed before end of headers")

            if not raw.endswith(b"\n"):
                if len(raw) > self.max_line_size:
                    raise MalformedHeader(
                        f"Header line exceeds {self.max_line_size} bytes",
                        status_code=431,
                    )
                raise MalformedHeader("Connection closed inside header line")

            line = raw.decode("utf-8", errors="replace").rstrip("\r\n")
            if not line:
                return headers

            count += 1
            if count > self.max_headers:
                raise MalformedHeader(
                    f"More than {self.max_headers} headers",
                    status_code=431,
                )

            name, sep, value = line.partition(":")
            name = name.strip()
            if not sep or not name:
                raise MalformedHeader(f"Invalid header line: {line!r}")

            headers[name] = value.strip()

    # =========================================================================
    # STEP 4: BODY
    # =========================================================================

    def _read_body(self, stream: BinaryIO, headers: Headers) -> bytes:
        value = headers.get("content-length")
        if value is None:
            return b""

        value = value.strip()
        if not _DIGITS.fullmatch(value):
            # Not a non-negative integer: treated like a missing header
            return b""

        length = int(value)
        if length > self.max_body_size:
            raise PayloadTooLarge(
                f"Content-Length {length} exceeds limit of {self.max_body_size} bytes"
            )

        body = _read_exact(stream, length)
        if len(body) < length:
            raise TruncatedBody(
                f"Incomplete body: expected {length} bytes, got {len(body)}"
            )
        return body


def _read_exact(stream: BinaryIO, size: int) -> bytes:
    """
    Read up to `size` bytes, stopping early only at end-of-stream.

    Buffered readers already loop internally; raw streams may hand back
    short reads, so keep asking until the count is met or EOF.
    """
    chunks = []
    remaining = size
    while remaining > 0:
        chunk = stream.read(remaining)
        if not chunk:
            break
        chunks.append(chunk)
        remaining -= len(chunk)
    return b"".join(chunks)


# =============================================================================
# CONVENIENCE FUNCTIONS
# =============================================================================

def read_request(
    stream: BinaryIO,
    client_address: Tuple[str, int] = ("", 0),
) -> HTTPRequest:
    """Parse one request from a stream with default limits."""
    return RequestParser().parse(stream, client_address)


def parse_request(
    data: bytes,
    client_address: Tuple[str, int] = ("", 0),
    **limits: int,
) -> HTTPRequest:
    """
    Parse a complete request held in memory.

    Args:
        data: Raw request bytes.
        client_address: Client's (ip, port) tuple.
        **limits: max_line_size / max_headers / max_body_size overrides.
    """
    return RequestParser(**limits).parse(io.BytesIO(data), client_address)
