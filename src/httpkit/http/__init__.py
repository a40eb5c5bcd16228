"""
=============================================================================
HTTP PROTOCOL IMPLEMENTATION
=============================================================================

The protocol half of httpkit: bytes in, HTTPRequest out; HTTPResponse in,
bytes out. Nothing here touches sockets directly; the parser reads any
buffered binary stream and the response writes to any socket or file.

    ┌─────────────────────────────────────────────────────────────────────┐
    │ REQUEST PARSER (request.py)                                         │
    │ Input:   b"GET /users?id=1 HTTP/1.1\r\nHost: ...\r\n\r\n"          │
    │ Output:  HTTPRequest(method=GET, route="/users", query={"id": "1"})│
    ├─────────────────────────────────────────────────────────────────────┤
    │ RESPONSE BUILDER (response.py)                                      │
    │ Input:   HTTPResponse(200).json(["Alice", "Bob"])                   │
    │ Output:  b"HTTP/1.1 200 OK\r\nContent-Type: ...\r\n\r\n[...]"      │
    ├─────────────────────────────────────────────────────────────────────┤
    │ SUPPORT                                                             │
    │ headers.py       case-insensitive header mapping                   │
    │ methods.py       closed HTTPMethod enum                            │
    │ status_codes.py  reason phrases for the status line                │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
"""

from .headers import Headers
from .methods import HTTPMethod
from .request import HTTPRequest, RequestParser, parse_request, read_request, split_target
from .response import HTTPResponse
from .status_codes import HTTPStatus, reason_phrase

__all__ = [
    # Request parsing
    "HTTPRequest",
    "RequestParser",
    "parse_request",
    "read_request",
    "split_target",

    # Response building
    "HTTPResponse",

    # Support types
    "Headers",
    "HTTPMethod",
    "HTTPStatus",
    "reason_phrase",
]
