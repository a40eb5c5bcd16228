"""
=============================================================================
HTTPKIT - Minimal HTTP/1.1 Server Toolkit
=============================================================================

Accept TCP connections, parse raw bytes into structured requests, and write
structured responses back, with nothing but the standard library.

=============================================================================
PACKAGE STRUCTURE
=============================================================================

    httpkit/
    ├── __init__.py          # This file - package exports
    ├── __main__.py          # CLI entry point (python -m httpkit)
    ├── errors.py            # HTTPKitError and its subclasses
    ├── config.py            # ServerConfig dataclass, parse_address()
    ├── server.py            # HTTPServer: listener + pool + handler
    ├── demo.py              # Users API demo app
    ├── core/                # Networking plumbing
    │   ├── listener.py      # Bound socket yielding connections
    │   ├── connection.py    # One client socket
    │   └── thread_pool.py   # Bounded worker pool
    └── http/                # Protocol layer
        ├── request.py       # HTTPRequest, RequestParser
        ├── response.py      # HTTPResponse
        ├── headers.py       # Case-insensitive Headers
        ├── methods.py       # HTTPMethod enum
        └── status_codes.py  # HTTPStatus, reason phrases

=============================================================================
QUICK START
=============================================================================

    from httpkit import HTTPServer, HTTPResponse, HTTPMethod

    def app(request):
        if request.method == HTTPMethod.GET and request.route == "/hello":
            return HTTPResponse(200).json({"hello": "world"})
        return HTTPResponse(404).json("Not Found")

    HTTPServer(app).serve_forever()

Or with no server class at all:

    from httpkit import AcceptError, Listener, RequestParser, HTTPResponse

    parser = RequestParser()
    for conn in Listener("127.0.0.1:6969"):
        if isinstance(conn, AcceptError):
            continue
        with conn:
            request = conn.read_request(parser)
            HTTPResponse(200).json(["Alice", "Bob"]).send(conn)

=============================================================================
"""

__version__ = "1.0.0"

from .config import ServerConfig, parse_address
from .core import Connection, ConnectionState, Listener, ThreadPool
from .errors import (
    AcceptError,
    BindError,
    HTTPKitError,
    HTTPParseError,
    MalformedHeader,
    MalformedRequestLine,
    PayloadTooLarge,
    SerializationError,
    TruncatedBody,
    WriteError,
)
from .http import (
    Headers,
    HTTPMethod,
    HTTPRequest,
    HTTPResponse,
    HTTPStatus,
    RequestParser,
    parse_request,
    read_request,
)
from .server import HTTPServer, serve

__all__ = [
    "__version__",

    # Server
    "HTTPServer",
    "serve",
    "ServerConfig",
    "parse_address",

    # Networking
    "Listener",
    "Connection",
    "ConnectionState",
    "ThreadPool",

    # Protocol
    "HTTPRequest",
    "HTTPResponse",
    "RequestParser",
    "parse_request",
    "read_request",
    "Headers",
    "HTTPMethod",
    "HTTPStatus",

    # Errors
    "HTTPKitError",
    "BindError",
    "AcceptError",
    "HTTPParseError",
    "MalformedRequestLine",
    "MalformedHeader",
    "TruncatedBody",
    "PayloadTooLarge",
    "SerializationError",
    "WriteError",
]
