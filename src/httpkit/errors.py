"""
=============================================================================
ERROR TAXONOMY
=============================================================================

Every failure httpkit reports derives from HTTPKitError, so callers can
catch the whole family in one place or pick out a single kind.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                        WHERE ERRORS COME FROM                        │
    ├──────────────────────┬──────────────────────────────────────────────┤
    │  BindError           │ Listener construction (port busy, bad addr)  │
    │  AcceptError         │ Yielded by Listener.incoming(), not raised   │
    │  HTTPParseError      │ RequestParser, one subclass per failure:     │
    │    MalformedRequestLine   bad/missing first line, unknown method    │
    │    MalformedHeader        header line without ':' or cut short      │
    │    TruncatedBody          fewer bytes than Content-Length           │
    │    PayloadTooLarge        Content-Length above the configured cap   │
    │  SerializationError  │ HTTPResponse.json() with a non-JSON value    │
    │  WriteError          │ Sending a response failed partway            │
    └──────────────────────┴──────────────────────────────────────────────┘

Parse errors carry the status code the server should answer with. They end
handling of one connection only; the listener keeps accepting.

=============================================================================
"""

from typing import Optional


class HTTPKitError(Exception):
    """Base class for all httpkit errors."""


class BindError(HTTPKitError):
    """
    Raised when the listening socket cannot be created, bound or put into
    listening mode.

    Reported at Listener construction, never deferred to the first accept.
    """

    def __init__(self, message: str, address: Optional[str] = None):
        super().__init__(message)
        self.address = address


class AcceptError(HTTPKitError):
    """
    A single failed accept() call.

    The listener yields these as items of its connection sequence instead
    of raising them, so the caller decides whether to log and continue or
    to abort the loop.
    """


class HTTPParseError(HTTPKitError):
    """
    Raised when an HTTP request cannot be parsed.

    Carries the HTTP status code the server should send back:

        400 Bad Request                      - malformed syntax
        405 Method Not Allowed               - unknown method token
        413 Payload Too Large                - Content-Length over the limit
        414 URI Too Long                     - request line over the limit
        431 Request Header Fields Too Large  - too many / too long headers
    """

    default_status = 400

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code if status_code is not None else self.default_status


class MalformedRequestLine(HTTPParseError):
    """The request line is missing, cut short, or not METHOD TARGET VERSION."""


class MalformedHeader(HTTPParseError):
    """A header line has no ':' or the header block never terminates."""


class TruncatedBody(HTTPParseError):
    """The stream ended before Content-Length body bytes arrived."""


class PayloadTooLarge(HTTPParseError):
    """The declared Content-Length exceeds the parser's body limit."""

    default_status = 413


class SerializationError(HTTPKitError):
    """A value handed to HTTPResponse.json() is not representable as JSON."""


class WriteError(HTTPKitError):
    """Writing a response to the client failed; nothing is retried."""
