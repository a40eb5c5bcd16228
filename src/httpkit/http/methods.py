"""
=============================================================================
HTTP METHODS (RFC 7231)
=============================================================================

    ┌──────────┬────────────┬────────────┬──────────────────────────────────┐
    │  Method  │ Idempotent │  Has Body  │ Description                      │
    ├──────────┼────────────┼────────────┼──────────────────────────────────┤
    │  GET     │    Yes     │    No      │ Retrieve resource                │
    │  POST    │    No      │    Yes     │ Create resource / submit data    │
    │  PUT     │    Yes     │    Yes     │ Replace entire resource          │
    │  PATCH   │    No      │    Yes     │ Partial update                   │
    │  DELETE  │    Yes     │  Optional  │ Delete resource                  │
    │  HEAD    │    Yes     │    No      │ GET without body (metadata only) │
    │  OPTIONS │    Yes     │    No      │ Get allowed methods (CORS)       │
    │  TRACE   │    Yes     │    No      │ Echo request (debugging)         │
    │  CONNECT │    No      │    No      │ Establish tunnel (proxies)       │
    └──────────┴────────────┴────────────┴──────────────────────────────────┘

The set is closed: a request line with any other token is rejected by the
parser. Members mix in str, so HTTPMethod.GET == "GET" and callers can
dispatch on plain strings or on the enum.

=============================================================================
"""

from enum import Enum


class HTTPMethod(str, Enum):
    """HTTP request methods understood by the parser."""

    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    DELETE = "DELETE"
    PATCH = "PATCH"
    HEAD = "HEAD"
    OPTIONS = "OPTIONS"
    TRACE = "TRACE"
    CONNECT = "CONNECT"

    def __str__(self) -> str:
        return self.value

    @classmethod
    def is_valid(cls, token: str) -> bool:
        """Check whether a request-line token names a known method."""
        return token in cls._value2member_map_

    @property
    def is_idempotent(self) -> bool:
        """
        Calling it multiple times has the same effect as calling it once.

        Idempotent methods can be safely retried by clients on failure.
        """
        return self not in (HTTPMethod.POST, HTTPMethod.PATCH, HTTPMethod.CONNECT)
