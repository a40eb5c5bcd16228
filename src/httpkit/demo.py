"""
=============================================================================
DEMO: USERS API
=============================================================================

A tiny JSON API showing the whole toolkit end to end:

    GET  /users   → 200 [{"id":1,"name":"Alice"},{"id":2,"name":"Bob"}]
    POST /users   → 201 echoing a {"id": int, "name": str} body
                    400 "Invalid JSON" for anything else
    *             → 404 "Not Found"

users_app is a plain handler, so it runs under HTTPServer. serve_sequential
runs it on the bare Listener loop instead, one connection at a time:

    $ python -m httpkit --sequential
    $ curl -s localhost:6969/users
    [{"id":1,"name":"Alice"},{"id":2,"name":"Bob"}]

=============================================================================
"""

import logging
from dataclasses import asdict, dataclass
from typing import Optional, Union, Tuple

from .core import Listener
from .errors import AcceptError, HTTPParseError, WriteError
from .http import HTTPMethod, HTTPRequest, HTTPResponse, RequestParser


logger = logging.getLogger(__name__)


@dataclass
class User:
    id: int
    name: str

    def __post_init__(self):
        # JSON gives no type guarantees; reject shapes a User cannot have
        if isinstance(self.id, bool) or not isinstance(self.id, int) or self.id < 0:
            raise TypeError(f"User.id must be a non-negative integer, got {self.id!r}")
        if not isinstance(self.name, str):
            raise TypeError(f"User.name must be a string, got {self.name!r}")


USERS = [User(id=1, name="Alice"), User(id=2, name="Bob")]


def users_app(request: HTTPRequest) -> HTTPResponse:
    """Route a request to the users API."""
    route = (request.method, request.route)

    if route == (HTTPMethod.GET, "/users"):
        return HTTPResponse(200).json([asdict(user) for user in USERS])

    if route == (HTTPMethod.POST, "/users"):
        user = request.get_json(User)
        if user is None:
            return HTTPResponse(400).json("Invalid JSON")
        return HTTPResponse(201).json(asdict(user))

    return HTTPResponse(404).json("Not Found")


def serve_sequential(
    address: Union[str, Tuple[str, int]] = "127.0.0.1:6969",
    listener: Optional[Listener] = None,
    parser: Optional[RequestParser] = None,
) -> None:
    """
    Serve users_app one connection at a time on the bare Listener loop.

    No worker pool: a slow client holds up everyone behind it. Runs until
    the listener is shut down (request_shutdown() or KeyboardInterrupt).

    Args:
        address: "host:port" to bind, ignored when `listener` is given.
        listener: An already bound Listener to serve from.
        parser: RequestParser carrying the size limits; default limits
                when omitted.

    Raises:
        BindError: The address cannot be bound.
    """
    listener = listener or Listener(address)
    parser = parser or RequestParser()
    host, port = listener.address
    logger.info(f"Serving users API sequentially on http://{host}:{port}")

    try:
        for item in listener:
            if isinstance(item, AcceptError):
                continue

            with item as conn:
                try:
                    request = conn.read_request(parser)
                except HTTPParseError as e:
                    logger.debug(f"[{conn.id}] Bad request: {e}")
                    response = HTTPResponse(e.status_code).json({"error": str(e)})
                except OSError as e:
                    logger.debug(f"[{conn.id}] Read failed: {e}")
                    continue
                else:
                    response = users_app(request)

                response.set_header("Connection", "close")
                try:
                    response.send(conn)
                except WriteError as e:
                    logger.warning(f"Failed to send response: {e}")
    except KeyboardInterrupt:
        logger.info("Received keyboard interrupt")
    finally:
        listener.close()
