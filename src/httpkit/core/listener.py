"""
=============================================================================
CONNECTION LISTENER
=============================================================================

Binds a TCP address and hands out accepted connections one at a time as a
lazy sequence.

SOCKET LIFECYCLE (Server Side):
────────────────────────────────

    1. socket()    Create a socket file descriptor
    2. bind()      Associate the socket with an IP:PORT      ┐ done in
    3. listen()    OS starts queueing incoming connections   ┘ __init__
    4. accept()    Take the next queued connection           ← incoming()
    5. close()     Release the socket                        ← close()

Binding happens in the constructor, so "address already in use" or
"permission denied" is reported right there as BindError, never on the
first accept.

=============================================================================
THE CONNECTION SEQUENCE
=============================================================================

    listener = Listener("127.0.0.1:8080")
    for item in listener:
        if isinstance(item, AcceptError):
            log(item); continue           # caller decides: continue or stop
        with item as conn:
            request = conn.read_request(parser)
            HTTPResponse(200).json(...).send(conn)

Each item is either a Connection or an AcceptError. A failed accept is
handed to the caller as an item instead of being raised, because it says
nothing about the listener itself; the sequence keeps going.

The sequence never ends on its own. It ends when request_shutdown() (or
close()) was called: the accept loop wakes up every poll_interval seconds
to check the flag.

=============================================================================
SHUTDOWN OWNERSHIP
=============================================================================

Only the thread iterating the listener touches the socket after bind.
Other threads and signal handlers call request_shutdown(), which merely
sets a threading.Event; the iterating thread notices it, leaves the loop
and closes the socket itself.

=============================================================================
"""

import socket
import logging
import threading
from typing import Iterator, Optional, Tuple, Union

from ..config import parse_address
from ..errors import AcceptError, BindError
from .connection import Connection


logger = logging.getLogger(__name__)

Address = Union[str, Tuple[str, int]]


class Listener:
    """
    A bound, listening TCP socket that yields accepted connections.

    Args:
        address: "host:port" string ("[::1]:8080" for IPv6) or (host, port).
        backlog: listen() queue length.
        timeout: Socket timeout applied to each accepted connection.
        poll_interval: How often a blocked accept() wakes up to check for
                       shutdown.

    Raises:
        BindError: The address is invalid or cannot be bound.
    """

    def __init__(
        self,
        address: Address,
        backlog: int = 128,
        timeout: Optional[float] = 30.0,
        poll_interval: float = 0.5,
    ):
        self.timeout = timeout
        self.poll_interval = poll_interval

        if isinstance(address, str):
            try:
                host, port = parse_address(address)
            except ValueError as e:
                raise BindError(str(e), address=address) from e
        else:
            host, port = address

        self._shutdown_event = threading.Event()
        self._socket = self._bind(host, port, backlog)
        self._address: Tuple[str, int] = self._socket.getsockname()[:2]

        logger.info(f"Listening on {self._address[0]}:{self._address[1]}")

    def _bind(self, host: str, port: int, backlog: int) -> socket.socket:
        """
        Create, configure, bind and listen.

        SO_REUSEADDR lets a restarted server bind while the old socket sits
        in TIME_WAIT; it does not allow two live listeners on one port, so
        a busy address still fails here.
        """
        family = socket.AF_INET6 if ":" in host else socket.AF_INET
        label = f"{host}:{port}"

        try:
            sock = socket.socket(family, socket.SOCK_STREAM)
        except OSError as e:
            raise BindError(f"Failed to create socket for {label}: {e}", address=label) from e

        try:
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            sock.bind((host, port))
            sock.listen(backlog)
        except OSError as e:
            sock.close()
            logger.error(f"Failed to bind to {label}: {e}")
            raise BindError(f"Failed to bind to {label}: {e}", address=label) from e

        # accept() returns every poll_interval so the loop can see shutdown
        sock.settimeout(self.poll_interval)
        return sock

    @property
    def address(self) -> Tuple[str, int]:
        """The bound (host, port). Resolves port 0 to the real port."""
        return self._address

    @property
    def is_closed(self) -> bool:
        return self._socket is None

    @property
    def shutdown_requested(self) -> bool:
        return self._shutdown_event.is_set()

    def request_shutdown(self) -> None:
        """
        Ask the accept loop to stop.

        Safe from any thread and from signal handlers. Idempotent.
        """
        self._shutdown_event.set()

    def incoming(self) -> Iterator[Union[Connection, AcceptError]]:
        """
        Lazily accept connections.

        Yields:
            Connection for each accepted client, or AcceptError when a
            single accept() call failed.
        """
        if self._socket is None:
            return

        try:
            while not self._shutdown_event.is_set():
                try:
                    client_socket, client_address = self._socket.accept()
                except socket.timeout:
                    continue  # Poll tick: re-check the shutdown flag
                except OSError as e:
                    if self._shutdown_event.is_set() or self._socket is None:
                        break
                    logger.warning(f"Accept failed: {e}")
                    yield AcceptError(f"Accept failed: {e}")
                    continue

                logger.debug(f"Accepted connection from {client_address[0]}:{client_address[1]}")
                yield Connection(
                    socket=client_socket,
                    address=client_address[:2],
                    timeout=self.timeout,
                )
        finally:
            self.close()

    def __iter__(self) -> Iterator[Union[Connection, AcceptError]]:
        return self.incoming()

    def close(self) -> None:
        """Stop accepting and release the listening socket."""
        self._shutdown_event.set()
        if self._socket is not None:
            try:
                self._socket.close()
            except OSError:
                pass
            self._socket = None
            logger.info("Listener stopped")

    def __enter__(self) -> "Listener":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
