"""
=============================================================================
HTTP SERVER
=============================================================================

Ties the listener, the parser, the worker pool and a handler function into
a running server.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    HTTP SERVER ARCHITECTURE                         │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │                        ┌─────────────────┐                          │
    │                        │   HTTPServer    │                          │
    │                        └────────┬────────┘                          │
    │                                 │                                    │
    │            ┌────────────────────┼────────────────────┐              │
    │            ▼                    ▼                    ▼              │
    │    ┌──────────────┐    ┌──────────────┐    ┌──────────────┐        │
    │    │   Listener   │    │  ThreadPool  │    │   handler    │        │
    │    │ (accepting)  │    │ (concurrency)│    │ (your code)  │        │
    │    └──────────────┘    └──────────────┘    └──────────────┘        │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

The handler is a plain function, HTTPRequest → HTTPResponse. There is no
router: the handler matches on (request.method, request.route) itself.

=============================================================================
REQUEST LIFECYCLE
=============================================================================

    1. ACCEPT          Listener yields a Connection      (accept loop thread)
    2. QUEUE           ThreadPool.submit()               (accept loop thread)
                       full → 503                        (reject thread)
    3. PARSE           RequestParser on conn.reader      (worker thread)
                       parse error → 4xx with its status code
    4. HANDLE          handler(request); exception → 500
    5. SEND            response + "Connection: close"; write error → give up
    6. CLOSE           one request per connection

=============================================================================
"""

import logging
import signal
import threading
import time
from typing import Callable, Optional, Tuple

from .config import ServerConfig
from .core import Connection, ConnectionState, Listener, ThreadPool
from .errors import AcceptError, HTTPParseError, WriteError
from .http import HTTPRequest, HTTPResponse, HTTPStatus, RequestParser


logger = logging.getLogger(__name__)
access_logger = logging.getLogger("httpkit.access")

Handler = Callable[[HTTPRequest], HTTPResponse]


def setup_logging(log_level: str = "INFO") -> None:
    """
    Configure logging for a server process.

    basicConfig only installs a handler when the root logger has none, so
    an application's own logging setup wins.
    """
    level = getattr(logging, log_level.upper(), logging.INFO)

    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    logging.getLogger("httpkit").setLevel(level)


class HTTPServer:
    """
    Multi-threaded HTTP/1.1 server around a single handler function.

    =========================================================================
    USAGE
    =========================================================================

        def app(request):
            if (request.method, request.route) == (HTTPMethod.GET, "/ping"):
                return HTTPResponse(200).json("pong")
            return HTTPResponse(404).json("Not Found")

        server = HTTPServer(app, ServerConfig(port=8080))
        server.serve_forever()          # Blocks until SIGINT/SIGTERM

    For tests, bind first (port 0 picks a free port), serve in a thread and
    stop from the outside:

        server = HTTPServer(app, ServerConfig(port=0)).bind()
        thread = threading.Thread(target=server.serve_forever)
        thread.start()
        ...
        server.shutdown()
        thread.join()

    =========================================================================
    """

    def __init__(self, handler: Handler, config: Optional[ServerConfig] = None):
        self.handler = handler
        self.config = config or ServerConfig()
        self.config.validate()  # Fail-fast on invalid config

        self._parser = RequestParser(
            max_line_size=self.config.max_line_size,
            max_headers=self.config.max_headers,
            max_body_size=self.config.max_body_size,
        )
        self._thread_pool = ThreadPool(
            workers=self.config.workers,
            queue_size=self.config.queue_size,
        )

        self._listener: Optional[Listener] = None
        self._original_handlers: dict = {}

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    def bind(self) -> "HTTPServer":
        """
        Bind the listening socket now.

        Raises:
            BindError: The address is busy or not bindable.
        """
        if self._listener is None:
            self._listener = Listener(
                (self.config.host, self.config.port),
                backlog=self.config.backlog,
                timeout=self.config.timeout,
                poll_interval=self.config.poll_interval,
            )
        return self

    @property
    def address(self) -> Tuple[str, int]:
        """The bound (host, port)."""
        if self._listener is None:
            raise RuntimeError("Server is not bound")
        return self._listener.address

    def serve_forever(self) -> None:
        """
        Accept and dispatch connections until shutdown() is called.

        Binds first if bind() was not called. Blocks the calling thread.
        Queued connections are finished before this returns.
        """
        self._setup_logging()
        self.bind()
        self._thread_pool.start()

        on_main_thread = threading.current_thread() is threading.main_thread()
        if on_main_thread:
            self._setup_signals()

        host, port = self.address
        logger.info(
            f"Serving HTTP on {host}:{port} with {self.config.workers} workers "
            f"(queue {self.config.queue_size})"
        )

        try:
            for item in self._listener:
                if isinstance(item, AcceptError):
                    continue  # Already logged by the listener
                self._dispatch(item)
        finally:
            logger.info("Shutting down server...")
            self._thread_pool.shutdown(wait=True, timeout=self.config.timeout)
            if on_main_thread:
                self._restore_signals()
            self._listener.close()
            logger.info("Server stopped")

    def shutdown(self) -> None:
        """
        Ask serve_forever() to stop.

        Returns immediately; the accept loop notices within poll_interval.
        Safe from any thread and from signal handlers.
        """
        if self._listener is not None:
            self._listener.request_shutdown()

    def _setup_logging(self):
        setup_logging(self.config.log_level)

    def _setup_signals(self):
        """Turn SIGINT (Ctrl+C) and SIGTERM (docker stop) into shutdown()."""
        def shutdown_handler(signum, frame):
            signal_name = signal.Signals(signum).name
            logger.info(f"Received {signal_name}, initiating shutdown...")
            self.shutdown()

        for sig in (signal.SIGINT, signal.SIGTERM):
            self._original_handlers[sig] = signal.signal(sig, shutdown_handler)

    def _restore_signals(self):
        for sig, handler in self._original_handlers.items():
            signal.signal(sig, handler)
        self._original_handlers.clear()

    # =========================================================================
    # CONNECTION HANDLING
    # =========================================================================

    def _dispatch(self, conn: Connection):
        """Hand a connection to the pool, or turn it away when the pool is full."""
        if self._thread_pool.submit(self._process_connection, args=(conn,)):
            return

        logger.warning(f"[{conn.id}] Thread pool full, rejecting connection")
        # Sent from a short-lived thread so a slow client never blocks accept()
        threading.Thread(
            target=self._reject_connection,
            args=(conn,),
            name=f"httpkit-reject-{conn.id}",
            daemon=True,
        ).start()

    def _reject_connection(self, conn: Connection):
        with conn:
            self._send_error(conn, HTTPStatus.SERVICE_UNAVAILABLE, "Server overloaded", time.time())

    def _process_connection(self, conn: Connection):
        """
        Handle one request on one connection (runs in a worker thread).

        Parse fully, then call the handler, then send. Whatever happens the
        connection is closed afterwards.
        """
        start = time.time()

        with conn:
            # ─────────────────────────────────────────────────────────────
            # PARSE
            # ─────────────────────────────────────────────────────────────
            try:
                request = conn.read_request(self._parser)
            except HTTPParseError as e:
                logger.debug(f"[{conn.id}] Bad request from {conn.client_ip}: {e}")
                self._send_error(conn, e.status_code, str(e), start)
                return
            except OSError as e:
                # Reset or timed out mid-request: nobody left to answer
                logger.debug(f"[{conn.id}] Read failed: {e}")
                return

            # ─────────────────────────────────────────────────────────────
            # HANDLE
            # ─────────────────────────────────────────────────────────────
            conn.state = ConnectionState.PROCESSING
            try:
                response = self.handler(request)
                if not isinstance(response, HTTPResponse):
                    raise TypeError(
                        f"Handler returned {type(response).__name__}, expected HTTPResponse"
                    )
            except Exception as e:
                logger.exception(f"[{conn.id}] Handler error: {e}")
                response = self._error_response(
                    HTTPStatus.INTERNAL_SERVER_ERROR, "Internal Server Error"
                )

            # ─────────────────────────────────────────────────────────────
            # SEND
            # ─────────────────────────────────────────────────────────────
            response.headers["Connection"] = "close"
            try:
                response.send(conn)
            except WriteError as e:
                logger.warning(f"[{conn.id}] {e}")
                return

            self._log_access(conn, str(request.method), request.target, response, start)

    def _error_response(self, status: int, message: str) -> HTTPResponse:
        return HTTPResponse(status).json({"error": message}).set_header("Connection", "close")

    def _send_error(self, conn: Connection, status: int, message: str, start: float):
        """
        Send an error response for a request that never reached the handler.

        A failed write here is only logged; the connection closes anyway.
        """
        response = self._error_response(status, message)
        try:
            response.send(conn)
        except WriteError as e:
            logger.debug(f"[{conn.id}] Could not send {status} response: {e}")
            return
        self._log_access(conn, "-", "-", response, start)

    def _log_access(
        self,
        conn: Connection,
        method: str,
        target: str,
        response: HTTPResponse,
        start: float,
    ):
        """One access log line per response, Apache-style."""
        duration_ms = (time.time() - start) * 1000
        timestamp = time.strftime("%d/%b/%Y:%H:%M:%S %z")
        access_logger.info(
            f'{conn.client_ip} - - [{timestamp}] "{method} {target}" '
            f"{response.status} {len(response.body)} {duration_ms:.2f}ms"
        )


def serve(handler: Handler, config: Optional[ServerConfig] = None) -> None:
    """Create an HTTPServer for `handler` and run it until interrupted."""
    HTTPServer(handler, config).serve_forever()
