"""
pytest configuration and fixtures.
"""

import threading
from typing import Callable, Generator, List

import pytest

# Add src to path for imports
import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from httpkit import HTTPServer, ServerConfig
from httpkit.http import HTTPRequest, HTTPResponse


@pytest.fixture
def sample_get_request() -> bytes:
    """Sample HTTP GET request."""
    return (
        b"GET /users?active=true&page=2 HTTP/1.1\r\n"
        b"Host: localhost:6969\r\n"
        b"User-Agent: pytest\r\n"
        b"Accept: application/json\r\n"
        b"\r\n"
    )


@pytest.fixture
def sample_post_request() -> bytes:
    """Sample HTTP POST request with JSON body."""
    body = b'{"id": 3, "name": "Carol"}'
    return (
        b"POST /users HTTP/1.1\r\n"
        b"Host: localhost:6969\r\n"
        b"Content-Type: application/json\r\n"
        + f"Content-Length: {len(body)}\r\n".encode()
        + b"\r\n"
        + body
    )


@pytest.fixture
def config() -> ServerConfig:
    """Default test server configuration."""
    return ServerConfig(
        host="127.0.0.1",
        port=0,  # Let OS pick a free port
        workers=2,
        queue_size=8,
        timeout=5.0,
        poll_interval=0.05,
        log_level="WARNING",
    )


class TestServer:
    """Test server helper that runs serve_forever() in a background thread."""

    def __init__(self, server: HTTPServer):
        self.server = server
        self._thread: threading.Thread = None

    @property
    def address(self):
        return self.server.address

    @property
    def host(self) -> str:
        return self.server.address[0]

    @property
    def port(self) -> int:
        return self.server.address[1]

    def start(self):
        """Bind, then serve in a background thread."""
        # Bound before the thread starts, so clients can connect right away
        self.server.bind()
        self._thread = threading.Thread(target=self.server.serve_forever, daemon=True)
        self._thread.start()

    def stop(self):
        """Stop the server and wait for queued connections to finish."""
        self.server.shutdown()
        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=10.0)

    @property
    def is_alive(self) -> bool:
        return self._thread is not None and self._thread.is_alive()


@pytest.fixture
def start_server(config: ServerConfig) -> Generator[Callable[..., TestServer], None, None]:
    """
    Factory fixture: start_server(handler, **config_overrides) → TestServer.

    Every server started through it is stopped at teardown.
    """
    started: List[TestServer] = []

    def _start(handler: Callable[[HTTPRequest], HTTPResponse], **overrides) -> TestServer:
        for name, value in overrides.items():
            setattr(config, name, value)
        srv = TestServer(HTTPServer(handler, config))
        srv.start()
        started.append(srv)
        return srv

    yield _start

    for srv in started:
        srv.stop()
