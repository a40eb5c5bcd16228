"""
=============================================================================
SERVER CONFIGURATION
=============================================================================

Centralized configuration for the listener, parser limits and worker pool.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    CONFIGURATION HIERARCHY                          │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   Priority (highest to lowest):                                     │
    │                                                                      │
    │   1. Command-line arguments                                         │
    │      └── python -m httpkit --bind 0.0.0.0:8080                      │
    │                                                                      │
    │   2. Environment variables                                          │
    │      └── HTTPKIT_BIND=0.0.0.0:8080 python -m httpkit                │
    │                                                                      │
    │   3. Default values (in this dataclass)                             │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

The bind address is a single "host:port" string. IPv6 hosts are written
in brackets: "[::1]:8080".

=============================================================================
"""

import os
from dataclasses import dataclass
from typing import Optional, Tuple


def parse_address(address: str) -> Tuple[str, int]:
    """
    Split a "host:port" bind address into its parts.

    Examples:
        parse_address("127.0.0.1:8080")  -> ("127.0.0.1", 8080)
        parse_address("[::1]:8080")      -> ("::1", 8080)
        parse_address(":8080")           -> ("0.0.0.0", 8080)

    Raises:
        ValueError: If the port is missing, not a number, or out of range.
    """
    text = address.strip()

    if text.startswith("["):
        # IPv6 literal: [host]:port
        host, sep, rest = text[1:].partition("]")
        if not sep or not rest.startswith(":"):
            raise ValueError(f"Invalid bind address: {address!r}")
        port_text = rest[1:]
    else:
        host, sep, port_text = text.rpartition(":")
        if not sep:
            raise ValueError(f"Invalid bind address (missing port): {address!r}")
        if ":" in host:
            raise ValueError(f"IPv6 addresses must be bracketed: {address!r}")

    if not port_text.isdigit():
        raise ValueError(f"Invalid port in bind address: {address!r}")

    port = int(port_text)
    if not 0 <= port < 65536:
        raise ValueError(f"Port out of range in bind address: {address!r}")

    return host or "0.0.0.0", port


@dataclass
class ServerConfig:
    """
    Configuration for the listener, the request parser and the worker pool.

    =========================================================================
    CONFIGURATION GROUPS
    =========================================================================

    NETWORK
    - host, port, backlog, timeout, poll_interval

    PARSER LIMITS
    - max_line_size, max_headers, max_body_size

    WORKER POOL
    - workers, queue_size

    LOGGING
    - log_level

    =========================================================================
    """

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    host: str = "127.0.0.1"
    """
    The IP address to bind to.
    - "127.0.0.1" - Localhost only (development)
    - "0.0.0.0" - All network interfaces
    """

    port: int = 6969
    """Port to listen on. 0 lets the OS pick a free port (tests)."""

    backlog: int = 128
    """Maximum number of queued, not yet accepted connections."""

    timeout: Optional[float] = 30.0
    """
    Per-connection socket timeout in seconds.
    Applies to every read and write on an accepted connection and surfaces
    as an ordinary I/O failure. None = blocking forever.
    """

    poll_interval: float = 0.5
    """How often the accept loop wakes up to check for shutdown."""

    # ─────────────────────────────────────────────────────────────────────
    # PARSER LIMITS
    # ─────────────────────────────────────────────────────────────────────

    max_line_size: int = 8192
    """Longest request line or header line accepted, in bytes."""

    max_headers: int = 100
    """Maximum number of header lines in one request."""

    max_body_size: int = 10 * 1024 * 1024  # 10 MB
    """Largest Content-Length the parser will read."""

    # ─────────────────────────────────────────────────────────────────────
    # WORKER POOL
    # ─────────────────────────────────────────────────────────────────────

    workers: int = 4
    """Number of worker threads handling connections concurrently."""

    queue_size: int = 64
    """
    Accepted connections waiting for a worker.
    When full, new connections get 503 Service Unavailable.
    """

    # ─────────────────────────────────────────────────────────────────────
    # LOGGING
    # ─────────────────────────────────────────────────────────────────────

    log_level: str = "INFO"
    """Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)."""

    @property
    def bind_address(self) -> str:
        """The "host:port" string this config binds to."""
        if ":" in self.host:
            return f"[{self.host}]:{self.port}"
        return f"{self.host}:{self.port}"

    @classmethod
    def from_address(cls, address: str, **overrides) -> "ServerConfig":
        """Create a configuration bound to a "host:port" string."""
        host, port = parse_address(address)
        return cls(host=host, port=port, **overrides)

    @classmethod
    def from_env(cls) -> "ServerConfig":
        """
        Create configuration from environment variables.

        =====================================================================
        ENVIRONMENT VARIABLES
        =====================================================================

        HTTPKIT_BIND        host:port to bind (default: 127.0.0.1:6969)
        HTTPKIT_WORKERS     Worker threads (default: 4)
        HTTPKIT_QUEUE_SIZE  Pending connection queue (default: 64)
        HTTPKIT_TIMEOUT     Per-connection timeout in seconds (default: 30)
        HTTPKIT_LOG_LEVEL   Logging level (default: INFO)

        =====================================================================
        """
        host, port = parse_address(os.getenv("HTTPKIT_BIND", "127.0.0.1:6969"))
        return cls(
            host=host,
            port=port,
            workers=int(os.getenv("HTTPKIT_WORKERS", "4")),
            queue_size=int(os.getenv("HTTPKIT_QUEUE_SIZE", "64")),
            timeout=float(os.getenv("HTTPKIT_TIMEOUT", "30")),
            log_level=os.getenv("HTTPKIT_LOG_LEVEL", "INFO"),
        )

    def validate(self) -> None:
        """
        Validate configuration values.

        Called before binding so a bad value fails at startup, not on the
        first request.
        """
        if not 0 <= self.port < 65536:
            raise ValueError(f"Invalid port: {self.port}. Must be 0-65535.")

        if self.backlog < 1:
            raise ValueError("backlog must be >= 1")

        if self.workers < 1:
            raise ValueError("workers must be >= 1")

        if self.queue_size < 1:
            raise ValueError("queue_size must be >= 1")

        if self.timeout is not None and self.timeout <= 0:
            raise ValueError("timeout must be > 0")

        if self.poll_interval <= 0:
            raise ValueError("poll_interval must be > 0")

        if self.max_line_size < 64:
            raise ValueError("max_line_size must be >= 64")

        if self.max_headers < 1:
            raise ValueError("max_headers must be >= 1")

        if self.max_body_size < 0:
            raise ValueError("max_body_size must be >= 0")
