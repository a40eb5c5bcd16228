"""
Integration tests for the listener and connections over real loopback sockets.
"""

import socket
import threading
import time

import pytest

from httpkit.core.connection import Connection, ConnectionState
from httpkit.core.listener import Listener
from httpkit.errors import AcceptError, BindError, WriteError
from httpkit.http import HTTPMethod, HTTPResponse, RequestParser


@pytest.fixture
def listener():
    lst = Listener("127.0.0.1:0", timeout=5.0, poll_interval=0.05)
    yield lst
    lst.close()


def connect(address) -> socket.socket:
    return socket.create_connection(address, timeout=5.0)


def read_all(sock: socket.socket) -> bytes:
    chunks = []
    while True:
        chunk = sock.recv(4096)
        if not chunk:
            return b"".join(chunks)
        chunks.append(chunk)


class TestBind:

    def test_port_zero_resolves(self, listener: Listener):
        host, port = listener.address

        assert host == "127.0.0.1"
        assert port > 0

    def test_tuple_address(self):
        with Listener(("127.0.0.1", 0)) as lst:
            assert lst.address[1] > 0

    def test_busy_port(self, listener: Listener):
        host, port = listener.address

        with pytest.raises(BindError) as exc_info:
            Listener(f"{host}:{port}")

        assert isinstance(exc_info.value.__cause__, OSError)

    @pytest.mark.parametrize("address", ["not-an-address", "127.0.0.1:99999", "::1:80"])
    def test_invalid_address(self, address: str):
        with pytest.raises(BindError):
            Listener(address)

    def test_context_manager_closes(self):
        with Listener("127.0.0.1:0") as lst:
            pass

        assert lst.is_closed


class TestIncoming:

    def test_yields_connections(self, listener: Listener):
        client = connect(listener.address)
        try:
            conn = next(iter(listener))

            assert isinstance(conn, Connection)
            assert conn.state == ConnectionState.NEW
            assert conn.client_ip == "127.0.0.1"
            assert conn.client_port == client.getsockname()[1]
            conn.close()
        finally:
            client.close()

    def test_request_response_round_trip(self, listener: Listener):
        client = connect(listener.address)
        try:
            client.sendall(b"GET /users?active=true HTTP/1.1\r\nHost: x\r\n\r\n")

            with next(listener.incoming()) as conn:
                request = conn.read_request(RequestParser())
                assert request.method == HTTPMethod.GET
                assert request.route == "/users"
                assert request.query == {"active": "true"}
                assert request.client_address == conn.address

                HTTPResponse(200).json(["Alice", "Bob"]).send(conn)

            data = read_all(client)
        finally:
            client.close()

        assert data.startswith(b"HTTP/1.1 200 OK\r\n")
        assert data.endswith(b'\r\n\r\n["Alice","Bob"]')

    def test_request_shutdown_from_other_thread(self, listener: Listener):
        items = []

        def run():
            for item in listener:
                items.append(item)

        thread = threading.Thread(target=run)
        thread.start()
        listener.request_shutdown()
        thread.join(timeout=5.0)

        assert not thread.is_alive()
        assert items == []
        assert listener.is_closed

    def test_closed_listener_yields_nothing(self):
        lst = Listener("127.0.0.1:0")
        lst.close()

        assert list(lst) == []

    def test_accept_failure_is_yielded(self, listener: Listener):
        class FailingSocket:
            """Fails one accept, then times out like an idle socket."""

            def __init__(self):
                self.calls = 0

            def accept(self):
                self.calls += 1
                if self.calls == 1:
                    raise OSError(24, "Too many open files")
                raise socket.timeout()

            def close(self):
                pass

        real_socket = listener._socket
        listener._socket = FailingSocket()
        try:
            items = listener.incoming()
            first = next(items)

            assert isinstance(first, AcceptError)
            assert "Too many open files" in str(first)

            listener.request_shutdown()
            assert list(items) == []
        finally:
            real_socket.close()


class TestConnection:

    def test_read_request_from_socketpair(self):
        server_side, client_side = socket.socketpair()
        conn = Connection(socket=server_side, address=("127.0.0.1", 5555), timeout=5.0)
        try:
            client_side.sendall(b"POST /users HTTP/1.1\r\nContent-Length: 2\r\n\r\n{}")
            request = conn.read_request(RequestParser())

            assert request.body == b"{}"
            assert request.client_address == ("127.0.0.1", 5555)
            assert conn.state == ConnectionState.READING
        finally:
            conn.close()
            client_side.close()

        assert conn.state == ConnectionState.CLOSED

    def test_close_is_idempotent(self):
        server_side, client_side = socket.socketpair()
        conn = Connection(socket=server_side, address=("127.0.0.1", 1))
        client_side.close()

        conn.close()
        conn.close()

        assert conn.state == ConnectionState.CLOSED

    def test_sendall_on_closed_socket(self):
        server_side, client_side = socket.socketpair()
        conn = Connection(socket=server_side, address=("127.0.0.1", 1))
        server_side.close()
        try:
            with pytest.raises(WriteError):
                conn.sendall(b"data")
        finally:
            client_side.close()

    def test_close_not_held_open_by_trickling_peer(self):
        server_side, client_side = socket.socketpair()
        conn = Connection(socket=server_side, address=("127.0.0.1", 1), timeout=5.0)
        stop = threading.Event()

        def trickle():
            try:
                while not stop.is_set():
                    client_side.sendall(b"x")
                    time.sleep(0.05)
            except OSError:
                pass

        thread = threading.Thread(target=trickle)
        thread.start()
        try:
            start = time.monotonic()
            conn.close()
            elapsed = time.monotonic() - start
        finally:
            stop.set()
            thread.join(timeout=5.0)
            client_side.close()

        assert elapsed < conn.DRAIN_TIMEOUT + 1.0
        assert conn.state == ConnectionState.CLOSED

    def test_close_drains_at_most_drain_limit(self):
        server_side, client_side = socket.socketpair()
        conn = Connection(socket=server_side, address=("127.0.0.1", 1), timeout=5.0)
        conn.DRAIN_TIMEOUT = 30.0   # Only the byte limit can end this drain

        def flood():
            try:
                client_side.sendall(b"x" * (4 * conn.DRAIN_LIMIT))
            except OSError:
                pass

        thread = threading.Thread(target=flood)
        thread.start()
        try:
            start = time.monotonic()
            conn.close()
            elapsed = time.monotonic() - start
        finally:
            thread.join(timeout=5.0)
            client_side.close()

        assert elapsed < 5.0
        assert conn.state == ConnectionState.CLOSED
