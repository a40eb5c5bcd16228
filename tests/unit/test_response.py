"""
Unit tests for HTTP response building.
"""

import io
import json

import pytest

from httpkit.errors import SerializationError, WriteError
from httpkit.http.response import HTTPResponse
from httpkit.http.status_codes import HTTPStatus, reason_phrase


class TestHTTPResponse:
    """Tests for HTTPResponse class."""

    def test_status_line(self):
        """Test status line generation."""
        assert HTTPResponse(status=HTTPStatus.OK).status_line == "HTTP/1.1 200 OK"
        assert HTTPResponse(status=404).status_line == "HTTP/1.1 404 Not Found"

    def test_unknown_status_printed_verbatim(self):
        assert HTTPResponse(status=299).status_line == "HTTP/1.1 299 Unknown"

    def test_defaults(self):
        response = HTTPResponse()

        assert response.status == 200
        assert len(response.headers) == 0
        assert response.body == b""

    def test_to_bytes_includes_headers(self):
        """Test that to_bytes includes all headers."""
        response = HTTPResponse(
            status=HTTPStatus.OK,
            headers={"X-Custom": "value"},
            body=b"test",
        )

        result = response.to_bytes()

        assert result.startswith(b"HTTP/1.1 200 OK\r\n")
        assert b"X-Custom: value\r\n" in result
        assert b"Content-Length: 4\r\n" in result
        assert result.endswith(b"\r\n\r\ntest")

    def test_to_bytes_empty_body_has_no_content_length(self):
        assert HTTPResponse(204).to_bytes() == b"HTTP/1.1 204 No Content\r\n\r\n"

    def test_to_bytes_keeps_explicit_content_length(self):
        response = HTTPResponse(body=b"abc", headers={"content-length": "3"})

        assert response.to_bytes().count(b"ength: 3") == 1

    def test_to_bytes_does_not_mutate_headers(self):
        response = HTTPResponse(body=b"hello")
        response.to_bytes()

        assert "Content-Length" not in response.headers

    def test_to_bytes_adds_no_implicit_headers(self):
        result = HTTPResponse(body=b"x").to_bytes()

        assert b"Date:" not in result
        assert b"Server:" not in result

    def test_set_header_chaining(self):
        """Test method chaining for headers."""
        response = (HTTPResponse()
            .set_header("X-One", "1")
            .set_header("X-Two", "2"))

        assert response.headers["X-One"] == "1"
        assert response.headers["x-two"] == "2"

    def test_set_header_replaces_any_case(self):
        response = HTTPResponse().set_header("x-one", "1").set_header("X-ONE", "2")

        assert len(response.headers) == 1
        assert response.headers["X-One"] == "2"

    def test_set_body(self):
        assert HTTPResponse().set_body("héllo").body == "héllo".encode("utf-8")
        assert HTTPResponse().set_body(b"\x00\x01").body == b"\x00\x01"

    def test_text_body(self):
        response = HTTPResponse().text("Hello, World!")

        assert response.headers["Content-Type"] == "text/plain; charset=utf-8"
        assert response.headers["Content-Length"] == "13"
        assert response.body == b"Hello, World!"


class TestJsonBody:

    def test_users_list(self):
        """The exact bytes of a compact JSON response."""
        response = HTTPResponse(200).json(["Alice", "Bob"])
        result = response.to_bytes()

        assert result.startswith(b"HTTP/1.1 200 OK\r\n")
        assert b"Content-Type: application/json\r\n" in result
        assert b"Content-Length: 15\r\n" in result
        assert response.body == b'["Alice","Bob"]'
        assert result.endswith(b"\r\n\r\n" + b'["Alice","Bob"]')

    def test_compact_separators(self):
        response = HTTPResponse().json({"id": 1, "name": "Alice"})

        assert response.body == b'{"id":1,"name":"Alice"}'

    def test_non_ascii_kept_as_utf8(self):
        response = HTTPResponse().json({"name": "Zoë"})

        assert response.body == '{"name":"Zoë"}'.encode("utf-8")
        assert response.headers["Content-Length"] == str(len(response.body))

    def test_json_string_value(self):
        assert HTTPResponse(404).json("Not Found").body == b'"Not Found"'

    def test_round_trips(self):
        data = {"users": [{"id": 1, "name": "Alice"}], "total": 1, "ok": True, "next": None}

        assert json.loads(HTTPResponse().json(data).body) == data

    @pytest.mark.parametrize("value", [
        {1, 2},
        object(),
        float("nan"),
        float("inf"),
    ])
    def test_unserializable_values(self, value):
        response = HTTPResponse()

        with pytest.raises(SerializationError):
            response.json(value)

        assert response.body == b""
        assert "Content-Type" not in response.headers

    def test_circular_reference(self):
        data = []
        data.append(data)

        with pytest.raises(SerializationError):
            HTTPResponse().json(data)


class FakeSocket:
    def __init__(self, fail: bool = False):
        self.sent = b""
        self.fail = fail

    def sendall(self, data: bytes):
        if self.fail:
            raise BrokenPipeError("Broken pipe")
        self.sent += data


class TestSend:

    def test_send_to_socket(self):
        sock = FakeSocket()
        response = HTTPResponse(201).json({"id": 1})
        response.send(sock)

        assert sock.sent == response.to_bytes()

    def test_send_to_file(self):
        sink = io.BytesIO()
        response = HTTPResponse().text("ok")
        response.send(sink)

        assert sink.getvalue() == response.to_bytes()

    def test_send_failure_raises_write_error(self):
        with pytest.raises(WriteError) as exc_info:
            HTTPResponse().text("ok").send(FakeSocket(fail=True))

        assert isinstance(exc_info.value.__cause__, BrokenPipeError)


class TestStatusCodes:

    def test_reason_phrases(self):
        assert reason_phrase(200) == "OK"
        assert reason_phrase(201) == "Created"
        assert reason_phrase(413) == "Payload Too Large"
        assert reason_phrase(503) == "Service Unavailable"

    def test_unknown_code(self):
        assert reason_phrase(799) == "Unknown"

    def test_status_properties(self):
        assert HTTPStatus.OK.is_success
        assert not HTTPStatus.OK.is_error
        assert HTTPStatus.NOT_FOUND.is_error
        assert HTTPStatus.INTERNAL_SERVER_ERROR.phrase == "Internal Server Error"
