"""
Unit tests for the HTTPMethod enum.
"""

import pytest

from httpkit.http.methods import HTTPMethod


class TestHTTPMethod:

    def test_compares_equal_to_token(self):
        assert HTTPMethod.GET == "GET"
        assert str(HTTPMethod.POST) == "POST"
        assert f"{HTTPMethod.PATCH}" == "PATCH"

    def test_closed_set(self):
        assert {m.value for m in HTTPMethod} == {
            "GET", "POST", "PUT", "DELETE", "PATCH",
            "HEAD", "OPTIONS", "TRACE", "CONNECT",
        }

    @pytest.mark.parametrize("token, valid", [
        ("GET", True),
        ("CONNECT", True),
        ("get", False),
        ("BREW", False),
        ("", False),
    ])
    def test_is_valid(self, token, valid):
        assert HTTPMethod.is_valid(token) is valid

    def test_unknown_token_raises(self):
        with pytest.raises(ValueError):
            HTTPMethod("BREW")

    def test_idempotent(self):
        assert HTTPMethod.PUT.is_idempotent
        assert HTTPMethod.DELETE.is_idempotent
        assert not HTTPMethod.POST.is_idempotent
        assert not HTTPMethod.PATCH.is_idempotent
