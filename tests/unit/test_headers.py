"""
Unit tests for the case-insensitive header mapping.
"""

from httpkit.http.headers import Headers


class TestHeaders:

    def test_lookup_any_case(self):
        headers = Headers({"Content-Type": "application/json"})

        assert headers["content-type"] == "application/json"
        assert headers["CONTENT-TYPE"] == "application/json"
        assert headers.get("Content-type") == "application/json"

    def test_contains_any_case(self):
        headers = Headers({"X-Trace": "abc"})

        assert "x-trace" in headers
        assert "X-TRACE" in headers
        assert "x-other" not in headers
        assert 42 not in headers

    def test_set_replaces_existing_and_keeps_latest_spelling(self):
        headers = Headers()
        headers["content-length"] = "1"
        headers["Content-Length"] = "2"

        assert len(headers) == 1
        assert list(headers.items()) == [("Content-Length", "2")]

    def test_delete_any_case(self):
        headers = Headers({"Host": "x"})
        del headers["HOST"]

        assert len(headers) == 0
        assert "host" not in headers

    def test_iteration_preserves_insertion_order(self):
        headers = Headers()
        headers["B"] = "2"
        headers["A"] = "1"

        assert list(headers) == ["B", "A"]

    def test_lower_items(self):
        headers = Headers({"X-Mixed-Case": "v"})

        assert list(headers.lower_items()) == [("x-mixed-case", "v")]

    def test_kwargs_constructor(self):
        headers = Headers(Host="x")

        assert headers["host"] == "x"

    def test_copy_is_independent(self):
        original = Headers({"A": "1"})
        clone = original.copy()
        clone["A"] = "2"

        assert original["a"] == "1"
        assert clone["a"] == "2"

    def test_equality_ignores_name_case(self):
        assert Headers({"Host": "x"}) == {"host": "x"}
        assert Headers({"Host": "x"}) != {"host": "y"}

    def test_repr(self):
        assert repr(Headers({"Host": "x"})) == "Headers({'Host': 'x'})"
