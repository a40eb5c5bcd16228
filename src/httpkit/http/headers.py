"""
Case-insensitive header mapping.

HTTP header names are case-insensitive (RFC 7230 §3.2), so "Content-Type",
"content-type" and "CONTENT-TYPE" all name the same header. Values are
case-sensitive and kept exactly as received.

    headers = Headers()
    headers["Content-Type"] = "text/plain"
    headers["content-type"]          # "text/plain"
    "CONTENT-TYPE" in headers        # True
    list(headers)                    # ["Content-Type"]

Assigning a name that is already present replaces the value (last-wins)
and keeps the spelling of the latest assignment, which is what gets
written on the wire for responses.
"""

from collections.abc import Mapping, MutableMapping
from typing import Iterator, Optional, Tuple


class Headers(MutableMapping):
    """
    A dict of HTTP headers keyed case-insensitively.

    Internally the lowercase name maps to (original name, value), so
    lookups normalize once and iteration still yields the names the way
    they were written.
    """

    def __init__(self, data: Optional[Mapping] = None, **kwargs: str):
        self._store: dict[str, Tuple[str, str]] = {}
        if data is not None:
            self.update(data)
        if kwargs:
            self.update(kwargs)

    def __setitem__(self, name: str, value: str) -> None:
        self._store[name.lower()] = (name, value)

    def __getitem__(self, name: str) -> str:
        return self._store[name.lower()][1]

    def __delitem__(self, name: str) -> None:
        del self._store[name.lower()]

    def __iter__(self) -> Iterator[str]:
        return (name for name, _ in self._store.values())

    def __len__(self) -> int:
        return len(self._store)

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and name.lower() in self._store

    def lower_items(self) -> Iterator[Tuple[str, str]]:
        """Yield (lowercase name, value) pairs."""
        return ((lower, pair[1]) for lower, pair in self._store.items())

    def copy(self) -> "Headers":
        return Headers(self)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Mapping):
            return NotImplemented
        return dict(self.lower_items()) == dict(Headers(other).lower_items())

    def __repr__(self) -> str:
        return f"{type(self).__name__}({dict(self.items())!r})"
