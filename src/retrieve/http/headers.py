"""
=============================================================================
CASE-INSENSITIVE HEADERS
=============================================================================

Header names are case-insensitive ("Content-Type" = "content-type"), but
people like to see them the way the server wrote them. The Headers
container keeps both:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                       INTERNAL LAYOUT                               │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   normalized key        (display label,  [values...])               │
    │   ───────────────       ─────────────────────────────               │
    │   "content-type"   ──►  ("Content-type", ["text/plain"])            │
    │   "set-cookie"     ──►  ("Set-Cookie",   ["a=1", "b=2"])            │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Lookups go through the normalized key. The display label is whatever
casing was used by the LAST write for that key, and is what to_dict(),
repr() and iteration show.

A header may legally appear more than once (Set-Cookie, Cookie, Via...).
headers[name] returns the last value, headers.get_all(name) returns all of
them, and multi_items() yields one (label, value) pair per line.

=============================================================================
"""

from collections.abc import MutableMapping
from typing import Any, Iterator, List, Optional, Tuple


class Headers(MutableMapping):
    """
    Ordered, case-insensitive header multimap.

    Example:
        headers = Headers()
        headers["Content-Type"] = "text/plain"
        headers["content-type"]          # "text/plain"
        headers.add("Cookie", "a=b")
        headers.add("cookie", "c=d")
        headers.get_all("COOKIE")        # ["a=b", "c=d"]
        headers.to_dict()                # {"Content-Type": "text/plain",
                                         #  "cookie": "c=d"}
    """

    def __init__(self, initial: Optional[Any] = None, **kwargs: Any):
        self._store: dict[str, Tuple[str, List[Any]]] = {}
        if initial is not None:
            self.update(initial)
        if kwargs:
            self.update(kwargs)

    # =========================================================================
    # MAPPING PROTOCOL
    # =========================================================================

    def __getitem__(self, key: str) -> Any:
        return self._store[key.lower()][1][-1]

    def __setitem__(self, key: str, value: Any) -> None:
        self._store[key.lower()] = (key, [value])

    def __delitem__(self, key: str) -> None:
        del self._store[key.lower()]

    def __iter__(self) -> Iterator[str]:
        return (label for label, _ in self._store.values())

    def __len__(self) -> int:
        return len(self._store)

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and key.lower() in self._store

    def __eq__(self, other: object) -> bool:
        if isinstance(other, Headers):
            return self._normalized() == other._normalized()
        if isinstance(other, dict):
            return self._normalized() == Headers(other)._normalized()
        return NotImplemented

    # =========================================================================
    # MULTI-VALUE ACCESS
    # =========================================================================

    def add(self, key: str, value: Any) -> None:
        """
        Append a value for key, keeping any existing ones.

        The display label is updated to this call's casing.
        """
        normalized = key.lower()
        if normalized in self._store:
            _, values = self._store[normalized]
            values.append(value)
            self._store[normalized] = (key, values)
        else:
            self._store[normalized] = (key, [value])

    def get_all(self, key: str) -> List[Any]:
        """Return every value stored for key, oldest first ([] if absent)."""
        entry = self._store.get(key.lower())
        return list(entry[1]) if entry else []

    def label(self, key: str) -> str:
        """Return the display casing of key as it was last written."""
        return self._store[key.lower()][0]

    def multi_items(self) -> Iterator[Tuple[str, Any]]:
        """Yield (label, value) once per stored value, in insertion order."""
        for label, values in self._store.values():
            for value in values:
                yield label, value

    # =========================================================================
    # CONVERSION
    # =========================================================================

    def copy(self) -> "Headers":
        duplicate = Headers()
        for normalized, (label, values) in self._store.items():
            duplicate._store[normalized] = (label, list(values))
        return duplicate

    def to_dict(self) -> dict:
        """Plain dict keyed by display label, holding the last value."""
        return {label: values[-1] for label, values in self._store.values()}

    def _normalized(self) -> dict:
        return {key: values for key, (_, values) in self._store.items()}

    def __repr__(self) -> str:
        return repr(self.to_dict())

    def __str__(self) -> str:
        return str(self.to_dict())
