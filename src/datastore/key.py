from functools import total_ordering
from typing import Iterable, List, Union


def clean(s: str) -> str:
    """
    Normalizes a key path: ensures a leading '/', collapses repeated
    separators, resolves '.' and '..', and drops any trailing '/'.
    """
    if not s:
        return "/"
    if not s.startswith("/"):
        s = "/" + s
    parts: List[str] = []
    for segment in s.split("/"):
        if segment in ("", "."):
            continue
        if segment == "..":
            if parts:
                parts.pop()
            continue
        parts.append(segment)
    return "/" + "/".join(parts)


@total_ordering
class Key:
    """
    Hierarchical key such as '/Comedy/MontyPython/Actor:JohnCleese'.

    The string form is the bucket object name the value is stored under.
    """

    __slots__ = ("_string",)

    def __init__(self, s: Union[str, "Key"]):
        if isinstance(s, Key):
            self._string = s._string
        else:
            self._string = clean(s)

    @classmethod
    def raw(cls, s: str) -> "Key":
        """Creates a key without cleaning. The caller guarantees s is already clean."""
        if not s.startswith("/"):
            raise ValueError(f"raw key must start with '/': {s!r}")
        if len(s) > 1 and s.endswith("/"):
            raise ValueError(f"raw key must not end with '/': {s!r}")
        key = cls.__new__(cls)
        key._string = s
        return key

    @classmethod
    def with_namespaces(cls, namespaces: Iterable[str]) -> "Key":
        return cls("/".join(namespaces))

    def __str__(self) -> str:
        return self._string

    def __repr__(self) -> str:
        return f"Key({self._string!r})"

    def __eq__(self, other) -> bool:
        if isinstance(other, Key):
            return self._string == other._string
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self._string)

    def __lt__(self, other: "Key") -> bool:
        if not isinstance(other, Key):
            return NotImplemented
        return self.list() < other.list()

    def list(self) -> List[str]:
        """Returns the namespaces of the key, e.g. ['Comedy', 'MontyPython']."""
        if self._string == "/":
            return []
        return self._string[1:].split("/")

    namespaces = list

    def name(self) -> str:
        """Returns the last namespace, e.g. 'Actor:JohnCleese'."""
        parts = self.list()
        return parts[-1] if parts else ""

    def parent(self) -> "Key":
        parts = self.list()
        if len(parts) <= 1:
            return Key.raw("/")
        return Key.raw("/" + "/".join(parts[:-1]))

    def child(self, other: Union[str, "Key"]) -> "Key":
        return Key(self._string + "/" + str(other))

    def is_ancestor_of(self, other: "Key") -> bool:
        if self._string == "/":
            return other._string != "/"
        return other._string.startswith(self._string + "/")

    def is_descendant_of(self, other: "Key") -> bool:
        return other.is_ancestor_of(self)

    def is_top_level(self) -> bool:
        return len(self.list()) == 1
