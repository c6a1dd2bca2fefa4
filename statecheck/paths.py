"""
statecheck — State Paths

Hierarchical, gNMI-style addresses into a state tree:

    /interfaces/interface[name=eth0]/state/oper-status

A path is an ordered list of elements; each element has a name and an
optional set of list keys. Keys always render sorted by key name so that two
equal paths have exactly one string form. ']' and '\\' inside key values are
backslash-escaped.

StatePath may be built from a raw string without validating it. Parsing is
deferred to resolve(), which raises PathResolutionError; this lets callers
hold a broken path and still get a printable diagnostic for it.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Iterable, Mapping

from statecheck.errors import PathResolutionError


@dataclass(frozen=True)
class PathElem:
    """One element of a state path."""

    name: str
    keys: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "keys", MappingProxyType(dict(self.keys)))

    def __hash__(self) -> int:
        return hash((self.name, tuple(sorted(self.keys.items()))))

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, PathElem):
            return NotImplemented
        return self.name == other.name and dict(self.keys) == dict(other.keys)

    def __str__(self) -> str:
        keys = "".join(
            f"[{k}={_escape(v)}]" for k, v in sorted(self.keys.items())
        )
        return f"{self.name}{keys}"


def _escape(value: str) -> str:
    return value.replace("\\", "\\\\").replace("]", "\\]")


class StatePath:
    """
    An address into the state tree.

    Construct with PathElems (validated on resolve) or from a string via
    StatePath.parse (strict) / StatePath.lazy (deferred).
    """

    __slots__ = ("_elems", "_raw")

    def __init__(self, elems: Iterable[PathElem] = ()) -> None:
        self._elems: tuple[PathElem, ...] | None = tuple(elems)
        self._raw: str | None = None

    @classmethod
    def parse(cls, text: str) -> StatePath:
        """Parse text now; raises PathResolutionError if it is malformed."""
        return cls(_parse(text))

    @classmethod
    def lazy(cls, text: str) -> StatePath:
        """Hold text unparsed until resolve() is called."""
        path = cls()
        path._elems = None
        path._raw = text
        return path

    def resolve(self) -> tuple[PathElem, ...]:
        if self._elems is None:
            self._elems = _parse(self._raw or "")
        for elem in self._elems:
            if not isinstance(elem.name, str):
                raise PathResolutionError(f"element name {elem.name!r} is not a string")
            if not elem.name:
                raise PathResolutionError("empty element name")
            if "/" in elem.name:
                raise PathResolutionError(f"element name {elem.name!r} contains '/'")
            for key, value in elem.keys.items():
                if not isinstance(key, str) or not key:
                    raise PathResolutionError(f"bad key name {key!r} in element {elem.name!r}")
                if not isinstance(value, str):
                    raise PathResolutionError(
                        f"key {key!r} in element {elem.name!r} has non-string value {value!r}"
                    )
        return self._elems

    def child(self, name: str, /, **keys: str) -> StatePath:
        return StatePath((*self.resolve(), PathElem(name, keys)))

    def relative_to(self, base: StatePath) -> str:
        """
        Render this path relative to base, filesystem style: one '..' per
        base element not shared with this path, then the remaining elements.
        """
        mine = self.resolve()
        theirs = base.resolve()
        common = 0
        for a, b in zip(mine, theirs):
            if a != b:
                break
            common += 1
        parts = [".."] * (len(theirs) - common) + [str(e) for e in mine[common:]]
        return "/".join(parts) or "."

    def __str__(self) -> str:
        elems = self.resolve()
        return "/" + "/".join(str(e) for e in elems)

    def __repr__(self) -> str:
        if self._elems is None:
            return f"StatePath.lazy({self._raw!r})"
        try:
            return f"StatePath({str(self)!r})"
        except PathResolutionError:
            return f"StatePath(<unresolvable {self._elems!r}>)"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, StatePath):
            return NotImplemented
        return self.resolve() == other.resolve()

    def __hash__(self) -> int:
        return hash(self.resolve())

    def __len__(self) -> int:
        return len(self.resolve())


# ─── Parsing ──────────────────────────────────────────────────────


def _parse(text: str) -> tuple[PathElem, ...]:
    text = text.strip()
    if not text or text == "/":
        return ()
    if text.startswith("/"):
        text = text[1:]

    elems: list[PathElem] = []
    i = 0
    n = len(text)
    while i < n:
        start = i
        while i < n and text[i] not in "/[":
            i += 1
        name = text[start:i]
        if not name:
            raise PathResolutionError(f"empty element name at offset {start} in {text!r}")
        keys: dict[str, str] = {}
        while i < n and text[i] == "[":
            i += 1
            eq = text.find("=", i)
            if eq < 0:
                raise PathResolutionError(f"key without '=' in element {name!r}")
            key = text[i:eq]
            i = eq + 1
            value_chars: list[str] = []
            while True:
                if i >= n:
                    raise PathResolutionError(f"unterminated key {key!r} in element {name!r}")
                ch = text[i]
                if ch == "\\" and i + 1 < n:
                    value_chars.append(text[i + 1])
                    i += 2
                    continue
                if ch == "]":
                    i += 1
                    break
                value_chars.append(ch)
                i += 1
            if not key:
                raise PathResolutionError(f"empty key name in element {name!r}")
            keys[key] = "".join(value_chars)
        if i < n:
            if text[i] != "/":
                raise PathResolutionError(f"unexpected {text[i]!r} after element {name!r}")
            i += 1
            if i == n:
                raise PathResolutionError(f"trailing '/' in {text!r}")
        elems.append(PathElem(name, keys))
    return tuple(elems)
