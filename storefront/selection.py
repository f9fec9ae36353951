from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping
from urllib.parse import parse_qsl, urlencode


class SelectionParams(Mapping[str, str]):
    """Ordered, immutable option-name -> value mapping decoded from a query string.

    Keys are unique. Instances are never changed after construction; use
    ``with_value`` / ``with_defaults`` to derive a new selection. Keys that are
    not product options (pagination, filters) are carried through untouched.
    """

    __slots__ = ("_items",)

    def __init__(self, items: Iterable[tuple[str, str]] = ()) -> None:
        ordered: dict[str, str] = {}
        for key, value in items:
            # First occurrence wins, like URLSearchParams.get().
            if key not in ordered:
                ordered[key] = value
        self._items = ordered

    @classmethod
    def decode(cls, query: str) -> SelectionParams:
        return cls(parse_qsl(query.lstrip("?"), keep_blank_values=True))

    def encode(self) -> str:
        return urlencode(list(self._items.items()))

    def with_value(self, name: str, value: str) -> SelectionParams:
        items = dict(self._items)
        items[name] = value
        return SelectionParams(items.items())

    def with_defaults(self, defaults: Iterable[tuple[str, str]]) -> SelectionParams:
        items = dict(self._items)
        for name, value in defaults:
            items.setdefault(name, value)
        return SelectionParams(items.items())

    def __getitem__(self, key: str) -> str:
        return self._items[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._items)

    def __len__(self) -> int:
        return len(self._items)

    # Equality ignores key order so it stays consistent with plain dicts;
    # compare ``list(params.items())`` when order matters.
    def __eq__(self, other: object) -> bool:
        if isinstance(other, Mapping):
            return self._items == dict(other)
        return NotImplemented

    def __hash__(self) -> int:
        return hash(frozenset(self._items.items()))

    def __repr__(self) -> str:
        return f"SelectionParams({list(self._items.items())!r})"
