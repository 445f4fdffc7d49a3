from __future__ import annotations

import typing
from collections.abc import Iterator, Mapping, MutableMapping

HeaderTypes = typing.Union[
    "Headers",
    Mapping[str, str],
    typing.Sequence[typing.Tuple[str, str]],
]


def _to_str(value: typing.Any) -> str:
    if isinstance(value, bytes):
        return value.decode("latin-1")
    return str(value)


class Headers(MutableMapping[str, str]):
    """
    HTTP headers, as a case-insensitive multi-dict.

    Lookups ignore case. The casing used by the most recent `set()` of a key
    is the casing sent on the wire. A key removed with `unset()` stays
    shadowed for `merge()` until it is set again, so default headers never
    resurrect a header the caller removed.
    """

    def __init__(self, headers: HeaderTypes | None = None) -> None:
        self._store: dict[str, tuple[str, list[str]]] = {}
        self._unset: set[str] = set()
        if headers is not None:
            for key, value in _iter_pairs(headers):
                self.add(key, value)

    def set(self, key: str | Mapping[str, typing.Any], value: typing.Any = None) -> Headers:
        if isinstance(key, Mapping):
            for name, item in key.items():
                self.set(name, item)
            return self
        lower = key.lower()
        self._unset.discard(lower)
        self._store[lower] = (key, [_to_str(value)])
        return self

    def add(self, key: str, value: typing.Any) -> Headers:
        lower = key.lower()
        self._unset.discard(lower)
        if lower in self._store:
            self._store[lower][1].append(_to_str(value))
        else:
            self._store[lower] = (key, [_to_str(value)])
        return self

    def unset(self, key: str) -> Headers:
        lower = key.lower()
        self._store.pop(lower, None)
        self._unset.add(lower)
        return self

    def get(self, key: str, default: typing.Any = None) -> typing.Any:  # type: ignore[override]
        try:
            return self[key]
        except KeyError:
            return default

    def get_list(self, key: str) -> list[str]:
        entry = self._store.get(key.lower())
        return list(entry[1]) if entry is not None else []

    def merge(self, defaults: HeaderTypes | None) -> Headers:
        """
        Fill in `defaults` for every key that is neither set nor unset.
        """
        if defaults is None:
            return self
        for key, value in _iter_pairs(defaults):
            lower = key.lower()
            if lower in self._store or lower in self._unset:
                continue
            self._store[lower] = (key, [_to_str(value)])
        return self

    def is_unset(self, key: str) -> bool:
        return key.lower() in self._unset

    def multi_items(self) -> list[tuple[str, str]]:
        return [(name, value) for name, values in self._store.values() for value in values]

    def raw(self) -> list[tuple[bytes, bytes]]:
        return [
            (name.encode("latin-1"), value.encode("latin-1"))
            for name, value in self.multi_items()
        ]

    def to_dict(self) -> dict[str, str]:
        """
        A plain `{lower-case name: value}` snapshot, safe to log or compare.
        """
        return {lower: ", ".join(values) for lower, (_, values) in self._store.items()}

    def copy(self) -> Headers:
        headers = Headers()
        headers._store = {lower: (name, list(values)) for lower, (name, values) in self._store.items()}
        headers._unset = set(self._unset)
        return headers

    def __getitem__(self, key: str) -> str:
        name, values = self._store[key.lower()]
        return ", ".join(values)

    def __setitem__(self, key: str, value: str) -> None:
        self.set(key, value)

    def __delitem__(self, key: str) -> None:
        lower = key.lower()
        if lower not in self._store:
            raise KeyError(key)
        del self._store[lower]

    def __contains__(self, key: typing.Any) -> bool:
        return isinstance(key, str) and key.lower() in self._store

    def __iter__(self) -> Iterator[str]:
        return (name for name, _ in self._store.values())

    def __len__(self) -> int:
        return len(self._store)

    def __eq__(self, other: typing.Any) -> bool:
        if isinstance(other, Headers):
            return self.to_dict() == other.to_dict()
        if isinstance(other, Mapping):
            return self.to_dict() == {k.lower(): _to_str(v) for k, v in other.items()}
        return NotImplemented

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.multi_items()!r})"


def _iter_pairs(headers: HeaderTypes) -> Iterator[tuple[str, typing.Any]]:
    if isinstance(headers, Headers):
        yield from headers.multi_items()
    elif isinstance(headers, Mapping):
        yield from headers.items()
    else:
        for key, value in headers:
            yield _to_str(key), value
