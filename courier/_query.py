from __future__ import annotations

import typing
from collections.abc import Iterator, Mapping
from urllib.parse import parse_qsl, urlencode

QueryParamTypes = typing.Union[
    "QueryParams",
    str,
    Mapping[str, typing.Any],
    typing.Sequence[typing.Tuple[str, typing.Any]],
]


def primitive_value_to_str(value: typing.Any) -> str:
    """
    Coerce a primitive value into the string used on the wire.
    """
    if value is True:
        return "true"
    elif value is False:
        return "false"
    elif value is None:
        return ""
    return str(value)


class QueryParams:
    """
    An ordered list of query string pairs.

    `add()` is additive: repeated keys are kept, nothing is deduplicated.
    Segments of a raw query string are kept as given and sent unchanged.
    """

    def __init__(self, params: QueryParamTypes | None = None) -> None:
        self._items: list[tuple[str, str] | str] = []
        if params is not None:
            self.add(params)

    def add(self, params: QueryParamTypes) -> QueryParams:
        if isinstance(params, QueryParams):
            self._items.extend(params._items)
        elif isinstance(params, str):
            self._items.extend(segment for segment in params.lstrip("?").split("&") if segment)
        elif isinstance(params, Mapping):
            for key, value in params.items():
                self._extend(str(key), value)
        else:
            for key, value in params:
                self._extend(str(key), value)
        return self

    def _extend(self, key: str, value: typing.Any) -> None:
        if value is None:
            return
        if isinstance(value, (list, tuple)):
            self._items.extend((key, primitive_value_to_str(item)) for item in value)
        else:
            self._items.append((key, primitive_value_to_str(value)))

    def _pairs(self) -> Iterator[tuple[str, str]]:
        for item in self._items:
            if isinstance(item, str):
                yield from parse_qsl(item, keep_blank_values=True)
            else:
                yield item

    def get(self, key: str, default: typing.Any = None) -> typing.Any:
        for item_key, value in self._pairs():
            if item_key == key:
                return value
        return default

    def get_list(self, key: str) -> list[str]:
        return [value for item_key, value in self._pairs() if item_key == key]

    def multi_items(self) -> list[tuple[str, str]]:
        return list(self._pairs())

    def encode(self) -> str:
        return "&".join(item if isinstance(item, str) else urlencode([item]) for item in self._items)

    def copy(self) -> QueryParams:
        return QueryParams(self)

    def __contains__(self, key: typing.Any) -> bool:
        return any(item_key == key for item_key, _ in self._pairs())

    def __iter__(self) -> Iterator[str]:
        return iter(dict.fromkeys(key for key, _ in self._pairs()))

    def __len__(self) -> int:
        return len(self._items)

    def __bool__(self) -> bool:
        return bool(self._items)

    def __eq__(self, other: typing.Any) -> bool:
        if not isinstance(other, QueryParams):
            return NotImplemented
        return self.encode() == other.encode()

    def __str__(self) -> str:
        return self.encode()

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.encode()!r})"
