"""Schema-less nested records produced by the payload decoder.

A decoded value is either a scalar (str, int, float, bool, None), a Record
(read-only mapping of str to values) or a RecordList (read-only sequence of
values). Lookups that do not resolve raise MissingPathError instead of
returning an empty placeholder.
"""

from collections.abc import Mapping, Sequence
from typing import Any, Iterator

from msg_poller.exceptions import MissingPathError


def wrap(value: Any) -> Any:
    """Wrap plain dicts and lists (recursively) into records."""
    if isinstance(value, Mapping) and not isinstance(value, Record):
        return Record(value)
    if isinstance(value, list | tuple):
        return RecordList(value)
    return value


def unwrap(value: Any) -> Any:
    """Convert records back into plain dicts and lists."""
    if isinstance(value, Record):
        return value.to_dict()
    if isinstance(value, RecordList):
        return value.to_list()
    if isinstance(value, list):
        return [unwrap(item) for item in value]
    return value


class Record(Mapping):
    """Read-only mapping from string keys to nested values."""

    __slots__ = ("_data",)

    def __init__(self, data: Mapping[str, Any] | None = None) -> None:
        self._data = {str(key): wrap(value) for key, value in (data or {}).items()}

    def __getitem__(self, key: str) -> Any:
        try:
            return self._data[key]
        except KeyError:
            raise MissingPathError((key,), key) from None

    def __iter__(self) -> Iterator[str]:
        return iter(self._data)

    def __len__(self) -> int:
        return len(self._data)

    def __repr__(self) -> str:
        return f"Record({self.to_dict()!r})"

    def path(self, *keys: str | int) -> Any:
        """Walk nested keys and indexes, e.g. record.path("items", 0, "sku")."""
        return _walk(self, keys)

    def to_dict(self) -> dict[str, Any]:
        return {key: unwrap(value) for key, value in self._data.items()}


class RecordList(Sequence):
    """Read-only sequence of nested values."""

    __slots__ = ("_items",)

    def __init__(self, items: Sequence[Any] = ()) -> None:
        self._items = tuple(wrap(item) for item in items)

    def __getitem__(self, index):
        if isinstance(index, slice):
            return RecordList(self._items[index])
        try:
            return self._items[index]
        except (IndexError, TypeError):
            raise MissingPathError((index,), index) from None

    def __len__(self) -> int:
        return len(self._items)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, RecordList):
            return self._items == other._items
        if isinstance(other, list | tuple):
            return list(self._items) == list(other)
        return NotImplemented

    __hash__ = None

    def __repr__(self) -> str:
        return f"RecordList({self.to_list()!r})"

    def path(self, *keys: str | int) -> Any:
        return _walk(self, keys)

    def to_list(self) -> list[Any]:
        return [unwrap(item) for item in self._items]


def _walk(value: Any, keys: tuple) -> Any:
    current = value
    for segment in keys:
        if isinstance(current, Record) and isinstance(segment, str):
            if segment not in current:
                raise MissingPathError(keys, segment)
        elif isinstance(current, RecordList) and isinstance(segment, int) and not isinstance(segment, bool):
            if not -len(current) <= segment < len(current):
                raise MissingPathError(keys, segment)
        else:
            raise MissingPathError(keys, segment)
        current = current[segment]
    return current
