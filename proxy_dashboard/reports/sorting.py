"""Sort engine — column-driven, direction-toggling ordering of table rows."""

from __future__ import annotations

from dataclasses import dataclass
from functools import cmp_to_key
from typing import Any, Callable, Generic, Iterable, Sequence, TypeVar

T = TypeVar("T")


class UnknownSortField(KeyError):
    pass


@dataclass
class SortState:
    field: str = "index"
    ascending: bool = True
    active: bool = True


def field_value(record: Any, name: str) -> Any:
    if isinstance(record, dict):
        try:
            return record[name]
        except KeyError:
            raise UnknownSortField(name) from None
    try:
        return getattr(record, name)
    except AttributeError:
        raise UnknownSortField(name) from None


def ascending_comparator(name: str) -> Callable[[Any, Any], int]:
    # Non-strict on purpose: equal rows compare as "a first" in both orders.
    def compare(a: Any, b: Any) -> int:
        return -1 if field_value(a, name) <= field_value(b, name) else 1

    return compare


def descending_comparator(name: str) -> Callable[[Any, Any], int]:
    def compare(a: Any, b: Any) -> int:
        return -1 if field_value(a, name) > field_value(b, name) else 1

    return compare


def sort_records(records: Iterable[T], name: str, ascending: bool = True) -> list[T]:
    comparator = ascending_comparator(name) if ascending else descending_comparator(name)
    return sorted(records, key=cmp_to_key(comparator))


class SortableTable(Generic[T]):
    """Rows plus a single active sort column.

    Activating the active column flips its direction; activating another column
    makes it the active one, ascending.
    """

    def __init__(
        self,
        records: Iterable[T] = (),
        fields: Sequence[str] | None = None,
        initial_field: str = "index",
    ) -> None:
        self.fields = tuple(fields) if fields is not None else None
        self.initial_field = initial_field
        self._records: list[T] = list(records)
        self.state = SortState(field=initial_field)

    @property
    def records(self) -> list[T]:
        return list(self._records)

    def replace(self, records: Iterable[T]) -> None:
        self._records = list(records)
        self.state = SortState(field=self.initial_field)

    def activate(self, name: str) -> list[T]:
        if self.fields is not None and name not in self.fields:
            raise UnknownSortField(name)
        if name == self.state.field and self.state.active:
            ascending = not self.state.ascending
        else:
            ascending = True
        self._records = sort_records(self._records, name, ascending)
        self.state = SortState(field=name, ascending=ascending, active=True)
        return self.records

    def __len__(self) -> int:
        return len(self._records)
