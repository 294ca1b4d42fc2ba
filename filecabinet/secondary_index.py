"""
filecabinet/secondary_index.py
SecondaryIndexes: equality indexes over first name, last name and date of
birth.

Each index maps a field value to the list of slot offsets of alive records
holding that value. Lists (not sets) keep insertion order, and a key is
dropped as soon as its list becomes empty.

Maintenance contract: callers remove the *old* value/offset before adding
the new one whenever a record changes, is deleted, or moves.
"""

from __future__ import annotations
from typing import Any, Iterable

from filecabinet.errors import InvalidArgument, NotFound
from filecabinet.record import INDEXED_FIELDS, Field, Record


class SecondaryIndexes:
    """One value -> [offset, ...] dictionary per indexed field."""

    def __init__(self) -> None:
        self._indexes: dict[Field, dict[Any, list[int]]] = {
            field: {} for field in INDEXED_FIELDS
        }

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def add(self, field: Field, value: Any, offset: int) -> None:
        self._index(field).setdefault(value, []).append(offset)

    def remove(self, field: Field, value: Any, offset: int) -> None:
        """Erase one offset under value. Raises NotFound if it is not there."""
        index = self._index(field)
        offsets = index.get(value)
        if not offsets or offset not in offsets:
            raise NotFound(f"{field.value} index has no entry {value!r} at offset {offset}")
        offsets.remove(offset)
        if not offsets:
            del index[value]

    def add_record(self, record: Record, offset: int) -> None:
        for field in INDEXED_FIELDS:
            self.add(field, field.value_of(record), offset)

    def remove_record(self, record: Record, offset: int) -> None:
        for field in INDEXED_FIELDS:
            self.remove(field, field.value_of(record), offset)

    def offsets(self, field: Field, value: Any) -> list[int]:
        """Offsets of alive records whose field equals value (a copy)."""
        return list(self._index(field).get(value, ()))

    def keys(self, field: Field) -> list[Any]:
        return list(self._index(field).keys())

    def relocate(self, moves: dict[int, int]) -> None:
        """Rewrite offsets after slots were moved (old offset -> new offset)."""
        if not moves:
            return
        for index in self._indexes.values():
            for offsets in index.values():
                offsets[:] = [moves.get(offset, offset) for offset in offsets]

    def clear(self) -> None:
        for index in self._indexes.values():
            index.clear()

    # ------------------------------------------------------------------
    # Query composition
    # ------------------------------------------------------------------

    @staticmethod
    def intersect(lists: Iterable[list[int]]) -> list[int]:
        """AND: offsets present in every list, in the order of the first."""
        lists = list(lists)
        if not lists:
            return []
        common = set(lists[0]).intersection(*lists[1:])
        return [offset for offset in dict.fromkeys(lists[0]) if offset in common]

    @staticmethod
    def union(lists: Iterable[list[int]]) -> list[int]:
        """OR: every offset once, in order of first appearance."""
        merged: dict[int, None] = {}
        for offsets in lists:
            merged.update(dict.fromkeys(offsets))
        return list(merged)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _index(self, field: Field) -> dict[Any, list[int]]:
        try:
            return self._indexes[field]
        except KeyError:
            raise InvalidArgument(f"Field '{field.value}' is not indexed") from None
