"""
filecabinet/store.py
RecordStore: the filesystem-backed record store.

Composes the pieces below it:
  SlotFile          278-byte slot I/O on the data file
  codec             Record <-> slot bytes
  PositionIndex     id -> offset of every alive slot
  SecondaryIndexes  first name / last name / date of birth -> [offset]
  Compactor         purge of soft-deleted slots

Every mutation writes the slot first and only then updates the indexes, so
a failed write leaves the indexes describing the file as it was. Validation
and encoding run before any write.
"""

from __future__ import annotations
import logging
from pathlib import Path
from typing import Any, Iterable, Iterator, Mapping, Tuple, Union

from filecabinet import codec
from filecabinet.compactor import Compactor
from filecabinet.errors import (
    AmbiguousMatch,
    DuplicateId,
    InvalidArgument,
    NotFound,
    ValidationError,
)
from filecabinet.position_index import PositionIndex
from filecabinet.record import Field, Record, RecordParameters
from filecabinet.secondary_index import SecondaryIndexes
from filecabinet.slot_file import SlotFile
from filecabinet.snapshot import Snapshot
from filecabinet.validators import RecordValidator

logger = logging.getLogger(__name__)

# Fields that can identify the record targeted by update().
MATCH_FIELDS = (Field.ID, Field.FIRST_NAME, Field.LAST_NAME, Field.DATE_OF_BIRTH)

Criteria = Union[Mapping[Field, Any], Iterable[Tuple[Field, Any]]]


def _pairs(criteria: Criteria) -> list[tuple[Field, Any]]:
    if isinstance(criteria, Mapping):
        return list(criteria.items())
    return list(criteria)


class RecordStore:
    """
    Person records in a fixed-width binary file.

    The file is opened (created if missing) on construction and stays open
    until close(). Not thread-safe: callers serialise access.
    """

    def __init__(
        self,
        filepath: str | Path,
        validator: RecordValidator,
        index_order: int = 16,
    ) -> None:
        self.filepath = Path(filepath)
        self._validator = validator
        self._slots = SlotFile(self.filepath)
        try:
            self._slots.check_alignment()
            self._positions = PositionIndex.build(self._slots, order=index_order)
            self._secondary = SecondaryIndexes()
            for _, offset in self._positions.items():
                self._secondary.add_record(self._read(offset), offset)
        except Exception:
            self._slots.close()
            raise
        total, deleted = self.get_stat()
        logger.info("opened %s: %d slot(s), %d deleted", self.filepath, total, deleted)

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def create(self, params: RecordParameters) -> int:
        """Validate params, append a record with the next free id, return the id."""
        record = self._new_record(self._positions.next_id(), params)
        self._append(record)
        logger.debug("created record #%d", record.id)
        return record.id

    def insert(self, params: RecordParameters, record_id: int) -> None:
        """Like create() but with a caller-chosen id."""
        if record_id < 1:
            raise InvalidArgument(f"The id has to be larger than zero, got {record_id}.")
        if record_id in self._positions:
            raise DuplicateId(f"Record #{record_id} already exists.")
        record = self._new_record(record_id, params)
        self._append(record)
        logger.debug("inserted record #%d", record.id)

    def update(self, params: RecordParameters, criteria: Mapping[Field, Any]) -> int:
        """
        Apply the supplied fields of params to the single record matching
        criteria (AND over id / first name / last name / date of birth).
        The slot is rewritten in place. Returns the record id.
        """
        offset = self._resolve_one(criteria)
        old = self._read(offset)
        merged = old.with_parameters(params)
        self._validator.validate(merged.parameters())
        fields = codec.encode_fields(merged)

        self._slots.write_at(offset + codec.FIELDS_OFFSET, fields)
        self._secondary.remove_record(old, offset)
        self._secondary.add_record(merged, offset)
        logger.debug("updated record #%d at offset %d", old.id, offset)
        return old.id

    def delete(self, field: Field, value: Any) -> list[int]:
        """
        Soft-delete every alive record whose field equals value.
        Returns the deleted ids in ascending order (empty when none match).
        """
        matches = [(self._read(offset), offset) for offset in self.find_offsets(field, value)]
        for record, offset in matches:
            self._slots.mark_deleted(offset)
            self._positions.remove(record.id)
            self._secondary.remove_record(record, offset)
        ids = sorted(record.id for record, _ in matches)
        logger.debug("deleted %s where %s=%r", ids, field.value, value)
        return ids

    def restore(self, snapshot: Snapshot) -> dict[int, str]:
        """
        Upsert every record of snapshot: existing ids are overwritten in
        place, new ids are appended. Records that fail validation are
        skipped and reported in the returned {id: reason} map.
        """
        failures: dict[int, str] = {}
        restored = 0
        for record in snapshot:
            try:
                if record.id < 1:
                    raise InvalidArgument(f"The id has to be larger than zero, got {record.id}.")
                self._validator.validate(record.parameters())
                data = codec.encode(record)
            except (ValidationError, InvalidArgument) as e:
                failures[record.id] = str(e)
                continue

            offset = self._positions.find(record.id)
            if offset is None:
                self._append(record, data)
            else:
                old = self._read(offset)
                self._slots.write_slot(offset, data)
                self._secondary.remove_record(old, offset)
                self._secondary.add_record(record, offset)
            restored += 1
        logger.info("restored %d record(s), %d rejected", restored, len(failures))
        return failures

    def purge(self) -> tuple[int, int]:
        """Physically drop deleted slots. Returns (deleted_count, total_count)."""
        result = Compactor(self._slots, self._positions).run()
        self._secondary.relocate(result.moves)
        logger.info(
            "purged %d of %d slot(s), %d record(s) relocated",
            result.deleted_count, result.total_count, len(result.moves),
        )
        return result.deleted_count, result.total_count

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_records(self) -> Iterator[Record]:
        """Lazily yield alive records in ascending id order."""
        for _, offset in list(self._positions.items()):
            yield self._read(offset)

    def get_record(self, record_id: int) -> Record:
        return self._read(self._positions.get(record_id))

    def find_offsets(self, field: Field, value: Any) -> list[int]:
        """Offsets of alive records whose field equals value."""
        if field is Field.ID:
            offset = self._positions.find(value)
            return [] if offset is None else [offset]
        if field.is_indexed:
            return self._secondary.offsets(field, value)
        return [
            offset for _, offset in self._positions.items()
            if field.value_of(self._read(offset)) == value
        ]

    def find(self, field: Field, value: Any) -> list[Record]:
        return self._records_at(self.find_offsets(field, value))

    def select(self, criteria: Criteria, any_of: bool = False) -> list[Record]:
        """
        Records matching all (or, with any_of, at least one) of criteria.
        criteria is a Field -> value mapping or a sequence of (Field, value)
        pairs; pairs allow one field to be given several values.
        """
        return self._records_at(self._match(criteria, any_of))

    def get_stat(self) -> tuple[int, int]:
        """Return (total_slots, deleted_slots)."""
        total = self._slots.slot_count()
        return total, total - len(self._positions)

    def is_record_present(self, record_id: int) -> tuple[bool, int]:
        offset = self._positions.find(record_id)
        return (False, -1) if offset is None else (True, offset)

    def make_snapshot(self) -> Snapshot:
        return Snapshot(self.get_records())

    def read_at(self, offset: int) -> Record:
        """Decode the slot at offset (alive or not)."""
        return self._read(offset)

    @property
    def position_index(self) -> PositionIndex:
        return self._positions

    @property
    def secondary_indexes(self) -> SecondaryIndexes:
        return self._secondary

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def close(self) -> None:
        self._slots.close()

    def __enter__(self) -> "RecordStore":
        return self

    def __exit__(self, *_: object) -> None:
        self.close()

    def __repr__(self) -> str:
        return f"RecordStore(path={str(self.filepath)!r}, records={len(self._positions)})"

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _read(self, offset: int) -> Record:
        return codec.decode(self._slots.read_slot(offset))

    def _records_at(self, offsets: list[int]) -> list[Record]:
        return sorted((self._read(offset) for offset in offsets), key=lambda r: r.id)

    def _new_record(self, record_id: int, params: RecordParameters) -> Record:
        supplied = params.supplied()
        missing = [name for name in ("first_name", "last_name", "date_of_birth", "gender", "office", "salary")
                   if name not in supplied]
        if missing:
            raise ValidationError(f"Missing value for {', '.join(missing)}.", missing[0])
        self._validator.validate(params)
        return Record(id=record_id, **supplied)

    def _append(self, record: Record, data: bytes | None = None) -> int:
        offset = self._slots.append_slot(data if data is not None else codec.encode(record))
        self._positions.put(record.id, offset)
        self._secondary.add_record(record, offset)
        return offset

    def _match(self, criteria: Criteria, any_of: bool) -> list[int]:
        pairs = _pairs(criteria)
        if not pairs:
            raise InvalidArgument("At least one search criterion is required.")
        lists = [self.find_offsets(field, value) for field, value in pairs]
        if any_of:
            return SecondaryIndexes.union(lists)
        return SecondaryIndexes.intersect(lists)

    def _resolve_one(self, criteria: Mapping[Field, Any]) -> int:
        unsupported = [field.value for field in criteria if field not in MATCH_FIELDS]
        if unsupported:
            raise InvalidArgument(f"Cannot select a record by {', '.join(unsupported)}.")
        offsets = self._match(criteria, any_of=False)
        described = " and ".join(f"{field.value} = '{value}'" for field, value in criteria.items())
        if not offsets:
            raise NotFound(f"No record matches {described}.")
        if len(offsets) > 1:
            ids = sorted(codec.read_id(self._slots.read_slot(offset)) for offset in offsets)
            raise AmbiguousMatch(
                f"{len(offsets)} records match {described}; specify more criteria.", ids
            )
        return offsets[0]
