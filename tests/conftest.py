"""tests/conftest.py - Shared fixtures for the file cabinet tests."""

import datetime
from decimal import Decimal

import pytest

from filecabinet import codec
from filecabinet.config import ValidationRules
from filecabinet.record import INDEXED_FIELDS, Record, RecordParameters
from filecabinet.store import RecordStore


def _make_params(**overrides) -> RecordParameters:
    values = dict(
        first_name="John",
        last_name="Smith",
        date_of_birth=datetime.date(1990, 5, 1),
        gender="M",
        office=12,
        salary=Decimal("500.00"),
    )
    values.update(overrides)
    return RecordParameters(**values)


def _make_record(**overrides) -> Record:
    values = dict(id=1, **_make_params().supplied())
    values.update(overrides)
    return Record(**values)


def _check_indexes(store: RecordStore) -> None:
    """Assert every index agrees with what is actually on disk."""
    data = store.filepath.read_bytes()
    assert len(data) % codec.SLOT_SIZE == 0

    on_disk = {}
    for offset in range(0, len(data), codec.SLOT_SIZE):
        if not codec.is_deleted(data, offset):
            record = codec.decode(data, offset)
            assert record.id not in on_disk, f"id {record.id} alive twice"
            on_disk[record.id] = (offset, record)

    positions = dict(store.position_index.items())
    assert positions == {rid: offset for rid, (offset, _) in on_disk.items()}
    assert list(positions) == sorted(positions)

    for field in INDEXED_FIELDS:
        expected = {}
        for offset, record in on_disk.values():
            expected.setdefault(field.value_of(record), []).append(offset)
        actual = {}
        for value in store.secondary_indexes.keys(field):
            offsets = store.secondary_indexes.offsets(field, value)
            assert offsets, f"empty list left under {field.value}={value!r}"
            assert len(offsets) == len(set(offsets)), f"duplicate offsets under {value!r}"
            actual[value] = sorted(offsets)
        assert actual == {k: sorted(v) for k, v in expected.items()}


@pytest.fixture
def params():
    """Factory: params(first_name="Anna") -> complete RecordParameters."""
    return _make_params


@pytest.fixture
def make_record():
    """Factory: make_record(id=3) -> Record with valid default fields."""
    return _make_record


@pytest.fixture
def check_indexes():
    return _check_indexes


@pytest.fixture
def validator():
    return ValidationRules().create_validator("default")


@pytest.fixture
def db_path(tmp_path):
    return tmp_path / "cabinet.db"


@pytest.fixture
def store(db_path, validator):
    s = RecordStore(db_path, validator, index_order=2)
    yield s
    s.close()
