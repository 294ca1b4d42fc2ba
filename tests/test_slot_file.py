"""tests/test_slot_file.py - Unit tests for SlotFile."""

import pytest

from filecabinet.codec import SLOT_SIZE, STATUS_DELETED
from filecabinet.errors import CorruptFile, InvalidArgument
from filecabinet.slot_file import SlotFile


@pytest.fixture
def tmp_file(tmp_path):
    return tmp_path / "slots.db"


def slot(fill: bytes) -> bytes:
    return b"\x00" + fill * (SLOT_SIZE - 1)


class TestAppend:
    def test_new_file_is_empty(self, tmp_file):
        with SlotFile(tmp_file) as f:
            assert f.length() == 0
            assert f.slot_count() == 0
        assert tmp_file.exists()

    def test_append_returns_offsets(self, tmp_file):
        with SlotFile(tmp_file) as f:
            assert f.append_slot(slot(b"a")) == 0
            assert f.append_slot(slot(b"b")) == SLOT_SIZE
            assert f.append_slot(slot(b"c")) == 2 * SLOT_SIZE
            assert f.slot_count() == 3
            assert f.length() == 3 * SLOT_SIZE

    def test_creates_parent_directory(self, tmp_path):
        path = tmp_path / "nested" / "dir" / "slots.db"
        with SlotFile(path) as f:
            f.append_slot(slot(b"a"))
        assert path.stat().st_size == SLOT_SIZE


class TestReadWrite:
    def test_write_and_read_back(self, tmp_file):
        with SlotFile(tmp_file) as f:
            f.append_slot(slot(b"a"))
            f.write_slot(0, slot(b"z"))
            assert f.read_slot(0) == slot(b"z")

    def test_write_at_length_appends(self, tmp_file):
        with SlotFile(tmp_file) as f:
            f.write_slot(0, slot(b"a"))
            assert f.slot_count() == 1

    def test_write_past_end_raises(self, tmp_file):
        with SlotFile(tmp_file) as f:
            with pytest.raises(IndexError):
                f.write_slot(SLOT_SIZE, slot(b"a"))

    def test_read_out_of_range_raises(self, tmp_file):
        with SlotFile(tmp_file) as f:
            with pytest.raises(IndexError):
                f.read_slot(0)

    def test_wrong_size_raises(self, tmp_file):
        with SlotFile(tmp_file) as f:
            with pytest.raises(InvalidArgument):
                f.append_slot(b"too short")

    @pytest.mark.parametrize("offset", [-SLOT_SIZE, 1, SLOT_SIZE - 1, SLOT_SIZE + 3])
    def test_misaligned_offset_raises(self, tmp_file, offset):
        with SlotFile(tmp_file) as f:
            f.append_slot(slot(b"a"))
            f.append_slot(slot(b"b"))
            with pytest.raises(InvalidArgument):
                f.read_slot(offset)

    def test_write_at_inside_slot(self, tmp_file):
        with SlotFile(tmp_file) as f:
            f.append_slot(slot(b"a"))
            f.append_slot(slot(b"b"))
            f.write_at(SLOT_SIZE + 6, b"XY")
            data = f.read_slot(SLOT_SIZE)
            assert data[6:8] == b"XY"
            assert f.read_slot(0) == slot(b"a")

    def test_write_at_crossing_boundary_raises(self, tmp_file):
        with SlotFile(tmp_file) as f:
            f.append_slot(slot(b"a"))
            f.append_slot(slot(b"b"))
            with pytest.raises(InvalidArgument):
                f.write_at(SLOT_SIZE - 1, b"XY")

    def test_data_persists_across_reopen(self, tmp_file):
        with SlotFile(tmp_file) as f:
            f.append_slot(slot(b"q"))
        with SlotFile(tmp_file) as f:
            assert f.read_slot(0) == slot(b"q")


class TestStatus:
    def test_mark_deleted(self, tmp_file):
        with SlotFile(tmp_file) as f:
            f.append_slot(slot(b"a"))
            assert not f.is_deleted(0)
            f.mark_deleted(0)
            assert f.is_deleted(0)
            data = f.read_slot(0)
            assert data[0] == STATUS_DELETED
            assert data[1:] == slot(b"a")[1:]

    def test_is_deleted_out_of_range(self, tmp_file):
        with SlotFile(tmp_file) as f:
            with pytest.raises(IndexError):
                f.is_deleted(0)


class TestFileShape:
    def test_check_alignment_ok(self, tmp_file):
        with SlotFile(tmp_file) as f:
            f.append_slot(slot(b"a"))
            f.check_alignment()

    def test_check_alignment_partial_slot(self, tmp_file):
        tmp_file.write_bytes(b"\x00" * (SLOT_SIZE + 10))
        with SlotFile(tmp_file) as f:
            with pytest.raises(CorruptFile):
                f.check_alignment()

    def test_truncate(self, tmp_file):
        with SlotFile(tmp_file) as f:
            for fill in (b"a", b"b", b"c"):
                f.append_slot(slot(fill))
            f.truncate(SLOT_SIZE)
            assert f.slot_count() == 1
        assert tmp_file.stat().st_size == SLOT_SIZE

    def test_close_is_idempotent(self, tmp_file):
        f = SlotFile(tmp_file)
        f.close()
        f.close()
        assert f.closed
