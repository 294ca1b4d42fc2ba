"""
filecabinet/slot_file.py
SlotFile: fixed-size slot I/O layer over the backing data file.

Every slot is exactly `slot_size` bytes (278 for person records) and
slot n starts at byte offset n * slot_size. Callers address slots by
byte offset; offsets must be slot aligned.

This is the lowest-level component; the record store, index builder
and compactor all sit on top of it.
"""

from __future__ import annotations
import logging
import os
from pathlib import Path

from filecabinet.codec import SLOT_SIZE, STATUS_DELETED
from filecabinet.errors import CorruptFile, InvalidArgument

logger = logging.getLogger(__name__)


class SlotFile:
    """
    Read and write fixed-size slots in a binary file.

    The file is created if it does not exist. New slots are appended
    at the end; slots are never resized.
    """

    def __init__(self, filepath: str | Path, slot_size: int = SLOT_SIZE) -> None:
        self.filepath = Path(filepath)
        self.slot_size = slot_size
        self.filepath.parent.mkdir(parents=True, exist_ok=True)
        mode = "r+b" if self.filepath.exists() else "w+b"
        self._file = open(self.filepath, mode)
        logger.debug("opened %s (%d bytes)", self.filepath, self.length())

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def read_slot(self, offset: int) -> bytes:
        """
        Return the slot_size bytes starting at offset.
        Raises IndexError if the slot lies beyond the end of the file.
        """
        self._check_offset(offset)
        if offset + self.slot_size > self.length():
            raise IndexError(f"offset {offset} out of range (length={self.length()})")
        self._file.seek(offset)
        return self._file.read(self.slot_size)

    def write_slot(self, offset: int, data: bytes) -> None:
        """
        Overwrite a whole slot. offset may equal length() to append.
        Raises InvalidArgument if data is not exactly slot_size bytes.
        """
        if len(data) != self.slot_size:
            raise InvalidArgument(
                f"data must be exactly {self.slot_size} bytes, got {len(data)}"
            )
        self._check_offset(offset)
        if offset > self.length():
            raise IndexError(f"offset {offset} would create a gap (length={self.length()})")
        self._write(offset, data)

    def write_at(self, offset: int, data: bytes) -> None:
        """
        Overwrite part of an existing slot. offset need not be aligned but
        the write must stay inside a single slot.
        """
        start = offset - offset % self.slot_size
        if offset + len(data) > start + self.slot_size:
            raise InvalidArgument(f"write of {len(data)} bytes at {offset} crosses a slot boundary")
        if start + self.slot_size > self.length():
            raise IndexError(f"offset {offset} out of range (length={self.length()})")
        self._write(offset, data)

    def append_slot(self, data: bytes) -> int:
        """Append a slot at end-of-file and return its offset."""
        offset = self.length()
        self.write_slot(offset, data)
        return offset

    def is_deleted(self, offset: int) -> bool:
        self._check_offset(offset)
        self._file.seek(offset)
        status = self._file.read(1)
        if not status:
            raise IndexError(f"offset {offset} out of range (length={self.length()})")
        return status[0] == STATUS_DELETED

    def mark_deleted(self, offset: int) -> None:
        """Flip the status byte of the slot at offset to deleted."""
        self.write_at(offset, bytes([STATUS_DELETED]))

    def slot_count(self) -> int:
        return self.length() // self.slot_size

    def length(self) -> int:
        self._file.seek(0, os.SEEK_END)
        return self._file.tell()

    def check_alignment(self) -> None:
        """Raise CorruptFile if the file is not a whole number of slots."""
        length = self.length()
        if length % self.slot_size:
            raise CorruptFile(
                f"{self.filepath}: length {length} is not a multiple of the "
                f"{self.slot_size}-byte slot size"
            )

    def truncate(self, length: int) -> None:
        self._check_offset(length)
        self._file.truncate(length)
        self._file.flush()

    def close(self) -> None:
        """Flush and close the underlying file."""
        if not self._file.closed:
            self._file.flush()
            self._file.close()

    @property
    def closed(self) -> bool:
        return self._file.closed

    def __enter__(self) -> "SlotFile":
        return self

    def __exit__(self, *_: object) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _check_offset(self, offset: int) -> None:
        if offset < 0 or offset % self.slot_size:
            raise InvalidArgument(f"offset {offset} is not aligned to {self.slot_size}-byte slots")

    def _write(self, offset: int, data: bytes) -> None:
        self._file.seek(offset)
        self._file.write(data)
        self._file.flush()
