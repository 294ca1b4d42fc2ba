"""
filecabinet/compactor.py
Compactor: in-place purge of soft-deleted slots.

One forward pass over the file with a FIFO queue of hole offsets:

  deleted slot  -> queue its offset as a hole
  alive slot    -> if a hole is queued, copy the slot into the earliest
                   hole, mark the source slot deleted and queue it as a new
                   hole, and point the id at its new offset; otherwise the
                   slot stays where it is

Holes and alive slots are met in file order, so every alive slot lands in
the earliest free gap and surviving records keep their relative order.
Afterwards the file is truncated to the end of the last alive slot.
"""

from __future__ import annotations
import logging
from collections import deque
from typing import NamedTuple

from filecabinet import codec
from filecabinet.position_index import PositionIndex
from filecabinet.slot_file import SlotFile

logger = logging.getLogger(__name__)


class PurgeResult(NamedTuple):
    deleted_count: int          # deleted slots seen during the pass
    total_count: int            # slots in the file before truncation
    moves: dict[int, int]       # old offset -> new offset of relocated slots


class Compactor:
    """Defragments a SlotFile using its PositionIndex as ground truth."""

    def __init__(self, slots: SlotFile, positions: PositionIndex) -> None:
        self._slots = slots
        self._positions = positions

    def run(self) -> PurgeResult:
        """
        Compact the file. Raises CorruptFile before touching anything if
        the file is not a whole number of slots. Assumes exclusive access.
        """
        self._slots.check_alignment()
        size = self._slots.slot_size
        total = self._slots.slot_count()

        holes: deque[int] = deque()
        moves: dict[int, int] = {}
        deleted = 0
        alive_end = 0

        for offset in range(0, total * size, size):
            data = self._slots.read_slot(offset)
            if codec.is_deleted(data):
                holes.append(offset)
                deleted += 1
                continue

            if not holes:
                alive_end = offset + size
                continue

            hole = holes.popleft()
            self._slots.write_slot(hole, data)
            self._slots.mark_deleted(offset)
            holes.append(offset)
            moves[offset] = hole
            alive_end = hole + size

            record_id = codec.read_id(data)
            if self._positions.find(record_id) == offset:
                self._positions.put(record_id, hole)
            logger.debug("moved record #%d from %d to %d", record_id, offset, hole)

        if alive_end < total * size:
            self._slots.truncate(alive_end)

        logger.debug(
            "compaction pass: %d slots, %d deleted, %d moved, new length %d",
            total, deleted, len(moves), alive_end,
        )
        return PurgeResult(deleted, total, moves)
