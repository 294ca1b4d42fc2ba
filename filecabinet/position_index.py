"""
filecabinet/position_index.py
PositionIndex: ordered id -> slot offset map, the authoritative locator
for alive records.

Stored as a B+Tree of minimum degree t (`order`):
  - every non-root node holds between t-1 and 2t-1 keys
  - leaves hold (id, offset) pairs and are chained left to right
  - internal nodes hold separator ids and child pointers only

Built once by a forward scan of the data file, then maintained by the
record store and the compactor.
"""

from __future__ import annotations
import logging
from bisect import bisect_left, bisect_right
from typing import Iterator

from filecabinet import codec
from filecabinet.errors import NotFound
from filecabinet.slot_file import SlotFile

logger = logging.getLogger(__name__)


class _Node:
    __slots__ = ("is_leaf", "keys", "offsets", "children", "next")

    def __init__(self, is_leaf: bool) -> None:
        self.is_leaf = is_leaf
        self.keys: list[int] = []
        self.offsets: list[int] = []          # leaves only
        self.children: list[_Node] = []       # internal only
        self.next: _Node | None = None        # leaves only

    @property
    def payload(self) -> list:
        """What sits beside the keys: offsets in a leaf, children otherwise."""
        return self.offsets if self.is_leaf else self.children

    def __repr__(self) -> str:  # pragma: no cover
        kind = "Leaf" if self.is_leaf else "Internal"
        return f"{kind}({self.keys})"


class PositionIndex:
    """B+Tree mapping record id to the byte offset of its slot."""

    def __init__(self, order: int = 16) -> None:
        if order < 2:
            raise ValueError("order must be >= 2")
        self.order = order
        self._root = _Node(is_leaf=True)
        self._size = 0

    @classmethod
    def build(cls, slots: SlotFile, order: int = 16) -> "PositionIndex":
        """
        Scan every slot of the file and index the alive ones.
        An empty file yields an empty index. If an id is alive in more than
        one slot the later slot wins, as with put().
        """
        index = cls(order=order)
        for offset in range(0, slots.slot_count() * slots.slot_size, slots.slot_size):
            data = slots.read_slot(offset)
            if not codec.is_deleted(data):
                index.put(codec.read_id(data), offset)
        logger.debug("position index built: %d alive ids", len(index))
        return index

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def get(self, record_id: int) -> int:
        """Return the offset of record_id. Raises NotFound if absent."""
        offset = self.find(record_id)
        if offset is None:
            raise NotFound(f"Record #{record_id} doesn't exist.")
        return offset

    def find(self, record_id: int) -> int | None:
        """Return the offset of record_id, or None if absent."""
        leaf = self._find_leaf(record_id)
        i = bisect_left(leaf.keys, record_id)
        if i < len(leaf.keys) and leaf.keys[i] == record_id:
            return leaf.offsets[i]
        return None

    def put(self, record_id: int, offset: int) -> None:
        """Insert record_id -> offset, overwriting an existing entry."""
        leaf = self._find_leaf(record_id)
        i = bisect_left(leaf.keys, record_id)
        if i < len(leaf.keys) and leaf.keys[i] == record_id:
            leaf.offsets[i] = offset
            return
        if self._is_full(self._root):
            new_root = _Node(is_leaf=False)
            new_root.children.append(self._root)
            self._split_child(new_root, 0)
            self._root = new_root
        self._insert_non_full(record_id, offset)
        self._size += 1

    def remove(self, record_id: int) -> None:
        """Delete record_id. Raises NotFound if absent."""
        removed = self._remove(record_id)
        # a miss can still have merged the root's only two children
        if not self._root.is_leaf and not self._root.keys:
            self._root = self._root.children[0]
        if not removed:
            raise NotFound(f"Record #{record_id} doesn't exist.")
        self._size -= 1

    def highest_id(self) -> int | None:
        node = self._root
        while not node.is_leaf:
            node = node.children[-1]
        return node.keys[-1] if node.keys else None

    def next_id(self) -> int:
        """Id for the next auto-assigned record: highest id + 1, or 1."""
        highest = self.highest_id()
        return 1 if highest is None else highest + 1

    def items(self) -> Iterator[tuple[int, int]]:
        """Yield (id, offset) pairs in ascending id order."""
        node: _Node | None = self._root
        while not node.is_leaf:
            node = node.children[0]
        while node is not None:
            yield from zip(node.keys, node.offsets)
            node = node.next

    def ids(self) -> list[int]:
        return [record_id for record_id, _ in self.items()]

    def offsets(self) -> list[int]:
        return [offset for _, offset in self.items()]

    def __len__(self) -> int:
        return self._size

    def __contains__(self, record_id: object) -> bool:
        return isinstance(record_id, int) and self.find(record_id) is not None

    def __repr__(self) -> str:
        return f"PositionIndex(size={self._size}, order={self.order})"

    # ------------------------------------------------------------------
    # Internal helpers - search / insert
    # ------------------------------------------------------------------

    def _is_full(self, node: _Node) -> bool:
        return len(node.keys) >= 2 * self.order - 1

    def _find_leaf(self, record_id: int) -> _Node:
        node = self._root
        while not node.is_leaf:
            node = node.children[bisect_right(node.keys, record_id)]
        return node

    def _insert_non_full(self, record_id: int, offset: int) -> None:
        node = self._root
        while not node.is_leaf:
            i = bisect_right(node.keys, record_id)
            if self._is_full(node.children[i]):
                self._split_child(node, i)
                if record_id >= node.keys[i]:
                    i += 1
            node = node.children[i]
        i = bisect_left(node.keys, record_id)
        node.keys.insert(i, record_id)
        node.offsets.insert(i, offset)

    def _split_child(self, parent: _Node, idx: int) -> None:
        """Split the full child parent.children[idx] around its median."""
        mid = self.order - 1
        child = parent.children[idx]
        right = _Node(is_leaf=child.is_leaf)
        separator = child.keys[mid]
        # a leaf keeps the separator in its right half, an internal node moves it up
        cut = mid if child.is_leaf else mid + 1
        right.keys = child.keys[cut:]
        right.payload.extend(child.payload[cut:])
        del child.keys[mid:], child.payload[cut:]
        if child.is_leaf:
            right.next, child.next = child.next, right
        parent.keys.insert(idx, separator)
        parent.children.insert(idx + 1, right)

    # ------------------------------------------------------------------
    # Internal helpers - delete
    # ------------------------------------------------------------------

    def _remove(self, record_id: int) -> bool:
        """
        Single top-down pass: before descending into a child that holds the
        minimum t-1 keys, top it up by borrowing from or merging with a
        sibling so the final leaf removal never underflows a parent.
        """
        node = self._root
        while not node.is_leaf:
            i = bisect_right(node.keys, record_id)
            if len(node.children[i].keys) < self.order:
                i = self._refill(node, i)
            node = node.children[i]
        i = bisect_left(node.keys, record_id)
        if i == len(node.keys) or node.keys[i] != record_id:
            return False
        node.keys.pop(i)
        node.offsets.pop(i)
        return True

    def _refill(self, parent: _Node, idx: int) -> int:
        """Give parent.children[idx] at least t keys; return its new index."""
        left = parent.children[idx - 1] if idx > 0 else None
        right = parent.children[idx + 1] if idx + 1 < len(parent.children) else None
        if left is not None and len(left.keys) >= self.order:
            self._rotate(parent, idx, idx - 1)
            return idx
        if right is not None and len(right.keys) >= self.order:
            self._rotate(parent, idx, idx + 1)
            return idx
        if left is not None:
            self._merge(parent, idx - 1)
            return idx - 1
        self._merge(parent, idx)
        return idx

    def _rotate(self, parent: _Node, idx: int, donor_idx: int) -> None:
        """Move one entry from an adjacent sibling into parent.children[idx]."""
        child, donor = parent.children[idx], parent.children[donor_idx]
        sep = min(idx, donor_idx)
        from_left = donor_idx < idx
        end = -1 if from_left else 0
        key, item = donor.keys.pop(end), donor.payload.pop(end)
        if not child.is_leaf:
            # internal keys pass through the parent separator
            key, parent.keys[sep] = parent.keys[sep], key
        if from_left:
            child.keys.insert(0, key)
            child.payload.insert(0, item)
        else:
            child.keys.append(key)
            child.payload.append(item)
        if child.is_leaf:
            parent.keys[sep] = (child if from_left else donor).keys[0]

    def _merge(self, parent: _Node, left_idx: int) -> None:
        """Fold parent.children[left_idx + 1] into parent.children[left_idx]."""
        left, right = parent.children[left_idx], parent.children[left_idx + 1]
        if left.is_leaf:
            left.next = right.next
        else:
            left.keys.append(parent.keys[left_idx])
        left.keys.extend(right.keys)
        left.payload.extend(right.payload)
        parent.keys.pop(left_idx)
        parent.children.pop(left_idx + 1)
