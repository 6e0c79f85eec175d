"""Immutable blocks of sorted key/value entries and iteration over them."""

from __future__ import annotations

import struct
from typing import Iterator, Optional

from ldbkit.blockhandle import decode_varint
from ldbkit.cmp import Comparator, DefaultCmp

_U32 = struct.Struct("<I")


class Block:
    """An immutable, ordered set of key/value entries.

    Layout: a list of entries, then a list of restart offsets (fixed u32), then
    the number of restarts (fixed u32). An entry is three varints (shared key
    length, non-shared key length, value length), the non-shared key suffix and
    the value.
    """

    def __init__(self, contents: bytes, cmp: Optional[Comparator] = None) -> None:
        contents = bytes(contents)
        if len(contents) <= 4:
            raise ValueError("block contents are too short")
        self._contents = contents
        self._cmp = cmp if cmp is not None else DefaultCmp()

    def iter(self) -> BlockIter:
        """Return a new iterator over this block's entries."""
        return BlockIter(self._contents, self._cmp)

    def contents(self) -> bytes:
        return self._contents

    def __iter__(self) -> Iterator[tuple[bytes, bytes]]:
        return self.iter()


class BlockIter:
    """Bidirectional cursor over the entries of a block.

    A fresh iterator is not positioned on any entry; ``advance`` moves to the
    first one. Used as a Python iterator it yields (key, value) pairs.
    """

    def __init__(self, block: bytes, cmp: Comparator) -> None:
        self._block = block
        self._cmp = cmp
        restarts = self._number_restarts()
        self._restarts_off = len(block) - 4 - 4 * restarts
        if self._restarts_off < 0:
            raise ValueError("block restart array exceeds block size")
        self._offset = 0
        self._current_entry_offset = 0
        self._current_restart_ix = 0
        self._key = b""
        self._val_offset = 0

    def _number_restarts(self) -> int:
        return _U32.unpack_from(self._block, len(self._block) - 4)[0]

    def _restart_point(self, ix: int) -> int:
        return _U32.unpack_from(self._block, self._restarts_off + 4 * ix)[0]

    def _parse_entry_and_advance(self) -> tuple[int, int, int, int]:
        """Parse the entry header at the current offset and move past the entry.

        Returns (shared, non_shared, value size, header length).
        """
        try:
            shared, n1 = decode_varint(self._block, self._offset)
            non_shared, n2 = decode_varint(self._block, self._offset + n1)
            valsize, n3 = decode_varint(self._block, self._offset + n1 + n2)
        except ValueError as exc:
            raise ValueError(
                f"corrupt block: cannot parse entry header at offset {self._offset}"
            ) from exc
        head_len = n1 + n2 + n3
        self._val_offset = self._offset + head_len + non_shared
        self._offset = self._val_offset + valsize
        return shared, non_shared, valsize, head_len

    def _assemble_key(self, off: int, shared: int, non_shared: int) -> None:
        self._key = self._key[:shared] + self._block[off : off + non_shared]

    def _seek_to_restart_point(self, ix: int) -> None:
        off = self._restart_point(ix)
        self._offset = off
        self._current_entry_offset = off
        self._current_restart_ix = ix
        shared, non_shared, _, head_len = self._parse_entry_and_advance()
        if shared != 0:
            raise ValueError("corrupt block: restart entry shares a key prefix")
        self._assemble_key(off + head_len, shared, non_shared)

    def advance(self) -> bool:
        """Move to the next entry; return False (and reset) past the end."""
        if self._offset >= self._restarts_off:
            self.reset()
            return False
        self._current_entry_offset = self._offset
        current_off = self._current_entry_offset

        shared, non_shared, _, head_len = self._parse_entry_and_advance()
        self._assemble_key(current_off + head_len, shared, non_shared)

        num_restarts = self._number_restarts()
        while (
            self._current_restart_ix + 1 < num_restarts
            and self._restart_point(self._current_restart_ix + 1)
            < self._current_entry_offset
        ):
            self._current_restart_ix += 1
        return True

    def reset(self) -> None:
        """Return to the unpositioned state before the first entry."""
        self._offset = 0
        self._val_offset = 0
        self._current_restart_ix = 0
        self._key = b""

    def prev(self) -> bool:
        """Move to the previous entry; return False (and reset) at the start."""
        orig_offset = self._current_entry_offset
        if orig_offset == 0:
            self.reset()
            return False

        while self._restart_point(self._current_restart_ix) >= orig_offset:
            if self._current_restart_ix == 0:
                self._offset = self._restarts_off
                self._current_restart_ix = self._number_restarts()
                break
            self._current_restart_ix -= 1

        self._offset = self._restart_point(self._current_restart_ix)
        if self._offset >= orig_offset:
            raise ValueError("corrupt block: restart point after current entry")

        while True:
            result = self.advance()
            if self._offset >= orig_offset:
                return result

    def seek(self, to: bytes) -> None:
        """Position at the first entry whose key is >= ``to``, if any."""
        to = bytes(to)
        self.reset()

        num_restarts = self._number_restarts()
        left = 0
        right = num_restarts - 1 if num_restarts > 0 else 0

        while left < right:
            middle = (left + right + 1) // 2
            self._seek_to_restart_point(middle)
            if self._cmp.compare(self._key, to) < 0:
                left = middle
            else:
                right = middle - 1

        self._current_restart_ix = left
        self._offset = self._restart_point(left) if num_restarts > 0 else 0

        while self.advance() and self.valid():
            if self._cmp.compare(self._key, to) >= 0:
                return

    def seek_to_first(self) -> None:
        """Position at the first entry."""
        self.reset()
        self.advance()

    def seek_to_last(self) -> None:
        """Position at the last entry."""
        if self._restarts_off == 0:
            self.reset()
            return
        num_restarts = self._number_restarts()
        if num_restarts > 0:
            self._seek_to_restart_point(num_restarts - 1)
        else:
            self.reset()
        while self._offset < self._restarts_off:
            self.advance()

    def valid(self) -> bool:
        return (
            bool(self._key)
            and self._val_offset > 0
            and self._val_offset <= self._restarts_off
        )

    def current(self) -> Optional[tuple[bytes, bytes]]:
        """Return the current (key, value), or None if not positioned."""
        if not self.valid():
            return None
        return self._key, self._block[self._val_offset : self._offset]

    def __iter__(self) -> BlockIter:
        return self

    def __next__(self) -> tuple[bytes, bytes]:
        if self.advance():
            entry = self.current()
            if entry is not None:
                return entry
        raise StopIteration