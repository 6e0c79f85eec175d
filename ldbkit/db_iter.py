"""Iteration over the user-visible contents of a database at a snapshot."""

from __future__ import annotations

import enum
import random
from typing import Callable, Iterator, Optional, Protocol

from ldbkit.cmp import (
    Comparator,
    ValueType,
    make_internal_key,
    parse_internal_key,
    truncate_to_userkey,
)

READ_BYTES_PERIOD = 1048576


class Direction(enum.Enum):
    """The direction a DBIterator last moved in."""

    FORWARD = enum.auto()
    REVERSE = enum.auto()


class InternalIterator(Protocol):
    """A bidirectional cursor over (internal key, value) pairs."""

    def advance(self) -> bool: ...

    def prev(self) -> bool: ...

    def seek(self, to: bytes) -> None: ...

    def seek_to_first(self) -> None: ...

    def reset(self) -> None: ...

    def valid(self) -> bool: ...

    def current(self) -> Optional[tuple[bytes, bytes]]: ...


def _random_period() -> int:
    return random.randrange(2 * READ_BYTES_PERIOD)


class DBIterator:
    """Iterates over user keys and their newest values visible at ``sequence``.

    ``source`` yields internal keys in internal-key order (user key ascending,
    sequence descending). Deleted keys and entries newer than ``sequence`` are
    hidden. ``read_sampler``, if given, is called with an internal key roughly
    every ``READ_BYTES_PERIOD`` bytes read. Used as a Python iterator it yields
    (user key, value) pairs.
    """

    def __init__(
        self,
        cmp: Comparator,
        source: InternalIterator,
        sequence: int,
        read_sampler: Optional[Callable[[bytes], object]] = None,
    ) -> None:
        self._cmp = cmp
        self._iter = source
        self._sequence = sequence
        self._read_sampler = read_sampler
        self._dir = Direction.FORWARD
        self._byte_count = _random_period()
        self._valid = False
        self._saved_key = b""
        self._saved_val = b""

    @property
    def direction(self) -> Direction:
        return self._dir

    def _source_entry(self) -> tuple[bytes, bytes]:
        entry = self._iter.current()
        if entry is None:
            raise RuntimeError("underlying iterator is not positioned on an entry")
        return entry

    def _record_read_sample(self, key: bytes, length: int) -> None:
        self._byte_count -= length
        if self._byte_count < 0:
            if self._read_sampler is not None:
                self._read_sampler(key)
            while self._byte_count < 0:
                self._byte_count += _random_period()

    def _find_next_user_entry(self, skipping: bool) -> bool:
        """Move forward to the next visible entry after the saved user key."""
        while self._iter.valid():
            key, val = self._source_entry()
            self._record_read_sample(key, len(key) + len(val))
            typ, seq, ukey = parse_internal_key(key)

            if seq <= self._sequence:
                if typ == ValueType.DELETION:
                    self._saved_key = ukey
                    skipping = True
                elif not (
                    skipping and self._cmp.compare(ukey, self._saved_key) <= 0
                ):
                    self._valid = True
                    self._saved_key = b""
                    return True
            self._iter.advance()

        self._saved_key = b""
        self._valid = False
        return False

    def _find_prev_user_entry(self) -> bool:
        """Store the newest visible version of the previous user key."""
        value_type = ValueType.DELETION

        while self._iter.valid():
            key, val = self._source_entry()
            self._record_read_sample(key, len(key) + len(val))
            typ, seq, ukey = parse_internal_key(key)

            if 0 < seq <= self._sequence:
                if (
                    value_type != ValueType.DELETION
                    and self._cmp.compare(ukey, self._saved_key) < 0
                ):
                    break
                value_type = typ
                if value_type == ValueType.DELETION:
                    self._saved_key = b""
                    self._saved_val = b""
                else:
                    self._saved_key = ukey
                    self._saved_val = val
            self._iter.prev()

        if value_type == ValueType.DELETION:
            self._valid = False
            self._saved_key = b""
            self._saved_val = b""
            self._dir = Direction.FORWARD
        else:
            self._valid = True
        return self._valid

    def advance(self) -> bool:
        """Move to the next user entry; an unpositioned iterator starts at the first."""
        if not self._valid:
            self.seek_to_first()
            return self._valid

        if self._dir == Direction.REVERSE:
            self._dir = Direction.FORWARD
            if not self._iter.valid():
                self._iter.seek_to_first()
            else:
                self._iter.advance()
            if not self._iter.valid():
                self._valid = False
                self._saved_key = b""
                return False
        else:
            key, _ = self._source_entry()
            self._saved_key = truncate_to_userkey(key)
        return self._find_next_user_entry(skipping=True)

    def current(self) -> Optional[tuple[bytes, bytes]]:
        """Return the current (user key, value), or None if not positioned."""
        if not self._valid:
            return None
        if self._dir == Direction.FORWARD:
            key, val = self._source_entry()
            return truncate_to_userkey(key), val
        return self._saved_key, self._saved_val

    def prev(self) -> bool:
        """Move to the previous user entry; return False when none is left."""
        if not self._valid:
            return False

        if self._dir == Direction.FORWARD:
            key, _ = self._source_entry()
            self._saved_key = truncate_to_userkey(key)
            while True:
                self._iter.prev()
                if not self._iter.valid():
                    self._valid = False
                    self._saved_key = b""
                    self._saved_val = b""
                    return False
                key, _ = self._source_entry()
                if self._cmp.compare(truncate_to_userkey(key), self._saved_key) < 0:
                    break
            self._dir = Direction.REVERSE
        return self._find_prev_user_entry()

    def valid(self) -> bool:
        return self._valid

    def seek(self, to: bytes) -> None:
        """Position at the first visible user key that is >= ``to``."""
        self._dir = Direction.FORWARD
        self._saved_key = b""
        self._saved_val = b""
        self._iter.seek(make_internal_key(bytes(to), self._sequence))
        if self._iter.valid():
            self._find_next_user_entry(skipping=False)
        else:
            self._valid = False

    def seek_to_first(self) -> None:
        """Position at the first visible user key."""
        self._dir = Direction.FORWARD
        self._saved_val = b""
        self._iter.seek_to_first()
        if self._iter.valid():
            self._find_next_user_entry(skipping=False)
        else:
            self._valid = False

    def reset(self) -> None:
        """Return to the unpositioned state."""
        self._iter.reset()
        self._valid = False
        self._saved_key = b""
        self._saved_val = b""

    def __iter__(self) -> Iterator[tuple[bytes, bytes]]:
        return self

    def __next__(self) -> tuple[bytes, bytes]:
        if self.advance():
            entry = self.current()
            if entry is not None:
                return entry
        raise StopIteration