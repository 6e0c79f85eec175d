"""Builds blocks of prefix-compressed, sorted key/value entries."""

from __future__ import annotations

import struct
from typing import Optional

from ldbkit.blockhandle import encode_varint
from ldbkit.cmp import Comparator, DefaultCmp

DEFAULT_RESTART_INTERVAL = 16


class BlockBuilder:
    """Accumulates sorted entries and serialises them as a block.

    Each entry is stored as varints (shared, non-shared, value size) followed by
    the non-shared key suffix and the value. Every ``restart_interval`` entries a
    full key is written and its offset recorded as a restart point.
    """

    def __init__(
        self,
        cmp: Optional[Comparator] = None,
        restart_interval: int = DEFAULT_RESTART_INTERVAL,
    ) -> None:
        if restart_interval <= 0:
            raise ValueError("restart interval must be positive")
        self._cmp = cmp if cmp is not None else DefaultCmp()
        self._restart_interval = restart_interval
        self._buffer = bytearray()
        self._restarts: list[int] = [0]
        self._last_key = b""
        self._restart_counter = 0
        self._counter = 0

    def entries(self) -> int:
        return self._counter

    def last_key(self) -> bytes:
        return self._last_key

    def size_estimate(self) -> int:
        return len(self._buffer) + 4 * len(self._restarts) + 4

    def reset(self) -> None:
        self._buffer.clear()
        self._restarts.clear()
        self._last_key = b""
        self._restart_counter = 0
        self._counter = 0

    def add(self, key: bytes, val: bytes) -> None:
        """Append an entry; keys must be added in strictly increasing order."""
        key, val = bytes(key), bytes(val)
        if self._buffer and self._cmp.compare(self._last_key, key) >= 0:
            raise ValueError("keys must be added in strictly increasing order")

        if not self._restarts:
            self._restarts.append(len(self._buffer))

        shared = 0
        if self._restart_counter < self._restart_interval:
            for left, right in zip(self._last_key, key):
                if left != right:
                    break
                shared += 1
        else:
            self._restarts.append(len(self._buffer))
            self._last_key = b""
            self._restart_counter = 0

        suffix = key[shared:]
        self._buffer += encode_varint(shared)
        self._buffer += encode_varint(len(suffix))
        self._buffer += encode_varint(len(val))
        self._buffer += suffix
        self._buffer += val

        self._last_key = key
        self._restart_counter += 1
        self._counter += 1

    def finish(self) -> bytes:
        """Return the block: entries, restart offsets, then the restart count."""
        trailer = struct.pack(
            f"<{len(self._restarts) + 1}I", *self._restarts, len(self._restarts)
        )
        return bytes(self._buffer) + trailer