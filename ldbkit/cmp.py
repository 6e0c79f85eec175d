"""Comparators and the internal key encoding they operate on."""

from __future__ import annotations

import enum
from abc import ABC, abstractmethod

from ldbkit.blockhandle import decode_varint

MAX_SEQUENCE_NUMBER = (1 << 56) - 1
_TAG_SIZE = 8


class ValueType(enum.IntEnum):
    """Kind of entry stored under an internal key."""

    DELETION = 0
    VALUE = 1


def make_internal_key(
    user_key: bytes, seq: int, value_type: ValueType = ValueType.VALUE
) -> bytes:
    """Append the 8-byte tag (sequence number and value type) to a user key."""
    if not 0 <= seq <= MAX_SEQUENCE_NUMBER:
        raise ValueError(f"sequence number out of range: {seq}")
    tag = (seq << 8) | int(value_type)
    return bytes(user_key) + tag.to_bytes(_TAG_SIZE, "little")


def parse_internal_key(key: bytes) -> tuple[ValueType, int, bytes]:
    """Split an internal key into (value type, sequence, user key).

    A key that cannot be parsed yields (DELETION, 0, b""); a sequence number of
    zero marks the failure.
    """
    if len(key) < _TAG_SIZE:
        return ValueType.DELETION, 0, b""
    tag = int.from_bytes(key[-_TAG_SIZE:], "little")
    try:
        value_type = ValueType(tag & 0xFF)
    except ValueError:
        return ValueType.DELETION, 0, b""
    return value_type, tag >> 8, bytes(key[:-_TAG_SIZE])


def truncate_to_userkey(key: bytes) -> bytes:
    """Return the user key part of an internal key."""
    if len(key) < _TAG_SIZE:
        raise ValueError("internal key is shorter than its tag")
    return bytes(key[:-_TAG_SIZE])


def _sign(a, b) -> int:
    return (a > b) - (a < b)


class Comparator(ABC):
    """Orders byte strings and derives short keys between them."""

    @abstractmethod
    def compare(self, a: bytes, b: bytes) -> int:
        """Return a negative, zero or positive number as a <, == or > b."""

    @abstractmethod
    def find_shortest_sep(self, a: bytes, b: bytes) -> bytes:
        """Return a short key that is >= a and < b."""

    @abstractmethod
    def find_short_succ(self, key: bytes) -> bytes:
        """Return a short key that is >= key."""

    @abstractmethod
    def id(self) -> str:
        """Name identifying the ordering."""


class DefaultCmp(Comparator):
    """Plain bytewise ordering."""

    def compare(self, a: bytes, b: bytes) -> int:
        return _sign(bytes(a), bytes(b))

    def id(self) -> str:
        return "leveldb.BytewiseComparator"

    def find_shortest_sep(self, a: bytes, b: bytes) -> bytes:
        a, b = bytes(a), bytes(b)
        if a == b:
            return a

        shortest = min(len(a), len(b))
        diff_at = 0
        while diff_at < shortest and a[diff_at] == b[diff_at]:
            diff_at += 1

        while diff_at < shortest:
            diff = a[diff_at]
            if diff < 0xFF and diff + 1 < b[diff_at]:
                return a[:diff_at] + bytes([diff + 1])
            diff_at += 1

        sep = bytearray(a)
        # Increment the last byte below 0xff and keep the result only if it
        # still sorts before b.
        i = len(a) - 1
        while i > 0 and sep[i] == 0xFF:
            i -= 1
        if i >= 0 and sep[i] < 0xFF:
            sep[i] += 1
            if self.compare(sep, b) < 0:
                return bytes(sep)
            sep[i] -= 1

        # Longer than a, hence greater; not necessarily short.
        sep.append(0)
        return bytes(sep)

    def find_short_succ(self, key: bytes) -> bytes:
        key = bytes(key)
        for i, byte in enumerate(key):
            if byte != 0xFF:
                return key[:i] + bytes([byte + 1])
        return key + b"\xff"


class InternalKeyCmp(Comparator):
    """Orders internal keys: by user key, then by descending sequence number."""

    def __init__(self, inner: Comparator) -> None:
        self.inner = inner

    def compare(self, a: bytes, b: bytes) -> int:
        return _compare_internal_keys(self.inner, a, b)

    def compare_inner(self, a: bytes, b: bytes) -> int:
        """Compare two user keys with the wrapped comparator."""
        return self.inner.compare(a, b)

    def id(self) -> str:
        return self.inner.id()

    def find_shortest_sep(self, a: bytes, b: bytes) -> bytes:
        if bytes(a) == bytes(b):
            return bytes(a)
        _, seq_a, key_a = parse_internal_key(a)
        _, _, key_b = parse_internal_key(b)
        sep = self.inner.find_shortest_sep(key_a, key_b)
        if len(sep) < len(key_a) and self.inner.compare(key_a, sep) < 0:
            return make_internal_key(sep, MAX_SEQUENCE_NUMBER)
        return make_internal_key(sep, seq_a)

    def find_short_succ(self, key: bytes) -> bytes:
        _, seq, user_key = parse_internal_key(key)
        return make_internal_key(self.inner.find_short_succ(user_key), seq)


def _compare_internal_keys(inner: Comparator, a: bytes, b: bytes) -> int:
    if len(a) < _TAG_SIZE or len(b) < _TAG_SIZE:
        raise ValueError("internal key is shorter than its tag")
    order = inner.compare(a[:-_TAG_SIZE], b[:-_TAG_SIZE])
    if order != 0:
        return order
    tag_a = int.from_bytes(a[-_TAG_SIZE:], "little")
    tag_b = int.from_bytes(b[-_TAG_SIZE:], "little")
    # Newer entries (higher tags) sort first.
    return _sign(tag_b, tag_a)


def _memtable_internal_key(key: bytes) -> bytes:
    length, consumed = decode_varint(key)
    internal = key[consumed : consumed + length]
    if length < _TAG_SIZE or len(internal) != length:
        raise ValueError("malformed memtable key")
    return bytes(internal)


class MemtableKeyCmp(Comparator):
    """Orders length-prefixed memtable entries by their internal keys."""

    def __init__(self, inner: Comparator) -> None:
        self.inner = inner

    def compare(self, a: bytes, b: bytes) -> int:
        return _compare_internal_keys(
            self.inner, _memtable_internal_key(a), _memtable_internal_key(b)
        )

    def id(self) -> str:
        return self.inner.id()

    def find_shortest_sep(self, a: bytes, b: bytes) -> bytes:
        raise TypeError("find* functions are invalid on MemtableKeyCmp")

    def find_short_succ(self, key: bytes) -> bytes:
        raise TypeError("find* functions are invalid on MemtableKeyCmp")