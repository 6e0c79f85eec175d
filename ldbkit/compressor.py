"""Block compressors: none, Snappy (raw format), zlib and raw deflate."""

from __future__ import annotations

import zlib
from abc import ABC, abstractmethod

from ldbkit.blockhandle import decode_varint, encode_varint


class CompressionError(Exception):
    """A block could not be compressed or decompressed."""


class Compressor(ABC):
    """Transforms blocks before they are written and after they are read."""

    ID: int = -1

    @abstractmethod
    def encode(self, block: bytes) -> bytes:
        """Compress a block."""

    @abstractmethod
    def decode(self, block: bytes) -> bytes:
        """Decompress a block."""


class NoneCompressor(Compressor):
    """Leaves blocks unchanged."""

    ID = 0

    def encode(self, block: bytes) -> bytes:
        return bytes(block)

    def decode(self, block: bytes) -> bytes:
        return bytes(block)


_MAX_OFFSET = 0xFFFF


def _emit_literal(out: bytearray, literal: bytes) -> None:
    if not literal:
        return
    n = len(literal) - 1
    if n < 60:
        out.append(n << 2)
    else:
        width = (n.bit_length() + 7) // 8
        out.append((59 + width) << 2)
        out += n.to_bytes(width, "little")
    out += literal


def _emit_copy_piece(out: bytearray, offset: int, length: int) -> None:
    if 4 <= length <= 11 and offset < 2048:
        out.append(0x01 | ((length - 4) << 2) | ((offset >> 8) << 5))
        out.append(offset & 0xFF)
    else:
        out.append(0x02 | ((length - 1) << 2))
        out += offset.to_bytes(2, "little")


def _emit_copy(out: bytearray, offset: int, length: int) -> None:
    while length >= 68:
        _emit_copy_piece(out, offset, 64)
        length -= 64
    if length > 64:
        _emit_copy_piece(out, offset, 60)
        length -= 60
    _emit_copy_piece(out, offset, length)


class SnappyCompressor(Compressor):
    """Compresses blocks in the raw Snappy format."""

    ID = 1

    def encode(self, block: bytes) -> bytes:
        data = bytes(block)
        size = len(data)
        out = bytearray(encode_varint(size))
        table: dict[bytes, int] = {}
        pos = 0
        literal_start = 0
        while pos + 4 <= size:
            window = data[pos : pos + 4]
            candidate = table.get(window)
            table[window] = pos
            if candidate is None or pos - candidate > _MAX_OFFSET:
                pos += 1
                continue
            length = 4
            while pos + length < size and data[candidate + length] == data[pos + length]:
                length += 1
            _emit_literal(out, data[literal_start:pos])
            _emit_copy(out, pos - candidate, length)
            pos += length
            literal_start = pos
        _emit_literal(out, data[literal_start:])
        return bytes(out)

    def decode(self, block: bytes) -> bytes:
        data = bytes(block)
        try:
            expected, pos = decode_varint(data)
        except ValueError as exc:
            raise CompressionError("invalid snappy length header") from exc

        out = bytearray()
        end = len(data)

        def take(count: int) -> bytes:
            nonlocal pos
            if pos + count > end:
                raise CompressionError("truncated snappy stream")
            chunk = data[pos : pos + count]
            pos += count
            return chunk

        while pos < end:
            tag = take(1)[0]
            kind = tag & 0x03
            if kind == 0:
                length = tag >> 2
                if length >= 60:
                    length = int.from_bytes(take(length - 59), "little")
                out += take(length + 1)
            else:
                if kind == 1:
                    length = ((tag >> 2) & 0x07) + 4
                    offset = ((tag >> 5) << 8) | take(1)[0]
                elif kind == 2:
                    length = (tag >> 2) + 1
                    offset = int.from_bytes(take(2), "little")
                else:
                    length = (tag >> 2) + 1
                    offset = int.from_bytes(take(4), "little")
                if offset == 0 or offset > len(out):
                    raise CompressionError("invalid snappy copy offset")
                start = len(out) - offset
                if offset >= length:
                    out += out[start : start + length]
                else:
                    for k in range(length):
                        out.append(out[start + k])
            if len(out) > expected:
                raise CompressionError("snappy stream exceeds declared length")

        if len(out) != expected:
            raise CompressionError("snappy stream shorter than declared length")
        return bytes(out)


def _check_level(level: int) -> int:
    if not 0 <= level <= 10:
        raise ValueError("compression level must be between 0 and 10")
    return min(level, 9)


class ZlibCompressor(Compressor):
    """Compresses blocks as zlib streams."""

    def __init__(self, level: int) -> None:
        self.level = _check_level(level)

    def encode(self, block: bytes) -> bytes:
        return zlib.compress(bytes(block), self.level)

    def decode(self, block: bytes) -> bytes:
        try:
            return zlib.decompress(bytes(block))
        except zlib.error as exc:
            raise CompressionError(str(exc)) from exc


class RawZlibCompressor(Compressor):
    """Compresses blocks as raw deflate streams without a zlib header."""

    def __init__(self, level: int) -> None:
        self.level = _check_level(level)

    def encode(self, block: bytes) -> bytes:
        engine = zlib.compressobj(self.level, zlib.DEFLATED, -15)
        return engine.compress(bytes(block)) + engine.flush()

    def decode(self, block: bytes) -> bytes:
        try:
            return zlib.decompress(bytes(block), -15)
        except zlib.error as exc:
            raise CompressionError(str(exc)) from exc