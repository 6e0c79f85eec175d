import random

import pytest

from ldbkit.compressor import (
    CompressionError,
    NoneCompressor,
    RawZlibCompressor,
    SnappyCompressor,
    ZlibCompressor,
)

_rng = random.Random(1234)
SAMPLES = [
    b"",
    b"a",
    b"abc",
    b"ab" * 100,
    b"NBT data goes here",
    b"hello world, hello world, hello world!",
    bytes(_rng.getrandbits(8) for _ in range(1000)),
    bytes(70000),
    b"".join(bytes([i % 7]) * (i % 90) for i in range(500)),
]


@pytest.mark.parametrize("data", SAMPLES)
@pytest.mark.parametrize(
    "compressor",
    [NoneCompressor(), SnappyCompressor(), ZlibCompressor(10), RawZlibCompressor(10)],
)
def test_round_trip(compressor, data):
    assert compressor.decode(compressor.encode(data)) == data


def test_compressor_ids_on_instances():
    none = NoneCompressor()
    snappy = SnappyCompressor()
    assert none.ID == 0
    assert snappy.ID == 1
    assert none.encode(b"abc") == b"abc"
    assert snappy.decode(snappy.encode(b"abc")) == b"abc"


def test_none_compressor_is_identity():
    assert NoneCompressor().encode(b"NBT data goes here") == b"NBT data goes here"


def test_snappy_empty_input():
    assert SnappyCompressor().encode(b"") == b"\x00"


def test_snappy_single_literal():
    assert SnappyCompressor().encode(b"a") == b"\x01\x00a"


def test_snappy_shrinks_repetitive_data():
    data = b"ab" * 1000
    assert len(SnappyCompressor().encode(data)) < len(data) // 10


def test_snappy_rejects_truncated_stream():
    encoded = SnappyCompressor().encode(b"hello world, hello world")
    with pytest.raises(CompressionError):
        SnappyCompressor().decode(encoded[:-3])


def test_snappy_rejects_bad_offset():
    # Declares 4 bytes, then a copy before any output exists.
    with pytest.raises(CompressionError):
        SnappyCompressor().decode(b"\x04\x01\x01")


def test_zlib_rejects_garbage():
    with pytest.raises(CompressionError):
        ZlibCompressor(5).decode(b"not a zlib stream")


def test_raw_zlib_rejects_garbage():
    with pytest.raises(CompressionError):
        RawZlibCompressor(5).decode(b"\xff\xff\xff\xff")


def test_zlib_and_raw_differ_in_header():
    data = b"NBT data goes here" * 4
    assert ZlibCompressor(6).encode(data)[2:-4] == RawZlibCompressor(6).encode(data)


@pytest.mark.parametrize("cls", [ZlibCompressor, RawZlibCompressor])
def test_level_out_of_range(cls):
    with pytest.raises(ValueError):
        cls(11)