import pytest

from ldbkit.blockhandle import encode_varint
from ldbkit.cmp import (
    MAX_SEQUENCE_NUMBER,
    DefaultCmp,
    InternalKeyCmp,
    MemtableKeyCmp,
    ValueType,
    make_internal_key,
    parse_internal_key,
    truncate_to_userkey,
)


@pytest.mark.parametrize(
    "a, b, expected",
    [
        (b"abcd", b"abcf", b"abce"),
        (b"abc", b"acd", b"abd"),
        (b"abcdefghi", b"abcffghi", b"abce"),
        (b"a", b"a", b"a"),
        (b"a", b"b", b"a\0"),
        (b"abc", b"zzz", b"b"),
        (b"yyy", b"z", b"yyz"),
        (b"", b"", b""),
    ],
)
def test_defaultcmp_shortest_sep(a, b, expected):
    assert DefaultCmp().find_shortest_sep(a, b) == expected


@pytest.mark.parametrize(
    "key, expected",
    [
        (b"abcd", b"b"),
        (b"zzzz", b"{"),
        (b"", b"\xff"),
        (b"\xff\xff\xff", b"\xff\xff\xff\xff"),
    ],
)
def test_defaultcmp_short_succ(key, expected):
    assert DefaultCmp().find_short_succ(key) == expected


def test_defaultcmp_id():
    assert DefaultCmp().id() == "leveldb.BytewiseComparator"


@pytest.mark.parametrize(
    "a, b, expected",
    [
        ((b"abcd", 1), (b"abcf", 2), (b"abce", 1)),
        ((b"abcd", 1), (b"abce", 2), (b"abcd\0", 1)),
        ((b"abc", 1), (b"zzz", 2), (b"b", MAX_SEQUENCE_NUMBER)),
        ((b"abc", 1), (b"acd", 2), (b"abd", 1)),
        ((b"abc", 1), (b"abe", 2), (b"abd", 1)),
        ((b"", 1), (b"", 2), (b"", 1)),
        ((b"abc", 2), (b"abc", 2), (b"abc", 2)),
    ],
)
def test_internalkeycmp_shortest_sep(a, b, expected):
    cmp = InternalKeyCmp(DefaultCmp())
    result = cmp.find_shortest_sep(make_internal_key(*a), make_internal_key(*b))
    assert result == make_internal_key(*expected)


def test_internalkeycmp_ordering():
    cmp = InternalKeyCmp(DefaultCmp())
    a = make_internal_key(b"abc", 2)
    b = make_internal_key(b"abc", 1)
    c = make_internal_key(b"abd", 3)

    assert cmp.compare(a, b) < 0
    assert cmp.compare(a, a) == 0
    assert cmp.compare(b, a) > 0
    assert cmp.compare(a, c) < 0
    assert cmp.compare_inner(b"xyy", b"xyz") < 0
    assert cmp.compare_inner(b"xyz", b"xyy") > 0


def test_internalkeycmp_short_succ_keeps_sequence():
    cmp = InternalKeyCmp(DefaultCmp())
    succ = cmp.find_short_succ(make_internal_key(b"abcd", 7))
    assert succ == make_internal_key(b"b", 7)


def test_internalkeycmp_id_is_inner_id():
    assert InternalKeyCmp(DefaultCmp()).id() == "leveldb.BytewiseComparator"


def test_internal_key_round_trip():
    key = make_internal_key(b"hello", 42, ValueType.DELETION)
    assert parse_internal_key(key) == (ValueType.DELETION, 42, b"hello")
    assert truncate_to_userkey(key) == b"hello"


def test_parse_short_key_marks_failure():
    assert parse_internal_key(b"abc") == (ValueType.DELETION, 0, b"")


def test_truncate_short_key_raises():
    with pytest.raises(ValueError):
        truncate_to_userkey(b"abc")


def test_memtablekeycmp_rejects_malformed_keys():
    cmp = MemtableKeyCmp(DefaultCmp())
    with pytest.raises(ValueError):
        cmp.compare(b"\x01\x02\x03", b"\x04\x05\x06")


def _memtable_key(user_key, seq, value):
    internal = make_internal_key(user_key, seq)
    return encode_varint(len(internal)) + internal + encode_varint(len(value)) + value


def test_memtablekeycmp_orders_by_internal_key():
    cmp = MemtableKeyCmp(DefaultCmp())
    newer = _memtable_key(b"abc", 5, b"x")
    older = _memtable_key(b"abc", 4, b"yyyy")
    other = _memtable_key(b"abd", 1, b"")
    assert cmp.compare(newer, older) < 0
    assert cmp.compare(older, other) < 0
    assert cmp.compare(newer, newer) == 0


def test_memtablekeycmp_find_functions_raise():
    cmp = MemtableKeyCmp(DefaultCmp())
    with pytest.raises(TypeError):
        cmp.find_shortest_sep(b"a", b"b")
    with pytest.raises(TypeError):
        cmp.find_short_succ(b"a")