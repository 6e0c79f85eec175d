import pytest

from ldbkit.cache import Cache, LRUList


def make_key(a, b, c):
    return bytes([a, b, c] + [0] * 13)


H_123 = make_key(1, 2, 3)
H_521 = make_key(1, 2, 4)
H_372 = make_key(3, 4, 5)
H_332 = make_key(6, 3, 1)
H_899 = make_key(8, 2, 1)


def fill(cache):
    cache.insert(H_123, 123)
    cache.insert(H_332, 332)
    cache.insert(H_521, 521)
    cache.insert(H_372, 372)
    cache.insert(H_899, 899)


def test_cache_add_rm():
    cache = Cache(128)
    fill(cache)
    assert cache.count() == 5
    assert cache.get(H_123) == 123
    assert cache.get(H_372) == 372
    assert cache.remove(H_521) == 521
    assert cache.get(H_521) is None
    assert cache.remove(H_521) is None
    assert cache.count() == 4


def test_cache_capacity():
    cache = Cache(3)
    fill(cache)
    assert cache.count() == 3
    assert cache.get(H_123) is None
    assert cache.get(H_332) is None
    assert cache.get(H_521) == 521
    assert cache.get(H_372) == 372
    assert cache.get(H_899) == 899


def test_cache_get_refreshes_entry():
    cache = Cache(2)
    cache.insert(H_123, 1)
    cache.insert(H_332, 2)
    assert cache.get(H_123) == 1
    cache.insert(H_521, 3)
    assert cache.get(H_332) is None
    assert cache.get(H_123) == 1
    assert cache.get(H_521) == 3


def test_cache_reinsert_same_key_replaces():
    cache = Cache(4)
    cache.insert(H_123, 1)
    cache.insert(H_123, 2)
    assert cache.count() == 1
    assert cache.get(H_123) == 2


def test_cache_ids_are_increasing():
    cache = Cache(1)
    assert cache.new_cache_id() == 1
    assert cache.new_cache_id() == 2
    assert cache.cap() == 1


def test_cache_zero_capacity_rejected():
    with pytest.raises(ValueError):
        Cache(0)


def test_cache_key_size_enforced():
    cache = Cache(2)
    with pytest.raises(ValueError):
        cache.insert(b"short", 1)


def test_lru_remove():
    lru = LRUList()
    h_56 = lru.insert(56)
    lru.insert(22)
    lru.insert(223)
    h_244 = lru.insert(244)
    lru.insert(1111)
    h_12 = lru.insert(12)

    assert lru.count() == 6
    assert lru.remove(h_244) == 244
    assert lru.count() == 5
    assert lru.remove(h_12) == 12
    assert lru.count() == 4
    assert lru.remove(h_56) == 56
    assert lru.count() == 3


def test_lru_remove_last_order():
    lru = LRUList()
    for v in (56, 22, 244, 12):
        lru.insert(v)
    assert lru.count() == 4
    assert lru.remove_last() == 56
    assert lru.remove_last() == 22
    assert lru.remove_last() == 244
    assert lru.count() == 1
    assert lru.remove_last() == 12
    assert lru.count() == 0
    assert lru.remove_last() is None


def test_lru_reinsert():
    lru = LRUList()
    handle1 = lru.insert(56)
    handle2 = lru.insert(22)
    handle3 = lru.insert(244)

    assert lru.head() == 244
    lru.reinsert_front(handle1)
    assert lru.head() == 56
    lru.reinsert_front(handle3)
    assert lru.head() == 244
    lru.reinsert_front(handle2)
    assert lru.head() == 22

    assert lru.remove_last() == 56
    assert lru.remove_last() == 244
    assert lru.remove_last() == 22


def test_lru_reinsert_2():
    lru = LRUList()
    handles = [lru.insert(i) for i in range(9)]
    for i, handle in enumerate(handles):
        lru.reinsert_front(handle)
        assert lru.head() == i


def test_lru_edge_cases():
    lru = LRUList()
    handle = lru.insert(3)
    lru.reinsert_front(handle)
    assert lru.head() == 3
    assert lru.remove_last() == 3
    assert lru.remove_last() is None
    assert lru.remove_last() is None


def test_lru_removed_handle_rejected():
    lru = LRUList()
    handle = lru.insert(1)
    assert lru.remove(handle) == 1
    with pytest.raises(ValueError):
        lru.remove(handle)