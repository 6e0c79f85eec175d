# ldbkit

Pure-Python building blocks for a LevelDB-style key-value store. The package has no dependencies outside the standard library.

## Modules

- `ldbkit.cmp`: comparators and internal keys.
  - `Comparator` is the interface. Its methods are `compare`, `find_shortest_sep`, `find_short_succ` and `id`.
  - `DefaultCmp` orders keys bytewise. Its id is `"leveldb.BytewiseComparator"`.
  - `InternalKeyCmp` orders internal keys by user key and then by descending sequence number. `compare_inner` compares two user keys with the wrapped comparator.
  - `MemtableKeyCmp` orders length-prefixed memtable entries. Its `find_*` methods raise `TypeError`.
  - `make_internal_key(user_key, seq, value_type)` adds an 8-byte tag to a user key. `parse_internal_key(key)` returns `(ValueType, seq, user_key)`, and gives `(DELETION, 0, b"")` for a key it cannot parse. `truncate_to_userkey(key)` removes the tag.
- `ldbkit.blockhandle`: varint coding and block handles.
  - `encode_varint` and `decode_varint(data, offset)` do the varint coding. `decode_varint` returns `(value, bytes_read)`.
  - `BlockHandle` is a frozen `(offset, size)` pair. It has `encode()` and the class method `BlockHandle.decode(data)`.
- `ldbkit.compressor`: the `Compressor` interface, with `encode` and `decode`, and these implementations:
  - `NoneCompressor` (ID 0) leaves data unchanged.
  - `SnappyCompressor` (ID 1) uses the raw Snappy format.
  - `ZlibCompressor(level)` writes zlib streams.
  - `RawZlibCompressor(level)` writes deflate streams without a header.

  The zlib compressors take a level from 0 to 10; level 10 is treated as 9. Decoding bad input raises `CompressionError`.
- `ldbkit.cache`: least-recently-used structures.
  - `LRUList` is a doubly linked list that hands out handles.
  - `Cache(capacity)` is an LRU cache whose keys are exactly 16 bytes long.
- `ldbkit.block_builder`: `BlockBuilder(cmp, restart_interval)` writes sorted, prefix-compressed blocks with restart points. Adding a key that is not greater than the previous key raises `ValueError`.
- `ldbkit.block`: `Block(contents, cmp)` reads a block. `Block.iter()` returns a `BlockIter`, which supports `advance`, `prev`, `seek`, `seek_to_first`, `seek_to_last`, `reset`, `valid` and `current`. A `BlockIter` is also a Python iterator that yields `(key, value)` pairs.
- `ldbkit.db_iter`: `DBIterator(cmp, source, sequence, read_sampler)` shows the user keys visible at a sequence number, with their newest values. It reads an internal-key iterator and hides deleted keys and older versions. It moves in both directions and can seek. If `read_sampler` is given, it is called with an internal key about once per `READ_BYTES_PERIOD` bytes read.
- `ldbkit.asyncdb`: `AsyncDB(db)` runs the operations of a synchronous database object on a single worker thread, in order. Coroutines await the results.

## Installing

```
pip install .
```

To install with the test extras and run the tests:

```
pip install .[test]
pytest
```

## Building and reading a block

```python
from ldbkit.cmp import DefaultCmp
from ldbkit.block_builder import BlockBuilder
from ldbkit.block import Block

builder = BlockBuilder(DefaultCmp(), 16)
builder.add(b"apple", b"red")
builder.add(b"banana", b"yellow")
contents = builder.finish()

it = Block(contents, DefaultCmp()).iter()
for key, value in it:
    print(key, value)

it.seek(b"b")
print(it.current())   # (b'banana', b'yellow')
```

## An LRU cache

```python
from ldbkit.cache import Cache

def key(n):
    return bytes([n]) + bytes(15)   # cache keys are 16 bytes

cache = Cache(2)
cache.insert(key(1), "one")
cache.insert(key(2), "two")
cache.insert(key(3), "three")       # evicts key(1)
assert cache.get(key(1)) is None
assert cache.get(key(3)) == "three"
```

## Asynchronous access

`AsyncDB` works with any object that has the following methods. `close` is optional and is called when the `AsyncDB` is closed.

- `put`
- `delete`
- `write`
- `flush`
- `get`
- `get_at`
- `get_snapshot`
- `compact_range`
- `close`

```python
from ldbkit.asyncdb import AsyncDB

async with AsyncDB(db) as adb:
    await adb.put(b"Hello", b"World")
    snap = await adb.get_snapshot()
    await adb.delete(b"Hello")
    assert await adb.get_at(snap, b"Hello") == b"World"
    await adb.drop_snapshot(snap)
```

- Snapshots are handed out as `SnapshotRef` values and must be released with `drop_snapshot`.
- Using a snapshot after it has been dropped raises `AsyncDBError`.
- Any request made after `close` raises `AsyncDBError`.
- Errors raised by the database itself are raised again from the awaiting coroutine.

## What it does not do

The package contains no database engine. It has none of the following:

- on-disk storage
- write-ahead log
- memtable
- table files or table cache
- write batches
- version management
- compaction

It also provides no server and no command-line tool. `DBIterator` and `AsyncDB` work on objects that you supply: an internal-key iterator and a database object.