"""Building blocks of a LevelDB-style key-value store: comparators, block format, compressors, an LRU cache, a snapshot iterator and an asyncio front end."""

__version__ = "0.1.0"

__all__ = [
    "asyncdb",
    "block",
    "block_builder",
    "blockhandle",
    "cache",
    "cmp",
    "compressor",
    "db_iter",
]