"""A least-recently-used cache keyed by fixed-size byte strings."""

from __future__ import annotations

from typing import Generic, Optional, TypeVar

T = TypeVar("T")

CACHE_KEY_SIZE = 16


class _Node(Generic[T]):
    __slots__ = ("prev", "next", "data", "linked")

    def __init__(self, data: Optional[T] = None) -> None:
        self.prev: _Node[T] = self
        self.next: _Node[T] = self
        self.data = data
        self.linked = False


class LRUList(Generic[T]):
    """Doubly linked list ordered from most to least recently used.

    ``insert`` returns a handle that can later be passed to ``remove`` and
    ``reinsert_front``.
    """

    def __init__(self) -> None:
        self._sentinel: _Node[T] = _Node()
        self._count = 0

    def _link_front(self, node: _Node[T]) -> None:
        first = self._sentinel.next
        node.prev = self._sentinel
        node.next = first
        first.prev = node
        self._sentinel.next = node
        node.linked = True

    @staticmethod
    def _unlink(node: _Node[T]) -> None:
        node.prev.next = node.next
        node.next.prev = node.prev
        node.prev = node
        node.next = node
        node.linked = False

    @staticmethod
    def _check(handle: _Node[T]) -> None:
        if not isinstance(handle, _Node) or not handle.linked:
            raise ValueError("handle does not refer to an element of this list")

    def insert(self, elem: T) -> _Node[T]:
        """Insert an element at the front (most recently used position)."""
        node = _Node(elem)
        self._link_front(node)
        self._count += 1
        return node

    def remove_last(self) -> Optional[T]:
        """Remove and return the least recently used element, or None if empty."""
        if self._count == 0:
            return None
        last = self._sentinel.prev
        self._unlink(last)
        self._count -= 1
        return last.data

    def remove(self, handle: _Node[T]) -> T:
        """Remove the element behind ``handle`` and return it."""
        self._check(handle)
        self._unlink(handle)
        self._count -= 1
        return handle.data  # type: ignore[return-value]

    def reinsert_front(self, handle: _Node[T]) -> None:
        """Move the element behind ``handle`` to the front."""
        self._check(handle)
        self._unlink(handle)
        self._link_front(handle)

    def count(self) -> int:
        return self._count

    def head(self) -> Optional[T]:
        """Return the most recently used element, or None if empty."""
        if self._count == 0:
            return None
        return self._sentinel.next.data

    def __len__(self) -> int:
        return self._count


class Cache(Generic[T]):
    """Fixed-capacity cache evicting the least recently used entry."""

    def __init__(self, capacity: int) -> None:
        if capacity <= 0:
            raise ValueError("cache capacity must be positive")
        self._list: LRUList[bytes] = LRUList()
        self._map: dict[bytes, tuple[T, _Node[bytes]]] = {}
        self._cap = capacity
        self._id = 0

    @staticmethod
    def _key(key: bytes) -> bytes:
        key = bytes(key)
        if len(key) != CACHE_KEY_SIZE:
            raise ValueError(f"cache keys are {CACHE_KEY_SIZE} bytes long")
        return key

    def new_cache_id(self) -> int:
        """Return an id unique to this cache, for partitioning it among users."""
        self._id += 1
        return self._id

    def count(self) -> int:
        return self._list.count()

    def cap(self) -> int:
        return self._cap

    def insert(self, key: bytes, elem: T) -> None:
        """Insert an element, evicting the least recently used one when full."""
        key = self._key(key)
        if key in self._map:
            _, old_handle = self._map.pop(key)
            self._list.remove(old_handle)
        if self._list.count() >= self._cap:
            evicted = self._list.remove_last()
            if evicted is None or self._map.pop(evicted, None) is None:
                raise RuntimeError("cache list and map are out of sync")
        handle = self._list.insert(key)
        self._map[key] = (elem, handle)

    def get(self, key: bytes) -> Optional[T]:
        """Return the element and mark it as recently used, or None if absent."""
        entry = self._map.get(self._key(key))
        if entry is None:
            return None
        elem, handle = entry
        self._list.reinsert_front(handle)
        return elem

    def remove(self, key: bytes) -> Optional[T]:
        """Remove an element and return it, or None if absent."""
        entry = self._map.pop(self._key(key), None)
        if entry is None:
            return None
        elem, handle = entry
        self._list.remove(handle)
        return elem