"""Asynchronous access to a database through a dedicated worker thread."""

from __future__ import annotations

import asyncio
import itertools
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from typing import Any, Callable, Optional, Protocol, TypeVar

R = TypeVar("R")

UNKNOWN_SNAPSHOT_MESSAGE = "Unknown snapshot reference: this is a bug"
CLOSED_MESSAGE = "database is closed"


class AsyncDBError(Exception):
    """The asynchronous layer could not carry out a request."""


@dataclass(frozen=True)
class SnapshotRef:
    """A handle to a snapshot held by the worker thread.

    It must be released explicitly with ``AsyncDB.drop_snapshot``.
    """

    id: int


class Database(Protocol):
    """The synchronous database operations that AsyncDB forwards."""

    def put(self, key: bytes, val: bytes) -> None: ...

    def delete(self, key: bytes) -> None: ...

    def write(self, batch: Any, sync: bool) -> None: ...

    def flush(self) -> None: ...

    def get(self, key: bytes) -> Optional[bytes]: ...

    def get_at(self, snapshot: Any, key: bytes) -> Optional[bytes]: ...

    def get_snapshot(self) -> Any: ...

    def compact_range(self, start: bytes, end: bytes) -> None: ...


class AsyncDB:
    """Runs every operation of a database on one worker thread, in order.

    Errors raised by the database are re-raised from the awaiting coroutine.
    Requests made after ``close`` raise AsyncDBError.
    """

    def __init__(self, db: Database) -> None:
        self._db = db
        self._executor = ThreadPoolExecutor(
            max_workers=1, thread_name_prefix="ldbkit-asyncdb"
        )
        self._snapshots: dict[int, Any] = {}
        self._counter = itertools.count()
        self._closed = False

    async def __aenter__(self) -> AsyncDB:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        if not self._closed:
            await self.close()

    def _submit(self, fn: Callable[..., R], *args: Any) -> Future[R]:
        if self._closed:
            raise AsyncDBError(CLOSED_MESSAGE)
        try:
            return self._executor.submit(fn, *args)
        except RuntimeError as exc:
            raise AsyncDBError(str(exc)) from exc

    async def _call(self, fn: Callable[..., R], *args: Any) -> R:
        return await asyncio.wrap_future(self._submit(fn, *args))

    # Worker-side operations; these only ever run on the worker thread.

    def _close_in_worker(self) -> None:
        self._snapshots.clear()
        close = getattr(self._db, "close", None)
        if close is not None:
            close()

    def _get_at_in_worker(self, snapshot: SnapshotRef, key: bytes) -> Optional[bytes]:
        held = self._snapshots.get(snapshot.id)
        if held is None:
            raise AsyncDBError(UNKNOWN_SNAPSHOT_MESSAGE)
        return self._db.get_at(held, key)

    def _get_snapshot_in_worker(self) -> SnapshotRef:
        ref = SnapshotRef(next(self._counter))
        self._snapshots[ref.id] = self._db.get_snapshot()
        return ref

    def _drop_snapshot_in_worker(self, snapshot: SnapshotRef) -> None:
        self._snapshots.pop(snapshot.id, None)

    # Public API.

    async def close(self) -> None:
        """Finish pending requests, release snapshots and close the database."""
        future = self._submit(self._close_in_worker)
        self._closed = True
        try:
            await asyncio.wrap_future(future)
        finally:
            self._executor.shutdown(wait=False)

    async def put(self, key: bytes, val: bytes) -> None:
        await self._call(self._db.put, bytes(key), bytes(val))

    async def delete(self, key: bytes) -> None:
        await self._call(self._db.delete, bytes(key))

    async def write(self, batch: Any, sync: bool) -> None:
        await self._call(self._db.write, batch, sync)

    async def flush(self) -> None:
        await self._call(self._db.flush)

    async def get(self, key: bytes) -> Optional[bytes]:
        return await self._call(self._db.get, bytes(key))

    async def get_at(self, snapshot: SnapshotRef, key: bytes) -> Optional[bytes]:
        """Read ``key`` as it was when ``snapshot`` was taken."""
        return await self._call(self._get_at_in_worker, snapshot, bytes(key))

    async def get_snapshot(self) -> SnapshotRef:
        return await self._call(self._get_snapshot_in_worker)

    async def drop_snapshot(self, snapshot: SnapshotRef) -> None:
        """Release a snapshot; it cannot be used afterwards."""
        await self._call(self._drop_snapshot_in_worker, snapshot)

    async def compact_range(self, start: bytes, end: bytes) -> None:
        await self._call(self._db.compact_range, bytes(start), bytes(end))