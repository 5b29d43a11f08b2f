"""
boarbot.database.queue — Keyed Task Queue
==========================================

Every read-modify-write of a record runs as a unit of work on this queue,
keyed by the record it touches.  Work sharing a key runs strictly one at a
time in submission order; work on different keys interleaves freely on the
event loop.

How it works:
    The queue keeps one *tail* per key: an internal task that settles once
    the previous tail and the newest work have both settled.  Submitting
    work creates a task that waits for the current tail (whatever its
    outcome) and then runs the work; a new tail is chained behind both.
    Cancelling a waiting work task therefore never lets the next item start
    early.  When the last tail of a key settles, the key is dropped.

Keys are any hashable value.  Composite keys are tuples, e.g.
``("global", "powerups")``, so two unrelated operations can never collide
through string concatenation.

Usage::

    queue = KeyedTaskQueue()

    async def bump():
        record = store.read(rid)
        record["count"] += 1
        store.write(rid, record)

    await queue.enqueue(rid.key, bump)
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Hashable
from typing import TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

Work = Callable[[], Awaitable[T]]


class KeyedTaskQueue:
    """FIFO-per-key serializer for asynchronous units of work."""

    def __init__(self) -> None:
        self._tails: dict[Hashable, asyncio.Task] = {}

    def submit(self, key: Hashable, work: Work[T]) -> asyncio.Task[T]:
        """Schedule *work* behind everything already queued under *key*.

        Returns the task running the work.  Nobody has to await it; its
        outcome is the work's own result or exception.
        """
        previous = self._tails.get(key)
        task = asyncio.ensure_future(self._run_after(previous, work))
        tail = asyncio.ensure_future(self._settle(previous, task))
        self._tails[key] = tail
        tail.add_done_callback(lambda done: self._release(key, done))
        return task

    async def enqueue(self, key: Hashable, work: Work[T]) -> T:
        """Run *work* under *key* and return its result.

        A failure of earlier work under the same key does not affect this
        call.  Cancelling the caller does not cancel the queued work, which
        still runs to completion before the next item of *key* starts.
        """
        return await asyncio.shield(self.submit(key, work))

    def pending(self, key: Hashable) -> bool:
        """Return True while *key* has queued or running work."""
        return key in self._tails

    def __len__(self) -> int:
        return len(self._tails)

    # -------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------
    @staticmethod
    async def _run_after(previous: asyncio.Task | None, work: Work[T]) -> T:
        if previous is not None and not previous.done():
            # asyncio.wait never raises the awaited task's exception
            await asyncio.wait([previous])
        return await work()

    @staticmethod
    async def _settle(previous: asyncio.Task | None, task: asyncio.Task) -> None:
        # Holds the key until both the predecessor and this item are done
        await asyncio.wait([t for t in (previous, task) if t is not None])

    def _release(self, key: Hashable, task: asyncio.Task) -> None:
        if self._tails.get(key) is task:
            del self._tails[key]
            logger.debug("Queue key %r drained", key)
