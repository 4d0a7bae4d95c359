"""Mutation queue — one update at a time, strictly in submission order.

enqueue() hands back an asyncio.Future right away. Entries run as asyncio
tasks; the next entry starts only after the previous one has finished,
whether it succeeded or raised. A single in-progress flag guards against
re-entrant advancement: while a cycle runs, _advance() from outside is a
no-op and the running cycle picks up the next entry itself.
"""

from __future__ import annotations

import asyncio
import logging
from collections import deque
from typing import Any, Awaitable, Callable, Generic, TypeVar

logger = logging.getLogger("statecrate.queue")

T = TypeVar("T")

Task = Callable[[], Awaitable[T]]


class _Entry(Generic[T]):
    __slots__ = ("task", "future")

    def __init__(self, task: Task[T], future: asyncio.Future[T]) -> None:
        self.task = task
        self.future = future


class MutationQueue:
    """Serializes async tasks into a FIFO with guaranteed advancement."""

    def __init__(self) -> None:
        self._pending: deque[_Entry[Any]] = deque()
        self._in_progress = False
        self._current: asyncio.Task[None] | None = None
        self._idle: asyncio.Event | None = None

    @property
    def pending(self) -> int:
        """Entries waiting to start (excludes the running one)."""
        return len(self._pending)

    @property
    def busy(self) -> bool:
        return self._in_progress

    def enqueue(self, task: Task[T]) -> asyncio.Future[T]:
        """Queue task. Returns a future for its result or its error.

        Must be called with a running event loop.
        """
        loop = asyncio.get_running_loop()
        future: asyncio.Future[T] = loop.create_future()
        self._pending.append(_Entry(task, future))
        self._advance()
        return future

    async def join(self) -> None:
        """Wait until every queued entry has finished."""
        while self._in_progress or self._pending:
            if self._idle is None:
                self._idle = asyncio.Event()
            await self._idle.wait()

    def _advance(self, resume: bool = False) -> None:
        if self._in_progress and not resume:
            return

        if not self._pending:
            self._in_progress = False
            self._current = None
            if self._idle is not None:
                self._idle.set()
                self._idle = None
            return

        self._in_progress = True
        entry = self._pending.popleft()
        self._current = entry.future.get_loop().create_task(self._run(entry))

    async def _run(self, entry: _Entry[Any]) -> None:
        try:
            result = await entry.task()
        except Exception as exc:
            logger.debug("Queued task failed: %r", exc)
            if not entry.future.done():
                entry.future.set_exception(exc)
        else:
            if not entry.future.done():
                entry.future.set_result(result)
        finally:
            self._advance(resume=True)
