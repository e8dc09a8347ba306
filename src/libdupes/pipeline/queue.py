"""FIFO admission queue capping how many tasks run at once."""

from __future__ import annotations

import asyncio
import logging
from collections import deque
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any, Generic, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(eq=False)
class QueuedTask(Generic[T]):
    """Handle for an enqueued task; await ``result`` for its value (None on failure)."""

    key: str
    factory: Callable[[], Awaitable[T]]
    result: asyncio.Future[T | None] = field(repr=False)


class BoundedTaskQueue:
    """Runs at most ``concurrency`` tasks at a time, the rest wait in FIFO order.

    Admission bookkeeping runs on the event loop thread, so the in-flight
    counter needs no lock. A task that raises is logged and resolves to None;
    the queue carries on with the remaining tasks.
    """

    def __init__(self, concurrency: int) -> None:
        self.concurrency = max(1, concurrency)
        self._pending: deque[QueuedTask[Any]] = deque()
        self._running = 0
        self._tasks: set[asyncio.Task[None]] = set()

    @classmethod
    def for_parallelism(cls, parallelism: int) -> BoundedTaskQueue:
        """Leave one slot of the available parallelism to the coordinator."""
        return cls(max(1, parallelism - 1))

    @property
    def running(self) -> int:
        return self._running

    @property
    def waiting(self) -> int:
        return len(self._pending)

    def enqueue(self, key: str, factory: Callable[[], Awaitable[T]]) -> QueuedTask[T]:
        """Queue ``factory``; it is called once a slot frees up."""
        loop = asyncio.get_running_loop()
        task: QueuedTask[T] = QueuedTask(key=key, factory=factory, result=loop.create_future())
        self._pending.append(task)
        self._dispatch()
        return task

    def cancel_pending(self) -> int:
        """Drop tasks that have not started yet. Running tasks are left alone."""
        dropped = 0
        while self._pending:
            task = self._pending.popleft()
            task.result.cancel()
            dropped += 1
        return dropped

    def _dispatch(self) -> None:
        while self._pending and self._running < self.concurrency:
            task = self._pending.popleft()
            self._running += 1
            runner = asyncio.ensure_future(self._run(task))
            self._tasks.add(runner)
            runner.add_done_callback(self._tasks.discard)

    async def _run(self, task: QueuedTask[Any]) -> None:
        try:
            value = await task.factory()
        except asyncio.CancelledError:
            task.result.cancel()
            raise
        except Exception:
            logger.exception("Queued task %s failed", task.key)
            value = None
        finally:
            self._running -= 1
            self._dispatch()
        if not task.result.done():
            task.result.set_result(value)
