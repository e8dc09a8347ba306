"""Cancellation token shared by the CLI, signal handlers and the detector loop."""

from __future__ import annotations

import asyncio
import signal
import threading
from typing import Any


class CancellationToken:
    """Thread-safe cancel flag that coroutines can await.

    ``cancel()`` may be called from any thread or from a signal handler; every
    coroutine blocked in :meth:`wait` is woken on its own event loop.
    """

    def __init__(self) -> None:
        self._event = threading.Event()
        # Re-entrant: a signal handler can call cancel() while wait() holds it
        self._lock = threading.RLock()
        self._waiters: list[tuple[asyncio.AbstractEventLoop, asyncio.Event]] = []
        self.reason: str | None = None
        self._handlers: dict[int, Any] = {}

    @property
    def is_cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self, reason: str = "cancelled") -> None:
        with self._lock:
            if self._event.is_set():
                return
            self.reason = reason
            self._event.set()
            waiters = list(self._waiters)
        for loop, event in waiters:
            if not loop.is_closed():
                loop.call_soon_threadsafe(event.set)

    async def wait(self) -> str | None:
        """Block until cancelled; returns the cancel reason."""
        event = asyncio.Event()
        waiter = (asyncio.get_running_loop(), event)
        with self._lock:
            if self._event.is_set():
                return self.reason
            self._waiters.append(waiter)
        try:
            await event.wait()
        finally:
            with self._lock:
                self._waiters.remove(waiter)
        return self.reason

    def install(self) -> None:
        """Cancel on the first SIGINT / SIGTERM; a second one restores defaults and interrupts.

        No-op off the main thread, where handlers cannot be installed.
        """
        if threading.current_thread() is not threading.main_thread():
            return

        def handler(signum: int, frame: object) -> None:
            if self._event.is_set():
                self.uninstall()
                raise KeyboardInterrupt
            self.cancel(signal.Signals(signum).name)

        for signum in (signal.SIGINT, signal.SIGTERM):
            self._handlers[signum] = signal.getsignal(signum)
            signal.signal(signum, handler)

    def uninstall(self) -> None:
        """Restore the handlers replaced by :meth:`install`."""
        if threading.current_thread() is not threading.main_thread():
            return
        while self._handlers:
            signum, original = self._handlers.popitem()
            signal.signal(signum, original if original is not None else signal.SIG_DFL)


def worker_init() -> None:
    """Process-pool initializer: ignore SIGINT so only the coordinator reacts to Ctrl+C."""
    signal.signal(signal.SIGINT, signal.SIG_IGN)
