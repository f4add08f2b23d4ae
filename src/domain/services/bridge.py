"""Sync/async bridging for store calls.

Every repository operation has a blocking and a coroutine form, but a store
implements only one of them.  The bridge derives the other:

  run_sync  : blocking form of a coroutine.  The coroutine is scheduled on
              the bridge's own event loop, which runs in a dedicated daemon
              thread, and the caller blocks on the concurrent future.  The
              caller's thread (and any event loop it is running) is never
              needed to complete the work, so blocking cannot deadlock.
              Calling run_sync from the bridge loop thread itself would
              wait on its own loop and is rejected.

  run_async : coroutine form of a blocking call.  The call is offloaded to
              a thread pool via loop.run_in_executor; the caller's loop only
              schedules and awaits.

  run_coroutine : coroutine form of a coroutine store call.  It runs on the
              bridge loop too, so an async store only ever sees one loop
              whichever form the caller used.

Exceptions cross the bridge unchanged: the same exception object is
re-raised, with its original type, message and __cause__.
"""

from __future__ import annotations

import asyncio
import logging
import threading
from collections.abc import Awaitable, Callable
from concurrent.futures import ThreadPoolExecutor
from typing import Any, TypeVar

from src.domain.exceptions import OperationCancelled

logger = logging.getLogger(__name__)

R = TypeVar("R")


class CancellationToken:
    """Cooperative cancellation flag passed through to store calls.

    The token is checked before a store call starts; a call already running
    on the backend is not interrupted.
    """

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise OperationCancelled("operation cancelled before reaching the store")


class SyncAsyncBridge:
    def __init__(self, max_workers: int | None = None, name: str = "repository-bridge") -> None:
        self._name = name
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix=name)
        self._loop: asyncio.AbstractEventLoop | None = None
        self._thread: threading.Thread | None = None
        self._lock = threading.Lock()
        self._closed = False

    def _ensure_loop(self) -> asyncio.AbstractEventLoop:
        with self._lock:
            if self._closed:
                raise RuntimeError(f"{self._name} is closed")
            if self._loop is None:
                loop = asyncio.new_event_loop()
                ready = threading.Event()

                def _serve() -> None:
                    asyncio.set_event_loop(loop)
                    loop.call_soon(ready.set)
                    loop.run_forever()

                thread = threading.Thread(target=_serve, name=f"{self._name}-loop", daemon=True)
                thread.start()
                ready.wait()
                self._loop, self._thread = loop, thread
                logger.debug("Started bridge event loop thread %s", thread.name)
            return self._loop

    def run_sync(self, fn: Callable[..., Awaitable[R]], /, *args: Any, **kwargs: Any) -> R:
        """Run coroutine function fn to completion and return its result."""
        loop = self._ensure_loop()
        if threading.current_thread() is self._thread:
            raise RuntimeError(
                "run_sync called from the bridge loop thread; this would deadlock. "
                "Use the async form of the operation instead."
            )
        future = asyncio.run_coroutine_threadsafe(fn(*args, **kwargs), loop)
        return future.result()

    async def run_coroutine(
        self, fn: Callable[..., Awaitable[R]], /, *args: Any, **kwargs: Any
    ) -> R:
        """Await coroutine function fn on the bridge loop from any caller loop.

        Async-native stores are only ever driven from the bridge loop, so
        loop-bound connections (asyncpg) pooled by one form are safe to reuse
        from the other.  Cancelling the awaiting task cancels the work.
        """
        loop = self._ensure_loop()
        if threading.current_thread() is self._thread:
            return await fn(*args, **kwargs)
        future = asyncio.run_coroutine_threadsafe(fn(*args, **kwargs), loop)
        return await asyncio.wrap_future(future)

    async def run_async(
        self,
        fn: Callable[..., R],
        /,
        *args: Any,
        cancellation: CancellationToken | None = None,
        **kwargs: Any,
    ) -> R:
        """Run blocking fn on the worker pool and await its result."""
        if self._closed:
            raise RuntimeError(f"{self._name} is closed")

        def _call() -> R:
            if cancellation is not None:
                cancellation.raise_if_cancelled()
            return fn(*args, **kwargs)

        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(self._executor, _call)

    def close(self) -> None:
        with self._lock:
            if self._closed:
                return
            self._closed = True
            loop, thread = self._loop, self._thread
        if loop is not None:
            loop.call_soon_threadsafe(loop.stop)
            if thread is not None:
                thread.join()
            loop.close()
        self._executor.shutdown(wait=True)


_default_bridge: SyncAsyncBridge | None = None
_default_lock = threading.Lock()


def default_bridge() -> SyncAsyncBridge:
    """Process-wide bridge, created on first use."""
    global _default_bridge
    with _default_lock:
        if _default_bridge is None:
            _default_bridge = SyncAsyncBridge()
        return _default_bridge
