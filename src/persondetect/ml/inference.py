"""Inference concurrency layer.

Architecture:
    caller (async) -> asyncio.Semaphore(N) -> ThreadPoolExecutor(N) -> ONNX detection

Each submitted image is its own awaitable unit of work. Callers beyond the
semaphore limit wait up to 5s, then get TimeoutError.
"""

from __future__ import annotations

import asyncio
import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from typing import TYPE_CHECKING, TypeVar

if TYPE_CHECKING:
    from collections.abc import Callable

    from persondetect.config import Settings

logger = logging.getLogger(__name__)

T = TypeVar("T")

SEMAPHORE_TIMEOUT_SECONDS: float = 5.0


class InferencePool:
    """Bounds how many detections run at once and where they run."""

    def __init__(self, settings: Settings) -> None:
        self._semaphore = asyncio.Semaphore(settings.max_concurrent)
        self._executor = ThreadPoolExecutor(
            max_workers=settings.max_concurrent,
            thread_name_prefix="onnx-detection",
        )
        self._active_count: int = 0
        self._queue_depth: int = 0
        self._counter_lock = threading.Lock()

    async def run(self, func: Callable[..., T], *args: object) -> T:
        """Run a synchronous function on the detection thread pool.

        Raises:
            TimeoutError: If no slot frees up within SEMAPHORE_TIMEOUT_SECONDS.
        """
        await self._acquire_slot()

        self._bump_active(1)
        try:
            future = asyncio.get_running_loop().run_in_executor(self._executor, func, *args)
        except BaseException:
            self._release_slot()
            raise

        deferred = False
        try:
            return await asyncio.shield(future)
        except asyncio.CancelledError:
            if not future.done():
                # The worker thread keeps running; hold the slot until it finishes.
                future.add_done_callback(self._release_after)
                deferred = True
            raise
        finally:
            if not deferred:
                self._release_slot()

    def _release_after(self, future: asyncio.Future[object]) -> None:
        if not future.cancelled():
            future.exception()
        self._release_slot()

    def _release_slot(self) -> None:
        self._semaphore.release()
        self._bump_active(-1)

    async def _acquire_slot(self) -> None:
        with self._counter_lock:
            self._queue_depth += 1
        try:
            await asyncio.wait_for(self._semaphore.acquire(), timeout=SEMAPHORE_TIMEOUT_SECONDS)
        except TimeoutError:
            logger.warning("No inference slot free after %.1fs", SEMAPHORE_TIMEOUT_SECONDS)
            raise
        finally:
            with self._counter_lock:
                self._queue_depth -= 1

    def _bump_active(self, delta: int) -> None:
        with self._counter_lock:
            self._active_count += delta

    @property
    def active_count(self) -> int:
        """Number of detections currently running."""
        with self._counter_lock:
            return self._active_count

    @property
    def queue_depth(self) -> int:
        """Number of callers waiting for a slot."""
        with self._counter_lock:
            return self._queue_depth

    def shutdown(self) -> None:
        """Shut down the thread pool executor."""
        self._executor.shutdown(wait=True)
