"""
Worker-pool adapter that turns blocking store calls into awaitables and
async element streams.

Every call runs on a bounded thread pool, never on the event loop. Cancelling
the returned future, or abandoning a stream, stops delivery to the consumer
only: a store call that is already running on a worker finishes anyway and its
result is discarded. The store has no cancellation hook to forward to.
"""

import asyncio
import functools
from concurrent.futures import ThreadPoolExecutor
from typing import Any, AsyncIterator, Callable, Iterable, Optional, TYPE_CHECKING, TypeVar

from shared.logging import get_logger

if TYPE_CHECKING:  # pragma: no cover - imported for typing only
    from shared.metrics import MetricsCollector


T = TypeVar("T")


class AsyncStreamAdapter:
    """Dispatch blocking calls to a worker pool and expose their results asynchronously."""

    def __init__(self,
                 max_workers: int = 8,
                 metrics: Optional["MetricsCollector"] = None,
                 thread_name_prefix: str = "catalog-store"):
        self.max_workers = max_workers
        self.metrics = metrics
        self.logger = get_logger("catalog.reactive.adapter")
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix=thread_name_prefix)

    def call_async(self, fn: Callable[..., T], *args, **kwargs) -> "asyncio.Future[T]":
        """Run ``fn`` on the worker pool and return a future for its result or failure.

        Must be called from a running event loop.
        """
        loop = asyncio.get_running_loop()
        return loop.run_in_executor(self._executor, functools.partial(self._tracked, fn, *args, **kwargs))

    def single_or_absent(self, fn: Callable[..., Optional[T]], *args, **kwargs) -> "asyncio.Future[Optional[T]]":
        """Like ``call_async`` for calls whose result may be absent; absence resolves to ``None``."""
        return self.call_async(fn, *args, **kwargs)

    async def stream_async(self, fn: Callable[..., Iterable[T]], *args, name: str = "stream", **kwargs) -> AsyncIterator[T]:
        """Run ``fn`` on the worker pool, then yield its elements in order.

        A failure raised by ``fn`` ends the stream with that failure before any
        element is yielded.
        """
        try:
            items = await self.call_async(fn, *args, **kwargs)
        except Exception as e:
            self.logger.error("Stream source failed", stream=name, error=str(e))
            raise

        emitted = 0
        for item in items:
            yield item
            emitted += 1
            if self.metrics:
                self.metrics.increment_counter("stream_elements_total", stream=name)

        self.logger.info("Stream completed", stream=name, elements=emitted)

    async def delayed_stream(self, stream: AsyncIterator[T], interval: float) -> AsyncIterator[T]:
        """Re-emit ``stream`` with ``interval`` seconds before each element.

        Elements are pulled one at a time, so a slow consumer slows the source
        instead of growing a buffer. A failure from the source propagates as
        soon as it is raised.
        """
        try:
            async for item in stream:
                await asyncio.sleep(interval)
                yield item
        finally:
            aclose = getattr(stream, "aclose", None)
            if aclose is not None:
                await aclose()

    def shutdown(self, wait: bool = False) -> None:
        """Stop accepting work. Calls already running are left to finish."""
        self._executor.shutdown(wait=wait, cancel_futures=True)
        self.logger.info("Worker pool shut down", max_workers=self.max_workers)

    def _tracked(self, fn: Callable[..., T], *args, **kwargs) -> T:
        if self.metrics:
            self.metrics.adjust_gauge("worker_tasks_in_flight", 1)
        try:
            return fn(*args, **kwargs)
        finally:
            if self.metrics:
                self.metrics.adjust_gauge("worker_tasks_in_flight", -1)
