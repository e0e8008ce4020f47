"""
Retrying executor for record store reads.

Reads that fail with ``TransientStoreError`` are retried with a fixed delay
between attempts; any other failure surfaces on the first occurrence. Writes
must not go through this executor: they are not known to be idempotent.
"""

import time
from typing import Any, Callable, Optional, TYPE_CHECKING

from shared.errors import TransientStoreError
from shared.logging import get_logger
from shared.retry import RetryConfig, retry_call

if TYPE_CHECKING:  # pragma: no cover - imported for typing only
    from shared.metrics import MetricsCollector


DEFAULT_MAX_ATTEMPTS = 3
DEFAULT_DELAY_SECONDS = 1.0


class ResilientQueryExecutor:
    """Run read-only store operations under a fixed-delay retry policy."""

    def __init__(self,
                 max_attempts: int = DEFAULT_MAX_ATTEMPTS,
                 delay_seconds: float = DEFAULT_DELAY_SECONDS,
                 metrics: Optional["MetricsCollector"] = None,
                 sleep: Callable[[float], None] = time.sleep):
        self.config = RetryConfig(max_attempts=max_attempts, delay=delay_seconds)
        self.metrics = metrics
        self.logger = get_logger("catalog.resilience.executor")
        self._sleep = sleep

    def execute(self, operation: Callable[..., Any], *args, name: Optional[str] = None, **kwargs) -> Any:
        """Call ``operation(*args, **kwargs)``, retrying transient store failures."""
        operation_name = name or getattr(operation, "__name__", "query")

        def on_retry(attempt: int, error: BaseException) -> None:
            if self.metrics:
                self.metrics.increment_counter("query_retries_total", operation=operation_name)

        if self.metrics:
            with self.metrics.time_operation("query_duration_seconds", operation=operation_name):
                return self._run(operation, args, kwargs, operation_name, on_retry)
        return self._run(operation, args, kwargs, operation_name, on_retry)

    def _run(self, operation, args, kwargs, operation_name, on_retry) -> Any:
        return retry_call(
            operation,
            *args,
            exceptions=(TransientStoreError,),
            config=self.config,
            name=operation_name,
            sleep=self._sleep,
            on_retry=on_retry,
            **kwargs
        )
