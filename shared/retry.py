"""
Retry mechanism for resilient operations.

Only use these helpers around operations that are safe to repeat (reads).
A retry never changes the failure it surfaces: when every attempt fails, the
exception from the last attempt is re-raised as is.
"""

import time
from typing import Any, Callable, Optional, Tuple, Type

from shared.logging import get_logger


class RetryConfig:
    """Configuration for retry behavior: attempt limit and the fixed wait between attempts."""

    def __init__(self, max_attempts: int = 3, delay: float = 1.0):
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if delay < 0:
            raise ValueError("delay must not be negative")
        self.max_attempts = max_attempts
        self.delay = delay

    def __repr__(self) -> str:
        return f"RetryConfig(max_attempts={self.max_attempts}, delay={self.delay})"


def retry_call(func: Callable[..., Any],
               *args,
               exceptions: Tuple[Type[BaseException], ...] = (Exception,),
               config: Optional[RetryConfig] = None,
               name: Optional[str] = None,
               sleep: Callable[[float], None] = time.sleep,
               on_retry: Optional[Callable[[int, BaseException], None]] = None,
               **kwargs) -> Any:
    """Call ``func`` and retry it on ``exceptions``.

    Exceptions outside ``exceptions`` propagate on the first occurrence. After
    ``config.max_attempts`` failed attempts the last exception is re-raised
    unchanged.
    """
    if config is None:
        config = RetryConfig()

    operation = name or getattr(func, "__name__", "operation")
    logger = get_logger(f"retry.{operation}")

    attempt = 1
    while True:
        try:
            result = func(*args, **kwargs)
        except exceptions as e:
            if attempt >= config.max_attempts:
                logger.error(
                    "All retry attempts exhausted",
                    attempt=attempt,
                    max_attempts=config.max_attempts,
                    function=operation,
                    error=str(e)
                )
                raise

            logger.warning(
                "Retry attempt failed, waiting before next attempt",
                attempt=attempt,
                delay=config.delay,
                function=operation,
                error=str(e)
            )
            if on_retry is not None:
                on_retry(attempt, e)
            sleep(config.delay)
            attempt += 1
            continue

        if attempt > 1:
            logger.info("Retry succeeded", attempt=attempt, function=operation)
        return result
