"""Retry helpers with exponential backoff.

`with_retry` wraps coroutines, `retry_sync` wraps plain callables. Both retry
only the exceptions selected by `retry_on` / `retry_if` and raise
`RetryExhaustedError` once every attempt has failed.
"""

from __future__ import annotations

import asyncio
import functools
import logging
import random
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional, TypeVar

from sqlalchemy import exc as sa_exc

from .exceptions import NodesError

logger = logging.getLogger(__name__)

T = TypeVar("T")

RetryPredicate = Callable[[BaseException], bool]
RetryCallback = Callable[[int, BaseException], None]


@dataclass
class RetryConfig:
    max_attempts: int = 3
    base_delay: float = 0.1
    max_delay: float = 60.0
    exponential_base: float = 2.0
    jitter: float = 0.1

    def calculate_delay(self, attempt: int) -> float:
        """Delay before the retry that follows `attempt` (1-based)."""
        delay = self.base_delay * (self.exponential_base ** (attempt - 1))
        delay = min(delay, self.max_delay)
        if self.jitter:
            delay *= 1 + random.uniform(-self.jitter, self.jitter)
        return max(delay, 0.0)


class RetryExhaustedError(Exception):
    def __init__(self, attempts: int, last_exception: BaseException):
        super().__init__(f"Gave up after {attempts} attempts: {last_exception!r}")
        self.attempts = attempts
        self.last_exception = last_exception


def _should_retry(
    exc: BaseException,
    retry_on: tuple[type[BaseException], ...],
    retry_if: Optional[RetryPredicate],
) -> bool:
    if not isinstance(exc, retry_on):
        return False
    if retry_if is not None and not retry_if(exc):
        return False
    return True


async def call_with_retry(
    fn: Callable[[], Awaitable[T]],
    *,
    config: RetryConfig,
    retry_on: tuple[type[BaseException], ...] = (Exception,),
    retry_if: Optional[RetryPredicate] = None,
    on_retry: Optional[RetryCallback] = None,
) -> T:
    attempt = 0
    while True:
        attempt += 1
        try:
            return await fn()
        except Exception as exc:
            if not _should_retry(exc, retry_on, retry_if):
                raise
            if attempt >= config.max_attempts:
                raise RetryExhaustedError(attempt, exc) from exc
            if on_retry is not None:
                on_retry(attempt, exc)
            await asyncio.sleep(config.calculate_delay(attempt))


def with_retry(
    *,
    max_attempts: int = 3,
    base_delay: float = 0.1,
    max_delay: float = 60.0,
    exponential_base: float = 2.0,
    jitter: float = 0.1,
    retry_on: tuple[type[BaseException], ...] = (Exception,),
    retry_if: Optional[RetryPredicate] = None,
    on_retry: Optional[RetryCallback] = None,
):
    config = RetryConfig(
        max_attempts=max_attempts,
        base_delay=base_delay,
        max_delay=max_delay,
        exponential_base=exponential_base,
        jitter=jitter,
    )

    def decorator(fn: Callable[..., Awaitable[T]]) -> Callable[..., Awaitable[T]]:
        @functools.wraps(fn)
        async def wrapper(*args: Any, **kwargs: Any) -> T:
            return await call_with_retry(
                lambda: fn(*args, **kwargs),
                config=config,
                retry_on=retry_on,
                retry_if=retry_if,
                on_retry=on_retry,
            )

        return wrapper

    return decorator


def retry_sync(
    *,
    max_attempts: int = 3,
    base_delay: float = 0.1,
    max_delay: float = 60.0,
    exponential_base: float = 2.0,
    jitter: float = 0.1,
    retry_on: tuple[type[BaseException], ...] = (Exception,),
    retry_if: Optional[RetryPredicate] = None,
    on_retry: Optional[RetryCallback] = None,
):
    config = RetryConfig(
        max_attempts=max_attempts,
        base_delay=base_delay,
        max_delay=max_delay,
        exponential_base=exponential_base,
        jitter=jitter,
    )

    def decorator(fn: Callable[..., T]) -> Callable[..., T]:
        @functools.wraps(fn)
        def wrapper(*args: Any, **kwargs: Any) -> T:
            attempt = 0
            while True:
                attempt += 1
                try:
                    return fn(*args, **kwargs)
                except Exception as exc:
                    if not _should_retry(exc, retry_on, retry_if):
                        raise
                    if attempt >= config.max_attempts:
                        raise RetryExhaustedError(attempt, exc) from exc
                    if on_retry is not None:
                        on_retry(attempt, exc)
                    time.sleep(config.calculate_delay(attempt))

        return wrapper

    return decorator


def is_transient(exc: BaseException) -> bool:
    """True for store failures that may clear on their own (pool timeout, dropped connection)."""
    if isinstance(exc, NodesError):
        return False
    # pool exhausted for longer than pool_timeout
    if isinstance(exc, sa_exc.TimeoutError):
        return True
    if isinstance(exc, sa_exc.DBAPIError):
        if exc.connection_invalidated:
            return True
        return isinstance(exc, (sa_exc.OperationalError, sa_exc.InterfaceError))
    return isinstance(exc, (ConnectionError, TimeoutError, asyncio.TimeoutError, OSError))


__all__ = [
    "RetryConfig",
    "RetryExhaustedError",
    "call_with_retry",
    "with_retry",
    "retry_sync",
    "is_transient",
]
