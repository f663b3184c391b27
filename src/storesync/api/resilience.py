#!/usr/bin/env python3
"""Retry and circuit breaker primitives for the store REST client.

Example:
    breaker = CircuitBreaker(failure_threshold=5, timeout=30, name="store")
    page = await breaker.call(retry_async, client._request, "GET", "/wc/v3/orders")
"""
import asyncio
import logging
import random
import time
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Awaitable, Callable, Optional, TypeVar

from .exceptions import (
    CircuitOpenError,
    NetworkError,
    RateLimitError,
    ServerError,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")


# ============================================
# Retry with Exponential Backoff
# ============================================

RETRYABLE_EXCEPTIONS = (
    NetworkError,
    RateLimitError,
    ServerError,
    asyncio.TimeoutError,
)


async def retry_async(
    func: Callable[..., Awaitable[T]],
    *args,
    max_attempts: int = 3,
    backoff_factor: float = 2.0,
    initial_delay: float = 1.0,
    max_delay: float = 60.0,
    retryable_exceptions: tuple = RETRYABLE_EXCEPTIONS,
    **kwargs,
) -> T:
    """Call ``func`` and retry transient failures with jittered backoff.

    A RateLimitError carrying a Retry-After value overrides the computed
    delay for that attempt. Non-retryable exceptions propagate immediately.

    Args:
        func: Async callable to invoke
        max_attempts: Attempts including the first one
        backoff_factor: Delay multiplier between attempts
        initial_delay: First delay in seconds
        max_delay: Upper bound on any single delay
        retryable_exceptions: Exception types worth retrying
    """
    if max_attempts < 1:
        raise ValueError("max_attempts must be at least 1")

    delay = initial_delay
    for attempt in range(1, max_attempts + 1):
        try:
            return await func(*args, **kwargs)
        except retryable_exceptions as e:
            if attempt == max_attempts:
                raise

            wait = delay
            if isinstance(e, RateLimitError) and e.retry_after:
                wait = float(e.retry_after)
            wait = min(wait * (0.5 + random.random()), max_delay)

            logger.warning(
                f"Retry {attempt}/{max_attempts} after {type(e).__name__}: {e}. "
                f"Waiting {wait:.1f}s"
            )
            await asyncio.sleep(wait)
            delay = min(delay * backoff_factor, max_delay)

    raise RuntimeError("unreachable")


# ============================================
# Circuit Breaker
# ============================================


class CircuitState(Enum):
    """Circuit breaker states."""
    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


class CircuitBreaker:
    """Stops hammering the store after repeated transport failures.

    CLOSED counts consecutive failures and opens at ``failure_threshold``.
    OPEN rejects calls with CircuitOpenError until ``timeout`` seconds pass,
    then lets probe calls through in HALF_OPEN. ``success_threshold``
    successful probes close the circuit; a failed probe reopens it.

    Only exceptions listed in ``counted_exceptions`` trip the breaker, so a
    404 for a deleted product does not open the circuit for the whole store.
    """

    def __init__(
        self,
        failure_threshold: int = 5,
        timeout: float = 60.0,
        success_threshold: int = 1,
        name: str = "default",
        counted_exceptions: tuple = RETRYABLE_EXCEPTIONS,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.failure_threshold = failure_threshold
        self.timeout = timeout
        self.success_threshold = success_threshold
        self.name = name
        self.counted_exceptions = counted_exceptions
        self._clock = clock

        self._state = CircuitState.CLOSED
        self._failure_count = 0
        self._success_count = 0
        self._opened_at: Optional[float] = None
        self._lock = asyncio.Lock()

    @property
    def state(self) -> CircuitState:
        return self._state

    @property
    def is_open(self) -> bool:
        return self._state == CircuitState.OPEN

    @property
    def failure_count(self) -> int:
        return self._failure_count

    def _should_attempt(self) -> bool:
        if self._state != CircuitState.OPEN:
            return True
        return (
            self._opened_at is not None
            and self._clock() - self._opened_at >= self.timeout
        )

    async def call(self, func: Callable[..., Awaitable[T]], *args, **kwargs) -> T:
        """Run ``func`` through the breaker.

        Raises:
            CircuitOpenError: The circuit is open and the timeout has not passed
        """
        async with self._lock:
            if not self._should_attempt():
                remaining = self.timeout - (self._clock() - (self._opened_at or 0.0))
                raise CircuitOpenError(
                    f"Circuit breaker '{self.name}' is open",
                    reset_at=datetime.now(timezone.utc) + timedelta(seconds=max(remaining, 0.0)),
                    failure_count=self._failure_count,
                )
            if self._state == CircuitState.OPEN:
                logger.info(f"Circuit '{self.name}' transitioning to HALF_OPEN")
                self._state = CircuitState.HALF_OPEN
                self._success_count = 0

        try:
            result = await func(*args, **kwargs)
        except self.counted_exceptions as e:
            await self._on_failure(e)
            raise
        await self._on_success()
        return result

    async def _on_success(self):
        async with self._lock:
            self._failure_count = 0
            if self._state == CircuitState.HALF_OPEN:
                self._success_count += 1
                if self._success_count >= self.success_threshold:
                    logger.info(f"Circuit '{self.name}' closed")
                    self._state = CircuitState.CLOSED
                    self._opened_at = None

    async def _on_failure(self, exception: Exception):
        async with self._lock:
            self._failure_count += 1
            if self._state == CircuitState.HALF_OPEN or (
                self._state == CircuitState.CLOSED
                and self._failure_count >= self.failure_threshold
            ):
                logger.warning(
                    f"Circuit '{self.name}' opening after {self._failure_count} "
                    f"failure(s): {exception}"
                )
                self._state = CircuitState.OPEN
                self._opened_at = self._clock()

    def reset(self):
        """Force the breaker back to CLOSED."""
        self._state = CircuitState.CLOSED
        self._failure_count = 0
        self._success_count = 0
        self._opened_at = None

    def get_status(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "state": self._state.value,
            "failure_count": self._failure_count,
            "failure_threshold": self.failure_threshold,
            "timeout_seconds": self.timeout,
        }


__all__ = [
    "RETRYABLE_EXCEPTIONS",
    "retry_async",
    "CircuitState",
    "CircuitBreaker",
]
