#!/usr/bin/env python3
"""Tests for resilience patterns.

Tests cover:
    - Circuit breaker state transitions (CLOSED -> OPEN -> HALF_OPEN -> CLOSED)
    - Which exceptions count towards opening the circuit
    - Retry with exponential backoff behavior
"""
from unittest.mock import AsyncMock, patch

import pytest

from src.storesync.api.exceptions import (
    CircuitOpenError,
    NetworkError,
    NotFoundError,
    RateLimitError,
    ServerError,
    ValidationError,
)
from src.storesync.api.resilience import CircuitBreaker, CircuitState, retry_async


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


# ============================================
# Circuit Breaker State Transition Tests
# ============================================

class TestCircuitBreakerStateTransitions:
    """Test circuit breaker state machine transitions."""

    def test_initial_state_is_closed(self):
        """Circuit should start in CLOSED state."""
        circuit = CircuitBreaker(failure_threshold=3)
        assert circuit.state == CircuitState.CLOSED
        assert not circuit.is_open
        assert circuit.failure_count == 0

    @pytest.mark.asyncio
    async def test_closed_to_open_after_failures(self):
        """Circuit should open after reaching failure threshold."""
        circuit = CircuitBreaker(failure_threshold=3)
        failing = AsyncMock(side_effect=NetworkError("down"))

        for _ in range(3):
            with pytest.raises(NetworkError):
                await circuit.call(failing)

        assert circuit.state == CircuitState.OPEN

    @pytest.mark.asyncio
    async def test_open_circuit_rejects_calls(self):
        """An open circuit raises CircuitOpenError without calling through."""
        circuit = CircuitBreaker(failure_threshold=1, timeout=60.0, clock=FakeClock())
        with pytest.raises(ServerError):
            await circuit.call(AsyncMock(side_effect=ServerError("boom", status_code=503)))

        func = AsyncMock(return_value="ok")
        with pytest.raises(CircuitOpenError) as exc_info:
            await circuit.call(func)

        func.assert_not_called()
        assert exc_info.value.details["failure_count"] == 1

    @pytest.mark.asyncio
    async def test_half_open_success_closes(self):
        """After the timeout a successful probe closes the circuit."""
        clock = FakeClock()
        circuit = CircuitBreaker(failure_threshold=1, timeout=30.0, clock=clock)
        with pytest.raises(NetworkError):
            await circuit.call(AsyncMock(side_effect=NetworkError("down")))

        clock.now = 31.0
        result = await circuit.call(AsyncMock(return_value="ok"))

        assert result == "ok"
        assert circuit.state == CircuitState.CLOSED
        assert circuit.failure_count == 0

    @pytest.mark.asyncio
    async def test_half_open_failure_reopens(self):
        """A failed probe reopens the circuit immediately."""
        clock = FakeClock()
        circuit = CircuitBreaker(failure_threshold=2, timeout=30.0, clock=clock)
        for _ in range(2):
            with pytest.raises(NetworkError):
                await circuit.call(AsyncMock(side_effect=NetworkError("down")))

        clock.now = 31.0
        with pytest.raises(NetworkError):
            await circuit.call(AsyncMock(side_effect=NetworkError("still down")))

        assert circuit.state == CircuitState.OPEN

    @pytest.mark.asyncio
    async def test_success_resets_failure_count(self):
        circuit = CircuitBreaker(failure_threshold=3)
        with pytest.raises(NetworkError):
            await circuit.call(AsyncMock(side_effect=NetworkError("down")))
        await circuit.call(AsyncMock(return_value=1))

        assert circuit.failure_count == 0

    def test_reset_and_status(self):
        circuit = CircuitBreaker(failure_threshold=3, name="store")
        circuit._state = CircuitState.OPEN
        circuit.reset()

        status = circuit.get_status()
        assert status["state"] == "closed"
        assert status["name"] == "store"


class TestCircuitBreakerCountedExceptions:
    """Client errors must not open the circuit."""

    @pytest.mark.asyncio
    async def test_not_found_does_not_count(self):
        circuit = CircuitBreaker(failure_threshold=1)

        with pytest.raises(NotFoundError):
            await circuit.call(AsyncMock(side_effect=NotFoundError("product", "5")))

        assert circuit.state == CircuitState.CLOSED
        assert circuit.failure_count == 0

    @pytest.mark.asyncio
    async def test_validation_error_does_not_count(self):
        circuit = CircuitBreaker(failure_threshold=1)

        with pytest.raises(ValidationError):
            await circuit.call(AsyncMock(side_effect=ValidationError("bad param")))

        assert circuit.state == CircuitState.CLOSED


# ============================================
# Retry Tests
# ============================================

class TestRetryAsync:
    """Test retry with exponential backoff."""

    @pytest.mark.asyncio
    async def test_returns_on_first_success(self):
        func = AsyncMock(return_value=42)
        assert await retry_async(func, initial_delay=0) == 42
        assert func.call_count == 1

    @pytest.mark.asyncio
    async def test_retries_transient_errors(self):
        func = AsyncMock(side_effect=[NetworkError("blip"), ServerError("oops", status_code=502), "ok"])

        result = await retry_async(func, max_attempts=3, initial_delay=0)

        assert result == "ok"
        assert func.call_count == 3

    @pytest.mark.asyncio
    async def test_gives_up_after_max_attempts(self):
        func = AsyncMock(side_effect=NetworkError("down"))

        with pytest.raises(NetworkError):
            await retry_async(func, max_attempts=2, initial_delay=0)

        assert func.call_count == 2

    @pytest.mark.asyncio
    async def test_non_retryable_propagates_immediately(self):
        func = AsyncMock(side_effect=ValidationError("bad"))

        with pytest.raises(ValidationError):
            await retry_async(func, max_attempts=5, initial_delay=0)

        assert func.call_count == 1

    @pytest.mark.asyncio
    async def test_rate_limit_retry_after_used(self):
        func = AsyncMock(side_effect=[RateLimitError("slow down", retry_after=4), "ok"])

        with patch("src.storesync.api.resilience.asyncio.sleep", new=AsyncMock()) as sleep, \
                patch("src.storesync.api.resilience.random.random", return_value=0.5):
            result = await retry_async(func, initial_delay=1.0)

        assert result == "ok"
        sleep.assert_awaited_once_with(4.0)

    @pytest.mark.asyncio
    async def test_backoff_capped_by_max_delay(self):
        func = AsyncMock(side_effect=[NetworkError("a"), NetworkError("b"), "ok"])

        with patch("src.storesync.api.resilience.asyncio.sleep", new=AsyncMock()) as sleep, \
                patch("src.storesync.api.resilience.random.random", return_value=0.5):
            await retry_async(func, initial_delay=10.0, backoff_factor=10.0, max_delay=15.0)

        waits = [call.args[0] for call in sleep.await_args_list]
        assert waits == [10.0, 15.0]

    @pytest.mark.asyncio
    async def test_rejects_zero_attempts(self):
        with pytest.raises(ValueError):
            await retry_async(AsyncMock(), max_attempts=0)
