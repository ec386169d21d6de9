"""Tests for the retry helpers and transient-error classification."""

from __future__ import annotations

import asyncio

import pytest
from sqlalchemy import exc as sa_exc

from nodes_api.exceptions import NotFound, StoreUnavailable, ValidationError
from nodes_api.resilience import (
    RetryConfig,
    RetryExhaustedError,
    call_with_retry,
    is_transient,
    retry_sync,
    with_retry,
)

# =============================================================================
# RetryConfig
# =============================================================================


class TestRetryConfig:
    def test_default_values(self) -> None:
        config = RetryConfig()
        assert config.max_attempts == 3
        assert config.base_delay == 0.1
        assert config.max_delay == 60.0
        assert config.exponential_base == 2.0
        assert config.jitter == 0.1

    def test_calculate_delay_doubles(self) -> None:
        config = RetryConfig(base_delay=0.5, jitter=0.0)

        assert [config.calculate_delay(n) for n in (1, 2, 3)] == [0.5, 1.0, 2.0]

    def test_calculate_delay_respects_max(self) -> None:
        config = RetryConfig(base_delay=1.0, max_delay=5.0, jitter=0.0)

        assert config.calculate_delay(10) == 5.0

    def test_jitter_stays_in_band(self) -> None:
        config = RetryConfig(base_delay=1.0, jitter=0.25)

        for _ in range(50):
            assert 0.75 <= config.calculate_delay(1) <= 1.25


# =============================================================================
# call_with_retry / with_retry
# =============================================================================


class TestCallWithRetry:
    @pytest.mark.asyncio
    async def test_retry_if_filters_exceptions(self) -> None:
        calls = 0

        async def fails() -> None:
            nonlocal calls
            calls += 1
            raise ValueError("permanent")

        with pytest.raises(ValueError):
            await call_with_retry(
                fails,
                config=RetryConfig(base_delay=0.0),
                retry_if=lambda e: "transient" in str(e),
            )

        assert calls == 1

    @pytest.mark.asyncio
    async def test_sleeps_between_attempts(self, monkeypatch) -> None:
        sleeps: list[float] = []

        async def fake_sleep(delay: float) -> None:
            sleeps.append(delay)

        monkeypatch.setattr(asyncio, "sleep", fake_sleep)

        async def always() -> None:
            raise ConnectionError("down")

        with pytest.raises(RetryExhaustedError):
            await call_with_retry(always, config=RetryConfig(max_attempts=3, base_delay=0.5, jitter=0.0))

        assert sleeps == [0.5, 1.0]


class TestWithRetry:
    @pytest.mark.asyncio
    async def test_success_no_retry(self) -> None:
        call_count = 0

        @with_retry(max_attempts=3)
        async def success() -> str:
            nonlocal call_count
            call_count += 1
            return "success"

        assert await success() == "success"
        assert call_count == 1

    @pytest.mark.asyncio
    async def test_retry_on_failure(self) -> None:
        call_count = 0

        @with_retry(max_attempts=3, base_delay=0.001)
        async def fails_twice() -> str:
            nonlocal call_count
            call_count += 1
            if call_count < 3:
                raise ValueError("Not yet")
            return "success"

        assert await fails_twice() == "success"
        assert call_count == 3

    @pytest.mark.asyncio
    async def test_exhausts_retries(self) -> None:
        @with_retry(max_attempts=3, base_delay=0.001)
        async def always_fails() -> None:
            raise ValueError("Always fails")

        with pytest.raises(RetryExhaustedError) as exc_info:
            await always_fails()

        assert exc_info.value.attempts == 3
        assert isinstance(exc_info.value.last_exception, ValueError)

    @pytest.mark.asyncio
    async def test_retry_only_on_specified(self) -> None:
        call_count = 0

        @with_retry(max_attempts=3, retry_on=(ValueError,))
        async def fails() -> None:
            nonlocal call_count
            call_count += 1
            raise TypeError("Not retryable")

        with pytest.raises(TypeError):
            await fails()

        assert call_count == 1

    @pytest.mark.asyncio
    async def test_on_retry_callback(self) -> None:
        callbacks: list[tuple[int, BaseException]] = []

        @with_retry(max_attempts=3, base_delay=0.001, on_retry=lambda n, e: callbacks.append((n, e)))
        async def fails_then_succeeds() -> str:
            if len(callbacks) < 2:
                raise ValueError("Retry")
            return "success"

        assert await fails_then_succeeds() == "success"
        assert [n for n, _ in callbacks] == [1, 2]


# =============================================================================
# retry_sync
# =============================================================================


class TestRetrySync:
    def test_sync_retry(self) -> None:
        call_count = 0

        @retry_sync(max_attempts=3, base_delay=0.001)
        def fails_once() -> str:
            nonlocal call_count
            call_count += 1
            if call_count < 2:
                raise ValueError("First call fails")
            return "success"

        assert fails_once() == "success"
        assert call_count == 2

    def test_sync_exhausts(self) -> None:
        @retry_sync(max_attempts=2, base_delay=0.001)
        def always_fails() -> None:
            raise OSError("nope")

        with pytest.raises(RetryExhaustedError) as exc_info:
            always_fails()

        assert exc_info.value.attempts == 2


# =============================================================================
# is_transient
# =============================================================================


class TestIsTransient:
    @pytest.mark.parametrize(
        "exc",
        [
            sa_exc.OperationalError("select 1", {}, ConnectionResetError()),
            sa_exc.InterfaceError("select 1", {}, Exception("connection is closed")),
            sa_exc.TimeoutError("QueuePool limit reached"),
            ConnectionRefusedError(),
            asyncio.TimeoutError(),
            OSError("network unreachable"),
        ],
    )
    def test_transient(self, exc) -> None:
        assert is_transient(exc) is True

    @pytest.mark.parametrize(
        "exc",
        [
            sa_exc.IntegrityError("insert", {}, Exception("duplicate key")),
            sa_exc.ProgrammingError("select", {}, Exception("syntax error")),
            ValueError("bad"),
            ValidationError("Label is required"),
            NotFound("abc"),
            StoreUnavailable("down", attempts=3),
        ],
    )
    def test_not_transient(self, exc) -> None:
        assert is_transient(exc) is False

    def test_invalidated_connection_is_transient(self) -> None:
        exc = sa_exc.DBAPIError("select 1", {}, Exception("server closed"), connection_invalidated=True)

        assert is_transient(exc) is True
