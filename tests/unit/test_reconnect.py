"""Tests for the reconnect-retry wrapper."""

import pytest

from leadhub_engine.common.exceptions import RetryExhaustedError, TransientConnectionError
from leadhub_engine.common.reconnect import is_connection_error, with_reconnect


class FlakyOperation:
    def __init__(self, failures: int, error: Exception):
        self.failures = failures
        self.error = error
        self.calls = 0

    async def __call__(self):
        self.calls += 1
        if self.calls <= self.failures:
            raise self.error
        return "ok"


class TestIsConnectionError:
    @pytest.mark.parametrize("error", [
        ConnectionResetError("ECONNRESET"),
        OSError("Connection refused"),
        RuntimeError("server closed the connection unexpectedly"),
        TimeoutError("timed out"),
        Exception("getaddrinfo failed"),
    ])
    def test_matches(self, error):
        assert is_connection_error(error)

    @pytest.mark.parametrize("error", [
        ValueError("invalid literal"),
        KeyError("missing"),
        RuntimeError("UNIQUE constraint failed: charges.external_id"),
    ])
    def test_does_not_match(self, error):
        assert not is_connection_error(error)


class TestWithReconnect:
    async def test_success_first_try(self):
        op = FlakyOperation(0, OSError("connection reset"))
        assert await with_reconnect(op, max_retries=3, base_delay=0) == "ok"
        assert op.calls == 1

    async def test_recovers_after_retries(self):
        op = FlakyOperation(2, OSError("connection reset"))
        assert await with_reconnect(op, max_retries=3, base_delay=0) == "ok"
        assert op.calls == 3

    async def test_non_connection_error_not_retried(self):
        op = FlakyOperation(5, ValueError("bad input"))
        with pytest.raises(ValueError):
            await with_reconnect(op, max_retries=3, base_delay=0)
        assert op.calls == 1

    async def test_exhausted(self):
        op = FlakyOperation(10, OSError("ECONNREFUSED"))
        with pytest.raises(RetryExhaustedError) as exc_info:
            await with_reconnect(op, max_retries=2, base_delay=0)
        assert op.calls == 3
        assert exc_info.value.attempts == 3
        assert isinstance(exc_info.value.last_error, OSError)
        assert isinstance(exc_info.value, TransientConnectionError)
        assert exc_info.value.status_code == 503
        assert "ECONNREFUSED" not in exc_info.value.message
        assert exc_info.value.message == "Database temporarily unavailable"

    async def test_zero_retries(self):
        op = FlakyOperation(1, OSError("socket hang up"))
        with pytest.raises(RetryExhaustedError):
            await with_reconnect(op, max_retries=0, base_delay=0)
        assert op.calls == 1

    async def test_on_retry_sync_and_async(self):
        seen = []

        async def async_hook(attempt, exc):
            seen.append(("async", attempt))

        op = FlakyOperation(1, OSError("connection terminated"))
        await with_reconnect(op, max_retries=2, base_delay=0, on_retry=async_hook)
        op = FlakyOperation(1, OSError("connection terminated"))
        await with_reconnect(
            op, max_retries=2, base_delay=0,
            on_retry=lambda attempt, exc: seen.append(("sync", attempt)),
        )
        assert seen == [("async", 1), ("sync", 1)]

    async def test_failing_hook_does_not_abort(self):
        def hook(attempt, exc):
            raise RuntimeError("hook broke")

        op = FlakyOperation(1, OSError("econnreset"))
        assert await with_reconnect(op, max_retries=2, base_delay=0, on_retry=hook) == "ok"

    async def test_linear_backoff(self, monkeypatch):
        delays = []

        async def fake_sleep(seconds):
            delays.append(seconds)

        monkeypatch.setattr("leadhub_engine.common.reconnect.asyncio.sleep", fake_sleep)
        op = FlakyOperation(3, OSError("etimedout"))
        await with_reconnect(op, max_retries=3, base_delay=0.5)
        assert delays == [0.5, 1.0, 1.5]


async def test_two_network_failures_then_success():
    retries = []
    op = FlakyOperation(2, ConnectionResetError("ECONNRESET"))
    result = await with_reconnect(
        op, max_retries=3, base_delay=0,
        on_retry=lambda attempt, exc: retries.append(attempt),
    )
    assert result == "ok"
    assert retries == [1, 2]
