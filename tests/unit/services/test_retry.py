"""リトライポリシーのユニットテスト。"""

import asyncio
import logging

import pytest

from partycluster.models.errors import AuthFailureError, RemoteRequestError, RemoteUnavailableError
from partycluster.services.retry import RetryPolicy, call_with_retry


class _Flaky:
    """指定回数だけ失敗してから成功する呼び出し。"""

    def __init__(self, failures: list[Exception], result: str = "ok") -> None:
        self.failures = failures
        self.result = result
        self.calls = 0

    async def __call__(self) -> str:
        self.calls += 1
        if self.failures:
            raise self.failures.pop(0)
        return self.result


class TestRetryPolicy:
    def test_defaults(self) -> None:
        policy = RetryPolicy()
        assert policy.max_attempts == 3
        assert policy.call_timeout_seconds == 60.0

    def test_delay_grows_exponentially(self) -> None:
        policy = RetryPolicy(base_delay_seconds=1.0, max_delay_seconds=100.0)
        assert 1.0 <= policy.delay_for(1) <= 1.2
        assert 2.0 <= policy.delay_for(2) <= 2.4
        assert 4.0 <= policy.delay_for(3) <= 4.8

    def test_delay_is_capped(self) -> None:
        policy = RetryPolicy(base_delay_seconds=10.0, max_delay_seconds=15.0)
        assert policy.delay_for(3) == 15.0

    def test_max_attempts_must_be_positive(self) -> None:
        with pytest.raises(ValueError):
            RetryPolicy(max_attempts=0)


class TestCallWithRetry:
    async def test_first_attempt_succeeds(self, retry_policy: RetryPolicy) -> None:
        func = _Flaky([])
        assert await call_with_retry("op", func, retry_policy) == "ok"
        assert func.calls == 1

    async def test_transient_failure_is_retried(
        self, retry_policy: RetryPolicy, caplog: pytest.LogCaptureFixture
    ) -> None:
        func = _Flaky([RemoteUnavailableError("503", operation="op")])

        with caplog.at_level(logging.WARNING, logger="partycluster.services.retry"):
            assert await call_with_retry("op", func, retry_policy) == "ok"

        assert func.calls == 2
        assert "op failed (attempt 1/3)" in caplog.text

    async def test_gives_up_after_max_attempts(self, retry_policy: RetryPolicy) -> None:
        func = _Flaky([RemoteUnavailableError("503", operation="op") for _ in range(5)])

        with pytest.raises(RemoteUnavailableError):
            await call_with_retry("op", func, retry_policy)
        assert func.calls == 3

    @pytest.mark.parametrize(
        "error",
        [
            RemoteRequestError("400", operation="op", status_code=400),
            AuthFailureError("Failed to obtain the JWT token"),
            ValueError("bad"),
        ],
    )
    async def test_other_errors_are_not_retried(self, retry_policy: RetryPolicy, error: Exception) -> None:
        func = _Flaky([error])

        with pytest.raises(type(error)):
            await call_with_retry("op", func, retry_policy)
        assert func.calls == 1

    async def test_timeout_becomes_transient(self) -> None:
        """期限切れはRemoteUnavailableErrorとして扱われ、リトライされる。"""
        calls = 0

        async def slow() -> str:
            nonlocal calls
            calls += 1
            await asyncio.sleep(1)
            return "late"

        policy = RetryPolicy(max_attempts=2, base_delay_seconds=0, max_delay_seconds=0, call_timeout_seconds=0.01)
        with pytest.raises(RemoteUnavailableError) as exc_info:
            await call_with_retry("get deployment", slow, policy)

        assert calls == 2
        assert "timed out" in str(exc_info.value)
        assert exc_info.value.operation == "get deployment"

    async def test_no_timeout(self) -> None:
        policy = RetryPolicy(call_timeout_seconds=None)
        assert await call_with_retry("op", _Flaky([]), policy) == "ok"
