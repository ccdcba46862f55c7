"""Unit tests for the shared retry / backoff policy."""

import time
from unittest.mock import AsyncMock

import pytest

from voicenotes.core.cancellation import CancellationToken
from voicenotes.core.exceptions import (
    ApiKeyMissingError,
    EmptyTextError,
    FileTooLargeError,
    NetworkError,
    OperationCancelledError,
    PermissionDeniedError,
    ProviderHTTPError,
    QuotaExceededError,
    TextTooLongError,
)
from voicenotes.services.retry import ErrorClass, RetryPolicy, RetryRule

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _fast_policy(**overrides) -> RetryPolicy:
    """Policy with the default retry bounds and no waiting."""
    kwargs = {
        "rate_limit_max_delay": 0.0,
        "server_error_max_delay": 0.0,
        "network_max_delay": 0.0,
    }
    kwargs.update(overrides)
    return RetryPolicy(**kwargs)


# ---------------------------------------------------------------------------
# Backoff shape
# ---------------------------------------------------------------------------


class TestRetryRule:
    def test_rate_limit_delays_double_and_cap(self):
        rule = RetryPolicy().rule(ErrorClass.rate_limited)
        assert [rule.delay(n) for n in range(6)] == [1, 2, 4, 8, 16, 30]

    def test_server_error_delays_start_at_two(self):
        rule = RetryPolicy().rule(ErrorClass.server_error)
        assert [rule.delay(n) for n in range(4)] == [2, 4, 8, 16]
        assert rule.delay(5) == 20

    def test_fatal_never_retries(self):
        assert RetryPolicy().rule(ErrorClass.fatal).max_retries == 0

    def test_custom_rule(self):
        assert RetryRule(max_retries=2, max_delay=3.0).delay(4) == 3.0


# ---------------------------------------------------------------------------
# Classification
# ---------------------------------------------------------------------------


class TestClassify:
    @pytest.mark.parametrize(
        ("exc", "expected"),
        [
            (ProviderHTTPError(429), ErrorClass.rate_limited),
            (ProviderHTTPError(500), ErrorClass.server_error),
            (ProviderHTTPError(503), ErrorClass.server_error),
            (ProviderHTTPError(401), ErrorClass.fatal),
            (ProviderHTTPError(400), ErrorClass.fatal),
            (TimeoutError("slow"), ErrorClass.transient_network),
            (ConnectionError("reset"), ErrorClass.transient_network),
            (EmptyTextError(), ErrorClass.fatal),
            (ValueError("bad"), ErrorClass.fatal),
        ],
    )
    def test_classify(self, exc, expected):
        assert RetryPolicy.classify(exc) is expected


class TestTranslate:
    def test_status_mapping(self):
        policy = RetryPolicy()
        token = CancellationToken()
        assert isinstance(policy.translate(ProviderHTTPError(401), token), ApiKeyMissingError)
        assert isinstance(policy.translate(ProviderHTTPError(403), token), PermissionDeniedError)
        assert isinstance(policy.translate(ProviderHTTPError(413), token), FileTooLargeError)
        assert isinstance(policy.translate(ProviderHTTPError(429), token), QuotaExceededError)
        assert isinstance(policy.translate(ProviderHTTPError(502), token), NetworkError)
        assert isinstance(policy.translate(ProviderHTTPError(404), token), NetworkError)

    def test_too_large_error_is_configurable(self):
        policy = RetryPolicy(too_large_error=TextTooLongError)
        error = policy.translate(ProviderHTTPError(413), CancellationToken())
        assert isinstance(error, TextTooLongError)

    def test_transport_failure_keeps_cause(self):
        cause = ConnectionError("reset")
        error = RetryPolicy().translate(cause, CancellationToken())
        assert isinstance(error, NetworkError)
        assert error.cause is cause

    def test_cancellation_wins(self):
        error = RetryPolicy().translate(ProviderHTTPError(500), CancellationToken.cancelled())
        assert isinstance(error, OperationCancelledError)


# ---------------------------------------------------------------------------
# Execution
# ---------------------------------------------------------------------------


class TestRun:
    async def test_success_first_attempt(self):
        call = AsyncMock(return_value="ok")
        result = await _fast_policy().run(call, CancellationToken())
        assert result == "ok"
        assert call.await_count == 1

    async def test_rate_limited_gives_up_after_six_attempts(self):
        """One initial attempt plus five retries, then quota exceeded."""
        call = AsyncMock(side_effect=ProviderHTTPError(429, "slow down"))

        with pytest.raises(QuotaExceededError):
            await _fast_policy().run(call, CancellationToken())
        assert call.await_count == 6

    async def test_unauthorized_is_not_retried(self):
        call = AsyncMock(side_effect=ProviderHTTPError(401, provider="openai"))

        with pytest.raises(ApiKeyMissingError):
            await _fast_policy().run(call, CancellationToken())
        assert call.await_count == 1

    async def test_server_error_retried_three_times(self):
        call = AsyncMock(side_effect=ProviderHTTPError(503))

        with pytest.raises(NetworkError):
            await _fast_policy().run(call, CancellationToken())
        assert call.await_count == 4

    async def test_network_error_retried_three_times(self):
        call = AsyncMock(side_effect=TimeoutError("timed out"))

        with pytest.raises(NetworkError) as exc_info:
            await _fast_policy().run(call, CancellationToken())
        assert call.await_count == 4
        assert isinstance(exc_info.value.__cause__, TimeoutError)

    async def test_recovers_after_transient_failures(self):
        call = AsyncMock(side_effect=[ConnectionError("reset"), ProviderHTTPError(500), "done"])
        result = await _fast_policy().run(call, CancellationToken())
        assert result == "done"
        assert call.await_count == 3

    async def test_taxonomy_error_passes_through(self):
        error = EmptyTextError()
        call = AsyncMock(side_effect=error)

        with pytest.raises(EmptyTextError) as exc_info:
            await _fast_policy().run(call, CancellationToken())
        assert exc_info.value is error
        assert call.await_count == 1

    async def test_cancelled_before_first_attempt(self):
        call = AsyncMock(return_value="never")
        with pytest.raises(OperationCancelledError):
            await _fast_policy().run(call, CancellationToken.cancelled())
        call.assert_not_awaited()

    async def test_cancel_during_backoff_aborts_wait(self):
        """A cancel during a long backoff ends the run without another attempt."""
        deadline = time.monotonic() + 0.1
        token = CancellationToken(lambda: time.monotonic() >= deadline)
        # First retry would wait 2 s
        policy = RetryPolicy(server_error_max_delay=30.0)
        call = AsyncMock(side_effect=ProviderHTTPError(503))

        started = time.monotonic()
        with pytest.raises(OperationCancelledError):
            await policy.run(call, token)
        assert time.monotonic() - started < 1.5
        assert call.await_count == 1

    def test_from_settings(self, settings):
        policy = RetryPolicy.from_settings(settings, too_large_error=TextTooLongError)
        assert policy.rule(ErrorClass.rate_limited).max_retries == settings.rate_limit_max_retries
        assert policy.rule(ErrorClass.server_error).max_delay == settings.server_error_max_delay
