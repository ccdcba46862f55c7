"""
Retry / backoff policy shared by the transcription and summarization pipelines.

Failures are classified into four classes, each with its own retry bound and
delay ceiling:

    HTTP 429                      -> rate_limited       (5 retries, 2**n s, cap 30 s)
    HTTP 5xx                      -> server_error       (3 retries, 2**(n+1) s, cap 20 s)
    timeout / connection lost     -> transient_network  (3 retries, 2**(n+1) s, cap 20 s)
    HTTP 401, other non-2xx, rest -> fatal              (never retried)

The loop itself is tenacity's ``AsyncRetrying`` with a custom stop, wait and
sleep: the sleep is the cancellation token's, so a cancel during backoff
short-circuits the wait instead of finishing it. Retries always repeat the
identical request.
"""

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from enum import StrEnum
from typing import TypeVar

from tenacity import AsyncRetrying, RetryCallState, retry_if_exception

from voicenotes.core.cancellation import CancellationToken
from voicenotes.core.exceptions import (
    ApiKeyMissingError,
    FileTooLargeError,
    NetworkError,
    OperationCancelledError,
    PermissionDeniedError,
    ProviderHTTPError,
    QuotaExceededError,
    VoiceNotesError,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")


class ErrorClass(StrEnum):
    """Retry classification of a provider failure."""

    rate_limited = "rate_limited"
    server_error = "server_error"
    transient_network = "transient_network"
    fatal = "fatal"


@dataclass(frozen=True)
class RetryRule:
    """Retry bound and backoff shape for one error class."""

    max_retries: int
    max_delay: float
    exponent_offset: int = 0

    def delay(self, retry_number: int) -> float:
        """Delay before retry ``retry_number`` (0-based)."""
        return min(2.0 ** (retry_number + self.exponent_offset), self.max_delay)


class RetryPolicy:
    """Classifies provider failures and re-runs retryable calls.

    Args:
        rate_limit_retries: Retry bound for HTTP 429.
        rate_limit_max_delay: Delay ceiling (seconds) for HTTP 429.
        server_error_retries: Retry bound for HTTP 5xx.
        server_error_max_delay: Delay ceiling for HTTP 5xx.
        network_retries: Retry bound for timeouts / lost connections.
        network_max_delay: Delay ceiling for timeouts / lost connections.
        too_large_error: Error raised for HTTP 413 (``FileTooLargeError`` for
            audio uploads, ``TextTooLongError`` for summaries).
    """

    def __init__(
        self,
        rate_limit_retries: int = 5,
        rate_limit_max_delay: float = 30.0,
        server_error_retries: int = 3,
        server_error_max_delay: float = 20.0,
        network_retries: int = 3,
        network_max_delay: float = 20.0,
        too_large_error: type[VoiceNotesError] = FileTooLargeError,
    ) -> None:
        self._rules = {
            ErrorClass.rate_limited: RetryRule(rate_limit_retries, rate_limit_max_delay),
            ErrorClass.server_error: RetryRule(
                server_error_retries, server_error_max_delay, exponent_offset=1
            ),
            ErrorClass.transient_network: RetryRule(
                network_retries, network_max_delay, exponent_offset=1
            ),
            ErrorClass.fatal: RetryRule(0, 0.0),
        }
        self._too_large_error = too_large_error

    @classmethod
    def from_settings(cls, settings, too_large_error: type[VoiceNotesError] = FileTooLargeError):
        """Build a policy from the retry fields of ``Settings``."""
        return cls(
            rate_limit_retries=settings.rate_limit_max_retries,
            rate_limit_max_delay=settings.rate_limit_max_delay,
            server_error_retries=settings.server_error_max_retries,
            server_error_max_delay=settings.server_error_max_delay,
            network_retries=settings.network_max_retries,
            network_max_delay=settings.network_max_delay,
            too_large_error=too_large_error,
        )

    def rule(self, error_class: ErrorClass) -> RetryRule:
        return self._rules[error_class]

    # ------------------------------------------------------------------
    # Classification
    # ------------------------------------------------------------------

    @staticmethod
    def classify(exc: BaseException) -> ErrorClass:
        """Map a raw failure onto its retry class."""
        if isinstance(exc, ProviderHTTPError):
            if exc.http_status == 429:
                return ErrorClass.rate_limited
            if 500 <= exc.http_status <= 599:
                return ErrorClass.server_error
            return ErrorClass.fatal
        if isinstance(exc, VoiceNotesError):
            return ErrorClass.fatal
        if isinstance(exc, (TimeoutError, ConnectionError)):
            return ErrorClass.transient_network
        return ErrorClass.fatal

    def translate(self, exc: BaseException, cancel_token: CancellationToken) -> VoiceNotesError:
        """Turn a final (non-retried or exhausted) failure into a taxonomy error.

        Cancellation always wins over whatever error co-occurred.
        """
        if cancel_token.is_cancelled:
            return OperationCancelledError()
        if isinstance(exc, ProviderHTTPError):
            status = exc.http_status
            if status == 401:
                return ApiKeyMissingError(exc.provider)
            if status == 403:
                return PermissionDeniedError(exc.detail)
            if status == 413:
                return self._too_large_error()
            if status == 429:
                return QuotaExceededError(exc.detail)
            return NetworkError(exc.detail)
        if isinstance(exc, VoiceNotesError):
            return exc
        return NetworkError(exc)

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    def _stop(self, retry_state: RetryCallState) -> bool:
        exc = retry_state.outcome.exception()
        rule = self._rules[self.classify(exc)]
        return retry_state.attempt_number > rule.max_retries

    def _wait(self, retry_state: RetryCallState) -> float:
        exc = retry_state.outcome.exception()
        rule = self._rules[self.classify(exc)]
        return rule.delay(retry_state.attempt_number - 1)

    async def run(
        self,
        call: Callable[[], Awaitable[T]],
        cancel_token: CancellationToken,
        label: str = "provider call",
    ) -> T:
        """Run ``call`` with classification-driven retries.

        Args:
            call: Zero-argument coroutine factory; invoked once per attempt
                with the identical payload.
            cancel_token: Checked before every attempt and throughout each
                backoff sleep.
            label: Human-readable name used in log messages.

        Returns:
            The value produced by the first successful attempt.

        Raises:
            VoiceNotesError: The translated terminal failure, or
                ``OperationCancelledError`` if cancellation was observed.
        """

        def _log_retry(retry_state: RetryCallState) -> None:
            exc = retry_state.outcome.exception()
            logger.warning(
                "%s failed (%s: %s); retrying in %.1fs (retry %d)",
                label,
                self.classify(exc),
                exc,
                retry_state.next_action.sleep,
                retry_state.attempt_number,
            )

        retrying = AsyncRetrying(
            retry=retry_if_exception(
                lambda exc: not cancel_token.is_cancelled
                and self.classify(exc) is not ErrorClass.fatal
            ),
            stop=self._stop,
            wait=self._wait,
            sleep=cancel_token.sleep,
            before_sleep=_log_retry,
            reraise=True,
        )

        try:
            async for attempt in retrying:
                with attempt:
                    cancel_token.raise_if_cancelled()
                    result = await call()
        except OperationCancelledError:
            raise
        except Exception as exc:
            error = self.translate(exc, cancel_token)
            if error is exc:
                raise
            raise error from exc
        return result
