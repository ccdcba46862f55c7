"""
Summarization with provider fallback.

Attempt order for one request:

1. the requested (or configured) provider;
2. the app-default provider, if step 1 was a different provider;
3. every other configured provider, in registry order, not tried yet;
4. a local extractive summary, which cannot fail on non-empty input.

A failure at one step never aborts the next. Only an empty transcript or a
cancellation ends the chain early. Which step succeeded is reported to the
telemetry collaborator, never to the caller.
"""

import logging
import time
from datetime import UTC, datetime

from voicenotes.core.cancellation import CancellationToken
from voicenotes.core.config import get_settings
from voicenotes.core.exceptions import EmptyTextError, OperationCancelledError
from voicenotes.core.models import (
    FallbackUsage,
    ProviderType,
    SummaryLength,
    SummaryMode,
    SummaryResult,
    SummaryTelemetry,
)
from voicenotes.services.summarization.base import ProgressCallback
from voicenotes.services.summarization.local_extract import local_extract
from voicenotes.services.summarization.registry import ProviderRegistry
from voicenotes.services.telemetry import TelemetryCollector

logger = logging.getLogger(__name__)

LOCAL_PROVIDER_ID = "local_extract"


def _forward_only(progress: ProgressCallback | None) -> ProgressCallback | None:
    """Wrap ``progress`` so a fallback step never reports at or below an earlier value."""
    if progress is None:
        return None
    highest = 0.0

    def report(value: float) -> None:
        nonlocal highest
        if value > highest:
            highest = value
            progress(value)

    return report


class SummaryService:
    """Runs the fallback chain over a provider registry.

    Args:
        registry: Provider table and configuration queries.
        telemetry: Optional collaborator receiving one record per request.
        settings: Optional Settings instance (defaults to get_settings()).
    """

    def __init__(
        self,
        registry: ProviderRegistry,
        telemetry: TelemetryCollector | None = None,
        settings=None,
    ) -> None:
        self._registry = registry
        self._telemetry = telemetry
        self._settings = settings or get_settings()

    @property
    def registry(self) -> ProviderRegistry:
        return self._registry

    def attempt_order(self, selected: ProviderType) -> list[ProviderType]:
        """Remote providers to try, in order, for a request on ``selected``."""
        order = [selected]
        if selected is not ProviderType.app_default:
            order.append(ProviderType.app_default)
        order.extend(p for p in self._registry.configured_providers() if p not in order)
        return order

    def _track(
        self,
        provider_id: str,
        requested: ProviderType,
        success: bool,
        usage: FallbackUsage,
        started: float,
        transcript: str,
        result: SummaryResult | None,
    ) -> None:
        if self._telemetry is None:
            return
        record = SummaryTelemetry(
            provider_id=provider_id,
            requested_provider=requested.value,
            success=success,
            used_fallback=usage,
            elapsed_ms=int((time.monotonic() - started) * 1000),
            input_length=len(transcript),
            output_length=len(result.clean) if result else 0,
            timestamp=datetime.now(UTC),
        )
        try:
            self._telemetry.track(record)
        except Exception as exc:
            logger.warning("Telemetry collector failed: %s", exc)

    async def summarize(
        self,
        transcript: str,
        length: SummaryLength | None = None,
        provider_override: ProviderType | None = None,
        progress: ProgressCallback | None = None,
        cancel_token: CancellationToken | None = None,
        mode: SummaryMode | None = None,
    ) -> SummaryResult:
        """Summarize ``transcript``, falling back until something succeeds.

        Raises:
            EmptyTextError: If the transcript is blank.
            OperationCancelledError: If cancellation is observed at any step.
        """
        token = cancel_token or CancellationToken()
        length = length or SummaryLength(self._settings.default_summary_length)
        mode = mode or SummaryMode(self._settings.default_summary_mode)
        selected = provider_override or ProviderType(self._settings.summary_provider)
        started = time.monotonic()
        progress = _forward_only(progress)

        if not transcript.strip():
            raise EmptyTextError()

        for step, provider_type in enumerate(self.attempt_order(selected)):
            try:
                token.raise_if_cancelled()
                result = await self._registry.provider(provider_type).summarize(
                    transcript, length, progress, token, mode
                )
            except (EmptyTextError, OperationCancelledError):
                self._track(
                    provider_type.value, selected, False, FallbackUsage.none,
                    started, transcript, None,
                )
                raise
            except Exception as exc:
                logger.warning("Summary provider %s failed: %s", provider_type, exc)
                continue

            usage = FallbackUsage.none if step == 0 else FallbackUsage.provider
            if usage is FallbackUsage.provider:
                logger.info("Summary produced by fallback provider %s", provider_type)
            self._track(provider_type.value, selected, True, usage, started, transcript, result)
            return result

        token.raise_if_cancelled()
        logger.warning("All summary providers failed; using local extract")
        result = local_extract(transcript, length)
        if progress is not None:
            progress(1.0)
        self._track(
            LOCAL_PROVIDER_ID, selected, True, FallbackUsage.local, started, transcript, result
        )
        return result
