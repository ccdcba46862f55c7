"""
Telemetry collaborator for summary requests.

The summarization pipeline reports one ``SummaryTelemetry`` record per
request, fire-and-forget. The default collector logs each record and keeps a
bounded in-memory history for usage statistics.
"""

import logging
from abc import ABC, abstractmethod
from collections import deque

from voicenotes.core.models import FallbackUsage, SummaryTelemetry, UsageStats

logger = logging.getLogger(__name__)


class TelemetryCollector(ABC):
    """Receives summary telemetry records. Must not block."""

    @abstractmethod
    def track(self, record: SummaryTelemetry) -> None:
        """Record one summary request."""


class LoggingTelemetryCollector(TelemetryCollector):
    """Logs records and retains the most recent ``max_history`` of them."""

    def __init__(self, max_history: int = 1000) -> None:
        self._history: deque[SummaryTelemetry] = deque(maxlen=max_history)

    @property
    def history(self) -> list[SummaryTelemetry]:
        return list(self._history)

    def track(self, record: SummaryTelemetry) -> None:
        self._history.append(record)
        logger.info(
            "Summary telemetry: provider=%s requested=%s success=%s fallback=%s "
            "elapsed=%dms input=%d output=%d",
            record.provider_id,
            record.requested_provider,
            record.success,
            record.used_fallback,
            record.elapsed_ms,
            record.input_length,
            record.output_length,
        )

    def usage_stats(self) -> UsageStats:
        """Aggregate success and fallback rates over the retained history."""
        total = len(self._history)
        if total == 0:
            return UsageStats()

        successful = sum(1 for r in self._history if r.success)
        fallbacks = sum(1 for r in self._history if r.used_fallback is not FallbackUsage.none)
        local = sum(1 for r in self._history if r.used_fallback is FallbackUsage.local)
        elapsed = sum(r.elapsed_ms for r in self._history)
        return UsageStats(
            total_requests=total,
            successful_requests=successful,
            fallbacks_used=fallbacks,
            local_fallbacks_used=local,
            average_elapsed_ms=elapsed // total,
            success_rate=successful / total,
            fallback_rate=fallbacks / total,
        )
