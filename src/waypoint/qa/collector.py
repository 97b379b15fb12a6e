"""QA milestone collector.

Binds a ``PowerLawSampler`` to a session id and to caller-supplied,
zero-argument metric providers. Providers are called lazily: only when an
occurrence lands on a checkpoint (or a capture is forced), so expensive
metric computation is never paid for the events that are not sampled.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from typing import TYPE_CHECKING, Any, TypeVar

from pydantic import ValidationError

from waypoint.core.logging import get_logger
from waypoint.qa.models import (
    QAMilestoneEvent,
    QAMilestoneSnapshot,
    event_name,
)
from waypoint.qa.sampler import PowerLawSampler
from waypoint.utils.time import Clock, now_ms

if TYPE_CHECKING:
    from waypoint.core.config import MilestoneSettings

_logger = get_logger("qa.collector")

_T = TypeVar("_T")

MetricsProvider = Callable[[], Mapping[str, Any]]
ProviderStatsProvider = Callable[[], Mapping[str, Any] | None]
StubDistributionProvider = Callable[[], Mapping[str, Any] | None]


class QAMilestoneCollector:
    """Records QA events and captures snapshots at power-law checkpoints.

    Usage::

        collector = QAMilestoneCollector(metrics_provider=lambda: {"documents_analyzed": 3})
        collector.record_event(QAMilestoneEvent.DOCUMENT_ANALYZED, "notes/a.md")
        collector.end_session()
    """

    def __init__(
        self,
        metrics_provider: MetricsProvider,
        sampler: PowerLawSampler | None = None,
        session_id: str | None = None,
        provider_stats_provider: ProviderStatsProvider | None = None,
        stub_distribution_provider: StubDistributionProvider | None = None,
        clock: Clock = now_ms,
    ) -> None:
        self._metrics_provider = metrics_provider
        self._sampler = sampler or PowerLawSampler()
        self._provider_stats_provider = provider_stats_provider
        self._stub_distribution_provider = stub_distribution_provider
        self._clock = clock
        self._session_id = session_id or self._generate_session_id()

    @property
    def sampler(self) -> PowerLawSampler:
        return self._sampler

    @property
    def session_id(self) -> str:
        return self._session_id

    def _generate_session_id(self) -> str:
        return f"session-{self._clock()}"

    def _call(self, name: str, provider: Callable[[], _T] | None) -> _T | None:
        if provider is None:
            return None
        try:
            return provider()
        except Exception as e:
            _logger.warning("qa.provider_failed", provider=name, error=str(e))
            return None

    def _payload(self, name: str, value: Any) -> dict[str, Any] | None:
        if value is None:
            return None
        try:
            return dict(value)
        except (TypeError, ValueError) as e:
            _logger.warning("qa.payload_invalid", provider=name, error=str(e))
            return None

    def _capture(
        self,
        event: QAMilestoneEvent | str,
        count: int,
        document_path: str | None,
    ) -> QAMilestoneSnapshot:
        fields: dict[str, Any] = {
            "event": event_name(event),
            "timestamp": self._clock(),
            "occurrence_number": count,
            "document_path": document_path,
            "session_id": self._session_id,
        }
        payloads: dict[str, Any] = {
            "metrics": self._payload(
                "metrics", self._call("metrics", self._metrics_provider)
            ) or {},
            "provider_stats": self._payload(
                "provider_stats", self._call("provider_stats", self._provider_stats_provider)
            ),
            "stub_distribution": self._payload(
                "stub_distribution",
                self._call("stub_distribution", self._stub_distribution_provider),
            ),
        }

        try:
            snapshot = QAMilestoneSnapshot(**fields, **payloads)
        except ValidationError as e:
            # Checkpoint already spent: keep the capture without the bad payloads
            failed = {str(err["loc"][0]) for err in e.errors() if err["loc"]}
            invalid = sorted(failed & payloads.keys())
            _logger.warning("qa.payload_invalid", fields=invalid, error_count=e.error_count())
            for key in invalid:
                payloads[key] = {} if key == "metrics" else None
            snapshot = QAMilestoneSnapshot(**fields, **payloads)

        self._sampler.record_snapshot(snapshot)
        return snapshot

    def record_event(
        self,
        event: QAMilestoneEvent | str,
        document_path: str | None = None,
        sub_key: str | None = None,
    ) -> QAMilestoneSnapshot | None:
        """Count an event, capturing a snapshot if it reached a checkpoint.

        Args:
            event: Event type.
            document_path: Document the event concerns, if any.
            sub_key: Optional sub-counter, e.g. a provider name.

        Returns:
            The captured snapshot, or None when the occurrence was not sampled.
        """
        decision = self._sampler.increment_and_check(event, sub_key)
        if not decision.should_capture:
            return None
        return self._capture(event, decision.count, document_path)

    def force_capture(
        self,
        event: QAMilestoneEvent | str,
        document_path: str | None = None,
    ) -> QAMilestoneSnapshot:
        """Capture a snapshot regardless of checkpoints, without counting."""
        return self._capture(event, self._sampler.get_count(event), document_path)

    def new_session(self) -> str:
        """Start a new session and record ``session_started``."""
        self._session_id = self._generate_session_id()
        _logger.info("qa.session_started", session_id=self._session_id)
        self.record_event(QAMilestoneEvent.SESSION_STARTED)
        return self._session_id

    def end_session(self) -> QAMilestoneSnapshot:
        _logger.info("qa.session_ended", session_id=self._session_id)
        return self.force_capture(QAMilestoneEvent.SESSION_ENDED)


def create_collector(
    settings: MilestoneSettings,
    metrics_provider: MetricsProvider,
    *,
    provider_stats_provider: ProviderStatsProvider | None = None,
    stub_distribution_provider: StubDistributionProvider | None = None,
    sampler: PowerLawSampler | None = None,
    session_id: str | None = None,
    clock: Clock = now_ms,
) -> QAMilestoneCollector | None:
    """Build a collector wired for the configured QA verbosity.

    ``minimal`` captures metrics only, ``standard`` adds provider stats and
    ``verbose`` also captures the stub distribution.

    Returns:
        None when QA collection is disabled.
    """
    if not settings.qa_enabled:
        return None

    verbosity = settings.qa_verbosity
    return QAMilestoneCollector(
        metrics_provider=metrics_provider,
        sampler=sampler,
        session_id=session_id,
        provider_stats_provider=(
            provider_stats_provider if verbosity in ("standard", "verbose") else None
        ),
        stub_distribution_provider=(
            stub_distribution_provider if verbosity == "verbose" else None
        ),
        clock=clock,
    )


__all__ = ["QAMilestoneCollector", "create_collector"]
