"""Generic metrics handler for domain events.

Every handled event produces a counter metric ``domain_events.{event_type}``.
Events carrying a numeric duration also produce a timing metric
``domain_events.{event_type}.duration``. Metrics go to a ``MetricsSink``; the
default sink writes them to the log. Plug in a StatsD or Prometheus client by
passing another sink or overriding ``emit_metric``.
"""

import json
import threading
from collections.abc import Mapping
from typing import Protocol, runtime_checkable

from loguru import logger

from domain_events.event_bus.core import EventHandler
from domain_events.events import DomainEvent, DurationMixin


@runtime_checkable
class MetricsSink(Protocol):
    """Counter/timer backend."""

    def emit(self, metric_name: str, tags: Mapping[str, str]) -> None: ...


class LoggingMetricsSink:
    """Writes metrics as ``[METRIC] name - {tags}`` log lines."""

    def emit(self, metric_name: str, tags: Mapping[str, str]) -> None:
        logger.info(f"[METRIC] {metric_name} - {json.dumps(dict(tags), default=str)}")


class InMemoryMetricsSink:
    """Collects emitted metrics, mostly useful in tests."""

    def __init__(self):
        self.metrics: list[tuple[str, dict[str, str]]] = []
        self._lock = threading.Lock()

    def emit(self, metric_name: str, tags: Mapping[str, str]) -> None:
        with self._lock:
            self.metrics.append((metric_name, dict(tags)))

    def names(self) -> list[str]:
        with self._lock:
            return [name for name, _tags in self.metrics]


class MetricsHandler(EventHandler[DomainEvent]):
    """Metrics collection for all events of one domain (``"*"`` for every domain)."""

    def __init__(self, domain: str, sink: MetricsSink | None = None):
        self.domain = domain
        self.sink = sink or LoggingMetricsSink()

    def can_handle(self, event_type: str) -> bool:
        if self.domain == "*":
            return True
        return event_type.startswith(f"{self.domain}.")

    def handle(self, event: DomainEvent) -> None:
        """Emit the counter metric, plus the timing metric if a duration is set.

        Only events composed with ``DurationMixin`` get the timing metric. An
        event declaring its own ``duration`` field without the mixin is
        counted but not timed.
        """
        try:
            metric_name = self.build_metric_name(event)
            tags = self.build_metric_tags(event)

            self.emit_metric(metric_name, tags)

            duration = event.duration if isinstance(event, DurationMixin) else None
            if isinstance(duration, int | float) and not isinstance(duration, bool):
                self.emit_metric(f"{metric_name}.duration", {**tags, "duration_ms": str(duration)})
        except Exception as e:
            logger.warning(f"Metrics collection failed: {e}")

    def build_metric_name(self, event: DomainEvent) -> str:
        return f"domain_events.{event.event_type}"

    def build_metric_tags(self, event: DomainEvent) -> dict[str, str]:
        return {
            "aggregate_type": event.aggregate_type,
            "organization_id": event.organization_id,
            "domain": self.domain,
        }

    def emit_metric(self, metric_name: str, tags: Mapping[str, str]) -> None:
        """Send a metric to the sink. Override to talk to a backend directly."""
        self.sink.emit(metric_name, tags)
