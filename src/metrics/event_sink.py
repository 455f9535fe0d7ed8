"""Event sinks that turn mail events into counters."""

import logging
import threading
import time
from abc import ABC, abstractmethod
from typing import Callable, Iterable, Optional

from prometheus_client import CollectorRegistry, Counter
from prometheus_client.core import CounterMetricFamily
from prometheus_client.registry import Collector

from src.gmail.models import CanonicalMailEvent

from .labels import event_labels

logger = logging.getLogger(__name__)

EMAIL_RECEIVED = "email_received"
EMAIL_POLLS = "email_polls"


class EventSink(ABC):
    """Interface for consumers of canonical mail events.

    Implementations:
    - PrometheusEventSink: Labeled counters for scraping
    - InMemoryEventSink: Records everything, for testing
    """

    @abstractmethod
    def record_event(self, event: CanonicalMailEvent) -> None:
        """Count one newly received message."""
        pass

    @abstractmethod
    def record_poll(self) -> None:
        """Count one sync cycle, whether or not mail arrived."""
        pass

    def record_events(self, events: Iterable[CanonicalMailEvent]) -> None:
        for event in events:
            self.record_event(event)


class InMemoryEventSink(EventSink):
    """Keeps events and poll counts in memory."""

    def __init__(self) -> None:
        self.events: list[CanonicalMailEvent] = []
        self.polls = 0

    def record_event(self, event: CanonicalMailEvent) -> None:
        self.events.append(event)

    def record_poll(self) -> None:
        self.polls += 1

    def clear(self) -> None:
        """Forget all recorded events and polls."""
        self.events.clear()
        self.polls = 0


class LabeledCounterCollector(Collector):
    """A counter whose label names vary from sample to sample.

    ``prometheus_client.Counter`` fixes its label names up front, but each
    message carries its own ``label_*`` set. This collector keeps one
    value per distinct label set and exposes them all under one family.

    Series not incremented within ``idle_timeout`` seconds are dropped.
    """

    def __init__(
        self,
        name: str,
        documentation: str,
        idle_timeout: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._name = name
        self._documentation = documentation
        self._idle_timeout = idle_timeout
        self._clock = clock
        self._lock = threading.Lock()
        # label set -> (value, last increment time)
        self._series: dict[tuple[tuple[str, str], ...], tuple[float, float]] = {}

    def inc(self, labels: dict[str, str], amount: float = 1.0) -> None:
        key = tuple(sorted(labels.items()))
        with self._lock:
            value, _ = self._series.get(key, (0.0, 0.0))
            self._series[key] = (value + amount, self._clock())

    def _expire(self) -> None:
        if self._idle_timeout is None:
            return
        cutoff = self._clock() - self._idle_timeout
        for key in [k for k, (_, seen) in self._series.items() if seen < cutoff]:
            del self._series[key]

    def describe(self) -> list[CounterMetricFamily]:
        return [CounterMetricFamily(self._name, self._documentation)]

    def collect(self) -> Iterable[CounterMetricFamily]:
        family = CounterMetricFamily(self._name, self._documentation)
        with self._lock:
            self._expire()
            for key, (value, _) in self._series.items():
                family.add_sample(f"{self._name}_total", dict(key), value)
        yield family


class PrometheusEventSink(EventSink):
    """Exposes ``email_received`` and ``email_polls`` on a registry.

    Example:
        sink = PrometheusEventSink(idle_timeout=360)
        serve_metrics(9090, sink.registry)
        sink.record_event(event)
    """

    def __init__(
        self,
        registry: Optional[CollectorRegistry] = None,
        idle_timeout: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        """Initialize the sink.

        Args:
            registry: Registry to register on. Defaults to a fresh one,
                kept separate from the process-wide default registry.
            idle_timeout: Seconds after which an idle ``email_received``
                series disappears from the exposition.
            clock: Monotonic clock (for testing).
        """
        self.registry = registry or CollectorRegistry()
        self._received = LabeledCounterCollector(
            EMAIL_RECEIVED,
            "A counter for every email received.",
            idle_timeout=idle_timeout,
            clock=clock,
        )
        self.registry.register(self._received)
        self._polls = Counter(
            EMAIL_POLLS,
            "A counter for every mailbox poll.",
            registry=self.registry,
        )

    def record_event(self, event: CanonicalMailEvent) -> None:
        labels = event_labels(event)
        self._received.inc(labels)
        logger.debug("Counted message %s with labels %s", event.id, labels)

    def record_poll(self) -> None:
        self._polls.inc()
