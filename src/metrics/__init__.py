"""Metrics boundary for mail events.

Public API:
    - EventSink: Interface for consumers of canonical mail events
    - PrometheusEventSink: email_received / email_polls counters
    - InMemoryEventSink: In-memory implementation for testing
    - event_labels: Label set derived from one event
    - serve_metrics: Start the scrape endpoint
"""

from .event_sink import (
    EMAIL_POLLS,
    EMAIL_RECEIVED,
    EventSink,
    InMemoryEventSink,
    LabeledCounterCollector,
    PrometheusEventSink,
)
from .exporter import serve_metrics
from .labels import UNKNOWN, event_labels, sanitize_label_name

__all__ = [
    "EventSink",
    "PrometheusEventSink",
    "InMemoryEventSink",
    "LabeledCounterCollector",
    "event_labels",
    "sanitize_label_name",
    "serve_metrics",
    "EMAIL_RECEIVED",
    "EMAIL_POLLS",
    "UNKNOWN",
]
