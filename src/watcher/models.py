"""Data models for watch cycle results."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional

from src.gmail.models import CanonicalMailEvent


@dataclass
class CycleResult:
    """Result of one fetch-enrich-emit cycle.

    Attributes:
        started_at: When the cycle began (UTC).
        watermark_in: Watermark the history walk started from.
        watermark_out: Watermark to use for the next cycle.
        refs_found: Message references the history walk returned.
        events: Events emitted to the sink, in delivery order.
        duration_seconds: Wall time of the cycle.
    """

    started_at: datetime
    watermark_in: str
    watermark_out: str
    refs_found: int = 0
    events: list[CanonicalMailEvent] = field(default_factory=list)
    duration_seconds: float = 0.0

    @property
    def events_emitted(self) -> int:
        return len(self.events)

    @property
    def advanced(self) -> bool:
        return self.watermark_out != self.watermark_in

    def to_dict(self) -> dict[str, Any]:
        return {
            "started_at": self.started_at.isoformat(),
            "watermark_in": self.watermark_in,
            "watermark_out": self.watermark_out,
            "refs_found": self.refs_found,
            "events_emitted": self.events_emitted,
            "duration_seconds": self.duration_seconds,
        }


@dataclass
class BackfillResult:
    """Newest messages in the mailbox and a watermark to start watching from."""

    events: list[CanonicalMailEvent] = field(default_factory=list)
    latest_history_id: Optional[str] = None
