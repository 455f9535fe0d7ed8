"""MailWatcher - the sequential fetch, enrich, emit, sleep loop."""

import logging
import time
from datetime import datetime, timezone
from typing import Callable, Optional

from src.gmail import MessageEnricher, SyncEngine, advance_watermark
from src.metrics import EventSink

from .models import BackfillResult, CycleResult

logger = logging.getLogger(__name__)


class MailWatcher:
    """Polls mailbox history and feeds new mail to an event sink.

    Each cycle walks history from the watermark, enriches every added
    message, emits the events, and only then advances the watermark to
    the last event's history ID. Any error propagates out of the cycle
    with the watermark untouched, so restarting with the last good
    watermark re-delivers the batch.

    Example:
        watcher = MailWatcher(SyncEngine(api), MessageEnricher(api, catalog), sink)
        watcher.run(starting_from="12345")
    """

    def __init__(
        self,
        sync_engine: SyncEngine,
        enricher: MessageEnricher,
        sink: EventSink,
        sleep_interval: float = 60,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self._sync = sync_engine
        self._enricher = enricher
        self._sink = sink
        self._sleep_interval = sleep_interval
        self._sleep = sleep

    def run_cycle(self, watermark: str) -> CycleResult:
        """Run one sync cycle from ``watermark``.

        Returns:
            CycleResult whose ``watermark_out`` is the watermark for the
            next cycle.
        """
        started_at = datetime.now(timezone.utc)
        start = time.monotonic()

        logger.info("Fetching mail since history %s", watermark)
        refs = self._sync.fetch_since(watermark)
        events = self._enricher.enrich_all(refs)

        self._sink.record_events(events)
        self._sink.record_poll()

        next_watermark = watermark
        if events:
            next_watermark = advance_watermark(watermark, events[-1].history_id)
            logger.info(
                "Found %d new message(s); watermark %s -> %s",
                len(events),
                watermark,
                next_watermark,
                extra={"new_messages": len(events), "history_id": next_watermark},
            )
        else:
            logger.info("No new mail found")

        return CycleResult(
            started_at=started_at,
            watermark_in=watermark,
            watermark_out=next_watermark,
            refs_found=len(refs),
            events=events,
            duration_seconds=round(time.monotonic() - start, 2),
        )

    def run(self, starting_from: str, max_cycles: Optional[int] = None) -> str:
        """Loop cycles forever, or ``max_cycles`` times.

        Returns:
            The watermark after the last completed cycle.
        """
        watermark = starting_from
        cycles = 0
        while True:
            watermark = self.run_cycle(watermark).watermark_out
            cycles += 1
            if max_cycles is not None and cycles >= max_cycles:
                return watermark

            logger.info("Sleeping for %ss", self._sleep_interval)
            self._sleep(self._sleep_interval)

    def backfill(self, max_results: int = 50) -> BackfillResult:
        """Enrich the newest messages without emitting them.

        The highest history ID among them is a safe watermark to start
        watching from.
        """
        refs = self._sync.list_recent(max_results=max_results)
        events = self._enricher.enrich_all(refs)

        latest = None
        for event in events:
            latest = advance_watermark(latest, event.history_id) if latest else event.history_id

        logger.info("Backfilled %d message(s); latest history id %s", len(events), latest)
        return BackfillResult(events=events, latest_history_id=latest)
