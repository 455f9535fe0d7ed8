"""Sequential mailbox watch loop.

Connects SyncEngine, MessageEnricher and an EventSink into repeated
fetch-enrich-emit cycles with a watermark that only advances after a
batch has been emitted.
"""

from .loop import MailWatcher
from .models import BackfillResult, CycleResult

__all__ = [
    "MailWatcher",
    "CycleResult",
    "BackfillResult",
]
