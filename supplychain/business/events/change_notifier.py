from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterable

from blinker import Namespace

from supplychain.logger import get_logger

logger = get_logger("supplychain.business.events")

STOCK_CHANGED = 'stock-changed'
TRANSFER_CHANGED = 'transfer-changed'
SALE_RECORDED = 'sale-recorded'


@dataclass(frozen=True)
class ChangeEvent:
    """A committed change: which row moved, and the version it moved to"""
    topic: str
    entity_kind: str
    entity_id: int
    version: int
    department: str | None = None
    payload: dict[str, Any] = field(default_factory=dict)


class ChangeNotifier:
    """
    Publishes committed changes on blinker signals for the notification layer.

    The engine only calls ``publish`` after a transaction commits; events of a
    rolled back unit of work are never handed over.
    """

    def __init__(self):
        self._signals = Namespace()
        self.stock_changed = self._signals.signal(STOCK_CHANGED)
        self.transfer_changed = self._signals.signal(TRANSFER_CHANGED)
        self.sale_recorded = self._signals.signal(SALE_RECORDED)

    def signal(self, topic: str):
        return self._signals.signal(topic)

    def publish(self, events: Iterable[ChangeEvent]) -> None:
        for event in events:
            try:
                self.signal(event.topic).send(self, event=event)
            except Exception:
                # Already committed; a broken subscriber must not turn it into a failure
                logger.error(
                    f"Subscriber failed for {event.topic} {event.entity_kind}:{event.entity_id}",
                    exc_info=True,
                )
