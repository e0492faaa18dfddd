"""Event ingestion: polls contract events and maintains the borrower registry."""
from __future__ import annotations

import logging
import time
from typing import Callable, Sequence

from ..interfaces.chain import LedgerGateway
from ..models import ContractEvent, EventCursor
from ..protocols.peridot.parser import classify_event, decode_topics
from .registry import BorrowerRegistry

logger = logging.getLogger(__name__)


class EventIngestor:
    """Page through controller and vault events from a bounded backlog."""

    def __init__(
        self,
        gateway: LedgerGateway,
        registry: BorrowerRegistry,
        contract_ids: Sequence[str],
        *,
        backlog: int,
        page_size: int,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._gateway = gateway
        self._registry = registry
        self.contract_ids = tuple(contract_ids)
        self.backlog = backlog
        self.page_size = page_size
        self._clock = clock
        self.cursor = EventCursor()

    async def bootstrap(self) -> int:
        """Anchor polling ``backlog`` ledgers behind the latest ledger."""
        latest = await self._gateway.get_latest_ledger()
        start = max(0, latest - self.backlog)
        self.cursor.anchor(start)
        logger.info(
            "Starting liquidation bot at ledger %d (backlog %d, first ledger %d)",
            latest,
            self.backlog,
            start,
        )
        return start

    async def poll(self) -> int:
        """Fetch and apply one page of events. Returns the number of events seen."""
        if self.cursor.state == "uninitialized":
            raise RuntimeError("Event cursor not bootstrapped")

        page = await self._gateway.get_events(
            self.contract_ids,
            cursor=self.cursor.cursor,
            start_ledger=None if self.cursor.cursor else self.cursor.start_ledger,
            limit=self.page_size,
        )
        if not page.events:
            return 0

        for event in page.events:
            self._handle(event)

        next_cursor = page.cursor or page.events[-1].id
        self.cursor.advance(next_cursor)
        logger.debug("[events] processed %d events, cursor=%s", len(page.events), next_cursor)
        return len(page.events)

    def _handle(self, event: ContractEvent) -> None:
        # Undecodable topics raise and hold the cursor, so a bad event is retried every round.
        action = classify_event(decode_topics(event.topics))
        if action is None:
            return

        address = action.account.address
        if action.kind == "track":
            self._registry.track(address, self._clock())
        else:
            self._registry.untrack(address)
