"""Liquidation bot — owns the registry and drives the ingest/scan loop."""
from __future__ import annotations

import asyncio
import logging
import time
from typing import Callable, Sequence

from stellar_sdk import Keypair

from ..chains.soroban import SorobanGateway
from ..config import AppConfig
from ..interfaces.chain import LedgerGateway
from ..interfaces.notifier import Notifier
from ..models import LiquidationPlan
from ..notifications import TelegramNotifier
from ..protocols.peridot import PeridotAdapter
from .executor import LiquidationExecutor
from .ingestor import EventIngestor
from .registry import BorrowerRegistry
from .scanner import SolvencyScanner

logger = logging.getLogger(__name__)


class LiquidationBot:
    """Single-task liquidation loop: ingest events, scan borrowers, sleep."""

    def __init__(
        self,
        config: AppConfig,
        gateway: LedgerGateway | None = None,
        notifiers: Sequence[Notifier] | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._config = config
        self.poll_interval = config.bot.poll_interval_seconds
        self._liquidator = Keypair.from_secret(config.liquidator.secret)

        self._owns_gateway = gateway is None
        self._gateway: LedgerGateway = gateway or SorobanGateway(config.ledger)

        if notifiers is None:
            notifiers = []
            if config.notifications.telegram.enabled:
                notifiers.append(TelegramNotifier(config.notifications.telegram))
        self._notifiers = list(notifiers)

        controller_id = config.protocol.controller_id
        markets = config.protocol.markets

        self.registry = BorrowerRegistry()
        self._adapter = PeridotAdapter(self._gateway, controller_id)
        self._executor = LiquidationExecutor(
            self._adapter, self._liquidator, self._notifiers
        )
        self.ingestor = EventIngestor(
            self._gateway,
            self.registry,
            [controller_id, *(m.vault_id for m in markets)],
            backlog=config.bot.event_backlog,
            page_size=config.bot.event_page_size,
            clock=clock,
        )
        self.scanner = SolvencyScanner(
            self._adapter,
            self._executor,
            markets,
            refresh_interval=config.bot.borrower_refresh_seconds,
            min_shortfall=config.bot.min_shortfall,
            clock=clock,
        )

    @property
    def liquidator_address(self) -> str:
        return self._liquidator.public_key

    async def start(self) -> None:
        """Anchor the event cursor. Failures here are fatal."""
        start_ledger = await self.ingestor.bootstrap()
        await self._send_log(
            f"Peridot liquidator {self.liquidator_address} started "
            f"from ledger {start_ledger}, watching "
            f"{', '.join(m.symbol for m in self._config.protocol.markets)}"
        )

    async def run_round(self) -> None:
        """Ingest one event page then scan all borrowers; errors are logged, not raised."""
        try:
            await self.ingestor.poll()
        except Exception as e:
            logger.error("[events] %s", e, exc_info=logger.isEnabledFor(logging.DEBUG))

        try:
            await self.scanner.scan(self.registry)
        except Exception as e:
            logger.error("[scan] %s", e, exc_info=logger.isEnabledFor(logging.DEBUG))

    async def run(
        self, stop: asyncio.Event | None = None, max_rounds: int | None = None
    ) -> int:
        """Run rounds until ``stop`` is set or ``max_rounds`` have completed."""
        stop = stop or asyncio.Event()
        await self.start()
        logger.info(
            "Polling every %.1fs, refreshing borrowers every %.1fs",
            self.poll_interval,
            self._config.bot.borrower_refresh_seconds,
        )

        rounds = 0
        while not stop.is_set():
            await self.run_round()
            rounds += 1
            if max_rounds is not None and rounds >= max_rounds:
                break
            try:
                await asyncio.wait_for(stop.wait(), timeout=self.poll_interval)
            except asyncio.TimeoutError:
                pass
        return rounds

    async def check_borrower(self, borrower: str) -> LiquidationPlan | None:
        """Evaluate one account without executing anything."""
        return await self.scanner.evaluate(borrower)

    async def close(self) -> None:
        if self._owns_gateway and isinstance(self._gateway, SorobanGateway):
            await self._gateway.close()

    async def _send_log(self, message: str) -> None:
        for notifier in self._notifiers:
            try:
                await notifier.send_log(message, silent=True)
            except Exception as e:
                logger.error("Notifier send_log failed: %s", e)
