"""Solvency scanning — re-evaluates tracked borrowers and builds liquidation plans."""
from __future__ import annotations

import logging
import time
from typing import Callable, Sequence

from ..config import MarketConfig
from ..models import BorrowerState, LiquidationPlan
from ..protocols.peridot.adapter import PeridotAdapter
from .executor import LiquidationExecutor
from .registry import BorrowerRegistry

logger = logging.getLogger(__name__)

FAILURE_BACKOFF_STEP_SECONDS = 5.0
MAX_FAILURE_BACKOFF_SECONDS = 60.0


def failure_backoff(failures: int) -> float:
    """Minimum delay before re-evaluating an account with ``failures`` in a row."""
    return min(MAX_FAILURE_BACKOFF_SECONDS, failures * FAILURE_BACKOFF_STEP_SECONDS)


def should_evaluate(state: BorrowerState, now: float, refresh_interval: float) -> bool:
    if state.last_evaluated is None:
        return True
    elapsed = now - state.last_evaluated
    if elapsed < refresh_interval:
        return False
    if state.failures > 0 and elapsed < failure_backoff(state.failures):
        return False
    return True


class SolvencyScanner:
    """Evaluate each tracked borrower in turn and liquidate the insolvent ones.

    Accounts are evaluated strictly one after another; an account's
    liquidation (including its confirmation wait) completes before the next
    account is looked at.
    """

    def __init__(
        self,
        adapter: PeridotAdapter,
        executor: LiquidationExecutor,
        markets: Sequence[MarketConfig],
        *,
        refresh_interval: float,
        min_shortfall: int = 0,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._adapter = adapter
        self._executor = executor
        self.markets = tuple(markets)
        self.refresh_interval = refresh_interval
        self.min_shortfall = min_shortfall
        self._clock = clock

    async def scan(self, registry: BorrowerRegistry) -> int:
        """Run one pass over the registry. Returns the number of accounts evaluated."""
        now = self._clock()
        evaluated = 0

        for borrower, state in registry.items():
            if not should_evaluate(state, now, self.refresh_interval):
                continue

            # Stamp first so a failing evaluation waits out its backoff.
            state.last_evaluated = now
            evaluated += 1
            try:
                plan = await self.evaluate(borrower)
                if plan is not None:
                    await self._executor.execute(plan)
                state.failures = 0
            except Exception as e:
                state.failures += 1
                logger.error(
                    "[liquidate] %s | %s (failures=%d)", borrower, e, state.failures,
                    exc_info=logger.isEnabledFor(logging.DEBUG),
                )

        return evaluated

    async def evaluate(self, borrower: str) -> LiquidationPlan | None:
        """Compute a liquidation plan for ``borrower``, or None if not actionable."""
        _liquidity, shortfall = await self._adapter.account_liquidity(borrower)
        if shortfall <= self.min_shortfall:
            return None

        repay = await self._pick_repay_market(borrower)
        if repay is None:
            return None
        repay_market, repay_amount = repay

        collateral = await self._pick_collateral_market(
            borrower, repay_market, repay_amount
        )
        if collateral is None:
            return None
        collateral_market, seize_amount = collateral

        logger.info(
            "[plan] borrower=%s shortfall=%d repay=%s amount=%d collateral=%s seize=%d",
            borrower,
            shortfall,
            repay_market.symbol,
            repay_amount,
            collateral_market.symbol,
            seize_amount,
        )
        return LiquidationPlan(
            borrower=borrower,
            shortfall=shortfall,
            repay_market=repay_market,
            repay_amount=repay_amount,
            collateral_market=collateral_market,
            seize_amount=seize_amount,
        )

    async def _pick_repay_market(
        self, borrower: str
    ) -> tuple[MarketConfig, int] | None:
        """Largest positive debt wins; ties go to the first market configured."""
        chosen: MarketConfig | None = None
        chosen_debt = 0

        for market in self.markets:
            debt = await self._adapter.borrow_balance(market.vault_id, borrower)
            if debt <= 0:
                continue
            if chosen is None or debt > chosen_debt:
                chosen, chosen_debt = market, debt

        if chosen is None:
            return None

        cap = await self._adapter.repay_cap(borrower, chosen.vault_id)
        # A zero cap means the controller imposes no limit.
        repay_amount = chosen_debt if cap == 0 else min(cap, chosen_debt)
        if repay_amount == 0:
            return None
        return chosen, repay_amount

    async def _pick_collateral_market(
        self, borrower: str, repay_market: MarketConfig, repay_amount: int
    ) -> tuple[MarketConfig, int] | None:
        best: MarketConfig | None = None
        best_seize = 0

        for market in self.markets:
            balance = await self._adapter.ptoken_balance(market.vault_id, borrower)
            if balance <= 0:
                continue

            seize = await self._adapter.preview_seize(
                repay_market.vault_id, market.vault_id, repay_amount
            )
            if seize <= 0:
                continue
            if best is None or seize > best_seize:
                best, best_seize = market, seize

        if best is None:
            return None
        return best, best_seize
