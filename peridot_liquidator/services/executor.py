"""Liquidation execution."""
from __future__ import annotations

import logging
from typing import Sequence

from stellar_sdk import Keypair

from ..interfaces.notifier import Notifier
from ..models import LiquidationPlan, Receipt
from ..protocols.peridot.adapter import PeridotAdapter
from ..protocols.peridot.parser import describe_native

logger = logging.getLogger(__name__)


class LiquidationExecutor:
    """Submit ``liquidate`` for a plan, paying seized collateral to ourselves.

    Ledger errors are not handled here; the scanner counts them against the
    borrower.
    """

    def __init__(
        self,
        adapter: PeridotAdapter,
        signer: Keypair,
        notifiers: Sequence[Notifier] = (),
    ) -> None:
        self._adapter = adapter
        self._signer = signer
        self._notifiers = list(notifiers)

    @property
    def liquidator_address(self) -> str:
        return self._signer.public_key

    async def execute(self, plan: LiquidationPlan) -> Receipt:
        receipt = await self._adapter.liquidate(
            self._signer,
            plan.borrower,
            plan.repay_market.vault_id,
            plan.collateral_market.vault_id,
            plan.repay_amount,
            self.liquidator_address,
        )

        result = describe_native(receipt.return_value)
        logger.info(
            "[success] borrower=%s repay=%s amount=%d collateral=%s seize=%d tx=%s result=%s",
            plan.borrower,
            plan.repay_market.symbol,
            plan.repay_amount,
            plan.collateral_market.symbol,
            plan.seize_amount,
            receipt.tx_hash,
            result,
        )
        await self._send_alert(
            f"Liquidated {plan.borrower}\n"
            f"Repaid {plan.repay_amount} {plan.repay_market.symbol}\n"
            f"Seized {plan.seize_amount} p{plan.collateral_market.symbol}\n"
            f"tx {receipt.tx_hash} · result {result}"
        )
        return receipt

    async def _send_alert(self, message: str) -> None:
        for notifier in self._notifiers:
            try:
                await notifier.send_alert(message)
            except Exception as e:
                logger.error("Notifier send_alert failed: %s", e)
