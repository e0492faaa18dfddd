"""Peridot protocol adapter — typed reads and the liquidation write."""
from __future__ import annotations

import logging

from stellar_sdk import Keypair

from ...interfaces.chain import LedgerGateway
from ...models import Receipt
from .parser import to_address, to_u128

logger = logging.getLogger(__name__)


class PeridotAdapter:
    """Query the controller and market vaults through a ledger gateway.

    All amounts are returned as Python ints; the contracts speak u128.
    """

    def __init__(self, gateway: LedgerGateway, controller_id: str) -> None:
        self._gateway = gateway
        self.controller_id = controller_id

    @property
    def protocol_name(self) -> str:
        return "peridot"

    async def account_liquidity(self, borrower: str) -> tuple[int, int]:
        """Return ``(liquidity, shortfall)`` for an account."""
        liquidity, shortfall = await self._gateway.call(
            self.controller_id, "account_liquidity", [to_address(borrower)]
        )
        return int(liquidity), int(shortfall)

    async def borrow_balance(self, vault_id: str, borrower: str) -> int:
        debt = await self._gateway.call(
            vault_id, "get_user_borrow_balance", [to_address(borrower)]
        )
        return int(debt)

    async def repay_cap(self, borrower: str, vault_id: str) -> int:
        """Maximum repay the controller allows on the borrower's behalf (0 = uncapped)."""
        cap = await self._gateway.call(
            self.controller_id,
            "preview_repay_cap",
            [to_address(borrower), to_address(vault_id)],
        )
        return int(cap)

    async def ptoken_balance(self, vault_id: str, borrower: str) -> int:
        balance = await self._gateway.call(
            vault_id, "get_ptoken_balance", [to_address(borrower)]
        )
        return int(balance)

    async def preview_seize(
        self, repay_vault_id: str, collateral_vault_id: str, repay_amount: int
    ) -> int:
        seize = await self._gateway.call(
            self.controller_id,
            "preview_seize_ptokens",
            [
                to_address(repay_vault_id),
                to_address(collateral_vault_id),
                to_u128(repay_amount),
            ],
        )
        return int(seize)

    async def liquidate(
        self,
        signer: Keypair,
        borrower: str,
        repay_vault_id: str,
        collateral_vault_id: str,
        repay_amount: int,
        liquidator: str,
    ) -> Receipt:
        return await self._gateway.invoke(
            signer,
            self.controller_id,
            "liquidate",
            [
                to_address(borrower),
                to_address(repay_vault_id),
                to_address(collateral_vault_id),
                to_u128(repay_amount),
                to_address(liquidator),
            ],
        )
