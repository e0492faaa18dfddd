"""Ledger gateway protocol — Soroban RPC abstraction."""
from __future__ import annotations

from typing import Any, Protocol, Sequence

from stellar_sdk import Keypair
from stellar_sdk import xdr as stellar_xdr

from ..models import EventPage, Receipt


class LedgerGateway(Protocol):
    """Read-only simulation and write submission against the network."""

    async def get_latest_ledger(self) -> int: ...

    async def get_events(
        self,
        contract_ids: Sequence[str],
        *,
        cursor: str | None = None,
        start_ledger: int | None = None,
        limit: int = 50,
    ) -> EventPage: ...

    async def call(
        self, contract_id: str, method: str, args: Sequence[stellar_xdr.SCVal]
    ) -> Any: ...

    async def invoke(
        self,
        signer: Keypair,
        contract_id: str,
        method: str,
        args: Sequence[stellar_xdr.SCVal],
    ) -> Receipt: ...
