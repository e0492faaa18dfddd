"""Soroban RPC gateway — contract simulation and transaction submission."""
from __future__ import annotations

import asyncio
import logging
from typing import Any, Iterator, Sequence

from stellar_sdk import Account, Keypair, SorobanServerAsync, TransactionBuilder, scval
from stellar_sdk import xdr as stellar_xdr
from stellar_sdk.soroban_rpc import (
    EventFilter,
    EventFilterType,
    GetTransactionStatus,
    SendTransactionStatus,
)

from ...config import LedgerConfig
from ...errors import (
    ConfirmationTimeout,
    SimulationError,
    SubmissionError,
    TransactionFailed,
)
from ...models import ContractEvent, EventPage, Receipt

logger = logging.getLogger(__name__)

# All-zero ed25519 key; simulations never check its sequence or signature.
DUMMY_SOURCE = "GAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAWHF"
BASE_FEE = 100
TX_TIMEOUT_SECONDS = 30
CONFIRM_TIMEOUT_SECONDS = 120.0
CONFIRM_POLL_SECONDS = 1.0
# getEvents accepts at most 5 contract ids per filter.
MAX_CONTRACTS_PER_FILTER = 5


def _chunks(items: Sequence[str], size: int) -> Iterator[list[str]]:
    for i in range(0, len(items), size):
        yield list(items[i : i + size])


def _decode_return_value(result_meta_xdr: str | None) -> Any:
    """Extract the Soroban return value from transaction meta, if present."""
    if not result_meta_xdr:
        return None
    meta = stellar_xdr.TransactionMeta.from_xdr(result_meta_xdr)
    for version in (getattr(meta, "v4", None), meta.v3):
        if version is None or version.soroban_meta is None:
            continue
        return_value = version.soroban_meta.return_value
        if return_value is not None:
            return scval.to_native(return_value)
    return None


class SorobanGateway:
    """Soroban RPC client exposing ``call`` (simulate) and ``invoke`` (submit)."""

    def __init__(
        self,
        config: LedgerConfig,
        server: SorobanServerAsync | None = None,
        *,
        confirm_timeout: float = CONFIRM_TIMEOUT_SECONDS,
        poll_interval: float = CONFIRM_POLL_SECONDS,
    ) -> None:
        self.rpc_url = config.rpc_url
        self.network_passphrase = config.network_passphrase
        self.confirm_timeout = confirm_timeout
        self.poll_interval = poll_interval
        self._server = server if server is not None else SorobanServerAsync(config.rpc_url)

    async def close(self) -> None:
        await self._server.close()

    def _build(
        self,
        source: Account,
        contract_id: str,
        method: str,
        args: Sequence[stellar_xdr.SCVal],
    ):
        return (
            TransactionBuilder(
                source_account=source,
                network_passphrase=self.network_passphrase,
                base_fee=BASE_FEE,
            )
            .append_invoke_contract_function_op(
                contract_id=contract_id,
                function_name=method,
                parameters=list(args),
            )
            .set_timeout(TX_TIMEOUT_SECONDS)
            .build()
        )

    async def get_latest_ledger(self) -> int:
        latest = await self._server.get_latest_ledger()
        return latest.sequence

    async def get_events(
        self,
        contract_ids: Sequence[str],
        *,
        cursor: str | None = None,
        start_ledger: int | None = None,
        limit: int = 50,
    ) -> EventPage:
        """Fetch one page of contract events, by cursor or from a start ledger."""
        filters = [
            EventFilter(event_type=EventFilterType.CONTRACT, contract_ids=chunk)
            for chunk in _chunks(contract_ids, MAX_CONTRACTS_PER_FILTER)
        ]
        response = await self._server.get_events(
            start_ledger=None if cursor else start_ledger,
            filters=filters,
            cursor=cursor,
            limit=limit,
        )

        events = tuple(
            ContractEvent(
                id=info.id,
                contract_id=info.contract_id,
                ledger=info.ledger,
                topics=tuple(info.topic or ()),
            )
            for info in response.events
        )
        next_cursor = response.cursor or (events[-1].id if events else None)
        return EventPage(events=events, cursor=next_cursor)

    async def call(
        self, contract_id: str, method: str, args: Sequence[stellar_xdr.SCVal]
    ) -> Any:
        """Simulate a contract call and decode its return value.

        The transaction is built on a placeholder account with sequence 0; it
        is never signed or broadcast.
        """
        tx = self._build(Account(DUMMY_SOURCE, 0), contract_id, method, args)
        sim = await self._server.simulate_transaction(tx)

        if sim.error:
            raise SimulationError(method, sim.error)
        if not sim.results:
            raise SimulationError(method, "simulation failed")

        retval = stellar_xdr.SCVal.from_xdr(sim.results[0].xdr)
        return scval.to_native(retval)

    async def invoke(
        self,
        signer: Keypair,
        contract_id: str,
        method: str,
        args: Sequence[stellar_xdr.SCVal],
    ) -> Receipt:
        """Prepare, sign, submit and confirm a contract invocation."""
        account = await self._server.load_account(signer.public_key)
        tx = self._build(account, contract_id, method, args)

        tx = await self._server.prepare_transaction(tx)
        tx.sign(signer)

        send = await self._server.send_transaction(tx)
        if send.status == SendTransactionStatus.ERROR:
            raise SubmissionError(send.error_result_xdr)

        logger.info("Submitted %s transaction %s", method, send.hash)
        return await self._await_finality(send.hash)

    async def _await_finality(self, tx_hash: str) -> Receipt:
        loop = asyncio.get_running_loop()
        deadline = loop.time() + self.confirm_timeout

        while loop.time() < deadline:
            res = await self._server.get_transaction(tx_hash)
            if res.status == GetTransactionStatus.SUCCESS:
                return Receipt(
                    tx_hash=tx_hash,
                    ledger=res.ledger,
                    return_value=_decode_return_value(res.result_meta_xdr),
                )
            if res.status == GetTransactionStatus.FAILED:
                raise TransactionFailed(tx_hash, res.result_xdr)
            await asyncio.sleep(self.poll_interval)

        raise ConfirmationTimeout(tx_hash, self.confirm_timeout)
