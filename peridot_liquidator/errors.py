"""Ledger-level exceptions raised by the Soroban gateway."""
from __future__ import annotations


class LedgerError(RuntimeError):
    """Base class for ledger RPC failures."""


class SimulationError(LedgerError):
    """A contract simulation reported failure."""

    def __init__(self, method: str, message: str) -> None:
        super().__init__(f"Simulation error calling {method}: {message}")
        self.method = method
        self.message = message


class SubmissionError(LedgerError):
    """The network rejected the transaction broadcast."""

    def __init__(self, error_result_xdr: str | None) -> None:
        super().__init__(f"sendTransaction failed: {error_result_xdr}")
        self.error_result_xdr = error_result_xdr


class ConfirmationTimeout(LedgerError):
    def __init__(self, tx_hash: str, timeout: float) -> None:
        super().__init__(f"transaction {tx_hash} not confirmed within {timeout:g}s")
        self.tx_hash = tx_hash
        self.timeout = timeout


class TransactionFailed(LedgerError):
    """The transaction was included in a ledger but failed."""

    def __init__(self, tx_hash: str, result_xdr: str | None) -> None:
        super().__init__(f"transaction {tx_hash} failed: {result_xdr}")
        self.tx_hash = tx_hash
        self.result_xdr = result_xdr
