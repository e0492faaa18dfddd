"""Data models for borrower tracking, event paging and liquidation plans."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Literal, Union

from .config import MarketConfig


@dataclass
class BorrowerState:
    """Tracking state for one account believed to hold an open position."""

    last_seen: float
    last_evaluated: float | None = None
    failures: int = 0


@dataclass
class EventCursor:
    """Event polling progress.

    Before the first page is processed the cursor is anchored at
    ``start_ledger``; once a continuation cursor is held it supersedes the
    starting ledger for the rest of the process lifetime.
    """

    start_ledger: int | None = None
    cursor: str | None = None

    @property
    def state(self) -> str:
        if self.cursor is not None:
            return "cursor-tracking"
        if self.start_ledger is not None:
            return "backlog-anchored"
        return "uninitialized"

    def anchor(self, start_ledger: int) -> None:
        if self.cursor is None:
            self.start_ledger = start_ledger

    def advance(self, cursor: str) -> None:
        self.cursor = cursor


@dataclass(frozen=True)
class PlainAccount:
    """Account topic decoded to a plain string identifier."""

    address: str
    kind: Literal["plain"] = "plain"


@dataclass(frozen=True)
class StructuredAccount:
    """Account topic decoded to a value carrying an ``address`` field."""

    address: str
    kind: Literal["structured"] = "structured"


AccountRef = Union[PlainAccount, StructuredAccount]


@dataclass(frozen=True)
class EventAction:
    kind: Literal["track", "untrack"]
    account: AccountRef


@dataclass(frozen=True)
class ContractEvent:
    """A raw contract event as returned by the RPC (topics are base64 XDR)."""

    id: str
    contract_id: str
    ledger: int
    topics: tuple[str, ...] = ()


@dataclass(frozen=True)
class EventPage:
    events: tuple[ContractEvent, ...] = ()
    cursor: str | None = None


@dataclass(frozen=True)
class Receipt:
    """Finalized transaction outcome."""

    tx_hash: str
    ledger: int | None = None
    return_value: Any = None


@dataclass(frozen=True)
class LiquidationPlan:
    """A computed liquidation: repay one market, seize collateral from another."""

    borrower: str
    shortfall: int
    repay_market: MarketConfig
    repay_amount: int
    collateral_market: MarketConfig
    seize_amount: int
