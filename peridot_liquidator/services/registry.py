"""In-memory borrower registry."""
from __future__ import annotations

import logging
from typing import Iterator

from ..models import BorrowerState

logger = logging.getLogger(__name__)


class BorrowerRegistry:
    """Accounts believed to hold an open position, in first-seen order.

    Entries are created by tracking events and removed only on an explicit
    market exit; there is no capacity bound.
    """

    def __init__(self) -> None:
        self._states: dict[str, BorrowerState] = {}

    def __len__(self) -> int:
        return len(self._states)

    def __contains__(self, address: object) -> bool:
        return address in self._states

    def __iter__(self) -> Iterator[str]:
        return iter(self._states)

    def get(self, address: str) -> BorrowerState | None:
        return self._states.get(address)

    def items(self) -> list[tuple[str, BorrowerState]]:
        """Snapshot of ``(address, state)`` pairs in insertion order."""
        return list(self._states.items())

    def track(self, address: str, now: float) -> bool:
        """Upsert on seen. Returns True if the account was not tracked before."""
        state = self._states.get(address)
        if state is not None:
            state.last_seen = now
            return False

        self._states[address] = BorrowerState(last_seen=now)
        logger.info("[events] tracking borrower %s", address)
        return True

    def untrack(self, address: str) -> bool:
        if self._states.pop(address, None) is None:
            return False
        logger.info("[events] borrower %s exited all markets", address)
        return True
