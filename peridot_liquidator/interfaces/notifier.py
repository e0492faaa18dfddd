"""Notifier protocol — out-of-band channel for liquidation outcomes."""
from typing import Protocol


class Notifier(Protocol):
    """Delivers liquidation alerts and operator status lines."""

    async def send_alert(self, message: str) -> bool: ...

    async def send_log(self, message: str, silent: bool = True) -> bool: ...
