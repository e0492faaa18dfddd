"""Protocol interfaces for the liquidator."""
from .chain import LedgerGateway
from .notifier import Notifier

__all__ = ["LedgerGateway", "Notifier"]
