"""Liquidation services."""
from .bot import LiquidationBot
from .executor import LiquidationExecutor
from .ingestor import EventIngestor
from .registry import BorrowerRegistry
from .scanner import SolvencyScanner

__all__ = [
    "BorrowerRegistry",
    "EventIngestor",
    "LiquidationBot",
    "LiquidationExecutor",
    "SolvencyScanner",
]
