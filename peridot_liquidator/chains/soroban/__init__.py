"""Soroban ledger gateway."""
from .client import SorobanGateway

__all__ = ["SorobanGateway"]
