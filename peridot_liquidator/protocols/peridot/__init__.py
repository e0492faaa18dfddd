"""Peridot lending protocol."""
from .adapter import PeridotAdapter

__all__ = ["PeridotAdapter"]
