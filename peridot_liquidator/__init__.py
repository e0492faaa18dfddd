"""Peridot liquidation bot for Soroban lending markets."""

__version__ = "0.1.0"
