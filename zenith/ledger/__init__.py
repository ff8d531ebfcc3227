"""Ledger package."""

from zenith.ledger.ledger import CategorySet, Ledger

__all__ = ["CategorySet", "Ledger"]
