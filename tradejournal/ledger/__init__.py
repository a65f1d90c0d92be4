"""Ledger: the store, per-trade calculations, review and filtering."""

from tradejournal.ledger.store import LedgerStore

__all__ = ["LedgerStore"]
