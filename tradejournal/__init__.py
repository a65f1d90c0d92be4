"""TradeJournal - trade ledger, account balances and performance analytics."""

__version__ = "0.1.0"
