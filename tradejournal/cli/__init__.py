"""CLI module for TradeJournal."""

from tradejournal.cli.main import cli, main

__all__ = ["cli", "main"]
