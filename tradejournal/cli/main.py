"""Main CLI entry point for TradeJournal.

This module provides the main click group and lazy loading
of command modules to keep startup fast.
"""

import importlib
import logging

import click
from rich.logging import RichHandler

from tradejournal.cli.common import console


class LazyGroup(click.Group):
    """A click Group that lazily loads commands.

    Command modules are only imported when one of their commands is
    invoked.
    """

    def __init__(self, *args, lazy_subcommands: dict[str, str] | None = None, **kwargs):
        """Initialize the lazy group.

        Args:
            lazy_subcommands: Mapping of command names to module paths.
        """
        super().__init__(*args, **kwargs)
        self._lazy_subcommands = lazy_subcommands or {}

    def list_commands(self, ctx: click.Context) -> list[str]:
        """List all available commands."""
        base = super().list_commands(ctx)
        lazy = list(self._lazy_subcommands.keys())
        return sorted(set(base + lazy))

    def get_command(self, ctx: click.Context, cmd_name: str) -> click.Command | None:
        """Get a command by name, lazily loading if needed."""
        if cmd_name in self.commands:
            return self.commands[cmd_name]

        if cmd_name in self._lazy_subcommands:
            return self._lazy_load(cmd_name)

        return None

    def _lazy_load(self, cmd_name: str) -> click.Command:
        """Load a command from its module by its click name."""
        module_path = self._lazy_subcommands[cmd_name]
        module = importlib.import_module(module_path)

        for attr_name in dir(module):
            attr = getattr(module, attr_name)
            if isinstance(attr, click.Command) and attr.name == cmd_name:
                self.add_command(attr)
                return attr

        raise click.ClickException(f"Could not find command '{cmd_name}' in {module_path}")


LAZY_SUBCOMMANDS = {
    # Trades
    "add": "tradejournal.cli.trades",
    "edit": "tradejournal.cli.trades",
    "delete": "tradejournal.cli.trades",
    "review": "tradejournal.cli.trades",
    "journal": "tradejournal.cli.trades",
    "import": "tradejournal.cli.trades",
    # Accounts
    "accounts": "tradejournal.cli.accounts",
    "account-create": "tradejournal.cli.accounts",
    "switch": "tradejournal.cli.accounts",
    "deposit": "tradejournal.cli.accounts",
    "withdraw": "tradejournal.cli.accounts",
    "set-balance": "tradejournal.cli.accounts",
    # Reports
    "stats": "tradejournal.cli.reports",
    "daily": "tradejournal.cli.reports",
    "calendar": "tradejournal.cli.reports",
    "analysis": "tradejournal.cli.reports",
    # Cloud
    "login": "tradejournal.cli.cloud",
    "logout": "tradejournal.cli.cloud",
    "sync": "tradejournal.cli.cloud",
}


CONTEXT_SETTINGS = {"help_option_names": ["-h", "--help"]}


@click.group(cls=LazyGroup, lazy_subcommands=LAZY_SUBCOMMANDS, context_settings=CONTEXT_SETTINGS)
@click.version_option(package_name="tradejournal")
@click.option("-v", "--verbose", is_flag=True, default=False, help="Show debug logging.")
@click.pass_context
def cli(ctx: click.Context, verbose: bool) -> None:
    """TradeJournal - log trades, keep balances honest, review your edge.

    Trades are logged against the active account and move its balance by
    their P&L. Data stays on this machine until you log in and sync.

    \b
    Quick Start:
      tradejournal add EURUSD BUY --entry 1.1000 --exit 1.1050 --size 1
      tradejournal journal      # Browse logged trades
      tradejournal stats        # Performance summary
    """
    ctx.ensure_object(dict)
    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(message)s",
            datefmt="[%X]",
            handlers=[RichHandler(console=console, rich_tracebacks=True)],
        )


def main() -> None:
    """Main entry point for the CLI."""
    cli()


if __name__ == "__main__":
    main()
