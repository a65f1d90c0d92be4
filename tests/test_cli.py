"""Tests for the TradeJournal CLI.

**Feature: trade-journal**
"""

import json

import pytest
from click.testing import CliRunner

from tradejournal.cli import cli
from tradejournal.db.local import LocalBackend


@pytest.fixture
def run(temp_dir):
    """Invoke the CLI against an isolated home directory."""
    runner = CliRunner()

    def invoke(*args):
        return runner.invoke(cli, list(args), env={"TRADEJOURNAL_HOME": str(temp_dir)})

    return invoke


@pytest.fixture
def ledger(temp_dir):
    """Read back what the CLI stored locally."""
    return lambda: LocalBackend(temp_dir / "tradejournal.db").load()


class TestTradeCommands:
    """
    **Feature: trade-journal, Property 33: CLI Trade Logging**
    """

    def test_add_updates_balance(self, run, ledger):
        result = run("add", "EURUSD", "BUY", "--entry", "1.1", "--exit", "1.105", "--size", "1")

        assert result.exit_code == 0, result.output
        assert "Trade Logged" in result.output
        snapshot = ledger()
        assert len(snapshot.trades) == 1
        assert snapshot.trades[0].pips == 50.0
        assert snapshot.accounts[0].balance == pytest.approx(0.5)

    def test_add_with_partial_exits(self, run, ledger):
        result = run(
            "add", "USDJPY", "SELL", "--entry", "150", "--size", "1",
            "--exit-part", "50@149.5", "--exit-part", "50@149",
        )

        assert result.exit_code == 0, result.output
        trade = ledger().trades[0]
        assert [e.type for e in trade.exits] == ["PARTIAL_1", "PARTIAL_2"]
        assert trade.pnl == pytest.approx(75.0)
        assert trade.exit_price == pytest.approx(149.25)

    def test_add_without_prices_or_pnl_fails(self, run, ledger):
        result = run("add", "EURUSD", "BUY")
        assert result.exit_code == 1
        assert ledger().trades == []

    def test_bad_exit_part(self, run):
        result = run("add", "EURUSD", "BUY", "--entry", "1.1", "--size", "1", "--exit-part", "50-1.2")
        assert result.exit_code == 2

    def test_edit_by_prefix(self, run, ledger):
        run("add", "EURUSD", "BUY", "--pnl", "100")
        trade_id = ledger().trades[0].id

        result = run("edit", trade_id[:8], "--pnl", "40")

        assert result.exit_code == 0, result.output
        assert "Trade Updated" in result.output
        assert ledger().accounts[0].balance == 40

    def test_edit_missing_trade(self, run):
        result = run("edit", "does-not-exist", "--pnl", "1")
        assert result.exit_code == 1
        assert "not found" in result.output

    def test_delete_reverses_pnl(self, run, ledger):
        run("add", "EURUSD", "BUY", "--pnl", "100")
        run("add", "EURUSD", "SELL", "--pnl", "-30")
        ids = [t.id for t in ledger().trades]

        result = run("delete", *ids, "missing")

        assert result.exit_code == 0, result.output
        assert "Deleted 2 trade(s)" in result.output
        assert "1 id(s) not found" in result.output
        snapshot = ledger()
        assert snapshot.trades == []
        assert snapshot.accounts[0].balance == 0

    def test_review_records_behavior(self, run, ledger):
        run("add", "EURUSD", "BUY", "--entry", "1.1", "--exit", "1.105", "--size", "1", "--strategy", "Breakout")
        trade_id = ledger().trades[0].id

        result = run("review", trade_id, "--sl", "1.0975", "--exit-reason", "panic")

        assert result.exit_code == 0, result.output
        assert "Execution Report" in result.output
        trade = ledger().trades[0]
        assert trade.behavior.psych_score == 70
        assert trade.behavior.risk.exit_type == "PANIC"
        assert trade.r_multiple == pytest.approx(2.0)

    def test_journal_totals(self, run):
        run("add", "EURUSD", "BUY", "--pnl", "100", "--strategy", "Breakout")
        run("add", "GBPUSD", "SELL", "--pnl", "-40")

        result = run("journal")

        assert result.exit_code == 0, result.output
        assert "Total Trades: 2" in result.output
        assert "Total Trades: 1" in run("journal", "--strategy", "Breakout").output

    def test_import(self, run, ledger, temp_dir):
        path = temp_dir / "trades.json"
        path.write_text(json.dumps([
            {"symbol": "eurusd", "type": "BUY", "pnl": 10},
            {"symbol": "GBPUSD", "type": "SELL", "entryPrice": 1.25, "exitPrice": 1.24, "size": 2},
        ]))

        result = run("import", str(path))

        assert result.exit_code == 0, result.output
        assert "Imported 2 trade(s)" in result.output
        assert ledger().accounts[0].balance == pytest.approx(12.0)

    def test_import_is_all_or_nothing(self, run, ledger, temp_dir):
        path = temp_dir / "trades.json"
        path.write_text(json.dumps([
            {"symbol": "EURUSD", "type": "BUY", "pnl": 10},
            {"symbol": "EURUSD", "type": "BUY"},
        ]))

        result = run("import", str(path))

        assert result.exit_code == 1
        assert ledger().trades == []


class TestAccountCommands:
    """
    **Feature: trade-journal, Property 34: CLI Accounts**
    """

    def test_create_switch_and_fund(self, run, ledger):
        created = run("account-create", "Prop", "--balance", "1000")
        assert created.exit_code == 0, created.output
        assert "Account Created" in created.output

        deposit = run("deposit", "250")
        assert "Balance Updated" in deposit.output

        switched = run("switch", "main account")
        assert switched.exit_code == 0, switched.output
        assert "Active account: Main Account" in switched.output

        snapshot = ledger()
        balances = {a.name: a.balance for a in snapshot.accounts}
        assert balances == {"Main Account": 0, "Prop": 1250}
        assert snapshot.active_account_id == "acc_main"

    def test_switch_unknown_account(self, run):
        result = run("switch", "Nope")
        assert result.exit_code == 1

    def test_withdraw_requires_positive_amount(self, run, ledger):
        result = run("withdraw", "0")
        assert result.exit_code == 1
        assert ledger().accounts[0].balance == 0

    def test_set_balance(self, run, ledger):
        assert run("set-balance", "--initial", "--", "-5").exit_code == 1
        assert run("set-balance", "--", "-5").exit_code == 0
        assert ledger().accounts[0].balance == -5

    def test_accounts_table(self, run):
        run("account-create", "Swing")
        result = run("accounts")
        assert result.exit_code == 0, result.output
        assert "Swing" in result.output


class TestReportAndCloudCommands:
    """
    **Feature: trade-journal, Property 35: CLI Reports and Cloud**
    """

    def test_reports_on_empty_ledger(self, run):
        assert "Performance" in run("stats").output
        assert run("daily").exit_code == 0
        assert run("analysis").exit_code == 0
        assert run("calendar", "--month", "2024-03").exit_code == 0

    def test_reports_with_trades(self, run):
        run("add", "EURUSD", "BUY", "--pnl", "100", "--close", "2024-03-04T12:00", "--open", "2024-03-04T11:00")
        run("add", "EURUSD", "BUY", "--pnl", "-20", "--psychology", "fomo")

        assert run("stats").exit_code == 0
        assert run("daily", "--days", "7", "--all").exit_code == 0
        calendar = run("calendar", "--month", "2024-03")
        assert calendar.exit_code == 0, calendar.output
        assert "Month P&L" in calendar.output
        analysis = run("analysis")
        assert analysis.exit_code == 0, analysis.output
        assert "FOMO" in analysis.output

    def test_invalid_month(self, run):
        assert run("calendar", "--month", "2024-13").exit_code == 2

    def test_sync_requires_login(self, run):
        result = run("sync")
        assert result.exit_code == 1
        assert "Login Required" in result.output

    def test_logout_when_signed_out(self, run):
        result = run("logout")
        assert result.exit_code == 0
        assert "Not logged in" in result.output

    def test_version(self, run):
        assert run("--version").exit_code == 0
