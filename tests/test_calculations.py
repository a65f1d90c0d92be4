"""Tests for per-trade calculations.

**Feature: trade-journal**
"""

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from tradejournal.ledger.calculations import (
    calculate_pips,
    calculate_pnl,
    calculate_pnl_from_exits,
    calculate_pnl_percent,
    pip_multiplier,
    weighted_exit_price,
)
from tradejournal.models import Exit


class TestPipConversion:
    """
    **Feature: trade-journal, Property 3: Pip Conversion**

    JPY pairs use a multiplier of 100, everything else 10000; the result
    is rounded to one decimal and signed by trade direction.
    """

    def test_buy_eurusd(self):
        assert calculate_pips("EURUSD", 1.1000, 1.1050, "BUY") == 50.0

    def test_sell_eurusd(self):
        assert calculate_pips("EURUSD", 1.1050, 1.1000, "SELL") == 50.0

    def test_buy_usdjpy(self):
        assert calculate_pips("USDJPY", 110.00, 110.50, "BUY") == 50.0

    def test_losing_trade_is_negative(self):
        assert calculate_pips("EURUSD", 1.1050, 1.1000, "BUY") == -50.0

    def test_lowercase_jpy_symbol(self):
        assert pip_multiplier("gbpjpy") == 100

    @pytest.mark.parametrize(
        "symbol,entry,exit",
        [("", 1.1, 1.2), ("EURUSD", 0.0, 1.2), ("EURUSD", 1.1, 0.0)],
    )
    def test_missing_inputs_yield_zero(self, symbol, entry, exit):
        assert calculate_pips(symbol, entry, exit, "BUY") == 0.0

    @given(
        entry=st.floats(min_value=0.5, max_value=2.0),
        exit=st.floats(min_value=0.5, max_value=2.0),
    )
    @settings(max_examples=50)
    def test_buy_and_sell_are_opposite(self, entry: float, exit: float):
        """*For any* prices, BUY and SELL pips have equal magnitude and opposite sign."""
        buy = calculate_pips("EURUSD", entry, exit, "BUY")
        sell = calculate_pips("EURUSD", entry, exit, "SELL")
        assert buy == pytest.approx(-sell, abs=0.1)


class TestPnlFormula:
    """
    **Feature: trade-journal, Property 4: P&L Formula**

    P&L = (exit - entry) * size * direction * 100.
    """

    def test_buy_profit(self):
        assert calculate_pnl(1.1000, 1.1050, 1, "BUY") == pytest.approx(0.5)

    def test_sell_profit(self):
        assert calculate_pnl(1.1050, 1.1000, 2, "SELL") == pytest.approx(1.0)

    def test_zero_size(self):
        assert calculate_pnl(1.1, 1.2, 0, "BUY") == 0


class TestWeightedExitPrice:
    """
    **Feature: trade-journal, Property 5: Weighted Exit Price**

    The effective exit price is the percentage-weighted average of the
    exits, with any remainder closed at the top-level exit price.
    """

    def test_two_half_exits(self):
        exits = [Exit(percentage=50, price=1.0050), Exit(percentage=50, price=1.0100)]

        assert weighted_exit_price(exits) == pytest.approx(1.0075)
        assert calculate_pnl_from_exits(1.0000, 10, "BUY", exits) == pytest.approx(7.5)

    def test_remainder_at_exit_price(self):
        exits = [Exit(percentage=50, price=1.0100)]

        assert weighted_exit_price(exits, exit_price=1.0200) == pytest.approx(1.0150)
        # 5 lots closed at each price.
        assert calculate_pnl_from_exits(1.0000, 10, "BUY", exits, 1.0200) == pytest.approx(15.0)

    def test_partial_without_exit_price_averages_exits_only(self):
        exits = [Exit(percentage=25, price=1.0100), Exit(percentage=25, price=1.0300)]

        assert weighted_exit_price(exits) == pytest.approx(1.0200)
        assert calculate_pnl_from_exits(1.0000, 10, "BUY", exits) == pytest.approx(10.0)

    def test_no_exits(self):
        assert weighted_exit_price([]) is None

    def test_sell_exits(self):
        exits = [Exit(percentage=100, price=1.0950)]
        assert calculate_pnl_from_exits(1.1000, 1, "SELL", exits) == pytest.approx(0.5)


class TestPnlPercent:
    """
    **Feature: trade-journal, Property 6: P&L Percent**
    """

    def test_relative_to_balance(self):
        assert calculate_pnl_percent(50, 1000) == 5.0

    def test_rounded_to_two_decimals(self):
        assert calculate_pnl_percent(100, 1100) == 9.09

    def test_zero_balance(self):
        assert calculate_pnl_percent(50, 0) == 0.0
