"""Tests for post-trade review scoring.

**Feature: trade-journal**
"""

from datetime import datetime

import pytest

from tradejournal.errors import ValidationError
from tradejournal.ledger.review import review_trade
from tradejournal.ledger.store import LedgerStore
from tradejournal.models import Account, Trade

from conftest import MemoryBackend


def _trade(**overrides) -> Trade:
    values = {
        "id": "t1",
        "account_id": "acc_main",
        "symbol": "EURUSD",
        "type": "BUY",
        "entry_price": 1.1000,
        "exit_price": 1.1050,
        "size": 1.0,
        "pnl": 0.5,
        "open_time": datetime(2024, 3, 1, 9, 0),
        "close_time": datetime(2024, 3, 1, 11, 5),
        "strategy": "Breakout",
    }
    values.update(overrides)
    return Trade(**values)


class TestReviewScoring:
    """
    **Feature: trade-journal, Property 27: Review Scoring**

    100 - 50 for a moved stop - 30 for a panic/greed exit - 20 outside the
    playbook, floored at 0.
    """

    def test_clean_trade(self):
        review = review_trade(_trade(), stop_loss=1.0975, take_profit=1.1100)

        assert review.score == 100
        assert review.is_clean
        assert review.pips == 50.0
        assert review.planned_r == pytest.approx(4.0)
        assert review.realized_r == pytest.approx(2.0)
        assert review.holding_minutes == 125

    def test_all_breaches(self):
        review = review_trade(
            _trade(strategy=None),
            did_move_stop_loss=True,
            exit_reason="PANIC",
        )
        assert review.score == 0
        assert len(review.breaches) == 3

    def test_impulse_is_outside_playbook(self):
        review = review_trade(_trade(strategy="Impulse"), exit_reason="GREED")
        assert review.score == 50

    def test_losing_trade_has_negative_r(self):
        trade = _trade(type="SELL", entry_price=1.1000, exit_price=1.1020)
        review = review_trade(trade, stop_loss=1.1040)
        assert review.pips == -20.0
        assert review.realized_r == pytest.approx(-0.5)
        assert review.planned_r is None

    def test_no_stop_means_no_r(self):
        review = review_trade(_trade())
        assert review.realized_r is None
        assert "r_multiple" not in review.update.model_fields_set

    def test_unknown_exit_reason_rejected(self):
        with pytest.raises(ValidationError) as excinfo:
            review_trade(_trade(), exit_reason="BORED")

        message = str(excinfo.value)
        assert "exit_type" in message
        assert "validation error for" not in message

    def test_recorded_pips_are_kept(self):
        trade = _trade(pips=42.0)

        review = review_trade(trade, stop_loss=1.0975)

        assert review.pips == 42.0
        assert review.realized_r == pytest.approx(2.0)
        assert "pips" not in review.update.model_fields_set

    def test_missing_pips_are_filled_in(self):
        review = review_trade(_trade())
        assert review.update.pips == 50.0


class TestReviewRecording:
    """
    **Feature: trade-journal, Property 28: Review Recording**

    Applying a review through the store records behavior without moving
    the balance.
    """

    def test_update_keeps_pnl(self):
        backend = MemoryBackend(
            accounts=[Account(id="acc_main", name="Main Account", balance=100, equity=100)],
        )
        store = LedgerStore(backend)
        trade = store.add_trade({
            "symbol": "EURUSD", "type": "BUY", "entry_price": 1.1, "exit_price": 1.105, "size": 1,
            "strategy": "Breakout",
        })
        balance = store.account.balance

        review = review_trade(
            trade,
            stop_loss=1.0975,
            did_move_stop_loss=True,
            entry_emotions=["FOMO"],
            exit_emotions=["REGRET"],
            notes="moved stop into the news",
        )
        updated = store.edit_trade(trade.id, review.update)

        assert updated.pnl == trade.pnl
        assert store.account.balance == balance
        assert updated.stop_loss == 1.0975
        assert updated.r_multiple == pytest.approx(2.0)
        assert updated.notes == "moved stop into the news"
        assert updated.behavior.psych_score == 50
        assert updated.behavior.risk.did_move_stop_loss is True
        assert updated.behavior.risk.is_adhered_to_plan is False
        assert updated.behavior.emotions.entry == ["FOMO"]
