"""Tests for document serialization.

**Feature: trade-journal**
"""

from datetime import datetime

from hypothesis import given, settings
from hypothesis import strategies as st

from tradejournal.db.documents import from_document, parse_trades, sanitize_document, to_document
from tradejournal.models import Account, Trade

json_leaves = st.one_of(st.none(), st.booleans(), st.integers(), st.floats(allow_nan=False), st.text(max_size=5))
json_values = st.recursive(
    json_leaves,
    lambda children: st.one_of(
        st.lists(children, max_size=4),
        st.dictionaries(st.text(max_size=5), children, max_size=4),
    ),
    max_leaves=20,
)


def _contains_none(value) -> bool:
    if value is None:
        return True
    if isinstance(value, dict):
        return any(_contains_none(v) for v in value.values())
    if isinstance(value, list):
        return any(_contains_none(v) for v in value)
    return False


class TestDocumentSanitization:
    """
    **Feature: trade-journal, Property 17: Document Sanitization**

    *For any* document, sanitizing removes every None value and keeps
    every defined falsy value.
    """

    @given(document=st.dictionaries(st.text(max_size=5), json_values, max_size=6))
    @settings(max_examples=100)
    def test_no_none_survives(self, document: dict):
        assert not _contains_none(sanitize_document(document))

    def test_defined_falsy_values_kept(self):
        document = {"a": 0, "b": False, "c": "", "d": [], "e": None, "f": {"g": None, "h": 0.0}}
        assert sanitize_document(document) == {"a": 0, "b": False, "c": "", "d": [], "f": {"h": 0.0}}


class TestTradeDocuments:
    """
    **Feature: trade-journal, Property 18: Stored Trade Format**
    """

    def _trade(self) -> Trade:
        return Trade(
            id="t1",
            account_id="acc_main",
            symbol="USDJPY",
            type="SELL",
            entry_price=150.0,
            exit_price=149.5,
            size=1,
            pnl=50.0,
            pips=50.0,
            open_time=datetime(2024, 1, 2, 8, 0),
            close_time=datetime(2024, 1, 2, 9, 15),
        )

    def test_camel_case_without_undefined_fields(self):
        document = to_document(self._trade())

        assert document["accountId"] == "acc_main"
        assert document["entryPrice"] == 150.0
        assert document["closeTime"] == "2024-01-02T09:15:00"
        assert document["tags"] == []
        assert "stopLoss" not in document
        assert "rMultiple" not in document

    def test_document_parses_back(self):
        trade = self._trade()
        assert from_document(Trade, to_document(trade)) == trade

    def test_malformed_documents_skipped(self):
        good = to_document(self._trade())
        bad = {"id": "t2", "symbol": "EURUSD"}
        assert [t.id for t in parse_trades([good, bad])] == ["t1"]

    def test_account_document(self):
        account = Account(id="acc_main", name="Main Account", balance=10, equity=10)
        assert to_document(account) == {
            "id": "acc_main",
            "name": "Main Account",
            "balance": 10.0,
            "equity": 10.0,
            "currency": "USD",
        }
