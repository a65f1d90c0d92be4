"""Journal filtering."""

import calendar
from datetime import datetime, timedelta
from typing import Iterable, Literal, Optional

from tradejournal.models import Trade, local_datetime

DateRange = Literal["ALL", "TODAY", "YESTERDAY", "WEEK", "MONTH"]
DATE_RANGES = ("ALL", "TODAY", "YESTERDAY", "WEEK", "MONTH")

ALL = "ALL"


def _one_month_before(moment: datetime) -> datetime:
    year, month = (moment.year, moment.month - 1) if moment.month > 1 else (moment.year - 1, 12)
    day = min(moment.day, calendar.monthrange(year, month)[1])
    return moment.replace(year=year, month=month, day=day)


def _in_range(opened: datetime, date_range: str, now: datetime) -> bool:
    if date_range == "TODAY":
        return opened.date() == now.date()
    if date_range == "YESTERDAY":
        return opened.date() == (now - timedelta(days=1)).date()
    if date_range == "WEEK":
        return opened >= now - timedelta(days=7)
    if date_range == "MONTH":
        return opened >= _one_month_before(now)
    return True


def filter_trades(
    trades: Iterable[Trade],
    strategy: Optional[str] = None,
    symbol: Optional[str] = None,
    status: Optional[str] = None,
    rating: Optional[str] = None,
    date_range: str = ALL,
    now: Optional[datetime] = None,
) -> list[Trade]:
    """Filter trades for the journal view.

    Args:
        trades: Trades to filter. Order is preserved.
        strategy: Exact strategy name, or None/"ALL" for any.
        symbol: Symbol (case-insensitive), or None/"ALL" for any.
        status: OPEN, CLOSED or PENDING, or None/"ALL" for any.
        rating: Setup rating, or None/"ALL" for any.
        date_range: ALL, TODAY, YESTERDAY, WEEK (last 7 days) or MONTH
            (since the same day last month), matched on the entry time.
        now: Reference time in local wall-clock. Defaults to now.

    Raises:
        ValueError: If ``date_range`` is not recognized.
    """
    date_range = date_range.upper()
    if date_range not in DATE_RANGES:
        raise ValueError(f"Unknown date range {date_range!r}, expected one of {', '.join(DATE_RANGES)}")

    now = local_datetime(now) if now else datetime.now()
    symbol = symbol.upper() if symbol else symbol

    result = []
    for trade in trades:
        if strategy and strategy != ALL and trade.strategy != strategy:
            continue
        if symbol and symbol != ALL and trade.symbol != symbol:
            continue
        if status and status != ALL and trade.status != status:
            continue
        if rating and rating != ALL and trade.setup_rating != rating:
            continue
        if not _in_range(local_datetime(trade.open_time), date_range, now):
            continue
        result.append(trade)
    return result


def distinct_strategies(trades: Iterable[Trade]) -> list[str]:
    """Strategies in use, sorted."""
    return sorted({t.strategy for t in trades if t.strategy})


def distinct_symbols(trades: Iterable[Trade]) -> list[str]:
    """Symbols traded, sorted."""
    return sorted({t.symbol for t in trades if t.symbol})
