"""Derived statistics models. None of these are persisted."""

from datetime import date as date_type
from datetime import datetime
from typing import Optional

from pydantic import Field

from tradejournal.models.base import DocumentModel


class DailyStats(DocumentModel):
    """Aggregate of trades closed on one calendar day."""

    date: date_type = Field(..., description="Calendar day")
    pnl: float = Field(default=0.0, description="Total P&L for the day")
    trades_count: int = Field(default=0, ge=0, description="Number of trades")
    win_rate: float = Field(default=0.0, ge=0, le=100, description="Win rate percentage")
    r_multiple: float = Field(default=0.0, description="Sum of R-multiples")
    pips: float = Field(default=0.0, description="Sum of pips")


class PerformanceMetrics(DocumentModel):
    """Lifetime profitability metrics for a set of trades."""

    total_trades: int = 0
    wins: int = 0
    losses: int = 0
    breakevens: int = 0
    total_pnl: float = 0.0
    gross_profit: float = 0.0
    gross_loss: float = 0.0
    profit_factor: float = 0.0
    win_rate: float = 0.0
    loss_rate: float = 0.0
    breakeven_rate: float = 0.0
    avg_win: float = 0.0
    avg_loss: float = 0.0
    expectancy: float = 0.0
    max_consecutive_wins: int = 0
    max_consecutive_losses: int = 0
    max_drawdown: float = 0.0


class EquityPoint(DocumentModel):
    close_time: datetime
    balance: float


class TimeBucket(DocumentModel):
    """P&L and trade count for one weekday or hour slot."""

    name: str
    pnl: float = 0.0
    trades: int = 0


class TimeAnalysis(DocumentModel):
    day_stats: list[TimeBucket]
    hour_stats: list[TimeBucket]
    avg_duration_minutes: int = 0


class SetupStats(DocumentModel):
    name: str
    pnl: float
    win_rate: float
    count: int


class MistakeCost(DocumentModel):
    name: str
    cost: float


class PeriodSummary(DocumentModel):
    """P&L and traded-day count over a span of calendar days."""

    start: date_type
    end: date_type
    pnl: float = 0.0
    traded_days: int = 0


class CalendarMonth(DocumentModel):
    """Month view: one summary for the month plus one per displayed week."""

    year: int
    month: int
    month_summary: PeriodSummary
    weeks: list[PeriodSummary]
    days: list[DailyStats]
    best_day: Optional[DailyStats] = None
    worst_day: Optional[DailyStats] = None
