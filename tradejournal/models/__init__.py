"""Data models for TradeJournal."""

from tradejournal.models.account import (
    DEFAULT_ACCOUNT_ID,
    Account,
    default_account,
    new_account_id,
)
from tradejournal.models.stats import (
    CalendarMonth,
    DailyStats,
    EquityPoint,
    MistakeCost,
    PerformanceMetrics,
    PeriodSummary,
    SetupStats,
    TimeAnalysis,
    TimeBucket,
)
from tradejournal.models.trade import (
    Behavior,
    EmotionsBehavior,
    Exit,
    RiskBehavior,
    TimingBehavior,
    Trade,
    TradeInput,
    TradeUpdate,
    local_datetime,
)

__all__ = [
    "DEFAULT_ACCOUNT_ID",
    "Account",
    "Behavior",
    "CalendarMonth",
    "DailyStats",
    "EmotionsBehavior",
    "EquityPoint",
    "Exit",
    "MistakeCost",
    "PerformanceMetrics",
    "PeriodSummary",
    "RiskBehavior",
    "SetupStats",
    "TimeAnalysis",
    "TimeBucket",
    "TimingBehavior",
    "Trade",
    "TradeInput",
    "TradeUpdate",
    "default_account",
    "local_datetime",
    "new_account_id",
]
