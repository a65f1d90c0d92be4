"""Pure analytics derived from trade collections."""

from tradejournal.metrics.behavior import (
    mistake_costs,
    setup_stats,
    strategy_pnl,
    time_analysis,
    tracker_score,
)
from tradejournal.metrics.daily import calendar_month, daily_buckets, daily_stats
from tradejournal.metrics.performance import equity_curve, performance_metrics

__all__ = [
    "calendar_month",
    "daily_buckets",
    "daily_stats",
    "equity_curve",
    "mistake_costs",
    "performance_metrics",
    "setup_stats",
    "strategy_pnl",
    "time_analysis",
    "tracker_score",
]
