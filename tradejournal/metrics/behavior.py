"""Behavioral analytics: consistency score, timing, setups and mistakes."""

import math
from typing import Iterable

from tradejournal.models import MistakeCost, SetupStats, TimeAnalysis, TimeBucket, Trade, local_datetime

DAY_NAMES = ["Sun", "Mon", "Tue", "Wed", "Thu", "Fri", "Sat"]

UNKNOWN_STRATEGY = "Unknown"

# Psychology tags and entry emotions whose losing trades count as mistakes.
MISTAKE_PSYCHOLOGY = ("FOMO", "REVENGE", "ANXIOUS")
MISTAKE_ENTRY_EMOTIONS = ("FOMO", "REVENGE", "BOREDOM")
PANIC_EXIT = "PANIC_EXIT"


def tracker_score(trades: Iterable[Trade]) -> int:
    """Score trading consistency from 0 to 100.

    Starts at 100 and subtracts up to 40 points for trades not following
    the plan, up to 30 for moved stop losses and up to 30 for revenge
    trades (psychology tag or entry emotion). 0 when there are no trades.
    """
    trades = list(trades)
    if not trades:
        return 0

    total = len(trades)
    adhered = moved_sl = revenge = 0
    for trade in trades:
        behavior = trade.behavior
        if behavior and behavior.risk.is_adhered_to_plan:
            adhered += 1
        if behavior and behavior.risk.did_move_stop_loss:
            moved_sl += 1
        if trade.psychology == "REVENGE" or (behavior and "REVENGE" in behavior.emotions.entry):
            revenge += 1

    score = 100.0
    score -= (1 - adhered / total) * 40
    score -= moved_sl / total * 30
    score -= revenge / total * 30
    return max(0, math.floor(score + 0.5))


def time_analysis(trades: Iterable[Trade]) -> TimeAnalysis:
    """Bucket P&L by weekday (Sun..Sat) and hour of the entry time.

    Also reports the average holding time in whole minutes.
    """
    days = [{"pnl": 0.0, "trades": 0} for _ in DAY_NAMES]
    hours = [{"pnl": 0.0, "trades": 0} for _ in range(24)]
    total_minutes = 0
    timed = 0

    for trade in trades:
        opened = local_datetime(trade.open_time)
        closed = local_datetime(trade.close_time)
        # weekday() is Monday=0
        day = days[(opened.weekday() + 1) % 7]
        day["pnl"] += trade.pnl
        day["trades"] += 1
        hour = hours[opened.hour]
        hour["pnl"] += trade.pnl
        hour["trades"] += 1

        total_minutes += int((closed - opened).total_seconds() / 60)
        timed += 1

    return TimeAnalysis(
        day_stats=[TimeBucket(name=name, **days[i]) for i, name in enumerate(DAY_NAMES)],
        hour_stats=[TimeBucket(name=f"{h}:00", **hours[h]) for h in range(24)],
        avg_duration_minutes=math.floor(total_minutes / timed + 0.5) if timed else 0,
    )


def setup_stats(trades: Iterable[Trade]) -> list[SetupStats]:
    """Per-strategy P&L, win rate and trade count, best strategy first."""
    stats: dict[str, dict] = {}
    for trade in trades:
        name = trade.strategy or UNKNOWN_STRATEGY
        entry = stats.setdefault(name, {"pnl": 0.0, "wins": 0, "count": 0})
        entry["pnl"] += trade.pnl
        entry["count"] += 1
        if trade.pnl > 0:
            entry["wins"] += 1

    result = [
        SetupStats(
            name=name,
            pnl=data["pnl"],
            win_rate=data["wins"] / data["count"] * 100,
            count=data["count"],
        )
        for name, data in stats.items()
    ]
    return sorted(result, key=lambda s: s.pnl, reverse=True)


def strategy_pnl(trades: Iterable[Trade]) -> dict[str, float]:
    """Total P&L per strategy."""
    totals: dict[str, float] = {}
    for trade in trades:
        name = trade.strategy or UNKNOWN_STRATEGY
        totals[name] = totals.get(name, 0.0) + trade.pnl
    return totals


def mistake_costs(trades: Iterable[Trade]) -> list[MistakeCost]:
    """Attribute losses to tagged mistakes, costliest first.

    A losing trade adds its loss to every mistake it carries: a mistake
    psychology tag, each mistake entry emotion and a panic exit. Winning
    trades carrying a mistake register it at zero cost.
    """
    costs: dict[str, float] = {}

    def charge(name: str, trade: Trade) -> None:
        costs[name] = costs.get(name, 0.0) + (-trade.pnl if trade.pnl < 0 else 0.0)

    for trade in trades:
        if trade.psychology in MISTAKE_PSYCHOLOGY:
            charge(trade.psychology, trade)
        if trade.behavior is None:
            continue
        for emotion in trade.behavior.emotions.entry:
            if emotion in MISTAKE_ENTRY_EMOTIONS:
                charge(emotion, trade)
        if trade.behavior.risk.exit_type == "PANIC":
            charge(PANIC_EXIT, trade)

    result = [MistakeCost(name=name, cost=cost) for name, cost in costs.items()]
    return sorted(result, key=lambda m: m.cost, reverse=True)
