"""Post-trade review: R-multiples, rule breaches and a consistency score."""

from dataclasses import dataclass, field
from typing import Optional, Sequence

import pydantic

from tradejournal.errors import ValidationError
from tradejournal.ledger.calculations import calculate_pips
from tradejournal.ledger.store import _describe
from tradejournal.models import Trade, TradeUpdate, local_datetime

MOVED_STOP_LOSS_PENALTY = 50
EMOTIONAL_EXIT_PENALTY = 30
OUTSIDE_PLAYBOOK_PENALTY = 20

EMOTIONAL_EXITS = ("PANIC", "GREED")
IMPULSE_STRATEGY = "Impulse"


@dataclass(frozen=True)
class TradeReview:
    """Outcome of reviewing one closed trade."""

    trade_id: str
    pips: float
    planned_r: Optional[float]
    realized_r: Optional[float]
    score: int
    breaches: list[str] = field(default_factory=list)
    holding_minutes: int = 0
    update: Optional[TradeUpdate] = None

    @property
    def is_clean(self) -> bool:
        return not self.breaches


def r_multiples(
    trade: Trade,
    stop_loss: Optional[float],
    take_profit: Optional[float],
    pips: float,
) -> tuple[Optional[float], Optional[float]]:
    """Get (planned, realized) R for a trade given its stop and target.

    Risk is the distance from entry to the stop. Realized R is negative
    when the trade lost pips. Either value is None when it cannot be
    derived (no stop, zero risk, or no target for the planned R).
    """
    if not stop_loss:
        return None, None
    risk = abs(trade.entry_price - stop_loss)
    if risk == 0:
        return None, None

    planned = abs(take_profit - trade.entry_price) / risk if take_profit is not None else None
    realized = abs(trade.exit_price - trade.entry_price) / risk
    if pips < 0:
        realized = -realized
    return planned, realized


def review_trade(
    trade: Trade,
    stop_loss: Optional[float] = None,
    take_profit: Optional[float] = None,
    did_move_stop_loss: bool = False,
    exit_reason: str = "PLANNED",
    entry_emotions: Sequence[str] = (),
    exit_emotions: Sequence[str] = (),
    notes: Optional[str] = None,
) -> TradeReview:
    """Review a closed trade.

    The consistency score starts at 100 and loses 50 for a moved stop
    loss, 30 for a panic or greed exit and 20 for a trade outside the
    playbook (no strategy, or "Impulse"), never going below 0.

    Returns:
        The review, including a ``TradeUpdate`` that records it on the
        trade through ``LedgerStore.edit_trade``.

    Raises:
        ValidationError: If ``exit_reason`` or an emotion is not
            a recognized value.
    """
    pips = trade.pips
    if pips is None:
        pips = calculate_pips(trade.symbol, trade.entry_price, trade.exit_price, trade.type)
    planned_r, realized_r = r_multiples(trade, stop_loss, take_profit, pips)

    score = 100
    breaches = []
    if did_move_stop_loss:
        score -= MOVED_STOP_LOSS_PENALTY
        breaches.append(f"Moved Stop Loss (-{MOVED_STOP_LOSS_PENALTY}%)")
    if exit_reason in EMOTIONAL_EXITS:
        score -= EMOTIONAL_EXIT_PENALTY
        breaches.append(f"Early Exit / Emotional Exit (-{EMOTIONAL_EXIT_PENALTY}%)")
    if not trade.strategy or trade.strategy == IMPULSE_STRATEGY:
        score -= OUTSIDE_PLAYBOOK_PENALTY
        breaches.append(f"Outside Playbook (-{OUTSIDE_PLAYBOOK_PENALTY}%)")
    score = max(0, score)

    held = local_datetime(trade.close_time) - local_datetime(trade.open_time)
    holding_minutes = int(held.total_seconds() / 60)

    changes = {
        "behavior": {
            "risk": {
                "is_adhered_to_plan": not did_move_stop_loss,
                "did_move_stop_loss": did_move_stop_loss,
                "did_respect_position_size": True,
                "exit_type": exit_reason,
            },
            "timing": {
                "actual_duration_minutes": holding_minutes,
                "timing_deviation": "ON_TIME",
            },
            "emotions": {
                "entry": list(entry_emotions),
                "during": [],
                "exit": list(exit_emotions),
            },
            "psych_score": score,
        },
    }
    if trade.pips is None:
        changes["pips"] = pips
    if notes is not None:
        changes["notes"] = notes
    if stop_loss is not None:
        changes["stop_loss"] = stop_loss
    if take_profit is not None:
        changes["take_profit"] = take_profit
    if realized_r is not None:
        changes["r_multiple"] = realized_r

    try:
        update = TradeUpdate.model_validate(changes)
    except pydantic.ValidationError as e:
        raise ValidationError(_describe(e)) from e

    return TradeReview(
        trade_id=trade.id,
        pips=pips,
        planned_r=planned_r,
        realized_r=realized_r,
        score=score,
        breaches=breaches,
        holding_minutes=holding_minutes,
        update=update,
    )
