"""Per-trade derivations: P&L, pips and weighted exit price.

All P&L figures use a fixed lot scale of 100 currency units per price
unit per lot.
"""

from typing import Optional, Sequence

from tradejournal.models import Exit

LOT_SCALE = 100
PIP_MULTIPLIER_JPY = 100
PIP_MULTIPLIER_DEFAULT = 10000


def direction(trade_type: str) -> int:
    """Get the P&L sign for a trade type (1 for BUY, -1 for SELL)."""
    return 1 if trade_type == "BUY" else -1


def pip_multiplier(symbol: str) -> int:
    """Get the pip multiplier for a symbol.

    JPY pairs quote to the 2nd decimal, everything else to the 4th.
    """
    if "JPY" in symbol.upper():
        return PIP_MULTIPLIER_JPY
    return PIP_MULTIPLIER_DEFAULT


def calculate_pips(symbol: str, entry: float, exit: float, trade_type: str) -> float:
    """Calculate the result of a trade in pips, rounded to 1 decimal.

    Args:
        symbol: Instrument symbol (e.g. "EURUSD", "USDJPY").
        entry: Entry price.
        exit: Exit price.
        trade_type: BUY or SELL.

    Returns:
        Pips gained (negative when the trade lost). 0 when the symbol or
        either price is missing.
    """
    if not symbol or not entry or not exit:
        return 0.0

    if trade_type == "BUY":
        diff = exit - entry
    else:
        diff = entry - exit

    return round(diff * pip_multiplier(symbol), 1)


def calculate_pnl(entry: float, exit: float, size: float, trade_type: str) -> float:
    """Calculate P&L for a position closed in full at one price."""
    return (exit - entry) * size * direction(trade_type) * LOT_SCALE


def exit_total_percentage(exits: Sequence[Exit]) -> float:
    """Sum of the percentages closed by ``exits``."""
    return sum(e.percentage for e in exits)


def calculate_pnl_from_exits(
    entry: float,
    size: float,
    trade_type: str,
    exits: Sequence[Exit],
    exit_price: float = 0.0,
) -> float:
    """Calculate P&L for a position closed through partial exits.

    Each exit closes ``percentage`` of ``size`` at its own price. When the
    exits close less than 100% and ``exit_price`` is set, the remainder is
    closed at ``exit_price``.
    """
    total_pnl = 0.0
    for e in exits:
        total_pnl += calculate_pnl(entry, e.price, size * (e.percentage / 100), trade_type)

    remaining = 100 - exit_total_percentage(exits)
    if remaining > 0 and exit_price:
        total_pnl += calculate_pnl(entry, exit_price, size * (remaining / 100), trade_type)

    return total_pnl


def weighted_exit_price(exits: Sequence[Exit], exit_price: float = 0.0) -> Optional[float]:
    """Get the percentage-weighted average exit price.

    The portion not covered by ``exits`` counts at ``exit_price`` when set.

    Returns:
        Weighted average price, or None when there is nothing to average.
    """
    weighted = sum(e.price * e.percentage for e in exits)
    weight = exit_total_percentage(exits)

    if weight == 0:
        return None

    if weight < 100 and exit_price:
        weighted += exit_price * (100 - weight)
        weight = 100

    return weighted / weight


def calculate_pnl_percent(pnl: float, balance: float) -> float:
    """P&L as a percentage of ``balance``, rounded to 2 decimals (0 if no balance)."""
    if balance == 0:
        return 0.0
    return round(pnl / balance * 100, 2)
