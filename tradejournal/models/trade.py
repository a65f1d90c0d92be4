"""Trade, Exit and Behavior data models."""

import uuid
from datetime import datetime
from typing import Any, Literal, Optional

from pydantic import Field, field_validator, model_validator

from tradejournal.models.base import DocumentModel

TradeType = Literal["BUY", "SELL"]
TradeStatus = Literal["OPEN", "CLOSED", "PENDING"]
ExitKind = Literal["PARTIAL_1", "PARTIAL_2", "PARTIAL_3", "PARTIAL_4", "FULL_TP"]
StopLossStatus = Literal["INITIAL", "BREAK_EVEN"]
Psychology = Literal["CONFIDENT", "NEUTRAL", "ANXIOUS", "FOMO", "REVENGE"]
SetupRating = Literal["A+", "A", "B+", "B", "C"]
ExitType = Literal["PLANNED", "PANIC", "GREED", "STOP_OUT", "TAKE_PROFIT"]
TimingDeviation = Literal["EARLY", "LATE", "ON_TIME"]
EntryEmotion = Literal["FOMO", "CONFIDENT", "HESITANT", "BOREDOM", "REVENGE", "DISCIPLINED"]
DuringEmotion = Literal["ANXIOUS", "HOPEFUL", "GREEDY", "NUMB", "FOCUSED"]
ExitEmotion = Literal["RELIEVED", "REGRET", "SATISFIED", "TILTED", "PROUD"]


def _new_id() -> str:
    return str(uuid.uuid4())


class Exit(DocumentModel):
    """A partial (or final) close of a position."""

    id: str = Field(default_factory=_new_id, description="Exit identifier")
    type: ExitKind = Field(default="PARTIAL_1", description="Exit kind")
    percentage: float = Field(..., gt=0, le=100, description="Percent of size closed")
    price: float = Field(..., ge=0, description="Exit price")
    date: Optional[datetime] = Field(default=None, description="Exit timestamp")


class RiskBehavior(DocumentModel):
    is_adhered_to_plan: bool = False
    did_move_stop_loss: bool = False
    did_respect_position_size: bool = True
    exit_type: ExitType = "PLANNED"


class TimingBehavior(DocumentModel):
    planned_duration_minutes: Optional[int] = None
    actual_duration_minutes: Optional[int] = None
    timing_deviation: TimingDeviation = "ON_TIME"


class EmotionsBehavior(DocumentModel):
    entry: list[EntryEmotion] = Field(default_factory=list)
    during: list[DuringEmotion] = Field(default_factory=list)
    exit: list[ExitEmotion] = Field(default_factory=list)


class Behavior(DocumentModel):
    """Post-trade behavioral assessment."""

    risk: RiskBehavior = Field(default_factory=RiskBehavior)
    timing: TimingBehavior = Field(default_factory=TimingBehavior)
    emotions: EmotionsBehavior = Field(default_factory=EmotionsBehavior)
    psych_score: float = Field(default=100, description="Consistency score 0-100")


def _check_exit_total(exits: list[Exit]) -> None:
    total = sum(e.percentage for e in exits)
    if total > 100:
        raise ValueError(f"Exit percentages sum to {total:g}%, above 100%")


def local_datetime(value: datetime) -> datetime:
    """Express ``value`` as naive local wall-clock time.

    Naive datetimes are taken as already local; aware ones are converted.
    """
    if value.tzinfo is None:
        return value
    return value.astimezone().replace(tzinfo=None)


def _upper_symbol(value: Any) -> Any:
    if isinstance(value, str):
        return value.strip().upper()
    return value


class Trade(DocumentModel):
    """Represents a logged trade belonging to one account."""

    id: str = Field(..., min_length=1, description="Trade identifier")
    account_id: str = Field(..., min_length=1, description="Owning account")
    symbol: str = Field(..., min_length=1, description="Instrument symbol")
    type: TradeType = Field(..., description="Trade direction")
    entry_price: float = Field(default=0.0, description="Entry price")
    exit_price: float = Field(default=0.0, description="Effective exit price")
    size: float = Field(default=0.0, ge=0, description="Lots/contracts")
    pnl: float = Field(default=0.0, description="Realized P&L")
    pnl_percent: float = Field(default=0.0, description="P&L relative to balance")
    pips: Optional[float] = Field(default=None, description="Result in pips")
    r_multiple: Optional[float] = Field(default=None, description="Realized R")
    open_time: datetime = Field(..., description="Entry timestamp")
    close_time: datetime = Field(..., description="Exit timestamp")
    status: TradeStatus = Field(default="CLOSED", description="Trade status")
    exits: list[Exit] = Field(default_factory=list, description="Partial exits")
    stop_loss: Optional[float] = None
    take_profit: Optional[float] = None
    sl_status: Optional[StopLossStatus] = None
    moved_sl_price: Optional[float] = None
    strategy: Optional[str] = None
    tags: list[str] = Field(default_factory=list)
    notes: Optional[str] = None
    psychology: Optional[Psychology] = None
    screenshot_url: Optional[str] = None
    trading_view_url: Optional[str] = None
    setup_rating: Optional[SetupRating] = None
    behavior: Optional[Behavior] = None

    @model_validator(mode="after")
    def _validate_exits(self) -> "Trade":
        _check_exit_total(self.exits)
        return self

    @property
    def direction(self) -> int:
        """1 for BUY, -1 for SELL."""
        return 1 if self.type == "BUY" else -1


class TradeInput(DocumentModel):
    """A new trade as entered by the user or produced by an importer.

    Either price data (entry, size and an exit price or exits) or an
    explicit ``pnl`` must be present.
    """

    symbol: str = Field(..., min_length=1)
    type: TradeType
    entry_price: float = 0.0
    exit_price: float = 0.0
    size: float = Field(default=0.0, ge=0)
    pnl: Optional[float] = None
    pips: Optional[float] = None
    r_multiple: Optional[float] = None
    open_time: Optional[datetime] = None
    close_time: Optional[datetime] = None
    exits: list[Exit] = Field(default_factory=list)
    stop_loss: Optional[float] = None
    take_profit: Optional[float] = None
    sl_status: Optional[StopLossStatus] = None
    moved_sl_price: Optional[float] = None
    strategy: Optional[str] = None
    tags: list[str] = Field(default_factory=list)
    notes: Optional[str] = None
    psychology: Optional[Psychology] = None
    screenshot_url: Optional[str] = None
    trading_view_url: Optional[str] = None
    setup_rating: Optional[SetupRating] = None
    behavior: Optional[Behavior] = None

    @field_validator("symbol", mode="before")
    @classmethod
    def _normalize_symbol(cls, value: Any) -> Any:
        return _upper_symbol(value)

    @model_validator(mode="after")
    def _validate_input(self) -> "TradeInput":
        _check_exit_total(self.exits)
        has_price_data = bool(
            self.entry_price and self.size and (self.exit_price or self.exits)
        )
        if not has_price_data and self.pnl is None:
            raise ValueError(
                "Enter either trade details (entry, exit or exits, size) or a P&L amount"
            )
        return self


class TradeUpdate(DocumentModel):
    """Partial update for an existing trade.

    Only fields explicitly set are applied; see ``changes()``.
    """

    symbol: Optional[str] = None
    type: Optional[TradeType] = None
    entry_price: Optional[float] = None
    exit_price: Optional[float] = None
    size: Optional[float] = Field(default=None, ge=0)
    pnl: Optional[float] = None
    pips: Optional[float] = None
    r_multiple: Optional[float] = None
    open_time: Optional[datetime] = None
    close_time: Optional[datetime] = None
    status: Optional[TradeStatus] = None
    exits: Optional[list[Exit]] = None
    stop_loss: Optional[float] = None
    take_profit: Optional[float] = None
    sl_status: Optional[StopLossStatus] = None
    moved_sl_price: Optional[float] = None
    strategy: Optional[str] = None
    tags: Optional[list[str]] = None
    notes: Optional[str] = None
    psychology: Optional[Psychology] = None
    screenshot_url: Optional[str] = None
    trading_view_url: Optional[str] = None
    setup_rating: Optional[SetupRating] = None
    behavior: Optional[Behavior] = None

    @field_validator("symbol", mode="before")
    @classmethod
    def _normalize_symbol(cls, value: Any) -> Any:
        return _upper_symbol(value)

    @model_validator(mode="after")
    def _validate_exits(self) -> "TradeUpdate":
        if self.exits:
            _check_exit_total(self.exits)
        return self

    def changes(self) -> dict[str, Any]:
        """Get the explicitly supplied fields keyed by attribute name.

        ``pnl`` and ``pips`` set to None count as not supplied, so they are
        recomputed rather than cleared.
        """
        supplied = {name: getattr(self, name) for name in self.model_fields_set}
        for derived in ("pnl", "pips"):
            if derived in supplied and supplied[derived] is None:
                del supplied[derived]
        return supplied
