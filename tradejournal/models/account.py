"""Account data model."""

import uuid

from pydantic import Field

from tradejournal.models.base import DocumentModel

DEFAULT_ACCOUNT_ID = "acc_main"
DEFAULT_ACCOUNT_NAME = "Main Account"


class Account(DocumentModel):
    """Represents a trading account (profile).

    Equity always mirrors balance; open positions are not marked to market.
    """

    id: str = Field(..., min_length=1, description="Account identifier")
    name: str = Field(..., description="Display name")
    balance: float = Field(default=0.0, description="Current balance")
    equity: float = Field(default=0.0, description="Current equity")
    currency: str = Field(default="USD", description="Account currency code")

    def with_balance(self, balance: float) -> "Account":
        """Return a copy with balance and equity set to ``balance``."""
        return self.model_copy(update={"balance": balance, "equity": balance})

    def adjusted(self, delta: float) -> "Account":
        """Return a copy with ``delta`` added to balance and equity."""
        return self.with_balance(self.balance + delta)


def new_account_id() -> str:
    """Generate an identifier for a newly created account."""
    return f"acc_{uuid.uuid4().hex}"


def default_account(currency: str = "USD") -> Account:
    """Build the account created when a ledger holds none."""
    return Account(
        id=DEFAULT_ACCOUNT_ID,
        name=DEFAULT_ACCOUNT_NAME,
        balance=0.0,
        equity=0.0,
        currency=currency,
    )
