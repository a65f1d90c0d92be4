"""Exception types raised by TradeJournal."""


class TradeJournalError(Exception):
    """Base class for all TradeJournal errors."""


class ValidationError(TradeJournalError, ValueError):
    """Raised when user input is rejected before any mutation happens."""


class PersistenceError(TradeJournalError):
    """Raised when a storage backend fails to read or write."""


class NotSignedInError(TradeJournalError):
    """Raised when a cloud operation is attempted without a signed-in user."""
