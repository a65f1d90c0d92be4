"""Conversion between models and stored documents."""

import logging
from typing import Any, Iterable, Optional, TypeVar

from pydantic import BaseModel, ValidationError

from tradejournal.models import Account, Trade

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)


def sanitize_document(value: Any) -> Any:
    """Recursively drop None-valued fields from a document.

    Document stores reject undefined values, so unset optionals are
    omitted. Defined falsy values (0, False, "", []) are kept.
    """
    if isinstance(value, dict):
        return {
            key: sanitize_document(item)
            for key, item in value.items()
            if item is not None
        }
    if isinstance(value, (list, tuple)):
        return [sanitize_document(item) for item in value if item is not None]
    return value


def to_document(model: BaseModel) -> dict:
    """Serialize a model to a sanitized camelCase document."""
    return sanitize_document(model.model_dump(mode="json", by_alias=True))


def from_document(model_cls: type[ModelT], document: dict) -> Optional[ModelT]:
    """Parse a stored document, returning None if it is malformed."""
    try:
        return model_cls.model_validate(document)
    except ValidationError as e:
        logger.warning(
            "Skipping malformed %s document %s: %s",
            model_cls.__name__,
            document.get("id", "?"),
            e.errors()[0]["msg"] if e.errors() else e,
        )
        return None


def parse_accounts(documents: Iterable[dict]) -> list[Account]:
    """Parse account documents, skipping malformed ones."""
    accounts = (from_document(Account, doc) for doc in documents)
    return [a for a in accounts if a is not None]


def parse_trades(documents: Iterable[dict]) -> list[Trade]:
    """Parse trade documents, skipping malformed ones."""
    trades = (from_document(Trade, doc) for doc in documents)
    return [t for t in trades if t is not None]
