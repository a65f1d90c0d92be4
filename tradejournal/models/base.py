"""Shared pydantic configuration for TradeJournal models."""

from pydantic import BaseModel
from pydantic.alias_generators import to_camel


class DocumentModel(BaseModel):
    """Frozen model persisted with camelCase field names.

    Attributes are snake_case in Python; ``model_dump(by_alias=True)``
    produces the document shape stored by the backends.
    """

    model_config = {
        "frozen": True,
        "alias_generator": to_camel,
        "populate_by_name": True,
    }

