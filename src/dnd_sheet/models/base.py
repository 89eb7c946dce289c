"""Shared pydantic base for dnd-sheet schemas.

The JSON contract uses camelCase keys (``raceKey``, ``hitDiceUsed``) while
Python code uses snake_case attributes. Both spellings are accepted on
input; ``model_dump(by_alias=True)`` reproduces the camelCase form.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class SheetModel(BaseModel):
    """Immutable base for every input and output schema."""

    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
        populate_by_name=True,
        alias_generator=to_camel,
    )


__all__ = ["SheetModel"]
