"""dnd-sheet: data-driven D&D 5e character computation.

Game content and rules are supplied as data (GameData); the engine applies
them to a saved CharacterState and returns a fully derived
ComputedCharacter. Formulas in the rules data run in a sandboxed
evaluator, never through ``eval``.

Example:
    >>> from dnd_sheet import CharacterState, GameData, compute_character
    >>> state = CharacterState.model_validate(saved_json)
    >>> data = GameData.model_validate(content_json)
    >>> sheet = compute_character(state, data)
"""

from __future__ import annotations

from dnd_sheet.core import (
    ComputationError,
    ConfigurationError,
    DataIntegrityError,
    DndSheetError,
    FormulaError,
    ValidationError,
    configure_logging,
    get_settings,
)
from dnd_sheet.engine import FormulaEvaluator, compute_character, evaluate
from dnd_sheet.models import CharacterState, ComputedCharacter, GameData


__version__ = "0.1.0"

__all__ = [
    "__version__",
    "CharacterState",
    "ComputationError",
    "ComputedCharacter",
    "ConfigurationError",
    "DataIntegrityError",
    "DndSheetError",
    "FormulaError",
    "FormulaEvaluator",
    "GameData",
    "ValidationError",
    "compute_character",
    "configure_logging",
    "evaluate",
    "get_settings",
]
