"""Character level and proficiency bonus."""

from __future__ import annotations

from collections.abc import Iterable

from dnd_sheet.core.exceptions import FormulaError
from dnd_sheet.engine.formula import FormulaEvaluator, default_evaluator
from dnd_sheet.models.game_data import RulesConfig
from dnd_sheet.models.state import ClassLevel


PROFICIENCY_BONUS_FORMULA = "proficiencyBonus"


def compute_total_level(classes: Iterable[ClassLevel]) -> int:
    """Sum of all class levels."""
    return sum(class_level.level for class_level in classes)


def compute_proficiency_bonus(
    total_level: int,
    rules: RulesConfig,
    evaluator: FormulaEvaluator | None = None,
) -> int:
    """Proficiency bonus for a total character level.

    An entry in ``rules.proficiency_bonus_table`` wins; otherwise the
    ``proficiencyBonus`` formula is evaluated with ``totalLevel`` bound.

    Raises:
        FormulaError: If neither a table entry nor the formula is available.
    """
    from_table = rules.proficiency_bonus_table.get(str(total_level))
    if from_table is not None:
        return from_table

    formula = rules.formulas.get(PROFICIENCY_BONUS_FORMULA)
    if formula is None:
        raise FormulaError(
            f"No proficiency bonus for level {total_level}: "
            f"table has no entry and formula '{PROFICIENCY_BONUS_FORMULA}' is not configured",
            table="proficiencyBonus",
            key=str(total_level),
        )
    evaluator = evaluator or default_evaluator()
    return evaluator.evaluate_int(formula, {"totalLevel": total_level}, rules.lookup_tables())


__all__ = [
    "PROFICIENCY_BONUS_FORMULA",
    "compute_proficiency_bonus",
    "compute_total_level",
]
