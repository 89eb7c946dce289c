"""Computation engine for dnd-sheet.

This package turns a saved CharacterState and the game's data tables into
a ComputedCharacter. Everything here is a pure function of its inputs.

Submodules:
    formula: Sandboxed evaluator for data-supplied formulas
    abilities: Ability scores (with racial, ASI and feat bonuses) and modifiers
    progression: Total level and proficiency bonus
    proficiencies: Proficiency aggregation and expertise
    derived: Skills, saving throws, HP, AC, speed, initiative, attacks
    features: Flattened feature list with stable ids
    spellcasting: Slot, multiclass and pact spellcasting
    pipeline: The ordered computation stages and compute_character
    ability_methods: Point-buy and standard-array checks

Example:
    >>> from dnd_sheet.engine import compute_character
    >>> sheet = compute_character(state, game_data)
    >>> sheet.proficiency_bonus
    2
"""

from __future__ import annotations

# =============================================================================
# Formula Evaluation
# =============================================================================
from dnd_sheet.engine.formula import (
    DEFAULT_FUNCTIONS,
    EvaluatorConfig,
    Expression,
    FormulaEvaluator,
    FunctionSpec,
    FunctionTable,
    clear_default_evaluator,
    default_evaluator,
    evaluate,
    evaluate_int,
    parse_formula,
)

# =============================================================================
# Resolvers
# =============================================================================
from dnd_sheet.engine.abilities import (
    compute_ability_modifiers,
    compute_ability_scores,
)
from dnd_sheet.engine.progression import (
    compute_proficiency_bonus,
    compute_total_level,
)
from dnd_sheet.engine.proficiencies import (
    compute_expertise,
    compute_proficiencies,
)
from dnd_sheet.engine.derived import (
    compute_armor_class,
    compute_attacks,
    compute_hit_points,
    compute_initiative,
    compute_saving_throws,
    compute_skills,
    compute_speed,
)
from dnd_sheet.engine.features import compute_features, slugify
from dnd_sheet.engine.spellcasting import (
    compute_spellcasting,
    effective_caster_level,
    pact_slot_level,
    pact_slots,
)

# =============================================================================
# Pipeline
# =============================================================================
from dnd_sheet.engine.pipeline import compute_character

# =============================================================================
# Character Creation Helpers
# =============================================================================
from dnd_sheet.engine.ability_methods import (
    get_method,
    point_buy_cost,
    point_buy_remaining,
    validate_array_assignment,
    validate_point_buy,
)


__all__ = [
    # Formula Evaluation
    "DEFAULT_FUNCTIONS",
    "EvaluatorConfig",
    "Expression",
    "FormulaEvaluator",
    "FunctionSpec",
    "FunctionTable",
    "clear_default_evaluator",
    "default_evaluator",
    "evaluate",
    "evaluate_int",
    "parse_formula",
    # Resolvers
    "compute_ability_modifiers",
    "compute_ability_scores",
    "compute_proficiency_bonus",
    "compute_total_level",
    "compute_expertise",
    "compute_proficiencies",
    "compute_armor_class",
    "compute_attacks",
    "compute_hit_points",
    "compute_initiative",
    "compute_saving_throws",
    "compute_skills",
    "compute_speed",
    "compute_features",
    "slugify",
    "compute_spellcasting",
    "effective_caster_level",
    "pact_slot_level",
    "pact_slots",
    # Pipeline
    "compute_character",
    # Character Creation Helpers
    "get_method",
    "point_buy_cost",
    "point_buy_remaining",
    "validate_array_assignment",
    "validate_point_buy",
]
