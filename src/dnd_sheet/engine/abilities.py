"""Ability score and modifier resolution.

Scores are folded in a fixed order: base, race, subrace, class ability
score improvements, then feat increases. Every score is capped at
``rules.ability_score_max`` once all bonuses are in.
"""

from __future__ import annotations

from collections.abc import Iterable

from dnd_sheet.core.exceptions import DataIntegrityError, FormulaError
from dnd_sheet.engine.formula import FormulaEvaluator, default_evaluator
from dnd_sheet.models.enums import Ability, ChoiceType
from dnd_sheet.models.game_data import GameData, RulesConfig
from dnd_sheet.models.state import AbilityScores, CharacterState

ABILITY_MODIFIER_FORMULA = "abilityModifier"


def parse_ability_increase(entry: str, *, feature_id: str) -> tuple[Ability, int]:
    """Split an ``"ability:amount"`` choice entry.

    Args:
        entry: A recorded choice value such as ``"str:2"``.
        feature_id: The choice the entry belongs to, for error context.

    Raises:
        DataIntegrityError: If the ability is unknown or the amount is not
            an integer.
    """
    ability_text, sep, amount_text = entry.partition(":")
    try:
        if not sep:
            raise ValueError(entry)
        return Ability(ability_text.strip().lower()), int(amount_text)
    except ValueError:
        raise DataIntegrityError(
            f"Malformed ability increase {entry!r} in choice '{feature_id}'",
            entity_type="choice",
            key=feature_id,
        ) from None


def _apply(scores: AbilityScores, entries: Iterable[str], feature_id: str) -> None:
    for entry in entries:
        ability, amount = parse_ability_increase(entry, feature_id=feature_id)
        scores[ability] += amount


def compute_ability_scores(state: CharacterState, data: GameData) -> AbilityScores:
    """Final ability scores after every bonus, capped at the rules maximum.

    Raises:
        DataIntegrityError: If the race, a class, or a feat is unknown, or a
            recorded ability increase cannot be read.
    """
    scores: AbilityScores = dict(state.base_ability_scores)

    race = data.require_race(state.race_key)
    for ability, bonus in race.ability_bonuses.items():
        scores[ability] += bonus

    subrace = race.find_subrace(state.subrace_key)
    if subrace is not None:
        for ability, bonus in subrace.ability_bonuses.items():
            scores[ability] += bonus

    for class_level in state.classes:
        class_data = data.require_class(class_level.class_key)
        for feature in class_data.features:
            if feature.level > class_level.level:
                continue
            if feature.choices is None or feature.choices.type != ChoiceType.ABILITY:
                continue
            feature_id = f"{class_level.class_key}-{feature.level}-{feature.name}"
            choice = state.find_choice(feature_id)
            if choice is not None:
                _apply(scores, choice.chosen_values, feature_id)

    for feat_key in state.feats:
        feat = data.require_feat(feat_key)
        if feat.grants is None or feat.grants.ability_increase is None:
            continue
        feature_id = f"feat-{feat_key}-ability"
        choice = state.find_choice(feature_id)
        if choice is not None:
            _apply(scores, choice.chosen_values, feature_id)

    cap = data.rules.ability_score_max
    return {ability: min(scores[ability], cap) for ability in Ability}


def compute_ability_modifiers(
    scores: AbilityScores,
    rules: RulesConfig,
    evaluator: FormulaEvaluator | None = None,
) -> dict[Ability, int]:
    """Modifier for each ability from the ``abilityModifier`` formula.

    Raises:
        FormulaError: If the formula is not configured or fails.
    """
    formula = rules.formulas.get(ABILITY_MODIFIER_FORMULA)
    if formula is None:
        raise FormulaError(f"Formula '{ABILITY_MODIFIER_FORMULA}' is not configured")
    evaluator = evaluator or default_evaluator()
    tables = rules.lookup_tables()
    return {
        ability: evaluator.evaluate_int(formula, {"score": scores[ability]}, tables)
        for ability in Ability
    }


__all__ = [
    "ABILITY_MODIFIER_FORMULA",
    "compute_ability_modifiers",
    "compute_ability_scores",
    "parse_ability_increase",
]
