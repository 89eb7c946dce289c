"""Point-buy and standard-array checks for character creation.

These helpers validate base scores against ``rules.ability_score_methods``
before they are saved. The computation pipeline never calls them: it takes
whatever base scores the character already has.
"""

from __future__ import annotations

from collections.abc import Mapping

from dnd_sheet.core.exceptions import DataIntegrityError, ValidationError
from dnd_sheet.core.logging import get_logger
from dnd_sheet.models.enums import Ability
from dnd_sheet.models.game_data import AbilityScoreMethodConfig, RulesConfig


logger = get_logger(__name__)


def get_method(rules: RulesConfig, method_key: str) -> AbilityScoreMethodConfig:
    """Return a configured ability score method.

    Raises:
        DataIntegrityError: If the rules do not define the method.
    """
    method = rules.ability_score_methods.get(method_key)
    if method is None:
        raise DataIntegrityError(
            f"Unknown ability score method '{method_key}'",
            entity_type="abilityScoreMethod",
            key=method_key,
        )
    return method


def point_buy_cost(scores: Mapping[Ability, int], method: AbilityScoreMethodConfig) -> int:
    """Total points spent on a set of base scores.

    Raises:
        ValidationError: If a score is outside the method's range or has no
            listed cost.
    """
    total = 0
    for ability, score in scores.items():
        if method.min_score is not None and score < method.min_score:
            raise ValidationError(
                f"{Ability(ability).full_name} {score} is below the point-buy minimum {method.min_score}",
                field_name=str(ability),
                invalid_value=score,
            )
        if method.max_score is not None and score > method.max_score:
            raise ValidationError(
                f"{Ability(ability).full_name} {score} is above the point-buy maximum {method.max_score}",
                field_name=str(ability),
                invalid_value=score,
            )
        cost = method.costs.get(str(score))
        if cost is None:
            raise ValidationError(
                f"No point-buy cost listed for a score of {score}",
                field_name=str(ability),
                invalid_value=score,
            )
        total += cost
    return total


def point_buy_remaining(scores: Mapping[Ability, int], method: AbilityScoreMethodConfig) -> int:
    """Points left to spend; negative when the scores overspend the budget."""
    return (method.total_points or 0) - point_buy_cost(scores, method)


def validate_point_buy(scores: Mapping[Ability, int], method: AbilityScoreMethodConfig) -> None:
    """Check that scores are purchasable within the point budget.

    Raises:
        ValidationError: If any score is out of range or the budget is
            exceeded.
    """
    remaining = point_buy_remaining(scores, method)
    if remaining < 0:
        raise ValidationError(
            f"Point buy overspent by {-remaining} point(s)",
            field_name="base_ability_scores",
            invalid_value=dict(scores),
        )
    logger.debug("Point buy validated", remaining=remaining)


def validate_array_assignment(
    scores: Mapping[Ability, int],
    method: AbilityScoreMethodConfig,
) -> None:
    """Check that the six scores use each array value exactly once.

    Raises:
        ValidationError: If an ability is missing or the scores are not a
            permutation of the method's values.
    """
    missing = [ability.value for ability in Ability if ability not in scores]
    if missing:
        raise ValidationError(
            f"Scores missing for: {', '.join(missing)}",
            field_name="base_ability_scores",
        )
    assigned = sorted(scores[ability] for ability in Ability)
    if assigned != sorted(method.values):
        raise ValidationError(
            f"Scores {assigned} do not match the array {sorted(method.values)}",
            field_name="base_ability_scores",
            invalid_value=assigned,
        )


__all__ = [
    "get_method",
    "point_buy_cost",
    "point_buy_remaining",
    "validate_array_assignment",
    "validate_point_buy",
]
