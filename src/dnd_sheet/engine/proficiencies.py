"""Proficiency aggregation across class, race, background, choices and feats.

Every list is de-duplicated in first-seen order. Only the first class a
character took grants baseline proficiencies; multiclassing into further
classes does not.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import TypeVar

from dnd_sheet.models.computed import Proficiencies
from dnd_sheet.models.enums import ChoiceSource
from dnd_sheet.models.game_data import GameData, ProficiencyGrants
from dnd_sheet.models.state import CharacterState


_T = TypeVar("_T")

EXPERTISE_MARKER = "expertise"

# Substring of a race/background choice id -> proficiency list it feeds.
_CHOICE_CATEGORIES = (
    ("language", "languages"),
    ("tool", "tools"),
    ("skill", "skills"),
)


class _Collector:
    """Ordered, de-duplicating accumulator for one Proficiencies record."""

    def __init__(self) -> None:
        self.lists: dict[str, list] = {
            "armor": [],
            "weapons": [],
            "tools": [],
            "skills": [],
            "saving_throws": [],
            "languages": [],
        }

    def add(self, category: str, values: Iterable[_T]) -> None:
        bucket = self.lists[category]
        for value in values:
            if value not in bucket:
                bucket.append(value)

    def add_grants(self, grants: ProficiencyGrants | None) -> None:
        if grants is None:
            return
        self.add("armor", grants.armor)
        self.add("weapons", grants.weapons)
        self.add("tools", grants.tools)
        self.add("skills", grants.skills)
        self.add("languages", grants.languages)

    def build(self) -> Proficiencies:
        return Proficiencies(**self.lists)


def compute_proficiencies(state: CharacterState, data: GameData) -> Proficiencies:
    """Merge proficiencies from every source in a fixed order.

    Order: first class, race, background, race/background choices, feats.

    Raises:
        DataIntegrityError: If the first class, race, background or a feat
            is not in the game data.
    """
    collected = _Collector()

    if state.classes:
        first = state.classes[0]
        class_data = data.require_class(first.class_key)
        collected.add("armor", class_data.armor_proficiencies)
        collected.add("weapons", class_data.weapon_proficiencies)
        collected.add("saving_throws", class_data.saving_throw_proficiencies)
        skill_choice = state.find_choice(f"{class_data.key}-skills", ChoiceSource.CLASS)
        if skill_choice is not None and isinstance(skill_choice.chosen, list):
            collected.add("skills", skill_choice.chosen)
        if isinstance(class_data.tool_proficiencies, list):
            collected.add("tools", class_data.tool_proficiencies)

    race = data.require_race(state.race_key)
    collected.add_grants(race.proficiencies)
    collected.add("languages", race.languages)

    background = data.require_background(state.background_key)
    collected.add("skills", background.skill_proficiencies)
    if isinstance(background.tool_proficiencies, list):
        collected.add("tools", background.tool_proficiencies)

    for choice in state.choices:
        if choice.source not in (ChoiceSource.BACKGROUND, ChoiceSource.RACE):
            continue
        if not isinstance(choice.chosen, list):
            continue
        for marker, category in _CHOICE_CATEGORIES:
            if marker in choice.feature_id:
                collected.add(category, choice.chosen)

    for feat_key in state.feats:
        feat = data.require_feat(feat_key)
        if feat.grants is not None:
            collected.add_grants(feat.grants.proficiencies)

    return collected.build()


def compute_expertise(state: CharacterState) -> list[str]:
    """Skills with expertise, from any choice whose id mentions expertise."""
    expertise: list[str] = []
    for choice in state.choices:
        if EXPERTISE_MARKER not in choice.feature_id.lower():
            continue
        for skill in choice.chosen_values:
            if skill not in expertise:
                expertise.append(skill)
    return expertise


__all__ = [
    "EXPERTISE_MARKER",
    "compute_expertise",
    "compute_proficiencies",
]
