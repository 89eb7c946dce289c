"""Persisted, user-owned character state.

CharacterState holds selections and session data only. Every ``*_key``
field is an opaque reference into GameData; the state never embeds game
content, so the same record can be recomputed against a newer dataset.
"""

from __future__ import annotations

from typing import Annotated

from pydantic import Field, field_validator

from dnd_sheet.models.base import SheetModel
from dnd_sheet.models.enums import Ability, ChoiceSource


Level = Annotated[int, Field(ge=1, le=20, description="Class level (1-20)")]
AbilityScores = dict[Ability, int]


class ClassLevel(SheetModel):
    """A class, its level, and the chosen subclass if any."""

    class_key: str
    level: Level = 1
    subclass_key: str | None = None


class EquipmentSlot(SheetModel):
    """An inventory entry referencing an item in the item table."""

    item_key: str
    quantity: int = Field(default=1, ge=0)
    equipped: bool = False
    attuned: bool = False
    custom_name: str | None = None
    notes: str | None = None


class Currency(SheetModel):
    """Coins carried, by denomination."""

    cp: int = Field(default=0, ge=0)
    sp: int = Field(default=0, ge=0)
    ep: int = Field(default=0, ge=0)
    gp: int = Field(default=0, ge=0)
    pp: int = Field(default=0, ge=0)


class FeatureChoice(SheetModel):
    """A recorded decision made at a choice point.

    ``feature_id`` follows stable conventions so resolvers can find the
    choice again: ``{classKey}-{level}-{featureName}`` for class features,
    ``feat-{featKey}-ability`` for feat ability increases, and
    ``{classKey}-skills`` for starting class skills.
    """

    feature_id: str
    chosen: str | list[str]
    source: ChoiceSource
    level: int | None = None

    @property
    def chosen_values(self) -> list[str]:
        """The choice as a list, whether one or many values were recorded."""
        if isinstance(self.chosen, str):
            return [self.chosen]
        return list(self.chosen)


class DeathSaves(SheetModel):
    """Death saving throw counters."""

    successes: int = Field(default=0, ge=0, le=3)
    failures: int = Field(default=0, ge=0, le=3)


class CharacterState(SheetModel):
    """Everything the user has chosen or tracked for one character."""

    # Identity
    id: str
    name: str
    player_name: str | None = None

    # Core selections
    race_key: str
    subrace_key: str | None = None
    classes: list[ClassLevel] = Field(default_factory=list)
    background_key: str

    # Ability scores before any bonuses
    base_ability_scores: AbilityScores
    ability_score_method: str = "manual"

    choices: list[FeatureChoice] = Field(default_factory=list)
    feats: list[str] = Field(default_factory=list)

    # Equipment
    equipment: list[EquipmentSlot] = Field(default_factory=list)
    currency: Currency = Field(default_factory=Currency)

    # Spellcasting
    spells_known: list[str] = Field(default_factory=list)
    spells_prepared: list[str] = Field(default_factory=list)

    # Session state
    current_hp: int = 0
    temp_hp: int = Field(default=0, ge=0)
    hit_dice_used: dict[str, int] = Field(default_factory=dict)
    death_saves: DeathSaves = Field(default_factory=DeathSaves)
    conditions: list[str] = Field(default_factory=list)
    spell_slots_used: list[int] = Field(default_factory=list)

    # Optional character details
    alignment: str | None = None
    faith: str | None = None
    age: str | None = None
    height: str | None = None
    weight: str | None = None
    eyes: str | None = None
    skin: str | None = None
    hair: str | None = None
    backstory: str | None = None
    personality_traits: str | None = None
    ideals: str | None = None
    bonds: str | None = None
    flaws: str | None = None
    notes: str | None = None

    # Metadata
    created_at: str = ""
    updated_at: str = ""
    data_version: str = ""
    app_version: str = ""

    @field_validator("base_ability_scores")
    @classmethod
    def require_all_abilities(cls, value: AbilityScores) -> AbilityScores:
        """Ensure all six abilities have a base score, in canonical order."""
        missing = [ability.value for ability in Ability if ability not in value]
        if missing:
            msg = f"base ability scores missing: {', '.join(missing)}"
            raise ValueError(msg)
        return {ability: value[ability] for ability in Ability}

    def find_choice(
        self,
        feature_id: str,
        source: ChoiceSource | None = None,
    ) -> FeatureChoice | None:
        """Return the first recorded choice for a feature id.

        Args:
            feature_id: The stable identifier of the choice point.
            source: Optionally require the choice to come from this source.

        Returns:
            The matching choice, or None if the player has not made it.
        """
        for choice in self.choices:
            if choice.feature_id != feature_id:
                continue
            if source is not None and choice.source != source:
                continue
            return choice
        return None


__all__ = [
    "Level",
    "AbilityScores",
    "ClassLevel",
    "EquipmentSlot",
    "Currency",
    "FeatureChoice",
    "DeathSaves",
    "CharacterState",
]
