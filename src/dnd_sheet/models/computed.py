"""Derived character view produced by the computation pipeline.

ComputedCharacter extends CharacterState with every derived value a
character sheet needs. It is rebuilt on every read and must never be
persisted or fed back into the pipeline as input.
"""

from __future__ import annotations

from pydantic import Field

from dnd_sheet.models.base import SheetModel
from dnd_sheet.models.enums import Ability, FeatureSource, ProficiencyLevel
from dnd_sheet.models.game_data import SpeedInfo
from dnd_sheet.models.state import AbilityScores, CharacterState


AbilityModifiers = dict[Ability, int]


class Proficiencies(SheetModel):
    """Aggregated, de-duplicated proficiencies in first-seen order."""

    armor: list[str] = Field(default_factory=list)
    weapons: list[str] = Field(default_factory=list)
    tools: list[str] = Field(default_factory=list)
    skills: list[str] = Field(default_factory=list)
    saving_throws: list[Ability] = Field(default_factory=list)
    languages: list[str] = Field(default_factory=list)


class SkillInfo(SheetModel):
    modifier: int
    proficiency: ProficiencyLevel
    ability: Ability
    passive: int


class SavingThrowInfo(SheetModel):
    modifier: int
    proficient: bool


class HitDiceInfo(SheetModel):
    total: int
    used: int = 0


class HitPoints(SheetModel):
    max: int
    current: int
    temp: int
    hit_dice: dict[str, HitDiceInfo] = Field(default_factory=dict)


class ArmorClass(SheetModel):
    """Armor class with a readable account of where it came from."""

    value: int
    source: str
    breakdown: list[str] = Field(default_factory=list)


class Speed(SpeedInfo):
    """Resolved movement speeds."""


class Attack(SheetModel):
    name: str
    attack_bonus: int
    damage: str
    damage_type: str | None = None
    properties: list[str] = Field(default_factory=list)
    range: str | None = None
    notes: str | None = None


class Feature(SheetModel):
    """One entry in the flattened feature list.

    ``id`` is stable across recomputation so the presentation layer can
    correlate it with ``FeatureChoice.feature_id``.
    """

    id: str
    name: str
    source: FeatureSource
    source_key: str
    level: int | None = None
    description: str = ""
    has_choices: bool = False
    choices_made: list[str] = Field(default_factory=list)


class Spellcasting(SheetModel):
    """Spellcasting summary for the primary spellcasting source.

    Slot-based casters fill ``spell_slots`` (index = spell level - 1);
    pact casters fill ``pact_slots`` and ``pact_slot_level`` instead.
    """

    ability: Ability
    attack_bonus: int
    save_dc: int
    caster_level: int | None = None
    spell_slots: list[int] | None = None
    pact_slots: int | None = None
    pact_slot_level: int | None = None
    cantrips_known: int = 0
    spells_known: int | None = None
    spells_prepared: int | None = None
    ritual_casting: bool = False
    spellbook: bool = False


class ComputedCharacter(CharacterState):
    """A CharacterState plus everything derived from it."""

    ability_scores: AbilityScores
    ability_modifiers: AbilityModifiers
    total_level: int
    proficiency_bonus: int
    saving_throws: dict[Ability, SavingThrowInfo]
    skills: dict[str, SkillInfo]
    hp: HitPoints
    ac: ArmorClass
    initiative: int
    speed: Speed
    attacks: list[Attack] = Field(default_factory=list)
    features: list[Feature] = Field(default_factory=list)
    proficiencies: Proficiencies = Field(default_factory=Proficiencies)
    spellcasting: Spellcasting | None = None
    resistances: list[str] = Field(default_factory=list)
    immunities: list[str] = Field(default_factory=list)
    vulnerabilities: list[str] = Field(default_factory=list)
    condition_immunities: list[str] = Field(default_factory=list)
    senses: dict[str, int] = Field(default_factory=dict)


__all__ = [
    "AbilityModifiers",
    "Proficiencies",
    "SkillInfo",
    "SavingThrowInfo",
    "HitDiceInfo",
    "HitPoints",
    "ArmorClass",
    "Speed",
    "Attack",
    "Feature",
    "Spellcasting",
    "ComputedCharacter",
]
