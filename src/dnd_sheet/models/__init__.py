"""Pydantic V2 schemas for dnd-sheet.

Submodules:
    enums: Closed enumerations (Ability, CasterType, ProficiencyLevel, ...)
    state: CharacterState, the persisted user record
    game_data: GameData content tables and RulesConfig
    computed: ComputedCharacter, the derived read-only view

Example:
    >>> from dnd_sheet.models import CharacterState, GameData
    >>> data = GameData.model_validate(payload)
"""

from __future__ import annotations

from dnd_sheet.models.computed import (
    AbilityModifiers,
    ArmorClass,
    Attack,
    ComputedCharacter,
    Feature,
    HitDiceInfo,
    HitPoints,
    Proficiencies,
    SavingThrowInfo,
    SkillInfo,
    Speed,
    Spellcasting,
)
from dnd_sheet.models.enums import (
    Ability,
    ArmorType,
    CasterType,
    ChoiceSource,
    ChoiceType,
    FeatureSource,
    ProficiencyLevel,
)
from dnd_sheet.models.game_data import (
    AbilityScoreMethodConfig,
    BackgroundData,
    ChoiceData,
    ClassData,
    ClassFeatureData,
    FeatData,
    FeatGrants,
    GameData,
    ItemData,
    MulticlassSpellSlots,
    PactSpellcasting,
    ProficiencyGrants,
    RaceData,
    RulesConfig,
    SkillDefinition,
    SlotSpellcasting,
    SpeedInfo,
    SpellData,
    SubclassData,
    SubraceData,
    SubraceOverrides,
    TraitData,
    TraitGrants,
)
from dnd_sheet.models.state import (
    AbilityScores,
    CharacterState,
    ClassLevel,
    Currency,
    DeathSaves,
    EquipmentSlot,
    FeatureChoice,
)


__all__ = [
    # Enumerations
    "Ability",
    "ArmorType",
    "CasterType",
    "ChoiceSource",
    "ChoiceType",
    "FeatureSource",
    "ProficiencyLevel",
    # Character state
    "AbilityScores",
    "CharacterState",
    "ClassLevel",
    "Currency",
    "DeathSaves",
    "EquipmentSlot",
    "FeatureChoice",
    # Game data
    "AbilityScoreMethodConfig",
    "BackgroundData",
    "ChoiceData",
    "ClassData",
    "ClassFeatureData",
    "FeatData",
    "FeatGrants",
    "GameData",
    "ItemData",
    "MulticlassSpellSlots",
    "PactSpellcasting",
    "ProficiencyGrants",
    "RaceData",
    "RulesConfig",
    "SkillDefinition",
    "SlotSpellcasting",
    "SpeedInfo",
    "SpellData",
    "SubclassData",
    "SubraceData",
    "SubraceOverrides",
    "TraitData",
    "TraitGrants",
    # Computed view
    "AbilityModifiers",
    "ArmorClass",
    "Attack",
    "ComputedCharacter",
    "Feature",
    "HitDiceInfo",
    "HitPoints",
    "Proficiencies",
    "SavingThrowInfo",
    "SkillInfo",
    "Speed",
    "Spellcasting",
]
