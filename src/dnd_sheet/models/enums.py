"""Enumeration types for dnd-sheet.

These are the small closed sets the engine branches on. Open-ended
content (skills, damage types, languages) stays as plain string keys
because it is defined by the rules data, not by the engine.
"""

from __future__ import annotations

from enum import StrEnum


class Ability(StrEnum):
    """The six ability scores, keyed as they appear in the data files."""

    STR = "str"
    DEX = "dex"
    CON = "con"
    INT = "int"
    WIS = "wis"
    CHA = "cha"

    @property
    def full_name(self) -> str:
        """Get the full name of the ability.

        Returns:
            Full ability name (e.g., 'Strength' for STR).
        """
        return _FULL_NAMES[self]

    @property
    def abbreviation(self) -> str:
        """Get the three-letter abbreviation.

        Returns:
            Three-letter abbreviation (e.g., 'STR').
        """
        return self.name


_FULL_NAMES: dict[Ability, str] = {
    Ability.STR: "Strength",
    Ability.DEX: "Dexterity",
    Ability.CON: "Constitution",
    Ability.INT: "Intelligence",
    Ability.WIS: "Wisdom",
    Ability.CHA: "Charisma",
}


class ProficiencyLevel(StrEnum):
    """How proficient a character is with a skill."""

    NONE = "none"
    PROFICIENT = "proficient"
    EXPERTISE = "expertise"

    @property
    def multiplier(self) -> int:
        """Multiple of the proficiency bonus this level adds."""
        return {"none": 0, "proficient": 1, "expertise": 2}[self.value]


class ChoiceSource(StrEnum):
    """Where a recorded feature choice was made."""

    CLASS = "class"
    RACE = "race"
    BACKGROUND = "background"
    FEAT = "feat"


class FeatureSource(StrEnum):
    """Origin of an aggregated feature."""

    RACE = "race"
    CLASS = "class"
    BACKGROUND = "background"
    FEAT = "feat"
    ITEM = "item"


class ChoiceType(StrEnum):
    """Kind of decision a feature asks the player to make."""

    SKILL = "skill"
    LANGUAGE = "language"
    TOOL = "tool"
    FEAT = "feat"
    SPELL = "spell"
    ABILITY = "ability"
    CUSTOM = "custom"


class CasterType(StrEnum):
    """Spell slot progression of a spellcasting source."""

    FULL = "full"
    HALF = "half"
    THIRD = "third"
    PACT = "pact"


class ArmorType(StrEnum):
    """Armor classification of an item."""

    LIGHT = "light"
    MEDIUM = "medium"
    HEAVY = "heavy"
    SHIELD = "shield"


__all__ = [
    "Ability",
    "ProficiencyLevel",
    "ChoiceSource",
    "FeatureSource",
    "ChoiceType",
    "CasterType",
    "ArmorType",
]
