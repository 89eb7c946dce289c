"""Pytest configuration and shared fixtures.

This module provides common fixtures for the dnd-sheet test suite: a
compact SRD-like game data payload (in the camelCase form the content
files use) and factories for character state.
"""

from __future__ import annotations

import copy
from typing import TYPE_CHECKING, Any, Callable

import pytest

from dnd_sheet.models import CharacterState, GameData


if TYPE_CHECKING:
    from collections.abc import Generator


# =============================================================================
# Configuration Fixtures
# =============================================================================


@pytest.fixture(autouse=True)
def reset_settings_cache() -> Generator[None, None, None]:
    """Reset cached settings and the shared evaluator around each test."""
    from dnd_sheet.core.config import clear_settings_cache
    from dnd_sheet.engine.formula import clear_default_evaluator

    clear_settings_cache()
    clear_default_evaluator()
    yield
    clear_settings_cache()
    clear_default_evaluator()


@pytest.fixture
def mock_env_vars(monkeypatch: pytest.MonkeyPatch) -> dict[str, str]:
    """Set up mock environment variables for testing.

    Returns:
        Dictionary of environment variables that were set.
    """
    env_vars = {
        "DND_SHEET_LOG_LEVEL": "DEBUG",
        "DND_SHEET_JSON_LOGS": "true",
        "DND_SHEET_FORMULA_MAX_LENGTH": "256",
        "DND_SHEET_FORMULA_MAX_DEPTH": "16",
    }
    for key, value in env_vars.items():
        monkeypatch.setenv(key, value)
    return env_vars


# =============================================================================
# Game Data Fixtures
# =============================================================================


ALL_SKILLS: dict[str, tuple[str, str]] = {
    "acrobatics": ("Acrobatics", "dex"),
    "animal-handling": ("Animal Handling", "wis"),
    "arcana": ("Arcana", "int"),
    "athletics": ("Athletics", "str"),
    "deception": ("Deception", "cha"),
    "history": ("History", "int"),
    "insight": ("Insight", "wis"),
    "intimidation": ("Intimidation", "cha"),
    "investigation": ("Investigation", "int"),
    "medicine": ("Medicine", "wis"),
    "nature": ("Nature", "int"),
    "perception": ("Perception", "wis"),
    "performance": ("Performance", "cha"),
    "persuasion": ("Persuasion", "cha"),
    "religion": ("Religion", "int"),
    "sleight-of-hand": ("Sleight of Hand", "dex"),
    "stealth": ("Stealth", "dex"),
    "survival": ("Survival", "wis"),
}

FULL_CASTER_SLOTS: dict[str, list[int]] = {
    "1": [2],
    "2": [3],
    "3": [4, 2],
    "4": [4, 3],
    "5": [4, 3, 2],
    "6": [4, 3, 3],
    "7": [4, 3, 3, 1],
    "8": [4, 3, 3, 2],
    "9": [4, 3, 3, 3, 1],
    "10": [4, 3, 3, 3, 2],
}


def _races() -> dict[str, Any]:
    return {
        "human": {
            "key": "human",
            "name": "Human",
            "size": "medium",
            "speed": 30,
            "abilityBonuses": {},
            "languages": ["common"],
            "traits": [
                {
                    "name": "Versatile Training",
                    "description": "Gain proficiency in one skill.",
                    "choices": {"type": "skill", "count": 1, "from": ["athletics", "perception"]},
                },
            ],
        },
        "dwarf": {
            "key": "dwarf",
            "name": "Dwarf",
            "size": "medium",
            "speed": 25,
            "abilityBonuses": {"con": 2},
            "languages": ["common", "dwarvish"],
            "proficiencies": {"weapons": ["battleaxe", "handaxe"], "tools": ["smith's tools"]},
            "traits": [
                {
                    "name": "Darkvision",
                    "description": "See in dim light within 60 feet.",
                    "grants": {"senses": {"darkvision": 60}},
                },
                {
                    "name": "Dwarven Resilience",
                    "description": "Advantage against poison; resistance to poison damage.",
                    "grants": {"resistances": ["poison"]},
                },
            ],
            "subraces": [
                {
                    "key": "hill-dwarf",
                    "name": "Hill Dwarf",
                    "abilityBonuses": {"wis": 1},
                    "traits": [
                        {"name": "Dwarven Toughness", "description": "Extra hit points."},
                    ],
                },
                {
                    "key": "deep-dwarf",
                    "name": "Deep Dwarf",
                    "abilityBonuses": {"str": 1},
                    "traits": [
                        {
                            "name": "Superior  Darkvision",
                            "description": "See in dim light within 120 feet.",
                            "grants": {"senses": {"darkvision": 120}, "resistances": ["poison"]},
                        },
                    ],
                    "overrides": {"speed": {"climb": 20}},
                },
            ],
        },
        "elf": {
            "key": "elf",
            "name": "Elf",
            "size": "medium",
            "speed": {"walk": 30},
            "abilityBonuses": {"dex": 2},
            "languages": ["common", "elvish"],
            "proficiencies": {"skills": ["perception"]},
            "traits": [
                {
                    "name": "Fey Ancestry",
                    "description": "Magic can't put you to sleep.",
                    "grants": {"conditionImmunities": ["magical sleep"]},
                },
            ],
            "subraces": [
                {
                    "key": "wood-elf",
                    "name": "Wood Elf",
                    "abilityBonuses": {"wis": 1},
                    "traits": [{"name": "Fleet of Foot", "description": "Speed 35."}],
                    "overrides": {"speed": 35},
                },
                {
                    "key": "high-elf",
                    "name": "High Elf",
                    "abilityBonuses": {"int": 1},
                    "traits": [
                        {
                            "name": "Cantrip",
                            "description": "Know one wizard cantrip.",
                            "choices": {"type": "spell", "count": 1, "from": ["fire-bolt", "light"]},
                        },
                    ],
                },
            ],
        },
    }


def _classes() -> dict[str, Any]:
    return {
        "fighter": {
            "key": "fighter",
            "name": "Fighter",
            "hitDie": 10,
            "primaryAbility": ["str", "dex"],
            "savingThrowProficiencies": ["str", "con"],
            "armorProficiencies": ["light", "medium", "heavy", "shields"],
            "weaponProficiencies": ["simple", "martial"],
            "skillChoices": {
                "type": "skill",
                "count": 2,
                "from": ["acrobatics", "athletics", "history", "intimidation", "perception"],
            },
            "features": [
                {"name": "Second Wind", "level": 1, "description": "Regain 1d10 + level HP."},
                {
                    "name": "Fighting Style",
                    "level": 1,
                    "description": "Adopt a style of fighting.",
                    "choices": {"type": "custom", "count": 1, "from": ["defense", "dueling"]},
                },
                {"name": "Action Surge", "level": 2, "description": "One additional action."},
                {"name": "Martial Archetype", "level": 3, "description": "Choose an archetype."},
                {
                    "name": "Ability Score Improvement",
                    "level": 4,
                    "description": "Increase ability scores.",
                    "choices": {"type": "ability", "count": 2},
                },
                {"name": "Extra Attack", "level": 5, "description": "Attack twice."},
            ],
            "subclassFeature": {"name": "Martial Archetype", "level": 3},
            "subclasses": [
                {
                    "key": "champion",
                    "name": "Champion",
                    "features": [
                        {"name": "Remarkable Athlete", "level": 7, "description": "Half proficiency."},
                        {"name": "Improved Critical", "level": 3, "description": "Crit on 19-20."},
                    ],
                },
                {
                    "key": "eldritch-knight",
                    "name": "Eldritch Knight",
                    "features": [
                        {"name": "Weapon Bond", "level": 3, "description": "Bond with weapons."},
                    ],
                    "spellcasting": {
                        "type": "third",
                        "ability": "int",
                        "cantripsKnownTable": [0, 0, 2, 2, 2, 2, 2, 2, 2, 3],
                        "spellsKnownTable": [0, 0, 3, 4, 4, 4, 5, 6, 6, 7],
                        "spellList": "wizard",
                    },
                },
            ],
        },
        "wizard": {
            "key": "wizard",
            "name": "Wizard",
            "hitDie": 6,
            "primaryAbility": "int",
            "savingThrowProficiencies": ["int", "wis"],
            "weaponProficiencies": ["daggers", "darts", "slings", "quarterstaffs", "light crossbows"],
            "skillChoices": {"type": "skill", "count": 2, "from": ["arcana", "history", "insight"]},
            "features": [
                {"name": "Arcane Recovery", "level": 1, "description": "Recover spell slots."},
                {"name": "Arcane Tradition", "level": 2, "description": "Choose a school."},
                {
                    "name": "Ability Score Improvement",
                    "level": 4,
                    "description": "Increase ability scores.",
                    "choices": {"type": "ability", "count": 2},
                },
            ],
            "spellcasting": {
                "type": "full",
                "ability": "int",
                "known": "all",
                "prepared": True,
                "ritual": True,
                "spellbook": True,
                "cantripsKnownTable": [3, 3, 3, 4, 4, 4, 4, 4, 4, 5],
                "spellList": "wizard",
            },
        },
        "warlock": {
            "key": "warlock",
            "name": "Warlock",
            "hitDie": 8,
            "primaryAbility": "cha",
            "savingThrowProficiencies": ["wis", "cha"],
            "armorProficiencies": ["light"],
            "weaponProficiencies": ["simple"],
            "features": [
                {"name": "Otherworldly Patron", "level": 1, "description": "Strike a bargain."},
                {"name": "Pact Magic", "level": 1, "description": "Cast spells through your patron."},
                {
                    "name": "Eldritch Invocations",
                    "level": 2,
                    "description": "Learn invocations.",
                    "choices": {"type": "custom", "count": 2, "from": ["agonizing-blast", "devils-sight"]},
                },
            ],
            "spellcasting": {
                "type": "pact",
                "ability": "cha",
                "known": "table",
                "cantripsKnownTable": [2, 2, 2, 3, 3, 3, 3, 3, 3, 4],
                "spellsKnownTable": [2, 3, 4, 5, 6, 7, 8, 9, 10, 10],
                "spellList": "warlock",
            },
        },
        "paladin": {
            "key": "paladin",
            "name": "Paladin",
            "hitDie": 10,
            "primaryAbility": ["str", "cha"],
            "savingThrowProficiencies": ["wis", "cha"],
            "armorProficiencies": ["light", "medium", "heavy", "shields"],
            "weaponProficiencies": ["simple", "martial"],
            "features": [
                {"name": "Divine Sense", "level": 1, "description": "Sense celestials."},
                {"name": "Lay on Hands", "level": 1, "description": "Healing pool."},
                {"name": "Divine Smite", "level": 2, "description": "Radiant damage on hit."},
            ],
            "spellcasting": {
                "type": "half",
                "ability": "cha",
                "prepared": True,
                "spellList": "paladin",
            },
        },
        "rogue": {
            "key": "rogue",
            "name": "Rogue",
            "hitDie": 8,
            "savingThrowProficiencies": ["dex", "int"],
            "armorProficiencies": ["light"],
            "weaponProficiencies": ["simple", "hand crossbows", "longswords", "rapiers", "shortswords"],
            "toolProficiencies": ["thieves' tools"],
            "features": [
                {
                    "name": "Expertise",
                    "level": 1,
                    "description": "Double proficiency in two skills.",
                    "choices": {"type": "skill", "count": 2},
                },
                {"name": "Sneak Attack", "level": 1, "description": "Extra 1d6 damage."},
            ],
        },
    }


def _items() -> dict[str, Any]:
    return {
        "leather-armor": {
            "key": "leather-armor",
            "name": "Leather Armor",
            "type": "armor",
            "armorClass": 11,
            "armorType": "light",
        },
        "scale-mail": {
            "key": "scale-mail",
            "name": "Scale Mail",
            "type": "armor",
            "armorClass": 14,
            "armorType": "medium",
            "stealthDisadvantage": True,
        },
        "chain-mail": {
            "key": "chain-mail",
            "name": "Chain Mail",
            "type": "armor",
            "armorClass": 16,
            "armorType": "heavy",
            "strengthRequirement": 13,
            "stealthDisadvantage": True,
        },
        "shield": {
            "key": "shield",
            "name": "Shield",
            "type": "armor",
            "armorClass": 2,
            "armorType": "shield",
        },
        "longsword": {
            "key": "longsword",
            "name": "Longsword",
            "type": "weapon",
            "damage": "1d8",
            "damageType": "slashing",
            "weaponCategory": "martial",
            "properties": ["versatile (1d10)"],
        },
        "rapier": {
            "key": "rapier",
            "name": "Rapier",
            "type": "weapon",
            "damage": "1d8",
            "damageType": "piercing",
            "weaponCategory": "martial",
            "properties": ["finesse"],
        },
        "longbow": {
            "key": "longbow",
            "name": "Longbow",
            "type": "weapon",
            "damage": "1d8",
            "damageType": "piercing",
            "weaponCategory": "martial",
            "properties": ["ammunition", "heavy", "two-handed"],
            "range": "150/600",
        },
        "handaxe": {
            "key": "handaxe",
            "name": "Handaxe",
            "type": "weapon",
            "damage": "1d6",
            "damageType": "slashing",
            "weaponCategory": "simple",
            "properties": ["light", "thrown (range 20/60)"],
            "range": "20/60",
        },
        "rope": {
            "key": "rope",
            "name": "Hempen Rope (50 feet)",
            "type": "adventuring",
        },
    }


def _rules() -> dict[str, Any]:
    return {
        "version": "test",
        "formulas": {
            "abilityModifier": "floor((score - 10) / 2)",
            "proficiencyBonus": "1 + ceil(totalLevel / 4)",
        },
        "abilityScoreMethods": {
            "pointBuy": {
                "description": "Spend 27 points.",
                "totalPoints": 27,
                "minScore": 8,
                "maxScore": 15,
                "costs": {"8": 0, "9": 1, "10": 2, "11": 3, "12": 4, "13": 5, "14": 7, "15": 9},
            },
            "standardArray": {
                "description": "Assign the standard array.",
                "values": [15, 14, 13, 12, 10, 8],
            },
        },
        "abilities": {
            key: {"name": name}
            for key, name in [
                ("str", "Strength"),
                ("dex", "Dexterity"),
                ("con", "Constitution"),
                ("int", "Intelligence"),
                ("wis", "Wisdom"),
                ("cha", "Charisma"),
            ]
        },
        "skills": {
            key: {"name": name, "ability": ability}
            for key, (name, ability) in ALL_SKILLS.items()
        },
        "proficiencyBonusTable": {},
        "multiclassSpellSlots": {
            "description": "Shared slot table by effective caster level.",
            "table": FULL_CASTER_SLOTS,
            "casterLevelMultipliers": {"full": 1, "half": 0.5, "third": 1 / 3},
            "fullCasters": ["wizard"],
            "halfCasters": ["paladin"],
            "thirdCasters": ["eldritch-knight"],
            "pactCasters": ["warlock"],
        },
        "hitDice": {"fighter": 10, "wizard": 6, "warlock": 8, "paladin": 10, "rogue": 8},
        "conditions": ["blinded", "charmed", "poisoned"],
        "damageTypes": ["slashing", "piercing", "poison"],
    }


def build_game_data_payload() -> dict[str, Any]:
    """Build a fresh camelCase game data payload."""
    return {
        "version": "test-1",
        "lastUpdated": "2026-01-01",
        "races": _races(),
        "classes": _classes(),
        "backgrounds": {
            "soldier": {
                "key": "soldier",
                "name": "Soldier",
                "skillProficiencies": ["athletics", "intimidation"],
                "toolProficiencies": ["gaming set", "vehicles (land)"],
                "feature": {"name": "Military Rank", "description": "Soldiers defer to you."},
            },
            "sage": {
                "key": "sage",
                "name": "Sage",
                "skillProficiencies": ["arcana", "history"],
                "toolProficiencies": {"type": "tool", "count": 1, "from": ["calligrapher's supplies"]},
                "languages": 2,
                "feature": {"name": "Researcher", "description": "You know where to look."},
            },
        },
        "feats": {
            "heavily-armored": {
                "key": "heavily-armored",
                "name": "Heavily Armored",
                "description": "Proficiency with heavy armor.",
                "grants": {
                    "abilityIncrease": {"type": "ability", "count": 1, "from": ["str"]},
                    "proficiencies": {"armor": ["heavy"]},
                },
            },
            "observant": {
                "key": "observant",
                "name": "Observant",
                "description": "Quick to notice details.",
                "grants": {"abilityIncrease": {"type": "ability", "count": 1, "from": ["int", "wis"]}},
            },
            "alert": {
                "key": "alert",
                "name": "Alert",
                "description": "+5 to initiative.",
            },
            "skilled": {
                "key": "skilled",
                "name": "Skilled",
                "description": "Three proficiencies.",
                "grants": {"proficiencies": {"skills": ["stealth", "athletics"], "tools": ["lute"]}},
            },
        },
        "spells": {
            "fire-bolt": {
                "key": "fire-bolt",
                "name": "Fire Bolt",
                "level": 0,
                "school": "evocation",
                "components": {"verbal": True, "somatic": True},
                "classes": ["wizard"],
            },
        },
        "items": _items(),
        "rules": _rules(),
    }


@pytest.fixture
def game_data_payload() -> dict[str, Any]:
    """Provide a mutable copy of the game data payload.

    Returns:
        The camelCase payload; tests may edit it before validating.
    """
    return copy.deepcopy(build_game_data_payload())


@pytest.fixture
def game_data(game_data_payload: dict[str, Any]) -> GameData:
    """Provide validated game data.

    Returns:
        GameData built from the shared payload.
    """
    return GameData.model_validate(game_data_payload)


# =============================================================================
# Character State Fixtures
# =============================================================================


SCENARIO_A_SCORES: dict[str, int] = {
    "str": 10,
    "dex": 14,
    "con": 12,
    "int": 8,
    "wis": 13,
    "cha": 10,
}


def build_state(**overrides: Any) -> CharacterState:
    """Build a CharacterState from snake_case overrides.

    Defaults describe a level 1 human fighter soldier with the scenario A
    scores.
    """
    fields: dict[str, Any] = {
        "id": "char-1",
        "name": "Test Hero",
        "race_key": "human",
        "background_key": "soldier",
        "classes": [{"class_key": "fighter", "level": 1}],
        "base_ability_scores": dict(SCENARIO_A_SCORES),
        "current_hp": 9,
    }
    fields.update(overrides)
    return CharacterState.model_validate(fields)


@pytest.fixture
def make_state() -> Callable[..., CharacterState]:
    """Provide the character state factory.

    Returns:
        A callable accepting CharacterState field overrides.
    """
    return build_state


@pytest.fixture
def fighter_state() -> CharacterState:
    """Provide a level 1 human fighter with no equipment."""
    return build_state()
