"""Derived statistics: skills, saving throws, hit points, AC, speed, attacks.

Each resolver is a plain function of already-computed inputs so the
pipeline can call them in a fixed order and tests can call them alone.
"""

from __future__ import annotations

import math
from collections.abc import Iterable, Mapping

from dnd_sheet.models.computed import (
    ArmorClass,
    Attack,
    HitDiceInfo,
    HitPoints,
    Proficiencies,
    SavingThrowInfo,
    SkillInfo,
    Speed,
)
from dnd_sheet.models.enums import Ability, ArmorType, ProficiencyLevel
from dnd_sheet.models.game_data import GameData, ItemData, RulesConfig, SpeedInfo
from dnd_sheet.models.state import CharacterState


MEDIUM_ARMOR_DEX_CAP = 2
UNARMORED_BASE = 10
PASSIVE_BASE = 10


def _signed(value: int) -> str:
    return f"{value:+d}"


# =============================================================================
# Skills & Saving Throws
# =============================================================================


def compute_skills(
    modifiers: Mapping[Ability, int],
    proficiencies: Proficiencies,
    proficiency_bonus: int,
    rules: RulesConfig,
    expertise: Iterable[str] = (),
) -> dict[str, SkillInfo]:
    """Skill modifiers for every skill defined in the rules.

    Expertise doubles the proficiency bonus and takes precedence over plain
    proficiency when a skill appears in both sets.
    """
    expertise_set = set(expertise)
    proficient_set = set(proficiencies.skills)
    skills: dict[str, SkillInfo] = {}
    for skill_key, definition in rules.skills.items():
        modifier = modifiers[definition.ability]
        if skill_key in expertise_set:
            level = ProficiencyLevel.EXPERTISE
        elif skill_key in proficient_set:
            level = ProficiencyLevel.PROFICIENT
        else:
            level = ProficiencyLevel.NONE
        modifier += proficiency_bonus * level.multiplier
        skills[skill_key] = SkillInfo(
            modifier=modifier,
            proficiency=level,
            ability=definition.ability,
            passive=PASSIVE_BASE + modifier,
        )
    return skills


def compute_saving_throws(
    modifiers: Mapping[Ability, int],
    proficiencies: Proficiencies,
    proficiency_bonus: int,
) -> dict[Ability, SavingThrowInfo]:
    proficient_set = set(proficiencies.saving_throws)
    saves: dict[Ability, SavingThrowInfo] = {}
    for ability in Ability:
        proficient = ability in proficient_set
        saves[ability] = SavingThrowInfo(
            modifier=modifiers[ability] + (proficiency_bonus if proficient else 0),
            proficient=proficient,
        )
    return saves


# =============================================================================
# Hit Points
# =============================================================================


def compute_hit_points(state: CharacterState, con_modifier: int, data: GameData) -> HitPoints:
    """Maximum HP using fixed per-level gains, plus the hit dice pool.

    The first level of the first class grants the full hit die; every other
    level grants ``ceil(die / 2) + 1``. CON is added per level and the total
    never drops below 1.

    Raises:
        DataIntegrityError: If a class is not in the game data.
    """
    max_hp = 0
    pool: dict[str, int] = {}

    for index, class_level in enumerate(state.classes):
        class_data = data.require_class(class_level.class_key)
        die = class_data.hit_die
        die_key = f"d{die}"
        pool[die_key] = pool.get(die_key, 0) + class_level.level

        average = math.ceil(die / 2) + 1
        for level in range(1, class_level.level + 1):
            if index == 0 and level == 1:
                max_hp += die + con_modifier
            else:
                max_hp += average + con_modifier

    hit_dice = {
        die_key: HitDiceInfo(total=total, used=state.hit_dice_used.get(die_key, 0))
        for die_key, total in pool.items()
    }
    return HitPoints(
        max=max(1, max_hp),
        current=state.current_hp,
        temp=state.temp_hp,
        hit_dice=hit_dice,
    )


# =============================================================================
# Armor Class
# =============================================================================


def _equipped_items(state: CharacterState, data: GameData) -> list[ItemData]:
    return [data.require_item(slot.item_key) for slot in state.equipment if slot.equipped]


def compute_armor_class(
    state: CharacterState,
    modifiers: Mapping[Ability, int],
    data: GameData,
) -> ArmorClass:
    """Armor class from the first equipped armor and shield.

    Light armor adds the full DEX modifier, medium caps it at +2 and heavy
    ignores it. Without body armor the base is 10 plus DEX.

    Raises:
        DataIntegrityError: If an equipped item is not in the game data.
    """
    equipped = _equipped_items(state, data)
    armor = next((item for item in equipped if item.is_body_armor), None)
    shield = next((item for item in equipped if item.is_shield), None)

    dex = modifiers[Ability.DEX]
    breakdown: list[str] = []

    if armor is None:
        base = UNARMORED_BASE
        source = "Unarmored"
        dex_bonus = dex
        breakdown.append(f"Base: {UNARMORED_BASE}")
        breakdown.append(f"Dexterity: {_signed(dex_bonus)}")
    else:
        base = armor.armor_class or 0
        source = armor.name
        breakdown.append(f"{armor.name}: {base}")
        if armor.armor_type == ArmorType.LIGHT:
            dex_bonus = dex
            breakdown.append(f"Dexterity: {_signed(dex_bonus)}")
        elif armor.armor_type == ArmorType.MEDIUM:
            dex_bonus = min(dex, MEDIUM_ARMOR_DEX_CAP)
            breakdown.append(f"Dexterity (max {MEDIUM_ARMOR_DEX_CAP}): {_signed(dex_bonus)}")
        else:
            dex_bonus = 0

    total = base + dex_bonus
    if shield is not None and shield.armor_class:
        total += shield.armor_class
        breakdown.append(f"Shield: {_signed(shield.armor_class)}")

    return ArmorClass(value=total, source=source, breakdown=breakdown)


# =============================================================================
# Speed & Initiative
# =============================================================================


def _as_speed(value: int | SpeedInfo) -> dict[str, int | bool | None]:
    if isinstance(value, int):
        return {"walk": value}
    return value.model_dump()


def compute_speed(state: CharacterState, data: GameData) -> Speed:
    """Movement speeds from the race, with subrace overrides applied.

    A scalar override replaces walking speed; a structured override
    replaces only the fields it sets.

    Raises:
        DataIntegrityError: If the race is not in the game data.
    """
    race = data.require_race(state.race_key)
    speed = _as_speed(race.speed)

    subrace = race.find_subrace(state.subrace_key)
    override = subrace.overrides.speed if subrace and subrace.overrides else None
    if isinstance(override, int):
        speed["walk"] = override
    elif override is not None:
        speed.update(override.model_dump(exclude_unset=True))

    return Speed(**speed)


def compute_initiative(modifiers: Mapping[Ability, int]) -> int:
    return modifiers[Ability.DEX]


# =============================================================================
# Attacks
# =============================================================================


def _has_property(item: ItemData, name: str) -> bool:
    return any(prop.lower().startswith(name) for prop in item.properties)


def _is_ranged(item: ItemData) -> bool:
    return item.range is not None and not _has_property(item, "thrown")


def _is_proficient(item: ItemData, weapon_proficiencies: Iterable[str]) -> bool:
    known = {entry.lower() for entry in weapon_proficiencies}
    candidates = {item.key.lower(), item.name.lower(), f"{item.name.lower()}s"}
    if item.weapon_category:
        category = item.weapon_category.lower()
        candidates.update({category, f"{category} weapons"})
    return not known.isdisjoint(candidates)


def _damage_string(dice: str, modifier: int) -> str:
    if modifier == 0:
        return dice
    return f"{dice}{_signed(modifier)}"


def compute_attacks(
    state: CharacterState,
    modifiers: Mapping[Ability, int],
    proficiency_bonus: int,
    proficiencies: Proficiencies,
    data: GameData,
) -> list[Attack]:
    """One attack per equipped weapon, in equipment order.

    Finesse weapons use the better of STR and DEX, ranged weapons use DEX
    and everything else uses STR. Thrown melee weapons count as melee.

    Raises:
        DataIntegrityError: If an equipped item is not in the game data.
    """
    attacks: list[Attack] = []
    for slot in state.equipment:
        if not slot.equipped:
            continue
        item = data.require_item(slot.item_key)
        if not item.is_weapon or item.damage is None:
            continue

        if _has_property(item, "finesse"):
            ability_mod = max(modifiers[Ability.STR], modifiers[Ability.DEX])
        elif _is_ranged(item):
            ability_mod = modifiers[Ability.DEX]
        else:
            ability_mod = modifiers[Ability.STR]

        proficient = _is_proficient(item, proficiencies.weapons)
        attacks.append(
            Attack(
                name=slot.custom_name or item.name,
                attack_bonus=ability_mod + (proficiency_bonus if proficient else 0),
                damage=_damage_string(item.damage, ability_mod),
                damage_type=item.damage_type,
                properties=list(item.properties),
                range=item.range,
                notes=None if proficient else "Not proficient",
            )
        )
    return attacks


__all__ = [
    "compute_armor_class",
    "compute_attacks",
    "compute_hit_points",
    "compute_initiative",
    "compute_saving_throws",
    "compute_skills",
    "compute_speed",
]
