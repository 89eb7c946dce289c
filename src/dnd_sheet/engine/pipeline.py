"""The character computation pipeline.

compute_character runs the resolvers as a fixed sequence of stages. Each
stage produces a frozen record that the later stages read, so ability
increases are always applied before modifiers exist and modifiers always
exist before anything that depends on them.

    abilities -> progression -> proficiencies -> checks -> combat
              -> features -> spellcasting -> defenses -> ComputedCharacter

The pipeline performs no I/O and catches nothing: any DataIntegrityError
or FormulaError raised by a resolver reaches the caller unchanged.

Example:
    >>> from dnd_sheet.engine import compute_character
    >>> sheet = compute_character(state, game_data)
    >>> sheet.ac.value, sheet.hp.max
    (12, 9)
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from types import MappingProxyType

from dnd_sheet.core.logging import get_logger
from dnd_sheet.engine.abilities import compute_ability_modifiers, compute_ability_scores
from dnd_sheet.engine.derived import (
    compute_armor_class,
    compute_attacks,
    compute_hit_points,
    compute_initiative,
    compute_saving_throws,
    compute_skills,
    compute_speed,
)
from dnd_sheet.engine.features import compute_features
from dnd_sheet.engine.formula import FormulaEvaluator, default_evaluator
from dnd_sheet.engine.proficiencies import compute_expertise, compute_proficiencies
from dnd_sheet.engine.progression import compute_proficiency_bonus, compute_total_level
from dnd_sheet.engine.spellcasting import compute_spellcasting
from dnd_sheet.models.computed import (
    ArmorClass,
    Attack,
    ComputedCharacter,
    Feature,
    HitPoints,
    Proficiencies,
    SavingThrowInfo,
    SkillInfo,
    Speed,
    Spellcasting,
)
from dnd_sheet.models.enums import Ability
from dnd_sheet.models.game_data import GameData, TraitData
from dnd_sheet.models.state import CharacterState


logger = get_logger(__name__)


# =============================================================================
# Stage Records
# =============================================================================


@dataclass(frozen=True)
class AbilityStage:
    scores: Mapping[Ability, int]
    modifiers: Mapping[Ability, int]


@dataclass(frozen=True)
class ProgressionStage:
    total_level: int
    proficiency_bonus: int


@dataclass(frozen=True)
class ProficiencyStage:
    proficiencies: Proficiencies
    expertise: tuple[str, ...]


@dataclass(frozen=True)
class CheckStage:
    skills: Mapping[str, SkillInfo]
    saving_throws: Mapping[Ability, SavingThrowInfo]


@dataclass(frozen=True)
class CombatStage:
    hp: HitPoints
    ac: ArmorClass
    speed: Speed
    initiative: int
    attacks: tuple[Attack, ...]


@dataclass(frozen=True)
class DefenseStage:
    resistances: tuple[str, ...]
    immunities: tuple[str, ...]
    vulnerabilities: tuple[str, ...]
    condition_immunities: tuple[str, ...]
    senses: Mapping[str, int]


def _frozen(mapping: dict) -> Mapping:
    return MappingProxyType(dict(mapping))


# =============================================================================
# Stages
# =============================================================================


def resolve_abilities(
    state: CharacterState,
    data: GameData,
    evaluator: FormulaEvaluator,
) -> AbilityStage:
    scores = compute_ability_scores(state, data)
    modifiers = compute_ability_modifiers(scores, data.rules, evaluator)
    return AbilityStage(scores=_frozen(scores), modifiers=_frozen(modifiers))


def resolve_progression(
    state: CharacterState,
    data: GameData,
    evaluator: FormulaEvaluator,
) -> ProgressionStage:
    total_level = compute_total_level(state.classes)
    bonus = compute_proficiency_bonus(total_level, data.rules, evaluator)
    return ProgressionStage(total_level=total_level, proficiency_bonus=bonus)


def resolve_proficiencies(state: CharacterState, data: GameData) -> ProficiencyStage:
    return ProficiencyStage(
        proficiencies=compute_proficiencies(state, data),
        expertise=tuple(compute_expertise(state)),
    )


def resolve_checks(
    data: GameData,
    abilities: AbilityStage,
    progression: ProgressionStage,
    proficiency: ProficiencyStage,
) -> CheckStage:
    skills = compute_skills(
        abilities.modifiers,
        proficiency.proficiencies,
        progression.proficiency_bonus,
        data.rules,
        proficiency.expertise,
    )
    saves = compute_saving_throws(
        abilities.modifiers,
        proficiency.proficiencies,
        progression.proficiency_bonus,
    )
    return CheckStage(skills=_frozen(skills), saving_throws=_frozen(saves))


def resolve_combat(
    state: CharacterState,
    data: GameData,
    abilities: AbilityStage,
    progression: ProgressionStage,
    proficiency: ProficiencyStage,
) -> CombatStage:
    modifiers = abilities.modifiers
    return CombatStage(
        hp=compute_hit_points(state, modifiers[Ability.CON], data),
        ac=compute_armor_class(state, modifiers, data),
        speed=compute_speed(state, data),
        initiative=compute_initiative(modifiers),
        attacks=tuple(
            compute_attacks(
                state,
                modifiers,
                progression.proficiency_bonus,
                proficiency.proficiencies,
                data,
            )
        ),
    )


def _unique(values: list[str]) -> tuple[str, ...]:
    return tuple(dict.fromkeys(values))


def resolve_defenses(state: CharacterState, data: GameData) -> DefenseStage:
    """Damage and condition defenses and senses granted by racial traits.

    When two traits grant the same sense, the longer range is kept.
    """
    race = data.require_race(state.race_key)
    traits: list[TraitData] = list(race.traits)
    subrace = race.find_subrace(state.subrace_key)
    if subrace is not None:
        traits.extend(subrace.traits)

    resistances: list[str] = []
    immunities: list[str] = []
    vulnerabilities: list[str] = []
    condition_immunities: list[str] = []
    senses: dict[str, int] = {}
    for trait in traits:
        grants = trait.grants
        if grants is None:
            continue
        resistances.extend(grants.resistances)
        immunities.extend(grants.immunities)
        vulnerabilities.extend(grants.vulnerabilities)
        condition_immunities.extend(grants.condition_immunities)
        for sense, distance in grants.senses.items():
            senses[sense] = max(distance, senses.get(sense, 0))

    return DefenseStage(
        resistances=_unique(resistances),
        immunities=_unique(immunities),
        vulnerabilities=_unique(vulnerabilities),
        condition_immunities=_unique(condition_immunities),
        senses=_frozen(senses),
    )


def _warn_missing_optional(state: CharacterState, data: GameData) -> None:
    race = data.require_race(state.race_key)
    if state.subrace_key is not None and race.find_subrace(state.subrace_key) is None:
        logger.warning(
            "Subrace not found; ignoring",
            race_key=state.race_key,
            subrace_key=state.subrace_key,
        )
    for class_level in state.classes:
        if class_level.subclass_key is None:
            continue
        class_data = data.require_class(class_level.class_key)
        if class_data.find_subclass(class_level.subclass_key) is None:
            logger.warning(
                "Subclass not found; ignoring",
                class_key=class_level.class_key,
                subclass_key=class_level.subclass_key,
            )


# =============================================================================
# Entry Point
# =============================================================================


def compute_character(
    state: CharacterState,
    data: GameData,
    *,
    evaluator: FormulaEvaluator | None = None,
) -> ComputedCharacter:
    """Derive the full character sheet from saved state and game data.

    Args:
        state: The persisted character.
        data: Game content and rules.
        evaluator: Formula evaluator to use; defaults to the shared one.

    Returns:
        A new ComputedCharacter. Equal inputs always give equal output.

    Raises:
        DataIntegrityError: If the race, background, a class, a feat or an
            equipped item is not in the game data.
        FormulaError: If a rules formula is missing or fails.
    """
    evaluator = evaluator or default_evaluator()
    log = logger.bind(character_id=state.id)
    log.debug(
        "Computing character",
        race_key=state.race_key,
        classes=[c.class_key for c in state.classes],
    )

    _warn_missing_optional(state, data)

    abilities = resolve_abilities(state, data, evaluator)
    progression = resolve_progression(state, data, evaluator)
    proficiency = resolve_proficiencies(state, data)
    checks = resolve_checks(data, abilities, progression, proficiency)
    combat = resolve_combat(state, data, abilities, progression, proficiency)
    features: list[Feature] = compute_features(state, data)
    spellcasting: Spellcasting | None = compute_spellcasting(
        state,
        abilities.modifiers,
        progression.proficiency_bonus,
        data,
        evaluator,
    )
    defenses = resolve_defenses(state, data)

    computed = ComputedCharacter(
        **state.model_dump(),
        ability_scores=dict(abilities.scores),
        ability_modifiers=dict(abilities.modifiers),
        total_level=progression.total_level,
        proficiency_bonus=progression.proficiency_bonus,
        saving_throws=dict(checks.saving_throws),
        skills=dict(checks.skills),
        hp=combat.hp,
        ac=combat.ac,
        initiative=combat.initiative,
        speed=combat.speed,
        attacks=list(combat.attacks),
        features=features,
        proficiencies=proficiency.proficiencies,
        spellcasting=spellcasting,
        resistances=list(defenses.resistances),
        immunities=list(defenses.immunities),
        vulnerabilities=list(defenses.vulnerabilities),
        condition_immunities=list(defenses.condition_immunities),
        senses=dict(defenses.senses),
    )

    log.info(
        "Character computed",
        total_level=computed.total_level,
        hp_max=computed.hp.max,
        ac=computed.ac.value,
        spellcaster=computed.spellcasting is not None,
    )
    return computed


__all__ = [
    "AbilityStage",
    "CheckStage",
    "CombatStage",
    "DefenseStage",
    "ProficiencyStage",
    "ProgressionStage",
    "compute_character",
    "resolve_abilities",
    "resolve_checks",
    "resolve_combat",
    "resolve_defenses",
    "resolve_progression",
    "resolve_proficiencies",
]
