"""Spellcasting resolution for single-class and multiclass characters.

The primary source is the first class, in the character's class order,
whose class or active subclass declares spellcasting. Pact casters report
pact slots from their own class level. Slot-based casters pool every
spellcasting class into an effective caster level and read their slots
from the shared multiclass table.
"""

from __future__ import annotations

import math
from collections.abc import Mapping
from dataclasses import dataclass
from typing import assert_never

from dnd_sheet.core.exceptions import DataIntegrityError
from dnd_sheet.engine.formula import FormulaEvaluator, default_evaluator
from dnd_sheet.models.computed import Spellcasting
from dnd_sheet.models.enums import Ability, CasterType
from dnd_sheet.models.game_data import GameData, PactSpellcasting, SlotSpellcasting
from dnd_sheet.models.state import CharacterState


SPELLS_PREPARED_FORMULA = "spellsPrepared"

# (level at which the value next increases, value below that level)
_PACT_SLOT_STEPS = ((2, 1), (11, 2), (17, 3))
_PACT_SLOT_LEVEL_STEPS = ((4, 1), (6, 2), (8, 3), (10, 4))


def _step(level: int, steps: tuple[tuple[int, int], ...], top: int) -> int:
    if level < 1:
        return 0
    for threshold, value in steps:
        if level < threshold:
            return value
    return top


def pact_slots(class_level: int) -> int:
    """Pact slots at a class level: 1, then 2 from 2nd, 3 from 11th, 4 from 17th."""
    return _step(class_level, _PACT_SLOT_STEPS, 4)


def pact_slot_level(class_level: int) -> int:
    """Pact slot level: 1 through 3rd level, rising by one after 3rd, 5th, 7th and 9th."""
    return _step(class_level, _PACT_SLOT_LEVEL_STEPS, 5)


@dataclass(frozen=True)
class CastingSource:
    """One class's spellcasting descriptor with the level it is cast at."""

    class_key: str
    class_level: int
    descriptor: SlotSpellcasting | PactSpellcasting


def casting_sources(state: CharacterState, data: GameData) -> list[CastingSource]:
    """Every spellcasting class, in the character's class order.

    Raises:
        DataIntegrityError: If a class is not in the game data.
    """
    sources = []
    for class_level in state.classes:
        class_data = data.require_class(class_level.class_key)
        descriptor = class_data.spellcasting_for(class_level.subclass_key)
        if descriptor is not None:
            sources.append(CastingSource(class_data.key, class_level.level, descriptor))
    return sources


def effective_caster_level(sources: list[CastingSource], data: GameData) -> int:
    """Weighted sum of caster levels for the shared slot table.

    Pact magic without a configured multiplier adds nothing.

    Raises:
        DataIntegrityError: If a slot-based caster type has no multiplier.
    """
    multipliers = data.rules.multiclass_spell_slots.caster_level_multipliers
    total = 0
    for source in sources:
        caster_type = source.descriptor.caster_type
        multiplier = multipliers.get(caster_type.value)
        if multiplier is None:
            if caster_type == CasterType.PACT:
                continue
            raise DataIntegrityError(
                f"No caster level multiplier for '{caster_type.value}' casters",
                entity_type="casterLevelMultiplier",
                key=caster_type.value,
            )
        total += math.floor(source.class_level * multiplier)
    return total


def _spells_prepared(
    descriptor: SlotSpellcasting | PactSpellcasting,
    ability_modifier: int,
    class_level: int,
    caster_level: int,
    data: GameData,
    evaluator: FormulaEvaluator,
) -> int | None:
    formula = data.rules.formulas.get(SPELLS_PREPARED_FORMULA)
    if not descriptor.prepared or formula is None:
        return None
    variables = {
        "abilityModifier": ability_modifier,
        "classLevel": class_level,
        "casterLevel": caster_level,
    }
    prepared = evaluator.evaluate_int(formula, variables, data.rules.lookup_tables())
    return max(1, prepared)


def compute_spellcasting(
    state: CharacterState,
    modifiers: Mapping[Ability, int],
    proficiency_bonus: int,
    data: GameData,
    evaluator: FormulaEvaluator | None = None,
) -> Spellcasting | None:
    """Spellcasting summary, or None if no class casts spells.

    Raises:
        DataIntegrityError: If a class is unknown or a slot-based caster
            type has no multiplier.
        FormulaError: If the ``spellsPrepared`` formula fails.
    """
    sources = casting_sources(state, data)
    if not sources:
        return None

    evaluator = evaluator or default_evaluator()
    primary = sources[0]
    descriptor = primary.descriptor
    ability_mod = modifiers[descriptor.ability]
    common = {
        "ability": descriptor.ability,
        "attack_bonus": proficiency_bonus + ability_mod,
        "save_dc": 8 + proficiency_bonus + ability_mod,
        "cantrips_known": descriptor.cantrips_at(primary.class_level),
        "spells_known": descriptor.spells_known_at(primary.class_level),
        "ritual_casting": descriptor.ritual,
        "spellbook": descriptor.spellbook,
    }

    if isinstance(descriptor, PactSpellcasting):
        return Spellcasting(
            **common,
            pact_slots=pact_slots(primary.class_level),
            pact_slot_level=pact_slot_level(primary.class_level),
            spells_prepared=_spells_prepared(
                descriptor, ability_mod, primary.class_level, primary.class_level, data, evaluator
            ),
        )
    if isinstance(descriptor, SlotSpellcasting):
        caster_level = effective_caster_level(sources, data)
        table = data.rules.multiclass_spell_slots.table
        slots = list(table.get(str(caster_level), [])) if caster_level > 0 else []
        return Spellcasting(
            **common,
            caster_level=caster_level,
            spell_slots=slots,
            spells_prepared=_spells_prepared(
                descriptor, ability_mod, primary.class_level, caster_level, data, evaluator
            ),
        )
    assert_never(descriptor)


__all__ = [
    "CastingSource",
    "SPELLS_PREPARED_FORMULA",
    "casting_sources",
    "compute_spellcasting",
    "effective_caster_level",
    "pact_slot_level",
    "pact_slots",
]
