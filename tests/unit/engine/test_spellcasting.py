"""Tests for spellcasting resolution."""

from __future__ import annotations

from typing import Any, Callable

import pytest

from dnd_sheet.core.exceptions import DataIntegrityError
from dnd_sheet.engine.spellcasting import (
    casting_sources,
    compute_spellcasting,
    effective_caster_level,
    pact_slot_level,
    pact_slots,
)
from dnd_sheet.models import Ability, CharacterState, GameData


MODIFIERS = {
    Ability.STR: 0,
    Ability.DEX: 2,
    Ability.CON: 1,
    Ability.INT: 3,
    Ability.WIS: 1,
    Ability.CHA: 4,
}


class TestPactTables:
    """Tests for the pact magic step tables."""

    @pytest.mark.parametrize(
        ("level", "slots"),
        [(0, 0), (1, 1), (2, 2), (3, 2), (10, 2), (11, 3), (16, 3), (17, 4), (20, 4)],
    )
    def test_pact_slots(self, level: int, slots: int) -> None:
        """Test pact slot counts by class level."""
        assert pact_slots(level) == slots

    @pytest.mark.parametrize(
        ("level", "slot_level"),
        [(0, 0), (1, 1), (3, 1), (4, 2), (5, 2), (6, 3), (8, 4), (9, 4), (10, 5), (20, 5)],
    )
    def test_pact_slot_level(self, level: int, slot_level: int) -> None:
        """Test pact slot level by class level."""
        assert pact_slot_level(level) == slot_level


class TestPactCasting:
    """Tests for pact casters."""

    def test_level_three_warlock(
        self,
        make_state: Callable[..., CharacterState],
        game_data: GameData,
    ) -> None:
        """Test a 3rd level pact caster has two 1st level slots."""
        state = make_state(classes=[{"class_key": "warlock", "level": 3}])

        result = compute_spellcasting(state, MODIFIERS, 2, game_data)

        assert result is not None
        assert result.ability == Ability.CHA
        assert result.attack_bonus == 6
        assert result.save_dc == 14
        assert result.pact_slots == 2
        assert result.pact_slot_level == 1
        assert result.cantrips_known == 2
        assert result.spells_known == 4
        assert result.spell_slots is None
        assert result.caster_level is None

    def test_pact_primary_in_multiclass(
        self,
        make_state: Callable[..., CharacterState],
        game_data: GameData,
    ) -> None:
        """Test the first caster class decides the casting branch."""
        state = make_state(
            classes=[
                {"class_key": "fighter", "level": 1},
                {"class_key": "warlock", "level": 1},
                {"class_key": "wizard", "level": 4},
            ],
        )

        result = compute_spellcasting(state, MODIFIERS, 3, game_data)

        assert result is not None
        assert result.pact_slots == 1
        assert result.spell_slots is None


class TestSlotCasting:
    """Tests for slot-based and multiclass casters."""

    def test_single_class_full_caster(
        self,
        make_state: Callable[..., CharacterState],
        game_data: GameData,
    ) -> None:
        """Test a single-class wizard reads its slots from the table."""
        state = make_state(classes=[{"class_key": "wizard", "level": 5}])

        result = compute_spellcasting(state, MODIFIERS, 3, game_data)

        assert result is not None
        assert result.ability == Ability.INT
        assert result.attack_bonus == 6
        assert result.save_dc == 14
        assert result.caster_level == 5
        assert result.spell_slots == [4, 3, 2]
        assert result.cantrips_known == 4
        assert result.spells_known is None
        assert result.ritual_casting is True
        assert result.spellbook is True
        assert result.spells_prepared is None

    def test_full_and_half_multiclass(
        self,
        make_state: Callable[..., CharacterState],
        game_data: GameData,
    ) -> None:
        """Test effective caster level floor(3 * 1) + floor(2 * 0.5) = 4."""
        state = make_state(
            classes=[
                {"class_key": "wizard", "level": 3},
                {"class_key": "paladin", "level": 2},
            ],
        )

        result = compute_spellcasting(state, MODIFIERS, 3, game_data)

        assert result is not None
        assert result.caster_level == 4
        assert result.spell_slots == [4, 3]
        assert result.ability == Ability.INT

    def test_half_caster_first_is_primary(
        self,
        make_state: Callable[..., CharacterState],
        game_data: GameData,
    ) -> None:
        """Test the primary ability follows class order."""
        state = make_state(
            classes=[
                {"class_key": "paladin", "level": 2},
                {"class_key": "wizard", "level": 3},
            ],
        )

        result = compute_spellcasting(state, MODIFIERS, 3, game_data)

        assert result is not None
        assert result.ability == Ability.CHA
        assert result.caster_level == 4
        assert result.cantrips_known == 0

    def test_pact_levels_add_nothing_without_multiplier(
        self,
        make_state: Callable[..., CharacterState],
        game_data: GameData,
    ) -> None:
        """Test pact levels do not count toward the shared table."""
        state = make_state(
            classes=[
                {"class_key": "wizard", "level": 2},
                {"class_key": "warlock", "level": 3},
            ],
        )

        result = compute_spellcasting(state, MODIFIERS, 3, game_data)

        assert result is not None
        assert result.caster_level == 2
        assert result.spell_slots == [3]
        assert result.pact_slots is None

    def test_subclass_spellcasting(
        self,
        make_state: Callable[..., CharacterState],
        game_data: GameData,
    ) -> None:
        """Test a subclass can grant spellcasting to a non-caster class."""
        state = make_state(
            classes=[{"class_key": "fighter", "level": 3, "subclass_key": "eldritch-knight"}],
        )

        result = compute_spellcasting(state, MODIFIERS, 2, game_data)

        assert result is not None
        assert result.ability == Ability.INT
        assert result.caster_level == 1
        assert result.spell_slots == [2]
        assert result.cantrips_known == 2
        assert result.spells_known == 3

    def test_table_gap_gives_no_slots(
        self,
        make_state: Callable[..., CharacterState],
        game_data: GameData,
    ) -> None:
        """Test an effective caster level missing from the table yields no slots."""
        state = make_state(classes=[{"class_key": "wizard", "level": 11}])

        result = compute_spellcasting(state, MODIFIERS, 4, game_data)

        assert result is not None
        assert result.caster_level == 11
        assert result.spell_slots == []
        assert result.cantrips_known == 0

    def test_zero_caster_level(
        self,
        make_state: Callable[..., CharacterState],
        game_data: GameData,
    ) -> None:
        """Test a level 1 half caster has no shared-table slots."""
        state = make_state(classes=[{"class_key": "paladin", "level": 1}])

        result = compute_spellcasting(state, MODIFIERS, 2, game_data)

        assert result is not None
        assert result.caster_level == 0
        assert result.spell_slots == []

    def test_missing_multiplier_raises(
        self,
        make_state: Callable[..., CharacterState],
        game_data_payload: dict[str, Any],
    ) -> None:
        """Test a slot-based caster type without a multiplier is an integrity error."""
        del game_data_payload["rules"]["multiclassSpellSlots"]["casterLevelMultipliers"]["half"]
        data = GameData.model_validate(game_data_payload)
        state = make_state(classes=[{"class_key": "paladin", "level": 4}])

        with pytest.raises(DataIntegrityError, match="half"):
            compute_spellcasting(state, MODIFIERS, 2, data)

    def test_spells_prepared_formula(
        self,
        make_state: Callable[..., CharacterState],
        game_data_payload: dict[str, Any],
    ) -> None:
        """Test prepared casters get a count from the spellsPrepared formula."""
        game_data_payload["rules"]["formulas"]["spellsPrepared"] = "abilityModifier + classLevel"
        data = GameData.model_validate(game_data_payload)
        wizard = make_state(classes=[{"class_key": "wizard", "level": 5}])
        weak_wizard = make_state(classes=[{"class_key": "wizard", "level": 1}])

        assert compute_spellcasting(wizard, MODIFIERS, 3, data).spells_prepared == 8  # type: ignore[union-attr]
        weak = {**MODIFIERS, Ability.INT: -3}
        assert compute_spellcasting(weak_wizard, weak, 2, data).spells_prepared == 1  # type: ignore[union-attr]


class TestNoSpellcasting:
    """Tests for characters without spellcasting."""

    def test_non_caster(self, fighter_state: CharacterState, game_data: GameData) -> None:
        """Test a non-caster gets None."""
        assert compute_spellcasting(fighter_state, MODIFIERS, 2, game_data) is None

    def test_non_caster_subclass(
        self,
        make_state: Callable[..., CharacterState],
        game_data: GameData,
    ) -> None:
        """Test a subclass without spellcasting grants none."""
        state = make_state(classes=[{"class_key": "fighter", "level": 3, "subclass_key": "champion"}])

        assert casting_sources(state, game_data) == []
        assert compute_spellcasting(state, MODIFIERS, 2, game_data) is None


class TestEffectiveCasterLevel:
    """Tests for the weighted caster level sum."""

    def test_floor_per_class(
        self,
        make_state: Callable[..., CharacterState],
        game_data: GameData,
    ) -> None:
        """Test each class is floored before summing."""
        state = make_state(
            classes=[
                {"class_key": "paladin", "level": 3},
                {"class_key": "paladin", "level": 3},
            ],
        )

        sources = casting_sources(state, game_data)

        assert effective_caster_level(sources, game_data) == 2
