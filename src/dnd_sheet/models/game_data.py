"""Normalized game content and rules configuration.

GameData is supplied whole by the host on every computation. It is
read-only: resolvers look things up in it but never change it. Lookups of
references a character *requires* go through the ``require_*`` methods,
which raise DataIntegrityError instead of quietly returning nothing.
"""

from __future__ import annotations

from typing import Annotated, Literal, TypeVar

from pydantic import AliasChoices, Field

from dnd_sheet.core.exceptions import DataIntegrityError
from dnd_sheet.models.base import SheetModel
from dnd_sheet.models.enums import Ability, ArmorType, CasterType, ChoiceType


_T = TypeVar("_T")


# =============================================================================
# Shared Shapes
# =============================================================================


class ChoiceData(SheetModel):
    """A choice point declared by content (pick N from a list)."""

    type: ChoiceType
    count: int = Field(default=1, ge=0)
    options: list[str] = Field(default_factory=list, alias="from")
    description: str | None = None


class ProficiencyGrants(SheetModel):
    """Proficiencies granted by a trait, feat, or race; every list optional."""

    armor: list[str] = Field(default_factory=list)
    weapons: list[str] = Field(default_factory=list)
    tools: list[str] = Field(default_factory=list)
    skills: list[str] = Field(default_factory=list)
    saving_throws: list[Ability] = Field(default_factory=list)
    languages: list[str] = Field(default_factory=list)


class SpeedInfo(SheetModel):
    """Movement speeds in feet."""

    walk: int = 30
    fly: int | None = None
    swim: int | None = None
    climb: int | None = None
    burrow: int | None = None
    hover: bool | None = None


class TraitGrants(SheetModel):
    """Mechanical grants attached to a racial trait."""

    proficiencies: ProficiencyGrants | None = None
    resistances: list[str] = Field(default_factory=list)
    immunities: list[str] = Field(default_factory=list)
    vulnerabilities: list[str] = Field(default_factory=list)
    condition_immunities: list[str] = Field(default_factory=list)
    senses: dict[str, int] = Field(default_factory=dict)
    spells: list[str] = Field(default_factory=list)


class TraitData(SheetModel):
    """A racial or subracial trait."""

    name: str
    description: str = ""
    grants: TraitGrants | None = None
    choices: ChoiceData | None = None


# =============================================================================
# Races
# =============================================================================


class SubraceOverrides(SheetModel):
    """Race values a subrace replaces."""

    speed: int | SpeedInfo | None = None
    size: str | None = None


class SubraceData(SheetModel):
    key: str
    name: str
    ability_bonuses: dict[Ability, int] = Field(default_factory=dict)
    traits: list[TraitData] = Field(default_factory=list)
    overrides: SubraceOverrides | None = None


class RaceData(SheetModel):
    key: str
    name: str
    source: str = ""
    size: str = "medium"
    speed: int | SpeedInfo = 30
    ability_bonuses: dict[Ability, int] = Field(default_factory=dict)
    traits: list[TraitData] = Field(default_factory=list)
    subraces: list[SubraceData] = Field(default_factory=list)
    languages: list[str] = Field(default_factory=list)
    proficiencies: ProficiencyGrants | None = None

    def find_subrace(self, key: str | None) -> SubraceData | None:
        """Return the subrace with this key, or None if absent or unselected."""
        if key is None:
            return None
        return next((subrace for subrace in self.subraces if subrace.key == key), None)


# =============================================================================
# Classes
# =============================================================================


class FeatureGrants(SheetModel):
    proficiencies: ProficiencyGrants | None = None
    features: list[str] = Field(default_factory=list)


class FeatureScaling(SheetModel):
    levels: list[int] = Field(default_factory=list)
    values: list[str | int] = Field(default_factory=list)


class ClassFeatureData(SheetModel):
    """A leveled class or subclass feature."""

    name: str
    level: int = Field(ge=1, le=20)
    description: str = ""
    choices: ChoiceData | None = None
    grants: FeatureGrants | None = None
    scaling: FeatureScaling | None = None


class _SpellcastingBase(SheetModel):
    ability: Ability
    known: Literal["all", "table"] | int | None = None
    prepared: bool = False
    ritual: bool = False
    spellbook: bool = False
    cantrips_known_table: list[int] = Field(default_factory=list)
    spells_known_table: list[int] = Field(default_factory=list)
    spell_list: str = ""

    def cantrips_at(self, class_level: int) -> int:
        """Cantrips known at a class level; 0 when the table has no entry."""
        return _table_entry(self.cantrips_known_table, class_level) or 0

    def spells_known_at(self, class_level: int) -> int | None:
        """Spells known at a class level; None for casters without the table."""
        return _table_entry(self.spells_known_table, class_level)


class SlotSpellcasting(_SpellcastingBase):
    """A caster whose slots come from the shared multiclass slot table."""

    type: Literal["full", "half", "third"]

    @property
    def caster_type(self) -> CasterType:
        return CasterType(self.type)


class PactSpellcasting(_SpellcastingBase):
    """A caster using pact magic: few slots, all of one level."""

    type: Literal["pact"]

    @property
    def caster_type(self) -> CasterType:
        return CasterType.PACT


SpellcastingDescriptor = Annotated[
    SlotSpellcasting | PactSpellcasting,
    Field(discriminator="type"),
]


def _table_entry(table: list[int], class_level: int) -> int | None:
    if 1 <= class_level <= len(table):
        return table[class_level - 1]
    return None


class SubclassData(SheetModel):
    key: str
    name: str
    source: str = ""
    features: list[ClassFeatureData] = Field(default_factory=list)
    spellcasting: SpellcastingDescriptor | None = None


class SubclassFeatureInfo(SheetModel):
    name: str
    level: int


class ClassData(SheetModel):
    key: str
    name: str
    source: str = ""
    hit_die: int = Field(gt=0)
    primary_ability: Ability | list[Ability] | None = None
    saving_throw_proficiencies: list[Ability] = Field(default_factory=list)
    armor_proficiencies: list[str] = Field(default_factory=list)
    weapon_proficiencies: list[str] = Field(default_factory=list)
    tool_proficiencies: list[str] | ChoiceData | None = None
    skill_choices: ChoiceData | None = None
    features: list[ClassFeatureData] = Field(default_factory=list)
    subclass_feature: SubclassFeatureInfo | None = None
    spellcasting: SpellcastingDescriptor | None = None
    subclasses: list[SubclassData] = Field(default_factory=list)

    def find_subclass(self, key: str | None) -> SubclassData | None:
        """Return the subclass with this key, or None if absent or unselected."""
        if key is None:
            return None
        return next((subclass for subclass in self.subclasses if subclass.key == key), None)

    def spellcasting_for(
        self,
        subclass_key: str | None,
    ) -> SlotSpellcasting | PactSpellcasting | None:
        """Spellcasting granted by the class itself, else by the active subclass."""
        if self.spellcasting is not None:
            return self.spellcasting
        subclass = self.find_subclass(subclass_key)
        if subclass is not None:
            return subclass.spellcasting
        return None


# =============================================================================
# Backgrounds, Feats, Spells, Items
# =============================================================================


class BackgroundFeature(SheetModel):
    name: str
    description: str = ""


class BackgroundCharacteristics(SheetModel):
    personality_traits: list[str] = Field(default_factory=list)
    ideals: list[str] = Field(default_factory=list)
    bonds: list[str] = Field(default_factory=list)
    flaws: list[str] = Field(default_factory=list)


class BackgroundData(SheetModel):
    key: str
    name: str
    source: str = ""
    skill_proficiencies: list[str] = Field(default_factory=list)
    tool_proficiencies: list[str] | ChoiceData | None = None
    languages: int | ChoiceData | None = None
    equipment: list[str] = Field(default_factory=list)
    feature: BackgroundFeature | None = None
    characteristics: BackgroundCharacteristics | None = None


class FeatPrerequisites(SheetModel):
    ability: dict[Ability, int] = Field(default_factory=dict)
    proficiency: list[str] = Field(default_factory=list)
    race: list[str] = Field(default_factory=list)
    spellcasting: bool = False
    level: int | None = None


class FeatGrants(SheetModel):
    ability_increase: ChoiceData | None = None
    proficiencies: ProficiencyGrants | None = None
    features: list[str] = Field(default_factory=list)


class FeatData(SheetModel):
    key: str
    name: str
    source: str = ""
    description: str = ""
    prerequisites: FeatPrerequisites | None = None
    grants: FeatGrants | None = None


class SpellComponents(SheetModel):
    verbal: bool = False
    somatic: bool = False
    material: str | None = None


class SpellData(SheetModel):
    key: str
    name: str
    source: str = ""
    level: int = Field(default=0, ge=0, le=9)
    school: str = ""
    casting_time: str = ""
    range: str = ""
    components: SpellComponents = Field(default_factory=SpellComponents)
    duration: str = ""
    concentration: bool = False
    ritual: bool = False
    description: str = ""
    higher_levels: str | None = None
    classes: list[str] = Field(default_factory=list)
    subclasses: list[str] = Field(default_factory=list)


class ItemData(SheetModel):
    """An item; armor and weapon fields are populated only where relevant."""

    key: str
    name: str
    source: str = ""
    type: str = "adventuring"
    rarity: str | None = None
    cost: str | None = None
    weight: float | None = None
    description: str | None = None

    # Armor
    armor_class: int | None = Field(
        default=None,
        validation_alias=AliasChoices("armorClass", "armor_class", "ac"),
    )
    armor_type: ArmorType | None = None
    stealth_disadvantage: bool = False
    strength_requirement: int | None = None

    # Weapon
    damage: str | None = None
    damage_type: str | None = None
    weapon_category: str | None = None
    properties: list[str] = Field(default_factory=list)
    range: str | None = None

    # Magic
    attunement: bool | str = False
    charges: int | None = None

    @property
    def is_shield(self) -> bool:
        return self.armor_type == ArmorType.SHIELD

    @property
    def is_body_armor(self) -> bool:
        """True for light, medium, or heavy armor that declares its AC."""
        return (
            self.armor_type is not None
            and self.armor_type != ArmorType.SHIELD
            and self.armor_class is not None
        )

    @property
    def is_weapon(self) -> bool:
        return self.damage is not None


# =============================================================================
# Rules Configuration
# =============================================================================


class AbilityScoreMethodConfig(SheetModel):
    """How base ability scores may be generated under one method."""

    description: str = ""
    total_points: int | None = Field(
        default=None,
        validation_alias=AliasChoices("totalPoints", "total_points", "points"),
    )
    min_score: int | None = Field(
        default=None,
        validation_alias=AliasChoices("minScore", "min_score", "min"),
    )
    max_score: int | None = Field(
        default=None,
        validation_alias=AliasChoices("maxScore", "max_score", "max"),
    )
    costs: dict[str, int] = Field(default_factory=dict)
    values: list[int] = Field(default_factory=list)
    dice_count: int | None = None
    dice_sides: int | None = None
    keep_highest: int | None = None
    roll_count: int | None = None


class AbilityDefinition(SheetModel):
    name: str
    description: str = ""


class SkillDefinition(SheetModel):
    ability: Ability
    name: str = ""
    description: str = ""


class MulticlassSpellSlots(SheetModel):
    """Shared slot table and the weights used to reach an effective caster level."""

    description: str = ""
    table: dict[str, list[int]] = Field(default_factory=dict)
    caster_level_multipliers: dict[str, float] = Field(default_factory=dict)
    full_casters: list[str] = Field(default_factory=list)
    half_casters: list[str] = Field(default_factory=list)
    third_casters: list[str] = Field(default_factory=list)
    pact_casters: list[str] = Field(default_factory=list)


class LanguageLists(SheetModel):
    standard: list[str] = Field(default_factory=list)
    exotic: list[str] = Field(default_factory=list)


class RulesConfig(SheetModel):
    """Rules that would otherwise be constants in code."""

    version: str = ""
    formulas: dict[str, str] = Field(default_factory=dict)
    ability_score_methods: dict[str, AbilityScoreMethodConfig] = Field(default_factory=dict)
    abilities: dict[Ability, AbilityDefinition] = Field(default_factory=dict)
    skills: dict[str, SkillDefinition] = Field(default_factory=dict)
    saving_throws: dict[Ability, AbilityDefinition] = Field(default_factory=dict)
    proficiency_bonus_table: dict[str, int] = Field(default_factory=dict)
    multiclass_spell_slots: MulticlassSpellSlots = Field(default_factory=MulticlassSpellSlots)
    hit_dice: dict[str, int] = Field(default_factory=dict)
    conditions: list[str] = Field(default_factory=list)
    damage_types: list[str] = Field(default_factory=list)
    experience_thresholds: dict[str, int] = Field(default_factory=dict)
    languages: LanguageLists = Field(default_factory=LanguageLists)
    ability_score_max: int = Field(default=20, ge=1)
    tables: dict[str, dict[str, float]] = Field(default_factory=dict)

    def lookup_tables(self) -> dict[str, dict[str, float]]:
        """Tables available to ``lookup()`` inside formulas.

        Built-in tables are derived from the typed sections of the rules;
        entries under ``tables`` with the same name take precedence.
        """
        tables: dict[str, dict[str, float]] = {
            "proficiencyBonus": dict(self.proficiency_bonus_table),
            "hitDice": dict(self.hit_dice),
            "casterLevelMultipliers": dict(self.multiclass_spell_slots.caster_level_multipliers),
            "experienceThresholds": dict(self.experience_thresholds),
        }
        tables.update({name: dict(table) for name, table in self.tables.items()})
        return tables


# =============================================================================
# Game Data
# =============================================================================


class GameData(SheetModel):
    """All content tables plus the rules configuration."""

    races: dict[str, RaceData] = Field(default_factory=dict)
    classes: dict[str, ClassData] = Field(default_factory=dict)
    backgrounds: dict[str, BackgroundData] = Field(default_factory=dict)
    feats: dict[str, FeatData] = Field(default_factory=dict)
    spells: dict[str, SpellData] = Field(default_factory=dict)
    items: dict[str, ItemData] = Field(default_factory=dict)
    rules: RulesConfig = Field(default_factory=RulesConfig)
    version: str = ""
    last_updated: str = ""

    def require_race(self, key: str) -> RaceData:
        return _require(self.races, key, "race")

    def require_class(self, key: str) -> ClassData:
        return _require(self.classes, key, "class")

    def require_background(self, key: str) -> BackgroundData:
        return _require(self.backgrounds, key, "background")

    def require_feat(self, key: str) -> FeatData:
        return _require(self.feats, key, "feat")

    def require_item(self, key: str) -> ItemData:
        return _require(self.items, key, "item")

    def require_spell(self, key: str) -> SpellData:
        return _require(self.spells, key, "spell")


def _require(table: dict[str, _T], key: str, entity_type: str) -> _T:
    try:
        return table[key]
    except KeyError:
        raise DataIntegrityError(
            f"Unknown {entity_type} '{key}' referenced by character",
            entity_type=entity_type,
            key=key,
        ) from None


__all__ = [
    "ChoiceData",
    "ProficiencyGrants",
    "SpeedInfo",
    "TraitGrants",
    "TraitData",
    "SubraceOverrides",
    "SubraceData",
    "RaceData",
    "FeatureGrants",
    "FeatureScaling",
    "ClassFeatureData",
    "SlotSpellcasting",
    "PactSpellcasting",
    "SpellcastingDescriptor",
    "SubclassData",
    "SubclassFeatureInfo",
    "ClassData",
    "BackgroundFeature",
    "BackgroundCharacteristics",
    "BackgroundData",
    "FeatPrerequisites",
    "FeatGrants",
    "FeatData",
    "SpellComponents",
    "SpellData",
    "ItemData",
    "AbilityScoreMethodConfig",
    "AbilityDefinition",
    "SkillDefinition",
    "MulticlassSpellSlots",
    "LanguageLists",
    "RulesConfig",
    "GameData",
]
