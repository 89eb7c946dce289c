"""Flattened feature list with stable identifiers.

Ids never depend on list position, so a recorded FeatureChoice can be
matched to its feature again after content or level changes.
"""

from __future__ import annotations

import re

from dnd_sheet.models.computed import Feature
from dnd_sheet.models.enums import FeatureSource
from dnd_sheet.models.game_data import ClassFeatureData, GameData, TraitData
from dnd_sheet.models.state import CharacterState


_WHITESPACE_RE = re.compile(r"\s+")


def slugify(name: str) -> str:
    """Lower-case a name and replace whitespace runs with ``-``."""
    return _WHITESPACE_RE.sub("-", name.lower())


def _choices_made(state: CharacterState, *feature_ids: str) -> list[str]:
    made: list[str] = []
    for choice in state.choices:
        if choice.feature_id not in feature_ids:
            continue
        for value in choice.chosen_values:
            if value not in made:
                made.append(value)
    return made


def _trait_features(
    state: CharacterState,
    traits: list[TraitData],
    prefix: str,
    source_key: str,
) -> list[Feature]:
    features = []
    for trait in traits:
        feature_id = f"{prefix}-{source_key}-{slugify(trait.name)}"
        features.append(
            Feature(
                id=feature_id,
                name=trait.name,
                source=FeatureSource.RACE,
                source_key=source_key,
                description=trait.description,
                has_choices=trait.choices is not None,
                choices_made=_choices_made(state, feature_id),
            )
        )
    return features


def _leveled_features(
    state: CharacterState,
    entries: list[ClassFeatureData],
    prefix: str,
    source_key: str,
    class_key: str,
    class_level: int,
) -> list[Feature]:
    available = sorted(
        (entry for entry in entries if entry.level <= class_level),
        key=lambda entry: entry.level,
    )
    features = []
    for entry in available:
        feature_id = f"{prefix}-{source_key}-{entry.level}-{slugify(entry.name)}"
        choice_id = f"{class_key}-{entry.level}-{entry.name}"
        features.append(
            Feature(
                id=feature_id,
                name=entry.name,
                source=FeatureSource.CLASS,
                source_key=source_key,
                level=entry.level,
                description=entry.description,
                has_choices=entry.choices is not None,
                choices_made=_choices_made(state, feature_id, choice_id),
            )
        )
    return features


def compute_features(state: CharacterState, data: GameData) -> list[Feature]:
    """Every feature the character has, in presentation order.

    Order: race traits, subrace traits, then per class its features and its
    active subclass features (each sorted by level), the background
    feature, and one entry per feat.

    Raises:
        DataIntegrityError: If the race, background, a class or a feat is
            not in the game data.
    """
    features: list[Feature] = []

    race = data.require_race(state.race_key)
    features.extend(_trait_features(state, race.traits, "race", race.key))
    subrace = race.find_subrace(state.subrace_key)
    if subrace is not None:
        features.extend(_trait_features(state, subrace.traits, "subrace", subrace.key))

    for class_level in state.classes:
        class_data = data.require_class(class_level.class_key)
        features.extend(
            _leveled_features(
                state,
                class_data.features,
                "class",
                class_data.key,
                class_data.key,
                class_level.level,
            )
        )
        subclass = class_data.find_subclass(class_level.subclass_key)
        if subclass is not None:
            features.extend(
                _leveled_features(
                    state,
                    subclass.features,
                    "subclass",
                    subclass.key,
                    class_data.key,
                    class_level.level,
                )
            )

    background = data.require_background(state.background_key)
    if background.feature is not None:
        features.append(
            Feature(
                id=f"background-{background.key}-feature",
                name=background.feature.name,
                source=FeatureSource.BACKGROUND,
                source_key=background.key,
                description=background.feature.description,
            )
        )

    for feat_key in state.feats:
        feat = data.require_feat(feat_key)
        has_increase = feat.grants is not None and feat.grants.ability_increase is not None
        features.append(
            Feature(
                id=f"feat-{feat.key}",
                name=feat.name,
                source=FeatureSource.FEAT,
                source_key=feat.key,
                description=feat.description,
                has_choices=has_increase,
                choices_made=_choices_made(state, f"feat-{feat.key}", f"feat-{feat.key}-ability"),
            )
        )

    return features


__all__ = [
    "compute_features",
    "slugify",
]
