"""Macro distance, candidate scoring and reason text for substitutions."""

import re

from nutrition_engine.domain.foods import FoodItem, FoodSource, MacroProfile
from nutrition_engine.domain.substitutions import (
    MacroDistance,
    SubstitutionScore,
    UserPreferences,
)

MACRO_WEIGHT = 0.5
PREFERENCE_WEIGHT = 0.2
AVAILABILITY_WEIGHT = 0.2
COST_WEIGHT = 0.1

BASE_PREFERENCE_SCORE = 80.0
CUISINE_BONUS = 20.0

SOURCE_QUALITY: dict[FoodSource, float] = {
    FoodSource.LOCAL: 95.0,
    FoodSource.EXTERNAL_BARCODE: 80.0,
    FoodSource.USER_CONTRIBUTED: 70.0,
    FoodSource.EXTERNAL_CATALOG: 65.0,
}

STAPLE_KEYWORDS = ("rice", "beans", "pasta", "bread", "oats", "potato", "lentil")
STAPLE_COST_SCORE = 85.0
DEFAULT_COST_SCORE = 70.0

VERY_SIMILAR_THRESHOLD = 2.0
SIMILAR_THRESHOLD = 5.0

_SOURCE_LABELS = {
    FoodSource.LOCAL: "curated database",
    FoodSource.EXTERNAL_CATALOG: "external food database",
    FoodSource.EXTERNAL_BARCODE: "barcode lookup",
    FoodSource.USER_CONTRIBUTED: "user contribution",
}


def percent_difference(original: float, candidate: float) -> float:
    """Absolute difference relative to the original, in percent."""
    if original == 0:
        return 0.0 if candidate == 0 else 100.0
    return abs(candidate - original) / original * 100.0


def calculate_macro_distance(
    original: MacroProfile, candidate: MacroProfile
) -> MacroDistance:
    """Mean percent difference over calories, protein, carbs and fat."""
    calories = percent_difference(original.calories_kcal, candidate.calories_kcal)
    protein = percent_difference(original.protein_g, candidate.protein_g)
    carbs = percent_difference(original.carbs_g, candidate.carbs_g)
    fat = percent_difference(original.fat_g, candidate.fat_g)
    return MacroDistance(
        calories=calories,
        protein=protein,
        carbs=carbs,
        fat=fat,
        overall_score=(calories + protein + carbs + fat) / 4,
        fiber=_optional_difference(original.fiber_g, candidate.fiber_g),
        sugar=_optional_difference(original.sugar_g, candidate.sugar_g),
    )


def macro_score(distance: MacroDistance) -> float:
    return max(0.0, 100.0 - distance.overall_score * 2)


def preference_score(food: FoodItem, preferences: UserPreferences | None) -> float:
    score = BASE_PREFERENCE_SCORE
    cuisines = [
        cuisine.strip().lower()
        for cuisine in (preferences.cuisine if preferences else [])
        if cuisine.strip()
    ]
    if cuisines:
        labels = {label.lower() for label in food.metadata.categories} | food.tags
        if any(cuisine in label for cuisine in cuisines for label in labels):
            score += CUISINE_BONUS
    return min(score, 100.0)


def availability_score(food: FoodItem) -> float:
    """Blend of record confidence and how dependable its source is."""
    return (food.confidence * 100.0 + SOURCE_QUALITY[food.source]) / 2


def is_staple(food: FoodItem) -> bool:
    name = food.name.lower()
    return any(
        re.search(rf"\b{re.escape(keyword)}", name) for keyword in STAPLE_KEYWORDS
    )


def cost_score(food: FoodItem, preferences: UserPreferences | None) -> float:
    if not is_staple(food):
        return DEFAULT_COST_SCORE
    if preferences is not None and preferences.budget == "low":
        staple_advantage = STAPLE_COST_SCORE - DEFAULT_COST_SCORE
        return min(100.0, DEFAULT_COST_SCORE + 2 * staple_advantage)
    return STAPLE_COST_SCORE


def score_candidate(
    food: FoodItem, distance: MacroDistance, preferences: UserPreferences | None
) -> SubstitutionScore:
    """Weighted score on a 0 to 100 scale."""
    macro = macro_score(distance)
    preference = preference_score(food, preferences)
    availability = availability_score(food)
    cost = cost_score(food, preferences)
    total = (
        MACRO_WEIGHT * macro
        + PREFERENCE_WEIGHT * preference
        + AVAILABILITY_WEIGHT * availability
        + COST_WEIGHT * cost
    )
    return SubstitutionScore(
        total_score=round(total, 2),
        macro_distance=distance,
        macro_score=macro,
        preference_score=preference,
        availability_score=availability,
        cost_score=cost,
    )


def build_reason(food: FoodItem, distance: MacroDistance) -> str:
    if distance.overall_score < VERY_SIMILAR_THRESHOLD:
        similarity = "Very similar macros"
    elif distance.overall_score < SIMILAR_THRESHOLD:
        similarity = "Similar macros"
    else:
        similarity = "Acceptable macro profile"
    return (
        f"{similarity} ({distance.overall_score:.1f}% average difference), "
        f"from {_SOURCE_LABELS[food.source]}"
    )


def _optional_difference(
    original: float | None, candidate: float | None
) -> float | None:
    if original is None or candidate is None:
        return None
    return percent_difference(original, candidate)
