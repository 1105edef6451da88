"""Substitution search over the known food set."""

import asyncio
import logging
import time
from collections.abc import Mapping
from dataclasses import dataclass, replace

from pydantic import ValidationError as PydanticValidationError

from nutrition_engine.domain.allergens import matches_allergy, violates_restriction
from nutrition_engine.domain.errors import (
    NotFoundError,
    NutritionEngineError,
    ValidationError,
)
from nutrition_engine.domain.foods import FoodItem, MacroProfile, Portion
from nutrition_engine.domain.substitutions import (
    RankingOptions,
    SubstitutionCandidate,
    SubstitutionConstraints,
    SubstitutionMetadata,
    SubstitutionResult,
    UserPreferences,
)
from nutrition_engine.domain.units import Unit
from nutrition_engine.services.food_resolution import (
    FoodResolutionService,
    dedupe_by_id,
)
from nutrition_engine.services.macros import MacroEngine
from nutrition_engine.services.ranking import RankingService
from nutrition_engine.services.scoring import (
    build_reason,
    calculate_macro_distance,
    score_candidate,
)

REFERENCE_QUANTITY = 100.0
MIN_SUGGESTED_QUANTITY = 1.0
RANK_BOOST_STEP = 5.0
RANK_BOOST_CAP = 25.0

_logger = logging.getLogger(__name__)


@dataclass
class SubstitutionEngine:
    """Finds foods that can replace a portion within a macro tolerance.

    Candidates pass through filtering, portion optimisation, a tolerance gate
    and weighted scoring. The optional ranking service can only reorder the
    survivors; when it is missing or fails the result is the plain scored
    order.
    """

    macro_engine: MacroEngine
    food_service: FoodResolutionService
    ranking_service: RankingService | None = None
    default_preferences: UserPreferences | None = None
    search_timeout_seconds: float = 5.0

    async def find_substitutions(
        self,
        food_id: str,
        portion: Portion | Mapping[str, object],
        constraints: SubstitutionConstraints | Mapping[str, object] | None = None,
        ranking: RankingOptions | None = None,
    ) -> SubstitutionResult:
        started = time.perf_counter()
        resolved_constraints = _validate_constraints(constraints)
        default_preferences = self.default_preferences
        if resolved_constraints.preferences is None and default_preferences is not None:
            resolved_constraints = resolved_constraints.model_copy(
                update={"preferences": default_preferences}
            )
        resolved_portion = _normalize_portion(portion)

        original = await self.macro_engine.get_food(food_id)
        if original is None:
            raise NotFoundError(food_id)
        original_macros = self.macro_engine.macros_for(original, resolved_portion)

        discovered = await self._discover(original, resolved_constraints)
        preferences = resolved_constraints.preferences
        candidates: list[SubstitutionCandidate] = []
        for food in discovered:
            if not _passes_filters(food, resolved_constraints):
                continue
            try:
                candidate = self._evaluate(
                    food,
                    original_macros,
                    resolved_constraints.macro_tolerance_percent,
                    preferences,
                )
            except NutritionEngineError as exc:
                _logger.warning("Skipping substitution candidate %s: %s", food.id, exc)
                continue
            if candidate is not None:
                candidates.append(candidate)

        # sorted() is stable, so ties keep discovery order.
        candidates = sorted(
            candidates, key=lambda candidate: candidate.score.total_score, reverse=True
        )[: resolved_constraints.max_suggestions]

        if ranking is not None and ranking.enable_llm_ranking and candidates:
            candidates = await self._rerank(
                original,
                resolved_portion,
                original_macros,
                candidates,
                ranking,
                preferences,
            )

        return SubstitutionResult(
            original_food=original,
            original_portion=resolved_portion,
            original_macros=original_macros,
            candidates=candidates,
            has_viable_substitutions=bool(candidates),
            metadata=SubstitutionMetadata(
                total_candidates_evaluated=len(discovered),
                processing_time_ms=(time.perf_counter() - started) * 1000,
                constraints_applied=resolved_constraints,
            ),
        )

    async def _discover(
        self, original: FoodItem, constraints: SubstitutionConstraints
    ) -> list[FoodItem]:
        include_external = constraints.include_external_sources
        foods = self.food_service.get_all_foods(include_external=include_external)
        if include_external and self.food_service.has_external_sources:
            try:
                result = await asyncio.wait_for(
                    self.food_service.search_foods(original.name),
                    timeout=self.search_timeout_seconds,
                )
            except Exception as exc:
                _logger.warning(
                    "External candidate search failed for %s: %s", original.name, exc
                )
            else:
                foods.extend(result.foods)
        return [food for food in dedupe_by_id(foods) if food.id != original.id]

    def _evaluate(
        self,
        food: FoodItem,
        original_macros: MacroProfile,
        tolerance_percent: float,
        preferences: UserPreferences | None,
    ) -> SubstitutionCandidate | None:
        portion = self.optimize_portion(food, original_macros.calories_kcal)
        macros = self.macro_engine.macros_for(food, portion)
        distance = calculate_macro_distance(original_macros, macros)
        if distance.overall_score > tolerance_percent:
            return None
        return SubstitutionCandidate(
            food=food,
            suggested_portion=portion,
            macros=macros,
            score=score_candidate(food, distance, preferences),
            reason=build_reason(food, distance),
        )

    def optimize_portion(self, food: FoodItem, target_calories: float) -> Portion:
        """Scale a reference portion so its calories match the target."""
        unit = food.base_portion.unit
        if unit == Unit.PIECE:
            unit = Unit.GRAM
        reference = Portion(REFERENCE_QUANTITY, unit)
        reference_calories = self.macro_engine.macros_for(food, reference).calories_kcal
        if reference_calories <= 0:
            return reference
        quantity = round(REFERENCE_QUANTITY * target_calories / reference_calories, 1)
        return Portion(max(MIN_SUGGESTED_QUANTITY, quantity), unit)

    async def _rerank(  # noqa: PLR0913
        self,
        original: FoodItem,
        portion: Portion,
        original_macros: MacroProfile,
        candidates: list[SubstitutionCandidate],
        options: RankingOptions,
        preferences: UserPreferences | None,
    ) -> list[SubstitutionCandidate]:
        if self.ranking_service is None:
            return candidates
        response = await self.ranking_service.rerank(
            original_food=original,
            original_portion=portion,
            original_macros=original_macros,
            candidates=candidates,
            options=options,
            preferences=preferences,
        )
        if response is None:
            return candidates

        reranked = list(candidates)
        entries = sorted(response.rankings, key=lambda entry: entry.position)
        boosted: set[int] = set()
        for order, entry in enumerate(entries):
            index = entry.original_index
            if index in boosted or index >= len(reranked):
                continue
            boosted.add(index)
            boost = min(RANK_BOOST_CAP, (len(entries) - order) * RANK_BOOST_STEP)
            candidate = reranked[index]
            reranked[index] = replace(
                candidate,
                score=replace(
                    candidate.score,
                    total_score=round(candidate.score.total_score + boost, 2),
                ),
                reason=f"{candidate.reason}. Ranking insight: {entry.reasoning}",
            )
        return sorted(
            reranked, key=lambda candidate: candidate.score.total_score, reverse=True
        )


def _passes_filters(food: FoodItem, constraints: SubstitutionConstraints) -> bool:
    if food.confidence < constraints.min_confidence:
        return False
    preferences = constraints.preferences
    if preferences is None:
        return True
    if any(matches_allergy(food, allergy) for allergy in preferences.allergies):
        return False
    name = food.name.lower()
    if any(
        dislike.strip() and dislike.strip().lower() in name
        for dislike in preferences.dislikes
    ):
        return False
    return not any(
        violates_restriction(food, restriction)
        for restriction in preferences.dietary_restrictions
    )


def _validate_constraints(
    constraints: SubstitutionConstraints | Mapping[str, object] | None,
) -> SubstitutionConstraints:
    if constraints is None:
        return SubstitutionConstraints()
    if isinstance(constraints, SubstitutionConstraints):
        return constraints
    try:
        return SubstitutionConstraints.model_validate(dict(constraints))
    except PydanticValidationError as exc:
        raise ValidationError(f"Invalid substitution constraints: {exc}") from exc


def _normalize_portion(portion: Portion | Mapping[str, object]) -> Portion:
    if isinstance(portion, Portion):
        return portion
    return Portion.of(portion.get("quantity"), portion.get("unit"))
