"""Tests for the substitution engine."""

import asyncio

import httpx
import pytest

from nutrition_engine.adapters.local_catalog import LocalCatalog
from nutrition_engine.domain.errors import NotFoundError, ValidationError
from nutrition_engine.domain.foods import FoodSource, Portion
from nutrition_engine.domain.substitutions import (
    RankingOptions,
    SubstitutionConstraints,
    UserPreferences,
)
from nutrition_engine.domain.units import Unit
from nutrition_engine.services.cache import TtlCache
from nutrition_engine.services.food_resolution import FoodResolutionService
from nutrition_engine.services.macros import MacroEngine
from nutrition_engine.services.ranking import RankingService
from nutrition_engine.services.scoring import calculate_macro_distance
from nutrition_engine.services.substitutions import SubstitutionEngine
from tests.conftest import FakeOpenFoodFactsClient, FakeRankingClient


def _ids(result) -> list[str]:  # type: ignore[no-untyped-def]
    return [candidate.food.id for candidate in result.candidates]


def test_white_rice_suggests_jasmine_rice(
    substitution_engine: SubstitutionEngine,
) -> None:
    result = asyncio.run(
        substitution_engine.find_substitutions(
            "white_rice_cooked", Portion(150, Unit.GRAM)
        )
    )

    assert result.has_viable_substitutions
    assert _ids(result)[0] == "jasmine_rice_cooked"
    jasmine = result.candidates[0]
    assert jasmine.suggested_portion == Portion(151.2, Unit.GRAM)
    assert jasmine.score.macro_distance.overall_score < 2
    assert jasmine.reason.startswith("Very similar macros")
    assert result.original_macros.calories_kcal == pytest.approx(195)


def test_olive_oil_tight_tolerance(substitution_engine: SubstitutionEngine) -> None:
    result = asyncio.run(
        substitution_engine.find_substitutions(
            "olive_oil",
            Portion(15, Unit.GRAM),
            SubstitutionConstraints(macro_tolerance_percent=0.1),
        )
    )

    assert _ids(result) == ["avocado_oil", "canola_oil"]
    assert all(
        candidate.score.macro_distance.overall_score == 0
        for candidate in result.candidates
    )


def test_tolerance_is_respected(substitution_engine: SubstitutionEngine) -> None:
    constraints = SubstitutionConstraints(macro_tolerance_percent=10, max_suggestions=50)

    result = asyncio.run(
        substitution_engine.find_substitutions(
            "beef_lean_cooked", Portion(120, Unit.GRAM), constraints
        )
    )

    assert "bison_ground_cooked" in _ids(result)
    for candidate in result.candidates:
        distance = calculate_macro_distance(result.original_macros, candidate.macros)
        assert distance.overall_score <= 10


def test_allergies_exclude_candidates(substitution_engine: SubstitutionEngine) -> None:
    allergies = ["nuts", "dairy", "eggs"]
    constraints = SubstitutionConstraints(
        preferences=UserPreferences(allergies=allergies)
    )

    result = asyncio.run(
        substitution_engine.find_substitutions(
            "chicken_breast_cooked", Portion(150, Unit.GRAM), constraints
        )
    )

    assert _ids(result) == ["turkey_breast_cooked"]
    for candidate in result.candidates:
        for allergy in allergies:
            assert allergy not in candidate.food.name.lower()


def test_dislikes_and_restrictions_filter(
    substitution_engine: SubstitutionEngine,
) -> None:
    disliked = asyncio.run(
        substitution_engine.find_substitutions(
            "chicken_breast_cooked",
            Portion(150, Unit.GRAM),
            {"preferences": {"dislikes": ["Turkey"]}},
        )
    )
    vegetarian = asyncio.run(
        substitution_engine.find_substitutions(
            "chicken_breast_cooked",
            Portion(150, Unit.GRAM),
            {"preferences": {"dietary_restrictions": ["vegetarian"]}},
        )
    )

    assert "turkey_breast_cooked" not in _ids(disliked)
    assert not vegetarian.has_viable_substitutions


def test_candidates_are_sorted_and_limited(
    substitution_engine: SubstitutionEngine,
) -> None:
    result = asyncio.run(
        substitution_engine.find_substitutions(
            "pasta_cooked",
            Portion(200, Unit.GRAM),
            SubstitutionConstraints(macro_tolerance_percent=40, max_suggestions=3),
        )
    )

    scores = [candidate.score.total_score for candidate in result.candidates]
    assert len(scores) == 3
    assert scores == sorted(scores, reverse=True)
    assert result.metadata.total_candidates_evaluated == len(LocalCatalog()) - 1
    assert result.metadata.processing_time_ms >= 0


def test_unknown_original_raises(substitution_engine: SubstitutionEngine) -> None:
    with pytest.raises(NotFoundError):
        asyncio.run(
            substitution_engine.find_substitutions(
                "unknown_food", Portion(100, Unit.GRAM)
            )
        )


def test_invalid_constraints_raise(substitution_engine: SubstitutionEngine) -> None:
    with pytest.raises(ValidationError):
        asyncio.run(
            substitution_engine.find_substitutions(
                "white_rice_cooked",
                {"quantity": 150, "unit": "g"},
                {"macro_tolerance_percent": -1},
            )
        )
    with pytest.raises(ValidationError):
        asyncio.run(
            substitution_engine.find_substitutions(
                "white_rice_cooked", {"quantity": 150, "unit": "handful"}
            )
        )


def test_min_confidence_drops_low_quality_foods(
    substitution_engine: SubstitutionEngine, food_service: FoodResolutionService
) -> None:
    original = food_service.local_catalog.get("white_rice_cooked")
    food_service.contribute_food("White Rice, homemade", original.macros_per_base)

    default = asyncio.run(
        substitution_engine.find_substitutions(
            "white_rice_cooked", Portion(150, Unit.GRAM)
        )
    )
    relaxed = asyncio.run(
        substitution_engine.find_substitutions(
            "white_rice_cooked",
            Portion(150, Unit.GRAM),
            SubstitutionConstraints(min_confidence=0.5),
        )
    )

    assert all(c.food.source == FoodSource.LOCAL for c in default.candidates)
    assert FoodSource.USER_CONTRIBUTED in {c.food.source for c in relaxed.candidates}


def test_external_search_failure_keeps_local_candidates() -> None:
    food_service = FoodResolutionService(
        local_catalog=LocalCatalog(),
        cache=TtlCache(),
        open_food_facts=FakeOpenFoodFactsClient(error=httpx.ConnectError("down")),
        retry_delay_seconds=0,
    )
    engine = SubstitutionEngine(
        macro_engine=MacroEngine(food_service=food_service), food_service=food_service
    )

    result = asyncio.run(
        engine.find_substitutions("white_rice_cooked", Portion(150, Unit.GRAM))
    )

    assert "jasmine_rice_cooked" in _ids(result)


def test_default_preferences_apply_without_request_preferences(
    macro_engine: MacroEngine, food_service: FoodResolutionService
) -> None:
    engine = SubstitutionEngine(
        macro_engine=macro_engine,
        food_service=food_service,
        default_preferences=UserPreferences(allergies=["turkey"]),
    )

    result = asyncio.run(
        engine.find_substitutions("chicken_breast_cooked", Portion(150, Unit.GRAM))
    )

    assert not result.has_viable_substitutions


def _oil_engine(
    macro_engine: MacroEngine,
    food_service: FoodResolutionService,
    client: FakeRankingClient,
) -> SubstitutionEngine:
    return SubstitutionEngine(
        macro_engine=macro_engine,
        food_service=food_service,
        ranking_service=RankingService(client=client, model="gpt-5.2"),
    )


def test_ranking_boost_reorders_candidates(
    macro_engine: MacroEngine, food_service: FoodResolutionService
) -> None:
    client = FakeRankingClient(
        payload={
            "rankings": [
                {"position": 1, "original_index": 1, "reasoning": "Neutral flavor"},
                {"position": 2, "original_index": 0, "reasoning": "Pricier"},
            ],
            "insights": "Canola is cheaper",
        }
    )
    engine = _oil_engine(macro_engine, food_service, client)

    result = asyncio.run(
        engine.find_substitutions(
            "olive_oil",
            Portion(15, Unit.GRAM),
            SubstitutionConstraints(macro_tolerance_percent=0.1),
            RankingOptions(enable_llm_ranking=True, meal_context="stir fry"),
        )
    )

    assert _ids(result) == ["canola_oil", "avocado_oil"]
    assert "Ranking insight: Neutral flavor" in result.candidates[0].reason
    assert "stir fry" in client.prompts[0]


def test_ranking_failure_is_a_no_op(
    macro_engine: MacroEngine,
    food_service: FoodResolutionService,
    substitution_engine: SubstitutionEngine,
) -> None:
    engine = _oil_engine(
        macro_engine, food_service, FakeRankingClient(error=RuntimeError("timeout"))
    )
    constraints = SubstitutionConstraints(macro_tolerance_percent=0.1)

    ranked = asyncio.run(
        engine.find_substitutions(
            "olive_oil",
            Portion(15, Unit.GRAM),
            constraints,
            RankingOptions(enable_llm_ranking=True),
        )
    )
    plain = asyncio.run(
        substitution_engine.find_substitutions(
            "olive_oil", Portion(15, Unit.GRAM), constraints
        )
    )

    assert _ids(ranked) == _ids(plain)
    assert [c.score.total_score for c in ranked.candidates] == [
        c.score.total_score for c in plain.candidates
    ]


def test_cuisine_list_preferences_raise_preference_score(
    substitution_engine: SubstitutionEngine,
) -> None:
    result = asyncio.run(
        substitution_engine.find_substitutions(
            "olive_oil",
            {"quantity": 15, "unit": "g"},
            {
                "macro_tolerance_percent": 5,
                "max_suggestions": 50,
                "preferences": {"cuisine": ["mediterranean", "asian"]},
            },
        )
    )

    by_id = {candidate.food.id: candidate for candidate in result.candidates}
    assert by_id["coconut_oil"].score.preference_score == 100
    assert by_id["avocado_oil"].score.preference_score == 80


def test_tied_candidates_keep_discovery_order(
    substitution_engine: SubstitutionEngine, food_service: FoodResolutionService
) -> None:
    discovery_order = [
        food.id
        for food in food_service.get_all_foods()
        if food.id in {"avocado_oil", "canola_oil"}
    ]

    result = asyncio.run(
        substitution_engine.find_substitutions(
            "olive_oil",
            Portion(15, Unit.GRAM),
            SubstitutionConstraints(macro_tolerance_percent=0.1),
        )
    )
    truncated = asyncio.run(
        substitution_engine.find_substitutions(
            "olive_oil",
            Portion(15, Unit.GRAM),
            SubstitutionConstraints(macro_tolerance_percent=0.1, max_suggestions=1),
        )
    )

    scores = {candidate.score.total_score for candidate in result.candidates}
    assert len(scores) == 1
    assert _ids(result) == discovery_order
    assert _ids(truncated) == discovery_order[:1]
