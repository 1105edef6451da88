"""Tests for external payload mapping."""

import pytest

from nutrition_engine.domain.foods import FoodSource
from nutrition_engine.services.food_mapping import (
    clamp_macro,
    food_from_fdc,
    food_from_open_food_facts,
    is_valid_product,
)


def _product(**nutriments: object) -> dict[str, object]:
    return {
        "code": "5000112548167",
        "product_name": "Greek Style Yogurt",
        "brands": "Acme",
        "categories_tags": ["en:dairies", "en:yogurts"],
        "last_updated_t": 1700000000,
        "nutriments": nutriments,
    }


def test_clamp_macro_bounds_values() -> None:
    assert clamp_macro(120, "protein") == 50
    assert clamp_macro(-3, "fat") == 0
    assert clamp_macro("12.5", "carbs") == 12.5
    assert clamp_macro("n/a", "carbs") == 0
    assert clamp_macro(None, "fiber") == 0
    assert clamp_macro(True, "sugar") == 0


def test_is_valid_product_requires_name_calories_and_a_macro() -> None:
    assert is_valid_product(_product(**{"energy-kcal_100g": 97, "proteins_100g": 9}))
    assert not is_valid_product(_product(proteins_100g=9))
    assert not is_valid_product({"code": "1", "nutriments": {"energy-kcal_100g": 1}})
    assert not is_valid_product(_product(**{"energy-kcal_100g": 97}))


def test_open_food_facts_mapping() -> None:
    food = food_from_open_food_facts(
        _product(
            **{
                "energy-kcal_100g": 97,
                "proteins_100g": 9,
                "carbohydrates_100g": 3.9,
                "fat_100g": 5,
                "fiber_100g": 0,
                "sugars_100g": 3.9,
            }
        )
    )

    assert food.id == "off_5000112548167"
    assert food.source == FoodSource.EXTERNAL_CATALOG
    assert food.macros_per_base.protein_g == 9
    assert food.metadata.brand == "Acme"
    assert food.metadata.categories == ("dairies", "yogurts")
    assert food.metadata.last_updated is not None
    assert "dairy" in food.allergens
    assert food.confidence == pytest.approx(0.8)


def test_open_food_facts_energy_fallback_is_kilojoules() -> None:
    food = food_from_open_food_facts(
        _product(energy_100g=418.4, proteins_100g=1),
        source=FoodSource.EXTERNAL_BARCODE,
    )

    assert food.macros_per_base.calories_kcal == pytest.approx(100)
    assert food.source == FoodSource.EXTERNAL_BARCODE


def test_implausible_energy_lowers_confidence() -> None:
    food = food_from_open_food_facts(
        _product(
            **{
                "energy-kcal_100g": 500,
                "proteins_100g": 1,
                "carbohydrates_100g": 1,
                "fat_100g": 1,
            }
        )
    )

    assert food.confidence == pytest.approx(0.54)


def test_fdc_mapping_accepts_detail_and_search_shapes() -> None:
    food = food_from_fdc(
        {
            "fdcId": 171077,
            "description": "Chicken, broilers or fryers, breast, cooked",
            "dataType": "SR Legacy",
            "foodCategory": {"description": "Poultry Products"},
            "foodNutrients": [
                {"nutrient": {"id": 1008}, "amount": 165},
                {"nutrient": {"id": 1003}, "amount": 31.0},
                {"nutrientId": 1004, "value": 3.57},
                {"nutrientId": 1005, "value": 0},
                {"nutrientId": 1063, "value": 0},
            ],
        }
    )

    assert food.id == "usda_171077"
    assert food.confidence == 0.95
    assert food.macros_per_base.calories_kcal == 165
    assert food.macros_per_base.fat_g == 3.57
    assert food.macros_per_base.sugar_g == 0
    assert food.macros_per_base.fiber_g is None
    assert food.metadata.categories == ("Poultry Products",)
    assert "meat" in food.tags
