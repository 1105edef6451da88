"""Conversion of external catalog payloads into food items."""

import logging
from datetime import UTC, datetime

from nutrition_engine.domain.allergens import classify_allergens, classify_tags
from nutrition_engine.domain.foods import (
    FoodItem,
    FoodMetadata,
    FoodSource,
    MacroProfile,
    Portion,
)
from nutrition_engine.domain.units import Unit

_FDC_NUTRIENT_IDS = {
    "calories": 1008,
    "protein": 1003,
    "fat": 1004,
    "carbs": 1005,
    "fiber": 1079,
    "sugar": 2000,
}
# Older FDC records report total sugars under this id instead.
_FDC_SUGAR_FALLBACK_ID = 1063

# Upper bounds per 100 g; values above these come from malformed upstream data.
MACRO_LIMITS_PER_100G: dict[str, float] = {
    "calories": 900.0,
    "protein": 50.0,
    "carbs": 100.0,
    "fat": 100.0,
    "fiber": 50.0,
    "sugar": 100.0,
}

_KJ_PER_KCAL = 4.184

# Foundation and SR Legacy entries are lab analysed; branded data is label data.
_FDC_CONFIDENCE = {
    "Foundation": 0.95,
    "SR Legacy": 0.95,
    "Survey (FNDDS)": 0.9,
    "Branded": 0.85,
}

_logger = logging.getLogger(__name__)


def clamp_macro(value: object, macro: str) -> float:
    """Coerce a raw nutrient value into [0, limit] for its macro."""
    if value is None or isinstance(value, bool):
        return 0.0
    if isinstance(value, str):
        try:
            value = float(value)
        except ValueError:
            return 0.0
    if not isinstance(value, int | float) or value != value or value < 0:
        return 0.0
    return min(float(value), MACRO_LIMITS_PER_100G.get(macro, 100.0))


def is_valid_product(product: dict[str, object]) -> bool:
    """Return True when an Open Food Facts product has usable nutrition data."""
    if not product.get("product_name") or not product.get("code"):
        return False
    nutriments = product.get("nutriments")
    if not isinstance(nutriments, dict):
        return False
    if _off_calories(nutriments) <= 0:
        return False
    return any(
        _is_number(nutriments.get(field)) and float(nutriments[field]) >= 0
        for field in ("proteins_100g", "carbohydrates_100g", "fat_100g")
    )


def food_from_open_food_facts(
    product: dict[str, object], source: FoodSource = FoodSource.EXTERNAL_CATALOG
) -> FoodItem:
    """Convert an Open Food Facts product into a FoodItem."""
    nutriments = product.get("nutriments") or {}
    code = str(product.get("code"))
    name = str(product.get("product_name") or product.get("generic_name") or code)
    categories = tuple(
        str(tag).split(":", 1)[-1]
        for tag in product.get("categories_tags") or []
        if isinstance(tag, str)
    )
    macros = MacroProfile(
        calories_kcal=clamp_macro(_off_calories(nutriments), "calories"),
        protein_g=clamp_macro(nutriments.get("proteins_100g"), "protein"),
        carbs_g=clamp_macro(nutriments.get("carbohydrates_100g"), "carbs"),
        fat_g=clamp_macro(nutriments.get("fat_100g"), "fat"),
        fiber_g=_optional_macro(nutriments.get("fiber_100g"), "fiber"),
        sugar_g=_optional_macro(nutriments.get("sugars_100g"), "sugar"),
    )
    last_updated = product.get("last_updated_t")
    return FoodItem(
        id=f"off_{code}",
        name=name,
        base_portion=Portion(100.0, Unit.GRAM),
        macros_per_base=macros,
        metadata=FoodMetadata(
            source=source,
            confidence=_off_confidence(nutriments, macros),
            barcode=code,
            brand=str(product["brands"]) if product.get("brands") else None,
            last_updated=(
                datetime.fromtimestamp(last_updated, tz=UTC)
                if isinstance(last_updated, int | float)
                else None
            ),
            categories=categories,
            image_url=str(product["image_url"]) if product.get("image_url") else None,
        ),
        allergens=classify_allergens(name, categories),
        tags=classify_tags(name, categories),
    )


def food_from_fdc(payload: dict[str, object]) -> FoodItem:
    """Convert an FDC food detail payload into a FoodItem."""
    fdc_id = payload["fdcId"]
    name = str(payload.get("description") or f"FDC {fdc_id}")
    nutrients = _fdc_nutrient_map(payload.get("foodNutrients") or [])
    sugar = nutrients.get(_FDC_NUTRIENT_IDS["sugar"])
    if sugar is None:
        sugar = nutrients.get(_FDC_SUGAR_FALLBACK_ID)
    fiber = nutrients.get(_FDC_NUTRIENT_IDS["fiber"])
    category = payload.get("foodCategory")
    if isinstance(category, dict):
        category = category.get("description")
    categories = (str(category),) if category else ()
    data_type = str(payload.get("dataType") or "")
    return FoodItem(
        id=f"usda_{fdc_id}",
        name=name,
        base_portion=Portion(100.0, Unit.GRAM),
        macros_per_base=MacroProfile(
            calories_kcal=clamp_macro(
                nutrients.get(_FDC_NUTRIENT_IDS["calories"]), "calories"
            ),
            protein_g=clamp_macro(
                nutrients.get(_FDC_NUTRIENT_IDS["protein"]), "protein"
            ),
            carbs_g=clamp_macro(nutrients.get(_FDC_NUTRIENT_IDS["carbs"]), "carbs"),
            fat_g=clamp_macro(nutrients.get(_FDC_NUTRIENT_IDS["fat"]), "fat"),
            fiber_g=_optional_macro(fiber, "fiber"),
            sugar_g=_optional_macro(sugar, "sugar"),
        ),
        metadata=FoodMetadata(
            source=FoodSource.EXTERNAL_CATALOG,
            confidence=_FDC_CONFIDENCE.get(data_type, 0.8),
            brand=str(payload["brandOwner"]) if payload.get("brandOwner") else None,
            last_updated=datetime.now(tz=UTC),
            categories=categories,
        ),
        allergens=classify_allergens(name, categories),
        tags=classify_tags(name, categories),
    )


def _fdc_nutrient_map(food_nutrients: list[dict[str, object]]) -> dict[int, float]:
    """Map FDC nutrient ids to amounts, accepting both detail and search shapes."""
    values: dict[int, float] = {}
    for nutrient in food_nutrients:
        nutrient_info = nutrient.get("nutrient") or {}
        nutrient_id = nutrient_info.get("id") or nutrient.get("nutrientId")
        amount = nutrient.get("amount")
        if amount is None:
            amount = nutrient.get("value")
        if isinstance(nutrient_id, int) and _is_number(amount):
            values[nutrient_id] = float(amount)
    return values


def _off_calories(nutriments: dict[str, object]) -> float:
    kcal = nutriments.get("energy-kcal_100g")
    if _is_number(kcal) and float(kcal) > 0:
        return float(kcal)
    # Open Food Facts reports the generic energy field in kJ.
    kj = nutriments.get("energy_100g")
    if _is_number(kj) and float(kj) > 0:
        return float(kj) / _KJ_PER_KCAL
    return 0.0


def _off_confidence(nutriments: dict[str, object], macros: MacroProfile) -> float:
    present = sum(
        1
        for field in ("proteins_100g", "carbohydrates_100g", "fat_100g")
        if _is_number(nutriments.get(field))
    )
    confidence = 0.5 + 0.08 * present
    if macros.fiber_g is not None and macros.sugar_g is not None:
        confidence += 0.06
    if not macros.is_energy_plausible():
        _logger.warning(
            "Open Food Facts energy mismatch: kcal=%s deviation=%.2f",
            macros.calories_kcal,
            macros.energy_deviation(),
        )
        confidence -= 0.2
    return round(max(0.0, min(confidence, 0.8)), 2)


def _optional_macro(value: object, macro: str) -> float | None:
    if value is None:
        return None
    return clamp_macro(value, macro)


def _is_number(value: object) -> bool:
    if isinstance(value, bool):
        return False
    if isinstance(value, int | float):
        return True
    if isinstance(value, str):
        try:
            float(value)
        except ValueError:
            return False
        return True
    return False
