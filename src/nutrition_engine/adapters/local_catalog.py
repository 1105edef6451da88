"""Curated local food catalog.

Values are per 100 g (or 100 ml for liquids) unless a food is defined per
piece, and follow USDA SR Legacy / Foundation figures rounded to one decimal.
"""

from collections.abc import Iterable, Iterator
from dataclasses import dataclass

from nutrition_engine.domain.allergens import classify_allergens, classify_tags
from nutrition_engine.domain.foods import (
    FoodItem,
    FoodMetadata,
    FoodSource,
    MacroProfile,
    Portion,
)
from nutrition_engine.domain.units import Unit

# Grams per piece for foods commonly counted rather than weighed.
PIECE_WEIGHTS: dict[str, float] = {
    "egg_whole": 50.0,
    "egg_white": 33.0,
    "egg_yolk": 17.0,
    "banana_raw": 118.0,
    "apple_raw": 182.0,
    "bread_whole_wheat": 32.0,
    "bread_white": 25.0,
    "tortilla_flour": 45.0,
    "bagel_plain": 105.0,
    "potato_baked": 173.0,
}


def _food(  # noqa: PLR0913
    food_id: str,
    name: str,
    calories: float,
    protein: float,
    carbs: float,
    fat: float,
    fiber: float | None = None,
    sugar: float | None = None,
    *,
    categories: tuple[str, ...] = (),
    unit: Unit = Unit.GRAM,
    base_quantity: float = 100.0,
    density: float | None = None,
) -> FoodItem:
    return FoodItem(
        id=food_id,
        name=name,
        base_portion=Portion(base_quantity, unit),
        macros_per_base=MacroProfile(
            calories_kcal=calories,
            protein_g=protein,
            carbs_g=carbs,
            fat_g=fat,
            fiber_g=fiber,
            sugar_g=sugar,
        ),
        density_g_per_ml=density,
        grams_per_piece=PIECE_WEIGHTS.get(food_id),
        metadata=FoodMetadata(
            source=FoodSource.LOCAL,
            confidence=1.0,
            categories=categories,
        ),
        allergens=classify_allergens(name, categories),
        tags=classify_tags(name, categories),
    )


FOOD_DATABASE: tuple[FoodItem, ...] = (
    # Poultry and meat
    _food("chicken_breast_cooked", "Chicken Breast, cooked", 165, 31.0, 0.0, 3.6,
          0.0, 0.0, categories=("poultry", "american")),
    _food("turkey_breast_cooked", "Turkey Breast, roasted", 161, 30.2, 0.0, 3.5,
          0.0, 0.0, categories=("poultry", "american")),
    _food("chicken_thigh_cooked", "Chicken Thigh, cooked", 209, 26.0, 0.0, 10.9,
          0.0, 0.0, categories=("poultry",)),
    _food("beef_lean_cooked", "Beef, lean ground 90%, cooked", 217, 26.1, 0.0, 11.8,
          0.0, 0.0, categories=("meat", "american")),
    _food("bison_ground_cooked", "Bison, ground, cooked", 214, 25.4, 0.0, 11.7,
          0.0, 0.0, categories=("meat", "american")),
    _food("pork_loin_cooked", "Pork Loin, roasted", 242, 27.3, 0.0, 13.9,
          0.0, 0.0, categories=("meat",)),
    _food("bacon_cooked", "Bacon, pan-fried", 541, 37.0, 1.4, 41.8,
          0.0, 0.0, categories=("meat",)),
    # Fish and shellfish
    _food("salmon_cooked", "Salmon, Atlantic, cooked", 206, 22.1, 0.0, 12.4,
          0.0, 0.0, categories=("fish",)),
    _food("trout_cooked", "Rainbow Trout, cooked", 190, 26.6, 0.0, 8.5,
          0.0, 0.0, categories=("fish",)),
    _food("tuna_canned_water", "Tuna, canned in water", 116, 25.5, 0.0, 0.8,
          0.0, 0.0, categories=("fish",)),
    _food("cod_cooked", "Cod, Atlantic, cooked", 105, 22.8, 0.0, 0.9,
          0.0, 0.0, categories=("fish", "mediterranean")),
    _food("shrimp_cooked", "Shrimp, cooked", 99, 24.0, 0.2, 0.3,
          0.0, 0.0, categories=("shellfish", "asian")),
    # Eggs and dairy
    _food("egg_whole", "Egg, whole, raw", 143, 12.6, 0.7, 9.5,
          0.0, 0.4, categories=("eggs",)),
    _food("egg_white", "Egg White, raw", 52, 10.9, 0.7, 0.2,
          0.0, 0.7, categories=("eggs",)),
    _food("egg_yolk", "Egg Yolk, raw", 322, 15.9, 3.6, 26.5,
          0.0, 0.6, categories=("eggs",)),
    _food("greek_yogurt_plain", "Greek Yogurt, plain, nonfat", 59, 10.2, 3.6, 0.4,
          0.0, 3.2, categories=("dairy", "mediterranean")),
    _food("skyr_plain", "Skyr, plain, nonfat", 60, 10.5, 3.7, 0.4,
          0.0, 3.3, categories=("dairy", "nordic")),
    _food("cottage_cheese_lowfat", "Cottage Cheese, 2% milkfat", 81, 10.5, 4.8, 2.3,
          0.0, 4.0, categories=("dairy",)),
    _food("cheddar_cheese", "Cheddar Cheese", 403, 22.9, 3.1, 33.3,
          0.0, 0.5, categories=("dairy",)),
    _food("milk_whole", "Milk, whole", 61, 3.2, 4.8, 3.3, 0.0, 5.1,
          categories=("dairy",), unit=Unit.MILLILITER, density=1.03),
    _food("milk_skim", "Milk, skim", 34, 3.4, 5.0, 0.1, 0.0, 5.1,
          categories=("dairy",), unit=Unit.MILLILITER, density=1.035),
    _food("butter_salted", "Butter, salted", 717, 0.9, 0.1, 81.1,
          0.0, 0.1, categories=("dairy", "fats")),
    # Plant proteins and legumes
    _food("tofu_firm", "Tofu, firm", 144, 17.3, 2.8, 8.7,
          2.3, 0.6, categories=("legumes", "asian")),
    _food("tempeh", "Tempeh", 192, 20.3, 7.6, 10.8,
          0.0, 0.0, categories=("legumes", "asian")),
    _food("black_beans_cooked", "Black Beans, cooked", 132, 8.9, 23.7, 0.5,
          8.7, 0.3, categories=("legumes", "latin-american")),
    _food("kidney_beans_cooked", "Kidney Beans, cooked", 127, 8.7, 22.8, 0.5,
          6.4, 0.3, categories=("legumes", "latin-american")),
    _food("lentils_cooked", "Lentils, cooked", 116, 9.0, 20.1, 0.4,
          7.9, 1.8, categories=("legumes", "indian")),
    _food("chickpeas_cooked", "Chickpeas, cooked", 164, 8.9, 27.4, 2.6,
          7.6, 4.8, categories=("legumes", "mediterranean")),
    # Grains and starches
    _food("white_rice_cooked", "White Rice, cooked", 130, 2.7, 28.2, 0.3,
          0.4, 0.1, categories=("grains",)),
    _food("jasmine_rice_cooked", "Jasmine Rice, cooked", 129, 2.7, 28.0, 0.3,
          0.4, 0.1, categories=("grains", "asian")),
    _food("brown_rice_cooked", "Brown Rice, cooked", 123, 2.7, 25.6, 1.0,
          1.6, 0.2, categories=("grains",)),
    _food("wild_rice_cooked", "Wild Rice, cooked", 101, 4.0, 21.3, 0.3,
          1.8, 0.7, categories=("grains", "american")),
    _food("quinoa_cooked", "Quinoa, cooked", 120, 4.4, 21.3, 1.9,
          2.8, 0.9, categories=("grains", "latin-american")),
    _food("pasta_cooked", "Pasta, enriched, cooked", 158, 5.8, 30.9, 0.9,
          1.8, 0.6, categories=("grains", "italian")),
    _food("penne_cooked", "Penne, enriched, cooked", 157, 5.8, 30.6, 0.9,
          1.8, 0.6, categories=("grains", "italian")),
    _food("couscous_cooked", "Couscous, cooked", 112, 3.8, 23.2, 0.2,
          1.4, 0.1, categories=("grains", "mediterranean")),
    _food("oats_rolled", "Oats, rolled, dry", 379, 13.2, 67.7, 6.5,
          10.1, 1.0, categories=("grains", "breakfast")),
    _food("oats_quick", "Oats, quick, dry", 376, 13.0, 67.5, 6.4,
          10.0, 1.0, categories=("grains", "breakfast")),
    _food("bread_whole_wheat", "Whole Wheat Bread", 252, 12.4, 42.7, 3.5,
          6.0, 4.4, categories=("grains", "bakery")),
    _food("bread_white", "White Bread", 266, 7.6, 50.6, 3.3,
          2.4, 5.7, categories=("grains", "bakery")),
    _food("bagel_plain", "Bagel, plain", 257, 10.0, 50.5, 1.6,
          2.2, 4.9, categories=("grains", "bakery")),
    _food("tortilla_flour", "Tortilla, flour", 140, 3.7, 23.6, 3.6,
          1.6, 1.0, categories=("grains", "latin-american"),
          unit=Unit.PIECE, base_quantity=1.0),
    _food("potato_baked", "Potato, baked, flesh and skin", 93, 2.5, 21.2, 0.1,
          2.2, 1.2, categories=("vegetables", "american")),
    _food("sweet_potato_baked", "Sweet Potato, baked", 90, 2.0, 20.7, 0.2,
          3.3, 6.5, categories=("vegetables",)),
    # Vegetables
    _food("broccoli_raw", "Broccoli, raw", 34, 2.8, 6.6, 0.4,
          2.6, 1.7, categories=("vegetables",)),
    _food("cauliflower_raw", "Cauliflower, raw", 25, 1.9, 5.0, 0.3,
          2.0, 1.9, categories=("vegetables",)),
    _food("spinach_raw", "Spinach, raw", 23, 2.9, 3.6, 0.4,
          2.2, 0.4, categories=("vegetables",)),
    _food("kale_raw", "Kale, raw", 35, 2.9, 4.4, 1.5,
          4.1, 1.0, categories=("vegetables",)),
    _food("carrots_raw", "Carrots, raw", 41, 0.9, 9.6, 0.2,
          2.8, 4.7, categories=("vegetables",)),
    _food("zucchini_raw", "Zucchini, raw", 17, 1.2, 3.1, 0.3,
          1.0, 2.5, categories=("vegetables", "mediterranean")),
    _food("avocado_raw", "Avocado, raw", 160, 2.0, 8.5, 14.7,
          6.7, 0.7, categories=("fruits", "latin-american")),
    # Fruits
    _food("banana_raw", "Banana, raw", 89, 1.1, 22.8, 0.3,
          2.6, 12.2, categories=("fruits",)),
    _food("apple_raw", "Apple, raw", 52, 0.3, 13.8, 0.2,
          2.4, 10.4, categories=("fruits",)),
    _food("pear_raw", "Pear, raw", 57, 0.4, 15.2, 0.1,
          3.1, 9.8, categories=("fruits",)),
    _food("strawberries_raw", "Strawberries, raw", 32, 0.7, 7.7, 0.3,
          2.0, 4.9, categories=("fruits",)),
    _food("blueberries_raw", "Blueberries, raw", 57, 0.7, 14.5, 0.3,
          2.4, 10.0, categories=("fruits",)),
    _food("orange_juice", "Orange Juice", 45, 0.7, 10.4, 0.2, 0.2, 8.4,
          categories=("beverages",), unit=Unit.MILLILITER, density=1.04),
    # Nuts, seeds and spreads
    _food("almonds", "Almonds", 579, 21.2, 21.6, 49.9,
          12.5, 4.4, categories=("nuts", "snacks")),
    _food("walnuts", "Walnuts", 654, 15.2, 13.7, 65.2,
          6.7, 2.6, categories=("nuts", "snacks")),
    _food("cashews", "Cashews", 553, 18.2, 30.2, 43.9,
          3.3, 5.9, categories=("nuts", "snacks")),
    _food("peanut_butter", "Peanut Butter, smooth", 588, 25.1, 20.0, 50.4,
          6.0, 9.2, categories=("spreads",)),
    _food("almond_milk_unsweetened", "Almond Milk, unsweetened", 15, 0.6, 0.3, 1.2,
          0.2, 0.0, categories=("beverages", "plant-based"),
          unit=Unit.MILLILITER, density=1.0),
    _food("chia_seeds", "Chia Seeds", 486, 16.5, 42.1, 30.7,
          34.4, 0.0, categories=("seeds",)),
    # Oils and sweeteners
    _food("olive_oil", "Olive Oil", 884, 0.0, 0.0, 100.0,
          0.0, 0.0, categories=("oils", "mediterranean"), density=0.91),
    _food("avocado_oil", "Avocado Oil", 884, 0.0, 0.0, 100.0,
          0.0, 0.0, categories=("oils",), density=0.91),
    _food("canola_oil", "Canola Oil", 884, 0.0, 0.0, 100.0,
          0.0, 0.0, categories=("oils",), density=0.92),
    _food("coconut_oil", "Coconut Oil", 862, 0.0, 0.0, 100.0,
          0.0, 0.0, categories=("oils", "asian"), density=0.92),
    _food("honey", "Honey", 304, 0.3, 82.4, 0.0,
          0.2, 82.1, categories=("sweeteners",), density=1.42),
    _food("maple_syrup", "Maple Syrup", 260, 0.0, 67.0, 0.1,
          0.0, 60.5, categories=("sweeteners",), density=1.33),
    _food("sugar_white", "Sugar, granulated", 387, 0.0, 100.0, 0.0,
          0.0, 99.8, categories=("sweeteners",)),
)


@dataclass
class LocalCatalog:
    """In-memory index over curated foods, static for the process lifetime."""

    _foods: dict[str, FoodItem]

    def __init__(self, foods: Iterable[FoodItem] = FOOD_DATABASE) -> None:
        self._foods = {food.id: food for food in foods}

    def get(self, food_id: str) -> FoodItem | None:
        return self._foods.get(food_id)

    def search(self, query: str) -> list[FoodItem]:
        """Return foods whose name or id contains every query word."""
        words = [word for word in query.lower().split() if word]
        if not words:
            return []
        return [
            food
            for food in self._foods.values()
            if all(word in food.name.lower() or word in food.id for word in words)
        ]

    def all(self) -> list[FoodItem]:
        return list(self._foods.values())

    def piece_weights(self) -> dict[str, float]:
        return {
            food.id: food.grams_per_piece
            for food in self._foods.values()
            if food.grams_per_piece is not None
        }

    def __iter__(self) -> Iterator[FoodItem]:
        return iter(self._foods.values())

    def __len__(self) -> int:
        return len(self._foods)
