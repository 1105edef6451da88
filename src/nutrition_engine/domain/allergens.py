"""Allergen tagging and dietary restriction rules.

Foods are tagged with allergen categories when they are ingested, using
keyword matches on the food name and its catalog categories. Filtering then
checks those tags first and only falls back to a plain name-substring match
for allergy terms that do not map to a known category.

Keyword tagging can miss allergens: a dish named without the allergen word
(for example "pesto" with pine nuts and parmesan) is not tagged unless its
catalog categories mention the ingredient.
"""

import re
from collections.abc import Iterable

from nutrition_engine.domain.foods import FoodItem

ALLERGEN_KEYWORDS: dict[str, tuple[str, ...]] = {
    "dairy": (
        "milk",
        "cheese",
        "yogurt",
        "yoghurt",
        "butter",
        "cream",
        "whey",
        "casein",
        "kefir",
        "ghee",
        "dairy",
        "cottage",
        "ricotta",
        "mozzarella",
        "parmesan",
    ),
    "eggs": ("egg",),
    "fish": (
        "fish",
        "salmon",
        "tuna",
        "cod",
        "tilapia",
        "sardine",
        "trout",
        "mackerel",
    ),
    "shellfish": (
        "shrimp",
        "prawn",
        "crab",
        "lobster",
        "shellfish",
        "scallop",
        "mussel",
    ),
    "tree_nuts": (
        "almond",
        "walnut",
        "cashew",
        "pecan",
        "pistachio",
        "hazelnut",
        "macadamia",
        "tree nut",
        "nuts",
    ),
    "peanuts": ("peanut",),
    "gluten": (
        "wheat",
        "bread",
        "pasta",
        "barley",
        "rye",
        "couscous",
        "seitan",
        "spelt",
        "bagel",
        "flour",
        "gluten",
    ),
    "soy": ("soy", "tofu", "tempeh", "edamame"),
    "sesame": ("sesame", "tahini"),
}

# Terms users type, mapped to the category they mean.
_ALLERGY_TERMS: dict[str, str] = {
    "dairy": "dairy",
    "milk": "dairy",
    "lactose": "dairy",
    "egg": "eggs",
    "eggs": "eggs",
    "fish": "fish",
    "shellfish": "shellfish",
    "crustacean": "shellfish",
    "nut": "tree_nuts",
    "nuts": "tree_nuts",
    "tree nut": "tree_nuts",
    "tree nuts": "tree_nuts",
    "tree_nuts": "tree_nuts",
    "peanut": "peanuts",
    "peanuts": "peanuts",
    "gluten": "gluten",
    "wheat": "gluten",
    "soy": "soy",
    "soya": "soy",
    "sesame": "sesame",
}

_MEAT_KEYWORDS = (
    "chicken",
    "beef",
    "pork",
    "turkey",
    "lamb",
    "ham",
    "bacon",
    "sausage",
    "veal",
    "duck",
    "steak",
    "jerky",
    "meat",
    "poultry",
)
_ANIMAL_TAGS = frozenset({"meat", "fish", "shellfish"})
_GRAIN_KEYWORDS = (
    "grain",
    "rice",
    "oat",
    "quinoa",
    "corn",
    "wheat",
    "bread",
    "pasta",
    "barley",
)
_LEGUME_KEYWORDS = (
    "legume",
    "bean",
    "lentil",
    "chickpea",
    "pea",
    "peanut",
    "soy",
    "tofu",
)

_NON_DAIRY_PATTERN = re.compile(
    r"\b(?:almond|soy|oat|rice|coconut|cashew) (?:milk|yogurt)\b"
    r"|\b(?:peanut|almond|cashew|apple) butter\b"
)

KETO_MAX_CARBS_PER_100G = 10.0


def classify_allergens(name: str, categories: Iterable[str] = ()) -> frozenset[str]:
    """Return allergen categories suggested by a name and catalog categories."""
    haystack = " ".join([name, *categories]).lower()
    found = {
        allergen
        for allergen, keywords in ALLERGEN_KEYWORDS.items()
        if _mentions_any(haystack, keywords)
    }
    if "dairy" in found and not _mentions_any(
        _NON_DAIRY_PATTERN.sub(" ", haystack), ALLERGEN_KEYWORDS["dairy"]
    ):
        found.discard("dairy")
    return frozenset(found)


def classify_tags(name: str, categories: Iterable[str] = ()) -> frozenset[str]:
    """Return coarse food-group tags used by dietary restriction checks."""
    haystack = " ".join([name, *categories]).lower()
    tags: set[str] = set()
    if _mentions_any(haystack, _MEAT_KEYWORDS):
        tags.add("meat")
    if _mentions_any(haystack, _GRAIN_KEYWORDS):
        tags.add("grain")
    if _mentions_any(haystack, _LEGUME_KEYWORDS):
        tags.add("legume")
    if _mentions_any(haystack, ("honey",)):
        tags.add("honey")
    return frozenset(tags)


def normalize_allergen(term: str) -> str | None:
    """Map a user allergy term to a known allergen category."""
    return _ALLERGY_TERMS.get(term.strip().lower())


def matches_allergy(food: FoodItem, term: str) -> bool:
    """Return True when a food should be treated as containing an allergen.

    Category keywords skip plant milks and nut butters, as tagging does. The
    raw term is still matched against the name, so "milk" excludes
    "Almond Milk" while "dairy" does not.
    """
    cleaned = term.strip().lower()
    if not cleaned:
        return False
    name = food.name.lower()
    category = normalize_allergen(cleaned)
    if category is not None:
        if category in food.allergens:
            return True
        searchable = _NON_DAIRY_PATTERN.sub(" ", name) if category == "dairy" else name
        if any(keyword in searchable for keyword in ALLERGEN_KEYWORDS[category]):
            return True
    return cleaned in name


def violates_restriction(food: FoodItem, restriction: str) -> bool:
    """Return True when a food breaks a dietary restriction."""
    allergens = food.allergens | classify_allergens(food.name, food.metadata.categories)
    tags = food.tags | classify_tags(food.name, food.metadata.categories)
    animal = bool(tags & _ANIMAL_TAGS) or bool(allergens & {"fish", "shellfish"})
    key = restriction.strip().lower()
    if key == "vegetarian":
        return animal
    if key == "vegan":
        return animal or bool(allergens & {"dairy", "eggs"}) or "honey" in tags
    if key in {"gluten-free", "gluten_free"}:
        return "gluten" in allergens
    if key in {"dairy-free", "dairy_free"}:
        return "dairy" in allergens
    if key == "keto":
        return _carbs_per_100g(food) > KETO_MAX_CARBS_PER_100G
    if key == "paleo":
        return "dairy" in allergens or bool(tags & {"grain", "legume"})
    return False


def _carbs_per_100g(food: FoodItem) -> float:
    if food.base_portion.quantity <= 0:
        return 0.0
    return food.macros_per_base.carbs_g * 100.0 / food.base_portion.quantity


def _mentions_any(haystack: str, keywords: Iterable[str]) -> bool:
    """Match whole words, allowing a plural suffix ("egg" matches "eggs")."""
    return any(
        re.search(rf"\b{re.escape(keyword)}(?:s|es)?\b", haystack)
        for keyword in keywords
    )
