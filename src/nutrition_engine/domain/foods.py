"""Food catalog domain models."""

import math
import re
from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum

from nutrition_engine.domain.errors import UnsupportedUnitError, ValidationError
from nutrition_engine.domain.units import Unit, parse_unit

_NAME_KEY_PATTERN = re.compile(r"[^a-z0-9]")


class FoodSource(StrEnum):
    """Origin of a food record."""

    LOCAL = "local"
    EXTERNAL_CATALOG = "external-catalog"
    EXTERNAL_BARCODE = "external-barcode"
    USER_CONTRIBUTED = "user-contributed"


# Lower index wins when duplicate records are merged.
SOURCE_PRIORITY: tuple[FoodSource, ...] = (
    FoodSource.EXTERNAL_CATALOG,
    FoodSource.LOCAL,
    FoodSource.EXTERNAL_BARCODE,
    FoodSource.USER_CONTRIBUTED,
)


@dataclass(frozen=True)
class Portion:
    """A quantity of food in a given unit."""

    quantity: float
    unit: Unit

    def __post_init__(self) -> None:
        if not math.isfinite(self.quantity) or self.quantity < 0:
            raise ValidationError(
                f"Portion quantity must be a non-negative number, got {self.quantity}"
            )

    @classmethod
    def of(cls, quantity: object, unit: object) -> "Portion":
        """Build a portion from loosely typed input."""
        if isinstance(quantity, bool) or not isinstance(quantity, int | float | str):
            raise ValidationError(f"Invalid portion quantity: {quantity!r}")
        try:
            value = float(quantity)
        except ValueError as exc:
            raise ValidationError(f"Invalid portion quantity: {quantity!r}") from exc
        try:
            parsed_unit = parse_unit(unit)
        except UnsupportedUnitError as exc:
            raise ValidationError(str(exc)) from exc
        return cls(quantity=value, unit=parsed_unit)

    def scaled(self, factor: float) -> "Portion":
        return Portion(quantity=self.quantity * factor, unit=self.unit)

    def __str__(self) -> str:
        return f"{self.quantity:g}{self.unit.value}"


def _add_optional(left: float | None, right: float | None) -> float | None:
    if left is None and right is None:
        return None
    return (left or 0.0) + (right or 0.0)


@dataclass(frozen=True)
class MacroProfile:
    """Macronutrient profile for a food portion."""

    calories_kcal: float
    protein_g: float
    carbs_g: float
    fat_g: float
    fiber_g: float | None = None
    sugar_g: float | None = None

    def __post_init__(self) -> None:
        for name in ("calories_kcal", "protein_g", "carbs_g", "fat_g"):
            value = getattr(self, name)
            if value < 0:
                raise ValidationError(f"{name} must be non-negative, got {value}")
        for name in ("fiber_g", "sugar_g"):
            value = getattr(self, name)
            if value is not None and value < 0:
                raise ValidationError(f"{name} must be non-negative, got {value}")

    @classmethod
    def zero(cls) -> "MacroProfile":
        return cls(0.0, 0.0, 0.0, 0.0, 0.0, 0.0)

    @property
    def is_zero(self) -> bool:
        return (
            self.calories_kcal == 0
            and self.protein_g == 0
            and self.carbs_g == 0
            and self.fat_g == 0
        )

    def scaled(self, factor: float) -> "MacroProfile":
        """Return the profile multiplied by a non-negative factor."""
        return MacroProfile(
            calories_kcal=self.calories_kcal * factor,
            protein_g=self.protein_g * factor,
            carbs_g=self.carbs_g * factor,
            fat_g=self.fat_g * factor,
            fiber_g=self.fiber_g * factor if self.fiber_g is not None else None,
            sugar_g=self.sugar_g * factor if self.sugar_g is not None else None,
        )

    def __add__(self, other: "MacroProfile") -> "MacroProfile":
        return MacroProfile(
            calories_kcal=self.calories_kcal + other.calories_kcal,
            protein_g=self.protein_g + other.protein_g,
            carbs_g=self.carbs_g + other.carbs_g,
            fat_g=self.fat_g + other.fat_g,
            fiber_g=_add_optional(self.fiber_g, other.fiber_g),
            sugar_g=_add_optional(self.sugar_g, other.sugar_g),
        )

    def energy_deviation(self) -> float:
        """Relative gap between stated calories and the 4/4/9 estimate."""
        estimate = self.protein_g * 4 + self.carbs_g * 4 + self.fat_g * 9
        if self.calories_kcal == 0:
            return 0.0 if estimate == 0 else 1.0
        return abs(self.calories_kcal - estimate) / self.calories_kcal

    def is_energy_plausible(self, tolerance: float = 0.2) -> bool:
        return self.energy_deviation() <= tolerance


def sum_macros(profiles: list[MacroProfile]) -> MacroProfile:
    """Field-wise sum of macro profiles."""
    total = MacroProfile(0.0, 0.0, 0.0, 0.0, 0.0, 0.0)
    for profile in profiles:
        total = total + profile
    return total


@dataclass(frozen=True)
class FoodMetadata:
    """Provenance and data quality for a food record."""

    source: FoodSource = FoodSource.LOCAL
    confidence: float = 1.0
    barcode: str | None = None
    brand: str | None = None
    last_updated: datetime | None = None
    categories: tuple[str, ...] = ()
    image_url: str | None = None

    def __post_init__(self) -> None:
        if not 0.0 <= self.confidence <= 1.0:
            raise ValidationError(
                f"confidence must be within [0, 1], got {self.confidence}"
            )


@dataclass(frozen=True)
class FoodItem:
    """A food with macros defined for its base portion."""

    id: str
    name: str
    base_portion: Portion
    macros_per_base: MacroProfile
    density_g_per_ml: float | None = None
    grams_per_piece: float | None = None
    metadata: FoodMetadata = field(default_factory=FoodMetadata)
    allergens: frozenset[str] = frozenset()
    tags: frozenset[str] = frozenset()

    @property
    def source(self) -> FoodSource:
        return self.metadata.source

    @property
    def confidence(self) -> float:
        return self.metadata.confidence

    @property
    def name_key(self) -> str:
        return normalize_name_key(self.name)


def normalize_name_key(name: str) -> str:
    """Lower-case a name and strip non-alphanumeric characters."""
    return _NAME_KEY_PATTERN.sub("", name.lower())


@dataclass(frozen=True)
class MealItemInput:
    """A food reference with a portion inside a meal."""

    food_id: str
    portion: Portion


@dataclass(frozen=True)
class DayMacros:
    """Macro totals for a day with a per-meal breakdown."""

    total: MacroProfile
    per_meal: list[MacroProfile]
