"""Unit conversion to a canonical gram basis."""

from enum import StrEnum

from nutrition_engine.domain.errors import (
    MissingDensityError,
    MissingPieceWeightError,
    UnsupportedUnitError,
)


class Unit(StrEnum):
    """Units accepted for food portions."""

    GRAM = "g"
    KILOGRAM = "kg"
    MILLIGRAM = "mg"
    POUND = "lb"
    OUNCE = "oz"
    MILLILITER = "ml"
    LITER = "l"
    TEASPOON = "tsp"
    TABLESPOON = "tbsp"
    CUP = "cup"
    FLUID_OUNCE = "fl_oz"
    PIECE = "piece"


MASS_TO_GRAMS: dict[Unit, float] = {
    Unit.GRAM: 1.0,
    Unit.KILOGRAM: 1000.0,
    Unit.MILLIGRAM: 0.001,
    Unit.POUND: 453.59237,
    Unit.OUNCE: 28.349523125,
}

# US customary measures; cup follows the nutrition-label convention.
VOLUME_TO_ML: dict[Unit, float] = {
    Unit.MILLILITER: 1.0,
    Unit.LITER: 1000.0,
    Unit.TEASPOON: 4.92892,
    Unit.TABLESPOON: 14.7868,
    Unit.CUP: 240.0,
    Unit.FLUID_OUNCE: 29.5735,
}

_ALIASES: dict[str, Unit] = {
    "gram": Unit.GRAM,
    "grams": Unit.GRAM,
    "gr": Unit.GRAM,
    "kilogram": Unit.KILOGRAM,
    "kilograms": Unit.KILOGRAM,
    "milligram": Unit.MILLIGRAM,
    "milligrams": Unit.MILLIGRAM,
    "lbs": Unit.POUND,
    "pound": Unit.POUND,
    "pounds": Unit.POUND,
    "ounce": Unit.OUNCE,
    "ounces": Unit.OUNCE,
    "milliliter": Unit.MILLILITER,
    "milliliters": Unit.MILLILITER,
    "millilitre": Unit.MILLILITER,
    "liter": Unit.LITER,
    "liters": Unit.LITER,
    "litre": Unit.LITER,
    "teaspoon": Unit.TEASPOON,
    "teaspoons": Unit.TEASPOON,
    "tablespoon": Unit.TABLESPOON,
    "tablespoons": Unit.TABLESPOON,
    "cups": Unit.CUP,
    "fl oz": Unit.FLUID_OUNCE,
    "floz": Unit.FLUID_OUNCE,
    "pieces": Unit.PIECE,
    "pc": Unit.PIECE,
    "pcs": Unit.PIECE,
    "each": Unit.PIECE,
}


def parse_unit(value: object) -> Unit:
    """Parse a unit name or alias into a Unit."""
    if isinstance(value, Unit):
        return value
    if not isinstance(value, str):
        raise UnsupportedUnitError(f"Unsupported unit: {value!r}")
    cleaned = value.strip().lower()
    try:
        return Unit(cleaned)
    except ValueError:
        pass
    alias = _ALIASES.get(cleaned)
    if alias is None:
        raise UnsupportedUnitError(f"Unsupported unit: {value}")
    return alias


def is_mass_unit(unit: Unit) -> bool:
    return unit in MASS_TO_GRAMS


def is_volume_unit(unit: Unit) -> bool:
    return unit in VOLUME_TO_ML


def to_grams(quantity: float, unit: Unit) -> float:
    """Convert a mass quantity to grams."""
    if not is_mass_unit(unit):
        raise UnsupportedUnitError(f"Unit {unit} is not a mass unit")
    return quantity * MASS_TO_GRAMS[unit]


def to_milliliters(quantity: float, unit: Unit) -> float:
    """Convert a volume quantity to milliliters."""
    if not is_volume_unit(unit):
        raise UnsupportedUnitError(f"Unit {unit} is not a volume unit")
    return quantity * VOLUME_TO_ML[unit]


def portion_to_grams(
    quantity: float, unit: Unit, density_g_per_ml: float | None = None
) -> float:
    """Convert a portion to grams, using density for volume units.

    Piece counts always fail here: a piece has no universal weight, so the
    caller must supply a food-specific grams-per-piece value instead.
    """
    if is_mass_unit(unit):
        return to_grams(quantity, unit)
    if is_volume_unit(unit):
        if density_g_per_ml is None:
            raise MissingDensityError(
                f"Density required to convert {unit} to grams"
            )
        return to_milliliters(quantity, unit) * density_g_per_ml
    if unit == Unit.PIECE:
        raise MissingPieceWeightError(
            "'piece' requires a per-piece gram weight for the food"
        )
    raise UnsupportedUnitError(f"Unsupported unit: {unit}")
