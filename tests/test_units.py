"""Tests for unit conversion."""

import pytest

from nutrition_engine.domain.errors import (
    MissingDensityError,
    MissingPieceWeightError,
    UnsupportedUnitError,
)
from nutrition_engine.domain.units import (
    Unit,
    parse_unit,
    portion_to_grams,
    to_grams,
    to_milliliters,
)


def test_parse_unit_accepts_codes_and_aliases() -> None:
    assert parse_unit("g") == Unit.GRAM
    assert parse_unit(" Tablespoons ") == Unit.TABLESPOON
    assert parse_unit("fl oz") == Unit.FLUID_OUNCE
    assert parse_unit("each") == Unit.PIECE
    assert parse_unit(Unit.CUP) == Unit.CUP


def test_parse_unit_rejects_unknown() -> None:
    with pytest.raises(UnsupportedUnitError):
        parse_unit("handful")
    with pytest.raises(UnsupportedUnitError):
        parse_unit(12)


def test_mass_conversions() -> None:
    assert to_grams(1, Unit.KILOGRAM) == 1000
    assert to_grams(500, Unit.MILLIGRAM) == pytest.approx(0.5)
    assert to_grams(1, Unit.POUND) == pytest.approx(453.59237)
    assert to_grams(2, Unit.OUNCE) == pytest.approx(56.69904625)


def test_volume_conversions() -> None:
    assert to_milliliters(1, Unit.CUP) == 240
    assert to_milliliters(3, Unit.TEASPOON) == pytest.approx(14.78676)
    assert to_milliliters(1, Unit.TABLESPOON) == pytest.approx(14.7868)
    with pytest.raises(UnsupportedUnitError):
        to_milliliters(1, Unit.GRAM)


def test_portion_to_grams_uses_density_for_volume() -> None:
    assert portion_to_grams(100, Unit.MILLILITER, density_g_per_ml=1.03) == pytest.approx(
        103
    )
    assert portion_to_grams(250, Unit.GRAM) == 250


def test_portion_to_grams_requires_density() -> None:
    with pytest.raises(MissingDensityError):
        portion_to_grams(1, Unit.CUP)


def test_portion_to_grams_rejects_piece() -> None:
    with pytest.raises(MissingPieceWeightError):
        portion_to_grams(2, Unit.PIECE)
