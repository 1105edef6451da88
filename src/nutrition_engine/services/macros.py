"""Macro computation for items, meals and days."""

import asyncio
import logging
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime

from nutrition_engine.domain.errors import MissingPieceWeightError, UnitConversionError
from nutrition_engine.domain.foods import (
    DayMacros,
    FoodItem,
    FoodSource,
    MacroProfile,
    MealItemInput,
    Portion,
    normalize_name_key,
    sum_macros,
)
from nutrition_engine.domain.units import (
    Unit,
    is_volume_unit,
    portion_to_grams,
    to_milliliters,
)
from nutrition_engine.services.food_resolution import FoodResolutionService

MAX_WARNINGS = 100

_logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MacroWarning:
    """A degradation recorded instead of failing a computation."""

    food_id: str
    reason: str


@dataclass(frozen=True)
class FoodQuality:
    source: FoodSource
    confidence: float
    last_updated: datetime | None


@dataclass
class MacroEngine:
    """Computes macros for portions of foods resolved through the food service.

    Unknown foods never fail a computation: they contribute zero macros and a
    ``MacroWarning`` is recorded; only the latest ``MAX_WARNINGS`` are kept.
    Unit conversion problems raise for a single item and degrade to zero
    inside meals.
    """

    food_service: FoodResolutionService
    piece_weights: dict[str, float] = field(default_factory=dict)
    warnings: deque[MacroWarning] = field(
        default_factory=lambda: deque(maxlen=MAX_WARNINGS)
    )
    _index: dict[str, FoodItem] = field(default_factory=dict, init=False, repr=False)

    async def get_food(self, food_id: str) -> FoodItem | None:
        """Return a food from the index, resolving it on first use."""
        food = self._index.get(food_id)
        if food is not None:
            return food
        try:
            food = await self.food_service.get_food_by_id(food_id)
        except Exception as exc:
            _logger.warning("Food lookup failed for %s: %s", food_id, exc)
            return None
        if food is not None:
            self._index[food.id] = food
        return food

    def resolve_portion_grams(self, food: FoodItem, portion: Portion) -> float:
        """Convert a portion of a food to grams."""
        if portion.unit == Unit.PIECE:
            grams_per_piece = self.piece_weights.get(food.id, food.grams_per_piece)
            if grams_per_piece is None:
                raise MissingPieceWeightError(
                    f"No piece weight known for food {food.id}"
                )
            return portion.quantity * grams_per_piece
        return portion_to_grams(portion.quantity, portion.unit, food.density_g_per_ml)

    async def compute_item_macros(self, food_id: str, portion: Portion) -> MacroProfile:
        """Macros for one item; unknown foods yield zero with a warning."""
        food = await self.get_food(food_id)
        if food is None:
            self._warn(food_id, "unknown food")
            return MacroProfile.zero()
        return self.macros_for(food, portion)

    def macros_for(self, food: FoodItem, portion: Portion) -> MacroProfile:
        """Scale a food's base macros linearly to a portion."""
        return food.macros_per_base.scaled(self._base_ratio(food, portion))

    def _base_ratio(self, food: FoodItem, portion: Portion) -> float:
        base = food.base_portion
        # Volume to volume and piece to piece need no density or piece weight.
        if is_volume_unit(base.unit) and is_volume_unit(portion.unit):
            base_amount = to_milliliters(base.quantity, base.unit)
            amount = to_milliliters(portion.quantity, portion.unit)
        elif base.unit == Unit.PIECE and portion.unit == Unit.PIECE:
            base_amount = base.quantity
            amount = portion.quantity
        else:
            base_amount = self.resolve_portion_grams(food, base)
            amount = self.resolve_portion_grams(food, portion)
        if base_amount <= 0:
            return 0.0
        return amount / base_amount

    async def compute_meal_macros(self, items: list[MealItemInput]) -> MacroProfile:
        """Sum item macros; per-item conversion errors count as zero."""
        profiles = await asyncio.gather(
            *(self._meal_item_macros(item) for item in items)
        )
        return sum_macros(list(profiles))

    async def compute_day_macros(self, meals: list[list[MealItemInput]]) -> DayMacros:
        per_meal = [await self.compute_meal_macros(meal) for meal in meals]
        return DayMacros(total=sum_macros(per_meal), per_meal=per_meal)

    def food_quality(self, food_id: str) -> FoodQuality | None:
        food = self._index.get(food_id)
        if food is None:
            return None
        return FoodQuality(
            source=food.source,
            confidence=food.confidence,
            last_updated=food.metadata.last_updated,
        )

    async def search_foods(self, query: str) -> list[FoodItem]:
        """Search through the food service, falling back to indexed foods."""
        try:
            result = await self.food_service.search_foods(query)
        except Exception as exc:
            _logger.warning(
                "Food search failed for %r, using local index: %s", query, exc
            )
            key = normalize_name_key(query)
            return [food for food in self._index.values() if key in food.name_key]
        for food in result.foods:
            self._index.setdefault(food.id, food)
        return result.foods

    async def _meal_item_macros(self, item: MealItemInput) -> MacroProfile:
        try:
            return await self.compute_item_macros(item.food_id, item.portion)
        except UnitConversionError as exc:
            self._warn(item.food_id, str(exc))
            return MacroProfile.zero()

    def drain_warnings(self) -> list[MacroWarning]:
        """Return the recorded warnings and start a fresh list."""
        drained = list(self.warnings)
        self.warnings.clear()
        return drained

    def _warn(self, food_id: str, reason: str) -> None:
        self.warnings.append(MacroWarning(food_id=food_id, reason=reason))
        _logger.warning("Macro computation degraded for %s: %s", food_id, reason)
