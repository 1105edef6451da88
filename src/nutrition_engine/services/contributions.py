"""User-contributed foods."""

import threading
from typing import Protocol

from nutrition_engine.domain.foods import FoodItem, normalize_name_key


class UserFoodRepository(Protocol):
    """Storage interface for foods contributed by users."""

    def add(self, food: FoodItem) -> None:
        """Store a contributed food."""

    def get(self, food_id: str) -> FoodItem | None:
        """Return a contributed food by id, if present."""

    def search(self, query: str) -> list[FoodItem]:
        """Return contributed foods matching a query."""

    def list_all(self) -> list[FoodItem]:
        """Return every contributed food in insertion order."""


class InMemoryUserFoodRepository(UserFoodRepository):
    """Process-local store for contributed foods."""

    def __init__(self) -> None:
        self._foods: dict[str, FoodItem] = {}
        self._lock = threading.Lock()

    def add(self, food: FoodItem) -> None:
        with self._lock:
            self._foods[food.id] = food

    def get(self, food_id: str) -> FoodItem | None:
        return self._foods.get(food_id)

    def search(self, query: str) -> list[FoodItem]:
        key = normalize_name_key(query)
        if not key:
            return []
        return [food for food in self.list_all() if key in food.name_key]

    def list_all(self) -> list[FoodItem]:
        with self._lock:
            return list(self._foods.values())
