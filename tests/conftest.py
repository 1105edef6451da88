"""Shared test fixtures."""

import logging
from collections.abc import Iterator
from dataclasses import dataclass, field

import pytest

from nutrition_engine.adapters.fdc_client import FdcClient
from nutrition_engine.adapters.local_catalog import LocalCatalog
from nutrition_engine.adapters.open_food_facts_client import OpenFoodFactsClient
from nutrition_engine.app_logging import LOGGER_NAME
from nutrition_engine.config import Settings
from nutrition_engine.services.cache import TtlCache
from nutrition_engine.services.contributions import InMemoryUserFoodRepository
from nutrition_engine.services.food_resolution import FoodResolutionService
from nutrition_engine.services.macros import MacroEngine
from nutrition_engine.services.ranking import RankingClient
from nutrition_engine.services.substitutions import SubstitutionEngine


@dataclass
class FakeOpenFoodFactsClient(OpenFoodFactsClient):
    """Fake Open Food Facts client with in-memory products."""

    products: list[dict[str, object]] = field(default_factory=list)
    error: Exception | None = None
    search_calls: int = 0
    product_calls: int = 0

    async def search_products(
        self, query: str, page: int = 1, page_size: int = 20
    ) -> dict[str, object]:
        self.search_calls += 1
        if self.error is not None:
            raise self.error
        return {"products": list(self.products)}

    async def get_product(self, barcode: str) -> dict[str, object] | None:
        self.product_calls += 1
        if self.error is not None:
            raise self.error
        for product in self.products:
            if product.get("code") == barcode:
                return product
        return None

    async def test_connection(self) -> bool:
        return self.error is None


@dataclass
class FakeFdcClient(FdcClient):
    """Fake FDC client with in-memory responses."""

    foods: dict[int, dict[str, object]] = field(
        default_factory=lambda: {
            123456: {
                "fdcId": 123456,
                "description": "Kirkland Signature Chicken Breast",
                "brandOwner": "Costco",
                "dataType": "Branded",
                "foodNutrients": [
                    {"nutrientId": 1008, "amount": 165},
                    {"nutrientId": 1003, "amount": 31},
                    {"nutrientId": 1004, "amount": 3.6},
                    {"nutrientId": 1005, "amount": 0},
                ],
            }
        }
    )
    error: Exception | None = None
    search_calls: int = 0
    food_calls: int = 0

    async def search_foods(
        self, query: str, page_size: int = 10, page: int = 1
    ) -> dict[str, object]:
        self.search_calls += 1
        if self.error is not None:
            raise self.error
        return {
            "foods": [
                {"fdcId": fdc_id, "description": food["description"]}
                for fdc_id, food in self.foods.items()
            ]
        }

    async def get_food(self, fdc_id: int) -> dict[str, object]:
        self.food_calls += 1
        if self.error is not None:
            raise self.error
        return self.foods[fdc_id]

    async def test_connection(self) -> bool:
        return self.error is None


@dataclass
class FakeRankingClient(RankingClient):
    """Fake ranking client returning a fixed payload."""

    payload: dict[str, object] = field(
        default_factory=lambda: {"rankings": [], "insights": ""}
    )
    error: Exception | None = None
    prompts: list[str] = field(default_factory=list)

    async def rank(
        self,
        *,
        model: str,
        system_prompt: str,
        prompt: str,
        schema: dict[str, object],
    ) -> dict[str, object]:
        self.prompts.append(prompt)
        if self.error is not None:
            raise self.error
        return self.payload


@pytest.fixture(autouse=True)
def reset_engine_logger() -> Iterator[None]:
    yield
    logger = logging.getLogger(LOGGER_NAME)
    logger.handlers.clear()
    logger.setLevel(logging.NOTSET)
    logger.propagate = True


@pytest.fixture
def settings() -> Settings:
    return Settings(
        enable_open_food_facts=False,
        enable_usda_fdc=False,
        openai_api_key=None,
        fdc_api_key=None,
    )


@pytest.fixture
def local_catalog() -> LocalCatalog:
    return LocalCatalog()


@pytest.fixture
def food_service(local_catalog: LocalCatalog) -> FoodResolutionService:
    return FoodResolutionService(
        local_catalog=local_catalog,
        cache=TtlCache(),
        user_foods=InMemoryUserFoodRepository(),
        retry_delay_seconds=0,
    )


@pytest.fixture
def macro_engine(
    food_service: FoodResolutionService, local_catalog: LocalCatalog
) -> MacroEngine:
    return MacroEngine(
        food_service=food_service, piece_weights=local_catalog.piece_weights()
    )


@pytest.fixture
def substitution_engine(
    macro_engine: MacroEngine, food_service: FoodResolutionService
) -> SubstitutionEngine:
    return SubstitutionEngine(macro_engine=macro_engine, food_service=food_service)
