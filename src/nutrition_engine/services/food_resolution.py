"""Food resolution across the local catalog and external food databases."""

import asyncio
import logging
from collections import OrderedDict
from collections.abc import Awaitable, Callable, Iterable
from dataclasses import dataclass, field
from typing import TypeVar
from uuid import uuid4

from nutrition_engine.adapters.fdc_client import FdcClient
from nutrition_engine.adapters.local_catalog import LocalCatalog
from nutrition_engine.adapters.open_food_facts_client import OpenFoodFactsClient
from nutrition_engine.domain.allergens import classify_allergens, classify_tags
from nutrition_engine.domain.errors import (
    ConfigurationError,
    DataSourceUnavailable,
)
from nutrition_engine.domain.foods import (
    SOURCE_PRIORITY,
    FoodItem,
    FoodMetadata,
    FoodSource,
    MacroProfile,
    Portion,
)
from nutrition_engine.domain.units import Unit
from nutrition_engine.services.cache import Cache
from nutrition_engine.services.contributions import UserFoodRepository
from nutrition_engine.services.food_mapping import (
    food_from_fdc,
    food_from_open_food_facts,
    is_valid_product,
)

_OFF_PREFIX = "off_"
_USDA_PREFIX = "usda_"
_USER_PREFIX = "user_"

USER_CONTRIBUTED_CONFIDENCE = 0.6

_logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class FoodSearchResult:
    """Merged search results from every enabled source."""

    foods: list[FoodItem]
    total_count: int
    source: str
    query: str
    has_more: bool


@dataclass(frozen=True)
class ConnectivityReport:
    """Reachability of each configured food source."""

    local_catalog: bool
    open_food_facts: bool
    usda_fdc: bool
    overall: bool


@dataclass(frozen=True)
class ServiceStats:
    """Counters describing the resolution service state."""

    local_foods: int
    open_food_facts_enabled: bool
    usda_fdc_enabled: bool
    user_foods: int
    known_external_foods: int
    cache_size: int
    cache_hits: int
    cache_misses: int


@dataclass
class FoodResolutionService:
    """Resolves foods by id, barcode or free text across ranked sources.

    Search fans out to every enabled source concurrently, each bounded by
    ``source_timeout_seconds``. A failing or slow source is logged and left
    out of the merged result instead of failing the search.
    """

    local_catalog: LocalCatalog | None
    cache: Cache
    open_food_facts: OpenFoodFactsClient | None = None
    fdc_client: FdcClient | None = None
    user_foods: UserFoodRepository | None = None
    max_results: int = 50
    search_ttl_seconds: int = 300
    source_timeout_seconds: float = 5.0
    fdc_detail_limit: int = 5
    retry_attempts: int = 1
    retry_delay_seconds: float = 0.3
    max_known_external: int = 500
    debug: bool = False
    _known_external: OrderedDict[str, FoodItem] = field(
        default_factory=OrderedDict, init=False, repr=False
    )

    @property
    def has_external_sources(self) -> bool:
        return self.open_food_facts is not None or self.fdc_client is not None

    async def search_foods(self, query: str, page: int = 1) -> FoodSearchResult:
        """Search every enabled source and merge the results."""
        self._ensure_source_enabled()
        cache_key = f"search:{query}:{page}"
        cached = self.cache.get(cache_key)
        if isinstance(cached, list):
            return FoodSearchResult(
                foods=cached[: self.max_results],
                total_count=len(cached),
                source="hybrid",
                query=query,
                has_more=False,
            )

        off_results, fdc_results = await asyncio.gather(
            self._search_open_food_facts(query, page),
            self._search_fdc(query, page),
        )
        local_results = (
            self.local_catalog.search(query) if self.local_catalog is not None else []
        )
        user_results = (
            self.user_foods.search(query) if self.user_foods is not None else []
        )

        for food in [*off_results, *fdc_results]:
            self._remember(food)

        merged = dedupe_by_name(
            sort_by_priority(
                [*off_results, *fdc_results, *local_results, *user_results]
            )
        )
        self.cache.set(cache_key, merged, ttl_seconds=self.search_ttl_seconds)
        if self.debug:
            _logger.info(
                "Food search: query=%s off=%s fdc=%s local=%s user=%s merged=%s",
                query,
                len(off_results),
                len(fdc_results),
                len(local_results),
                len(user_results),
                len(merged),
            )
        return FoodSearchResult(
            foods=merged[: self.max_results],
            total_count=len(merged),
            source=_describe_sources(merged),
            query=query,
            has_more=len(merged) > self.max_results,
        )

    async def get_food_by_id(self, food_id: str) -> FoodItem | None:
        """Resolve a food id, routing prefixed ids to their external source."""
        if self.local_catalog is not None:
            local = self.local_catalog.get(food_id)
            if local is not None:
                return local
        known = self._known_external.get(food_id)
        if known is not None:
            return known

        if food_id.startswith(_USER_PREFIX):
            return self.user_foods.get(food_id) if self.user_foods else None
        if food_id.startswith(_OFF_PREFIX) and self.open_food_facts is not None:
            try:
                return await self.get_food_by_barcode(food_id.removeprefix(_OFF_PREFIX))
            except DataSourceUnavailable as exc:
                _logger.warning(
                    "Open Food Facts lookup failed for %s: %s", food_id, exc
                )
                return None
        if food_id.startswith(_USDA_PREFIX) and self.fdc_client is not None:
            return await self._get_fdc_food(food_id)
        return None

    async def get_food_by_barcode(self, barcode: str) -> FoodItem | None:
        """Look up a product by barcode; unknown barcodes return None."""
        if self.open_food_facts is None:
            raise DataSourceUnavailable("Open Food Facts", "source is disabled")
        client = self.open_food_facts
        try:
            product = await self._bounded(
                lambda: client.get_product(barcode), action=f"barcode:{barcode}"
            )
        except Exception as exc:
            raise DataSourceUnavailable("Open Food Facts", str(exc)) from exc
        if product is None:
            return None
        if not is_valid_product(product):
            _logger.warning("Barcode %s has incomplete nutrition data", barcode)
            return None
        food = food_from_open_food_facts(product, source=FoodSource.EXTERNAL_BARCODE)
        self._remember(food)
        return food

    def get_all_foods(self, include_external: bool = True) -> list[FoodItem]:
        """Return every food known to this process, in source priority order."""
        foods: list[FoodItem] = []
        if self.local_catalog is not None:
            foods.extend(self.local_catalog.all())
        if include_external:
            foods.extend(self._known_external.values())
        if self.user_foods is not None:
            foods.extend(self.user_foods.list_all())
        return dedupe_by_id(sort_by_priority(foods))

    def contribute_food(  # noqa: PLR0913
        self,
        name: str,
        macros_per_base: MacroProfile,
        base_portion: Portion | None = None,
        *,
        density_g_per_ml: float | None = None,
        grams_per_piece: float | None = None,
        categories: Iterable[str] = (),
    ) -> FoodItem:
        """Register a user-contributed food for the rest of the process."""
        if self.user_foods is None:
            raise ConfigurationError("User contributions are disabled")
        category_tuple = tuple(categories)
        food = FoodItem(
            id=f"{_USER_PREFIX}{uuid4().hex[:12]}",
            name=name,
            base_portion=base_portion or Portion(100.0, Unit.GRAM),
            macros_per_base=macros_per_base,
            density_g_per_ml=density_g_per_ml,
            grams_per_piece=grams_per_piece,
            metadata=FoodMetadata(
                source=FoodSource.USER_CONTRIBUTED,
                confidence=USER_CONTRIBUTED_CONFIDENCE,
                categories=category_tuple,
            ),
            allergens=classify_allergens(name, category_tuple),
            tags=classify_tags(name, category_tuple),
        )
        self.user_foods.add(food)
        return food

    async def test_connectivity(self) -> ConnectivityReport:
        """Probe each configured source."""
        local_ok = self.local_catalog is not None and len(self.local_catalog) > 0
        off_ok, fdc_ok = await asyncio.gather(
            self._probe(self.open_food_facts, "Open Food Facts"),
            self._probe(self.fdc_client, "USDA FDC"),
        )
        return ConnectivityReport(
            local_catalog=local_ok,
            open_food_facts=off_ok,
            usda_fdc=fdc_ok,
            overall=local_ok or off_ok or fdc_ok,
        )

    def get_stats(self) -> ServiceStats:
        return ServiceStats(
            local_foods=(
                len(self.local_catalog) if self.local_catalog is not None else 0
            ),
            open_food_facts_enabled=self.open_food_facts is not None,
            usda_fdc_enabled=self.fdc_client is not None,
            user_foods=(
                len(self.user_foods.list_all()) if self.user_foods is not None else 0
            ),
            known_external_foods=len(self._known_external),
            cache_size=len(self.cache),
            cache_hits=getattr(self.cache, "hits", 0),
            cache_misses=getattr(self.cache, "misses", 0),
        )

    def clear_cache(self) -> None:
        self.cache.clear()

    async def _search_open_food_facts(self, query: str, page: int) -> list[FoodItem]:
        client = self.open_food_facts
        if client is None:
            return []
        try:
            payload = await self._bounded(
                lambda: client.search_products(query, page, self.max_results),
                action="off_search",
            )
        except Exception as exc:
            _logger.warning("Open Food Facts search failed for %r: %s", query, exc)
            return []
        products = payload.get("products") or []
        return [
            food_from_open_food_facts(product)
            for product in products
            if isinstance(product, dict) and is_valid_product(product)
        ]

    async def _search_fdc(self, query: str, page: int) -> list[FoodItem]:
        client = self.fdc_client
        if client is None:
            return []
        try:
            payload = await self._bounded(
                lambda: client.search_foods(query, page_size=10, page=page),
                action="fdc_search",
            )
        except Exception as exc:
            _logger.warning("USDA FDC search failed for %r: %s", query, exc)
            return []
        fdc_ids = [
            food["fdcId"]
            for food in payload.get("foods") or []
            if isinstance(food, dict) and isinstance(food.get("fdcId"), int)
        ]
        details = await asyncio.gather(
            *(
                self._get_fdc_food(f"{_USDA_PREFIX}{fdc_id}")
                for fdc_id in fdc_ids[: self.fdc_detail_limit]
            )
        )
        return [food for food in details if food is not None]

    async def _get_fdc_food(self, food_id: str) -> FoodItem | None:
        client = self.fdc_client
        if client is None:
            return None
        try:
            fdc_id = int(food_id.removeprefix(_USDA_PREFIX))
        except ValueError:
            return None
        try:
            payload = await self._bounded(
                lambda: client.get_food(fdc_id), action=f"fdc_food:{fdc_id}"
            )
            food = food_from_fdc(payload)
        except Exception as exc:
            _logger.warning("USDA FDC lookup failed for %s: %s", food_id, exc)
            return None
        self._remember(food)
        return food

    def _remember(self, food: FoodItem) -> None:
        """Keep a resolved external food, evicting the oldest past the limit."""
        self._known_external.pop(food.id, None)
        self._known_external[food.id] = food
        while len(self._known_external) > self.max_known_external:
            self._known_external.popitem(last=False)

    async def _bounded(self, func: Callable[[], Awaitable[T]], *, action: str) -> T:
        """Run a source call with retries inside the per-source deadline."""
        return await asyncio.wait_for(
            self._call_with_retry(func, action=action),
            timeout=self.source_timeout_seconds,
        )

    async def _call_with_retry(
        self, func: Callable[[], Awaitable[T]], *, action: str
    ) -> T:
        """Call an async function with a short retry."""
        attempt = 0
        while True:
            try:
                return await func()
            except Exception as exc:
                attempt += 1
                status_code = _status_code_from_exception(exc)
                if status_code == "404" or attempt > self.retry_attempts:
                    raise
                if self.debug:
                    _logger.warning(
                        "Source %s failed (attempt %s/%s, status=%s): %s",
                        action,
                        attempt,
                        self.retry_attempts + 1,
                        status_code,
                        exc,
                    )
                await asyncio.sleep(self.retry_delay_seconds)

    async def _probe(self, client: object | None, name: str) -> bool:
        if client is None:
            return False
        try:
            return bool(
                await asyncio.wait_for(
                    client.test_connection(),  # type: ignore[attr-defined]
                    timeout=self.source_timeout_seconds,
                )
            )
        except Exception as exc:
            _logger.warning("%s connectivity test failed: %s", name, exc)
            return False

    def _ensure_source_enabled(self) -> None:
        if (
            self.local_catalog is None
            and self.open_food_facts is None
            and self.fdc_client is None
            and self.user_foods is None
        ):
            raise ConfigurationError("No food source is enabled")


def sort_by_priority(foods: list[FoodItem]) -> list[FoodItem]:
    """Stable sort by source priority, keeping insertion order within a source."""
    return sorted(foods, key=lambda food: SOURCE_PRIORITY.index(food.source))


def dedupe_by_name(foods: Iterable[FoodItem]) -> list[FoodItem]:
    """Keep the first food per normalized name key."""
    seen: set[str] = set()
    unique: list[FoodItem] = []
    for food in foods:
        key = food.name_key
        if key in seen:
            continue
        seen.add(key)
        unique.append(food)
    return unique


def dedupe_by_id(foods: Iterable[FoodItem]) -> list[FoodItem]:
    seen: set[str] = set()
    unique: list[FoodItem] = []
    for food in foods:
        if food.id in seen:
            continue
        seen.add(food.id)
        unique.append(food)
    return unique


def _describe_sources(foods: list[FoodItem]) -> str:
    sources = {food.source for food in foods}
    if not sources:
        return FoodSource.LOCAL.value
    if len(sources) > 1:
        return "hybrid"
    return next(iter(sources)).value


def _status_code_from_exception(exc: Exception) -> str:
    """Extract HTTP status code from an exception, if available."""
    response = getattr(exc, "response", None)
    status_code = getattr(response, "status_code", None)
    if isinstance(status_code, int):
        return str(status_code)
    return "n/a"
