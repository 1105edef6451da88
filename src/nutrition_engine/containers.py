"""Dependency container wiring for the engine."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from nutrition_engine.adapters.fdc_client import HttpxFdcClient
from nutrition_engine.adapters.local_catalog import LocalCatalog
from nutrition_engine.adapters.open_food_facts_client import HttpxOpenFoodFactsClient
from nutrition_engine.adapters.openai_ranking_client import OpenAIRankingClient
from nutrition_engine.app_logging import configure_logging
from nutrition_engine.config import Settings, parse_csv_list
from nutrition_engine.domain.substitutions import UserPreferences
from nutrition_engine.services.cache import TtlCache
from nutrition_engine.services.contributions import InMemoryUserFoodRepository
from nutrition_engine.services.food_resolution import FoodResolutionService
from nutrition_engine.services.macros import MacroEngine
from nutrition_engine.services.ranking import RankingService
from nutrition_engine.services.substitutions import SubstitutionEngine


@dataclass
class AppContainer:
    """Holds engine-wide dependencies."""

    settings: Settings
    food_service: FoodResolutionService
    macro_engine: MacroEngine
    ranking_service: RankingService | None
    substitution_engine: SubstitutionEngine
    close_resources: Callable[[], Awaitable[None]]


def build_container(settings: Settings | None = None) -> AppContainer:
    """Create the default dependency container."""
    resolved_settings = settings or Settings()
    configure_logging(debug=resolved_settings.debug)
    local_catalog = LocalCatalog() if resolved_settings.enable_local_catalog else None
    open_food_facts_client = (
        HttpxOpenFoodFactsClient.create(
            base_url=resolved_settings.open_food_facts_base_url,
            user_agent=resolved_settings.open_food_facts_user_agent,
        )
        if resolved_settings.enable_open_food_facts
        else None
    )
    fdc_client = (
        HttpxFdcClient.create(
            api_key=resolved_settings.fdc_api_key or "",
            base_url=resolved_settings.fdc_base_url,
        )
        if resolved_settings.usda_fdc_active
        else None
    )
    user_foods = (
        InMemoryUserFoodRepository()
        if resolved_settings.enable_user_contributions
        else None
    )
    food_service = FoodResolutionService(
        local_catalog=local_catalog,
        cache=TtlCache(max_entries=resolved_settings.search_cache_max_entries),
        open_food_facts=open_food_facts_client,
        fdc_client=fdc_client,
        user_foods=user_foods,
        max_results=resolved_settings.max_search_results,
        search_ttl_seconds=resolved_settings.search_cache_ttl_seconds,
        source_timeout_seconds=resolved_settings.source_timeout_seconds,
        max_known_external=resolved_settings.max_known_external_foods,
        debug=resolved_settings.debug,
    )
    macro_engine = MacroEngine(
        food_service=food_service,
        piece_weights=local_catalog.piece_weights() if local_catalog else {},
    )
    ranking_client = (
        OpenAIRankingClient.create(resolved_settings.openai_api_key or "")
        if resolved_settings.llm_ranking_active
        else None
    )
    ranking_service = (
        RankingService(
            client=ranking_client,
            model=resolved_settings.openai_model,
            timeout_seconds=resolved_settings.ranking_timeout_seconds,
        )
        if ranking_client is not None
        else None
    )
    default_allergies = parse_csv_list(resolved_settings.default_allergies)
    substitution_engine = SubstitutionEngine(
        macro_engine=macro_engine,
        food_service=food_service,
        ranking_service=ranking_service,
        default_preferences=(
            UserPreferences(allergies=default_allergies) if default_allergies else None
        ),
        search_timeout_seconds=resolved_settings.source_timeout_seconds,
    )

    async def close_resources() -> None:
        if open_food_facts_client is not None:
            await open_food_facts_client.close()
        if fdc_client is not None:
            await fdc_client.close()
        if ranking_client is not None:
            await ranking_client.close()

    return AppContainer(
        settings=resolved_settings,
        food_service=food_service,
        macro_engine=macro_engine,
        ranking_service=ranking_service,
        substitution_engine=substitution_engine,
        close_resources=close_resources,
    )
