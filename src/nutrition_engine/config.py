"""Application configuration."""

import os

from pydantic_settings import BaseSettings, SettingsConfigDict

_ENVIRONMENT = os.getenv("ENVIRONMENT", "local")


class Settings(BaseSettings):
    """Engine settings loaded from environment variables."""

    fdc_api_key: str | None = None
    fdc_base_url: str = "https://api.nal.usda.gov/fdc/v1"
    open_food_facts_base_url: str = "https://world.openfoodfacts.org"
    open_food_facts_user_agent: str = "nutrition-engine/0.1"
    enable_local_catalog: bool = True
    enable_open_food_facts: bool = True
    enable_usda_fdc: bool = True
    enable_user_contributions: bool = True
    max_search_results: int = 50
    search_cache_ttl_seconds: int = 300
    search_cache_max_entries: int = 100
    max_known_external_foods: int = 500
    source_timeout_seconds: float = 5.0
    default_allergies: str | None = None
    openai_api_key: str | None = None
    openai_model: str = "gpt-5.2"
    enable_llm_ranking: bool = False
    ranking_timeout_seconds: float = 10.0
    debug: bool = False
    environment: str = _ENVIRONMENT

    model_config = SettingsConfigDict(
        env_file=(f".env.{_ENVIRONMENT}", ".env"),
        extra="ignore",
    )

    @property
    def usda_fdc_active(self) -> bool:
        return self.enable_usda_fdc and bool(self.fdc_api_key)

    @property
    def llm_ranking_active(self) -> bool:
        return self.enable_llm_ranking and bool(self.openai_api_key)


def parse_csv_list(raw: str | None) -> list[str] | None:
    """Parse a comma-separated env value into a list of trimmed items."""
    if raw is None:
        return None
    cleaned = raw.strip()
    if cleaned in {"", "*"}:
        return None
    items = [chunk.strip() for chunk in cleaned.split(",")]
    return [item for item in items if item] or None
