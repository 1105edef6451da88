"""Optional LLM re-ranking of substitution candidates."""

import asyncio
import logging
from dataclasses import dataclass
from typing import Protocol

from pydantic import ValidationError as PydanticValidationError

from nutrition_engine.domain.foods import FoodItem, MacroProfile, Portion
from nutrition_engine.domain.substitutions import (
    RankingOptions,
    RankingResponse,
    SubstitutionCandidate,
    UserPreferences,
)

MAX_RANKED_CANDIDATES = 5

RANKING_SCHEMA: dict[str, object] = {
    "type": "object",
    "properties": {
        "rankings": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {
                    "position": {"type": "integer", "minimum": 1},
                    "original_index": {"type": "integer", "minimum": 0},
                    "reasoning": {"type": "string"},
                },
                "required": ["position", "original_index", "reasoning"],
                "additionalProperties": False,
            },
        },
        "insights": {"type": "string"},
    },
    "required": ["rankings", "insights"],
    "additionalProperties": False,
}

SYSTEM_PROMPT = (
    "You are a nutrition assistant ranking food substitutions. "
    "All candidates already match the original macros within tolerance. "
    "Order them by practicality, taste and fit with the meal. "
    "Reference candidates only by their index."
)

_logger = logging.getLogger(__name__)


class RankingClient(Protocol):
    """Interface for structured LLM ranking calls."""

    async def rank(
        self,
        *,
        model: str,
        system_prompt: str,
        prompt: str,
        schema: dict[str, object],
    ) -> dict[str, object]:
        """Return structured ranking data."""


@dataclass
class RankingService:
    """Builds ranking prompts and validates the model's answer.

    Every failure returns None so callers keep their own ordering.
    """

    client: RankingClient
    model: str
    timeout_seconds: float = 10.0

    async def rerank(  # noqa: PLR0913
        self,
        *,
        original_food: FoodItem,
        original_portion: Portion,
        original_macros: MacroProfile,
        candidates: list[SubstitutionCandidate],
        options: RankingOptions,
        preferences: UserPreferences | None = None,
    ) -> RankingResponse | None:
        top = candidates[:MAX_RANKED_CANDIDATES]
        if not top:
            return None
        prompt = build_ranking_prompt(
            original_food, original_portion, original_macros, top, options, preferences
        )
        try:
            raw = await asyncio.wait_for(
                self.client.rank(
                    model=options.model or self.model,
                    system_prompt=SYSTEM_PROMPT,
                    prompt=prompt,
                    schema=RANKING_SCHEMA,
                ),
                timeout=self.timeout_seconds,
            )
            response = RankingResponse.model_validate(raw)
        except PydanticValidationError as exc:
            _logger.warning("Ranking response was malformed: %s", exc)
            return None
        except Exception as exc:
            _logger.warning("Ranking request failed: %s", exc)
            return None
        if any(entry.original_index >= len(top) for entry in response.rankings):
            _logger.warning("Ranking response referenced an unknown candidate")
            return None
        return response


def build_ranking_prompt(  # noqa: PLR0913
    original_food: FoodItem,
    original_portion: Portion,
    original_macros: MacroProfile,
    candidates: list[SubstitutionCandidate],
    options: RankingOptions,
    preferences: UserPreferences | None,
) -> str:
    lines = [
        f"Original: {original_food.name}, {original_portion}",
        f"Original macros: {_format_macros(original_macros)}",
        "Candidates:",
    ]
    for index, candidate in enumerate(candidates):
        lines.append(
            f"[{index}] {candidate.food.name}, {candidate.suggested_portion}, "
            f"{_format_macros(candidate.macros)}, "
            f"score {candidate.score.total_score:.1f}, {candidate.reason}"
        )
    if options.meal_context:
        lines.append(f"Meal context: {options.meal_context}")
    if options.user_context:
        lines.append(f"User context: {options.user_context}")
    if preferences is not None:
        lines.append(f"Preferences: {preferences.model_dump_json(exclude_none=True)}")
    return "\n".join(lines)


def _format_macros(macros: MacroProfile) -> str:
    return (
        f"{macros.calories_kcal:.0f} kcal, P {macros.protein_g:.1f} g, "
        f"C {macros.carbs_g:.1f} g, F {macros.fat_g:.1f} g"
    )
