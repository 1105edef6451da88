"""Models for substitution requests, results and ranking output."""

from dataclasses import dataclass
from typing import Literal

from pydantic import BaseModel, Field

from nutrition_engine.domain.foods import FoodItem, MacroProfile, Portion


class UserPreferences(BaseModel):
    """Dietary preferences that filter and score substitution candidates."""

    allergies: list[str] = Field(default_factory=list)
    dislikes: list[str] = Field(default_factory=list)
    cuisine: list[str] = Field(default_factory=list)
    budget: Literal["low", "medium", "high"] | None = None
    dietary_restrictions: list[str] = Field(default_factory=list)


class SubstitutionConstraints(BaseModel):
    """Limits applied to a substitution search."""

    macro_tolerance_percent: float = Field(default=5.0, ge=0.0, le=100.0)
    max_suggestions: int = Field(default=10, ge=1, le=50)
    min_confidence: float = Field(default=0.7, ge=0.0, le=1.0)
    preferences: UserPreferences | None = None
    include_external_sources: bool = True


class RankingOptions(BaseModel):
    """Optional LLM re-ranking of the scored candidates."""

    enable_llm_ranking: bool = False
    meal_context: str | None = None
    user_context: str | None = None
    model: str | None = None


class RankingEntry(BaseModel):
    """One reordered candidate, referenced by its index in the request."""

    position: int = Field(ge=1)
    original_index: int = Field(ge=0)
    reasoning: str


class RankingResponse(BaseModel):
    """Structured output of the ranking model."""

    rankings: list[RankingEntry]
    insights: str


@dataclass(frozen=True)
class MacroDistance:
    """Relative per-macro differences, in percent of the target."""

    calories: float
    protein: float
    carbs: float
    fat: float
    overall_score: float
    fiber: float | None = None
    sugar: float | None = None


@dataclass(frozen=True)
class SubstitutionScore:
    total_score: float
    macro_distance: MacroDistance
    macro_score: float
    preference_score: float
    availability_score: float
    cost_score: float


@dataclass(frozen=True)
class SubstitutionCandidate:
    food: FoodItem
    suggested_portion: Portion
    macros: MacroProfile
    score: SubstitutionScore
    reason: str


@dataclass(frozen=True)
class SubstitutionMetadata:
    total_candidates_evaluated: int
    processing_time_ms: float
    constraints_applied: SubstitutionConstraints


@dataclass(frozen=True)
class SubstitutionResult:
    """Ranked replacements for a food portion."""

    original_food: FoodItem
    original_portion: Portion
    original_macros: MacroProfile
    candidates: list[SubstitutionCandidate]
    has_viable_substitutions: bool
    metadata: SubstitutionMetadata
