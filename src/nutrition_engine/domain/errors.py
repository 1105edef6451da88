"""Error types raised by the nutrition engine."""


class NutritionEngineError(Exception):
    """Base class for nutrition engine errors."""


class ValidationError(NutritionEngineError):
    """Raised when a portion, unit or constraint is malformed."""


class UnitConversionError(NutritionEngineError):
    """Raised when a quantity cannot be converted to grams."""


class UnsupportedUnitError(UnitConversionError):
    """Raised for units outside the mass, volume and piece families."""


class MissingDensityError(UnitConversionError):
    """Raised when a volume needs a density to become a mass."""


class MissingPieceWeightError(UnitConversionError):
    """Raised when a piece count has no grams-per-piece mapping."""


class NotFoundError(NutritionEngineError):
    """Raised when a requested food cannot be resolved."""

    def __init__(self, food_id: str) -> None:
        super().__init__(f"Food not found: {food_id}")
        self.food_id = food_id


class DataSourceUnavailable(NutritionEngineError):
    """Raised when an external food source fails."""

    def __init__(self, source: str, detail: str) -> None:
        super().__init__(f"{source} unavailable: {detail}")
        self.source = source
        self.detail = detail


class ConfigurationError(NutritionEngineError):
    """Raised when the engine is configured with no usable food source."""
