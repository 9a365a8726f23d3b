"""Nutrition domain models."""

from dataclasses import dataclass


@dataclass(frozen=True)
class MacroTotals:
    """Calories and macronutrients summed over a set of meals."""

    calories: float
    protein: float
    carbs: float
    fat: float


ZERO_TOTALS = MacroTotals(calories=0.0, protein=0.0, carbs=0.0, fat=0.0)


@dataclass(frozen=True)
class FoodSummary:
    """Summary information about a food from FDC."""

    fdc_id: int
    description: str
    brand_owner: str | None
    brand_name: str | None
    data_type: str | None


@dataclass(frozen=True)
class FoodDetails:
    """Full catalog food details with per-serving macros."""

    summary: FoodSummary
    macros: MacroTotals
    serving_size: float | None
    serving_size_unit: str | None
    ingredients: str | None
