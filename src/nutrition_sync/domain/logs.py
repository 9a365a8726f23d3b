"""Domain models for daily logs, weight and goals."""

from dataclasses import dataclass
from datetime import datetime
from typing import Literal

from nutrition_sync.domain.foods import RecordedItem

MealType = Literal["breakfast", "lunch", "dinner", "snack"]


@dataclass(frozen=True)
class MealEntry:
    """One recorded food item eaten on a date."""

    id: str
    food_item: RecordedItem
    quantity: float
    meal_type: MealType
    date: str


@dataclass(frozen=True)
class DailyLog:
    """Per-date record of meals, derived totals, mood, water and weight."""

    date: str
    meals: tuple[MealEntry, ...] = ()
    total_calories: float = 0.0
    total_protein: float = 0.0
    total_fat: float = 0.0
    total_carbs: float = 0.0
    mood_rating: int | None = None
    notes: str | None = None
    water_intake: float = 0.0
    weight: float | None = None
    last_modified: datetime | None = None


@dataclass(frozen=True)
class WeightEntry:
    """Body weight for a single date."""

    date: str
    weight: float
    note: str | None = None
    recorded_at: datetime | None = None


@dataclass(frozen=True)
class NutritionGoals:
    """Daily nutrition targets."""

    calories: float = 2000
    protein: float = 100
    carbs: float = 250
    fat: float = 70
    water: float = 2000
    weight: float | None = 70
    last_modified: datetime | None = None
