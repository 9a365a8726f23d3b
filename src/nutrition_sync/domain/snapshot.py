"""Snapshot of all durable nutrition data."""

from dataclasses import dataclass, field
from datetime import datetime

from nutrition_sync.domain.foods import FoodTemplate
from nutrition_sync.domain.logs import DailyLog, NutritionGoals, WeightEntry


@dataclass(frozen=True)
class Snapshot:
    """Goals, templates, daily logs and weight history at a point in time."""

    goals: NutritionGoals = field(default_factory=NutritionGoals)
    food_templates: tuple[FoodTemplate, ...] = ()
    daily_logs: dict[str, DailyLog] = field(default_factory=dict)
    weight_history: tuple[WeightEntry, ...] = ()
    current_date: str = ""
    last_sync_time: datetime | None = None
