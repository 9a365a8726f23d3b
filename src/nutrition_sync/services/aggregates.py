"""Derived daily totals for meal logs."""

from collections.abc import Iterable
from dataclasses import replace

from nutrition_sync.domain.logs import DailyLog, MealEntry
from nutrition_sync.domain.nutrition import ZERO_TOTALS, MacroTotals


def recompute_totals(meals: Iterable[MealEntry]) -> MacroTotals:
    """Sum per-serving values weighted by quantity. No rounding is applied."""
    total = ZERO_TOTALS
    for meal in meals:
        item = meal.food_item
        total = MacroTotals(
            calories=total.calories + item.calories * meal.quantity,
            protein=total.protein + item.protein * meal.quantity,
            carbs=total.carbs + item.carbs * meal.quantity,
            fat=total.fat + item.fat * meal.quantity,
        )
    return total


def with_totals(log: DailyLog) -> DailyLog:
    """Return the log with its four totals re-derived from its meals."""
    totals = recompute_totals(log.meals)
    return replace(
        log,
        total_calories=totals.calories,
        total_protein=totals.protein,
        total_carbs=totals.carbs,
        total_fat=totals.fat,
    )

