"""Last-write-wins reconciliation of local and remote snapshots."""

from collections.abc import Callable, Iterable
from dataclasses import replace
from datetime import UTC, datetime
from typing import TypeVar

from nutrition_sync.domain.foods import FoodTemplate
from nutrition_sync.domain.logs import DailyLog, MealEntry, NutritionGoals, WeightEntry
from nutrition_sync.domain.snapshot import Snapshot
from nutrition_sync.services.aggregates import with_totals

_EPOCH = datetime.fromtimestamp(0, tz=UTC)

T = TypeVar("T")


def merge(local: Snapshot, remote: Snapshot) -> Snapshot:
    """Merge two snapshots entity by entity, favoring newer timestamps.

    Ties favor the local side. Session fields (current date, last sync time)
    always come from the local snapshot.
    """
    return Snapshot(
        goals=merge_goals(local.goals, remote.goals),
        food_templates=merge_templates(local.food_templates, remote.food_templates),
        daily_logs=merge_daily_logs(local.daily_logs, remote.daily_logs),
        weight_history=merge_weight_history(
            local.weight_history, remote.weight_history
        ),
        current_date=local.current_date,
        last_sync_time=local.last_sync_time,
    )


def merge_daily_logs(
    local: dict[str, DailyLog], remote: dict[str, DailyLog]
) -> dict[str, DailyLog]:
    """Merge date-keyed logs, unioning meals for dates present on both sides."""
    merged: dict[str, DailyLog] = {}
    for date in sorted(local.keys() | remote.keys()):
        local_log = local.get(date)
        remote_log = remote.get(date)
        if local_log is None:
            merged[date] = remote_log  # type: ignore[assignment]
        elif remote_log is None:
            merged[date] = local_log
        else:
            merged[date] = merge_daily_log(local_log, remote_log)
    return merged


def merge_daily_log(local: DailyLog, remote: DailyLog) -> DailyLog:
    """Take the newer log as base, union meals by id and re-derive totals."""
    if _stamp(remote.last_modified) > _stamp(local.last_modified):
        base, other = remote, local
    else:
        base, other = local, remote
    meals = _union_meals(base.meals, other.meals)
    return with_totals(replace(base, meals=meals))


def merge_goals(local: NutritionGoals, remote: NutritionGoals) -> NutritionGoals:
    """Keep whichever goals were modified last."""
    if _stamp(remote.last_modified) > _stamp(local.last_modified):
        return remote
    return local


def merge_templates(
    local: Iterable[FoodTemplate], remote: Iterable[FoodTemplate]
) -> tuple[FoodTemplate, ...]:
    """Union templates by id, keeping the newer version of shared ids."""
    return tuple(
        _union_by_key(
            local,
            remote,
            key=lambda template: template.id,
            stamp=lambda template: template.last_modified or template.created_at,
        )
    )


def merge_weight_history(
    local: Iterable[WeightEntry], remote: Iterable[WeightEntry]
) -> tuple[WeightEntry, ...]:
    """Union weight entries by date, newest date first."""
    entries = _union_by_key(
        local,
        remote,
        key=lambda entry: entry.date,
        stamp=lambda entry: entry.recorded_at,
    )
    return tuple(sorted(entries, key=lambda entry: entry.date, reverse=True))


def _union_meals(
    base: tuple[MealEntry, ...], other: tuple[MealEntry, ...]
) -> tuple[MealEntry, ...]:
    seen: set[str] = set()
    meals: list[MealEntry] = []
    for meal in (*base, *other):
        if meal.id in seen:
            continue
        seen.add(meal.id)
        meals.append(meal)
    return tuple(meals)


def _union_by_key(
    local: Iterable[T],
    remote: Iterable[T],
    *,
    key: Callable[[T], str],
    stamp: Callable[[T], datetime | None],
) -> list[T]:
    merged: dict[str, T] = {}
    for item in local:
        merged[key(item)] = item
    for item in remote:
        item_key = key(item)
        current = merged.get(item_key)
        if current is None or _stamp(stamp(item)) > _stamp(stamp(current)):
            merged[item_key] = item
    return list(merged.values())


def _stamp(value: datetime | None) -> datetime:
    return value or _EPOCH
