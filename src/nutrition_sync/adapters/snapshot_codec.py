"""JSON codec for snapshots in the storage and wire format."""

from datetime import UTC, datetime, timedelta

from nutrition_sync.domain.foods import FoodCategory, FoodTemplate, RecordedItem
from nutrition_sync.domain.logs import DailyLog, MealEntry, NutritionGoals, WeightEntry
from nutrition_sync.domain.snapshot import Snapshot

_EPOCH = datetime.fromtimestamp(0, tz=UTC)


def parse_timestamp(value: object) -> datetime | None:
    """Parse an ISO-8601 string or epoch milliseconds into an aware datetime."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, int | float) and not isinstance(value, bool):
        return _EPOCH + timedelta(milliseconds=value)
    elif isinstance(value, str):
        try:
            parsed = datetime.fromisoformat(value)
        except ValueError:
            return None
    else:
        return None
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=UTC)
    return parsed


def format_timestamp(value: datetime | None) -> str | None:
    """Format a datetime as an ISO-8601 UTC string."""
    if value is None:
        return None
    utc = value.astimezone(UTC)
    return utc.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def to_epoch_ms(value: datetime) -> int:
    """Return epoch milliseconds for a datetime."""
    return (value - _EPOCH) // timedelta(milliseconds=1)


def truncate_to_ms(value: datetime) -> datetime:
    """Drop sub-millisecond precision so values survive the wire format."""
    return value.replace(microsecond=value.microsecond // 1000 * 1000)


def snapshot_to_dict(snapshot: Snapshot) -> dict[str, object]:
    """Serialize a snapshot into JSON-compatible data."""
    return {
        "goals": goals_to_dict(snapshot.goals),
        "foodTemplates": [template_to_dict(t) for t in snapshot.food_templates],
        "dailyLogs": {
            date: daily_log_to_dict(log) for date, log in snapshot.daily_logs.items()
        },
        "weightHistory": [weight_to_dict(entry) for entry in snapshot.weight_history],
        "currentDate": snapshot.current_date,
        "lastSyncTime": format_timestamp(snapshot.last_sync_time),
    }


def snapshot_from_dict(data: dict[str, object], default_date: str = "") -> Snapshot:
    """Build a snapshot from JSON data, tolerating missing sections."""
    raw_goals = data.get("goals")
    raw_templates = data.get("foodTemplates")
    if raw_templates is None:
        # Older payloads kept templates under favoriteFoods.
        raw_templates = data.get("favoriteFoods")
    raw_logs = data.get("dailyLogs")
    raw_weights = data.get("weightHistory")
    goals = goals_from_dict(raw_goals) if isinstance(raw_goals, dict) else None
    return Snapshot(
        goals=goals or NutritionGoals(),
        food_templates=tuple(
            template_from_dict(item)
            for item in _as_list(raw_templates)
            if isinstance(item, dict)
        ),
        daily_logs={
            str(date): daily_log_from_dict(log, str(date))
            for date, log in (raw_logs.items() if isinstance(raw_logs, dict) else ())
            if isinstance(log, dict)
        },
        weight_history=tuple(
            weight_from_dict(item)
            for item in _as_list(raw_weights)
            if isinstance(item, dict)
        ),
        current_date=str(data.get("currentDate") or default_date),
        last_sync_time=parse_timestamp(data.get("lastSyncTime")),
    )


def goals_to_dict(goals: NutritionGoals) -> dict[str, object]:
    return {
        "calories": goals.calories,
        "protein": goals.protein,
        "carbs": goals.carbs,
        "fat": goals.fat,
        "water": goals.water,
        "weight": goals.weight,
        "lastModified": format_timestamp(goals.last_modified),
    }


def goals_from_dict(data: dict[str, object]) -> NutritionGoals:
    defaults = NutritionGoals()
    weight = data.get("weight", defaults.weight)
    return NutritionGoals(
        calories=_to_float(data.get("calories"), defaults.calories),
        protein=_to_float(data.get("protein"), defaults.protein),
        carbs=_to_float(data.get("carbs"), defaults.carbs),
        fat=_to_float(data.get("fat"), defaults.fat),
        water=_to_float(data.get("water"), defaults.water),
        weight=None if weight is None else _to_float(weight, 0.0),
        last_modified=parse_timestamp(data.get("lastModified")),
    )


def template_to_dict(template: FoodTemplate) -> dict[str, object]:
    return {
        "id": template.id,
        "name": template.name,
        "calories": template.calories,
        "protein": template.protein,
        "fat": template.fat,
        "carbs": template.carbs,
        "servingSize": template.serving_size,
        "category": template.category,
        "favorite": template.favorite,
        "createdAt": format_timestamp(template.created_at),
        "usdaId": template.usda_id,
        "brandName": template.brand_name,
        "ingredients": template.ingredients,
        "dataType": template.data_type,
        "mealCategory": template.meal_category,
        "lastModified": format_timestamp(template.last_modified),
        "isTemplate": True,
    }


def template_from_dict(data: dict[str, object]) -> FoodTemplate:
    return FoodTemplate(
        id=str(data.get("id", "")),
        name=str(data.get("name", "")),
        calories=_to_float(data.get("calories"), 0.0),
        protein=_to_float(data.get("protein"), 0.0),
        fat=_to_float(data.get("fat"), 0.0),
        carbs=_to_float(data.get("carbs"), 0.0),
        serving_size=str(data.get("servingSize") or ""),
        category=_category(data.get("category")),
        favorite=bool(data.get("favorite", True)),
        created_at=parse_timestamp(data.get("createdAt")) or _EPOCH,
        usda_id=_to_int(data.get("usdaId")),
        brand_name=_optional_str(data.get("brandName")),
        ingredients=_optional_str(data.get("ingredients")),
        data_type=_optional_str(data.get("dataType")),
        meal_category=_optional_str(data.get("mealCategory")),
        last_modified=parse_timestamp(data.get("lastModified")),
    )


def recorded_item_to_dict(item: RecordedItem) -> dict[str, object]:
    return {
        "id": item.id,
        "name": item.name,
        "calories": item.calories,
        "protein": item.protein,
        "fat": item.fat,
        "carbs": item.carbs,
        "servingSize": item.serving_size,
        "category": item.category,
        "recordedAt": format_timestamp(item.recorded_at),
        "templateId": item.template_id,
        "usdaId": item.usda_id,
        "brandName": item.brand_name,
        "ingredients": item.ingredients,
    }


def recorded_item_from_dict(data: dict[str, object]) -> RecordedItem:
    return RecordedItem(
        id=str(data.get("id", "")),
        name=str(data.get("name", "")),
        calories=_to_float(data.get("calories"), 0.0),
        protein=_to_float(data.get("protein"), 0.0),
        fat=_to_float(data.get("fat"), 0.0),
        carbs=_to_float(data.get("carbs"), 0.0),
        serving_size=str(data.get("servingSize") or ""),
        category=_category(data.get("category")),
        recorded_at=parse_timestamp(data.get("recordedAt")) or _EPOCH,
        template_id=_optional_str(data.get("templateId")),
        usda_id=_to_int(data.get("usdaId")),
        brand_name=_optional_str(data.get("brandName")),
        ingredients=_optional_str(data.get("ingredients")),
    )


def meal_to_dict(meal: MealEntry) -> dict[str, object]:
    return {
        "id": meal.id,
        "foodItem": recorded_item_to_dict(meal.food_item),
        "quantity": meal.quantity,
        "mealType": meal.meal_type,
        "date": meal.date,
    }


def meal_from_dict(data: dict[str, object], date: str) -> MealEntry:
    raw_item = data.get("foodItem")
    meal_type = data.get("mealType")
    return MealEntry(
        id=str(data.get("id", "")),
        food_item=recorded_item_from_dict(
            raw_item if isinstance(raw_item, dict) else {}
        ),
        quantity=_to_float(data.get("quantity"), 1.0),
        meal_type=meal_type if meal_type in _MEAL_TYPES else "snack",
        date=str(data.get("date") or date),
    )


def daily_log_to_dict(log: DailyLog) -> dict[str, object]:
    return {
        "date": log.date,
        "meals": [meal_to_dict(meal) for meal in log.meals],
        "totalCalories": log.total_calories,
        "totalProtein": log.total_protein,
        "totalFat": log.total_fat,
        "totalCarbs": log.total_carbs,
        "moodRating": log.mood_rating,
        "notes": log.notes,
        "waterIntake": log.water_intake,
        "weight": log.weight,
        "lastModified": format_timestamp(log.last_modified),
    }


def daily_log_from_dict(data: dict[str, object], date: str) -> DailyLog:
    mood = data.get("moodRating")
    weight = data.get("weight")
    return DailyLog(
        date=str(data.get("date") or date),
        meals=tuple(
            meal_from_dict(meal, date)
            for meal in _as_list(data.get("meals"))
            if isinstance(meal, dict)
        ),
        total_calories=_to_float(data.get("totalCalories"), 0.0),
        total_protein=_to_float(data.get("totalProtein"), 0.0),
        total_fat=_to_float(data.get("totalFat"), 0.0),
        total_carbs=_to_float(data.get("totalCarbs"), 0.0),
        mood_rating=_to_int(mood),
        notes=_optional_str(data.get("notes")),
        water_intake=_to_float(data.get("waterIntake"), 0.0),
        weight=None if weight is None else _to_float(weight, 0.0),
        last_modified=parse_timestamp(data.get("lastModified")),
    )


def weight_to_dict(entry: WeightEntry) -> dict[str, object]:
    return {
        "date": entry.date,
        "weight": entry.weight,
        "note": entry.note,
        "recordedAt": format_timestamp(entry.recorded_at),
    }


def weight_from_dict(data: dict[str, object]) -> WeightEntry:
    return WeightEntry(
        date=str(data.get("date", "")),
        weight=_to_float(data.get("weight"), 0.0),
        note=_optional_str(data.get("note")),
        recorded_at=parse_timestamp(data.get("recordedAt")),
    )


_MEAL_TYPES = {"breakfast", "lunch", "dinner", "snack"}
_CATEGORIES = {
    "protein",
    "vegetable",
    "fruit",
    "grain",
    "dairy",
    "snack",
    "beverage",
    "other",
}


def _category(value: object) -> FoodCategory:
    if isinstance(value, str) and value in _CATEGORIES:
        return value  # type: ignore[return-value]
    return "other"


def _as_list(value: object) -> list[object]:
    return value if isinstance(value, list) else []


def _optional_str(value: object) -> str | None:
    if value is None:
        return None
    return str(value)


def _to_int(value: object) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int | float):
        return int(value)
    if isinstance(value, str) and value.strip().lstrip("-").isdigit():
        return int(value)
    return None


def _to_float(value: object, default: float) -> float:
    if isinstance(value, bool):
        return default
    if isinstance(value, int | float):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value)
        except ValueError:
            return default
    return default
