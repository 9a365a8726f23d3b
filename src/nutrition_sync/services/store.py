"""Local-first nutrition store with write-through persistence."""

import logging
from collections.abc import Callable
from dataclasses import dataclass, field, fields, replace
from datetime import datetime
from uuid import uuid4

from nutrition_sync.clock import Clock, utc_now
from nutrition_sync.domain.foods import (
    FoodCategory,
    FoodItem,
    FoodTemplate,
    RecordedItem,
    recorded_from_template,
)
from nutrition_sync.domain.logs import (
    DailyLog,
    MealEntry,
    MealType,
    NutritionGoals,
    WeightEntry,
)
from nutrition_sync.domain.snapshot import Snapshot
from nutrition_sync.services.aggregates import with_totals
from nutrition_sync.services.notifications import NotificationEvent, Notifier
from nutrition_sync.services.storage import SnapshotStorage, SyncBookkeepingStore

_logger = logging.getLogger(__name__)

_GOAL_FIELDS = {f.name for f in fields(NutritionGoals)} - {"last_modified"}
_TEMPLATE_FIELDS = {f.name for f in fields(FoodTemplate) if f.init} - {
    "id",
    "created_at",
    "last_modified",
}
_MEAL_TYPES = {"breakfast", "lunch", "dinner", "snack"}
MIN_MOOD = 1
MAX_MOOD = 5


def _new_id() -> str:
    return str(uuid4())


@dataclass
class NutritionStore:
    """In-process state container for nutrition data.

    Mutations apply to memory, re-derive daily totals, stamp modification
    times, persist synchronously and then notify and schedule a background
    sync. Invalid input is dropped with a log line; nothing is raised to the
    caller.
    """

    snapshot_storage: SnapshotStorage
    bookkeeping: SyncBookkeepingStore
    notifier: Notifier
    clock: Clock = utc_now
    id_factory: Callable[[], str] = _new_id
    on_change: Callable[[], object] | None = None
    is_loading: bool = field(default=False, init=False)
    is_initialized: bool = field(default=False, init=False)
    error: str | None = field(default=None, init=False)
    _snapshot: Snapshot = field(init=False)

    def __post_init__(self) -> None:
        self._snapshot = Snapshot(current_date=self._today())

    # Lifecycle

    def initialize(self) -> None:
        """Load the persisted snapshot into memory."""
        self.is_loading = True
        self.error = None
        try:
            loaded = self.snapshot_storage.load(default_date=self._today())
            if loaded is not None:
                self._snapshot = loaded
        except Exception:
            _logger.exception("Failed to initialize nutrition data")
            self.error = "Failed to initialize data"
        finally:
            self.is_loading = False
        self.is_initialized = self.error is None

    def snapshot(self) -> Snapshot:
        """Return the current in-memory snapshot."""
        return self._snapshot

    @property
    def current_date(self) -> str:
        return self._snapshot.current_date

    def set_current_date(self, date: str) -> None:
        """Select the date the UI is showing."""
        self._snapshot = replace(self._snapshot, current_date=date)
        self._persist()

    # Meals

    def add_meal(self, entry: MealEntry) -> MealEntry | None:
        """Append a meal entry to the log for its date."""
        if entry.quantity <= 0:
            _logger.warning("Rejected meal %s: quantity must be positive", entry.id)
            return None
        if entry.meal_type not in _MEAL_TYPES:
            _logger.warning("Rejected meal %s: unknown meal type", entry.id)
            return None
        now = self.clock()
        date = entry.date or self._snapshot.current_date
        entry = replace(entry, date=date, food_item=self._as_recorded(entry.food_item))
        log = self._log_for(date)
        updated = with_totals(
            replace(log, meals=(*log.meals, entry), last_modified=now)
        )
        self._commit(
            self._with_log(updated),
            NotificationEvent(
                "meal",
                "added",
                {
                    "name": entry.food_item.name,
                    "calories": round(entry.food_item.calories * entry.quantity),
                },
            ),
        )
        return entry

    def log_food(
        self,
        food: FoodItem,
        *,
        quantity: float = 1.0,
        meal_type: MealType = "snack",
        date: str | None = None,
    ) -> MealEntry | None:
        """Record a template or recorded item as a new meal entry."""
        entry = MealEntry(
            id=self.id_factory(),
            food_item=self._as_recorded(food),
            quantity=quantity,
            meal_type=meal_type,
            date=date or self._snapshot.current_date,
        )
        return self.add_meal(entry)

    def remove_meal(self, entry_id: str) -> MealEntry | None:
        """Remove a meal entry by id; unknown ids are ignored."""
        found = self._find_meal(entry_id)
        if found is None:
            return None
        log, removed = found
        updated = with_totals(
            replace(
                log,
                meals=tuple(meal for meal in log.meals if meal.id != entry_id),
                last_modified=self.clock(),
            )
        )
        self._commit(
            self._with_log(updated),
            NotificationEvent(
                "meal",
                "removed",
                {
                    "name": removed.food_item.name,
                    "calories": round(removed.food_item.calories * removed.quantity),
                },
            ),
        )
        return removed

    def update_meal_entry(
        self,
        entry_id: str,
        *,
        quantity: float | None = None,
        meal_type: MealType | None = None,
    ) -> MealEntry | None:
        """Edit quantity or meal type in place and re-derive the day's totals."""
        if quantity is not None and quantity <= 0:
            _logger.warning("Rejected edit of %s: quantity must be positive", entry_id)
            return None
        if meal_type is not None and meal_type not in _MEAL_TYPES:
            _logger.warning("Rejected edit of %s: unknown meal type", entry_id)
            return None
        found = self._find_meal(entry_id)
        if found is None:
            return None
        log, current = found
        edited = replace(
            current,
            quantity=current.quantity if quantity is None else quantity,
            meal_type=current.meal_type if meal_type is None else meal_type,
        )
        updated = with_totals(
            replace(
                log,
                meals=tuple(edited if m.id == entry_id else m for m in log.meals),
                last_modified=self.clock(),
            )
        )
        self._commit(
            self._with_log(updated),
            NotificationEvent("meal", "updated", {"name": edited.food_item.name}),
        )
        return edited

    def clear_day(self, date: str | None = None) -> DailyLog | None:
        """Drop all meals for a date, keeping water, mood and weight."""
        target = date or self._snapshot.current_date
        log = self._snapshot.daily_logs.get(target)
        if log is None:
            return None
        updated = with_totals(replace(log, meals=(), last_modified=self.clock()))
        self._commit(self._with_log(updated), NotificationEvent("data", "cleared"))
        return updated

    # Food items and templates

    def add_food_template(self, template: FoodTemplate) -> FoodTemplate | None:
        """Add a template, replacing any existing template with the same id."""
        if not template.name.strip():
            _logger.warning("Rejected template %s: empty name", template.id)
            return None
        stamped = replace(template, last_modified=self.clock())
        templates = [t for t in self._snapshot.food_templates if t.id != template.id]
        templates.append(stamped)
        self._commit(
            replace(self._snapshot, food_templates=tuple(templates)),
            NotificationEvent("template", "added", {"name": stamped.name}),
        )
        return stamped

    def update_food_template(
        self, template_id: str, **changes: object
    ) -> FoodTemplate | None:
        """Apply field changes to a template; unknown ids are ignored."""
        unknown = set(changes) - _TEMPLATE_FIELDS
        if unknown:
            _logger.warning("Rejected template update: unknown fields %s", unknown)
            return None
        if "name" in changes and not str(changes["name"]).strip():
            _logger.warning("Rejected template update: empty name")
            return None
        template = self.get_food_template(template_id)
        if template is None:
            return None
        updated = replace(
            template, **changes, last_modified=self.clock()  # type: ignore[arg-type]
        )
        self._commit(
            replace(
                self._snapshot,
                food_templates=tuple(
                    updated if t.id == template_id else t
                    for t in self._snapshot.food_templates
                ),
            ),
            NotificationEvent("template", "updated", {"name": updated.name}),
        )
        return updated

    def remove_food_template(self, template_id: str) -> FoodTemplate | None:
        """Delete a template. Meals recorded from it keep their copied values."""
        template = self.get_food_template(template_id)
        if template is None:
            return None
        self._commit(
            replace(
                self._snapshot,
                food_templates=tuple(
                    t for t in self._snapshot.food_templates if t.id != template_id
                ),
            ),
            NotificationEvent("template", "removed", {"name": template.name}),
        )
        return template

    def get_food_template(self, template_id: str) -> FoodTemplate | None:
        for template in self._snapshot.food_templates:
            if template.id == template_id:
                return template
        return None

    def create_item_from_template(
        self, template_id: str, **overrides: object
    ) -> RecordedItem | None:
        """Build a recorded item from a template, or None for an unknown id."""
        template = self.get_food_template(template_id)
        if template is None:
            return None
        return recorded_from_template(
            template,
            item_id=self.id_factory(),
            recorded_at=self.clock(),
            overrides=overrides,
        )

    def create_item_from_scratch(  # noqa: PLR0913
        self,
        *,
        name: str,
        calories: float,
        protein: float,
        fat: float,
        carbs: float,
        serving_size: str = "1 serving",
        category: FoodCategory = "other",
        brand_name: str | None = None,
    ) -> RecordedItem:
        """Build a recorded item that is not linked to any template."""
        return RecordedItem(
            id=self.id_factory(),
            name=name,
            calories=calories,
            protein=protein,
            fat=fat,
            carbs=carbs,
            serving_size=serving_size,
            category=category,
            recorded_at=self.clock(),
            brand_name=brand_name,
        )

    # Goals and mood

    def update_goals(self, **changes: float | None) -> NutritionGoals | None:
        """Apply a partial goals update."""
        unknown = set(changes) - _GOAL_FIELDS
        if unknown:
            _logger.warning("Rejected goals update: unknown fields %s", unknown)
            return None
        for name, value in changes.items():
            if value is None and name == "weight":
                continue
            if not isinstance(value, int | float) or value <= 0:
                _logger.warning("Rejected goals update: %s must be positive", name)
                return None
        goals = replace(
            self._snapshot.goals,
            **changes,  # type: ignore[arg-type]
            last_modified=self.clock(),
        )
        self._commit(
            replace(self._snapshot, goals=goals),
            NotificationEvent("goals", "updated"),
        )
        return goals

    def update_daily_mood(
        self, date: str, mood_rating: int, notes: str | None = None
    ) -> DailyLog | None:
        """Set the mood rating and note for a date."""
        if not isinstance(mood_rating, int) or not MIN_MOOD <= mood_rating <= MAX_MOOD:
            _logger.warning("Rejected mood for %s: rating out of range", date)
            return None
        updated = replace(
            self._log_for(date),
            mood_rating=mood_rating,
            notes=notes.strip() if notes and notes.strip() else None,
            last_modified=self.clock(),
        )
        self._commit(self._with_log(updated), NotificationEvent("mood", "updated"))
        return updated

    def get_mood(self, date: str) -> tuple[int | None, str | None] | None:
        """Return (mood_rating, notes) for a date, or None without a log."""
        log = self._snapshot.daily_logs.get(date)
        if log is None:
            return None
        return log.mood_rating, log.notes

    def get_daily_mood(self) -> tuple[int | None, str | None] | None:
        """Return the mood for the current date."""
        return self.get_mood(self._snapshot.current_date)

    # Water

    def add_water_intake(self, date: str, amount: float) -> DailyLog | None:
        """Add to the water accumulator for a date."""
        if amount <= 0:
            _logger.warning("Rejected water for %s: amount must be positive", date)
            return None
        log = self._log_for(date)
        updated = replace(
            log, water_intake=log.water_intake + amount, last_modified=self.clock()
        )
        goal = self._snapshot.goals.water
        percentage = 100
        if goal:
            percentage = min(round(updated.water_intake / goal * 100), 100)
        if percentage >= 100:  # noqa: PLR2004
            event = NotificationEvent("water", "goal_complete", {"goal": goal})
        else:
            event = NotificationEvent(
                "water",
                "added",
                {
                    "current": updated.water_intake,
                    "goal": goal,
                    "percentage": percentage,
                },
            )
        self._commit(self._with_log(updated), event)
        return updated

    def reset_water_intake(self, date: str) -> DailyLog | None:
        """Zero the water accumulator for a date; no log means no change."""
        log = self._snapshot.daily_logs.get(date)
        if log is None:
            return None
        updated = replace(log, water_intake=0.0, last_modified=self.clock())
        self._commit(self._with_log(updated), NotificationEvent("water", "reset"))
        return updated

    def get_water_intake(self, date: str) -> float:
        log = self._snapshot.daily_logs.get(date)
        return log.water_intake if log else 0.0

    def get_water_goal(self) -> float:
        return self._snapshot.goals.water

    # Weight

    def add_weight_entry(self, entry: WeightEntry) -> WeightEntry | None:
        """Upsert a weight entry by date and mirror it onto the daily log."""
        if entry.weight <= 0:
            _logger.warning("Rejected weight for %s: must be positive", entry.date)
            return None
        now = self.clock()
        stamped = replace(entry, recorded_at=now)
        history = [e for e in self._snapshot.weight_history if e.date != entry.date]
        history.append(stamped)
        history.sort(key=lambda e: e.date, reverse=True)
        log = replace(self._log_for(entry.date), weight=entry.weight, last_modified=now)
        snapshot = replace(
            self._with_log(log, self._snapshot), weight_history=tuple(history)
        )
        self._commit(
            snapshot, NotificationEvent("weight", "added", {"weight": entry.weight})
        )
        return stamped

    def update_weight_entry(
        self, date: str, weight: float, note: str | None = None
    ) -> WeightEntry | None:
        """Replace the weight recorded for a date."""
        return self.add_weight_entry(WeightEntry(date=date, weight=weight, note=note))

    def remove_weight_entry(self, date: str) -> WeightEntry | None:
        """Delete the weight entry for a date and clear the log's weight."""
        existing = self.get_weight_entry(date)
        if existing is None:
            return None
        history = tuple(e for e in self._snapshot.weight_history if e.date != date)
        snapshot = replace(self._snapshot, weight_history=history)
        log = self._snapshot.daily_logs.get(date)
        if log is not None:
            snapshot = self._with_log(
                replace(log, weight=None, last_modified=self.clock()), snapshot
            )
        self._commit(
            snapshot,
            NotificationEvent("weight", "removed", {"weight": existing.weight}),
        )
        return existing

    def get_weight_entry(self, date: str) -> WeightEntry | None:
        """Return the entry for a date, falling back to the daily log's weight."""
        for entry in self._snapshot.weight_history:
            if entry.date == date:
                return entry
        log = self._snapshot.daily_logs.get(date)
        if log is not None and log.weight:
            return WeightEntry(date=date, weight=log.weight)
        return None

    def get_weight_entries(self, limit: int | None = None) -> list[WeightEntry]:
        """Return weight entries newest first."""
        entries = sorted(
            self._snapshot.weight_history, key=lambda e: e.date, reverse=True
        )
        return entries[:limit] if limit is not None else entries

    def get_weight_goal(self) -> float | None:
        return self._snapshot.goals.weight

    def get_daily_log(self, date: str) -> DailyLog | None:
        return self._snapshot.daily_logs.get(date)

    # Sync glue

    def apply_remote_snapshot(self, snapshot: Snapshot) -> None:
        """Replace durable data with a reconciled snapshot.

        The last local update time is left alone so pulled data is not
        pushed straight back.
        """
        self._snapshot = snapshot
        self._persist()

    def mark_synced(self, at: datetime) -> None:
        """Record a successful sync time and clear any sync error."""
        self._snapshot = replace(self._snapshot, last_sync_time=at)
        self.error = None
        self._persist()

    def set_error(self, message: str | None) -> None:
        self.error = message

    # Internals

    def _commit(self, snapshot: Snapshot, event: NotificationEvent) -> None:
        self._snapshot = snapshot
        if self._persist():
            try:
                self.bookkeeping.set_last_local_update(self.clock())
            except Exception:
                _logger.exception("Failed to record last local update time")
        self.notifier.notify(event)
        if self.on_change is not None:
            self.on_change()

    def _persist(self) -> bool:
        try:
            self.snapshot_storage.save(self._snapshot)
        except Exception:
            _logger.exception("Failed to persist nutrition snapshot")
            self.error = "Failed to save data"
            return False
        return True

    def _log_for(self, date: str) -> DailyLog:
        existing = self._snapshot.daily_logs.get(date)
        if existing is not None:
            return existing
        return DailyLog(date=date, last_modified=self.clock())

    def _with_log(self, log: DailyLog, snapshot: Snapshot | None = None) -> Snapshot:
        base = snapshot or self._snapshot
        return replace(base, daily_logs={**base.daily_logs, log.date: log})

    def _find_meal(self, entry_id: str) -> tuple[DailyLog, MealEntry] | None:
        for log in self._snapshot.daily_logs.values():
            for meal in log.meals:
                if meal.id == entry_id:
                    return log, meal
        return None

    def _as_recorded(self, food: FoodItem) -> RecordedItem:
        match food.kind:
            case "recorded":
                return food  # type: ignore[return-value]
            case "template":
                return recorded_from_template(
                    food,  # type: ignore[arg-type]
                    item_id=self.id_factory(),
                    recorded_at=self.clock(),
                )
        raise ValueError(f"Unknown food item kind: {food.kind}")

    def _today(self) -> str:
        return self.clock().date().isoformat()
