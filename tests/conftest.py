"""Shared test fixtures."""

import asyncio
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta

import pytest

from nutrition_sync.adapters.fdc_client import FdcClient
from nutrition_sync.adapters.remote_client import RemoteNutritionClient
from nutrition_sync.config import Settings
from nutrition_sync.domain.foods import FoodTemplate, RecordedItem
from nutrition_sync.domain.logs import MealEntry
from nutrition_sync.domain.snapshot import Snapshot
from nutrition_sync.domain.sync import RemoteState
from nutrition_sync.services.notifications import NotificationEvent, Notifier
from nutrition_sync.services.scheduler import SyncScheduler
from nutrition_sync.services.storage import (
    KeyValueStore,
    SnapshotStorage,
    SyncBookkeepingStore,
)
from nutrition_sync.services.store import NutritionStore
from nutrition_sync.services.sync import StaticConnectivity, SyncService

START = datetime(2024, 1, 10, 8, 0, tzinfo=UTC)


@dataclass
class FakeClock:
    """Manually advanced clock."""

    now: datetime = START

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> datetime:
        self.now = self.now + timedelta(seconds=seconds)
        return self.now


@dataclass
class InMemoryKeyValueStore(KeyValueStore):
    """In-memory key-value store for tests."""

    values: dict[str, object] = field(default_factory=dict)
    writes: int = 0

    def get(self, key: str) -> object | None:
        return self.values.get(key)

    def set(self, key: str, value: object) -> None:
        self.writes += 1
        self.values[key] = value

    def delete(self, key: str) -> None:
        self.values.pop(key, None)


@dataclass
class FailingKeyValueStore(InMemoryKeyValueStore):
    """Store whose writes always fail."""

    def set(self, key: str, value: object) -> None:
        raise OSError("disk full")


@dataclass
class RecordingNotifier(Notifier):
    """Notifier that keeps every event."""

    events: list[NotificationEvent] = field(default_factory=list)

    def notify(self, event: NotificationEvent) -> None:
        self.events.append(event)

    def outcomes(self) -> list[tuple[str, str]]:
        return [(event.category, event.outcome) for event in self.events]


@dataclass
class FakeRemoteClient(RemoteNutritionClient):
    """Remote client returning canned responses and recording pushes."""

    state: RemoteState = field(
        default_factory=lambda: RemoteState(has_updates=False, last_sync=None)
    )
    server_time: datetime | None = None
    error: Exception | None = None
    delay_seconds: float = 0.0
    on_push: Callable[[], object] | None = None
    fetches: list[datetime | None] = field(default_factory=list)
    pushes: list[tuple[Snapshot, datetime]] = field(default_factory=list)

    async def fetch(self, last_sync: datetime | None) -> RemoteState:
        self.fetches.append(last_sync)
        if self.delay_seconds:
            await asyncio.sleep(self.delay_seconds)
        if self.error is not None:
            raise self.error
        return self.state

    async def push(self, snapshot: Snapshot, updated_at: datetime) -> datetime | None:
        self.pushes.append((snapshot, updated_at))
        if self.on_push is not None:
            self.on_push()
        return self.server_time


@dataclass
class CountingFdcClient(FdcClient):
    """FDC client returning a branded food with a 30 g serving."""

    search_calls: int = 0
    food_calls: int = 0
    failures_left: int = 0

    async def search_foods(self, query: str, page_size: int = 10) -> dict[str, object]:
        self.search_calls += 1
        return {
            "foods": [
                {
                    "fdcId": 2001,
                    "description": "Rolled oats",
                    "brandOwner": "Oat Mill Co",
                    "brandName": None,
                    "dataType": "Branded",
                }
            ]
        }

    async def get_food(self, fdc_id: int) -> dict[str, object]:
        self.food_calls += 1
        if self.failures_left:
            self.failures_left -= 1
            raise RuntimeError("catalog unavailable")
        return {
            "fdcId": fdc_id,
            "description": "Rolled oats",
            "brandOwner": "Oat Mill Co",
            "dataType": "Branded",
            "servingSize": 30,
            "servingSizeUnit": "g",
            "ingredients": "WHOLE GRAIN OATS",
            "foodNutrients": [
                {"nutrient": {"id": 1008}, "amount": 380},
                {"nutrient": {"id": 1003}, "amount": 13},
                {"nutrient": {"id": 1004}, "amount": 6.5},
                {"nutrientId": 1005, "value": 68},
            ],
        }


def make_item(  # noqa: PLR0913
    item_id: str = "item-1",
    name: str = "Oatmeal",
    calories: float = 150,
    protein: float = 5,
    carbs: float = 27,
    fat: float = 3,
) -> RecordedItem:
    return RecordedItem(
        id=item_id,
        name=name,
        calories=calories,
        protein=protein,
        fat=fat,
        carbs=carbs,
        serving_size="1 cup",
        category="grain",
        recorded_at=START,
    )


def make_meal(
    meal_id: str,
    date: str = "2024-01-10",
    calories: float = 150,
    quantity: float = 1.0,
) -> MealEntry:
    return MealEntry(
        id=meal_id,
        food_item=make_item(item_id=f"item-{meal_id}", calories=calories),
        quantity=quantity,
        meal_type="breakfast",
        date=date,
    )


def make_template(
    template_id: str = "tpl-1", name: str = "Greek yogurt", calories: float = 100
) -> FoodTemplate:
    return FoodTemplate(
        id=template_id,
        name=name,
        calories=calories,
        protein=10,
        fat=0,
        carbs=4,
        serving_size="170 g",
        category="dairy",
        favorite=True,
        created_at=START,
    )


@dataclass
class Device:
    """One client: storage, store, scheduler and sync service."""

    kv_store: InMemoryKeyValueStore
    bookkeeping: SyncBookkeepingStore
    store: NutritionStore
    scheduler: SyncScheduler
    notifier: RecordingNotifier
    connectivity: StaticConnectivity
    sync_service: SyncService


def make_device(
    clock: FakeClock,
    client: RemoteNutritionClient,
    kv_store: InMemoryKeyValueStore | None = None,
) -> Device:
    kv = kv_store or InMemoryKeyValueStore()
    bookkeeping = SyncBookkeepingStore(kv)
    notifier = RecordingNotifier()
    counter = iter(range(1, 1_000_000))
    store = NutritionStore(
        snapshot_storage=SnapshotStorage(kv),
        bookkeeping=bookkeeping,
        notifier=notifier,
        clock=clock,
        id_factory=lambda: f"id-{next(counter)}",
    )
    store.initialize()
    scheduler = SyncScheduler(bookkeeping=bookkeeping, clock=clock)
    connectivity = StaticConnectivity()
    sync_service = SyncService(
        store=store,
        client=client,
        scheduler=scheduler,
        bookkeeping=bookkeeping,
        notifier=notifier,
        connectivity=connectivity,
        clock=clock,
    )
    return Device(
        kv_store=kv,
        bookkeeping=bookkeeping,
        store=store,
        scheduler=scheduler,
        notifier=notifier,
        connectivity=connectivity,
        sync_service=sync_service,
    )


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def kv_store() -> InMemoryKeyValueStore:
    return InMemoryKeyValueStore()


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def bookkeeping(kv_store: InMemoryKeyValueStore) -> SyncBookkeepingStore:
    return SyncBookkeepingStore(kv_store)


@pytest.fixture
def store(
    kv_store: InMemoryKeyValueStore,
    bookkeeping: SyncBookkeepingStore,
    notifier: RecordingNotifier,
    clock: FakeClock,
) -> NutritionStore:
    counter = iter(range(1, 1_000_000))
    nutrition_store = NutritionStore(
        snapshot_storage=SnapshotStorage(kv_store),
        bookkeeping=bookkeeping,
        notifier=notifier,
        clock=clock,
        id_factory=lambda: f"id-{next(counter)}",
    )
    nutrition_store.initialize()
    return nutrition_store


@pytest.fixture
def scheduler(bookkeeping: SyncBookkeepingStore, clock: FakeClock) -> SyncScheduler:
    return SyncScheduler(bookkeeping=bookkeeping, clock=clock)


@pytest.fixture
def remote_client() -> FakeRemoteClient:
    return FakeRemoteClient()


@pytest.fixture
def device(clock: FakeClock, remote_client: FakeRemoteClient) -> Device:
    return make_device(clock, remote_client)


@pytest.fixture
def settings(tmp_path) -> Settings:  # type: ignore[no-untyped-def]
    return Settings(
        remote_base_url="https://sync.example.com",
        remote_token="device-token",
        storage_path=str(tmp_path / "storage.json"),
        server_tokens="alice:alice-token,bob:bob-token",
        fdc_api_key="fdc-key",
    )
