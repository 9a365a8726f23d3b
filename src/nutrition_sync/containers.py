"""Dependency container wiring for the application."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from pathlib import Path

from supabase import Client, create_client

from nutrition_sync.adapters.fdc_client import HttpxFdcClient
from nutrition_sync.adapters.json_file_store import JsonFileKeyValueStore
from nutrition_sync.adapters.remote_client import HttpxRemoteNutritionClient
from nutrition_sync.adapters.supabase_kv_store import SupabaseKeyValueStore
from nutrition_sync.adapters.supabase_snapshot_repository import (
    SupabaseSnapshotRepository,
)
from nutrition_sync.config import Settings
from nutrition_sync.services.background import BackgroundSyncRunner
from nutrition_sync.services.cache import InMemoryCache
from nutrition_sync.services.catalog import CatalogService
from nutrition_sync.services.notifications import LoggingNotifier, Notifier
from nutrition_sync.services.scheduler import SyncScheduler
from nutrition_sync.services.server import (
    InMemorySnapshotRepository,
    SnapshotRepository,
    SnapshotServerService,
)
from nutrition_sync.services.storage import (
    KeyValueStore,
    SnapshotStorage,
    SyncBookkeepingStore,
)
from nutrition_sync.services.store import NutritionStore
from nutrition_sync.services.sync import StaticConnectivity, SyncService


@dataclass
class AppContainer:
    """Holds application-wide dependencies; one per running client."""

    settings: Settings
    store: NutritionStore
    scheduler: SyncScheduler
    sync_service: SyncService
    background_sync: BackgroundSyncRunner
    connectivity: StaticConnectivity
    catalog_service: CatalogService
    server_service: SnapshotServerService
    close_resources: Callable[[], Awaitable[None]]


def build_container(
    settings: Settings | None = None, notifier: Notifier | None = None
) -> AppContainer:
    """Create the default dependency container and load persisted data."""
    resolved_settings = settings or Settings()
    resolved_notifier = notifier or LoggingNotifier()
    supabase_client: Client | None = None
    backends = {resolved_settings.storage_backend, resolved_settings.server_storage}
    if "supabase" in backends:
        url = resolved_settings.supabase_url
        key = resolved_settings.supabase_service_key
        if not url or not key:
            raise RuntimeError("Supabase storage requires supabase_url and key")
        supabase_client = create_client(url, key)

    kv_store: KeyValueStore
    if resolved_settings.storage_backend == "supabase" and supabase_client is not None:
        kv_store = SupabaseKeyValueStore(
            supabase_client, namespace=resolved_settings.storage_namespace
        )
    else:
        kv_store = JsonFileKeyValueStore(Path(resolved_settings.storage_path))

    bookkeeping = SyncBookkeepingStore(kv_store)
    store = NutritionStore(
        snapshot_storage=SnapshotStorage(kv_store),
        bookkeeping=bookkeeping,
        notifier=resolved_notifier,
    )
    scheduler = SyncScheduler(
        bookkeeping=bookkeeping,
        cooldown_seconds=resolved_settings.sync_cooldown_seconds,
        window_seconds=resolved_settings.sync_window_seconds,
        max_attempts=resolved_settings.sync_max_attempts,
    )
    remote_client = HttpxRemoteNutritionClient.create(
        base_url=resolved_settings.remote_base_url,
        token=resolved_settings.remote_token,
        timeout_seconds=resolved_settings.sync_timeout_seconds,
    )
    connectivity = StaticConnectivity()
    sync_service = SyncService(
        store=store,
        client=remote_client,
        scheduler=scheduler,
        bookkeeping=bookkeeping,
        notifier=resolved_notifier,
        connectivity=connectivity,
    )
    background_sync = BackgroundSyncRunner(
        sync=sync_service.sync,
        delay_seconds=resolved_settings.sync_debounce_seconds,
    )
    store.on_change = background_sync.schedule

    fdc_client = HttpxFdcClient.create(
        api_key=resolved_settings.fdc_api_key,
        base_url=resolved_settings.fdc_base_url,
    )
    catalog_service = CatalogService(fdc_client=fdc_client, cache=InMemoryCache())

    snapshot_repository: SnapshotRepository
    if resolved_settings.server_storage == "supabase" and supabase_client is not None:
        snapshot_repository = SupabaseSnapshotRepository(supabase_client)
    else:
        snapshot_repository = InMemorySnapshotRepository()
    server_service = SnapshotServerService(snapshot_repository)

    store.initialize()

    async def close_resources() -> None:
        await background_sync.cancel()
        await remote_client.close()
        await fdc_client.close()

    return AppContainer(
        settings=resolved_settings,
        store=store,
        scheduler=scheduler,
        sync_service=sync_service,
        background_sync=background_sync,
        connectivity=connectivity,
        catalog_service=catalog_service,
        server_service=server_service,
        close_resources=close_resources,
    )
