"""Synchronization between the local store and the remote endpoint."""

import logging
from dataclasses import dataclass, field
from typing import Protocol

from nutrition_sync.adapters.remote_client import (
    RemoteAuthError,
    RemoteNutritionClient,
    RemoteTimeoutError,
    RemoteUnavailableError,
)
from nutrition_sync.clock import Clock, utc_now
from nutrition_sync.domain.sync import SyncResult
from nutrition_sync.services.notifications import NotificationEvent, Notifier
from nutrition_sync.services.reconcile import merge
from nutrition_sync.services.scheduler import SyncScheduler
from nutrition_sync.services.storage import SyncBookkeepingStore
from nutrition_sync.services.store import NutritionStore

_logger = logging.getLogger(__name__)


class ConnectivityMonitor(Protocol):
    """Reports whether the network is reachable."""

    def is_online(self) -> bool:
        """Return True when a network call may be attempted."""


@dataclass
class StaticConnectivity(ConnectivityMonitor):
    """Connectivity flag flipped by the host application."""

    online: bool = True

    def is_online(self) -> bool:
        return self.online


@dataclass
class SyncService:
    """Runs sync attempts and converts failures into results and notifications."""

    store: NutritionStore
    client: RemoteNutritionClient
    scheduler: SyncScheduler
    bookkeeping: SyncBookkeepingStore
    notifier: Notifier
    connectivity: ConnectivityMonitor = field(default_factory=StaticConnectivity)
    clock: Clock = utc_now

    async def sync(self, *, user_requested: bool = False) -> SyncResult:
        """Run one sync attempt if the scheduler allows it."""
        eligibility = self.scheduler.check()
        if not eligibility.allowed:
            _logger.info("Sync skipped: %s", eligibility.reason)
            if user_requested and eligibility.reason == "frequency_cap":
                self.notifier.notify(
                    NotificationEvent(
                        "sync",
                        "too_frequent",
                        {"minutes": eligibility.retry_after_minutes},
                    )
                )
            return SyncResult(
                status="skipped",
                retry_after_minutes=eligibility.retry_after_minutes,
            )
        if not self.connectivity.is_online():
            _logger.info("Sync deferred: offline")
            self.store.set_error("offline")
            self.notifier.notify(NotificationEvent("sync", "offline"))
            return SyncResult(status="offline", error="offline")

        try:
            with self.scheduler.attempt():
                result = await self._exchange()
        except RemoteAuthError as exc:
            return self._fail(
                "auth_failed", exc, NotificationEvent("auth", "required")
            )
        except RemoteTimeoutError as exc:
            return self._fail(
                "timeout",
                exc,
                NotificationEvent("sync", "timeout", severity="destructive"),
            )
        except RemoteUnavailableError as exc:
            return self._fail(
                "failed",
                exc,
                NotificationEvent("sync", "failed", severity="destructive"),
            )
        except Exception as exc:
            _logger.exception("Sync failed unexpectedly")
            return self._fail(
                "failed",
                exc,
                NotificationEvent("sync", "failed", severity="destructive"),
            )

        self.store.mark_synced(self.clock())
        if user_requested or result.status != "up_to_date":
            self.notifier.notify(NotificationEvent("sync", "success"))
        return result

    async def _exchange(self) -> SyncResult:
        local_update = self.bookkeeping.last_local_update()
        server_sync = self.bookkeeping.last_server_sync()
        local_dirty = local_update is not None and (
            server_sync is None or local_update > server_sync
        )

        remote = await self.client.fetch(server_sync)
        remote_snapshot = remote.snapshot if remote.has_updates else None

        if local_dirty:
            if remote_snapshot is not None:
                # Fold the other device's changes in before overwriting the server.
                merged = merge(self.store.snapshot(), remote_snapshot)
                self.store.apply_remote_snapshot(merged)
            uploaded = self.store.snapshot()
            pushed_at = self.clock()
            server_time = await self.client.push(uploaded, pushed_at)
            if self.store.snapshot() is uploaded:
                self.bookkeeping.set_last_server_sync(server_time or pushed_at)
            else:
                # Edits made during the upload keep the device dirty.
                _logger.info("Local changes arrived during push; sync mark kept")
            _logger.info(
                "Sync pushed local snapshot (merged=%s)", remote_snapshot is not None
            )
            return SyncResult(status="pushed")

        if remote_snapshot is not None and (
            local_update is None
            or remote.last_sync is None
            or remote.last_sync > local_update
        ):
            merged = merge(self.store.snapshot(), remote_snapshot)
            self.store.apply_remote_snapshot(merged)
            self.bookkeeping.set_last_server_sync(remote.last_sync or self.clock())
            _logger.info("Sync pulled remote snapshot")
            return SyncResult(status="pulled")

        if remote.last_sync is not None and server_sync is None:
            self.bookkeeping.set_last_server_sync(remote.last_sync)
        return SyncResult(status="up_to_date")

    def _fail(
        self, status: str, exc: Exception, event: NotificationEvent
    ) -> SyncResult:
        _logger.warning("Sync %s: %s", status, exc)
        self.store.set_error(str(exc))
        self.notifier.notify(event)
        return SyncResult(status=status, error=str(exc))  # type: ignore[arg-type]
