"""Durable key-value storage for snapshots and sync bookkeeping."""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Protocol

from nutrition_sync.adapters.snapshot_codec import (
    parse_timestamp,
    snapshot_from_dict,
    snapshot_to_dict,
    to_epoch_ms,
)
from nutrition_sync.domain.snapshot import Snapshot

SNAPSHOT_KEY = "nutrition-storage"
LAST_LOCAL_UPDATE_KEY = "last-local-update-time"
LAST_SERVER_SYNC_KEY = "last-server-sync-time"
SYNC_HISTORY_KEY = "sync-history"
SYNC_COOLDOWN_KEY = "sync-cooldown-until"

_logger = logging.getLogger(__name__)


class KeyValueStore(Protocol):
    """Synchronous durable storage for JSON-serializable values."""

    def get(self, key: str) -> object | None:
        """Return the stored value, or None when absent."""

    def set(self, key: str, value: object) -> None:
        """Store a value, replacing any previous one."""

    def delete(self, key: str) -> None:
        """Remove a key if present."""


@dataclass
class SnapshotStorage:
    """Whole-snapshot persistence under a single namespace key."""

    store: KeyValueStore
    key: str = SNAPSHOT_KEY

    def load(self, default_date: str) -> Snapshot | None:
        """Return the persisted snapshot, or None when nothing usable is stored."""
        raw = self.store.get(self.key)
        if raw is None:
            return None
        if not isinstance(raw, dict):
            _logger.warning("Ignoring malformed snapshot under %s", self.key)
            return None
        state = raw.get("state", raw)
        if not isinstance(state, dict):
            return None
        return snapshot_from_dict(state, default_date=default_date)

    def save(self, snapshot: Snapshot) -> None:
        """Persist the snapshot."""
        self.store.set(self.key, {"state": snapshot_to_dict(snapshot), "version": 1})

    def clear(self) -> None:
        """Remove the persisted snapshot."""
        self.store.delete(self.key)


@dataclass
class SyncBookkeepingStore:
    """Small bookkeeping keys kept outside the snapshot schema."""

    store: KeyValueStore

    def last_local_update(self) -> datetime | None:
        return parse_timestamp(self.store.get(LAST_LOCAL_UPDATE_KEY))

    def set_last_local_update(self, value: datetime) -> None:
        self.store.set(LAST_LOCAL_UPDATE_KEY, to_epoch_ms(value))

    def last_server_sync(self) -> datetime | None:
        return parse_timestamp(self.store.get(LAST_SERVER_SYNC_KEY))

    def set_last_server_sync(self, value: datetime) -> None:
        self.store.set(LAST_SERVER_SYNC_KEY, to_epoch_ms(value))

    def sync_history(self) -> list[int]:
        """Return attempt timestamps in epoch milliseconds, oldest first."""
        raw = self.store.get(SYNC_HISTORY_KEY)
        if not isinstance(raw, list):
            return []
        return [
            int(value)
            for value in raw
            if isinstance(value, int | float) and not isinstance(value, bool)
        ]

    def set_sync_history(self, history: list[int]) -> None:
        self.store.set(SYNC_HISTORY_KEY, history)

    def cooldown_until(self) -> int | None:
        raw = self.store.get(SYNC_COOLDOWN_KEY)
        if isinstance(raw, int | float) and not isinstance(raw, bool):
            return int(raw)
        return None

    def set_cooldown_until(self, value: int) -> None:
        self.store.set(SYNC_COOLDOWN_KEY, value)

    def clear_cooldown(self) -> None:
        self.store.delete(SYNC_COOLDOWN_KEY)
