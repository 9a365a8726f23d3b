"""Server side of the nutrition sync contract."""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Protocol

from nutrition_sync.adapters.snapshot_codec import (
    format_timestamp,
    goals_to_dict,
    parse_timestamp,
    truncate_to_ms,
)
from nutrition_sync.api.models import (
    NutritionFetchResponse,
    NutritionSaveRequest,
    NutritionSaveResponse,
)
from nutrition_sync.clock import Clock, utc_now
from nutrition_sync.domain.logs import NutritionGoals

_logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StoredSnapshot:
    """A user's snapshot as stored by the server."""

    data: dict[str, object]
    updated_at: datetime


class SnapshotRepository(Protocol):
    """Persistence interface for server-side snapshots."""

    def get_snapshot(self, owner: str) -> StoredSnapshot | None:
        """Return the stored snapshot for an owner."""

    def save_snapshot(
        self, owner: str, data: dict[str, object], updated_at: datetime
    ) -> None:
        """Create or replace the snapshot for an owner."""


@dataclass
class InMemorySnapshotRepository(SnapshotRepository):
    """Process-local snapshot repository for development servers."""

    snapshots: dict[str, StoredSnapshot] = field(default_factory=dict)

    def get_snapshot(self, owner: str) -> StoredSnapshot | None:
        return self.snapshots.get(owner)

    def save_snapshot(
        self, owner: str, data: dict[str, object], updated_at: datetime
    ) -> None:
        self.snapshots[owner] = StoredSnapshot(data=data, updated_at=updated_at)


@dataclass
class SnapshotServerService:
    """Serves and stores whole snapshots per owner."""

    repository: SnapshotRepository
    clock: Clock = utc_now

    def fetch(self, owner: str, last_sync: datetime | None) -> NutritionFetchResponse:
        """Return the snapshot when it changed after last_sync."""
        stored = self.repository.get_snapshot(owner)
        if stored is None:
            stored = self._create_default(owner)
        has_updates = last_sync is None or stored.updated_at > last_sync
        updated_at = format_timestamp(stored.updated_at)
        if not has_updates:
            _logger.debug("No updates for %s since %s", owner, last_sync)
            return NutritionFetchResponse(
                success=True, has_updates=False, last_sync=updated_at
            )
        return NutritionFetchResponse(
            success=True,
            has_updates=True,
            last_sync=updated_at,
            data={**stored.data, "updatedAt": updated_at},
        )

    def save(self, owner: str, request: NutritionSaveRequest) -> NutritionSaveResponse:
        """Replace the owner's snapshot; the server clock stamps the update."""
        now = truncate_to_ms(self.clock())
        current = self.repository.get_snapshot(owner)
        client_time = parse_timestamp(request.updated_at)
        if (
            current is not None
            and client_time is not None
            and current.updated_at > client_time
        ):
            _logger.info(
                "Server snapshot for %s is newer than client update %s",
                owner,
                request.updated_at,
            )
        data = request.model_dump(by_alias=True, exclude={"updated_at"})
        self.repository.save_snapshot(owner, data, now)
        return NutritionSaveResponse(
            success=True,
            message="Data saved successfully",
            last_sync=format_timestamp(now),
        )

    def _create_default(self, owner: str) -> StoredSnapshot:
        now = truncate_to_ms(self.clock())
        data: dict[str, object] = {
            "goals": goals_to_dict(NutritionGoals()),
            "foodTemplates": [],
            "dailyLogs": {},
            "weightHistory": [],
        }
        self.repository.save_snapshot(owner, data, now)
        _logger.info("Created default nutrition snapshot for %s", owner)
        return StoredSnapshot(data=data, updated_at=now)
