"""Domain models for synchronization."""

from dataclasses import dataclass
from datetime import datetime
from typing import Literal

from nutrition_sync.domain.snapshot import Snapshot

SyncStatus = Literal[
    "pushed",
    "pulled",
    "up_to_date",
    "skipped",
    "offline",
    "auth_failed",
    "timeout",
    "failed",
]


@dataclass(frozen=True)
class SyncEligibility:
    """Whether a sync attempt may start now."""

    allowed: bool
    reason: Literal["ok", "in_flight", "frequency_cap", "cooldown"] = "ok"
    retry_after_minutes: int = 0


@dataclass(frozen=True)
class RemoteState:
    """Server response to a snapshot fetch."""

    has_updates: bool
    last_sync: datetime | None
    snapshot: Snapshot | None = None


@dataclass(frozen=True)
class SyncResult:
    """Outcome of one sync call."""

    status: SyncStatus
    error: str | None = None
    retry_after_minutes: int = 0

    @property
    def succeeded(self) -> bool:
        """Return True when the local and remote copies agree afterwards."""
        return self.status in {"pushed", "pulled", "up_to_date"}
