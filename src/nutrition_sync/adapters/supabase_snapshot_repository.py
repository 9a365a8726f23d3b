"""Supabase repository for server-side nutrition snapshots."""

from dataclasses import dataclass
from datetime import datetime

from supabase import Client

from nutrition_sync.adapters.snapshot_codec import format_timestamp, parse_timestamp
from nutrition_sync.services.server import SnapshotRepository, StoredSnapshot


@dataclass
class SupabaseSnapshotRepository(SnapshotRepository):
    """Supabase implementation for snapshot persistence."""

    client: Client
    table: str = "nutrition_snapshots"

    def get_snapshot(self, owner: str) -> StoredSnapshot | None:
        """Return the stored snapshot for an owner, if present."""
        response = (
            self.client.table(self.table)
            .select("data, updated_at")
            .eq("owner", owner)
            .limit(1)
            .execute()
        )
        if not response.data:
            return None
        row = response.data[0]
        updated_at = parse_timestamp(row.get("updated_at"))
        if updated_at is None:
            raise RuntimeError(f"Snapshot for {owner} has no updated_at")
        data = row.get("data")
        return StoredSnapshot(
            data=data if isinstance(data, dict) else {}, updated_at=updated_at
        )

    def save_snapshot(
        self, owner: str, data: dict[str, object], updated_at: datetime
    ) -> None:
        """Upsert the snapshot row for an owner."""
        response = (
            self.client.table(self.table)
            .upsert(
                {
                    "owner": owner,
                    "data": data,
                    "updated_at": format_timestamp(updated_at),
                },
                on_conflict="owner",
            )
            .execute()
        )
        if not response.data:
            raise RuntimeError("Failed to save nutrition snapshot")
