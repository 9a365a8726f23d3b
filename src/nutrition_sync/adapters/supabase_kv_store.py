"""Supabase-backed key-value store."""

from dataclasses import dataclass
from datetime import UTC, datetime

from supabase import Client

from nutrition_sync.services.storage import KeyValueStore


@dataclass
class SupabaseKeyValueStore(KeyValueStore):
    """Supabase implementation of the durable key-value surface."""

    client: Client
    namespace: str
    table: str = "client_kv"

    def get(self, key: str) -> object | None:
        """Return the stored value for a key."""
        response = (
            self.client.table(self.table)
            .select("value")
            .eq("namespace", self.namespace)
            .eq("key", key)
            .limit(1)
            .execute()
        )
        if not response.data:
            return None
        return response.data[0].get("value")

    def set(self, key: str, value: object) -> None:
        """Upsert a value for a key."""
        self.client.table(self.table).upsert(
            {
                "namespace": self.namespace,
                "key": key,
                "value": value,
                "updated_at": datetime.now(tz=UTC).isoformat(),
            },
            on_conflict="namespace,key",
        ).execute()

    def delete(self, key: str) -> None:
        """Delete a key."""
        self.client.table(self.table).delete().eq("namespace", self.namespace).eq(
            "key", key
        ).execute()
