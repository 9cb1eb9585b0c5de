"""Supabase-backed session state store."""

from dataclasses import dataclass
from datetime import UTC, datetime

from supabase import Client

from gainchef.services.state_store import StateStore


@dataclass
class SupabaseStateStore(StateStore):
    """Stores one session's keys as JSON rows keyed by (session_id, key)."""

    client: Client
    table: str
    session_id: str

    def get(self, key: str) -> object | None:
        """Return the stored JSON value for a key."""
        response = (
            self.client.table(self.table)
            .select("value_json")
            .eq("session_id", self.session_id)
            .eq("key", key)
            .limit(1)
            .execute()
        )
        if not response.data:
            return None
        return response.data[0].get("value_json")

    def put(self, key: str, value: object) -> None:
        """Insert or replace the value for a key."""
        self.client.table(self.table).upsert(
            {
                "session_id": self.session_id,
                "key": key,
                "value_json": value,
                "updated_at": datetime.now(tz=UTC).isoformat(),
            },
            on_conflict="session_id,key",
        ).execute()

    def delete_all(self) -> None:
        """Delete every row of the session."""
        self.client.table(self.table).delete().eq(
            "session_id", self.session_id
        ).execute()


@dataclass
class SupabaseStateStoreFactory:
    """Builds session-scoped Supabase stores over one client."""

    client: Client
    table: str = "agent_state"

    def __call__(self, session_id: str) -> StateStore:
        return SupabaseStateStore(
            client=self.client, table=self.table, session_id=session_id
        )
