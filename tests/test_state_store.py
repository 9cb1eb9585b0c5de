"""Tests for state store implementations."""

from dataclasses import dataclass, field

from gainchef.adapters.supabase_state_store import (
    SupabaseStateStore,
    SupabaseStateStoreFactory,
)
from gainchef.services.state_store import (
    InMemoryStateStore,
    InMemoryStateStoreFactory,
    StorageKeys,
)


@dataclass
class FakeResponse:
    data: list[dict[str, object]] | None


@dataclass
class FakeTable:
    name: str
    rows: list[dict[str, object]] = field(default_factory=list)
    last_payload: object | None = None
    last_on_conflict: str | None = None
    filters: list[tuple[str, object]] = field(default_factory=list)

    def select(self, *_args) -> "FakeTable":
        self._action = "select"
        self.filters = []
        return self

    def upsert(self, payload, on_conflict: str = "") -> "FakeTable":  # type: ignore[no-untyped-def]
        self._action = "upsert"
        self.last_payload = payload
        self.last_on_conflict = on_conflict
        return self

    def delete(self) -> "FakeTable":
        self._action = "delete"
        self.filters = []
        return self

    def eq(self, column: str, value) -> "FakeTable":  # type: ignore[no-untyped-def]
        self.filters.append((column, value))
        return self

    def limit(self, _count: int) -> "FakeTable":
        return self

    def _matches(self, row: dict[str, object]) -> bool:
        return all(row.get(column) == value for column, value in self.filters)

    def execute(self) -> FakeResponse:
        action = getattr(self, "_action", "select")
        if action == "upsert":
            payload = dict(self.last_payload)  # type: ignore[arg-type]
            self.rows = [
                row
                for row in self.rows
                if (row["session_id"], row["key"])
                != (payload["session_id"], payload["key"])
            ]
            self.rows.append(payload)
            return FakeResponse(data=[payload])
        if action == "delete":
            removed = [row for row in self.rows if self._matches(row)]
            self.rows = [row for row in self.rows if not self._matches(row)]
            return FakeResponse(data=removed)
        return FakeResponse(
            data=[{"value_json": row["value_json"]} for row in self.rows if self._matches(row)]
        )


@dataclass
class FakeSupabaseClient:
    tables: dict[str, FakeTable] = field(default_factory=dict)

    def table(self, name: str) -> FakeTable:
        if name not in self.tables:
            self.tables[name] = FakeTable(name=name)
        return self.tables[name]


def test_in_memory_store_isolates_values_from_callers() -> None:
    store = InMemoryStateStore()
    value = {"items": [1, 2]}

    store.put("key", value)
    value["items"].append(3)
    fetched = store.get("key")
    fetched["items"].append(4)

    assert store.get("key") == {"items": [1, 2]}


def test_in_memory_store_delete_all_clears_every_key() -> None:
    store = InMemoryStateStore()
    store.put(StorageKeys.PROFILE, {"name": "Sam"})
    store.put(StorageKeys.daily("2025-10-14"), {"date": "2025-10-14"})

    store.delete_all()

    assert store.get(StorageKeys.PROFILE) is None
    assert store.get(StorageKeys.daily("2025-10-14")) is None


def test_in_memory_factory_scopes_stores_per_session() -> None:
    factory = InMemoryStateStoreFactory()

    factory("a").put("key", 1)

    assert factory("a").get("key") == 1
    assert factory("b").get("key") is None


def test_storage_keys_daily_prefix() -> None:
    assert StorageKeys.daily("2025-10-14") == "daily-macros:2025-10-14"


def test_supabase_store_upserts_and_reads_json_values() -> None:
    client = FakeSupabaseClient()
    store = SupabaseStateStore(client=client, table="agent_state", session_id="s1")

    store.put(StorageKeys.PROFILE, {"name": "Sam"})
    store.put(StorageKeys.PROFILE, {"name": "Alex"})

    table = client.tables["agent_state"]
    assert table.last_on_conflict == "session_id,key"
    assert len(table.rows) == 1
    assert store.get(StorageKeys.PROFILE) == {"name": "Alex"}
    assert store.get(StorageKeys.RATE_LIMIT) is None


def test_supabase_factory_isolates_sessions_and_delete_all() -> None:
    client = FakeSupabaseClient()
    factory = SupabaseStateStoreFactory(client=client)
    first = factory("s1")
    second = factory("s2")
    first.put("key", [1])
    second.put("key", [2])

    first.delete_all()

    assert first.get("key") is None
    assert second.get("key") == [2]
