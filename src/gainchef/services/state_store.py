"""Session-scoped key/value persistence."""

import copy
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Protocol


class StorageKeys:
    """Namespaced keys used inside one session's store."""

    PROFILE = "profile"
    MEAL_DAILY_PREFIX = "daily-macros:"
    MEAL_DATES = "daily-macros:dates"
    MEAL_PLAN_ACTIVE = "meal-plan:active"
    MEAL_PLAN_HISTORY = "meal-plan:history"
    SHOPPING_LISTS = "shopping-lists"
    RATE_LIMIT = "rate-limit"
    MESSAGES = "chat:messages"

    @classmethod
    def daily(cls, date: str) -> str:
        """Return the key holding one date's meals."""
        return f"{cls.MEAL_DAILY_PREFIX}{date}"


class StateStore(Protocol):
    """Persistence interface for one session's JSON values."""

    def get(self, key: str) -> object | None:
        """Return the stored value, if present."""

    def put(self, key: str, value: object) -> None:
        """Store a JSON-serializable value under a key."""

    def delete_all(self) -> None:
        """Remove every key of the session."""


StateStoreFactory = Callable[[str], StateStore]


@dataclass
class InMemoryStateStore(StateStore):
    """In-memory store used for local runs and tests."""

    values: dict[str, object] = field(default_factory=dict)

    def get(self, key: str) -> object | None:
        """Return a copy of the stored value."""
        value = self.values.get(key)
        return copy.deepcopy(value) if value is not None else None

    def put(self, key: str, value: object) -> None:
        """Store a copy of the value."""
        self.values[key] = copy.deepcopy(value)

    def delete_all(self) -> None:
        """Drop every value."""
        self.values.clear()


@dataclass
class InMemoryStateStoreFactory:
    """Hands out one in-memory store per session id."""

    stores: dict[str, InMemoryStateStore] = field(default_factory=dict)

    def __call__(self, session_id: str) -> StateStore:
        if session_id not in self.stores:
            self.stores[session_id] = InMemoryStateStore()
        return self.stores[session_id]
