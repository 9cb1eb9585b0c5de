"""Read-modify-write operations over one session's persisted state."""

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from uuid import uuid4
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from gainchef.domain.chat import ChatMessage
from gainchef.domain.meals import DailyMacros, MealLog, MealLogInput
from gainchef.domain.plans import MealPlan, ShoppingList
from gainchef.domain.profile import ProfileUpdate, UserProfile
from gainchef.services.state_store import StateStore, StorageKeys

MAX_STORED_MEAL_HISTORY = 30
MAX_MEAL_PLAN_HISTORY = 5

_logger = logging.getLogger(__name__)


def utc_now() -> datetime:
    """Return the current time in UTC."""
    return datetime.now(tz=UTC)


def new_id() -> str:
    """Return a fresh entity identifier."""
    return str(uuid4())


@dataclass
class SessionState:
    """Explicit state object for one session, backed by its store.

    The store is the only source of truth; every accessor reads it again.
    Writes are individual puts, so a meal append and the dates index update
    are separate writes with last-write-wins semantics per key.
    """

    session_id: str
    store: StateStore
    clock: Callable[[], datetime] = utc_now
    _messages: list[ChatMessage] | None = field(default=None, repr=False)

    def get_profile(self) -> UserProfile | None:
        """Return the stored profile, if any."""
        raw = self.store.get(StorageKeys.PROFILE)
        if raw is None:
            return None
        return UserProfile.model_validate(raw)

    def set_profile(self, update: ProfileUpdate) -> UserProfile:
        """Merge an update onto the stored profile and persist it."""
        existing = self.get_profile() or UserProfile()
        merged = existing.merged_with(update, now=self.clock())
        self.store.put(StorageKeys.PROFILE, merged.model_dump(mode="json"))
        return merged

    def timezone(self) -> ZoneInfo:
        """Return the session's timezone, defaulting to UTC."""
        profile = self.get_profile()
        if profile is None or not profile.timezone:
            return ZoneInfo("UTC")
        try:
            return ZoneInfo(profile.timezone)
        except (ZoneInfoNotFoundError, ValueError):
            _logger.warning(
                "Ignoring invalid timezone %s for session %s",
                profile.timezone,
                self.session_id,
            )
            return ZoneInfo("UTC")

    def to_date_string(self, moment: datetime | None = None) -> str:
        """Return the calendar date of a moment in the session's timezone."""
        value = moment or self.clock()
        if value.tzinfo is None:
            value = value.replace(tzinfo=UTC)
        return value.astimezone(self.timezone()).date().isoformat()

    def today(self) -> str:
        """Return today's date string."""
        return self.to_date_string()

    def log_meal(
        self, meal: MealLogInput, timestamp: datetime | None = None
    ) -> DailyMacros:
        """Append a meal to its day, recompute totals and index the date."""
        logged_at = timestamp or self.clock()
        date = self.to_date_string(logged_at)
        record = MealLog(id=new_id(), timestamp=logged_at, **meal.model_dump())
        existing = self._read_daily(date)
        meals = list(existing.meals) if existing else []
        meals.append(record)
        updated = DailyMacros.from_meals(date, meals)
        self.store.put(StorageKeys.daily(date), updated.model_dump(mode="json"))
        self._index_date(date)
        return updated

    def get_daily_macros(self, date: str | None = None) -> DailyMacros:
        """Return a day's meals, empty when nothing was logged."""
        resolved = date or self.today()
        return self._read_daily(resolved) or DailyMacros.empty(resolved)

    def get_meal_history(self, limit: int = 7) -> list[DailyMacros]:
        """Return the most recent logged days, newest first."""
        dates = self.get_known_dates()
        history: list[DailyMacros] = []
        for date in dates[:limit]:
            day = self._read_daily(date)
            if day is not None:
                history.append(day)
        return history

    def get_known_dates(self) -> list[str]:
        """Return the indexed dates, newest first."""
        raw = self.store.get(StorageKeys.MEAL_DATES)
        if not isinstance(raw, list):
            return []
        return sorted((str(value) for value in raw), reverse=True)

    def get_latest_meal_plan(self) -> MealPlan | None:
        """Return the active meal plan, if any."""
        raw = self.store.get(StorageKeys.MEAL_PLAN_ACTIVE)
        if raw is None:
            return None
        return MealPlan.model_validate(raw)

    def save_meal_plan(self, plan: MealPlan) -> None:
        """Make a plan active and push it onto the bounded history."""
        payload = plan.model_dump(mode="json")
        self.store.put(StorageKeys.MEAL_PLAN_ACTIVE, payload)
        history = [
            item
            for item in self._read_list(StorageKeys.MEAL_PLAN_HISTORY)
            if isinstance(item, dict) and item.get("id") != plan.id
        ]
        deduped = [payload, *history][:MAX_MEAL_PLAN_HISTORY]
        self.store.put(StorageKeys.MEAL_PLAN_HISTORY, deduped)

    def get_meal_plan_history(self, limit: int = MAX_MEAL_PLAN_HISTORY) -> list[MealPlan]:
        """Return saved plans, newest first."""
        history = self._read_list(StorageKeys.MEAL_PLAN_HISTORY)
        return [MealPlan.model_validate(item) for item in history[:limit]]

    def save_shopping_list(self, shopping_list: ShoppingList) -> None:
        """Store a shopping list under its id."""
        existing = self._read_shopping_lists()
        existing[shopping_list.id] = shopping_list.model_dump(mode="json")
        self.store.put(StorageKeys.SHOPPING_LISTS, existing)

    def get_shopping_list(self, list_id: str | None = None) -> ShoppingList | None:
        """Return a list by id, or the most recently created one."""
        existing = self._read_shopping_lists()
        if list_id:
            raw = existing.get(list_id)
            return ShoppingList.model_validate(raw) if raw is not None else None
        lists = [ShoppingList.model_validate(raw) for raw in existing.values()]
        if not lists:
            return None
        return max(lists, key=lambda item: item.created_at)

    def get_messages(self) -> list[ChatMessage]:
        """Return the conversation history."""
        if self._messages is None:
            raw = self._read_list(StorageKeys.MESSAGES)
            self._messages = [ChatMessage.model_validate(item) for item in raw]
        return list(self._messages)

    def save_messages(self, messages: list[ChatMessage]) -> None:
        """Persist the conversation history."""
        self._messages = list(messages)
        self.store.put(
            StorageKeys.MESSAGES,
            [message.model_dump(mode="json") for message in messages],
        )

    def clear_all(self) -> None:
        """Wipe every stored key and the conversation history."""
        self.store.delete_all()
        self._messages = []

    def _read_daily(self, date: str) -> DailyMacros | None:
        raw = self.store.get(StorageKeys.daily(date))
        if raw is None:
            return None
        return DailyMacros.model_validate(raw)

    def _index_date(self, date: str) -> None:
        dates = self.get_known_dates()
        if date not in dates:
            dates.append(date)
        ordered = sorted(dates, reverse=True)[:MAX_STORED_MEAL_HISTORY]
        self.store.put(StorageKeys.MEAL_DATES, ordered)

    def _read_list(self, key: str) -> list[object]:
        raw = self.store.get(key)
        return list(raw) if isinstance(raw, list) else []

    def _read_shopping_lists(self) -> dict[str, object]:
        raw = self.store.get(StorageKeys.SHOPPING_LISTS)
        return dict(raw) if isinstance(raw, dict) else {}
