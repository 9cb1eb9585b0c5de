"""User profile models."""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field

from gainchef.domain.macros import MacroTargetsUpdate, MacroTotals

GoalType = Literal["bulking", "cutting", "recomposition", "maintaining"]
Sex = Literal["male", "female", "non-binary"]
ActivityLevel = Literal["sedentary", "light", "moderate", "intense"]


class UserProfile(BaseModel):
    """Persisted coaching profile for one session."""

    name: str | None = None
    goal_type: GoalType | None = None
    weight: float | None = Field(default=None, ge=0)
    target_weight: float | None = Field(default=None, ge=0)
    height_inches: float | None = Field(default=None, ge=0)
    age: int | None = Field(default=None, ge=0)
    sex: Sex | None = None
    activity_level: ActivityLevel | None = None
    macro_targets: MacroTotals | None = None
    preferences: list[str] = Field(default_factory=list)
    restrictions: list[str] = Field(default_factory=list)
    timezone: str | None = None
    updated_at: datetime | None = None

    def merged_with(self, update: "ProfileUpdate", now: datetime) -> "UserProfile":
        """Merge the provided update fields onto this profile."""
        changes = update.model_dump(exclude_unset=True, exclude_none=True)
        targets_change = changes.pop("macro_targets", None)
        merged = self.model_copy(update=changes)
        if targets_change:
            base = self.macro_targets or MacroTotals()
            merged.macro_targets = base.model_copy(update=targets_change)
        merged.preferences = _dedupe(merged.preferences)
        merged.restrictions = _dedupe(merged.restrictions)
        merged.updated_at = now
        return merged


class ProfileUpdate(BaseModel):
    """Partial profile update; only provided fields change."""

    name: str | None = None
    goal_type: GoalType | None = None
    weight: float | None = Field(default=None, ge=0, description="Weight in lbs")
    target_weight: float | None = Field(
        default=None, ge=0, description="Target weight in lbs"
    )
    height_inches: float | None = Field(default=None, ge=0)
    age: int | None = Field(default=None, ge=0)
    sex: Sex | None = None
    activity_level: ActivityLevel | None = None
    macro_targets: MacroTargetsUpdate | None = None
    restrictions: list[str] | None = None
    preferences: list[str] | None = None
    timezone: str | None = None

    def is_empty(self) -> bool:
        """Return True when no field was provided."""
        return not self.model_dump(exclude_unset=True, exclude_none=True)


def _dedupe(values: list[str]) -> list[str]:
    seen: dict[str, None] = {}
    for value in values:
        cleaned = value.strip()
        if cleaned:
            seen.setdefault(cleaned, None)
    return list(seen)
