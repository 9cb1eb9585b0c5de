"""Batch coaching workflow payloads and events."""

from datetime import datetime
from typing import Annotated, Literal

from pydantic import BaseModel, Field

from gainchef.domain.profile import UserProfile


class WeeklyMealPrepPayload(BaseModel):
    """Build a weekly plan for the given week."""

    type: Literal["weekly_meal_prep"]
    user_id: str = Field(min_length=1)
    profile_snapshot: UserProfile | None = None
    week_of: str


class DailyMacroCheckPayload(BaseModel):
    """Compile macro totals for one day."""

    type: Literal["daily_macro_check"]
    user_id: str = Field(min_length=1)
    profile_snapshot: UserProfile | None = None
    date: str


class MonthlyReportPayload(BaseModel):
    """Compile the monthly analysis."""

    type: Literal["monthly_report"]
    user_id: str = Field(min_length=1)
    profile_snapshot: UserProfile | None = None
    month: str


WorkflowPayload = Annotated[
    WeeklyMealPrepPayload | DailyMacroCheckPayload | MonthlyReportPayload,
    Field(discriminator="type"),
]


class WorkflowEvent(BaseModel):
    """A step recorded while a workflow runs."""

    name: str
    note: str
    timestamp: datetime
