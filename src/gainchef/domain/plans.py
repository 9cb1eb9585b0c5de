"""Meal plan and shopping list models."""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field

from gainchef.domain.macros import MacroTotals
from gainchef.domain.meals import MealType

Timeframe = Literal["daily", "weekly"]


class MealPlanEntry(BaseModel):
    """One planned meal."""

    meal_type: MealType = Field(description="Meal slot")
    name: str = Field(min_length=2, description="Name of the meal")
    description: str = Field(description="Short overview of the meal")
    macros: MacroTotals = Field(description="Macro breakdown for the meal")
    ingredients: list[str] = Field(min_length=1, description="Shopping ingredient list")
    preparation_steps: list[str] = Field(
        min_length=1, description="Steps to prepare the meal"
    )


class MealPlanDay(BaseModel):
    """Meals planned for one day."""

    date: str = Field(description="ISO date for the meal plan day")
    goal_summary: str = Field(description="Focus for the day (e.g., high protein)")
    meals: list[MealPlanEntry] = Field(min_length=1, description="Meals for the day")


class MealPlan(BaseModel):
    """A saved meal plan."""

    id: str
    created_at: datetime
    timeframe: Timeframe = "daily"
    days: list[MealPlanDay]
    shopping_list_id: str | None = None


class MealPlanInput(BaseModel):
    """A structured multi-day meal plan to save."""

    id: str | None = Field(default=None, description="Unique identifier for the plan")
    timeframe: Timeframe = Field(default="daily", description="Plan duration")
    days: list[MealPlanDay] = Field(
        min_length=1, description="Days and meals included"
    )
    shopping_list_id: str | None = Field(
        default=None, description="Associated shopping list ID if one exists"
    )


class ShoppingListItem(BaseModel):
    """One shopping list entry."""

    name: str = Field(description="Item name")
    quantity: str = Field(description="Quantity and measurement")
    meal_references: list[str] = Field(
        default_factory=list, description="Meals or recipes that use this item"
    )


class ShoppingList(BaseModel):
    """A saved shopping list."""

    id: str
    created_at: datetime
    timeframe: Timeframe = "daily"
    items: list[ShoppingListItem]


class ShoppingListInput(BaseModel):
    """A shopping list to store, optionally tied to a meal plan."""

    id: str | None = Field(
        default=None, description="Unique identifier for the shopping list"
    )
    plan_id: str | None = Field(default=None, description="Meal plan this list supports")
    timeframe: Timeframe = Field(
        default="daily", description="Plan duration this list supports"
    )
    items: list[ShoppingListItem] = Field(
        min_length=1, description="Shopping list entries"
    )


class ProgressQuery(BaseModel):
    """How much history a progress summary covers."""

    days: int = Field(
        default=3,
        ge=1,
        le=30,
        description="How many days of history to include (default 3)",
    )
