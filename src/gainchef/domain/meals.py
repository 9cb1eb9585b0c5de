"""Meal logging models."""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field

from gainchef.domain.macros import MacroTotals

MealType = Literal["breakfast", "lunch", "dinner", "snack", "post-workout"]


class MealLogInput(BaseModel):
    """A meal the user has already eaten."""

    food: str = Field(
        min_length=2, description="Description of the meal or food item"
    )
    meal_type: MealType | None = Field(
        default=None, description="Which meal this is for"
    )
    protein: float = Field(ge=0, description="Protein in grams")
    carbs: float = Field(ge=0, description="Carbohydrates in grams")
    fat: float = Field(ge=0, description="Fat in grams")
    calories: float = Field(ge=0, description="Total calories")
    notes: str | None = Field(default=None, description="Optional notes about the meal")


class MealLog(BaseModel):
    """Immutable record of one logged meal."""

    id: str
    timestamp: datetime
    food: str
    meal_type: MealType | None = None
    protein: float = 0.0
    carbs: float = 0.0
    fat: float = 0.0
    calories: float = 0.0
    notes: str | None = None

    model_config = {"frozen": True}

    def macros(self) -> MacroTotals:
        """Return this meal's macros as totals."""
        return MacroTotals(
            protein=self.protein,
            carbs=self.carbs,
            fat=self.fat,
            calories=self.calories,
        )


class DailyMacros(BaseModel):
    """Meals logged on one calendar date and their totals."""

    date: str
    meals: list[MealLog] = Field(default_factory=list)
    totals: MacroTotals = Field(default_factory=MacroTotals)

    @classmethod
    def from_meals(cls, date: str, meals: list[MealLog]) -> "DailyMacros":
        """Build a day from its meals, ordering by time and recomputing totals."""
        ordered = sorted(meals, key=lambda meal: meal.timestamp)
        return cls(
            date=date,
            meals=ordered,
            totals=MacroTotals.sum_of(meal.macros() for meal in ordered),
        )

    @classmethod
    def empty(cls, date: str) -> "DailyMacros":
        """Return a day with no meals."""
        return cls(date=date)
