"""Macro nutrient value objects."""

from collections.abc import Iterable

from pydantic import BaseModel, Field


class MacroTotals(BaseModel):
    """Protein, carbs and fat in grams plus calories."""

    protein: float = Field(default=0.0, ge=0, description="Protein grams")
    carbs: float = Field(default=0.0, ge=0, description="Carbohydrate grams")
    fat: float = Field(default=0.0, ge=0, description="Fat grams")
    calories: float = Field(default=0.0, ge=0, description="Total calories")

    def plus(self, other: "MacroTotals") -> "MacroTotals":
        """Return the field-wise sum of two totals."""
        return MacroTotals(
            protein=self.protein + other.protein,
            carbs=self.carbs + other.carbs,
            fat=self.fat + other.fat,
            calories=self.calories + other.calories,
        )

    @classmethod
    def sum_of(cls, items: Iterable["MacroTotals"]) -> "MacroTotals":
        """Return the field-wise sum of many totals."""
        total = cls()
        for item in items:
            total = total.plus(item)
        return total


class MacroTargetsUpdate(BaseModel):
    """Daily macro targets; provide any fields that are changing."""

    protein: float | None = Field(default=None, ge=0)
    carbs: float | None = Field(default=None, ge=0)
    fat: float | None = Field(default=None, ge=0)
    calories: float | None = Field(default=None, ge=0)


def format_number(value: float) -> str:
    """Render a macro value without a trailing .0."""
    return f"{value:g}"


def format_macros(totals: MacroTotals) -> str:
    """Render totals in the compact 'Np / Nc / Nf (N cal)' form."""
    return (
        f"{format_number(totals.protein)}p / "
        f"{format_number(totals.carbs)}c / "
        f"{format_number(totals.fat)}f "
        f"({format_number(totals.calories)} cal)"
    )
