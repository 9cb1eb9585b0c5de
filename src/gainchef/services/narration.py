"""Templated narration appended after each tool result."""

from datetime import date

from gainchef.domain.macros import format_number
from gainchef.domain.plans import MealPlan, ShoppingList
from gainchef.services.tools import (
    GET_PROGRESS,
    LOG_MEAL,
    SAVE_MEAL_PLAN,
    SAVE_SHOPPING_LIST,
    UPDATE_PROFILE,
    ProfileChange,
    ToolResult,
)

OTHER_BUCKET = "Other"


def format_tool_narration(result: ToolResult) -> str | None:
    """Return the narration segment for a completed tool, if any."""
    if result.tool_name == LOG_MEAL:
        return _meal_logged(result.arguments)
    if result.tool_name == SAVE_MEAL_PLAN and isinstance(result.data, MealPlan):
        return format_meal_plan_narration(result.data)
    if result.tool_name == SAVE_SHOPPING_LIST and isinstance(result.data, ShoppingList):
        return format_shopping_list_narration(result.data)
    if result.tool_name == GET_PROGRESS:
        return f"\n\n**Here's your progress:**\n\n{result.message}"
    if result.tool_name == UPDATE_PROFILE:
        if isinstance(result.data, ProfileChange) and result.data.update.is_empty():
            return None
        return "\n\n**Profile updated!**"
    return f"\n\nDone! The {result.tool_name} task has been completed."


def format_meal_plan_narration(plan: MealPlan) -> str:
    """Render a saved plan day by day with bulleted meals."""
    output = "\n\n**Your meal plan is ready!**\n\n"
    for index, day in enumerate(plan.days):
        label = _day_label(day.date, index)
        output += f"**{label}** - {day.goal_summary or 'No goal set'}\n"
        for meal in day.meals:
            macros = meal.macros
            output += f"  • **{meal.name}** ({meal.meal_type})\n"
            output += (
                f"    {format_number(macros.calories)} cal - "
                f"{format_number(macros.protein)}p / "
                f"{format_number(macros.carbs)}c / "
                f"{format_number(macros.fat)}f\n"
            )
            if meal.description:
                output += f"    _{meal.description}_\n"
        output += "\n"
    return output


def group_shopping_items(
    shopping_list: ShoppingList,
) -> dict[str, list[tuple[str, str]]]:
    """Group item (name, quantity) pairs by meal reference."""
    groups: dict[str, list[tuple[str, str]]] = {}
    for item in shopping_list.items:
        references = item.meal_references or [OTHER_BUCKET]
        for reference in references:
            groups.setdefault(reference, []).append((item.name, item.quantity))
    return groups


def format_shopping_list_narration(shopping_list: ShoppingList) -> str:
    """Render a saved list grouped by the meals that use each item."""
    output = "\n\n**Your shopping list is ready!**\n\n"
    for meal_name, items in group_shopping_items(shopping_list).items():
        output += f"**{meal_name}:**\n"
        for name, quantity in items:
            output += f"  • {name} - {quantity}\n"
        output += "\n"
    return output


def _meal_logged(arguments: dict[str, object]) -> str:
    food = arguments.get("food") or "meal"
    values = {
        key: format_number(float(arguments.get(key, 0) or 0))
        for key in ("protein", "carbs", "fat", "calories")
    }
    return (
        f"\n\nDone! Your {food} has been logged. Here are the macros: "
        f"{values['protein']}g protein, {values['carbs']}g carbs, "
        f"{values['fat']}g fat, {values['calories']} calories."
    )


def _day_label(value: str, index: int) -> str:
    try:
        parsed = date.fromisoformat(value[:10])
    except ValueError:
        return f"Day {index + 1}"
    return f"{parsed:%A}, {parsed:%b} {parsed.day}"
