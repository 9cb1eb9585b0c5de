"""System prompt assembly from the session's stored state."""

from dataclasses import dataclass

from gainchef.domain.macros import format_macros, format_number
from gainchef.domain.meals import DailyMacros
from gainchef.domain.plans import MealPlan, ShoppingList
from gainchef.domain.profile import UserProfile
from gainchef.services.session_state import SessionState

HISTORY_DAYS = 3
PLAN_PREVIEW_DAYS = 2
SHOPPING_PREVIEW_ITEMS = 5

WITHOUT_TOOLS_NOTE = (
    "Note: I'm operating without automated logging right now, so I'll give you "
    "recommendations directly. Log meals or update your profile manually."
)

_PREAMBLE = """You are GainChef, a friendly nutrition coach.

CRITICAL: Always include a short text message before AND after using tools. Examples:
- Before logMeal: "Got it! Logging that now..."
- After logMeal: "Logged! Your totals are updated."
- Before saveMealPlan: "Creating your meal plan..."
- After saveMealPlan: "Done! Your plan is ready."
- Before getProgress: "Let me check your stats..."

When users ask "what should I eat" or "give me ideas" - provide meal suggestions in text. Don't use tools.
When users say "I ate X" - write a brief message, call logMeal, then confirm completion.
Only log meals the user says they already ate (past tense)."""


@dataclass(frozen=True)
class SessionContext:
    """Everything the prompt needs about the session."""

    profile: UserProfile | None
    today: DailyMacros
    history: list[DailyMacros]
    active_plan: MealPlan | None
    shopping_list: ShoppingList | None


def load_session_context(state: SessionState) -> SessionContext:
    """Read the prompt inputs from the store."""
    active_plan = state.get_latest_meal_plan()
    if active_plan is not None and active_plan.shopping_list_id:
        shopping_list = state.get_shopping_list(active_plan.shopping_list_id)
    else:
        shopping_list = state.get_shopping_list()
    return SessionContext(
        profile=state.get_profile(),
        today=state.get_daily_macros(),
        history=state.get_meal_history(HISTORY_DAYS),
        active_plan=active_plan,
        shopping_list=shopping_list,
    )


def build_system_prompt(context: SessionContext) -> str:
    """Render the system prompt with fixed sections."""
    sections = [
        _PREAMBLE,
        f"Profile:\n{format_profile(context.profile)}",
        f"Today ({context.today.date}):\n{format_daily_macros(context.today)}",
        f"Recent history:\n{format_recent_history(context.history)}",
        f"Active plan:\n{format_meal_plan(context.active_plan)}",
        f"Shopping list:\n{format_shopping_list(context.shopping_list)}",
    ]
    return "\n\n".join(sections).strip()


def without_tools_prompt(prompt: str) -> str:
    """Ask for manual narration when tools are not available."""
    return f"{prompt}\n\n{WITHOUT_TOOLS_NOTE}"


def format_profile(profile: UserProfile | None) -> str:
    """Render the profile section."""
    if profile is None:
        return "No profile captured yet."

    lines: list[str] = []
    if profile.name:
        lines.append(f"- Name: {profile.name}")
    if profile.goal_type:
        lines.append(f"- Goal: {profile.goal_type}")
    if profile.weight:
        lines.append(f"- Weight: {format_number(profile.weight)} lbs")
    if profile.target_weight:
        lines.append(f"- Target weight: {format_number(profile.target_weight)} lbs")
    if profile.height_inches:
        feet, inches = divmod(int(profile.height_inches), 12)
        lines.append(f"- Height: {feet}'{inches}\"")
    if profile.age:
        lines.append(f"- Age: {profile.age}")
    if profile.sex:
        lines.append(f"- Sex: {profile.sex}")
    if profile.activity_level:
        lines.append(f"- Activity: {profile.activity_level}")
    if profile.macro_targets:
        targets = profile.macro_targets
        lines.append(
            f"- Daily targets: {format_number(targets.protein)}g protein / "
            f"{format_number(targets.carbs)}g carbs / {format_number(targets.fat)}g fat "
            f"({format_number(targets.calories)} cal)"
        )
    if profile.preferences:
        lines.append(f"- Food preferences: {', '.join(profile.preferences)}")
    if profile.restrictions:
        lines.append(f"- Dietary restrictions: {', '.join(profile.restrictions)}")
    if profile.timezone:
        lines.append(f"- Timezone: {profile.timezone}")

    return "\n".join(lines) if lines else "Profile exists but is empty."


def format_daily_macros(daily: DailyMacros) -> str:
    """Render one day's meals and totals."""
    if not daily.meals:
        return "No meals logged yet."

    lines = []
    for meal in daily.meals:
        label = f"{meal.meal_type} - " if meal.meal_type else ""
        lines.append(f"{label}{meal.food}: {format_macros(meal.macros())}")
    lines.append(f"Totals: {format_macros(daily.totals)}")
    return "\n".join(lines)


def format_recent_history(history: list[DailyMacros]) -> str:
    """Render per-day totals for recent days."""
    if not history:
        return "No prior days logged yet."
    return "\n".join(
        f"{day.date}: {format_macros(day.totals)} across {len(day.meals)} meal(s)"
        for day in history
    )


def format_meal_plan(plan: MealPlan | None) -> str:
    """Render the active plan headline and the first days."""
    if plan is None:
        return "No active meal plan yet."

    headline = (
        f"Plan timeframe: {plan.timeframe}, "
        f"created {plan.created_at.date().isoformat()}"
    )
    previews = []
    for day in plan.days[:PLAN_PREVIEW_DAYS]:
        meals = "\n".join(
            f"  - {meal.meal_type}: {meal.name} "
            f"({format_number(meal.macros.protein)}p/"
            f"{format_number(meal.macros.carbs)}c/"
            f"{format_number(meal.macros.fat)}f)"
            for meal in day.meals
        )
        previews.append(f"{day.date}: {day.goal_summary}\n{meals}")
    return f"{headline}\n{chr(10).join(previews) or 'No meals listed yet.'}"


def format_shopping_list(shopping_list: ShoppingList | None) -> str:
    """Render the list size and its first items."""
    if shopping_list is None:
        return "No shopping list generated yet."

    items = shopping_list.items
    lines = [f"List timeframe: {shopping_list.timeframe}, items: {len(items)}"]
    lines.extend(
        f"  - {item.name}: {item.quantity}" for item in items[:SHOPPING_PREVIEW_ITEMS]
    )
    if len(items) > SHOPPING_PREVIEW_ITEMS:
        lines.append(f"  ...and {len(items) - SHOPPING_PREVIEW_ITEMS} more item(s).")
    return "\n".join(lines)
