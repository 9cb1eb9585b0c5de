"""Tool operations the model may invoke during generation."""

import logging
from collections.abc import Awaitable, Callable, Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass, field

from pydantic import BaseModel, ValidationError

from gainchef.domain.macros import format_macros, format_number
from gainchef.domain.meals import DailyMacros, MealLogInput
from gainchef.domain.plans import (
    MealPlan,
    MealPlanInput,
    ProgressQuery,
    ShoppingList,
    ShoppingListInput,
)
from gainchef.domain.profile import ProfileUpdate, UserProfile
from gainchef.services.session_state import SessionState, new_id

LOG_MEAL = "logMeal"
UPDATE_PROFILE = "updateProfile"
GET_PROGRESS = "getProgress"
SAVE_MEAL_PLAN = "saveMealPlan"
SAVE_SHOPPING_LIST = "saveShoppingList"

_logger = logging.getLogger(__name__)

_current_session: ContextVar[SessionState | None] = ContextVar(
    "gainchef_session", default=None
)


class ToolError(Exception):
    """Base error for a failed tool operation."""


class ToolValidationError(ToolError):
    """Tool input failed schema validation; nothing was written."""


class AgentContextUnavailableError(ToolError):
    """Tool invoked outside an active session."""


class UnknownToolError(ToolError):
    """Model requested a tool that does not exist."""


@contextmanager
def session_scope(state: SessionState) -> Iterator[SessionState]:
    """Bind the active session for tool operations."""
    token = _current_session.set(state)
    try:
        yield state
    finally:
        _current_session.reset(token)


def current_session() -> SessionState:
    """Return the active session or fail the operation."""
    state = _current_session.get()
    if state is None:
        raise AgentContextUnavailableError("GainChef agent context unavailable")
    return state


@dataclass(frozen=True)
class ProfileChange:
    """Outcome of a profile update."""

    profile: UserProfile
    update: ProfileUpdate
    summary: list[str]


@dataclass(frozen=True)
class ProgressReport:
    """Read-only progress snapshot."""

    profile: UserProfile | None
    today: DailyMacros
    history: list[DailyMacros]


@dataclass(frozen=True)
class ToolResult:
    """Confirmation text plus the structured value behind it."""

    tool_name: str
    message: str
    data: object
    arguments: dict[str, object] = field(default_factory=dict)


ToolHandler = Callable[[SessionState, BaseModel], Awaitable[ToolResult]]


@dataclass(frozen=True)
class ToolDefinition:
    """Schema, description and handler of one tool."""

    name: str
    description: str
    input_model: type[BaseModel]
    handler: ToolHandler

    def spec(self) -> dict[str, object]:
        """Return the OpenAI function tool declaration."""
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": self.input_model.model_json_schema(),
            },
        }


async def _log_meal(state: SessionState, payload: MealLogInput) -> ToolResult:
    day = state.log_meal(payload)
    totals = day.totals
    message = (
        f"Meal logged. Today's totals: {format_number(totals.protein)}g protein / "
        f"{format_number(totals.carbs)}g carbs / {format_number(totals.fat)}g fat "
        f"({format_number(totals.calories)} cal)."
    )
    return ToolResult(tool_name=LOG_MEAL, message=message, data=day)


async def _update_profile(state: SessionState, payload: ProfileUpdate) -> ToolResult:
    updated = state.set_profile(payload)
    summary = _profile_summary(payload, updated)
    message = (
        f"Profile updated. {' | '.join(summary)}"
        if summary
        else "Profile updated with the provided details."
    )
    return ToolResult(
        tool_name=UPDATE_PROFILE,
        message=message,
        data=ProfileChange(profile=updated, update=payload, summary=summary),
    )


async def _get_progress(state: SessionState, payload: ProgressQuery) -> ToolResult:
    report = ProgressReport(
        profile=state.get_profile(),
        today=state.get_daily_macros(),
        history=state.get_meal_history(payload.days),
    )
    return ToolResult(
        tool_name=GET_PROGRESS, message=format_progress(report), data=report
    )


async def _save_meal_plan(state: SessionState, payload: MealPlanInput) -> ToolResult:
    plan = MealPlan(
        id=payload.id or new_id(),
        created_at=state.clock(),
        timeframe=payload.timeframe,
        days=payload.days,
        shopping_list_id=payload.shopping_list_id,
    )
    state.save_meal_plan(plan)
    return ToolResult(
        tool_name=SAVE_MEAL_PLAN,
        message=f'Meal plan "{plan.id}" saved with {len(plan.days)} day(s).',
        data=plan,
    )


async def _save_shopping_list(
    state: SessionState, payload: ShoppingListInput
) -> ToolResult:
    shopping_list = ShoppingList(
        id=payload.id or new_id(),
        created_at=state.clock(),
        timeframe=payload.timeframe,
        items=payload.items,
    )
    state.save_shopping_list(shopping_list)
    if payload.plan_id:
        latest = state.get_latest_meal_plan()
        if latest is not None and latest.id == payload.plan_id:
            state.save_meal_plan(
                latest.model_copy(update={"shopping_list_id": shopping_list.id})
            )
    return ToolResult(
        tool_name=SAVE_SHOPPING_LIST,
        message=(
            f'Shopping list "{shopping_list.id}" stored with '
            f"{len(shopping_list.items)} item(s)."
        ),
        data=shopping_list,
    )


TOOL_DEFINITIONS: tuple[ToolDefinition, ...] = (
    ToolDefinition(
        name=LOG_MEAL,
        description=(
            "Log a meal that was ALREADY EATEN. Use ONLY when user says past tense "
            "like 'I ate', 'I just had', 'I consumed'. NEVER use for requests like "
            "'give me', 'suggest', 'what should I eat', 'I want' - those need text "
            "responses, not this tool."
        ),
        input_model=MealLogInput,
        handler=_log_meal,
    ),
    ToolDefinition(
        name=UPDATE_PROFILE,
        description=(
            "SAVE changes to the user's fitness profile, goals, or macro targets. "
            "Permanently updates stored data. Only use when the user explicitly "
            "wants to SET or UPDATE their profile information (e.g., 'set my goals', "
            "'update my weight', 'change my targets')."
        ),
        input_model=ProfileUpdate,
        handler=_update_profile,
    ),
    ToolDefinition(
        name=GET_PROGRESS,
        description=(
            "RETRIEVE and summarize the user's current macros and historical trend "
            "data. Read-only operation. Use when user explicitly requests progress "
            "information (e.g., 'show my progress', 'how am I doing', "
            "'check my stats')."
        ),
        input_model=ProgressQuery,
        handler=_get_progress,
    ),
    ToolDefinition(
        name=SAVE_MEAL_PLAN,
        description=(
            "Save a structured multi-day meal plan. Use ONLY when user says "
            "'create a plan', 'save a plan', 'build a plan'. NEVER use for 'give me "
            "meal ideas', 'what should I eat', 'suggest meals' - answer those with "
            "text."
        ),
        input_model=MealPlanInput,
        handler=_save_meal_plan,
    ),
    ToolDefinition(
        name=SAVE_SHOPPING_LIST,
        description=(
            "CREATE and STORE a shopping list based on a saved meal plan. "
            "Permanently saves the list. Only use when user explicitly wants to "
            "GENERATE or CREATE a shopping list (e.g., 'generate a shopping list', "
            "'create my grocery list', 'make a shopping list')."
        ),
        input_model=ShoppingListInput,
        handler=_save_shopping_list,
    ),
)


@dataclass
class ToolDispatcher:
    """Validates tool input and runs the operation against the active session."""

    definitions: dict[str, ToolDefinition] = field(
        default_factory=lambda: {tool.name: tool for tool in TOOL_DEFINITIONS}
    )

    def names(self) -> list[str]:
        """Return the registered tool names."""
        return list(self.definitions)

    def specs(self, names: list[str] | None = None) -> list[dict[str, object]]:
        """Return tool declarations, optionally restricted to some names."""
        selected = self.names() if names is None else names
        return [
            self.definitions[name].spec()
            for name in selected
            if name in self.definitions
        ]

    async def execute(self, name: str, arguments: dict[str, object]) -> ToolResult:
        """Validate arguments and run a tool against the current session."""
        definition = self.definitions.get(name)
        if definition is None:
            raise UnknownToolError(f"Unknown tool: {name}")
        try:
            payload = definition.input_model.model_validate(arguments)
        except ValidationError as exc:
            _logger.warning("Tool %s rejected invalid input: %s", name, exc)
            raise ToolValidationError(f"Invalid input for {name}: {exc}") from exc
        state = current_session()
        result = await definition.handler(state, payload)
        return ToolResult(
            tool_name=result.tool_name,
            message=result.message,
            data=result.data,
            arguments=payload.model_dump(mode="json", exclude_none=True),
        )


def format_progress(report: ProgressReport) -> str:
    """Render the multi-section progress summary."""
    today = report.today
    lines = [f"Today ({today.date}): {format_macros(today.totals)}"]
    if today.meals:
        foods = ", ".join(meal.food for meal in today.meals[:5])
        lines.append(f"Meals logged: {foods}")
    else:
        lines.append("No meals logged yet today.")

    targets = report.profile.macro_targets if report.profile else None
    if targets is not None:
        lines.append(f"Targets: {format_macros(targets)}")

    other_days = [day for day in report.history if day.date != today.date][:3]
    if other_days:
        lines.append("Recent days:")
        for day in other_days:
            lines.append(
                f"- {day.date}: {format_macros(day.totals)}, {len(day.meals)} meals"
            )
    return "\n".join(lines)


def _profile_summary(update: ProfileUpdate, profile: UserProfile) -> list[str]:
    parts: list[str] = []
    if update.name:
        parts.append(f"Name set to {update.name}")
    if update.goal_type:
        parts.append(f"Goal updated to {update.goal_type}")
    if update.weight is not None and update.target_weight is not None:
        parts.append(
            f"Tracking progress {format_number(update.weight)} lbs -> "
            f"{format_number(update.target_weight)} lbs"
        )
    elif update.weight is not None:
        parts.append(f"Weight set to {format_number(update.weight)} lbs")
    elif update.target_weight is not None:
        parts.append(f"Target weight set to {format_number(update.target_weight)} lbs")
    if update.macro_targets is not None and profile.macro_targets is not None:
        parts.append(f"Targets: {format_macros(profile.macro_targets)}")
    covered = {"name", "goal_type", "weight", "target_weight", "macro_targets"}
    others = [
        key
        for key in update.model_dump(exclude_unset=True, exclude_none=True)
        if key not in covered
    ]
    if others:
        parts.append(f"Also updated: {', '.join(others)}")
    return parts
