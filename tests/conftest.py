"""Shared test fixtures."""

from collections.abc import AsyncIterator
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta

import pytest

from gainchef.adapters.workflow_client import InProcessWorkflowRunner
from gainchef.config import Settings
from gainchef.containers import AppContainer, build_container
from gainchef.domain.chat import ChatMessage, StreamEvent
from gainchef.domain.macros import MacroTotals
from gainchef.domain.meals import MealLogInput
from gainchef.domain.plans import MealPlan, MealPlanDay, MealPlanEntry
from gainchef.services.model_resolver import (
    ChatModel,
    ModelChunk,
    ModelMessage,
    TextDelta,
    ToolCallRequest,
)
from gainchef.services.session_state import SessionState
from gainchef.services.state_store import InMemoryStateStore, InMemoryStateStoreFactory

FIXED_NOW = datetime(2025, 10, 14, 15, 30, tzinfo=UTC)


@dataclass
class FakeClock:
    """Controllable clock for time-dependent services."""

    now: datetime = FIXED_NOW

    def __call__(self) -> datetime:
        return self.now

    def advance(self, delta: timedelta) -> None:
        self.now = self.now + delta


@dataclass
class ModelCall:
    system: str
    messages: list[ModelMessage]
    tools: list[dict[str, object]] | None


@dataclass
class FakeChatModel(ChatModel):
    """Scripted chat backend: one list of chunks (or an error) per call."""

    steps: list[list[ModelChunk] | Exception] = field(default_factory=list)
    calls: list[ModelCall] = field(default_factory=list)

    async def stream(
        self,
        *,
        system: str,
        messages: list[ModelMessage],
        tools: list[dict[str, object]] | None,
    ) -> AsyncIterator[ModelChunk]:
        self.calls.append(ModelCall(system=system, messages=list(messages), tools=tools))
        step = self.steps.pop(0) if self.steps else [TextDelta(text="Okay.")]
        if isinstance(step, Exception):
            raise step
        for chunk in step:
            yield chunk

    def offered_tool_names(self, call_index: int = 0) -> list[str]:
        tools = self.calls[call_index].tools or []
        return [tool["function"]["name"] for tool in tools]


@dataclass
class FakeBackendFactory:
    """Returns a scripted backend per model id and records requests."""

    models: dict[str, FakeChatModel] = field(default_factory=dict)
    requested: list[str] = field(default_factory=list)

    def __call__(self, model: str) -> ChatModel:
        self.requested.append(model)
        if model not in self.models:
            self.models[model] = FakeChatModel()
        return self.models[model]


def text(value: str) -> TextDelta:
    return TextDelta(text=value)


def tool_call(name: str, arguments: dict[str, object], call_id: str = "call_1"):
    return ToolCallRequest(id=call_id, name=name, arguments=arguments)


def user(message: str) -> ChatMessage:
    return ChatMessage.from_text("user", message)


def meal(food: str, protein: float, carbs: float, fat: float, calories: float):
    return MealLogInput(
        food=food, protein=protein, carbs=carbs, fat=fat, calories=calories
    )


def event_types(events: list[StreamEvent]) -> list[str]:
    return [event.type for event in events]


def streamed_text(events: list[StreamEvent]) -> str:
    return "".join(event.delta or "" for event in events if event.type == "text-delta")


@pytest.fixture
def settings() -> Settings:
    return Settings(
        openai_api_key="openai-key",
        openai_model="gpt-4o-mini",
        supabase_url=None,
        supabase_service_key=None,
        workflow_url=None,
    )


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store() -> InMemoryStateStore:
    return InMemoryStateStore()


@pytest.fixture
def session_state(store: InMemoryStateStore, clock: FakeClock) -> SessionState:
    return SessionState(session_id="session-1", store=store, clock=clock)


@pytest.fixture
def backend_factory() -> FakeBackendFactory:
    return FakeBackendFactory()


@pytest.fixture
def store_factory() -> InMemoryStateStoreFactory:
    return InMemoryStateStoreFactory()


@pytest.fixture
def workflow_runner() -> InProcessWorkflowRunner:
    return InProcessWorkflowRunner(cool_down=timedelta(0))


@pytest.fixture
def container(
    settings: Settings,
    store_factory: InMemoryStateStoreFactory,
    backend_factory: FakeBackendFactory,
    workflow_runner: InProcessWorkflowRunner,
) -> AppContainer:
    return build_container(
        settings,
        store_factory=store_factory,
        backend_factory=backend_factory,
        workflow_client=workflow_runner,
    )


def sample_plan(plan_id: str, created_at: datetime = FIXED_NOW) -> MealPlan:
    return MealPlan(
        id=plan_id,
        created_at=created_at,
        days=[
            MealPlanDay(
                date="2025-10-14",
                goal_summary="High protein",
                meals=[
                    MealPlanEntry(
                        meal_type="breakfast",
                        name="Oats",
                        description="Overnight oats",
                        macros=MacroTotals(protein=30, carbs=60, fat=10, calories=450),
                        ingredients=["oats"],
                        preparation_steps=["soak"],
                    )
                ],
            )
        ],
    )
