"""Batch coaching workflows: payload validation, dispatch and step sequences."""

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from typing import Literal, Protocol

from pydantic import TypeAdapter, ValidationError

from gainchef.domain.profile import UserProfile
from gainchef.domain.workflow import (
    DailyMacroCheckPayload,
    MonthlyReportPayload,
    WeeklyMealPrepPayload,
    WorkflowEvent,
    WorkflowPayload,
)
from gainchef.services.session_state import SessionState

WorkflowKind = Literal["weekly_meal_prep", "daily_macro_check", "monthly_report"]

ACCEPTED = "accepted"
MONTHLY_COOL_DOWN = timedelta(seconds=10)

_PAYLOAD_ADAPTER: TypeAdapter[WorkflowPayload] = TypeAdapter(WorkflowPayload)

_logger = logging.getLogger(__name__)


class InvalidWorkflowPayloadError(ValueError):
    """Raised when a workflow trigger body is malformed."""


class WorkflowClient(Protocol):
    """Interface for starting workflow instances."""

    async def create(self, payload: WorkflowPayload) -> str:
        """Start a workflow and return its instance id."""


@dataclass(frozen=True)
class WorkflowTicket:
    """Acknowledgement returned to the caller of a trigger."""

    workflow_id: str
    status: str = ACCEPTED


@dataclass(frozen=True)
class WorkflowResult:
    """Outcome of a completed workflow run."""

    workflow_id: str
    payload: WorkflowPayload
    events: list[WorkflowEvent] = field(default_factory=list)
    status: str = "completed"


def parse_workflow_payload(raw: object) -> WorkflowPayload:
    """Validate a raw trigger body into a typed payload."""
    if not isinstance(raw, dict) or "type" not in raw:
        raise InvalidWorkflowPayloadError("Invalid workflow payload")
    try:
        return _PAYLOAD_ADAPTER.validate_python(raw)
    except ValidationError as exc:
        raise InvalidWorkflowPayloadError("Invalid workflow payload") from exc


def build_workflow_payload(
    kind: WorkflowKind,
    user_id: str,
    profile: UserProfile | None,
    when: datetime,
) -> WorkflowPayload:
    """Build a payload for a session, snapshotting its profile."""
    snapshot = profile.model_copy(deep=True) if profile else None
    if kind == "weekly_meal_prep":
        week_start = when.date() - timedelta(days=when.weekday())
        return WeeklyMealPrepPayload(
            type=kind,
            user_id=user_id,
            profile_snapshot=snapshot,
            week_of=week_start.isoformat(),
        )
    if kind == "daily_macro_check":
        return DailyMacroCheckPayload(
            type=kind,
            user_id=user_id,
            profile_snapshot=snapshot,
            date=when.date().isoformat(),
        )
    return MonthlyReportPayload(
        type=kind,
        user_id=user_id,
        profile_snapshot=snapshot,
        month=f"{when:%Y-%m}",
    )


async def run_workflow_steps(
    payload: WorkflowPayload,
    *,
    cool_down: timedelta = MONTHLY_COOL_DOWN,
    clock: Callable[[], datetime] = lambda: datetime.now(UTC),
) -> list[WorkflowEvent]:
    """Run the step sequence for a payload and return the recorded events."""
    events: list[WorkflowEvent] = []

    def record(name: str, note: str) -> None:
        events.append(WorkflowEvent(name=name, note=note, timestamp=clock()))
        _logger.info("Workflow step %s: %s", name, note)

    if isinstance(payload, WeeklyMealPrepPayload):
        record(
            "profile-snapshot",
            f"Loaded profile for {payload.user_id} to build weekly plan",
        )
        record("plan-generated", f"Generated weekly plan for week of {payload.week_of}")
        record(
            "reminders-scheduled",
            "Scheduled reminders for grocery shopping and prep",
        )
    elif isinstance(payload, DailyMacroCheckPayload):
        record("macros-calculated", f"Compiled macro totals for {payload.date}")
        record("summary-sent", f"Queued daily progress message for {payload.user_id}")
    elif isinstance(payload, MonthlyReportPayload):
        record("history-compiled", f"Compiled monthly stats for {payload.month}")
        if cool_down > timedelta(0):
            await asyncio.sleep(cool_down.total_seconds())
        record("report-delivered", f"Sent monthly analysis to {payload.user_id}")
    return events


@dataclass
class WorkflowService:
    """Validates trigger requests and hands them to the workflow runtime."""

    client: WorkflowClient

    async def trigger(self, raw: object) -> WorkflowTicket:
        """Validate and start a workflow."""
        payload = parse_workflow_payload(raw)
        workflow_id = await self.client.create(payload)
        _logger.info("Triggered %s workflow %s", payload.type, workflow_id)
        return WorkflowTicket(workflow_id=workflow_id)

    async def trigger_for_session(
        self, kind: WorkflowKind, session: SessionState
    ) -> WorkflowTicket:
        """Start a workflow for a session from its stored profile."""
        when = session.clock().astimezone(session.timezone())
        payload = build_workflow_payload(
            kind, session.session_id, session.get_profile(), when
        )
        workflow_id = await self.client.create(payload)
        _logger.info(
            "Triggered %s workflow %s for session %s",
            kind,
            workflow_id,
            session.session_id,
        )
        return WorkflowTicket(workflow_id=workflow_id)
