"""FastAPI application factory."""

import asyncio
import json
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import UTC, datetime
from typing import Annotated

from fastapi import FastAPI, Path, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, StreamingResponse

from gainchef.api.schemas import (
    SESSION_ID_PATTERN,
    ChatRequest,
    ResetResponse,
    WorkflowAccepted,
)
from gainchef.app_logging import configure_logging
from gainchef.config import parse_cors_origins
from gainchef.containers import AppContainer
from gainchef.domain.chat import ChatMessage, StreamEvent
from gainchef.services.composer import ComposerRun
from gainchef.services.workflow import InvalidWorkflowPayloadError, WorkflowKind

SessionId = Annotated[str, Path(pattern=SESSION_ID_PATTERN)]

SSE_DONE = "data: [DONE]\n\n"

_logger = logging.getLogger(__name__)


class SessionLanes:
    """One lock per busy session so turns of the same session never interleave.

    A session's lock exists only while a request holds or waits for it.
    """

    def __init__(self) -> None:
        self._locks: dict[str, asyncio.Lock] = {}
        self._users: dict[str, int] = {}

    def __len__(self) -> int:
        return len(self._locks)

    @asynccontextmanager
    async def hold(self, session_id: str) -> AsyncIterator[None]:
        """Hold the session's lock for the duration of the block."""
        lock = self._locks.setdefault(session_id, asyncio.Lock())
        self._users[session_id] = self._users.get(session_id, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._users[session_id] -= 1
            if not self._users[session_id]:
                del self._users[session_id]
                del self._locks[session_id]


async def stream_turn(
    run: ComposerRun, lanes: SessionLanes, session_id: str
) -> AsyncIterator[str]:
    """Run one chat turn under the session lane and frame it as SSE."""
    async with lanes.hold(session_id):
        try:
            async for event in run.stream():
                yield format_sse(event)
        except asyncio.CancelledError:
            # Starlette cancels the response task on client disconnect.
            run.cancel()
            _logger.info("Client left session %s mid-stream", session_id)
            raise
        _logger.info("Chat turn for %s ended in %s", session_id, run.state)
    yield SSE_DONE


def format_sse(event: StreamEvent) -> str:
    """Encode one stream event as a server-sent event frame."""
    return f"data: {json.dumps(event.to_payload())}\n\n"


def create_app(container: AppContainer) -> FastAPI:
    """Create a FastAPI app configured with dependencies."""
    configure_logging(container.settings.log_level)
    lanes = SessionLanes()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        yield
        await app.state.container.close_resources()

    app = FastAPI(lifespan=lifespan)
    app.state.container = container
    app.state.lanes = lanes
    app.add_middleware(
        CORSMiddleware,
        allow_origins=parse_cors_origins(container.settings.cors_origins),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/health")
    async def health() -> dict[str, str]:
        """Simple health check endpoint."""
        return {
            "status": "ok",
            "model": container.settings.openai_model,
            "timestamp": datetime.now(tz=UTC).isoformat(),
        }

    @app.post("/api/agent/{session_id}/chat")
    async def chat(
        session_id: SessionId, payload: ChatRequest, request: Request
    ) -> StreamingResponse:
        """Stream the agent's answer for one turn as server-sent events."""
        state_container: AppContainer = request.app.state.container
        session = state_container.open_session(session_id)
        run = state_container.composer.start(
            session, payload.messages, asyncio.Event()
        )
        return StreamingResponse(
            stream_turn(run, lanes, session_id),
            media_type="text/event-stream",
            headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"},
        )

    @app.get("/api/agent/{session_id}/messages")
    async def messages(session_id: SessionId, request: Request) -> list[ChatMessage]:
        """Return the persisted conversation of a session."""
        state_container: AppContainer = request.app.state.container
        return state_container.open_session(session_id).get_messages()

    @app.post("/api/agent/{session_id}/reset", response_model=ResetResponse)
    async def reset(session_id: SessionId, request: Request) -> object:
        """Delete every persisted value of a session."""
        state_container: AppContainer = request.app.state.container
        async with lanes.hold(session_id):
            try:
                state_container.open_session(session_id).clear_all()
            except Exception:
                _logger.exception("Failed to clear data for session %s", session_id)
                return JSONResponse(
                    status_code=500, content={"error": "Failed to clear all data"}
                )
        return ResetResponse(success=True, message="All data cleared")

    @app.post("/trigger-workflow", status_code=202, response_model=WorkflowAccepted)
    async def trigger_workflow(request: Request) -> object:
        """Validate a batch payload and start its workflow."""
        state_container: AppContainer = request.app.state.container
        try:
            raw = await request.json()
        except ValueError:
            raw = None
        try:
            ticket = await state_container.workflow_service.trigger(raw)
        except InvalidWorkflowPayloadError:
            return JSONResponse(
                status_code=400, content={"detail": "Invalid workflow payload"}
            )
        except Exception:
            _logger.exception("Failed to trigger workflow")
            return JSONResponse(
                status_code=502, content={"detail": "Failed to trigger workflow"}
            )
        return WorkflowAccepted(workflow_id=ticket.workflow_id, status=ticket.status)

    @app.post(
        "/api/agent/{session_id}/workflows/{kind}",
        status_code=202,
        response_model=WorkflowAccepted,
    )
    async def trigger_session_workflow(
        session_id: SessionId, kind: WorkflowKind, request: Request
    ) -> object:
        """Start a workflow for a session using its stored profile."""
        state_container: AppContainer = request.app.state.container
        session = state_container.open_session(session_id)
        try:
            ticket = await state_container.workflow_service.trigger_for_session(
                kind, session
            )
        except Exception:
            _logger.exception("Failed to trigger %s workflow for %s", kind, session_id)
            return JSONResponse(
                status_code=502, content={"detail": "Failed to trigger workflow"}
            )
        return WorkflowAccepted(workflow_id=ticket.workflow_id, status=ticket.status)

    return app
