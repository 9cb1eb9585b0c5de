"""Drives generation for one chat turn and composes the response stream."""

import asyncio
import logging
from collections.abc import AsyncIterator, Callable
from dataclasses import dataclass, field
from enum import StrEnum
from uuid import uuid4

from gainchef.domain.chat import ChatMessage, StreamEvent, cleanup_messages
from gainchef.services.context_builder import (
    build_system_prompt,
    load_session_context,
    without_tools_prompt,
)
from gainchef.services.intent import IntentDecision, classify_intent
from gainchef.services.model_resolver import (
    ModelMessage,
    ModelResolver,
    ResolvedModel,
    TextDelta,
    ToolCallRequest,
    is_recoverable_model_error,
)
from gainchef.services.narration import format_tool_narration
from gainchef.services.rate_limit import RateLimiter
from gainchef.services.session_state import SessionState
from gainchef.services.state_store import StateStore
from gainchef.services.tools import (
    ToolDispatcher,
    ToolError,
    ToolResult,
    UnknownToolError,
    session_scope,
)

MAX_STEPS = 3

RATE_LIMITED_MESSAGE = (
    "I need a breather, too many requests right now. Try again in a few minutes."
)
UNAVAILABLE_MESSAGE = (
    "I can't reach an AI model right now. Make sure an OpenAI key is configured."
)
FAILED_MESSAGE = "I hit a snag generating that answer. Please try again in a moment."

_logger = logging.getLogger(__name__)


class ComposerState(StrEnum):
    """Lifecycle of one chat turn."""

    ADMITTING = "admitting"
    RESOLVING = "resolving"
    CONTEXT_BUILDING = "context_building"
    GENERATING = "generating"
    COMPLETED = "completed"
    REJECTED = "rejected"
    UNAVAILABLE = "unavailable"
    FAILED = "failed"
    CANCELLED = "cancelled"


_FINAL_STATES = frozenset(
    {
        ComposerState.COMPLETED,
        ComposerState.REJECTED,
        ComposerState.UNAVAILABLE,
        ComposerState.FAILED,
        ComposerState.CANCELLED,
    }
)


def plain_text_events(text: str) -> list[StreamEvent]:
    """Return a complete text segment carrying one delta."""
    segment_id = _new_segment_id()
    return [
        StreamEvent(type="text-start", id=segment_id),
        StreamEvent(type="text-delta", id=segment_id, delta=text),
        StreamEvent(type="text-end", id=segment_id),
    ]


def _new_segment_id() -> str:
    return uuid4().hex


@dataclass
class StreamComposer:
    """Factory for per-request composer runs."""

    resolver: ModelResolver
    dispatcher: ToolDispatcher
    rate_limiter_factory: Callable[[StateStore], RateLimiter]
    max_steps: int = MAX_STEPS
    intent_gating: bool = True

    def start(
        self,
        session: SessionState,
        messages: list[ChatMessage],
        abort: asyncio.Event | None = None,
    ) -> "ComposerRun":
        """Prepare a run for one chat turn."""
        return ComposerRun(
            composer=self, session=session, messages=messages, abort=abort
        )

    def run(
        self,
        session: SessionState,
        messages: list[ChatMessage],
        abort: asyncio.Event | None = None,
    ) -> AsyncIterator[StreamEvent]:
        """Stream the response events for one chat turn."""
        return self.start(session, messages, abort).stream()


@dataclass
class ComposerRun:
    """State machine for one chat turn."""

    composer: StreamComposer
    session: SessionState
    messages: list[ChatMessage]
    abort: asyncio.Event | None = None
    state: ComposerState = ComposerState.ADMITTING
    provider: str | None = None
    attempts: list[str] = field(default_factory=list)
    tool_results: list[ToolResult] = field(default_factory=list)
    _reply: list[str] = field(default_factory=list, repr=False)

    def cancel(self) -> None:
        """Record that the caller abandoned the run."""
        if self.abort is not None:
            self.abort.set()
        if self.state not in _FINAL_STATES:
            self.state = ComposerState.CANCELLED

    async def stream(self) -> AsyncIterator[StreamEvent]:
        """Yield the ordered response events."""
        yield StreamEvent(type="start")

        self.state = ComposerState.ADMITTING
        limiter = self.composer.rate_limiter_factory(self.session.store)
        if not limiter.admit():
            _logger.info("Rejected request for session %s", self.session.session_id)
            for event in self._terminate(ComposerState.REJECTED, RATE_LIMITED_MESSAGE):
                yield event
            return

        self.state = ComposerState.RESOLVING
        model = self.composer.resolver.resolve()
        if model is None:
            _logger.error("No model could be resolved. Check OpenAI settings.")
            for event in self._terminate(
                ComposerState.UNAVAILABLE, UNAVAILABLE_MESSAGE
            ):
                yield event
            return
        _logger.info("Using model %s", model.provider)

        self.state = ComposerState.CONTEXT_BUILDING
        cleaned = cleanup_messages(self.messages)
        prompt = build_system_prompt(load_session_context(self.session))
        decision = classify_intent(cleaned) if self.composer.intent_gating else None

        self.state = ComposerState.GENERATING
        emitted = False
        try:
            async for event in self._generate(model, prompt, cleaned, decision):
                emitted = True
                yield event
        except Exception as exc:
            if model.fallback is None or emitted or not is_recoverable_model_error(exc):
                _logger.exception("Generation failed with %s", model.provider)
                for event in self._terminate(ComposerState.FAILED, FAILED_MESSAGE):
                    yield event
                return
            try:
                fallback = model.fallback()
                _logger.warning(
                    "Retrying with fallback model: original=%s fallback=%s error=%s",
                    model.provider,
                    fallback.provider,
                    exc,
                )
                async for event in self._generate(fallback, prompt, cleaned, decision):
                    yield event
            except Exception:
                _logger.exception("Fallback generation failed")
                for event in self._terminate(ComposerState.FAILED, FAILED_MESSAGE):
                    yield event
                return

        if self.state is ComposerState.GENERATING:
            self.state = ComposerState.COMPLETED
        if self.state is ComposerState.COMPLETED or self._reply:
            self._persist_history(cleaned)
        yield StreamEvent(type="finish")

    def _persist_history(self, messages: list[ChatMessage]) -> None:
        reply = "".join(self._reply)
        if reply:
            messages = [
                *messages,
                ChatMessage.from_text("assistant", reply, uuid4().hex),
            ]
        self.session.save_messages(messages)

    async def _generate(
        self,
        model: ResolvedModel,
        prompt: str,
        messages: list[ChatMessage],
        decision: IntentDecision | None,
    ) -> AsyncIterator[StreamEvent]:
        self.provider = model.provider
        self.attempts.append(model.provider)
        system = prompt if model.supports_tools else without_tools_prompt(prompt)
        offered = self._offered_tools(model, decision)
        tools = self.composer.dispatcher.specs(offered) if offered else None
        history = [
            ModelMessage(role=message.role, content=message.text())
            for message in messages
            if message.role in {"user", "assistant"} and message.text()
        ]

        for _ in range(self.composer.max_steps):
            if self._aborted():
                return
            segment_id: str | None = None
            step_text: list[str] = []
            tool_call: ToolCallRequest | None = None
            async for chunk in model.backend.stream(
                system=system, messages=history, tools=tools
            ):
                if self._aborted():
                    if segment_id is not None:
                        yield StreamEvent(type="text-end", id=segment_id)
                    return
                if isinstance(chunk, TextDelta):
                    if segment_id is None:
                        segment_id = _new_segment_id()
                        yield StreamEvent(type="text-start", id=segment_id)
                    step_text.append(chunk.text)
                    yield StreamEvent(type="text-delta", id=segment_id, delta=chunk.text)
                elif tool_call is None:
                    tool_call = chunk
            if segment_id is not None:
                yield StreamEvent(type="text-end", id=segment_id)
            narration = "".join(step_text)
            self._reply.append(narration)

            if tool_call is None or self._aborted():
                return

            yield StreamEvent(
                type="tool-call",
                tool_call_id=tool_call.id,
                tool_name=tool_call.name,
                input=tool_call.arguments,
            )
            try:
                result = await self._dispatch(tool_call, offered, decision)
            except ToolError as exc:
                _logger.warning("Tool %s failed: %s", tool_call.name, exc)
                yield StreamEvent(
                    type="tool-result",
                    tool_call_id=tool_call.id,
                    tool_name=tool_call.name,
                    error_text=str(exc),
                )
                tool_output = f"Error: {exc}"
            else:
                self.tool_results.append(result)
                yield StreamEvent(
                    type="tool-result",
                    tool_call_id=tool_call.id,
                    tool_name=tool_call.name,
                    output=result.message,
                )
                summary = format_tool_narration(result)
                if summary:
                    self._reply.append(summary)
                    for event in plain_text_events(summary):
                        yield event
                tool_output = result.message

            history.append(
                ModelMessage(role="assistant", content=narration, tool_call=tool_call)
            )
            history.append(
                ModelMessage(role="tool", content=tool_output, tool_call_id=tool_call.id)
            )

    async def _dispatch(
        self,
        tool_call: ToolCallRequest,
        offered: list[str] | None,
        decision: IntentDecision | None,
    ) -> ToolResult:
        if offered is None or tool_call.name not in offered:
            raise UnknownToolError(f"Tool not available for this turn: {tool_call.name}")
        arguments = tool_call.arguments
        if decision is not None and decision.action == tool_call.name:
            # Arguments the model supplied win over the classifier's defaults.
            arguments = {**(decision.arguments or {}), **arguments}
        with session_scope(self.session):
            return await self.composer.dispatcher.execute(tool_call.name, arguments)

    def _offered_tools(
        self, model: ResolvedModel, decision: IntentDecision | None
    ) -> list[str] | None:
        if not model.supports_tools:
            return None
        names = self.composer.dispatcher.names()
        if decision is None:
            return names
        return decision.tool_names(names) or None

    def _aborted(self) -> bool:
        if self.abort is not None and self.abort.is_set():
            self.state = ComposerState.CANCELLED
            return True
        return False

    def _terminate(self, state: ComposerState, message: str) -> list[StreamEvent]:
        self.state = state
        return [*plain_text_events(message), StreamEvent(type="finish")]
