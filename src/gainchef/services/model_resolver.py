"""Model backend selection and fallback policy."""

import logging
from collections.abc import AsyncIterator, Callable
from dataclasses import dataclass, field
from typing import Literal, Protocol

from gainchef.config import Settings

_RECOVERABLE_MARKERS = ("model not found", "no such model", "5007")
_RECOVERABLE_ERROR_NAMES = {"InferenceUpstreamError"}

_logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ToolCallRequest:
    """A tool invocation proposed by the model."""

    id: str
    name: str
    arguments: dict[str, object]


@dataclass(frozen=True)
class TextDelta:
    """A chunk of narration text."""

    text: str


ModelChunk = TextDelta | ToolCallRequest


@dataclass(frozen=True)
class ModelMessage:
    """Provider-neutral conversation entry sent to a backend."""

    role: Literal["user", "assistant", "tool"]
    content: str = ""
    tool_call: ToolCallRequest | None = None
    tool_call_id: str | None = None


class ChatModel(Protocol):
    """Interface for a streaming chat backend."""

    def stream(
        self,
        *,
        system: str,
        messages: list[ModelMessage],
        tools: list[dict[str, object]] | None,
    ) -> AsyncIterator[ModelChunk]:
        """Yield text deltas and tool call requests for one reasoning step."""


@dataclass
class ResolvedModel:
    """A concrete backend plus its capabilities."""

    provider: str
    backend: ChatModel
    supports_tools: bool
    fallback: Callable[[], "ResolvedModel"] | None = field(default=None, repr=False)


@dataclass
class ModelResolver:
    """Chooses the backend from configuration."""

    settings: Settings
    backend_factory: Callable[[str], ChatModel]

    def resolve(self) -> ResolvedModel | None:
        """Return the configured model, or None when no credential is usable."""
        if not self.settings.openai_api_key:
            return None
        try:
            primary = self._build(self.settings.openai_model)
        except Exception:
            _logger.exception("Failed to initialize language model")
            return None

        fallback_model = self.settings.openai_fallback_model
        if fallback_model and fallback_model != self.settings.openai_model:
            primary.fallback = lambda: self._build(fallback_model)
        return primary

    def _build(self, model: str) -> ResolvedModel:
        return ResolvedModel(
            provider=f"openai:{model}",
            backend=self.backend_factory(model),
            supports_tools=self.settings.model_supports_tools,
        )


def is_recoverable_model_error(error: BaseException) -> bool:
    """Return True for backend or model availability failures."""
    message = str(error).lower()
    name = type(error).__name__
    if name in _RECOVERABLE_ERROR_NAMES:
        return True
    if any(marker in message for marker in _RECOVERABLE_MARKERS):
        return True
    return name == "NotFoundError" and "model" in message
