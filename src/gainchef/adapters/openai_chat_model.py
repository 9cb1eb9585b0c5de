"""OpenAI chat completions backend with streamed tool calls."""

import json
import logging
from collections.abc import AsyncIterator
from dataclasses import dataclass

from openai import AsyncOpenAI

from gainchef.services.model_resolver import (
    ChatModel,
    ModelChunk,
    ModelMessage,
    TextDelta,
    ToolCallRequest,
)

_logger = logging.getLogger(__name__)


@dataclass
class OpenAIChatModel(ChatModel):
    """Chat backend backed by the OpenAI chat completions API."""

    client: AsyncOpenAI
    model: str

    @classmethod
    def create(
        cls, api_key: str, model: str, base_url: str | None = None
    ) -> "OpenAIChatModel":
        """Create a chat backend for one model."""
        return cls(client=AsyncOpenAI(api_key=api_key, base_url=base_url), model=model)

    async def stream(
        self,
        *,
        system: str,
        messages: list[ModelMessage],
        tools: list[dict[str, object]] | None,
    ) -> AsyncIterator[ModelChunk]:
        """Stream one completion, yielding text and then any tool calls."""
        request_payload: dict[str, object] = {
            "model": self.model,
            "messages": [{"role": "system", "content": system}]
            + [_to_openai_message(message) for message in messages],
            "stream": True,
        }
        if tools:
            request_payload["tools"] = tools
            request_payload["parallel_tool_calls"] = False

        response = await self.client.chat.completions.create(**request_payload)
        pending: dict[int, dict[str, str]] = {}
        async for chunk in response:
            if not chunk.choices:
                continue
            delta = chunk.choices[0].delta
            if delta.content:
                yield TextDelta(text=delta.content)
            for call in delta.tool_calls or []:
                entry = pending.setdefault(
                    call.index, {"id": "", "name": "", "arguments": ""}
                )
                if call.id:
                    entry["id"] = call.id
                if call.function and call.function.name:
                    entry["name"] += call.function.name
                if call.function and call.function.arguments:
                    entry["arguments"] += call.function.arguments

        for index in sorted(pending):
            entry = pending[index]
            yield ToolCallRequest(
                id=entry["id"] or f"call_{index}",
                name=entry["name"],
                arguments=_parse_arguments(entry["arguments"]),
            )


def _to_openai_message(message: ModelMessage) -> dict[str, object]:
    if message.role == "tool":
        return {
            "role": "tool",
            "tool_call_id": message.tool_call_id,
            "content": message.content,
        }
    if message.role == "assistant" and message.tool_call is not None:
        return {
            "role": "assistant",
            "content": message.content or None,
            "tool_calls": [
                {
                    "id": message.tool_call.id,
                    "type": "function",
                    "function": {
                        "name": message.tool_call.name,
                        "arguments": json.dumps(message.tool_call.arguments),
                    },
                }
            ],
        }
    return {"role": message.role, "content": message.content}


def _parse_arguments(raw: str) -> dict[str, object]:
    if not raw.strip():
        return {}
    try:
        parsed = json.loads(raw)
    except json.JSONDecodeError:
        _logger.warning("Model returned malformed tool arguments: %s", raw)
        return {}
    return parsed if isinstance(parsed, dict) else {}
