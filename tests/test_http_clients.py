"""Tests for HTTP-based adapters."""

import asyncio
import json
from types import SimpleNamespace

import httpx
import pytest

from gainchef.adapters.openai_chat_model import OpenAIChatModel
from gainchef.adapters.workflow_client import HttpxWorkflowClient
from gainchef.domain.workflow import MonthlyReportPayload
from gainchef.services.model_resolver import ModelMessage, TextDelta, ToolCallRequest


def _chunk(content: str | None = None, tool_calls: list | None = None):
    delta = SimpleNamespace(content=content, tool_calls=tool_calls)
    return SimpleNamespace(choices=[SimpleNamespace(delta=delta)])


def _tool_fragment(index: int, call_id: str | None, name: str | None, arguments: str):
    function = SimpleNamespace(name=name, arguments=arguments)
    return SimpleNamespace(index=index, id=call_id, function=function)


class _FakeStream:
    def __init__(self, chunks: list) -> None:
        self._chunks = list(chunks)

    def __aiter__(self):
        return self

    async def __anext__(self):
        if not self._chunks:
            raise StopAsyncIteration
        return self._chunks.pop(0)


class _FakeCompletions:
    def __init__(self, chunks: list) -> None:
        self.chunks = chunks
        self.last_payload: dict[str, object] | None = None

    async def create(self, **kwargs):  # type: ignore[no-untyped-def]
        self.last_payload = kwargs
        return _FakeStream(self.chunks)


class _FakeOpenAI:
    def __init__(self, chunks: list) -> None:
        self.chat = SimpleNamespace(completions=_FakeCompletions(chunks))


def _collect(model: OpenAIChatModel, **kwargs) -> list:
    async def consume():
        return [chunk async for chunk in model.stream(**kwargs)]

    return asyncio.run(consume())


def test_openai_chat_model_streams_text_and_tool_call() -> None:
    fake = _FakeOpenAI(
        [
            SimpleNamespace(choices=[]),
            _chunk(content="Logging "),
            _chunk(content="now."),
            _chunk(tool_calls=[_tool_fragment(0, "call_9", "logMeal", '{"food": ')]),
            _chunk(tool_calls=[_tool_fragment(0, None, None, '"oats"}')]),
        ]
    )
    model = OpenAIChatModel(client=fake, model="gpt-4o-mini")
    tools = [{"type": "function", "function": {"name": "logMeal"}}]

    chunks = _collect(
        model,
        system="You are GainChef",
        messages=[ModelMessage(role="user", content="I ate oats")],
        tools=tools,
    )

    assert chunks == [
        TextDelta(text="Logging "),
        TextDelta(text="now."),
        ToolCallRequest(id="call_9", name="logMeal", arguments={"food": "oats"}),
    ]
    payload = fake.chat.completions.last_payload
    assert payload["stream"] is True
    assert payload["parallel_tool_calls"] is False
    assert payload["messages"][0] == {"role": "system", "content": "You are GainChef"}


def test_openai_chat_model_serializes_tool_history() -> None:
    fake = _FakeOpenAI([_chunk(content="Done.")])
    model = OpenAIChatModel(client=fake, model="gpt-4o-mini")
    call = ToolCallRequest(id="call_1", name="getProgress", arguments={"days": 3})

    _collect(
        model,
        system="sys",
        messages=[
            ModelMessage(role="user", content="show my progress"),
            ModelMessage(role="assistant", content="", tool_call=call),
            ModelMessage(role="tool", content="Today: ...", tool_call_id="call_1"),
        ],
        tools=None,
    )

    payload = fake.chat.completions.last_payload
    assert "tools" not in payload
    assistant, tool = payload["messages"][2], payload["messages"][3]
    assert assistant["content"] is None
    assert assistant["tool_calls"][0]["function"] == {
        "name": "getProgress",
        "arguments": json.dumps({"days": 3}),
    }
    assert tool == {"role": "tool", "tool_call_id": "call_1", "content": "Today: ..."}


def test_openai_chat_model_tolerates_malformed_arguments() -> None:
    fake = _FakeOpenAI([_chunk(tool_calls=[_tool_fragment(0, "c", "logMeal", "{oops")])])
    model = OpenAIChatModel(client=fake, model="gpt-4o-mini")

    chunks = _collect(model, system="sys", messages=[], tools=None)

    assert chunks == [ToolCallRequest(id="c", name="logMeal", arguments={})]


def test_workflow_client_posts_payload() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"id": "wf-42"})

    client = HttpxWorkflowClient(
        url="https://scheduler.example.com/workflows",
        http_client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
        token="secret",
    )
    payload = MonthlyReportPayload(type="monthly_report", user_id="u1", month="2025-10")

    workflow_id = asyncio.run(client.create(payload))

    assert workflow_id == "wf-42"
    assert seen[0].headers["Authorization"] == "Bearer secret"
    body = json.loads(seen[0].content.decode())
    assert body["params"]["type"] == "monthly_report"
    assert body["params"]["month"] == "2025-10"


def test_workflow_client_raises_on_error_status() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(503, json={"error": "down"})

    client = HttpxWorkflowClient(
        url="https://scheduler.example.com/workflows",
        http_client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
    )
    payload = MonthlyReportPayload(type="monthly_report", user_id="u1", month="2025-10")

    with pytest.raises(httpx.HTTPStatusError):
        asyncio.run(client.create(payload))
