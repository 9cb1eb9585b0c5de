"""Chat turn and response stream models."""

from typing import Literal

from pydantic import BaseModel, Field

Role = Literal["user", "assistant", "system"]
StreamEventType = Literal[
    "start",
    "text-start",
    "text-delta",
    "text-end",
    "tool-call",
    "tool-result",
    "finish",
]


class MessagePart(BaseModel):
    """One part of a chat message."""

    type: str = "text"
    text: str | None = None
    state: str | None = None


class ChatMessage(BaseModel):
    """Role-tagged chat message made of parts."""

    id: str | None = None
    role: Role
    parts: list[MessagePart] = Field(default_factory=list)

    @classmethod
    def from_text(
        cls, role: Role, text: str, message_id: str | None = None
    ) -> "ChatMessage":
        """Build a single-part text message."""
        return cls(id=message_id, role=role, parts=[MessagePart(text=text)])

    def text(self) -> str:
        """Return the concatenated text parts."""
        return "".join(part.text or "" for part in self.parts if part.type == "text")


class StreamEvent(BaseModel):
    """Typed event emitted on the response stream."""

    type: StreamEventType
    id: str | None = None
    delta: str | None = None
    tool_call_id: str | None = None
    tool_name: str | None = None
    input: dict[str, object] | None = None
    output: str | None = None
    error_text: str | None = None

    def to_payload(self) -> dict[str, object]:
        """Return the JSON payload without empty fields."""
        return self.model_dump(mode="json", exclude_none=True)


def cleanup_messages(messages: list[ChatMessage]) -> list[ChatMessage]:
    """Drop messages that carry a tool call still streaming its input."""
    return [
        message
        for message in messages
        if not any(
            part.type.startswith("tool-") and part.state == "input-streaming"
            for part in message.parts
        )
    ]
