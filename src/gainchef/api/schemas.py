"""HTTP request and response bodies."""

from pydantic import BaseModel, Field

from gainchef.domain.chat import ChatMessage

SESSION_ID_PATTERN = r"^[A-Za-z0-9_-]{1,128}$"


class ChatRequest(BaseModel):
    """Conversation sent by the client for one turn."""

    messages: list[ChatMessage] = Field(default_factory=list)


class ResetResponse(BaseModel):
    success: bool
    message: str


class WorkflowAccepted(BaseModel):
    workflow_id: str
    status: str
