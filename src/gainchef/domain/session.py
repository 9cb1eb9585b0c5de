"""Per-session bookkeeping models."""

from datetime import datetime

from pydantic import BaseModel, Field


class RateLimitRecord(BaseModel):
    """Admitted request count for the current window."""

    count: int = Field(default=0, ge=0)
    reset_at: datetime
