"""Pydantic schemas for the gateway endpoints (camelCase on the wire)."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class _Wire(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class ChatRequest(_Wire):
    """Incoming chat message. ``message`` is checked by the route so a missing one is a 400."""

    message: str | None = Field(default=None, max_length=8000)
    session_id: str | None = Field(default=None, alias="sessionId", max_length=200)
    channel: str | None = Field(default=None, max_length=50)


class AskRequest(_Wire):
    message: str | None = Field(default=None, max_length=8000)
    channel: str | None = Field(default=None, max_length=50)


class ChatResponse(_Wire):
    response: str = Field(..., description="The agent's reply")
    session_id: str = Field(..., alias="sessionId")


class AskResponse(_Wire):
    response: str


class MessageOut(_Wire):
    role: str
    content: str
    channel: str | None = None
    timestamp: datetime


class HistoryResponse(_Wire):
    session_id: str = Field(..., alias="sessionId")
    messages: list[MessageOut]


class GreetingResponse(_Wire):
    greeting: str
    agent_name: str = Field(..., alias="agentName")


class SessionSummary(_Wire):
    id: str
    channel: str
    message_count: int = Field(..., alias="messageCount")
    created_at: datetime = Field(..., alias="createdAt")
    last_activity: datetime = Field(..., alias="lastActivity")


class SessionDetail(SessionSummary):
    customer_id: str | None = Field(default=None, alias="customerId")
    context: dict[str, Any] = Field(default_factory=dict)


class SessionsResponse(_Wire):
    sessions: list[SessionSummary]


class WebhookAck(_Wire):
    received: bool = True
    channel: str
    session_id: str = Field(..., alias="sessionId")


class HealthResponse(_Wire):
    status: str = "ok"
    service: str = "catalyst"
