"""FastAPI route definitions for the Catalyst gateway."""

from __future__ import annotations

import asyncio
import logging
import uuid
from typing import Any

from fastapi import APIRouter, BackgroundTasks, HTTPException, Query, Request
from fastapi.responses import PlainTextResponse

from catalyst.agent_runtime import AgentRuntime
from catalyst.api.schemas import (
    AskRequest,
    AskResponse,
    ChatRequest,
    ChatResponse,
    GreetingResponse,
    HealthResponse,
    HistoryResponse,
    MessageOut,
    SessionDetail,
    SessionsResponse,
    SessionSummary,
    WebhookAck,
)
from catalyst.channels import normalize_payload
from catalyst.config import Settings
from catalyst.models import InboundMessage, Session

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api")
webhook_router = APIRouter()

DEFAULT_CHANNEL = "api"


def _get_runtime(request: Request) -> AgentRuntime:
    runtime = getattr(request.app.state, "runtime", None)
    if runtime is None:
        raise HTTPException(
            status_code=503,
            detail="The agent is still starting up. Please try again in a moment.",
        )
    return runtime


def _get_settings(request: Request) -> Settings:
    settings = getattr(request.app.state, "settings", None)
    return settings if settings is not None else Settings()


async def _run_chat(request: Request, text: str, session_id: str, channel: str) -> str:
    runtime = _get_runtime(request)
    settings = _get_settings(request)
    request_id = getattr(request.state, "request_id", "?")
    try:
        return await asyncio.wait_for(
            runtime.chat(text, session_id, channel),
            timeout=settings.chat_timeout_seconds,
        )
    except asyncio.TimeoutError as e:
        logger.error("[%s] Chat timed out for session %s", request_id, session_id)
        raise HTTPException(status_code=504, detail="The assistant took too long to respond.") from e
    except Exception as e:
        logger.exception("[%s] Error processing chat for session %s", request_id, session_id)
        raise HTTPException(status_code=500, detail="Failed to process message") from e


def _summary(session: Session) -> SessionSummary:
    return SessionSummary(
        id=session.id,
        channel=session.channel,
        message_count=len(session.messages),
        created_at=session.created_at,
        last_activity=session.last_activity,
    )


# ── Health ───────────────────────────────────────────────────────────


@webhook_router.get("/health", response_model=HealthResponse)
async def health_check():
    return HealthResponse()


# ── Chat ─────────────────────────────────────────────────────────────


@router.post("/chat", response_model=ChatResponse)
async def chat(body: ChatRequest, request: Request):
    """Send a message to the agent; a session id is generated when absent."""

    if not body.message or not body.message.strip():
        raise HTTPException(status_code=400, detail="Message is required")
    session_id = body.session_id or str(uuid.uuid4())
    channel = body.channel or DEFAULT_CHANNEL
    reply = await _run_chat(request, body.message, session_id, channel)
    return ChatResponse(response=reply, session_id=session_id)


@router.get("/chat", response_model=HistoryResponse | GreetingResponse)
async def chat_history(request: Request, session_id: str | None = Query(default=None, alias="sessionId")):
    """Conversation history for ``sessionId``, or the greeting when none is given."""

    runtime = _get_runtime(request)
    if not session_id:
        settings = _get_settings(request)
        return GreetingResponse(greeting=settings.agent_greeting, agent_name=runtime.persona.name)
    messages = [
        MessageOut(role=m.role, content=m.content, channel=m.channel, timestamp=m.timestamp)
        for m in runtime.history(session_id)
    ]
    return HistoryResponse(session_id=session_id, messages=messages)


@router.post("/ask", response_model=AskResponse)
async def ask(body: AskRequest, request: Request):
    """One-off question answered in a fresh session."""

    if not body.message or not body.message.strip():
        raise HTTPException(status_code=400, detail="Message is required")
    reply = await _run_chat(request, body.message, str(uuid.uuid4()), body.channel or DEFAULT_CHANNEL)
    return AskResponse(response=reply)


# ── Sessions ─────────────────────────────────────────────────────────


@router.get("/sessions", response_model=SessionsResponse)
async def list_sessions(request: Request):
    runtime = _get_runtime(request)
    return SessionsResponse(sessions=[_summary(s) for s in runtime.sessions.list()])


@router.get("/sessions/{session_id}", response_model=SessionDetail)
async def get_session(session_id: str, request: Request):
    runtime = _get_runtime(request)
    session = runtime.sessions.get(session_id)
    if session is None:
        raise HTTPException(status_code=404, detail="Session not found")
    return SessionDetail(
        **_summary(session).model_dump(),
        customer_id=session.customer_id,
        context=session.context.to_dict(),
    )


@router.delete("/sessions/{session_id}")
async def delete_session(session_id: str, request: Request):
    runtime = _get_runtime(request)
    runtime.sessions.delete(session_id, purge=True)
    return {"success": True}


@router.get("/config")
async def get_config(request: Request):
    """Running configuration without secrets."""

    runtime = _get_runtime(request)
    settings = _get_settings(request)
    return {
        "name": runtime.persona.name,
        "provider": settings.ai_provider,
        "model": settings.model,
        "stores": [{"name": s.name, "platform": s.platform, "url": s.url} for s in settings.stores],
        "tools": runtime.tool_names,
        "longTermMemory": settings.long_term_memory,
    }


# ── Webhooks ─────────────────────────────────────────────────────────


async def _process_inbound(runtime: AgentRuntime, inbound: InboundMessage, request_id: str) -> None:
    # Delivery back to the transport is not implemented; the reply is logged.
    try:
        reply = await runtime.chat(inbound.text, inbound.session_id, inbound.channel)
    except Exception:
        logger.exception("[%s] Webhook processing failed on %s", request_id, inbound.channel)
        return
    logger.info(
        "[%s] Reply ready for %s via %s (%d chars)",
        request_id,
        inbound.reply_to or inbound.session_id,
        inbound.channel,
        len(reply),
    )


async def _accept_webhook(
    channel: str, request: Request, background_tasks: BackgroundTasks
) -> WebhookAck:
    runtime = _get_runtime(request)
    try:
        body: Any = await request.json()
    except ValueError as e:
        raise HTTPException(status_code=400, detail="Invalid JSON body") from e
    if not isinstance(body, dict):
        raise HTTPException(status_code=400, detail="Invalid JSON body")

    inbound = normalize_payload(channel, body)
    if inbound is None:
        raise HTTPException(status_code=400, detail="No message found in payload")

    request_id = getattr(request.state, "request_id", "?")
    logger.info("[%s] Webhook accepted on %s for session %s", request_id, inbound.channel, inbound.session_id)
    background_tasks.add_task(_process_inbound, runtime, inbound, request_id)
    return WebhookAck(channel=inbound.channel, session_id=inbound.session_id)


@webhook_router.post("/webhook/{channel}", response_model=WebhookAck)
async def webhook(channel: str, request: Request, background_tasks: BackgroundTasks):
    return await _accept_webhook(channel, request, background_tasks)


@router.post("/webhook", response_model=WebhookAck)
async def webhook_query(request: Request, background_tasks: BackgroundTasks, channel: str = Query(default="generic")):
    return await _accept_webhook(channel, request, background_tasks)


@webhook_router.get("/webhook/{channel}")
async def verify_webhook(
    channel: str,
    request: Request,
    mode: str | None = Query(default=None, alias="hub.mode"),
    token: str | None = Query(default=None, alias="hub.verify_token"),
    challenge: str | None = Query(default=None, alias="hub.challenge"),
):
    """Meta-style subscription handshake; other channels get a status payload."""

    if mode == "subscribe":
        expected = _get_settings(request).whatsapp_verify_token
        if expected and token == expected:
            return PlainTextResponse(challenge or "")
        raise HTTPException(status_code=403, detail="Verification failed")
    return {"status": "ok", "channel": channel}
