"""Core agent runtime."""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Mapping
from typing import Any

from catalyst.llm.base import LLMProvider
from catalyst.memory import MemoryStore
from catalyst.models import LLMResponse, LLMToolCall, Message, Session
from catalyst.sessions import SessionManager
from catalyst.soul import Persona
from catalyst.stores.base import StoreClient
from catalyst.tools.registry import ToolRegistry

LOGGER = logging.getLogger(__name__)

FALLBACK_REPLY = "I apologize, but I was unable to generate a response."


class ToolLoopLimitExceeded(RuntimeError):
    """The model kept requesting tools past the configured number of rounds."""

    def __init__(self, session_id: str, limit: int) -> None:
        super().__init__(f"Session {session_id} exceeded {limit} tool rounds")
        self.session_id = session_id
        self.limit = limit


class AgentRuntime:
    """Session-isolated runtime orchestrating memory, tools, and model calls.

    One ``chat`` call is one turn: the user message and the final assistant
    reply are stored; intermediate tool-call and tool-result turns only live
    for the duration of the call.
    """

    def __init__(
        self,
        sessions: SessionManager,
        llm: LLMProvider,
        tool_registry: ToolRegistry,
        persona: Persona | None = None,
        stores: Mapping[str, StoreClient] | None = None,
        memory: MemoryStore | None = None,
        max_tool_iterations: int = 10,
        request_timeout_seconds: float = 60.0,
    ) -> None:
        self._sessions = sessions
        self._llm = llm
        self._tool_registry = tool_registry
        self._persona = persona or Persona()
        self._stores = dict(stores or {})
        self._memory = memory
        self._max_tool_iterations = max_tool_iterations
        self._request_timeout_seconds = request_timeout_seconds

    @property
    def sessions(self) -> SessionManager:
        return self._sessions

    @property
    def persona(self) -> Persona:
        return self._persona

    @property
    def stores(self) -> dict[str, StoreClient]:
        return self._stores

    @property
    def tool_names(self) -> list[str]:
        return self._tool_registry.names

    async def chat(self, message: str, session_id: str, channel: str) -> str:
        """Handle one inbound user message and return the assistant reply."""

        async with self._sessions.lock(session_id):
            session = self._sessions.get_or_create(session_id, channel)
            user_message = Message(role="user", content=message, channel=channel)
            self._sessions.add_message(session_id, user_message)

            try:
                reply = await self._run_turn(session)
            except (Exception, asyncio.CancelledError):
                self._rollback(session, user_message)
                raise

            self._sessions.add_message(session_id, Message(role="assistant", content=reply, channel=channel))
            if self._memory is not None:
                _note_turn(self._memory, session_id, channel, message)
            return reply

    def history(self, session_id: str) -> list[Message]:
        session = self._sessions.get(session_id)
        if session is None:
            return []
        return list(session.messages)

    def system_prompt(self, session: Session) -> str:
        parts = [self._persona.system_prompt().rstrip()]
        store = self._stores.get(session.context.store)
        if store is not None:
            parts.append(f"Connected store: {store.name} ({store.platform})")
        else:
            parts.append("No store connected")
        if self._memory is not None:
            memory_context = self._memory.prompt_context()
            if memory_context:
                parts.append(memory_context)
        return "\n\n".join(parts)

    async def _run_turn(self, session: Session) -> str:
        system = self.system_prompt(session)
        context: list[dict[str, Any]] = [
            {"role": m.role, "content": m.content} for m in session.messages if m.role in ("user", "assistant")
        ]
        tools = self._tool_registry.list_tool_specs()

        response = await self._generate(system, context, tools)
        rounds = 0
        while response.wants_tools:
            rounds += 1
            if rounds > self._max_tool_iterations:
                LOGGER.error("Session %s hit the tool round limit (%d)", session.id, self._max_tool_iterations)
                raise ToolLoopLimitExceeded(session.id, self._max_tool_iterations)

            calls = _with_call_ids(response.tool_calls, rounds)
            LOGGER.info(
                "Session %s tool round %d: %s", session.id, rounds, ", ".join(c.name for c in calls)
            )
            results = await asyncio.gather(
                *(self._tool_registry.execute(c.name, c.arguments, session) for c in calls)
            )
            context.append(_assistant_tool_turn(response.content, calls))
            context.extend(
                {"role": "tool", "tool_call_id": call.call_id, "content": result}
                for call, result in zip(calls, results)
            )
            response = await self._generate(system, context, tools)

        reply = response.content.strip()
        if not reply:
            LOGGER.warning("Model returned an empty reply for session %s (stop=%r)", session.id, response.stop_reason)
            return FALLBACK_REPLY
        return reply

    async def _generate(
        self, system: str, context: list[dict[str, Any]], tools: list[dict[str, Any]]
    ) -> LLMResponse:
        return await asyncio.wait_for(
            self._llm.generate(system, list(context), tools=tools or None),
            timeout=self._request_timeout_seconds,
        )

    def _rollback(self, session: Session, user_message: Message) -> None:
        if session.messages and session.messages[-1] is user_message:
            session.messages.pop()
            self._sessions.save(session)
        LOGGER.warning("Turn failed for session %s; user message rolled back", session.id)


def _note_turn(memory: MemoryStore, session_id: str, channel: str, message: str) -> None:
    try:
        memory.append_daily_note(f"[{channel}] {session_id[:8]}: {message[:100]}")
    except (OSError, ValueError):
        LOGGER.exception("Failed to append daily note for session %s", session_id)


def _with_call_ids(calls: list[LLMToolCall], round_number: int) -> list[LLMToolCall]:
    return [
        call if call.call_id else LLMToolCall(call.name, call.arguments, f"call_{round_number}_{index}")
        for index, call in enumerate(calls)
    ]


def _assistant_tool_turn(content: str, calls: list[LLMToolCall]) -> dict[str, Any]:
    return {
        "role": "assistant",
        "content": content,
        "tool_calls": [
            {
                "id": call.call_id,
                "type": "function",
                "function": {"name": call.name, "arguments": json.dumps(call.arguments)},
            }
            for call in calls
        ],
    }
