import asyncio
from datetime import date
from unittest.mock import AsyncMock, MagicMock

import pytest

from catalyst.agent_runtime import FALLBACK_REPLY, AgentRuntime, ToolLoopLimitExceeded
from catalyst.memory import MemoryStore
from catalyst.models import LLMResponse, LLMToolCall
from catalyst.sessions import SessionManager
from catalyst.soul import Persona
from catalyst.tools.registry import ToolRegistry, build_default_registry


class FakeProvider:
    """Replays scripted responses and records what each call saw."""

    def __init__(self, *responses: LLMResponse) -> None:
        self._responses = list(responses)
        self.calls: list[dict] = []

    async def generate(self, system, messages, tools=None):  # noqa: ANN001, ANN201
        self.calls.append({"system": system, "messages": messages, "tools": tools})
        if len(self._responses) > 1:
            return self._responses.pop(0)
        return self._responses[0]


def _runtime(llm, stores=None, memory=None, registry=None, max_tool_iterations=10) -> AgentRuntime:
    return AgentRuntime(
        sessions=SessionManager(MemoryStore()),
        llm=llm,
        tool_registry=registry or build_default_registry(stores or {}, memory),
        persona=Persona(),
        stores=stores,
        memory=memory,
        max_tool_iterations=max_tool_iterations,
        request_timeout_seconds=5,
    )


@pytest.mark.asyncio
async def test_chat_returns_reply_and_stores_turn():
    runtime = _runtime(FakeProvider(LLMResponse(content="hello")))

    reply = await runtime.chat("hi", "s1", "web")

    assert reply == "hello"
    history = runtime.history("s1")
    assert [(m.role, m.content) for m in history] == [("user", "hi"), ("assistant", "hello")]
    assert all(m.channel == "web" for m in history)


@pytest.mark.asyncio
async def test_history_grows_two_messages_per_turn():
    llm = FakeProvider(LLMResponse(content="one"), LLMResponse(content="two"), LLMResponse(content="three"))
    runtime = _runtime(llm)

    for text in ("a", "b", "c"):
        await runtime.chat(text, "s1", "web")

    assert len(runtime.history("s1")) == 6
    assert [m["content"] for m in llm.calls[2]["messages"]] == ["a", "one", "b", "two", "c"]


@pytest.mark.asyncio
async def test_history_of_unknown_session_is_empty_and_not_created():
    runtime = _runtime(FakeProvider(LLMResponse(content="x")))

    assert runtime.history("ghost") == []
    assert runtime.sessions.get("ghost") is None


@pytest.mark.asyncio
async def test_tool_round_pairs_results_with_calls(demo_store):
    llm = FakeProvider(
        LLMResponse(
            content="Let me check.",
            tool_calls=[
                LLMToolCall(name="lookup_order", arguments={"order_number": "1001"}, call_id="call_a"),
                LLMToolCall(name="search_products", arguments={"query": "teapot"}, call_id="call_b"),
            ],
        ),
        LLMResponse(content="Your order #1001 has shipped."),
    )
    runtime = _runtime(llm, stores={"default": demo_store})

    reply = await runtime.chat("Where is order 1001?", "s1", "web")

    assert reply == "Your order #1001 has shipped."
    second = llm.calls[1]["messages"]
    assert [m["role"] for m in second] == ["user", "assistant", "tool", "tool"]
    assert [c["id"] for c in second[1]["tool_calls"]] == ["call_a", "call_b"]
    assert second[1]["content"] == "Let me check."
    assert [m["tool_call_id"] for m in second[2:]] == ["call_a", "call_b"]
    assert '"orderNumber": "#1001"' in second[2]["content"]
    assert "Green Teapot" in second[3]["content"]
    # Tool turns are transient.
    assert [m.role for m in runtime.history("s1")] == ["user", "assistant"]
    assert runtime.sessions.get("s1").context.order_id == "ord_1001"


@pytest.mark.asyncio
async def test_tool_results_keep_call_order_when_finishing_out_of_order():
    async def execute(name, arguments, session):  # noqa: ANN001, ANN202
        if name == "slow":
            await asyncio.sleep(0.05)
        return f"{name} done"

    registry = MagicMock(spec=ToolRegistry)
    registry.list_tool_specs.return_value = []
    registry.execute = AsyncMock(side_effect=execute)
    llm = FakeProvider(
        LLMResponse(
            content="",
            tool_calls=[LLMToolCall(name="slow", arguments={}), LLMToolCall(name="fast", arguments={})],
        ),
        LLMResponse(content="done"),
    )
    runtime = _runtime(llm, registry=registry)

    await runtime.chat("go", "s1", "web")

    tool_messages = [m for m in llm.calls[1]["messages"] if m["role"] == "tool"]
    assert [m["content"] for m in tool_messages] == ["slow done", "fast done"]
    call_ids = [c["id"] for c in llm.calls[1]["messages"][1]["tool_calls"]]
    assert [m["tool_call_id"] for m in tool_messages] == call_ids
    assert len(set(call_ids)) == 2


@pytest.mark.asyncio
async def test_tool_loop_limit_raises_and_rolls_back(demo_store):
    looping = LLMResponse(
        content="",
        tool_calls=[LLMToolCall(name="get_low_stock", arguments={}, call_id="c1")],
    )
    llm = FakeProvider(looping)
    runtime = _runtime(llm, stores={"default": demo_store}, max_tool_iterations=3)

    with pytest.raises(ToolLoopLimitExceeded):
        await runtime.chat("loop forever", "s1", "web")

    assert len(llm.calls) == 4
    assert runtime.history("s1") == []


@pytest.mark.asyncio
async def test_provider_error_propagates_and_leaves_history_unchanged():
    llm = MagicMock()
    llm.generate = AsyncMock(side_effect=[LLMResponse(content="first"), RuntimeError("provider down")])
    runtime = _runtime(llm)
    await runtime.chat("hello", "s1", "web")

    with pytest.raises(RuntimeError, match="provider down"):
        await runtime.chat("are you there?", "s1", "web")

    assert [m.content for m in runtime.history("s1")] == ["hello", "first"]


@pytest.mark.asyncio
async def test_empty_reply_uses_fallback():
    runtime = _runtime(FakeProvider(LLMResponse(content="   ")))

    assert await runtime.chat("hi", "s1", "web") == FALLBACK_REPLY


@pytest.mark.asyncio
async def test_system_prompt_names_connected_store(demo_store):
    llm = FakeProvider(LLMResponse(content="ok"))
    await _runtime(llm, stores={"default": demo_store}).chat("hi", "s1", "web")

    system = llm.calls[0]["system"]
    assert system.startswith("You are Catalyst")
    assert "Connected store: default (memory)" in system


@pytest.mark.asyncio
async def test_system_prompt_without_store():
    llm = FakeProvider(LLMResponse(content="ok"))
    await _runtime(llm).chat("hi", "s1", "web")

    assert "No store connected" in llm.calls[0]["system"]


@pytest.mark.asyncio
async def test_memory_context_and_daily_note():
    memory = MemoryStore()
    memory.append_knowledge("Closed on Sundays", section="Policies")
    llm = FakeProvider(LLMResponse(content="ok"))
    runtime = _runtime(llm, memory=memory)

    await runtime.chat("x" * 150, "abcdefghijkl", "whatsapp")

    assert "## Long-term Memory" in llm.calls[0]["system"]
    assert "Closed on Sundays" in llm.calls[0]["system"]
    note = memory.read_daily_note(date.today())
    assert f"[whatsapp] abcdefgh: {'x' * 100}\n" in note
    assert "x" * 101 not in note


@pytest.mark.asyncio
async def test_turns_on_one_session_are_serialised():
    active = 0
    peak = 0

    class SlowProvider:
        async def generate(self, system, messages, tools=None):  # noqa: ANN001, ANN201
            nonlocal active, peak
            active += 1
            peak = max(peak, active)
            await asyncio.sleep(0.02)
            active -= 1
            return LLMResponse(content=f"seen {len(messages)}")

    runtime = _runtime(SlowProvider())

    replies = await asyncio.gather(runtime.chat("a", "s1", "web"), runtime.chat("b", "s1", "web"))

    assert peak == 1
    assert sorted(replies) == ["seen 1", "seen 3"]
    assert len(runtime.history("s1")) == 4


@pytest.mark.asyncio
async def test_damaged_workspace_files_do_not_break_chat(tmp_path):
    (tmp_path / "MEMORY.md").mkdir()
    (tmp_path / "memory").mkdir()
    (tmp_path / "memory" / f"{date.today().isoformat()}.md").write_bytes(b"\xff\xfe bad")
    memory = MemoryStore(tmp_path)
    llm = FakeProvider(LLMResponse(content="still here"))
    runtime = _runtime(llm, memory=memory)

    reply = await runtime.chat("hi", "s1", "web")

    assert reply == "still here"
    assert "Return policy" in llm.calls[0]["system"]
    assert [m.content for m in runtime.history("s1")] == ["hi", "still here"]
