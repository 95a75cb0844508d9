"""Tests for the long-term memory tools."""

from __future__ import annotations

import pytest

from catalyst.memory import MemoryStore
from catalyst.models import Session
from catalyst.tools.registry import build_default_registry


def _session() -> Session:
    return Session(id="s1", channel="web")


@pytest.mark.asyncio
async def test_remember_files_entry_under_category(tmp_path):
    memory = MemoryStore(tmp_path)
    memory.init()
    registry = build_default_registry({}, memory)

    result = await registry.execute(
        "remember", {"content": "Gift wrap is free in December", "category": "Policies"}, _session()
    )

    assert result == "Saved to memory under 'Policies'."
    knowledge = (tmp_path / "MEMORY.md").read_text()
    policies = knowledge.split("## Policies", 1)[1].split("## ", 1)[0]
    assert "- Gift wrap is free in December" in policies


@pytest.mark.asyncio
async def test_remember_without_category_appends_to_end():
    memory = MemoryStore()
    registry = build_default_registry({}, memory)

    result = await registry.execute("remember", {"content": "  Closed on Sundays  "}, _session())

    assert result == "Saved to memory."
    assert memory.read_knowledge().endswith("- Closed on Sundays\n")


@pytest.mark.asyncio
async def test_remember_rejects_empty_content():
    registry = build_default_registry({}, MemoryStore())

    result = await registry.execute("remember", {"content": ""}, _session())

    assert result.startswith("Invalid input for remember:")


@pytest.mark.asyncio
async def test_remember_rejects_whitespace_only_content():
    memory = MemoryStore()
    before = memory.read_knowledge()
    registry = build_default_registry({}, memory)

    result = await registry.execute("remember", {"content": "   ", "category": "Policies"}, _session())

    assert result.startswith("Invalid input for remember:")
    assert memory.read_knowledge() == before


@pytest.mark.asyncio
async def test_search_memory_finds_saved_fact():
    memory = MemoryStore()
    registry = build_default_registry({}, memory)
    await registry.execute("remember", {"content": "VIP Jane prefers express shipping"}, _session())

    found = await registry.execute("search_memory", {"query": "express"}, _session())
    missing = await registry.execute("search_memory", {"query": "unicorn"}, _session())

    assert "- VIP Jane prefers express shipping" in found.splitlines()
    assert missing == "No memory entries found for 'unicorn'."
