import asyncio
from datetime import datetime, timedelta, timezone
from unittest.mock import patch

import pytest

from catalyst.memory import MemoryStore
from catalyst.models import Message
from catalyst.sessions import SessionManager


def test_create_persists_immediately(tmp_path):
    memory = MemoryStore(tmp_path)
    memory.init()
    manager = SessionManager(memory, default_store="shop")

    session = manager.create("s1", "web", customer_id="c9")

    assert session.context.store == "shop"
    assert (tmp_path / "sessions" / "s1.json").exists()
    assert memory.get_session_record("s1")["customerId"] == "c9"


def test_get_or_create_returns_same_session():
    manager = SessionManager(MemoryStore())

    first = manager.get_or_create("s1", "web")
    second = manager.get_or_create("s1", "whatsapp")

    assert first is second
    assert second.channel == "web"


def test_get_unknown_returns_none():
    assert SessionManager(MemoryStore()).get("nope") is None


def test_add_message_updates_last_activity_and_survives_restart(tmp_path):
    memory = MemoryStore(tmp_path)
    memory.init()
    manager = SessionManager(memory)
    manager.create("s1", "web")
    stamp = datetime.now(timezone.utc) + timedelta(minutes=5)

    manager.add_message("s1", Message(role="user", content="hello", channel="web", timestamp=stamp))

    restarted_memory = MemoryStore(tmp_path)
    restarted_memory.load()
    restored = SessionManager(restarted_memory).get("s1")
    assert restored is not None
    assert [m.content for m in restored.messages] == ["hello"]
    assert restored.last_activity == stamp


def test_add_message_to_unknown_session_is_ignored():
    memory = MemoryStore()
    manager = SessionManager(memory)

    manager.add_message("ghost", Message(role="user", content="hi"))

    assert memory.session_ids() == []


def test_failed_write_keeps_in_memory_copy():
    memory = MemoryStore()
    manager = SessionManager(memory)
    manager.create("s1", "web")

    with patch.object(memory, "save_session_record", side_effect=OSError("disk full")):
        manager.add_message("s1", Message(role="user", content="still here"))

    assert [m.content for m in manager.get("s1").messages] == ["still here"]


def test_unreadable_record_counts_as_missing():
    memory = MemoryStore()
    memory.save_session_record({"id": "broken", "messages": []})  # no createdAt

    assert SessionManager(memory).get("broken") is None


def test_record_with_non_string_timestamps_counts_as_missing():
    memory = MemoryStore()
    memory.save_session_record({"id": "null-ts", "createdAt": None, "messages": []})
    memory.save_session_record({"id": "bad-msg", "createdAt": "2024-01-01T00:00:00Z", "messages": ["hi"]})
    manager = SessionManager(memory)

    assert manager.get("null-ts") is None
    assert manager.get("bad-msg") is None
    assert manager.list() == []
    assert manager.get_or_create("null-ts", "web").messages == []


def test_list_orders_by_last_activity():
    manager = SessionManager(MemoryStore())
    base = datetime.now(timezone.utc)
    for session_id in ("old", "new", "mid"):
        manager.create(session_id, "web")
    manager.add_message("old", Message(role="user", content="a", timestamp=base))
    manager.add_message("new", Message(role="user", content="b", timestamp=base + timedelta(minutes=2)))
    manager.add_message("mid", Message(role="user", content="c", timestamp=base + timedelta(minutes=1)))

    assert [s.id for s in manager.list()] == ["new", "mid", "old"]
    assert [s.id for s in manager.recent(1)] == ["new"]


def test_delete_drops_cache_and_optionally_purges(tmp_path):
    memory = MemoryStore(tmp_path)
    memory.init()
    manager = SessionManager(memory)
    manager.create("keep", "web")
    manager.create("purge", "web")

    manager.delete("keep")
    manager.delete("purge", purge=True)

    assert manager.get("keep") is not None
    assert manager.get("purge") is None
    assert not (tmp_path / "sessions" / "purge.json").exists()


def test_lock_is_per_session():
    manager = SessionManager(MemoryStore())

    assert manager.lock("a") is manager.lock("a")
    assert manager.lock("a") is not manager.lock("b")
    assert isinstance(manager.lock("a"), asyncio.Lock)


@pytest.mark.asyncio
async def test_delete_keeps_lock_held_by_running_turn():
    manager = SessionManager(MemoryStore())
    manager.create("busy", "web")
    manager.create("idle", "web")
    held = manager.lock("busy")
    idle = manager.lock("idle")

    async with held:
        manager.delete("busy")
        manager.delete("idle")
        assert manager.lock("busy") is held

    assert manager.lock("idle") is not idle
