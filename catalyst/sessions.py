"""Session lifecycle on top of the memory store."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable

from catalyst.memory import MemoryStore
from catalyst.models import Message, Session, SessionContext, utc_now

LOGGER = logging.getLogger(__name__)


class SessionManager:
    """Sole owner of in-process ``Session`` objects.

    Sessions are cached by id, loaded from the memory store on a cache miss
    and written through after every mutation. A failed write is logged and
    the in-memory copy stays authoritative for the rest of the process.
    """

    def __init__(self, memory: MemoryStore, default_store: str = "default") -> None:
        self._memory = memory
        self._default_store = default_store
        self._sessions: dict[str, Session] = {}
        self._locks: dict[str, asyncio.Lock] = {}

    @property
    def default_store(self) -> str:
        return self._default_store

    def get(self, session_id: str) -> Session | None:
        session = self._sessions.get(session_id)
        if session is not None:
            return session

        record = self._memory.get_session_record(session_id)
        if record is None:
            return None
        try:
            session = Session.from_record(record)
        except (AttributeError, KeyError, TypeError, ValueError) as exc:
            LOGGER.warning("Ignoring unreadable session record %s: %s", session_id, exc)
            return None
        self._sessions[session_id] = session
        return session

    def create(self, session_id: str, channel: str, customer_id: str | None = None) -> Session:
        now = utc_now()
        session = Session(
            id=session_id,
            channel=channel,
            customer_id=customer_id,
            context=SessionContext(store=self._default_store),
            created_at=now,
            last_activity=now,
        )
        self._sessions[session_id] = session
        self.save(session)
        LOGGER.info("Created session %s on channel %s", session_id, channel)
        return session

    def get_or_create(self, session_id: str, channel: str, customer_id: str | None = None) -> Session:
        existing = self.get(session_id)
        if existing is not None:
            return existing
        return self.create(session_id, channel, customer_id)

    def add_message(self, session_id: str, message: Message) -> None:
        session = self.get(session_id)
        if session is None:
            LOGGER.warning("add_message on unknown session %s ignored", session_id)
            return
        session.messages.append(message)
        session.last_activity = message.timestamp
        self.save(session)

    def save(self, session: Session) -> None:
        try:
            self._memory.save_session_record(session.to_record())
        except OSError:
            LOGGER.exception("Failed to persist session %s", session.id)

    def list(self) -> list[Session]:
        """Return every known session, most recently active first."""

        ids: Iterable[str] = dict.fromkeys([*self._memory.session_ids(), *self._sessions])
        sessions = [s for s in (self.get(i) for i in ids) if s is not None]
        return sorted(sessions, key=lambda s: s.last_activity, reverse=True)

    def recent(self, limit: int = 10) -> list[Session]:
        return self.list()[:limit]

    def delete(self, session_id: str, purge: bool = False) -> None:
        """Drop a session from the cache; ``purge`` also removes its persisted record."""

        self._sessions.pop(session_id, None)
        lock = self._locks.get(session_id)
        # A held lock stays so a new turn still waits for the one in flight.
        if lock is not None and not lock.locked():
            del self._locks[session_id]
        if purge:
            try:
                self._memory.delete_session_record(session_id)
            except OSError:
                LOGGER.exception("Failed to delete persisted session %s", session_id)

    def lock(self, session_id: str) -> asyncio.Lock:
        """Per-session lock serialising turns on one conversation."""

        lock = self._locks.get(session_id)
        if lock is None:
            lock = self._locks[session_id] = asyncio.Lock()
        return lock
