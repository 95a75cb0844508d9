"""Markdown-file-based memory store.

Holds two independent kinds of data under one workspace root:

* conversation records, one JSON file per session under ``sessions/``;
* the long-term knowledge document ``MEMORY.md`` plus dated daily notes
  under ``memory/``.

With ``root=None`` everything lives in process memory, which suits tests and
ephemeral deployments.
"""

from __future__ import annotations

import json
import logging
import re
from datetime import date, datetime, timedelta
from pathlib import Path
from typing import Any

LOGGER = logging.getLogger(__name__)

MAX_SEARCH_RESULTS = 10
KNOWLEDGE_CONTEXT_CHARS = 2000
TODAY_CONTEXT_CHARS = 1000
YESTERDAY_CONTEXT_CHARS = 500

_UNSAFE_ID_CHARS = re.compile(r"[^a-zA-Z0-9_-]")

DEFAULT_KNOWLEDGE = """# MEMORY.md - Store Knowledge

## Store Info
- Store name: (set in your configuration)
- Platform: (shopify/medusa/woocommerce)

## Policies
- Return policy: 30 days for unused items
- Shipping: Standard (5-7 days), Express (2-3 days)

## Common Issues
- (Add frequently asked questions and resolutions here)

## Customer Insights
- (Add notable customer preferences or patterns)

## Products
- (Add product knowledge, popular items, recommendations)
"""


def safe_session_filename(session_id: str) -> str:
    """Return the on-disk file name for a session id."""

    return f"{_UNSAFE_ID_CHARS.sub('_', session_id)}.json"


def append_to_section(document: str, entry: str, section: str | None = None) -> str:
    """Return ``document`` with ``- entry`` appended, optionally inside ``## section``.

    A missing section is created at the end of the document. An existing
    section gets the bullet after its last line, before the next ``## `` heading.
    """

    bullet = f"- {entry}"
    if not section:
        return f"{document.rstrip()}\n{bullet}\n" if document.strip() else f"{bullet}\n"

    heading = re.compile(rf"^## {re.escape(section)}[ \t]*$", re.MULTILINE)
    match = heading.search(document)
    if match is None:
        base = document.rstrip()
        prefix = f"{base}\n\n" if base else ""
        return f"{prefix}## {section}\n{bullet}\n"

    next_heading = re.compile(r"^## ", re.MULTILINE).search(document, match.end())
    end = next_heading.start() if next_heading else len(document)
    body = document[match.end():end].rstrip()
    rest = document[end:]
    updated = f"{document[:match.end()]}{body}\n{bullet}\n"
    if rest:
        updated += f"\n{rest}"
    return updated


class MemoryStore:
    """Conversation records plus the long-term knowledge document."""

    def __init__(self, root: Path | None = None) -> None:
        self._root = root
        self._records: dict[str, dict[str, Any]] = {}
        # Used only when running without a root directory.
        self._knowledge = DEFAULT_KNOWLEDGE
        self._daily: dict[str, str] = {}

    @property
    def root(self) -> Path | None:
        return self._root

    @property
    def persistent(self) -> bool:
        return self._root is not None

    @property
    def knowledge_path(self) -> Path | None:
        return self._root / "MEMORY.md" if self._root else None

    def init(self) -> None:
        """Create the workspace layout and load persisted conversations."""

        if self._root is not None:
            (self._root / "memory").mkdir(parents=True, exist_ok=True)
            (self._root / "sessions").mkdir(parents=True, exist_ok=True)
            knowledge_path = self._root / "MEMORY.md"
            if not knowledge_path.exists():
                knowledge_path.write_text(DEFAULT_KNOWLEDGE, encoding="utf-8")
        self.load()

    # -- conversation records -------------------------------------------------

    def load(self) -> int:
        """Eagerly read every persisted session record into the index."""

        if self._root is None:
            return len(self._records)
        sessions_dir = self._root / "sessions"
        if not sessions_dir.is_dir():
            return 0
        for path in sorted(sessions_dir.glob("*.json")):
            try:
                record = json.loads(path.read_text(encoding="utf-8"))
            except (OSError, json.JSONDecodeError) as exc:
                LOGGER.warning("Skipping unreadable session file %s: %s", path.name, exc)
                continue
            if not isinstance(record, dict) or not isinstance(record.get("id"), str):
                LOGGER.warning("Skipping malformed session file %s", path.name)
                continue
            self._records[record["id"]] = record
        LOGGER.info("Loaded %d conversations", len(self._records))
        return len(self._records)

    def get_session_record(self, session_id: str) -> dict[str, Any] | None:
        return self._records.get(session_id)

    def session_ids(self) -> list[str]:
        return list(self._records)

    def save_session_record(self, record: dict[str, Any]) -> None:
        """Write a session record through to disk. Raises ``OSError`` on failure."""

        session_id = record["id"]
        if self._root is not None:
            path = self._root / "sessions" / safe_session_filename(session_id)
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(json.dumps(record, indent=2), encoding="utf-8")
        self._records[session_id] = record

    def delete_session_record(self, session_id: str) -> bool:
        removed = self._records.pop(session_id, None) is not None
        if self._root is not None:
            path = self._root / "sessions" / safe_session_filename(session_id)
            if path.exists():
                path.unlink()
                removed = True
        return removed

    def stats(self) -> dict[str, int]:
        messages = sum(len(r.get("messages", [])) for r in self._records.values())
        return {"conversations": len(self._records), "messages": messages}

    # -- knowledge document --------------------------------------------------

    def read_knowledge(self) -> str:
        """The knowledge document; the default template when it cannot be read."""

        try:
            return self._load_knowledge()
        except (OSError, UnicodeDecodeError) as exc:
            LOGGER.warning("Cannot read MEMORY.md, using the default document: %s", exc)
            return DEFAULT_KNOWLEDGE

    def _load_knowledge(self) -> str:
        if self._root is None:
            return self._knowledge
        try:
            return (self._root / "MEMORY.md").read_text(encoding="utf-8")
        except FileNotFoundError:
            return DEFAULT_KNOWLEDGE

    def write_knowledge(self, content: str) -> None:
        if self._root is None:
            self._knowledge = content
            return
        self._root.mkdir(parents=True, exist_ok=True)
        (self._root / "MEMORY.md").write_text(content, encoding="utf-8")

    def append_knowledge(self, entry: str, section: str | None = None) -> None:
        # A document that cannot be read is never replaced.
        self.write_knowledge(append_to_section(self._load_knowledge(), entry, section))

    def search(self, query: str) -> list[str]:
        """Return knowledge lines containing ``query`` (case-insensitive)."""

        needle = query.strip().lower()
        if not needle:
            return []
        results = [
            line.strip()
            for line in self.read_knowledge().splitlines()
            if needle in line.lower()
        ]
        return results[:MAX_SEARCH_RESULTS]

    # -- daily notes ----------------------------------------------------------

    def read_daily_note(self, day: date | None = None) -> str:
        try:
            return self._load_daily_note(day or date.today())
        except (OSError, UnicodeDecodeError) as exc:
            LOGGER.warning("Cannot read daily note for %s: %s", day or date.today(), exc)
            return ""

    def _load_daily_note(self, day: date) -> str:
        key = day.isoformat()
        if self._root is None:
            return self._daily.get(key, "")
        path = self._root / "memory" / f"{key}.md"
        return path.read_text(encoding="utf-8") if path.exists() else ""

    def write_daily_note(self, content: str, day: date | None = None) -> None:
        key = (day or date.today()).isoformat()
        if self._root is None:
            self._daily[key] = content
            return
        daily_dir = self._root / "memory"
        daily_dir.mkdir(parents=True, exist_ok=True)
        (daily_dir / f"{key}.md").write_text(content, encoding="utf-8")

    def append_daily_note(self, entry: str, day: date | None = None) -> None:
        day = day or date.today()
        existing = self._load_daily_note(day)
        ts = datetime.now().strftime("%H:%M:%S")
        if existing:
            content = f"{existing.rstrip()}\n\n### {ts}\n{entry}\n"
        else:
            content = f"# {day.isoformat()}\n\n### {ts}\n{entry}\n"
        self.write_daily_note(content, day)

    def prompt_context(self, today: date | None = None) -> str:
        """Knowledge plus recent daily notes, truncated for the system prompt."""

        today = today or date.today()
        knowledge = self.read_knowledge()
        today_note = self.read_daily_note(today)
        yesterday_note = self.read_daily_note(today - timedelta(days=1))

        parts: list[str] = []
        if knowledge:
            parts.append(f"## Long-term Memory\n{knowledge[:KNOWLEDGE_CONTEXT_CHARS]}")
        if today_note:
            parts.append(f"## Today's Notes\n{today_note[:TODAY_CONTEXT_CHARS]}")
        if yesterday_note:
            parts.append(f"## Yesterday's Notes\n{yesterday_note[:YESTERDAY_CONTEXT_CHARS]}")
        return "\n\n".join(parts)
