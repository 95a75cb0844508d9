"""Application entrypoint."""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
import uuid

import uvicorn

from catalyst.config import Settings, load_settings
from catalyst.memory import MemoryStore
from catalyst.server import build_runtime, create_app
from catalyst.sessions import SessionManager
from catalyst.soul import PERSONA_FILENAME, SOUL_FILENAME, Persona, save_persona

logging.basicConfig(level=logging.INFO)
LOGGER = logging.getLogger(__name__)

EXIT_COMMANDS = {"exit", "quit", "/exit", "/quit"}


def serve(settings: Settings, host: str | None, port: int | None) -> None:
    uvicorn.run(
        create_app(settings=settings),
        host=host or settings.server_host,
        port=port or settings.server_port,
    )


async def chat_loop(settings: Settings, session_id: str | None) -> None:
    """Interactive terminal conversation on the ``cli`` channel."""

    runtime = build_runtime(settings)
    session_id = session_id or str(uuid.uuid4())
    print(f"{runtime.persona.name} {runtime.persona.emoji}  (session {session_id}, type 'exit' to quit)")
    print(settings.agent_greeting)
    try:
        while True:
            try:
                text = await asyncio.to_thread(input, "> ")
            except EOFError:
                break
            text = text.strip()
            if not text:
                continue
            if text.lower() in EXIT_COMMANDS:
                break
            try:
                reply = await runtime.chat(text, session_id, "cli")
            except Exception as exc:  # noqa: BLE001
                LOGGER.exception("Chat turn failed")
                print(f"[error] {exc}")
                continue
            print(reply)
    finally:
        for store in runtime.stores.values():
            await store.aclose()


async def ask(settings: Settings, message: str) -> str:
    runtime = build_runtime(settings)
    try:
        return await runtime.chat(message, str(uuid.uuid4()), "cli")
    finally:
        for store in runtime.stores.values():
            await store.aclose()


def init_workspace(settings: Settings) -> None:
    """Create MEMORY.md, SOUL.md, persona.json, memory/ and sessions/ under the workspace."""

    workspace = settings.workspace
    MemoryStore(workspace).init()
    if not (workspace / SOUL_FILENAME).exists() and not (workspace / PERSONA_FILENAME).exists():
        save_persona(workspace, Persona(name=settings.agent_name))
    print(f"Workspace ready at {workspace.resolve()}")


def status(settings: Settings) -> None:
    memory = MemoryStore(settings.workspace if settings.memory_backend == "file" else None)
    memory.load()
    sessions = SessionManager(memory)
    print(f"Provider: {settings.ai_provider} ({settings.model})")
    print(f"Workspace: {settings.workspace} [{settings.memory_backend}]")
    if settings.stores:
        for store in settings.stores:
            print(f"Store: {store.name} ({store.platform}) {store.url}")
    else:
        print("Store: none configured")
    print(f"Sessions: {len(sessions.list())}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="catalyst", description="AI customer-support agent for ecommerce stores.")
    sub = parser.add_subparsers(dest="command", required=True)

    serve_parser = sub.add_parser("serve", help="Run the HTTP gateway")
    serve_parser.add_argument("--host", default=None)
    serve_parser.add_argument("--port", type=int, default=None)

    chat_parser = sub.add_parser("chat", help="Chat in the terminal")
    chat_parser.add_argument("--session", default=None, help="Resume an existing session id")

    ask_parser = sub.add_parser("ask", help="Ask a single question")
    ask_parser.add_argument("message", nargs="+")

    sub.add_parser("init", help="Create the workspace files")
    sub.add_parser("status", help="Show configuration and session count")
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    settings = load_settings()

    if args.command == "serve":
        serve(settings, args.host, args.port)
    elif args.command == "chat":
        asyncio.run(chat_loop(settings, args.session))
    elif args.command == "ask":
        print(asyncio.run(ask(settings, " ".join(args.message))))
    elif args.command == "init":
        init_workspace(settings)
    elif args.command == "status":
        status(settings)
    return 0


if __name__ == "__main__":
    sys.exit(main())
