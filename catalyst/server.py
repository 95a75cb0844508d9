"""FastAPI server for the Catalyst gateway.

Run with:
    catalyst serve
or:
    uvicorn catalyst.server:app --host 0.0.0.0 --port 3939
"""

from __future__ import annotations

import logging
import uuid
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware

from catalyst.agent_runtime import AgentRuntime
from catalyst.api.routes import router, webhook_router
from catalyst.config import Settings, cors_origins, load_settings
from catalyst.llm.factory import create_provider
from catalyst.memory import MemoryStore
from catalyst.sessions import SessionManager
from catalyst.soul import Persona, load_persona
from catalyst.stores.factory import create_store_clients
from catalyst.tools.registry import build_default_registry

logger = logging.getLogger(__name__)

SERVICE_NAME = "Catalyst"
SERVICE_VERSION = "0.1.0"


def build_runtime(settings: Settings) -> AgentRuntime:
    """Wire memory, sessions, stores, tools and the provider from settings."""

    root = settings.workspace if settings.memory_backend == "file" else None
    memory = MemoryStore(root)
    memory.init()

    stores = create_store_clients(settings.stores)
    default_store = settings.stores[0].name if settings.stores else "default"
    long_term = memory if settings.long_term_memory else None

    persona = load_persona(root)
    if persona.name == Persona().name and settings.agent_name:
        persona = persona.model_copy(update={"name": settings.agent_name})

    runtime = AgentRuntime(
        sessions=SessionManager(memory, default_store=default_store),
        llm=create_provider(settings),
        tool_registry=build_default_registry(stores, long_term),
        persona=persona,
        stores=stores,
        memory=long_term,
        max_tool_iterations=settings.max_tool_iterations,
        request_timeout_seconds=settings.request_timeout_seconds,
    )
    logger.info(
        "Runtime ready: provider=%s model=%s stores=%s tools=%s",
        settings.ai_provider,
        settings.model,
        ", ".join(stores) or "none",
        ", ".join(runtime.tool_names),
    )
    return runtime


def create_app(runtime: AgentRuntime | None = None, settings: Settings | None = None) -> FastAPI:
    """Build the gateway app; the runtime is built at startup unless injected."""

    settings = settings or load_settings()

    @asynccontextmanager
    async def lifespan(application: FastAPI):
        owned = runtime is None
        if owned:
            logger.info("Building agent runtime...")
            application.state.runtime = build_runtime(settings)
        else:
            application.state.runtime = runtime
        logger.info("Agent ready.")
        yield
        if owned:
            for store in application.state.runtime.stores.values():
                await store.aclose()

    application = FastAPI(
        title="Catalyst",
        description="AI customer-support agent for ecommerce stores.",
        version=SERVICE_VERSION,
        lifespan=lifespan,
    )
    application.state.settings = settings
    application.state.runtime = runtime

    application.add_middleware(
        CORSMiddleware,
        allow_origins=cors_origins(settings),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @application.middleware("http")
    async def add_request_id(request: Request, call_next) -> Response:
        """Attach a request ID (``X-Request-ID``) for log correlation."""
        request_id = request.headers.get("X-Request-ID", str(uuid.uuid4()))
        request.state.request_id = request_id
        logger.info("[%s] %s %s", request_id, request.method, request.url.path)
        response = await call_next(request)
        response.headers["X-Request-ID"] = request_id
        return response

    application.include_router(router)
    application.include_router(webhook_router)

    @application.get("/")
    async def root():
        current = application.state.runtime
        return {
            "name": SERVICE_NAME,
            "version": SERVICE_VERSION,
            "status": "running" if current is not None else "starting",
            "stores": len(settings.stores),
            "docs": "/docs",
            "health": "/health",
        }

    return application


app = create_app()
