"""Registry for tool registration and dispatch."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from pydantic import ValidationError

from catalyst.memory import MemoryStore
from catalyst.models import Session
from catalyst.stores.base import StoreClient
from catalyst.tools.base import Tool, ToolContext
from catalyst.tools.memory_tool import RememberTool, SearchMemoryTool
from catalyst.tools.store_tools import (
    LookupCustomerTool,
    LookupOrderTool,
    LowStockTool,
    SearchProductsTool,
    StoreMetricsTool,
)

LOGGER = logging.getLogger(__name__)


class ToolRegistry:
    """Explicit registry of the tools offered to the model.

    ``execute`` always returns text: failures become descriptive strings
    so the model can explain them to the customer.
    """

    def __init__(
        self,
        stores: Mapping[str, StoreClient] | None = None,
        memory: MemoryStore | None = None,
    ) -> None:
        self._stores = dict(stores or {})
        self._memory = memory
        self._tools: dict[str, Tool] = {}

    def register(self, tool: Tool) -> None:
        self._tools[tool.name] = tool

    @property
    def names(self) -> list[str]:
        return list(self._tools)

    def list_tool_specs(self) -> list[dict[str, Any]]:
        return [
            {
                "type": "function",
                "function": {
                    "name": tool.name,
                    "description": tool.description,
                    "parameters": tool.parameters_schema(),
                },
            }
            for tool in self._tools.values()
        ]

    async def execute(self, tool_name: str, arguments: dict[str, Any] | None, session: Session) -> str:
        tool = self._tools.get(tool_name)
        if tool is None:
            LOGGER.warning("Model requested unknown tool %r", tool_name)
            return f"Unknown tool: {tool_name}"

        try:
            params = tool.input_model.model_validate(arguments or {})
        except ValidationError as exc:
            LOGGER.info("Rejected input for %s: %s", tool_name, exc)
            return f"Invalid input for {tool_name}: {_describe(exc)}"

        store = self._stores.get(session.context.store)
        if tool.requires_store and store is None:
            return f"Error: No store configured (looked for '{session.context.store}')."
        if tool.requires_memory and self._memory is None:
            return "Error: Long-term memory is not enabled."

        context = ToolContext(session=session, store=store, memory=self._memory)
        try:
            result = await tool.run(context, params)
        except Exception as exc:  # noqa: BLE001
            LOGGER.exception("Tool %s failed for session %s", tool_name, session.id)
            return f"Error executing {tool_name}: {exc}"
        LOGGER.info("Tool %s succeeded for session %s", tool_name, session.id)
        return result


def build_default_registry(
    stores: Mapping[str, StoreClient] | None = None,
    memory: MemoryStore | None = None,
) -> ToolRegistry:
    """Registry with the store tools and, when memory is enabled, the memory tools."""

    registry = ToolRegistry(stores, memory)
    for tool in (
        LookupOrderTool(),
        SearchProductsTool(),
        StoreMetricsTool(),
        LowStockTool(),
        LookupCustomerTool(),
    ):
        registry.register(tool)
    if memory is not None:
        registry.register(RememberTool())
        registry.register(SearchMemoryTool())
    return registry


def _describe(exc: ValidationError) -> str:
    parts = []
    for error in exc.errors():
        location = ".".join(str(p) for p in error.get("loc", ())) or "input"
        parts.append(f"{location}: {error.get('msg', 'invalid value')}")
    return "; ".join(parts)
