"""Long-term memory tools (remember and search the knowledge document)."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from catalyst.tools.base import Tool, ToolContext


class _MemoryInput(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)


class RememberInput(_MemoryInput):
    content: str = Field(min_length=1, description="The fact or note to remember.")
    category: str | None = Field(
        default=None,
        description="Section of the knowledge base to file it under (e.g. 'Policies', 'Customer Insights').",
    )


class SearchMemoryInput(_MemoryInput):
    query: str = Field(min_length=1, description="Text to look for in long-term memory.")


class RememberTool(Tool):
    """Append a bullet to the knowledge document."""

    name = "remember"
    description = (
        "Save a fact to long-term memory. Use this when you learn something about the "
        "store, its policies or a customer's preferences that will help in future conversations."
    )
    input_model = RememberInput
    requires_memory = True

    async def run(self, context: ToolContext, params: RememberInput) -> str:
        category = params.category or None
        context.require_memory().append_knowledge(params.content, section=category)
        if category:
            return f"Saved to memory under '{category}'."
        return "Saved to memory."


class SearchMemoryTool(Tool):
    name = "search_memory"
    description = "Search long-term memory for store knowledge, policies and past notes."
    input_model = SearchMemoryInput
    requires_memory = True

    async def run(self, context: ToolContext, params: SearchMemoryInput) -> str:
        matches = context.require_memory().search(params.query)
        if not matches:
            return f"No memory entries found for '{params.query}'."
        return "\n".join(matches)
