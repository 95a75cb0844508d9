"""Tool contracts."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, ClassVar

from pydantic import BaseModel

from catalyst.models import Session

if TYPE_CHECKING:
    from catalyst.memory import MemoryStore
    from catalyst.stores.base import StoreClient


@dataclass(slots=True)
class ToolContext:
    """Collaborators available to a tool during one dispatch."""

    session: Session
    store: StoreClient | None = None
    memory: MemoryStore | None = None

    def require_store(self) -> StoreClient:
        if self.store is None:
            raise RuntimeError("tool requires a store but none is configured")
        return self.store

    def require_memory(self) -> MemoryStore:
        if self.memory is None:
            raise RuntimeError("tool requires long-term memory but it is disabled")
        return self.memory


class Tool(ABC):
    """Base class for all agent tools.

    ``input_model`` is the typed input record; the registry validates raw
    model arguments against it before ``run`` is called.
    """

    name: ClassVar[str]
    description: ClassVar[str]
    input_model: ClassVar[type[BaseModel]]
    requires_store: ClassVar[bool] = False
    requires_memory: ClassVar[bool] = False

    def parameters_schema(self) -> dict[str, Any]:
        schema = self.input_model.model_json_schema()
        schema.pop("title", None)
        schema["properties"] = {
            name: _flatten_optional(prop) for name, prop in schema.get("properties", {}).items()
        }
        schema.setdefault("required", [])
        return schema

    @abstractmethod
    async def run(self, context: ToolContext, params: Any) -> str:
        """Execute tool with validated input and return text for the model."""


def _flatten_optional(prop: dict[str, Any]) -> dict[str, Any]:
    # ``X | None`` renders as anyOf [X, null]; providers only need X.
    prop = {k: v for k, v in prop.items() if k not in ("title", "default")}
    variants = prop.pop("anyOf", None)
    if variants:
        concrete = [v for v in variants if v.get("type") != "null"]
        if len(concrete) == 1:
            prop = {**concrete[0], **prop}
        else:
            prop["anyOf"] = concrete
    return prop
