"""Core domain models used across layers."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Literal

Role = Literal["user", "assistant", "system"]
OrderStatus = Literal[
    "pending", "confirmed", "processing", "shipped", "delivered", "cancelled", "refunded"
]
MetricsPeriod = Literal["today", "week", "month"]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True, slots=True)
class Message:
    """One entry of a session's conversation history."""

    role: Role
    content: str
    channel: str | None = None
    timestamp: datetime = field(default_factory=utc_now)

    def to_record(self) -> dict[str, Any]:
        record: dict[str, Any] = {
            "role": self.role,
            "content": self.content,
            "timestamp": self.timestamp.isoformat(),
        }
        if self.channel is not None:
            record["channel"] = self.channel
        return record

    @classmethod
    def from_record(cls, record: dict[str, Any]) -> Message:
        raw_ts = record.get("timestamp")
        return cls(
            role=record["role"],
            content=record["content"],
            channel=record.get("channel"),
            timestamp=_parse_timestamp(raw_ts) if raw_ts else utc_now(),
        )


@dataclass(slots=True)
class SessionContext:
    """Mutable slots filled in as the conversation progresses."""

    store: str = "default"
    order_id: str | None = None
    product_id: str | None = None
    intent: str | None = None
    metadata: dict[str, Any] | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"store": self.store}
        for key, value in (
            ("orderId", self.order_id),
            ("productId", self.product_id),
            ("intent", self.intent),
            ("metadata", self.metadata),
        ):
            if value is not None:
                data[key] = value
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> SessionContext:
        data = data or {}
        return cls(
            store=str(data.get("store") or "default"),
            order_id=data.get("orderId"),
            product_id=data.get("productId"),
            intent=data.get("intent"),
            metadata=data.get("metadata"),
        )


@dataclass(slots=True)
class Session:
    """A single conversation, owned by the session manager."""

    id: str
    channel: str
    messages: list[Message] = field(default_factory=list)
    context: SessionContext = field(default_factory=SessionContext)
    created_at: datetime = field(default_factory=utc_now)
    last_activity: datetime = field(default_factory=utc_now)
    customer_id: str | None = None

    def to_record(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "channel": self.channel,
            "customerId": self.customer_id,
            "messages": [m.to_record() for m in self.messages],
            "context": self.context.to_dict(),
            "createdAt": self.created_at.isoformat(),
            "lastActivity": self.last_activity.isoformat(),
        }

    @classmethod
    def from_record(cls, record: dict[str, Any]) -> Session:
        created_at = _parse_timestamp(record["createdAt"])
        return cls(
            id=record["id"],
            channel=record.get("channel") or "unknown",
            customer_id=record.get("customerId"),
            messages=[Message.from_record(m) for m in record.get("messages", [])],
            context=SessionContext.from_dict(record.get("context")),
            created_at=created_at,
            last_activity=_parse_timestamp(record.get("lastActivity") or record["createdAt"]),
        )


@dataclass(slots=True)
class InboundMessage:
    """Transport-independent envelope produced by channel normalisation."""

    channel: str
    session_id: str
    text: str
    reply_to: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass(slots=True)
class LLMToolCall:
    """Tool invocation returned by an LLM provider."""

    name: str
    arguments: dict[str, Any]
    call_id: str | None = None


@dataclass(slots=True)
class LLMResponse:
    """Result from an LLM generation request."""

    content: str
    tool_calls: list[LLMToolCall] = field(default_factory=list)
    stop_reason: str | None = None
    raw: dict[str, Any] | None = None

    @property
    def wants_tools(self) -> bool:
        return bool(self.tool_calls)


# Store entities: read-only projections fetched from the platform per call.


@dataclass(frozen=True, slots=True)
class Customer:
    id: str
    email: str
    name: str
    total_orders: int = 0
    total_spent: Decimal = Decimal("0")
    phone: str | None = None


@dataclass(frozen=True, slots=True)
class OrderItem:
    id: str
    product_id: str
    name: str
    quantity: int
    price: Decimal
    variant_id: str | None = None


@dataclass(frozen=True, slots=True)
class Address:
    line1: str
    city: str
    state: str
    postal_code: str
    country: str
    line2: str | None = None


@dataclass(frozen=True, slots=True)
class Order:
    id: str
    number: str
    status: OrderStatus
    customer: Customer
    items: list[OrderItem]
    total: Decimal
    currency: str
    created_at: datetime
    updated_at: datetime
    shipping_address: Address | None = None
    tracking_number: str | None = None
    tracking_url: str | None = None


@dataclass(frozen=True, slots=True)
class ProductVariant:
    id: str
    name: str
    price: Decimal
    inventory: int
    sku: str | None = None


@dataclass(frozen=True, slots=True)
class Product:
    id: str
    name: str
    price: Decimal
    inventory: int
    description: str = ""
    variants: list[ProductVariant] = field(default_factory=list)
    images: list[str] = field(default_factory=list)
    tags: list[str] = field(default_factory=list)
    compare_at_price: Decimal | None = None
    category: str | None = None


@dataclass(frozen=True, slots=True)
class TopProduct:
    name: str
    sold: int


@dataclass(frozen=True, slots=True)
class StoreMetrics:
    orders: int
    revenue: Decimal
    average_order_value: Decimal
    top_products: list[TopProduct]
    low_stock_count: int


def _parse_timestamp(value: str) -> datetime:
    if not isinstance(value, str):
        raise TypeError(f"timestamp must be an ISO-8601 string, got {type(value).__name__}")
    parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed
