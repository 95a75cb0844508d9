"""Store query contract shared by every ecommerce platform adapter."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections import Counter
from datetime import datetime, timedelta
from decimal import ROUND_HALF_UP, Decimal
from typing import Any

import httpx

from catalyst.models import (
    Customer,
    MetricsPeriod,
    Order,
    Product,
    StoreMetrics,
    TopProduct,
)

LOGGER = logging.getLogger(__name__)

DEFAULT_LOW_STOCK_THRESHOLD = 10
REQUEST_TIMEOUT_SECONDS = 15.0
_CENTS = Decimal("0.01")


class StoreError(Exception):
    """Raised when a store backend request fails."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        self.status_code = status_code
        super().__init__(message)


class StoreClient(ABC):
    """Uniform read-only view of an ecommerce backend."""

    platform: str

    def __init__(self, name: str) -> None:
        self.name = name

    @abstractmethod
    async def get_order(self, order_id: str) -> Order | None: ...

    @abstractmethod
    async def get_order_by_number(self, number: str) -> Order | None: ...

    @abstractmethod
    async def get_recent_orders(self, limit: int = 10) -> list[Order]: ...

    @abstractmethod
    async def get_orders_by_customer(self, customer_id: str) -> list[Order]: ...

    @abstractmethod
    async def get_product(self, product_id: str) -> Product | None: ...

    @abstractmethod
    async def search_products(self, query: str) -> list[Product]: ...

    @abstractmethod
    async def get_low_stock_products(self, threshold: int = DEFAULT_LOW_STOCK_THRESHOLD) -> list[Product]: ...

    @abstractmethod
    async def get_customer(self, customer_id: str) -> Customer | None: ...

    @abstractmethod
    async def get_customer_by_email(self, email: str) -> Customer | None: ...

    @abstractmethod
    async def get_metrics(self, period: MetricsPeriod) -> StoreMetrics: ...

    async def aclose(self) -> None:
        """Release network resources held by the client."""


class HttpStoreClient(StoreClient):
    """Base class for adapters that talk to a JSON REST API over httpx."""

    def __init__(
        self,
        name: str,
        base_url: str,
        headers: dict[str, str] | None = None,
        auth: httpx.Auth | tuple[str, str] | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        super().__init__(name)
        self._client = httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            headers={"Content-Type": "application/json", **(headers or {})},
            auth=auth,
            timeout=REQUEST_TIMEOUT_SECONDS,
            transport=transport,
        )

    async def _get_json(self, path: str, params: dict[str, Any] | None = None) -> Any:
        try:
            response = await self._client.get(path, params=params)
        except httpx.HTTPError as exc:
            raise StoreError(f"{self.platform} request to {path} failed: {exc}") from exc
        if response.status_code == 404:
            return None
        if response.status_code >= 400:
            raise StoreError(
                f"{self.platform} API error: {response.status_code} {response.reason_phrase}",
                status_code=response.status_code,
            )
        return response.json()

    async def aclose(self) -> None:
        await self._client.aclose()


def period_start(period: MetricsPeriod, now: datetime | None = None) -> datetime:
    """Return the inclusive start of a metrics window."""

    now = now or datetime.now().astimezone()
    if period == "today":
        return now.replace(hour=0, minute=0, second=0, microsecond=0)
    if period == "week":
        return now - timedelta(days=7)
    if period == "month":
        return now - timedelta(days=30)
    raise ValueError(f"Unknown metrics period: {period}")


def is_low_stock(inventory: int, threshold: int) -> bool:
    return inventory <= threshold


def summarize_orders(orders: list[Order], low_stock_count: int) -> StoreMetrics:
    """Aggregate a window of orders into store metrics."""

    revenue = sum((o.total for o in orders), Decimal("0"))
    average = (revenue / len(orders)).quantize(_CENTS, ROUND_HALF_UP) if orders else Decimal("0")

    sold: Counter[str] = Counter()
    names: dict[str, str] = {}
    for order in orders:
        for item in order.items:
            key = item.product_id or item.id
            names.setdefault(key, item.name)
            sold[key] += item.quantity
    top = [TopProduct(name=names[key], sold=count) for key, count in sold.most_common(5)]

    return StoreMetrics(
        orders=len(orders),
        revenue=revenue,
        average_order_value=average,
        top_products=top,
        low_stock_count=low_stock_count,
    )


def to_decimal(value: Any, cents: bool = False) -> Decimal:
    """Parse an API money value; ``cents`` divides integer minor units by 100."""

    if value in (None, ""):
        return Decimal("0")
    amount = Decimal(str(value))
    return amount / 100 if cents else amount
