"""Store backed by plain Python lists, for demos and tests."""

from __future__ import annotations

from collections.abc import Iterable

from catalyst.models import Customer, MetricsPeriod, Order, Product, StoreMetrics
from catalyst.stores.base import (
    DEFAULT_LOW_STOCK_THRESHOLD,
    StoreClient,
    is_low_stock,
    period_start,
    summarize_orders,
)


class InMemoryStore(StoreClient):
    platform = "memory"

    def __init__(
        self,
        name: str = "demo",
        orders: Iterable[Order] = (),
        products: Iterable[Product] = (),
        customers: Iterable[Customer] = (),
    ) -> None:
        super().__init__(name)
        self.orders = list(orders)
        self.products = list(products)
        self.customers = list(customers)

    async def get_order(self, order_id: str) -> Order | None:
        return next((o for o in self.orders if o.id == order_id), None)

    async def get_order_by_number(self, number: str) -> Order | None:
        return next((o for o in self.orders if o.number == number), None)

    async def get_recent_orders(self, limit: int = 10) -> list[Order]:
        return sorted(self.orders, key=lambda o: o.created_at, reverse=True)[:limit]

    async def get_orders_by_customer(self, customer_id: str) -> list[Order]:
        return [o for o in self.orders if o.customer.id == customer_id]

    async def get_product(self, product_id: str) -> Product | None:
        return next((p for p in self.products if p.id == product_id), None)

    async def search_products(self, query: str) -> list[Product]:
        needle = query.lower()
        return [p for p in self.products if needle in p.name.lower() or needle in p.description.lower()]

    async def get_low_stock_products(self, threshold: int = DEFAULT_LOW_STOCK_THRESHOLD) -> list[Product]:
        return [p for p in self.products if is_low_stock(p.inventory, threshold)]

    async def get_customer(self, customer_id: str) -> Customer | None:
        return next((c for c in self.customers if c.id == customer_id), None)

    async def get_customer_by_email(self, email: str) -> Customer | None:
        return next((c for c in self.customers if c.email.lower() == email.lower()), None)

    async def get_metrics(self, period: MetricsPeriod) -> StoreMetrics:
        start = period_start(period)
        window = [o for o in self.orders if o.created_at >= start]
        low_stock = await self.get_low_stock_products(DEFAULT_LOW_STOCK_THRESHOLD)
        return summarize_orders(window, len(low_stock))
