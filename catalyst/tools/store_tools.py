"""Tools that read order, product, customer and metrics data from the store."""

from __future__ import annotations

import json
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from catalyst.models import Customer, Order, Product, StoreMetrics
from catalyst.stores.base import DEFAULT_LOW_STOCK_THRESHOLD
from catalyst.tools.base import Tool, ToolContext

ORDER_NOT_FOUND = "Order not found. Please check the order number and try again."
MAX_PRODUCT_RESULTS = 5
MAX_LOW_STOCK_RESULTS = 10
MAX_TOP_PRODUCTS = 3


class _LooseInput(BaseModel):
    model_config = ConfigDict(coerce_numbers_to_str=True, str_strip_whitespace=True)


class LookupOrderInput(_LooseInput):
    order_number: str | None = Field(default=None, description='The order number (e.g., "1001" or "#1001")')
    order_id: str | None = Field(default=None, description="The internal order ID")

    @model_validator(mode="after")
    def _needs_identifier(self) -> LookupOrderInput:
        if not self.order_number and not self.order_id:
            raise ValueError("provide order_number or order_id")
        return self


class SearchProductsInput(_LooseInput):
    query: str = Field(min_length=1, description="Search query for products")


class StoreMetricsInput(_LooseInput):
    period: Literal["today", "week", "month"] = Field(description="Time period for metrics")

    @field_validator("period", mode="before")
    @classmethod
    def _normalise_period(cls, value: Any) -> Any:
        return value.strip().lower() if isinstance(value, str) else value


class LowStockInput(_LooseInput):
    threshold: int = Field(
        default=DEFAULT_LOW_STOCK_THRESHOLD,
        ge=0,
        description=f"Stock threshold (default: {DEFAULT_LOW_STOCK_THRESHOLD})",
    )

    @field_validator("threshold", mode="before")
    @classmethod
    def _default_threshold(cls, value: Any) -> Any:
        if value is None or value == "":
            return DEFAULT_LOW_STOCK_THRESHOLD
        if isinstance(value, float):
            return int(value)
        return value


class LookupCustomerInput(_LooseInput):
    email: str = Field(min_length=3, description="Customer email address")


def format_order(order: Order) -> dict[str, Any]:
    return {
        "orderNumber": f"#{order.number}",
        "status": order.status,
        "total": f"{order.currency} {order.total:.2f}",
        "items": [f"{i.quantity}x {i.name}" for i in order.items],
        "createdAt": order.created_at.isoformat(),
        "tracking": {"number": order.tracking_number, "url": order.tracking_url}
        if order.tracking_number
        else None,
    }


def format_product(product: Product) -> dict[str, Any]:
    return {
        "name": product.name,
        "price": f"{product.price:.2f}",
        "inStock": product.inventory > 0,
        "inventory": product.inventory,
    }


def format_metrics(period: str, metrics: StoreMetrics) -> dict[str, Any]:
    return {
        "period": period,
        "orders": metrics.orders,
        "revenue": f"${metrics.revenue:.2f}",
        "averageOrderValue": f"${metrics.average_order_value:.2f}",
        "topProducts": [
            {"name": p.name, "sold": p.sold} for p in metrics.top_products[:MAX_TOP_PRODUCTS]
        ],
        "lowStockAlerts": metrics.low_stock_count,
    }


def format_customer(customer: Customer) -> dict[str, Any]:
    return {
        "name": customer.name,
        "email": customer.email,
        "totalOrders": customer.total_orders,
        "totalSpent": f"${customer.total_spent:.2f}",
    }


def _dump(payload: Any) -> str:
    return json.dumps(payload, indent=2)


class LookupOrderTool(Tool):
    name = "lookup_order"
    description = "Look up an order by order number or order ID"
    input_model = LookupOrderInput
    requires_store = True

    async def run(self, context: ToolContext, params: LookupOrderInput) -> str:
        store = context.require_store()
        order = None
        if params.order_number:
            order = await store.get_order_by_number(params.order_number.lstrip("#"))
        if order is None and params.order_id:
            order = await store.get_order(params.order_id)
        if order is None:
            return ORDER_NOT_FOUND
        context.session.context.order_id = order.id
        return _dump(format_order(order))


class SearchProductsTool(Tool):
    name = "search_products"
    description = "Search for products by name or description"
    input_model = SearchProductsInput
    requires_store = True

    async def run(self, context: ToolContext, params: SearchProductsInput) -> str:
        products = await context.require_store().search_products(params.query)
        if not products:
            return "No products found matching your search."
        if len(products) == 1:
            context.session.context.product_id = products[0].id
        return _dump([format_product(p) for p in products[:MAX_PRODUCT_RESULTS]])


class StoreMetricsTool(Tool):
    name = "get_store_metrics"
    description = "Get store performance metrics (orders, revenue, etc.)"
    input_model = StoreMetricsInput
    requires_store = True

    async def run(self, context: ToolContext, params: StoreMetricsInput) -> str:
        metrics = await context.require_store().get_metrics(params.period)
        return _dump(format_metrics(params.period, metrics))


class LowStockTool(Tool):
    name = "get_low_stock"
    description = "Get products with low inventory"
    input_model = LowStockInput
    requires_store = True

    async def run(self, context: ToolContext, params: LowStockInput) -> str:
        products = await context.require_store().get_low_stock_products(params.threshold)
        if not products:
            return "All products have sufficient stock!"
        return _dump(
            [
                {
                    "name": p.name,
                    "inventory": p.inventory,
                    "variants": [
                        {"name": v.name, "stock": v.inventory}
                        for v in p.variants
                        if v.inventory <= params.threshold
                    ],
                }
                for p in products[:MAX_LOW_STOCK_RESULTS]
            ]
        )


class LookupCustomerTool(Tool):
    name = "lookup_customer"
    description = "Look up a customer by email"
    input_model = LookupCustomerInput
    requires_store = True

    async def run(self, context: ToolContext, params: LookupCustomerInput) -> str:
        customer = await context.require_store().get_customer_by_email(params.email)
        if customer is None:
            return "Customer not found."
        return _dump(format_customer(customer))
