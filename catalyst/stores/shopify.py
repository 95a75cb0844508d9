"""Shopify Admin REST adapter."""

from __future__ import annotations

import re
from datetime import datetime
from typing import Any

import httpx

from catalyst.models import (
    Address,
    Customer,
    MetricsPeriod,
    Order,
    OrderItem,
    OrderStatus,
    Product,
    ProductVariant,
    StoreMetrics,
)
from catalyst.stores.base import (
    DEFAULT_LOW_STOCK_THRESHOLD,
    HttpStoreClient,
    is_low_stock,
    period_start,
    summarize_orders,
    to_decimal,
)

API_VERSION = "2024-01"
_TAGS = re.compile(r"<[^>]*>")


class ShopifyStoreClient(HttpStoreClient):
    platform = "shopify"

    def __init__(
        self,
        name: str,
        url: str,
        access_token: str,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        super().__init__(
            name,
            base_url=f"{url.rstrip('/')}/admin/api/{API_VERSION}",
            headers={"X-Shopify-Access-Token": access_token},
            transport=transport,
        )

    async def get_order(self, order_id: str) -> Order | None:
        data = await self._get_json(f"/orders/{order_id}.json")
        return _map_order(data["order"]) if data and data.get("order") else None

    async def get_order_by_number(self, number: str) -> Order | None:
        data = await self._get_json("/orders.json", {"name": f"#{number}", "status": "any"})
        orders = (data or {}).get("orders") or []
        return _map_order(orders[0]) if orders else None

    async def get_recent_orders(self, limit: int = 10) -> list[Order]:
        data = await self._get_json("/orders.json", {"limit": limit, "status": "any"})
        return [_map_order(o) for o in (data or {}).get("orders", [])]

    async def get_orders_by_customer(self, customer_id: str) -> list[Order]:
        data = await self._get_json("/orders.json", {"customer_id": customer_id, "status": "any"})
        return [_map_order(o) for o in (data or {}).get("orders", [])]

    async def get_product(self, product_id: str) -> Product | None:
        data = await self._get_json(f"/products/{product_id}.json")
        return _map_product(data["product"]) if data and data.get("product") else None

    async def search_products(self, query: str) -> list[Product]:
        data = await self._get_json("/products.json", {"title": query})
        return [_map_product(p) for p in (data or {}).get("products", [])]

    async def get_low_stock_products(self, threshold: int = DEFAULT_LOW_STOCK_THRESHOLD) -> list[Product]:
        data = await self._get_json("/products.json", {"limit": 250})
        products = [_map_product(p) for p in (data or {}).get("products", [])]
        return [p for p in products if is_low_stock(p.inventory, threshold)]

    async def get_customer(self, customer_id: str) -> Customer | None:
        data = await self._get_json(f"/customers/{customer_id}.json")
        return _map_customer(data["customer"]) if data and data.get("customer") else None

    async def get_customer_by_email(self, email: str) -> Customer | None:
        data = await self._get_json("/customers/search.json", {"query": f"email:{email}"})
        customers = (data or {}).get("customers") or []
        return _map_customer(customers[0]) if customers else None

    async def get_metrics(self, period: MetricsPeriod) -> StoreMetrics:
        start = period_start(period)
        data = await self._get_json(
            "/orders.json", {"created_at_min": start.isoformat(), "status": "any", "limit": 250}
        )
        orders = [_map_order(o) for o in (data or {}).get("orders", [])]
        low_stock = await self.get_low_stock_products(DEFAULT_LOW_STOCK_THRESHOLD)
        return summarize_orders(orders, len(low_stock))


def _map_status(order: dict[str, Any]) -> OrderStatus:
    if order.get("cancelled_at"):
        return "cancelled"
    if order.get("refunds"):
        return "refunded"
    fulfillment = order.get("fulfillment_status")
    if fulfillment == "fulfilled":
        return "delivered"
    if fulfillment == "partial" or any(f.get("status") == "success" for f in order.get("fulfillments") or []):
        return "shipped"
    financial = order.get("financial_status")
    if financial == "paid":
        return "processing"
    if financial == "pending":
        return "pending"
    return "confirmed"


def _full_name(first: str | None, last: str | None, fallback: str) -> str:
    return f"{first or ''} {last or ''}".strip() or fallback


def _map_customer(raw: dict[str, Any]) -> Customer:
    email = raw.get("email") or ""
    return Customer(
        id=str(raw.get("id", "")),
        email=email,
        name=_full_name(raw.get("first_name"), raw.get("last_name"), email),
        phone=raw.get("phone") or None,
        total_orders=int(raw.get("orders_count") or 0),
        total_spent=to_decimal(raw.get("total_spent")),
    )


def _map_order(raw: dict[str, Any]) -> Order:
    fulfillments = raw.get("fulfillments") or []
    latest = fulfillments[-1] if fulfillments else {}
    customer_raw = raw.get("customer")
    if customer_raw:
        customer = _map_customer({**customer_raw, "email": raw.get("email") or customer_raw.get("email")})
    else:
        customer = Customer(id="", email=raw.get("email") or "", name=raw.get("email") or "")
    address = raw.get("shipping_address")
    return Order(
        id=str(raw["id"]),
        number=str(raw.get("order_number") or raw.get("name", "").lstrip("#")),
        status=_map_status(raw),
        customer=customer,
        items=[
            OrderItem(
                id=str(item["id"]),
                product_id=str(item.get("product_id") or ""),
                variant_id=str(item["variant_id"]) if item.get("variant_id") else None,
                name=item.get("title", ""),
                quantity=int(item.get("quantity") or 0),
                price=to_decimal(item.get("price")),
            )
            for item in raw.get("line_items") or []
        ],
        total=to_decimal(raw.get("total_price")),
        currency=raw.get("currency") or "USD",
        created_at=datetime.fromisoformat(raw["created_at"]),
        updated_at=datetime.fromisoformat(raw.get("updated_at") or raw["created_at"]),
        shipping_address=Address(
            line1=address.get("address1") or "",
            line2=address.get("address2") or None,
            city=address.get("city") or "",
            state=address.get("province") or "",
            postal_code=address.get("zip") or "",
            country=address.get("country_code") or "",
        )
        if address
        else None,
        tracking_number=latest.get("tracking_number") or None,
        tracking_url=latest.get("tracking_url") or None,
    )


def _map_product(raw: dict[str, Any]) -> Product:
    variants = [
        ProductVariant(
            id=str(v["id"]),
            name=v.get("title", ""),
            price=to_decimal(v.get("price")),
            inventory=int(v.get("inventory_quantity") or 0),
            sku=v.get("sku") or None,
        )
        for v in raw.get("variants") or []
    ]
    first = (raw.get("variants") or [{}])[0]
    tags = raw.get("tags") or ""
    return Product(
        id=str(raw["id"]),
        name=raw.get("title", ""),
        description=_TAGS.sub("", raw.get("body_html") or ""),
        price=to_decimal(first.get("price")),
        compare_at_price=to_decimal(first["compare_at_price"]) if first.get("compare_at_price") else None,
        inventory=sum(v.inventory for v in variants),
        images=[i["src"] for i in raw.get("images") or [] if i.get("src")],
        variants=variants,
        tags=[t.strip() for t in tags.split(",") if t.strip()],
        category=raw.get("product_type") or None,
    )
