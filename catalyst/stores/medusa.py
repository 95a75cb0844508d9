"""Medusa admin API adapter. Medusa stores money in minor units (cents)."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
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


class MedusaStoreClient(HttpStoreClient):
    platform = "medusa"

    def __init__(
        self,
        name: str,
        url: str,
        api_key: str | None = None,
        access_token: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        headers: dict[str, str] = {}
        if api_key:
            headers["x-medusa-access-token"] = api_key
        if access_token:
            headers["Authorization"] = f"Bearer {access_token}"
        super().__init__(name, base_url=url, headers=headers, transport=transport)

    async def get_order(self, order_id: str) -> Order | None:
        data = await self._get_json(f"/admin/orders/{order_id}")
        return _map_order(data["order"]) if data and data.get("order") else None

    async def get_order_by_number(self, number: str) -> Order | None:
        data = await self._get_json("/admin/orders", {"display_id": number})
        orders = (data or {}).get("orders") or []
        return _map_order(orders[0]) if orders else None

    async def get_recent_orders(self, limit: int = 10) -> list[Order]:
        data = await self._get_json("/admin/orders", {"limit": limit, "order": "-created_at"})
        return [_map_order(o) for o in (data or {}).get("orders", [])]

    async def get_orders_by_customer(self, customer_id: str) -> list[Order]:
        data = await self._get_json("/admin/orders", {"customer_id": customer_id})
        return [_map_order(o) for o in (data or {}).get("orders", [])]

    async def get_product(self, product_id: str) -> Product | None:
        data = await self._get_json(f"/admin/products/{product_id}")
        return _map_product(data["product"]) if data and data.get("product") else None

    async def search_products(self, query: str) -> list[Product]:
        data = await self._get_json("/admin/products", {"q": query})
        return [_map_product(p) for p in (data or {}).get("products", [])]

    async def get_low_stock_products(self, threshold: int = DEFAULT_LOW_STOCK_THRESHOLD) -> list[Product]:
        data = await self._get_json("/admin/products", {"limit": 100})
        products = [_map_product(p) for p in (data or {}).get("products", [])]
        return [p for p in products if is_low_stock(p.inventory, threshold)]

    async def get_customer(self, customer_id: str) -> Customer | None:
        data = await self._get_json(f"/admin/customers/{customer_id}")
        return _map_customer(data["customer"]) if data and data.get("customer") else None

    async def get_customer_by_email(self, email: str) -> Customer | None:
        data = await self._get_json("/admin/customers", {"q": email})
        for raw in (data or {}).get("customers") or []:
            if (raw.get("email") or "").lower() == email.lower():
                return _map_customer(raw)
        return None

    async def get_metrics(self, period: MetricsPeriod) -> StoreMetrics:
        start = period_start(period)
        data = await self._get_json("/admin/orders", {"created_at[gte]": start.isoformat()})
        orders = [_map_order(o) for o in (data or {}).get("orders", [])]
        low_stock = await self.get_low_stock_products(DEFAULT_LOW_STOCK_THRESHOLD)
        return summarize_orders(orders, len(low_stock))


def _map_status(order: dict[str, Any]) -> OrderStatus:
    if order.get("status") == "canceled":
        return "cancelled"
    fulfillment = order.get("fulfillment_status")
    if fulfillment == "shipped":
        return "shipped"
    if fulfillment == "fulfilled":
        return "delivered"
    payment = order.get("payment_status")
    if payment == "refunded":
        return "refunded"
    if payment == "captured":
        return "processing"
    if payment == "awaiting":
        return "pending"
    return "confirmed"


def _usd_amount(prices: list[dict[str, Any]] | None) -> Decimal:
    prices = prices or []
    chosen = next((p for p in prices if p.get("currency_code") == "usd"), prices[0] if prices else None)
    return to_decimal(chosen.get("amount"), cents=True) if chosen else Decimal("0")


def _map_customer(raw: dict[str, Any]) -> Customer:
    email = raw.get("email") or ""
    orders = raw.get("orders") or []
    return Customer(
        id=raw["id"],
        email=email,
        name=f"{raw.get('first_name') or ''} {raw.get('last_name') or ''}".strip() or email,
        phone=raw.get("phone") or None,
        total_orders=len(orders),
        total_spent=sum((to_decimal(o.get("total"), cents=True) for o in orders), Decimal("0")),
    )


def _map_order(raw: dict[str, Any]) -> Order:
    fulfillments = raw.get("fulfillments") or []
    first = fulfillments[0] if fulfillments else {}
    tracking_numbers = first.get("tracking_numbers") or []
    tracking_links = first.get("tracking_links") or []
    email = raw.get("email") or ""
    address = raw.get("shipping_address")
    return Order(
        id=raw["id"],
        number=str(raw.get("display_id", "")),
        status=_map_status(raw),
        customer=Customer(id=raw.get("customer_id") or "", email=email, name=email.split("@")[0]),
        items=[
            OrderItem(
                id=item["id"],
                product_id=(item.get("variant") or {}).get("product_id") or "",
                variant_id=item.get("variant_id"),
                name=item.get("title", ""),
                quantity=int(item.get("quantity") or 0),
                price=to_decimal(item.get("unit_price"), cents=True),
            )
            for item in raw.get("items") or []
        ],
        total=to_decimal(raw.get("total"), cents=True),
        currency=(raw.get("currency_code") or "usd").upper(),
        created_at=datetime.fromisoformat(raw["created_at"]),
        updated_at=datetime.fromisoformat(raw.get("updated_at") or raw["created_at"]),
        shipping_address=Address(
            line1=address.get("address_1") or "",
            line2=address.get("address_2") or None,
            city=address.get("city") or "",
            state=address.get("province") or "",
            postal_code=address.get("postal_code") or "",
            country=address.get("country_code") or "",
        )
        if address
        else None,
        tracking_number=tracking_numbers[0] if tracking_numbers else None,
        tracking_url=tracking_links[0].get("url") if tracking_links else None,
    )


def _map_product(raw: dict[str, Any]) -> Product:
    variants = [
        ProductVariant(
            id=v["id"],
            name=v.get("title", ""),
            price=_usd_amount(v.get("prices")),
            inventory=int(v.get("inventory_quantity") or 0),
            sku=v.get("sku") or None,
        )
        for v in raw.get("variants") or []
    ]
    collection = raw.get("collection") or {}
    return Product(
        id=raw["id"],
        name=raw.get("title", ""),
        description=raw.get("description") or "",
        price=variants[0].price if variants else Decimal("0"),
        inventory=sum(v.inventory for v in variants),
        images=[i["url"] for i in raw.get("images") or [] if i.get("url")],
        variants=variants,
        tags=[t["value"] for t in raw.get("tags") or [] if t.get("value")],
        category=collection.get("title"),
    )
