"""WooCommerce REST (wc/v3) adapter."""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
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

LOGGER = logging.getLogger(__name__)

_STATUS_MAP: dict[str, OrderStatus] = {
    "pending": "pending",
    "on-hold": "pending",
    "processing": "processing",
    "completed": "delivered",
    "cancelled": "cancelled",
    "failed": "cancelled",
    "refunded": "refunded",
}
_TRACKING_KEYS = ("_wc_shipment_tracking_items", "tracking_number", "_tracking_number")


class WooCommerceStoreClient(HttpStoreClient):
    platform = "woocommerce"

    def __init__(
        self,
        name: str,
        url: str,
        consumer_key: str,
        consumer_secret: str,
        version: str = "wc/v3",
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        super().__init__(
            name,
            base_url=f"{url.rstrip('/')}/wp-json/{version}",
            auth=(consumer_key, consumer_secret),
            transport=transport,
        )

    async def get_order(self, order_id: str) -> Order | None:
        if not order_id.isdigit():
            return None
        data = await self._get_json(f"/orders/{order_id}")
        return _map_order(data) if data else None

    async def get_order_by_number(self, number: str) -> Order | None:
        # Order numbers equal post ids unless a sequential-numbering plugin is active.
        orders = await self._get_json("/orders", {"search": number, "per_page": 10}) or []
        for raw in orders:
            if str(raw.get("number")) == number:
                return _map_order(raw)
        return await self.get_order(number)

    async def get_recent_orders(self, limit: int = 10) -> list[Order]:
        orders = await self._get_json("/orders", {"per_page": limit, "orderby": "date"}) or []
        return [_map_order(o) for o in orders]

    async def get_orders_by_customer(self, customer_id: str) -> list[Order]:
        orders = await self._get_json("/orders", {"customer": customer_id}) or []
        return [_map_order(o) for o in orders]

    async def get_product(self, product_id: str) -> Product | None:
        if product_id.isdigit():
            data = await self._get_json(f"/products/{product_id}")
            return _map_product(data) if data else None
        for key in ("sku", "slug"):
            matches = await self._get_json("/products", {key: product_id}) or []
            if matches:
                return _map_product(matches[0])
        return None

    async def search_products(self, query: str) -> list[Product]:
        products = await self._get_json("/products", {"search": query, "per_page": 10}) or []
        return [_map_product(p) for p in products]

    async def get_low_stock_products(self, threshold: int = DEFAULT_LOW_STOCK_THRESHOLD) -> list[Product]:
        products = await self._get_json("/products", {"per_page": 100}) or []
        # Products without managed stock carry no quantity and are never reported.
        tracked = [p for p in products if p.get("stock_quantity") is not None or p.get("stock_status") == "outofstock"]
        mapped = [_map_product(p) for p in tracked]
        return [p for p in mapped if is_low_stock(p.inventory, threshold)]

    async def get_customer(self, customer_id: str) -> Customer | None:
        data = await self._get_json(f"/customers/{customer_id}")
        return _map_customer(data) if data else None

    async def get_customer_by_email(self, email: str) -> Customer | None:
        customers = await self._get_json("/customers", {"email": email}) or []
        return _map_customer(customers[0]) if customers else None

    async def get_metrics(self, period: MetricsPeriod) -> StoreMetrics:
        start = period_start(period).astimezone(timezone.utc)
        raw_orders = await self._get_json(
            "/orders", {"after": start.strftime("%Y-%m-%dT%H:%M:%S"), "per_page": 100}
        ) or []
        low_stock = await self.get_low_stock_products(DEFAULT_LOW_STOCK_THRESHOLD)
        return summarize_orders([_map_order(o) for o in raw_orders], len(low_stock))


def tracking_from_meta(meta: list[dict[str, Any]]) -> tuple[str | None, str | None]:
    """Extract (tracking number, tracking url) from order metadata."""

    entry = next((m for m in meta if m.get("key") in _TRACKING_KEYS), None)
    if entry is None:
        return None, None
    value = entry.get("value")
    if isinstance(value, list):
        items = value
    else:
        try:
            items = json.loads(value) if isinstance(value, str) else []
        except json.JSONDecodeError:
            return str(value), None
        if not isinstance(items, list):
            return str(value), None
    if not items:
        return None, None
    first = items[0]
    return first.get("tracking_number"), first.get("tracking_link")


def _parse_date(value: str) -> datetime:
    parsed = datetime.fromisoformat(value)
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)


def _map_customer(raw: dict[str, Any]) -> Customer:
    email = raw.get("email") or ""
    return Customer(
        id=str(raw.get("id", "")),
        email=email,
        name=f"{raw.get('first_name') or ''} {raw.get('last_name') or ''}".strip() or email,
        phone=(raw.get("billing") or {}).get("phone") or None,
        total_orders=int(raw.get("orders_count") or 0),
        total_spent=to_decimal(raw.get("total_spent")),
    )


def _map_order(raw: dict[str, Any]) -> Order:
    billing = raw.get("billing") or {}
    shipping = raw.get("shipping") or {}
    email = billing.get("email") or ""
    tracking_number, tracking_url = tracking_from_meta(raw.get("meta_data") or [])
    created = _parse_date(raw.get("date_created_gmt") or raw["date_created"])
    modified = raw.get("date_modified_gmt") or raw.get("date_modified")
    return Order(
        id=str(raw["id"]),
        number=str(raw.get("number") or raw["id"]),
        status=_STATUS_MAP.get(raw.get("status", ""), "confirmed"),
        customer=Customer(
            id=str(raw.get("customer_id") or ""),
            email=email,
            name=f"{billing.get('first_name') or ''} {billing.get('last_name') or ''}".strip() or email,
            phone=billing.get("phone") or None,
        ),
        items=[
            OrderItem(
                id=str(item.get("id", "")),
                product_id=str(item.get("product_id") or ""),
                variant_id=str(item["variation_id"]) if item.get("variation_id") else None,
                name=item.get("name", ""),
                quantity=int(item.get("quantity") or 0),
                price=to_decimal(item.get("price")),
            )
            for item in raw.get("line_items") or []
        ],
        total=to_decimal(raw.get("total")),
        currency=raw.get("currency") or "USD",
        created_at=created,
        updated_at=_parse_date(modified) if modified else created,
        shipping_address=Address(
            line1=shipping.get("address_1") or "",
            line2=shipping.get("address_2") or None,
            city=shipping.get("city") or "",
            state=shipping.get("state") or "",
            postal_code=shipping.get("postcode") or "",
            country=shipping.get("country") or "",
        )
        if shipping.get("address_1")
        else None,
        tracking_number=tracking_number,
        tracking_url=tracking_url,
    )


def _map_product(raw: dict[str, Any]) -> Product:
    categories = raw.get("categories") or []
    return Product(
        id=str(raw["id"]),
        name=raw.get("name", ""),
        description=raw.get("short_description") or raw.get("description") or "",
        price=to_decimal(raw.get("price")),
        compare_at_price=to_decimal(raw["regular_price"]) if raw.get("sale_price") and raw.get("regular_price") else None,
        inventory=int(raw.get("stock_quantity") or 0),
        images=[i["src"] for i in raw.get("images") or [] if i.get("src")],
        tags=[t["name"] for t in raw.get("tags") or [] if t.get("name")],
        category=categories[0].get("name") if categories else None,
    )
