from datetime import datetime, timezone
from decimal import Decimal

import pytest

from catalyst.models import Customer, Order, OrderItem, Product, ProductVariant
from catalyst.stores.in_memory import InMemoryStore

CUSTOMER = Customer(id="c1", email="jane@example.com", name="Jane Doe", total_orders=3, total_spent=Decimal("120.50"))


def make_order(number: str = "1001", **overrides) -> Order:
    values = {
        "id": f"ord_{number}",
        "number": number,
        "status": "shipped",
        "customer": CUSTOMER,
        "items": [OrderItem(id="li1", product_id="p1", name="Blue Mug", quantity=2, price=Decimal("12.00"))],
        "total": Decimal("24.00"),
        "currency": "USD",
        "created_at": datetime.now(timezone.utc),
        "updated_at": datetime.now(timezone.utc),
        "tracking_number": "1Z999",
        "tracking_url": "https://track.example.com/1Z999",
    }
    values.update(overrides)
    return Order(**values)


def make_product(product_id: str = "p1", name: str = "Blue Mug", inventory: int = 25, **overrides) -> Product:
    values = {
        "id": product_id,
        "name": name,
        "price": Decimal("12.00"),
        "inventory": inventory,
        "description": f"A lovely {name.lower()}",
        "variants": [ProductVariant(id=f"{product_id}-v1", name="Default", price=Decimal("12.00"), inventory=inventory)],
    }
    values.update(overrides)
    return Product(**values)


@pytest.fixture
def demo_store() -> InMemoryStore:
    return InMemoryStore(
        name="default",
        orders=[make_order("1001"), make_order("1002", status="processing", tracking_number=None, tracking_url=None)],
        products=[
            make_product("p1", "Blue Mug", 25),
            make_product("p2", "Red Mug", 10),
            make_product("p3", "Green Teapot", 3),
        ],
        customers=[CUSTOMER],
    )
