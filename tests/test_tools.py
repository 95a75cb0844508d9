import json
from unittest.mock import AsyncMock

import pytest

from catalyst.memory import MemoryStore
from catalyst.models import Session, SessionContext
from catalyst.stores.base import StoreError
from catalyst.tools.registry import ToolRegistry, build_default_registry
from catalyst.tools.store_tools import ORDER_NOT_FOUND, LowStockInput, format_order

from conftest import make_order

STORE_TOOLS = ["lookup_order", "search_products", "get_store_metrics", "get_low_stock", "lookup_customer"]


def _session(store: str = "default") -> Session:
    return Session(id="s1", channel="web", context=SessionContext(store=store))


def test_default_registry_without_memory_has_store_tools_only(demo_store):
    registry = build_default_registry({"default": demo_store})

    assert registry.names == STORE_TOOLS


def test_default_registry_with_memory_adds_memory_tools(demo_store):
    registry = build_default_registry({"default": demo_store}, MemoryStore())

    assert registry.names == STORE_TOOLS + ["remember", "search_memory"]


def test_tool_specs_flatten_optional_fields(demo_store):
    specs = {s["function"]["name"]: s for s in build_default_registry({"default": demo_store}).list_tool_specs()}

    order_params = specs["lookup_order"]["function"]["parameters"]
    assert order_params["type"] == "object"
    assert order_params["properties"]["order_number"]["type"] == "string"
    assert order_params["required"] == []
    assert specs["get_store_metrics"]["function"]["parameters"]["properties"]["period"]["enum"] == [
        "today",
        "week",
        "month",
    ]
    assert specs["search_products"]["function"]["parameters"]["required"] == ["query"]


@pytest.mark.asyncio
async def test_unknown_tool_returns_message(demo_store):
    registry = build_default_registry({"default": demo_store})

    assert await registry.execute("refund_everything", {}, _session()) == "Unknown tool: refund_everything"


@pytest.mark.asyncio
async def test_invalid_input_is_reported_not_raised(demo_store):
    registry = build_default_registry({"default": demo_store})

    result = await registry.execute("lookup_order", {}, _session())

    assert result.startswith("Invalid input for lookup_order:")


@pytest.mark.asyncio
async def test_invalid_period_is_rejected(demo_store):
    registry = build_default_registry({"default": demo_store})

    result = await registry.execute("get_store_metrics", {"period": "decade"}, _session())

    assert result.startswith("Invalid input for get_store_metrics:")


@pytest.mark.asyncio
async def test_missing_store_is_reported():
    registry = build_default_registry({})

    result = await registry.execute("search_products", {"query": "mug"}, _session("shop"))

    assert result == "Error: No store configured (looked for 'shop')."


@pytest.mark.asyncio
async def test_store_failure_becomes_error_string(demo_store):
    demo_store.search_products = AsyncMock(side_effect=StoreError("shopify API error: 502 Bad Gateway", 502))
    registry = build_default_registry({"default": demo_store})

    result = await registry.execute("search_products", {"query": "mug"}, _session())

    assert result == "Error executing search_products: shopify API error: 502 Bad Gateway"


@pytest.mark.asyncio
async def test_memory_tool_without_memory_is_reported(demo_store):
    from catalyst.tools.memory_tool import RememberTool

    registry = ToolRegistry({"default": demo_store})
    registry.register(RememberTool())

    assert await registry.execute("remember", {"content": "x"}, _session()) == "Error: Long-term memory is not enabled."


@pytest.mark.asyncio
async def test_lookup_order_strips_hash_and_sets_context(demo_store):
    registry = build_default_registry({"default": demo_store})
    session = _session()

    result = json.loads(await registry.execute("lookup_order", {"order_number": "#1001"}, session))

    assert result["orderNumber"] == "#1001"
    assert result["status"] == "shipped"
    assert result["total"] == "USD 24.00"
    assert result["items"] == ["2x Blue Mug"]
    assert result["tracking"] == {"number": "1Z999", "url": "https://track.example.com/1Z999"}
    assert session.context.order_id == "ord_1001"


@pytest.mark.asyncio
async def test_lookup_order_accepts_numeric_number_and_falls_back_to_id(demo_store):
    registry = build_default_registry({"default": demo_store})

    by_number = json.loads(await registry.execute("lookup_order", {"order_number": 1002}, _session()))
    by_id = json.loads(
        await registry.execute("lookup_order", {"order_number": "9999", "order_id": "ord_1001"}, _session())
    )

    assert by_number["orderNumber"] == "#1002"
    assert by_number["tracking"] is None
    assert by_id["orderNumber"] == "#1001"


@pytest.mark.asyncio
async def test_lookup_order_result_is_stable_across_calls(demo_store):
    registry = build_default_registry({"default": demo_store})
    session = _session()

    first = await registry.execute("lookup_order", {"order_number": "1001"}, session)
    second = await registry.execute("lookup_order", {"order_number": "1001"}, session)

    assert first == second


@pytest.mark.asyncio
async def test_lookup_order_not_found(demo_store):
    registry = build_default_registry({"default": demo_store})

    assert await registry.execute("lookup_order", {"order_number": "404"}, _session()) == ORDER_NOT_FOUND


def test_format_order_keeps_single_hash():
    order = make_order("1001")

    assert format_order(order)["orderNumber"] == "#1001"
    assert format_order(order) == format_order(order)


@pytest.mark.asyncio
async def test_search_products_single_hit_sets_product_context(demo_store):
    registry = build_default_registry({"default": demo_store})
    session = _session()

    result = json.loads(await registry.execute("search_products", {"query": "teapot"}, session))

    assert result == [{"name": "Green Teapot", "price": "12.00", "inStock": True, "inventory": 3}]
    assert session.context.product_id == "p3"


@pytest.mark.asyncio
async def test_search_products_no_match(demo_store):
    registry = build_default_registry({"default": demo_store})

    assert await registry.execute("search_products", {"query": "sofa"}, _session()) == (
        "No products found matching your search."
    )


@pytest.mark.asyncio
async def test_low_stock_threshold_is_inclusive(demo_store):
    registry = build_default_registry({"default": demo_store})

    result = json.loads(await registry.execute("get_low_stock", {"threshold": 10}, _session()))

    assert [p["name"] for p in result] == ["Red Mug", "Green Teapot"]


@pytest.mark.asyncio
async def test_low_stock_all_sufficient(demo_store):
    registry = build_default_registry({"default": demo_store})

    assert await registry.execute("get_low_stock", {"threshold": 0}, _session()) == "All products have sufficient stock!"


def test_low_stock_input_defaults():
    assert LowStockInput.model_validate({}).threshold == 10
    assert LowStockInput.model_validate({"threshold": None}).threshold == 10
    assert LowStockInput.model_validate({"threshold": 4.0}).threshold == 4


@pytest.mark.asyncio
async def test_store_metrics_formats_money(demo_store):
    registry = build_default_registry({"default": demo_store})

    result = json.loads(await registry.execute("get_store_metrics", {"period": "Week"}, _session()))

    assert result["period"] == "week"
    assert result["orders"] == 2
    assert result["revenue"] == "$48.00"
    assert result["averageOrderValue"] == "$24.00"
    assert result["topProducts"] == [{"name": "Blue Mug", "sold": 4}]
    assert result["lowStockAlerts"] == 2


@pytest.mark.asyncio
async def test_lookup_customer(demo_store):
    registry = build_default_registry({"default": demo_store})

    found = json.loads(await registry.execute("lookup_customer", {"email": "JANE@example.com"}, _session()))
    missing = await registry.execute("lookup_customer", {"email": "who@example.com"}, _session())

    assert found == {"name": "Jane Doe", "email": "jane@example.com", "totalOrders": 3, "totalSpent": "$120.50"}
    assert missing == "Customer not found."
