"""Build store clients from configuration."""

from __future__ import annotations

from catalyst.config import StoreSettings
from catalyst.stores.base import StoreClient
from catalyst.stores.medusa import MedusaStoreClient
from catalyst.stores.shopify import ShopifyStoreClient
from catalyst.stores.woocommerce import WooCommerceStoreClient


def create_store_client(settings: StoreSettings) -> StoreClient:
    if settings.platform == "shopify":
        return ShopifyStoreClient(
            settings.name,
            settings.url,
            access_token=settings.access_token or settings.api_key or "",
        )
    if settings.platform == "medusa":
        return MedusaStoreClient(
            settings.name,
            settings.url,
            api_key=settings.api_key,
            access_token=settings.access_token,
        )
    if settings.platform == "woocommerce":
        if not settings.consumer_key or not settings.consumer_secret:
            raise ValueError(f"WooCommerce store {settings.name!r} needs consumerKey and consumerSecret")
        return WooCommerceStoreClient(
            settings.name,
            settings.url,
            consumer_key=settings.consumer_key,
            consumer_secret=settings.consumer_secret,
        )
    raise ValueError(f"Unknown platform: {settings.platform}")


def create_store_clients(stores: list[StoreSettings]) -> dict[str, StoreClient]:
    """Return clients keyed by store name, preserving configuration order."""

    return {s.name: create_store_client(s) for s in stores}
