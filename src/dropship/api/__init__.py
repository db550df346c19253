"""Dropship domain API package."""

from dropship.api.routes import (
    order_router,
    product_router,
    supplier_order_router,
    supplier_router,
    wallet_router,
)

__all__ = ["order_router", "wallet_router", "supplier_order_router", "supplier_router", "product_router"]
