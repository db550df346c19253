"""Supplier adapter for a supplier's WooCommerce store (REST API v3).

Credentials:

    {"store_url": "https://supplier.example",
     "consumer_key": "ck_...",
     "consumer_secret": "cs_..."}

Requests authenticate with HTTP basic auth over the key pair. WooCommerce
has no first-class shipment tracking, so tracking numbers are read from
order notes the supplier adds when shipping.
"""

import re
from typing import Any

import requests
import structlog

from dropship.suppliers.http import HttpSupplierAdapter, parse_timestamp, to_cents
from dropship.suppliers.port import (
    ConnectionTestResult,
    NormalizedProduct,
    ProductPage,
    SupplierError,
    SupplierFulfillment,
    SupplierOrderRequest,
    SupplierOrderResponse,
    TrackingInfo,
    TrackingStatus,
)

logger = structlog.get_logger(__name__)

_TRACKING_NUMBER = re.compile(r"tracking[:\s#]+([A-Z0-9]+)", re.IGNORECASE)

_ORDER_STATUS = {
    "completed": "delivered",
    "processing": "processing",
    "on-hold": "confirmed",
    "cancelled": "cancelled",
    "refunded": "cancelled",
    "failed": "cancelled",
}


def _woo_id(value: str | None) -> int | str | None:
    if value is None:
        return None
    return int(value) if str(value).isdigit() else value


class WooCommerceSupplier(HttpSupplierAdapter):
    api_name = "WooCommerce API"

    def __init__(
        self,
        store_url: str,
        consumer_key: str,
        consumer_secret: str,
        timeout: float | None = None,
        session: requests.Session | None = None,
    ) -> None:
        if not store_url or not consumer_key or not consumer_secret:
            raise ValueError("WooCommerce supplier requires store_url, consumer_key and consumer_secret")
        super().__init__(f"{store_url.rstrip('/')}/wp-json/wc/v3", timeout=timeout, session=session)
        self._consumer_key = consumer_key
        self._consumer_secret = consumer_secret

    @classmethod
    def from_credentials(cls, credentials: dict) -> "WooCommerceSupplier":
        return cls(
            store_url=credentials.get("store_url", ""),
            consumer_key=credentials.get("consumer_key", ""),
            consumer_secret=credentials.get("consumer_secret", ""),
        )

    def _auth(self) -> tuple[str, str]:
        return (self._consumer_key, self._consumer_secret)

    @staticmethod
    def _normalize_product(raw: dict) -> NormalizedProduct:
        return NormalizedProduct(
            supplier_product_id=str(raw.get("id")),
            title=raw.get("name") or "",
            price_cents=to_cents(raw.get("price")),
            sku=raw.get("sku") or None,
            inventory_quantity=raw.get("stock_quantity"),
            image_urls=tuple(img.get("src") for img in raw.get("images") or [] if img.get("src")),
        )

    @staticmethod
    def _address(request: SupplierOrderRequest) -> dict[str, Any]:
        address = request.shipping_address
        return {
            "first_name": address.first_name,
            "last_name": address.last_name,
            "address_1": address.address1,
            "address_2": address.address2 or "",
            "city": address.city,
            "state": address.province or "",
            "postcode": address.zip,
            "country": address.country,
        }

    def test_connection(self) -> ConnectionTestResult:
        try:
            payload = self._request("GET", "/system_status")
        except SupplierError as exc:
            return ConnectionTestResult(success=False, message=str(exc))
        name = (payload.get("environment") or {}).get("site_url") if isinstance(payload, dict) else None
        return ConnectionTestResult(success=True, message="Connected to WooCommerce store", shop_name=name)

    def fetch_products(self, page: int = 1, page_size: int = 50) -> ProductPage:
        payload = self._request("GET", "/products", params={"page": page, "per_page": page_size})
        raw_items = payload if isinstance(payload, list) else []
        return ProductPage(
            items=[self._normalize_product(raw) for raw in raw_items],
            has_more=len(raw_items) == page_size,
        )

    def fetch_product(self, supplier_product_id: str) -> NormalizedProduct | None:
        payload = self._get_or_none(f"/products/{supplier_product_id}")
        if not payload:
            return None
        return self._normalize_product(payload)

    def create_order(self, request: SupplierOrderRequest) -> SupplierOrderResponse:
        address = self._address(request)
        line_items = []
        for line in request.items:
            item: dict[str, Any] = {"product_id": _woo_id(line.supplier_product_id), "quantity": line.quantity}
            if line.variant_id and line.variant_id != line.supplier_product_id:
                item["variation_id"] = _woo_id(line.variant_id)
            line_items.append(item)
        body = {
            "payment_method": "manual",
            "payment_method_title": "Dropship fulfillment",
            "set_paid": False,
            "billing": {
                **address,
                "email": request.shipping_address.email or "",
                "phone": request.shipping_address.phone or "",
            },
            "shipping": address,
            "line_items": line_items,
            "customer_note": request.note,
        }
        order = self._request("POST", "/orders", json=body)
        if not isinstance(order, dict) or not order.get("id"):
            raise SupplierError("WooCommerce accepted the request but returned no order id")

        logger.info("WooCommerce order created", store=self._base_url, supplier_order_id=str(order["id"]))
        total = order.get("total")
        return SupplierOrderResponse(
            supplier_order_id=str(order["id"]),
            status=order.get("status") or "submitted",
            total_cost_cents=to_cents(total) if total is not None else None,
        )

    def get_tracking(self, supplier_order_id: str) -> TrackingInfo | None:
        notes = self._get_or_none(f"/orders/{supplier_order_id}/notes")
        for note in notes or []:
            text = note.get("note") or ""
            if "tracking" not in text.lower() and "shipped" not in text.lower():
                continue
            match = _TRACKING_NUMBER.search(text)
            return TrackingInfo(
                status=TrackingStatus.IN_TRANSIT,
                tracking_number=match.group(1) if match else None,
                last_update=parse_timestamp(note.get("date_created")),
            )
        return None

    def get_fulfillment(self, supplier_order_id: str) -> SupplierFulfillment | None:
        order = self._get_or_none(f"/orders/{supplier_order_id}")
        if not order:
            return None
        return SupplierFulfillment(
            supplier_order_id=str(order.get("id") or supplier_order_id),
            status=_ORDER_STATUS.get(order.get("status"), "pending"),
            line_item_ids=tuple(str(item["id"]) for item in order.get("line_items") or [] if item.get("id")),
        )
