"""Supplier adapter for a supplier's Shopify store (Admin REST API).

Credentials:

    {"store_domain": "supplier.myshopify.com",
     "access_token": "shpat_...",
     "api_version": "2024-01"}   # optional

Orders are created unpaid (``financial_status: pending``); the supplier
charges the merchant out of band. Tracking comes from the order's first
fulfillment.
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

DEFAULT_API_VERSION = "2024-01"

_SHIPMENT_STATUS = {
    "delivered": TrackingStatus.DELIVERED,
    "in_transit": TrackingStatus.IN_TRANSIT,
    "out_for_delivery": TrackingStatus.OUT_FOR_DELIVERY,
    "failure": TrackingStatus.EXCEPTION,
}

_FULFILLMENT_STATUS = {
    "fulfilled": "shipped",
    "partial": "processing",
}


class ShopifySupplier(HttpSupplierAdapter):
    api_name = "Shopify API"

    def __init__(
        self,
        store_domain: str,
        access_token: str,
        api_version: str | None = None,
        timeout: float | None = None,
        session: requests.Session | None = None,
    ) -> None:
        if not store_domain or not access_token:
            raise ValueError("Shopify supplier requires store_domain and access_token")
        domain = re.sub(r"^https?://", "", store_domain).rstrip("/")
        super().__init__(
            f"https://{domain}/admin/api/{api_version or DEFAULT_API_VERSION}",
            timeout=timeout,
            session=session,
        )
        self._access_token = access_token

    @classmethod
    def from_credentials(cls, credentials: dict) -> "ShopifySupplier":
        return cls(
            store_domain=credentials.get("store_domain", ""),
            access_token=credentials.get("access_token", ""),
            api_version=credentials.get("api_version"),
        )

    def _auth_headers(self) -> dict[str, str]:
        return {
            "Accept": "application/json",
            "X-Shopify-Access-Token": self._access_token,
        }

    @staticmethod
    def _normalize_product(raw: dict) -> NormalizedProduct:
        variants = raw.get("variants") or []
        first_variant = variants[0] if variants else {}
        return NormalizedProduct(
            supplier_product_id=str(raw.get("id")),
            title=raw.get("title") or "",
            price_cents=to_cents(first_variant.get("price")),
            sku=first_variant.get("sku") or None,
            variant_id=str(first_variant["id"]) if first_variant.get("id") else None,
            inventory_quantity=first_variant.get("inventory_quantity"),
            image_urls=tuple(img.get("src") for img in raw.get("images") or [] if img.get("src")),
        )

    @staticmethod
    def _address(request: SupplierOrderRequest) -> dict[str, Any]:
        address = request.shipping_address
        return {
            "first_name": address.first_name,
            "last_name": address.last_name,
            "address1": address.address1,
            "address2": address.address2,
            "city": address.city,
            "province": address.province,
            "country": address.country,
            "zip": address.zip,
            "phone": address.phone,
        }

    def test_connection(self) -> ConnectionTestResult:
        try:
            payload = self._request("GET", "/shop.json")
        except SupplierError as exc:
            return ConnectionTestResult(success=False, message=str(exc))
        name = (payload.get("shop") or {}).get("name")
        return ConnectionTestResult(success=True, message=f"Connected to {name}", shop_name=name)

    def fetch_products(self, page: int = 1, page_size: int = 50) -> ProductPage:
        payload = self._request("GET", "/products.json", params={"limit": page_size, "page": page})
        count = self._request("GET", "/products/count.json").get("count") or 0
        raw_items = payload.get("products") or []
        return ProductPage(
            items=[self._normalize_product(raw) for raw in raw_items],
            has_more=page * page_size < count,
            total=count,
        )

    def fetch_product(self, supplier_product_id: str) -> NormalizedProduct | None:
        payload = self._get_or_none(f"/products/{supplier_product_id}.json")
        if not payload or not payload.get("product"):
            return None
        return self._normalize_product(payload["product"])

    def create_order(self, request: SupplierOrderRequest) -> SupplierOrderResponse:
        body = {
            "order": {
                "line_items": [
                    {
                        "variant_id": line.variant_id or line.supplier_product_id,
                        "quantity": line.quantity,
                        "price": f"{line.unit_cost_cents / 100:.2f}",
                    }
                    for line in request.items
                ],
                "shipping_address": self._address(request),
                "email": request.shipping_address.email,
                "note": request.note,
                "financial_status": "pending",
            }
        }
        order = self._request("POST", "/orders.json", json=body).get("order") or {}
        if not order.get("id"):
            raise SupplierError("Shopify accepted the request but returned no order id")

        logger.info("Shopify order created", store=self._base_url, supplier_order_id=str(order["id"]))
        total = order.get("total_price")
        return SupplierOrderResponse(
            supplier_order_id=str(order["id"]),
            status="submitted",
            total_cost_cents=to_cents(total) if total is not None else None,
        )

    def get_tracking(self, supplier_order_id: str) -> TrackingInfo | None:
        payload = self._get_or_none(f"/orders/{supplier_order_id}/fulfillments.json")
        fulfillments = (payload or {}).get("fulfillments") or []
        if not fulfillments:
            return None
        fulfillment = fulfillments[0]
        return TrackingInfo(
            status=_SHIPMENT_STATUS.get(fulfillment.get("shipment_status"), TrackingStatus.PENDING),
            tracking_number=fulfillment.get("tracking_number"),
            carrier=fulfillment.get("tracking_company"),
            tracking_url=fulfillment.get("tracking_url"),
            last_update=parse_timestamp(fulfillment.get("updated_at")),
        )

    def get_fulfillment(self, supplier_order_id: str) -> SupplierFulfillment | None:
        payload = self._get_or_none(f"/orders/{supplier_order_id}.json")
        order = (payload or {}).get("order")
        if not order:
            return None
        tracking_numbers = tuple(
            str(number)
            for fulfillment in order.get("fulfillments") or []
            for number in fulfillment.get("tracking_numbers") or []
            if number
        )
        return SupplierFulfillment(
            supplier_order_id=str(order.get("id") or supplier_order_id),
            status=_FULFILLMENT_STATUS.get(order.get("fulfillment_status"), "pending"),
            tracking_numbers=tracking_numbers,
            line_item_ids=tuple(str(item["id"]) for item in order.get("line_items") or [] if item.get("id")),
        )
