"""Generic JSON-over-HTTP supplier adapter.

For suppliers that expose their own REST API rather than a marketplace
platform. Credentials carry the base URL and optional auth:

    {"base_url": "https://api.supplier.example",
     "api_key": "...",          # sent as X-API-Key
     "api_token": "...",        # sent as a bearer token
     "headers": {...},          # extra static headers
     "endpoints": {"products": "/products", "orders": "/orders", "tracking": "/tracking"}}

Supplier payloads vary a lot, so responses are unwrapped leniently
(``{"order": {...}}``, ``{"data": {...}}`` or the bare object).
"""

from typing import Any

import requests
import structlog

from dropship.suppliers.http import HttpSupplierAdapter, parse_timestamp, to_cents, unwrap
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

_DEFAULT_ENDPOINTS = {
    "products": "/products",
    "orders": "/orders",
    "tracking": "/tracking",
}


def _tracking_status(value: Any) -> TrackingStatus:
    try:
        return TrackingStatus(str(value or "pending").lower())
    except ValueError:
        return TrackingStatus.PENDING


class CustomApiSupplier(HttpSupplierAdapter):
    """Supplier reached over a plain JSON REST API."""

    def __init__(
        self,
        base_url: str,
        api_key: str | None = None,
        api_token: str | None = None,
        headers: dict[str, str] | None = None,
        endpoints: dict[str, str] | None = None,
        timeout: float | None = None,
        session: requests.Session | None = None,
    ) -> None:
        if not base_url:
            raise ValueError("Custom API supplier requires a base_url")
        super().__init__(base_url, timeout=timeout, session=session)
        self._api_key = api_key
        self._api_token = api_token
        self._headers = dict(headers or {})
        self._endpoints = {**_DEFAULT_ENDPOINTS, **(endpoints or {})}

    @classmethod
    def from_credentials(cls, credentials: dict) -> "CustomApiSupplier":
        return cls(
            base_url=credentials.get("base_url", ""),
            api_key=credentials.get("api_key"),
            api_token=credentials.get("api_token"),
            headers=credentials.get("headers"),
            endpoints=credentials.get("endpoints"),
        )

    def _auth_headers(self) -> dict[str, str]:
        headers = {**self._headers, "Accept": "application/json"}
        if self._api_key:
            headers["X-API-Key"] = self._api_key
        if self._api_token:
            headers["Authorization"] = f"Bearer {self._api_token}"
        return headers

    # -- Normalisation -------------------------------------------------------

    @staticmethod
    def _normalize_product(raw: dict) -> NormalizedProduct:
        variants = raw.get("variants") or []
        first_variant = variants[0] if variants else {}
        images = tuple(
            img if isinstance(img, str) else (img.get("url") or img.get("src") or "") for img in raw.get("images") or []
        )
        return NormalizedProduct(
            supplier_product_id=str(raw.get("id") or raw.get("product_id")),
            title=raw.get("title") or raw.get("name") or "",
            price_cents=to_cents(raw.get("price") or first_variant.get("price")),
            sku=raw.get("sku") or first_variant.get("sku"),
            variant_id=str(first_variant["id"]) if first_variant.get("id") else None,
            inventory_quantity=raw.get("quantity") or raw.get("stock") or first_variant.get("quantity"),
            image_urls=images,
        )

    # -- SupplierAdapter -----------------------------------------------------

    def test_connection(self) -> ConnectionTestResult:
        try:
            payload = self._request("GET", self._endpoints["products"], params={"limit": 1})
        except SupplierError as exc:
            return ConnectionTestResult(success=False, message=str(exc))
        shop_name = payload.get("shop_name") if isinstance(payload, dict) else None
        return ConnectionTestResult(success=True, message="Connected to custom API", shop_name=shop_name)

    def fetch_products(self, page: int = 1, page_size: int = 50) -> ProductPage:
        payload = self._request(
            "GET",
            self._endpoints["products"],
            params={"limit": page_size, "offset": (page - 1) * page_size, "page": page},
        )
        raw_items = payload if isinstance(payload, list) else unwrap(payload, "products", "data", "items")
        if not isinstance(raw_items, list):
            raw_items = []
        total = payload.get("total") if isinstance(payload, dict) else None
        return ProductPage(
            items=[self._normalize_product(raw) for raw in raw_items],
            has_more=len(raw_items) == page_size,
            total=total,
        )

    def fetch_product(self, supplier_product_id: str) -> NormalizedProduct | None:
        payload = self._get_or_none(f"{self._endpoints['products']}/{supplier_product_id}")
        if not payload:
            return None
        return self._normalize_product(unwrap(payload, "product", "data"))

    def create_order(self, request: SupplierOrderRequest) -> SupplierOrderResponse:
        address = request.shipping_address
        body = {
            "items": [
                {
                    "product_id": line.supplier_product_id,
                    "variant_id": line.variant_id,
                    "sku": line.sku,
                    "quantity": line.quantity,
                    "price": line.unit_cost_cents / 100,
                }
                for line in request.items
            ],
            "shipping_address": {
                "first_name": address.first_name,
                "last_name": address.last_name,
                "address1": address.address1,
                "address2": address.address2,
                "city": address.city,
                "province": address.province,
                "country": address.country,
                "zip": address.zip,
                "phone": address.phone,
                "email": address.email,
            },
            "note": request.note,
        }
        order = unwrap(self._request("POST", self._endpoints["orders"], json=body), "order", "data")
        upstream_id = order.get("id") or order.get("order_id") or order.get("orderId")
        if not upstream_id:
            raise SupplierError("Supplier accepted the request but returned no order id")

        total = order.get("total") or order.get("total_cost") or order.get("totalCost")
        logger.info("Custom API order created", base_url=self._base_url, supplier_order_id=str(upstream_id))
        return SupplierOrderResponse(
            supplier_order_id=str(upstream_id),
            status=order.get("status") or "submitted",
            total_cost_cents=to_cents(total) if total is not None else None,
        )

    def get_tracking(self, supplier_order_id: str) -> TrackingInfo | None:
        payload = self._get_or_none(f"{self._endpoints['tracking']}/{supplier_order_id}")
        tracking = unwrap(payload, "tracking", "data")
        if not tracking or not tracking.get("tracking_number"):
            return None
        return TrackingInfo(
            status=_tracking_status(tracking.get("status")),
            tracking_number=tracking.get("tracking_number"),
            carrier=tracking.get("carrier") or tracking.get("shipping_carrier"),
            tracking_url=tracking.get("tracking_url"),
            last_update=parse_timestamp(tracking.get("updated_at")),
        )

    def get_fulfillment(self, supplier_order_id: str) -> SupplierFulfillment | None:
        payload = self._get_or_none(f"{self._endpoints['orders']}/{supplier_order_id}")
        if not payload:
            return None
        order = unwrap(payload, "order", "data")
        tracking_numbers = tuple(
            str(number) for number in (order.get("tracking_numbers") or [order.get("tracking_number")]) if number
        )
        return SupplierFulfillment(
            supplier_order_id=str(order.get("id") or supplier_order_id),
            status=str(order.get("status") or "pending").lower(),
            tracking_numbers=tracking_numbers,
            line_item_ids=tuple(str(item.get("id")) for item in order.get("items") or [] if item.get("id")),
        )
