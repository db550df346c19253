"""Configurable fake supplier for development and testing.

Behaves like a well-mannered upstream supplier without any network calls.
Orders are accepted (or rejected when configured to), and tracking is
whatever a test has scripted for an order.
Every call is recorded in ``calls``.
"""

from datetime import UTC, datetime
from uuid import uuid4

from dropship.suppliers.port import (
    ConnectionTestResult,
    NormalizedProduct,
    ProductPage,
    SupplierAdapter,
    SupplierError,
    SupplierFulfillment,
    SupplierOrderRequest,
    SupplierOrderResponse,
    TrackingInfo,
    TrackingStatus,
)


class FakeSupplier(SupplierAdapter):
    """Configurable fake supplier."""

    def __init__(self, name: str = "Fake Supplier", products: list[NormalizedProduct] | None = None) -> None:
        self.name = name
        self.should_succeed: bool = True
        self.failure_reason: str = "Supplier rejected the order"
        self.cost_adjustment_cents: int = 0
        self.tracking_error: str | None = None
        self.products: dict[str, NormalizedProduct] = {p.supplier_product_id: p for p in products or []}
        self.orders: dict[str, SupplierOrderRequest] = {}
        self.tracking: dict[str, TrackingInfo] = {}
        self.calls: list[dict] = []

    def configure(
        self,
        should_succeed: bool,
        failure_reason: str = "Supplier rejected the order",
        cost_adjustment_cents: int = 0,
        tracking_error: str | None = None,
    ) -> None:
        """Configure supplier behavior at runtime."""
        self.should_succeed = should_succeed
        self.failure_reason = failure_reason
        self.cost_adjustment_cents = cost_adjustment_cents
        self.tracking_error = tracking_error

    def set_tracking(
        self,
        supplier_order_id: str,
        status: TrackingStatus | str,
        tracking_number: str | None = None,
        carrier: str | None = "FakePost",
        tracking_url: str | None = None,
    ) -> TrackingInfo:
        """Script the tracking state the supplier reports for an order."""
        status = TrackingStatus(status)
        if tracking_number is None and status != TrackingStatus.PENDING:
            tracking_number = f"FP{supplier_order_id[-8:].upper()}"
        info = TrackingInfo(
            status=status,
            tracking_number=tracking_number,
            carrier=carrier,
            tracking_url=tracking_url or (f"https://track.fake/{tracking_number}" if tracking_number else None),
            last_update=datetime.now(UTC),
        )
        self.tracking[supplier_order_id] = info
        return info

    def add_product(self, product: NormalizedProduct) -> None:
        self.products[product.supplier_product_id] = product

    def calls_to(self, method: str) -> list[dict]:
        return [call for call in self.calls if call["method"] == method]

    # -------------------------------------------------------------------
    # SupplierAdapter
    # -------------------------------------------------------------------
    def test_connection(self) -> ConnectionTestResult:
        self.calls.append({"method": "test_connection"})
        return ConnectionTestResult(success=True, message=f"Connected to {self.name}", shop_name=self.name)

    def fetch_products(self, page: int = 1, page_size: int = 50) -> ProductPage:
        self.calls.append({"method": "fetch_products", "page": page, "page_size": page_size})
        listing = list(self.products.values())
        start = (page - 1) * page_size
        items = listing[start : start + page_size]
        return ProductPage(items=items, has_more=start + page_size < len(listing), total=len(listing))

    def fetch_product(self, supplier_product_id: str) -> NormalizedProduct | None:
        self.calls.append({"method": "fetch_product", "supplier_product_id": supplier_product_id})
        return self.products.get(supplier_product_id)

    def create_order(self, request: SupplierOrderRequest) -> SupplierOrderResponse:
        self.calls.append(
            {
                "method": "create_order",
                "items": request.items,
                "shipping_address": request.shipping_address,
                "note": request.note,
            }
        )
        if not self.should_succeed:
            raise SupplierError(self.failure_reason)

        supplier_order_id = f"fake_so_{uuid4().hex[:12]}"
        self.orders[supplier_order_id] = request
        total = sum(line.unit_cost_cents * line.quantity for line in request.items) + self.cost_adjustment_cents
        return SupplierOrderResponse(
            supplier_order_id=supplier_order_id,
            status="submitted",
            total_cost_cents=total,
        )

    def get_tracking(self, supplier_order_id: str) -> TrackingInfo | None:
        self.calls.append({"method": "get_tracking", "supplier_order_id": supplier_order_id})
        if self.tracking_error:
            raise SupplierError(self.tracking_error)
        return self.tracking.get(supplier_order_id)

    def get_fulfillment(self, supplier_order_id: str) -> SupplierFulfillment | None:
        self.calls.append({"method": "get_fulfillment", "supplier_order_id": supplier_order_id})
        if supplier_order_id not in self.orders:
            return None
        tracking = self.tracking.get(supplier_order_id)
        return SupplierFulfillment(
            supplier_order_id=supplier_order_id,
            status=tracking.status.value if tracking else TrackingStatus.PENDING.value,
            tracking_numbers=(tracking.tracking_number,) if tracking and tracking.tracking_number else (),
        )
