"""Supplier adapter port (abstract interface).

Every upstream supplier speaks its own API. Adapters translate that API
into the normalised shapes below so fulfillment code never knows which
supplier it is talking to.

``create_order`` raises ``SupplierError`` (or anything else) on a hard
failure; callers treat any exception from an adapter as a rejection.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from enum import Enum


class SupplierError(Exception):
    """The supplier rejected a request or could not be reached."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class TrackingStatus(Enum):
    PENDING = "pending"
    IN_TRANSIT = "in_transit"
    OUT_FOR_DELIVERY = "out_for_delivery"
    DELIVERED = "delivered"
    EXCEPTION = "exception"


@dataclass(frozen=True)
class ConnectionTestResult:
    success: bool
    message: str
    shop_name: str | None = None


@dataclass(frozen=True)
class NormalizedProduct:
    """A supplier listing in platform terms. Prices are in cents."""

    supplier_product_id: str
    title: str
    price_cents: int
    sku: str | None = None
    variant_id: str | None = None
    inventory_quantity: int | None = None
    image_urls: tuple[str, ...] = ()


@dataclass(frozen=True)
class ProductPage:
    items: list[NormalizedProduct]
    has_more: bool
    total: int | None = None


@dataclass(frozen=True)
class OrderLine:
    """One line of a purchase request sent upstream."""

    supplier_product_id: str
    quantity: int
    unit_cost_cents: int
    variant_id: str | None = None
    sku: str | None = None


@dataclass(frozen=True)
class ShippingAddress:
    first_name: str
    last_name: str
    address1: str
    city: str
    country: str
    zip: str
    address2: str | None = None
    province: str | None = None
    phone: str | None = None
    email: str | None = None


@dataclass(frozen=True)
class SupplierOrderRequest:
    items: list[OrderLine]
    shipping_address: ShippingAddress
    note: str | None = None


@dataclass(frozen=True)
class SupplierOrderResponse:
    supplier_order_id: str
    status: str
    total_cost_cents: int | None = None


@dataclass(frozen=True)
class TrackingInfo:
    status: TrackingStatus
    tracking_number: str | None = None
    carrier: str | None = None
    tracking_url: str | None = None
    last_update: datetime | None = None


@dataclass(frozen=True)
class SupplierFulfillment:
    """Shipment-level detail for an accepted supplier order."""

    supplier_order_id: str
    status: str
    tracking_numbers: tuple[str, ...] = ()
    line_item_ids: tuple[str, ...] = ()


class SupplierAdapter(ABC):
    """Abstract supplier interface."""

    @abstractmethod
    def test_connection(self) -> ConnectionTestResult:
        """Check that the credentials work."""
        ...

    @abstractmethod
    def fetch_products(self, page: int = 1, page_size: int = 50) -> ProductPage:
        """Page through the supplier's catalog."""
        ...

    @abstractmethod
    def fetch_product(self, supplier_product_id: str) -> NormalizedProduct | None:
        ...

    @abstractmethod
    def create_order(self, request: SupplierOrderRequest) -> SupplierOrderResponse:
        """Place a purchase request upstream. Raises on rejection."""
        ...

    @abstractmethod
    def get_tracking(self, supplier_order_id: str) -> TrackingInfo | None:
        """Current shipment tracking, or None if nothing has shipped yet."""
        ...

    @abstractmethod
    def get_fulfillment(self, supplier_order_id: str) -> SupplierFulfillment | None:
        ...
