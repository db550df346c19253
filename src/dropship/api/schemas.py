"""Pydantic API schemas for the Dropship domain.

These are the external API contracts, kept separate from domain commands.
The API layer translates between these schemas and domain commands.
"""

from datetime import datetime

from pydantic import BaseModel, Field


# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------
class LineItemRequest(BaseModel):
    product_id: str
    title: str | None = None
    quantity: int = Field(ge=1)
    unit_price_cents: int = Field(ge=0)
    unit_cost_cents: int = Field(ge=0)


class ShippingAddressRequest(BaseModel):
    first_name: str | None = None
    last_name: str | None = None
    address1: str | None = None
    address2: str | None = None
    city: str | None = None
    province: str | None = None
    country: str | None = None
    zip: str | None = None
    phone: str | None = None
    email: str | None = None


class PlaceOrderRequest(BaseModel):
    merchant_id: str
    customer_id: str | None = None
    order_number: str | None = None
    currency: str = "USD"
    items: list[LineItemRequest]
    shipping_address: ShippingAddressRequest | None = None


class CancelOrderRequest(BaseModel):
    reason: str


class TopUpRequest(BaseModel):
    amount_cents: int = Field(ge=0)
    description: str = "Wallet top-up"
    external_reference: str | None = None


class RegisterSupplierRequest(BaseModel):
    name: str
    supplier_type: str
    credentials: dict = Field(default_factory=dict)


class RegisterProductRequest(BaseModel):
    title: str
    supplier_id: str | None = None
    supplier_product_id: str | None = None
    supplier_sku: str | None = None
    variant_id: str | None = None
    supplier_price_cents: int | None = Field(default=None, ge=0)


class ConfigureSupplierRequest(BaseModel):
    should_succeed: bool = True
    failure_reason: str = "Supplier rejected the order"
    cost_adjustment_cents: int = 0
    tracking_error: str | None = None


class ScriptTrackingRequest(BaseModel):
    upstream_order_id: str
    status: str
    tracking_number: str | None = None
    carrier: str | None = "FakePost"


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------
class IdResponse(BaseModel):
    id: str


class StatusResponse(BaseModel):
    status: str


class WalletResponse(BaseModel):
    merchant_id: str
    balance_cents: int
    pending_cents: int
    currency: str


class WalletTransactionResponse(BaseModel):
    id: str
    transaction_type: str
    amount_cents: int
    balance_after_cents: int
    currency: str
    description: str | None = None
    order_id: str | None = None
    external_reference: str | None = None
    created_at: datetime


class WalletTransactionsResponse(BaseModel):
    transactions: list[WalletTransactionResponse]
    total: int
    limit: int
    offset: int


class LedgerEntryResponse(BaseModel):
    transaction_id: str | None = None
    transaction_type: str
    amount_cents: int
    balance_after_cents: int


class CanFulfillResponse(BaseModel):
    can_fulfill: bool
    required_cents: int
    available_cents: int
    shortfall_cents: int
    reason: str | None = None


class FulfillmentResultResponse(BaseModel):
    success: bool
    supplier_id: str
    supplier_order_id: str | None = None
    upstream_order_id: str | None = None
    error: str | None = None


class FulfillmentOutcomeResponse(BaseModel):
    success: bool
    results: list[FulfillmentResultResponse]
    error: str | None = None


class TrackingResponse(BaseModel):
    status: str
    tracking_number: str | None = None
    carrier: str | None = None
    tracking_url: str | None = None


class RefreshTrackingResponse(BaseModel):
    supplier_order_id: str
    refreshed: bool
    supplier_order_status: str
    tracking: TrackingResponse | None = None


class SweepResponse(BaseModel):
    checked: int
    refreshed: int
    failed: int


class SupplierOrderResponse(BaseModel):
    id: str
    supplier_id: str
    status: str
    total_cost_cents: int
    upstream_order_id: str | None = None
    error_message: str | None = None
    debit_transaction_id: str | None = None
    refund_transaction_id: str | None = None
    tracking: TrackingResponse | None = None


class ConnectionTestResponse(BaseModel):
    success: bool
    message: str
    shop_name: str | None = None
