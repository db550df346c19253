"""FastAPI routes for the Dropship domain.

Endpoints that reach a supplier are plain ``def`` so FastAPI runs them in its
threadpool: supplier adapters make blocking HTTP calls.
"""

import json
import os

from fastapi import APIRouter, HTTPException, Query
from protean.utils.globals import current_domain

from dropship.api.schemas import (
    CanFulfillResponse,
    CancelOrderRequest,
    ConfigureSupplierRequest,
    ConnectionTestResponse,
    FulfillmentOutcomeResponse,
    FulfillmentResultResponse,
    IdResponse,
    LedgerEntryResponse,
    PlaceOrderRequest,
    RefreshTrackingResponse,
    RegisterProductRequest,
    RegisterSupplierRequest,
    ScriptTrackingRequest,
    StatusResponse,
    SupplierOrderResponse,
    SweepResponse,
    TopUpRequest,
    TrackingResponse,
    WalletResponse,
    WalletTransactionResponse,
    WalletTransactionsResponse,
)
from dropship.catalog.registration import RegisterProduct, RegisterSupplier
from dropship.catalog.supplier import Supplier
from dropship.fulfillment.wallet_fulfillment import can_fulfill_order, fulfill_order_with_wallet
from dropship.merchant_order.lifecycle import CancelMerchantOrder, CompleteMerchantOrder
from dropship.merchant_order.placement import PlaceMerchantOrder
from dropship.supplier_order.supplier_order import SupplierOrder
from dropship.supplier_order.tracking import refresh_pending_tracking, refresh_tracking
from dropship.suppliers import get_supplier_adapter
from dropship.suppliers.fake_adapter import FakeSupplier
from dropship.suppliers.port import TrackingStatus
from dropship.wallet.ledger import credit_wallet
from dropship.wallet.statement import get_wallet_balance, get_wallet_transactions


def _tracking_response(tracking) -> TrackingResponse | None:
    if tracking is None or not tracking.status:
        return None
    status = tracking.status.value if hasattr(tracking.status, "value") else tracking.status
    return TrackingResponse(
        status=status,
        tracking_number=tracking.tracking_number,
        carrier=tracking.carrier,
        tracking_url=tracking.tracking_url,
    )


def _supplier_order_response(so: SupplierOrder) -> SupplierOrderResponse:
    return SupplierOrderResponse(
        id=str(so.id),
        supplier_id=str(so.supplier_id),
        status=so.status,
        total_cost_cents=so.total_cost_cents or 0,
        upstream_order_id=so.upstream_order_id,
        error_message=so.error_message,
        debit_transaction_id=str(so.debit_transaction_id) if so.debit_transaction_id else None,
        refund_transaction_id=str(so.refund_transaction_id) if so.refund_transaction_id else None,
        tracking=_tracking_response(so.tracking),
    )


# ---------------------------------------------------------------------------
# Merchant Order Router
# ---------------------------------------------------------------------------
order_router = APIRouter(prefix="/merchant-orders", tags=["merchant-orders"])


@order_router.post("", status_code=201, response_model=IdResponse)
async def place_order(body: PlaceOrderRequest) -> IdResponse:
    """Record a paid customer order for a merchant."""
    command = PlaceMerchantOrder(
        merchant_id=body.merchant_id,
        customer_id=body.customer_id,
        order_number=body.order_number,
        currency=body.currency,
        items=json.dumps([item.model_dump() for item in body.items]),
        shipping_address=json.dumps(body.shipping_address.model_dump()) if body.shipping_address else None,
    )
    result = current_domain.process(command, asynchronous=False)
    return IdResponse(id=result)


@order_router.get("/{order_id}/fulfillability", response_model=CanFulfillResponse)
async def check_fulfillability(order_id: str) -> CanFulfillResponse:
    """Check whether the merchant's wallet covers the order's supplier cost."""
    result = can_fulfill_order(order_id)
    return CanFulfillResponse(
        can_fulfill=result.can_fulfill,
        required_cents=result.required_cents,
        available_cents=result.available_cents,
        shortfall_cents=result.shortfall_cents,
        reason=result.reason,
    )


@order_router.post("/{order_id}/fulfill", response_model=FulfillmentOutcomeResponse)
def fulfill_order(order_id: str) -> FulfillmentOutcomeResponse:
    """Charge the merchant's wallet and submit the order to its suppliers."""
    outcome = fulfill_order_with_wallet(order_id)
    return FulfillmentOutcomeResponse(
        success=outcome.success,
        results=[
            FulfillmentResultResponse(
                success=r.success,
                supplier_id=r.supplier_id,
                supplier_order_id=r.supplier_order_ref,
                upstream_order_id=r.upstream_order_id,
                error=r.error,
            )
            for r in outcome.results
        ],
        error=outcome.error,
    )


@order_router.get("/{order_id}/supplier-orders", response_model=list[SupplierOrderResponse])
async def list_supplier_orders(order_id: str) -> list[SupplierOrderResponse]:
    """Supplier orders created for a merchant order, across all attempts."""
    supplier_orders = (
        current_domain.repository_for(SupplierOrder)
        ._dao.query.filter(order_id=order_id)
        .order_by("created_at")
        .all()
        .items
    )
    return [_supplier_order_response(so) for so in supplier_orders]


@order_router.put("/{order_id}/complete", response_model=StatusResponse)
async def complete_order(order_id: str) -> StatusResponse:
    current_domain.process(CompleteMerchantOrder(order_id=order_id), asynchronous=False)
    return StatusResponse(status="completed")


@order_router.put("/{order_id}/cancel", response_model=StatusResponse)
async def cancel_order(order_id: str, body: CancelOrderRequest) -> StatusResponse:
    current_domain.process(CancelMerchantOrder(order_id=order_id, reason=body.reason), asynchronous=False)
    return StatusResponse(status="cancelled")


# ---------------------------------------------------------------------------
# Wallet Router
# ---------------------------------------------------------------------------
wallet_router = APIRouter(prefix="/wallets", tags=["wallets"])


@wallet_router.get("/{merchant_id}", response_model=WalletResponse)
async def get_wallet(merchant_id: str) -> WalletResponse:
    """Current balance. Opens an empty wallet on first access."""
    wallet = get_wallet_balance(merchant_id)
    return WalletResponse(
        merchant_id=str(wallet.merchant_id),
        balance_cents=wallet.balance_cents,
        pending_cents=wallet.pending_cents or 0,
        currency=wallet.currency,
    )


@wallet_router.get("/{merchant_id}/transactions", response_model=WalletTransactionsResponse)
async def list_wallet_transactions(
    merchant_id: str,
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
) -> WalletTransactionsResponse:
    """Newest-first wallet ledger."""
    page = get_wallet_transactions(merchant_id, limit=limit, offset=offset)
    return WalletTransactionsResponse(
        transactions=[
            WalletTransactionResponse(
                id=str(txn.id),
                transaction_type=txn.transaction_type,
                amount_cents=txn.amount_cents,
                balance_after_cents=txn.balance_after_cents,
                currency=txn.currency,
                description=txn.description,
                order_id=str(txn.order_id) if txn.order_id else None,
                external_reference=txn.external_reference,
                created_at=txn.created_at,
            )
            for txn in page["transactions"]
        ],
        total=page["total"],
        limit=limit,
        offset=offset,
    )


@wallet_router.post("/{merchant_id}/credits", status_code=201, response_model=LedgerEntryResponse)
async def top_up_wallet(merchant_id: str, body: TopUpRequest) -> LedgerEntryResponse:
    """Add funds to a wallet, e.g. after a successful card payment."""
    entry = credit_wallet(
        merchant_id=merchant_id,
        amount_cents=body.amount_cents,
        description=body.description,
        external_reference=body.external_reference,
    )
    return LedgerEntryResponse(
        transaction_id=entry.transaction_id,
        transaction_type=entry.transaction_type,
        amount_cents=entry.amount_cents,
        balance_after_cents=entry.balance_after_cents,
    )


# ---------------------------------------------------------------------------
# Supplier Order Router
# ---------------------------------------------------------------------------
supplier_order_router = APIRouter(prefix="/supplier-orders", tags=["supplier-orders"])


@supplier_order_router.post("/tracking/refresh", response_model=SweepResponse)
def refresh_all_tracking() -> SweepResponse:
    """Maintenance endpoint: poll tracking for every in-flight supplier order.

    Meant to be hit by an external scheduler.
    """
    report = refresh_pending_tracking()
    return SweepResponse(checked=report.checked, refreshed=report.refreshed, failed=report.failed)


@supplier_order_router.get("/{supplier_order_id}", response_model=SupplierOrderResponse)
async def get_supplier_order(supplier_order_id: str) -> SupplierOrderResponse:
    so = current_domain.repository_for(SupplierOrder).get(supplier_order_id)
    return _supplier_order_response(so)


@supplier_order_router.post("/{supplier_order_id}/tracking/refresh", response_model=RefreshTrackingResponse)
def refresh_one_tracking(supplier_order_id: str) -> RefreshTrackingResponse:
    """Poll the supplier for one order's tracking now."""
    so = current_domain.repository_for(SupplierOrder).get(supplier_order_id)
    tracking = refresh_tracking(str(so.id))
    so = current_domain.repository_for(SupplierOrder).get(supplier_order_id)
    return RefreshTrackingResponse(
        supplier_order_id=supplier_order_id,
        refreshed=tracking is not None,
        supplier_order_status=so.status,
        tracking=_tracking_response(tracking),
    )


# ---------------------------------------------------------------------------
# Catalog Routers
# ---------------------------------------------------------------------------
supplier_router = APIRouter(prefix="/suppliers", tags=["suppliers"])
product_router = APIRouter(prefix="/products", tags=["products"])


@supplier_router.post("", status_code=201, response_model=IdResponse)
async def register_supplier(body: RegisterSupplierRequest) -> IdResponse:
    command = RegisterSupplier(
        name=body.name,
        supplier_type=body.supplier_type,
        credentials=json.dumps(body.credentials),
    )
    result = current_domain.process(command, asynchronous=False)
    return IdResponse(id=result)


@supplier_router.post("/{supplier_id}/test-connection", response_model=ConnectionTestResponse)
def test_supplier_connection(supplier_id: str) -> ConnectionTestResponse:
    supplier = current_domain.repository_for(Supplier).get(supplier_id)
    result = get_supplier_adapter(supplier).test_connection()
    return ConnectionTestResponse(success=result.success, message=result.message, shop_name=result.shop_name)


def _fake_supplier(supplier_id: str) -> FakeSupplier:
    if os.environ.get("PROTEAN_ENV") == "production":
        raise HTTPException(status_code=403, detail="Supplier configuration not available in production")

    supplier = current_domain.repository_for(Supplier).get(supplier_id)
    adapter = get_supplier_adapter(supplier)
    if not isinstance(adapter, FakeSupplier):
        raise HTTPException(status_code=400, detail="Supplier configuration only available for FakeSupplier")
    return adapter


@supplier_router.post("/{supplier_id}/configure", response_model=StatusResponse)
async def configure_fake_supplier(supplier_id: str, body: ConfigureSupplierRequest) -> StatusResponse:
    """Configure a fake supplier's behavior (development/testing only)."""
    _fake_supplier(supplier_id).configure(
        should_succeed=body.should_succeed,
        failure_reason=body.failure_reason,
        cost_adjustment_cents=body.cost_adjustment_cents,
        tracking_error=body.tracking_error,
    )
    return StatusResponse(status="configured")


@supplier_router.post("/{supplier_id}/tracking", response_model=TrackingResponse)
async def script_fake_tracking(supplier_id: str, body: ScriptTrackingRequest) -> TrackingResponse:
    """Set the tracking a fake supplier reports for an order (development/testing only)."""
    try:
        status = TrackingStatus(body.status)
    except ValueError:
        raise HTTPException(status_code=400, detail=f"Unknown tracking status: {body.status}") from None

    info = _fake_supplier(supplier_id).set_tracking(
        body.upstream_order_id,
        status,
        tracking_number=body.tracking_number,
        carrier=body.carrier,
    )
    return _tracking_response(info)


@product_router.post("", status_code=201, response_model=IdResponse)
async def register_product(body: RegisterProductRequest) -> IdResponse:
    command = RegisterProduct(**body.model_dump())
    result = current_domain.process(command, asynchronous=False)
    return IdResponse(id=result)
