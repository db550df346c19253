"""Supplier order submission: commands plus the submit service.

Submitting is three separate units of work so every step leaves a trail:

1. the supplier order is recorded in PENDING,
2. the supplier is called (outside any unit of work),
3. the outcome is recorded as SUBMITTED or FAILED.

Adapter failures, and answers that cannot be recorded, never escape as
exceptions; they come back as a failed ``FulfillmentResult`` with the
error message.
"""

import json
from dataclasses import dataclass

import structlog
from protean import handle
from protean.fields import Identifier, Integer, String, Text
from protean.utils.globals import current_domain

from dropship.domain import dropship
from dropship.merchant_order.order import MerchantOrder
from dropship.supplier_order.supplier_order import SupplierOrder
from dropship.suppliers import resolve_adapter
from dropship.suppliers.port import OrderLine, ShippingAddress, SupplierOrderRequest

logger = structlog.get_logger(__name__)

SUPPLIER_UNAVAILABLE = "Supplier not found or no credentials"
MISSING_UPSTREAM_ID = "Supplier response carried no order id"


@dataclass(frozen=True)
class FulfillmentResult:
    """Outcome of submitting one supplier group."""

    success: bool
    supplier_id: str
    supplier_order_ref: str | None = None  # our SupplierOrder id
    upstream_order_id: str | None = None  # the supplier's own id
    error: str | None = None


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------
@dropship.command(part_of="SupplierOrder")
class OpenSupplierOrder:
    """Record a purchase request to a supplier before contacting it."""

    order_id = Identifier(required=True)
    supplier_id = Identifier(required=True)
    merchant_id = Identifier(required=True)
    items = Text(required=True)  # JSON list of item dicts
    debit_transaction_id = Identifier()


@dropship.command(part_of="SupplierOrder")
class RecordSupplierAcceptance:
    supplier_order_id = Identifier(required=True)
    upstream_order_id = String(required=True, max_length=255)
    reported_cost_cents = Integer()


@dropship.command(part_of="SupplierOrder")
class RecordSupplierRejection:
    supplier_order_id = Identifier(required=True)
    error_message = String(required=True, max_length=1000)


@dropship.command(part_of="SupplierOrder")
class LinkSupplierOrderRefund:
    """Attach the wallet refund that reversed this order's charge."""

    supplier_order_id = Identifier(required=True)
    refund_transaction_id = Identifier(required=True)


# ---------------------------------------------------------------------------
# Command Handler
# ---------------------------------------------------------------------------
@dropship.command_handler(part_of=SupplierOrder)
class SupplierOrderSubmissionHandler:
    @handle(OpenSupplierOrder)
    def open_supplier_order(self, command):
        items_data = json.loads(command.items) if isinstance(command.items, str) else command.items
        so = SupplierOrder.open(
            order_id=command.order_id,
            supplier_id=command.supplier_id,
            merchant_id=command.merchant_id,
            items_data=items_data,
            debit_transaction_id=command.debit_transaction_id,
        )
        current_domain.repository_for(SupplierOrder).add(so)
        return str(so.id)

    @handle(RecordSupplierAcceptance)
    def record_acceptance(self, command):
        repo = current_domain.repository_for(SupplierOrder)
        so = repo.get(command.supplier_order_id)
        so.record_submission(command.upstream_order_id, command.reported_cost_cents)
        repo.add(so)

    @handle(RecordSupplierRejection)
    def record_rejection(self, command):
        repo = current_domain.repository_for(SupplierOrder)
        so = repo.get(command.supplier_order_id)
        so.record_rejection(command.error_message)
        repo.add(so)

    @handle(LinkSupplierOrderRefund)
    def link_refund(self, command):
        repo = current_domain.repository_for(SupplierOrder)
        so = repo.get(command.supplier_order_id)
        so.link_refund(command.refund_transaction_id)
        repo.add(so)


# ---------------------------------------------------------------------------
# Submit service
# ---------------------------------------------------------------------------
def _reject(supplier_order_id: str, supplier_id: str, error: str) -> FulfillmentResult:
    current_domain.process(
        RecordSupplierRejection(supplier_order_id=supplier_order_id, error_message=error[:1000]),
        asynchronous=False,
    )
    return FulfillmentResult(
        success=False,
        supplier_id=supplier_id,
        supplier_order_ref=supplier_order_id,
        error=error,
    )


def submit_supplier_order(
    order: MerchantOrder,
    supplier_id: str,
    lines: list[dict],
    shipping_address: ShippingAddress,
    debit_transaction_id: str | None = None,
) -> FulfillmentResult:
    """Send one purchase request to one supplier and record its answer.

    ``lines`` are ``SupplierOrderItem`` dicts: product_id,
    supplier_product_id, variant_id, sku, quantity, unit_cost_cents.
    """
    supplier_order_id = current_domain.process(
        OpenSupplierOrder(
            order_id=str(order.id),
            supplier_id=supplier_id,
            merchant_id=str(order.merchant_id),
            items=json.dumps(lines),
            debit_transaction_id=debit_transaction_id,
        ),
        asynchronous=False,
    )

    adapter = resolve_adapter(supplier_id)
    if adapter is None:
        logger.warning("Cannot submit supplier order", supplier_id=supplier_id, order_id=str(order.id))
        return _reject(supplier_order_id, supplier_id, SUPPLIER_UNAVAILABLE)

    request = SupplierOrderRequest(
        items=[
            OrderLine(
                supplier_product_id=line.get("supplier_product_id") or line["product_id"],
                quantity=line["quantity"],
                unit_cost_cents=line["unit_cost_cents"],
                variant_id=line.get("variant_id"),
                sku=line.get("sku"),
            )
            for line in lines
        ],
        shipping_address=shipping_address,
        note=f"Merchant Order #{order.display_number}",
    )

    try:
        response = adapter.create_order(request)
    except Exception as exc:  # any adapter failure is a supplier rejection
        error = str(exc) or exc.__class__.__name__
        logger.warning(
            "Supplier rejected order",
            supplier_id=supplier_id,
            supplier_order_id=supplier_order_id,
            order_id=str(order.id),
            error=error,
        )
        return _reject(supplier_order_id, supplier_id, error)

    if response is None or not response.supplier_order_id:
        logger.warning(
            "Supplier accepted order without an order id",
            supplier_id=supplier_id,
            supplier_order_id=supplier_order_id,
            order_id=str(order.id),
        )
        return _reject(supplier_order_id, supplier_id, MISSING_UPSTREAM_ID)

    try:
        current_domain.process(
            RecordSupplierAcceptance(
                supplier_order_id=supplier_order_id,
                upstream_order_id=response.supplier_order_id,
                reported_cost_cents=response.total_cost_cents,
            ),
            asynchronous=False,
        )
    except Exception as exc:
        error = f"Could not record supplier response: {exc}"
        logger.exception(
            "Failed to record supplier acceptance",
            supplier_id=supplier_id,
            supplier_order_id=supplier_order_id,
            upstream_order_id=response.supplier_order_id,
        )
        return _reject(supplier_order_id, supplier_id, error)

    logger.info(
        "Supplier order submitted",
        supplier_id=supplier_id,
        supplier_order_id=supplier_order_id,
        upstream_order_id=response.supplier_order_id,
        order_id=str(order.id),
    )
    return FulfillmentResult(
        success=True,
        supplier_id=supplier_id,
        supplier_order_ref=supplier_order_id,
        upstream_order_id=response.supplier_order_id,
    )
