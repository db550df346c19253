"""Wallet-backed order fulfillment, one attempt at a time.

    can_fulfill_order         read-only balance check
    fulfill_order_with_wallet debit → route → submit per supplier → settle

The merchant pays the whole supplier cost up front. If every supplier
accepts its share the order moves to PROCESSING; if any supplier fails,
the whole charge is refunded and the order stays PENDING with a note. The
net wallet movement of an attempt is therefore exactly ``-total_cost`` or
exactly zero.

Each step commits on its own, so an interrupted attempt leaves a readable
trail: a debit row and PENDING supplier orders with no order update.
"""

from dataclasses import dataclass, field

import structlog
from protean.utils.globals import current_domain

from dropship.fulfillment.routing import build_shipping_address, group_items_by_supplier
from dropship.merchant_order.order import MerchantOrder, OrderStatus
from dropship.merchant_order.progress import AddOrderNote, MarkOrderProcessing
from dropship.shared.money import format_cents
from dropship.supplier_order.submission import (
    FulfillmentResult,
    LinkSupplierOrderRefund,
    submit_supplier_order,
)
from dropship.wallet.ledger import debit_wallet, refund_wallet
from dropship.wallet.statement import get_wallet_balance

logger = structlog.get_logger(__name__)

NO_SUPPLIER_COST = "Order has no supplier cost"
NO_ROUTABLE_ITEMS = "No line items could be matched to a supplier"


def _not_pending(status: str) -> str:
    return f"Order is {status}; only pending orders can be fulfilled"


@dataclass(frozen=True)
class CanFulfillResult:
    can_fulfill: bool
    required_cents: int
    available_cents: int
    shortfall_cents: int = 0
    reason: str | None = None


@dataclass(frozen=True)
class FulfillmentOutcome:
    success: bool
    results: list[FulfillmentResult] = field(default_factory=list)
    error: str | None = None
    debit_transaction_id: str | None = None
    refund_transaction_id: str | None = None


def can_fulfill_order(order_id: str) -> CanFulfillResult:
    """Check whether the order can be fulfilled from the merchant's wallet.

    Applies the same guards as ``fulfill_order_with_wallet`` before comparing
    the balance with the supplier cost.
    """
    order = current_domain.repository_for(MerchantOrder).get(order_id)
    required = order.total_cost_cents or 0
    available = get_wallet_balance(str(order.merchant_id)).balance_cents

    if order.status != OrderStatus.PENDING.value:
        return CanFulfillResult(
            can_fulfill=False,
            required_cents=required,
            available_cents=available,
            reason=_not_pending(order.status),
        )
    if required <= 0:
        return CanFulfillResult(
            can_fulfill=False,
            required_cents=required,
            available_cents=available,
            reason=NO_SUPPLIER_COST,
        )
    if available < required:
        shortfall = required - available
        return CanFulfillResult(
            can_fulfill=False,
            required_cents=required,
            available_cents=available,
            shortfall_cents=shortfall,
            reason=(
                f"Insufficient balance. Available: {format_cents(available)}, "
                f"Required: {format_cents(required)}, Shortfall: {format_cents(shortfall)}"
            ),
        )
    return CanFulfillResult(can_fulfill=True, required_cents=required, available_cents=available)


def _note(order_id: str, message: str) -> None:
    current_domain.process(AddOrderNote(order_id=order_id, message=message[:1000]), asynchronous=False)


def _refund_attempt(order: MerchantOrder, total: int, results: list[FulfillmentResult], reason: str):
    """Give back the whole charge and link the refund to every supplier order opened."""
    refund = refund_wallet(
        merchant_id=str(order.merchant_id),
        order_id=str(order.id),
        amount_cents=total,
        description=f"Refund for order #{order.display_number}: {reason}",
    )
    for result in results:
        if result.supplier_order_ref:
            current_domain.process(
                LinkSupplierOrderRefund(
                    supplier_order_id=result.supplier_order_ref,
                    refund_transaction_id=refund.transaction_id,
                ),
                asynchronous=False,
            )
    return refund


def fulfill_order_with_wallet(order_id: str) -> FulfillmentOutcome:
    """Charge the wallet and submit the order to every supplier involved."""
    order = current_domain.repository_for(MerchantOrder).get(order_id)
    merchant_id = str(order.merchant_id)
    total = order.total_cost_cents or 0
    log = logger.bind(order_id=order_id, merchant_id=merchant_id)

    if total <= 0:
        return FulfillmentOutcome(success=False, error=NO_SUPPLIER_COST)
    if order.status != OrderStatus.PENDING.value:
        return FulfillmentOutcome(success=False, error=_not_pending(order.status))

    debit = debit_wallet(
        merchant_id=merchant_id,
        order_id=order_id,
        amount_cents=total,
        description=f"Fulfillment for order #{order.display_number}",
    )
    if not debit.success:
        available = get_wallet_balance(merchant_id).balance_cents
        _note(
            order_id,
            f"Awaiting wallet top-up. Required: {format_cents(total)}, available: {format_cents(available)}",
        )
        log.info("Fulfillment deferred, wallet too low", required_cents=total, available_cents=available)
        return FulfillmentOutcome(success=False, error=debit.error)

    # From here on the merchant has paid; every exit either settles or refunds.
    results: list[FulfillmentResult] = []
    try:
        groups = group_items_by_supplier(order)
        if groups:
            shipping_address = build_shipping_address(order)
            for supplier_id, lines in groups.items():
                results.append(submit_supplier_order(order, supplier_id, lines, shipping_address, debit.transaction_id))

            if all(result.success for result in results):
                current_domain.process(
                    MarkOrderProcessing(
                        order_id=order_id,
                        charged_cents=total,
                        debit_transaction_id=debit.transaction_id,
                        supplier_order_count=len(results),
                    ),
                    asynchronous=False,
                )
                log.info("Order fulfilled from wallet", charged_cents=total, supplier_orders=len(results))
                return FulfillmentOutcome(success=True, results=results, debit_transaction_id=debit.transaction_id)
    except Exception:
        log.exception("Fulfillment interrupted after the wallet was charged, refunding", charged_cents=total)
        _refund_attempt(order, total, results, "fulfillment interrupted")
        raise

    if not groups:
        refund = _refund_attempt(order, total, results, "no supplier to fulfill from")
        _note(order_id, f"Fulfillment failed: {NO_ROUTABLE_ITEMS}. Wallet refunded {format_cents(total)}")
        log.warning("Fulfillment failed, nothing routable")
        return FulfillmentOutcome(
            success=False,
            error=NO_ROUTABLE_ITEMS,
            debit_transaction_id=debit.transaction_id,
            refund_transaction_id=refund.transaction_id,
        )

    # Any failure refunds the full charge, including the share of suppliers that accepted.
    refund = _refund_attempt(order, total, results, "failed fulfillment")
    failures = [result for result in results if not result.success]
    errors = "; ".join(f"{result.supplier_id}: {result.error}" for result in failures)
    error = f"{len(failures)} of {len(results)} supplier order(s) failed: {errors}"
    _note(order_id, f"Fulfillment failed, wallet refunded {format_cents(total)}. {error}")
    log.warning("Fulfillment failed, wallet refunded", refunded_cents=total, failed=len(failures), total=len(results))
    return FulfillmentOutcome(
        success=False,
        results=results,
        error=error,
        debit_transaction_id=debit.transaction_id,
        refund_transaction_id=refund.transaction_id,
    )
