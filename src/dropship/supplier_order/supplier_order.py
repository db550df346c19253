"""SupplierOrder aggregate (CQRS): one purchase request to one supplier.

A merchant order whose items come from N suppliers produces N supplier
orders. Each one is persisted in PENDING before the supplier is contacted,
so a crash mid-submission always leaves a visible row behind.

State Machine:
    PENDING → SUBMITTED → SHIPPED → DELIVERED
    PENDING → FAILED                (supplier rejected the request)
    {SUBMITTED, SHIPPED} → FAILED   (carrier exception)
    SUBMITTED → DELIVERED           (tracking can skip straight to delivered)

DELIVERED and FAILED are terminal: tracking updates against them are
ignored. Tracking never moves an order backwards.
"""

import json
from datetime import UTC, datetime
from enum import Enum

from protean.exceptions import ValidationError
from protean.fields import DateTime, HasMany, Identifier, Integer, String, ValueObject

from dropship.domain import dropship
from dropship.supplier_order.events import (
    SupplierOrderDelivered,
    SupplierOrderFailed,
    SupplierOrderOpened,
    SupplierOrderRefundLinked,
    SupplierOrderRejected,
    SupplierOrderShipped,
    SupplierOrderSubmitted,
    SupplierTrackingUpdated,
)
from dropship.suppliers.port import TrackingStatus


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------
class SupplierOrderStatus(Enum):
    PENDING = "pending"
    SUBMITTED = "submitted"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    FAILED = "failed"


_VALID_TRANSITIONS = {
    SupplierOrderStatus.PENDING: {SupplierOrderStatus.SUBMITTED, SupplierOrderStatus.FAILED},
    SupplierOrderStatus.SUBMITTED: {
        SupplierOrderStatus.SHIPPED,
        SupplierOrderStatus.DELIVERED,
        SupplierOrderStatus.FAILED,
    },
    SupplierOrderStatus.SHIPPED: {SupplierOrderStatus.DELIVERED, SupplierOrderStatus.FAILED},
    SupplierOrderStatus.DELIVERED: set(),  # terminal
    SupplierOrderStatus.FAILED: set(),  # terminal
}

TERMINAL_STATUSES = {SupplierOrderStatus.DELIVERED, SupplierOrderStatus.FAILED}

# Orders the tracking sweep polls.
TRACKABLE_STATUSES = {SupplierOrderStatus.SUBMITTED, SupplierOrderStatus.SHIPPED}

TRACKING_TO_STATUS = {
    TrackingStatus.PENDING: SupplierOrderStatus.SUBMITTED,
    TrackingStatus.IN_TRANSIT: SupplierOrderStatus.SHIPPED,
    TrackingStatus.OUT_FOR_DELIVERY: SupplierOrderStatus.SHIPPED,
    TrackingStatus.DELIVERED: SupplierOrderStatus.DELIVERED,
    TrackingStatus.EXCEPTION: SupplierOrderStatus.FAILED,
}


# ---------------------------------------------------------------------------
# Value Objects
# ---------------------------------------------------------------------------
@dropship.value_object(part_of="SupplierOrder")
class TrackingSnapshot:
    """Most recent tracking information reported by the supplier."""

    status = String(max_length=50)
    tracking_number = String(max_length=255)
    carrier = String(max_length=100)
    tracking_url = String(max_length=1000)
    last_update = DateTime()


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------
@dropship.entity(part_of="SupplierOrder")
class SupplierOrderItem:
    """A merchant order line as purchased from the supplier."""

    product_id = Identifier(required=True)
    supplier_product_id = String(max_length=255)
    variant_id = String(max_length=255)
    sku = String(max_length=100)
    quantity = Integer(required=True, min_value=1)
    unit_cost_cents = Integer(required=True, min_value=0)


# ---------------------------------------------------------------------------
# Aggregate Root (CQRS)
# ---------------------------------------------------------------------------
@dropship.aggregate
class SupplierOrder:
    order_id = Identifier(required=True)
    supplier_id = Identifier(required=True)
    merchant_id = Identifier(required=True)
    status = String(
        max_length=20,
        choices=SupplierOrderStatus,
        default=SupplierOrderStatus.PENDING.value,
    )
    items = HasMany(SupplierOrderItem)
    quoted_cost_cents = Integer(default=0)
    total_cost_cents = Integer(default=0)
    upstream_order_id = String(max_length=255)
    tracking = ValueObject(TrackingSnapshot)
    error_message = String(max_length=1000)
    debit_transaction_id = Identifier()
    refund_transaction_id = Identifier()
    submitted_at = DateTime()
    shipped_at = DateTime()
    delivered_at = DateTime()
    failed_at = DateTime()
    created_at = DateTime()
    updated_at = DateTime()

    # -------------------------------------------------------------------
    # Factory method
    # -------------------------------------------------------------------
    @classmethod
    def open(
        cls,
        order_id: str,
        supplier_id: str,
        merchant_id: str,
        items_data: list[dict],
        debit_transaction_id: str | None = None,
    ):
        """Record a purchase request in PENDING, before the supplier is called."""
        if not items_data:
            raise ValidationError({"items": ["A supplier order needs at least one item"]})

        now = datetime.now(UTC)
        quoted = sum(item["unit_cost_cents"] * item["quantity"] for item in items_data)
        so = cls(
            order_id=order_id,
            supplier_id=supplier_id,
            merchant_id=merchant_id,
            status=SupplierOrderStatus.PENDING.value,
            quoted_cost_cents=quoted,
            total_cost_cents=quoted,
            debit_transaction_id=debit_transaction_id,
            created_at=now,
            updated_at=now,
        )
        for item_data in items_data:
            so.add_items(SupplierOrderItem(**item_data))
        so.raise_(
            SupplierOrderOpened(
                supplier_order_id=str(so.id),
                order_id=order_id,
                supplier_id=supplier_id,
                merchant_id=merchant_id,
                items=json.dumps(items_data),
                quoted_cost_cents=quoted,
                opened_at=now,
            )
        )
        return so

    # -------------------------------------------------------------------
    # State transition helpers
    # -------------------------------------------------------------------
    @property
    def is_terminal(self) -> bool:
        return SupplierOrderStatus(self.status) in TERMINAL_STATUSES

    def _assert_can_transition(self, target_status: SupplierOrderStatus) -> None:
        current = SupplierOrderStatus(self.status)
        if target_status not in _VALID_TRANSITIONS.get(current, set()):
            raise ValidationError({"status": [f"Cannot transition from {current.value} to {target_status.value}"]})

    def product_ids(self) -> list[str]:
        return [str(item.product_id) for item in (self.items or [])]

    # -------------------------------------------------------------------
    # Submission outcome
    # -------------------------------------------------------------------
    def record_submission(self, upstream_order_id: str, reported_cost_cents: int | None = None) -> None:
        """The supplier accepted the request. Its reported cost replaces the quote."""
        self._assert_can_transition(SupplierOrderStatus.SUBMITTED)
        if not upstream_order_id:
            raise ValidationError({"upstream_order_id": ["Upstream order id is required"]})

        now = datetime.now(UTC)
        self.status = SupplierOrderStatus.SUBMITTED.value
        self.upstream_order_id = upstream_order_id
        if reported_cost_cents is not None:
            self.total_cost_cents = reported_cost_cents
        self.submitted_at = now
        self.updated_at = now
        self.raise_(
            SupplierOrderSubmitted(
                supplier_order_id=str(self.id),
                order_id=str(self.order_id),
                supplier_id=str(self.supplier_id),
                upstream_order_id=upstream_order_id,
                total_cost_cents=self.total_cost_cents,
                submitted_at=now,
            )
        )

    def record_rejection(self, error_message: str) -> None:
        """The supplier refused the request or could not be reached."""
        if SupplierOrderStatus(self.status) != SupplierOrderStatus.PENDING:
            raise ValidationError({"status": ["Only a pending supplier order can be rejected"]})

        now = datetime.now(UTC)
        self.status = SupplierOrderStatus.FAILED.value
        self.error_message = error_message
        self.failed_at = now
        self.updated_at = now
        self.raise_(
            SupplierOrderRejected(
                supplier_order_id=str(self.id),
                order_id=str(self.order_id),
                supplier_id=str(self.supplier_id),
                reason=error_message,
                rejected_at=now,
            )
        )

    # -------------------------------------------------------------------
    # Tracking
    # -------------------------------------------------------------------
    def apply_tracking(
        self,
        tracking_status: str,
        tracking_number: str | None = None,
        carrier: str | None = None,
        tracking_url: str | None = None,
        last_update: datetime | None = None,
    ) -> bool:
        """Record a tracking poll result. Returns True if the status moved.

        Terminal orders ignore updates entirely. A status that would move
        the order backwards (e.g. shipped → submitted) keeps the current
        status but still records the snapshot.
        """
        if self.is_terminal:
            return False
        if SupplierOrderStatus(self.status) == SupplierOrderStatus.PENDING:
            raise ValidationError({"status": ["Cannot track a supplier order that was never submitted"]})

        reported = TrackingStatus(tracking_status)
        now = datetime.now(UTC)
        self.tracking = TrackingSnapshot(
            status=reported.value,
            tracking_number=tracking_number,
            carrier=carrier,
            tracking_url=tracking_url,
            last_update=last_update or now,
        )
        self.updated_at = now
        self.raise_(
            SupplierTrackingUpdated(
                supplier_order_id=str(self.id),
                order_id=str(self.order_id),
                tracking_status=reported.value,
                tracking_number=tracking_number,
                carrier=carrier,
                tracking_url=tracking_url,
                updated_at=now,
            )
        )

        target = TRACKING_TO_STATUS[reported]
        current = SupplierOrderStatus(self.status)
        if target == current or target not in _VALID_TRANSITIONS[current]:
            return False

        self.status = target.value
        if target == SupplierOrderStatus.SHIPPED:
            self.shipped_at = now
            self.raise_(
                SupplierOrderShipped(
                    supplier_order_id=str(self.id),
                    order_id=str(self.order_id),
                    tracking_number=tracking_number,
                    carrier=carrier,
                    shipped_at=now,
                )
            )
        elif target == SupplierOrderStatus.DELIVERED:
            self.delivered_at = now
            self.raise_(
                SupplierOrderDelivered(
                    supplier_order_id=str(self.id),
                    order_id=str(self.order_id),
                    delivered_at=now,
                )
            )
        elif target == SupplierOrderStatus.FAILED:
            self.failed_at = now
            self.error_message = "Carrier reported a shipment exception"
            self.raise_(
                SupplierOrderFailed(
                    supplier_order_id=str(self.id),
                    order_id=str(self.order_id),
                    reason=self.error_message,
                    failed_at=now,
                )
            )
        return True

    # -------------------------------------------------------------------
    # Rollback
    # -------------------------------------------------------------------
    def link_refund(self, refund_transaction_id: str) -> None:
        """Record the wallet refund that reversed the charge covering this order."""
        if self.refund_transaction_id:
            raise ValidationError({"refund_transaction_id": ["A refund is already linked to this supplier order"]})

        now = datetime.now(UTC)
        self.refund_transaction_id = refund_transaction_id
        self.updated_at = now
        self.raise_(
            SupplierOrderRefundLinked(
                supplier_order_id=str(self.id),
                order_id=str(self.order_id),
                refund_transaction_id=refund_transaction_id,
                linked_at=now,
            )
        )
