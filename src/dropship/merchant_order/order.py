"""MerchantOrder aggregate (CQRS): a customer order as the merchant sees it.

Created when a paid order arrives (checkout or marketplace webhook). After
that, fulfillment and tracking move it forward and the merchant may
complete or cancel it.

State Machine:
    PENDING → PROCESSING → COMPLETED
    {PENDING, PROCESSING} → CANCELLED

Fulfillment progress is tracked separately, per line item, and rolled up
into ``fulfillment_status`` (unfulfilled / partial / fulfilled).
"""

import json
from datetime import UTC, datetime
from enum import Enum

from protean.exceptions import ValidationError
from protean.fields import DateTime, HasMany, Identifier, Integer, String, ValueObject

from dropship.domain import dropship
from dropship.merchant_order.events import (
    MerchantOrderCancelled,
    MerchantOrderCompleted,
    MerchantOrderPlaced,
    MerchantOrderProcessing,
    OrderItemsFulfillmentUpdated,
    OrderNoteAdded,
)
from dropship.shared.money import format_cents


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------
class OrderStatus(Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class FulfillmentStatus(Enum):
    UNFULFILLED = "unfulfilled"
    PARTIAL = "partial"
    FULFILLED = "fulfilled"


class ItemFulfillmentStatus(Enum):
    UNFULFILLED = "unfulfilled"
    FULFILLED = "fulfilled"


_VALID_TRANSITIONS = {
    OrderStatus.PENDING: {OrderStatus.PROCESSING, OrderStatus.CANCELLED},
    OrderStatus.PROCESSING: {OrderStatus.COMPLETED, OrderStatus.CANCELLED},
    OrderStatus.COMPLETED: set(),  # terminal
    OrderStatus.CANCELLED: set(),  # terminal
}


# ---------------------------------------------------------------------------
# Value Objects
# ---------------------------------------------------------------------------
@dropship.value_object(part_of="MerchantOrder")
class OrderShippingAddress:
    """Where the customer wants the goods delivered."""

    first_name = String(max_length=100)
    last_name = String(max_length=100)
    address1 = String(max_length=255)
    address2 = String(max_length=255)
    city = String(max_length=100)
    province = String(max_length=100)
    country = String(max_length=100)
    zip = String(max_length=20)
    phone = String(max_length=50)
    email = String(max_length=255)


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------
@dropship.entity(part_of="MerchantOrder")
class OrderLineItem:
    product_id = Identifier(required=True)
    title = String(max_length=255)
    quantity = Integer(required=True, min_value=1)
    unit_price_cents = Integer(required=True, min_value=0)
    unit_cost_cents = Integer(required=True, min_value=0)
    fulfillment_status = String(
        max_length=20,
        choices=ItemFulfillmentStatus,
        default=ItemFulfillmentStatus.UNFULFILLED.value,
    )


@dropship.entity(part_of="MerchantOrder")
class TimelineEntry:
    """Append-only history line shown to the merchant."""

    status = String(required=True, max_length=20)
    message = String(required=True, max_length=1000)
    created_at = DateTime(required=True)


# ---------------------------------------------------------------------------
# Aggregate Root (CQRS)
# ---------------------------------------------------------------------------
@dropship.aggregate
class MerchantOrder:
    merchant_id = Identifier(required=True)
    customer_id = Identifier()
    order_number = String(max_length=50)
    currency = String(max_length=3, default="USD")
    status = String(
        max_length=20,
        choices=OrderStatus,
        default=OrderStatus.PENDING.value,
    )
    fulfillment_status = String(
        max_length=20,
        choices=FulfillmentStatus,
        default=FulfillmentStatus.UNFULFILLED.value,
    )
    items = HasMany(OrderLineItem)
    timeline = HasMany(TimelineEntry)
    total_price_cents = Integer(default=0)
    total_cost_cents = Integer(default=0)
    shipping_address = ValueObject(OrderShippingAddress)
    internal_note = String(max_length=1000)
    tracking_number = String(max_length=255)
    tracking_url = String(max_length=1000)
    cancellation_reason = String(max_length=500)
    created_at = DateTime()
    updated_at = DateTime()

    # -------------------------------------------------------------------
    # Factory method
    # -------------------------------------------------------------------
    @classmethod
    def place(
        cls,
        merchant_id: str,
        items_data: list[dict],
        shipping_address: dict | None = None,
        customer_id: str | None = None,
        order_number: str | None = None,
        currency: str = "USD",
    ):
        """Record a paid customer order for a merchant."""
        if not items_data:
            raise ValidationError({"items": ["An order needs at least one line item"]})

        now = datetime.now(UTC)
        total_price = sum(item["unit_price_cents"] * item["quantity"] for item in items_data)
        total_cost = sum(item["unit_cost_cents"] * item["quantity"] for item in items_data)
        order = cls(
            merchant_id=merchant_id,
            customer_id=customer_id,
            order_number=order_number,
            currency=currency,
            status=OrderStatus.PENDING.value,
            fulfillment_status=FulfillmentStatus.UNFULFILLED.value,
            total_price_cents=total_price,
            total_cost_cents=total_cost,
            shipping_address=OrderShippingAddress(**shipping_address) if shipping_address else None,
            created_at=now,
            updated_at=now,
        )
        for item_data in items_data:
            order.add_items(OrderLineItem(**item_data))
        order._add_timeline_entry("Order placed")
        order.raise_(
            MerchantOrderPlaced(
                order_id=str(order.id),
                merchant_id=merchant_id,
                order_number=order_number,
                items=json.dumps(items_data),
                total_price_cents=total_price,
                total_cost_cents=total_cost,
                placed_at=now,
            )
        )
        return order

    # -------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------
    def _assert_can_transition(self, target_status: OrderStatus) -> None:
        current = OrderStatus(self.status)
        if target_status not in _VALID_TRANSITIONS.get(current, set()):
            raise ValidationError({"status": [f"Cannot transition from {current.value} to {target_status.value}"]})

    def _add_timeline_entry(self, message: str) -> None:
        now = datetime.now(UTC)
        self.add_timeline(TimelineEntry(status=self.status, message=message, created_at=now))
        self.updated_at = now

    @property
    def display_number(self) -> str:
        return self.order_number or str(self.id)

    def _rollup_fulfillment_status(self) -> FulfillmentStatus:
        items = self.items or []
        fulfilled = sum(1 for i in items if i.fulfillment_status == ItemFulfillmentStatus.FULFILLED.value)
        if items and fulfilled == len(items):
            return FulfillmentStatus.FULFILLED
        if fulfilled:
            return FulfillmentStatus.PARTIAL
        return FulfillmentStatus.UNFULFILLED

    # -------------------------------------------------------------------
    # Fulfillment
    # -------------------------------------------------------------------
    def add_note(self, message: str) -> None:
        """Attach an operational note, e.g. why fulfillment did not go ahead."""
        self.internal_note = message
        self._add_timeline_entry(message)
        self.raise_(
            OrderNoteAdded(
                order_id=str(self.id),
                message=message,
                added_at=self.updated_at,
            )
        )

    def mark_processing(self, charged_cents: int, debit_transaction_id: str | None, supplier_order_count: int) -> None:
        """Every supplier accepted its share and the wallet was charged."""
        self._assert_can_transition(OrderStatus.PROCESSING)
        self.status = OrderStatus.PROCESSING.value
        self.fulfillment_status = FulfillmentStatus.PARTIAL.value
        self.internal_note = None
        self._add_timeline_entry(
            f"Fulfillment submitted to {supplier_order_count} supplier(s). "
            f"Wallet charged {format_cents(charged_cents)}"
        )
        self.raise_(
            MerchantOrderProcessing(
                order_id=str(self.id),
                merchant_id=str(self.merchant_id),
                charged_cents=charged_cents,
                debit_transaction_id=debit_transaction_id,
                supplier_order_count=supplier_order_count,
                processing_at=self.updated_at,
            )
        )

    def update_item_fulfillment(
        self,
        product_ids: list[str],
        item_status: str,
        tracking_number: str | None = None,
        tracking_url: str | None = None,
    ) -> bool:
        """Set the fulfillment flag on the items a supplier order covers.

        Returns True if any item flag changed. The tracking number and URL
        are copied to the order whenever one is supplied.
        """
        target = ItemFulfillmentStatus(item_status)
        wanted = set(product_ids)
        changed = [
            item
            for item in (self.items or [])
            if str(item.product_id) in wanted and item.fulfillment_status != target.value
        ]
        for item in changed:
            item.fulfillment_status = target.value

        if tracking_number:
            self.tracking_number = tracking_number
            self.tracking_url = tracking_url
            self.updated_at = datetime.now(UTC)

        if not changed:
            return False

        rollup = self._rollup_fulfillment_status()
        self.fulfillment_status = rollup.value
        self.updated_at = datetime.now(UTC)
        self.raise_(
            OrderItemsFulfillmentUpdated(
                order_id=str(self.id),
                product_ids=json.dumps(sorted({str(item.product_id) for item in changed})),
                item_fulfillment_status=target.value,
                fulfillment_status=rollup.value,
                tracking_number=tracking_number,
                updated_at=self.updated_at,
            )
        )
        return True

    # -------------------------------------------------------------------
    # Merchant actions
    # -------------------------------------------------------------------
    def complete(self) -> None:
        self._assert_can_transition(OrderStatus.COMPLETED)
        self.status = OrderStatus.COMPLETED.value
        self._add_timeline_entry("Order completed")
        self.raise_(MerchantOrderCompleted(order_id=str(self.id), completed_at=self.updated_at))

    def cancel(self, reason: str) -> None:
        previous = self.status
        self._assert_can_transition(OrderStatus.CANCELLED)
        self.status = OrderStatus.CANCELLED.value
        self.cancellation_reason = reason
        self._add_timeline_entry(f"Order cancelled: {reason}")
        self.raise_(
            MerchantOrderCancelled(
                order_id=str(self.id),
                reason=reason,
                previous_status=previous,
                cancelled_at=self.updated_at,
            )
        )
