"""Merchant order domain events."""

from protean.fields import DateTime, Identifier, Integer, String, Text

from dropship.domain import dropship


@dropship.event(part_of="MerchantOrder")
class MerchantOrderPlaced:
    """A paid customer order arrived for a merchant."""

    __version__ = 1

    order_id = Identifier(required=True)
    merchant_id = Identifier(required=True)
    order_number = String(max_length=50)
    items = Text(required=True)  # JSON list of item dicts
    total_price_cents = Integer(required=True)
    total_cost_cents = Integer(required=True)
    placed_at = DateTime(required=True)


@dropship.event(part_of="MerchantOrder")
class MerchantOrderProcessing:
    """The supplier cost was charged and every supplier accepted its share."""

    __version__ = 1

    order_id = Identifier(required=True)
    merchant_id = Identifier(required=True)
    charged_cents = Integer(required=True)
    debit_transaction_id = Identifier()
    supplier_order_count = Integer(required=True)
    processing_at = DateTime(required=True)


@dropship.event(part_of="MerchantOrder")
class OrderNoteAdded:
    """An operational note was attached to the order."""

    __version__ = 1

    order_id = Identifier(required=True)
    message = String(required=True, max_length=1000)
    added_at = DateTime(required=True)


@dropship.event(part_of="MerchantOrder")
class OrderItemsFulfillmentUpdated:
    """Supplier tracking changed the fulfillment flag of some line items."""

    __version__ = 1

    order_id = Identifier(required=True)
    product_ids = Text(required=True)  # JSON list
    item_fulfillment_status = String(required=True, max_length=20)
    fulfillment_status = String(required=True, max_length=20)
    tracking_number = String(max_length=255)
    updated_at = DateTime(required=True)


@dropship.event(part_of="MerchantOrder")
class MerchantOrderCompleted:
    """The merchant closed the order."""

    __version__ = 1

    order_id = Identifier(required=True)
    completed_at = DateTime(required=True)


@dropship.event(part_of="MerchantOrder")
class MerchantOrderCancelled:
    """The merchant cancelled the order."""

    __version__ = 1

    order_id = Identifier(required=True)
    reason = String(required=True, max_length=500)
    previous_status = String(required=True, max_length=20)
    cancelled_at = DateTime(required=True)
