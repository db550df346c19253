"""Supplier order domain events."""

from protean.fields import DateTime, Identifier, Integer, String, Text

from dropship.domain import dropship


@dropship.event(part_of="SupplierOrder")
class SupplierOrderOpened:
    """A purchase request to a supplier was recorded, before any upstream call."""

    __version__ = 1

    supplier_order_id = Identifier(required=True)
    order_id = Identifier(required=True)
    supplier_id = Identifier(required=True)
    merchant_id = Identifier(required=True)
    items = Text(required=True)  # JSON list of item dicts
    quoted_cost_cents = Integer(required=True)
    opened_at = DateTime(required=True)


@dropship.event(part_of="SupplierOrder")
class SupplierOrderSubmitted:
    """The supplier accepted the purchase request."""

    __version__ = 1

    supplier_order_id = Identifier(required=True)
    order_id = Identifier(required=True)
    supplier_id = Identifier(required=True)
    upstream_order_id = String(required=True, max_length=255)
    total_cost_cents = Integer(required=True)
    submitted_at = DateTime(required=True)


@dropship.event(part_of="SupplierOrder")
class SupplierOrderRejected:
    """The supplier refused the purchase request, or could not be reached."""

    __version__ = 1

    supplier_order_id = Identifier(required=True)
    order_id = Identifier(required=True)
    supplier_id = Identifier(required=True)
    reason = String(required=True, max_length=1000)
    rejected_at = DateTime(required=True)


@dropship.event(part_of="SupplierOrder")
class SupplierTrackingUpdated:
    """A tracking poll returned shipment information."""

    __version__ = 1

    supplier_order_id = Identifier(required=True)
    order_id = Identifier(required=True)
    tracking_status = String(required=True, max_length=50)
    tracking_number = String(max_length=255)
    carrier = String(max_length=100)
    tracking_url = String(max_length=1000)
    updated_at = DateTime(required=True)


@dropship.event(part_of="SupplierOrder")
class SupplierOrderShipped:
    """The supplier handed the shipment to a carrier."""

    __version__ = 1

    supplier_order_id = Identifier(required=True)
    order_id = Identifier(required=True)
    tracking_number = String(max_length=255)
    carrier = String(max_length=100)
    shipped_at = DateTime(required=True)


@dropship.event(part_of="SupplierOrder")
class SupplierOrderDelivered:
    """The carrier reported the shipment delivered."""

    __version__ = 1

    supplier_order_id = Identifier(required=True)
    order_id = Identifier(required=True)
    delivered_at = DateTime(required=True)


@dropship.event(part_of="SupplierOrder")
class SupplierOrderFailed:
    """The shipment hit an exception after it was accepted."""

    __version__ = 1

    supplier_order_id = Identifier(required=True)
    order_id = Identifier(required=True)
    reason = String(required=True, max_length=1000)
    failed_at = DateTime(required=True)


@dropship.event(part_of="SupplierOrder")
class SupplierOrderRefundLinked:
    """The wallet refund that undid this order's charge was recorded against it."""

    __version__ = 1

    supplier_order_id = Identifier(required=True)
    order_id = Identifier(required=True)
    refund_transaction_id = Identifier(required=True)
    linked_at = DateTime(required=True)
