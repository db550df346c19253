"""Domain tests for the SupplierOrder state machine."""

import pytest
from dropship.supplier_order.events import (
    SupplierOrderDelivered,
    SupplierOrderFailed,
    SupplierOrderOpened,
    SupplierOrderShipped,
    SupplierTrackingUpdated,
)
from dropship.supplier_order.supplier_order import SupplierOrder, SupplierOrderStatus
from protean.exceptions import ValidationError

ITEMS = [
    {
        "product_id": "prod-001",
        "supplier_product_id": "sp-001",
        "variant_id": None,
        "sku": "MUG-1",
        "quantity": 2,
        "unit_cost_cents": 1500,
    },
    {
        "product_id": "prod-002",
        "supplier_product_id": "sp-002",
        "variant_id": "v-9",
        "sku": None,
        "quantity": 1,
        "unit_cost_cents": 500,
    },
]


def _open(**overrides):
    data = {
        "order_id": "order-001",
        "supplier_id": "supplier-001",
        "merchant_id": "merchant-001",
        "items_data": ITEMS,
        "debit_transaction_id": "txn-001",
    }
    data.update(overrides)
    return SupplierOrder.open(**data)


def _submitted():
    so = _open()
    so.record_submission("up-001")
    so._events.clear()
    return so


def _shipped():
    so = _submitted()
    so.apply_tracking("in_transit", tracking_number="TRK1", carrier="UPS")
    so._events.clear()
    return so


class TestOpen:
    def test_opens_pending_with_quoted_cost(self):
        so = _open()
        assert so.status == SupplierOrderStatus.PENDING.value
        assert so.quoted_cost_cents == 3500
        assert so.total_cost_cents == 3500
        assert len(so.items) == 2
        assert so.debit_transaction_id == "txn-001"

    def test_raises_opened_event(self):
        so = _open()
        assert isinstance(so._events[0], SupplierOrderOpened)

    def test_requires_items(self):
        with pytest.raises(ValidationError) as exc:
            _open(items_data=[])
        assert "items" in exc.value.messages

    def test_product_ids(self):
        assert _open().product_ids() == ["prod-001", "prod-002"]


class TestSubmissionOutcome:
    def test_record_submission(self):
        so = _open()
        so.record_submission("up-001", reported_cost_cents=3700)
        assert so.status == SupplierOrderStatus.SUBMITTED.value
        assert so.upstream_order_id == "up-001"
        assert so.total_cost_cents == 3700
        assert so.quoted_cost_cents == 3500
        assert so.submitted_at is not None

    def test_submission_without_reported_cost_keeps_quote(self):
        so = _open()
        so.record_submission("up-001")
        assert so.total_cost_cents == 3500

    def test_submission_requires_upstream_id(self):
        with pytest.raises(ValidationError):
            _open().record_submission("")

    def test_cannot_submit_twice(self):
        so = _submitted()
        with pytest.raises(ValidationError):
            so.record_submission("up-002")

    def test_record_rejection(self):
        so = _open()
        so.record_rejection("Out of stock")
        assert so.status == SupplierOrderStatus.FAILED.value
        assert so.error_message == "Out of stock"
        assert so.is_terminal

    def test_only_pending_can_be_rejected(self):
        with pytest.raises(ValidationError):
            _submitted().record_rejection("Too late")


class TestApplyTracking:
    def test_pending_order_cannot_be_tracked(self):
        with pytest.raises(ValidationError):
            _open().apply_tracking("in_transit")

    def test_in_transit_moves_submitted_to_shipped(self):
        so = _submitted()
        moved = so.apply_tracking("in_transit", tracking_number="TRK1", carrier="UPS", tracking_url="https://t/1")
        assert moved is True
        assert so.status == SupplierOrderStatus.SHIPPED.value
        assert so.tracking.tracking_number == "TRK1"
        assert so.tracking.carrier == "UPS"
        assert so.shipped_at is not None
        assert [type(e) for e in so._events] == [SupplierTrackingUpdated, SupplierOrderShipped]

    def test_out_for_delivery_keeps_shipped_but_updates_snapshot(self):
        so = _shipped()
        moved = so.apply_tracking("out_for_delivery", tracking_number="TRK1")
        assert moved is False
        assert so.status == SupplierOrderStatus.SHIPPED.value
        assert so.tracking.status == "out_for_delivery"

    def test_delivered_is_terminal(self):
        so = _shipped()
        assert so.apply_tracking("delivered", tracking_number="TRK1") is True
        assert so.status == SupplierOrderStatus.DELIVERED.value
        assert isinstance(so._events[-1], SupplierOrderDelivered)

        so._events.clear()
        assert so.apply_tracking("in_transit", tracking_number="TRK2") is False
        assert so.status == SupplierOrderStatus.DELIVERED.value
        assert so.tracking.tracking_number == "TRK1"
        assert so._events == []

    def test_submitted_can_jump_to_delivered(self):
        so = _submitted()
        assert so.apply_tracking("delivered") is True
        assert so.status == SupplierOrderStatus.DELIVERED.value

    def test_never_moves_backwards(self):
        so = _shipped()
        assert so.apply_tracking("pending") is False
        assert so.status == SupplierOrderStatus.SHIPPED.value

    def test_exception_fails_the_order(self):
        so = _shipped()
        assert so.apply_tracking("exception", tracking_number="TRK1") is True
        assert so.status == SupplierOrderStatus.FAILED.value
        assert so.error_message == "Carrier reported a shipment exception"
        assert isinstance(so._events[-1], SupplierOrderFailed)

    def test_unknown_tracking_status_rejected(self):
        with pytest.raises(ValueError):
            _submitted().apply_tracking("lost_in_space")


class TestLinkRefund:
    def test_link_refund(self):
        so = _open()
        so.record_rejection("Out of stock")
        so.link_refund("txn-refund-001")
        assert so.refund_transaction_id == "txn-refund-001"

    def test_refund_linked_only_once(self):
        so = _submitted()
        so.link_refund("txn-refund-001")
        with pytest.raises(ValidationError):
            so.link_refund("txn-refund-002")
