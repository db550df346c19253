"""Application tests for supplier tracking refresh and the tracking sweep."""

import pytest
from dropship.catalog.supplier import Supplier
from dropship.fulfillment.wallet_fulfillment import fulfill_order_with_wallet
from dropship.merchant_order.order import FulfillmentStatus, ItemFulfillmentStatus, MerchantOrder
from dropship.supplier_order import tracking as tracking_module
from dropship.supplier_order.supplier_order import SupplierOrder, SupplierOrderStatus
from dropship.supplier_order.tracking import refresh_pending_tracking, refresh_tracking
from dropship.suppliers.port import TrackingStatus
from dropship.wallet.wallet import Wallet
from protean import current_domain
from protean.exceptions import ValidationError


@pytest.fixture()
def fulfilled(two_supplier_order, fund_wallet):
    """A two-supplier order that was charged and accepted by both suppliers."""
    fund_wallet(two_supplier_order["merchant_id"], 10000)
    outcome = fulfill_order_with_wallet(two_supplier_order["order_id"])
    assert outcome.success
    by_supplier = {r.supplier_id: r for r in outcome.results}
    return {**two_supplier_order, "results": by_supplier}


def _supplier_order(fulfilled, which):
    result = fulfilled["results"][fulfilled[which]]
    return current_domain.repository_for(SupplierOrder).get(result.supplier_order_ref)


def _adapter(fulfilled, which):
    return fulfilled["suppliers"][fulfilled[which]]


def _order(fulfilled):
    return current_domain.repository_for(MerchantOrder).get(fulfilled["order_id"])


def _items_by_product(order):
    return {str(item.product_id): item.fulfillment_status for item in order.items}


class TestRefreshTracking:
    def test_in_transit_ships_supplier_order_and_fulfills_its_items(self, fulfilled):
        so = _supplier_order(fulfilled, "supplier_a")
        _adapter(fulfilled, "supplier_a").set_tracking(so.upstream_order_id, "in_transit", tracking_number="1Z1")

        info = refresh_tracking(str(so.id))

        assert info.status == TrackingStatus.IN_TRANSIT
        so = _supplier_order(fulfilled, "supplier_a")
        assert so.status == SupplierOrderStatus.SHIPPED.value
        assert so.tracking.tracking_number == "1Z1"

        order = _order(fulfilled)
        items = _items_by_product(order)
        assert items[fulfilled["product_a"]] == ItemFulfillmentStatus.FULFILLED.value
        assert items[fulfilled["product_b"]] == ItemFulfillmentStatus.UNFULFILLED.value
        assert order.fulfillment_status == FulfillmentStatus.PARTIAL.value
        assert order.tracking_number == "1Z1"

    def test_both_suppliers_delivered_fulfills_the_order(self, fulfilled):
        for which in ("supplier_a", "supplier_b"):
            so = _supplier_order(fulfilled, which)
            _adapter(fulfilled, which).set_tracking(so.upstream_order_id, "delivered")
            refresh_tracking(str(so.id))

        assert _supplier_order(fulfilled, "supplier_b").status == SupplierOrderStatus.DELIVERED.value
        assert _order(fulfilled).fulfillment_status == FulfillmentStatus.FULFILLED.value

    def test_pending_tracking_touches_nothing_on_the_order(self, fulfilled):
        so = _supplier_order(fulfilled, "supplier_a")
        _adapter(fulfilled, "supplier_a").set_tracking(so.upstream_order_id, "pending")

        info = refresh_tracking(str(so.id))

        assert info.status == TrackingStatus.PENDING
        assert _supplier_order(fulfilled, "supplier_a").status == SupplierOrderStatus.SUBMITTED.value
        assert _order(fulfilled).fulfillment_status == FulfillmentStatus.PARTIAL.value
        assert set(_items_by_product(_order(fulfilled)).values()) == {ItemFulfillmentStatus.UNFULFILLED.value}

    def test_carrier_exception_fails_the_supplier_order(self, fulfilled):
        so = _supplier_order(fulfilled, "supplier_a")
        adapter = _adapter(fulfilled, "supplier_a")
        adapter.set_tracking(so.upstream_order_id, "in_transit")
        refresh_tracking(str(so.id))
        adapter.set_tracking(so.upstream_order_id, "exception")
        refresh_tracking(str(so.id))

        so = _supplier_order(fulfilled, "supplier_a")
        assert so.status == SupplierOrderStatus.FAILED.value
        assert _items_by_product(_order(fulfilled))[fulfilled["product_a"]] == ItemFulfillmentStatus.UNFULFILLED.value

    def test_nothing_reported_yet(self, fulfilled):
        so = _supplier_order(fulfilled, "supplier_a")
        assert refresh_tracking(str(so.id)) is None
        assert _supplier_order(fulfilled, "supplier_a").status == SupplierOrderStatus.SUBMITTED.value

    def test_terminal_order_is_not_polled(self, fulfilled):
        so = _supplier_order(fulfilled, "supplier_a")
        adapter = _adapter(fulfilled, "supplier_a")
        adapter.set_tracking(so.upstream_order_id, "delivered")
        refresh_tracking(str(so.id))
        polls = len(adapter.calls_to("get_tracking"))

        assert refresh_tracking(str(so.id)) is None
        assert len(adapter.calls_to("get_tracking")) == polls

    def test_poll_failure_returns_none(self, fulfilled):
        so = _supplier_order(fulfilled, "supplier_a")
        _adapter(fulfilled, "supplier_a").configure(should_succeed=True, tracking_error="Carrier API down")
        assert refresh_tracking(str(so.id)) is None
        assert _supplier_order(fulfilled, "supplier_a").status == SupplierOrderStatus.SUBMITTED.value

    def test_unknown_supplier_order(self):
        assert refresh_tracking("supplier-order-missing") is None

    def test_refresh_never_touches_the_wallet(self, fulfilled):
        balance = current_domain.repository_for(Wallet).get(fulfilled["merchant_id"]).balance_cents
        so = _supplier_order(fulfilled, "supplier_a")
        _adapter(fulfilled, "supplier_a").set_tracking(so.upstream_order_id, "exception")
        refresh_tracking(str(so.id))
        assert current_domain.repository_for(Wallet).get(fulfilled["merchant_id"]).balance_cents == balance


class TestRefreshPendingTracking:
    def test_sweep_refreshes_every_in_flight_order(self, fulfilled):
        for which in ("supplier_a", "supplier_b"):
            so = _supplier_order(fulfilled, which)
            _adapter(fulfilled, which).set_tracking(so.upstream_order_id, "in_transit")

        report = refresh_pending_tracking()

        assert report.checked == 2
        assert report.refreshed == 2
        assert report.failed == 0
        assert _order(fulfilled).fulfillment_status == FulfillmentStatus.FULFILLED.value

    def test_sweep_skips_terminal_orders(self, fulfilled):
        so = _supplier_order(fulfilled, "supplier_a")
        _adapter(fulfilled, "supplier_a").set_tracking(so.upstream_order_id, "delivered")
        refresh_tracking(str(so.id))

        report = refresh_pending_tracking()

        assert report.checked == 1

    def test_one_failure_does_not_stop_the_sweep(self, fulfilled, monkeypatch):
        broken = _supplier_order(fulfilled, "supplier_a")
        healthy = _supplier_order(fulfilled, "supplier_b")
        _adapter(fulfilled, "supplier_b").set_tracking(healthy.upstream_order_id, "in_transit")

        real_refresh = tracking_module.refresh_tracking

        def _flaky_refresh(supplier_order_id):
            if supplier_order_id == str(broken.id):
                raise ValidationError({"status": ["Simulated failure"]})
            return real_refresh(supplier_order_id)

        monkeypatch.setattr(tracking_module, "refresh_tracking", _flaky_refresh)

        report = refresh_pending_tracking()

        assert report.checked == 2
        assert report.refreshed == 1
        assert report.failed == 1
        assert _supplier_order(fulfilled, "supplier_b").status == SupplierOrderStatus.SHIPPED.value

    def test_supplier_with_corrupt_credentials_does_not_stop_the_sweep(self, fulfilled):
        supplier_repo = current_domain.repository_for(Supplier)
        supplier = supplier_repo.get(fulfilled["supplier_a"])
        supplier.credentials = "{not json"
        supplier_repo.add(supplier)
        healthy = _supplier_order(fulfilled, "supplier_b")
        _adapter(fulfilled, "supplier_b").set_tracking(healthy.upstream_order_id, "in_transit")

        report = refresh_pending_tracking()

        assert report.checked == 2
        assert report.refreshed == 1
        assert report.failed == 1
        assert _supplier_order(fulfilled, "supplier_b").status == SupplierOrderStatus.SHIPPED.value
        assert _supplier_order(fulfilled, "supplier_a").status == SupplierOrderStatus.SUBMITTED.value

    def test_empty_sweep(self):
        report = refresh_pending_tracking()
        assert (report.checked, report.refreshed, report.failed) == (0, 0, 0)
