"""Tests for the configurable FakeSupplier adapter."""

import pytest
from dropship.suppliers.fake_adapter import FakeSupplier
from dropship.suppliers.port import (
    NormalizedProduct,
    OrderLine,
    ShippingAddress,
    SupplierError,
    SupplierOrderRequest,
    TrackingStatus,
)

ADDRESS = ShippingAddress(first_name="Ada", last_name="L", address1="1 Way", city="London", country="GB", zip="N1")


def _request(*lines):
    return SupplierOrderRequest(items=list(lines), shipping_address=ADDRESS, note="Merchant Order #1001")


class TestCreateOrder:
    def test_accepts_order(self):
        supplier = FakeSupplier()
        response = supplier.create_order(_request(OrderLine("sp-1", 2, 1500), OrderLine("sp-2", 1, 500)))
        assert response.supplier_order_id.startswith("fake_so_")
        assert response.status == "submitted"
        assert response.total_cost_cents == 3500
        assert response.supplier_order_id in supplier.orders

    def test_cost_adjustment(self):
        supplier = FakeSupplier()
        supplier.configure(should_succeed=True, cost_adjustment_cents=250)
        response = supplier.create_order(_request(OrderLine("sp-1", 1, 1000)))
        assert response.total_cost_cents == 1250

    def test_configured_failure(self):
        supplier = FakeSupplier()
        supplier.configure(should_succeed=False, failure_reason="Out of stock")
        with pytest.raises(SupplierError, match="Out of stock"):
            supplier.create_order(_request(OrderLine("sp-1", 1, 1000)))
        assert supplier.orders == {}

    def test_calls_are_recorded(self):
        supplier = FakeSupplier()
        supplier.create_order(_request(OrderLine("sp-1", 1, 1000)))
        calls = supplier.calls_to("create_order")
        assert len(calls) == 1
        assert calls[0]["note"] == "Merchant Order #1001"


class TestTracking:
    def test_nothing_to_report_by_default(self):
        assert FakeSupplier().get_tracking("fake_so_1") is None

    def test_scripted_tracking_gets_a_number(self):
        supplier = FakeSupplier()
        supplier.set_tracking("fake_so_abcdef12", "in_transit")
        info = supplier.get_tracking("fake_so_abcdef12")
        assert info.status == TrackingStatus.IN_TRANSIT
        assert info.tracking_number == "FPABCDEF12"
        assert info.carrier == "FakePost"
        assert info.tracking_url == "https://track.fake/FPABCDEF12"

    def test_pending_tracking_has_no_number(self):
        supplier = FakeSupplier()
        info = supplier.set_tracking("fake_so_1", TrackingStatus.PENDING)
        assert info.tracking_number is None
        assert info.tracking_url is None

    def test_tracking_error(self):
        supplier = FakeSupplier()
        supplier.configure(should_succeed=True, tracking_error="Carrier API down")
        with pytest.raises(SupplierError):
            supplier.get_tracking("fake_so_1")


class TestCatalog:
    def test_fetch_products_pages(self):
        products = [NormalizedProduct(f"sp-{i}", f"Product {i}", 100 * i) for i in range(1, 6)]
        supplier = FakeSupplier(products=products)
        page = supplier.fetch_products(page=2, page_size=2)
        assert [p.supplier_product_id for p in page.items] == ["sp-3", "sp-4"]
        assert page.has_more is True
        assert page.total == 5

    def test_fetch_product(self):
        supplier = FakeSupplier()
        supplier.add_product(NormalizedProduct("sp-1", "Mug", 1000))
        assert supplier.fetch_product("sp-1").title == "Mug"
        assert supplier.fetch_product("sp-404") is None

    def test_connection(self):
        assert FakeSupplier(name="Acme").test_connection().success is True
