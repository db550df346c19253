"""Application tests for submitting one supplier group."""

import pytest
from dropship.catalog.registration import DeactivateSupplier
from dropship.merchant_order.order import MerchantOrder
from dropship.supplier_order.submission import SUPPLIER_UNAVAILABLE, submit_supplier_order
from dropship.supplier_order.supplier_order import SupplierOrder, SupplierOrderStatus
from dropship.suppliers import set_adapter
from dropship.suppliers.fake_adapter import FakeSupplier
from dropship.suppliers.port import ShippingAddress
from protean import current_domain

ADDRESS = ShippingAddress(first_name="Ada", last_name="L", address1="1 Way", city="London", country="GB", zip="N1")


@pytest.fixture()
def order(merchant_id, place_order):
    order_id = place_order(merchant_id, [("prod-001", 2, 1500)], order_number="1001")
    return current_domain.repository_for(MerchantOrder).get(order_id)


def _lines():
    return [
        {
            "product_id": "prod-001",
            "supplier_product_id": "sp-001",
            "variant_id": "v-1",
            "sku": "MUG",
            "quantity": 2,
            "unit_cost_cents": 1500,
        }
    ]


def _stored(result):
    return current_domain.repository_for(SupplierOrder).get(result.supplier_order_ref)


class TestSuccessfulSubmission:
    def test_records_upstream_order(self, order, register_fake_supplier):
        supplier_id, adapter = register_fake_supplier()
        result = submit_supplier_order(order, supplier_id, _lines(), ADDRESS, debit_transaction_id="txn-001")

        assert result.success is True
        assert result.supplier_id == supplier_id
        assert result.upstream_order_id.startswith("fake_so_")

        so = _stored(result)
        assert so.status == SupplierOrderStatus.SUBMITTED.value
        assert so.upstream_order_id == result.upstream_order_id
        assert so.order_id == str(order.id)
        assert so.merchant_id == str(order.merchant_id)
        assert so.debit_transaction_id == "txn-001"
        assert so.total_cost_cents == 3000

    def test_sends_lines_address_and_note(self, order, register_fake_supplier):
        supplier_id, adapter = register_fake_supplier()
        submit_supplier_order(order, supplier_id, _lines(), ADDRESS)

        call = adapter.calls_to("create_order")[0]
        assert call["note"] == "Merchant Order #1001"
        assert call["shipping_address"] == ADDRESS
        line = call["items"][0]
        assert (line.supplier_product_id, line.quantity, line.unit_cost_cents) == ("sp-001", 2, 1500)
        assert line.variant_id == "v-1"

    def test_supplier_reported_cost_is_recorded(self, order, register_fake_supplier):
        supplier_id, adapter = register_fake_supplier()
        adapter.configure(should_succeed=True, cost_adjustment_cents=199)
        result = submit_supplier_order(order, supplier_id, _lines(), ADDRESS)
        so = _stored(result)
        assert so.quoted_cost_cents == 3000
        assert so.total_cost_cents == 3199


class TestFailedSubmission:
    def test_supplier_rejection(self, order, register_fake_supplier):
        supplier_id, adapter = register_fake_supplier()
        adapter.configure(should_succeed=False, failure_reason="Out of stock")
        result = submit_supplier_order(order, supplier_id, _lines(), ADDRESS)

        assert result.success is False
        assert result.error == "Out of stock"
        so = _stored(result)
        assert so.status == SupplierOrderStatus.FAILED.value
        assert so.error_message == "Out of stock"

    def test_unexpected_adapter_error_is_a_rejection(self, order, register_fake_supplier):
        supplier_id, _ = register_fake_supplier()

        class _Broken(FakeSupplier):
            def create_order(self, request):
                raise RuntimeError("socket closed")

        set_adapter(supplier_id, _Broken())
        result = submit_supplier_order(order, supplier_id, _lines(), ADDRESS)
        assert result.success is False
        assert result.error == "socket closed"

    def test_unknown_supplier(self, order):
        result = submit_supplier_order(order, "supplier-missing", _lines(), ADDRESS)
        assert result.success is False
        assert result.error == SUPPLIER_UNAVAILABLE
        assert _stored(result).status == SupplierOrderStatus.FAILED.value

    def test_inactive_supplier(self, order, register_fake_supplier):
        supplier_id, adapter = register_fake_supplier()
        current_domain.process(DeactivateSupplier(supplier_id=supplier_id), asynchronous=False)

        result = submit_supplier_order(order, supplier_id, _lines(), ADDRESS)

        assert result.success is False
        assert result.error == SUPPLIER_UNAVAILABLE
        assert adapter.calls_to("create_order") == []

    def test_row_exists_even_when_supplier_fails(self, order, register_fake_supplier):
        supplier_id, adapter = register_fake_supplier()
        adapter.configure(should_succeed=False)
        submit_supplier_order(order, supplier_id, _lines(), ADDRESS)

        rows = current_domain.repository_for(SupplierOrder)._dao.query.filter(order_id=str(order.id)).all()
        assert rows.total == 1
