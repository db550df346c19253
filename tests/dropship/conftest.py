"""Shared fixtures for the dropship context: suppliers, products, orders, wallets."""

import json
from uuid import uuid4

import pytest
from dropship.catalog.registration import RegisterProduct, RegisterSupplier
from dropship.merchant_order.placement import PlaceMerchantOrder
from dropship.suppliers import set_adapter
from dropship.suppliers.fake_adapter import FakeSupplier
from dropship.wallet.ledger import credit_wallet
from protean import current_domain

SHIPPING_ADDRESS = {
    "first_name": "Ada",
    "last_name": "Lovelace",
    "address1": "12 Analytical Way",
    "city": "London",
    "province": "LDN",
    "country": "GB",
    "zip": "N1 9GU",
    "email": "ada@example.com",
}


@pytest.fixture()
def merchant_id():
    return f"merchant-{uuid4().hex[:8]}"


@pytest.fixture()
def register_fake_supplier():
    """Register a ``fake`` supplier and pin a FakeSupplier the test can script."""

    def _register(name="Acme Supply"):
        supplier_id = current_domain.process(
            RegisterSupplier(name=name, supplier_type="fake", credentials="{}"),
            asynchronous=False,
        )
        adapter = FakeSupplier(name=name)
        set_adapter(supplier_id, adapter)
        return supplier_id, adapter

    return _register


@pytest.fixture()
def register_product():
    def _register(supplier_id=None, title="Ceramic Mug", supplier_price_cents=1000, **kwargs):
        return current_domain.process(
            RegisterProduct(
                title=title,
                supplier_id=supplier_id,
                supplier_product_id=kwargs.get("supplier_product_id", f"sp-{uuid4().hex[:6]}"),
                supplier_sku=kwargs.get("supplier_sku"),
                variant_id=kwargs.get("variant_id"),
                supplier_price_cents=supplier_price_cents,
            ),
            asynchronous=False,
        )

    return _register


@pytest.fixture()
def place_order():
    """Place a merchant order from ``(product_id, quantity, unit_cost_cents)`` tuples."""

    def _place(merchant_id, lines, order_number="1001", shipping_address=SHIPPING_ADDRESS):
        items = [
            {
                "product_id": product_id,
                "title": f"Item {index}",
                "quantity": quantity,
                "unit_price_cents": unit_cost * 2,
                "unit_cost_cents": unit_cost,
            }
            for index, (product_id, quantity, unit_cost) in enumerate(lines, start=1)
        ]
        return current_domain.process(
            PlaceMerchantOrder(
                merchant_id=merchant_id,
                order_number=order_number,
                items=json.dumps(items),
                shipping_address=json.dumps(shipping_address) if shipping_address else None,
            ),
            asynchronous=False,
        )

    return _place


@pytest.fixture()
def fund_wallet():
    def _fund(merchant_id, amount_cents):
        return credit_wallet(merchant_id, amount_cents, external_reference=f"pi_{uuid4().hex[:8]}")

    return _fund


@pytest.fixture()
def two_supplier_order(merchant_id, register_fake_supplier, register_product, place_order):
    """An order for $45.00 of supplier cost split across two fake suppliers."""
    supplier_a, adapter_a = register_fake_supplier("Supplier A")
    supplier_b, adapter_b = register_fake_supplier("Supplier B")
    product_a = register_product(supplier_a, title="Linen Tote", supplier_price_cents=3000)
    product_b = register_product(supplier_b, title="Enamel Pin", supplier_price_cents=1500)
    order_id = place_order(merchant_id, [(product_a, 1, 3000), (product_b, 1, 1500)])
    return {
        "order_id": order_id,
        "merchant_id": merchant_id,
        "suppliers": {supplier_a: adapter_a, supplier_b: adapter_b},
        "supplier_a": supplier_a,
        "supplier_b": supplier_b,
        "product_a": product_a,
        "product_b": product_b,
    }
