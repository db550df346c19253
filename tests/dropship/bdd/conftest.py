"""Shared BDD fixtures and step definitions for wallet fulfillment and tracking."""

import json
from uuid import uuid4

import pytest
from dropship.catalog.registration import RegisterProduct, RegisterSupplier
from dropship.fulfillment.wallet_fulfillment import fulfill_order_with_wallet
from dropship.merchant_order.order import MerchantOrder
from dropship.merchant_order.placement import PlaceMerchantOrder
from dropship.supplier_order.supplier_order import SupplierOrder
from dropship.suppliers import set_adapter
from dropship.suppliers.fake_adapter import FakeSupplier
from dropship.wallet.ledger import credit_wallet, debit_wallet
from dropship.wallet.statement import get_wallet_balance
from protean import current_domain
from pytest_bdd import given, parsers, then


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------
@pytest.fixture()
def world():
    """Mutable scenario state: merchant, suppliers by name, order, outcome."""
    return {"merchant_id": f"merchant-bdd-{uuid4().hex[:8]}", "suppliers": {}, "adapters": {}}


def _supplier_orders(world):
    return current_domain.repository_for(SupplierOrder)._dao.query.filter(order_id=world["order_id"]).all().items


def _supplier_order_for(world, name):
    supplier_id = world["suppliers"][name]
    # Newest attempt wins when an order was fulfilled more than once
    matches = [so for so in _supplier_orders(world) if so.supplier_id == supplier_id]
    return sorted(matches, key=lambda so: so.created_at)[-1]


# ---------------------------------------------------------------------------
# Given steps
# ---------------------------------------------------------------------------
@given(parsers.cfparse("a merchant with a wallet balance of {amount:d} cents"))
def merchant_with_balance(world, amount):
    credit_wallet(world["merchant_id"], amount, description="Initial top-up")


@given(parsers.cfparse("the merchant's wallet balance is {amount:d} cents"))
def set_wallet_balance(world, amount):
    current = get_wallet_balance(world["merchant_id"]).balance_cents
    if current > amount:
        debit_wallet(world["merchant_id"], "balance-adjustment", current - amount, description="Balance adjustment")
    elif current < amount:
        credit_wallet(world["merchant_id"], amount - current)


@given(
    parsers.cfparse(
        'an order with items from "{first}" costing {first_cost:d} cents and "{second}" costing {second_cost:d} cents'
    )
)
def order_from_two_suppliers(world, first, first_cost, second, second_cost):
    items = []
    for name, cost in ((first, first_cost), (second, second_cost)):
        supplier_id = current_domain.process(
            RegisterSupplier(name=name, supplier_type="fake", credentials="{}"),
            asynchronous=False,
        )
        adapter = FakeSupplier(name=name)
        set_adapter(supplier_id, adapter)
        world["suppliers"][name] = supplier_id
        world["adapters"][name] = adapter

        product_id = current_domain.process(
            RegisterProduct(title=f"{name} product", supplier_id=supplier_id, supplier_price_cents=cost),
            asynchronous=False,
        )
        items.append(
            {"product_id": product_id, "quantity": 1, "unit_price_cents": cost * 2, "unit_cost_cents": cost}
        )

    world["order_id"] = current_domain.process(
        PlaceMerchantOrder(merchant_id=world["merchant_id"], order_number="3001", items=json.dumps(items)),
        asynchronous=False,
    )


@given(parsers.cfparse('"{name}" rejects orders with "{reason}"'))
def supplier_rejects(world, name, reason):
    world["adapters"][name].configure(should_succeed=False, failure_reason=reason)


@given("the order has been fulfilled from the wallet")
def order_fulfilled(world):
    world["outcome"] = fulfill_order_with_wallet(world["order_id"])
    assert world["outcome"].success


# ---------------------------------------------------------------------------
# Then steps
# ---------------------------------------------------------------------------
@then(parsers.cfparse("the wallet balance is {amount:d} cents"))
def wallet_balance_is(world, amount):
    assert get_wallet_balance(world["merchant_id"]).balance_cents == amount


@then(parsers.cfparse('the order status is "{status}"'))
def order_status_is(world, status):
    assert current_domain.repository_for(MerchantOrder).get(world["order_id"]).status == status


@then(parsers.cfparse('the supplier order for "{name}" is "{status}"'))
def supplier_order_status_is(world, name, status):
    assert _supplier_order_for(world, name).status == status


@then(parsers.cfparse('the order fulfillment status is "{status}"'))
def order_fulfillment_status_is(world, status):
    assert current_domain.repository_for(MerchantOrder).get(world["order_id"]).fulfillment_status == status
