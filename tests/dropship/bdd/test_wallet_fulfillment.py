"""BDD tests for wallet-backed order fulfillment."""

from dropship.fulfillment.wallet_fulfillment import fulfill_order_with_wallet
from dropship.merchant_order.order import MerchantOrder
from dropship.supplier_order.supplier_order import SupplierOrder
from protean import current_domain
from pytest_bdd import parsers, scenarios, then, when

scenarios("features/wallet_fulfillment.feature")


def _supplier_orders(world):
    return current_domain.repository_for(SupplierOrder)._dao.query.filter(order_id=world["order_id"]).all().items


# ---------------------------------------------------------------------------
# When steps
# ---------------------------------------------------------------------------
@when("the merchant fulfills the order from the wallet")
def fulfill(world):
    world["outcome"] = fulfill_order_with_wallet(world["order_id"])


# ---------------------------------------------------------------------------
# Then steps
# ---------------------------------------------------------------------------
@then("the fulfillment succeeds")
def fulfillment_succeeds(world):
    assert world["outcome"].success is True


@then("the fulfillment fails")
def fulfillment_fails(world):
    assert world["outcome"].success is False


@then(parsers.cfparse('the fulfillment fails with "{error}"'))
def fulfillment_fails_with(world, error):
    assert world["outcome"].success is False
    assert world["outcome"].error == error


@then(parsers.cfparse('{count:d} supplier orders are "{status}"'))
def supplier_orders_in_status(world, count, status):
    assert len([so for so in _supplier_orders(world) if so.status == status]) == count


@then("no supplier orders exist")
def no_supplier_orders(world):
    assert _supplier_orders(world) == []


@then(parsers.cfparse('the order note is "{note}"'))
def order_note_is(world, note):
    assert current_domain.repository_for(MerchantOrder).get(world["order_id"]).internal_note == note


@then("every supplier order is linked to the refund")
def supplier_orders_linked_to_refund(world):
    refund_id = world["outcome"].refund_transaction_id
    assert refund_id is not None
    assert {so.refund_transaction_id for so in _supplier_orders(world)} == {refund_id}
