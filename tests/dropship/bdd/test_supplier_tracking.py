"""BDD tests for supplier order tracking."""

from dropship.merchant_order.order import MerchantOrder
from dropship.supplier_order.supplier_order import SupplierOrder
from dropship.supplier_order.tracking import refresh_pending_tracking
from protean import current_domain
from pytest_bdd import given, parsers, scenarios, then, when

scenarios("features/supplier_tracking.feature")


# ---------------------------------------------------------------------------
# Given steps
# ---------------------------------------------------------------------------
@given(parsers.cfparse('"{name}" reports tracking "{status}" with number "{number}"'))
def supplier_reports_tracking(world, name, status, number):
    result = next(r for r in world["outcome"].results if r.supplier_id == world["suppliers"][name])
    so = current_domain.repository_for(SupplierOrder).get(result.supplier_order_ref)
    world["adapters"][name].set_tracking(so.upstream_order_id, status, tracking_number=number)


@given("tracking is refreshed for all in-flight supplier orders")
def tracking_already_refreshed(world):
    refresh_pending_tracking()


# ---------------------------------------------------------------------------
# When steps
# ---------------------------------------------------------------------------
@when("tracking is refreshed for all in-flight supplier orders")
def refresh_all(world):
    world["report"] = refresh_pending_tracking()


# ---------------------------------------------------------------------------
# Then steps
# ---------------------------------------------------------------------------
@then(parsers.cfparse('the order tracking number is "{number}"'))
def order_tracking_number_is(world, number):
    assert current_domain.repository_for(MerchantOrder).get(world["order_id"]).tracking_number == number


@then(parsers.cfparse("{count:d} supplier order was checked"))
def supplier_orders_checked(world, count):
    assert world["report"].checked == count
