"""Line item routing: which supplier ships which items, and where to."""

from collections import defaultdict

import structlog
from protean.exceptions import ObjectNotFoundError
from protean.utils.globals import current_domain

from dropship.catalog.product import Product
from dropship.merchant_order.order import MerchantOrder
from dropship.suppliers.port import ShippingAddress

logger = structlog.get_logger(__name__)


def group_items_by_supplier(order: MerchantOrder) -> dict[str, list[dict]]:
    """Group the order's line items by the supplier of each product.

    Items whose product is unknown or has no supplier are logged and left
    out. Groups keep the order in which their first item appears.
    """
    repo = current_domain.repository_for(Product)
    groups: dict[str, list[dict]] = defaultdict(list)
    for item in order.items or []:
        product_id = str(item.product_id)
        try:
            product = repo.get(product_id)
        except ObjectNotFoundError:
            logger.warning("Dropping line item, product not found", order_id=str(order.id), product_id=product_id)
            continue
        if not product.supplier_id:
            logger.warning("Dropping line item, product has no supplier", order_id=str(order.id), product_id=product_id)
            continue

        groups[str(product.supplier_id)].append(
            {
                "product_id": product_id,
                "supplier_product_id": product.supplier_product_id or product_id,
                "variant_id": product.variant_id,
                "sku": product.supplier_sku,
                "quantity": item.quantity,
                "unit_cost_cents": item.unit_cost_cents,
            }
        )
    return dict(groups)


def build_shipping_address(order: MerchantOrder) -> ShippingAddress:
    """Supplier-facing address, with placeholders where the order has gaps."""
    address = order.shipping_address
    if address is None:
        return ShippingAddress(first_name="Customer", last_name="", address1="", city="", country="US", zip="")
    return ShippingAddress(
        first_name=address.first_name or "Customer",
        last_name=address.last_name or "",
        address1=address.address1 or "",
        address2=address.address2,
        city=address.city or "",
        province=address.province,
        country=address.country or "US",
        zip=address.zip or "",
        phone=address.phone,
        email=address.email,
    )
