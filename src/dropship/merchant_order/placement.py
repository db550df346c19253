"""Merchant order placement command and handler."""

import json

from protean import handle
from protean.fields import Identifier, String, Text
from protean.utils.globals import current_domain

from dropship.domain import dropship
from dropship.merchant_order.order import MerchantOrder


@dropship.command(part_of="MerchantOrder")
class PlaceMerchantOrder:
    """Record a paid customer order for a merchant."""

    merchant_id = Identifier(required=True)
    customer_id = Identifier()
    order_number = String(max_length=50)
    currency = String(max_length=3, default="USD")
    items = Text(required=True)  # JSON list of line item dicts
    shipping_address = Text()  # JSON object


@dropship.command_handler(part_of=MerchantOrder)
class PlaceMerchantOrderHandler:
    @handle(PlaceMerchantOrder)
    def place_order(self, command):
        items_data = json.loads(command.items) if isinstance(command.items, str) else command.items
        shipping_address = json.loads(command.shipping_address) if command.shipping_address else None
        order = MerchantOrder.place(
            merchant_id=command.merchant_id,
            items_data=items_data,
            shipping_address=shipping_address,
            customer_id=command.customer_id,
            order_number=command.order_number,
            currency=command.currency or "USD",
        )
        current_domain.repository_for(MerchantOrder).add(order)
        return str(order.id)
