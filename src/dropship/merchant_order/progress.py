"""Merchant order progress commands, issued by fulfillment and tracking.

These are never called by merchants directly: wallet fulfillment marks an
order processing or leaves a note explaining why it did not, and supplier
tracking flips per-item fulfillment flags.
"""

import json

from protean import handle
from protean.fields import Identifier, Integer, String, Text
from protean.utils.globals import current_domain

from dropship.domain import dropship
from dropship.merchant_order.order import MerchantOrder


@dropship.command(part_of="MerchantOrder")
class AddOrderNote:
    order_id = Identifier(required=True)
    message = String(required=True, max_length=1000)


@dropship.command(part_of="MerchantOrder")
class MarkOrderProcessing:
    """Record that the order was charged and submitted to every supplier."""

    order_id = Identifier(required=True)
    charged_cents = Integer(required=True)
    debit_transaction_id = Identifier()
    supplier_order_count = Integer(required=True)


@dropship.command(part_of="MerchantOrder")
class UpdateItemFulfillment:
    """Set the fulfillment flag of the items one supplier order covers."""

    order_id = Identifier(required=True)
    product_ids = Text(required=True)  # JSON list
    item_status = String(required=True, max_length=20)
    tracking_number = String(max_length=255)
    tracking_url = String(max_length=1000)


@dropship.command_handler(part_of=MerchantOrder)
class OrderProgressHandler:
    @handle(AddOrderNote)
    def add_note(self, command):
        repo = current_domain.repository_for(MerchantOrder)
        order = repo.get(command.order_id)
        order.add_note(command.message)
        repo.add(order)

    @handle(MarkOrderProcessing)
    def mark_processing(self, command):
        repo = current_domain.repository_for(MerchantOrder)
        order = repo.get(command.order_id)
        order.mark_processing(
            charged_cents=command.charged_cents,
            debit_transaction_id=command.debit_transaction_id,
            supplier_order_count=command.supplier_order_count,
        )
        repo.add(order)

    @handle(UpdateItemFulfillment)
    def update_item_fulfillment(self, command):
        repo = current_domain.repository_for(MerchantOrder)
        order = repo.get(command.order_id)
        product_ids = json.loads(command.product_ids) if isinstance(command.product_ids, str) else command.product_ids
        changed = order.update_item_fulfillment(
            product_ids=product_ids,
            item_status=command.item_status,
            tracking_number=command.tracking_number,
            tracking_url=command.tracking_url,
        )
        repo.add(order)
        return changed
