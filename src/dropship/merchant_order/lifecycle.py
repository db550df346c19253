"""Merchant order completion and cancellation."""

from protean import handle
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from dropship.domain import dropship
from dropship.merchant_order.order import MerchantOrder


@dropship.command(part_of="MerchantOrder")
class CompleteMerchantOrder:
    order_id = Identifier(required=True)


@dropship.command(part_of="MerchantOrder")
class CancelMerchantOrder:
    order_id = Identifier(required=True)
    reason = String(required=True, max_length=500)


@dropship.command_handler(part_of=MerchantOrder)
class OrderLifecycleHandler:
    @handle(CompleteMerchantOrder)
    def complete_order(self, command):
        repo = current_domain.repository_for(MerchantOrder)
        order = repo.get(command.order_id)
        order.complete()
        repo.add(order)

    @handle(CancelMerchantOrder)
    def cancel_order(self, command):
        repo = current_domain.repository_for(MerchantOrder)
        order = repo.get(command.order_id)
        order.cancel(command.reason)
        repo.add(order)
