"""Wallet domain events, the immutable facts about ledger movements.

Every balance change is mirrored by exactly one event, so downstream
consumers such as notifications never need to diff balances.
"""

from protean.fields import DateTime, Identifier, Integer, String

from dropship.domain import dropship


@dropship.event(part_of="Wallet")
class WalletOpened:
    """A zero-balance wallet was opened for a merchant."""

    __version__ = 1

    wallet_id = Identifier(required=True)
    merchant_id = Identifier(required=True)
    currency = String(max_length=3, required=True)
    opened_at = DateTime(required=True)


@dropship.event(part_of="Wallet")
class WalletCredited:
    """Funds were added to a wallet (merchant top-up)."""

    __version__ = 1

    wallet_id = Identifier(required=True)
    merchant_id = Identifier(required=True)
    transaction_id = Identifier(required=True)
    amount_cents = Integer(required=True)
    balance_after_cents = Integer(required=True)
    external_reference = String(max_length=255)
    credited_at = DateTime(required=True)


@dropship.event(part_of="Wallet")
class WalletDebited:
    """Funds were taken from a wallet to pay for an order's supplier cost."""

    __version__ = 1

    wallet_id = Identifier(required=True)
    merchant_id = Identifier(required=True)
    transaction_id = Identifier(required=True)
    order_id = Identifier(required=True)
    amount_cents = Integer(required=True)
    balance_after_cents = Integer(required=True)
    debited_at = DateTime(required=True)


@dropship.event(part_of="Wallet")
class WalletRefunded:
    """A prior debit was reversed back into the wallet."""

    __version__ = 1

    wallet_id = Identifier(required=True)
    merchant_id = Identifier(required=True)
    transaction_id = Identifier(required=True)
    order_id = Identifier(required=True)
    amount_cents = Integer(required=True)
    balance_after_cents = Integer(required=True)
    refunded_at = DateTime(required=True)


@dropship.event(part_of="Wallet")
class WalletBalanceLow:
    """A debit left the wallet below the low balance alert threshold."""

    __version__ = 1

    wallet_id = Identifier(required=True)
    merchant_id = Identifier(required=True)
    balance_cents = Integer(required=True)
    threshold_cents = Integer(required=True)
    detected_at = DateTime(required=True)
