"""Wallet aggregate (CQRS): a merchant's prepaid balance and its ledger.

One wallet per merchant; the wallet's identity *is* the merchant id, so the
wallet can be loaded without a lookup. The balance is a denormalised running
total of the append-only ``WalletTransaction`` rows:

    balance_cents == sum(+credit, -debit, +refund)

Every movement updates the balance and appends its row in the same
aggregate save, so the two can never drift apart. Concurrent writers are
serialised by the aggregate version: a writer holding a stale copy is
rejected with ``ExpectedVersionError`` when it saves.
"""

import os
from datetime import UTC, datetime
from enum import Enum

from protean import atomic_change, invariant
from protean.exceptions import ValidationError
from protean.fields import DateTime, HasMany, Identifier, Integer, String

from dropship.domain import dropship
from dropship.shared.money import format_cents
from dropship.wallet.events import (
    WalletBalanceLow,
    WalletCredited,
    WalletDebited,
    WalletOpened,
    WalletRefunded,
)

DEFAULT_LOW_BALANCE_THRESHOLD_CENTS = 1000


def low_balance_threshold_cents() -> int:
    """Balance (in cents) below which a debit raises ``WalletBalanceLow``."""
    return int(os.getenv("WALLET_LOW_BALANCE_THRESHOLD_CENTS", DEFAULT_LOW_BALANCE_THRESHOLD_CENTS))


def insufficient_funds_message(available_cents: int, required_cents: int) -> str:
    return f"Insufficient funds. Available: {format_cents(available_cents)}, Required: {format_cents(required_cents)}"


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------
class TransactionType(Enum):
    CREDIT = "credit"
    DEBIT = "debit"
    REFUND = "refund"


_INFLOW_TYPES = {TransactionType.CREDIT, TransactionType.REFUND}


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------
@dropship.entity(part_of="Wallet")
class WalletTransaction:
    """One immutable row of the wallet ledger.

    ``amount_cents`` is always positive; the direction comes from
    ``transaction_type``.
    """

    merchant_id = Identifier(required=True)
    transaction_type = String(max_length=20, choices=TransactionType, required=True)
    amount_cents = Integer(required=True, min_value=1)
    balance_after_cents = Integer(required=True, min_value=0)
    currency = String(max_length=3, default="USD")
    description = String(max_length=500)
    order_id = Identifier()
    external_reference = String(max_length=255)  # e.g. payment intent id of a top-up
    sequence = Integer(required=True, min_value=1)
    created_at = DateTime(required=True)

    @property
    def signed_amount_cents(self) -> int:
        if TransactionType(self.transaction_type) in _INFLOW_TYPES:
            return self.amount_cents
        return -self.amount_cents


# ---------------------------------------------------------------------------
# Aggregate Root (CQRS)
# ---------------------------------------------------------------------------
@dropship.aggregate
class Wallet:
    merchant_id = Identifier(required=True)
    balance_cents = Integer(default=0)
    pending_cents = Integer(default=0)  # reserved for holds; the debit path never touches it
    currency = String(max_length=3, default="USD")
    transactions = HasMany(WalletTransaction)
    transaction_count = Integer(default=0)
    created_at = DateTime()
    updated_at = DateTime()

    @invariant.post
    def balance_cannot_be_negative(self):
        if (self.balance_cents or 0) < 0:
            raise ValidationError({"balance_cents": ["Wallet balance cannot be negative"]})

    # -------------------------------------------------------------------
    # Factory method
    # -------------------------------------------------------------------
    @classmethod
    def open(cls, merchant_id: str, currency: str = "USD"):
        """Open an empty wallet for a merchant."""
        now = datetime.now(UTC)
        wallet = cls(
            id=merchant_id,
            merchant_id=merchant_id,
            balance_cents=0,
            pending_cents=0,
            currency=currency,
            transaction_count=0,
            created_at=now,
            updated_at=now,
        )
        wallet.raise_(
            WalletOpened(
                wallet_id=str(wallet.id),
                merchant_id=merchant_id,
                currency=currency,
                opened_at=now,
            )
        )
        return wallet

    # -------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------
    def can_cover(self, amount_cents: int) -> bool:
        return (self.balance_cents or 0) >= amount_cents

    def ledger_total_cents(self) -> int:
        """Signed sum of every ledger row; equals ``balance_cents`` at all times."""
        return sum(txn.signed_amount_cents for txn in (self.transactions or []))

    # -------------------------------------------------------------------
    # Ledger movements
    # -------------------------------------------------------------------
    @staticmethod
    def _assert_positive(amount_cents) -> None:
        if isinstance(amount_cents, bool) or not isinstance(amount_cents, int) or amount_cents <= 0:
            raise ValidationError({"amount_cents": ["Amount must be a positive number of cents"]})

    def _append(
        self,
        transaction_type: TransactionType,
        amount_cents: int,
        balance_after_cents: int,
        description: str,
        order_id: str | None = None,
        external_reference: str | None = None,
    ) -> WalletTransaction:
        now = datetime.now(UTC)
        txn = WalletTransaction(
            merchant_id=str(self.merchant_id),
            transaction_type=transaction_type.value,
            amount_cents=amount_cents,
            balance_after_cents=balance_after_cents,
            currency=self.currency,
            description=description,
            order_id=order_id,
            external_reference=external_reference,
            sequence=(self.transaction_count or 0) + 1,
            created_at=now,
        )
        with atomic_change(self):
            self.balance_cents = balance_after_cents
            self.transaction_count = txn.sequence
            self.updated_at = now
            self.add_transactions(txn)
        return txn

    def credit(
        self,
        amount_cents: int,
        description: str = "Wallet top-up",
        external_reference: str | None = None,
    ) -> WalletTransaction:
        """Add funds. Always succeeds for a positive amount."""
        self._assert_positive(amount_cents)
        txn = self._append(
            TransactionType.CREDIT,
            amount_cents,
            self.balance_cents + amount_cents,
            description,
            external_reference=external_reference,
        )
        self.raise_(
            WalletCredited(
                wallet_id=str(self.id),
                merchant_id=str(self.merchant_id),
                transaction_id=str(txn.id),
                amount_cents=amount_cents,
                balance_after_cents=txn.balance_after_cents,
                external_reference=external_reference,
                credited_at=txn.created_at,
            )
        )
        return txn

    def debit(self, amount_cents: int, order_id: str, description: str = "Order payment") -> WalletTransaction:
        """Take funds for an order. Fails closed when the balance cannot cover it."""
        self._assert_positive(amount_cents)
        if not self.can_cover(amount_cents):
            raise ValidationError({"balance_cents": [insufficient_funds_message(self.balance_cents, amount_cents)]})

        txn = self._append(
            TransactionType.DEBIT,
            amount_cents,
            self.balance_cents - amount_cents,
            description,
            order_id=order_id,
        )
        self.raise_(
            WalletDebited(
                wallet_id=str(self.id),
                merchant_id=str(self.merchant_id),
                transaction_id=str(txn.id),
                order_id=order_id,
                amount_cents=amount_cents,
                balance_after_cents=txn.balance_after_cents,
                debited_at=txn.created_at,
            )
        )

        threshold = low_balance_threshold_cents()
        if self.balance_cents < threshold:
            self.raise_(
                WalletBalanceLow(
                    wallet_id=str(self.id),
                    merchant_id=str(self.merchant_id),
                    balance_cents=self.balance_cents,
                    threshold_cents=threshold,
                    detected_at=txn.created_at,
                )
            )
        return txn

    def refund(self, amount_cents: int, order_id: str, description: str = "Order refund") -> WalletTransaction:
        """Return funds from a prior debit."""
        self._assert_positive(amount_cents)
        txn = self._append(
            TransactionType.REFUND,
            amount_cents,
            self.balance_cents + amount_cents,
            description,
            order_id=order_id,
        )
        self.raise_(
            WalletRefunded(
                wallet_id=str(self.id),
                merchant_id=str(self.merchant_id),
                transaction_id=str(txn.id),
                order_id=order_id,
                amount_cents=amount_cents,
                balance_after_cents=txn.balance_after_cents,
                refunded_at=txn.created_at,
            )
        )
        return txn
