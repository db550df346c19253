"""Wallet ledger commands and the ledger API used by fulfillment.

The command handlers do the work inside a unit of work; the module-level
functions are what the rest of the context calls. They rebuild and
re-dispatch the command when a concurrent writer won the race for the
wallet (``ExpectedVersionError``), so the sufficiency check is always made
against the balance that actually gets saved.
"""

import os
from collections.abc import Callable
from dataclasses import dataclass

import structlog
from protean import handle
from protean.exceptions import ExpectedVersionError, ObjectNotFoundError, ValidationError
from protean.fields import Identifier, Integer, String
from protean.utils.globals import current_domain

from dropship.domain import dropship
from dropship.wallet.wallet import TransactionType, Wallet, WalletTransaction

logger = structlog.get_logger(__name__)

DEFAULT_WRITE_MAX_ATTEMPTS = 5


def write_max_attempts() -> int:
    return max(1, int(os.getenv("WALLET_WRITE_MAX_ATTEMPTS", DEFAULT_WRITE_MAX_ATTEMPTS)))


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------
@dataclass(frozen=True)
class LedgerEntry:
    """A ledger row as reported back to callers.

    ``transaction_id`` is None for a zero top-up, which writes no row.
    """

    transaction_id: str | None
    transaction_type: str
    amount_cents: int
    balance_after_cents: int

    @classmethod
    def from_transaction(cls, txn: WalletTransaction) -> "LedgerEntry":
        return cls(
            transaction_id=str(txn.id),
            transaction_type=txn.transaction_type,
            amount_cents=txn.amount_cents,
            balance_after_cents=txn.balance_after_cents,
        )


@dataclass(frozen=True)
class DebitResult:
    """Outcome of a debit attempt. Insufficient funds is a result, not an exception."""

    success: bool
    transaction_id: str | None = None
    balance_after_cents: int | None = None
    error: str | None = None


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------
@dropship.command(part_of="Wallet")
class OpenWallet:
    """Open a wallet for a merchant if one does not exist yet."""

    merchant_id = Identifier(required=True)
    currency = String(max_length=3, default="USD")


@dropship.command(part_of="Wallet")
class CreditWallet:
    """Top up a merchant's wallet."""

    merchant_id = Identifier(required=True)
    amount_cents = Integer(required=True)
    description = String(max_length=500, default="Wallet top-up")
    external_reference = String(max_length=255)


@dropship.command(part_of="Wallet")
class DebitWallet:
    """Charge a merchant's wallet for an order's supplier cost."""

    merchant_id = Identifier(required=True)
    order_id = Identifier(required=True)
    amount_cents = Integer(required=True)
    description = String(max_length=500, default="Order payment")


@dropship.command(part_of="Wallet")
class RefundWallet:
    """Return a prior order debit to a merchant's wallet."""

    merchant_id = Identifier(required=True)
    order_id = Identifier(required=True)
    amount_cents = Integer(required=True)
    description = String(max_length=500, default="Order refund")


# ---------------------------------------------------------------------------
# Command Handler
# ---------------------------------------------------------------------------
def _load_or_open(repo, merchant_id: str, currency: str = "USD") -> Wallet:
    try:
        return repo.get(merchant_id)
    except ObjectNotFoundError:
        logger.info("Opening wallet", merchant_id=merchant_id)
        return Wallet.open(merchant_id=merchant_id, currency=currency)


@dropship.command_handler(part_of=Wallet)
class WalletLedgerHandler:
    @handle(OpenWallet)
    def open_wallet(self, command):
        repo = current_domain.repository_for(Wallet)
        wallet = _load_or_open(repo, command.merchant_id, command.currency or "USD")
        if not wallet.state_.is_persisted:
            repo.add(wallet)
        return str(wallet.id)

    @handle(CreditWallet)
    def credit_wallet(self, command):
        repo = current_domain.repository_for(Wallet)
        wallet = _load_or_open(repo, command.merchant_id)
        txn = wallet.credit(
            command.amount_cents,
            description=command.description or "Wallet top-up",
            external_reference=command.external_reference,
        )
        repo.add(wallet)
        return LedgerEntry.from_transaction(txn)

    @handle(DebitWallet)
    def debit_wallet(self, command):
        repo = current_domain.repository_for(Wallet)
        wallet = _load_or_open(repo, command.merchant_id)
        txn = wallet.debit(
            command.amount_cents,
            order_id=command.order_id,
            description=command.description or "Order payment",
        )
        repo.add(wallet)
        return LedgerEntry.from_transaction(txn)

    @handle(RefundWallet)
    def refund_wallet(self, command):
        repo = current_domain.repository_for(Wallet)
        wallet = _load_or_open(repo, command.merchant_id)
        txn = wallet.refund(
            command.amount_cents,
            order_id=command.order_id,
            description=command.description or "Order refund",
        )
        repo.add(wallet)
        return LedgerEntry.from_transaction(txn)


# ---------------------------------------------------------------------------
# Ledger API
# ---------------------------------------------------------------------------
def _process_with_retry(build_command: Callable, merchant_id: str):
    """Dispatch a freshly built wallet command, retrying on version conflicts."""
    attempts = write_max_attempts()
    for attempt in range(1, attempts + 1):
        try:
            return current_domain.process(build_command(), asynchronous=False)
        except ExpectedVersionError:
            if attempt == attempts:
                logger.error("Wallet write conflict, giving up", merchant_id=merchant_id, attempts=attempts)
                raise
            logger.warning("Wallet write conflict, retrying", merchant_id=merchant_id, attempt=attempt)


def credit_wallet(
    merchant_id: str,
    amount_cents: int,
    description: str = "Wallet top-up",
    external_reference: str | None = None,
) -> LedgerEntry:
    """Top up the wallet. A zero amount is a no-op that reports the current balance."""
    if amount_cents == 0 and not isinstance(amount_cents, bool):
        current_domain.process(OpenWallet(merchant_id=merchant_id), asynchronous=False)
        wallet = current_domain.repository_for(Wallet).get(merchant_id)
        return LedgerEntry(
            transaction_id=None,
            transaction_type=TransactionType.CREDIT.value,
            amount_cents=0,
            balance_after_cents=wallet.balance_cents,
        )

    Wallet._assert_positive(amount_cents)
    entry = _process_with_retry(
        lambda: CreditWallet(
            merchant_id=merchant_id,
            amount_cents=amount_cents,
            description=description,
            external_reference=external_reference,
        ),
        merchant_id,
    )
    logger.info(
        "Wallet credited",
        merchant_id=merchant_id,
        amount_cents=amount_cents,
        balance_after_cents=entry.balance_after_cents,
    )
    return entry


def debit_wallet(
    merchant_id: str,
    order_id: str,
    amount_cents: int,
    description: str = "Order payment",
) -> DebitResult:
    """Charge the wallet. Returns a failed result instead of raising when funds are short."""
    Wallet._assert_positive(amount_cents)
    try:
        entry = _process_with_retry(
            lambda: DebitWallet(
                merchant_id=merchant_id,
                order_id=order_id,
                amount_cents=amount_cents,
                description=description,
            ),
            merchant_id,
        )
    except ValidationError as exc:
        error = "; ".join(msg for msgs in exc.messages.values() for msg in msgs)
        logger.info("Wallet debit declined", merchant_id=merchant_id, order_id=order_id, error=error)
        return DebitResult(success=False, error=error)

    logger.info(
        "Wallet debited",
        merchant_id=merchant_id,
        order_id=order_id,
        amount_cents=amount_cents,
        balance_after_cents=entry.balance_after_cents,
    )
    return DebitResult(
        success=True,
        transaction_id=entry.transaction_id,
        balance_after_cents=entry.balance_after_cents,
    )


def refund_wallet(
    merchant_id: str,
    order_id: str,
    amount_cents: int,
    description: str = "Order refund",
) -> LedgerEntry:
    Wallet._assert_positive(amount_cents)
    entry = _process_with_retry(
        lambda: RefundWallet(
            merchant_id=merchant_id,
            order_id=order_id,
            amount_cents=amount_cents,
            description=description,
        ),
        merchant_id,
    )
    logger.info(
        "Wallet refunded",
        merchant_id=merchant_id,
        order_id=order_id,
        amount_cents=amount_cents,
        balance_after_cents=entry.balance_after_cents,
    )
    return entry
