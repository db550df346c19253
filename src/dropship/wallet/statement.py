"""Wallet read side: balance lookup and paged transaction history."""

from protean.exceptions import ObjectNotFoundError
from protean.utils.globals import current_domain

from dropship.wallet.ledger import OpenWallet
from dropship.wallet.wallet import Wallet, WalletTransaction

DEFAULT_PAGE_SIZE = 50


def get_wallet_balance(merchant_id: str) -> Wallet:
    """Return the merchant's wallet, opening an empty one on first access."""
    repo = current_domain.repository_for(Wallet)
    try:
        return repo.get(merchant_id)
    except ObjectNotFoundError:
        current_domain.process(OpenWallet(merchant_id=merchant_id), asynchronous=False)
        return repo.get(merchant_id)


def get_wallet_transactions(merchant_id: str, limit: int = DEFAULT_PAGE_SIZE, offset: int = 0) -> dict:
    """Newest-first page of a merchant's ledger rows plus the total row count."""
    result = (
        current_domain.repository_for(WalletTransaction)
        ._dao.query.filter(merchant_id=merchant_id)
        .order_by("-sequence")
        .offset(offset)
        .limit(limit)
        .all()
    )
    return {"transactions": result.items, "total": result.total}
