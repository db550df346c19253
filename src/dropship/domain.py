"""Dropship bounded context: Merchant Order Fulfillment and Wallet Ledger.

Routes paid merchant orders to the upstream suppliers that ship them and
pays the supplier cost out of a prepaid per-merchant wallet. Each supplier
order is then followed through to delivery. Uses CQRS: the wallet ledger rows and
supplier order state are the system of record, not an event stream.
"""

import structlog
from protean.domain import Domain

dropship = Domain(name="dropship")

logger = structlog.get_logger(__name__)
