"""Supplier order tracking: polling one order and the periodic sweep.

``refresh_pending_tracking`` is designed to be triggered periodically by an
external scheduler (cron, K8s CronJob) via the maintenance API endpoint or
``manage.py refresh-tracking``. It polls every supplier order that is still
moving (SUBMITTED or SHIPPED) and folds the answer into the supplier order
and the parent merchant order's line items.
"""

import json
from dataclasses import dataclass

import structlog
from protean import handle
from protean.exceptions import ObjectNotFoundError
from protean.fields import DateTime, Identifier, String
from protean.utils.globals import current_domain

from dropship.domain import dropship
from dropship.merchant_order.order import ItemFulfillmentStatus
from dropship.merchant_order.progress import UpdateItemFulfillment
from dropship.supplier_order.supplier_order import TRACKABLE_STATUSES, SupplierOrder
from dropship.suppliers import resolve_adapter
from dropship.suppliers.port import TrackingInfo, TrackingStatus

logger = structlog.get_logger(__name__)

SWEEP_PAGE_SIZE = 100

# Tracking → fulfillment flag of the merchant order items the supplier order
# covers. None leaves the items untouched.
ITEM_STATUS_FOR_TRACKING = {
    TrackingStatus.PENDING: None,
    TrackingStatus.IN_TRANSIT: ItemFulfillmentStatus.FULFILLED,
    TrackingStatus.OUT_FOR_DELIVERY: ItemFulfillmentStatus.FULFILLED,
    TrackingStatus.DELIVERED: ItemFulfillmentStatus.FULFILLED,
    TrackingStatus.EXCEPTION: ItemFulfillmentStatus.UNFULFILLED,
}


@dataclass(frozen=True)
class SweepReport:
    checked: int
    refreshed: int
    failed: int


@dropship.command(part_of="SupplierOrder")
class RecordTrackingUpdate:
    """Fold a tracking poll result into a supplier order."""

    supplier_order_id = Identifier(required=True)
    tracking_status = String(required=True, max_length=50)
    tracking_number = String(max_length=255)
    carrier = String(max_length=100)
    tracking_url = String(max_length=1000)
    last_update = DateTime()


@dropship.command_handler(part_of=SupplierOrder)
class SupplierTrackingHandler:
    @handle(RecordTrackingUpdate)
    def record_tracking(self, command):
        repo = current_domain.repository_for(SupplierOrder)
        so = repo.get(command.supplier_order_id)
        moved = so.apply_tracking(
            tracking_status=command.tracking_status,
            tracking_number=command.tracking_number,
            carrier=command.carrier,
            tracking_url=command.tracking_url,
            last_update=command.last_update,
        )
        repo.add(so)
        return moved


def refresh_tracking(supplier_order_id: str) -> TrackingInfo | None:
    """Poll the supplier for one order and apply what it reports.

    Returns None without calling the supplier when the order is terminal or
    was never accepted upstream, and None without changing anything when
    the supplier cannot be reached or has nothing to report yet.
    """
    try:
        so = current_domain.repository_for(SupplierOrder).get(supplier_order_id)
    except ObjectNotFoundError:
        logger.warning("Supplier order not found", supplier_order_id=supplier_order_id)
        return None

    if so.is_terminal:
        logger.debug("Supplier order is terminal, skipping", supplier_order_id=supplier_order_id, status=so.status)
        return None
    if not so.upstream_order_id:
        return None

    adapter = resolve_adapter(str(so.supplier_id))
    if adapter is None:
        return None

    try:
        tracking = adapter.get_tracking(so.upstream_order_id)
    except Exception as exc:  # a poll failure must not stop the caller
        logger.warning(
            "Tracking poll failed",
            supplier_order_id=supplier_order_id,
            supplier_id=str(so.supplier_id),
            error=str(exc),
        )
        return None

    if tracking is None:
        return None

    current_domain.process(
        RecordTrackingUpdate(
            supplier_order_id=supplier_order_id,
            tracking_status=tracking.status.value,
            tracking_number=tracking.tracking_number,
            carrier=tracking.carrier,
            tracking_url=tracking.tracking_url,
            last_update=tracking.last_update,
        ),
        asynchronous=False,
    )

    item_status = ITEM_STATUS_FOR_TRACKING[tracking.status]
    if item_status is not None:
        current_domain.process(
            UpdateItemFulfillment(
                order_id=str(so.order_id),
                product_ids=json.dumps(so.product_ids()),
                item_status=item_status.value,
                tracking_number=tracking.tracking_number,
                tracking_url=tracking.tracking_url,
            ),
            asynchronous=False,
        )

    logger.info(
        "Supplier tracking refreshed",
        supplier_order_id=supplier_order_id,
        tracking_status=tracking.status.value,
        tracking_number=tracking.tracking_number,
    )
    return tracking


def _trackable_supplier_order_ids() -> list[str]:
    dao = current_domain.repository_for(SupplierOrder)._dao
    ids = []
    for status in sorted(TRACKABLE_STATUSES, key=lambda s: s.value):
        offset = 0
        while True:
            page = (
                dao.query.filter(status=status.value)
                .order_by("created_at")
                .offset(offset)
                .limit(SWEEP_PAGE_SIZE)
                .all()
            )
            ids.extend(str(so.id) for so in page.items if so.upstream_order_id)
            offset += SWEEP_PAGE_SIZE
            if offset >= page.total:
                break
    return ids


def refresh_pending_tracking() -> SweepReport:
    """Refresh tracking for every supplier order still in transit.

    One order's failure is logged and the sweep moves on to the next.
    """
    supplier_order_ids = _trackable_supplier_order_ids()
    logger.info(
        "Refreshing supplier tracking",
        count=len(supplier_order_ids),
        statuses=sorted(s.value for s in TRACKABLE_STATUSES),
    )

    refreshed = 0
    failed = 0
    for supplier_order_id in supplier_order_ids:
        try:
            if refresh_tracking(supplier_order_id) is not None:
                refreshed += 1
        except Exception as exc:
            failed += 1
            logger.exception(
                "Failed to refresh supplier tracking",
                supplier_order_id=supplier_order_id,
                error=str(exc) or exc.__class__.__name__,
            )

    report = SweepReport(checked=len(supplier_order_ids), refreshed=refreshed, failed=failed)
    logger.info(
        "Tracking refresh complete",
        checked=report.checked,
        refreshed=report.refreshed,
        failed=report.failed,
    )
    return report
