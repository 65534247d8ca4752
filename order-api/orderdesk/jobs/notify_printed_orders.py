from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta

from sqlalchemy.orm import Session

from orderdesk.db.models import Order, OrderStatus
from orderdesk.services.messaging import MessagingGateway
from orderdesk.services.notifications import (
    DEFAULT_LEASE_SECONDS,
    notify_customer_on_printed,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class NotifyPrintedOrdersResult:
    found: int
    sent: int
    lookback_days: int
    cutoff: datetime


def notify_printed_orders(
    db: Session,
    gateway: MessagingGateway,
    now: datetime,
    lookback_days: int = 2,
    batch_size: int = 200,
    lease_seconds: int = DEFAULT_LEASE_SECONDS,
    log: logging.Logger | None = None,
) -> NotifyPrintedOrdersResult:
    """Backlog sweep: retry the customer message for recent PRINTED orders.

    Newest first, one page per run. Orders are dispatched one by one; an
    unexpected error on one order is logged and the rest of the page still
    runs.
    """
    log = log or logger
    cutoff = now - timedelta(days=lookback_days)

    order_ids = [
        oid
        for (oid,) in db.query(Order.order_id)
        .filter(Order.status == OrderStatus.PRINTED)
        .filter(Order.customer_notified_at.is_(None))
        .filter(Order.customer_phone.is_not(None))
        .filter(Order.created_at >= cutoff)
        .order_by(Order.created_at.desc(), Order.order_id.desc())
        .limit(batch_size)
        .all()
    ]

    sent = 0
    for order_id in order_ids:
        try:
            result = notify_customer_on_printed(
                db, order_id, gateway, now, lease_seconds=lease_seconds, log=log
            )
        except Exception:
            db.rollback()
            log.exception(f"notify_printed_orders: dispatch crashed order_id={order_id}")
            continue
        if result.sent:
            sent += 1

    log.info(
        f"notify_printed_orders: execution complete found={len(order_ids)} sent={sent} "
        f"lookback_days={lookback_days} cutoff={cutoff.isoformat()}"
    )
    return NotifyPrintedOrdersResult(
        found=len(order_ids),
        sent=sent,
        lookback_days=lookback_days,
        cutoff=cutoff,
    )
