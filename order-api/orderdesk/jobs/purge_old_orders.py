from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta

from sqlalchemy.orm import Session

from orderdesk.db.models import Order, OrderItem, OrderItemOption, OrderStatus

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PurgeOldOrdersResult:
    deleted_orders: int
    deleted_items: int
    deleted_options: int
    cutoff: datetime
    retention_days: int


def purge_old_orders(
    db: Session,
    now: datetime,
    retention_days: int = 7,
    log: logging.Logger | None = None,
) -> PurgeOldOrdersResult:
    """Delete PRINTED orders older than the retention window, children first.

    Orders still NEW/PRINTING are live operational state and never purged,
    whatever their age. Everything is deleted in one transaction.
    """
    log = log or logger
    cutoff = now - timedelta(days=retention_days)

    ids = [
        oid
        for (oid,) in db.query(Order.order_id)
        .filter(Order.status == OrderStatus.PRINTED)
        .filter(Order.created_at < cutoff)
        .all()
    ]

    if not ids:
        db.rollback()
        log.info(
            f"purge_old_orders: no orders to delete "
            f"retention_days={retention_days} cutoff={cutoff.isoformat()}"
        )
        return PurgeOldOrdersResult(0, 0, 0, cutoff, retention_days)

    item_ids = db.query(OrderItem.order_item_id).filter(OrderItem.order_id.in_(ids))
    try:
        deleted_options = (
            db.query(OrderItemOption)
            .filter(OrderItemOption.order_item_id.in_(item_ids.scalar_subquery()))
            .delete(synchronize_session=False)
        )
        deleted_items = (
            db.query(OrderItem)
            .filter(OrderItem.order_id.in_(ids))
            .delete(synchronize_session=False)
        )
        deleted_orders = (
            db.query(Order)
            .filter(Order.order_id.in_(ids))
            .delete(synchronize_session=False)
        )
        db.commit()
    except Exception:
        db.rollback()
        raise

    log.info(
        f"purge_old_orders: orders purged deleted_orders={deleted_orders} "
        f"deleted_items={deleted_items} deleted_options={deleted_options} "
        f"retention_days={retention_days} cutoff={cutoff.isoformat()}"
    )
    return PurgeOldOrdersResult(
        deleted_orders=deleted_orders,
        deleted_items=deleted_items,
        deleted_options=deleted_options,
        cutoff=cutoff,
        retention_days=retention_days,
    )
