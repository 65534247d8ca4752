from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta

from sqlalchemy.orm import Session

from orderdesk.db.models import Order, OrderStatus

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RecoverStuckOrdersResult:
    recovered_orders: int
    cutoff: datetime
    threshold_minutes: int


def recover_stuck_orders(
    db: Session,
    now: datetime,
    threshold_minutes: int = 1,
    log: logging.Logger | None = None,
) -> RecoverStuckOrdersResult:
    """Move NEW orders nobody claimed within the threshold to PRINTING.

    Liveness repair for agents that crashed or never polled. The update is
    conditioned on the order still being NEW and unclaimed, so a racing agent
    claim and this sweep can't both win; re-running it is a no-op.
    """
    log = log or logger
    cutoff = now - timedelta(minutes=threshold_minutes)

    recovered = (
        db.query(Order)
        .filter(Order.status == OrderStatus.NEW)
        .filter(Order.printing_claimed_at.is_(None))
        .filter(Order.created_at <= cutoff)
        .update(
            {Order.status: OrderStatus.PRINTING, Order.printing_claimed_at: now},
            synchronize_session=False,
        )
    )
    db.commit()

    log.info(
        f"recover_stuck_orders: execution complete recovered_orders={recovered} "
        f"cutoff={cutoff.isoformat()} threshold_minutes={threshold_minutes}"
    )
    return RecoverStuckOrdersResult(
        recovered_orders=recovered,
        cutoff=cutoff,
        threshold_minutes=threshold_minutes,
    )
