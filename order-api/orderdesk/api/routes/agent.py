import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
from orderdesk.api.deps import get_clock, get_db, get_gateway
from orderdesk.core.clock import Clock
from orderdesk.core.config import settings
from orderdesk.core.security import require_agent_key
from orderdesk.db.models import OrderStatus
from orderdesk.schemas.order import (
    OrderClaimBatchOut,
    OrderClaimBatchRequest,
    OrderClaimOut,
    OrderOut,
    OrderPrintedOut,
)
from orderdesk.services.messaging import MessagingGateway
from orderdesk.services.notifications import notify_customer_on_printed
from orderdesk.services.orders import (
    InvalidTransition,
    MarkPrintedOutcome,
    OrderNotFound,
    StoreNotFound,
    claim_next_orders,
    claim_order,
    get_active_store,
    list_orders,
    mark_printed,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/agent", dependencies=[Depends(require_agent_key)])

def _store_or_404(db: Session, slug: str):
    try:
        return get_active_store(db, slug)
    except StoreNotFound:
        raise HTTPException(status_code=404, detail="store not found")

@router.get("/{slug}/orders", response_model=list[OrderOut])
def get_orders(slug: str, status: OrderStatus = OrderStatus.NEW, db: Session = Depends(get_db)):
    store = _store_or_404(db, slug)
    return list_orders(db, store.store_id, status)

@router.post("/{slug}/orders/claim", response_model=OrderClaimBatchOut)
def claim_next(
    slug: str,
    body: OrderClaimBatchRequest,
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    """Polling agent: claim the oldest NEW orders of the store."""
    store = _store_or_404(db, slug)
    orders = claim_next_orders(db, store.store_id, clock.now(), limit=body.limit)
    return OrderClaimBatchOut(orders=[OrderOut.model_validate(o) for o in orders])

@router.post("/orders/{order_id}/claim", response_model=OrderClaimOut)
def claim(order_id: int, db: Session = Depends(get_db), clock: Clock = Depends(get_clock)):
    try:
        outcome = claim_order(db, order_id, clock.now())
    except OrderNotFound:
        raise HTTPException(status_code=404, detail="order not found")
    return OrderClaimOut(order_id=order_id, outcome=outcome)

@router.post("/orders/{order_id}/printed", response_model=OrderPrintedOut)
def printed(
    order_id: int,
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
    gateway: MessagingGateway | None = Depends(get_gateway),
):
    try:
        outcome = mark_printed(db, order_id)
    except OrderNotFound:
        raise HTTPException(status_code=404, detail="order not found")
    except InvalidTransition as e:
        raise HTTPException(status_code=409, detail=str(e))

    notification = None
    if outcome == MarkPrintedOutcome.PRINTED and gateway is not None:
        result = notify_customer_on_printed(
            db, order_id, gateway, clock.now(), lease_seconds=settings.NOTIFY_LEASE_SECONDS
        )
        notification = result.reason.value

    return OrderPrintedOut(order_id=order_id, outcome=outcome, notification=notification)
