from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
from orderdesk.api.deps import get_clock, get_db, get_gateway
from orderdesk.core.clock import Clock
from orderdesk.core.config import settings
from orderdesk.core.security import require_admin_key
from orderdesk.jobs.notify_printed_orders import notify_printed_orders
from orderdesk.jobs.purge_old_orders import purge_old_orders
from orderdesk.jobs.recover_stuck_orders import recover_stuck_orders
from orderdesk.schemas.jobs import NotifyPrintedOrdersOut, PurgeOldOrdersOut, RecoverStuckOrdersOut
from orderdesk.services.messaging import MessagingGateway

# External triggers (cron) for the same sweeps the runner loop schedules
router = APIRouter(prefix="/jobs", dependencies=[Depends(require_admin_key)])

@router.post("/recover-stuck-orders", response_model=RecoverStuckOrdersOut)
def trigger_recover_stuck_orders(db: Session = Depends(get_db), clock: Clock = Depends(get_clock)):
    return recover_stuck_orders(db, clock.now(), threshold_minutes=settings.STUCK_ORDER_THRESHOLD_MINUTES)

@router.post("/notify-printed-orders", response_model=NotifyPrintedOrdersOut)
def trigger_notify_printed_orders(
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
    gateway: MessagingGateway | None = Depends(get_gateway),
):
    if gateway is None:
        raise HTTPException(status_code=503, detail="messaging gateway is not configured")
    return notify_printed_orders(
        db,
        gateway,
        clock.now(),
        lookback_days=settings.NOTIFY_LOOKBACK_DAYS,
        batch_size=settings.NOTIFY_BATCH_SIZE,
        lease_seconds=settings.NOTIFY_LEASE_SECONDS,
    )

@router.post("/purge-old-orders", response_model=PurgeOldOrdersOut)
def trigger_purge_old_orders(db: Session = Depends(get_db), clock: Clock = Depends(get_clock)):
    return purge_old_orders(db, clock.now(), retention_days=settings.ORDER_RETENTION_DAYS)
