from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
from orderdesk.api.deps import get_clock, get_db
from orderdesk.core.clock import Clock
from orderdesk.core.security import require_agent_key
from orderdesk.db.models import PrintJobStatus
from orderdesk.schemas.print_job import PrintJobCreate, PrintJobFail, PrintJobOut
from orderdesk.services.orders import InvalidTransition, OrderNotFound, StoreNotFound, get_active_store
from orderdesk.services.print_jobs import (
    PrintJobNotFound,
    enqueue_print_job,
    list_print_jobs,
    mark_print_job_failed,
    mark_print_job_printed,
)

router = APIRouter(prefix="/agent", dependencies=[Depends(require_agent_key)])

@router.post("/{slug}/print-jobs", response_model=PrintJobOut, status_code=201)
def create_print_job(
    slug: str,
    body: PrintJobCreate,
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    try:
        store = get_active_store(db, slug)
        return enqueue_print_job(
            db,
            store.store_id,
            body.job_type,
            clock.now(),
            order_id=body.order_id,
            table_ref=body.table_ref,
            table_session_ref=body.table_session_ref,
        )
    except StoreNotFound:
        raise HTTPException(status_code=404, detail="store not found")
    except OrderNotFound:
        raise HTTPException(status_code=404, detail="order not found")

@router.get("/{slug}/print-jobs", response_model=list[PrintJobOut])
def get_print_jobs(slug: str, status: PrintJobStatus = PrintJobStatus.QUEUED, db: Session = Depends(get_db)):
    try:
        store = get_active_store(db, slug)
    except StoreNotFound:
        raise HTTPException(status_code=404, detail="store not found")
    return list_print_jobs(db, store.store_id, status)

@router.post("/print-jobs/{print_job_id}/printed", response_model=PrintJobOut)
def print_job_printed(print_job_id: int, db: Session = Depends(get_db), clock: Clock = Depends(get_clock)):
    try:
        return mark_print_job_printed(db, print_job_id, clock.now())
    except PrintJobNotFound:
        raise HTTPException(status_code=404, detail="print job not found")
    except InvalidTransition as e:
        raise HTTPException(status_code=409, detail=str(e))

@router.post("/print-jobs/{print_job_id}/failed", response_model=PrintJobOut)
def print_job_failed(
    print_job_id: int,
    body: PrintJobFail,
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    try:
        return mark_print_job_failed(db, print_job_id, clock.now(), body.error)
    except PrintJobNotFound:
        raise HTTPException(status_code=404, detail="print job not found")
    except InvalidTransition as e:
        raise HTTPException(status_code=409, detail=str(e))
