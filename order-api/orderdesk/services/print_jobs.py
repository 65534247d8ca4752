"""Discrete print tasks (kitchen tickets, cashier table summaries).

Independent from the order status: a ticket can fail while its order is
already PRINTED, and a failed ticket is never retried in place, the agent
queues a new one.
"""

from __future__ import annotations

import logging
from datetime import datetime

from sqlalchemy.orm import Session

from orderdesk.db.models import Order, PrintJob, PrintJobStatus, PrintJobType
from orderdesk.services.orders import InvalidTransition, OrderNotFound

logger = logging.getLogger(__name__)


class PrintJobNotFound(LookupError):
    pass


def enqueue_print_job(
    db: Session,
    store_id: int,
    job_type: PrintJobType,
    now: datetime,
    *,
    order_id: int | None = None,
    table_ref: str | None = None,
    table_session_ref: str | None = None,
) -> PrintJob:
    if job_type == PrintJobType.KITCHEN_ORDER:
        if order_id is None:
            raise ValueError("KITCHEN_ORDER jobs need an order_id")
        exists = (
            db.query(Order.order_id)
            .filter(Order.order_id == order_id)
            .filter(Order.store_id == store_id)
            .first()
        )
        if not exists:
            raise OrderNotFound(order_id)
    elif not table_ref:
        raise ValueError("CASHIER_TABLE_SUMMARY jobs need a table_ref")

    job = PrintJob(
        store_id=store_id,
        job_type=job_type,
        status=PrintJobStatus.QUEUED,
        order_id=order_id,
        table_ref=table_ref,
        table_session_ref=table_session_ref,
        error=None,
        created_at=now,
        updated_at=now,
    )
    db.add(job)
    db.commit()
    db.refresh(job)
    logger.info(f"print job queued: print_job_id={job.print_job_id} type={job_type.value} store_id={store_id}")
    return job


def list_print_jobs(
    db: Session, store_id: int, status: PrintJobStatus | None = PrintJobStatus.QUEUED
) -> list[PrintJob]:
    q = db.query(PrintJob).filter(PrintJob.store_id == store_id)
    if status:
        q = q.filter(PrintJob.status == status)
    return q.order_by(PrintJob.created_at.asc(), PrintJob.print_job_id.asc()).all()


def _finish(
    db: Session, print_job_id: int, target: PrintJobStatus, now: datetime, error: str | None
) -> PrintJob:
    values = {PrintJob.status: target, PrintJob.updated_at: now}
    if error is not None:
        values[PrintJob.error] = error[:512]

    updated = (
        db.query(PrintJob)
        .filter(PrintJob.print_job_id == print_job_id)
        .filter(PrintJob.status == PrintJobStatus.QUEUED)
        .update(values, synchronize_session=False)
    )
    db.commit()

    job = db.query(PrintJob).filter(PrintJob.print_job_id == print_job_id).first()
    if not job:
        raise PrintJobNotFound(print_job_id)
    if not updated and job.status != target:
        raise InvalidTransition(f"print job {print_job_id} is {job.status.value}, cannot become {target.value}")
    return job


def mark_print_job_printed(db: Session, print_job_id: int, now: datetime) -> PrintJob:
    return _finish(db, print_job_id, PrintJobStatus.PRINTED, now, None)


def mark_print_job_failed(db: Session, print_job_id: int, now: datetime, error: str | None = None) -> PrintJob:
    job = _finish(db, print_job_id, PrintJobStatus.FAILED, now, error or "unknown error")
    logger.warning(f"print job failed: print_job_id={print_job_id} error={job.error}")
    return job
