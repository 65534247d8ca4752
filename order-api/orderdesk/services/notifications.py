"""Exactly-once "your order was printed" message to the customer.

Preconditions that fail are ordinary outcomes (``NotifyReason``), never
exceptions. Delivery goes through a ``MessagingGateway``; a gateway failure
leaves ``customer_notified_at`` null so the next notify sweep retries it.

Two dispatchers racing on the same order (an agent's mark-printed request and
an overlapping sweep, say) are kept apart by a short send lease on
``notify_lease_at``, owned through ``notify_lease_id``; the notified marker
itself is only ever set where it is still null.
"""

from __future__ import annotations

import enum
import logging
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta

from sqlalchemy import or_
from sqlalchemy.orm import Session, selectinload

from orderdesk.db.models import (
    FulfillmentType,
    Order,
    OrderItem,
    OrderStatus,
    PaymentMethod,
    StoreBotConfig,
    StorePaymentSettings,
)
from orderdesk.services.messaging import MessagingError, MessagingGateway
from orderdesk.services.templates import (
    DEFAULT_CONFIRMATION_TEMPLATE,
    DEFAULT_PIX_TEMPLATE,
    PIX_SLOTS,
    confirmation_values,
    render_template,
)
from orderdesk.utils.phone import normalize_phone_br

logger = logging.getLogger(__name__)

DEFAULT_LEASE_SECONDS = 120


class NotifyReason(str, enum.Enum):
    SENT = "sent"
    NOT_FOUND = "not_found"
    STATUS_NOT_PRINTED = "status_not_printed"
    ALREADY_NOTIFIED = "already_notified"
    DINE_IN = "dine_in"
    INVALID_PHONE = "invalid_phone"
    BOT_DISABLED = "bot_disabled"
    EMPTY_MESSAGE = "empty_message"
    IN_PROGRESS = "in_progress"
    SEND_FAILED = "send_failed"


@dataclass(frozen=True)
class NotifyResult:
    sent: bool
    reason: NotifyReason


def _skip(reason: NotifyReason, order_id: int, log: logging.Logger) -> NotifyResult:
    log.debug(f"notify_customer_on_printed: skipped order_id={order_id} reason={reason.value}")
    return NotifyResult(sent=False, reason=reason)


def _acquire_lease(db: Session, order_id: int, now: datetime, lease_seconds: int) -> str | None:
    """Take the send lease; returns its owner token, or None if someone holds it."""
    expired_before = now - timedelta(seconds=lease_seconds)
    lease_id = secrets.token_hex(16)
    updated = (
        db.query(Order)
        .filter(Order.order_id == order_id)
        .filter(Order.customer_notified_at.is_(None))
        .filter(or_(Order.notify_lease_at.is_(None), Order.notify_lease_at < expired_before))
        .update({Order.notify_lease_at: now, Order.notify_lease_id: lease_id}, synchronize_session=False)
    )
    db.commit()
    return lease_id if updated else None


def _release_lease(db: Session, order_id: int, lease_id: str) -> None:
    # matched on the token: DATETIME columns may round the stored lease time
    (
        db.query(Order)
        .filter(Order.order_id == order_id)
        .filter(Order.notify_lease_id == lease_id)
        .update({Order.notify_lease_at: None, Order.notify_lease_id: None}, synchronize_session=False)
    )
    db.commit()


def _mark_notified(db: Session, order_id: int, now: datetime) -> bool:
    updated = (
        db.query(Order)
        .filter(Order.order_id == order_id)
        .filter(Order.customer_notified_at.is_(None))
        .update({Order.customer_notified_at: now}, synchronize_session=False)
    )
    db.commit()
    return bool(updated)


def notify_customer_on_printed(
    db: Session,
    order_id: int,
    gateway: MessagingGateway,
    now: datetime,
    *,
    lease_seconds: int = DEFAULT_LEASE_SECONDS,
    log: logging.Logger | None = None,
) -> NotifyResult:
    log = log or logger

    order = (
        db.query(Order)
        .options(selectinload(Order.items).selectinload(OrderItem.options))
        .filter(Order.order_id == order_id)
        .first()
    )

    if not order:
        log.warning(f"notify_customer_on_printed: order not found order_id={order_id}")
        return NotifyResult(sent=False, reason=NotifyReason.NOT_FOUND)

    if order.status != OrderStatus.PRINTED:
        return _skip(NotifyReason.STATUS_NOT_PRINTED, order_id, log)

    if order.customer_notified_at is not None:
        return _skip(NotifyReason.ALREADY_NOTIFIED, order_id, log)

    if order.table_ref or order.fulfillment_type == FulfillmentType.DINE_IN:
        return _skip(NotifyReason.DINE_IN, order_id, log)

    phone = normalize_phone_br(order.customer_phone)
    if not phone:
        return _skip(NotifyReason.INVALID_PHONE, order_id, log)

    bot_config = db.query(StoreBotConfig).filter(StoreBotConfig.store_id == order.store_id).first()
    if not bot_config or not bot_config.enabled or not bot_config.send_order_confirmation:
        return _skip(NotifyReason.BOT_DISABLED, order_id, log)

    values = confirmation_values(order, include_receipt_link=bot_config.send_receipt_link)
    message = render_template(bot_config.order_template or DEFAULT_CONFIRMATION_TEMPLATE, values)
    if not message:
        return _skip(NotifyReason.EMPTY_MESSAGE, order_id, log)

    store_ref = order.store.slug
    store_id = order.store_id
    payment_method = order.payment_method

    lease_id = _acquire_lease(db, order_id, now, lease_seconds)
    if lease_id is None:
        return _skip(NotifyReason.IN_PROGRESS, order_id, log)

    try:
        gateway.send_text(store_ref, phone, message)
    except MessagingError as e:
        _release_lease(db, order_id, lease_id)
        log.error(
            f"notify_customer_on_printed: failed to send whatsapp "
            f"order_id={order_id} store={store_ref} err={e}"
        )
        return NotifyResult(sent=False, reason=NotifyReason.SEND_FAILED)

    if not _mark_notified(db, order_id, now):
        log.warning(f"notify_customer_on_printed: order_id={order_id} was already marked notified")

    if payment_method == PaymentMethod.PIX and bot_config.pix_message_enabled:
        _send_pix_instructions(db, gateway, order_id, store_id, store_ref, phone, values, bot_config, log)

    log.info(f"notify_customer_on_printed: sent order_id={order_id} store={store_ref}")
    return NotifyResult(sent=True, reason=NotifyReason.SENT)


def _send_pix_instructions(
    db: Session,
    gateway: MessagingGateway,
    order_id: int,
    store_id: int,
    store_ref: str,
    phone: str,
    values: dict[str, str],
    bot_config: StoreBotConfig,
    log: logging.Logger,
) -> None:
    payment = db.query(StorePaymentSettings).filter(StorePaymentSettings.store_id == store_id).first()
    if not payment or not payment.pix_key:
        return

    pix_message = render_template(
        bot_config.pix_template or DEFAULT_PIX_TEMPLATE,
        {
            **values,
            "pixKey": payment.pix_key,
            "pixName": payment.pix_name or "",
            "pixBank": payment.pix_bank or "",
        },
        slots=PIX_SLOTS,
    )
    if not pix_message:
        return

    try:
        gateway.send_text(store_ref, phone, pix_message)
    except MessagingError as e:
        # confirmation already went out and the order stays notified
        log.warning(
            f"notify_customer_on_printed: pix instructions not sent "
            f"order_id={order_id} store={store_ref} err={e}"
        )
