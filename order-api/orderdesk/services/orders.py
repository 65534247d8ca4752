"""Order lifecycle: NEW -> PRINTING -> PRINTED.

Every exclusive transition is a single conditional UPDATE ("set X where the
row is still in state S") so concurrent agents, the recovery sweep and the
notification sweep never need explicit locks. A conditional update that hits
zero rows is reported as an outcome, not raised, unless the row is in a state
the transition can never start from.
"""

from __future__ import annotations

import enum
import logging
import secrets
from datetime import datetime

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload

from orderdesk.db.models import (
    OptionGroup,
    OptionItem,
    Order,
    OrderItem,
    OrderItemOption,
    OrderStatus,
    Product,
    Store,
)
from orderdesk.services.pricing import PricingResult, SelectedOptionGroup, compute_price

logger = logging.getLogger(__name__)


class StoreNotFound(LookupError):
    pass


class OrderNotFound(LookupError):
    pass


class InvalidTransition(RuntimeError):
    pass


class PricingError(ValueError):
    pass


class ClaimOutcome(str, enum.Enum):
    CLAIMED = "CLAIMED"
    ALREADY_CLAIMED = "ALREADY_CLAIMED"


class MarkPrintedOutcome(str, enum.Enum):
    PRINTED = "PRINTED"
    ALREADY_PRINTED = "ALREADY_PRINTED"


def generate_receipt_token() -> str:
    return secrets.token_urlsafe(24)


def get_active_store(db: Session, slug: str) -> Store:
    store = db.query(Store).filter(Store.slug == slug).first()
    if not store or not store.is_active:
        raise StoreNotFound(slug)
    return store


# -----------------------
# Pricing glue
# -----------------------
def resolve_selection(
    product: Product, option_item_ids: list[int]
) -> tuple[list[SelectedOptionGroup], list[tuple[str, OptionItem]]]:
    """Map chosen option ids onto the product's groups, in catalog order."""
    chosen = set(option_item_ids)
    if len(chosen) != len(option_item_ids):
        raise PricingError("duplicate option selection")

    known = {item.option_item_id for group in product.option_groups for item in group.items}
    unknown = chosen - known
    if unknown:
        raise PricingError(f"options {sorted(unknown)} do not belong to product {product.product_id}")

    groups: list[SelectedOptionGroup] = []
    snapshots: list[tuple[str, OptionItem]] = []
    for group in product.option_groups:
        selected = [item for item in group.items if item.option_item_id in chosen]
        if not selected:
            continue
        groups.append(
            SelectedOptionGroup(
                name=group.name,
                role=group.role,
                price_deltas=tuple(item.price_delta_cents for item in selected),
            )
        )
        snapshots.extend((group.name, item) for item in selected)
    return groups, snapshots


def price_product(product: Product, option_item_ids: list[int]) -> tuple[PricingResult, list[tuple[str, OptionItem]]]:
    groups, snapshots = resolve_selection(product, option_item_ids)
    result = compute_price(product.pricing_rule, product.base_price_cents, groups)
    return result, snapshots


def get_orderable_product(db: Session, store: Store, product_id: int) -> Product:
    product = (
        db.query(Product)
        .options(selectinload(Product.option_groups).selectinload(OptionGroup.items))
        .filter(Product.product_id == product_id)
        .filter(Product.store_id == store.store_id)
        .filter(Product.is_active.is_(True))
        .first()
    )
    if not product:
        raise PricingError(f"product {product_id} is not available")
    return product


# -----------------------
# Create
# -----------------------
def _find_by_client_order_id(db: Session, store_id: int, client_order_id: str) -> Order | None:
    return (
        db.query(Order)
        .filter(Order.store_id == store_id)
        .filter(Order.client_order_id == client_order_id)
        .first()
    )


def create_order(db: Session, store: Store, payload, now: datetime) -> Order:
    """Price every line and insert a NEW order with item/option snapshots.

    ``payload`` is a ``schemas.order.OrderCreate``. A repeated
    ``client_order_id`` returns the order created by the first attempt.
    """
    if payload.client_order_id:
        existing = _find_by_client_order_id(db, store.store_id, payload.client_order_id)
        if existing:
            return existing

    items: list[OrderItem] = []
    total_cents = 0
    for line in payload.items:
        product = get_orderable_product(db, store, line.product_id)
        result, snapshots = price_product(product, line.option_item_ids)
        if not result.is_valid:
            raise PricingError(f"{product.name}: a flavor selection is required")

        items.append(
            OrderItem(
                product_id=product.product_id,
                product_name=product.name,
                quantity=line.quantity,
                unit_price_cents=result.unit_price_cents,
                notes=line.notes,
                options=[
                    OrderItemOption(
                        group_name=group_name,
                        item_name=item.name,
                        price_delta_cents=item.price_delta_cents,
                    )
                    for group_name, item in snapshots
                ],
            )
        )
        total_cents += result.unit_price_cents * line.quantity

    order = Order(
        store_id=store.store_id,
        status=OrderStatus.NEW,
        customer_name=payload.customer_name,
        customer_phone=payload.customer_phone,
        fulfillment_type=payload.fulfillment_type,
        payment_method=payload.payment_method,
        change_for_cents=payload.change_for_cents,
        notes=payload.notes,
        total_cents=total_cents,
        table_ref=payload.table_ref,
        table_session_ref=payload.table_session_ref,
        client_order_id=payload.client_order_id,
        receipt_token=generate_receipt_token(),
        created_at=now,
        printing_claimed_at=None,
        customer_notified_at=None,
        items=items,
    )
    db.add(order)
    try:
        db.commit()
    except IntegrityError:
        # concurrent retry with the same client_order_id won the insert
        db.rollback()
        if payload.client_order_id:
            existing = _find_by_client_order_id(db, store.store_id, payload.client_order_id)
            if existing:
                return existing
        raise
    db.refresh(order)

    logger.info(f"order created: order_id={order.order_id} store={store.slug} total_cents={total_cents}")
    return order


# -----------------------
# Claim / print
# -----------------------
def claim_order(db: Session, order_id: int, now: datetime) -> ClaimOutcome:
    """NEW -> PRINTING. Exactly one concurrent claimant gets CLAIMED."""
    updated = (
        db.query(Order)
        .filter(Order.order_id == order_id)
        .filter(Order.status == OrderStatus.NEW)
        .filter(Order.printing_claimed_at.is_(None))
        .update(
            {Order.status: OrderStatus.PRINTING, Order.printing_claimed_at: now},
            synchronize_session=False,
        )
    )
    db.commit()

    if updated:
        logger.info(f"order claimed: order_id={order_id}")
        return ClaimOutcome.CLAIMED

    if not db.query(Order.order_id).filter(Order.order_id == order_id).first():
        raise OrderNotFound(order_id)
    return ClaimOutcome.ALREADY_CLAIMED


def claim_next_orders(db: Session, store_id: int, now: datetime, limit: int = 10) -> list[Order]:
    """Agent polling: claim the oldest NEW orders, return only the ones won."""
    candidates = (
        db.query(Order.order_id)
        .filter(Order.store_id == store_id)
        .filter(Order.status == OrderStatus.NEW)
        .filter(Order.printing_claimed_at.is_(None))
        .order_by(Order.created_at.asc(), Order.order_id.asc())
        .limit(limit)
        .all()
    )

    won = [oid for (oid,) in candidates if claim_order(db, oid, now) == ClaimOutcome.CLAIMED]
    if not won:
        return []

    return (
        db.query(Order)
        .options(selectinload(Order.items).selectinload(OrderItem.options))
        .filter(Order.order_id.in_(won))
        .order_by(Order.created_at.asc(), Order.order_id.asc())
        .all()
    )


def mark_printed(db: Session, order_id: int) -> MarkPrintedOutcome:
    """PRINTING -> PRINTED; repeating it is a no-op, skipping PRINTING is an error."""
    updated = (
        db.query(Order)
        .filter(Order.order_id == order_id)
        .filter(Order.status == OrderStatus.PRINTING)
        .update({Order.status: OrderStatus.PRINTED}, synchronize_session=False)
    )
    db.commit()

    if updated:
        logger.info(f"order printed: order_id={order_id}")
        return MarkPrintedOutcome.PRINTED

    row = db.query(Order.status).filter(Order.order_id == order_id).first()
    if not row:
        raise OrderNotFound(order_id)
    if row.status == OrderStatus.PRINTED:
        return MarkPrintedOutcome.ALREADY_PRINTED
    raise InvalidTransition(f"order {order_id} is {row.status.value}, expected PRINTING")


# -----------------------
# Reads
# -----------------------
def list_orders(db: Session, store_id: int, status: OrderStatus | None = None) -> list[Order]:
    q = (
        db.query(Order)
        .options(selectinload(Order.items).selectinload(OrderItem.options))
        .filter(Order.store_id == store_id)
    )
    if status:
        q = q.filter(Order.status == status)
    return q.order_by(Order.created_at.desc()).all()


def get_order_for_receipt(db: Session, order_id: int, token: str) -> Order | None:
    order = (
        db.query(Order)
        .options(selectinload(Order.items).selectinload(OrderItem.options))
        .filter(Order.order_id == order_id)
        .first()
    )
    if not order or not token:
        return None
    if not secrets.compare_digest(order.receipt_token.encode(), token.encode()):
        return None
    return order
