from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session, selectinload
from orderdesk.api.deps import get_clock, get_db
from orderdesk.core.clock import Clock
from orderdesk.db.models import OptionGroup, Product
from orderdesk.schemas.menu import MenuOut, ProductOut
from orderdesk.schemas.order import OrderCreate, OrderCreatedOut, OrderOut
from orderdesk.schemas.pricing import PriceQuoteOut, PriceQuoteRequest
from orderdesk.services.orders import (
    PricingError,
    StoreNotFound,
    create_order,
    get_active_store,
    get_order_for_receipt,
    get_orderable_product,
    price_product,
)

router = APIRouter(prefix="/public")

def _store_or_404(db: Session, slug: str):
    try:
        return get_active_store(db, slug)
    except StoreNotFound:
        raise HTTPException(status_code=404, detail="store not found")

@router.get("/{slug}/menu", response_model=MenuOut)
def get_menu(slug: str, db: Session = Depends(get_db)):
    store = _store_or_404(db, slug)
    products = (
        db.query(Product)
        .options(selectinload(Product.option_groups).selectinload(OptionGroup.items))
        .filter(Product.store_id == store.store_id)
        .filter(Product.is_active.is_(True))
        .order_by(Product.name.asc())
        .all()
    )
    return MenuOut(
        store_slug=store.slug,
        store_name=store.name,
        products=[ProductOut.model_validate(p) for p in products],
    )

@router.post("/{slug}/pricing/quote", response_model=PriceQuoteOut)
def quote_price(slug: str, body: PriceQuoteRequest, db: Session = Depends(get_db)):
    """Price preview for the menu; invalid selections come back with is_valid=false."""
    store = _store_or_404(db, slug)
    try:
        product = get_orderable_product(db, store, body.product_id)
        result, _ = price_product(product, body.option_item_ids)
    except PricingError as e:
        raise HTTPException(status_code=400, detail=str(e))

    return PriceQuoteOut(
        product_id=product.product_id,
        pricing_rule=result.rule,
        unit_price_cents=result.unit_price_cents,
        has_flavor_selection=result.has_flavor_selection,
        flavors_count=result.flavors_count,
        is_valid=result.is_valid,
    )

@router.post("/{slug}/orders", response_model=OrderCreatedOut, status_code=201)
def place_order(
    slug: str,
    body: OrderCreate,
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    store = _store_or_404(db, slug)
    try:
        return create_order(db, store, body, clock.now())
    except PricingError as e:
        raise HTTPException(status_code=400, detail=str(e))

@router.get("/orders/{order_id}/receipt", response_model=OrderOut)
def get_receipt(order_id: int, token: str = "", db: Session = Depends(get_db)):
    order = get_order_for_receipt(db, order_id, token)
    if not order:
        # same answer for unknown order and wrong token
        raise HTTPException(status_code=404, detail="receipt not found")
    return order
