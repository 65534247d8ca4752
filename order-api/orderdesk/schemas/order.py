from datetime import datetime
from pydantic import BaseModel, Field, model_validator
from orderdesk.schemas.common import ORMBase
from orderdesk.db.models import FulfillmentType, OrderStatus, PaymentMethod
from orderdesk.services.orders import ClaimOutcome, MarkPrintedOutcome

class OrderLineIn(BaseModel):
    product_id: int
    quantity: int = Field(default=1, ge=1)
    option_item_ids: list[int] = Field(default_factory=list)
    notes: str | None = Field(default=None, max_length=256)

class OrderCreate(BaseModel):
    customer_name: str = Field(..., min_length=1, max_length=128)
    customer_phone: str | None = Field(default=None, max_length=32)
    fulfillment_type: FulfillmentType = FulfillmentType.PICKUP
    payment_method: PaymentMethod
    change_for_cents: int | None = Field(default=None, ge=0)
    notes: str | None = Field(default=None, max_length=512)

    table_ref: str | None = Field(default=None, max_length=64)
    table_session_ref: str | None = Field(default=None, max_length=64)

    # retry key from the public menu; same key -> same order
    client_order_id: str | None = Field(default=None, min_length=1, max_length=64)

    items: list[OrderLineIn] = Field(..., min_length=1)

    @model_validator(mode="after")
    def _validate(self):
        if self.change_for_cents is not None and self.payment_method != PaymentMethod.CASH:
            raise ValueError("change_for_cents is only allowed for CASH payments")
        if self.fulfillment_type == FulfillmentType.DINE_IN and not self.table_ref:
            raise ValueError("table_ref is required for DINE_IN orders")
        return self

class OrderItemOptionOut(ORMBase):
    group_name: str
    item_name: str
    price_delta_cents: int

class OrderItemOut(ORMBase):
    order_item_id: int
    product_id: int
    product_name: str
    quantity: int
    unit_price_cents: int
    notes: str | None = None
    options: list[OrderItemOptionOut] = []

class OrderOut(ORMBase):
    order_id: int
    store_id: int
    status: OrderStatus
    customer_name: str
    fulfillment_type: FulfillmentType
    payment_method: PaymentMethod
    change_for_cents: int | None = None
    notes: str | None = None
    table_ref: str | None = None
    total_cents: int
    created_at: datetime
    printing_claimed_at: datetime | None = None
    customer_notified_at: datetime | None = None
    items: list[OrderItemOut] = []

class OrderCreatedOut(OrderOut):
    # returned once, to the customer who placed the order
    receipt_token: str

class OrderClaimOut(BaseModel):
    order_id: int
    outcome: ClaimOutcome

class OrderClaimBatchRequest(BaseModel):
    limit: int = Field(default=10, ge=1, le=50)

class OrderClaimBatchOut(BaseModel):
    orders: list[OrderOut] = []

class OrderPrintedOut(BaseModel):
    order_id: int
    outcome: MarkPrintedOutcome
    notification: str | None = None
