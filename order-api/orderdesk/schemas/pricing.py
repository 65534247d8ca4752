from pydantic import BaseModel, Field
from orderdesk.db.models import PricingRule

class PriceQuoteRequest(BaseModel):
    product_id: int
    option_item_ids: list[int] = Field(default_factory=list)

class PriceQuoteOut(BaseModel):
    product_id: int
    pricing_rule: PricingRule
    unit_price_cents: int
    has_flavor_selection: bool
    flavors_count: int
    is_valid: bool
