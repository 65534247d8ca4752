from datetime import datetime
from orderdesk.schemas.common import ORMBase
from orderdesk.db.models import GroupRole, PricingRule

class OptionItemOut(ORMBase):
    option_item_id: int
    name: str
    price_delta_cents: int

class OptionGroupOut(ORMBase):
    group_id: int
    name: str
    role: GroupRole
    items: list[OptionItemOut] = []

class ProductOut(ORMBase):
    product_id: int
    name: str
    pricing_rule: PricingRule
    base_price_cents: int
    option_groups: list[OptionGroupOut] = []
    created_at: datetime

class MenuOut(ORMBase):
    store_slug: str
    store_name: str
    products: list[ProductOut] = []
