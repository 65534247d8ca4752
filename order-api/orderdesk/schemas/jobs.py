from datetime import datetime
from orderdesk.schemas.common import ORMBase

class RecoverStuckOrdersOut(ORMBase):
    recovered_orders: int
    cutoff: datetime
    threshold_minutes: int

class NotifyPrintedOrdersOut(ORMBase):
    found: int
    sent: int
    lookback_days: int
    cutoff: datetime

class PurgeOldOrdersOut(ORMBase):
    deleted_orders: int
    deleted_items: int
    deleted_options: int
    cutoff: datetime
    retention_days: int
