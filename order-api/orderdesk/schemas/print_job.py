from datetime import datetime
from pydantic import BaseModel, Field, model_validator
from orderdesk.schemas.common import ORMBase
from orderdesk.db.models import PrintJobStatus, PrintJobType

class PrintJobCreate(BaseModel):
    job_type: PrintJobType
    order_id: int | None = None
    table_ref: str | None = Field(default=None, max_length=64)
    table_session_ref: str | None = Field(default=None, max_length=64)

    @model_validator(mode="after")
    def _validate(self):
        if self.job_type == PrintJobType.KITCHEN_ORDER and self.order_id is None:
            raise ValueError("order_id is required for KITCHEN_ORDER")
        if self.job_type == PrintJobType.CASHIER_TABLE_SUMMARY and not self.table_ref:
            raise ValueError("table_ref is required for CASHIER_TABLE_SUMMARY")
        return self

class PrintJobFail(BaseModel):
    error: str | None = Field(default=None, max_length=512)

class PrintJobOut(ORMBase):
    print_job_id: int
    store_id: int
    job_type: PrintJobType
    status: PrintJobStatus
    order_id: int | None = None
    table_ref: str | None = None
    table_session_ref: str | None = None
    error: str | None = None
    created_at: datetime
    updated_at: datetime
