from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from app.constants.order_status import DecisionOutcome, ItemType


class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


# ---------- REQUESTS ----------

class CreateOrderRequest(CamelModel):
    # no amount: the price always comes from the catalog
    model_config = ConfigDict(extra="forbid")

    item_type: ItemType
    item_ref: int = Field(gt=0)


class DecisionRequest(CamelModel):
    model_config = ConfigDict(extra="forbid")

    outcome: DecisionOutcome
    note: Optional[str] = Field(default=None, max_length=500)


# ---------- RESPONSES ----------

class BuyerStatus(BaseModel):
    stage: str
    message: str
    reason: Optional[str] = None


class PaymentInstructions(CamelModel):
    upi_id: str
    google_pay_number: Optional[str] = None
    payee_name: str
    amount: int
    currency: str
    reference: str


class OrderRead(CamelModel):
    id: str
    buyer_id: int
    item_type: str
    item_ref: int
    amount: int
    currency: str
    payment_method: str
    state: str
    created_at: datetime
    updated_at: datetime
    decided_at: Optional[datetime] = None
    decided_by: Optional[str] = None
    rejection_reason: Optional[str] = None


class OrderDetail(OrderRead):
    status: BuyerStatus
    payment_instructions: Optional[PaymentInstructions] = None


class PaymentProofRead(CamelModel):
    id: str
    order_id: str
    content_type: str
    size_bytes: int
    original_filename: Optional[str] = None
    uploaded_at: datetime


class ProofUploadResponse(CamelModel):
    message: str
    proof: PaymentProofRead
    order: OrderDetail


class EntitlementRead(CamelModel):
    buyer_id: int
    item_type: str
    item_ref: int
    order_id: str
    granted_at: datetime


class OrderEventRead(CamelModel):
    event_type: str
    label: str
    meta: Optional[dict] = None
    created_by: str
    created_at: datetime


class NotificationRead(CamelModel):
    id: int
    trigger_source: str
    related_id: str
    title: str
    content: str
    is_read: bool
    created_at: datetime


class OrderPage(CamelModel):
    total_items: int
    total_pages: int
    current_page: int
    limit: int
    results: List[OrderDetail]
