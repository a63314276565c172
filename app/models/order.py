from sqlmodel import SQLModel, Field
from typing import Optional
from datetime import datetime
from uuid import uuid4

from app.constants.order_status import OrderState


class Order(SQLModel, table=True):
    id: str = Field(default_factory=lambda: uuid4().hex, primary_key=True)

    buyer_id: int = Field(foreign_key="user.id", index=True)
    item_type: str = Field(index=True)  # course | testSeries | ebook | studyMaterial
    item_ref: int = Field(index=True)

    amount: int  # paise, always taken from the catalog
    currency: str = Field(default="INR")
    payment_method: str = Field(default="google_pay_manual")

    state: str = Field(default=OrderState.created.value, index=True)

    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    decided_at: Optional[datetime] = None
    decided_by: Optional[str] = None  # admin user id or "system"
    rejection_reason: Optional[str] = None
