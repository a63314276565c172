from sqlmodel import SQLModel, Field
from typing import Optional
from datetime import datetime
from uuid import uuid4


class PaymentProof(SQLModel, table=True):
    __tablename__ = "payment_proof"
    id: str = Field(default_factory=lambda: uuid4().hex, primary_key=True)

    # one proof per order; re-uploads overwrite this row
    order_id: str = Field(foreign_key="order.id", unique=True, index=True)

    storage_key: str
    content_type: str
    size_bytes: int
    original_filename: Optional[str] = None

    uploaded_at: datetime = Field(default_factory=datetime.utcnow)
