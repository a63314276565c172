from sqlmodel import SQLModel, Field
from sqlalchemy import Column, JSON
from typing import Optional
from datetime import datetime
from uuid import uuid4

from app.constants.order_status import SYSTEM_ACTOR


class OrderEvent(SQLModel, table=True):
    """One line of an order's audit timeline; rows are only ever inserted"""

    __tablename__ = "order_event"
    id: str = Field(default_factory=lambda: uuid4().hex, primary_key=True)

    order_id: str = Field(foreign_key="order.id", index=True)
    # order_created | awaiting_proof | proof_uploaded | proof_replaced |
    # order_approved | order_rejected | access_granted
    event_type: str = Field(index=True)
    label: str

    # storage keys, amounts, rejection notes
    meta: Optional[dict] = Field(default=None, sa_column=Column(JSON))

    created_by: str = Field(default=SYSTEM_ACTOR)  # user id or "system"
    created_at: datetime = Field(default_factory=datetime.utcnow)
