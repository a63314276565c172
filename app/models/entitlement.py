from sqlmodel import SQLModel, Field
from sqlalchemy import UniqueConstraint
from typing import Optional
from datetime import datetime


class Entitlement(SQLModel, table=True):
    __table_args__ = (
        UniqueConstraint(
            "buyer_id", "item_type", "item_ref",
            name="uq_entitlement_buyer_item",
        ),
    )

    id: Optional[int] = Field(default=None, primary_key=True)

    buyer_id: int = Field(foreign_key="user.id", index=True)
    item_type: str
    item_ref: int

    order_id: str = Field(foreign_key="order.id")
    granted_at: datetime = Field(default_factory=datetime.utcnow)
