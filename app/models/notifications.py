from datetime import datetime
from enum import Enum
from typing import Optional

from sqlmodel import SQLModel, Field


# ---------- ENUMS ----------

class RecipientRole(str, Enum):
    admin = "admin"
    student = "student"


class NotificationChannel(str, Enum):
    system = "system"


# ---------- MODEL ----------

class Notification(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)

    recipient_role: str = Field(index=True)
    user_id: Optional[int] = Field(default=None, index=True)  # None -> every admin

    trigger_source: str  # payment_proof / payment_decision
    related_id: str      # order id

    title: str
    content: str

    channel: str = NotificationChannel.system.value
    is_read: bool = Field(default=False)

    created_at: datetime = Field(default_factory=datetime.utcnow)
