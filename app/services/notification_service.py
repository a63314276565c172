from typing import Optional

from sqlmodel import Session, or_, select

from app.models.notifications import (
    Notification,
    NotificationChannel,
    RecipientRole,
)
from app.models.user import User


def create_notification(
    *,
    session: Session,
    recipient_role: RecipientRole,
    user_id: Optional[int],
    trigger_source: str,
    related_id: str,
    title: str,
    content: str,
):
    notification = Notification(
        recipient_role=recipient_role.value,
        user_id=user_id,
        trigger_source=trigger_source,
        related_id=related_id,
        title=title,
        content=content,
        channel=NotificationChannel.system.value,
    )
    session.add(notification)
    return notification


def list_notifications(session: Session, user: User, unread_only: bool = False):
    query = select(Notification)

    if user.is_admin:
        query = query.where(
            or_(
                Notification.user_id == user.id,
                (Notification.recipient_role == RecipientRole.admin.value)
                & (Notification.user_id.is_(None)),
            )
        )
    else:
        query = query.where(Notification.user_id == user.id)

    if unread_only:
        query = query.where(Notification.is_read == False)  # noqa: E712

    return session.exec(query.order_by(Notification.created_at.desc())).all()
