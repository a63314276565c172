from typing import List

from fastapi import APIRouter, Depends, Query
from sqlmodel import Session

from app.database import get_session
from app.models.user import User
from app.schemas.order_schemas import NotificationRead
from app.services.notification_service import list_notifications
from app.utils.token import get_current_user

router = APIRouter()


@router.get("", response_model=List[NotificationRead])
def my_notifications(
    unread_only: bool = Query(False),
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    return list_notifications(session, current_user, unread_only=unread_only)
