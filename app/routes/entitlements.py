from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlmodel import Session

from app.database import get_session
from app.exceptions import Forbidden
from app.models.user import User
from app.schemas.order_schemas import EntitlementRead
from app.services.access_service import list_entitlements
from app.utils.token import get_current_user

router = APIRouter()


@router.get("", response_model=List[EntitlementRead])
def get_entitlements(
    buyer: Optional[int] = Query(None),
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    buyer_id = buyer or current_user.id

    if buyer_id != current_user.id and not current_user.is_admin:
        raise Forbidden("You can only list your own entitlements")

    return list_entitlements(session, buyer_id)
