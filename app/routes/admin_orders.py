# -------- ADMIN ORDERS --------
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlmodel import Session

from app.constants.order_status import ItemType, OrderState
from app.database import get_session
from app.dependencies.admin import require_admin
from app.models.user import User
from app.routes.orders import to_order_detail
from app.schemas.order_schemas import OrderEventRead, OrderPage
from app.services.order_event_service import list_order_events
from app.services.order_service import list_orders, load_order

router = APIRouter()


@router.get("", response_model=OrderPage)
def list_payment_orders(
    state: Optional[OrderState] = Query(None),
    item_type: Optional[ItemType] = Query(None),
    buyer: Optional[int] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    session: Session = Depends(get_session),
    _: User = Depends(require_admin),
):
    """Review queue is ``?state=pending_review``"""
    return list_orders(
        session,
        state=state,
        item_type=item_type,
        buyer_id=buyer,
        page=page,
        limit=limit,
        transform=to_order_detail,
    )


@router.get("/{order_id}/events", response_model=List[OrderEventRead])
def order_timeline(
    order_id: str,
    session: Session = Depends(get_session),
    _: User = Depends(require_admin),
):
    load_order(session, order_id)
    return list_order_events(session, order_id)
