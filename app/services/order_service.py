"""
Order store for manual (Google Pay / UPI) purchases.

Orders move through ``created -> pending_proof -> pending_review ->
approved | rejected`` and are never deleted. Every state change goes through
``transition``, a compare-and-swap on the ``state`` column, so two requests
racing on the same order (a double-clicked approve button, two uploads) can
never both win: the loser gets ``InvalidState``.

Free items skip the whole flow: the order is written already approved and the
entitlement is granted in the same commit.
"""
import logging
from datetime import datetime
from typing import Optional, Sequence, Union

from sqlalchemy import update
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select

from app.config import settings
from app.constants.order_status import (
    OrderState,
    SYSTEM_ACTOR,
    can_transition,
)
from app.exceptions import AlreadyEntitled, Forbidden, InvalidState, NotFound
from app.models.order import Order
from app.models.user import User
from app.services.access_service import grant, has_entitlement
from app.services.catalog_service import get_price, parse_item_type
from app.services.order_event_service import log_order_event
from app.utils.pagination import paginate

logger = logging.getLogger(__name__)


def create_order(session: Session, buyer: User, item_type, item_ref: int) -> Order:
    item_type = parse_item_type(item_type, item_ref)
    amount = get_price(session, item_type, item_ref)

    if has_entitlement(session, buyer.id, item_type.value, item_ref):
        raise AlreadyEntitled(item_type.value, item_ref)

    now = datetime.utcnow()
    order = Order(
        buyer_id=buyer.id,
        item_type=item_type.value,
        item_ref=item_ref,
        amount=amount,
        currency=settings.currency,
        created_at=now,
        updated_at=now,
    )

    is_free = amount == 0
    if is_free:
        order.state = OrderState.approved.value
        order.decided_at = now
        order.decided_by = SYSTEM_ACTOR

    try:
        session.add(order)
        session.flush()

        log_order_event(
            session,
            order_id=order.id,
            event_type="order_created",
            label="Order created",
            created_by=str(buyer.id),
            meta={"amount": amount, "currency": order.currency},
        )

        if is_free:
            log_order_event(
                session,
                order_id=order.id,
                event_type="order_approved",
                label="Free item approved automatically",
            )
            grant(session, buyer.id, order.item_type, item_ref, order.id)

        session.commit()
    except SQLAlchemyError:
        session.rollback()
        raise

    session.refresh(order)
    logger.info(
        f"Order {order.id} created for buyer {buyer.id}: "
        f"{order.item_type} {item_ref}, amount {amount}, state {order.state}"
    )
    return order


def transition(
    session: Session,
    order: Order,
    expected: Union[OrderState, Sequence[OrderState]],
    new_state: OrderState,
    action: str,
    **values,
) -> Order:
    """
    Move ``order`` from one of ``expected`` to ``new_state`` with a single
    conditional UPDATE. Does not commit.
    """
    if isinstance(expected, OrderState):
        expected = (expected,)

    for state in expected:
        if not can_transition(state, new_state):
            raise ValueError(f"Illegal transition {state.value} -> {new_state.value}")

    now = datetime.utcnow()
    result = session.exec(
        update(Order)
        .where(Order.id == order.id)
        .where(Order.state.in_([state.value for state in expected]))
        .values(state=new_state.value, updated_at=now, **values)
        .execution_options(synchronize_session=False)
    )

    if result.rowcount != 1:
        current = session.exec(select(Order.state).where(Order.id == order.id)).first()
        logger.warning(
            f"Rejected {action} on order {order.id}: state is {current}, "
            f"expected {[state.value for state in expected]}"
        )
        raise InvalidState(order.id, current, action)

    session.refresh(order)
    return order


def advance_to_pending_proof(session: Session, order: Order) -> Order:
    """Paid orders wait for the buyer's screenshot right after creation"""
    try:
        transition(
            session,
            order,
            expected=OrderState.created,
            new_state=OrderState.pending_proof,
            action="request payment for",
        )
        log_order_event(
            session,
            order_id=order.id,
            event_type="awaiting_proof",
            label="Waiting for payment screenshot",
        )
        session.commit()
    except (InvalidState, SQLAlchemyError):
        session.rollback()
        raise

    session.refresh(order)
    return order


def load_order(session: Session, order_id: str) -> Order:
    order = session.get(Order, order_id)
    if not order:
        raise NotFound()
    return order


def get_order(session: Session, order_id: str, requester: User) -> Order:
    order = load_order(session, order_id)

    if order.buyer_id != requester.id and not requester.is_admin:
        raise Forbidden()

    return order


def list_orders_for_buyer(session: Session, buyer_id: int, page: int = 1, limit: int = 10, transform=None):
    query = (
        select(Order)
        .where(Order.buyer_id == buyer_id)
        .order_by(Order.created_at.desc())
    )
    return paginate(session=session, query=query, page=page, limit=limit, transform=transform)


def list_orders(
    session: Session,
    state: Optional[OrderState] = None,
    item_type: Optional[str] = None,
    buyer_id: Optional[int] = None,
    page: int = 1,
    limit: int = 10,
    transform=None,
):
    """Admin listing, newest first. ``state=pending_review`` is the review queue."""
    query = select(Order)

    if state:
        query = query.where(Order.state == OrderState(state).value)
    if item_type:
        query = query.where(Order.item_type == parse_item_type(item_type).value)
    if buyer_id:
        query = query.where(Order.buyer_id == buyer_id)

    query = query.order_by(Order.created_at.desc())
    return paginate(session=session, query=query, page=page, limit=limit, transform=transform)
