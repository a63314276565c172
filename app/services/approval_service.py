"""
Approval authority: an admin looks at the payment screenshot and approves or
rejects the order. Approval is the only way a paid order turns into an
entitlement, and it happens in the same commit as the state change.
"""
import logging
from datetime import datetime
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session

from app.constants.order_status import DecisionOutcome, OrderState
from app.exceptions import Forbidden, InvalidState
from app.models.notifications import RecipientRole
from app.models.order import Order
from app.models.user import User
from app.services.access_service import grant
from app.services.notification_service import create_notification
from app.services.order_event_service import log_order_event
from app.services.order_service import load_order, transition

logger = logging.getLogger(__name__)


def decide(
    session: Session,
    order_id: str,
    actor: User,
    outcome,
    note: Optional[str] = None,
) -> Order:
    if not actor.is_admin:
        raise Forbidden("Admin access required to approve or reject payments")

    outcome = DecisionOutcome(outcome)
    order = load_order(session, order_id)

    if order.state != OrderState.pending_review.value:
        raise InvalidState(order.id, order.state, f"mark as {outcome.value}")

    values = {
        "decided_at": datetime.utcnow(),
        "decided_by": str(actor.id),
    }
    if outcome == DecisionOutcome.rejected:
        values["rejection_reason"] = note

    try:
        transition(
            session,
            order,
            expected=OrderState.pending_review,
            new_state=OrderState(outcome.value),
            action=f"mark as {outcome.value}",
            **values,
        )

        if outcome == DecisionOutcome.approved:
            grant(session, order.buyer_id, order.item_type, order.item_ref, order.id)
            title = "Payment approved"
            content = f"Your payment was verified. You now have access to {order.item_type} {order.item_ref}."
        else:
            title = "Payment rejected"
            content = f"Your payment could not be verified: {note or 'no reason given'}. Please place a new order."

        log_order_event(
            session,
            order_id=order.id,
            event_type=f"order_{outcome.value}",
            label=title,
            created_by=str(actor.id),
            meta={"note": note} if note else None,
        )

        create_notification(
            session=session,
            recipient_role=RecipientRole.student,
            user_id=order.buyer_id,
            trigger_source="payment_decision",
            related_id=order.id,
            title=title,
            content=content,
        )

        session.commit()
    except (InvalidState, SQLAlchemyError):
        session.rollback()
        raise

    session.refresh(order)
    logger.info(f"Order {order.id} {outcome.value} by admin {actor.id}")
    return order
