"""
Buyer-facing sequencing of the manual payment flow:

    start_purchase -> (buyer pays by UPI / Google Pay) -> submit_proof -> poll order_status

Nothing here decides an order; it only calls the store, the ingest and
reports where the order stands.
"""
import logging
from typing import Optional

from sqlmodel import Session

from app.config import settings
from app.constants.order_status import OrderState
from app.exceptions import InvalidState
from app.models.order import Order
from app.models.user import User
from app.services.order_service import advance_to_pending_proof, create_order, load_order
from app.services.proof_service import attach_proof
from app.services.storage import ProofStorage

logger = logging.getLogger(__name__)

BUYER_STAGES = {
    OrderState.created: (
        "awaiting_payment",
        "Pay the amount by UPI / Google Pay and upload the payment screenshot.",
    ),
    OrderState.pending_proof: (
        "awaiting_payment",
        "Pay the amount by UPI / Google Pay and upload the payment screenshot.",
    ),
    OrderState.pending_review: (
        "awaiting_review",
        "Your screenshot is being verified by our team. Access is granted once approved.",
    ),
    OrderState.approved: (
        "approved",
        "Payment verified. You have access to this item.",
    ),
    OrderState.rejected: (
        "rejected",
        "Payment could not be verified. Please place a new order.",
    ),
}


def order_status(order: Order) -> dict:
    stage, message = BUYER_STAGES[OrderState(order.state)]
    status = {"stage": stage, "message": message}
    if order.state == OrderState.rejected.value and order.rejection_reason:
        status["reason"] = order.rejection_reason
    return status


def payment_instructions(order: Order) -> Optional[dict]:
    if order.state not in (OrderState.created.value, OrderState.pending_proof.value):
        return None

    return {
        "upi_id": settings.payment_upi_id,
        "google_pay_number": settings.payment_gpay_number or None,
        "payee_name": settings.payment_payee_name,
        "amount": order.amount,
        "currency": order.currency,
        "reference": order.id,
    }


def start_purchase(session: Session, buyer: User, item_type, item_ref: int) -> Order:
    order = create_order(session, buyer, item_type, item_ref)

    if order.state == OrderState.created.value:
        order = advance_to_pending_proof(session, order)

    return order


def submit_proof(
    session: Session,
    storage: ProofStorage,
    order_id: str,
    buyer: User,
    image_bytes: bytes,
    content_type: Optional[str],
    filename: Optional[str] = None,
    size: Optional[int] = None,
):
    order = load_order(session, order_id)

    # the advance after creation runs in its own commit; if it never landed
    # the order is still in created and the buyer must not be stuck there
    if order.state == OrderState.created.value and order.buyer_id == buyer.id:
        try:
            advance_to_pending_proof(session, order)
        except InvalidState:
            logger.info(f"Order {order.id} already moved past created, uploading as is")

    return attach_proof(
        session,
        storage,
        order_id,
        buyer,
        image_bytes,
        content_type,
        filename=filename,
        size=size,
    )
