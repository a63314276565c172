"""
Screenshot ingest: the buyer's proof of an out-of-band UPI payment.

An order holds at most one proof. Uploading again while the order is still
under review overwrites that proof (the previous object stays in the bucket
and its key is kept in the order timeline). Attaching a proof only ever moves
the order to ``pending_review``; it never grants access.
"""
import logging
from datetime import datetime
from typing import Optional

from sqlmodel import Session, select

from app.config import settings
from app.constants.order_status import OrderState, PROOF_ACCEPTING_STATES
from app.exceptions import (
    Forbidden,
    InvalidContentType,
    InvalidState,
    NotFound,
    PayloadTooLarge,
)
from app.models.notifications import RecipientRole
from app.models.payment_proof import PaymentProof
from app.models.user import User
from app.services.notification_service import create_notification
from app.services.order_event_service import log_order_event
from app.services.order_service import get_order, load_order, transition
from app.services.storage import ProofStorage

logger = logging.getLogger(__name__)


def normalize_content_type(content_type: Optional[str]) -> str:
    return (content_type or "").split(";")[0].strip().lower()


def validate_proof(content_type: Optional[str], size: int):
    # raster formats only; svg and other markup-bearing images are refused
    if normalize_content_type(content_type) not in settings.proof_content_types:
        raise InvalidContentType(content_type)

    if size > settings.max_proof_bytes:
        raise PayloadTooLarge(size, settings.max_proof_bytes)


def find_proof(session: Session, order_id: str) -> Optional[PaymentProof]:
    return session.exec(
        select(PaymentProof).where(PaymentProof.order_id == order_id)
    ).first()


def attach_proof(
    session: Session,
    storage: ProofStorage,
    order_id: str,
    requester: User,
    image_bytes: bytes,
    content_type: Optional[str],
    filename: Optional[str] = None,
    size: Optional[int] = None,
) -> PaymentProof:
    order = load_order(session, order_id)

    if order.buyer_id != requester.id:
        raise Forbidden("Only the buyer can upload a screenshot for this order")

    current_state = OrderState(order.state)
    if current_state not in PROOF_ACCEPTING_STATES:
        raise InvalidState(order.id, order.state, "attach a screenshot to")

    validate_proof(content_type, size if size is not None else len(image_bytes))
    content_type = normalize_content_type(content_type)

    key = storage.store(image_bytes, content_type, order.id, filename)

    try:
        # CAS on the state we validated against
        try:
            transition(
                session,
                order,
                expected=current_state,
                new_state=OrderState.pending_review,
                action="attach a screenshot to",
            )
        except InvalidState:
            if current_state != OrderState.pending_proof:
                raise
            # a concurrent first upload got there first; this one replaces it
            transition(
                session,
                order,
                expected=OrderState.pending_review,
                new_state=OrderState.pending_review,
                action="attach a screenshot to",
            )

        proof = find_proof(session, order.id)
        now = datetime.utcnow()

        if proof:
            replaced_key = proof.storage_key
            proof.storage_key = key
            proof.content_type = content_type
            proof.size_bytes = len(image_bytes)
            proof.original_filename = filename
            proof.uploaded_at = now
            event_type, label = "proof_replaced", "Payment screenshot replaced"
            meta = {"storage_key": key, "replaced_key": replaced_key}
        else:
            proof = PaymentProof(
                order_id=order.id,
                storage_key=key,
                content_type=content_type,
                size_bytes=len(image_bytes),
                original_filename=filename,
                uploaded_at=now,
            )
            event_type, label = "proof_uploaded", "Payment screenshot uploaded"
            meta = {"storage_key": key}

        session.add(proof)

        log_order_event(
            session,
            order_id=order.id,
            event_type=event_type,
            label=label,
            created_by=str(requester.id),
            meta=meta,
        )

        create_notification(
            session=session,
            recipient_role=RecipientRole.admin,
            user_id=None,
            trigger_source="payment_proof",
            related_id=order.id,
            title="Payment screenshot awaiting review",
            content=(
                f"{requester.email} uploaded a screenshot for "
                f"{order.item_type} {order.item_ref} ({order.amount / 100:.2f} {order.currency})"
            ),
        )

        session.commit()
    except Exception:
        session.rollback()
        storage.delete(key)
        raise

    session.refresh(proof)
    logger.info(f"{label} for order {order.id}: {key}")
    return proof


def get_proof(session: Session, order_id: str, requester: User) -> PaymentProof:
    get_order(session, order_id, requester)

    proof = find_proof(session, order_id)
    if not proof:
        raise NotFound("No screenshot uploaded for this order")
    return proof


def fetch_proof_image(session: Session, storage: ProofStorage, order_id: str, requester: User):
    proof = get_proof(session, order_id, requester)
    return proof, storage.fetch(proof.storage_key)
