"""
Access grantor.

An entitlement is the durable record that a buyer may open a course, test
series, ebook or study material. There is at most one per
(buyer, item type, item ref), enforced by ``uq_entitlement_buyer_item``;
``grant`` is idempotent on top of that constraint so a retried approval can
never produce a second row or rewrite the granting order.
"""
import logging

from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from app.models.entitlement import Entitlement
from app.services.order_event_service import log_order_event

logger = logging.getLogger(__name__)


def find_entitlement(session: Session, buyer_id: int, item_type: str, item_ref: int):
    return session.exec(
        select(Entitlement)
        .where(Entitlement.buyer_id == buyer_id)
        .where(Entitlement.item_type == item_type)
        .where(Entitlement.item_ref == item_ref)
    ).first()


def has_entitlement(session: Session, buyer_id: int, item_type: str, item_ref: int) -> bool:
    return find_entitlement(session, buyer_id, item_type, item_ref) is not None


def grant(
    session: Session,
    buyer_id: int,
    item_type: str,
    item_ref: int,
    order_id: str,
) -> Entitlement:
    """
    Record that ``buyer_id`` may consume the item. Runs inside the caller's
    transaction; the caller commits.
    """
    existing = find_entitlement(session, buyer_id, item_type, item_ref)
    if existing:
        logger.info(
            f"Buyer {buyer_id} already entitled to {item_type} {item_ref} "
            f"(order {existing.order_id}), skipping grant for order {order_id}"
        )
        return existing

    entitlement = Entitlement(
        buyer_id=buyer_id,
        item_type=item_type,
        item_ref=item_ref,
        order_id=order_id,
    )

    try:
        with session.begin_nested():
            session.add(entitlement)
    except IntegrityError:
        # a concurrent grant won the unique constraint
        logger.warning(
            f"Concurrent grant for buyer {buyer_id} {item_type} {item_ref}, "
            f"keeping the existing entitlement"
        )
        existing = find_entitlement(session, buyer_id, item_type, item_ref)
        if existing is None:
            raise
        return existing

    log_order_event(
        session,
        order_id=order_id,
        event_type="access_granted",
        label="Access granted",
        meta={"item_type": item_type, "item_ref": item_ref},
    )
    logger.info(f"Granted {item_type} {item_ref} to buyer {buyer_id} via order {order_id}")
    return entitlement


def list_entitlements(session: Session, buyer_id: int):
    return session.exec(
        select(Entitlement)
        .where(Entitlement.buyer_id == buyer_id)
        .order_by(Entitlement.granted_at.desc())
    ).all()
