"""End-to-end walk through the purchase scenarios at the service layer."""
import pytest
from sqlalchemy.exc import OperationalError
from sqlmodel import select

from app.constants.order_status import OrderState
from app.exceptions import Forbidden, InvalidState
from app.models.entitlement import Entitlement
from app.models.order import Order
from app.models.order_event import OrderEvent
from app.services.access_service import find_entitlement
from app.services import payment_workflow
from app.services.approval_service import decide
from app.services.order_service import advance_to_pending_proof, create_order
from app.services.payment_workflow import (
    order_status,
    payment_instructions,
    start_purchase,
    submit_proof,
)

JPEG = b"\xff\xd8\xff\xe0\x00\x10JFIF" + b"\x00" * 256


def _event_types(session, order_id):
    return session.exec(
        select(OrderEvent.event_type).where(OrderEvent.order_id == order_id)
    ).all()


def test_scenarios_a_to_c(session, storage, buyer, admin, paid_course):
    # A: paid course, order starts created then waits for the screenshot
    order = create_order(session, buyer, "course", paid_course.id)
    assert order.state == OrderState.created.value
    assert order.amount == 5000

    order = advance_to_pending_proof(session, order)
    assert order.state == OrderState.pending_proof.value
    assert order_status(order)["stage"] == "awaiting_payment"
    assert find_entitlement(session, buyer.id, "course", paid_course.id) is None

    # B: screenshot moves it to review
    submit_proof(session, storage, order.id, buyer, JPEG, "image/jpeg")
    session.refresh(order)
    assert order.state == OrderState.pending_review.value
    assert order_status(order)["stage"] == "awaiting_review"
    assert find_entitlement(session, buyer.id, "course", paid_course.id) is None

    # C: approval creates the entitlement tied to this order
    order = decide(session, order.id, admin, "approved")
    assert order.state == OrderState.approved.value
    entitlement = find_entitlement(session, buyer.id, "course", paid_course.id)
    assert entitlement.order_id == order.id


def test_scenario_d_rejection_is_final(session, storage, buyer, admin, paid_course):
    order = start_purchase(session, buyer, "course", paid_course.id)
    submit_proof(session, storage, order.id, buyer, JPEG, "image/jpeg")

    order = decide(session, order.id, admin, "rejected", note="blurry screenshot")
    assert order.state == OrderState.rejected.value
    assert session.exec(select(Entitlement)).all() == []

    with pytest.raises(InvalidState):
        decide(session, order.id, admin, "rejected")

    # the buyer starts over with a new order
    retry = start_purchase(session, buyer, "course", paid_course.id)
    assert retry.id != order.id
    assert retry.state == OrderState.pending_proof.value


def test_scenario_e_free_ebook(session, other_buyer, free_ebook):
    order = start_purchase(session, other_buyer, "ebook", free_ebook.id)

    assert order.state == OrderState.approved.value
    assert find_entitlement(session, other_buyer.id, "ebook", free_ebook.id).order_id == order.id
    assert "awaiting_proof" not in _event_types(session, order.id)
    assert "proof_uploaded" not in _event_types(session, order.id)


def test_scenario_f_proof_from_another_buyer(session, storage, buyer, other_buyer, paid_course):
    order = start_purchase(session, buyer, "course", paid_course.id)

    with pytest.raises(Forbidden):
        submit_proof(session, storage, order.id, other_buyer, JPEG, "image/jpeg")

    session.refresh(order)
    assert order.state == OrderState.pending_proof.value


def test_order_left_in_created_still_accepts_a_screenshot(session, storage, buyer, paid_course, monkeypatch):
    """The advance after creation never committed; the upload completes it"""
    def lost_connection(session, order):
        raise OperationalError("UPDATE order", {}, Exception("server closed the connection"))

    monkeypatch.setattr(payment_workflow, "advance_to_pending_proof", lost_connection)
    with pytest.raises(OperationalError):
        start_purchase(session, buyer, "course", paid_course.id)
    monkeypatch.undo()

    [order] = session.exec(select(Order).where(Order.buyer_id == buyer.id)).all()
    assert order.state == OrderState.created.value
    assert order_status(order)["stage"] == "awaiting_payment"
    assert payment_instructions(order) is not None

    proof = submit_proof(session, storage, order.id, buyer, JPEG, "image/jpeg")

    session.refresh(order)
    assert proof.order_id == order.id
    assert order.state == OrderState.pending_review.value
    assert {"awaiting_proof", "proof_uploaded"} <= set(_event_types(session, order.id))


def test_stranger_cannot_advance_a_created_order(session, storage, buyer, other_buyer, paid_course):
    order = create_order(session, buyer, "course", paid_course.id)

    with pytest.raises(Forbidden):
        submit_proof(session, storage, order.id, other_buyer, JPEG, "image/jpeg")

    session.refresh(order)
    assert order.state == OrderState.created.value
