import pytest
from sqlalchemy.exc import OperationalError
from sqlmodel import select

from app.constants.order_status import ItemType, OrderState, SYSTEM_ACTOR
from app.exceptions import AlreadyEntitled, Forbidden, InvalidState, ItemNotFound, NotFound
from app.models.entitlement import Entitlement
from app.models.order import Order
from app.models.order_event import OrderEvent
from app.services import order_service
from app.services.access_service import grant, list_entitlements
from app.services.order_service import (
    advance_to_pending_proof,
    create_order,
    get_order,
    list_orders,
    list_orders_for_buyer,
)


def test_paid_item_creates_order_at_catalog_price(session, buyer, paid_course):
    order = create_order(session, buyer, "course", paid_course.id)

    assert order.state == OrderState.created.value
    assert order.amount == 5000
    assert order.currency == "INR"
    assert order.buyer_id == buyer.id
    assert order.decided_at is None
    assert list_entitlements(session, buyer.id) == []


def test_naive_utc_timestamps_are_stored(session, buyer, paid_course):
    order = create_order(session, buyer, "course", paid_course.id)
    session.expire(order)

    assert order.created_at.tzinfo is None
    assert order.updated_at == order.created_at


def test_paid_order_advances_to_pending_proof(session, buyer, paid_course):
    order = create_order(session, buyer, ItemType.course, paid_course.id)
    order = advance_to_pending_proof(session, order)

    assert order.state == OrderState.pending_proof.value

    with pytest.raises(InvalidState):
        advance_to_pending_proof(session, order)


def test_unknown_item_is_rejected(session, buyer):
    with pytest.raises(ItemNotFound):
        create_order(session, buyer, "course", 999)

    with pytest.raises(ItemNotFound):
        create_order(session, buyer, "videoLecture", 1)

    assert session.exec(select(Order)).all() == []


def test_inactive_item_is_rejected(session, buyer, catalog_item):
    retired = catalog_item(ItemType.test_series, "Old mock tests", 1500, is_active=False)

    with pytest.raises(ItemNotFound):
        create_order(session, buyer, "testSeries", retired.id)


def test_already_entitled_buyer_gets_no_new_order(session, buyer, paid_course):
    first = create_order(session, buyer, "course", paid_course.id)
    grant(session, buyer.id, "course", paid_course.id, first.id)
    session.commit()

    with pytest.raises(AlreadyEntitled):
        create_order(session, buyer, "course", paid_course.id)

    assert len(session.exec(select(Order)).all()) == 1


def test_free_item_is_approved_and_granted_immediately(session, other_buyer, free_ebook):
    order = create_order(session, other_buyer, "ebook", free_ebook.id)

    assert order.state == OrderState.approved.value
    assert order.amount == 0
    assert order.decided_by == SYSTEM_ACTOR
    assert order.decided_at == order.created_at

    [entitlement] = list_entitlements(session, other_buyer.id)
    assert (entitlement.item_type, entitlement.item_ref) == ("ebook", free_ebook.id)
    assert entitlement.order_id == order.id


def test_free_item_order_and_entitlement_roll_back_together(session, buyer, free_ebook, monkeypatch):
    def failing_grant(*args, **kwargs):
        raise OperationalError("INSERT INTO entitlement", {}, Exception("disk full"))

    monkeypatch.setattr(order_service, "grant", failing_grant)

    with pytest.raises(OperationalError):
        create_order(session, buyer, "ebook", free_ebook.id)

    assert session.exec(select(Order)).all() == []
    assert session.exec(select(Entitlement)).all() == []
    assert session.exec(select(OrderEvent)).all() == []


def test_get_order_checks_requester(session, buyer, other_buyer, admin, paid_course):
    order = create_order(session, buyer, "course", paid_course.id)

    assert get_order(session, order.id, buyer).id == order.id
    assert get_order(session, order.id, admin).id == order.id

    with pytest.raises(Forbidden):
        get_order(session, order.id, other_buyer)

    with pytest.raises(NotFound):
        get_order(session, "does-not-exist", admin)


def test_order_listings(session, buyer, other_buyer, paid_course, free_ebook):
    create_order(session, buyer, "course", paid_course.id)
    create_order(session, buyer, "ebook", free_ebook.id)
    create_order(session, other_buyer, "course", paid_course.id)

    mine = list_orders_for_buyer(session, buyer.id)
    assert mine["total_items"] == 2
    assert {o.buyer_id for o in mine["results"]} == {buyer.id}

    approved = list_orders(session, state=OrderState.approved)
    assert approved["total_items"] == 1
    assert approved["results"][0].item_type == "ebook"

    courses = list_orders(session, item_type="course", limit=1)
    assert courses["total_items"] == 2
    assert courses["total_pages"] == 2
    assert len(courses["results"]) == 1


def test_creation_is_logged_in_timeline(session, buyer, paid_course):
    order = create_order(session, buyer, "course", paid_course.id)
    advance_to_pending_proof(session, order)

    events = session.exec(
        select(OrderEvent).where(OrderEvent.order_id == order.id)
    ).all()
    assert [e.event_type for e in events] == ["order_created", "awaiting_proof"]
