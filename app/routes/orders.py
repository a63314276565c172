from fastapi import APIRouter, Depends, File, Query, Response, UploadFile
from sqlmodel import Session

from app.config import settings
from app.database import get_session
from app.models.order import Order
from app.models.user import User
from app.schemas.order_schemas import (
    CreateOrderRequest,
    DecisionRequest,
    OrderDetail,
    OrderPage,
    OrderRead,
    PaymentProofRead,
    ProofUploadResponse,
)
from app.services import approval_service, order_service, proof_service
from app.services.payment_workflow import (
    order_status,
    payment_instructions,
    start_purchase,
    submit_proof,
)
from app.services.storage import ProofStorage, get_storage
from app.utils.token import get_current_user

router = APIRouter()


def to_order_detail(order: Order) -> OrderDetail:
    return OrderDetail(
        **OrderRead.model_validate(order).model_dump(),
        status=order_status(order),
        payment_instructions=payment_instructions(order),
    )


@router.post("", response_model=OrderDetail, status_code=201)
def create_order(
    payload: CreateOrderRequest,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    """Start a purchase; paid items come back in pending_proof with UPI details"""
    order = start_purchase(session, current_user, payload.item_type, payload.item_ref)
    return to_order_detail(order)


@router.get("/my", response_model=OrderPage)
def my_orders(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    return order_service.list_orders_for_buyer(
        session, current_user.id, page=page, limit=limit, transform=to_order_detail
    )


@router.get("/{order_id}", response_model=OrderDetail)
def get_order(
    order_id: str,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    order = order_service.get_order(session, order_id, current_user)
    return to_order_detail(order)


@router.post("/{order_id}/proof", response_model=ProofUploadResponse, status_code=201)
def upload_proof(
    order_id: str,
    screenshot: UploadFile = File(...),
    session: Session = Depends(get_session),
    storage: ProofStorage = Depends(get_storage),
    current_user: User = Depends(get_current_user),
):
    # read one byte past the limit so oversized uploads are detected without buffering them whole
    contents = screenshot.file.read(settings.max_proof_bytes + 1)
    size = max(screenshot.size or 0, len(contents))

    proof = submit_proof(
        session,
        storage,
        order_id,
        current_user,
        contents,
        screenshot.content_type,
        filename=screenshot.filename,
        size=size,
    )
    order = order_service.load_order(session, order_id)

    return ProofUploadResponse(
        message="Payment screenshot uploaded. Your order is pending admin approval.",
        proof=PaymentProofRead.model_validate(proof),
        order=to_order_detail(order),
    )


@router.get("/{order_id}/proof", response_model=PaymentProofRead)
def get_proof(
    order_id: str,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    return proof_service.get_proof(session, order_id, current_user)


@router.get("/{order_id}/proof/image")
def get_proof_image(
    order_id: str,
    session: Session = Depends(get_session),
    storage: ProofStorage = Depends(get_storage),
    current_user: User = Depends(get_current_user),
):
    proof, data = proof_service.fetch_proof_image(session, storage, order_id, current_user)
    return Response(
        content=data,
        media_type=proof.content_type,
        headers={
            "Content-Disposition": f'attachment; filename="{order_id}"',
            "X-Content-Type-Options": "nosniff",
        },
    )


@router.post("/{order_id}/decision", response_model=OrderDetail)
def decide_order(
    order_id: str,
    payload: DecisionRequest,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    """Admin approves or rejects a screenshot; approval grants access"""
    order = approval_service.decide(
        session, order_id, current_user, payload.outcome, note=payload.note
    )
    return to_order_detail(order)
