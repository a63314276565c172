from enum import Enum


class OrderState(str, Enum):
    created = "created"
    pending_proof = "pending_proof"
    pending_review = "pending_review"
    approved = "approved"
    rejected = "rejected"


class ItemType(str, Enum):
    course = "course"
    test_series = "testSeries"
    ebook = "ebook"
    study_material = "studyMaterial"


class DecisionOutcome(str, Enum):
    approved = "approved"
    rejected = "rejected"


ALLOWED_TRANSITIONS = {
    OrderState.created: [OrderState.pending_proof],
    OrderState.pending_proof: [OrderState.pending_review],
    OrderState.pending_review: [
        OrderState.pending_review,
        OrderState.approved,
        OrderState.rejected,
    ],
    OrderState.approved: [],
    OrderState.rejected: [],
}

# a proof may be uploaded (or replaced) only in these states
PROOF_ACCEPTING_STATES = (OrderState.pending_proof, OrderState.pending_review)

TERMINAL_STATES = (OrderState.approved, OrderState.rejected)

SYSTEM_ACTOR = "system"


def can_transition(current: OrderState, new: OrderState) -> bool:
    return new in ALLOWED_TRANSITIONS.get(current, [])
