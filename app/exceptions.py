"""
Errors raised by the payment workflow services.

Every error here is caused by the caller (bad token, bad state, bad upload)
except ``StorageError``. The API layer renders them as
``{"error": code, "detail": message}`` with the matching status code;
nothing is retried inside the workflow.
"""

from typing import Any, Dict, Optional


class PaymentWorkflowError(Exception):
    """Base exception for the manual payment workflow"""

    status_code = 400
    headers: Optional[Dict[str, str]] = None

    def __init__(
        self,
        message: str,
        code: str = "PAYMENT_ERROR",
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.code = code
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        body = {"error": self.code, "detail": self.message}
        if self.details:
            body["details"] = self.details
        return body


class Unauthenticated(PaymentWorkflowError):
    status_code = 401
    headers = {"WWW-Authenticate": "Bearer"}

    def __init__(self, message: str = "Could not validate credentials"):
        super().__init__(message, code="Unauthenticated")


class NotFound(PaymentWorkflowError):
    status_code = 404

    def __init__(self, message: str = "Order not found"):
        super().__init__(message, code="NotFound")


class ItemNotFound(PaymentWorkflowError):
    status_code = 404

    def __init__(self, item_type: str, item_ref: int):
        super().__init__(
            f"{item_type} {item_ref} is not available for purchase",
            code="ItemNotFound",
            details={"itemType": item_type, "itemRef": item_ref},
        )


class Forbidden(PaymentWorkflowError):
    status_code = 403

    def __init__(self, message: str = "You are not allowed to access this order"):
        super().__init__(message, code="Forbidden")


class InvalidState(PaymentWorkflowError):
    status_code = 409

    def __init__(self, order_id: str, state: str, action: str):
        super().__init__(
            f"Cannot {action} order {order_id} in state '{state}'",
            code="InvalidState",
            details={"orderId": order_id, "state": state},
        )


class InvalidContentType(PaymentWorkflowError):
    status_code = 415

    def __init__(self, content_type: Optional[str]):
        super().__init__(
            f"Payment screenshot must be an image, got '{content_type}'",
            code="InvalidContentType",
        )


class PayloadTooLarge(PaymentWorkflowError):
    status_code = 413

    def __init__(self, size: int, limit: int):
        super().__init__(
            f"Payment screenshot is {size} bytes, the limit is {limit} bytes",
            code="PayloadTooLarge",
            details={"size": size, "limit": limit},
        )


class AlreadyEntitled(PaymentWorkflowError):
    status_code = 409

    def __init__(self, item_type: str, item_ref: int):
        super().__init__(
            f"You already have access to {item_type} {item_ref}",
            code="AlreadyEntitled",
            details={"itemType": item_type, "itemRef": item_ref},
        )


class StorageError(PaymentWorkflowError):
    """Object storage failed; the only error class that is not the caller's fault"""

    status_code = 502

    def __init__(self, message: str = "Screenshot storage is unavailable"):
        super().__init__(message, code="StorageError")
