"""
Failures raised by the service layer.

Routers let these propagate; the handlers registered in main.py turn them
into the JSON error envelope ``{"success": false, "message": ..., "errors": ...}``.
"""
from typing import Dict, List, Optional


class ServiceError(Exception):
    status_code = 400
    default_message = "Request failed"

    def __init__(self, message: Optional[str] = None, *, errors: Optional[Dict[str, List[str]]] = None):
        self.message = message or self.default_message
        self.errors = errors
        super().__init__(self.message)


class NotFound(ServiceError):
    # Also used for resources owned by someone else, so their existence does not leak
    status_code = 404
    default_message = "Resource not found"


class ValidationFailed(ServiceError):
    status_code = 422
    default_message = "Validation error"

    @classmethod
    def field(cls, name: str, message: str) -> "ValidationFailed":
        return cls(message, errors={name: [message]})


class InvalidState(ServiceError):
    status_code = 400
    default_message = "Operation not allowed in the current state"


class EmptyCart(ServiceError):
    status_code = 400
    default_message = "Cart is empty"


class AlreadyExists(ServiceError):
    status_code = 409
    default_message = "Resource already exists"


class Forbidden(ServiceError):
    status_code = 403
    default_message = "Forbidden"


class TransactionFailed(ServiceError):
    """Unexpected fault inside an atomic block; the transaction was rolled back."""

    status_code = 500
    default_message = "Transaction failed"

    def __init__(self, message: Optional[str] = None, *, cause: Optional[BaseException] = None):
        super().__init__(message)
        self.cause = cause


class CheckoutFailed(TransactionFailed):
    default_message = "Failed to create order"
