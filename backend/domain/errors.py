"""
Custom domain exceptions for consistent error handling.

Each concrete error carries a stable machine-readable ``code`` and an HTTP
status. They are raised inside the unit of work (forcing a rollback) and
rendered by the exception handlers in main.py.
"""
from fastapi import HTTPException, status


class DomainError(HTTPException):
    """Base class for all domain-specific errors."""
    code = "domain_error"
    default_message = "Request failed"
    default_status = status.HTTP_400_BAD_REQUEST

    def __init__(
        self,
        message: str | None = None,
        status_code: int | None = None,
        details: dict | None = None,
    ):
        message = message or self.default_message
        super().__init__(status_code=status_code or self.default_status, detail=message)
        self.message = message
        self.details = details or {}


# ── Not found (404) ─────────────────────────────────────────────────

class NotFoundError(DomainError):
    """Resource not found (404)."""
    code = "not_found"
    default_status = status.HTTP_404_NOT_FOUND

    def __init__(self, resource_type: str, identifier, details: dict | None = None, status_code: int | None = None):
        super().__init__(f"{resource_type} not found: {identifier}", status_code=status_code, details=details)


class OrderNotFoundError(NotFoundError):
    code = "order_not_found"

    def __init__(self, order_id, details: dict | None = None):
        super().__init__("Order", order_id, details={"order_id": order_id, **(details or {})})


class PaymentNotFoundError(NotFoundError):
    """
    Payment missing. 404 when addressed directly, 400 when it is a
    precondition of another operation (cancelling a paid order).
    """
    code = "payment_not_found"

    def __init__(self, identifier, status_code: int | None = None, details: dict | None = None):
        super().__init__("Payment", identifier, details=details, status_code=status_code)


# ── Request / catalog (400) ─────────────────────────────────────────

class ValidationError(DomainError):
    """Validation error (400)."""
    code = "validation_error"

    def __init__(self, message: str, field: str | None = None, details: dict | None = None):
        if field:
            message = f"Validation error on {field}: {message}"
        super().__init__(message, details=details)


class EmptyOrderError(DomainError):
    code = "empty_order"
    default_message = "Order items required."


class ProductNotFoundError(DomainError):
    """Unknown or inactive product referenced by an order line (400)."""
    code = "product_not_found"

    def __init__(self, product_id: int):
        super().__init__(f"Product not found: {product_id}", details={"product_id": product_id})


# ── Order state machine (400) ───────────────────────────────────────

class OrderFinalizedError(DomainError):
    code = "order_finalized"

    def __init__(self, current_status: str):
        super().__init__(
            f"Order already {current_status}, status cannot be changed.",
            details={"status": current_status},
        )


class InvalidTransitionError(DomainError):
    code = "invalid_transition"

    def __init__(self, from_status: str, to_status: str):
        super().__init__(
            f"Invalid status transition from {from_status} to {to_status}.",
            details={"from": from_status, "to": to_status},
        )


class PaymentNotVerifiedError(DomainError):
    code = "payment_not_verified"
    default_message = "Payment must be verified first."


class InsufficientStockError(DomainError):
    code = "insufficient_stock"

    def __init__(self, product_id: int, requested: int):
        super().__init__(
            "Insufficient stock.",
            details={"product_id": product_id, "requested": requested},
        )
        self.product_id = product_id


class AlreadyCancelledError(DomainError):
    code = "already_cancelled"
    default_message = "Order is already cancelled."


class OrderNotCancellableError(DomainError):
    code = "order_not_cancellable"

    def __init__(self, current_status: str):
        super().__init__(
            f"Only PAID or PROCESSING orders can be cancelled (current: {current_status}).",
            details={"status": current_status},
        )


# ── Payment lifecycle (400) ─────────────────────────────────────────

class PaymentAlreadyProcessedError(DomainError):
    code = "payment_already_processed"

    def __init__(self, current_status: str):
        super().__init__(
            f"Payment already {current_status}.",
            details={"status": current_status},
        )


class InvalidOrderStatusError(DomainError):
    code = "invalid_order_status"

    def __init__(self, current_status: str):
        super().__init__(
            f"Order must be PENDING for this payment action (current: {current_status}).",
            details={"status": current_status},
        )


class OrderAlreadyCompletedError(DomainError):
    code = "order_already_completed"
    default_message = "Order already completed, payment cannot be rejected."


# ── Access / concurrency ────────────────────────────────────────────

class UnauthorizedError(DomainError):
    """Unauthorized access (401)."""
    code = "unauthorized"
    default_message = "Authentication required."
    default_status = status.HTTP_401_UNAUTHORIZED


class ForbiddenError(DomainError):
    """Caller may not act on this resource (403)."""
    code = "forbidden"
    default_message = "Access forbidden."
    default_status = status.HTTP_403_FORBIDDEN


class ConcurrentModificationError(DomainError):
    """Another transaction changed the row between read and write (409)."""
    code = "concurrent_modification"
    default_message = "Resource was modified concurrently, retry the request."
    default_status = status.HTTP_409_CONFLICT
