# backend/services/errors.py
"""Typed errors raised by the workflow layer.

Every error carries the HTTP status it maps to and a short machine-readable
code. ``main.py`` registers one exception handler that turns any of them into
``{"detail": ..., "code": ...}``.
"""


class StockAppError(Exception):
    status_code = 400
    code = "STOCK_APP_ERROR"

    def __init__(self, detail: str):
        super().__init__(detail)
        self.detail = detail


class ValidationFailed(StockAppError):
    status_code = 400
    code = "VALIDATION_FAILED"


class Forbidden(StockAppError):
    status_code = 403
    code = "FORBIDDEN"


class NotFound(StockAppError):
    status_code = 404
    code = "NOT_FOUND"

    def __init__(self, resource: str, key):
        super().__init__(f"{resource} {key} not found")
        self.resource = resource
        self.key = key


class Conflict(StockAppError):
    status_code = 409
    code = "CONFLICT"


class InvalidTransition(Conflict):
    code = "INVALID_TRANSITION"

    def __init__(self, resource: str, current: str, target: str):
        super().__init__(f"{resource} cannot go from '{current}' to '{target}'")
        self.current = current
        self.target = target


class InsufficientStock(Conflict):
    code = "INSUFFICIENT_STOCK"

    def __init__(self, reference: str, available: int, requested: int):
        super().__init__(
            f"Insufficient stock for {reference}: available {available}, requested {requested}"
        )
        self.available = available
        self.requested = requested


class LedgerImmutable(StockAppError):
    status_code = 500
    code = "LEDGER_IMMUTABLE"
