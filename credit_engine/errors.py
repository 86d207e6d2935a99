"""Typed errors raised by the credit engine."""

from typing import Any, Dict, Iterable, Optional


class CreditEngineError(ValueError):
    """Base exception for all expected credit engine failures."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self):
        if self.details:
            return f"{self.message} - {self.details}"
        return self.message


class SolverError(CreditEngineError):
    """Raised when loan parameters cannot be resolved."""
    pass


class InvalidInputError(SolverError):
    """Raised when a value is non-positive or negative where it must not be."""

    def __init__(self, field: str, value: Any, reason: str):
        self.field = field
        self.value = value
        self.reason = reason
        super().__init__(
            f"Invalid {field}: {reason}",
            {'field': field, 'value': str(value), 'reason': reason}
        )


class InfeasiblePaymentError(SolverError):
    """Raised when a payment can never amortize the principal."""

    def __init__(self, payment: Any, required: Any, reason: str = "does not cover monthly interest"):
        self.payment = payment
        self.required = required
        self.reason = reason
        super().__init__(
            f"Payment {payment} {reason} {required}",
            {'field': 'monthly_payment', 'payment': str(payment),
             'required': str(required), 'reason': reason}
        )


class NonconvergentError(SolverError):
    """Raised when a formula or iterative search cannot produce a value."""

    def __init__(self, reason: str, details: Optional[Dict[str, Any]] = None):
        self.reason = reason
        merged = {'reason': reason}
        merged.update(details or {})
        super().__init__(f"Calculation did not converge: {reason}", merged)


class InsufficientDataError(SolverError):
    """Raised when more than one loan parameter is missing."""

    def __init__(self, missing_fields: Iterable[str]):
        self.missing_fields = list(missing_fields)
        super().__init__(
            f"Not enough loan parameters, missing: {', '.join(self.missing_fields)}",
            {'missing_fields': self.missing_fields}
        )


class LineItemNotFoundError(CreditEngineError):
    """Raised when a line item id does not belong to the given schedule."""

    def __init__(self, line_item_id: str):
        self.line_item_id = line_item_id
        super().__init__(
            f"Schedule line item '{line_item_id}' not found",
            {'line_item_id': line_item_id}
        )


class MigrationError(CreditEngineError):
    """Raised when one legacy credit cannot be migrated."""

    def __init__(self, credit_id: str, cause: Exception):
        self.credit_id = credit_id
        self.cause = cause
        details = {'credit_id': credit_id, 'error': type(cause).__name__}
        if isinstance(cause, CreditEngineError):
            details.update(cause.details)
        super().__init__(f"Credit '{credit_id}' could not be migrated: {getattr(cause, 'message', cause)}", details)


class ScheduleInvariantError(RuntimeError):
    """A generated or mutated schedule broke an internal invariant."""
    pass
