from __future__ import annotations
from enum import Enum


class ValidationCode(str, Enum):
    EMPTY_FIELD = "empty_field"
    INVALID_REPS = "invalid_reps"
    INVALID_WEIGHT = "invalid_weight"
    OUT_OF_ORDER_SET = "out_of_order_set"


class ValidationError(ValueError):
    """Rejected set entry. Always recoverable by correcting the input."""

    code: ValidationCode

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.code.value.replace("_", " "))


class EmptyFieldError(ValidationError):
    code = ValidationCode.EMPTY_FIELD


class InvalidRepsError(ValidationError):
    code = ValidationCode.INVALID_REPS


class InvalidWeightError(ValidationError):
    code = ValidationCode.INVALID_WEIGHT


class OutOfOrderSetError(ValidationError):
    code = ValidationCode.OUT_OF_ORDER_SET


class NotFoundError(ValueError):
    """Unknown training, exercise or trainee record."""


class StoreError(RuntimeError):
    """Persistence failure reported by a repository."""


class HistoryLookupError(StoreError):
    """History read failed; callers treat it as missing history."""
