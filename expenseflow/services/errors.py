"""Errors raised by the approval workflow services.

Every error is terminal for the operation that raised it: nothing is
persisted when one of these propagates. ``status_code`` is what the HTTP
layer answers with.
"""
from __future__ import annotations


class WorkflowError(Exception):
    status_code = 400

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        return {"error": self.message, "code": type(self).__name__}


class ValidationError(WorkflowError):
    status_code = 400


class NotFound(WorkflowError):
    status_code = 404


class Unauthorized(WorkflowError):
    status_code = 403


class NoPendingStep(WorkflowError):
    status_code = 409


class CurrencyConversionError(Exception):
    """Raised by converters; the engine downgrades it to an unconverted amount."""
