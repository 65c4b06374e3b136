"""Error taxonomy for the area lifecycle engine.

Every engine failure carries the operation that was attempted and, where it
applies, the area status that rejected it. The API layer maps ``code`` to an
HTTP response; nothing here is retried.
"""

from typing import Any


class AreaEngineError(Exception):
    """Base class for engine failures."""

    code = "EngineError"
    http_status = 500

    def __init__(self, operation: str, message: str, status: str | None = None):
        super().__init__(message)
        self.operation = operation
        self.status = status
        self.message = message

    def to_dict(self) -> dict[str, Any]:
        return {
            "error": self.code,
            "operation": self.operation,
            "status": self.status,
            "message": self.message,
        }


class StateTransitionError(AreaEngineError):
    """Operation is not legal for the area's current status."""

    code = "InvalidState"
    http_status = 409

    def __init__(self, operation: str, status: str, message: str | None = None):
        super().__init__(
            operation,
            message or f"Invalid state transition in {operation} for status {status}",
            status=status,
        )


class InvalidTransitionError(StateTransitionError):
    """Attempted status change outside the allowed graph."""

    code = "InvalidTransition"


class MissingEvidenceError(AreaEngineError):
    """Prerequisite answers or questions are absent."""

    code = "MissingEvidence"
    http_status = 422


class EvaluatorError(AreaEngineError):
    """The external evaluator failed or returned structurally invalid data."""

    code = "EvaluatorError"
    http_status = 502


class NotFoundError(AreaEngineError):
    """Referenced run area (or question) does not exist."""

    code = "NotFound"
    http_status = 404


class ConflictError(AreaEngineError):
    """Area status changed between the guard check and the commit."""

    code = "ConflictError"
    http_status = 409
