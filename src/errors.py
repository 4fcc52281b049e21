"""Application exceptions.

Each carries the HTTP status it maps to; the handlers registered in
src.main turn them into `{"error": ..., "reason": ...}` JSON bodies.
"""

from __future__ import annotations

from src.schemas.deals import DenialReason, TransitionDecision


class PortalError(Exception):
    """Base exception for the partners portal."""

    status_code = 500

    def __init__(self, message: str, fields: dict[str, str] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.fields = fields


class ValidationError(PortalError):
    """Malformed input or a precondition the caller must fix."""

    status_code = 400


class UnauthorizedError(PortalError):
    status_code = 401


class ForbiddenError(PortalError):
    status_code = 403


class NotFoundError(PortalError):
    status_code = 404

    def __init__(self, entity: str) -> None:
        super().__init__(f"{entity} not found")


class ConflictError(PortalError):
    """Concurrent modification detected; the client should reload and retry."""

    status_code = 409


class RateLimitedError(PortalError):
    status_code = 429

    def __init__(self, retry_after: int) -> None:
        super().__init__("Too many requests")
        self.retry_after = retry_after


_DENIAL_STATUS: dict[DenialReason, int] = {
    DenialReason.INVALID_TRANSITION: 400,
    DenialReason.FORBIDDEN: 403,
    DenialReason.QUOTE_REQUIRED: 400,
}


class TransitionDenied(PortalError):
    """A denied state-machine decision, raised at the service boundary."""

    def __init__(self, decision: TransitionDecision) -> None:
        if decision.allowed or decision.reason is None:
            raise ValueError("TransitionDenied requires a denied decision")
        super().__init__(decision.message or decision.reason.value)
        self.reason = decision.reason
        self.status_code = _DENIAL_STATUS[decision.reason]
