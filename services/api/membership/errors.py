"""
Error taxonomy for the membership subsystem.

Every failure a client can see maps to one of these, each with a stable
HTTP status and a short message. The FastAPI exception handler in
services.api.main renders them into the standard error envelope.

Invite terminal states get distinct codes (GONE / EXPIRED / EXHAUSTED)
so clients can show distinct messaging.
"""

from __future__ import annotations


class MembershipError(Exception):
    code: str = "INTERNAL_ERROR"
    status_code: int = 500
    default_message: str = "An unexpected error occurred."

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_error(self) -> dict:
        return {"code": self.code, "message": self.message}


class Unauthenticated(MembershipError):
    code = "UNAUTHENTICATED"
    status_code = 401
    default_message = "Authentication required."


class Unauthorized(MembershipError):
    code = "FORBIDDEN"
    status_code = 403
    default_message = "You do not have access to this trip."


class NotFound(MembershipError):
    code = "NOT_FOUND"
    status_code = 404
    default_message = "Resource not found."


class InvalidInput(MembershipError):
    code = "INVALID_INPUT"
    status_code = 400
    default_message = "Invalid request."


class MissingFields(MembershipError):
    code = "VALIDATION_ERROR"
    status_code = 422
    default_message = "Required fields are missing."


class UnsupportedResource(MembershipError):
    code = "UNSUPPORTED_RESOURCE"
    status_code = 400
    default_message = "Unsupported resource type."


class Gone(MembershipError):
    code = "INVITE_GONE"
    status_code = 410
    default_message = "Invitation is no longer active."


class Expired(MembershipError):
    code = "INVITE_EXPIRED"
    status_code = 410
    default_message = "Invitation has expired."


class Exhausted(MembershipError):
    code = "INVITE_EXHAUSTED"
    status_code = 409
    default_message = "Invitation has reached maximum uses."


class Conflict(MembershipError):
    code = "CONFLICT"
    status_code = 409
    default_message = "Invitation is no longer active."


class RateLimited(MembershipError):
    code = "RATE_LIMITED"
    status_code = 429
    default_message = "Too many requests. Please wait a minute."


class Internal(MembershipError):
    pass
