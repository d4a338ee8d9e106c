"""Domain errors raised by the authorization services.

Each error carries the HTTP status it maps to; the handlers registered in
``hrm_authz.main`` render them into the standard response envelope.
"""
from fastapi import status


class AuthzError(Exception):
    """Base error for role and menu operations."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str = "An error occurred", detail: str = ""):
        self.message = message
        self.detail = detail or message
        super().__init__(self.message)


class ValidationError(AuthzError):
    """Input or structural validation failed (level range, parent order, cycles)."""
    status_code = status.HTTP_400_BAD_REQUEST


class UnauthorizedError(AuthzError):
    """No usable principal was supplied."""
    status_code = status.HTTP_401_UNAUTHORIZED


class ForbiddenError(AuthzError):
    """Caller lacks privilege, or the target is a protected system role."""
    status_code = status.HTTP_403_FORBIDDEN


class NotFoundError(AuthzError):
    """A referenced role or menu does not exist."""
    status_code = status.HTTP_404_NOT_FOUND


class ConflictError(AuthzError):
    """The store rejected a write because of a unique or foreign-key constraint."""
    status_code = status.HTTP_409_CONFLICT
