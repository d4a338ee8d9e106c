"""Request dependencies: the acting principal and role gates."""
import uuid
from dataclasses import dataclass
from typing import FrozenSet, Iterable, Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from hrm_authz.core.exceptions import ForbiddenError, UnauthorizedError, ValidationError
from hrm_authz.core.roles import ROLE_ADMIN_TIER, ROLE_READER_TIER, RoleKey, normalize_role_key
from hrm_authz.core.security import decode_token

security_scheme = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class Principal:
    """Authenticated caller as asserted by the bearer token."""
    uid: str
    role: str
    company_id: Optional[str] = None
    employee_id: Optional[str] = None
    manager_id: Optional[str] = None

    @property
    def role_key(self) -> Optional[RoleKey]:
        return normalize_role_key(self.role)


def _optional_str(value) -> Optional[str]:
    return str(value) if value is not None else None


async def get_current_principal(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security_scheme),
) -> Principal:
    """Build the principal from the bearer token or fail with 401."""
    if credentials is None:
        raise UnauthorizedError("Authentication required", "Missing bearer token")

    payload = decode_token(credentials.credentials)
    if payload is None:
        raise UnauthorizedError("Authentication required", "Invalid or expired token")

    uid = payload.get("sub")
    role = payload.get("role")
    if not uid or not role:
        raise UnauthorizedError("Authentication required", "Token is missing the subject or role claim")

    return Principal(
        uid=str(uid),
        role=str(role),
        company_id=_optional_str(payload.get("company_id")),
        employee_id=_optional_str(payload.get("employee_id")),
        manager_id=_optional_str(payload.get("manager_id")),
    )


class RequireRole:
    """Dependency that admits only principals holding one of the given roles."""

    def __init__(self, allowed: Iterable[RoleKey]):
        self.allowed: FrozenSet[RoleKey] = frozenset(allowed)

    async def __call__(self, principal: Principal = Depends(get_current_principal)) -> Principal:
        if principal.role_key not in self.allowed:
            raise ForbiddenError(
                "Insufficient permissions",
                f"Role '{principal.role}' is not allowed to perform this action"
            )
        return principal


require_role_admin = RequireRole(ROLE_ADMIN_TIER)
require_role_reader = RequireRole(ROLE_READER_TIER)


def validate_role_id(role_id: str) -> str:
    """Reject path ids that are not UUIDs before touching the store."""
    try:
        parsed = uuid.UUID(role_id)
    except (ValueError, AttributeError, TypeError):
        parsed = None
    if parsed is None or str(parsed) != role_id.lower():
        raise ValidationError("Invalid role ID format. Must be a valid UUID.")
    return role_id
