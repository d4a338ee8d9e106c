"""ORM models; importing this package registers every table on Base.metadata."""
from hrm_authz.models.base import Base
from hrm_authz.models.role import Role
from hrm_authz.models.menu import MenuNode, RoleMenuBinding
from hrm_authz.models.audit_log import AuditLog

__all__ = [
    "Base",
    "Role",
    "MenuNode",
    "RoleMenuBinding",
    "AuditLog",
]
