"""System role catalog, tiers and role-key normalization."""
from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Dict, FrozenSet, Optional, Tuple


class RoleKey(str, enum.Enum):
    # Provider tier
    SUPER_ADMIN = "super_admin"
    PROVIDER_ADMIN = "provider_admin"
    PROVIDER_HR_STAFF = "provider_hr_staff"
    # Client tier
    HRBP = "hrbp"
    COMPANY_ADMIN = "company_admin"
    DEPARTMENT_HEAD = "department_head"
    MANAGER = "manager"
    EMPLOYEE = "employee"


MIN_HIERARCHY_LEVEL = 1
MAX_HIERARCHY_LEVEL = 8

PROVIDER_TIER: FrozenSet[RoleKey] = frozenset({
    RoleKey.SUPER_ADMIN,
    RoleKey.PROVIDER_ADMIN,
    RoleKey.PROVIDER_HR_STAFF,
})

CLIENT_TIER: FrozenSet[RoleKey] = frozenset({
    RoleKey.HRBP,
    RoleKey.COMPANY_ADMIN,
    RoleKey.DEPARTMENT_HEAD,
    RoleKey.MANAGER,
    RoleKey.EMPLOYEE,
})

COMPANY_ADMIN_TIER: FrozenSet[RoleKey] = frozenset({RoleKey.HRBP, RoleKey.COMPANY_ADMIN})
MANAGER_TIER: FrozenSet[RoleKey] = frozenset({RoleKey.DEPARTMENT_HEAD, RoleKey.MANAGER})

# Who may mutate roles and menus, and who may read the role catalog
ROLE_ADMIN_TIER: FrozenSet[RoleKey] = frozenset({RoleKey.SUPER_ADMIN, RoleKey.PROVIDER_ADMIN})
ROLE_READER_TIER: FrozenSet[RoleKey] = PROVIDER_TIER

# Boolean columns on Role; camelCase spellings are accepted inside permission maps
CAPABILITY_FLAGS: Tuple[str, ...] = (
    "can_access_all_companies",
    "can_access_multiple_companies",
    "can_access_single_company",
    "can_manage_companies",
    "can_create_companies",
    "can_manage_provider_staff",
    "can_manage_employees",
    "can_approve_leaves",
    "can_view_payroll",
)


def _camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.title() for part in rest)


CAPABILITY_FLAG_ALIASES: Dict[str, str] = {
    **{flag: flag for flag in CAPABILITY_FLAGS},
    **{_camel(flag): flag for flag in CAPABILITY_FLAGS},
}


@dataclass(frozen=True)
class SystemRoleDefinition:
    key: RoleKey
    name: str
    hierarchy_level: int
    description: str
    capabilities: Dict[str, bool] = field(default_factory=dict)


def _bundle(*granted: str) -> Dict[str, bool]:
    return {flag: flag in granted for flag in CAPABILITY_FLAGS}


SYSTEM_ROLES: Tuple[SystemRoleDefinition, ...] = (
    SystemRoleDefinition(
        RoleKey.SUPER_ADMIN, "Super Admin", 1,
        "Full system access across all companies, including company management "
        "and system-wide configuration.",
        _bundle(
            "can_access_all_companies", "can_access_multiple_companies",
            "can_manage_companies", "can_create_companies",
            "can_manage_provider_staff", "can_manage_employees",
            "can_approve_leaves", "can_view_payroll",
        ),
    ),
    SystemRoleDefinition(
        RoleKey.PROVIDER_ADMIN, "Provider Admin", 2,
        "Manages the provider HR team, access to all companies",
        _bundle(
            "can_access_all_companies", "can_access_multiple_companies",
            "can_manage_provider_staff", "can_manage_employees",
            "can_approve_leaves", "can_view_payroll",
        ),
    ),
    SystemRoleDefinition(
        RoleKey.PROVIDER_HR_STAFF, "Provider HR Staff", 3,
        "Handles shared services, access to multiple or all companies",
        _bundle(
            "can_access_all_companies", "can_access_multiple_companies",
            "can_manage_employees", "can_approve_leaves", "can_view_payroll",
        ),
    ),
    SystemRoleDefinition(
        RoleKey.HRBP, "HRBP", 4,
        "Dedicated HR Business Partner, assigned to one company",
        _bundle(
            "can_access_single_company", "can_manage_employees",
            "can_approve_leaves", "can_view_payroll",
        ),
    ),
    SystemRoleDefinition(
        RoleKey.COMPANY_ADMIN, "Company Admin", 5,
        "Local admin within one company",
        _bundle(
            "can_access_single_company", "can_manage_employees",
            "can_approve_leaves", "can_view_payroll",
        ),
    ),
    SystemRoleDefinition(
        RoleKey.DEPARTMENT_HEAD, "Department Head", 6,
        "Top-level manager within a company",
        _bundle("can_access_single_company", "can_approve_leaves"),
    ),
    SystemRoleDefinition(
        RoleKey.MANAGER, "Manager", 7,
        "Direct reporting manager",
        _bundle("can_access_single_company", "can_approve_leaves"),
    ),
    SystemRoleDefinition(
        RoleKey.EMPLOYEE, "Employee", 8,
        "Base level, self-service only",
        _bundle("can_access_single_company"),
    ),
)

SYSTEM_ROLES_BY_KEY: Dict[RoleKey, SystemRoleDefinition] = {
    definition.key: definition for definition in SYSTEM_ROLES
}

ROLE_DISPLAY_TO_KEY: Dict[str, RoleKey] = {
    definition.name.lower(): definition.key for definition in SYSTEM_ROLES
}


def normalize_role_key(value) -> Optional[RoleKey]:
    """Resolve an enum member, key, upper-case code or display name to a RoleKey."""
    if isinstance(value, RoleKey):
        return value
    if not isinstance(value, str):
        return None
    normalized = value.strip()
    if not normalized:
        return None
    lowered = normalized.lower().replace(" ", "_").replace("-", "_")
    try:
        return RoleKey(lowered)
    except ValueError:
        return ROLE_DISPLAY_TO_KEY.get(normalized.lower())


def get_role_display(role_key, fallback: str | None = None) -> Optional[str]:
    key = normalize_role_key(role_key)
    if key is None:
        return fallback
    return SYSTEM_ROLES_BY_KEY[key].name


def is_system_role_key(value) -> bool:
    return normalize_role_key(value) is not None
