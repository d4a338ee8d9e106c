"""Capability predicates over a role classification and the acting principal.

Every function here is pure: it reads only its arguments, never touches the
database and never raises. Roles may be passed as ``RoleKey`` members,
canonical keys (``"company_admin"``) or display names; anything that does not
resolve to one of the eight built-in roles is treated as having no capability.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Iterable, List, Optional

from hrm_authz.core.roles import (
    COMPANY_ADMIN_TIER,
    CLIENT_TIER,
    MANAGER_TIER,
    PROVIDER_TIER,
    RoleKey,
    normalize_role_key,
)


@dataclass(frozen=True)
class AccessContext:
    """Identity facts about the acting principal."""
    company_id: Optional[str] = None
    employee_id: Optional[str] = None
    manager_id: Optional[str] = None


EMPTY_CONTEXT = AccessContext()


def _same(left: Optional[str], right: Optional[str]) -> bool:
    return left is not None and right is not None and left == right


def can_access_all_companies(role) -> bool:
    return normalize_role_key(role) in PROVIDER_TIER


def can_access_multiple_companies(role) -> bool:
    return normalize_role_key(role) in PROVIDER_TIER


def can_access_single_company(role) -> bool:
    return normalize_role_key(role) in CLIENT_TIER


def can_manage_companies(role) -> bool:
    return normalize_role_key(role) == RoleKey.SUPER_ADMIN


def can_create_companies(role) -> bool:
    return normalize_role_key(role) == RoleKey.SUPER_ADMIN


def can_manage_provider_staff(role) -> bool:
    return normalize_role_key(role) in {RoleKey.SUPER_ADMIN, RoleKey.PROVIDER_ADMIN}


def can_manage_employees(role) -> bool:
    return normalize_role_key(role) in PROVIDER_TIER | COMPANY_ADMIN_TIER


def can_approve_leaves(role) -> bool:
    return normalize_role_key(role) in PROVIDER_TIER | COMPANY_ADMIN_TIER | MANAGER_TIER


def can_access_company_data(
    role,
    target_company_id: Optional[str],
    user_company_id: Optional[str] = None,
) -> bool:
    if can_access_all_companies(role):
        return True
    if can_access_single_company(role):
        return _same(user_company_id, target_company_id)
    return False


def can_access_employee(
    role,
    target_employee_id: Optional[str],
    target_company_id: Optional[str],
    context: Optional[AccessContext] = None,
) -> bool:
    """Whether the principal may read the target employee's record.

    Manager-tier roles only see the employee whose id equals the principal's
    ``manager_id``; the reporting subtree is not expanded here (see
    ``is_employee_in_subtree``).
    """
    ctx = context or EMPTY_CONTEXT
    key = normalize_role_key(role)

    if key in PROVIDER_TIER:
        return True

    if key == RoleKey.EMPLOYEE:
        return _same(ctx.employee_id, target_employee_id)

    if key in CLIENT_TIER:
        if not _same(ctx.company_id, target_company_id):
            return False
        if key in COMPANY_ADMIN_TIER:
            return True
        if key in MANAGER_TIER:
            return _same(ctx.manager_id, target_employee_id)

    return False


def can_view_payroll(
    role,
    target_employee_id: Optional[str],
    context: Optional[AccessContext] = None,
    target_company_id: Optional[str] = None,
) -> bool:
    ctx = context or EMPTY_CONTEXT
    key = normalize_role_key(role)

    if key in PROVIDER_TIER:
        return True

    if key == RoleKey.EMPLOYEE:
        return _same(ctx.employee_id, target_employee_id)

    if key in COMPANY_ADMIN_TIER:
        if ctx.company_id is None:
            return False
        return target_company_id is None or ctx.company_id == target_company_id

    return False


def get_accessible_company_ids(role, user_company_id: Optional[str] = None) -> Optional[List[str]]:
    """Company ids the role may read; ``None`` means unrestricted."""
    if can_access_all_companies(role):
        return None
    if can_access_single_company(role) and user_company_id:
        return [user_company_id]
    return []


def is_employee_in_subtree(
    manager_id: Optional[str],
    target_employee_id: Optional[str],
    list_subordinate_ids: Callable[[str], Iterable[str]],
) -> bool:
    """Transitive reporting-line check.

    ``list_subordinate_ids`` returns every employee id reporting, directly or
    indirectly, to the given manager.
    """
    if manager_id is None or target_employee_id is None:
        return False
    if manager_id == target_employee_id:
        return True
    return target_employee_id in set(list_subordinate_ids(manager_id))


def build_capabilities(role) -> dict:
    """Role-only capability map for UI consumption."""
    return {
        "can_access_all_companies": can_access_all_companies(role),
        "can_access_multiple_companies": can_access_multiple_companies(role),
        "can_access_single_company": can_access_single_company(role),
        "can_manage_companies": can_manage_companies(role),
        "can_create_companies": can_create_companies(role),
        "can_manage_provider_staff": can_manage_provider_staff(role),
        "can_manage_employees": can_manage_employees(role),
        "can_approve_leaves": can_approve_leaves(role),
    }
