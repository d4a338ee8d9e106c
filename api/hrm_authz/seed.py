"""Seed built-in roles and the default navigation catalog."""
from typing import List

from sqlalchemy.orm import Session

from hrm_authz.core.database import SessionLocal
from hrm_authz.core.roles import (
    COMPANY_ADMIN_TIER,
    MANAGER_TIER,
    PROVIDER_TIER,
    ROLE_ADMIN_TIER,
    RoleKey,
)
from hrm_authz.models.menu import MenuNode, RoleMenuBinding
from hrm_authz.services.menu_cache import menu_cache
from hrm_authz.services.role_hierarchy import RoleHierarchyService


def _keys(*groups) -> List[str]:
    keys = set()
    for group in groups:
        keys.update(group)
    return sorted(key.value for key in keys)


EVERYONE = _keys(PROVIDER_TIER, COMPANY_ADMIN_TIER, MANAGER_TIER, {RoleKey.EMPLOYEE})
PROVIDER = _keys(PROVIDER_TIER)
ROLE_ADMINS = _keys(ROLE_ADMIN_TIER)
HR_ADMINS = _keys(PROVIDER_TIER, COMPANY_ADMIN_TIER)
APPROVERS = _keys(PROVIDER_TIER, COMPANY_ADMIN_TIER, MANAGER_TIER)
PAYROLL_SELF_SERVICE = _keys(PROVIDER_TIER, COMPANY_ADMIN_TIER, {RoleKey.EMPLOYEE})


def _child(menu_id: str, label: str, path: str, order: int, roles: List[str]) -> dict:
    return {"id": menu_id, "label": label, "path": path, "display_order": order, "roles": roles}


DEFAULT_MENUS = [
    {"id": "dashboard", "label": "Dashboard", "path": "/dashboard", "icon": "home",
     "display_order": 1, "roles": EVERYONE},
    {"id": "companies", "label": "Companies", "path": "/dashboard/companies", "icon": "building",
     "display_order": 2, "roles": PROVIDER},
    {"id": "employees", "label": "Employees", "path": "/dashboard/employees", "icon": "users",
     "display_order": 3, "roles": HR_ADMINS, "children": [
         _child("employees-list", "All Employees", "/dashboard/employees", 1, HR_ADMINS),
         _child("employees-create", "Create Employee", "/dashboard/employees/create", 2, HR_ADMINS),
         _child("employees-documents", "Employee Documents", "/dashboard/employees/documents", 3, EVERYONE),
         _child("employees-details", "Employee Details", "/dashboard/employees/details", 4, EVERYONE),
     ]},
    {"id": "departments", "label": "Departments", "path": "/dashboard/departments", "icon": "sitemap",
     "display_order": 4, "roles": APPROVERS},
    {"id": "approvals", "label": "Approvals", "path": "/dashboard/approvals", "icon": "check-circle",
     "display_order": 5, "roles": APPROVERS, "children": [
         _child("approvals-pending", "Pending Approvals", "/dashboard/approvals/pending", 1, APPROVERS),
         _child("approvals-all", "All Approvals", "/dashboard/approvals", 2, HR_ADMINS),
     ]},
    {"id": "leave", "label": "Leave", "path": "/dashboard/leave", "icon": "calendar",
     "display_order": 6, "roles": EVERYONE, "children": [
         _child("leave-requests", "My Leave Requests", "/dashboard/leave/requests", 1, EVERYONE),
         _child("leave-create", "Request Leave", "/dashboard/leave/create", 2, EVERYONE),
         _child("leave-pending-approval", "Pending Approvals", "/dashboard/leave/pending", 3, APPROVERS),
         _child("leave-all", "All Leave Requests", "/dashboard/leave", 4, HR_ADMINS),
     ]},
    {"id": "attendance", "label": "Attendance", "path": "/dashboard/attendance", "icon": "clock",
     "display_order": 7, "roles": EVERYONE, "children": [
         _child("attendance-my", "My Attendance", "/dashboard/attendance/my", 1, EVERYONE),
         _child("attendance-checkin", "Check In/Out", "/dashboard/attendance/checkin", 2, EVERYONE),
         _child("attendance-all", "All Attendance", "/dashboard/attendance", 3, APPROVERS),
         _child("attendance-stats", "Attendance Statistics", "/dashboard/attendance/stats", 4, APPROVERS),
     ]},
    {"id": "documents", "label": "Documents", "path": "/dashboard/documents", "icon": "file-text",
     "display_order": 8, "roles": EVERYONE, "children": [
         _child("documents-my", "My Documents", "/dashboard/documents/my", 1, EVERYONE),
         _child("documents-upload", "Upload Document", "/dashboard/documents/upload", 2, EVERYONE),
         _child("documents-pending", "Pending Verification", "/dashboard/documents/pending", 3, APPROVERS),
         _child("documents-all", "All Documents", "/dashboard/documents", 4, APPROVERS),
     ]},
    {"id": "payroll", "label": "Payroll", "path": "/dashboard/payroll", "icon": "dollar-sign",
     "display_order": 9, "roles": PAYROLL_SELF_SERVICE, "children": [
         _child("payroll-runs", "Payroll Runs", "/dashboard/payroll/runs", 1, HR_ADMINS),
         _child("payroll-payslips", "Payslips", "/dashboard/payroll/payslips", 2, PAYROLL_SELF_SERVICE),
         _child("payroll-salary-structures", "Salary Structures", "/dashboard/payroll/salary-structures", 3,
                HR_ADMINS),
         _child("payroll-tax-configuration", "Tax Configuration", "/dashboard/payroll/tax-configuration", 4,
                HR_ADMINS),
         _child("payroll-variable-pay", "Variable Pay", "/dashboard/payroll/variable-pay", 5, HR_ADMINS),
         _child("payroll-arrears", "Arrears", "/dashboard/payroll/arrears", 6, HR_ADMINS),
         _child("payroll-loans", "Loans", "/dashboard/payroll/loans", 7, PAYROLL_SELF_SERVICE),
         _child("payroll-reimbursements", "Reimbursements", "/dashboard/payroll/reimbursements", 8,
                PAYROLL_SELF_SERVICE),
         _child("payroll-tax-declarations", "Tax Declarations", "/dashboard/payroll/tax-declarations", 9,
                PAYROLL_SELF_SERVICE),
         _child("payroll-payslip-templates", "Payslip Templates", "/dashboard/payroll/payslip-templates", 10,
                HR_ADMINS),
         _child("payroll-payslip-schedules", "Payslip Schedules", "/dashboard/payroll/payslip-schedules", 11,
                HR_ADMINS),
     ]},
    {"id": "profile", "label": "Profile", "path": "/dashboard/profile", "icon": "user",
     "display_order": 10, "roles": EVERYONE},
    {"id": "settings", "label": "Settings", "path": "/dashboard/settings", "icon": "settings",
     "display_order": 11, "roles": HR_ADMINS, "children": [
         _child("settings-general", "General", "/dashboard/settings/general", 1, HR_ADMINS),
         _child("settings-users", "Users", "/dashboard/settings/users", 2, ROLE_ADMINS),
         _child("settings-roles", "Role Management", "/dashboard/settings/roles", 3, ROLE_ADMINS),
     ]},
    {"id": "roles", "label": "Roles", "path": "/dashboard/roles", "icon": "shield",
     "display_order": 12, "roles": PROVIDER, "children": [
         _child("roles-list", "All Roles", "/dashboard/roles", 1, PROVIDER),
         _child("roles-create", "Create Role", "/dashboard/roles/create", 2, ROLE_ADMINS),
         _child("roles-hierarchy", "Role Hierarchy", "/dashboard/roles/hierarchy", 3, PROVIDER),
     ]},
]


def _upsert_menu(db: Session, data: dict, parent_id=None) -> bool:
    """Insert or refresh one node and add any missing bindings. Returns True when inserted."""
    node = db.query(MenuNode).filter(MenuNode.id == data["id"]).first()
    created = node is None
    if created:
        node = MenuNode(id=data["id"])
        db.add(node)
    node.label = data["label"]
    node.path = data["path"]
    node.icon = data.get("icon")
    node.parent_id = parent_id
    node.display_order = data["display_order"]
    node.is_active = True

    bound = {binding.role_key for binding in node.bindings}
    for role_key in data["roles"]:
        if role_key not in bound:
            node.bindings.append(RoleMenuBinding(role_key=role_key))
    # Children reference this row
    db.flush()
    return created


def seed_menus(db: Session) -> int:
    """Upsert the default navigation catalog; existing extra bindings are kept."""
    created = 0
    for menu in DEFAULT_MENUS:
        created += _upsert_menu(db, menu)
        for child in menu.get("children", []):
            created += _upsert_menu(db, child, parent_id=menu["id"])
    db.commit()
    menu_cache.clear()
    return created


def seed_database():
    """Initialize system roles, then seed the menu catalog."""
    db = SessionLocal()

    try:
        print("Starting database seeding...")

        created_roles = RoleHierarchyService(db).initialize_system_roles()
        if created_roles:
            print(f"✓ Created system roles: {', '.join(created_roles)}")
        else:
            print("✓ System roles already exist")

        created_menus = seed_menus(db)
        print(f"✓ Menu catalog seeded ({created_menus} new menu(s))")

        print("Seeding completed successfully!")

    except Exception as e:
        print(f"Error seeding database: {e}")
        db.rollback()
        raise
    finally:
        db.close()


if __name__ == "__main__":
    seed_database()
