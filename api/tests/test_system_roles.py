"""Tests for built-in role bootstrap."""
from hrm_authz.core.roles import SYSTEM_ROLES, CAPABILITY_FLAGS
from hrm_authz.models.audit_log import AuditLog
from hrm_authz.models.role import Role
from hrm_authz.services.role_hierarchy import RoleHierarchyService


EXPECTED_LEVELS = {
    "super_admin": 1,
    "provider_admin": 2,
    "provider_hr_staff": 3,
    "hrbp": 4,
    "company_admin": 5,
    "department_head": 6,
    "manager": 7,
    "employee": 8,
}


def test_initialize_creates_all_system_roles(db_session):
    created = RoleHierarchyService(db_session).initialize_system_roles()

    assert created == [definition.key.value for definition in SYSTEM_ROLES]
    roles = db_session.query(Role).all()
    assert {role.role_key: role.hierarchy_level for role in roles} == EXPECTED_LEVELS
    assert all(role.is_system_role and role.is_active for role in roles)
    assert all(role.parent_role_id is None for role in roles)


def test_initialize_is_idempotent(db_session):
    service = RoleHierarchyService(db_session)
    service.initialize_system_roles()
    assert service.initialize_system_roles() == []

    assert db_session.query(Role).filter(Role.is_system_role == True).count() == 8  # noqa: E712


def test_existing_rows_are_not_rewritten(db_session):
    service = RoleHierarchyService(db_session)
    service.initialize_system_roles()
    db_session.query(Role).filter(Role.role_key == "hrbp").update({"description": "Locally edited"})
    db_session.commit()

    service.initialize_system_roles()

    hrbp = db_session.query(Role).filter(Role.role_key == "hrbp").one()
    assert hrbp.description == "Locally edited"


def test_only_missing_roles_are_created(db_session):
    service = RoleHierarchyService(db_session)
    service.initialize_system_roles()
    db_session.query(Role).filter(Role.role_key == "manager").delete()
    db_session.commit()

    assert service.initialize_system_roles() == ["manager"]


def test_capability_columns_match_bundles(db_session):
    RoleHierarchyService(db_session).initialize_system_roles()
    for definition in SYSTEM_ROLES:
        role = db_session.query(Role).filter(Role.role_key == definition.key.value).one()
        for flag in CAPABILITY_FLAGS:
            assert getattr(role, flag) is definition.capabilities[flag], (definition.key, flag)


def test_payroll_bundle(db_session):
    RoleHierarchyService(db_session).initialize_system_roles()
    with_payroll = {
        role.role_key
        for role in db_session.query(Role).filter(Role.can_view_payroll == True).all()  # noqa: E712
    }
    assert with_payroll == {"super_admin", "provider_admin", "provider_hr_staff", "hrbp", "company_admin"}


def test_bootstrap_is_audited_without_user(db_session):
    RoleHierarchyService(db_session).initialize_system_roles()
    entries = db_session.query(AuditLog).filter(AuditLog.action == "INITIALIZE").all()
    assert len(entries) == 8
    assert all(entry.user_id is None for entry in entries)
