"""Pytest fixtures for API testing."""
import os

# Must be set before the application (and its settings) is imported
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["INIT_SYSTEM_ROLES_ON_STARTUP"] = "false"
os.environ["ENVIRONMENT"] = "test"

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from hrm_authz.main import app
from hrm_authz.core.database import get_db
from hrm_authz.core.security import create_access_token
from hrm_authz.models import Base, MenuNode, RoleMenuBinding
from hrm_authz.models.role import Role
from hrm_authz.services.menu_cache import menu_cache
from hrm_authz.services.role_hierarchy import RoleHierarchyService

# In-memory SQLite for testing
SQLALCHEMY_DATABASE_URL = "sqlite:///:memory:"

engine = create_engine(
    SQLALCHEMY_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@event.listens_for(engine, "connect")
def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def override_get_db():
    """Override database dependency for testing."""
    try:
        db = TestingSessionLocal()
        yield db
    finally:
        db.close()


@pytest.fixture(autouse=True)
def reset_menu_cache():
    """Rendered trees must not leak between tests that rebuild the database."""
    menu_cache.clear()
    yield
    menu_cache.clear()


def _set_foreign_keys(enabled: bool) -> None:
    with engine.connect() as connection:
        connection.exec_driver_sql(f"PRAGMA foreign_keys={'ON' if enabled else 'OFF'}")
        connection.commit()


@pytest.fixture(scope="function")
def db_session():
    """Create a fresh database for each test."""
    _set_foreign_keys(True)
    Base.metadata.create_all(bind=engine)
    db = TestingSessionLocal()
    yield db
    db.close()
    # RESTRICT parent pointers would block the implicit DELETE done by DROP TABLE
    _set_foreign_keys(False)
    Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def client(db_session):
    """Test client with database override.

    Note: db_session already created tables, so we don't need to create them again.
    """
    app.dependency_overrides[get_db] = override_get_db

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


@pytest.fixture
def system_roles(db_session):
    """The eight built-in roles, keyed by role_key."""
    RoleHierarchyService(db_session).initialize_system_roles()
    return {role.role_key: role for role in db_session.query(Role).all()}


@pytest.fixture
def custom_role_tree(db_session):
    """Three custom roles chained regional_lead (3) -> team_lead (5) -> associate (7)."""
    service = RoleHierarchyService(db_session)
    regional = service.create_role({
        "role_key": "regional_lead",
        "name": "Regional Lead",
        "hierarchy_level": 3,
    })
    team = service.create_role({
        "role_key": "team_lead",
        "name": "Team Lead",
        "hierarchy_level": 5,
        "parent_role_id": regional.id,
    })
    associate = service.create_role({
        "role_key": "associate",
        "name": "Associate",
        "hierarchy_level": 7,
        "parent_role_id": team.id,
    })
    return {"regional": regional, "team": team, "associate": associate}


@pytest.fixture
def headers_for():
    """Build bearer headers for an arbitrary role and identity claims."""
    def _headers(role: str, sub: str = "user-1", **claims) -> dict:
        token = create_access_token(data={"sub": sub, "role": role, **claims})
        return {"Authorization": f"Bearer {token}"}
    return _headers


@pytest.fixture
def super_admin_headers(headers_for):
    return headers_for("super_admin", sub="super-admin-1")


@pytest.fixture
def provider_admin_headers(headers_for):
    return headers_for("provider_admin", sub="provider-admin-1")


@pytest.fixture
def hr_staff_headers(headers_for):
    return headers_for("provider_hr_staff", sub="hr-staff-1")


@pytest.fixture
def company_admin_headers(headers_for):
    return headers_for("company_admin", sub="company-admin-1", company_id="company-a")


@pytest.fixture
def employee_headers(headers_for):
    return headers_for("employee", sub="employee-1", company_id="company-a", employee_id="emp-1")


@pytest.fixture
def menu_catalog(db_session):
    """Small catalog covering ordering, inactive nodes and unbound parents.

    dashboard (1, everyone)
    employees (2, admins) -> employees-list (1, admins), employees-documents (2, everyone)
    leave (3, everyone) -> leave-requests (1, everyone), leave-all (2, admins), leave-archive (inactive)
    reports (4, admins, inactive)
    """
    everyone = ["super_admin", "company_admin", "employee"]
    admins = ["super_admin", "company_admin"]

    def node(menu_id, label, path, order, roles, parent_id=None, icon=None, is_active=True):
        menu = MenuNode(
            id=menu_id,
            label=label,
            path=path,
            icon=icon,
            parent_id=parent_id,
            display_order=order,
            is_active=is_active,
        )
        menu.bindings = [RoleMenuBinding(role_key=key) for key in roles]
        db_session.add(menu)
        db_session.flush()
        return menu

    menus = {
        "dashboard": node("dashboard", "Dashboard", "/dashboard", 1, everyone, icon="home"),
        "employees": node("employees", "Employees", "/dashboard/employees", 2, admins, icon="users"),
        "leave": node("leave", "Leave", "/dashboard/leave", 3, everyone, icon="calendar"),
        "reports": node("reports", "Reports", "/dashboard/reports", 4, admins, is_active=False),
    }
    menus["employees-list"] = node(
        "employees-list", "All Employees", "/dashboard/employees", 1, admins, parent_id="employees"
    )
    menus["employees-documents"] = node(
        "employees-documents", "Employee Documents", "/dashboard/employees/documents", 2, everyone,
        parent_id="employees"
    )
    menus["leave-requests"] = node(
        "leave-requests", "My Leave Requests", "/dashboard/leave/requests", 1, everyone, parent_id="leave"
    )
    menus["leave-all"] = node("leave-all", "All Leave Requests", "/dashboard/leave", 2, admins, parent_id="leave")
    menus["leave-archive"] = node(
        "leave-archive", "Archive", "/dashboard/leave/archive", 3, everyone, parent_id="leave", is_active=False
    )
    db_session.commit()
    return menus


# Postgres-only fixtures; the concurrency suite is skipped without TEST_POSTGRES_URL
@pytest.fixture(scope="session")
def postgres_engine():
    url = os.environ.get("TEST_POSTGRES_URL")
    if not url:
        pytest.skip("TEST_POSTGRES_URL not set")
    pg_engine = create_engine(url, pool_pre_ping=True)
    yield pg_engine
    pg_engine.dispose()


@pytest.fixture
def postgres_db_session(postgres_engine):
    Base.metadata.drop_all(bind=postgres_engine)
    Base.metadata.create_all(bind=postgres_engine)
    PostgresSession = sessionmaker(autocommit=False, autoflush=False, bind=postgres_engine)
    db = PostgresSession()
    yield db
    db.close()
    Base.metadata.drop_all(bind=postgres_engine)
