"""Role management routes."""
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from hrm_authz.core.database import get_db
from hrm_authz.core.deps import Principal, require_role_admin, require_role_reader, validate_role_id
from hrm_authz.core.roles import SYSTEM_ROLES
from hrm_authz.schemas.common import Envelope, success
from hrm_authz.schemas.role import (
    InitializeSystemRolesResponse,
    MenuAccessUpdate,
    PermissionsUpdate,
    RoleCreate,
    RoleMenuAccessResponse,
    RolePermissionsResponse,
    RoleResponse,
    RoleUpdate,
)
from hrm_authz.services.role_hierarchy import RoleHierarchyService

router = APIRouter()


def _role_list(roles) -> List[RoleResponse]:
    return [RoleResponse.model_validate(role) for role in roles]


@router.post("", response_model=Envelope[RoleResponse], status_code=status.HTTP_201_CREATED)
def create_role(
    role_data: RoleCreate,
    db: Session = Depends(get_db),
    principal: Principal = Depends(require_role_admin),
):
    """Create a custom role."""
    role = RoleHierarchyService(db).create_role(role_data, created_by=principal.uid)
    return success(
        RoleResponse.model_validate(role),
        message="Role created successfully",
        response_code=status.HTTP_201_CREATED
    )


@router.get("", response_model=Envelope[List[RoleResponse]])
def list_roles(
    company_id: Optional[str] = Query(None),
    is_system_role: Optional[bool] = Query(None),
    is_active: Optional[bool] = Query(None),
    hierarchy_level: Optional[int] = Query(None),
    db: Session = Depends(get_db),
    principal: Principal = Depends(require_role_reader),
):
    """List roles ordered by hierarchy level, then name."""
    roles = RoleHierarchyService(db).list_roles(
        company_id=company_id,
        is_system_role=is_system_role,
        is_active=is_active,
        hierarchy_level=hierarchy_level,
    )
    return success(_role_list(roles), message="Roles retrieved successfully")


@router.get("/hierarchy-level/{level}", response_model=Envelope[List[RoleResponse]])
def get_roles_by_hierarchy_level(
    level: int,
    db: Session = Depends(get_db),
    principal: Principal = Depends(require_role_reader),
):
    roles = RoleHierarchyService(db).get_roles_by_hierarchy_level(level)
    return success(_role_list(roles), message="Roles retrieved successfully")


@router.get("/key/{role_key}", response_model=Envelope[RoleResponse])
def get_role_by_key(
    role_key: str,
    db: Session = Depends(get_db),
    principal: Principal = Depends(require_role_reader),
):
    role = RoleHierarchyService(db).get_role_by_key(role_key)
    return success(RoleResponse.model_validate(role), message="Role retrieved successfully")


@router.post("/initialize", response_model=Envelope[InitializeSystemRolesResponse])
def initialize_system_roles(
    db: Session = Depends(get_db),
    principal: Principal = Depends(require_role_admin),
):
    """Insert any missing built-in roles. Safe to call repeatedly."""
    created = RoleHierarchyService(db).initialize_system_roles()
    return success(
        InitializeSystemRolesResponse(created=created, total_system_roles=len(SYSTEM_ROLES)),
        message="System roles initialized successfully"
    )


@router.get("/{role_id}", response_model=Envelope[RoleResponse])
def get_role(
    role_id: str,
    db: Session = Depends(get_db),
    principal: Principal = Depends(require_role_reader),
):
    role = RoleHierarchyService(db).get_role(validate_role_id(role_id))
    return success(RoleResponse.model_validate(role), message="Role retrieved successfully")


@router.put("/{role_id}", response_model=Envelope[RoleResponse])
def update_role(
    role_id: str,
    role_data: RoleUpdate,
    db: Session = Depends(get_db),
    principal: Principal = Depends(require_role_admin),
):
    """Patch a custom role. Omitted fields are left unchanged; ``parent_role_id: null`` detaches."""
    role = RoleHierarchyService(db).update_role(
        validate_role_id(role_id),
        role_data,
        updated_by=principal.uid
    )
    return success(RoleResponse.model_validate(role), message="Role updated successfully")


@router.delete("/{role_id}", response_model=Envelope[dict])
def delete_role(
    role_id: str,
    db: Session = Depends(get_db),
    principal: Principal = Depends(require_role_admin),
):
    RoleHierarchyService(db).delete_role(validate_role_id(role_id), deleted_by=principal.uid)
    return success(message="Role deleted successfully")


@router.get("/{role_id}/hierarchy", response_model=Envelope[List[RoleResponse]])
def get_role_hierarchy(
    role_id: str,
    db: Session = Depends(get_db),
    principal: Principal = Depends(require_role_reader),
):
    """Ancestors (root first), the role, then its direct children."""
    roles = RoleHierarchyService(db).get_role_hierarchy(validate_role_id(role_id))
    return success(_role_list(roles), message="Role hierarchy retrieved successfully")


@router.get("/{role_id}/children", response_model=Envelope[List[RoleResponse]])
def get_child_roles(
    role_id: str,
    db: Session = Depends(get_db),
    principal: Principal = Depends(require_role_reader),
):
    roles = RoleHierarchyService(db).get_child_roles(validate_role_id(role_id))
    return success(_role_list(roles), message="Child roles retrieved successfully")


@router.get("/{role_id}/parents", response_model=Envelope[List[RoleResponse]])
def get_parent_roles(
    role_id: str,
    db: Session = Depends(get_db),
    principal: Principal = Depends(require_role_reader),
):
    roles = RoleHierarchyService(db).get_parent_roles(validate_role_id(role_id))
    return success(_role_list(roles), message="Parent roles retrieved successfully")


@router.post("/{role_id}/menu-access", response_model=Envelope[RoleMenuAccessResponse])
def assign_menu_access(
    role_id: str,
    payload: MenuAccessUpdate,
    db: Session = Depends(get_db),
    principal: Principal = Depends(require_role_admin),
):
    """Replace the role's menu access list."""
    role = RoleHierarchyService(db).assign_menu_access(
        validate_role_id(role_id),
        payload.menu_ids,
        updated_by=principal.uid
    )
    return success(
        RoleMenuAccessResponse(id=role.id, menu_access=role.menu_access),
        message="Menu access assigned successfully"
    )


@router.put("/{role_id}/permissions", response_model=Envelope[RolePermissionsResponse])
def update_permissions(
    role_id: str,
    payload: PermissionsUpdate,
    db: Session = Depends(get_db),
    principal: Principal = Depends(require_role_admin),
):
    """Replace the role's permission map."""
    role = RoleHierarchyService(db).update_permissions(
        validate_role_id(role_id),
        payload.permissions,
        updated_by=principal.uid
    )
    return success(
        RolePermissionsResponse(id=role.id, permissions=role.permissions),
        message="Permissions updated successfully"
    )
