"""Menu catalog routes."""
from typing import List

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from hrm_authz.core.database import get_db
from hrm_authz.core.deps import Principal, require_role_admin, require_role_reader
from hrm_authz.schemas.common import Envelope, success
from hrm_authz.schemas.menu import (
    MenuNodeCreate,
    MenuNodeResponse,
    MenuNodeUpdate,
    MenuRoleAssign,
    MenuRolesReplace,
    MenuTreeNode,
)
from hrm_authz.services.menu_authorization import MenuAuthorizationService

router = APIRouter()


@router.get("", response_model=Envelope[List[MenuNodeResponse]])
def list_menus(
    include_inactive: bool = Query(False),
    db: Session = Depends(get_db),
    principal: Principal = Depends(require_role_reader),
):
    """Flat catalog with each node's bound role keys."""
    menus = MenuAuthorizationService(db).list_menus(include_inactive=include_inactive)
    return success(
        [MenuNodeResponse.model_validate(menu) for menu in menus],
        message="Menus retrieved successfully"
    )


@router.get("/role/{role_key}", response_model=Envelope[List[MenuTreeNode]], response_model_exclude_none=True)
def get_menu_for_role(
    role_key: str,
    db: Session = Depends(get_db),
    principal: Principal = Depends(require_role_reader),
):
    """Preview the navigation tree another role would see."""
    tree = MenuAuthorizationService(db).get_menu_for_role(role_key)
    return success(tree, message="Menu retrieved successfully")


@router.get("/{menu_id}", response_model=Envelope[MenuNodeResponse])
def get_menu(
    menu_id: str,
    db: Session = Depends(get_db),
    principal: Principal = Depends(require_role_reader),
):
    menu = MenuAuthorizationService(db).get_menu(menu_id)
    return success(MenuNodeResponse.model_validate(menu), message="Menu retrieved successfully")


@router.get("/{menu_id}/roles", response_model=Envelope[List[str]])
def get_menu_roles(
    menu_id: str,
    db: Session = Depends(get_db),
    principal: Principal = Depends(require_role_reader),
):
    role_keys = MenuAuthorizationService(db).get_menu_roles(menu_id)
    return success(role_keys, message="Menu roles retrieved successfully")


@router.post("", response_model=Envelope[MenuNodeResponse], status_code=status.HTTP_201_CREATED)
def create_menu(
    menu_data: MenuNodeCreate,
    db: Session = Depends(get_db),
    principal: Principal = Depends(require_role_admin),
):
    menu = MenuAuthorizationService(db).create_menu(menu_data, changed_by=principal.uid)
    return success(
        MenuNodeResponse.model_validate(menu),
        message="Menu created successfully",
        response_code=status.HTTP_201_CREATED
    )


@router.patch("/{menu_id}", response_model=Envelope[MenuNodeResponse])
def update_menu(
    menu_id: str,
    menu_data: MenuNodeUpdate,
    db: Session = Depends(get_db),
    principal: Principal = Depends(require_role_admin),
):
    menu = MenuAuthorizationService(db).update_menu(menu_id, menu_data, changed_by=principal.uid)
    return success(MenuNodeResponse.model_validate(menu), message="Menu updated successfully")


@router.delete("/{menu_id}", response_model=Envelope[dict])
def delete_menu(
    menu_id: str,
    db: Session = Depends(get_db),
    principal: Principal = Depends(require_role_admin),
):
    MenuAuthorizationService(db).delete_menu(menu_id, changed_by=principal.uid)
    return success(message="Menu deleted successfully")


@router.post("/{menu_id}/roles", response_model=Envelope[MenuNodeResponse], status_code=status.HTTP_201_CREATED)
def assign_menu_role(
    menu_id: str,
    payload: MenuRoleAssign,
    db: Session = Depends(get_db),
    principal: Principal = Depends(require_role_admin),
):
    menu = MenuAuthorizationService(db).assign_role(menu_id, payload.role_key, changed_by=principal.uid)
    return success(
        MenuNodeResponse.model_validate(menu),
        message="Role assigned to menu successfully",
        response_code=status.HTTP_201_CREATED
    )


@router.put("/{menu_id}/roles", response_model=Envelope[MenuNodeResponse])
def replace_menu_roles(
    menu_id: str,
    payload: MenuRolesReplace,
    db: Session = Depends(get_db),
    principal: Principal = Depends(require_role_admin),
):
    menu = MenuAuthorizationService(db).set_roles(menu_id, payload.role_keys, changed_by=principal.uid)
    return success(MenuNodeResponse.model_validate(menu), message="Menu roles replaced successfully")


@router.delete("/{menu_id}/roles/{role_key}", response_model=Envelope[MenuNodeResponse])
def remove_menu_role(
    menu_id: str,
    role_key: str,
    db: Session = Depends(get_db),
    principal: Principal = Depends(require_role_admin),
):
    menu = MenuAuthorizationService(db).remove_role(menu_id, role_key, changed_by=principal.uid)
    return success(MenuNodeResponse.model_validate(menu), message="Role removed from menu successfully")
