"""Caller-scoped authorization routes: own menu tree and capabilities."""
from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from hrm_authz.core.capabilities import build_capabilities, get_accessible_company_ids
from hrm_authz.core.database import get_db
from hrm_authz.core.deps import Principal, get_current_principal
from hrm_authz.core.roles import get_role_display
from hrm_authz.schemas.common import Envelope, success
from hrm_authz.schemas.menu import MenuTreeNode
from hrm_authz.services.menu_authorization import MenuAuthorizationService

router = APIRouter()


@router.get("/menu", response_model=Envelope[List[MenuTreeNode]], response_model_exclude_none=True)
def get_my_menu(
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    """Navigation tree for the caller's role."""
    tree = MenuAuthorizationService(db).get_menu_for_role(principal.role)
    return success(tree, message="Menu retrieved successfully")


@router.get("/capabilities", response_model=Envelope[dict])
def get_my_capabilities(principal: Principal = Depends(get_current_principal)):
    role_key = principal.role_key
    return success(
        {
            "role": principal.role,
            "role_key": role_key.value if role_key else None,
            "role_display": get_role_display(role_key, fallback=principal.role),
            "company_id": principal.company_id,
            "accessible_company_ids": get_accessible_company_ids(principal.role, principal.company_id),
            "capabilities": build_capabilities(principal.role),
        },
        message="Capabilities retrieved successfully"
    )
