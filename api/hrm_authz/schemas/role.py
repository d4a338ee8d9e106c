"""Role schemas."""
from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class CapabilityFlags(BaseModel):
    can_access_all_companies: Optional[bool] = None
    can_access_multiple_companies: Optional[bool] = None
    can_access_single_company: Optional[bool] = None
    can_manage_companies: Optional[bool] = None
    can_create_companies: Optional[bool] = None
    can_manage_provider_staff: Optional[bool] = None
    can_manage_employees: Optional[bool] = None
    can_approve_leaves: Optional[bool] = None
    can_view_payroll: Optional[bool] = None


class RoleCreate(CapabilityFlags):
    """Payload for a custom role.

    Level range and parent ordering are enforced by the service, not here, so
    that every caller (HTTP or in-process) gets the same ValidationError.
    """
    role_key: str = Field(..., min_length=1, max_length=50, description="Unique slug, immutable")
    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    hierarchy_level: int = Field(..., description="1 (highest authority) to 8 (lowest)")
    parent_role_id: Optional[str] = None
    company_id: Optional[str] = None
    permissions: Optional[Dict[str, Any]] = None
    menu_access: Optional[List[str]] = None

    @field_validator("role_key")
    @classmethod
    def validate_role_key(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Role key is required")
        return v


class RoleUpdate(CapabilityFlags):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    hierarchy_level: Optional[int] = None
    parent_role_id: Optional[str] = None
    permissions: Optional[Dict[str, Any]] = None
    menu_access: Optional[List[str]] = None
    is_active: Optional[bool] = None


class MenuAccessUpdate(BaseModel):
    menu_ids: List[str]


class PermissionsUpdate(BaseModel):
    permissions: Dict[str, Any]


class RoleResponse(BaseModel):
    id: str
    role_key: str
    name: str
    description: Optional[str] = None
    hierarchy_level: int
    parent_role_id: Optional[str] = None
    company_id: Optional[str] = None
    is_system_role: bool
    is_active: bool
    permissions: Dict[str, Any]
    menu_access: List[str]
    can_access_all_companies: bool
    can_access_multiple_companies: bool
    can_access_single_company: bool
    can_manage_companies: bool
    can_create_companies: bool
    can_manage_provider_staff: bool
    can_manage_employees: bool
    can_approve_leaves: bool
    can_view_payroll: bool
    created_by: Optional[str] = None
    updated_by: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class RoleMenuAccessResponse(BaseModel):
    id: str
    menu_access: List[str]


class RolePermissionsResponse(BaseModel):
    id: str
    permissions: Dict[str, Any]


class InitializeSystemRolesResponse(BaseModel):
    created: List[str]
    total_system_roles: int

