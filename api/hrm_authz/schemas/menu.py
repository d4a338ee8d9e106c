"""Menu catalog schemas."""
from __future__ import annotations

import re
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

MENU_ID_PATTERN = re.compile(r"^[a-z0-9][a-z0-9_-]*$")


class MenuNodeCreate(BaseModel):
    id: str = Field(..., min_length=1, max_length=100, description="Stable slug, e.g. 'leave-requests'")
    label: str = Field(..., min_length=1, max_length=255)
    path: str = Field(..., min_length=1, max_length=500)
    icon: Optional[str] = Field(None, max_length=100)
    parent_id: Optional[str] = None
    display_order: int = 0
    is_active: bool = True
    role_keys: List[str] = Field(default_factory=list, description="Role keys bound at creation")

    @field_validator("id")
    @classmethod
    def validate_id(cls, v: str) -> str:
        if not MENU_ID_PATTERN.match(v):
            raise ValueError("Menu id must be a lowercase slug (letters, digits, '-' or '_')")
        return v


class MenuNodeUpdate(BaseModel):
    label: Optional[str] = Field(None, min_length=1, max_length=255)
    path: Optional[str] = Field(None, min_length=1, max_length=500)
    icon: Optional[str] = Field(None, max_length=100)
    parent_id: Optional[str] = None
    display_order: Optional[int] = None
    is_active: Optional[bool] = None


class MenuNodeResponse(BaseModel):
    id: str
    label: str
    path: str
    icon: Optional[str] = None
    parent_id: Optional[str] = None
    display_order: int
    is_active: bool
    role_keys: List[str] = []
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class MenuRoleAssign(BaseModel):
    role_key: str = Field(..., min_length=1, max_length=50)


class MenuRolesReplace(BaseModel):
    role_keys: List[str]


class MenuTreeNode(BaseModel):
    """Rendered navigation entry; ``children`` is absent when nothing below is visible."""
    id: str
    label: str
    path: str
    icon: Optional[str] = None
    children: Optional[List[MenuTreeNode]] = None


MenuTreeNode.model_rebuild()
