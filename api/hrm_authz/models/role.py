"""Role model."""
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import Boolean, CheckConstraint, DateTime, ForeignKey, Integer, JSON, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from hrm_authz.models.base import Base, new_uuid, utc_now


class Role(Base):
    """Node in the role forest.

    Parents strictly outrank children (lower ``hierarchy_level``). The parent
    pointer is RESTRICT so the store itself refuses to orphan children.
    """
    __tablename__ = "roles"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_uuid)
    role_key: Mapped[str] = mapped_column(String(50), unique=True, nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    hierarchy_level: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    parent_role_id: Mapped[Optional[str]] = mapped_column(
        String(36),
        ForeignKey("roles.id", ondelete="RESTRICT"),
        nullable=True,
        index=True
    )
    company_id: Mapped[Optional[str]] = mapped_column(String(36), nullable=True, index=True)
    is_system_role: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, index=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, index=True)

    permissions: Mapped[Dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)
    menu_access: Mapped[List[str]] = mapped_column(JSON, nullable=False, default=list)

    can_access_all_companies: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    can_access_multiple_companies: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    can_access_single_company: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    can_manage_companies: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    can_create_companies: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    can_manage_provider_staff: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    can_manage_employees: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    can_approve_leaves: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    can_view_payroll: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    created_by: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    updated_by: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utc_now)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utc_now, onupdate=utc_now)

    parent: Mapped[Optional["Role"]] = relationship(
        "Role",
        back_populates="children",
        remote_side="Role.id"
    )
    children: Mapped[List["Role"]] = relationship(
        "Role",
        back_populates="parent",
        order_by="Role.hierarchy_level, Role.name"
    )

    __table_args__ = (
        CheckConstraint(
            "hierarchy_level >= 1 AND hierarchy_level <= 8",
            name="ck_roles_hierarchy_level_range"
        ),
        CheckConstraint(
            "parent_role_id IS NULL OR parent_role_id != id",
            name="ck_roles_no_self_parent"
        ),
    )

    def __repr__(self) -> str:
        return f"<Role(id={self.id}, role_key={self.role_key}, level={self.hierarchy_level})>"
