"""Navigation catalog: menu nodes and their role bindings."""
from datetime import datetime
from typing import List, Optional

from sqlalchemy import Boolean, DateTime, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from hrm_authz.models.base import Base, new_uuid, utc_now


class MenuNode(Base):
    """Navigation entry keyed by a stable slug (e.g. ``leave-requests``)."""
    __tablename__ = "menus"

    id: Mapped[str] = mapped_column(String(100), primary_key=True)
    label: Mapped[str] = mapped_column(String(255), nullable=False)
    path: Mapped[str] = mapped_column(String(500), nullable=False)
    icon: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    parent_id: Mapped[Optional[str]] = mapped_column(
        String(100),
        ForeignKey("menus.id", ondelete="RESTRICT"),
        nullable=True,
        index=True
    )
    display_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0, index=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utc_now)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utc_now, onupdate=utc_now)

    parent: Mapped[Optional["MenuNode"]] = relationship(
        "MenuNode",
        back_populates="children",
        remote_side="MenuNode.id"
    )
    children: Mapped[List["MenuNode"]] = relationship(
        "MenuNode",
        back_populates="parent",
        order_by="MenuNode.display_order, MenuNode.label"
    )
    bindings: Mapped[List["RoleMenuBinding"]] = relationship(
        "RoleMenuBinding",
        back_populates="menu",
        cascade="all, delete-orphan",
        passive_deletes=True
    )

    @property
    def role_keys(self) -> List[str]:
        return sorted(binding.role_key for binding in self.bindings)

    def __repr__(self) -> str:
        return f"<MenuNode(id={self.id}, parent_id={self.parent_id}, order={self.display_order})>"


class RoleMenuBinding(Base):
    """Grants visibility of one menu node to one role key."""
    __tablename__ = "menu_roles"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_uuid)
    menu_id: Mapped[str] = mapped_column(
        String(100),
        ForeignKey("menus.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    role_key: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utc_now)

    menu: Mapped["MenuNode"] = relationship("MenuNode", back_populates="bindings")

    __table_args__ = (
        UniqueConstraint("menu_id", "role_key", name="uq_menu_roles_menu_role"),
    )
