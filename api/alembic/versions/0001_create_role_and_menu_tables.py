"""create_role_and_menu_tables

Revision ID: 0001
Revises:
Create Date: 2026-10-19 00:00:00.000000
"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "0001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

CAPABILITY_FLAGS = (
    "can_access_all_companies",
    "can_access_multiple_companies",
    "can_access_single_company",
    "can_manage_companies",
    "can_create_companies",
    "can_manage_provider_staff",
    "can_manage_employees",
    "can_approve_leaves",
    "can_view_payroll",
)


def upgrade() -> None:
    op.create_table(
        "roles",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("role_key", sa.String(length=50), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("hierarchy_level", sa.Integer(), nullable=False),
        sa.Column("parent_role_id", sa.String(length=36),
                  sa.ForeignKey("roles.id", ondelete="RESTRICT"), nullable=True),
        sa.Column("company_id", sa.String(length=36), nullable=True),
        sa.Column("is_system_role", sa.Boolean(), nullable=False,
                  server_default=sa.text("false")),
        sa.Column("is_active", sa.Boolean(), nullable=False,
                  server_default=sa.text("true")),
        sa.Column("permissions", sa.JSON(), nullable=False),
        sa.Column("menu_access", sa.JSON(), nullable=False),
        *[
            sa.Column(flag, sa.Boolean(), nullable=False, server_default=sa.text("false"))
            for flag in CAPABILITY_FLAGS
        ],
        sa.Column("created_by", sa.String(length=64), nullable=True),
        sa.Column("updated_by", sa.String(length=64), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.CheckConstraint("hierarchy_level >= 1 AND hierarchy_level <= 8",
                           name="ck_roles_hierarchy_level_range"),
        sa.CheckConstraint("parent_role_id IS NULL OR parent_role_id != id",
                           name="ck_roles_no_self_parent"),
    )
    op.create_index("ix_roles_role_key", "roles", ["role_key"], unique=True)
    op.create_index("ix_roles_hierarchy_level", "roles", ["hierarchy_level"])
    op.create_index("ix_roles_parent_role_id", "roles", ["parent_role_id"])
    op.create_index("ix_roles_company_id", "roles", ["company_id"])
    op.create_index("ix_roles_is_system_role", "roles", ["is_system_role"])
    op.create_index("ix_roles_is_active", "roles", ["is_active"])

    op.create_table(
        "menus",
        sa.Column("id", sa.String(length=100), primary_key=True),
        sa.Column("label", sa.String(length=255), nullable=False),
        sa.Column("path", sa.String(length=500), nullable=False),
        sa.Column("icon", sa.String(length=100), nullable=True),
        sa.Column("parent_id", sa.String(length=100),
                  sa.ForeignKey("menus.id", ondelete="RESTRICT"), nullable=True),
        sa.Column("display_order", sa.Integer(), nullable=False,
                  server_default=sa.text("0")),
        sa.Column("is_active", sa.Boolean(), nullable=False,
                  server_default=sa.text("true")),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_menus_parent_id", "menus", ["parent_id"])
    op.create_index("ix_menus_display_order", "menus", ["display_order"])
    op.create_index("ix_menus_is_active", "menus", ["is_active"])

    op.create_table(
        "menu_roles",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("menu_id", sa.String(length=100),
                  sa.ForeignKey("menus.id", ondelete="CASCADE"), nullable=False),
        sa.Column("role_key", sa.String(length=50), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.UniqueConstraint("menu_id", "role_key", name="uq_menu_roles_menu_role"),
    )
    op.create_index("ix_menu_roles_menu_id", "menu_roles", ["menu_id"])
    op.create_index("ix_menu_roles_role_key", "menu_roles", ["role_key"])

    op.create_table(
        "audit_logs",
        sa.Column("log_id", sa.Integer(), primary_key=True),
        sa.Column("entity_type", sa.String(length=50), nullable=False),
        sa.Column("entity_id", sa.String(length=100), nullable=False),
        sa.Column("action", sa.String(length=50), nullable=False),
        sa.Column("user_id", sa.String(length=64), nullable=True),
        sa.Column("changes", sa.JSON(), nullable=True),
        sa.Column("timestamp", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_audit_logs_log_id", "audit_logs", ["log_id"])
    op.create_index("ix_audit_logs_entity_id", "audit_logs", ["entity_id"])


def downgrade() -> None:
    op.drop_index("ix_audit_logs_entity_id", table_name="audit_logs")
    op.drop_index("ix_audit_logs_log_id", table_name="audit_logs")
    op.drop_table("audit_logs")

    op.drop_index("ix_menu_roles_role_key", table_name="menu_roles")
    op.drop_index("ix_menu_roles_menu_id", table_name="menu_roles")
    op.drop_table("menu_roles")

    op.drop_index("ix_menus_is_active", table_name="menus")
    op.drop_index("ix_menus_display_order", table_name="menus")
    op.drop_index("ix_menus_parent_id", table_name="menus")
    op.drop_table("menus")

    for index in ("is_active", "is_system_role", "company_id", "parent_role_id",
                  "hierarchy_level", "role_key"):
        op.drop_index(f"ix_roles_{index}", table_name="roles")
    op.drop_table("roles")
