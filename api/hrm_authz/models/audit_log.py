"""Audit log model for tracking role and menu changes."""
from datetime import datetime
from typing import Optional
from sqlalchemy import String, Integer, DateTime, JSON
from sqlalchemy.orm import Mapped, mapped_column
from hrm_authz.models.base import Base, utc_now


class AuditLog(Base):
    """Append-only record of catalog mutations."""
    __tablename__ = "audit_logs"

    log_id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    entity_type: Mapped[str] = mapped_column(String(50), nullable=False)  # Role, Menu, MenuBinding
    entity_id: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    action: Mapped[str] = mapped_column(String(50), nullable=False)  # CREATE, UPDATE, DELETE, ...
    user_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)  # None for bootstrap
    changes: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True)
    timestamp: Mapped[datetime] = mapped_column(DateTime, default=utc_now, nullable=False)
