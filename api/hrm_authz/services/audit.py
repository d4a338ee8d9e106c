"""Audit trail writer shared by the role and menu services."""
from typing import Optional

from sqlalchemy.orm import Session

from hrm_authz.models.audit_log import AuditLog


def create_audit_log(
    db: Session,
    entity_type: str,
    entity_id: str,
    action: str,
    user_id: Optional[str] = None,
    changes: Optional[dict] = None,
) -> AuditLog:
    """Stage an audit entry in the caller's transaction.

    The entry is committed (or rolled back) together with the mutation it
    describes.
    """
    audit_log = AuditLog(
        entity_type=entity_type,
        entity_id=str(entity_id),
        action=action,
        user_id=user_id,
        changes=changes
    )
    db.add(audit_log)
    return audit_log
