"""Role hierarchy service: the single writer for the roles table."""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Mapping, NoReturn, Optional, Union

from pydantic import BaseModel
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.orm import Session

from hrm_authz.core.database import is_lock_conflict
from hrm_authz.core.exceptions import (
    AuthzError,
    ConflictError,
    ForbiddenError,
    NotFoundError,
    ValidationError,
)
from hrm_authz.core.hierarchy import detect_cycle, walk_ancestors
from hrm_authz.core.roles import (
    CAPABILITY_FLAG_ALIASES,
    CAPABILITY_FLAGS,
    MAX_HIERARCHY_LEVEL,
    MIN_HIERARCHY_LEVEL,
    SYSTEM_ROLES,
)
from hrm_authz.models.menu import RoleMenuBinding
from hrm_authz.models.role import Role
from hrm_authz.schemas.role import RoleCreate, RoleUpdate
from hrm_authz.services.audit import create_audit_log
from hrm_authz.services.menu_cache import MenuTreeCache, menu_cache

logger = logging.getLogger(__name__)

CIRCULAR_REFERENCE_MESSAGE = "Circular reference detected in role hierarchy"

# Fields a PATCH may touch; role_key and is_system_role are fixed at creation
UPDATABLE_FIELDS = frozenset({
    "name",
    "description",
    "hierarchy_level",
    "parent_role_id",
    "permissions",
    "menu_access",
    "is_active",
    *CAPABILITY_FLAGS,
})
NULLABLE_FIELDS = frozenset({"description", "parent_role_id"})


def validate_hierarchy_level(level: Any) -> int:
    if isinstance(level, bool) or not isinstance(level, int):
        raise ValidationError(
            "Invalid hierarchy level",
            f"Hierarchy level must be an integer between {MIN_HIERARCHY_LEVEL} and {MAX_HIERARCHY_LEVEL}"
        )
    if level < MIN_HIERARCHY_LEVEL or level > MAX_HIERARCHY_LEVEL:
        raise ValidationError(
            "Invalid hierarchy level",
            f"Hierarchy level must be between {MIN_HIERARCHY_LEVEL} and {MAX_HIERARCHY_LEVEL}, got {level}"
        )
    return level


def validate_permissions(permissions: Any) -> Dict[str, Any]:
    """Check the keys this engine interprets; pass everything else through."""
    if not isinstance(permissions, Mapping):
        raise ValidationError("Invalid permissions", "Permissions must be a JSON object")
    for key, value in permissions.items():
        if key in CAPABILITY_FLAG_ALIASES and not isinstance(value, bool):
            raise ValidationError(
                "Invalid permissions",
                f"Permission '{key}' must be a boolean"
            )
    return dict(permissions)


def validate_menu_ids(menu_ids: Any) -> List[str]:
    if not isinstance(menu_ids, (list, tuple)) or not all(isinstance(m, str) for m in menu_ids):
        raise ValidationError("Invalid menu access", "Menu access must be a list of menu ids")
    return list(menu_ids)


class RoleHierarchyService:
    """CRUD and tree operations over roles.

    Every public mutation commits on success and rolls back on failure, so a
    caller never sees a half-applied change.
    """

    def __init__(self, db: Session, cache: Optional[MenuTreeCache] = None):
        self.db = db
        self.cache = cache if cache is not None else menu_cache

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_role(self, role_id: str, lock: bool = False) -> Role:
        query = self.db.query(Role).filter(Role.id == role_id)
        if lock:
            query = query.with_for_update()
        role = query.first()
        if not role:
            raise NotFoundError("Role not found", f"No role with id {role_id}")
        return role

    def get_role_by_key(self, role_key: str) -> Role:
        role = self.db.query(Role).filter(Role.role_key == role_key).first()
        if not role:
            raise NotFoundError("Role not found", f"No role with key '{role_key}'")
        return role

    def list_roles(
        self,
        company_id: Optional[str] = None,
        is_system_role: Optional[bool] = None,
        is_active: Optional[bool] = None,
        hierarchy_level: Optional[int] = None,
    ) -> List[Role]:
        query = self.db.query(Role)
        if company_id is not None:
            query = query.filter(Role.company_id == company_id)
        if is_system_role is not None:
            query = query.filter(Role.is_system_role == is_system_role)
        if is_active is not None:
            query = query.filter(Role.is_active == is_active)
        if hierarchy_level is not None:
            query = query.filter(Role.hierarchy_level == hierarchy_level)
        return query.order_by(Role.hierarchy_level.asc(), Role.name.asc()).all()

    def get_roles_by_hierarchy_level(self, level: int) -> List[Role]:
        validate_hierarchy_level(level)
        return self.db.query(Role).filter(
            Role.hierarchy_level == level,
            Role.is_active == True,  # noqa: E712
        ).order_by(Role.name.asc()).all()

    def get_parent_roles(self, role_id: str) -> List[Role]:
        """Ancestor chain, root first."""
        role = self.get_role(role_id)
        ancestors = list(walk_ancestors(role, self._load_parent, lambda r: r.id))
        ancestors.reverse()
        return ancestors

    def get_child_roles(self, role_id: str) -> List[Role]:
        self.get_role(role_id)
        return self._direct_children(role_id)

    def get_role_hierarchy(self, role_id: str) -> List[Role]:
        """Ancestors (root first), the role itself, then its direct children."""
        role = self.get_role(role_id)
        ancestors = list(walk_ancestors(role, self._load_parent, lambda r: r.id))
        ancestors.reverse()
        return ancestors + [role] + self._direct_children(role.id)

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def create_role(self, data: Union[RoleCreate, Mapping[str, Any]], created_by: Optional[str] = None) -> Role:
        values = data.model_dump() if isinstance(data, BaseModel) else dict(data)
        role_key = values.get("role_key")
        if not role_key or not values.get("name"):
            raise ValidationError("Invalid role", "Role key and name are required")
        level = validate_hierarchy_level(values.get("hierarchy_level"))

        if self.db.query(Role.id).filter(Role.role_key == role_key).first():
            raise ValidationError("Role key already exists", f"A role with key '{role_key}' already exists")

        parent_role_id = values.get("parent_role_id")
        if parent_role_id:
            parent = self.db.query(Role).filter(Role.id == parent_role_id).first()
            if not parent:
                raise NotFoundError("Parent role not found", f"No role with id {parent_role_id}")
            self._assert_outranks(parent, level)

        permissions = values.get("permissions")
        permissions = validate_permissions(permissions) if permissions is not None else {}
        menu_access = values.get("menu_access")
        menu_access = validate_menu_ids(menu_access) if menu_access is not None else []

        role = Role(
            role_key=role_key,
            name=values.get("name"),
            description=values.get("description"),
            hierarchy_level=level,
            parent_role_id=parent_role_id or None,
            company_id=values.get("company_id"),
            is_system_role=False,
            is_active=True,
            permissions=permissions,
            menu_access=menu_access,
            created_by=created_by,
            updated_by=created_by,
        )
        for flag in CAPABILITY_FLAGS:
            if values.get(flag) is not None:
                setattr(role, flag, values[flag])

        self.db.add(role)
        self._flush()

        create_audit_log(
            db=self.db,
            entity_type="Role",
            entity_id=role.id,
            action="CREATE",
            user_id=created_by,
            changes={
                "role_key": role.role_key,
                "name": role.name,
                "hierarchy_level": role.hierarchy_level,
                "parent_role_id": role.parent_role_id,
                "company_id": role.company_id,
            }
        )
        self._commit()
        self.db.refresh(role)
        self.cache.invalidate(role.role_key)

        logger.info("Created role %s (level %s)", role.role_key, role.hierarchy_level)
        return role

    def update_role(
        self,
        role_id: str,
        patch: Union[RoleUpdate, Mapping[str, Any]],
        updated_by: Optional[str] = None,
    ) -> Role:
        update_data = patch.model_dump(exclude_unset=True) if isinstance(patch, BaseModel) else dict(patch)

        try:
            role = self._apply_update(role_id, update_data, updated_by)
        except AuthzError:
            self.db.rollback()
            raise
        except OperationalError as exc:
            self._raise_lock_conflict(exc)
        self._commit()
        self.db.refresh(role)
        self.cache.invalidate(role.role_key)

        logger.info("Updated role %s: %s", role.role_key, ", ".join(sorted(update_data)) or "no changes")
        return role

    def delete_role(self, role_id: str, deleted_by: Optional[str] = None) -> None:
        role = self.get_role(role_id, lock=True)
        if role.is_system_role:
            self.db.rollback()
            raise ForbiddenError("System roles cannot be deleted", f"Role '{role.role_key}' is a system role")

        child_count = self.db.query(Role).filter(Role.parent_role_id == role.id).count()
        if child_count:
            self.db.rollback()
            raise ValidationError(
                "Cannot delete role with child roles",
                f"Role '{role.role_key}' has {child_count} child role(s); reassign or delete them first"
            )

        role_key = role.role_key
        create_audit_log(
            db=self.db,
            entity_type="Role",
            entity_id=role.id,
            action="DELETE",
            user_id=deleted_by,
            changes={"role_key": role_key, "name": role.name}
        )
        # Bindings are keyed by role_key; drop them so a future role reusing the key starts clean
        self.db.query(RoleMenuBinding).filter(
            RoleMenuBinding.role_key == role_key
        ).delete(synchronize_session=False)
        self.db.delete(role)
        self._commit()
        self.cache.invalidate(role_key)

        logger.info("Deleted role %s", role_key)

    def assign_menu_access(self, role_id: str, menu_ids: List[str], updated_by: Optional[str] = None) -> Role:
        menu_ids = validate_menu_ids(menu_ids)
        role = self.get_role(role_id)

        old_value = list(role.menu_access or [])
        role.menu_access = menu_ids
        role.updated_by = updated_by
        create_audit_log(
            db=self.db,
            entity_type="Role",
            entity_id=role.id,
            action="UPDATE",
            user_id=updated_by,
            changes={"menu_access": {"old": old_value, "new": menu_ids}}
        )
        self._commit()
        self.db.refresh(role)
        self.cache.invalidate(role.role_key)

        logger.info("Assigned %d menu(s) to role %s", len(menu_ids), role.role_key)
        return role

    def update_permissions(
        self,
        role_id: str,
        permissions: Mapping[str, Any],
        updated_by: Optional[str] = None,
    ) -> Role:
        permissions = validate_permissions(permissions)
        role = self.get_role(role_id)

        old_value = dict(role.permissions or {})
        role.permissions = permissions
        role.updated_by = updated_by
        create_audit_log(
            db=self.db,
            entity_type="Role",
            entity_id=role.id,
            action="UPDATE",
            user_id=updated_by,
            changes={"permissions": {"old": old_value, "new": permissions}}
        )
        self._commit()
        self.db.refresh(role)
        self.cache.invalidate(role.role_key)

        logger.info("Replaced permissions of role %s", role.role_key)
        return role

    def initialize_system_roles(self) -> List[str]:
        """Insert any missing built-in roles; existing rows are left untouched.

        Each role is committed on its own so that a row inserted concurrently by
        another instance only costs that one insert.
        """
        created: List[str] = []
        for definition in SYSTEM_ROLES:
            role_key = definition.key.value
            if self.db.query(Role.id).filter(Role.role_key == role_key).first():
                continue

            role = Role(
                role_key=role_key,
                name=definition.name,
                description=definition.description,
                hierarchy_level=definition.hierarchy_level,
                is_system_role=True,
                is_active=True,
                permissions={},
                menu_access=[],
                **definition.capabilities,
            )
            self.db.add(role)
            try:
                self.db.flush()
                create_audit_log(
                    db=self.db,
                    entity_type="Role",
                    entity_id=role.id,
                    action="INITIALIZE",
                    changes={"role_key": role_key, "hierarchy_level": definition.hierarchy_level}
                )
                self.db.commit()
            except IntegrityError:
                self.db.rollback()
                logger.info("System role %s already created by another instance, skipping", role_key)
                continue
            created.append(role_key)

        if created:
            self.cache.invalidate(*created)
            logger.info("Initialized system roles: %s", ", ".join(created))
        return created

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _apply_update(self, role_id: str, update_data: Dict[str, Any], updated_by: Optional[str]) -> Role:
        parent_changed = "parent_role_id" in update_data
        new_parent_id = update_data.get("parent_role_id") or None
        if isinstance(new_parent_id, str) and new_parent_id != role_id:
            locked = self._lock_roles(role_id, new_parent_id)
        else:
            locked = self._lock_roles(role_id)

        role = locked.get(role_id)
        if not role:
            raise NotFoundError("Role not found", f"No role with id {role_id}")
        if role.is_system_role:
            raise ForbiddenError("System roles cannot be modified", f"Role '{role.role_key}' is a system role")

        unknown = sorted(set(update_data) - UPDATABLE_FIELDS)
        if unknown:
            raise ValidationError("Invalid update", f"Fields cannot be updated: {', '.join(unknown)}")
        for field, value in update_data.items():
            if value is None and field not in NULLABLE_FIELDS:
                raise ValidationError("Invalid update", f"Field '{field}' cannot be null")

        level_changed = "hierarchy_level" in update_data
        new_level = validate_hierarchy_level(update_data["hierarchy_level"]) if level_changed else role.hierarchy_level

        if "permissions" in update_data:
            update_data["permissions"] = validate_permissions(update_data["permissions"])
        if "menu_access" in update_data:
            update_data["menu_access"] = validate_menu_ids(update_data["menu_access"])

        if parent_changed and new_parent_id:
            if new_parent_id == role.id:
                raise ValidationError("Invalid parent role", "A role cannot be its own parent")
            parent = locked.get(new_parent_id)
            if not parent:
                raise NotFoundError("Parent role not found", f"No role with id {new_parent_id}")
            self._assert_outranks(parent, new_level)
            self._assert_no_cycle(role.id, new_parent_id, lock=True)
        elif level_changed and not parent_changed and role.parent_role_id:
            parent = self.db.query(Role).filter(Role.id == role.parent_role_id).first()
            if parent:
                self._assert_outranks(parent, new_level)

        if level_changed:
            children = self._direct_children(role.id)
            blocking = [child for child in children if child.hierarchy_level <= new_level]
            if blocking:
                raise ValidationError(
                    "Invalid hierarchy level",
                    f"Level {new_level} must stay above child role(s): "
                    + ", ".join(child.role_key for child in blocking)
                )

        changes = {}
        for field, value in update_data.items():
            if field == "parent_role_id":
                value = new_parent_id
            old_value = getattr(role, field)
            if old_value != value:
                changes[field] = {"old": old_value, "new": value}
                setattr(role, field, value)
        role.updated_by = updated_by

        if "parent_role_id" in changes:
            self._flush()
            # Re-check against the flushed pointer while the rows are still locked
            if new_parent_id:
                self._assert_no_cycle(role.id, new_parent_id)

        if changes:
            create_audit_log(
                db=self.db,
                entity_type="Role",
                entity_id=role.id,
                action="UPDATE",
                user_id=updated_by,
                changes=changes
            )
        return role

    def _assert_outranks(self, parent: Role, level: int) -> None:
        if parent.hierarchy_level >= level:
            raise ValidationError(
                "Invalid hierarchy level",
                f"Parent role '{parent.role_key}' (level {parent.hierarchy_level}) must have a lower "
                f"hierarchy level than the child (level {level})"
            )

    def _assert_no_cycle(self, role_id: str, parent_id: str, lock: bool = False) -> None:
        if detect_cycle(role_id, parent_id, lambda rid: self._parent_id_of(rid, lock)):
            raise ValidationError(CIRCULAR_REFERENCE_MESSAGE)

    def _parent_id_of(self, role_id: str, lock: bool = False) -> Optional[str]:
        query = self.db.query(Role.parent_role_id).filter(Role.id == role_id)
        if lock:
            query = query.with_for_update()
        row = query.first()
        return row[0] if row else None

    def _load_parent(self, role: Role) -> Optional[Role]:
        if not role.parent_role_id:
            return None
        return self.db.query(Role).filter(Role.id == role.parent_role_id).first()

    def _direct_children(self, role_id: str) -> List[Role]:
        return self.db.query(Role).filter(
            Role.parent_role_id == role_id
        ).order_by(Role.hierarchy_level.asc(), Role.name.asc()).all()

    def _lock_roles(self, *role_ids: str) -> Dict[str, Role]:
        """Row-lock the given roles in id order so concurrent writers queue instead of deadlocking."""
        rows = self.db.query(Role).filter(
            Role.id.in_(role_ids)
        ).order_by(Role.id.asc()).with_for_update().all()
        return {role.id: role for role in rows}

    def _raise_lock_conflict(self, exc: OperationalError) -> NoReturn:
        self.db.rollback()
        if is_lock_conflict(exc):
            logger.warning("Role write aborted by lock conflict: %s", exc.orig)
            raise ConflictError(
                "Role change conflicts with a concurrent update",
                str(exc.orig)
            ) from exc
        raise exc

    def _flush(self) -> None:
        try:
            self.db.flush()
        except IntegrityError as exc:
            self.db.rollback()
            raise ConflictError(
                "Role change conflicts with existing data",
                str(exc.orig)
            ) from exc
        except OperationalError as exc:
            self._raise_lock_conflict(exc)

    def _commit(self) -> None:
        try:
            self.db.commit()
        except IntegrityError as exc:
            self.db.rollback()
            raise ConflictError(
                "Role change conflicts with existing data",
                str(exc.orig)
            ) from exc
        except OperationalError as exc:
            self._raise_lock_conflict(exc)
