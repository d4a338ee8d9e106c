"""Menu catalog and per-role navigation trees."""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Mapping, Optional, Union

from pydantic import BaseModel
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from hrm_authz.core.exceptions import (
    AuthzError,
    ConflictError,
    NotFoundError,
    ValidationError,
)
from hrm_authz.core.hierarchy import detect_cycle
from hrm_authz.core.roles import normalize_role_key
from hrm_authz.models.menu import MenuNode, RoleMenuBinding
from hrm_authz.schemas.menu import MenuNodeCreate, MenuNodeUpdate
from hrm_authz.services.audit import create_audit_log
from hrm_authz.services.menu_cache import MenuTreeCache, menu_cache

logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = frozenset({"label", "path", "icon", "parent_id", "display_order", "is_active"})
NULLABLE_FIELDS = frozenset({"icon", "parent_id"})


def canonical_role_key(role_key: Optional[str]) -> Optional[str]:
    """Map display names of built-in roles to their key; custom keys pass through."""
    if role_key is None:
        return None
    known = normalize_role_key(role_key)
    if known is not None:
        return known.value
    return role_key.strip() or None


def render_node(node: MenuNode) -> Dict[str, Any]:
    rendered = {"id": node.id, "label": node.label, "path": node.path}
    if node.icon:
        rendered["icon"] = node.icon
    return rendered


class MenuAuthorizationService:
    """Resolves which menu nodes a role may see and maintains the catalog."""

    def __init__(self, db: Session, cache: Optional[MenuTreeCache] = None):
        self.db = db
        self.cache = cache if cache is not None else menu_cache

    def get_menu_for_role(self, role_key: Optional[str]) -> List[Dict[str, Any]]:
        """Two-level navigation tree visible to ``role_key``.

        A node is shown only when it is active and directly bound to the role;
        a bound child under an unbound parent is not shown. Only roots and
        their direct children are rendered. Unknown role keys get an empty
        tree.
        """
        role_key = canonical_role_key(role_key)
        if not role_key:
            return []

        cached = self.cache.get(role_key)
        if cached is not None:
            return cached

        # An invalidation after this point keeps the rendered tree out of the cache
        generation = self.cache.generation
        tree = []
        for root in self._visible_nodes(None, role_key):
            item = render_node(root)
            children = [render_node(child) for child in self._visible_nodes(root.id, role_key)]
            if children:
                item["children"] = children
            tree.append(item)
        self.cache.set(role_key, tree, generation=generation)
        return tree

    def list_menus(self, include_inactive: bool = False) -> List[MenuNode]:
        query = self.db.query(MenuNode)
        if not include_inactive:
            query = query.filter(MenuNode.is_active == True)  # noqa: E712
        return query.order_by(MenuNode.display_order.asc(), MenuNode.label.asc()).all()

    def get_menu(self, menu_id: str) -> MenuNode:
        node = self.db.query(MenuNode).filter(MenuNode.id == menu_id).first()
        if not node:
            raise NotFoundError("Menu not found", f"No menu with id '{menu_id}'")
        return node

    def get_menu_roles(self, menu_id: str) -> List[str]:
        return self.get_menu(menu_id).role_keys

    def create_menu(
        self,
        data: Union[MenuNodeCreate, Mapping[str, Any]],
        changed_by: Optional[str] = None,
    ) -> MenuNode:
        values = data.model_dump() if isinstance(data, BaseModel) else dict(data)
        menu_id = values["id"]

        if self.db.query(MenuNode.id).filter(MenuNode.id == menu_id).first():
            raise ConflictError("Menu already exists", f"A menu with id '{menu_id}' already exists")

        parent_id = values.get("parent_id")
        if parent_id:
            if parent_id == menu_id:
                raise ValidationError("Invalid parent menu", "A menu cannot be its own parent")
            if not self.db.query(MenuNode.id).filter(MenuNode.id == parent_id).first():
                raise NotFoundError("Parent menu not found", f"No menu with id '{parent_id}'")

        node = MenuNode(
            id=menu_id,
            label=values["label"],
            path=values["path"],
            icon=values.get("icon"),
            parent_id=parent_id or None,
            display_order=values.get("display_order") or 0,
            is_active=values.get("is_active", True),
        )
        role_keys = self._clean_role_keys(values.get("role_keys") or [])
        node.bindings = [RoleMenuBinding(role_key=key) for key in role_keys]
        self.db.add(node)

        create_audit_log(
            db=self.db,
            entity_type="Menu",
            entity_id=menu_id,
            action="CREATE",
            user_id=changed_by,
            changes={
                "label": node.label,
                "path": node.path,
                "parent_id": node.parent_id,
                "role_keys": role_keys,
            }
        )
        self._commit()
        self.db.refresh(node)
        self.cache.clear()

        logger.info("Created menu %s bound to %s", menu_id, ", ".join(role_keys) or "no roles")
        return node

    def update_menu(
        self,
        menu_id: str,
        patch: Union[MenuNodeUpdate, Mapping[str, Any]],
        changed_by: Optional[str] = None,
    ) -> MenuNode:
        update_data = patch.model_dump(exclude_unset=True) if isinstance(patch, BaseModel) else dict(patch)

        unknown = sorted(set(update_data) - UPDATABLE_FIELDS)
        if unknown:
            raise ValidationError("Invalid update", f"Fields cannot be updated: {', '.join(unknown)}")
        for field, value in update_data.items():
            if value is None and field not in NULLABLE_FIELDS:
                raise ValidationError("Invalid update", f"Field '{field}' cannot be null")

        try:
            node = self.db.query(MenuNode).filter(MenuNode.id == menu_id).with_for_update().first()
            if not node:
                raise NotFoundError("Menu not found", f"No menu with id '{menu_id}'")

            new_parent_id = update_data.get("parent_id") or None
            if "parent_id" in update_data:
                update_data["parent_id"] = new_parent_id
            if new_parent_id and new_parent_id != node.parent_id:
                self._validate_parent(menu_id, new_parent_id)

            changes = {}
            for field, value in update_data.items():
                old_value = getattr(node, field)
                if old_value != value:
                    changes[field] = {"old": old_value, "new": value}
                    setattr(node, field, value)

            if changes:
                create_audit_log(
                    db=self.db,
                    entity_type="Menu",
                    entity_id=menu_id,
                    action="UPDATE",
                    user_id=changed_by,
                    changes=changes
                )
        except AuthzError:
            self.db.rollback()
            raise
        self._commit()
        self.db.refresh(node)
        self.cache.clear()

        logger.info("Updated menu %s", menu_id)
        return node

    def delete_menu(self, menu_id: str, changed_by: Optional[str] = None) -> None:
        node = self.get_menu(menu_id)
        child_count = self.db.query(MenuNode).filter(MenuNode.parent_id == menu_id).count()
        if child_count:
            raise ValidationError(
                "Cannot delete menu with child menus",
                f"Menu '{menu_id}' has {child_count} child menu(s); move or delete them first"
            )

        create_audit_log(
            db=self.db,
            entity_type="Menu",
            entity_id=menu_id,
            action="DELETE",
            user_id=changed_by,
            changes={"label": node.label, "role_keys": node.role_keys}
        )
        self.db.delete(node)
        self._commit()
        self.cache.clear()

        logger.info("Deleted menu %s", menu_id)

    def assign_role(self, menu_id: str, role_key: str, changed_by: Optional[str] = None) -> MenuNode:
        node = self.get_menu(menu_id)
        role_key = self._clean_role_keys([role_key])[0]
        if role_key in node.role_keys:
            raise ConflictError(
                "Role already assigned to menu",
                f"Menu '{menu_id}' is already bound to role '{role_key}'"
            )

        node.bindings.append(RoleMenuBinding(role_key=role_key))
        create_audit_log(
            db=self.db,
            entity_type="MenuBinding",
            entity_id=menu_id,
            action="ASSIGN",
            user_id=changed_by,
            changes={"role_key": role_key}
        )
        self._commit()
        self.db.refresh(node)
        self.cache.invalidate(role_key)

        logger.info("Bound menu %s to role %s", menu_id, role_key)
        return node

    def remove_role(self, menu_id: str, role_key: str, changed_by: Optional[str] = None) -> MenuNode:
        node = self.get_menu(menu_id)
        role_key = canonical_role_key(role_key)
        binding = next((b for b in node.bindings if b.role_key == role_key), None)
        if binding is None:
            raise NotFoundError(
                "Role not assigned to menu",
                f"Menu '{menu_id}' is not bound to role '{role_key}'"
            )

        node.bindings.remove(binding)
        create_audit_log(
            db=self.db,
            entity_type="MenuBinding",
            entity_id=menu_id,
            action="REMOVE",
            user_id=changed_by,
            changes={"role_key": role_key}
        )
        self._commit()
        self.db.refresh(node)
        self.cache.invalidate(role_key)

        logger.info("Unbound menu %s from role %s", menu_id, role_key)
        return node

    def set_roles(self, menu_id: str, role_keys: List[str], changed_by: Optional[str] = None) -> MenuNode:
        """Replace every binding of the node with ``role_keys``."""
        node = self.get_menu(menu_id)
        desired = self._clean_role_keys(role_keys)
        current = set(node.role_keys)

        to_add = [key for key in desired if key not in current]
        to_remove = current - set(desired)
        if not to_add and not to_remove:
            return node

        for binding in [b for b in node.bindings if b.role_key in to_remove]:
            node.bindings.remove(binding)
        # Removals must reach the table before re-inserting under the unique constraint
        self._flush()
        for key in to_add:
            node.bindings.append(RoleMenuBinding(role_key=key))

        create_audit_log(
            db=self.db,
            entity_type="MenuBinding",
            entity_id=menu_id,
            action="UPDATE",
            user_id=changed_by,
            changes={"old": sorted(current), "new": sorted(desired)}
        )
        self._commit()
        self.db.refresh(node)
        self.cache.invalidate(*sorted(current | set(desired)))

        logger.info("Replaced roles of menu %s: +%s -%s", menu_id, to_add, sorted(to_remove))
        return node

    def _visible_nodes(self, parent_id: Optional[str], role_key: str) -> List[MenuNode]:
        query = self.db.query(MenuNode).join(
            RoleMenuBinding, RoleMenuBinding.menu_id == MenuNode.id
        ).filter(
            RoleMenuBinding.role_key == role_key,
            MenuNode.is_active == True,  # noqa: E712
        )
        if parent_id is None:
            query = query.filter(MenuNode.parent_id.is_(None))
        else:
            query = query.filter(MenuNode.parent_id == parent_id)
        return query.order_by(MenuNode.display_order.asc(), MenuNode.label.asc()).all()

    def _validate_parent(self, menu_id: str, parent_id: str) -> None:
        if parent_id == menu_id:
            raise ValidationError("Invalid parent menu", "A menu cannot be its own parent")
        if not self.db.query(MenuNode.id).filter(MenuNode.id == parent_id).first():
            raise NotFoundError("Parent menu not found", f"No menu with id '{parent_id}'")
        if detect_cycle(menu_id, parent_id, self._parent_id_of):
            raise ValidationError("Circular reference detected in menu hierarchy")

    def _parent_id_of(self, menu_id: str) -> Optional[str]:
        row = self.db.query(MenuNode.parent_id).filter(MenuNode.id == menu_id).with_for_update().first()
        return row[0] if row else None

    @staticmethod
    def _clean_role_keys(role_keys: List[str]) -> List[str]:
        cleaned: List[str] = []
        for role_key in role_keys:
            key = canonical_role_key(role_key)
            if not key:
                raise ValidationError("Invalid role key", "Role keys must be non-empty strings")
            if key not in cleaned:
                cleaned.append(key)
        return cleaned

    def _flush(self) -> None:
        try:
            self.db.flush()
        except IntegrityError as exc:
            self.db.rollback()
            raise ConflictError("Menu change conflicts with existing data", str(exc.orig)) from exc

    def _commit(self) -> None:
        try:
            self.db.commit()
        except IntegrityError as exc:
            self.db.rollback()
            raise ConflictError("Menu change conflicts with existing data", str(exc.orig)) from exc
