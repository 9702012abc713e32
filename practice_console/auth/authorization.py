"""
PRACTICE CONSOLE - Permission Matrix
====================================
Role-permission membership checks and assignment toggling.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Union

from .enums import PermissionCategory
from .exceptions import OperationResult
from .models import Permission, Role
from .store import EntityStore

logger = logging.getLogger(__name__)


@dataclass
class MatrixRow:
    """One permission and, per role id, whether the role holds it."""
    permission: Permission
    grants: Dict[str, bool] = field(default_factory=dict)

    def to_dict(self) -> Dict:
        return {
            'permission': self.permission.to_dict(),
            'grants': dict(self.grants),
        }


@dataclass
class MatrixCategory:
    """All matrix rows for a single permission category."""
    category: PermissionCategory
    rows: List[MatrixRow] = field(default_factory=list)

    @property
    def label(self) -> str:
        return self.category.label

    def granted_count(self, role_id: str) -> int:
        return sum(1 for row in self.rows if row.grants.get(role_id))

    def to_dict(self) -> Dict:
        return {
            'category': self.category.value,
            'label': self.label,
            'rows': [row.to_dict() for row in self.rows],
        }


def has_permission(role: Role, permission: Union[Permission, str]) -> bool:
    """Membership by permission id, never by deep equality."""
    permission_id = permission if isinstance(permission, str) else permission.id
    return permission_id in role.permissions


class PermissionMatrix:
    """
    Role-Based Access Control over the store's live roles and catalog.

    Provides:
    - Permission membership checks
    - Category filtering of the catalog
    - Permission toggling with system-role protection
    - Matrix projection for display

    Holds no state of its own: every call reads the current store, and
    toggles are written back through the store's role update.
    """

    def __init__(self, store: EntityStore):
        self.store = store

    def has_permission(self, role: Union[Role, str], permission: Union[Permission, str]) -> bool:
        role = self._resolve_role(role)
        if role is None:
            return False
        return has_permission(role, permission)

    def permissions_by_category(self, category: Union[PermissionCategory, str]) -> List[Permission]:
        category = PermissionCategory(category)
        return [p for p in self.store.list_permissions() if p.category == category]

    def role_permissions_by_category(self, role: Union[Role, str],
                                     category: Union[PermissionCategory, str]) -> List[Permission]:
        role = self._resolve_role(role)
        if role is None:
            return []
        category = PermissionCategory(category)
        return [p for p in role.permissions.values() if p.category == category]

    def has_permissions_in_category(self, role: Union[Role, str],
                                    category: Union[PermissionCategory, str]) -> bool:
        return bool(self.role_permissions_by_category(role, category))

    def toggle_permission(self, role: Union[Role, str],
                          permission: Union[Permission, str]) -> OperationResult:
        """
        Grant the permission if the role lacks it, revoke it otherwise.

        System roles are immutable: the result carries an InvariantViolation
        and nothing changes.
        """
        role_id = role if isinstance(role, str) else role.id
        permission_id = permission if isinstance(permission, str) else permission.id

        current = self.store.get_role(role_id)
        if current is None:
            logger.warning(f"toggle_permission: role not found: {role_id}")
            return OperationResult.missing(f"Role not found: {role_id}")
        if current.is_system:
            logger.warning(f"Rejected permission toggle on system role {role_id}")
            return OperationResult.rejected("system role immutable", role_id)
        if self.store.get_permission(permission_id) is None:
            logger.warning(f"toggle_permission: permission not found: {permission_id}")
            return OperationResult.missing(f"Permission not found: {permission_id}")

        granted = permission_id not in current.permissions
        if granted:
            permission_ids = list(current.permissions) + [permission_id]
        else:
            permission_ids = [pid for pid in current.permissions if pid != permission_id]

        result = self.store.update_role(role_id, {"permissions": permission_ids})
        if result.ok:
            result.details["granted"] = granted
            result.details["permission_id"] = permission_id
            logger.info(f"{'Granted' if granted else 'Revoked'} {permission_id} on role {role_id}")
        return result

    def build_matrix(self, roles: Optional[Iterable[Role]] = None,
                     categories: Optional[Iterable[Union[PermissionCategory, str]]] = None
                     ) -> List[MatrixCategory]:
        """
        Project the role x permission grid, one block per category.

        Every category is listed (in enum order) unless `categories`
        narrows it; empty categories produce empty blocks.
        """
        roles = list(roles) if roles is not None else self.store.list_roles()
        if categories is None:
            selected = list(PermissionCategory)
        else:
            selected = [PermissionCategory(c) for c in categories]

        matrix = []
        for category in selected:
            rows = [
                MatrixRow(permission=p, grants={r.id: has_permission(r, p) for r in roles})
                for p in self.permissions_by_category(category)
            ]
            matrix.append(MatrixCategory(category=category, rows=rows))
        return matrix

    def _resolve_role(self, role: Union[Role, str]) -> Optional[Role]:
        # Prefer the live record so a caller holding an old Role sees current grants
        if isinstance(role, Role):
            return self.store.get_role(role.id) or role
        return self.store.get_role(role)
