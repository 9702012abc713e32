"""
PRACTICE CONSOLE - Admin Service
================================
Query/mutation surface consumed by the presentation layer.

Composes one EntityStore with the permission matrix, the audit engine,
the derived views and the system settings. Nothing here keeps a copy of
store data: reads go to the store or to views invalidated by it.
"""

import logging
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Union

from .audit.export import export_audit_logs_csv, export_users_csv
from .audit.filters import AuditFilter, Page, filter_audit_logs, paginate, sort_audit_logs
from .audit.summary import AuditSummary, summarize
from .auth.authorization import MatrixCategory, PermissionMatrix
from .auth.enums import (
    AuditAction,
    AuditSeverity,
    PermissionCategory,
    RoleType,
    UserStatus,
    UserType,
)
from .auth.exceptions import OperationResult
from .auth.models import AuditChange, AuditLogEntry, Permission, Role, User
from .auth.store import EntityStore
from .config import Settings, get_settings
from .system_settings import SystemSettings
from .views import DerivedViews

logger = logging.getLogger(__name__)

SYSTEM_ACTOR = User(id="system", username="system", email="", full_name="System",
                    type=UserType.ADMIN, status=UserStatus.ACTIVE)


class AdminService:
    """
    Administration console core.

    Features:
    - User and role management with RBAC invariants
    - Permission matrix
    - Audit log filtering, sorting, summaries and export
    - Derived user/role/audit counts
    - Section-based system settings
    - Optional audit trail of admin actions (RECORD_ADMIN_ACTIONS)
    """

    def __init__(self, store: EntityStore = None, settings: Settings = None,
                 system_settings: SystemSettings = None, actor_id: Optional[str] = None):
        self.settings = settings or (store.settings if store else get_settings())
        self.store = store or EntityStore(settings=self.settings)
        self.matrix = PermissionMatrix(self.store)
        self.views = DerivedViews(self.store, self.settings)
        self.system_settings = system_settings or SystemSettings()
        self.actor_id = actor_id

        logger.info(f"{self.settings.APP_NAME} admin service ready")

    # ============== Reads ==============

    def list_users(self) -> List[User]:
        return self.store.list_users()

    def get_user(self, user_id: str) -> Optional[User]:
        return self.store.get_user(user_id)

    def list_roles(self) -> List[Role]:
        return self.store.list_roles()

    def get_role(self, role_id: str) -> Optional[Role]:
        return self.store.get_role(role_id)

    def list_permissions(self) -> List[Permission]:
        return self.store.list_permissions()

    def list_audit_logs(self) -> List[AuditLogEntry]:
        return self.store.list_audit_logs()

    def filter_audit_logs(self, audit_filter: Union[AuditFilter, Dict[str, Any], None] = None,
                          sort_by: Optional[str] = None, descending: bool = True
                          ) -> List[AuditLogEntry]:
        """Filter the live log; results keep log order unless `sort_by` is given."""
        logs = filter_audit_logs(self.store.list_audit_logs(), audit_filter)
        if sort_by:
            logs = sort_audit_logs(logs, sort_by, descending)
        return logs

    def audit_page(self, audit_filter: Union[AuditFilter, Dict[str, Any], None] = None,
                   page: int = 1, page_size: int = 20) -> Page:
        return paginate(self.filter_audit_logs(audit_filter), page, page_size)

    def audit_summary(self, logs: Optional[List[AuditLogEntry]] = None) -> AuditSummary:
        """Summary of the whole log, or of `logs` when given."""
        if logs is None:
            return self.views.audit_summary()
        return summarize(logs, self.settings.TOP_USERS_LIMIT, self.settings.RECENT_ACTIVITY_LIMIT)

    def users_by_status(self) -> Dict[UserStatus, int]:
        return self.views.users_by_status()

    def users_by_type(self) -> Dict[UserType, int]:
        return self.views.users_by_type()

    def roles_by_type(self) -> Dict[RoleType, int]:
        return self.views.roles_by_type()

    def total_users(self) -> int:
        return self.views.total_users()

    def active_users(self) -> int:
        return self.views.active_users()

    def search_users(self, query: Optional[str] = None, status=None, type=None,
                     department: Optional[str] = None) -> List[User]:
        return self.views.search_users(query, status, type, department)

    # ============== Permission matrix ==============

    def has_permission(self, role: Union[Role, str], permission: Union[Permission, str]) -> bool:
        return self.matrix.has_permission(role, permission)

    def permissions_by_category(self, category: Union[PermissionCategory, str]) -> List[Permission]:
        return self.matrix.permissions_by_category(category)

    def permission_matrix(self, categories=None) -> List[MatrixCategory]:
        return self.matrix.build_matrix(categories=categories)

    def toggle_permission(self, role: Union[Role, str],
                          permission: Union[Permission, str]) -> OperationResult:
        result = self.matrix.toggle_permission(role, permission)
        role_id = role if isinstance(role, str) else role.id
        if result.ok:
            verb = "Granted" if result.details.get("granted") else "Revoked"
            self._record(AuditAction.UPDATE, AuditSeverity.HIGH, "role", role_id,
                         f"{verb} permission {result.details.get('permission_id')}")
        elif result.violation is not None:
            self._record(AuditAction.UPDATE, AuditSeverity.HIGH, "role", role_id,
                         "Rejected permission change", success=False, error=result.message)
        return result

    # ============== User mutations ==============

    def create_user(self, partial: Mapping[str, Any]) -> User:
        user = self.store.create_user(partial)
        self._record(AuditAction.CREATE, AuditSeverity.MEDIUM, "user", user.id,
                     f"Created user {user.username or user.email}")
        return user

    def update_user(self, user_id: str, patch: Mapping[str, Any]) -> Optional[User]:
        before = self.store.get_user(user_id)
        user = self.store.update_user(user_id, patch)
        if user is not None:
            self._record(AuditAction.UPDATE, AuditSeverity.MEDIUM, "user", user_id,
                         "Updated user", changes=_diff(before, user, patch))
        return user

    def delete_user(self, user_id: str) -> bool:
        deleted = self.store.delete_user(user_id)
        if deleted:
            self._record(AuditAction.DELETE, AuditSeverity.HIGH, "user", user_id, "Deleted user")
        return deleted

    def update_user_status(self, user_id: str, status: Union[UserStatus, str]) -> Optional[User]:
        before = self.store.get_user(user_id)
        user = self.store.update_user_status(user_id, status)
        if user is not None:
            self._record(AuditAction.UPDATE, AuditSeverity.HIGH, "user", user_id,
                         f"Changed user status to {user.status.value}",
                         changes=_diff(before, user, {"status": status}))
        return user

    def unlock_user(self, user_id: str) -> Optional[User]:
        user = self.store.unlock_user(user_id)
        if user is not None:
            self._record(AuditAction.SECURITY, AuditSeverity.HIGH, "user", user_id, "Unlocked user")
        return user

    def register_failed_login(self, user_id: str) -> Optional[User]:
        return self.store.register_failed_login(user_id)

    def record_login(self, user_id: str) -> Optional[User]:
        return self.store.record_login(user_id)

    # ============== Role mutations ==============

    def create_role(self, partial: Mapping[str, Any]) -> Role:
        role = self.store.create_role(partial)
        self._record(AuditAction.CREATE, AuditSeverity.HIGH, "role", role.id,
                     f"Created role {role.name}")
        return role

    def update_role(self, role_id: str, patch: Mapping[str, Any]) -> OperationResult:
        result = self.store.update_role(role_id, patch)
        if result.ok:
            self._record(AuditAction.UPDATE, AuditSeverity.HIGH, "role", role_id, "Updated role")
        return result

    def delete_role(self, role_id: str) -> OperationResult:
        result = self.store.delete_role(role_id)
        if result.ok:
            self._record(AuditAction.DELETE, AuditSeverity.HIGH, "role", role_id, "Deleted role")
        elif result.violation is not None:
            self._record(AuditAction.DELETE, AuditSeverity.HIGH, "role", role_id,
                         "Rejected role deletion", success=False, error=result.message)
        return result

    # ============== Audit ==============

    def append_audit_entry(self, entry) -> AuditLogEntry:
        return self.store.append_audit_entry(entry)

    def export_audit_logs(self, audit_filter=None, path: Optional[Union[str, Path]] = None) -> str:
        logs = self.filter_audit_logs(audit_filter)
        result = export_audit_logs_csv(logs, path)
        self._record(AuditAction.EXPORT, AuditSeverity.HIGH, "audit_log", None,
                     f"Exported {len(logs)} audit entries")
        return result

    def export_users(self, path: Optional[Union[str, Path]] = None) -> str:
        return export_users_csv(self.views.search_users(), path)

    # ============== Settings ==============

    def update_settings(self, section: str, patch: Mapping[str, Any]):
        updated = self.system_settings.update_section(section, patch)
        self._record(AuditAction.UPDATE, AuditSeverity.HIGH, "settings", section,
                     f"Updated {section} settings")
        return updated

    # ============== Admin action trail ==============

    def _record(self, action: AuditAction, severity: AuditSeverity, resource: str,
                resource_id: Optional[str], description: str,
                changes: Optional[List[AuditChange]] = None,
                success: bool = True, error: Optional[str] = None) -> Optional[AuditLogEntry]:
        if not self.settings.RECORD_ADMIN_ACTIONS:
            return None
        actor = (self.store.get_user(self.actor_id) if self.actor_id else None) or SYSTEM_ACTOR
        entry = AuditLogEntry.create(
            actor, action, severity, module="admin", resource=resource, description=description,
            resource_id=resource_id, changes=changes, success=success, error_message=error,
        )
        return self.store.append_audit_entry(entry)


def _diff(before: Optional[User], after: User, patch: Mapping[str, Any]) -> List[AuditChange]:
    """Field-level changes for the patched fields that actually changed value."""
    if before is None:
        return []
    changes = []
    for name in patch:
        old, new = getattr(before, name, None), getattr(after, name, None)
        if old != new:
            label = name.replace("_", " ").capitalize()
            changes.append(AuditChange(name, label, _plain(old), _plain(new)))
    return changes


def _plain(value: Any) -> Any:
    if hasattr(value, 'value'):
        return value.value
    if hasattr(value, 'isoformat'):
        return value.isoformat()
    return value
