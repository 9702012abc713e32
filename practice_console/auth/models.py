"""
PRACTICE CONSOLE - User, Role, Permission & Audit Models
========================================================
In-memory entities for the access-control core.
"""

import uuid
from dataclasses import dataclass, field
from types import MappingProxyType
from datetime import datetime, timezone
from typing import Any, Dict, FrozenSet, List, Mapping, Optional, Tuple

from .enums import (
    AuditAction,
    AuditSeverity,
    MfaMethod,
    PermissionAction,
    PermissionCategory,
    RoleType,
    UserStatus,
    UserType,
)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_instant(value: datetime) -> datetime:
    """Naive datetimes are taken to be UTC so every comparison is between instants."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


@dataclass(frozen=True)
class Permission:
    """Catalog entry. Permissions are never created or edited through the core."""
    id: str
    code: str
    name: str
    description: str
    module: str
    category: PermissionCategory
    actions: FrozenSet[PermissionAction] = frozenset()

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'code': self.code,
            'name': self.name,
            'description': self.description,
            'module': self.module,
            'category': self.category.value,
            'actions': sorted(a.value for a in self.actions),
        }


@dataclass(frozen=True)
class Role:
    """
    Named bundle of permissions.

    `permissions` is a read-only mapping keyed by permission id: membership
    is by identity, never by deep equality of the Permission objects.
    Roles change only through the store, which swaps in a new record.
    """
    id: str
    name: str
    description: str = ""
    type: RoleType = RoleType.CUSTOM
    permissions: Mapping[str, Permission] = field(default_factory=dict)
    user_count: int = 0
    is_default: bool = False
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)
    created_by: str = "admin"

    def __post_init__(self):
        object.__setattr__(self, "permissions", MappingProxyType(dict(self.permissions)))

    @property
    def is_system(self) -> bool:
        return self.type == RoleType.SYSTEM

    @property
    def permission_ids(self) -> FrozenSet[str]:
        return frozenset(self.permissions)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'name': self.name,
            'description': self.description,
            'type': self.type.value,
            'permissions': [p.id for p in self.permissions.values()],
            'user_count': self.user_count,
            'is_default': self.is_default,
            'created_at': _iso(self.created_at),
            'updated_at': _iso(self.updated_at),
            'created_by': self.created_by,
        }


@dataclass(frozen=True)
class User:
    """Console account: identity, profile, security state and role membership."""
    id: str
    username: str
    email: str
    first_name: str = ""
    last_name: str = ""
    full_name: str = ""
    type: UserType = UserType.STAFF
    status: UserStatus = UserStatus.PENDING
    roles: Tuple[str, ...] = ()

    # Profile
    department: Optional[str] = None
    location: Optional[str] = None
    title: Optional[str] = None
    phone: Optional[str] = None
    avatar: Optional[str] = None
    npi: Optional[str] = None
    specialty: Optional[str] = None
    license_number: Optional[str] = None
    license_state: Optional[str] = None
    dea_number: Optional[str] = None
    credentials: Tuple[str, ...] = ()
    supervisor_id: Optional[str] = None
    supervisor_name: Optional[str] = None

    # Security state
    last_login: Optional[datetime] = None
    password_changed_at: Optional[datetime] = None
    mfa_enabled: bool = False
    mfa_method: Optional[MfaMethod] = None
    login_attempts: int = 0
    locked_until: Optional[datetime] = None

    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)
    created_by: str = "admin"

    def __post_init__(self):
        object.__setattr__(self, "roles", tuple(self.roles))
        object.__setattr__(self, "credentials", tuple(self.credentials))

    @property
    def is_locked(self) -> bool:
        return self.status == UserStatus.LOCKED

    @property
    def display_name(self) -> str:
        return self.full_name or self.username or self.email

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'username': self.username,
            'email': self.email,
            'first_name': self.first_name,
            'last_name': self.last_name,
            'full_name': self.full_name,
            'type': self.type.value,
            'status': self.status.value,
            'roles': list(self.roles),
            'department': self.department,
            'location': self.location,
            'title': self.title,
            'phone': self.phone,
            'npi': self.npi,
            'specialty': self.specialty,
            'license_number': self.license_number,
            'license_state': self.license_state,
            'credentials': list(self.credentials),
            'supervisor_id': self.supervisor_id,
            'supervisor_name': self.supervisor_name,
            'last_login': _iso(self.last_login),
            'password_changed_at': _iso(self.password_changed_at),
            'mfa_enabled': self.mfa_enabled,
            'mfa_method': self.mfa_method.value if self.mfa_method else None,
            'login_attempts': self.login_attempts,
            'locked_until': _iso(self.locked_until),
            'created_at': _iso(self.created_at),
            'updated_at': _iso(self.updated_at),
            'created_by': self.created_by,
        }


@dataclass(frozen=True)
class AuditChange:
    """Field-level before/after pair attached to an audit entry."""
    field: str
    field_label: str
    old_value: Any = None
    new_value: Any = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'field': self.field,
            'field_label': self.field_label,
            'old_value': self.old_value,
            'new_value': self.new_value,
        }


@dataclass(frozen=True)
class AuditLogEntry:
    """
    Immutable audit record.

    The actor is a snapshot (`user_name`, `user_type` at write time), not a
    live join, so history is unaffected by later edits to the user.
    """
    id: str
    timestamp: datetime
    user_id: str
    user_name: str
    user_type: UserType
    action: AuditAction
    severity: AuditSeverity
    module: str
    resource: str
    description: str
    resource_id: Optional[str] = None
    resource_name: Optional[str] = None
    details: Mapping[str, Any] = field(default_factory=dict)
    changes: Tuple[AuditChange, ...] = ()
    ip_address: str = ""
    user_agent: str = ""
    session_id: str = ""
    success: bool = True
    error_message: Optional[str] = None

    def __post_init__(self):
        object.__setattr__(self, "details", MappingProxyType(dict(self.details)))
        object.__setattr__(self, "changes", tuple(self.changes))

    @property
    def is_security_event(self) -> bool:
        return self.action == AuditAction.SECURITY or self.severity == AuditSeverity.CRITICAL

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'timestamp': self.timestamp.isoformat(),
            'user_id': self.user_id,
            'user_name': self.user_name,
            'user_type': self.user_type.value,
            'action': self.action.value,
            'severity': self.severity.value,
            'module': self.module,
            'resource': self.resource,
            'resource_id': self.resource_id,
            'resource_name': self.resource_name,
            'description': self.description,
            'details': dict(self.details),
            'changes': [c.to_dict() for c in self.changes],
            'ip_address': self.ip_address,
            'user_agent': self.user_agent,
            'session_id': self.session_id,
            'success': self.success,
            'error_message': self.error_message,
        }

    @classmethod
    def create(cls, actor: User, action: AuditAction, severity: AuditSeverity,
               module: str, resource: str, description: str,
               resource_id: str = None, resource_name: str = None,
               changes: List[AuditChange] = None, details: Dict = None,
               success: bool = True, error_message: str = None,
               ip_address: str = "", user_agent: str = "",
               session_id: str = "") -> 'AuditLogEntry':
        """Factory method that snapshots the acting user."""
        return cls(
            id=f"audit-{uuid.uuid4().hex[:12]}",
            timestamp=utcnow(),
            user_id=actor.id,
            user_name=actor.display_name,
            user_type=actor.type,
            action=action,
            severity=severity,
            module=module,
            resource=resource,
            description=description,
            resource_id=resource_id,
            resource_name=resource_name,
            details=dict(details or {}),
            changes=tuple(changes or ()),
            ip_address=ip_address,
            user_agent=user_agent,
            session_id=session_id,
            success=success,
            error_message=error_message,
        )
