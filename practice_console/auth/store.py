"""
PRACTICE CONSOLE - Entity Store
===============================
Single owner of the user, role, permission and audit collections.

Every successful mutation bumps the store version and notifies
subscribers, so derived views never serve state older than the last
write.
"""

import logging
import uuid
from dataclasses import dataclass, replace
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Union

from pydantic import ValidationError as PydanticValidationError

from ..config import Settings, get_settings
from .enums import AuditAction, AuditSeverity, RoleType, UserStatus, UserType
from .exceptions import OperationResult, ValidationError
from .models import AuditChange, AuditLogEntry, Permission, Role, User, as_instant, utcnow
from .schemas import AuditEntryCreate, RoleCreate, RoleUpdate, UserCreate, UserUpdate

logger = logging.getLogger(__name__)


# Fields a caller may not choose on create; they are always defaulted.
USER_CREATE_FORCED_FIELDS = ("status", "login_attempts", "locked_until", "created_at", "updated_at")
ROLE_CREATE_FORCED_FIELDS = ("type", "user_count", "created_at", "updated_at")

USER_PATCHABLE_FIELDS = tuple(UserUpdate.model_fields)
USER_NULLABLE_FIELDS = frozenset({
    "department", "location", "title", "phone", "avatar", "npi", "specialty",
    "license_number", "license_state", "dea_number", "supervisor_id",
    "supervisor_name", "last_login", "password_changed_at", "mfa_method",
    "locked_until",
})
ROLE_PATCHABLE_FIELDS = ("name", "description", "is_default")


@dataclass(frozen=True)
class StoreEvent:
    """Notification sent to subscribers after a committed mutation."""
    entity: str       # "user", "role" or "audit"
    action: str       # "created", "updated" or "deleted"
    entity_id: str
    version: int


Subscriber = Callable[[StoreEvent], None]


def _validate(schema, payload, entity: str):
    if isinstance(payload, schema):
        return payload
    try:
        return schema.model_validate(dict(payload))
    except PydanticValidationError as exc:
        raise ValidationError.from_pydantic(exc, entity) from exc


def merge_user(user: User, changes: Mapping[str, Any], now: datetime,
               lockout: timedelta) -> User:
    """
    Apply a validated patch field by field.

    Only USER_PATCHABLE_FIELDS are merged; None clears a field only if it
    is listed in USER_NULLABLE_FIELDS. `updated_at` is always refreshed.
    """
    values: Dict[str, Any] = {}
    issues = []
    for name in USER_PATCHABLE_FIELDS:
        if name not in changes:
            continue
        value = changes[name]
        if value is None and name not in USER_NULLABLE_FIELDS:
            issues.append((name, "may not be null"))
            continue
        values[name] = tuple(value) if isinstance(value, list) else value
    if issues:
        raise ValidationError(f"Invalid user patch: {', '.join(n for n, _ in issues)}", issues)

    values["updated_at"] = now
    status = values.get("status", user.status)
    locked_until = values.get("locked_until", user.locked_until)

    # A locked account always carries an expiry; leaving LOCKED drops it.
    if status == UserStatus.LOCKED and locked_until is None:
        values["locked_until"] = now + lockout
    elif status != UserStatus.LOCKED and user.status == UserStatus.LOCKED \
            and "locked_until" not in changes:
        values["locked_until"] = None
    return replace(user, **values)


def merge_role(role: Role, changes: Mapping[str, Any],
               permissions: Optional[Dict[str, Permission]], now: datetime) -> Role:
    """Apply a validated role patch; `permissions` replaces the whole set when given."""
    values: Dict[str, Any] = {}
    issues = []
    for name in ROLE_PATCHABLE_FIELDS:
        if name not in changes:
            continue
        if changes[name] is None:
            issues.append((name, "may not be null"))
            continue
        values[name] = changes[name]
    if issues:
        raise ValidationError(f"Invalid role patch: {', '.join(n for n, _ in issues)}", issues)
    if permissions is not None:
        values["permissions"] = permissions
    values["updated_at"] = now
    return replace(role, **values)


class EntityStore:
    """
    In-memory store for the access-control core.

    Features:
    - User and role CRUD with invariant checks
    - Fixed permission catalog
    - Append-only, timestamp-descending audit log
    - Publish/subscribe change notifications
    """

    def __init__(self, permissions: Iterable[Permission] = (),
                 roles: Iterable[Role] = (), users: Iterable[User] = (),
                 audit_logs: Iterable[AuditLogEntry] = (),
                 settings: Settings = None):
        self.settings = settings or get_settings()

        self._permissions: Dict[str, Permission] = {p.id: p for p in permissions}
        self._roles: Dict[str, Role] = {r.id: r for r in roles}
        self._users: Dict[str, User] = {u.id: u for u in users}
        # sorted() is stable, so equal timestamps keep their given order
        self._audit_logs: List[AuditLogEntry] = sorted(
            audit_logs, key=lambda e: as_instant(e.timestamp), reverse=True
        )
        self._subscribers: List[Subscriber] = []
        self._version = 0

        self._sync_role_user_counts()

        logger.info(
            f"EntityStore initialized: {len(self._users)} users, {len(self._roles)} roles, "
            f"{len(self._permissions)} permissions, {len(self._audit_logs)} audit entries"
        )

    # ============== Subscriptions ==============

    @property
    def version(self) -> int:
        """Incremented on every committed mutation."""
        return self._version

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """Register a change listener. Returns a function that unsubscribes it."""
        self._subscribers.append(callback)

        def unsubscribe():
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    def _publish(self, entity: str, action: str, entity_id: str) -> None:
        self._version += 1
        event = StoreEvent(entity=entity, action=action, entity_id=entity_id, version=self._version)
        for callback in list(self._subscribers):
            callback(event)

    # ============== Reads ==============

    def list_users(self) -> List[User]:
        return list(self._users.values())

    def get_user(self, user_id: str) -> Optional[User]:
        return self._users.get(user_id)

    def list_roles(self) -> List[Role]:
        return list(self._roles.values())

    def get_role(self, role_id: str) -> Optional[Role]:
        return self._roles.get(role_id)

    def list_permissions(self) -> List[Permission]:
        return list(self._permissions.values())

    def get_permission(self, permission_id: str) -> Optional[Permission]:
        return self._permissions.get(permission_id)

    def list_audit_logs(self) -> List[AuditLogEntry]:
        """Audit entries, newest first."""
        return list(self._audit_logs)

    # ============== Helpers ==============

    @staticmethod
    def _new_id(prefix: str, taken: Mapping[str, Any]) -> str:
        while True:
            candidate = f"{prefix}-{uuid.uuid4().hex[:12]}"
            if candidate not in taken:
                return candidate

    @property
    def _lockout(self) -> timedelta:
        return timedelta(minutes=self.settings.LOCKOUT_MINUTES)

    def _check_identity(self, username: str, email: str) -> None:
        missing = [name for name, value in (("username", username), ("email", email)) if not value]
        if self.settings.STRICT_USER_VALIDATION:
            if missing:
                raise ValidationError(
                    f"Invalid user: {', '.join(missing)} required",
                    [(name, "field required") for name in missing],
                )
        elif len(missing) == 2:
            raise ValidationError(
                "Invalid user: username or email required",
                [(name, "username or email required") for name in missing],
            )

    def _check_role_refs(self, role_ids: Iterable[str]) -> None:
        unknown = [rid for rid in role_ids if rid not in self._roles]
        if unknown:
            raise ValidationError(
                f"Unknown role ids: {', '.join(unknown)}",
                [("roles", f"unknown role '{rid}'") for rid in unknown],
            )

    def _resolve_permissions(self, permission_ids: Iterable[str]) -> Dict[str, Permission]:
        resolved: Dict[str, Permission] = {}
        unknown = []
        for pid in permission_ids:
            permission = self._permissions.get(pid)
            if permission is None:
                unknown.append(pid)
            else:
                resolved[pid] = permission
        if unknown:
            raise ValidationError(
                f"Unknown permission ids: {', '.join(unknown)}",
                [("permissions", f"unknown permission '{pid}'") for pid in unknown],
            )
        return resolved

    def _sync_role_user_counts(self) -> None:
        """Role user counts are derived from user role memberships."""
        counts = {rid: 0 for rid in self._roles}
        for user in self._users.values():
            for rid in set(user.roles):
                if rid in counts:
                    counts[rid] += 1
        for rid, count in counts.items():
            role = self._roles[rid]
            if role.user_count != count:
                self._roles[rid] = replace(role, user_count=count)

    # ============== User Mutations ==============

    def create_user(self, partial: Union[Mapping[str, Any], UserCreate]) -> User:
        """
        Create a user from a partial record.

        Status is always `pending` and login attempts 0, whatever the caller
        passes. Raises ValidationError on malformed input; nothing is
        committed in that case.
        """
        if not isinstance(partial, UserCreate):
            partial = dict(partial)
            dropped = [name for name in USER_CREATE_FORCED_FIELDS if partial.pop(name, None) is not None]
            if dropped:
                logger.debug(f"create_user ignored forced fields: {dropped}")
        payload = _validate(UserCreate, partial, "user")

        self._check_identity(payload.username, payload.email)
        user_id = payload.id or self._new_id("user", self._users)
        if user_id in self._users:
            raise ValidationError(f"User id already exists: {user_id}", [("id", "already exists")])
        self._check_role_refs(payload.roles)

        now = utcnow()
        full_name = payload.full_name or f"{payload.first_name} {payload.last_name}".strip()
        user = User(
            id=user_id,
            username=payload.username,
            email=payload.email,
            first_name=payload.first_name,
            last_name=payload.last_name,
            full_name=full_name,
            type=payload.type,
            status=UserStatus.PENDING,
            roles=tuple(dict.fromkeys(payload.roles)),
            department=payload.department,
            location=payload.location,
            title=payload.title,
            phone=payload.phone,
            avatar=payload.avatar,
            npi=payload.npi,
            specialty=payload.specialty,
            license_number=payload.license_number,
            license_state=payload.license_state,
            dea_number=payload.dea_number,
            credentials=tuple(payload.credentials),
            supervisor_id=payload.supervisor_id,
            supervisor_name=payload.supervisor_name,
            mfa_enabled=payload.mfa_enabled,
            mfa_method=payload.mfa_method,
            login_attempts=0,
            created_at=now,
            updated_at=now,
            created_by=payload.created_by or self.settings.DEFAULT_CREATED_BY,
        )

        self._users[user.id] = user
        self._sync_role_user_counts()
        self._publish("user", "created", user.id)
        logger.info(f"Created user {user.id} ({user.username or user.email})")
        return user

    def update_user(self, user_id: str,
                    patch: Union[Mapping[str, Any], UserUpdate]) -> Optional[User]:
        """Merge a patch into a user. Returns None if the user does not exist."""
        user = self._users.get(user_id)
        if user is None:
            logger.warning(f"update_user: user not found: {user_id}")
            return None

        payload = _validate(UserUpdate, patch, "user patch")
        changes = payload.model_dump(exclude_unset=True)
        updated = merge_user(user, changes, utcnow(), self._lockout)
        self._check_identity(updated.username, updated.email)
        if "roles" in changes:
            self._check_role_refs(updated.roles)
            updated = replace(updated, roles=tuple(dict.fromkeys(updated.roles)))

        self._users[user_id] = updated
        if "roles" in changes:
            self._sync_role_user_counts()
        self._publish("user", "updated", user_id)
        logger.info(f"Updated user {user_id}: {sorted(changes)}")
        return updated

    def delete_user(self, user_id: str) -> bool:
        """Remove a user from the live set. Audit entries are not touched."""
        if self._users.pop(user_id, None) is None:
            logger.warning(f"delete_user: user not found: {user_id}")
            return False
        self._sync_role_user_counts()
        self._publish("user", "deleted", user_id)
        logger.info(f"Deleted user {user_id}")
        return True

    def update_user_status(self, user_id: str, status: Union[UserStatus, str]) -> Optional[User]:
        return self.update_user(user_id, {"status": status})

    def unlock_user(self, user_id: str) -> Optional[User]:
        return self.update_user(user_id, {
            "status": UserStatus.ACTIVE,
            "login_attempts": 0,
            "locked_until": None,
        })

    def register_failed_login(self, user_id: str) -> Optional[User]:
        """Count a failed sign-in; the account locks at MAX_LOGIN_ATTEMPTS."""
        user = self._users.get(user_id)
        if user is None:
            logger.warning(f"register_failed_login: user not found: {user_id}")
            return None
        attempts = user.login_attempts + 1
        patch: Dict[str, Any] = {"login_attempts": attempts}
        if attempts >= self.settings.MAX_LOGIN_ATTEMPTS:
            patch["status"] = UserStatus.LOCKED
            patch["locked_until"] = utcnow() + self._lockout
            logger.warning(f"Account locked after {attempts} failed attempts: {user_id}")
        return self.update_user(user_id, patch)

    def record_login(self, user_id: str) -> Optional[User]:
        """Stamp a successful sign-in and reset the failure counter."""
        return self.update_user(user_id, {"last_login": utcnow(), "login_attempts": 0})

    # ============== Role Mutations ==============

    def create_role(self, partial: Union[Mapping[str, Any], RoleCreate]) -> Role:
        """Create a custom role. System roles are only ever seeded."""
        if not isinstance(partial, RoleCreate):
            partial = dict(partial)
            for name in ROLE_CREATE_FORCED_FIELDS:
                partial.pop(name, None)
        payload = _validate(RoleCreate, partial, "role")

        role_id = payload.id or self._new_id("role", self._roles)
        if role_id in self._roles:
            raise ValidationError(f"Role id already exists: {role_id}", [("id", "already exists")])
        permissions = self._resolve_permissions(payload.permissions)

        now = utcnow()
        role = Role(
            id=role_id,
            name=payload.name,
            description=payload.description,
            type=RoleType.CUSTOM,
            permissions=permissions,
            user_count=0,
            is_default=payload.is_default,
            created_at=now,
            updated_at=now,
            created_by=payload.created_by or self.settings.DEFAULT_CREATED_BY,
        )
        self._roles[role.id] = role
        self._publish("role", "created", role.id)
        logger.info(f"Created role {role.id} ({role.name})")
        return role

    def update_role(self, role_id: str,
                    patch: Union[Mapping[str, Any], RoleUpdate]) -> OperationResult:
        """
        Patch a role. Changing the permission set of a system role is an
        invariant violation and leaves the role untouched.
        """
        role = self._roles.get(role_id)
        if role is None:
            logger.warning(f"update_role: role not found: {role_id}")
            return OperationResult.missing(f"Role not found: {role_id}")

        payload = _validate(RoleUpdate, patch, "role patch")
        changes = payload.model_dump(exclude_unset=True)

        permissions = None
        if "permissions" in changes:
            if role.is_system:
                logger.warning(f"Rejected permission change on system role {role_id}")
                return OperationResult.rejected("system role immutable", role_id)
            if changes["permissions"] is None:
                raise ValidationError("Invalid role patch: permissions",
                                      [("permissions", "may not be null")])
            permissions = self._resolve_permissions(changes["permissions"])

        updated = merge_role(role, changes, permissions, utcnow())
        self._roles[role_id] = updated
        self._publish("role", "updated", role_id)
        logger.info(f"Updated role {role_id}: {sorted(changes)}")
        return OperationResult.success(f"Role {role_id} updated", value=updated)

    def delete_role(self, role_id: str) -> OperationResult:
        """Delete a custom role that has no assigned users."""
        role = self._roles.get(role_id)
        if role is None:
            logger.warning(f"delete_role: role not found: {role_id}")
            return OperationResult.missing(f"Role not found: {role_id}")
        if role.is_system:
            logger.warning(f"Rejected deletion of system role {role_id}")
            return OperationResult.rejected("system role cannot be deleted", role_id)
        if role.user_count > 0:
            logger.warning(f"Rejected deletion of role {role_id} with {role.user_count} users")
            return OperationResult.rejected(
                f"role has {role.user_count} assigned users", role_id
            )

        del self._roles[role_id]
        self._publish("role", "deleted", role_id)
        logger.info(f"Deleted role {role_id} ({role.name})")
        return OperationResult.success(f"Role {role_id} deleted", value=role)

    # ============== Audit Log ==============

    def append_audit_entry(self, entry: Union[AuditLogEntry, Mapping[str, Any], AuditEntryCreate]
                           ) -> AuditLogEntry:
        """
        Add an entry to the audit log, keeping it timestamp-descending.

        An entry lands ahead of older entries and of entries with the same
        timestamp. Only malformed entries are rejected.
        """
        if isinstance(entry, AuditLogEntry):
            entry = self._check_audit_entry(entry)
        else:
            payload = _validate(AuditEntryCreate, entry, "audit entry")
            entry = AuditLogEntry(
                id=payload.id or self._new_id("audit", {e.id: e for e in self._audit_logs}),
                timestamp=payload.timestamp or utcnow(),
                user_id=payload.user_id,
                user_name=payload.user_name,
                user_type=payload.user_type,
                action=payload.action,
                severity=payload.severity,
                module=payload.module,
                resource=payload.resource,
                resource_id=payload.resource_id,
                resource_name=payload.resource_name,
                description=payload.description,
                details=dict(payload.details),
                changes=tuple(
                    AuditChange(c.field, c.field_label or c.field, c.old_value, c.new_value)
                    for c in payload.changes
                ),
                ip_address=payload.ip_address,
                user_agent=payload.user_agent,
                session_id=payload.session_id,
                success=payload.success,
                error_message=payload.error_message,
            )
        if any(e.id == entry.id for e in self._audit_logs):
            raise ValidationError(f"Audit entry id already exists: {entry.id}", [("id", "already exists")])

        message = (
            f"AUDIT: [{entry.action.value}/{entry.severity.value}] User={entry.user_name} "
            f"Resource={entry.resource} Success={entry.success}"
        )
        instant = as_instant(entry.timestamp)
        index = 0
        while index < len(self._audit_logs) and as_instant(self._audit_logs[index].timestamp) > instant:
            index += 1
        self._audit_logs.insert(index, entry)

        self._publish("audit", "created", entry.id)
        logger.info(message)
        return entry

    @staticmethod
    def _check_audit_entry(entry: AuditLogEntry) -> AuditLogEntry:
        """Reject incomplete entries; enum fields given as plain values are coerced."""
        required = ("id", "user_id", "user_name", "module", "resource", "description")
        issues = [(name, "field required") for name in required if not getattr(entry, name)]
        if not isinstance(entry.timestamp, datetime):
            issues.append(("timestamp", "field required"))

        coerced = {}
        for name, enum in (("action", AuditAction), ("severity", AuditSeverity), ("user_type", UserType)):
            value = getattr(entry, name)
            try:
                member = enum(value)
            except (ValueError, TypeError):
                issues.append((name, f"invalid value '{value}'"))
                continue
            if member is not value:
                coerced[name] = member

        if issues:
            raise ValidationError(
                f"Invalid audit entry: {', '.join(name for name, _ in issues)}", issues
            )
        return replace(entry, **coerced) if coerced else entry
