from dataclasses import FrozenInstanceError
from datetime import timedelta

import pytest

from practice_console.audit import summarize
from practice_console.auth import (
    AuditAction,
    AuditSeverity,
    EntityStore,
    RoleType,
    UserStatus,
    ValidationError,
)
from practice_console.auth.models import utcnow


# ============== create_user ==============

def test_create_user_with_username_only_gets_defaults(store):
    user = store.create_user({"username": "x"})

    assert user.status == UserStatus.PENDING
    assert user.login_attempts == 0
    assert user.mfa_enabled is False
    assert user.roles == ()
    assert user.locked_until is None
    assert store.get_user(user.id) is user


def test_create_user_ignores_forced_fields(store):
    user = store.create_user({"email": "new@clinic.com", "status": "active", "login_attempts": 3})

    assert user.status == UserStatus.PENDING
    assert user.login_attempts == 0


def test_create_user_requires_username_or_email(store):
    before = len(store.list_users())
    with pytest.raises(ValidationError):
        store.create_user({"first_name": "Nobody"})
    assert len(store.list_users()) == before


def test_strict_mode_requires_both_identifiers(strict_settings):
    store = EntityStore(settings=strict_settings)
    with pytest.raises(ValidationError) as exc_info:
        store.create_user({"username": "x"})
    assert ("email", "field required") in exc_info.value.issues

    user = store.create_user({"username": "x", "email": "x@clinic.com"})
    assert user.username == "x"


def test_create_user_rejects_unknown_fields_and_roles(store):
    with pytest.raises(ValidationError):
        store.create_user({"username": "x", "favourite_color": "blue"})
    with pytest.raises(ValidationError):
        store.create_user({"username": "x", "roles": ["role-404"]})


def test_create_user_builds_full_name_and_counts_roles(store):
    user = store.create_user({"username": "lt", "first_name": "Lab", "last_name": "Tech",
                              "roles": ["role-7", "role-7"]})

    assert user.full_name == "Lab Tech"
    assert user.roles == ("role-7",)
    assert store.get_role("role-7").user_count == 1


def test_duplicate_user_id_rejected(store):
    with pytest.raises(ValidationError):
        store.create_user({"id": "user-1", "username": "dup"})


# ============== update_user ==============

def test_update_missing_user_returns_none_without_mutation(store):
    version = store.version
    assert store.update_user("user-404", {"title": "Ghost"}) is None
    assert store.version == version


def test_update_merges_only_given_fields(store):
    before = store.get_user("user-1")
    updated = store.update_user("user-1", {"title": "Chief of Medicine", "phone": None})

    assert updated.title == "Chief of Medicine"
    assert updated.phone is None
    assert updated.department == before.department
    assert updated.updated_at >= before.updated_at


def test_update_rejects_null_for_required_field(store):
    with pytest.raises(ValidationError):
        store.update_user("user-1", {"status": None})
    assert store.get_user("user-1").status == UserStatus.ACTIVE


def test_update_cannot_clear_last_identifier(store):
    created = store.create_user({"username": "solo"})
    with pytest.raises(ValidationError):
        store.update_user(created.id, {"username": ""})


def test_locking_sets_locked_until(store, settings):
    user = store.update_user_status("user-1", "locked")

    assert user.status == UserStatus.LOCKED
    assert user.locked_until is not None
    assert user.locked_until <= utcnow() + timedelta(minutes=settings.LOCKOUT_MINUTES)


def test_unlock_locked_user(store):
    locked = store.get_user("user-7")
    assert locked.status == UserStatus.LOCKED
    assert locked.login_attempts == 5

    user = store.unlock_user("user-7")

    assert user.status == UserStatus.ACTIVE
    assert user.login_attempts == 0
    assert user.locked_until is None


def test_leaving_locked_status_clears_expiry(store):
    user = store.update_user_status("user-7", UserStatus.SUSPENDED)
    assert user.locked_until is None


def test_failed_logins_lock_account(store, settings):
    for _ in range(settings.MAX_LOGIN_ATTEMPTS - 1):
        user = store.register_failed_login("user-3")
    assert user.status == UserStatus.ACTIVE

    user = store.register_failed_login("user-3")
    assert user.status == UserStatus.LOCKED
    assert user.login_attempts == settings.MAX_LOGIN_ATTEMPTS
    assert user.locked_until is not None


def test_record_login_resets_attempts(store):
    store.register_failed_login("user-3")
    user = store.record_login("user-3")

    assert user.login_attempts == 0
    assert user.last_login is not None


# ============== delete_user ==============

def test_delete_user(store):
    assert store.delete_user("user-1") is True
    assert store.get_user("user-1") is None
    assert store.delete_user("user-1") is False


def test_delete_user_keeps_audit_history(store):
    before = [e.id for e in store.list_audit_logs() if e.user_id == "user-1"]
    store.delete_user("user-1")
    after = [e.id for e in store.list_audit_logs() if e.user_id == "user-1"]
    assert after == before


# ============== Roles ==============

def test_role_user_counts_follow_memberships(store):
    assert store.get_role("role-2").user_count == 3
    assert store.get_role("role-7").user_count == 0

    store.delete_user("user-1")
    assert store.get_role("role-2").user_count == 2

    store.update_user("user-3", {"roles": ["role-4", "role-7"]})
    assert store.get_role("role-7").user_count == 1


def test_create_role_is_always_custom(store):
    role = store.create_role({"name": "Scheduler", "type": "system", "user_count": 9,
                              "permissions": ["perm-5", "perm-6"]})

    assert role.type == RoleType.CUSTOM
    assert role.user_count == 0
    assert role.permission_ids == frozenset({"perm-5", "perm-6"})


def test_create_role_rejects_unknown_permission(store):
    with pytest.raises(ValidationError):
        store.create_role({"name": "Broken", "permissions": ["perm-999"]})


def test_update_system_role_permissions_rejected(store):
    before = store.get_role("role-2").permission_ids
    result = store.update_role("role-2", {"permissions": ["perm-1"]})

    assert not result.ok
    assert result.violation.reason == "system role immutable"
    assert store.get_role("role-2").permission_ids == before


def test_update_system_role_description_allowed(store):
    result = store.update_role("role-2", {"description": "Licensed physicians"})

    assert result.ok
    assert store.get_role("role-2").description == "Licensed physicians"


def test_update_missing_role(store):
    result = store.update_role("role-404", {"name": "Ghost"})
    assert result.not_found


def test_delete_system_role_rejected(store):
    result = store.delete_role("role-1")

    assert not result.ok
    assert result.violation is not None
    assert store.get_role("role-1") is not None


def test_delete_role_with_users_rejected(store):
    role = store.create_role({"name": "Scribe"})
    store.update_user("user-4", {"roles": ["role-3", role.id]})
    roles_before = [r.id for r in store.list_roles()]

    result = store.delete_role(role.id)

    assert not result.ok
    assert result.violation.reason == "role has 1 assigned users"
    assert [r.id for r in store.list_roles()] == roles_before


def test_delete_unused_custom_role(store):
    result = store.delete_role("role-7")

    assert result.ok
    assert result.value.id == "role-7"
    assert store.get_role("role-7") is None


# ============== Audit log ==============

def test_append_keeps_timestamp_descending(empty_store, make_entry):
    older = make_entry(minutes_ago=10)
    newer = make_entry(minutes_ago=0)
    middle = make_entry(minutes_ago=5)

    for entry in (older, newer, middle):
        empty_store.append_audit_entry(entry)

    assert [e.id for e in empty_store.list_audit_logs()] == [newer.id, middle.id, older.id]


def test_append_equal_timestamp_goes_first(empty_store, make_entry):
    first = empty_store.append_audit_entry(make_entry(minutes_ago=1))
    second = empty_store.append_audit_entry(make_entry(minutes_ago=1))

    assert [e.id for e in empty_store.list_audit_logs()] == [second.id, first.id]


def test_append_from_mapping(empty_store):
    entry = empty_store.append_audit_entry({
        "user_id": "user-5",
        "user_name": "System Administrator",
        "user_type": "admin",
        "action": "export",
        "severity": "high",
        "module": "reports",
        "resource": "report",
        "description": "Exported report",
        "changes": [{"field": "status", "old_value": "draft", "new_value": "final"}],
    })

    assert entry.action == AuditAction.EXPORT
    assert entry.severity == AuditSeverity.HIGH
    assert entry.changes[0].field_label == "status"
    assert empty_store.list_audit_logs()[0] is entry


def test_append_rejects_malformed_and_duplicate(empty_store, make_entry):
    with pytest.raises(ValidationError):
        empty_store.append_audit_entry({"user_id": "user-5", "action": "export"})
    with pytest.raises(ValidationError):
        empty_store.append_audit_entry(make_entry(description=""))

    entry = empty_store.append_audit_entry(make_entry())
    with pytest.raises(ValidationError):
        empty_store.append_audit_entry(entry)


# ============== Subscriptions ==============

def test_subscribers_notified_until_unsubscribed(store):
    events = []
    unsubscribe = store.subscribe(events.append)

    store.update_user("user-1", {"title": "Lead"})
    unsubscribe()
    store.update_user("user-1", {"title": "Lead 2"})

    assert len(events) == 1
    assert events[0].entity == "user"
    assert events[0].action == "updated"
    assert events[0].version == store.version - 1


def test_rejected_mutation_does_not_publish(store):
    events = []
    store.subscribe(events.append)
    store.delete_role("role-1")
    assert events == []


def test_append_coerces_plain_enum_values(empty_store, make_entry):
    entry = empty_store.append_audit_entry(
        make_entry(action="security", severity="critical", user_type="admin")
    )

    assert entry.action is AuditAction.SECURITY
    assert entry.severity is AuditSeverity.CRITICAL
    assert summarize(empty_store.list_audit_logs()).security_events == 1


def test_append_rejects_unknown_enum_value_without_commit(empty_store, make_entry):
    empty_store.append_audit_entry(make_entry())
    version = empty_store.version

    with pytest.raises(ValidationError) as exc_info:
        empty_store.append_audit_entry(make_entry(action="teleport"))

    assert [name for name, _ in exc_info.value.issues] == ["action"]
    assert len(empty_store.list_audit_logs()) == 1
    assert empty_store.version == version
    assert summarize(empty_store.list_audit_logs()).total_events == 1


# ============== Read-only records ==============

def test_role_permissions_cannot_be_edited_in_place(store):
    role = store.get_role("role-1")
    before = role.permission_ids

    with pytest.raises(AttributeError):
        role.permissions.clear()
    with pytest.raises(TypeError):
        role.permissions["perm-999"] = role.permissions["perm-1"]
    with pytest.raises(FrozenInstanceError):
        role.type = RoleType.CUSTOM

    assert store.get_role("role-1").permission_ids == before
    assert store.get_role("role-1").is_system


def test_users_cannot_be_edited_in_place(store):
    user = store.get_user("user-1")

    with pytest.raises(FrozenInstanceError):
        user.status = UserStatus.SUSPENDED
    with pytest.raises(AttributeError):
        user.roles.append("role-1")

    assert store.get_user("user-1").status == UserStatus.ACTIVE
    assert store.get_role("role-1").user_count == 1


def test_update_returns_new_record(store):
    before = store.get_user("user-1")
    after = store.update_user("user-1", {"status": "suspended"})

    assert before.status == UserStatus.ACTIVE
    assert after.status == UserStatus.SUSPENDED
    assert store.get_user("user-1") is after
