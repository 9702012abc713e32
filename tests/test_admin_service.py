import pytest

from practice_console.auth import AuditAction, UserStatus, ValidationError
from practice_console.auth.seed import build_demo_store
from practice_console.config import Settings
from practice_console.service import AdminService


@pytest.fixture
def service(store, settings):
    return AdminService(store, settings)


@pytest.fixture
def recording_service():
    settings = Settings(_env_file=None, RECORD_ADMIN_ACTIONS=True)
    return AdminService(build_demo_store(seed=42, settings=settings), settings, actor_id="user-5")


def test_reads_go_through_the_store(service, store):
    assert service.list_users() == store.list_users()
    assert service.get_role("role-1").name == "Super Admin"
    assert len(service.list_permissions()) == 21


def test_write_then_read_is_consistent(service):
    assert service.total_users() == 8
    user = service.create_user({"username": "x"})
    assert service.total_users() == 9
    assert service.users_by_status()[UserStatus.PENDING] == 2

    service.delete_user(user.id)
    assert service.total_users() == 8


def test_filter_and_sort(service):
    logs = service.filter_audit_logs({"severity": ["low", "medium"]}, sort_by="severity",
                                     descending=False)
    levels = [e.severity.level for e in logs]
    assert levels == sorted(levels)


def test_audit_page(service):
    page = service.audit_page(page=2, page_size=20)
    assert page.total == 50
    assert len(page.items) == 20


def test_audit_summary_of_subset(service):
    subset = service.filter_audit_logs({"user_id": "user-5"})
    summary = service.audit_summary(subset)
    assert summary.total_events == len(subset)
    assert all(u.user_id == "user-5" for u in summary.by_user)


def test_no_admin_trail_by_default(service):
    before = len(service.list_audit_logs())
    service.update_user("user-1", {"title": "Lead"})
    assert len(service.list_audit_logs()) == before


def test_admin_trail_records_actor_and_changes(recording_service):
    recording_service.update_user_status("user-1", "suspended")

    entry = recording_service.list_audit_logs()[0]
    assert entry.user_id == "user-5"
    assert entry.user_name == "System Administrator"
    assert entry.action == AuditAction.UPDATE
    assert entry.resource_id == "user-1"
    assert [(c.field, c.old_value, c.new_value) for c in entry.changes] == \
        [("status", "active", "suspended")]


def test_admin_trail_records_rejections(recording_service):
    result = recording_service.delete_role("role-1")

    assert not result.ok
    entry = recording_service.list_audit_logs()[0]
    assert entry.success is False
    assert entry.error_message == "system role cannot be deleted"


def test_toggle_and_matrix(service):
    result = service.toggle_permission("role-7", "perm-3")
    assert result.ok
    assert service.has_permission("role-7", "perm-3")
    assert len(service.permission_matrix(categories=["patients"])) == 1


def test_update_settings(recording_service):
    updated = recording_service.update_settings("scheduling", {"allow_double_booking": True})
    assert updated.allow_double_booking is True
    assert recording_service.list_audit_logs()[0].resource == "settings"

    with pytest.raises(ValidationError):
        recording_service.update_settings("scheduling", {"default_slot_duration": 0})


def test_exports(service):
    assert service.export_users().startswith("id,username,email")
    text = service.export_audit_logs({"severity": ["critical"]})
    assert text.startswith("id,timestamp")
