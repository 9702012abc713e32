from dataclasses import FrozenInstanceError

import pytest

from practice_console.auth import RoleType, UserStatus, UserType
from practice_console.views import DerivedViews


@pytest.fixture
def views(store):
    views = DerivedViews(store)
    yield views
    views.close()


def test_user_counts(views):
    assert views.total_users() == 8
    assert views.active_users() == 5

    by_status = views.users_by_status()
    assert by_status[UserStatus.LOCKED] == 1
    assert by_status[UserStatus.SUSPENDED] == 0
    assert set(by_status) == set(UserStatus)
    assert views.users_by_type()[UserType.PROVIDER] == 3


def test_views_recompute_after_mutation(store, views):
    views.total_users()
    views.users_by_status()
    assert views.is_cached("total_users")

    store.create_user({"username": "newbie"})

    assert not views.is_cached("total_users")
    assert views.total_users() == 9
    assert views.users_by_status()[UserStatus.PENDING] == 2


def test_status_change_reflected(store, views):
    assert views.active_users() == 5
    store.update_user_status("user-1", UserStatus.SUSPENDED)
    assert views.active_users() == 4
    assert views.users_by_status()[UserStatus.SUSPENDED] == 1


def test_unrelated_mutation_keeps_cache(store, views):
    views.roles_by_type()
    store.update_user("user-1", {"title": "Lead"})
    assert views.is_cached("roles_by_type")


def test_roles_by_type(store, views):
    assert views.roles_by_type() == {RoleType.SYSTEM: 6, RoleType.CUSTOM: 1}
    store.create_role({"name": "Scribe"})
    assert views.roles_by_type()[RoleType.CUSTOM] == 2


def test_audit_summary_follows_appends(store, views, make_entry):
    total = views.audit_summary().total_events
    store.append_audit_entry(make_entry())
    assert views.audit_summary().total_events == total + 1


def test_search_users(views):
    assert [u.id for u in views.search_users("clinic.com", status="active", type="provider")] == \
        ["user-2", "user-1"]
    assert [u.id for u in views.search_users(department="Internal Medicine")] == ["user-8", "user-1"]
    assert views.search_users("nobody-here") == []


def test_departments(views):
    assert "Cardiology" in views.departments()


def test_close_detaches(store):
    views = DerivedViews(store)
    views.total_users()
    views.close()
    store.create_user({"username": "after-close"})
    assert not views.is_cached("total_users")


def test_audit_summary_cannot_be_edited_by_callers(views):
    summary = views.audit_summary()

    with pytest.raises(FrozenInstanceError):
        summary.total_events = 0
    with pytest.raises(AttributeError):
        summary.by_user.clear()

    assert views.audit_summary().total_events == 50
