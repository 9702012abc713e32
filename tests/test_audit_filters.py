from datetime import date, datetime, timedelta

import pytest

from practice_console.audit import AuditFilter, filter_audit_logs, paginate, sort_audit_logs
from practice_console.auth import AuditAction, AuditSeverity

from conftest import BASE_TIME


def test_empty_filter_returns_everything_in_order(store):
    logs = store.list_audit_logs()

    assert filter_audit_logs(logs, AuditFilter()) == logs
    assert filter_audit_logs(logs, None) == logs
    assert filter_audit_logs(logs, {"action": [], "search": ""}) == logs
    assert AuditFilter().is_empty()


def test_critical_severity_filter_preserves_order(make_entry):
    severities = list(AuditSeverity)
    logs = [make_entry(minutes_ago=(i * 7) % 50, severity=severities[i % 4]) for i in range(50)]

    critical = filter_audit_logs(logs, AuditFilter(severity=["critical"]))

    assert len(critical) == 12
    assert all(e.severity == AuditSeverity.CRITICAL for e in critical)
    expected = [e.id for e in logs if e.severity == AuditSeverity.CRITICAL]
    assert [e.id for e in critical] == expected


def test_set_membership_and_exact_match(make_entry):
    logs = [
        make_entry(action=AuditAction.LOGIN, module="auth", resource="session"),
        make_entry(action=AuditAction.UPDATE, user_id="user-3", user_name="Mary Wilson"),
        make_entry(action=AuditAction.DELETE, success=False),
    ]

    result = filter_audit_logs(logs, AuditFilter(action=[AuditAction.LOGIN, "delete"]))
    assert [e.id for e in result] == [logs[0].id, logs[2].id]

    assert filter_audit_logs(logs, {"user_id": "user-3"}) == [logs[1]]
    assert filter_audit_logs(logs, {"module": ["auth"]}) == [logs[0]]
    assert filter_audit_logs(logs, {"success": False}) == [logs[2]]


def test_predicates_are_and_combined(make_entry):
    logs = [
        make_entry(action=AuditAction.UPDATE, severity=AuditSeverity.HIGH),
        make_entry(action=AuditAction.UPDATE, severity=AuditSeverity.LOW),
        make_entry(action=AuditAction.READ, severity=AuditSeverity.HIGH),
    ]
    result = filter_audit_logs(logs, AuditFilter(action=["update"], severity=["high"]))
    assert result == [logs[0]]


def test_search_matches_any_text_field(make_entry):
    by_description = make_entry(description="Signed Encounter note")
    by_user = make_entry(user_name="Jennifer Lee, RN")
    by_resource = make_entry(resource="encounter-report")
    unrelated = make_entry()

    result = filter_audit_logs([by_description, by_user, by_resource, unrelated],
                               AuditFilter(search="ENCOUNTER"))
    assert result == [by_description, by_resource]

    assert filter_audit_logs([by_user, unrelated], {"search": "lee"}) == [by_user]


def test_date_bounds_are_inclusive(make_entry):
    at_start = make_entry(minutes_ago=60)
    inside = make_entry(minutes_ago=30)
    at_end = make_entry(minutes_ago=0)
    outside = make_entry(minutes_ago=120)
    logs = [at_end, inside, at_start, outside]

    result = filter_audit_logs(logs, AuditFilter(start_date=BASE_TIME - timedelta(minutes=60),
                                                 end_date=BASE_TIME))
    assert result == [at_end, inside, at_start]


def test_plain_date_covers_whole_day(make_entry):
    today = make_entry(minutes_ago=0)
    yesterday = make_entry(minutes_ago=24 * 60)

    result = filter_audit_logs([today, yesterday],
                               AuditFilter(start_date=date(2024, 3, 15), end_date=date(2024, 3, 15)))
    assert result == [today]


def test_naive_bounds_compare_as_utc(make_entry):
    entry = make_entry(minutes_ago=0)
    naive_start = datetime(2024, 3, 15, 12, 0)

    assert filter_audit_logs([entry], AuditFilter(start_date=naive_start)) == [entry]
    assert filter_audit_logs([entry], AuditFilter(start_date=naive_start + timedelta(seconds=1))) == []


def test_sort_defaults_to_newest_first(make_entry):
    logs = [make_entry(minutes_ago=m) for m in (5, 1, 9)]
    assert [e.id for e in sort_audit_logs(logs)] == [logs[1].id, logs[0].id, logs[2].id]
    assert [e.id for e in sort_audit_logs(logs, descending=False)] == [logs[2].id, logs[0].id, logs[1].id]


def test_sort_is_stable_in_both_directions(make_entry):
    logs = [
        make_entry(severity=AuditSeverity.HIGH),
        make_entry(severity=AuditSeverity.LOW),
        make_entry(severity=AuditSeverity.HIGH),
        make_entry(severity=AuditSeverity.CRITICAL),
        make_entry(severity=AuditSeverity.LOW),
    ]

    ascending = [e.id for e in sort_audit_logs(logs, "severity", descending=False)]
    descending = [e.id for e in sort_audit_logs(logs, "severity", descending=True)]

    assert ascending == [logs[1].id, logs[4].id, logs[0].id, logs[2].id, logs[3].id]
    assert descending == [logs[3].id, logs[0].id, logs[2].id, logs[1].id, logs[4].id]


def test_sort_unknown_field(make_entry):
    with pytest.raises(ValueError):
        sort_audit_logs([make_entry()], "ip_address")


def test_paginate():
    items = list(range(45))

    first = paginate(items, page=1, page_size=20)
    assert first.items == list(range(20))
    assert first.total_pages == 3
    assert first.has_next and not first.has_previous

    last = paginate(items, page=3, page_size=20)
    assert last.items == list(range(40, 45))
    assert (last.first_index, last.last_index) == (41, 45)
    assert not last.has_next

    assert paginate(items, page=4, page_size=20).items == []
    with pytest.raises(ValueError):
        paginate(items, page=0)


def test_single_membership_value_is_not_split(make_entry):
    login = make_entry(action=AuditAction.LOGIN, module="auth", severity=AuditSeverity.HIGH)
    other = make_entry(action=AuditAction.READ)

    assert filter_audit_logs([login, other], AuditFilter(action=AuditAction.LOGIN)) == [login]
    assert filter_audit_logs([login, other], {"action": "login"}) == [login]
    assert filter_audit_logs([login, other], {"module": "auth"}) == [login]
    assert filter_audit_logs([login, other], AuditFilter(severity="high")) == [login]
