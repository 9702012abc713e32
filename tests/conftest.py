from datetime import datetime, timedelta, timezone
from itertools import count

import pytest

from practice_console.auth import AuditAction, AuditLogEntry, AuditSeverity, EntityStore, UserType
from practice_console.auth.seed import build_demo_store, seed_permissions, seed_roles
from practice_console.config import Settings

BASE_TIME = datetime(2024, 3, 15, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def settings():
    return Settings(_env_file=None)


@pytest.fixture
def strict_settings():
    return Settings(_env_file=None, STRICT_USER_VALIDATION=True)


@pytest.fixture
def store(settings):
    return build_demo_store(seed=42, settings=settings)


@pytest.fixture
def empty_store(settings):
    permissions = seed_permissions()
    return EntityStore(permissions=permissions, roles=seed_roles(permissions), settings=settings)


@pytest.fixture
def make_entry():
    ids = count(1)

    def factory(minutes_ago=0, **overrides):
        n = next(ids)
        values = dict(
            id=f"t-{n}",
            timestamp=BASE_TIME - timedelta(minutes=minutes_ago),
            user_id="user-1",
            user_name="Dr. Sarah Johnson",
            user_type=UserType.PROVIDER,
            action=AuditAction.READ,
            severity=AuditSeverity.LOW,
            module="patients",
            resource="patient",
            description="Viewed patient record",
        )
        values.update(overrides)
        return AuditLogEntry(**values)

    return factory
