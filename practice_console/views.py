"""
PRACTICE CONSOLE - Derived Views
================================
Counts and summaries computed from the entity store.

Views are memoized and dropped as soon as the store reports a mutation
touching their inputs, so a read after a write always reflects the write.
"""

import logging
from typing import Any, Callable, Dict, List, Optional, Union

from .audit.summary import AuditSummary, summarize
from .auth.enums import RoleType, UserStatus, UserType
from .auth.models import User
from .auth.store import EntityStore, StoreEvent
from .config import Settings

logger = logging.getLogger(__name__)


# Which cached views each entity kind feeds.
VIEW_DEPENDENCIES = {
    "user": ("total_users", "active_users", "users_by_status", "users_by_type", "departments"),
    "role": ("roles_by_type",),
    "audit": ("audit_summary",),
}


class DerivedViews:
    """
    Memoized read models over an EntityStore.

    Subscribes to the store on construction; call `close()` to detach.
    """

    def __init__(self, store: EntityStore, settings: Settings = None):
        self.store = store
        self.settings = settings or store.settings
        self._cache: Dict[str, Any] = {}
        self._unsubscribe = store.subscribe(self._on_change)

    def close(self) -> None:
        self._unsubscribe()
        self._cache.clear()

    def _on_change(self, event: StoreEvent) -> None:
        for name in VIEW_DEPENDENCIES.get(event.entity, ()):
            self._cache.pop(name, None)

    def _memo(self, name: str, compute: Callable[[], Any]) -> Any:
        if name not in self._cache:
            self._cache[name] = compute()
        return self._cache[name]

    def is_cached(self, name: str) -> bool:
        return name in self._cache

    # ============== User views ==============

    def total_users(self) -> int:
        return self._memo("total_users", lambda: len(self.store.list_users()))

    def active_users(self) -> int:
        return self._memo("active_users", lambda: sum(
            1 for u in self.store.list_users() if u.status == UserStatus.ACTIVE
        ))

    def users_by_status(self) -> Dict[UserStatus, int]:
        """Count per status; every status is present, zero when unused."""
        def compute():
            counts = {status: 0 for status in UserStatus}
            for user in self.store.list_users():
                counts[user.status] += 1
            return counts
        return dict(self._memo("users_by_status", compute))

    def users_by_type(self) -> Dict[UserType, int]:
        def compute():
            counts = {user_type: 0 for user_type in UserType}
            for user in self.store.list_users():
                counts[user.type] += 1
            return counts
        return dict(self._memo("users_by_type", compute))

    def departments(self) -> List[str]:
        return list(self._memo("departments", lambda: sorted({
            u.department for u in self.store.list_users() if u.department
        })))

    def search_users(self, query: Optional[str] = None,
                     status: Optional[Union[UserStatus, str]] = None,
                     type: Optional[Union[UserType, str]] = None,
                     department: Optional[str] = None) -> List[User]:
        """
        Directory search, sorted by full name.

        `query` is a case-insensitive substring of full name, email or username.
        """
        users = self.store.list_users()
        if query:
            q = query.lower()
            users = [u for u in users if q in u.full_name.lower()
                     or q in u.email.lower() or q in u.username.lower()]
        if status is not None:
            status = UserStatus(status)
            users = [u for u in users if u.status == status]
        if type is not None:
            type = UserType(type)
            users = [u for u in users if u.type == type]
        if department is not None:
            users = [u for u in users if u.department == department]
        return sorted(users, key=lambda u: u.full_name.lower())

    # ============== Role views ==============

    def roles_by_type(self) -> Dict[RoleType, int]:
        def compute():
            counts = {role_type: 0 for role_type in RoleType}
            for role in self.store.list_roles():
                counts[role.type] += 1
            return counts
        return dict(self._memo("roles_by_type", compute))

    # ============== Audit views ==============

    def audit_summary(self) -> AuditSummary:
        return self._memo("audit_summary", lambda: summarize(
            self.store.list_audit_logs(),
            top_users_limit=self.settings.TOP_USERS_LIMIT,
            recent_limit=self.settings.RECENT_ACTIVITY_LIMIT,
        ))
