"""
PRACTICE CONSOLE - Audit Summary
================================
Aggregate counts over a list of audit entries.
"""

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, Sequence, Tuple

from ..auth.models import AuditLogEntry

logger = logging.getLogger(__name__)

TOP_USERS_LIMIT = 10
RECENT_ACTIVITY_LIMIT = 10


@dataclass(frozen=True)
class GroupCount:
    key: str
    count: int

    def to_dict(self) -> Dict[str, Any]:
        return {'key': self.key, 'count': self.count}


@dataclass(frozen=True)
class UserActivity:
    user_id: str
    user_name: str
    count: int

    def to_dict(self) -> Dict[str, Any]:
        return {'user_id': self.user_id, 'user_name': self.user_name, 'count': self.count}


@dataclass(frozen=True)
class AuditSummary:
    """Counts and highlights derived from a list of audit entries. Read-only."""
    total_events: int = 0
    by_action: Tuple[GroupCount, ...] = ()
    by_severity: Tuple[GroupCount, ...] = ()
    by_module: Tuple[GroupCount, ...] = ()
    by_user: Tuple[UserActivity, ...] = ()
    failed_events: int = 0
    security_events: int = 0
    recent_activity: Tuple[AuditLogEntry, ...] = ()

    def count_for(self, group: str, key: Any) -> int:
        """Count for one key of `by_action`/`by_severity`/`by_module`; 0 if absent."""
        key = key.value if hasattr(key, 'value') else key
        for item in getattr(self, group):
            if item.key == key:
                return item.count
        return 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            'total_events': self.total_events,
            'by_action': [g.to_dict() for g in self.by_action],
            'by_severity': [g.to_dict() for g in self.by_severity],
            'by_module': [g.to_dict() for g in self.by_module],
            'by_user': [u.to_dict() for u in self.by_user],
            'failed_events': self.failed_events,
            'security_events': self.security_events,
            'recent_activity': [e.to_dict() for e in self.recent_activity],
        }


def group_counts(logs: Iterable[AuditLogEntry],
                 key: Callable[[AuditLogEntry], str]) -> Tuple[GroupCount, ...]:
    """One (key, count) pair per key present, in first-encounter order."""
    counts: Dict[str, int] = {}
    for entry in logs:
        k = key(entry)
        counts[k] = counts.get(k, 0) + 1
    return tuple(GroupCount(key=k, count=c) for k, c in counts.items())


def top_users(logs: Iterable[AuditLogEntry], limit: int = TOP_USERS_LIMIT) -> Tuple[UserActivity, ...]:
    """
    Most active users, by count descending.

    The display name is the one seen on the user's first entry. Ties keep
    first-encounter order since the sort is stable.
    """
    counts: Dict[str, int] = {}
    names: Dict[str, str] = {}
    for entry in logs:
        names.setdefault(entry.user_id, entry.user_name)
        counts[entry.user_id] = counts.get(entry.user_id, 0) + 1
    ranked = sorted(counts, key=counts.get, reverse=True)
    return tuple(UserActivity(uid, names[uid], counts[uid]) for uid in ranked[:limit])


def summarize(logs: Sequence[AuditLogEntry], top_users_limit: int = TOP_USERS_LIMIT,
              recent_limit: int = RECENT_ACTIVITY_LIMIT) -> AuditSummary:
    """
    Build an AuditSummary.

    `recent_activity` is the head of `logs` as given: pass a
    timestamp-descending list to get the latest events.
    """
    logs = list(logs)
    logger.debug(f"Summarizing {len(logs)} audit entries")
    return AuditSummary(
        total_events=len(logs),
        by_action=group_counts(logs, lambda e: e.action.value),
        by_severity=group_counts(logs, lambda e: e.severity.value),
        by_module=group_counts(logs, lambda e: e.module),
        by_user=top_users(logs, top_users_limit),
        failed_events=sum(1 for e in logs if not e.success),
        security_events=sum(1 for e in logs if e.is_security_event),
        recent_activity=tuple(logs[:recent_limit]),
    )
