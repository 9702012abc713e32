"""
PRACTICE CONSOLE - Audit Log Filtering
======================================
Composable predicate filter, stable sorting and pagination over audit entries.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from datetime import date, datetime, time, timezone
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Union

from ..auth.enums import AuditAction, AuditSeverity
from ..auth.models import AuditLogEntry, as_instant

logger = logging.getLogger(__name__)


DateBound = Union[datetime, date]


@dataclass
class AuditFilter:
    """
    All-optional audit query. Set fields are AND-combined; an unset field,
    an empty membership list or an empty search string imposes nothing.

    A plain `date` bound covers the whole day: `start_date` from midnight,
    `end_date` through the last microsecond.
    Membership fields take one value or a collection of values.
    """
    start_date: Optional[DateBound] = None
    end_date: Optional[DateBound] = None
    user_id: Optional[str] = None
    action: Optional[Union[AuditAction, str, Sequence[Union[AuditAction, str]]]] = None
    severity: Optional[Union[AuditSeverity, str, Sequence[Union[AuditSeverity, str]]]] = None
    module: Optional[Union[str, Sequence[str]]] = None
    resource: Optional[str] = None
    resource_id: Optional[str] = None
    success: Optional[bool] = None
    search: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'AuditFilter':
        known = {k: v for k, v in data.items() if k in cls.__dataclass_fields__}
        return cls(**known)

    def is_empty(self) -> bool:
        return not self._predicates()

    def matches(self, entry: AuditLogEntry) -> bool:
        return all(predicate(entry) for predicate in self._predicates())

    def _predicates(self) -> List[Callable[[AuditLogEntry], bool]]:
        predicates: List[Callable[[AuditLogEntry], bool]] = []

        if self.start_date is not None:
            start = _lower_bound(self.start_date)
            predicates.append(lambda e: as_instant(e.timestamp) >= start)
        if self.end_date is not None:
            end = _upper_bound(self.end_date)
            predicates.append(lambda e: as_instant(e.timestamp) <= end)
        if self.user_id:
            predicates.append(lambda e: e.user_id == self.user_id)
        if self.action:
            actions = _enum_values(_as_collection(self.action))
            predicates.append(lambda e: e.action.value in actions)
        if self.severity:
            severities = _enum_values(_as_collection(self.severity))
            predicates.append(lambda e: e.severity.value in severities)
        if self.module:
            modules = set(_as_collection(self.module))
            predicates.append(lambda e: e.module in modules)
        if self.resource:
            predicates.append(lambda e: e.resource == self.resource)
        if self.resource_id:
            predicates.append(lambda e: e.resource_id == self.resource_id)
        if self.success is not None:
            predicates.append(lambda e: e.success == self.success)
        if self.search:
            query = self.search.lower()
            predicates.append(lambda e: (
                query in e.description.lower()
                or query in e.user_name.lower()
                or query in e.resource.lower()
            ))
        return predicates


def _as_collection(values: Any) -> Iterable[Any]:
    # A lone str (str enums included) is one value, not a sequence of characters
    if isinstance(values, (str, Enum)):
        return (values,)
    return values


def _enum_values(values: Iterable[Any]) -> set:
    return {v.value if hasattr(v, 'value') else str(v) for v in values}


def _lower_bound(value: DateBound) -> datetime:
    if not isinstance(value, datetime):
        value = datetime.combine(value, time.min, tzinfo=timezone.utc)
    return as_instant(value)


def _upper_bound(value: DateBound) -> datetime:
    if not isinstance(value, datetime):
        value = datetime.combine(value, time.max, tzinfo=timezone.utc)
    return as_instant(value)


def filter_audit_logs(logs: Iterable[AuditLogEntry],
                      audit_filter: Union[AuditFilter, Dict[str, Any], None] = None
                      ) -> List[AuditLogEntry]:
    """
    Return the entries matching every set predicate, in input order.

    The filter never re-sorts; use `sort_audit_logs` for ordering.
    """
    if audit_filter is None:
        audit_filter = AuditFilter()
    elif isinstance(audit_filter, dict):
        audit_filter = AuditFilter.from_dict(audit_filter)

    logs = list(logs)
    predicates = audit_filter._predicates()
    if not predicates:
        return logs
    matched = [entry for entry in logs if all(p(entry) for p in predicates)]
    logger.debug(f"Audit filter matched {len(matched)} of {len(logs)} entries")
    return matched


# Sort keys; severity orders by rank rather than by name.
SORT_KEYS: Dict[str, Callable[[AuditLogEntry], Any]] = {
    "timestamp": lambda e: as_instant(e.timestamp),
    "user_name": lambda e: e.user_name.lower(),
    "user_id": lambda e: e.user_id,
    "action": lambda e: e.action.value,
    "severity": lambda e: e.severity.level,
    "module": lambda e: e.module,
    "resource": lambda e: e.resource,
    "success": lambda e: e.success,
}


def sort_audit_logs(logs: Iterable[AuditLogEntry], field: str = "timestamp",
                    descending: bool = True) -> List[AuditLogEntry]:
    """
    Stable sort on one field. Entries with equal keys keep their relative
    order in both directions.
    """
    key = SORT_KEYS.get(field)
    if key is None:
        raise ValueError(f"Unknown audit sort field '{field}'. Expected one of: {sorted(SORT_KEYS)}")
    return sorted(logs, key=key, reverse=descending)


@dataclass
class Page:
    """A slice of results plus the numbers needed to render pagination."""
    items: List[Any]
    page: int
    page_size: int
    total: int

    @property
    def total_pages(self) -> int:
        return max(1, -(-self.total // self.page_size))

    @property
    def has_next(self) -> bool:
        return self.page * self.page_size < self.total

    @property
    def has_previous(self) -> bool:
        return self.page > 1

    @property
    def first_index(self) -> int:
        return 0 if self.total == 0 else (self.page - 1) * self.page_size + 1

    @property
    def last_index(self) -> int:
        return min(self.page * self.page_size, self.total)


def paginate(items: Sequence[Any], page: int = 1, page_size: int = 20) -> Page:
    """1-based pagination; pages past the end come back empty."""
    if page < 1:
        raise ValueError("page must be >= 1")
    if page_size < 1:
        raise ValueError("page_size must be >= 1")
    start = (page - 1) * page_size
    return Page(items=list(items[start:start + page_size]), page=page,
                page_size=page_size, total=len(items))
