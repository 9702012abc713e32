"""
PRACTICE CONSOLE - Audit Module
===============================
Audit log filtering, aggregation and export.
"""

from .filters import AuditFilter, Page, filter_audit_logs, paginate, sort_audit_logs
from .summary import AuditSummary, GroupCount, UserActivity, summarize
from .export import (
    audit_logs_to_frame,
    daily_activity,
    export_audit_logs_csv,
    export_users_csv,
    users_to_frame,
)

__all__ = [
    'AuditFilter',
    'Page',
    'filter_audit_logs',
    'paginate',
    'sort_audit_logs',
    'AuditSummary',
    'GroupCount',
    'UserActivity',
    'summarize',
    'audit_logs_to_frame',
    'daily_activity',
    'export_audit_logs_csv',
    'export_users_csv',
    'users_to_frame',
]
