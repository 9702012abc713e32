"""
PRACTICE CONSOLE
================
Access-control and audit core for a clinical practice admin console:
users, roles, the permission matrix, the audit trail and derived views.
"""

from .config import Settings, configure_logging, get_settings
from .auth import (
    EntityStore,
    InvariantViolation,
    OperationResult,
    PermissionMatrix,
    ValidationError,
    build_demo_store,
)
from .audit import AuditFilter, AuditSummary, filter_audit_logs, sort_audit_logs, summarize
from .views import DerivedViews
from .system_settings import SystemSettings
from .service import AdminService

__version__ = "1.0.0"

__all__ = [
    'Settings',
    'configure_logging',
    'get_settings',
    'EntityStore',
    'InvariantViolation',
    'OperationResult',
    'PermissionMatrix',
    'ValidationError',
    'build_demo_store',
    'AuditFilter',
    'AuditSummary',
    'filter_audit_logs',
    'sort_audit_logs',
    'summarize',
    'DerivedViews',
    'SystemSettings',
    'AdminService',
]
