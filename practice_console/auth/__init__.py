"""
PRACTICE CONSOLE - Access Control Module
========================================
Users, roles, permissions and the audit trail, with RBAC invariants.
"""

from .enums import (
    AuditAction,
    AuditSeverity,
    MfaMethod,
    PermissionAction,
    PermissionCategory,
    RoleType,
    UserStatus,
    UserType,
)
from .exceptions import AdminError, InvariantViolation, OperationResult, ValidationError
from .models import AuditChange, AuditLogEntry, Permission, Role, User
from .store import EntityStore, StoreEvent
from .authorization import MatrixCategory, MatrixRow, PermissionMatrix, has_permission
from .seed import build_demo_store

__all__ = [
    'AuditAction',
    'AuditSeverity',
    'MfaMethod',
    'PermissionAction',
    'PermissionCategory',
    'RoleType',
    'UserStatus',
    'UserType',
    'AdminError',
    'InvariantViolation',
    'OperationResult',
    'ValidationError',
    'AuditChange',
    'AuditLogEntry',
    'Permission',
    'Role',
    'User',
    'EntityStore',
    'StoreEvent',
    'MatrixCategory',
    'MatrixRow',
    'PermissionMatrix',
    'has_permission',
    'build_demo_store',
]
