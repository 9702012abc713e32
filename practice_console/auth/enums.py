"""
PRACTICE CONSOLE - Access Control Enums
=======================================
Closed value sets for users, roles, permissions and audit entries.
"""

from enum import Enum


# =============================================================================
# USER ENUMS
# =============================================================================

class UserStatus(str, Enum):
    """User account lifecycle status."""
    ACTIVE = "active"
    INACTIVE = "inactive"
    PENDING = "pending"
    LOCKED = "locked"
    SUSPENDED = "suspended"


class UserType(str, Enum):
    """Kind of person behind an account."""
    PROVIDER = "provider"
    STAFF = "staff"
    ADMIN = "admin"
    PATIENT = "patient"
    EXTERNAL = "external"


class MfaMethod(str, Enum):
    """Second-factor delivery method."""
    TOTP = "totp"
    SMS = "sms"
    EMAIL = "email"


# =============================================================================
# ROLE / PERMISSION ENUMS
# =============================================================================

class RoleType(str, Enum):
    """System roles are seeded and immutable; custom roles are user-defined."""
    SYSTEM = "system"
    CUSTOM = "custom"


class PermissionCategory(str, Enum):
    """Functional area a permission belongs to."""
    PATIENTS = "patients"
    APPOINTMENTS = "appointments"
    ENCOUNTERS = "encounters"
    BILLING = "billing"
    REPORTS = "reports"
    MESSAGING = "messaging"
    ADMIN = "admin"
    SYSTEM = "system"

    @property
    def label(self) -> str:
        return self.value.capitalize()


class PermissionAction(str, Enum):
    """Operations a permission may grant."""
    CREATE = "create"
    READ = "read"
    UPDATE = "update"
    DELETE = "delete"
    EXPORT = "export"
    PRINT = "print"
    SIGN = "sign"
    APPROVE = "approve"


# =============================================================================
# AUDIT ENUMS
# =============================================================================

class AuditAction(str, Enum):
    """Kind of event recorded in the audit trail."""
    LOGIN = "login"
    LOGOUT = "logout"
    CREATE = "create"
    READ = "read"
    UPDATE = "update"
    DELETE = "delete"
    EXPORT = "export"
    PRINT = "print"
    SIGN = "sign"
    SEND = "send"
    RECEIVE = "receive"
    APPROVE = "approve"
    REJECT = "reject"
    ERROR = "error"
    SECURITY = "security"


class AuditSeverity(str, Enum):
    """Criticality tier of an audit entry."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"

    @property
    def level(self) -> int:
        """Ordering rank (higher = more severe)."""
        levels = {
            AuditSeverity.LOW: 10,
            AuditSeverity.MEDIUM: 20,
            AuditSeverity.HIGH: 30,
            AuditSeverity.CRITICAL: 40,
        }
        return levels[self]
