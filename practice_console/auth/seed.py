"""
PRACTICE CONSOLE - Demo Seed Data
=================================
Permission catalog, default roles and users, and a reproducible audit
history for demos and tests.
"""

import logging
import random
from datetime import datetime, timedelta
from typing import List, Optional

from ..config import Settings, get_settings
from .enums import (
    AuditAction,
    AuditSeverity,
    MfaMethod,
    PermissionAction as A,
    PermissionCategory as C,
    RoleType,
    UserStatus,
    UserType,
)
from .models import AuditLogEntry, Permission, Role, User, utcnow
from .store import EntityStore

logger = logging.getLogger(__name__)


# (id, code, name, description, category, actions)
PERMISSION_CATALOG = [
    ("perm-1", "patients.view", "View Patients", "View patient records", C.PATIENTS, {A.READ}),
    ("perm-2", "patients.create", "Create Patients", "Create new patient records", C.PATIENTS, {A.CREATE}),
    ("perm-3", "patients.edit", "Edit Patients", "Edit patient records", C.PATIENTS, {A.UPDATE}),
    ("perm-4", "patients.delete", "Delete Patients", "Delete patient records", C.PATIENTS, {A.DELETE}),
    ("perm-5", "appointments.view", "View Appointments", "View appointment schedule", C.APPOINTMENTS, {A.READ}),
    ("perm-6", "appointments.create", "Create Appointments", "Schedule appointments", C.APPOINTMENTS, {A.CREATE}),
    ("perm-7", "appointments.edit", "Edit Appointments", "Modify appointments", C.APPOINTMENTS, {A.UPDATE}),
    ("perm-8", "encounters.view", "View Encounters", "View clinical encounters", C.ENCOUNTERS, {A.READ}),
    ("perm-9", "encounters.create", "Create Encounters", "Create clinical encounters", C.ENCOUNTERS, {A.CREATE}),
    ("perm-10", "encounters.sign", "Sign Encounters", "Sign and finalize encounters", C.ENCOUNTERS, {A.SIGN}),
    ("perm-11", "billing.view", "View Billing", "View billing information", C.BILLING, {A.READ}),
    ("perm-12", "billing.create", "Create Claims", "Create billing claims", C.BILLING, {A.CREATE}),
    ("perm-13", "billing.payments", "Post Payments", "Post and manage payments", C.BILLING, {A.CREATE, A.UPDATE}),
    ("perm-14", "admin.users", "Manage Users", "Create and manage user accounts", C.ADMIN,
     {A.CREATE, A.READ, A.UPDATE, A.DELETE}),
    ("perm-15", "admin.roles", "Manage Roles", "Create and manage roles", C.ADMIN,
     {A.CREATE, A.READ, A.UPDATE, A.DELETE}),
    ("perm-16", "admin.settings", "System Settings", "Manage system settings", C.ADMIN, {A.READ, A.UPDATE}),
    ("perm-17", "admin.audit", "View Audit Logs", "View system audit logs", C.ADMIN, {A.READ}),
    ("perm-18", "reports.view", "View Reports", "Run and view practice reports", C.REPORTS, {A.READ, A.PRINT}),
    ("perm-19", "reports.export", "Export Reports", "Export report data", C.REPORTS, {A.EXPORT}),
    ("perm-20", "messaging.send", "Send Messages", "Send secure messages", C.MESSAGING, {A.CREATE, A.READ}),
    ("perm-21", "system.maintenance", "System Maintenance", "Run backups and maintenance", C.SYSTEM,
     {A.UPDATE, A.APPROVE}),
]

# (id, name, description, type, is_default, permission ids)
DEFAULT_ROLES = [
    ("role-1", "Super Admin", "Full system access with all permissions", RoleType.SYSTEM, False, None),
    ("role-2", "Physician", "Full clinical access for licensed physicians", RoleType.SYSTEM, False,
     ["perm-1", "perm-2", "perm-3", "perm-5", "perm-6", "perm-7", "perm-8", "perm-9", "perm-10",
      "perm-18", "perm-20"]),
    ("role-3", "Nurse", "Clinical access for nursing staff", RoleType.SYSTEM, False,
     ["perm-1", "perm-3", "perm-5", "perm-8", "perm-9", "perm-20"]),
    ("role-4", "Office Manager", "Administrative and scheduling access", RoleType.SYSTEM, False,
     ["perm-1", "perm-5", "perm-6", "perm-7", "perm-11", "perm-14", "perm-18", "perm-19"]),
    ("role-5", "Billing Clerk", "Billing and payment processing access", RoleType.SYSTEM, False,
     ["perm-1", "perm-11", "perm-12", "perm-13"]),
    ("role-6", "Receptionist", "Front desk and scheduling access", RoleType.SYSTEM, True,
     ["perm-1", "perm-2", "perm-5", "perm-6", "perm-7"]),
    ("role-7", "Lab Technician", "Custom role for lab access only", RoleType.CUSTOM, False,
     ["perm-1", "perm-8"]),
]


def seed_permissions() -> List[Permission]:
    return [
        Permission(id=pid, code=code, name=name, description=desc,
                   module=category.value, category=category, actions=frozenset(actions))
        for pid, code, name, desc, category, actions in PERMISSION_CATALOG
    ]


def seed_roles(permissions: List[Permission], now: datetime = None) -> List[Role]:
    now = now or utcnow()
    by_id = {p.id: p for p in permissions}
    roles = []
    for rid, name, desc, role_type, is_default, permission_ids in DEFAULT_ROLES:
        ids = list(by_id) if permission_ids is None else permission_ids
        created = now - timedelta(days=730 if role_type == RoleType.SYSTEM else 100)
        roles.append(Role(
            id=rid,
            name=name,
            description=desc,
            type=role_type,
            permissions={pid: by_id[pid] for pid in ids},
            is_default=is_default,
            created_at=created,
            updated_at=created,
            created_by="system" if role_type == RoleType.SYSTEM else "admin",
        ))
    return roles


def seed_users(now: datetime = None) -> List[User]:
    now = now or utcnow()
    days = lambda n: now - timedelta(days=n)
    hours = lambda n: now - timedelta(hours=n)

    return [
        User(id="user-1", username="sjohnson", email="sarah.johnson@clinic.com",
             first_name="Sarah", last_name="Johnson", full_name="Dr. Sarah Johnson",
             type=UserType.PROVIDER, status=UserStatus.ACTIVE, roles=["role-2"],
             department="Internal Medicine", location="Main Campus", title="Physician",
             phone="555-0101", npi="1234567890", specialty="Internal Medicine",
             license_number="MD12345", license_state="CA", credentials=["MD", "FACP"],
             last_login=hours(2), password_changed_at=days(30), mfa_enabled=True,
             mfa_method=MfaMethod.TOTP, created_at=days(365), updated_at=days(7)),
        User(id="user-2", username="mchen", email="michael.chen@clinic.com",
             first_name="Michael", last_name="Chen", full_name="Dr. Michael Chen",
             type=UserType.PROVIDER, status=UserStatus.ACTIVE, roles=["role-2"],
             department="Cardiology", location="Main Campus", title="Cardiologist",
             phone="555-0102", npi="2345678901", specialty="Cardiology",
             license_number="MD23456", license_state="CA", credentials=["MD", "FACC"],
             last_login=hours(4), password_changed_at=days(45), mfa_enabled=True,
             mfa_method=MfaMethod.TOTP, created_at=days(300), updated_at=days(14)),
        User(id="user-3", username="mwilson", email="mary.wilson@clinic.com",
             first_name="Mary", last_name="Wilson", full_name="Mary Wilson",
             type=UserType.STAFF, status=UserStatus.ACTIVE, roles=["role-4"],
             department="Administration", location="Main Campus", title="Office Manager",
             phone="555-0103", last_login=hours(1), password_changed_at=days(60),
             mfa_enabled=True, mfa_method=MfaMethod.EMAIL, created_at=days(500), updated_at=days(3)),
        User(id="user-4", username="jlee", email="jennifer.lee@clinic.com",
             first_name="Jennifer", last_name="Lee", full_name="Jennifer Lee, RN",
             type=UserType.STAFF, status=UserStatus.ACTIVE, roles=["role-3"],
             department="Nursing", location="Main Campus", title="Registered Nurse",
             phone="555-0104", license_number="RN98765", license_state="CA",
             credentials=["RN", "BSN"], supervisor_id="user-1", supervisor_name="Dr. Sarah Johnson",
             last_login=now - timedelta(minutes=30), password_changed_at=days(20),
             created_at=days(180), updated_at=days(1)),
        User(id="user-5", username="admin", email="admin@clinic.com",
             first_name="System", last_name="Administrator", full_name="System Administrator",
             type=UserType.ADMIN, status=UserStatus.ACTIVE, roles=["role-1"],
             department="IT", location="Main Campus", title="System Administrator",
             phone="555-0100", last_login=now - timedelta(minutes=15), password_changed_at=days(7),
             mfa_enabled=True, mfa_method=MfaMethod.TOTP, created_at=days(730), updated_at=days(1),
             created_by="system"),
        User(id="user-6", username="rthompson", email="robert.thompson@clinic.com",
             first_name="Robert", last_name="Thompson", full_name="Robert Thompson",
             type=UserType.STAFF, status=UserStatus.INACTIVE, roles=["role-5"],
             department="Billing", location="Main Campus", title="Billing Specialist",
             phone="555-0105", last_login=days(90), password_changed_at=days(120),
             created_at=days(400), updated_at=days(90)),
        User(id="user-7", username="agarcia", email="ana.garcia@clinic.com",
             first_name="Ana", last_name="Garcia", full_name="Ana Garcia",
             type=UserType.STAFF, status=UserStatus.LOCKED, roles=["role-6"],
             department="Front Desk", location="Main Campus", title="Receptionist",
             phone="555-0106", last_login=days(1), password_changed_at=days(85),
             login_attempts=5, locked_until=now + timedelta(minutes=30),
             created_at=days(200), updated_at=days(1)),
        User(id="user-8", username="dpatel", email="david.patel@clinic.com",
             first_name="David", last_name="Patel", full_name="David Patel, PA-C",
             type=UserType.PROVIDER, status=UserStatus.PENDING, roles=["role-2"],
             department="Internal Medicine", location="Main Campus", title="Physician Assistant",
             phone="555-0107", npi="3456789012", license_number="PA34567", license_state="CA",
             credentials=["PA-C"], supervisor_id="user-1", supervisor_name="Dr. Sarah Johnson",
             created_at=days(2), updated_at=days(2), created_by="user-3"),
    ]


# (action, severity, module, resource, description)
AUDIT_TEMPLATES = [
    (AuditAction.LOGIN, AuditSeverity.LOW, "auth", "session", "User logged in successfully"),
    (AuditAction.LOGOUT, AuditSeverity.LOW, "auth", "session", "User logged out"),
    (AuditAction.READ, AuditSeverity.LOW, "patients", "patient", "Viewed patient record"),
    (AuditAction.UPDATE, AuditSeverity.MEDIUM, "patients", "patient", "Updated patient demographics"),
    (AuditAction.CREATE, AuditSeverity.MEDIUM, "encounters", "encounter", "Created new encounter"),
    (AuditAction.SIGN, AuditSeverity.HIGH, "encounters", "encounter", "Signed encounter note"),
    (AuditAction.CREATE, AuditSeverity.MEDIUM, "prescriptions", "prescription", "Prescribed medication"),
    (AuditAction.EXPORT, AuditSeverity.HIGH, "reports", "report", "Exported patient data"),
    (AuditAction.SECURITY, AuditSeverity.CRITICAL, "auth", "session", "Failed login attempt"),
    (AuditAction.UPDATE, AuditSeverity.HIGH, "admin", "user", "Modified user permissions"),
]

AUDIT_ACTORS = [
    ("user-1", "Dr. Sarah Johnson", UserType.PROVIDER),
    ("user-3", "Mary Wilson", UserType.STAFF),
    ("user-4", "Jennifer Lee, RN", UserType.STAFF),
    ("user-5", "System Administrator", UserType.ADMIN),
]


def seed_audit_logs(count: int = 50, seed: Optional[int] = 42,
                    now: datetime = None) -> List[AuditLogEntry]:
    """Pseudo-random audit history over the last week, newest first."""
    rng = random.Random(seed)
    now = now or utcnow()
    logs = []
    for i in range(count):
        action, severity, module, resource, description = rng.choice(AUDIT_TEMPLATES)
        user_id, user_name, user_type = rng.choice(AUDIT_ACTORS)
        hours_ago = rng.randrange(168)
        logs.append(AuditLogEntry(
            id=f"audit-{i + 1}",
            timestamp=now - timedelta(hours=hours_ago),
            user_id=user_id,
            user_name=user_name,
            user_type=user_type,
            action=action,
            severity=severity,
            module=module,
            resource=resource,
            resource_id=f"{resource}-{rng.randrange(1000)}",
            description=description,
            ip_address=f"192.168.1.{rng.randrange(255)}",
            user_agent="Mozilla/5.0 (Windows NT 10.0; Win64; x64) Chrome/120.0.0.0",
            session_id=f"session-{rng.randrange(10000)}",
            success=rng.random() > 0.05,
        ))
    return sorted(logs, key=lambda e: e.timestamp, reverse=True)


def build_demo_store(seed: Optional[int] = None, settings: Settings = None) -> EntityStore:
    """A fully populated store: catalog, default roles and users, audit history."""
    settings = settings or get_settings()
    seed = settings.DEMO_SEED if seed is None else seed
    now = utcnow()

    permissions = seed_permissions()
    store = EntityStore(
        permissions=permissions,
        roles=seed_roles(permissions, now),
        users=seed_users(now),
        audit_logs=seed_audit_logs(settings.DEMO_AUDIT_ENTRIES, seed, now),
        settings=settings,
    )
    logger.info(f"Built demo store (seed={seed})")
    return store
