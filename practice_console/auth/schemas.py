"""
Pydantic Schemas for Store Mutations
====================================
Request models for creating and patching users, roles and audit entries.
Patch models are read with `model_dump(exclude_unset=True)` so an omitted
field and an explicit None stay distinguishable.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from .enums import AuditAction, AuditSeverity, MfaMethod, UserStatus, UserType


class _Schema(BaseModel):
    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)


# =============================================================================
# USER SCHEMAS
# =============================================================================

class UserCreate(_Schema):
    id: Optional[str] = Field(None, min_length=1)
    username: str = ""
    email: str = ""
    first_name: str = ""
    last_name: str = ""
    full_name: Optional[str] = None
    type: UserType = UserType.STAFF
    roles: List[str] = []
    department: Optional[str] = None
    location: Optional[str] = None
    title: Optional[str] = None
    phone: Optional[str] = None
    avatar: Optional[str] = None
    npi: Optional[str] = None
    specialty: Optional[str] = None
    license_number: Optional[str] = None
    license_state: Optional[str] = None
    dea_number: Optional[str] = None
    credentials: List[str] = []
    supervisor_id: Optional[str] = None
    supervisor_name: Optional[str] = None
    mfa_enabled: bool = False
    mfa_method: Optional[MfaMethod] = None
    created_by: Optional[str] = None


class UserUpdate(_Schema):
    username: Optional[str] = None
    email: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    full_name: Optional[str] = None
    type: Optional[UserType] = None
    status: Optional[UserStatus] = None
    roles: Optional[List[str]] = None
    department: Optional[str] = None
    location: Optional[str] = None
    title: Optional[str] = None
    phone: Optional[str] = None
    avatar: Optional[str] = None
    npi: Optional[str] = None
    specialty: Optional[str] = None
    license_number: Optional[str] = None
    license_state: Optional[str] = None
    dea_number: Optional[str] = None
    credentials: Optional[List[str]] = None
    supervisor_id: Optional[str] = None
    supervisor_name: Optional[str] = None
    last_login: Optional[datetime] = None
    password_changed_at: Optional[datetime] = None
    mfa_enabled: Optional[bool] = None
    mfa_method: Optional[MfaMethod] = None
    login_attempts: Optional[int] = Field(None, ge=0)
    locked_until: Optional[datetime] = None


# =============================================================================
# ROLE SCHEMAS
# =============================================================================

class RoleCreate(_Schema):
    id: Optional[str] = Field(None, min_length=1)
    name: str = Field(..., min_length=1, max_length=100)
    description: str = ""
    is_default: bool = False
    permissions: List[str] = []
    created_by: Optional[str] = None


class RoleUpdate(_Schema):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = None
    is_default: Optional[bool] = None
    permissions: Optional[List[str]] = None


# =============================================================================
# AUDIT SCHEMAS
# =============================================================================

class AuditChangeIn(_Schema):
    field: str = Field(..., min_length=1)
    field_label: str = ""
    old_value: Any = None
    new_value: Any = None


class AuditEntryCreate(_Schema):
    id: Optional[str] = Field(None, min_length=1)
    timestamp: Optional[datetime] = None
    user_id: str = Field(..., min_length=1)
    user_name: str = Field(..., min_length=1)
    user_type: UserType
    action: AuditAction
    severity: AuditSeverity
    module: str = Field(..., min_length=1)
    resource: str = Field(..., min_length=1)
    resource_id: Optional[str] = None
    resource_name: Optional[str] = None
    description: str = Field(..., min_length=1)
    details: Dict[str, Any] = {}
    changes: List[AuditChangeIn] = []
    ip_address: str = ""
    user_agent: str = ""
    session_id: str = ""
    success: bool = True
    error_message: Optional[str] = None
