"""
PRACTICE CONSOLE - System Settings
==================================
Keyed practice configuration edited one section at a time.

`update_section` is a shallow merge: top-level keys of the patch replace
the section's keys wholesale. Nested objects and lists are replaced, never
merged or appended to.
"""

import logging
from typing import Any, Dict, List, Mapping, Type

from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError

from .auth.exceptions import ValidationError

logger = logging.getLogger(__name__)


class _Section(BaseModel):
    model_config = ConfigDict(extra="forbid")


# =============================================================================
# SECTIONS
# =============================================================================

class GeneralSettings(_Section):
    practice_name: str = "OpenEMR Medical Group"
    practice_address: str = "123 Healthcare Ave, Suite 100, Medical City, CA 90210"
    practice_phone: str = "(555) 123-4567"
    practice_fax: str = "(555) 123-4568"
    practice_email: str = "info@openemr-clinic.com"
    practice_website: str = "https://openemr-clinic.com"
    practice_npi: str = "1234567890"
    practice_tax_id: str = "12-3456789"
    logo: str = ""
    timezone: str = "America/Los_Angeles"
    date_format: str = "MM/DD/YYYY"
    currency: str = "USD"
    default_language: str = "en"


class SecuritySettings(_Section):
    password_policy: Dict[str, Any] = {
        "min_length": 12,
        "require_uppercase": True,
        "require_lowercase": True,
        "require_numbers": True,
        "require_special_chars": True,
        "expiration_days": 90,
        "history_count": 5,
    }
    session_policy: Dict[str, Any] = {
        "max_idle_minutes": 30,
        "max_session_hours": 12,
        "single_session_only": False,
        "require_mfa": False,
    }
    login_policy: Dict[str, Any] = {
        "max_attempts": 5,
        "lockout_minutes": 30,
        "allow_remember_me": True,
        "ip_whitelist": [],
    }
    audit_policy: Dict[str, Any] = {
        "enabled": True,
        "retention_days": 365,
        "log_level": "standard",
    }


class EmailSettings(_Section):
    smtp_host: str = "smtp.clinic.com"
    smtp_port: int = Field(587, ge=1, le=65535)
    smtp_username: str = "noreply@clinic.com"
    smtp_password: str = "********"
    smtp_encryption: str = Field("tls", pattern="^(none|ssl|tls)$")
    from_address: str = "noreply@clinic.com"
    from_name: str = "OpenEMR Medical Group"
    reply_to_address: str = "support@clinic.com"
    templates_path: str = "/templates/email"


class SchedulingSettings(_Section):
    default_slot_duration: int = Field(30, gt=0)
    min_advance_booking_hours: int = Field(24, ge=0)
    max_advance_booking_days: int = Field(90, ge=0)
    allow_double_booking: bool = False
    allow_waitlist: bool = True
    reminder_lead_time_days: int = Field(2, ge=0)
    confirmation_required: bool = True
    cancellation_policy_hours: int = Field(24, ge=0)
    working_hours: Dict[str, Dict[str, Any]] = {
        day: {"start": "08:00", "end": "17:00", "enabled": True}
        for day in ("monday", "tuesday", "wednesday", "thursday", "friday")
    } | {
        day: {"start": "09:00", "end": "13:00", "enabled": False}
        for day in ("saturday", "sunday")
    }
    holidays: List[str] = ["2024-01-01", "2024-07-04", "2024-12-25"]


class BillingSettings(_Section):
    default_fee_schedule: str = "standard"
    claim_submission_method: str = Field("electronic", pattern="^(electronic|paper|both)$")
    clearinghouse_id: str = "CH12345"
    auto_post_payments: bool = True
    statement_frequency: str = Field("monthly", pattern="^(weekly|monthly)$")
    collection_threshold_days: int = Field(90, ge=0)
    collection_threshold_amount: float = Field(100, ge=0)
    payment_methods: List[str] = ["cash", "check", "credit", "ach"]
    tax_rate: float = Field(0, ge=0)


class ClinicalSettings(_Section):
    default_chart_template: str = "soap"
    require_signature: bool = True
    auto_save_interval: int = Field(60, gt=0)
    prescription_defaults: Dict[str, Any] = {
        "default_pharmacy": "",
        "default_quantity": 30,
        "default_refills": 0,
        "require_epcs": True,
    }
    lab_defaults: Dict[str, Any] = {"default_lab": "", "auto_notify_results": True}
    vital_signs: Dict[str, Any] = {
        "units": "imperial",
        "alert_thresholds": {
            "systolic": {"low": 90, "high": 140},
            "diastolic": {"low": 60, "high": 90},
            "pulse": {"low": 60, "high": 100},
            "temperature": {"low": 97, "high": 99.5},
        },
    }


class IntegrationSettings(_Section):
    hl7: Dict[str, Any] = {
        "enabled": True,
        "version": "2.5.1",
        "receiving_facility": "OPENEMR",
        "sending_facility": "OPENEMR",
    }
    fhir: Dict[str, Any] = {"enabled": True, "server_url": "https://fhir.clinic.com", "version": "R4"}
    immunization_registry: Dict[str, Any] = {
        "enabled": False,
        "registry_url": "",
        "submission_frequency": "daily",
    }
    prescription_network: Dict[str, Any] = {"enabled": True, "network_id": "SURESCRIPT"}
    lab_interfaces: List[Dict[str, Any]] = [
        {"id": "lab-1", "name": "Quest Diagnostics", "enabled": True, "endpoint": "https://api.quest.com"},
        {"id": "lab-2", "name": "LabCorp", "enabled": False, "endpoint": "https://api.labcorp.com"},
    ]


SECTIONS: Dict[str, Type[_Section]] = {
    "general": GeneralSettings,
    "security": SecuritySettings,
    "email": EmailSettings,
    "scheduling": SchedulingSettings,
    "billing": BillingSettings,
    "clinical": ClinicalSettings,
    "integrations": IntegrationSettings,
}


class SystemSettings:
    """Holds one model per section; sections are swapped, never edited in place."""

    def __init__(self, **sections: _Section):
        unknown = set(sections) - set(SECTIONS)
        if unknown:
            raise ValidationError(f"Unknown settings sections: {sorted(unknown)}",
                                  [(name, "unknown section") for name in sorted(unknown)])
        self._sections: Dict[str, _Section] = {
            name: sections.get(name) or model() for name, model in SECTIONS.items()
        }

    def section(self, name: str) -> _Section:
        if name not in self._sections:
            raise ValidationError(f"Unknown settings section: {name}", [(name, "unknown section")])
        return self._sections[name]

    def update_section(self, name: str, patch: Mapping[str, Any]) -> _Section:
        """Shallow-merge `patch` into one section and validate the result."""
        current = self.section(name)
        merged = {**current.model_dump(), **dict(patch)}
        try:
            updated = SECTIONS[name].model_validate(merged)
        except PydanticValidationError as exc:
            raise ValidationError.from_pydantic(exc, f"{name} settings") from exc
        self._sections[name] = updated
        logger.info(f"Updated {name} settings: {sorted(patch)}")
        return updated

    def to_dict(self) -> Dict[str, Dict[str, Any]]:
        return {name: model.model_dump() for name, model in self._sections.items()}
