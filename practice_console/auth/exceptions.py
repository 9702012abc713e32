"""
PRACTICE CONSOLE - Errors and Operation Results
===============================================
ValidationError is raised; InvariantViolation is reported through
OperationResult so a rejected mutation never escapes as a crash.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple


class AdminError(Exception):
    """Base class for access-control core errors."""
    pass


class ValidationError(AdminError):
    """Raised when a create/patch payload is missing or has malformed fields."""

    def __init__(self, message: str, issues: Optional[List[Tuple[str, str]]] = None):
        super().__init__(message)
        self.message = message
        self.issues: List[Tuple[str, str]] = list(issues or [])

    @classmethod
    def from_pydantic(cls, exc, entity: str) -> "ValidationError":
        issues = [
            (".".join(str(part) for part in err.get("loc", ())) or "__root__", err.get("msg", ""))
            for err in exc.errors()
        ]
        fields = ", ".join(name for name, _ in issues)
        return cls(f"Invalid {entity}: {fields}", issues)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error": "validation_error",
            "message": self.message,
            "issues": [{"field": f, "message": m} for f, m in self.issues],
        }


class InvariantViolation(AdminError):
    """A mutation that would break a role invariant; state is left unchanged."""

    def __init__(self, reason: str, entity_id: Optional[str] = None):
        super().__init__(reason)
        self.reason = reason
        self.entity_id = entity_id


@dataclass
class OperationResult:
    """Outcome of a mutation that may be rejected without raising."""
    ok: bool
    message: str = ""
    violation: Optional[InvariantViolation] = None
    not_found: bool = False
    value: Any = None
    details: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def success(cls, message: str = "", value: Any = None, **details) -> "OperationResult":
        return cls(ok=True, message=message, value=value, details=details)

    @classmethod
    def rejected(cls, reason: str, entity_id: Optional[str] = None) -> "OperationResult":
        return cls(ok=False, message=reason, violation=InvariantViolation(reason, entity_id))

    @classmethod
    def missing(cls, message: str) -> "OperationResult":
        return cls(ok=False, message=message, not_found=True)

    def raise_for_violation(self) -> None:
        if self.violation is not None:
            raise self.violation

    def to_dict(self) -> Dict[str, Any]:
        return {
            "ok": self.ok,
            "message": self.message,
            "violation": self.violation.reason if self.violation else None,
            "not_found": self.not_found,
            "details": self.details,
        }
