"""Exception hierarchy for ReminderTribu.

Every fatal error raised by the runners or the API layer derives from
``ReminderTribuException`` so a single handler can turn it into the
``{"ok": false, "error": ...}`` envelope. Per-member problems inside a bulk
run are never raised; they are recorded in the run report instead.

Error codes follow pattern: [CATEGORY][NUMBER]
- VAL: Request validation errors (100-199)
- AUT: Authorization errors (200-299)
- UPS: Messaging gateway errors (300-399)
- MEM: Member store errors (400-499)
- SYS: Configuration / system errors (500-599)
"""

from __future__ import annotations

from typing import Any


class ReminderTribuException(Exception):
    """Base exception for all application errors."""

    def __init__(
        self,
        message: str,
        code: str,
        status_code: int = 400,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.status_code = status_code
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to API response format."""
        payload: dict[str, Any] = {"ok": False, "error": self.message, "code": self.code}
        if self.details:
            payload["details"] = self.details
        return payload


# ============================================================================
# VALIDATION ERRORS (VAL100-199)
# ============================================================================

class ValidationError(ReminderTribuException):
    """Malformed request input, rejected before any work begins."""

    def __init__(self, message: str, field: str | None = None):
        super().__init__(
            message=message,
            code="VAL100",
            status_code=400,
            details={"field": field} if field else {},
        )


class InvalidPhoneError(ValidationError):
    def __init__(self, raw: str | None = None):
        super().__init__("Invalid phone number or missing international prefix.", field="to")
        self.raw = raw


# ============================================================================
# AUTHORIZATION ERRORS (AUT200-299)
# ============================================================================

class AuthorizationError(ReminderTribuException):
    """A mutation was requested without its enablement flag."""

    def __init__(self, message: str, flag: str | None = None):
        super().__init__(
            message=message,
            code="AUT200",
            status_code=403,
            details={"flag": flag} if flag else {},
        )


# ============================================================================
# GATEWAY ERRORS (UPS300-399)
# ============================================================================

class UpstreamError(ReminderTribuException):
    """The messaging gateway answered with a non-success status.

    ``status_code`` mirrors the gateway status when there is one, so the
    single-send endpoint can relay it; transport failures map to 502.
    """

    def __init__(self, message: str, status_code: int | None = None, provider: str = "whatsapp"):
        super().__init__(
            message=message,
            code="UPS300",
            status_code=status_code or 502,
            details={"provider": provider},
        )


# ============================================================================
# STORE ERRORS (MEM400-499)
# ============================================================================

class MemberNotFoundError(ReminderTribuException):
    def __init__(self, member_id: str):
        super().__init__(
            message=f"Member {member_id} not found",
            code="MEM400",
            status_code=404,
            details={"member_id": member_id},
        )


# ============================================================================
# SYSTEM ERRORS (SYS500-599)
# ============================================================================

class ConfigurationError(ReminderTribuException):
    """Missing credentials or required identifiers; fatal for the whole run."""

    def __init__(self, parameter: str, status_code: int = 500):
        super().__init__(
            message=f"Configuration error: {parameter} is not configured",
            code="SYS501",
            status_code=status_code,
            details={"parameter": parameter},
        )
