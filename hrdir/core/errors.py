from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict

from hrdir.core.redaction import redact


class Severity(str, Enum):
    INFO = "INFO"
    WARN = "WARN"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


@dataclass
class HRError(Exception):
    code: str
    user_message: str
    severity: Severity = Severity.ERROR
    recoverable: bool = False
    context: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        super().__init__(self.user_message)

    def __str__(self) -> str:
        return self.user_message

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code,
            "user_message": self.user_message,
            "severity": self.severity.value,
            "recoverable": bool(self.recoverable),
            "context": redact(self.context or {}),
        }


# ---- Directory error kinds ----
class InvalidArgumentError(HRError):
    def __init__(self, user_message: str = "Invalid argument.", **ctx: Any):
        super().__init__("invalid_argument", user_message, severity=Severity.WARN, recoverable=False, context=ctx)


class InvalidCredentialFormatError(InvalidArgumentError):
    def __init__(self, user_message: str = "The given password must be a non-empty string.", **ctx: Any):
        super().__init__(user_message, **ctx)
        self.code = "invalid_credential_format"


class NotFoundError(HRError):
    def __init__(self, user_message: str = "Not found.", **ctx: Any):
        super().__init__("not_found", user_message, severity=Severity.WARN, recoverable=False, context=ctx)


class NoSuchAccountError(NotFoundError):
    def __init__(self, user_message: str = "No such account.", **ctx: Any):
        super().__init__(user_message, **ctx)
        self.code = "no_such_account"


class PermissionDeniedError(HRError):
    def __init__(self, user_message: str = "Permission denied.", **ctx: Any):
        super().__init__("permission_denied", user_message, severity=Severity.WARN, recoverable=False, context=ctx)


class AuthenticationFailedError(HRError):
    def __init__(self, user_message: str = "Incorrect password.", **ctx: Any):
        super().__init__("authentication_failed", user_message, severity=Severity.WARN, recoverable=False, context=ctx)


class InvalidStateError(HRError):
    def __init__(self, user_message: str = "Invalid state.", **ctx: Any):
        super().__init__("invalid_state", user_message, severity=Severity.WARN, recoverable=False, context=ctx)


class ConfigError(HRError):
    def __init__(self, user_message: str = "Configuration error.", **ctx: Any):
        super().__init__("config_error", user_message, severity=Severity.CRITICAL, recoverable=False, context=ctx)
