"""Outcome of executing a command."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ErrorCode(str, Enum):
    # Validation
    INVALID_ARGUMENTS = "INVALID_ARGUMENTS"
    MISSING_REQUIRED_FIELD = "MISSING_REQUIRED_FIELD"
    INVALID_FORMAT = "INVALID_FORMAT"

    # Authentication
    NOT_AUTHENTICATED = "NOT_AUTHENTICATED"
    SESSION_EXPIRED = "SESSION_EXPIRED"
    INSUFFICIENT_PERMISSIONS = "INSUFFICIENT_PERMISSIONS"

    # Business
    INSUFFICIENT_BALANCE = "INSUFFICIENT_BALANCE"
    USER_NOT_FOUND = "USER_NOT_FOUND"
    TRANSACTION_FAILED = "TRANSACTION_FAILED"
    RATE_LIMITED = "RATE_LIMITED"

    # System
    EXTERNAL_API_ERROR = "EXTERNAL_API_ERROR"
    DATABASE_ERROR = "DATABASE_ERROR"
    INTERNAL_ERROR = "INTERNAL_ERROR"


@dataclass(frozen=True)
class CommandError:
    """Machine-readable error code plus a message safe to show the user."""

    code: ErrorCode
    message: str
    details: dict[str, Any] | None = None
    retryable: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "code": self.code.value,
            "message": self.message,
            "details": self.details,
            "retryable": self.retryable,
        }


@dataclass(frozen=True)
class Button:
    """Quick-reply button rendered by the transport."""

    id: str
    title: str


@dataclass(frozen=True)
class Media:
    data: bytes
    caption: str | None = None
    mime_type: str = "image/png"


@dataclass
class CommandResult:
    """Result returned to the transport for rendering.

    Produced once per execution. Only ``execution_time_ms`` (and, in the
    engine, attached voice audio) is set after a handler returns.
    """

    success: bool
    message: str | None = None
    error: CommandError | None = None
    voice: bytes | None = None
    voice_only: bool = False
    media: Media | None = None
    buttons: list[Button] = field(default_factory=list)
    execution_time_ms: float | None = None

    @classmethod
    def ok(cls, message: str, buttons: list[Button] | None = None, **kwargs: Any) -> "CommandResult":
        return cls(success=True, message=message, buttons=list(buttons or []), **kwargs)

    @classmethod
    def fail(
        cls,
        code: ErrorCode,
        message: str,
        details: dict[str, Any] | None = None,
        retryable: bool = False,
    ) -> "CommandResult":
        return cls(
            success=False,
            message=message,
            error=CommandError(code=code, message=message, details=details, retryable=retryable),
        )

    @property
    def outcome(self) -> str:
        """Either "ok" or the error code, used for metrics."""
        if self.success or self.error is None:
            return "ok"
        return self.error.code.value

    @property
    def text(self) -> str:
        """Text to render, falling back to the error message."""
        if self.message:
            return self.message
        return self.error.message if self.error else ""
