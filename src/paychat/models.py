"""Pydantic models for the HTTP transport surface."""

import base64
from datetime import datetime

from pydantic import BaseModel, Field

from .commands.result import CommandResult


class InboundMessage(BaseModel):
    """Message delivered by a chat platform adapter."""

    message_id: str | None = Field(default=None, max_length=200)
    sender_id: str = Field(..., min_length=1, max_length=200)
    conversation_id: str | None = Field(default=None, max_length=200)
    group_id: str | None = Field(default=None, max_length=200)
    group_name: str | None = Field(default=None, max_length=200)
    text: str = Field(..., max_length=4000)
    is_voice: bool = False
    timestamp: datetime | None = None
    display_name: str | None = Field(default=None, max_length=200)
    locale: str = Field(default="en", examples=["en", "es"])


class ButtonModel(BaseModel):
    id: str
    title: str


class ErrorModel(BaseModel):
    code: str
    message: str
    details: dict | None = None
    retryable: bool = False


class MessageResponse(BaseModel):
    """Rendered result of one inbound message."""

    success: bool
    message: str | None = None
    error: ErrorModel | None = None
    voice: str | None = Field(default=None, description="Base64 encoded WAV audio")
    voice_only: bool = False
    buttons: list[ButtonModel] = Field(default_factory=list)
    execution_time_ms: float | None = None

    @classmethod
    def from_result(cls, result: CommandResult) -> "MessageResponse":
        return cls(
            success=result.success,
            message=result.message,
            error=ErrorModel(**result.error.to_dict()) if result.error else None,
            voice=base64.b64encode(result.voice).decode("ascii") if result.voice else None,
            voice_only=result.voice_only,
            buttons=[ButtonModel(id=b.id, title=b.title) for b in result.buttons],
            execution_time_ms=result.execution_time_ms,
        )


class DependencyStatus(BaseModel):
    """Status of a service dependency."""

    name: str
    status: str = Field(..., description="Status: ok, degraded, or unavailable")
    message: str | None = None


class StatusResponse(BaseModel):
    """Service status response."""

    status: str = Field(..., description="Overall service status: ok or degraded")
    version: str | None = None
    timestamp: datetime
    dependencies: list[DependencyStatus] = Field(default_factory=list)
