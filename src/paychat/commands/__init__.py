"""Chat command parsing, dispatch and confirmation."""

from .base import BaseCommandHandler, CommandCategory, HandlerDescriptor
from .confirmation import PaymentConfirmationService, PendingConfirmation
from .context import CommandContext, CommandContextBuilder, ContextBuildError
from .executor import CommandExecutor, ExecutionRequest, ExecutorEvent
from .parser import CommandParser
from .registry import CommandRegistry
from .result import Button, CommandError, CommandResult, ErrorCode
from .types import Command, CommandType

__all__ = [
    "BaseCommandHandler",
    "Button",
    "Command",
    "CommandCategory",
    "CommandContext",
    "CommandContextBuilder",
    "CommandError",
    "CommandExecutor",
    "CommandParser",
    "CommandRegistry",
    "CommandResult",
    "CommandType",
    "ContextBuildError",
    "ErrorCode",
    "ExecutionRequest",
    "ExecutorEvent",
    "HandlerDescriptor",
    "PaymentConfirmationService",
    "PendingConfirmation",
]
