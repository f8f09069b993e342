"""Base class for command handlers.

Every handler declares a HandlerDescriptor and implements ``handle``. The
shared ``execute`` runs the permission checks, optional validation, the
handler itself, and stamps execution time on whatever comes back.
"""

import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from enum import Enum

from .context import CommandContext
from .result import CommandResult, ErrorCode
from .types import CommandType

logger = logging.getLogger(__name__)

MAX_AMOUNT = Decimal("1000000")


class CommandCategory(str, Enum):
    TRANSACTION = "transaction"
    ACCOUNT = "account"
    ADMIN = "admin"
    HELP = "help"
    UTILITY = "utility"


@dataclass(frozen=True)
class HandlerDescriptor:
    """Static description of a handler, fixed at registration."""

    command: str
    command_type: CommandType
    description: str
    category: CommandCategory
    aliases: tuple[str, ...] = ()
    usage: str | None = None
    admin_only: bool = False
    requires_auth: bool = False
    requires_session: bool = False


def parse_amount(raw: str | None) -> Decimal | None:
    """Parse a positive amount with at most two decimals, or return None."""
    if raw is None:
        return None
    try:
        amount = Decimal(raw)
    except InvalidOperation:
        return None
    if not amount.is_finite() or amount <= 0 or amount > MAX_AMOUNT:
        return None
    if amount.as_tuple().exponent < -2:
        return None
    return amount


def format_amount(amount: Decimal, currency: str = "USD") -> str:
    if currency == "USD":
        return f"${amount:,.2f}"
    return f"{amount:,.2f} {currency}"


class BaseCommandHandler(ABC):
    """Template for all handlers."""

    descriptor: HandlerDescriptor

    @property
    def command(self) -> str:
        return self.descriptor.command

    def validate(self, context: CommandContext) -> bool:
        """Handler-specific argument checks run before ``handle``."""
        return True

    @abstractmethod
    def handle(self, context: CommandContext) -> CommandResult:
        pass

    def execute(self, context: CommandContext) -> CommandResult:
        """Run checks and the handler. Never raises."""
        start = time.perf_counter()
        try:
            result = self._checked_handle(context)
        except Exception as e:
            logger.error("Error executing command %s: %s", self.command, e, exc_info=True)
            result = CommandResult.fail(
                ErrorCode.INTERNAL_ERROR,
                "❌ An error occurred processing your command. Please try again.",
            )
        result.execution_time_ms = (time.perf_counter() - start) * 1000
        return result

    def _checked_handle(self, context: CommandContext) -> CommandResult:
        d = self.descriptor
        if d.requires_auth and context.session is None:
            return CommandResult.fail(
                ErrorCode.NOT_AUTHENTICATED,
                "🔐 Please link your account first. Type *link* to get started.",
            )
        if d.requires_session and not context.account_id:
            return CommandResult.fail(
                ErrorCode.SESSION_EXPIRED,
                "🔐 Your session has expired. Please link your account again with *link*.",
            )
        if d.admin_only and not context.is_admin:
            return CommandResult.fail(
                ErrorCode.INSUFFICIENT_PERMISSIONS,
                "❌ You do not have permission to use this command.",
            )
        if not self.validate(context):
            message = "❌ Invalid command format."
            if d.usage:
                message += f" Usage: {d.usage}"
            return CommandResult.fail(
                ErrorCode.INVALID_ARGUMENTS, message, details={"args": dict(context.args)}
            )
        return self.handle(context)


def failure_from_collaborator(error: Exception) -> CommandResult:
    """Convert a collaborator failure into a user-facing result."""
    code_name = getattr(error, "code", ErrorCode.EXTERNAL_API_ERROR.value)
    try:
        code = ErrorCode(code_name)
    except ValueError:
        code = ErrorCode.TRANSACTION_FAILED
    messages = {
        ErrorCode.INSUFFICIENT_BALANCE: "❌ Insufficient balance.",
        ErrorCode.USER_NOT_FOUND: "❌ Recipient not found. Please check the username and try again.",
        ErrorCode.EXTERNAL_API_ERROR: "⚠️ The service is temporarily unavailable. Please try again shortly.",
    }
    message = messages.get(code, f"❌ {error}")
    return CommandResult.fail(code, message, retryable=bool(getattr(error, "retryable", False)))
