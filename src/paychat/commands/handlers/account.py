"""Account linking (link, verify, unlink) and the linked username."""

import logging
import re

from paychat.collaborators.interface import CollaboratorError, SessionProvider

from ..base import BaseCommandHandler, CommandCategory, HandlerDescriptor, failure_from_collaborator
from ..context import CommandContext
from ..result import CommandResult, ErrorCode
from ..types import CommandType

logger = logging.getLogger(__name__)

_OTP = re.compile(r"^\d{6}$")


class LinkHandler(BaseCommandHandler):
    descriptor = HandlerDescriptor(
        command="link",
        command_type=CommandType.LINK,
        description="Link your wallet account",
        category=CommandCategory.ACCOUNT,
        aliases=("login", "connect"),
        usage="link [username]",
    )

    def __init__(self, sessions: SessionProvider) -> None:
        self.sessions = sessions

    def handle(self, context: CommandContext) -> CommandResult:
        if context.session is not None:
            return CommandResult.ok(
                "✅ Your account is already linked. Type *unlink* to disconnect it."
            )
        if context.is_group:
            return CommandResult.fail(
                ErrorCode.INVALID_ARGUMENTS,
                "🔒 For your security, please link your account in a direct message.",
            )
        try:
            instructions = self.sessions.start_link(context.subject_id, context.args.get("username"))
        except CollaboratorError as e:
            return failure_from_collaborator(e)
        return CommandResult.ok(f"🔗 {instructions}")


class VerifyHandler(BaseCommandHandler):
    descriptor = HandlerDescriptor(
        command="verify",
        command_type=CommandType.VERIFY,
        description="Finish linking with your 6-digit code",
        category=CommandCategory.ACCOUNT,
        aliases=("v",),
        usage="verify <6-digit code>",
    )

    def __init__(self, sessions: SessionProvider) -> None:
        self.sessions = sessions

    def validate(self, context: CommandContext) -> bool:
        return bool(_OTP.match(context.args.get("otp", "")))

    def handle(self, context: CommandContext) -> CommandResult:
        try:
            session = self.sessions.verify_code(context.subject_id, context.args["otp"])
        except CollaboratorError as e:
            return failure_from_collaborator(e)
        if session is None:
            return CommandResult.fail(
                ErrorCode.INVALID_FORMAT,
                "❌ Invalid or expired verification code. Type *link* to get a new one.",
            )
        logger.info("Account linked for %s", context.subject_id)
        return CommandResult.ok("✅ Your account is linked! Type *balance* to get started.")


class UnlinkHandler(BaseCommandHandler):
    descriptor = HandlerDescriptor(
        command="unlink",
        command_type=CommandType.UNLINK,
        description="Disconnect your wallet account",
        category=CommandCategory.ACCOUNT,
        aliases=("logout",),
        usage="unlink confirm",
        requires_auth=True,
    )

    def __init__(self, sessions: SessionProvider) -> None:
        self.sessions = sessions

    def handle(self, context: CommandContext) -> CommandResult:
        if context.args.get("confirm") != "confirm":
            return CommandResult.ok(
                "⚠️ This will disconnect your wallet account.\nType *unlink confirm* to continue."
            )
        try:
            self.sessions.unlink(context.subject_id)
        except CollaboratorError as e:
            return failure_from_collaborator(e)
        return CommandResult.ok("👋 Your account has been unlinked.")


class UsernameHandler(BaseCommandHandler):
    descriptor = HandlerDescriptor(
        command="username",
        command_type=CommandType.USERNAME,
        description="Show the wallet username people can pay",
        category=CommandCategory.ACCOUNT,
        aliases=("whoami",),
        usage="username",
        requires_auth=True,
        requires_session=True,
    )

    def handle(self, context: CommandContext) -> CommandResult:
        username = context.session.username
        if not username:
            return CommandResult.ok(
                "👤 Your account has no username yet. Set one in your wallet app."
            )
        return CommandResult.ok(f"👤 Your username is *@{username}*. Others can pay you with it.")
