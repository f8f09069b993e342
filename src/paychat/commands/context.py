"""Per-request execution context and its builder."""

from dataclasses import dataclass, field
from typing import Any

from paychat.collaborators.interface import UserSession

from .types import Command


class ContextBuildError(Exception):
    """Raised when a context is built without its required fields."""


@dataclass(frozen=True)
class CommandContext:
    """Everything a handler needs to execute one command.

    Built once per request by CommandContextBuilder and read-only afterward.
    """

    message_id: str
    sender_id: str
    conversation_id: str
    command: Command
    group_id: str | None = None
    group_name: str | None = None
    display_name: str | None = None
    session: UserSession | None = None
    is_admin: bool = False
    is_voice: bool = False
    voice_requested: bool = False
    is_confirmed: bool = False
    locale: str = "en"
    instance_id: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    @property
    def subject_id(self) -> str:
        """Identity used for per-user state such as pending confirmations."""
        return self.sender_id

    @property
    def is_group(self) -> bool:
        return self.group_id is not None

    @property
    def account_id(self) -> str | None:
        return self.session.account_id if self.session else None

    @property
    def args(self) -> dict[str, str]:
        return self.command.args


class CommandContextBuilder:
    """Fluent accumulator for CommandContext.

    Example:
        context = (
            CommandContextBuilder()
            .with_message("m1", "alice")
            .with_command(command)
            .with_session(session)
            .build()
        )
    """

    def __init__(self) -> None:
        self._message_id: str | None = None
        self._sender_id: str | None = None
        self._conversation_id: str | None = None
        self._display_name: str | None = None
        self._command: Command | None = None
        self._group_id: str | None = None
        self._group_name: str | None = None
        self._session: UserSession | None = None
        self._is_admin = False
        self._is_voice = False
        self._voice_requested = False
        self._is_confirmed = False
        self._locale = "en"
        self._instance_id: str | None = None
        self._metadata: dict[str, Any] = {}

    def with_message(
        self,
        message_id: str,
        sender_id: str,
        conversation_id: str | None = None,
        display_name: str | None = None,
    ) -> "CommandContextBuilder":
        self._message_id = message_id
        self._sender_id = sender_id
        self._conversation_id = conversation_id
        self._display_name = display_name
        return self

    def with_command(self, command: Command) -> "CommandContextBuilder":
        self._command = command
        return self

    def with_group(self, group_id: str, group_name: str | None = None) -> "CommandContextBuilder":
        self._group_id = group_id
        self._group_name = group_name
        return self

    def with_session(self, session: UserSession | None) -> "CommandContextBuilder":
        self._session = session
        return self

    def with_admin(self, is_admin: bool) -> "CommandContextBuilder":
        self._is_admin = is_admin
        return self

    def with_voice(self, is_voice: bool, voice_requested: bool = False) -> "CommandContextBuilder":
        self._is_voice = is_voice
        self._voice_requested = voice_requested
        return self

    def with_confirmed(self, is_confirmed: bool = True) -> "CommandContextBuilder":
        self._is_confirmed = is_confirmed
        return self

    def with_locale(self, locale: str) -> "CommandContextBuilder":
        self._locale = locale
        return self

    def with_instance(self, instance_id: str | None) -> "CommandContextBuilder":
        self._instance_id = instance_id
        return self

    def with_metadata(self, **metadata: Any) -> "CommandContextBuilder":
        self._metadata.update(metadata)
        return self

    def build(self) -> CommandContext:
        """Create the context.

        Raises:
            ContextBuildError: If message identity or command fields are missing
        """
        missing = []
        if not self._message_id:
            missing.append("message_id")
        if not self._sender_id:
            missing.append("sender_id")
        command = self._command
        if command is None:
            missing.append("command")
        else:
            if command.type is None:
                missing.append("command.type")
            if command.args is None:
                missing.append("command.args")
            if command.raw_text is None:
                missing.append("command.raw_text")
        if missing:
            raise ContextBuildError(f"Missing required context fields: {', '.join(missing)}")

        return CommandContext(
            message_id=self._message_id,
            sender_id=self._sender_id,
            conversation_id=self._conversation_id or self._sender_id,
            display_name=self._display_name,
            command=command,
            group_id=self._group_id,
            group_name=self._group_name,
            session=self._session,
            is_admin=self._is_admin,
            is_voice=self._is_voice,
            voice_requested=self._voice_requested or command.voice_requested,
            is_confirmed=self._is_confirmed,
            locale=self._locale,
            instance_id=self._instance_id,
            metadata=dict(self._metadata),
        )
