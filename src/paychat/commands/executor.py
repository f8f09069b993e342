"""Command executor: builds the context, resolves a handler and runs it."""

import difflib
import logging
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from paychat.collaborators.interface import AdminDirectory, UserSession

from .context import CommandContext, CommandContextBuilder
from .registry import CommandRegistry
from .result import CommandResult, ErrorCode
from .types import Command

logger = logging.getLogger(__name__)

MAX_SUGGESTIONS = 5


class ExecutorEvent(str, Enum):
    PRE_EXECUTE = "command.pre-execute"
    POST_EXECUTE = "command.post-execute"
    ERROR = "command.error"


Listener = Callable[[dict[str, Any]], None]


@dataclass
class ExecutionRequest:
    """Everything needed to build a context for one command."""

    message_id: str
    sender_id: str
    command: Command
    conversation_id: str | None = None
    group_id: str | None = None
    group_name: str | None = None
    display_name: str | None = None
    session: UserSession | None = None
    is_voice: bool = False
    is_confirmed: bool = False
    locale: str = "en"
    instance_id: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)


class CommandExecutor:
    """Orchestrates a single command execution.

    Always returns a CommandResult. Missing handlers produce an unknown
    command result; any failure becomes INTERNAL_ERROR.
    """

    def __init__(
        self,
        registry: CommandRegistry,
        admin_directory: AdminDirectory | None = None,
    ) -> None:
        self.registry = registry
        self.admin_directory = admin_directory
        self._listeners: dict[ExecutorEvent, list[Listener]] = {e: [] for e in ExecutorEvent}

    def add_listener(self, event: ExecutorEvent, callback: Listener) -> None:
        self._listeners[event].append(callback)

    def _emit(self, event: ExecutorEvent, payload: dict[str, Any]) -> None:
        for callback in self._listeners[event]:
            try:
                callback(payload)
            except Exception as e:
                logger.warning("Listener for %s failed: %s", event.value, e)

    def _is_admin(self, sender_id: str) -> bool:
        if self.admin_directory is None:
            return False
        try:
            return self.admin_directory.is_admin(sender_id)
        except Exception as e:
            logger.warning("Admin lookup failed for %s, treating as non-admin: %s", sender_id, e)
            return False

    def build_context(self, request: ExecutionRequest) -> CommandContext:
        builder = (
            CommandContextBuilder()
            .with_message(
                request.message_id,
                request.sender_id,
                request.conversation_id,
                request.display_name,
            )
            .with_command(request.command)
            .with_session(request.session)
            .with_voice(request.is_voice or request.command.is_voice_command)
            .with_confirmed(request.is_confirmed)
            .with_locale(request.locale)
            .with_instance(request.instance_id)
            .with_metadata(**request.metadata)
        )
        if request.group_id:
            builder.with_group(request.group_id, request.group_name)
        builder.with_admin(self._is_admin(request.sender_id))
        return builder.build()

    def execute(self, request: ExecutionRequest) -> CommandResult:
        """Execute one command.

        Args:
            request: Message identity, parsed command and session

        Returns:
            CommandResult with execution time attached
        """
        start = time.perf_counter()
        command_type = request.command.type
        try:
            context = self.build_context(request)

            handler = self.registry.resolve_by_type(command_type)
            if handler is None:
                logger.info("No handler for command type %s", command_type.value)
                result = self.unknown_command_result(context)
            else:
                self._emit(
                    ExecutorEvent.PRE_EXECUTE,
                    {"command": command_type.value, "handler": handler.command, "context": context},
                )
                result = handler.execute(context)
                result.execution_time_ms = (time.perf_counter() - start) * 1000
                self._emit(
                    ExecutorEvent.POST_EXECUTE,
                    {
                        "command": command_type.value,
                        "handler": handler.command,
                        "context": context,
                        "result": result,
                        "execution_time_ms": result.execution_time_ms,
                    },
                )
        except Exception as e:
            logger.error("Error executing command %s: %s", command_type.value, e, exc_info=True)
            self._emit(
                ExecutorEvent.ERROR,
                {
                    "command": command_type.value,
                    "error": e,
                    "execution_time_ms": (time.perf_counter() - start) * 1000,
                },
            )
            result = CommandResult.fail(
                ErrorCode.INTERNAL_ERROR,
                "❌ An error occurred processing your command. Please try again.",
            )

        result.execution_time_ms = (time.perf_counter() - start) * 1000
        return result

    def unknown_command_result(self, context: CommandContext) -> CommandResult:
        if context.is_voice:
            return CommandResult.fail(
                ErrorCode.INVALID_ARGUMENTS,
                "I didn't understand that. Try saying \"help\" to hear what I can do.",
            )

        words = context.command.raw_text.split()
        suggestions = self.suggest(words[0], context.is_admin) if words else []
        if not suggestions:
            suggestions = [
                h.command
                for h in self.registry.all_handlers()
                if context.is_admin or not h.descriptor.admin_only
            ][:MAX_SUGGESTIONS]

        return CommandResult.fail(
            ErrorCode.INVALID_ARGUMENTS,
            f"❌ Unknown command: \"{context.command.raw_text}\".\n"
            f"Try one of these: {', '.join(suggestions)}\n\n"
            "Type *help* to see all commands.",
            details={"suggestions": suggestions},
        )

    def suggest(self, partial: str, is_admin: bool = False) -> list[str]:
        """Command names close to ``partial`` (prefix matches first)."""
        partial = partial.strip().lower().lstrip("/")
        if not partial:
            return []

        candidates: list[str] = []
        for handler in self.registry.all_handlers():
            if handler.descriptor.admin_only and not is_admin:
                continue
            candidates.append(handler.command)
            candidates.extend(a for a in handler.descriptor.aliases if len(a) > 1)

        suggestions = [c for c in candidates if c.startswith(partial)]
        suggestions.extend(difflib.get_close_matches(partial, candidates, n=MAX_SUGGESTIONS))
        return list(dict.fromkeys(suggestions))[:MAX_SUGGESTIONS]

    def is_valid_command(self, name: str, is_admin: bool = False) -> bool:
        handler = self.registry.resolve(name)
        if handler is None:
            return False
        return is_admin or not handler.descriptor.admin_only
