"""Registry mapping command names, aliases and types to handlers."""

import logging

from .base import BaseCommandHandler, CommandCategory
from .types import CommandType

logger = logging.getLogger(__name__)


class CommandRegistry:
    """Holds registered handlers.

    The handler table keyed by canonical name is the only source of truth.
    Alias, type and category lookups are indices rebuilt from it on every
    registration, so a later handler claiming an alias wins.
    """

    def __init__(self) -> None:
        self._handlers: dict[str, BaseCommandHandler] = {}
        self._aliases: dict[str, str] = {}
        self._by_type: dict[CommandType, str] = {}
        self._by_category: dict[CommandCategory, list[str]] = {}

    def register(self, handler: BaseCommandHandler) -> None:
        name = handler.descriptor.command.lower()
        if name in self._handlers:
            logger.warning("Replacing handler for command '%s'", name)
        # Re-insert so registration order reflects the latest registration
        self._handlers.pop(name, None)
        self._handlers[name] = handler
        self._rebuild_indices()
        logger.debug("Registered handler %s", name)

    def register_all(self, handlers: list[BaseCommandHandler]) -> None:
        for handler in handlers:
            self.register(handler)

    def _rebuild_indices(self) -> None:
        aliases: dict[str, str] = {}
        by_type: dict[CommandType, str] = {}
        by_category: dict[CommandCategory, list[str]] = {}
        for name, handler in self._handlers.items():
            d = handler.descriptor
            for alias in d.aliases:
                aliases[alias.lower()] = name
            by_type[d.command_type] = name
            by_category.setdefault(d.category, []).append(name)
        self._aliases = aliases
        self._by_type = by_type
        self._by_category = by_category

    def resolve(self, name: str) -> BaseCommandHandler | None:
        """Look up a handler by canonical name, then by alias (case-insensitive)."""
        key = name.strip().lower().lstrip("/")
        if key in self._handlers:
            return self._handlers[key]
        canonical = self._aliases.get(key)
        return self._handlers.get(canonical) if canonical else None

    def resolve_by_type(self, command_type: CommandType) -> BaseCommandHandler | None:
        name = self._by_type.get(command_type)
        return self._handlers.get(name) if name else None

    def list_by_category(self, category: CommandCategory) -> list[BaseCommandHandler]:
        return [self._handlers[name] for name in self._by_category.get(category, [])]

    def list_for_help(self, include_admin: bool = False) -> dict[CommandCategory, list[BaseCommandHandler]]:
        """Handlers grouped by category, hiding admin-only ones unless included."""
        grouped: dict[CommandCategory, list[BaseCommandHandler]] = {}
        for category in CommandCategory:
            handlers = [
                h
                for h in self.list_by_category(category)
                if include_admin or not h.descriptor.admin_only
            ]
            if handlers:
                grouped[category] = handlers
        return grouped

    def all_handlers(self) -> list[BaseCommandHandler]:
        return list(self._handlers.values())

    def names(self) -> list[str]:
        """Canonical names followed by aliases."""
        return [*self._handlers, *self._aliases]

    def __len__(self) -> int:
        return len(self._handlers)

    def __contains__(self, name: str) -> bool:
        return self.resolve(name) is not None
