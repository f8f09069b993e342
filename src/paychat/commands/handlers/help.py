"""Help listing built from the registry."""

from ..base import BaseCommandHandler, CommandCategory, HandlerDescriptor
from ..context import CommandContext
from ..registry import CommandRegistry
from ..result import CommandResult
from ..types import CommandType

_CATEGORY_TITLES = {
    CommandCategory.TRANSACTION: "💸 Payments",
    CommandCategory.ACCOUNT: "👤 Account",
    CommandCategory.UTILITY: "🧰 Utilities",
    CommandCategory.HELP: "❓ Help",
    CommandCategory.ADMIN: "🛠️ Admin",
}


class HelpHandler(BaseCommandHandler):
    descriptor = HandlerDescriptor(
        command="help",
        command_type=CommandType.HELP,
        description="Show available commands",
        category=CommandCategory.HELP,
        aliases=("h", "?", "commands"),
        usage="help [category|command]",
    )

    def __init__(self, registry: CommandRegistry) -> None:
        self.registry = registry

    def handle(self, context: CommandContext) -> CommandResult:
        topic = context.args.get("category")
        if topic:
            try:
                category = CommandCategory(topic)
            except ValueError:
                category = None
            if category is not None and (category is not CommandCategory.ADMIN or context.is_admin):
                return CommandResult.ok(self._category_help(category))

            handler = self.registry.resolve(topic)
            if handler is not None and (context.is_admin or not handler.descriptor.admin_only):
                return CommandResult.ok(self._command_help(handler.descriptor))

        return CommandResult.ok(self._general_help(context.is_admin))

    def _general_help(self, include_admin: bool) -> str:
        sections = ["🤖 *Available commands*"]
        for category, handlers in self.registry.list_for_help(include_admin).items():
            lines = [f"\n*{_CATEGORY_TITLES[category]}*"]
            lines.extend(f"• *{h.command}*: {h.descriptor.description}" for h in handlers)
            sections.append("\n".join(lines))
        sections.append("\nType *help <command>* for details.")
        return "\n".join(sections)

    def _category_help(self, category: CommandCategory) -> str:
        lines = [f"*{_CATEGORY_TITLES[category]}*"]
        for handler in self.registry.list_by_category(category):
            d = handler.descriptor
            lines.append(f"• *{d.usage or d.command}*: {d.description}")
        return "\n".join(lines)

    @staticmethod
    def _command_help(d: HandlerDescriptor) -> str:
        lines = [f"*{d.command}*: {d.description}"]
        if d.usage:
            lines.append(f"Usage: {d.usage}")
        if d.aliases:
            lines.append(f"Aliases: {', '.join(d.aliases)}")
        return "\n".join(lines)
