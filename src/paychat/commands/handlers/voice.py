"""Voice reply settings."""

from paychat.voice_settings import VoiceMode, VoiceSettings

from ..base import BaseCommandHandler, CommandCategory, HandlerDescriptor
from ..context import CommandContext
from ..result import CommandResult
from ..types import CommandType

_DESCRIPTIONS = {
    VoiceMode.ON: "🔊 Voice replies are *on* when you send voice notes or ask for voice.",
    VoiceMode.OFF: "🔇 Voice replies are *off*.",
    VoiceMode.ONLY: "🗣️ Voice *only*: every reply will be spoken.",
}


class VoiceHandler(BaseCommandHandler):
    descriptor = HandlerDescriptor(
        command="voice",
        command_type=CommandType.VOICE,
        description="Voice reply settings",
        category=CommandCategory.UTILITY,
        usage="voice on|off|only|status",
    )

    def __init__(self, settings: VoiceSettings) -> None:
        self.settings = settings

    def validate(self, context: CommandContext) -> bool:
        mode = context.args.get("mode", "status")
        return mode == "status" or mode in {m.value for m in VoiceMode}

    def handle(self, context: CommandContext) -> CommandResult:
        mode = context.args.get("mode", "status")
        if mode == "status":
            current = self.settings.get_mode(context.subject_id)
            return CommandResult.ok(_DESCRIPTIONS[current])

        new_mode = VoiceMode(mode)
        self.settings.set_mode(context.subject_id, new_mode)
        return CommandResult.ok(_DESCRIPTIONS[new_mode])
