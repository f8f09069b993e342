"""Typed representation of a parsed chat command."""

from dataclasses import asdict, dataclass, field, replace
from enum import Enum
from typing import Any


class CommandType(str, Enum):
    """Every intent the parser can produce."""

    HELP = "help"
    BALANCE = "balance"
    LINK = "link"
    UNLINK = "unlink"
    VERIFY = "verify"
    PRICE = "price"
    SEND = "send"
    RECEIVE = "receive"
    HISTORY = "history"
    REQUEST = "request"
    REFRESH = "refresh"
    USERNAME = "username"
    VOICE = "voice"
    ADMIN = "admin"
    UNKNOWN = "unknown"


# Command types that move money and always go through confirmation
MONEY_MOVING_TYPES = frozenset({CommandType.SEND, CommandType.REQUEST})


@dataclass(frozen=True)
class Command:
    """A parsed user intent.

    Attributes:
        type: The command type (UNKNOWN when nothing matched)
        args: Arguments extracted from the text, keyed by name
        raw_text: The text the user sent, before any correction
        voice_requested: The user asked for a spoken reply
        requires_confirmation: Must be confirmed before it is executed
        is_voice_command: The intent came from a voice message
    """

    type: CommandType
    args: dict[str, str] = field(default_factory=dict)
    raw_text: str = ""
    voice_requested: bool = False
    requires_confirmation: bool = False
    is_voice_command: bool = False

    @property
    def moves_money(self) -> bool:
        return self.type in MONEY_MOVING_TYPES

    def with_flags(self, **changes: bool) -> "Command":
        """Return a copy with the given flags changed."""
        return replace(self, **changes)

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["type"] = self.type.value
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Command":
        return cls(
            type=CommandType(data["type"]),
            args={str(k): str(v) for k, v in data.get("args", {}).items()},
            raw_text=data.get("raw_text", ""),
            voice_requested=bool(data.get("voice_requested", False)),
            requires_confirmation=bool(data.get("requires_confirmation", False)),
            is_voice_command=bool(data.get("is_voice_command", False)),
        )
