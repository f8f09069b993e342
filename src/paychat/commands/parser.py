"""Parser turning inbound chat text into a typed Command."""

import logging
import re

from .natural_language import match_natural_language
from .patterns import (
    COMMAND_KEYWORDS,
    COMPOUND_VOICE_PREFIX,
    CORRECTIONS,
    FILLER_PREFIX,
    GRAMMAR,
    LOWERCASE_ARGS,
    MAX_MEMO_LENGTH,
    MAX_PHRASE_CORRECTION_TOKENS,
    PHRASE_CORRECTIONS,
    VERIFICATION_CODE,
    VOICE_PHRASES,
)
from .types import MONEY_MOVING_TYPES, Command, CommandType

logger = logging.getLogger(__name__)

_WHITESPACE = re.compile(r"\s+")


def _correct(text: str) -> str:
    """Rewrite known typos and shorthand before grammar matching."""
    tokens = text.split()
    if not tokens:
        return text

    if len(tokens) <= MAX_PHRASE_CORRECTION_TOKENS:
        phrase = " ".join(tokens).lower()
        if phrase in PHRASE_CORRECTIONS:
            return PHRASE_CORRECTIONS[phrase]

    replacement = CORRECTIONS.get(tokens[0].lower())
    if replacement is None:
        return text
    return " ".join([replacement, *tokens[1:]])


def _voice_phrase_mode(text: str) -> str | None:
    normalized = _WHITESPACE.sub(" ", text).strip().lower()
    for phrases, mode in VOICE_PHRASES:
        if normalized in phrases:
            return mode
    return None


def _extract_args(command_type: CommandType, match: re.Match[str]) -> dict[str, str]:
    args: dict[str, str] = {}
    for name, value in match.groupdict().items():
        if value is None:
            continue
        value = value.strip()
        if not value:
            continue
        if name in LOWERCASE_ARGS:
            value = value.lower()
        args[name] = value

    if command_type is CommandType.PRICE and "currency" in args:
        args["currency"] = args["currency"].upper()
    if "memo" in args:
        args["memo"] = args["memo"][:MAX_MEMO_LENGTH]
    return args


class CommandParser:
    """Parse chat text into commands.

    Order of evaluation:
    1. A bare six digit code is a verification code.
    2. Voice prefixes ("voice balance") and filler ("please", "say it") are stripped.
    3. The first token (or a short whole phrase) is corrected.
    4. Exact voice-setting phrases ("voice only") are checked.
    5. For voice input only, natural language rules are tried.
    6. The structured grammar is tried; the first matching entry wins.
    7. Otherwise the command is UNKNOWN with the original text preserved.
    """

    def parse(self, text: str, is_voice_input: bool = False) -> Command:
        """Parse text into a Command. Never raises.

        Args:
            text: Message text as received
            is_voice_input: The text is a transcript of a voice message

        Returns:
            Parsed Command (type UNKNOWN when nothing matched)
        """
        try:
            return self._parse(text, is_voice_input)
        except Exception as e:
            logger.error("Error parsing command: %s", e, exc_info=True)
            return Command(type=CommandType.UNKNOWN, raw_text=text)

    def _parse(self, text: str, is_voice_input: bool) -> Command:
        original = text.strip()
        working = original

        if VERIFICATION_CODE.match(working):
            return Command(type=CommandType.VERIFY, args={"otp": working}, raw_text=original)

        voice_requested = False
        is_voice_command = is_voice_input

        compound = COMPOUND_VOICE_PREFIX.match(working)
        if compound:
            rest = compound.group("rest")
            if _correct(rest).split()[0].lower() in COMMAND_KEYWORDS:
                working = rest
                voice_requested = True
                is_voice_command = True

        filler = FILLER_PREFIX.match(working)
        if filler:
            working = filler.group("rest")
            voice_requested = True

        working = _correct(working)

        mode = _voice_phrase_mode(working)
        if mode is not None:
            return Command(
                type=CommandType.VOICE,
                args={"mode": mode},
                raw_text=original,
                voice_requested=voice_requested,
                is_voice_command=is_voice_command,
            )

        if is_voice_input:
            natural = match_natural_language(working)
            if natural is not None:
                command_type, args = natural
                return self._finish(
                    command_type, args, original, voice_requested, is_voice_command, True
                )

        for command_type, pattern in GRAMMAR:
            match = pattern.match(working)
            if match:
                args = _extract_args(command_type, match)
                if command_type is CommandType.SEND:
                    logger.debug(
                        "SEND matched: amount=%s username=%s phone=%s recipient=%s",
                        args.get("amount"),
                        args.get("username"),
                        "set" if "phone" in args else None,
                        args.get("recipient"),
                    )
                return self._finish(
                    command_type, args, original, voice_requested, is_voice_command, is_voice_input
                )

        return Command(
            type=CommandType.UNKNOWN,
            raw_text=original,
            voice_requested=voice_requested,
            is_voice_command=is_voice_command,
        )

    @staticmethod
    def _finish(
        command_type: CommandType,
        args: dict[str, str],
        raw_text: str,
        voice_requested: bool,
        is_voice_command: bool,
        from_voice: bool,
    ) -> Command:
        stamp = from_voice and command_type in MONEY_MOVING_TYPES
        return Command(
            type=command_type,
            args=args,
            raw_text=raw_text,
            voice_requested=voice_requested,
            requires_confirmation=stamp,
            is_voice_command=is_voice_command or stamp,
        )
