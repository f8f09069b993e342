"""Static lookup tables used by the command parser.

All tables are immutable and built once at import time.
"""

import re
from types import MappingProxyType

from .types import CommandType

# First-token corrections for common typos and shorthand
CORRECTIONS = MappingProxyType(
    {
        "sent": "send",
        "snd": "send",
        "sned": "send",
        "sedn": "send",
        "recv": "receive",
        "recieve": "receive",
        "receve": "receive",
        "bal": "balance",
        "balanse": "balance",
        "ballance": "balance",
        "blance": "balance",
        "hist": "history",
        "histroy": "history",
        "hsitory": "history",
        "pric": "price",
        "prices": "price",
        "prcie": "price",
        "hlp": "help",
        "halp": "help",
        "lnk": "link",
        "linq": "link",
        "verfy": "verify",
        "verifiy": "verify",
        "reqest": "request",
        "requset": "request",
        "rquest": "request",
    }
)

# Whole-phrase corrections, consulted for inputs of at most three tokens
PHRASE_CORRECTIONS = MappingProxyType(
    {
        "check balance": "balance",
        "my balance": "balance",
        "show balance": "balance",
        "btc price": "price",
        "bitcoin price": "price",
        "my history": "history",
        "show history": "history",
        "link account": "link",
        "unlink account": "unlink",
    }
)

MAX_PHRASE_CORRECTION_TOKENS = 3

# Words that may follow a "voice"/"audio"/"speak" prefix in a compound command
COMMAND_KEYWORDS = frozenset(
    {
        "help",
        "balance",
        "bal",
        "price",
        "rate",
        "btc",
        "history",
        "transactions",
        "txs",
        "send",
        "pay",
        "receive",
        "invoice",
        "request",
        "link",
        "verify",
        "unlink",
        "refresh",
        "username",
    }
)

COMPOUND_VOICE_PREFIX = re.compile(r"^(?:voice|audio|speak)\s+(?P<rest>\S.*)$", re.IGNORECASE)

FILLER_PREFIX = re.compile(r"^(?:please|say it|tell me)\s+(?P<rest>\S.*)$", re.IGNORECASE)

VERIFICATION_CODE = re.compile(r"^\d{6}$")

# Exact voice-setting phrases, checked in order before the grammar.
# The first row containing the normalized text decides the mode.
VOICE_PHRASES: tuple[tuple[frozenset[str], str], ...] = (
    (
        frozenset(
            {
                "voice only",
                "only voice",
                "voice mode only",
                "only voice mode",
                "voice replies only",
                "voice only mode",
                "audio only",
                "only audio",
            }
        ),
        "only",
    ),
    (
        frozenset(
            {
                "voice on",
                "voice enable",
                "enable voice",
                "turn on voice",
                "turn voice on",
                "voice mode on",
            }
        ),
        "on",
    ),
    (
        frozenset(
            {
                "voice off",
                "voice disable",
                "disable voice",
                "turn off voice",
                "turn voice off",
                "voice mode off",
                "text only",
            }
        ),
        "off",
    ),
    (frozenset({"voice", "voice status", "voice mode"}), "status"),
)

_AMOUNT = r"\$?(?P<amount>\d*\.?\d+)"

# Structured grammar: the first matching entry wins
GRAMMAR: tuple[tuple[CommandType, re.Pattern[str]], ...] = (
    (
        CommandType.HELP,
        re.compile(r"^(?:help|h|\?|commands)(?:\s+(?P<category>\w+))?$", re.IGNORECASE),
    ),
    (CommandType.BALANCE, re.compile(r"^(?:balance(?:\s+.*)?|bal|b)$", re.IGNORECASE)),
    (CommandType.REFRESH, re.compile(r"^(?:refresh|reload)$", re.IGNORECASE)),
    (CommandType.USERNAME, re.compile(r"^(?:username|whoami)$", re.IGNORECASE)),
    (
        CommandType.LINK,
        re.compile(r"^(?:link|login|connect)(?:\s+@?(?P<username>\w+))?$", re.IGNORECASE),
    ),
    (
        CommandType.UNLINK,
        re.compile(r"^(?:unlink|logout)(?:\s+(?P<confirm>confirm))?$", re.IGNORECASE),
    ),
    (CommandType.VERIFY, re.compile(r"^(?:verify|v)\s+(?P<otp>\d{6})$", re.IGNORECASE)),
    (
        CommandType.PRICE,
        re.compile(r"^(?:price|rate|btc)(?:\s+(?P<currency>[a-z]{3}))?$", re.IGNORECASE),
    ),
    (
        CommandType.SEND,
        re.compile(
            r"^(?:send|pay)\s+" + _AMOUNT + r"\s+to\s+"
            r"(?:@?(?P<username>[A-Za-z_]\w*)|(?P<phone>\+?\d{10,})|(?P<recipient>\S+))"
            r"(?:\s+(?P<memo>.+))?$",
            re.IGNORECASE,
        ),
    ),
    (
        CommandType.RECEIVE,
        re.compile(
            r"^(?:receive|invoice)(?:\s+" + _AMOUNT + r")?(?:\s+(?P<memo>.+))?$",
            re.IGNORECASE,
        ),
    ),
    (CommandType.HISTORY, re.compile(r"^(?:history|transactions|txs)$", re.IGNORECASE)),
    (
        CommandType.REQUEST,
        re.compile(
            r"^(?:request|req)\s+" + _AMOUNT + r"\s+from\s+"
            r"(?:@?(?P<username>[A-Za-z_]\w*)|(?P<phone>\+?\d{10,}))"
            r"(?:\s+(?P<memo>.+))?$",
            re.IGNORECASE,
        ),
    ),
    (CommandType.VOICE, re.compile(r"^voice(?:\s+mode)?(?:\s+(?P<mode>\w+))?$", re.IGNORECASE)),
    (
        CommandType.ADMIN,
        re.compile(r"^admin(?:\s+(?P<action>\w+))?(?:\s+(?P<target>.+))?$", re.IGNORECASE),
    ),
)

# Arguments normalized to lower case after extraction
LOWERCASE_ARGS = frozenset({"category", "confirm", "mode", "action"})

MAX_MEMO_LENGTH = 1000
