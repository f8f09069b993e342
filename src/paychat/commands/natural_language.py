"""Colloquial phrasing rules for voice input.

Rules are tried in order and the first one that matches decides the command.
Each rule is a name, the command type it produces and a matcher that returns
the extracted arguments (or None when the rule does not apply).
"""

import re
from collections.abc import Callable
from types import MappingProxyType
from typing import NamedTuple

from .patterns import MAX_MEMO_LENGTH
from .types import CommandType

WORD_NUMBERS = MappingProxyType(
    {
        "zero": 0,
        "one": 1,
        "two": 2,
        "three": 3,
        "four": 4,
        "five": 5,
        "six": 6,
        "seven": 7,
        "eight": 8,
        "nine": 9,
        "ten": 10,
        "eleven": 11,
        "twelve": 12,
        "thirteen": 13,
        "fourteen": 14,
        "fifteen": 15,
        "sixteen": 16,
        "seventeen": 17,
        "eighteen": 18,
        "nineteen": 19,
        "twenty": 20,
        "thirty": 30,
        "forty": 40,
        "fifty": 50,
        "sixty": 60,
        "seventy": 70,
        "eighty": 80,
        "ninety": 90,
    }
)

_NUMERIC = re.compile(r"^\d+(?:\.\d+)?$")


def words_to_number(text: str) -> str | None:
    """Convert a spoken amount to digits.

    Handles plain digits, single words ("five"), hyphenated or spaced
    compounds ("twenty-five", "one hundred and five") and a leading
    "a"/"an" before a scale word ("a hundred").

    Args:
        text: Amount as transcribed

    Returns:
        The amount as a digit string, or None if it is not a number
    """
    cleaned = text.strip().lower()
    if _NUMERIC.match(cleaned):
        return cleaned

    tokens = [t for t in re.split(r"[\s-]+", cleaned) if t and t != "and"]
    if not tokens:
        return None

    total = 0
    current = 0
    for i, token in enumerate(tokens):
        if token in ("a", "an") and i == 0 and len(tokens) > 1:
            current = 1
        elif token in WORD_NUMBERS:
            current += WORD_NUMBERS[token]
        elif token == "hundred":
            current = (current or 1) * 100
        elif token == "thousand":
            total += (current or 1) * 1000
            current = 0
        else:
            return None
    return str(total + current)


Matcher = Callable[[str], dict[str, str] | None]


class NaturalLanguageRule(NamedTuple):
    name: str
    command_type: CommandType
    match: Matcher


def _contains(*phrases: str) -> Matcher:
    def matcher(text: str) -> dict[str, str] | None:
        lowered = text.lower()
        return {} if any(p in lowered for p in phrases) else None

    return matcher


def _exact(*phrases: str) -> Matcher:
    options = frozenset(phrases)

    def matcher(text: str) -> dict[str, str] | None:
        return {} if text.lower().strip() in options else None

    return matcher


def _templated(pattern: str, party_key: str) -> Matcher:
    """Match a template with named ``amount`` and ``party`` groups.

    An optional ``memo`` group is passed through, truncated like typed memos.
    """
    compiled = re.compile(pattern, re.IGNORECASE)

    def matcher(text: str) -> dict[str, str] | None:
        m = compiled.search(text)
        if not m:
            return None
        amount = words_to_number(m.group("amount"))
        if amount is None:
            return None
        args = {"amount": amount, party_key: m.group("party")}
        memo = (m.groupdict().get("memo") or "").strip()
        if memo:
            args["memo"] = memo[:MAX_MEMO_LENGTH]
        return args

    return matcher


def _receive() -> Matcher:
    phrases = _contains(
        "receive money", "receive payment", "get paid", "request money", "create invoice"
    )
    amount_pattern = re.compile(r"(\d+(?:\.\d+)?)")

    def matcher(text: str) -> dict[str, str] | None:
        if phrases(text) is None:
            return None
        m = amount_pattern.search(text)
        return {"amount": m.group(1)} if m else {}

    return matcher


# Digits or spoken number words, e.g. "10", "5.50", "twenty five", "one-hundred"
_SPOKEN_AMOUNT = r"(?P<amount>\d+(?:\.\d+)?|[a-z]+(?:[\s-]+[a-z]+)*?)"
_PARTY = r"@?(?P<party>\w+)"
# Trailing "for lunch" or "rent" after the party becomes the memo
_MEMO = r"(?:\s+(?:for\s+)?(?P<memo>.+))?"

NATURAL_LANGUAGE_RULES: tuple[NaturalLanguageRule, ...] = (
    NaturalLanguageRule(
        "balance",
        CommandType.BALANCE,
        _contains(
            "check my balance",
            "what is my balance",
            "what's my balance",
            "show me my balance",
            "how much do i have",
            "how much money",
            "my wallet balance",
        ),
    ),
    NaturalLanguageRule(
        "price",
        CommandType.PRICE,
        _contains(
            "bitcoin price",
            "btc price",
            "price of bitcoin",
            "how much is bitcoin",
            "what is bitcoin worth",
            "current bitcoin price",
            "check the price",
        ),
    ),
    NaturalLanguageRule(
        "help",
        CommandType.HELP,
        _exact(
            "help please",
            "please help",
            "help me",
            "i need help",
            "can you help me",
            "what can you do",
            "show me what you can do",
        ),
    ),
    NaturalLanguageRule(
        "send",
        CommandType.SEND,
        _templated(
            r"(?:please\s+)?send\s+"
            + _SPOKEN_AMOUNT
            + r"\s+(?:dollars?\s+)?to\s+"
            + _PARTY
            + _MEMO,
            "recipient",
        ),
    ),
    NaturalLanguageRule(
        "pay",
        CommandType.SEND,
        _templated(
            r"(?:please\s+)?pay\s+"
            + _SPOKEN_AMOUNT
            + r"\s+(?:dollars?\s+)?to\s+"
            + _PARTY
            + _MEMO,
            "recipient",
        ),
    ),
    NaturalLanguageRule(
        "transfer",
        CommandType.SEND,
        _templated(
            r"transfer\s+" + _SPOKEN_AMOUNT + r"\s+(?:dollars?\s+)?to\s+" + _PARTY + _MEMO,
            "recipient",
        ),
    ),
    NaturalLanguageRule(
        "give_to",
        CommandType.SEND,
        _templated(
            r"give\s+" + _SPOKEN_AMOUNT + r"\s+(?:dollars?\s+)?to\s+" + _PARTY + _MEMO,
            "recipient",
        ),
    ),
    NaturalLanguageRule(
        "give_party",
        CommandType.SEND,
        _templated(r"give\s+" + _PARTY + r"\s+(?P<amount>\d+(?:\.\d+)?)", "recipient"),
    ),
    NaturalLanguageRule(
        "request",
        CommandType.REQUEST,
        _templated(
            r"(?:please\s+|can you\s+)?request\s+"
            + _SPOKEN_AMOUNT
            + r"\s+(?:dollars?\s+)?from\s+"
            + _PARTY
            + _MEMO,
            "username",
        ),
    ),
    NaturalLanguageRule(
        "ask_for",
        CommandType.REQUEST,
        _templated(
            r"(?:please\s+)?ask\s+" + _PARTY + r"\s+for\s+" + _SPOKEN_AMOUNT + r"(?:\s+dollars?)?$",
            "username",
        ),
    ),
    NaturalLanguageRule(
        "link",
        CommandType.LINK,
        _contains("link my account", "connect my account", "link me up", "connect me up"),
    ),
    NaturalLanguageRule(
        "link_exact",
        CommandType.LINK,
        _exact("link me", "connect me"),
    ),
    NaturalLanguageRule(
        "history",
        CommandType.HISTORY,
        _contains(
            "show my history",
            "transaction history",
            "show my transactions",
            "recent transactions",
            "payment history",
        ),
    ),
    NaturalLanguageRule("receive", CommandType.RECEIVE, _receive()),
)


def match_natural_language(text: str) -> tuple[CommandType, dict[str, str]] | None:
    """Run the rules in order and return the first match."""
    for rule in NATURAL_LANGUAGE_RULES:
        args = rule.match(text)
        if args is not None:
            return rule.command_type, args
    return None
