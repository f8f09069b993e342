"""Request-scoped log context and redaction of chat payloads.

Log lines take the form ``message | request_id=... | key=value`` so they can
be grepped without a structured logging backend. Every field value is passed
through ``redact_secrets`` first, since chat traffic carries verification
codes, phone numbers and transport tokens.
"""

import logging
import re
import uuid
from contextvars import ContextVar
from typing import Any

_request_id: ContextVar[str | None] = ContextVar("paychat_request_id", default=None)

REDACTED = "***REDACTED***"


def mask_phone(match: re.Match[str]) -> str:
    return f"***{match.group(0)[-4:]}"


# Applied in order. Header values go first so the bearer rule does not see them
# twice; keys and phone numbers go before one-time codes so their digit runs are
# not mistaken for a code.
_REDACTIONS: tuple[tuple[re.Pattern[str], Any], ...] = (
    (re.compile(r"(authorization\s*[:=]\s*)(?:bearer\s+)?[^\s,;]+", re.IGNORECASE), rf"\1{REDACTED}"),
    (re.compile(r"(bearer\s+)[\w\-.~+/]+=*", re.IGNORECASE), rf"\1{REDACTED}"),
    (re.compile(r"\b[0-9a-fA-F]{64}\b"), REDACTED),
    (re.compile(r"\+?\d{10,15}\b"), mask_phone),
    (re.compile(r"(?<![\w.])\d{6}(?![\w.])"), "******"),
)


def redact_secrets(text: Any) -> str:
    """Return ``text`` as a string with tokens, keys, phones and codes masked."""
    if text is None:
        return ""
    text = str(text)
    for pattern, replacement in _REDACTIONS:
        text = pattern.sub(replacement, text)
    return text


def set_request_id(request_id: str | None = None) -> str:
    """Bind a request id to the current context, generating one if needed."""
    request_id = request_id or uuid.uuid4().hex[:16]
    _request_id.set(request_id)
    return request_id


def get_request_id() -> str | None:
    return _request_id.get()


def clear_request_id() -> None:
    _request_id.set(None)


def format_fields(message: str, **fields: Any) -> str:
    parts = [message]
    request_id = _request_id.get()
    if request_id:
        parts.append(f"request_id={request_id}")
    parts.extend(f"{key}={redact_secrets(value)}" for key, value in fields.items())
    return " | ".join(parts)


def log_debug(logger: logging.Logger, message: str, **fields: Any) -> None:
    if logger.isEnabledFor(logging.DEBUG):
        logger.debug(format_fields(message, **fields))


def log_info(logger: logging.Logger, message: str, **fields: Any) -> None:
    logger.info(format_fields(message, **fields))


def log_warning(logger: logging.Logger, message: str, **fields: Any) -> None:
    logger.warning(format_fields(message, **fields))


def log_error(logger: logging.Logger, message: str, exc_info: bool = False, **fields: Any) -> None:
    logger.error(format_fields(message, **fields), exc_info=exc_info)
