"""Pending confirmation state for money-moving commands.

At most one pending confirmation exists per subject. Storing a new one
replaces the old. Records expire lazily on read; the store-level TTL is
only a backstop.
"""

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from paychat.store import KeyValueStore

from .types import Command, CommandType

logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 300

CONFIRM_WORDS = frozenset({"yes", "y", "ok", "okay", "confirm", "pay", "send"})
CANCEL_WORDS = frozenset({"no", "n", "cancel", "stop", "abort"})


def _normalize_reply(text: str) -> str:
    return text.strip().lower().rstrip("!.")


@dataclass(frozen=True)
class PendingConfirmation:
    """A mutating command waiting for a yes/no reply."""

    command: Command
    subject_id: str
    secondary_id: str | None
    session_id: str | None
    created_at: float
    expires_at: float

    def is_expired(self, now: float) -> bool:
        return now > self.expires_at

    def to_dict(self) -> dict[str, Any]:
        return {
            "command": self.command.to_dict(),
            "subject_id": self.subject_id,
            "secondary_id": self.secondary_id,
            "session_id": self.session_id,
            "created_at": self.created_at,
            "expires_at": self.expires_at,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "PendingConfirmation":
        return cls(
            command=Command.from_dict(data["command"]),
            subject_id=data["subject_id"],
            secondary_id=data.get("secondary_id"),
            session_id=data.get("session_id"),
            created_at=float(data["created_at"]),
            expires_at=float(data["expires_at"]),
        )


class PaymentConfirmationService:
    """Stores and consumes pending confirmations in the encrypted store."""

    def __init__(
        self,
        store: KeyValueStore,
        default_ttl_seconds: float = DEFAULT_TTL_SECONDS,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """Initialize the service.

        Args:
            store: Shared store; records are written encrypted
            default_ttl_seconds: How long a confirmation stays valid (default: 300s)
            clock: Wall clock in seconds
        """
        self._kv = store
        self.default_ttl_seconds = default_ttl_seconds
        self._clock = clock

    @staticmethod
    def _key(subject_id: str) -> str:
        return f"confirmation:{subject_id}"

    def store(
        self,
        subject_id: str,
        command: Command,
        ttl_seconds: float | None = None,
        secondary_id: str | None = None,
        session_id: str | None = None,
    ) -> PendingConfirmation:
        """Store a pending confirmation, replacing any existing one for the subject."""
        ttl = ttl_seconds if ttl_seconds is not None else self.default_ttl_seconds
        now = self._clock()
        pending = PendingConfirmation(
            command=command,
            subject_id=subject_id,
            secondary_id=secondary_id,
            session_id=session_id,
            created_at=now,
            expires_at=now + ttl,
        )
        self._kv.set_encrypted(self._key(subject_id), pending.to_dict(), ttl)
        logger.info("Stored pending %s confirmation for %s", command.type.value, subject_id)
        return pending

    def get(self, subject_id: str) -> PendingConfirmation | None:
        """Return the pending confirmation, deleting it if it has expired."""
        key = self._key(subject_id)
        data = self._kv.get_encrypted(key)
        if data is None:
            return None

        try:
            pending = PendingConfirmation.from_dict(data)
        except (KeyError, TypeError, ValueError) as e:
            logger.error("Discarding malformed pending confirmation for %s: %s", subject_id, e)
            self._kv.delete(key)
            return None

        if pending.is_expired(self._clock()):
            self._kv.delete(key)
            return None
        return pending

    def clear(self, subject_id: str) -> bool:
        """Delete any pending confirmation. Returns True if one existed."""
        return self._kv.delete(self._key(subject_id)) > 0

    def consume(self, subject_id: str) -> PendingConfirmation | None:
        """Take the pending confirmation for execution.

        The record is returned only by the caller whose delete removed it, so a
        duplicate reply arriving concurrently finds nothing to confirm.
        """
        pending = self.get(subject_id)
        if pending is None:
            return None
        if not self.clear(subject_id):
            logger.info("Pending confirmation for %s already consumed", subject_id)
            return None
        return pending

    def cancel(self, subject_id: str) -> PendingConfirmation | None:
        """Drop a live pending confirmation and return it.

        An expired record is cleaned up by ``get`` and reported as nothing to
        cancel.
        """
        pending = self.get(subject_id)
        if pending is None:
            return None
        if not self.clear(subject_id):
            return None
        return pending

    def has_pending(self, subject_id: str) -> bool:
        return self.get(subject_id) is not None

    @staticmethod
    def is_confirmation(text: str) -> bool:
        return _normalize_reply(text) in CONFIRM_WORDS

    @staticmethod
    def is_cancellation(text: str) -> bool:
        return _normalize_reply(text) in CANCEL_WORDS

    @staticmethod
    def format_details(command: Command) -> str:
        """Human-readable summary of the proposed action."""
        args = command.args
        if command.type is CommandType.SEND:
            lines = []
            if args.get("username"):
                lines.append(f"📤 *To*: @{args['username']}")
            elif args.get("phone"):
                lines.append(f"📤 *To*: {args['phone']}")
            elif args.get("recipient"):
                lines.append(f"📤 *To*: {args['recipient']}")
            lines.append(f"💵 *Amount*: ${args.get('amount', '?')} USD")
            if args.get("memo"):
                lines.append(f"📝 *Memo*: \"{args['memo']}\"")
            return "\n".join(lines)

        if command.type is CommandType.REQUEST:
            source = args.get("username") or args.get("phone") or "unknown"
            if args.get("username"):
                source = f"@{source}"
            details = f"📥 Request ${args.get('amount', '?')} USD from {source}"
            if args.get("memo"):
                details += f"\n📝 *Memo*: \"{args['memo']}\""
            return details

        return "Unknown payment"
