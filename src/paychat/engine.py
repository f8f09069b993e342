"""Inbound message pipeline.

confirmation reply check -> parse -> rate limit -> session lookup -> execute
-> voice shaping. Every message yields a CommandResult; nothing raises to the
transport.
"""

import logging
import time
import uuid
from collections.abc import Callable
from dataclasses import dataclass

from .collaborators.interface import (
    AdminDirectory,
    PaymentService,
    SessionProvider,
    WalletService,
)
from .collaborators.stub_provider import (
    EnvAdminDirectory,
    StubPaymentService,
    StubSessionProvider,
    StubWalletService,
)
from .commands.confirmation import PaymentConfirmationService
from .commands.executor import CommandExecutor, ExecutionRequest, ExecutorEvent
from .commands.handlers import default_handlers
from .commands.parser import CommandParser
from .commands.registry import CommandRegistry
from .commands.result import CommandResult, ErrorCode
from .commands.types import Command, CommandType
from .config import Settings
from .crypto import load_cipher
from .dedup import RequestDeduplicator
from .logging_utils import clear_request_id, log_info, log_warning, set_request_id
from .metrics import MetricsCollector
from .rate_limit import GroupRateLimiter
from .redis_client import get_redis_client
from .store import KeyValueStore
from .tts import TTSProvider, get_tts_provider, spoken_text
from .voice_settings import VoiceSettings

logger = logging.getLogger(__name__)

# Rate limit category for each command type; anything else uses "default"
RATE_LIMIT_CATEGORIES = {
    CommandType.SEND: "payment",
    CommandType.REQUEST: "payment",
    CommandType.PRICE: "price",
    CommandType.LINK: "link",
    CommandType.VERIFY: "link",
    CommandType.HELP: "help",
}


def rate_limit_category(command: Command) -> str:
    return RATE_LIMIT_CATEGORIES.get(command.type, "default")


@dataclass
class InboundChatMessage:
    """A message delivered by the transport."""

    sender_id: str
    conversation_id: str
    text: str
    message_id: str | None = None
    group_id: str | None = None
    group_name: str | None = None
    is_voice: bool = False
    timestamp: float | None = None
    display_name: str | None = None
    locale: str = "en"
    instance_id: str | None = None


class ChatEngine:
    """Entry point the transport calls for every inbound message."""

    def __init__(
        self,
        parser: CommandParser,
        executor: CommandExecutor,
        confirmations: PaymentConfirmationService,
        rate_limiter: GroupRateLimiter,
        sessions: SessionProvider,
        voice_settings: VoiceSettings,
        tts: TTSProvider | None = None,
        metrics: MetricsCollector | None = None,
        store: KeyValueStore | None = None,
    ) -> None:
        self.parser = parser
        self.executor = executor
        self.confirmations = confirmations
        self.rate_limiter = rate_limiter
        self.sessions = sessions
        self.voice_settings = voice_settings
        self.tts = tts
        self.metrics = metrics
        self.store = store

    def handle_message(self, message: InboundChatMessage) -> CommandResult:
        message_id = message.message_id or str(uuid.uuid4())
        set_request_id(message_id)
        try:
            result, voice_requested = self._handle(message, message_id)
            return self._shape_voice(message, result, voice_requested)
        except Exception as e:
            logger.error("Unhandled error for message %s: %s", message_id, e, exc_info=True)
            return CommandResult.fail(
                ErrorCode.INTERNAL_ERROR,
                "❌ An error occurred processing your message. Please try again.",
            )
        finally:
            clear_request_id()

    def _handle(self, message: InboundChatMessage, message_id: str) -> tuple[CommandResult, bool]:
        """Return the result and whether the user asked for a spoken reply."""
        subject_id = message.sender_id

        reply = self._handle_confirmation_reply(message, message_id)
        if reply is not None:
            return reply, False

        command = self.parser.parse(message.text, is_voice_input=message.is_voice)
        log_info(
            logger,
            "Parsed message",
            command=command.type.value,
            sender=subject_id,
            voice=message.is_voice,
        )

        category = rate_limit_category(command)
        group = message.group_id or message.conversation_id
        admission = self.rate_limiter.check(group, subject_id, category)
        if not admission.allowed:
            log_warning(logger, "Rate limited", sender=subject_id, group=group, category=category)
            if self.metrics:
                self.metrics.record_rate_limited(category)
            wait = ""
            if admission.retry_after_seconds:
                wait = f" Try again in {admission.retry_after_seconds}s."
            result = CommandResult.fail(
                ErrorCode.RATE_LIMITED,
                f"⏳ {admission.reason}{wait}",
                details={"retry_after_seconds": admission.retry_after_seconds},
                retryable=True,
            )
            return result, command.voice_requested

        result = self.executor.execute(self._request(message, message_id, command))
        return result, command.voice_requested

    def _handle_confirmation_reply(
        self, message: InboundChatMessage, message_id: str
    ) -> CommandResult | None:
        subject_id = message.sender_id
        text = message.text
        is_yes = self.confirmations.is_confirmation(text)
        is_no = self.confirmations.is_cancellation(text)
        if not (is_yes or is_no):
            return None

        if is_no:
            if self.confirmations.cancel(subject_id) is None:
                return None
            self._record_confirmation("cancelled")
            return CommandResult.ok("❌ Payment cancelled.")

        pending = self.confirmations.consume(subject_id)
        if pending is None:
            # Nothing to confirm; "pay" and "send" still parse as commands
            return None

        self._record_confirmation("executed")
        log_info(
            logger,
            "Executing confirmed command",
            command=pending.command.type.value,
            sender=subject_id,
        )
        request = self._request(message, message_id, pending.command)
        request.is_confirmed = True
        return self.executor.execute(request)

    def _request(
        self, message: InboundChatMessage, message_id: str, command: Command
    ) -> ExecutionRequest:
        return ExecutionRequest(
            message_id=message_id,
            sender_id=message.sender_id,
            conversation_id=message.conversation_id,
            command=command,
            group_id=message.group_id,
            group_name=message.group_name,
            display_name=message.display_name,
            session=self.sessions.get_session(message.sender_id),
            is_voice=message.is_voice,
            locale=message.locale,
            instance_id=message.instance_id,
        )

    def _record_confirmation(self, outcome: str) -> None:
        if self.metrics:
            self.metrics.record_confirmation(outcome)

    def _shape_voice(
        self, message: InboundChatMessage, result: CommandResult, voice_requested: bool
    ) -> CommandResult:
        if self.tts is None or not result.text:
            return result
        speak, voice_only = self.voice_settings.should_speak(
            message.sender_id, message.is_voice, voice_requested
        )
        if not speak:
            return result
        try:
            audio, _ = self.tts.synthesize(spoken_text(result.text), locale=message.locale)
        except Exception as e:
            log_warning(logger, "Voice synthesis failed, replying with text", error=str(e))
            return result
        result.voice = audio
        result.voice_only = voice_only
        return result


def _metrics_listener(metrics: MetricsCollector):
    def on_post_execute(payload: dict) -> None:
        result = payload["result"]
        metrics.record_command(payload["handler"], result.outcome, result.execution_time_ms or 0.0)

    return on_post_execute


def build_engine(
    settings: Settings | None = None,
    *,
    store: KeyValueStore | None = None,
    sessions: SessionProvider | None = None,
    admins: AdminDirectory | None = None,
    wallet: WalletService | None = None,
    payments: PaymentService | None = None,
    tts: TTSProvider | None = None,
    metrics: MetricsCollector | None = None,
    clock: Callable[[], float] = time.time,
) -> ChatEngine:
    """Wire a ChatEngine from settings, defaulting collaborators to local stubs.

    ``clock`` is the wall clock used for confirmation expiry and rate-limit
    windows.
    """
    settings = settings or Settings.from_env()
    if store is None:
        redis_client = get_redis_client() if settings.redis_enabled else None
        store = KeyValueStore(redis_client=redis_client, cipher=load_cipher(settings.encryption_key))

    sessions = sessions or StubSessionProvider()
    admins = admins or EnvAdminDirectory()
    wallet = wallet or StubWalletService()
    payments = payments or StubPaymentService()

    confirmations = PaymentConfirmationService(store, settings.confirmation_ttl_seconds, clock)
    deduplicator = RequestDeduplicator(store)
    rate_limiter = GroupRateLimiter(store, settings.rate_limits, clock=clock)
    voice_settings = VoiceSettings(store)

    registry = CommandRegistry()
    registry.register_all(
        default_handlers(
            registry,
            sessions=sessions,
            wallet=wallet,
            payments=payments,
            confirmations=confirmations,
            deduplicator=deduplicator,
            voice_settings=voice_settings,
            rate_limiter=rate_limiter,
            metrics=metrics,
            balance_cache_ttl=settings.balance_cache_ttl_seconds,
            price_cache_ttl=settings.price_cache_ttl_seconds,
        )
    )

    executor = CommandExecutor(registry, admins)
    if metrics is not None:
        executor.add_listener(ExecutorEvent.POST_EXECUTE, _metrics_listener(metrics))

    return ChatEngine(
        parser=CommandParser(),
        executor=executor,
        confirmations=confirmations,
        rate_limiter=rate_limiter,
        sessions=sessions,
        voice_settings=voice_settings,
        tts=tts if tts is not None else get_tts_provider(),
        metrics=metrics,
        store=store,
    )
