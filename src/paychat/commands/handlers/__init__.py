"""Concrete command handlers."""

from paychat.collaborators.interface import PaymentService, SessionProvider, WalletService
from paychat.dedup import RequestDeduplicator
from paychat.metrics import MetricsCollector
from paychat.rate_limit import GroupRateLimiter
from paychat.voice_settings import VoiceSettings

from ..base import BaseCommandHandler
from ..confirmation import PaymentConfirmationService
from ..registry import CommandRegistry
from .account import LinkHandler, UnlinkHandler, UsernameHandler, VerifyHandler
from .admin import AdminHandler
from .balance import BalanceHandler, BalanceLookup, RefreshHandler
from .help import HelpHandler
from .payments import RequestHandler, SendHandler
from .voice import VoiceHandler
from .wallet import HistoryHandler, PriceHandler, ReceiveHandler

__all__ = [
    "AdminHandler",
    "BalanceHandler",
    "BalanceLookup",
    "HelpHandler",
    "HistoryHandler",
    "LinkHandler",
    "PriceHandler",
    "ReceiveHandler",
    "RefreshHandler",
    "RequestHandler",
    "SendHandler",
    "UnlinkHandler",
    "UsernameHandler",
    "VerifyHandler",
    "VoiceHandler",
    "default_handlers",
]


def default_handlers(
    registry: CommandRegistry,
    *,
    sessions: SessionProvider,
    wallet: WalletService,
    payments: PaymentService,
    confirmations: PaymentConfirmationService,
    deduplicator: RequestDeduplicator,
    voice_settings: VoiceSettings,
    rate_limiter: GroupRateLimiter,
    metrics: MetricsCollector | None = None,
    balance_cache_ttl: float = 30.0,
    price_cache_ttl: float = 60.0,
) -> list[BaseCommandHandler]:
    """The standard handler set, in registration order."""
    balances = BalanceLookup(wallet, deduplicator, balance_cache_ttl)
    return [
        HelpHandler(registry),
        BalanceHandler(balances),
        SendHandler(payments, confirmations, balances),
        RequestHandler(payments, confirmations),
        ReceiveHandler(wallet),
        PriceHandler(wallet, deduplicator, price_cache_ttl),
        HistoryHandler(wallet),
        LinkHandler(sessions),
        VerifyHandler(sessions),
        UnlinkHandler(sessions),
        VoiceHandler(voice_settings),
        AdminHandler(rate_limiter, metrics),
        RefreshHandler(balances),
        UsernameHandler(),
    ]
