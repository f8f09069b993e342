"""Interfaces to services outside the command engine, with local stubs."""

from .interface import (
    AdminDirectory,
    Balance,
    CollaboratorError,
    ExternalServiceError,
    Invoice,
    PaymentOrder,
    PaymentOutcome,
    PaymentService,
    PriceQuote,
    SessionProvider,
    Transaction,
    UserSession,
    WalletService,
)
from .stub_provider import (
    EnvAdminDirectory,
    StubPaymentService,
    StubSessionProvider,
    StubWalletService,
)

__all__ = [
    "AdminDirectory",
    "Balance",
    "CollaboratorError",
    "EnvAdminDirectory",
    "ExternalServiceError",
    "Invoice",
    "PaymentOrder",
    "PaymentOutcome",
    "PaymentService",
    "PriceQuote",
    "SessionProvider",
    "StubPaymentService",
    "StubSessionProvider",
    "StubWalletService",
    "Transaction",
    "UserSession",
    "WalletService",
]
