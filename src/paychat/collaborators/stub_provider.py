"""Deterministic in-memory collaborators for local development and tests."""

import logging
import os
import secrets
import threading
from decimal import Decimal

from .interface import (
    AdminDirectory,
    Balance,
    CollaboratorError,
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

logger = logging.getLogger(__name__)

STUB_VERIFICATION_CODE = "123456"


class StubSessionProvider(SessionProvider):
    """Sessions held in memory; every link is verified with a fixed code."""

    def __init__(self, sessions: dict[str, UserSession] | None = None) -> None:
        self._sessions: dict[str, UserSession] = dict(sessions or {})
        self._pending_links: dict[str, str | None] = {}
        self._lock = threading.Lock()

    def add_session(self, session: UserSession) -> None:
        with self._lock:
            self._sessions[session.subject_id] = session

    def get_session(self, subject_id: str) -> UserSession | None:
        with self._lock:
            return self._sessions.get(subject_id)

    def start_link(self, subject_id: str, username: str | None = None) -> str:
        with self._lock:
            self._pending_links[subject_id] = username
        return "We sent you a 6-digit verification code. Reply with the code to finish linking."

    def verify_code(self, subject_id: str, code: str) -> UserSession | None:
        with self._lock:
            if subject_id not in self._pending_links or code != STUB_VERIFICATION_CODE:
                return None
            username = self._pending_links.pop(subject_id)
            session = UserSession(
                session_id=secrets.token_urlsafe(16),
                subject_id=subject_id,
                account_id=f"acct_{subject_id}",
                username=username,
            )
            self._sessions[subject_id] = session
            return session

    def unlink(self, subject_id: str) -> bool:
        with self._lock:
            return self._sessions.pop(subject_id, None) is not None


class EnvAdminDirectory(AdminDirectory):
    """Admins listed in PAYCHAT_ADMIN_IDS (comma-separated)."""

    def __init__(self, admin_ids: set[str] | None = None) -> None:
        if admin_ids is None:
            raw = os.getenv("PAYCHAT_ADMIN_IDS", "")
            admin_ids = {a.strip() for a in raw.split(",") if a.strip()}
        self.admin_ids = admin_ids

    def is_admin(self, subject_id: str) -> bool:
        return subject_id in self.admin_ids


class StubWalletService(WalletService):
    """Fixed balances and prices; counts calls so tests can assert on them."""

    def __init__(
        self,
        balances: dict[str, Decimal] | None = None,
        prices: dict[str, Decimal] | None = None,
        default_balance: Decimal = Decimal("100.00"),
    ) -> None:
        self.balances = dict(balances or {})
        self.prices = dict(prices or {"USD": Decimal("65000.00"), "EUR": Decimal("60000.00")})
        self.default_balance = default_balance
        self.transactions: dict[str, list[Transaction]] = {}
        self.calls: dict[str, int] = {}
        self._lock = threading.Lock()

    def _count(self, name: str) -> None:
        with self._lock:
            self.calls[name] = self.calls.get(name, 0) + 1

    def get_balance(self, session: UserSession) -> Balance:
        self._count("get_balance")
        account_id = session.account_id or ""
        amount = self.balances.get(account_id, self.default_balance)
        return Balance(account_id=account_id, amount=amount)

    def get_price(self, currency: str) -> PriceQuote:
        self._count("get_price")
        if currency not in self.prices:
            raise CollaboratorError(f"Unsupported currency: {currency}", code="INVALID_ARGUMENTS")
        return PriceQuote(currency=currency, price=self.prices[currency])

    def get_transactions(self, session: UserSession, limit: int = 5) -> list[Transaction]:
        self._count("get_transactions")
        return list(self.transactions.get(session.account_id or "", []))[:limit]

    def create_invoice(
        self, session: UserSession, amount: Decimal | None = None, memo: str | None = None
    ) -> Invoice:
        self._count("create_invoice")
        return Invoice(payment_request=f"lnstub{secrets.token_hex(16)}", amount=amount, memo=memo)


class StubPaymentService(PaymentService):
    """Records every order; unknown usernames fail with USER_NOT_FOUND."""

    def __init__(self, known_usernames: set[str] | None = None) -> None:
        self.known_usernames = known_usernames
        self.sent: list[PaymentOrder] = []
        self.requested: list[PaymentOrder] = []
        self._lock = threading.Lock()

    def _check_recipient(self, order: PaymentOrder) -> PaymentOutcome | None:
        if (
            self.known_usernames is not None
            and order.username
            and order.username.lower() not in self.known_usernames
        ):
            return PaymentOutcome(
                success=False,
                message=f"User @{order.username} not found",
                error_code="USER_NOT_FOUND",
            )
        return None

    def send_payment(self, session: UserSession, order: PaymentOrder) -> PaymentOutcome:
        failure = self._check_recipient(order)
        if failure:
            return failure
        with self._lock:
            self.sent.append(order)
        logger.info("Stub payment sent: %s to %s", order.amount, order.counterparty)
        return PaymentOutcome(success=True, transaction_id=f"tx_{secrets.token_hex(8)}")

    def request_payment(self, session: UserSession, order: PaymentOrder) -> PaymentOutcome:
        failure = self._check_recipient(order)
        if failure:
            return failure
        with self._lock:
            self.requested.append(order)
        return PaymentOutcome(success=True, transaction_id=f"req_{secrets.token_hex(8)}")
