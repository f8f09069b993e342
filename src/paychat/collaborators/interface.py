"""Interfaces to the session, admin, wallet and payment services.

The command engine only talks to these abstractions. Concrete
implementations live with the transport or backend integration.
"""

from abc import ABC, abstractmethod
from dataclasses import asdict, dataclass, field
from decimal import Decimal
from typing import Any


class CollaboratorError(Exception):
    """Structured failure reported by a collaborator.

    Attributes:
        code: Error code name understood by the command layer
              (e.g. "USER_NOT_FOUND", "TRANSACTION_FAILED")
        retryable: Whether retrying later may succeed
    """

    def __init__(self, message: str, code: str = "TRANSACTION_FAILED", retryable: bool = False):
        super().__init__(message)
        self.code = code
        self.retryable = retryable


class ExternalServiceError(CollaboratorError):
    """The upstream service could not be reached or returned an unexpected response."""

    def __init__(self, message: str):
        super().__init__(message, code="EXTERNAL_API_ERROR", retryable=True)


@dataclass(frozen=True)
class UserSession:
    """An authenticated chat user linked to a wallet account."""

    session_id: str
    subject_id: str
    account_id: str | None
    is_verified: bool = True
    auth_token: str | None = None
    username: str | None = None
    locale: str = "en"
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class Balance:
    account_id: str
    amount: Decimal
    currency: str = "USD"

    def to_dict(self) -> dict[str, str]:
        return {"account_id": self.account_id, "amount": str(self.amount), "currency": self.currency}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Balance":
        return cls(
            account_id=data["account_id"],
            amount=Decimal(data["amount"]),
            currency=data.get("currency", "USD"),
        )


@dataclass(frozen=True)
class PriceQuote:
    currency: str
    price: Decimal
    change_24h: Decimal | None = None

    def to_dict(self) -> dict[str, str | None]:
        return {
            "currency": self.currency,
            "price": str(self.price),
            "change_24h": None if self.change_24h is None else str(self.change_24h),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "PriceQuote":
        change = data.get("change_24h")
        return cls(
            currency=data["currency"],
            price=Decimal(data["price"]),
            change_24h=None if change is None else Decimal(change),
        )


@dataclass(frozen=True)
class Transaction:
    transaction_id: str
    direction: str  # "sent" or "received"
    amount: Decimal
    counterparty: str | None = None
    memo: str | None = None
    created_at: str | None = None


@dataclass(frozen=True)
class Invoice:
    payment_request: str
    amount: Decimal | None = None
    memo: str | None = None
    expires_at: str | None = None


@dataclass(frozen=True)
class PaymentOrder:
    """Validated arguments for a payment or a payment request."""

    account_id: str
    amount: Decimal
    username: str | None = None
    phone: str | None = None
    recipient: str | None = None
    memo: str | None = None

    @property
    def counterparty(self) -> str:
        if self.username:
            return f"@{self.username}"
        return self.phone or self.recipient or "unknown"

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["amount"] = str(self.amount)
        return data


@dataclass(frozen=True)
class PaymentOutcome:
    success: bool
    transaction_id: str | None = None
    message: str | None = None
    error_code: str | None = None


class SessionProvider(ABC):
    """Resolves chat identities to authenticated sessions and links accounts."""

    @abstractmethod
    def get_session(self, subject_id: str) -> UserSession | None:
        """Return the session for a chat user, or None when anonymous."""
        pass

    @abstractmethod
    def start_link(self, subject_id: str, username: str | None = None) -> str:
        """Begin account linking and return instructions for the user."""
        pass

    @abstractmethod
    def verify_code(self, subject_id: str, code: str) -> UserSession | None:
        """Complete linking with a verification code.

        Returns:
            The new session, or None if the code is wrong or expired
        """
        pass

    @abstractmethod
    def unlink(self, subject_id: str) -> bool:
        """Remove the link between a chat user and their account."""
        pass


class AdminDirectory(ABC):
    @abstractmethod
    def is_admin(self, subject_id: str) -> bool:
        pass


class WalletService(ABC):
    """Read-mostly account operations."""

    @abstractmethod
    def get_balance(self, session: UserSession) -> Balance:
        pass

    @abstractmethod
    def get_price(self, currency: str) -> PriceQuote:
        pass

    @abstractmethod
    def get_transactions(self, session: UserSession, limit: int = 5) -> list[Transaction]:
        pass

    @abstractmethod
    def create_invoice(
        self, session: UserSession, amount: Decimal | None = None, memo: str | None = None
    ) -> Invoice:
        pass


class PaymentService(ABC):
    """Money-moving operations. Only invoked after explicit confirmation."""

    @abstractmethod
    def send_payment(self, session: UserSession, order: PaymentOrder) -> PaymentOutcome:
        pass

    @abstractmethod
    def request_payment(self, session: UserSession, order: PaymentOrder) -> PaymentOutcome:
        pass
