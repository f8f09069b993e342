"""Balance lookup and refresh."""

import logging

from paychat.collaborators.interface import Balance, CollaboratorError, UserSession, WalletService
from paychat.dedup import RequestDeduplicator

from ..base import (
    BaseCommandHandler,
    CommandCategory,
    HandlerDescriptor,
    failure_from_collaborator,
    format_amount,
)
from ..context import CommandContext
from ..result import CommandResult
from ..types import CommandType

logger = logging.getLogger(__name__)


class BalanceLookup:
    """Balance reads coalesced per account through the deduplicator."""

    def __init__(
        self, wallet: WalletService, deduplicator: RequestDeduplicator, ttl_seconds: float = 30.0
    ) -> None:
        self.wallet = wallet
        self.deduplicator = deduplicator
        self.ttl_seconds = ttl_seconds

    @staticmethod
    def fingerprint(account_id: str) -> str:
        return f"balance:{account_id}"

    def get(self, session: UserSession) -> Balance:
        data = self.deduplicator.dedupe(
            self.fingerprint(session.account_id or ""),
            lambda: self.wallet.get_balance(session).to_dict(),
            ttl_seconds=self.ttl_seconds,
        )
        return Balance.from_dict(data)

    def invalidate(self, account_id: str) -> None:
        self.deduplicator.clear(self.fingerprint(account_id))


class BalanceHandler(BaseCommandHandler):
    descriptor = HandlerDescriptor(
        command="balance",
        command_type=CommandType.BALANCE,
        description="Check your wallet balance",
        category=CommandCategory.ACCOUNT,
        aliases=("bal", "b"),
        usage="balance",
        requires_auth=True,
        requires_session=True,
    )

    def __init__(self, balances: BalanceLookup) -> None:
        self.balances = balances

    def handle(self, context: CommandContext) -> CommandResult:
        try:
            balance = self.balances.get(context.session)
        except CollaboratorError as e:
            logger.warning("Balance lookup failed for %s: %s", context.account_id, e)
            return failure_from_collaborator(e)
        return CommandResult.ok(f"💰 *Balance*: {format_amount(balance.amount, balance.currency)}")


class RefreshHandler(BaseCommandHandler):
    """Drop the cached balance and read it again from the wallet."""

    descriptor = HandlerDescriptor(
        command="refresh",
        command_type=CommandType.REFRESH,
        description="Refresh your balance from the wallet",
        category=CommandCategory.ACCOUNT,
        aliases=("reload",),
        usage="refresh",
        requires_auth=True,
        requires_session=True,
    )

    def __init__(self, balances: BalanceLookup) -> None:
        self.balances = balances

    def handle(self, context: CommandContext) -> CommandResult:
        self.balances.invalidate(context.account_id or "")
        try:
            balance = self.balances.get(context.session)
        except CollaboratorError as e:
            logger.warning("Balance refresh failed for %s: %s", context.account_id, e)
            return failure_from_collaborator(e)
        return CommandResult.ok(
            f"🔄 *Balance refreshed*: {format_amount(balance.amount, balance.currency)}"
        )
