"""Read-mostly wallet commands: price, history and receive."""

import logging

from paychat.collaborators.interface import (
    CollaboratorError,
    PriceQuote,
    WalletService,
)
from paychat.dedup import RequestDeduplicator

from ..base import (
    BaseCommandHandler,
    CommandCategory,
    HandlerDescriptor,
    failure_from_collaborator,
    format_amount,
    parse_amount,
)
from ..context import CommandContext
from ..result import CommandResult
from ..types import CommandType

logger = logging.getLogger(__name__)

DEFAULT_CURRENCY = "USD"


class PriceHandler(BaseCommandHandler):
    descriptor = HandlerDescriptor(
        command="price",
        command_type=CommandType.PRICE,
        description="Current Bitcoin price",
        category=CommandCategory.UTILITY,
        aliases=("rate", "btc"),
        usage="price [currency]",
    )

    def __init__(
        self, wallet: WalletService, deduplicator: RequestDeduplicator, ttl_seconds: float = 60.0
    ) -> None:
        self.wallet = wallet
        self.deduplicator = deduplicator
        self.ttl_seconds = ttl_seconds

    def handle(self, context: CommandContext) -> CommandResult:
        currency = context.args.get("currency", DEFAULT_CURRENCY).upper()
        try:
            data = self.deduplicator.dedupe(
                f"price:{currency}",
                lambda: self.wallet.get_price(currency).to_dict(),
                ttl_seconds=self.ttl_seconds,
            )
        except CollaboratorError as e:
            return failure_from_collaborator(e)

        quote = PriceQuote.from_dict(data)
        message = f"₿ *Bitcoin price*: {format_amount(quote.price, quote.currency)}"
        if quote.change_24h is not None:
            message += f" ({quote.change_24h:+.2f}% 24h)"
        return CommandResult.ok(message)


class HistoryHandler(BaseCommandHandler):
    descriptor = HandlerDescriptor(
        command="history",
        command_type=CommandType.HISTORY,
        description="Your recent transactions",
        category=CommandCategory.ACCOUNT,
        aliases=("transactions", "txs"),
        usage="history",
        requires_auth=True,
        requires_session=True,
    )

    def __init__(self, wallet: WalletService, limit: int = 5) -> None:
        self.wallet = wallet
        self.limit = limit

    def handle(self, context: CommandContext) -> CommandResult:
        try:
            transactions = self.wallet.get_transactions(context.session, limit=self.limit)
        except CollaboratorError as e:
            return failure_from_collaborator(e)

        if not transactions:
            return CommandResult.ok("📭 No transactions yet.")

        lines = ["📜 *Recent transactions*"]
        for tx in transactions[: self.limit]:
            arrow = "⬆️" if tx.direction == "sent" else "⬇️"
            line = f"{arrow} {format_amount(tx.amount)}"
            if tx.counterparty:
                line += f" {'to' if tx.direction == 'sent' else 'from'} {tx.counterparty}"
            if tx.memo:
                line += f" - {tx.memo}"
            lines.append(line)
        return CommandResult.ok("\n".join(lines))


class ReceiveHandler(BaseCommandHandler):
    descriptor = HandlerDescriptor(
        command="receive",
        command_type=CommandType.RECEIVE,
        description="Create an invoice to receive money",
        category=CommandCategory.TRANSACTION,
        aliases=("invoice",),
        usage="receive [amount] [memo]",
        requires_auth=True,
        requires_session=True,
    )

    def __init__(self, wallet: WalletService) -> None:
        self.wallet = wallet

    def validate(self, context: CommandContext) -> bool:
        raw = context.args.get("amount")
        return raw is None or parse_amount(raw) is not None

    def handle(self, context: CommandContext) -> CommandResult:
        amount = parse_amount(context.args.get("amount"))
        memo = context.args.get("memo")
        try:
            invoice = self.wallet.create_invoice(context.session, amount=amount, memo=memo)
        except CollaboratorError as e:
            return failure_from_collaborator(e)

        lines = ["⚡ *Invoice created*"]
        if invoice.amount is not None:
            lines.append(f"💵 *Amount*: {format_amount(invoice.amount)}")
        if invoice.memo:
            lines.append(f"📝 *Memo*: {invoice.memo}")
        lines.append("")
        lines.append(invoice.payment_request)
        return CommandResult.ok("\n".join(lines))
