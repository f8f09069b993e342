"""Send and request payments.

Both commands are two-phase: the first call stores a pending confirmation and
returns a summary; the collaborator is only called once the user confirms.
"""

import logging
from decimal import Decimal

from paychat.collaborators.interface import (
    CollaboratorError,
    PaymentOrder,
    PaymentOutcome,
    PaymentService,
)

from ..base import (
    BaseCommandHandler,
    CommandCategory,
    HandlerDescriptor,
    failure_from_collaborator,
    format_amount,
    parse_amount,
)
from ..confirmation import PaymentConfirmationService
from ..context import CommandContext
from ..result import Button, CommandResult, ErrorCode
from ..types import CommandType
from .balance import BalanceLookup

logger = logging.getLogger(__name__)

CONFIRM_BUTTONS = [Button(id="yes", title="✅ Yes"), Button(id="no", title="❌ No")]


def _order_from_context(context: CommandContext) -> PaymentOrder:
    args = context.args
    return PaymentOrder(
        account_id=context.account_id or "",
        amount=parse_amount(args.get("amount")) or Decimal(0),
        username=args.get("username"),
        phone=args.get("phone"),
        recipient=args.get("recipient"),
        memo=args.get("memo"),
    )


def _failed_outcome(outcome: PaymentOutcome) -> CommandResult:
    error = CollaboratorError(
        outcome.message or "Transaction failed", code=outcome.error_code or "TRANSACTION_FAILED"
    )
    return failure_from_collaborator(error)


class _TwoPhasePaymentHandler(BaseCommandHandler):
    """Stores a confirmation on first call and executes once confirmed."""

    prompt_title = ""

    def __init__(self, payments: PaymentService, confirmations: PaymentConfirmationService) -> None:
        self.payments = payments
        self.confirmations = confirmations

    def handle(self, context: CommandContext) -> CommandResult:
        order = _order_from_context(context)
        if context.is_confirmed:
            return self._execute_confirmed(context, order)

        precheck = self.precheck(context, order)
        if precheck is not None:
            return precheck

        command = context.command.with_flags(requires_confirmation=True)
        self.confirmations.store(
            context.subject_id,
            command,
            secondary_id=context.conversation_id,
            session_id=context.session.session_id if context.session else None,
        )
        minutes = max(1, int(self.confirmations.default_ttl_seconds // 60))
        details = self.confirmations.format_details(command)
        return CommandResult.ok(
            f"{self.prompt_title}\n\n{details}\n\n"
            f"Reply *yes* to confirm or *no* to cancel. This expires in {minutes} minutes.",
            buttons=CONFIRM_BUTTONS,
        )

    def precheck(self, context: CommandContext, order: PaymentOrder) -> CommandResult | None:
        return None

    def _execute_confirmed(self, context: CommandContext, order: PaymentOrder) -> CommandResult:
        try:
            outcome = self.call_payments(context, order)
        except CollaboratorError as e:
            logger.warning("%s failed for %s: %s", self.command, context.account_id, e)
            return failure_from_collaborator(e)
        if not outcome.success:
            return _failed_outcome(outcome)
        return self.success_result(order, outcome)

    def call_payments(self, context: CommandContext, order: PaymentOrder) -> PaymentOutcome:
        raise NotImplementedError

    def success_result(self, order: PaymentOrder, outcome: PaymentOutcome) -> CommandResult:
        raise NotImplementedError


class SendHandler(_TwoPhasePaymentHandler):
    descriptor = HandlerDescriptor(
        command="send",
        command_type=CommandType.SEND,
        description="Send money to a user or phone number",
        category=CommandCategory.TRANSACTION,
        aliases=("s", "pay"),
        usage="send <amount> to <@username|phone> [memo]",
        requires_auth=True,
        requires_session=True,
    )
    prompt_title = "💸 *Confirm payment*"

    def __init__(
        self,
        payments: PaymentService,
        confirmations: PaymentConfirmationService,
        balances: BalanceLookup,
    ) -> None:
        super().__init__(payments, confirmations)
        self.balances = balances

    def validate(self, context: CommandContext) -> bool:
        args = context.args
        has_target = any(args.get(k) for k in ("username", "phone", "recipient"))
        return has_target and parse_amount(args.get("amount")) is not None

    def precheck(self, context: CommandContext, order: PaymentOrder) -> CommandResult | None:
        try:
            balance = self.balances.get(context.session)
        except CollaboratorError as e:
            return failure_from_collaborator(e)
        if order.amount > balance.amount:
            return CommandResult.fail(
                ErrorCode.INSUFFICIENT_BALANCE,
                f"❌ Insufficient balance. You have {format_amount(balance.amount, balance.currency)}.",
                details={"requested": str(order.amount), "available": str(balance.amount)},
            )
        return None

    def call_payments(self, context: CommandContext, order: PaymentOrder) -> PaymentOutcome:
        outcome = self.payments.send_payment(context.session, order)
        if outcome.success:
            self.balances.invalidate(order.account_id)
        return outcome

    def success_result(self, order: PaymentOrder, outcome: PaymentOutcome) -> CommandResult:
        message = f"✅ Sent {format_amount(order.amount)} to {order.counterparty}."
        if outcome.transaction_id:
            message += f"\nTransaction: {outcome.transaction_id}"
        return CommandResult.ok(message)


class RequestHandler(_TwoPhasePaymentHandler):
    descriptor = HandlerDescriptor(
        command="request",
        command_type=CommandType.REQUEST,
        description="Request money from a user or phone number",
        category=CommandCategory.TRANSACTION,
        aliases=("req",),
        usage="request <amount> from <@username|phone> [memo]",
        requires_auth=True,
        requires_session=True,
    )
    prompt_title = "📨 *Confirm payment request*"

    def validate(self, context: CommandContext) -> bool:
        args = context.args
        has_source = bool(args.get("username") or args.get("phone"))
        return has_source and parse_amount(args.get("amount")) is not None

    def call_payments(self, context: CommandContext, order: PaymentOrder) -> PaymentOutcome:
        return self.payments.request_payment(context.session, order)

    def success_result(self, order: PaymentOrder, outcome: PaymentOutcome) -> CommandResult:
        return CommandResult.ok(
            f"📨 Payment request for {format_amount(order.amount)} sent to {order.counterparty}."
        )
