"""Operator commands."""

from paychat.metrics import MetricsCollector
from paychat.rate_limit import GroupRateLimiter

from ..base import BaseCommandHandler, CommandCategory, HandlerDescriptor
from ..context import CommandContext
from ..result import CommandResult
from ..types import CommandType

ADMIN_HELP = (
    "🛠️ *Admin commands*\n"
    "• *admin status*: command and rate limit statistics\n"
    "• *admin clear <user>*: reset a user's rate limits in this chat"
)


class AdminHandler(BaseCommandHandler):
    descriptor = HandlerDescriptor(
        command="admin",
        command_type=CommandType.ADMIN,
        description="Administration commands",
        category=CommandCategory.ADMIN,
        usage="admin status|clear <user>",
        admin_only=True,
    )

    def __init__(self, rate_limiter: GroupRateLimiter, metrics: MetricsCollector | None = None) -> None:
        self.rate_limiter = rate_limiter
        self.metrics = metrics

    def handle(self, context: CommandContext) -> CommandResult:
        action = context.args.get("action")
        if action == "status":
            return self._status()
        if action == "clear" and context.args.get("target"):
            target = context.args["target"].strip()
            group = context.group_id or context.conversation_id
            removed = self.rate_limiter.clear_user(group, target)
            return CommandResult.ok(f"🧹 Cleared {removed} rate limit entries for {target}.")
        return CommandResult.ok(ADMIN_HELP)

    def _status(self) -> CommandResult:
        if self.metrics is None:
            return CommandResult.ok("📊 Metrics are disabled.")
        snapshot = self.metrics.get_snapshot()
        total = sum(snapshot["command_counts"].values())
        errors = sum(v for k, v in snapshot["outcome_counts"].items() if k != "ok")
        limited = sum(snapshot["rate_limited_counts"].values())
        p50 = snapshot["command_latency_ms"]["p50"]
        lines = [
            "📊 *Status*",
            f"Commands: {total}",
            f"Errors: {errors}",
            f"Rate limited: {limited}",
        ]
        if p50 is not None:
            lines.append(f"Latency p50: {p50:.1f}ms")
        return CommandResult.ok("\n".join(lines))
