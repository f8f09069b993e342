"""Tests for the standard command handlers."""

from decimal import Decimal

import pytest

from paychat.collaborators import Transaction, UserSession
from paychat.commands.handlers import default_handlers
from paychat.commands.registry import CommandRegistry
from paychat.commands.result import ErrorCode
from paychat.commands.types import Command, CommandType
from paychat.metrics import MetricsCollector
from paychat.rate_limit import GroupRateLimiter
from paychat.voice_settings import VoiceMode, VoiceSettings


@pytest.fixture
def voice_settings(store):
    return VoiceSettings(store)


@pytest.fixture
def rate_limiter(store, clock):
    return GroupRateLimiter(store, clock=clock)


@pytest.fixture
def metrics():
    return MetricsCollector()


@pytest.fixture
def registry(
    sessions, wallet, payments, confirmations, deduplicator, voice_settings, rate_limiter, metrics
):
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
        )
    )
    return registry


@pytest.fixture
def run(registry, make_context):
    def _run(text_or_command, **options):
        context = make_context(text_or_command, **options)
        return registry.resolve_by_type(context.command.type).execute(context)

    return _run


class TestHelp:
    def test_general_help_hides_admin(self, run):
        result = run("help")
        assert "*send*" in result.message
        assert "*admin*" not in result.message

    def test_admin_sees_admin_section(self, run):
        assert "*admin*" in run("help", is_admin=True).message

    def test_category_help(self, run):
        message = run("help transaction").message
        assert "send <amount> to" in message
        assert "balance" not in message

    def test_command_help(self, run):
        message = run("help history").message
        assert "Usage: history" in message
        assert "Aliases: transactions, txs" in message

    def test_admin_topic_hidden_from_users(self, run):
        assert "Available commands" in run("help admin").message


class TestBalance:
    def test_balance(self, run):
        assert run("balance").message == "💰 *Balance*: $50.00"

    def test_requires_link(self, run):
        assert run("balance", authenticated=False).error.code == ErrorCode.NOT_AUTHENTICATED

    def test_repeated_lookups_are_cached(self, run, wallet):
        run("balance")
        run("balance")
        assert wallet.calls["get_balance"] == 1

    def test_refresh_bypasses_cache(self, run, wallet):
        run("balance")
        wallet.balances["acct_alice"] = Decimal("75.00")
        assert run("balance").message == "💰 *Balance*: $50.00"

        assert run("refresh").message == "🔄 *Balance refreshed*: $75.00"
        assert run("balance").message == "💰 *Balance*: $75.00"
        assert wallet.calls["get_balance"] == 2

    def test_refresh_requires_link(self, run):
        assert run("refresh", authenticated=False).error.code == ErrorCode.NOT_AUTHENTICATED


class TestUsername:
    @pytest.fixture
    def session(self) -> UserSession:
        return UserSession(
            session_id="sess-1", subject_id="alice", account_id="acct_alice", username="alice_w"
        )

    def test_shows_linked_username(self, run):
        assert run("username").message == (
            "👤 Your username is *@alice_w*. Others can pay you with it."
        )

    def test_whoami_alias(self, run):
        assert "@alice_w" in run("whoami").message

    def test_requires_link(self, run):
        assert run("username", authenticated=False).error.code == ErrorCode.NOT_AUTHENTICATED


def test_username_not_set(run):
    assert "no username yet" in run("username").message


class TestSend:
    def test_first_phase_stores_confirmation(self, run, confirmations, payments):
        result = run("send 10 to @bob lunch")

        assert result.success is True
        assert "Confirm payment" in result.message
        assert "@bob" in result.message
        assert [b.id for b in result.buttons] == ["yes", "no"]
        assert payments.sent == []

        pending = confirmations.get("alice")
        assert pending.command.requires_confirmation is True
        assert pending.command.args == {"amount": "10", "username": "bob", "memo": "lunch"}
        assert pending.secondary_id == "chat-1"
        assert pending.session_id == "sess-1"

    def test_insufficient_balance_stores_nothing(self, run, confirmations):
        result = run("send 60 to bob")
        assert result.error.code == ErrorCode.INSUFFICIENT_BALANCE
        assert confirmations.get("alice") is None

    @pytest.mark.parametrize("text", ["send 0 to bob", "send 1.234 to bob", "send 2000000 to bob"])
    def test_invalid_amount(self, run, text):
        assert run(text).error.code == ErrorCode.INVALID_ARGUMENTS

    def test_confirmed_send_calls_payments(self, run, payments, wallet):
        run("balance")
        result = run("send 10 to bob", is_confirmed=True)

        assert result.success is True
        assert result.message.startswith("✅ Sent $10.00 to @bob.")
        assert len(payments.sent) == 1
        assert payments.sent[0].amount == Decimal("10")
        assert payments.sent[0].account_id == "acct_alice"

        # Balance cache is dropped after money moves
        run("balance")
        assert wallet.calls["get_balance"] == 2

    def test_confirmed_send_to_unknown_user(self, registry, make_context, confirmations, payments):
        payments.known_usernames = {"carol"}
        context = make_context("send 10 to bob", is_confirmed=True)
        result = registry.resolve("send").execute(context)
        assert result.error.code == ErrorCode.USER_NOT_FOUND
        assert payments.sent == []

    def test_spoken_send_to_free_text_recipient(self, run, confirmations):
        command = Command(
            type=CommandType.SEND,
            args={"amount": "5", "recipient": "john"},
            raw_text="send five dollars to john",
            requires_confirmation=True,
            is_voice_command=True,
        )
        result = run(command)
        assert "john" in result.message
        assert confirmations.get("alice").command == command


class TestRequest:
    def test_two_phase_request(self, run, confirmations, payments):
        first = run("request 15 from @bob dinner")
        assert "Confirm payment request" in first.message
        assert payments.requested == []
        assert confirmations.has_pending("alice")

        second = run(confirmations.get("alice").command, is_confirmed=True)
        assert second.success is True
        assert "$15.00" in second.message
        assert len(payments.requested) == 1
        assert payments.requested[0].memo == "dinner"

    def test_request_needs_username_or_phone(self, run):
        command = Command(type=CommandType.REQUEST, args={"amount": "5", "recipient": "x@y"})
        assert run(command).error.code == ErrorCode.INVALID_ARGUMENTS


class TestWallet:
    def test_price(self, run):
        assert run("price").message == "₿ *Bitcoin price*: $65,000.00"

    def test_price_in_other_currency(self, run):
        assert run("price eur").message == "₿ *Bitcoin price*: 60,000.00 EUR"

    def test_price_is_cached_per_currency(self, run, wallet):
        run("price")
        run("btc")
        run("price eur")
        assert wallet.calls["get_price"] == 2

    def test_unsupported_currency(self, run):
        result = run("price jpy")
        assert result.error.code == ErrorCode.INVALID_ARGUMENTS
        assert "JPY" in result.message

    def test_price_works_without_link(self, run):
        assert run("price", authenticated=False).success is True

    def test_empty_history(self, run):
        assert run("history").message == "📭 No transactions yet."

    def test_history_lines(self, run, wallet):
        wallet.transactions["acct_alice"] = [
            Transaction("t1", "sent", Decimal("5"), counterparty="@bob", memo="pizza"),
            Transaction("t2", "received", Decimal("12.5"), counterparty="@carol"),
        ]
        lines = run("history").message.splitlines()
        assert lines[1] == "⬆️ $5.00 to @bob - pizza"
        assert lines[2] == "⬇️ $12.50 from @carol"

    def test_receive_creates_invoice(self, run, wallet):
        result = run("receive 20 coffee")
        assert "Invoice created" in result.message
        assert "$20.00" in result.message
        assert "coffee" in result.message
        assert "lnstub" in result.message
        assert wallet.calls["create_invoice"] == 1

    def test_receive_without_amount(self, run):
        assert "Amount" not in run("receive").message


class TestAccount:
    def test_already_linked(self, run):
        assert "already linked" in run("link").message

    def test_link_refused_in_group(self, run):
        result = run("link", authenticated=False, group_id="group-1")
        assert result.error.code == ErrorCode.INVALID_ARGUMENTS

    def test_link_then_verify(self, run, sessions):
        sessions.unlink("alice")
        assert "verification code" in run("link", authenticated=False).message

        result = run("123456", authenticated=False)
        assert result.success is True
        assert sessions.get_session("alice").account_id == "acct_alice"

    def test_wrong_code(self, run, sessions):
        sessions.unlink("alice")
        run("link", authenticated=False)
        assert run("verify 000000", authenticated=False).error.code == ErrorCode.INVALID_FORMAT

    def test_malformed_code(self, run):
        command = Command(type=CommandType.VERIFY, args={"otp": "12ab56"})
        assert run(command).error.code == ErrorCode.INVALID_ARGUMENTS

    def test_unlink_requires_confirm_word(self, run, sessions):
        assert "unlink confirm" in run("unlink").message
        assert sessions.get_session("alice") is not None

        assert run("unlink confirm").success is True
        assert sessions.get_session("alice") is None


class TestVoice:
    def test_set_and_report_mode(self, run, voice_settings):
        assert "only" in run("voice only").message
        assert voice_settings.get_mode("alice") is VoiceMode.ONLY
        assert "only" in run("voice").message

    def test_default_mode(self, run):
        assert "*on*" in run("voice status").message

    def test_unknown_mode(self, run):
        assert run("voice loud").error.code == ErrorCode.INVALID_ARGUMENTS


class TestAdmin:
    def test_requires_admin(self, run):
        assert run("admin status").error.code == ErrorCode.INSUFFICIENT_PERMISSIONS

    def test_status(self, run, metrics):
        metrics.record_command("balance", "ok", 12.0)
        metrics.record_command("send", "INSUFFICIENT_BALANCE", 8.0)
        message = run("admin status", is_admin=True).message
        assert "Commands: 2" in message
        assert "Errors: 1" in message

    def test_clear_user_limits(self, run, rate_limiter):
        rate_limiter.check("chat-1", "bob", "default")
        rate_limiter.check("chat-1", "bob", "price")
        message = run("admin clear bob", is_admin=True).message
        assert message == "🧹 Cleared 2 rate limit entries for bob."

    def test_usage_without_action(self, run):
        assert "admin status" in run("admin", is_admin=True).message


