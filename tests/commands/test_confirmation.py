"""Tests for pending payment confirmations."""

import pytest

from paychat.commands.confirmation import PaymentConfirmationService
from paychat.commands.types import Command, CommandType


def send_command(amount: str = "10", username: str = "bob") -> Command:
    return Command(
        type=CommandType.SEND,
        args={"amount": amount, "username": username},
        raw_text=f"send {amount} to {username}",
        requires_confirmation=True,
    )


class TestPendingConfirmations:
    def test_store_and_get(self, confirmations):
        confirmations.store("alice", send_command(), secondary_id="chat-1", session_id="s1")

        pending = confirmations.get("alice")
        assert pending.command == send_command()
        assert pending.secondary_id == "chat-1"
        assert pending.session_id == "s1"
        assert pending.expires_at - pending.created_at == 300

    def test_record_is_encrypted_at_rest(self, confirmations, store):
        confirmations.store("alice", send_command())
        raw = store.get("confirmation:alice")
        assert raw is not None
        assert "username" not in raw

    def test_single_slot_per_subject(self, confirmations):
        confirmations.store("alice", send_command("10", "bob"))
        confirmations.store("alice", send_command("20", "carol"))

        assert confirmations.get("alice").command.args == {"amount": "20", "username": "carol"}

    def test_subjects_are_independent(self, confirmations):
        confirmations.store("alice", send_command())
        assert confirmations.get("bob") is None

    def test_expires_lazily(self, confirmations, store, clock):
        confirmations.store("alice", send_command(), ttl_seconds=60)
        clock.advance(59)
        assert confirmations.has_pending("alice") is True

        clock.advance(2)
        assert confirmations.get("alice") is None
        assert store.get("confirmation:alice") is None

    def test_clear(self, confirmations):
        confirmations.store("alice", send_command())
        assert confirmations.clear("alice") is True
        assert confirmations.clear("alice") is False

    def test_consume_returns_record_once(self, confirmations):
        confirmations.store("alice", send_command())

        first = confirmations.consume("alice")
        second = confirmations.consume("alice")

        assert first is not None
        assert first.command.type == CommandType.SEND
        assert second is None

    def test_consume_after_expiry(self, confirmations, clock):
        confirmations.store("alice", send_command())
        clock.advance(301)
        assert confirmations.consume("alice") is None

    def test_cancel_returns_live_record(self, confirmations):
        confirmations.store("alice", send_command())

        assert confirmations.cancel("alice").command.type == CommandType.SEND
        assert confirmations.cancel("alice") is None

    def test_cancel_after_lazy_expiry(self, store, wall_clock):
        confirmations = PaymentConfirmationService(store, clock=wall_clock)
        confirmations.store("alice", send_command())
        wall_clock.advance(301)

        assert store.exists("confirmation:alice")
        assert confirmations.cancel("alice") is None
        assert not store.exists("confirmation:alice")

    def test_malformed_record_is_discarded(self, confirmations, store):
        store.set_encrypted("confirmation:alice", {"unexpected": True}, 60)
        assert confirmations.get("alice") is None
        assert store.get("confirmation:alice") is None


@pytest.mark.parametrize("text", ["yes", "Y", " OK ", "confirm", "yes!", "pay", "send"])
def test_confirmation_words(text):
    assert PaymentConfirmationService.is_confirmation(text) is True


@pytest.mark.parametrize("text", ["no", "N", "cancel", "stop.", "abort"])
def test_cancellation_words(text):
    assert PaymentConfirmationService.is_cancellation(text) is True


@pytest.mark.parametrize("text", ["yes please", "send 10 to bob", "nope"])
def test_other_text_is_neither(text):
    assert PaymentConfirmationService.is_confirmation(text) is False
    assert PaymentConfirmationService.is_cancellation(text) is False


class TestFormatDetails:
    def test_send_to_username_with_memo(self):
        command = Command(
            type=CommandType.SEND, args={"amount": "10", "username": "bob", "memo": "lunch"}
        )
        details = PaymentConfirmationService.format_details(command)
        assert "@bob" in details
        assert "$10 USD" in details
        assert '"lunch"' in details

    def test_send_to_phone(self):
        command = Command(type=CommandType.SEND, args={"amount": "5", "phone": "+15551234567"})
        assert "+15551234567" in PaymentConfirmationService.format_details(command)

    def test_request(self):
        command = Command(type=CommandType.REQUEST, args={"amount": "7", "username": "joe"})
        assert PaymentConfirmationService.format_details(command) == "📥 Request $7 USD from @joe"
