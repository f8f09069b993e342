"""Shared fixtures for command layer tests."""

from decimal import Decimal

import pytest

from paychat.collaborators import (
    StubPaymentService,
    StubSessionProvider,
    StubWalletService,
    UserSession,
)
from paychat.commands.confirmation import PaymentConfirmationService
from paychat.commands.context import CommandContextBuilder
from paychat.commands.parser import CommandParser
from paychat.commands.types import Command
from paychat.dedup import RequestDeduplicator


@pytest.fixture
def session() -> UserSession:
    return UserSession(session_id="sess-1", subject_id="alice", account_id="acct_alice")


@pytest.fixture
def sessions(session) -> StubSessionProvider:
    return StubSessionProvider({session.subject_id: session})


@pytest.fixture
def wallet() -> StubWalletService:
    return StubWalletService(balances={"acct_alice": Decimal("50.00")})


@pytest.fixture
def payments() -> StubPaymentService:
    return StubPaymentService()


@pytest.fixture
def confirmations(store, clock) -> PaymentConfirmationService:
    return PaymentConfirmationService(store, clock=clock)


@pytest.fixture
def deduplicator(store) -> RequestDeduplicator:
    return RequestDeduplicator(store)


@pytest.fixture
def make_context(session):
    """Build a context from chat text (or a Command) for sender "alice"."""
    parser = CommandParser()

    def _make(text_or_command, *, authenticated=True, **options):
        command = (
            text_or_command
            if isinstance(text_or_command, Command)
            else parser.parse(text_or_command, options.pop("voice", False))
        )
        builder = (
            CommandContextBuilder()
            .with_message("msg-1", "alice", options.pop("conversation_id", "chat-1"))
            .with_command(command)
            .with_session(session if authenticated else None)
            .with_admin(options.pop("is_admin", False))
            .with_confirmed(options.pop("is_confirmed", False))
        )
        if "group_id" in options:
            builder.with_group(options.pop("group_id"))
        return builder.build()

    return _make
