"""Tests for log redaction and request-scoped logging context."""

import logging

from paychat.logging_utils import (
    clear_request_id,
    get_request_id,
    log_info,
    redact_secrets,
    set_request_id,
)


class TestRedactSecrets:
    def test_bearer_token(self):
        assert "abc.def" not in redact_secrets("Bearer abc.def")

    def test_authorization_header(self):
        redacted = redact_secrets("Authorization: secret-token-value")
        assert "secret-token-value" not in redacted
        assert "***REDACTED***" in redacted

    def test_verification_code(self):
        assert redact_secrets("verify 123456") == "verify ******"

    def test_phone_keeps_last_four_digits(self):
        assert redact_secrets("send 10 to +15551234567") == "send 10 to ***4567"

    def test_amounts_are_untouched(self):
        assert redact_secrets("send 10.50 to alice") == "send 10.50 to alice"

    def test_none(self):
        assert redact_secrets(None) == ""


class TestRequestId:
    def test_set_and_clear(self):
        request_id = set_request_id("req-1")
        assert request_id == "req-1"
        assert get_request_id() == "req-1"
        clear_request_id()
        assert get_request_id() is None

    def test_generates_id(self):
        request_id = set_request_id()
        assert request_id
        clear_request_id()


def test_log_info_includes_context_and_redacts(caplog):
    logger = logging.getLogger("paychat.test")
    set_request_id("req-42")
    try:
        with caplog.at_level(logging.INFO, logger="paychat.test"):
            log_info(logger, "Parsed message", sender="+15551234567", command="verify")
    finally:
        clear_request_id()

    assert "request_id=req-42" in caplog.text
    assert "sender=***4567" in caplog.text
    assert "command=verify" in caplog.text
