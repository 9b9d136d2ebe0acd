"""
Tests for structured logging helpers.
"""

import logging

from mailstats.common.logger import QUIET_LOGGERS, REDACTED, redact_secrets


def test_credentials_are_masked() -> None:
    event = {
        "event": "Upstream rejected primary auth, retrying",
        "api_token": "secret-token",
        "details": {"url": "https://mail.example.com", "Authorization": "Bearer secret-token"},
        "campaign_uid": "cmp_123",
    }

    result = redact_secrets(None, "info", event)

    assert result["api_token"] == REDACTED
    assert result["details"]["Authorization"] == REDACTED
    assert result["details"]["url"] == "https://mail.example.com"
    assert result["campaign_uid"] == "cmp_123"


def test_http_client_request_logs_are_quiet() -> None:
    for name in QUIET_LOGGERS:
        assert logging.getLogger(name).level >= logging.WARNING
