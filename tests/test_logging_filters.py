"""Tests for sensitive data filtering and correlation fields in logs."""

from __future__ import annotations

import json
import logging
from io import StringIO

import pytest

from crm_api.core.logging import (
    JsonFormatter,
    RequestContextFilter,
    SensitiveDataFilter,
    bind_tenant,
    clear_request_context,
    set_request_id,
)


@pytest.fixture
def capture():
    """Logger wired with the production filters and formatter."""

    logger = logging.getLogger("test_redaction")
    logger.setLevel(logging.INFO)
    logger.handlers.clear()
    logger.propagate = False

    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.addFilter(RequestContextFilter())
    handler.addFilter(SensitiveDataFilter())
    handler.setFormatter(JsonFormatter())
    logger.addHandler(handler)

    yield logger, stream

    logger.handlers.clear()
    clear_request_context()


def test_sensitive_filter_redacts_credentials(capture):
    logger, stream = capture

    logger.info(
        "test_event",
        extra={
            "authorization": "Bearer eyJhbGciOi",
            "service_role_key": "srk-secret",
            "safe_field": "visible",
        },
    )

    output = stream.getvalue()
    assert "eyJhbGciOi" not in output
    assert "srk-secret" not in output
    assert "[REDACTED]" in output
    assert "visible" in output


def test_sensitive_filter_redacts_oauth_tokens(capture):
    logger, stream = capture

    logger.info(
        "gbp.tokens_updated",
        extra={
            "profile_id": "p-1",
            "payload": {"access_token": "ya29.secret", "refresh_token": "1//refresh"},
        },
    )

    payload = json.loads(stream.getvalue())
    assert payload["payload"] == {"access_token": "[REDACTED]", "refresh_token": "[REDACTED]"}
    assert payload["profile_id"] == "p-1"


def test_sensitive_filter_redacts_contact_details(capture):
    logger, stream = capture

    logger.info("contact_event", extra={"email": "ada@example.com", "phone": "555-0199", "count": 3})

    output = stream.getvalue()
    assert "ada@example.com" not in output
    assert "555-0199" not in output
    assert json.loads(output)["count"] == 3


def test_sensitive_filter_allows_safe_fields(capture):
    logger, stream = capture

    logger.info(
        "safe_event",
        extra={"route": "/v1/contacts", "status": 200, "duration_ms": 150.5},
    )

    output = stream.getvalue()
    assert "/v1/contacts" in output
    assert "200" in output
    assert "[REDACTED]" not in output


def test_sensitive_filter_redacts_nested_dicts(capture):
    logger, stream = capture

    logger.info(
        "nested_event",
        extra={
            "headers": {"Authorization": "Bearer secret-token", "user-agent": "pytest"},
            "safe_data": {"count": 5, "type": "test"},
        },
    )

    output = stream.getvalue()
    assert "secret-token" not in output
    assert "[REDACTED]" in output
    assert "pytest" in output


def test_request_context_is_stamped(capture):
    logger, stream = capture

    set_request_id("req-123")
    bind_tenant("org-a", "user-alice")
    logger.info("scoped_event")

    payload = json.loads(stream.getvalue())
    assert payload["request_id"] == "req-123"
    assert payload["organization_id"] == "org-a"
    assert payload["user_id"] == "user-alice"
    assert payload["message"] == "scoped_event"
    assert payload["level"] == "info"


def test_cleared_context_is_not_stamped(capture):
    logger, stream = capture

    set_request_id("req-123")
    clear_request_context()
    logger.info("unscoped_event")

    payload = json.loads(stream.getvalue())
    assert "request_id" not in payload
    assert "organization_id" not in payload
