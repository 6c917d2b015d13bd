"""Tests for redaction, correlation and handler setup in logging."""

from __future__ import annotations

import json
import logging
import logging.handlers
from io import StringIO

import pytest

from admission.core.config import LogSettings
from admission.core.logging import (
    JsonFormatter,
    RequestIdFilter,
    SensitiveDataFilter,
    bind_request_id,
    configure_logging,
    get_request_id,
    hash_identity,
    set_request_id,
)


def _capture(name: str) -> tuple[logging.Logger, StringIO]:
    logger = logging.getLogger(name)
    logger.setLevel(logging.INFO)
    logger.handlers.clear()
    logger.propagate = False

    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.addFilter(RequestIdFilter())
    handler.addFilter(SensitiveDataFilter())
    handler.setFormatter(JsonFormatter())
    logger.addHandler(handler)
    return logger, stream


def test_sensitive_filter_redacts_raw_identities():
    """Raw identities and credentials never reach the output."""

    logger, stream = _capture("test_identity_redaction")

    logger.info(
        "admission.denied",
        extra={
            "identity": "user-42",
            "client_ip": "203.0.113.9",
            "api_key": "sk-secret-123",
            "identity_hash": hash_identity("user-42"),
        },
    )

    output = stream.getvalue()

    assert "user-42" not in output
    assert "203.0.113.9" not in output
    assert "sk-secret-123" not in output
    assert "[REDACTED]" in output
    assert hash_identity("user-42") in output


def test_sensitive_filter_allows_safe_fields():
    logger, stream = _capture("test_safe_fields")

    logger.info(
        "admission.allowed",
        extra={
            "algorithm": "token_bucket",
            "limit": 10,
            "window_s": 1.5,
        },
    )

    payload = json.loads(stream.getvalue())

    assert payload["message"] == "admission.allowed"
    assert payload["level"] == "info"
    assert payload["algorithm"] == "token_bucket"
    assert payload["limit"] == 10
    assert "[REDACTED]" not in stream.getvalue()


def test_sensitive_filter_redacts_nested_dicts():
    logger, stream = _capture("test_nested")

    logger.info(
        "registry.snapshot",
        extra={
            "headers": {
                "x-api-key": "secret-key",
                "user-agent": "pytest",
            },
            "tiers": [{"client_id": "acme", "limit": 5}],
        },
    )

    output = stream.getvalue()

    assert "secret-key" not in output
    assert "acme" not in output
    assert "pytest" in output
    assert '"limit": 5' in output


def test_request_id_is_attached_from_context():
    logger, stream = _capture("test_request_id")

    with bind_request_id("req-123"):
        assert get_request_id() == "req-123"
        logger.info("admission.allowed")

    assert get_request_id() is None
    assert json.loads(stream.getvalue())["request_id"] == "req-123"


def test_bind_request_id_restores_outer_id():
    set_request_id("outer")
    try:
        with bind_request_id("inner"):
            assert get_request_id() == "inner"
        assert get_request_id() == "outer"
    finally:
        set_request_id(None)


def test_hash_identity_is_stable_and_short():
    assert hash_identity("a") == hash_identity("a")
    assert hash_identity("a") != hash_identity("b")
    assert len(hash_identity("a")) == 16


@pytest.fixture
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield root
    root.handlers[:] = handlers
    root.setLevel(level)


def test_configure_logging_plain_stdout(restore_root_logger):
    configure_logging(LogSettings(level="warning", format="plain", output="stdout"))

    root = restore_root_logger
    assert root.level == logging.WARNING
    assert len(root.handlers) == 1
    assert not isinstance(root.handlers[0].formatter, JsonFormatter)


def test_configure_logging_rotating_file(restore_root_logger, tmp_path):
    log_file = tmp_path / "logs" / "admission.log"
    configure_logging(
        LogSettings(output="file", file_path=str(log_file), max_bytes=1024, backup_count=2)
    )

    root = restore_root_logger
    handler = root.handlers[0]
    assert isinstance(handler, logging.handlers.RotatingFileHandler)
    assert isinstance(handler.formatter, JsonFormatter)

    logging.getLogger("admission.test").info("admission.closed", extra={"released": 3})
    handler.flush()
    handler.close()

    assert '"released": 3' in log_file.read_text(encoding="utf-8")
