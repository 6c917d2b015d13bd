"""Structured logging for admission events.

Every admission log line is a flat JSON object: timestamp, level, logger,
event name and the ``extra`` fields of the call. Two filters run before
formatting:
- RequestIdFilter copies the correlation id bound by AdmissionController.check
  (or by the embedding service) onto the record.
- SensitiveDataFilter replaces raw client identities and credentials with
  ``[REDACTED]``, including inside nested dicts and lists.

Engine code only logs ``identity_hash``; the filters catch callers that pass
raw identifiers through ``extra`` anyway.
"""

from __future__ import annotations

import hashlib
import json
import logging
import sys
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import datetime, timezone
from logging import LogRecord
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Iterable, Iterator, Mapping

from admission.core.config import LogSettings, settings

_request_id_var: ContextVar[str | None] = ContextVar("request_id", default=None)

# Structured fields that may carry a raw client identity or a credential
SENSITIVE_KEYS_DEFAULT: frozenset[str] = frozenset(
    {
        "identity",
        "client_id",
        "client_identity",
        "user_id",
        "ip",
        "client_ip",
        "remote_addr",
        "api_key",
        "x-api-key",
        "authorization",
        "token",
        "secret",
        "password",
        "cookie",
        "set-cookie",
    }
)

# Built-in LogRecord attributes; everything else on a record came from ``extra``
_RECORD_ATTRS = frozenset(vars(logging.makeLogRecord({}))) | {"message", "asctime", "stack"}

_REDACTED = "[REDACTED]"
_PLAIN_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"


def get_request_id() -> str | None:
    """Return the correlation id bound to the current context, if any."""
    return _request_id_var.get()


def set_request_id(request_id: str | None) -> None:
    """Bind a correlation id for the rest of the current context."""
    _request_id_var.set(request_id)


@contextmanager
def bind_request_id(request_id: str | None) -> Iterator[None]:
    """Bind a correlation id for the enclosed block, then restore the outer one."""
    token = _request_id_var.set(request_id)
    try:
        yield
    finally:
        _request_id_var.reset(token)


def hash_identity(identity: str) -> str:
    """Return a short, stable digest of a client identity for log correlation."""
    return hashlib.sha256(identity.encode()).hexdigest()[:16]


def _redact(value: Any, sensitive_keys: frozenset[str]) -> Any:
    if isinstance(value, Mapping):
        return {
            k: _REDACTED if str(k).lower() in sensitive_keys else _redact(v, sensitive_keys)
            for k, v in value.items()
        }
    if isinstance(value, (list, tuple)):
        return type(value)(_redact(v, sensitive_keys) for v in value)
    return value


def _extra_fields(record: LogRecord, sensitive_keys: frozenset[str]) -> dict[str, Any]:
    """Return the record's ``extra`` fields with sensitive values redacted."""
    fields: dict[str, Any] = {}
    for key, value in record.__dict__.items():
        if key in _RECORD_ATTRS or key.startswith("_"):
            continue
        if key.lower() in sensitive_keys:
            fields[key] = _REDACTED
        else:
            fields[key] = _redact(value, sensitive_keys)
    return fields


class RequestIdFilter(logging.Filter):
    """Attach the bound correlation id to records that lack one."""

    def filter(self, record: LogRecord) -> bool:  # noqa: D401
        if getattr(record, "request_id", None) is None:
            request_id = get_request_id()
            if request_id:
                record.request_id = request_id
        return True


class SensitiveDataFilter(logging.Filter):
    """Redact sensitive ``extra`` fields in place, for any formatter."""

    def __init__(self, sensitive_keys: Iterable[str] | None = None) -> None:
        super().__init__()
        self.sensitive_keys = frozenset(k.lower() for k in (sensitive_keys or SENSITIVE_KEYS_DEFAULT))

    def filter(self, record: LogRecord) -> bool:  # noqa: D401
        for key, value in _extra_fields(record, self.sensitive_keys).items():
            setattr(record, key, value)
        return True


class JsonFormatter(logging.Formatter):
    """Render a record as one JSON line."""

    def __init__(self, *, sensitive_keys: Iterable[str] | None = None, ensure_ascii: bool = True) -> None:
        super().__init__()
        self.sensitive_keys = frozenset(k.lower() for k in (sensitive_keys or SENSITIVE_KEYS_DEFAULT))
        self.ensure_ascii = ensure_ascii

    def format(self, record: LogRecord) -> str:  # noqa: D401
        payload: dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname.lower(),
            "logger": record.name,
            "message": record.getMessage(),
        }

        request_id = getattr(record, "request_id", None) or get_request_id()
        if request_id:
            payload["request_id"] = request_id

        payload.update(_extra_fields(record, self.sensitive_keys))

        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)

        return json.dumps(payload, default=str, ensure_ascii=self.ensure_ascii)


def _build_handler(log_settings: LogSettings) -> logging.Handler:
    if log_settings.output.lower() != "file":
        return logging.StreamHandler(sys.stdout)

    file_path = Path(log_settings.file_path or "logs/admission.log")
    file_path.parent.mkdir(parents=True, exist_ok=True)
    if log_settings.max_bytes:
        return RotatingFileHandler(
            file_path,
            maxBytes=log_settings.max_bytes,
            backupCount=log_settings.backup_count,
            encoding="utf-8",
        )
    return logging.FileHandler(file_path, encoding="utf-8")


def configure_logging(log_settings: LogSettings | None = None) -> None:
    """Install a single redacting handler on the root logger.

    Call once at service startup. Replaces any handler already installed on
    the root logger.

    Args:
        log_settings: Logging settings; ``settings.log`` when omitted.
    """
    cfg = log_settings or settings.log

    handler = _build_handler(cfg)
    handler.addFilter(RequestIdFilter())
    handler.addFilter(SensitiveDataFilter())
    if cfg.format.lower() == "plain":
        handler.setFormatter(logging.Formatter(_PLAIN_FORMAT))
    else:
        handler.setFormatter(JsonFormatter())

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(getattr(logging, cfg.level.upper(), logging.INFO))
