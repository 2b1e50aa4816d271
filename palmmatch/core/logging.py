"""
Structured logging for palmmatch.

- JSON lines in production, one readable line per event elsewhere.
- A context-bound request id ties every line of one request (or one worker
  run) together.
- log_event() is the single way services emit events. Compatibility and
  invite codes are bearer secrets, so any `code`/`invite_code` field is
  reduced to a hint before it reaches a handler.
"""

import json
import logging
import os
import sys
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Dict, Iterator, Optional, Tuple

LOGGER_NAME = "palmmatch"

request_id_ctx_var: ContextVar[Optional[str]] = ContextVar("request_id", default=None)

# Fields lifted from a record's `extra` into the rendered line
_STRUCTURED_KEYS = (
    "party_id",
    "event_type",
    "error_code",
    "status",
    "path",
    "method",
    "latency_bucket",
    "code_hint",
    "durable",
    "match_id",
    "match_type",
    "operation",
    "deleted",
)

_REDACTED_KEYS = ("code", "invite_code")

_LATENCY_BUCKETS: Tuple[Tuple[float, str], ...] = (
    (10, "<10ms"),
    (100, "10-100ms"),
    (500, "100-500ms"),
    (1000, "500-1000ms"),
)

_MAX_FIELD_LENGTH = 500


def get_request_id(default: Optional[str] = None) -> Optional[str]:
    rid = request_id_ctx_var.get()
    return rid if rid is not None else default


@contextmanager
def bind_request_id(rid: str) -> Iterator[str]:
    """Bind `rid` as the current request id for the duration of the block."""
    token = request_id_ctx_var.set(rid)
    try:
        yield rid
    finally:
        request_id_ctx_var.reset(token)


def latency_bucket_ms(latency_ms: Optional[float]) -> str:
    if latency_ms is None:
        return "unknown"
    for upper, label in _LATENCY_BUCKETS:
        if latency_ms < upper:
            return label
    return ">=1000ms"


def code_hint(code: str) -> str:
    """Redact a code for logs, keeping only the last 4 characters."""
    if not code:
        return ""
    return f"***{code[-4:]}"


def _timestamp(record: logging.LogRecord) -> str:
    return datetime.fromtimestamp(record.created, timezone.utc).isoformat().replace("+00:00", "Z")


def _structured_fields(record: logging.LogRecord) -> Dict[str, object]:
    fields = {}
    for key in _STRUCTURED_KEYS:
        value = getattr(record, key, None)
        if value is not None:
            fields[key] = value
    return fields


class RequestIdFilter(logging.Filter):
    """Fill in request_id from context when the caller did not pass one."""

    def filter(self, record: logging.LogRecord) -> bool:
        if getattr(record, "request_id", None) is None:
            record.request_id = get_request_id()
        return True


class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "timestamp": _timestamp(record),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "request_id": getattr(record, "request_id", None),
        }
        payload.update(_structured_fields(record))
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)


class PrettyFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        rid = getattr(record, "request_id", None)
        rid_part = f" [rid={rid}]" if rid else ""
        fields = " ".join(f"{k}={v}" for k, v in _structured_fields(record).items())
        line = f"{_timestamp(record)} {record.levelname} [{LOGGER_NAME}]{rid_part} {record.getMessage()}"
        if fields:
            line = f"{line} {fields}"
        if record.exc_info:
            line = f"{line}\n{self.formatException(record.exc_info)}"
        return line


def configure_logging(env: str = "development", level: str = "INFO") -> None:
    """Install one stdout handler on the palmmatch logger."""
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JsonFormatter() if env.lower() == "production" else PrettyFormatter())
    handler.addFilter(RequestIdFilter())

    logger.handlers = [handler]
    logger.propagate = True

    # Keep uvicorn's own access/error lines out of ours
    logging.getLogger("uvicorn").propagate = False
    logging.getLogger("uvicorn.error").propagate = False


def _safe_truncate(value, limit: int = _MAX_FIELD_LENGTH):
    if isinstance(value, (bool, int, float)) or value is None:
        return value
    try:
        text = str(value)
    except Exception:
        return "<unserializable>"
    if len(text) <= limit:
        return text
    return text[:limit] + "...<truncated>"


def log_event(
    level: str,
    msg: str,
    *,
    request_id: Optional[str] = None,
    party_id: Optional[str] = None,
    event_type: Optional[str] = None,
    error_code: Optional[str] = None,
    extra: Optional[Dict[str, object]] = None,
):
    """Emit one structured event on the palmmatch logger."""
    logger = logging.getLogger(LOGGER_NAME)
    if not logger.handlers:
        configure_logging(os.getenv("ENV", "development"))

    payload: Dict[str, object] = {
        "request_id": request_id or get_request_id(),
        "party_id": party_id,
    }
    if event_type:
        payload["event_type"] = event_type
    if error_code:
        payload["error_code"] = error_code
    for key, value in (extra or {}).items():
        if key in _REDACTED_KEYS:
            payload["code_hint"] = code_hint(str(value or ""))
        else:
            payload[key] = _safe_truncate(value)

    getattr(logger, level, logger.info)(msg, extra=payload)
