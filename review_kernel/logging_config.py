"""
Structured JSON logging for the review kernel.

Every record is rendered as one JSON object per line:

    {"ts": "...", "level": "INFO", "logger": "review_kernel.services.review",
     "message": "review_accepted", "token_id": "12", "actor": "customer:review_token:12",
     "report_period_id": 4}

Request-scoped fields (who is acting, which token or assignment is being
worked on) live in ``LogContext`` and are stamped onto every record emitted
while they are bound.  Bound values win over same-named extras.

Token strings are credentials.  Services log token ids only; any extra or
exception attribute named in ``REDACTED_FIELDS`` is replaced before output.
"""

__all__ = [
    "CONTEXT_FIELDS",
    "REDACTED_FIELDS",
    "StructuredFormatter",
    "LogContext",
    "get_logger",
    "configure_logging",
    "reset_logging",
]

import json
import logging
import sys
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import UTC, date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any
from uuid import UUID

CONTEXT_FIELDS: tuple[str, ...] = (
    "correlation_id",
    "actor",
    "token_id",
    "assignment_id",
    "trace_id",
)

REDACTED_FIELDS: frozenset[str] = frozenset({"token", "access_token", "link_token"})

_REDACTED = "[redacted]"

_LOGGER_PREFIX = "review_kernel"


class LogContext:
    """Request-scoped log fields backed by contextvars (thread and task safe)."""

    _vars: dict[str, ContextVar[str | None]] = {
        name: ContextVar(f"review_log_{name}", default=None) for name in CONTEXT_FIELDS
    }

    @classmethod
    def _var(cls, name: str) -> ContextVar[str | None]:
        try:
            return cls._vars[name]
        except KeyError:
            raise ValueError(f"Unknown log context field: {name}") from None

    @classmethod
    def set(cls, **fields: Any) -> None:
        """Set fields for the rest of the current context; None values are ignored."""
        for name, value in fields.items():
            var = cls._var(name)
            if value is not None:
                var.set(str(value))

    @classmethod
    def get_all(cls) -> dict[str, str]:
        return {
            name: value
            for name, var in cls._vars.items()
            if (value := var.get()) is not None
        }

    @classmethod
    def clear(cls) -> None:
        for var in cls._vars.values():
            var.set(None)

    @classmethod
    @contextmanager
    def bind(cls, **fields: Any) -> Iterator[type["LogContext"]]:
        """
        Bind fields for the duration of a ``with`` block.

        Values are stringified.  On exit every field is restored to what it
        was before, including unset.
        """
        pending = [(cls._var(name), value) for name, value in fields.items()]
        resets = [(var, var.set(str(value))) for var, value in pending if value is not None]
        try:
            yield cls
        finally:
            for var, token in reversed(resets):
                var.reset(token)


# Every attribute a bare LogRecord carries; anything else came in via ``extra``.
_RECORD_ATTRS: frozenset[str] = frozenset(
    vars(logging.LogRecord("", 0, "", 0, "", (), None))
) | {"message", "taskName"}


def _json_default(obj: Any) -> Any:
    if isinstance(obj, (datetime, date)):
        return obj.isoformat()
    if isinstance(obj, Enum):
        return obj.value
    if isinstance(obj, (UUID, Decimal)):
        return str(obj)
    if isinstance(obj, (set, frozenset)):
        return sorted(obj, key=str)
    return str(obj)


def _scrub(key: str, value: Any) -> Any:
    return _REDACTED if key in REDACTED_FIELDS else value


class StructuredFormatter(logging.Formatter):
    """Formats each log record as a single JSON line."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        context = LogContext.get_all()

        for key, value in vars(record).items():
            if key not in _RECORD_ATTRS and key not in context:
                payload[key] = _scrub(key, value)
        payload.update(context)

        if record.exc_info and record.exc_info[1] is not None:
            payload.update(self._exception_fields(record))

        return json.dumps(payload, default=_json_default)

    def _exception_fields(self, record: logging.LogRecord) -> dict[str, Any]:
        exc = record.exc_info[1]
        fields: dict[str, Any] = {
            "exc_type": type(exc).__name__,
            "exc_message": str(exc),
        }
        code = getattr(exc, "code", None)
        if code is not None:
            fields["exc_code"] = code
        for key, value in vars(exc).items():
            if not key.startswith("_"):
                fields[f"exc_{key}"] = _scrub(key, value)
        fields["traceback"] = self.formatException(record.exc_info)
        return fields


def get_logger(name: str) -> logging.Logger:
    """Logger under the ``review_kernel`` namespace, e.g. ``services.review``."""
    return logging.getLogger(f"{_LOGGER_PREFIX}.{name}")


_configured = False
_lock = threading.Lock()


def configure_logging(
    *,
    level: int = logging.INFO,
    stream: Any = None,
    handler: logging.Handler | None = None,
) -> None:
    """
    Attach one JSON handler to the ``review_kernel`` logger.

    Only the first call has an effect; later calls return without touching
    the level or handlers.  The logger does not propagate, so host
    applications see kernel records only through this handler.
    """
    global _configured
    with _lock:
        if _configured:
            return
        _configured = True

    kernel_logger = logging.getLogger(_LOGGER_PREFIX)
    kernel_logger.setLevel(level)
    kernel_logger.propagate = False

    target = handler if handler is not None else logging.StreamHandler(stream or sys.stderr)
    target.setFormatter(StructuredFormatter())
    kernel_logger.addHandler(target)


def reset_logging() -> None:
    """Undo ``configure_logging``. Tests only."""
    global _configured
    with _lock:
        _configured = False
    kernel_logger = logging.getLogger(_LOGGER_PREFIX)
    kernel_logger.handlers.clear()
    kernel_logger.setLevel(logging.WARNING)
