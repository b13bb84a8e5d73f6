"""
Structured JSON logging for the ledger kernel.

Every record is one JSON object per line.  Fields passed with
``extra={...}`` and the fields bound in ``LogContext`` appear at the top
level, next to ``ts``, ``level``, ``logger`` and ``message``.  When a
``LedgerKernelError`` is logged with ``exc_info`` its ``code`` and its
structured attributes are flattened into ``exc_*`` keys.

Usage::

    logger = get_logger("services.voucher")
    with LogContext.bind(voucher_id=voucher.id, actor_id=approved_by):
        logger.info("voucher_approved", extra={"voucher_no": voucher.voucher_no})
"""

__all__ = [
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
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import UTC, date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Iterator
from uuid import UUID

from ledger_kernel.exceptions import LedgerKernelError

LOGGER_NAMESPACE = "ledger_kernel"

CONTEXT_FIELDS = ("correlation_id", "actor_id", "voucher_id", "partner_id")

_context: ContextVar[dict[str, str]] = ContextVar("ledger_log_context", default={})


def _context_updates(fields: dict[str, Any]) -> dict[str, str]:
    unknown = set(fields) - set(CONTEXT_FIELDS)
    if unknown:
        raise TypeError(f"Unknown log context field(s): {sorted(unknown)}")
    return {name: str(value) for name, value in fields.items() if value is not None}


class LogContext:
    """
    Request-scoped log fields (correlation, actor, voucher, partner).

    Backed by a single ContextVar, so values follow the current thread or
    asyncio task.  The stored dict is replaced, never mutated in place.
    """

    @staticmethod
    def set(**fields: Any) -> None:
        """Set the given fields.  ``None`` values leave a field unchanged."""
        _context.set({**_context.get(), **_context_updates(fields)})

    @staticmethod
    def get_all() -> dict[str, str]:
        return dict(_context.get())

    @staticmethod
    def clear() -> None:
        _context.set({})

    @staticmethod
    @contextmanager
    def bind(**fields: Any) -> Iterator[None]:
        """Set fields for the duration of a ``with`` block, then restore."""
        token = _context.set({**_context.get(), **_context_updates(fields)})
        try:
            yield
        finally:
            _context.reset(token)


# Attributes every LogRecord has; anything else on a record came from extra=.
_RECORD_ATTRS: frozenset[str] = frozenset(
    vars(logging.LogRecord("", 0, "", 0, "", (), None))
) | {"message", "taskName"}


def _json_default(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, (UUID, Decimal)):
        return str(value)
    return repr(value)


def _exception_fields(exc: BaseException) -> dict[str, Any]:
    fields: dict[str, Any] = {
        "exc_type": type(exc).__name__,
        "exc_message": str(exc),
    }
    if isinstance(exc, LedgerKernelError):
        fields["exc_code"] = exc.code
        for name, value in vars(exc).items():
            if not name.startswith("_"):
                fields[f"exc_{name}"] = value
    return fields


class StructuredFormatter(logging.Formatter):
    """Formats each log record as a single JSON line."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            **_context.get(),
        }
        payload.update(
            (key, value)
            for key, value in vars(record).items()
            if key not in _RECORD_ATTRS and key not in payload
        )
        if record.exc_info and record.exc_info[1] is not None:
            payload.update(_exception_fields(record.exc_info[1]))
            payload["traceback"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=_json_default)


def get_logger(name: str) -> logging.Logger:
    """Logger named ``ledger_kernel.<name>``."""
    return logging.getLogger(f"{LOGGER_NAMESPACE}.{name}")


_configured = False
_lock = threading.Lock()


def configure_logging(
    *,
    level: int = logging.INFO,
    stream: Any = None,
    handler: logging.Handler | None = None,
) -> None:
    """
    Attach a JSON handler to the ``ledger_kernel`` logger.

    Only the first call has an effect until ``reset_logging()``.
    """
    global _configured
    with _lock:
        if _configured:
            return
        _configured = True

    if handler is None:
        handler = logging.StreamHandler(stream or sys.stderr)
    handler.setFormatter(StructuredFormatter())

    namespace_logger = logging.getLogger(LOGGER_NAMESPACE)
    namespace_logger.setLevel(level)
    namespace_logger.propagate = False
    namespace_logger.addHandler(handler)


def reset_logging() -> None:
    """Detach handlers and allow configure_logging() again. Tests only."""
    global _configured
    with _lock:
        _configured = False
    namespace_logger = logging.getLogger(LOGGER_NAMESPACE)
    namespace_logger.handlers.clear()
    namespace_logger.setLevel(logging.WARNING)
    namespace_logger.propagate = True
