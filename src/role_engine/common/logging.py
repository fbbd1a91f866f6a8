"""Console logging for the role engine.

Log messages are dotted event names (``roles.delete.blocked``) and details go
in ``extra``. The formatter prints one line per record with the request
correlation id and every extra field rendered as ``key=value``.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from contextvars import ContextVar
from datetime import UTC, datetime
from typing import Any
from uuid import UUID

from role_engine.settings import Settings

_CORRELATION_ID: ContextVar[str | None] = ContextVar(
    "role_engine_correlation_id",
    default=None,
)

# Everything a bare LogRecord carries is owned by logging itself.
_RECORD_ATTRS = frozenset(logging.makeLogRecord({}).__dict__) | {
    "message",
    "asctime",
    "correlation_id",
    "taskName",
    "color_message",
}

_CONFIGURED_FLAG = "_role_engine_configured"
_PASSTHROUGH_LOGGERS = ("uvicorn", "uvicorn.error", "uvicorn.access", "sqlalchemy", "httpx")


class ConsoleLogFormatter(logging.Formatter):
    """Single-line formatter, e.g.::

        2026-10-19T09:14:02.511Z INFO  role_engine.features.roles.service [cid=1234abcd]
        roles.create.success role_id=0192... role_name="Billing Clerk" actor=ops
    """

    def __init__(self) -> None:
        super().__init__(
            fmt="%(asctime)s %(levelname)-5s %(name)s [cid=%(correlation_id)s] %(message)s"
        )

    def formatTime(self, record: logging.LogRecord, datefmt: str | None = None) -> str:
        stamp = datetime.fromtimestamp(record.created, tz=UTC)
        return stamp.strftime("%Y-%m-%dT%H:%M:%S") + f".{int(record.msecs):03d}Z"

    def format(self, record: logging.LogRecord) -> str:
        record.correlation_id = (
            getattr(record, "correlation_id", None) or _CORRELATION_ID.get() or "-"
        )
        line = super().format(record)
        fields = [
            f"{key}={_render(value)}"
            for key, value in record.__dict__.items()
            if key not in _RECORD_ATTRS and not key.startswith("_")
        ]
        return " ".join([line, *fields]) if fields else line


def setup_logging(settings: Settings) -> None:
    """Install the console handler on the root logger.

    The first call replaces the root handlers; later calls only change the
    level (``ROLE_ENGINE_LOGGING_LEVEL``).
    """

    root = logging.getLogger()
    level = logging.getLevelName(settings.logging_level.upper())
    if not isinstance(level, int):
        level = logging.INFO

    if getattr(root, _CONFIGURED_FLAG, False):
        root.setLevel(level)
        return

    handler = logging.StreamHandler()
    handler.setFormatter(ConsoleLogFormatter())
    root.handlers = [handler]
    root.setLevel(level)

    for name in _PASSTHROUGH_LOGGERS:
        third_party = logging.getLogger(name)
        third_party.handlers.clear()
        third_party.propagate = True

    setattr(root, _CONFIGURED_FLAG, True)


def bind_request_context(correlation_id: str | None) -> None:
    _CORRELATION_ID.set(correlation_id)


def clear_request_context() -> None:
    _CORRELATION_ID.set(None)


def log_context(
    *,
    role_id: UUID | str | None = None,
    role_name: str | None = None,
    actor: str | None = None,
    **extra: Any,
) -> dict[str, Any]:
    """Build the ``extra`` mapping for a log call.

    The role fields are dropped when unset; anything passed through ``extra``
    is kept as given, ``None`` included.
    """

    ctx: dict[str, Any] = {}
    if role_id is not None:
        ctx["role_id"] = str(role_id)
    if role_name is not None:
        ctx["role_name"] = role_name
    if actor is not None:
        ctx["actor"] = actor
    ctx.update(extra)
    return ctx


def _render(value: Any) -> str:
    if value is None:
        return "null"
    if isinstance(value, str):
        return f'"{value}"' if not value or any(ch.isspace() for ch in value) else value
    if isinstance(value, (set, frozenset)):
        return ",".join(sorted(_render(item) for item in value))
    if isinstance(value, Iterable) and not isinstance(value, (bytes, dict)):
        return ",".join(_render(item) for item in value)
    return str(value)


__all__ = [
    "ConsoleLogFormatter",
    "bind_request_context",
    "clear_request_context",
    "log_context",
    "setup_logging",
]
