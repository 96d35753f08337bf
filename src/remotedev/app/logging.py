"""JSON logging with per-operation context and event-based rate limiting.

Every log line carries the trace id and agent id of the operation it was
emitted from (agent poll, agent config update, workspace mutation). Those
are set with log_context() and picked up by the formatter, so call sites
only pass what is specific to the message.
"""

import logging
import sys
import time
from collections import defaultdict, deque
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import IO, Any
from uuid import uuid4

from pythonjsonlogger import jsonlogger

from remotedev.app.config import get_settings

trace_id_ctx: ContextVar[str | None] = ContextVar("trace_id", default=None)
agent_id_ctx: ContextVar[str | None] = ContextVar("agent_id", default=None)

# Fields the formatter fills from context when the record has none
_CONTEXT_FIELDS = {"trace_id": trace_id_ctx, "agent_id": agent_id_ctx}


def get_trace_id() -> str | None:
    return trace_id_ctx.get()


@contextmanager
def log_context(agent_id: str | None = None, trace_id: str | None = None) -> Iterator[str]:
    """Scope trace id (and agent id) for everything logged inside the block.

    An enclosing trace id is reused unless one is passed explicitly, so a
    service call made from inside a poll stays on the poll's trace.

    Yields:
        The active trace id
    """
    tid = trace_id or trace_id_ctx.get() or uuid4().hex
    trace_token = trace_id_ctx.set(tid)
    agent_token = agent_id_ctx.set(agent_id) if agent_id is not None else None
    try:
        yield tid
    finally:
        trace_id_ctx.reset(trace_token)
        if agent_token is not None:
            agent_id_ctx.reset(agent_token)


class RateLimitFilter(logging.Filter):
    """Caps how often one structured event is emitted per window.

    Records are grouped by their `event` extra (falling back to logger name
    and message template), so a storm of report_ignored lines from a noisy
    agent collapses while other events keep flowing. WARNING and above are
    never dropped. The first record over the cap is kept and tagged
    `rate_limited=True`.
    """

    def __init__(self, rate_per_minute: int = 100, window_seconds: float = 60.0) -> None:
        super().__init__()
        self.rate_per_minute = rate_per_minute
        self.window_seconds = window_seconds
        self._seen: dict[str, deque[float]] = defaultdict(deque)
        self._tagged: set[str] = set()

    @staticmethod
    def _key(record: logging.LogRecord) -> str:
        event = getattr(record, "event", None)
        if event is not None:
            return f"event:{event}"
        return f"{record.name}:{record.msg}"

    def filter(self, record: logging.LogRecord) -> bool:
        if record.levelno >= logging.WARNING:
            return True

        key = self._key(record)
        now = time.monotonic()
        seen = self._seen[key]
        while seen and now - seen[0] >= self.window_seconds:
            seen.popleft()

        if len(seen) < self.rate_per_minute:
            self._tagged.discard(key)
            seen.append(now)
            return True

        if key in self._tagged:
            return False
        self._tagged.add(key)
        record.rate_limited = True
        return True


class CustomJsonFormatter(jsonlogger.JsonFormatter):
    """JSON formatter adding schema version, service name and log context."""

    def __init__(self, *args: Any, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        settings = get_settings()
        self._schema_version = settings.logging.schema_version
        self._service = settings.logging.service_name

    def add_fields(
        self,
        log_record: dict[str, Any],
        record: logging.LogRecord,
        message_dict: dict[str, Any],
    ) -> None:
        super().add_fields(log_record, record, message_dict)

        log_record["timestamp"] = datetime.fromtimestamp(
            record.created, tz=timezone.utc
        ).isoformat()
        log_record["level"] = record.levelname
        log_record["logger"] = record.name
        log_record["schema_version"] = self._schema_version
        log_record["service"] = self._service

        for field, var in _CONTEXT_FIELDS.items():
            value = var.get()
            if value is not None:
                log_record.setdefault(field, value)

        if record.exc_info:
            log_record["exception"] = self.formatException(record.exc_info)


def setup_logging(level: int | None = None, stream: IO[str] | None = None) -> logging.Handler:
    """Install the JSON handler on the root logger.

    Args:
        level: Log level. If None, uses LOGGING_LEVEL from settings.
        stream: Output stream (stdout by default)

    Returns:
        The installed handler
    """
    settings = get_settings()

    if level is None:
        level = getattr(logging, settings.logging.level.upper(), logging.INFO)

    handler = logging.StreamHandler(stream or sys.stdout)
    handler.setFormatter(CustomJsonFormatter())
    handler.addFilter(RateLimitFilter(settings.logging.rate_limit_per_minute))

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(level)

    # SQL echo is controlled by DATABASE_ECHO, not the root level
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("aiosqlite").setLevel(logging.WARNING)
    return handler
