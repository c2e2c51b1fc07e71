"""Logging setup: JSON or compact console output, tagged with the session's correlation id."""

import contextvars
import logging
import sys
import time
import traceback
import uuid
from collections.abc import AsyncIterator, Iterator
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any

from pythonjsonlogger import jsonlogger

# Hey future me, one correlation id per ScrobbleSession. Tasks spawned by asyncio.gather copy
# the current context, so every fan-out tag/image lookup logs under its session's id.
_session_id: contextvars.ContextVar[str] = contextvars.ContextVar(
    "scrobblestats_correlation_id", default=""
)

# Loggers that would otherwise print a line per upstream request
_CHATTY_LOGGERS = ("httpx", "httpcore", "asyncio")

_CONSOLE_FORMAT = "%(asctime)s │ %(levelname)-7s │ %(name)s:%(lineno)d │ %(message)s"
_JSON_FORMAT = "%(timestamp)s %(level)s %(name)s %(message)s"


def get_correlation_id() -> str:
    """Correlation id of the current session ("" outside a session)."""
    return _session_id.get()


def set_correlation_id(correlation_id: str | None = None) -> str:
    """Bind a correlation id to the current context, generating a uuid4 when None.

    Returns:
        The id now in effect
    """
    value = correlation_id if correlation_id is not None else str(uuid.uuid4())
    _session_id.set(value)
    return value


class CorrelationIdFilter(logging.Filter):
    """Stamps record.correlation_id so both formatters can print it."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.correlation_id = _session_id.get()
        return True


def _exception_chain(exc: BaseException) -> list[BaseException]:
    """Root cause first, the exception that was actually logged last."""
    chain: list[BaseException] = []
    current: BaseException | None = exc
    while current is not None and current not in chain:
        chain.append(current)
        current = current.__cause__ or current.__context__
    return chain[::-1]


def _own_frames(exc: BaseException) -> Iterator[traceback.FrameSummary]:
    if exc.__traceback__ is None:
        return
    for frame in traceback.extract_tb(exc.__traceback__):
        if "scrobblestats" in frame.filename and "site-packages" not in frame.filename:
            yield frame


class CompactExceptionFormatter(logging.Formatter):
    """Console formatter that prints exception chains without library frames.

    A failed album.getInfo looks like:
        ╰─► ConnectError: All connection attempts failed
        ╰─► ExternalServiceError: Last.fm album.getInfo request failed: ...
            File "lastfm_client.py", line 97, in _make_request
    """

    def formatException(self, ei: Any) -> str:
        exc = ei[1]
        if exc is None:
            return ""

        out: list[str] = []
        for link in _exception_chain(exc):
            out.append(f"╰─► {type(link).__name__}: {link}")
            for frame in _own_frames(link):
                out.append(f'    File "{Path(frame.filename).name}", line {frame.lineno}, in {frame.name}')
                if frame.line:
                    out.append(f"      {frame.line.strip()}")
        return "\n".join(out)


class SessionJsonFormatter(jsonlogger.JsonFormatter):  # type: ignore[misc]
    """One JSON object per line with level, origin and correlation id."""

    def add_fields(
        self,
        log_record: dict[str, Any],
        record: logging.LogRecord,
        message_dict: dict[str, Any],
    ) -> None:
        super().add_fields(log_record, record, message_dict)
        log_record.update(
            timestamp=self.formatTime(record, self.datefmt),
            level=record.levelname,
            logger=record.name,
            location=f"{record.module}.{record.funcName}:{record.lineno}",
        )
        if getattr(record, "correlation_id", ""):
            log_record["correlation_id"] = record.correlation_id


def configure_logging(
    log_level: str = "INFO",
    json_format: bool = False,
    app_name: str = "scrobblestats",
) -> None:
    """Install a single stdout handler on the root logger.

    Safe to call repeatedly (tests, notebooks): existing root handlers are replaced.

    Args:
        log_level: DEBUG / INFO / WARNING / ERROR / CRITICAL (unknown -> INFO)
        json_format: JSON lines instead of the compact console format
        app_name: Reported in the "logging configured" line
    """
    level = logging.getLevelName(log_level.upper())
    if not isinstance(level, int):
        level = logging.INFO

    formatter: logging.Formatter
    if json_format:
        formatter = SessionJsonFormatter(_JSON_FORMAT, datefmt="%Y-%m-%dT%H:%M:%S")
    else:
        formatter = CompactExceptionFormatter(fmt=_CONSOLE_FORMAT, datefmt="%H:%M:%S")

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    handler.addFilter(CorrelationIdFilter())
    handler.setFormatter(formatter)

    root = logging.getLogger()
    for existing in list(root.handlers):
        root.removeHandler(existing)
    root.addHandler(handler)
    root.setLevel(level)

    for name in _CHATTY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    logging.getLogger(__name__).info(
        "Logging ready for %s (level=%s, json=%s)",
        app_name,
        logging.getLevelName(level),
        json_format,
    )


@asynccontextmanager
async def log_operation(
    logger: logging.Logger,
    operation: str,
    **context: Any,
) -> AsyncIterator[None]:
    """Log {operation}.started / .completed / .failed with duration_ms.

    Re-raises on failure so the caller still handles the error.

    Example:
        >>> async with log_operation(logger, "top_tags", username="rj"):
        ...     tags = await service.get_top_tags("rj")
    """
    start = time.monotonic()
    logger.info("%s.started", operation, extra=context)
    try:
        yield
    except Exception as e:
        logger.error(
            "%s.failed",
            operation,
            extra={
                **context,
                "duration_ms": int((time.monotonic() - start) * 1000),
                "error": str(e),
                "error_type": type(e).__name__,
            },
        )
        raise
    logger.info(
        "%s.completed",
        operation,
        extra={**context, "duration_ms": int((time.monotonic() - start) * 1000)},
    )
