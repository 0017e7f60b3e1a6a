"""Structured logging bootstrap.

Configures the root logger so that every ``logging.getLogger(__name__)``
call across the service (and uvicorn) writes either:

* **JSON lines** (``json_output=True``, default), one object per record,
  ready for any log shipper.
* **Human-readable** (``json_output=False``) coloured lines for local
  development.

The current OpenTelemetry ``trace_id`` / ``span_id`` are attached to
every record, so a failing pipeline step in the logs can be matched to
its ``pipeline.step`` span.
"""

from __future__ import annotations

import logging
import sys

from opentelemetry import trace

from playbook.configs.system import LoggingConfig


class _TraceContextFilter(logging.Filter):
    """Adds OTEL trace/span IDs to each log record."""

    def filter(self, record: logging.LogRecord) -> bool:
        ctx = trace.get_current_span().get_span_context()
        if ctx is not None and ctx.is_valid:
            record.trace_id = format(ctx.trace_id, "032x")  # type: ignore[attr-defined]
            record.span_id = format(ctx.span_id, "016x")  # type: ignore[attr-defined]
        else:
            record.trace_id = ""  # type: ignore[attr-defined]
            record.span_id = ""  # type: ignore[attr-defined]
        return True


_DEV_FORMAT = "%(levelprefix)s %(asctime)s %(name)s  %(message)s"
_DEV_DATEFMT = "%H:%M:%S"

_QUIET_LOGGERS = ("httpx", "httpcore", "openai", "opentelemetry")


def _build_formatter(config: LoggingConfig) -> logging.Formatter:
    if config.json_output:
        from pythonjsonlogger.json import JsonFormatter

        return JsonFormatter(
            fmt="%(asctime)s %(levelname)s %(name)s %(message)s "
            "%(trace_id)s %(span_id)s",
            rename_fields={
                "asctime": "timestamp",
                "levelname": "level",
                "name": "logger",
            },
            defaults={"trace_id": "", "span_id": ""},
        )

    from uvicorn.logging import DefaultFormatter

    return DefaultFormatter(fmt=_DEV_FORMAT, datefmt=_DEV_DATEFMT, use_colors=True)


def setup_logging(config: LoggingConfig | None = None) -> None:
    """Configure the root logger (call once at startup, before lifespan)."""
    if config is None:
        config = LoggingConfig()

    root = logging.getLogger()
    root.setLevel(config.level.upper())

    handler = logging.StreamHandler(sys.stdout)
    handler.addFilter(_TraceContextFilter())
    handler.setFormatter(_build_formatter(config))
    root.handlers = [handler]

    for name in ("uvicorn", "uvicorn.error", "uvicorn.access"):
        uvi = logging.getLogger(name)
        uvi.handlers = [handler]
        uvi.propagate = False

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
