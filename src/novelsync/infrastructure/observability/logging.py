"""Logging configuration with JSON output and task attribution."""

import contextvars
import logging
import sys
import traceback
from pathlib import Path
from typing import Any

from pythonjsonlogger import jsonlogger

# Hey future me, this is how a log line finds its task! TaskQueue sets task_id_var around
# every handler call, and because asyncio copies the context into child tasks, the sync
# engine's worker tasks inherit it too. "" means "not inside a queued task".
task_id_var: contextvars.ContextVar[str] = contextvars.ContextVar("task_id", default="")


def get_task_id() -> str:
    """Id of the queued task currently running in this context, or ""."""
    return task_id_var.get()


class TaskIdFilter(logging.Filter):
    """Attach task_id to every record so formatters can print it."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.task_id = get_task_id()
        return True


class CompactExceptionFormatter(logging.Formatter):
    """Human-readable formatter with a compact exception chain.

    Only frames from our own package are shown, root cause first:

    ERROR   │ novelsync.application.services.sync_engine:260 │ Updating X failed after 3 attempt(s)
    ╰─► ConnectError: All connection attempts failed
    ╰─► NetworkError: All connection attempts failed
        File "http_client.py", line 98, in _request
          raise NetworkError(...) from e
    """

    package_marker = "novelsync"

    def format(self, record: logging.LogRecord) -> str:
        task_id = getattr(record, "task_id", "")
        record.task_tag = f"task={task_id[:8]} │ " if task_id else ""
        return super().format(record)

    def formatException(self, ei: Any) -> str:
        _, exc_value, _ = ei
        if exc_value is None:
            return ""

        chain: list[BaseException] = []
        current: BaseException | None = exc_value
        while current is not None and current not in chain:
            chain.append(current)
            current = current.__cause__ or current.__context__
        chain.reverse()

        lines: list[str] = []
        for exc in chain:
            lines.append(f"╰─► {exc.__class__.__name__}: {exc}")
            if exc.__traceback__ is None:
                continue
            for frame in traceback.extract_tb(exc.__traceback__):
                if "/site-packages/" in frame.filename or self.package_marker not in frame.filename:
                    continue
                lines.append(
                    f'    File "{Path(frame.filename).name}", line {frame.lineno}, in {frame.name}'
                )
                if frame.line:
                    lines.append(f"      {frame.line.strip()}")
        return "\n".join(lines)


class CustomJsonFormatter(jsonlogger.JsonFormatter):  # type: ignore[name-defined,misc]
    """JSON formatter with the fields log aggregation wants."""

    def add_fields(
        self,
        log_record: dict[str, Any],
        record: logging.LogRecord,
        message_dict: dict[str, Any],
    ) -> None:
        super().add_fields(log_record, record, message_dict)

        log_record["timestamp"] = self.formatTime(record, self.datefmt)
        log_record["level"] = record.levelname
        log_record["logger"] = record.name
        log_record["module"] = record.module
        log_record["function"] = record.funcName
        log_record["line"] = record.lineno

        task_id = getattr(record, "task_id", "")
        if task_id:
            log_record["task_id"] = task_id

        if record.exc_info:
            log_record["exc_info"] = self.formatException(record.exc_info)
        if record.stack_info:
            log_record["stack_info"] = self.formatStack(record.stack_info)


# Listen future me, call this ONCE at startup (EngineContext does). It replaces every
# handler on the root logger, so calling it again (tests) is safe and doesn't duplicate.
def configure_logging(
    log_level: str = "INFO",
    json_format: bool = False,
    app_name: str = "novelsync",
) -> None:
    """Configure root logging.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_format: Emit JSON lines instead of the human-readable format
        app_name: Application name included in the startup record
    """
    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    level = getattr(logging, log_level.upper(), logging.INFO)
    root_logger.setLevel(level)

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    handler.addFilter(TaskIdFilter())

    if json_format:
        formatter: logging.Formatter = CustomJsonFormatter(
            "%(timestamp)s %(level)s %(name)s %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    else:
        formatter = CompactExceptionFormatter(
            fmt="%(asctime)s │ %(levelname)-7s │ %(task_tag)s%(name)s:%(lineno)d │ %(message)s",
            datefmt="%H:%M:%S",
        )

    handler.setFormatter(formatter)
    root_logger.addHandler(handler)

    # Third-party loggers are chattier than our own code at INFO.
    for noisy in ("httpx", "httpcore", "aiosqlite", "asyncio", "sqlalchemy.engine"):
        logging.getLogger(noisy).setLevel(logging.WARNING)

    logging.getLogger(__name__).info(
        "Logging configured",
        extra={"app_name": app_name, "log_level": log_level, "json_format": json_format},
    )
