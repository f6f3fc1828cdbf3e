"""Observability infrastructure for structured logging."""

from novelsync.infrastructure.observability.logging import (
    CompactExceptionFormatter,
    CustomJsonFormatter,
    TaskIdFilter,
    configure_logging,
    get_task_id,
    task_id_var,
)

__all__ = [
    "CompactExceptionFormatter",
    "CustomJsonFormatter",
    "TaskIdFilter",
    "configure_logging",
    "get_task_id",
    "task_id_var",
]
