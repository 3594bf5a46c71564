"""
Logging setup for the seating engine.

Records carry the engine's identifiers (the background task name and the
table, booking or waiting entry being worked on) as fixed fields, so a
display incident can be traced across the request handlers and the
reconciliation and notification loops.
"""
import logging
import sys
from typing import Any, Dict, Optional, Sequence, Tuple

from pythonjsonlogger.json import JsonFormatter

from core.config import settings


# Always present in JSON output, null when a record has no value for them
CONTEXT_FIELDS: Tuple[str, ...] = ("task", "table_id", "booking_id", "waiting_list_id")

# Loggers of the background loops; these run every minute and can be noisy
LOOP_LOGGERS: Tuple[str, ...] = (
    "services.periodic",
    "services.reconciliation",
    "services.notification_scheduler",
)


def record_context(record: logging.LogRecord) -> Dict[str, Optional[str]]:
    """Engine context attached to a record through ``extra``."""
    return {field: getattr(record, field, None) for field in CONTEXT_FIELDS}


class SeatingJsonFormatter(JsonFormatter):
    """JSON lines with the engine context promoted to top-level keys."""

    def add_fields(
        self,
        log_record: Dict[str, Any],
        record: logging.LogRecord,
        message_dict: Dict[str, Any]
    ) -> None:
        super().add_fields(log_record, record, message_dict)

        log_record['timestamp'] = self.formatTime(record, self.datefmt)
        log_record['level'] = record.levelname
        log_record['logger'] = record.name
        log_record['source'] = f"{record.module}:{record.lineno}"
        log_record['service'] = settings.app_name
        log_record['environment'] = settings.app_env
        log_record.update(record_context(record))


class ContextFormatter(logging.Formatter):
    """Plain development lines, suffixed with whatever context is set."""

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        context = " ".join(
            f"{key}={value}" for key, value in record_context(record).items() if value is not None
        )
        return f"{line} [{context}]" if context else line


def build_formatter(use_json: bool) -> logging.Formatter:
    if use_json:
        return SeatingJsonFormatter(
            fmt='%(timestamp)s %(level)s %(name)s %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        )
    return ContextFormatter(
        fmt='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )


def setup_logging(stream=None) -> None:
    """
    Configure application logging.

    JSON lines in staging and production, plain lines in development. The
    loop loggers get ``settings.loop_log_level`` so the minute-by-minute
    reminder checks can be quietened without hiding request logs.
    """
    use_json = settings.app_env in ["production", "staging"]

    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, settings.log_level))
    root_logger.handlers.clear()

    handler = logging.StreamHandler(stream or sys.stdout)
    handler.setFormatter(build_formatter(use_json))
    root_logger.addHandler(handler)

    set_levels(LOOP_LOGGERS, settings.loop_log_level)
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(
        logging.INFO if settings.db_echo else logging.WARNING
    )

    logging.info(
        "Logging configured",
        extra={"json_logging": use_json, "loop_log_level": settings.loop_log_level}
    )


def set_levels(names: Sequence[str], level: str) -> None:
    for name in names:
        logging.getLogger(name).setLevel(getattr(logging, level))


class LogContext:
    """
    Binds engine context to the records of one unit of work.

    Used by the periodic runner so every record of a run carries the task
    name; an exception escaping the block is logged with that context.
    """

    def __init__(self, logger: logging.Logger, **context: Any):
        unknown = set(context) - set(CONTEXT_FIELDS)
        if unknown:
            raise ValueError(f"Unknown log context fields: {sorted(unknown)}")
        self.logger = logger
        self.context = context

    def __enter__(self) -> 'LogContext':
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        if exc_type is not None:
            self.logger.error(
                f"Unhandled {exc_type.__name__}",
                extra=self.context,
                exc_info=(exc_type, exc_val, exc_tb)
            )

    def log(self, level: str, message: str, **context: Any) -> None:
        getattr(self.logger, level.lower())(message, extra={**self.context, **context})
