"""
structlog setup for the jetpack library.

The library only emits events; the host application decides how they are
rendered by calling ``setup_logging`` (or ``setup_logging_from_settings``)
once at startup. Events carry the library version and, inside a pipeline
call, the ``operation_id`` and ``stage`` of that call.
"""

import sys
import time
import logging
from contextvars import ContextVar
from functools import wraps
from typing import Any, Dict, List, Optional

import structlog

from jetpack import __version__
from jetpack.core.config import Settings

operation_id_var: ContextVar[Optional[str]] = ContextVar("operation_id", default=None)
stage_var: ContextVar[Optional[str]] = ContextVar("stage", default=None)

# Third-party loggers that are chatty at INFO
QUIET_LOGGERS = ("httpx", "httpcore", "azure", "asyncio")


def bind_operation(
    logger: logging.Logger,
    method_name: str,
    event_dict: Dict[str, Any]
) -> Dict[str, Any]:
    """Stamp the library version and the current operation onto an event."""
    event_dict["version"] = __version__

    operation_id = operation_id_var.get()
    if operation_id:
        event_dict["operation_id"] = operation_id

    # An explicit stage= on the call wins over the context
    stage = stage_var.get()
    if stage:
        event_dict.setdefault("stage", stage)

    return event_dict


def _processors(json_format: bool) -> List[Any]:
    renderer = (
        structlog.processors.JSONRenderer()
        if json_format
        else structlog.dev.ConsoleRenderer(colors=True)
    )
    return [
        structlog.stdlib.filter_by_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        bind_operation,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        renderer,
    ]


def setup_logging(log_level: str = "INFO", json_format: bool = True) -> None:
    """
    Route structlog through stdlib logging on stdout.

    Args:
        log_level: Name of a stdlib level (DEBUG, INFO, WARNING, ERROR)
        json_format: JSON lines when True, coloured console output otherwise
    """
    level = logging.getLevelName(log_level.upper())
    if not isinstance(level, int):
        raise ValueError(f"Unknown log level: {log_level}")

    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=level)
    # basicConfig leaves an already configured root logger alone
    logging.getLogger().setLevel(level)
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    structlog.configure(
        processors=_processors(json_format),
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


def setup_logging_from_settings(settings: Settings) -> None:
    """Configure logging from ``LOG_LEVEL`` and ``LOG_FORMAT_JSON``."""
    setup_logging(log_level=settings.LOG_LEVEL, json_format=settings.LOG_FORMAT_JSON)


def get_logger(name: str = __name__) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)


class LogContext:
    """
    Scope an operation id (and optionally a stage) to a block.

    Usage:
        with LogContext(operation_id=uuid.uuid4().hex) as context:
            context.set_stage("render")
            ...
    """

    def __init__(self, operation_id: Optional[str] = None, stage: Optional[str] = None):
        self.operation_id = operation_id
        self.stage = stage
        self._tokens: Dict[ContextVar, Any] = {}

    def __enter__(self) -> "LogContext":
        if self.operation_id:
            self._tokens[operation_id_var] = operation_id_var.set(self.operation_id)
        if self.stage:
            self.set_stage(self.stage)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> bool:
        # The first token of each var restores the value from before the block
        for var, token in reversed(list(self._tokens.items())):
            var.reset(token)
        self._tokens.clear()
        return False

    def set_stage(self, stage: str) -> None:
        token = stage_var.set(stage)
        self._tokens.setdefault(stage_var, token)


def with_logging(stage: str):
    """
    Run a blocking stage function under ``stage`` and log how it went.

    Emits ``stage_completed`` (debug) or ``stage_failed`` (error) with the
    elapsed ``duration_ms``; exceptions propagate unchanged.
    """
    def decorator(func):
        logger = get_logger(func.__module__)

        @wraps(func)
        def wrapper(*args, **kwargs):
            token = stage_var.set(stage)
            started = time.perf_counter()
            try:
                result = func(*args, **kwargs)
            except Exception as e:
                logger.error(
                    "stage_failed",
                    duration_ms=int((time.perf_counter() - started) * 1000),
                    error=str(e),
                    error_type=type(e).__name__
                )
                raise
            else:
                logger.debug("stage_completed", duration_ms=int((time.perf_counter() - started) * 1000))
                return result
            finally:
                stage_var.reset(token)

        return wrapper

    return decorator
