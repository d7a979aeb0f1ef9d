"""Structured logging for the face authentication engine."""
import logging
import sys
from typing import List, Optional, TextIO

import structlog
from structlog.stdlib import ProcessorFormatter

from faceauth.core.config import settings

# Third-party loggers that report model loading at INFO
QUIET_LOGGERS = ("insightface", "onnxruntime")


def setup_logging(
    level: Optional[str] = None,
    stream: Optional[TextIO] = None,
    json_logs: Optional[bool] = None,
) -> None:
    """Route structlog and stdlib logging through one root handler.

    Console rendering is used in development and JSON lines everywhere else.
    Records emitted by plain ``logging`` users (the model runtimes) get the
    same timestamp and level fields as engine events.

    Args:
        level: Log level name; defaults to ``settings.LOG_LEVEL``
        stream: Output stream; defaults to stdout. The CLI passes stderr so
            command output stays machine readable.
        json_logs: Force JSON (True) or console (False) rendering; defaults
            to JSON outside the development environment
    """
    level_name = (level or settings.LOG_LEVEL).upper()
    stream = stream or sys.stdout
    if json_logs is None:
        json_logs = settings.ENVIRONMENT != "development"

    pre_chain: List[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
    ]
    if json_logs:
        pre_chain.append(structlog.processors.format_exc_info)
        renderer: structlog.types.Processor = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=stream.isatty())

    structlog.configure(
        processors=pre_chain + [ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(stream)
    handler.setFormatter(ProcessorFormatter(processor=renderer, foreign_pre_chain=pre_chain))

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(getattr(logging, level_name, logging.INFO))

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    get_logger(__name__).debug(
        "Logging configured",
        environment=settings.ENVIRONMENT,
        level=level_name,
        json_logs=json_logs,
    )


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Return a structlog logger bound to ``name`` (usually ``__name__``)."""
    return structlog.get_logger(name)
