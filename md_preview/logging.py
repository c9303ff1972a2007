import logging
import sys
from typing import Optional, TextIO

import structlog
from structlog.contextvars import merge_contextvars
from structlog.dev import ConsoleRenderer, set_exc_info

# Standard library loggers of the HTTP server whose records are rendered by structlog
STDLIB_LOGGERS = ("uvicorn", "uvicorn.error")


def configure_logging(is_console: bool = False, stream: Optional[TextIO] = None) -> None:
    """
    Configure logging for the preview server.

    Console output is meant for a developer terminal, otherwise one JSON object
    is written per log line. Records of the uvicorn loggers go through the same
    processors, so the server's own messages use the same format.
    """
    stream = stream or sys.stdout
    processors = [
        merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.processors.StackInfoRenderer(),
        set_exc_info,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="%Y-%m-%d %H:%M:%S", utc=False),
    ]
    foreign_pre_chain = [structlog.stdlib.add_logger_name, *processors]

    renderers = []
    if is_console:
        renderers.append(ConsoleRenderer())
    if not is_console:
        renderers.append(structlog.processors.UnicodeDecoder())
        renderers.append(structlog.processors.JSONRenderer())

    structlog.configure(
        processors=processors + renderers,
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(stream),
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(stream)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=foreign_pre_chain,
            processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, *renderers],
        )
    )
    for name in STDLIB_LOGGERS:
        stdlib_logger = logging.getLogger(name)
        stdlib_logger.handlers = [handler]
        stdlib_logger.propagate = False

    logger = structlog.getLogger(__name__)
    logger.debug("Logging configured.", renderer="console" if is_console else "json")
