"""
easyrepl logging setup (opt-in; importing easyrepl never configures logging).

Library modules log through the standard logging module under the "easyrepl"
logger hierarchy: debug events when a repl is built, a token is resolved, a
command is dispatched and its outcome classified. User-facing errors are never
logged, they are printed on the repl console.

configure_logging() routes those records through structlog:
- human (default): console renderer, colored when the stream is a terminal;
- JSON (log_json=True): one JSON object per line.
"""
import logging
import sys

import structlog

from .utils import Unset, coalesce


def configure_logging(*, verbose=False, log_json=False, stream=Unset):
    """
    Configure structlog processors and attach a handler to the "easyrepl" logger.

    Parameters
    - verbose: bool, DEBUG level when true, WARNING otherwise.
    - log_json: bool, JSON renderer instead of the console renderer.
    - stream: file-like object, defaults to sys.stderr (read at call time).

    Calling it again replaces the previous handler.
    """
    stream = coalesce(stream, sys.stderr)

    shared_processors = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    if log_json:
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=getattr(stream, "isatty", lambda: False)())

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=False,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=shared_processors,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ],
    )

    handler = logging.StreamHandler(stream)
    handler.setFormatter(formatter)

    logger = logging.getLogger("easyrepl")
    logger.handlers.clear()
    logger.addHandler(handler)
    logger.setLevel(logging.DEBUG if verbose else logging.WARNING)
    logger.propagate = False

    return logger


__all__ = (
    "configure_logging",
)
