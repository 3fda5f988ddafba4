"""Structured logging for the artist image service.

structlog renders either coloured console lines (development) or one JSON
object per line (production, or whenever ``json_output`` is set).  The
choice follows ``APP_ENV`` so containers log JSON without extra flags.

The stdlib root logger is pointed at the same renderer, which keeps
uvicorn access lines and library warnings (httpx, botocore) in the same
format as the service's own events.  Request-scoped values bound with
``structlog.contextvars`` (see ``api.middleware``) are merged into every
event, including those emitted deep inside the resolver.
"""

import logging
import os
import sys

import structlog

# Libraries that log routine chatter at INFO.
_QUIET_LOGGERS = ("botocore", "boto3", "urllib3", "httpx")


def _shared_processors() -> list[structlog.types.Processor]:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.dev.set_exc_info,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
    ]


def _renderer(json_output: bool, stream) -> structlog.types.Processor:  # noqa: ANN001
    if json_output or os.environ.get("APP_ENV", "development") == "production":
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer(colors=stream.isatty())


def _route_stdlib(stream, level: str, renderer: structlog.types.Processor) -> None:  # noqa: ANN001
    handler = logging.StreamHandler(stream)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                *_shared_processors(),
                renderer,
            ],
        )
    )

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level)

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def configure_logging(
    log_level: str = "INFO",
    json_output: bool = False,
    stream=None,  # noqa: ANN001
) -> structlog.BoundLogger:
    """Configure structlog and the stdlib root logger.

    Args:
        log_level: Minimum level name (DEBUG, INFO, WARNING, ERROR).
        json_output: Force JSON lines even outside production.
        stream: Destination for every log line. Defaults to stdout; the CLI
                passes stderr so stdout only carries command output.

    Returns:
        A structlog logger using the new configuration.
    """
    out = stream or sys.stdout
    level = log_level.upper()
    renderer = _renderer(json_output, out)

    structlog.configure(
        processors=[*_shared_processors(), renderer],
        wrapper_class=structlog.make_filtering_bound_logger(logging.getLevelName(level)),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=out),
        cache_logger_on_first_use=True,
    )
    _route_stdlib(out, level, renderer)

    return structlog.get_logger()


def get_logger(name: str) -> structlog.BoundLogger:
    """Return a logger tagged with *name*, configuring defaults on first use."""
    if not structlog.is_configured():
        configure_logging()
    return structlog.get_logger(logger_name=name)
