"""Structured logging for enex2paperless.

One processor chain (context vars, level, stack info, ISO timestamps)
feeds a single renderer: console output for people watching a migration,
JSON lines when ``APP_ENV=production`` or ``json_output`` is set, so an
unattended run can be shipped to a log collector.  ``no_color`` strips
ANSI escapes for terminals and redirected output that cannot show them.

The stdlib root logger is pointed at the same chain, which keeps httpx
request lines in the same shape as our own events.
"""

import logging
import os
import sys

import structlog


def _select_renderer(json_output: bool, no_color: bool) -> structlog.types.Processor:
    if json_output or os.environ.get("APP_ENV", "development") == "production":
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer(colors=not no_color)


def configure_logging(
    log_level: str = "INFO",
    json_output: bool = False,
    no_color: bool = False,
) -> structlog.BoundLogger:
    """Configure structlog and the stdlib bridge for one CLI run.

    Args:
        log_level: DEBUG for ``--verbose`` runs, INFO otherwise.
        json_output: Force JSON lines regardless of APP_ENV.
        no_color: Disable ANSI colours in console rendering.

    Returns:
        The root structlog logger.
    """
    level_name = log_level.upper()
    renderer = _select_renderer(json_output, no_color)

    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.dev.set_exc_info,
        structlog.processors.TimeStamper(fmt="iso"),
    ]

    structlog.configure(
        processors=[*shared_processors, renderer],
        wrapper_class=structlog.make_filtering_bound_logger(logging.getLevelName(level_name)),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )

    stdlib_handler = logging.StreamHandler(sys.stdout)
    stdlib_handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                *shared_processors,
                renderer,
            ],
        )
    )

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(stdlib_handler)
    root_logger.setLevel(level_name)

    # httpx logs every request at INFO; only show those on verbose runs.
    if level_name != "DEBUG":
        logging.getLogger("httpx").setLevel(logging.WARNING)

    return structlog.get_logger()


def get_logger(name: str) -> structlog.BoundLogger:
    """Return a logger bound to *name*, configuring defaults on first use."""
    if not structlog.is_configured():
        configure_logging()
    return structlog.get_logger(logger_name=name)
