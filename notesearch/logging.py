import logging
import sys

import structlog

# Libraries that log every request at INFO
NOISY_LOGGERS = ("openai", "httpx", "aiosqlite")


def build_processors(json_logs: bool = False) -> list:
    renderer = structlog.processors.JSONRenderer() if json_logs else structlog.dev.ConsoleRenderer(colors=True)
    return [
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso" if json_logs else "%H:%M:%S"),
        structlog.processors.format_exc_info if json_logs else structlog.dev.set_exc_info,
        renderer,
    ]


def configure_logging(level: str = "INFO", json_logs: bool = False):
    """Route structlog to stderr, so search output on stdout stays clean.

    ``json_logs`` emits one JSON object per line for log shippers.
    """
    structlog.configure(
        processors=build_processors(json_logs),
        wrapper_class=structlog.make_filtering_bound_logger(getattr(logging, level.upper())),
        logger_factory=structlog.WriteLoggerFactory(file=sys.stderr),
    )
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str | None = None):
    return structlog.get_logger(name or "notesearch")
