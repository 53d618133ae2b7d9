"""
Structured logging for ragdesk.
Every module logs through the shared structlog `logger` with key/value context.
"""

import logging
import os
import sys

import structlog


def setup_logging(log_level: str = "INFO", json_logs: bool = False):
    """
    Configure structlog and the stdlib root logger.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        json_logs: JSON lines when True, coloured console output otherwise
    """
    numeric_level = getattr(logging, log_level.upper(), logging.INFO)

    # Third-party libraries (httpx, sqlalchemy, openai) still log via stdlib
    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=numeric_level)

    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.dev.set_exc_info,
    ]
    if json_logs:
        processors += [structlog.processors.format_exc_info, structlog.processors.JSONRenderer()]
    else:
        processors.append(
            structlog.dev.ConsoleRenderer(colors=True, exception_formatter=structlog.dev.plain_traceback)
        )

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(numeric_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=False,
    )
    return structlog.get_logger("ragdesk")


def configure_from_settings(settings) -> None:
    """Re-apply logging options once the full Settings object is available."""
    setup_logging(settings.log_level, settings.json_logs)


# Read straight from the environment so importing the logger never
# depends on the rest of the settings being valid.
logger = setup_logging(
    log_level=os.getenv("LOG_LEVEL", "INFO"),
    json_logs=os.getenv("JSON_LOGS", "false").lower() in ("1", "true", "yes"),
)
