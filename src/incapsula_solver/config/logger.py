"""Structured logger configuration.

This module configures structlog once for the whole package. Logs go to
stderr so that stdout stays free for whatever drives the browser session.
JSON rendering is the default; set LOG_FORMAT=console for human-readable
output while debugging a resolution run.
"""

import logging
import os
import sys

import structlog


def configure_logging(level: str = "INFO", fmt: str = "json") -> None:
    """Configure structlog for the resolver.

    Args:
        level: Standard logging level name (DEBUG, INFO, WARNING, ...).
        fmt: Either "json" or "console".
    """
    log_level = getattr(logging, level.upper(), logging.INFO)

    # Configure Python's standard logging to use stderr
    logging.basicConfig(
        stream=sys.stderr,
        level=log_level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    renderer = (
        structlog.dev.ConsoleRenderer()
        if fmt == "console"
        else structlog.processors.JSONRenderer()
    )

    structlog.configure(
        processors=[
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            renderer
        ],
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )


# Configure logging when module is imported
configure_logging(
    level=os.getenv("LOG_LEVEL", "INFO"),
    fmt=os.getenv("LOG_FORMAT", "json")
)

# Export configured logger
logger = structlog.get_logger()
