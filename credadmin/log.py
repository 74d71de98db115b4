"""
Logging setup.

structlog with ISO timestamps and the log level on every event; console
rendering by default, one JSON object per line when json_logs is set. Events
go to stderr through the standard library so CLI output on stdout stays clean.
"""

import logging
import sys

import structlog


def configure_logging(log_level: str = "WARNING", json_logs: bool = False) -> None:
    logging.basicConfig(format="%(message)s", stream=sys.stderr,
                        level=log_level.upper(), force=True)

    processors = [
        structlog.stdlib.filter_by_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.JSONRenderer() if json_logs else structlog.dev.ConsoleRenderer(),
    ]

    structlog.configure(
        processors=processors,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )
