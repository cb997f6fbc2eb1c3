"""Structured logging singleton.

git relays the hook's stderr to the pusher, and the pusher must only see the
rejection message. Log records therefore go nowhere unless an operator picks
a destination:

    REFGUARD_LOG_FILE=/var/log/refguard.log   append records to a file
    REFGUARD_LOG_OUTPUT=stderr                interactive debugging only
    REFGUARD_LOG_OUTPUT=syslog                local syslog

REFGUARD_LOG_LEVEL picks the level (default INFO). Reads os.environ directly
so logging is up before Settings are loaded.
"""

from __future__ import annotations

import logging
import logging.handlers
import os
import sys

import structlog


def _handler() -> tuple[logging.Handler, bool]:
    """Return the handler for the configured destination and whether to colour it."""
    log_file = os.environ.get("REFGUARD_LOG_FILE")
    if log_file:
        return logging.FileHandler(log_file), False

    match os.environ.get("REFGUARD_LOG_OUTPUT", "null").lower():
        case "stderr":
            return logging.StreamHandler(sys.stderr), sys.stderr.isatty()
        case "syslog":
            return logging.handlers.SysLogHandler(), False
        case _:
            return logging.NullHandler(), False


def _setup_logging() -> structlog.stdlib.BoundLogger:
    level_name = os.environ.get("REFGUARD_LOG_LEVEL", "INFO").upper()
    level = getattr(logging, level_name, logging.INFO)
    handler, colors = _handler()

    root = logging.getLogger()
    root.setLevel(level)
    root.addHandler(handler)

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.format_exc_info,
            structlog.dev.ConsoleRenderer(colors=colors),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    return structlog.get_logger("refguard")


logger = _setup_logging()


def _uncaught_exception_handler(
    exc_type: type[BaseException],
    exc_value: BaseException,
    exc_tb: object,
) -> None:
    if issubclass(exc_type, KeyboardInterrupt):
        sys.__excepthook__(exc_type, exc_value, exc_tb)  # type: ignore[arg-type]
        return
    logger.critical("Uncaught exception", exc_info=(exc_type, exc_value, exc_tb))
    # The traceback stays in the log; the pusher gets one line and a veto
    print(f"*** refguard failed: {exc_value}", file=sys.stderr)
    sys.exit(1)


sys.excepthook = _uncaught_exception_handler
