"""Logging configuration for the event system.

Everything logs through loguru. ``setup_logging`` installs the console sink
and, when an audit log path is configured, a second file sink that receives
only the ``[AUDIT]`` lines written by ``AuditHandler`` (records bound with
``audit=True``). Standard ``logging`` output, SQLAlchemy's included, is
intercepted into loguru.
"""

import logging
import sys

from loguru import logger

CONSOLE_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan> - "
    "<level>{message}</level>"
)
AUDIT_FORMAT = "{time:YYYY-MM-DD HH:mm:ss.SSS Z} | {message}"

SQLALCHEMY_LOGGERS = ("sqlalchemy", "sqlalchemy.engine", "sqlalchemy.engine.base", "sqlalchemy.pool")


class InterceptHandler(logging.Handler):
    """Intercept standard logging messages toward loguru."""

    def emit(self, record):
        try:
            level = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        # Walk out of the logging module to report the real caller
        frame, depth = logging.currentframe(), 2
        while frame and frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back
            depth += 1

        logger.opt(depth=depth, exception=record.exc_info).log(level, record.getMessage())


def is_audit_record(record) -> bool:
    return bool(record["extra"].get("audit"))


def intercept_standard_logging(names):
    """Send the named stdlib loggers to loguru instead of their own handlers."""
    for name in names:
        logging_logger = logging.getLogger(name)
        logging_logger.handlers = [InterceptHandler()]
        logging_logger.propagate = False


def setup_logging(log_level: str, audit_log_path: str | None = None):
    """Configure loguru as the single log sink of the process.

    Args:
        log_level: Console log level (usually ``Settings.log_level``).
        audit_log_path: File collecting audit lines only
            (``Settings.audit_log_path``). No audit file when ``None``.
    """
    log_level = log_level.upper()

    logger.remove()
    logger.add(sys.stderr, format=CONSOLE_FORMAT, level=log_level, colorize=True)

    if audit_log_path:
        # Audit lines are kept whatever the console level is
        logger.add(audit_log_path, format=AUDIT_FORMAT, level="INFO", filter=is_audit_record)
        logger.debug(f"Audit log written to: {audit_log_path}")

    logger.debug(f"Log level set to: {log_level}")

    logging.basicConfig(handlers=[InterceptHandler()], level=0, force=True)
    intercept_standard_logging(list(logging.Logger.manager.loggerDict))


def setup_sqlalchemy_logging():
    """Route SQLAlchemy loggers (engine echo, pool) into loguru."""
    intercept_standard_logging(SQLALCHEMY_LOGGERS)
