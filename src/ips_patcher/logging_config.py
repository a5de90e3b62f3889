"""Logging setup for ips_patcher.

Library modules log per-record traces at DEBUG through their module loggers.
Nothing is printed unless the caller configures a handler; verbosity only ever
changes what is emitted.
"""
import logging
import sys

PACKAGE_LOGGER = "ips_patcher"

logging.getLogger(PACKAGE_LOGGER).addHandler(logging.NullHandler())

# Handler installed by setup_logging(); handlers added by callers are left alone
_stderr_handler: logging.Handler | None = None


def setup_logging(level: int = logging.WARNING, format_string: str | None = None) -> logging.Logger:
    """Attach a single stderr handler to the package logger."""
    global _stderr_handler
    if format_string is None:
        format_string = "%(levelname)s %(name)s: %(message)s"
    log = logging.getLogger(PACKAGE_LOGGER)
    if _stderr_handler is not None:
        log.removeHandler(_stderr_handler)
    _stderr_handler = logging.StreamHandler(sys.stderr)
    _stderr_handler.setFormatter(logging.Formatter(format_string))
    log.addHandler(_stderr_handler)
    log.setLevel(level)
    return log


def set_verbose(enabled: bool) -> None:
    """Toggle per-record tracing on stderr."""
    setup_logging(logging.DEBUG if enabled else logging.WARNING)
