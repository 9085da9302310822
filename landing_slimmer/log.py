import logging
import sys

import cssutils

LOGGER_NAME = "landing_slimmer"


class SlimmerFormatter(logging.Formatter):
    """
    Compact console format:
    [landing-slimmer] INFO: Fetching CSS: https://example.com/style.css
    """
    def format(self, record):
        message = f"[landing-slimmer] {record.levelname}: {record.getMessage()}"
        if record.exc_info:
            message += "\n" + self.formatException(record.exc_info)
        return message


def setup_logger(verbose=False, stream=None):
    """Configure the package logger; INFO when verbose, WARNING otherwise."""
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(logging.INFO if verbose else logging.WARNING)

    # Avoid duplicate handlers if setup_logger is called more than once
    if logger.handlers:
        return logger

    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setFormatter(SlimmerFormatter())
    logger.addHandler(handler)
    return logger


def get_logger(name):
    """Child logger of the package logger, e.g. get_logger('aggregate')"""
    return logging.getLogger(f"{LOGGER_NAME}.{name}")


class CssutilsLogAdapter(logging.LoggerAdapter):
    """
    cssutils reports every rule it cannot model at ERROR level. Those rules
    are kept as written, so the reports are diagnostics: logged at INFO and
    shown only with --verbose.
    """
    def log(self, level, msg, *args, **kwargs):
        super().log(logging.INFO, msg, *args, **kwargs)

    def fatal(self, msg, *args, **kwargs):
        self.log(logging.CRITICAL, msg, *args, **kwargs)


def route_cssutils_log():
    """Send cssutils' parser messages to the package logger"""
    cssutils.log.setLog(CssutilsLogAdapter(get_logger("cssutils"), {}))
