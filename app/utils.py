"""
Shared helpers for the application.

Logging is configured once, lazily, the first time a logger is requested.
"""
import logging
from logging.config import dictConfig

from app.core import config


_configured = False


def configure_logging(level: str | None = None) -> None:
    """
    Configure application-wide logging.

    Safe to call repeatedly; only the first call installs handlers.
    """
    global _configured
    if _configured:
        return

    dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "default": {
                    "format": "%(asctime)s %(levelname)s [%(name)s] %(message)s",
                }
            },
            "handlers": {
                "console": {
                    "class": "logging.StreamHandler",
                    "formatter": "default",
                }
            },
            "loggers": {
                "app": {"handlers": ["console"], "level": level or config.LOG_LEVEL, "propagate": True},
            },
        }
    )
    _configured = True


def get_logger(name: str) -> logging.Logger:
    """Return a logger for the given module name, configuring logging if needed."""
    configure_logging()
    return logging.getLogger(name)
