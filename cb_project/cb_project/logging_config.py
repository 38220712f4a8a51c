"""
Logging configuration for the ledger backend.

Environment variables:
- LOG_LEVEL: DEBUG, INFO, WARNING, ERROR (default: INFO, DEBUG when debugging)
"""
import os


def get_logging_config(debug: bool = False) -> dict:
    """Return the Django LOGGING dict."""
    log_level = os.environ.get("LOG_LEVEL", "DEBUG" if debug else "INFO")

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "verbose": {
                "format": "[{asctime}] {levelname} {name} {message}",
                "style": "{",
            },
            "simple": {
                "format": "{levelname} {message}",
                "style": "{",
            },
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "formatter": "verbose",
            },
        },
        "root": {
            "handlers": ["console"],
            "level": "WARNING",
        },
        "loggers": {
            "django": {
                "handlers": ["console"],
                "level": "INFO",
                "propagate": False,
            },
            "django.db.backends": {
                "handlers": ["console"],
                "level": "WARNING",
                "propagate": False,
            },
            "books_core": {
                "handlers": ["console"],
                "level": log_level,
                "propagate": False,
            },
        },
    }
