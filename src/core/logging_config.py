"""Logging configuration for the CLI.

Operator-facing output goes through Rich tables/panels; the `logging` tree
carries stage progress and diagnostics on stderr so it never mixes with a
JSON report written to stdout.
"""

from __future__ import annotations

import logging
import logging.config
from typing import Any

from rich.console import Console
from rich.logging import RichHandler

PACKAGE_LOGGERS: tuple[str, ...] = ("core", "adapters", "cli")


class NoisyLibraryFilter(logging.Filter):
    """Drop botocore/urllib3 chatter below WARNING even in verbose mode."""

    def filter(self, record: logging.LogRecord) -> bool:
        if record.name.startswith(("botocore", "urllib3", "httpcore")):
            return record.levelno >= logging.WARNING
        return True


def build_rich_handler() -> RichHandler:
    return RichHandler(console=Console(stderr=True), show_path=False, rich_tracebacks=True)


def get_logging_config(level: str = "INFO") -> dict[str, Any]:
    level = level.upper()
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "filters": {
            "noisy_library_filter": {
                "()": NoisyLibraryFilter,
            }
        },
        "formatters": {
            "rich": {
                "format": "%(message)s",
                "datefmt": "[%X]",
            }
        },
        "handlers": {
            "rich": {
                "()": build_rich_handler,
                "formatter": "rich",
                "filters": ["noisy_library_filter"],
            }
        },
        "loggers": {
            name: {
                "handlers": ["rich"],
                "level": level,
                "propagate": False,
            }
            for name in PACKAGE_LOGGERS
        },
        "root": {
            "level": "WARNING",
            "handlers": ["rich"],
        },
    }


def configure_logging(level: str = "INFO", *, verbose: bool = False) -> None:
    logging.config.dictConfig(get_logging_config("DEBUG" if verbose else level))
