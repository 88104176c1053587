"""
Process-wide logging setup.

Modules log through `logging.getLogger(__name__)`; this installs the single
console handler they all propagate to. uvicorn is started with
`log_config=None`, so its access and error logs end up here too.
"""

from __future__ import annotations

import logging
import logging.config

CONSOLE_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def configure_logging(level: str = "INFO") -> None:
    """
    Configure the root logger with a console handler at `level`.

    Unknown level names fall back to INFO.
    """
    level = (level or "").strip().upper()
    if not isinstance(logging.getLevelName(level), int):
        level = "INFO"

    logging.config.dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "console": {
                    "format": CONSOLE_FORMAT,
                    "datefmt": DATE_FORMAT,
                },
            },
            "handlers": {
                "default": {
                    "class": "logging.StreamHandler",
                    "formatter": "console",
                    "level": level,
                }
            },
            "root": {
                "handlers": ["default"],
                "level": level,
            },
        }
    )
