"""
Logging setup for ScoutScore Engine
"""

import logging
import logging.config
from pathlib import Path
from typing import Optional

from .config.settings import LOGGING_CONFIG


def setup_logging(level: Optional[str] = None, log_file: Optional[str] = None) -> None:
    """
    Configure rich console logging plus an optional rotating file log.
    Tunables via env:
      LOG_LEVEL=INFO|DEBUG|...
      LOG_FILE=logs/scout.log (unset -> console only)
      LOG_MAX_BYTES=5242880 (5MB)
      LOG_BACKUPS=3
    """
    level = (level or LOGGING_CONFIG["level"]).upper()
    log_file = log_file if log_file is not None else LOGGING_CONFIG["file"]

    handlers = ["console"]
    config = {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "rich": {"format": "%(name)s | %(message)s", "datefmt": "[%X]"},
            "file": {
                "format": "%(asctime)s | %(levelname)s | %(name)s | %(message)s",
                "datefmt": "%Y-%m-%d %H:%M:%S",
            },
        },
        "handlers": {
            "console": {
                "class": "rich.logging.RichHandler",
                "level": level,
                "formatter": "rich",
                "rich_tracebacks": True,
            },
        },
    }

    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        config["handlers"]["file"] = {
            "class": "logging.handlers.RotatingFileHandler",
            "filename": str(log_file),
            "maxBytes": LOGGING_CONFIG["max_bytes"],
            "backupCount": LOGGING_CONFIG["backups"],
            "encoding": "utf-8",
            "level": "DEBUG",
            "formatter": "file",
        }
        handlers.append("file")

    config["loggers"] = {
        "uvicorn.error": {"handlers": handlers, "level": level, "propagate": False},
        "uvicorn.access": {"handlers": handlers, "level": level, "propagate": False},
        "scout_engine": {"handlers": handlers, "level": level, "propagate": False},
    }
    config["root"] = {"handlers": handlers, "level": level}
    logging.config.dictConfig(config)
